import pytest

from deltacheck.config import HarnessConfig
from deltacheck.profiles import z80

import fakes


@pytest.fixture
def config():
    return HarnessConfig(profile=z80.PROFILE, max_steps=1000)


@pytest.fixture
def engine_factory():
    return fakes.make_engine


@pytest.fixture
def assembler_factory():
    return fakes.make_assembler


@pytest.fixture
def fresh_engine():
    from deltacheck.core.image import build_image

    def _make(code: bytes = b"", **kw):
        return fakes.FakeZ80(build_image(code, z80.HALT), z80.LAYOUT, **kw)
    return _make
