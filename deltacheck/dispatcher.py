from __future__ import annotations
import importlib
from typing import Any, Callable, Dict

from .config import Profile
from .errors import ConfigurationError


def load(target: str) -> Any:
    """
    Resolve ``"package.module:attribute"`` (dotted attribute paths allowed).
    Engines and assemblers are plugged in this way; nothing target-specific
    is imported by the harness itself.
    """
    mod_name, sep, attr = target.partition(":")
    if not sep or not mod_name or not attr:
        raise ConfigurationError(f"expected 'module:attribute', got {target!r}")
    try:
        obj: Any = importlib.import_module(mod_name)
    except ImportError as e:
        raise ConfigurationError(f"cannot import {mod_name!r}: {e}") from e
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError:
            raise ConfigurationError(f"{mod_name!r} has no attribute {attr!r}") from None
    return obj


def load_factory(target: str) -> Callable[..., Any]:
    obj = load(target)
    if not callable(obj):
        raise ConfigurationError(f"{target!r} is not callable")
    return obj


def _z80() -> Profile:
    from .profiles import z80
    return z80.PROFILE


PROFILES: Dict[str, Callable[[], Profile]] = {
    "z80": _z80,
}

DEFAULT_BATCHES: Dict[str, str] = {
    "z80": "deltacheck.profiles.z80:BASIC_INSTRUCTIONS",
}


def profile(name: str) -> Profile:
    try:
        return PROFILES[name]()
    except KeyError:
        raise ConfigurationError(f"Unknown profile: {name}") from None
