from __future__ import annotations
from typing import Dict

from ..engine import Engine
from ..errors import EngineNotReady
from ..state import MEMORY_SIZE, RegisterModel, StateSnapshot


def capture(engine: Engine, model: RegisterModel) -> StateSnapshot:
    """
    Read every register of ``model`` and the full address space.
    Derived fields go through ``derive_register`` so they are computed now,
    not taken from a cached attribute.
    """
    if not engine.is_ready():
        raise EngineNotReady("engine handle is not ready")

    regs: Dict[str, int] = {}
    for f in model:
        raw = engine.derive_register(f.name) if f.derived else engine.read_register(f.name)
        regs[f.name] = int(raw) & f.mask

    mem = bytes(engine.read_memory(0, MEMORY_SIZE))
    return StateSnapshot(registers=regs, memory=mem)
