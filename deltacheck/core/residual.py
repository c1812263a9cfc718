from __future__ import annotations

from ..errors import UnexpectedMemoryChange, UnexpectedRegisterChange
from ..state import RegisterModel, StateSnapshot


def compare(old: StateSnapshot, working: StateSnapshot, model: RegisterModel) -> None:
    """Closed-world check: after neutralization nothing may differ."""
    for snap in (old, working):
        absent = snap.missing(model)
        if absent:
            raise ValueError(f"snapshot lacks registers: {', '.join(absent)}")
    for f in model:
        before, after = old.registers[f.name], working.registers[f.name]
        if before != after:
            raise UnexpectedRegisterChange(f.name, before, after)

    if old.memory == working.memory:
        return
    for addr, (before, after) in enumerate(zip(old.memory, working.memory)):
        if before != after:
            raise UnexpectedMemoryChange(addr, before, after)
