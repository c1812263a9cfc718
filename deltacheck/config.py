from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional

from .core.delta import PCPolicy, after_halt
from .core.image import MemoryLayout
from .state import RegisterModel

DEFAULT_MAX_STEPS = 1_000_000


@dataclass(frozen=True)
class Profile:
    """Target-machine facts the harness needs: register model, halt fill, memory partition."""

    name: str
    model: RegisterModel
    halt_opcode: int
    layout: MemoryLayout = field(default_factory=MemoryLayout)
    origin: int = 0


@dataclass
class HarnessConfig:
    profile: Profile
    max_steps: Optional[int] = DEFAULT_MAX_STEPS
    pc_policy: PCPolicy = after_halt
    collect_metrics: bool = False

    def __post_init__(self) -> None:
        if self.max_steps is not None and self.max_steps <= 0:
            raise ValueError("max_steps must be positive, or None for no budget")
