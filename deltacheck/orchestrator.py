from __future__ import annotations
import logging
from typing import Callable, Optional, Tuple

from .core.image import MemoryLayout
from .core.snapshot import capture
from .engine import Engine, Status
from .errors import EngineStopped, StepBudgetExceeded
from .state import RegisterModel, StateSnapshot

logger = logging.getLogger(__name__)

EngineFactory = Callable[[bytes, MemoryLayout], Engine]


def run_to_halt(engine: Engine, model: RegisterModel, max_steps: Optional[int] = None) -> int:
    """
    Call ``engine.run`` from the current PC until it stops reporting
    ``Status.RUNNING``. Only ``Status.HALTED`` is accepted.
    Returns the number of ``run`` calls made.
    """
    steps = 0
    while True:
        if max_steps is not None and steps >= max_steps:
            raise StepBudgetExceeded(max_steps, engine.read_register(model.pc))
        pc = engine.read_register(model.pc)
        status = engine.run(pc)
        steps += 1
        if status is not Status.RUNNING:
            break

    if status is not Status.HALTED:
        raise EngineStopped(status, engine.read_register(model.pc))
    logger.debug("halted after %d steps", steps)
    return steps


def execute(
    image: bytes,
    layout: MemoryLayout,
    make_engine: EngineFactory,
    model: RegisterModel,
    *,
    max_steps: Optional[int] = None,
) -> Tuple[StateSnapshot, StateSnapshot, int]:
    """Fresh engine over ``image``; returns (before, after, steps)."""
    engine = make_engine(image, layout)
    before = capture(engine, model)
    steps = run_to_halt(engine, model, max_steps)
    after = capture(engine, model)
    return before, after, steps
