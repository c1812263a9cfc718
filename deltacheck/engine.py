from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Protocol

from .errors import AssemblyError

logger = logging.getLogger(__name__)


class Status(enum.Enum):
    RUNNING = "running"
    HALTED = "halted"


class Engine(Protocol):
    """
    Narrow capability interface of the emulator under test.

    ``run`` executes from ``pc`` and reports a status: ``Status.RUNNING``
    to be called again, ``Status.HALTED`` on success, anything else is an
    abnormal stop.
    """

    def is_ready(self) -> bool: ...

    def read_register(self, name: str) -> int: ...

    def derive_register(self, name: str) -> int: ...

    def read_memory(self, start: int, length: int) -> bytes: ...

    def run(self, pc: int) -> Any: ...


class AssemblerHandle(Protocol):
    def set_origin(self, address: int) -> None: ...

    def address(self) -> int: ...

    def diagnostics(self) -> List[str]: ...

    def code(self) -> bytes: ...


CodeBuilder = Callable[[Any], None]


@dataclass(frozen=True)
class Assembly:
    code: bytes
    origin: int
    end_address: int

    def __len__(self) -> int:
        return len(self.code)


def assemble(make_assembler: Callable[[], AssemblerHandle], build: CodeBuilder, origin: int = 0) -> Assembly:
    """
    Run a code-builder callback against a fresh assembler handle.
    Any diagnostic is fatal; partial output is never returned.
    """
    asm = make_assembler()
    asm.set_origin(origin)
    try:
        build(asm)
    except Exception as e:
        raise AssemblyError(list(asm.diagnostics()) + [f"{type(e).__name__}: {e}"]) from e
    end = int(asm.address())
    problems = list(asm.diagnostics())
    if problems:
        raise AssemblyError(problems)
    code = bytes(asm.code())
    logger.debug("assembled %d bytes at 0x%04x, end=0x%04x", len(code), origin, end)
    return Assembly(code=code, origin=origin, end_address=end)
