from __future__ import annotations
from dataclasses import dataclass

from ..state import MEMORY_SIZE


@dataclass(frozen=True)
class Region:
    start: int
    length: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.length < 0 or self.start + self.length > MEMORY_SIZE:
            raise ValueError(f"region 0x{self.start:x}+0x{self.length:x} outside the address space")

    @property
    def end(self) -> int:
        return self.start + self.length

    def __contains__(self, addr: object) -> bool:
        return isinstance(addr, int) and self.start <= addr < self.end


@dataclass(frozen=True)
class MemoryLayout:
    """Declared ROM/RAM partition; passed to the engine, never enforced here."""

    rom: Region = Region(0, 16384)
    ram: Region = Region(16384, 16384)


def build_image(code: bytes, fill: int, origin: int = 0) -> bytes:
    """
    Fill the whole address space with ``fill`` (the halt opcode) and
    overlay ``code`` at ``origin``.
    """
    if not 0 <= fill <= 0xFF:
        raise ValueError(f"fill byte out of range: {fill}")
    if origin < 0 or origin + len(code) > MEMORY_SIZE:
        raise ValueError(f"{len(code)} bytes at 0x{origin:x} do not fit in the address space")
    mem = bytearray([fill]) * MEMORY_SIZE
    mem[origin:origin + len(code)] = code
    return bytes(mem)
