"""
Z80 target profile: register model, halt fill, ROM/RAM partition and the
basic instruction batch. The batch drives whatever assembler is plugged in
through its symbolic calls (``z.NOP()``, ``z.assemble("LD", "BC", 0x4321)``).
"""
from __future__ import annotations
from typing import Dict

from ..config import Profile
from ..core.delta import Masked
from ..core.image import MemoryLayout, Region
from ..runner import TestBatch, case
from ..state import RegisterField, RegisterModel

HALT = 0x76

FLAG_C = 0x01
FLAG_N = 0x02
FLAG_PV = 0x04
FLAG_H = 0x10
FLAG_Z = 0x40
FLAG_S = 0x80

# condition name -> (flag bit, required state)
CONDITIONS: Dict[str, tuple] = {
    "C": (FLAG_C, True), "NC": (FLAG_C, False),
    "Z": (FLAG_Z, True), "NZ": (FLAG_Z, False),
    "M": (FLAG_S, True), "P": (FLAG_S, False),
    "PE": (FLAG_PV, True), "PO": (FLAG_PV, False),
}

_BYTE_REGS = ("A", "F", "H", "L", "B", "C", "D", "E")

MODEL = RegisterModel(
    [
        RegisterField("PC", 16),
        RegisterField("IX", 16),
        RegisterField("IY", 16),
        RegisterField("SP", 16),
        RegisterField("I", 8),
        RegisterField("R", 8),
    ]
    + [RegisterField(n, 8, derived=(n == "F")) for n in _BYTE_REGS]
    + [RegisterField(n + "_", 8) for n in _BYTE_REGS]
    + [
        RegisterField("IFF1", 1),
        RegisterField("IFF2", 1),
        RegisterField("IMFa", 1),
        RegisterField("IMFb", 1),
    ],
    pc="PC",
)

LAYOUT = MemoryLayout(rom=Region(0, 16384), ram=Region(16384, 16384))

PROFILE = Profile(name="z80", model=MODEL, halt_opcode=HALT, layout=LAYOUT)


def flags(*conditions: str) -> Masked:
    """``F=flags("C", "NZ")``: carry set, zero clear, other flags unchanged."""
    value = mask = 0
    for cond in conditions:
        try:
            bit, on = CONDITIONS[cond.upper()]
        except KeyError:
            raise ValueError(f"unknown flag condition {cond!r}") from None
        if mask & bit and bool(value & bit) != on:
            raise ValueError(f"contradictory flag conditions {conditions!r}")
        mask |= bit
        if on:
            value |= bit
    return Masked(value, mask)


def _ld_bc_a(z) -> None:
    z.assemble("LD", "BC", 0x8000)
    z.assemble("LD", "A", 0x01)
    z.assemble("LD", "(BC)", "A")


BASIC_INSTRUCTIONS = TestBatch("z80-basic", [
    case("NOP", lambda z: z.NOP()),
    case("LD BC,n", lambda z: z.assemble("LD", "BC", 0x4321), B=0x43, C=0x21),
    case("LD (BC),A", _ld_bc_a, {0x8000: 0x01}, B=0x80, C=0x00, A=0x01),
    case("LD A,33", lambda z: z.LD("A", 33), A=33),
])
