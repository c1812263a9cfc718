from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Mapping, Optional, Tuple, Union

from ..engine import Assembly
from ..errors import ConfigurationError, MemoryExpectationMismatch, RegisterExpectationMismatch
from ..state import MEMORY_SIZE, RegisterModel, StateSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Register:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Address:
    addr: int

    def __post_init__(self) -> None:
        if isinstance(self.addr, bool) or not isinstance(self.addr, int):
            raise TypeError(f"address must be an int, got {self.addr!r}")
        if not 0 <= self.addr < MEMORY_SIZE:
            raise ValueError(f"address {self.addr} outside 0..{MEMORY_SIZE - 1}")

    def __str__(self) -> str:
        return f"0x{self.addr:04x}"


DeltaKey = Union[Register, Address]


@dataclass(frozen=True)
class Masked:
    """Constrain only the bits set in ``mask``; other bits must stay unchanged."""

    value: int
    mask: int

    def __post_init__(self) -> None:
        if self.value & ~self.mask:
            raise ValueError(f"value 0x{self.value:x} has bits outside mask 0x{self.mask:x}")

    def matches(self, observed: int) -> bool:
        return observed & self.mask == self.value

    def __str__(self) -> str:
        return f"0x{self.value:x}/0x{self.mask:x}"


Expectation = Union[int, Masked]


def _key(raw: object) -> DeltaKey:
    if isinstance(raw, (Register, Address)):
        return raw
    if isinstance(raw, str):
        return Register(raw)
    if isinstance(raw, int) and not isinstance(raw, bool):
        return Address(raw)
    raise TypeError(f"delta key must be a register name or an address, got {raw!r}")


def _sort_key(k: DeltaKey) -> Tuple[int, str, int]:
    if isinstance(k, Register):
        return (0, k.name, 0)
    return (1, "", k.addr)


class ExpectedDelta(Mapping[DeltaKey, Expectation]):
    """Declared post-execution values, keyed by register or absolute address."""

    def __init__(self, entries: Optional[Mapping[DeltaKey, Expectation]] = None):
        self._entries: Dict[DeltaKey, Expectation] = {}
        for k, v in (entries or {}).items():
            if isinstance(k, Address):
                if isinstance(v, Masked) or not isinstance(v, int) or not 0 <= v <= 0xFF:
                    raise ValueError(f"memory expectation at {k} must be a byte, got {v!r}")
            elif not isinstance(v, (int, Masked)) or isinstance(v, bool):
                raise TypeError(f"register expectation for {k} must be int or Masked, got {v!r}")
            self._entries[k] = v

    @classmethod
    def of(cls, mapping: Optional[Mapping[object, Expectation]] = None, **registers: Expectation) -> "ExpectedDelta":
        entries: Dict[DeltaKey, Expectation] = {}
        for raw, v in list((mapping or {}).items()) + list(registers.items()):
            k = _key(raw)
            if k in entries:
                raise ValueError(f"duplicate expectation for {k}")
            entries[k] = v
        return cls(entries)

    def __getitem__(self, key: object) -> Expectation:
        return self._entries[_key(key)]

    def __contains__(self, key: object) -> bool:
        try:
            return _key(key) in self._entries
        except (TypeError, ValueError):
            return False

    def __iter__(self) -> Iterator[DeltaKey]:
        return iter(sorted(self._entries, key=_sort_key))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        body = ", ".join(f"{k}={v}" for k, v in self.items())
        return f"ExpectedDelta({body})"

    def with_entry(self, key: DeltaKey, value: Expectation) -> "ExpectedDelta":
        entries = dict(self._entries)
        entries[key] = value
        return ExpectedDelta(entries)

    def validate(self, model: RegisterModel) -> None:
        for k, v in self._entries.items():
            if isinstance(k, Address):
                continue
            if k.name not in model:
                raise ConfigurationError(f"unknown register {k.name!r} in expected delta")
            mask = model[k.name].mask
            bits = v.mask if isinstance(v, Masked) else v
            if bits < 0 or bits & ~mask:
                raise ConfigurationError(f"expectation {v} for {k.name} does not fit {model[k.name].width} bits")


PCPolicy = Callable[[Assembly], Optional[int]]


def offset(n: int) -> PCPolicy:
    def policy(assembly: Assembly) -> Optional[int]:
        return assembly.end_address + n
    policy.__name__ = f"offset({n})"
    return policy


# Code falls through into the halt fill; the engine leaves PC past the halt.
after_halt = offset(1)
at_halt = offset(0)


def no_default(assembly: Assembly) -> Optional[int]:
    return None


def with_pc_default(expected: ExpectedDelta, model: RegisterModel, assembly: Assembly, policy: PCPolicy) -> ExpectedDelta:
    if model.pc in expected:
        return expected
    pc = policy(assembly)
    if pc is None:
        return expected
    pc &= model[model.pc].mask
    logger.debug("synthesized %s=0x%04x from end address 0x%04x", model.pc, pc, assembly.end_address)
    return expected.with_entry(Register(model.pc), pc)


def evaluate(old: StateSnapshot, new: StateSnapshot, expected: ExpectedDelta, model: RegisterModel) -> StateSnapshot:
    """
    Check every declared change against ``new`` and return a working copy
    of ``new`` where each matched key holds its old value again.
    """
    regs = dict(new.registers)
    mem = bytearray(new.memory)

    for key, want in expected.items():
        if isinstance(key, Address):
            a = key.addr
            if new.memory[a] != want:
                raise MemoryExpectationMismatch(a, old.memory[a], new.memory[a], want)
            mem[a] = old.memory[a]
            continue

        name = key.name
        if name not in model:
            raise ConfigurationError(f"unknown register {name!r} in expected delta")
        got = new.registers[name]
        if isinstance(want, Masked):
            if not want.matches(got):
                raise RegisterExpectationMismatch(name, old.registers[name], got, want)
            regs[name] = (got & ~want.mask) | (old.registers[name] & want.mask)
        else:
            if got != want:
                raise RegisterExpectationMismatch(name, old.registers[name], got, want)
            regs[name] = old.registers[name]

    logger.debug("neutralized %d declared keys", len(expected))
    return new.replace(registers=regs, memory=mem)
