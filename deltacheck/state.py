from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

MEMORY_SIZE = 65536


@dataclass(frozen=True)
class RegisterField:
    name: str
    width: int
    derived: bool = False

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise ValueError(f"register {self.name!r} needs a positive width")

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1


class RegisterModel:
    """
    Fixed, ordered set of architectural registers.
    Exactly one field is the program counter; derived fields are
    recomputed by the engine on every capture.
    """

    def __init__(self, fields: Iterable[RegisterField], pc: str = "PC"):
        self.fields: Tuple[RegisterField, ...] = tuple(fields)
        self._by_name: Dict[str, RegisterField] = {}
        for f in self.fields:
            if f.name in self._by_name:
                raise ValueError(f"duplicate register {f.name!r}")
            self._by_name[f.name] = f
        if pc not in self._by_name:
            raise ValueError(f"program counter {pc!r} is not a register of the model")
        self.pc = pc

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[RegisterField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, name: str) -> RegisterField:
        return self._by_name[name]

    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)


@dataclass(frozen=True)
class StateSnapshot:
    registers: Mapping[str, int] = field(default_factory=dict)
    memory: bytes = bytes(MEMORY_SIZE)

    def __post_init__(self) -> None:
        if not isinstance(self.memory, bytes):
            object.__setattr__(self, "memory", bytes(self.memory))
        if len(self.memory) != MEMORY_SIZE:
            raise ValueError(f"memory image must be {MEMORY_SIZE} bytes, got {len(self.memory)}")
        if not isinstance(self.registers, MappingProxyType):
            object.__setattr__(self, "registers", MappingProxyType(dict(self.registers)))

    def replace(
        self,
        *,
        registers: Optional[Mapping[str, int]] = None,
        memory: Optional[bytes | bytearray] = None,
    ) -> "StateSnapshot":
        return StateSnapshot(
            registers=dict(self.registers) if registers is None else registers,
            memory=self.memory if memory is None else bytes(memory),
        )

    def missing(self, model: RegisterModel) -> Tuple[str, ...]:
        return tuple(n for n in model.names() if n not in self.registers)
