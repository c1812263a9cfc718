from __future__ import annotations
from typing import Any, List, Sequence

EXIT_OK = 0
EXIT_ENGINE_STOPPED = 1
EXIT_UNEXPECTED_REGISTER = 2
EXIT_UNEXPECTED_MEMORY = 3
EXIT_REGISTER_MISMATCH = 4
EXIT_MEMORY_MISMATCH = 5
EXIT_ASSEMBLY_FAILED = 6
EXIT_STEP_BUDGET = 7
EXIT_ENGINE_NOT_READY = 8
EXIT_CONFIGURATION = 9


def _fmt(v: Any) -> str:
    if isinstance(v, int) and not isinstance(v, bool):
        return f"{v} (0x{v:x})"
    return str(v)


class HarnessError(RuntimeError):
    """Fatal condition; the batch stops and the process exits with ``exit_status``."""

    exit_status = EXIT_ENGINE_STOPPED
    headline = "Harness failure"

    def details(self) -> List[str]:
        return [str(self)] if str(self) else []

    def report(self) -> List[str]:
        return [self.headline] + self.details()


class ConfigurationError(HarnessError):
    exit_status = EXIT_CONFIGURATION
    headline = "Configuration error"


class AssemblyError(HarnessError):
    exit_status = EXIT_ASSEMBLY_FAILED
    headline = "FAIL: didn't assemble"

    def __init__(self, diagnostics: Sequence[str]):
        self.diagnostics = list(diagnostics)
        super().__init__("; ".join(self.diagnostics))

    def details(self) -> List[str]:
        return list(self.diagnostics)


class EngineNotReady(HarnessError):
    exit_status = EXIT_ENGINE_NOT_READY
    headline = "Engine not ready for state capture"


class EngineStopped(HarnessError):
    exit_status = EXIT_ENGINE_STOPPED
    headline = "Failed to Halt"

    def __init__(self, status: Any, pc: int):
        self.status = status
        self.pc = pc
        super().__init__(f"engine reported {status!r} at PC={_fmt(pc)}")


class StepBudgetExceeded(HarnessError):
    exit_status = EXIT_STEP_BUDGET
    headline = "Step budget exceeded"

    def __init__(self, max_steps: int, pc: int):
        self.max_steps = max_steps
        self.pc = pc
        super().__init__(f"no terminal status after {max_steps} steps, PC={_fmt(pc)}")


class RegisterExpectationMismatch(HarnessError):
    exit_status = EXIT_REGISTER_MISMATCH
    headline = "Register change didn't occur as expected"

    def __init__(self, name: str, old: int, new: int, expected: Any):
        self.name, self.old, self.new, self.expected = name, old, new, expected
        super().__init__(f"Register {name} was {_fmt(old)} now {_fmt(new)} expected {_fmt(expected)}")


class MemoryExpectationMismatch(HarnessError):
    exit_status = EXIT_MEMORY_MISMATCH
    headline = "Memory change didn't occur as expected"

    def __init__(self, address: int, old: int, new: int, expected: int):
        self.address, self.old, self.new, self.expected = address, old, new, expected
        super().__init__(
            f"Address {_fmt(address)} was {_fmt(old)} now {_fmt(new)} expected {_fmt(expected)}"
        )


class UnexpectedRegisterChange(HarnessError):
    exit_status = EXIT_UNEXPECTED_REGISTER
    headline = "Unexpected register change"

    def __init__(self, name: str, old: int, new: int):
        self.name, self.old, self.new = name, old, new
        super().__init__(f"Register {name} was {_fmt(old)} now {_fmt(new)}")


class UnexpectedMemoryChange(HarnessError):
    exit_status = EXIT_UNEXPECTED_MEMORY
    headline = "Unexpected memory change"

    def __init__(self, address: int, old: int, new: int):
        self.address, self.old, self.new = address, old, new
        super().__init__(f"location {_fmt(address)} was {_fmt(old)} now {_fmt(new)}")
