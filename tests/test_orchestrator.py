import pytest

from deltacheck.core.image import build_image
from deltacheck.errors import EXIT_ENGINE_STOPPED, EXIT_STEP_BUDGET, EngineStopped, StepBudgetExceeded
from deltacheck.orchestrator import execute, run_to_halt
from deltacheck.profiles import z80

import fakes


@pytest.mark.parametrize("code,steps,pc", [
    (b"", 1, 1),                     # halt at 0
    (b"\x00", 2, 2),                 # NOP
    (b"\x00\x00\x00", 4, 4),         # 3 NOPs
    (b"\x01\x21\x43", 2, 4),         # LD BC,0x4321
])
def test_runs_until_halt(fresh_engine, code, steps, pc):
    eng = fresh_engine(code)
    assert run_to_halt(eng, z80.MODEL) == steps
    assert eng.regs["PC"] == pc


def test_other_terminal_status_is_fatal(fresh_engine):
    eng = fresh_engine(b"\x00\xED")
    with pytest.raises(EngineStopped) as exc:
        run_to_halt(eng, z80.MODEL)
    assert exc.value.status == "illegal opcode"
    assert exc.value.exit_status == EXIT_ENGINE_STOPPED
    assert exc.value.report()[0] == "Failed to Halt"


def test_step_budget(fresh_engine):
    eng = fresh_engine(b"\x18\xFE")  # JR $
    with pytest.raises(StepBudgetExceeded) as exc:
        run_to_halt(eng, z80.MODEL, max_steps=50)
    assert exc.value.max_steps == 50
    assert exc.value.pc == 0
    assert exc.value.exit_status == EXIT_STEP_BUDGET


def test_budget_equal_to_needed_steps_passes(fresh_engine):
    assert run_to_halt(fresh_engine(b"\x00\x00"), z80.MODEL, max_steps=3) == 3


def test_stuck_engine_hits_budget():
    eng = fakes.StuckEngine(build_image(b"", z80.HALT), z80.LAYOUT)
    with pytest.raises(StepBudgetExceeded):
        run_to_halt(eng, z80.MODEL, max_steps=10)


def test_execute_uses_fresh_engine_and_captures_both_sides():
    made = []

    def factory(image, layout):
        eng = fakes.FakeZ80(image, layout)
        made.append(eng)
        return eng

    image = build_image(b"\x3E\x21", z80.HALT)
    before, after, steps = execute(image, z80.LAYOUT, factory, z80.MODEL, max_steps=10)
    execute(image, z80.LAYOUT, factory, z80.MODEL, max_steps=10)
    assert len(made) == 2 and made[0] is not made[1]
    assert before.registers["A"] == 0 and after.registers["A"] == 0x21
    assert before.registers["PC"] == 0 and after.registers["PC"] == 3
    assert steps == 2
    assert before.memory == after.memory == image


def test_scf_sets_carry_and_clears_n_and_h(fresh_engine):
    eng = fresh_engine(b"\x37")
    eng.flag_bits = z80.FLAG_N | z80.FLAG_H | z80.FLAG_Z
    run_to_halt(eng, z80.MODEL)
    assert eng.derive_register("F") == z80.FLAG_C | z80.FLAG_Z
