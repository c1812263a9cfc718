import functools

import pytest

from deltacheck.config import HarnessConfig
from deltacheck.core import delta
from deltacheck.core.metrics import BatchMetrics
from deltacheck.errors import (
    EXIT_ASSEMBLY_FAILED, EXIT_CONFIGURATION, EXIT_ENGINE_NOT_READY, EXIT_ENGINE_STOPPED, EXIT_MEMORY_MISMATCH,
    EXIT_OK, EXIT_REGISTER_MISMATCH, EXIT_STEP_BUDGET, EXIT_UNEXPECTED_MEMORY, EXIT_UNEXPECTED_REGISTER,
    UnexpectedRegisterChange,
)
from deltacheck.profiles import z80
from deltacheck.runner import TestBatch, TestCase, case, run_batch, run_case

import fakes


def _store(z, pointer=0x8000):
    z.assemble("LD", "BC", pointer)
    z.assemble("LD", "A", 0x01)
    z.assemble("LD", "(BC)", "A")


def _run(cases, config, engine=fakes.make_engine):
    lines = []
    status = run_batch(cases, config, engine, fakes.make_assembler, out=lines.append)
    return status, lines


def test_noop_passes_with_only_default_pc(config, engine_factory, assembler_factory):
    m = run_case(case("NOP", lambda z: z.NOP()), config, engine_factory, assembler_factory)
    assert m.label == "NOP"
    assert m.steps == 2


@pytest.mark.parametrize("n", [1, 2, 5])
def test_empty_delta_means_only_pc_moves(config, n):
    tc = case(f"{n} NOPs", lambda z: [z.NOP() for _ in range(n)])
    status, _ = _run([tc], config)
    assert status == EXIT_OK


def test_load_register_pair(config):
    tc = case("LD BC,n", lambda z: z.assemble("LD", "BC", 0x4321), B=0x43, C=0x21)
    assert _run([tc], config)[0] == EXIT_OK


def test_store_via_indirect_address(config):
    tc = case("LD (BC),A", _store, {0x8000: 0x01}, B=0x80, C=0x00, A=0x01)
    assert _run([tc], config)[0] == EXIT_OK


def test_store_declared_at_wrong_address_is_memory_mismatch(config):
    tc = case("LD (BC),A", _store, {0x8001: 0x01}, B=0x80, C=0x00, A=0x01)
    status, lines = _run([tc], config)
    assert status == EXIT_MEMORY_MISMATCH
    assert lines[1] == "Memory change didn't occur as expected"
    assert "32769" in lines[2]


def test_omitted_register_is_unexpected_change(config):
    tc = case("LD BC,n", lambda z: z.assemble("LD", "BC", 0x4321), B=0x43)
    status, lines = _run([tc], config)
    assert status == EXIT_UNEXPECTED_REGISTER
    assert lines[1:] == ["Unexpected register change", "Register C was 0 (0x0) now 33 (0x21)"]


def test_undeclared_store_is_unexpected_memory_change(config):
    tc = case("LD (BC),A", functools.partial(_store, pointer=0x4000), B=0x40, C=0x00, A=0x01)
    status, lines = _run([tc], config)
    assert status == EXIT_UNEXPECTED_MEMORY
    assert "16384" in lines[-1]


def test_store_into_rom_is_dropped_by_engine(config):
    tc = case("LD (BC),A", functools.partial(_store, pointer=0x1000), B=0x10, C=0x00, A=0x01)
    assert _run([tc], config)[0] == EXIT_OK


def test_register_mismatch(config):
    tc = case("LD A,33", lambda z: z.LD("A", 33), A=34)
    assert _run([tc], config)[0] == EXIT_REGISTER_MISMATCH


def test_flag_expectation(config):
    assert _run([case("SCF", lambda z: z.SCF(), F=z80.flags("C"))], config)[0] == EXIT_OK
    assert _run([case("SCF", lambda z: z.SCF())], config)[0] == EXIT_UNEXPECTED_REGISTER


def test_assembly_failure_prints_every_diagnostic(config):
    def bad(z):
        z.assemble("LD", "HL", 1)
        z.assemble("EX", "AF", "AF'")

    status, lines = _run([case("bad", bad)], config)
    assert status == EXIT_ASSEMBLY_FAILED
    assert lines[1:] == [
        "FAIL: didn't assemble",
        "Unknown instruction: LD HL,1",
        "Unknown instruction: EX AF,AF'",
    ]


def test_engine_stop_status(config):
    tc = case("illegal", lambda z: z.db(0xED))
    assert _run([tc], config)[0] == EXIT_ENGINE_STOPPED


def test_step_budget_status(config):
    tc = case("loop", lambda z: z.JR(-2))
    assert _run([tc], config)[0] == EXIT_STEP_BUDGET


def test_engine_not_ready_status(config):
    engine = functools.partial(fakes.FakeZ80, ready=False)
    assert _run([case("NOP", lambda z: z.NOP())], config, engine)[0] == EXIT_ENGINE_NOT_READY


def test_unknown_register_is_configuration_error(config):
    assert _run([case("NOP", lambda z: z.NOP(), HL=0)], config)[0] == EXIT_CONFIGURATION


def test_pc_policy_is_configurable():
    at = HarnessConfig(profile=z80.PROFILE, max_steps=100, pc_policy=delta.at_halt)
    status, lines = _run([case("NOP", lambda z: z.NOP())], at)
    assert status == EXIT_REGISTER_MISMATCH
    assert lines[-1] == "Register PC was 0 (0x0) now 2 (0x2) expected 1 (0x1)"

    off = HarnessConfig(profile=z80.PROFILE, max_steps=100, pc_policy=delta.no_default)
    status, lines = _run([case("NOP", lambda z: z.NOP(), PC=2)], off)
    assert status == EXIT_OK


def test_batch_progress_and_success_line(config):
    batch = TestBatch("demo", [
        case("NOP", lambda z: z.NOP()),
        case("LD A,33", lambda z: z.LD("A", 33), A=33),
    ])
    status, lines = _run(batch, config)
    assert status == EXIT_OK
    assert lines == [
        "Running test 1 of 2 - NOP",
        "Running test 2 of 2 - LD A,33",
        "Finished all tests successfully",
    ]


def test_batch_stops_at_first_failure(config):
    ran = []

    def build(label):
        def _b(z):
            ran.append(label)
            z.NOP()
        return _b

    batch = [
        case("one", build("one")),
        case("two", build("two"), A=1),
        case("three", build("three")),
    ]
    status, lines = _run(batch, config)
    assert status == EXIT_REGISTER_MISMATCH
    assert ran == ["one", "two"]
    assert "Finished all tests successfully" not in lines
    assert not any(line.startswith("Running test 3") for line in lines)


def test_run_case_propagates_typed_error(config, engine_factory, assembler_factory):
    tc = case("LD BC,n", lambda z: z.assemble("LD", "BC", 0x4321))
    with pytest.raises(UnexpectedRegisterChange):
        run_case(tc, config, engine_factory, assembler_factory)


def test_metrics_summary(config):
    cfg = HarnessConfig(profile=z80.PROFILE, max_steps=100, collect_metrics=True)
    metrics = BatchMetrics()
    lines = []
    status = run_batch(
        [case("NOP", lambda z: z.NOP()), case("LD A,1", lambda z: z.LD("A", 1), A=1)],
        cfg, fakes.make_engine, fakes.make_assembler, out=lines.append, metrics=metrics,
    )
    assert status == EXIT_OK
    assert [c.label for c in metrics.cases] == ["NOP", "LD A,1"]
    assert metrics.total_steps == 4
    assert metrics.peak_rss > 0
    assert lines[-1].startswith("2 cases, 4 steps")


def test_testcase_is_not_collected():
    assert TestCase.__test__ is False and TestBatch.__test__ is False


def test_builder_typo_is_assembly_failure(config):
    status, lines = _run([case("typo", lambda z: z.NOPE())], config)
    assert status == EXIT_ASSEMBLY_FAILED
    assert lines[1] == "FAIL: didn't assemble"
    assert lines[-1].startswith("AttributeError:") and "NOPE" in lines[-1]


def test_builder_exception_keeps_earlier_diagnostics(config):
    def bad(z):
        z.assemble("LD", "HL", 1)
        raise ValueError("operand out of range")

    status, lines = _run([case("bad operand", bad)], config)
    assert status == EXIT_ASSEMBLY_FAILED
    assert lines[2:] == ["Unknown instruction: LD HL,1", "ValueError: operand out of range"]
