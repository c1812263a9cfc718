from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Mapping, Optional, Tuple

from .config import HarnessConfig
from .core import delta, residual
from .core.image import build_image
from .core.metrics import BatchMetrics, CaseMetrics, current_rss
from .engine import AssemblerHandle, CodeBuilder, assemble
from .errors import EXIT_OK, AssemblyError, HarnessError
from .orchestrator import EngineFactory, execute

logger = logging.getLogger(__name__)

AssemblerFactory = Callable[[], AssemblerHandle]


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    label: str
    build: CodeBuilder
    expected: delta.ExpectedDelta = field(default_factory=delta.ExpectedDelta)


def case(label: str, build: CodeBuilder, expected: Optional[Mapping[object, delta.Expectation]] = None, **registers) -> TestCase:
    """``case("LD BC,n", lambda z: ..., B=0x43, C=0x21)``; addresses go in ``expected``."""
    return TestCase(label, build, delta.ExpectedDelta.of(expected, **registers))


class TestBatch:
    __test__ = False

    def __init__(self, name: str, cases: Iterable[TestCase]):
        self.name = name
        self.cases: Tuple[TestCase, ...] = tuple(cases)

    def __iter__(self) -> Iterator[TestCase]:
        return iter(self.cases)

    def __len__(self) -> int:
        return len(self.cases)

    def labels(self) -> Tuple[str, ...]:
        return tuple(c.label for c in self.cases)


def run_case(
    tc: TestCase,
    config: HarnessConfig,
    make_engine: EngineFactory,
    make_assembler: AssemblerFactory,
) -> CaseMetrics:
    profile = config.profile
    model = profile.model
    tc.expected.validate(model)

    t0 = time.perf_counter()
    assembly = assemble(make_assembler, tc.build, profile.origin)
    expected = delta.with_pc_default(tc.expected, model, assembly, config.pc_policy)
    try:
        image = build_image(assembly.code, profile.halt_opcode, profile.origin)
    except ValueError as e:
        raise AssemblyError([str(e)]) from e

    before, after, steps = execute(
        image, profile.layout, make_engine, model, max_steps=config.max_steps,
    )
    working = delta.evaluate(before, after, expected, model)
    residual.compare(before, working, model)

    m = CaseMetrics(label=tc.label, steps=steps, elapsed_ms=(time.perf_counter() - t0) * 1000.0)
    if config.collect_metrics:
        m.rss_bytes = current_rss()
    return m


def run_batch(
    batch: Iterable[TestCase],
    config: HarnessConfig,
    make_engine: EngineFactory,
    make_assembler: AssemblerFactory,
    *,
    out: Callable[[str], None] = print,
    metrics: Optional[BatchMetrics] = None,
) -> int:
    """
    Run cases strictly in order. The first HarnessError ends the batch;
    its report is printed and its exit status returned.
    """
    cases = tuple(batch)
    total = len(cases)
    for i, tc in enumerate(cases, start=1):
        out(f"Running test {i} of {total} - {tc.label}")
        try:
            m = run_case(tc, config, make_engine, make_assembler)
        except HarnessError as e:
            logger.debug("case %r failed with exit status %d", tc.label, e.exit_status)
            for line in e.report():
                out(line)
            return e.exit_status
        if metrics is not None:
            metrics.add(m)

    out("Finished all tests successfully")
    if metrics is not None and config.collect_metrics:
        for line in metrics.summary_lines():
            out(line)
    return EXIT_OK
