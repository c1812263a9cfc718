from __future__ import annotations
from dataclasses import dataclass, field
from typing import List

import psutil


def current_rss() -> int:
    return int(psutil.Process().memory_info().rss)


@dataclass
class CaseMetrics:
    label: str
    steps: int = 0
    elapsed_ms: float = 0.0
    rss_bytes: int = 0


@dataclass
class BatchMetrics:
    cases: List[CaseMetrics] = field(default_factory=list)

    def add(self, m: CaseMetrics) -> None:
        self.cases.append(m)

    @property
    def total_steps(self) -> int:
        return sum(c.steps for c in self.cases)

    @property
    def total_ms(self) -> float:
        return sum(c.elapsed_ms for c in self.cases)

    @property
    def peak_rss(self) -> int:
        return max((c.rss_bytes for c in self.cases), default=0)

    def summary_lines(self) -> List[str]:
        lines = [f"  {c.label}: {c.steps} steps, {c.elapsed_ms:.2f} ms" for c in self.cases]
        lines.append(
            f"{len(self.cases)} cases, {self.total_steps} steps, "
            f"{self.total_ms:.2f} ms, peak RSS {self.peak_rss // 1024} KiB"
        )
        return lines
