"""
Microbench result model

SuiteResult ⊇ BenchmarkResult ⊇ SubjectResult ⊇ VariantResult ⊇ Iteration.
The runner builds the tree bottom-up and appends each node as soon as it is
created, so a partially built tree is always consistent.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple

from microbench.assertion.time_unit import TimeUnit
from .models import ParameterSet
from .stats import Distribution


@dataclass(frozen=True)
class Iteration:
    """One timed execution of a variant"""
    index: int
    parameters: ParameterSet
    time: float  # microseconds
    memory: int = 0  # bytes still allocated after the call
    mem_peak: int = 0  # peak bytes allocated during the call

    def get_time(self, unit: str | TimeUnit = TimeUnit.MICROSECONDS) -> float:
        return TimeUnit.resolve(unit).from_microseconds(self.time)


@dataclass(slots=True)
class AssertionFailure:
    expression: str
    message: str


@dataclass
class VariantResult:
    index: int
    parameters: ParameterSet
    iterations: List[Iteration] = field(default_factory=list)
    failures: List[AssertionFailure] = field(default_factory=list)

    @property
    def stats(self) -> Optional[Distribution]:
        return Distribution.from_samples(i.time for i in self.iterations)

    @property
    def mem_peak(self) -> int:
        return max((i.mem_peak for i in self.iterations), default=0)

    @property
    def passed(self) -> bool:
        return not self.failures


@dataclass
class SubjectResult:
    name: str
    description: Optional[str] = None
    groups: List[str] = field(default_factory=list)
    variants: List[VariantResult] = field(default_factory=list)

    @property
    def iteration_count(self) -> int:
        return sum(len(v.iterations) for v in self.variants)


@dataclass
class BenchmarkResult:
    class_name: str
    path: Optional[str] = None
    subjects: List[SubjectResult] = field(default_factory=list)


@dataclass
class SuiteResult:
    benchmarks: List[BenchmarkResult] = field(default_factory=list)
    date: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    context: Optional[str] = None
    environment: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    aborted: bool = False

    def iter_variants(self) -> Iterator[Tuple[BenchmarkResult, SubjectResult, VariantResult]]:
        for benchmark in self.benchmarks:
            for subject in benchmark.subjects:
                for variant in subject.variants:
                    yield benchmark, subject, variant

    @property
    def iteration_count(self) -> int:
        return sum(len(v.iterations) for _, _, v in self.iter_variants())

    @property
    def failures(self) -> List[Tuple[str, str, int, AssertionFailure]]:
        return [
            (benchmark.class_name, subject.name, variant.index, failure)
            for benchmark, subject, variant in self.iter_variants()
            for failure in variant.failures
        ]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


def variant_measurement(
    benchmark: BenchmarkResult,
    subject: SubjectResult,
    variant: VariantResult,
    context: Optional[str] = None,
    date: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Property mapping of a variant, as consumed by the assertion evaluator.

    ``time`` and ``memory`` hold one value per iteration; a comparison on
    them holds when it holds for any iteration. ``run`` is ``None`` until
    the suite is stored.
    """
    measurement: Dict[str, Any] = {
        "benchmark": benchmark.class_name,
        "subject": subject.name,
        "group": list(subject.groups),
        "run": None,
        "date": date,
        "context": context,
        "iterations": len(variant.iterations),
        "mem_peak": variant.mem_peak,
        "time": [i.time for i in variant.iterations],
        "memory": [i.memory for i in variant.iterations],
    }
    stats = variant.stats
    if stats is not None:
        for key in ("min", "max", "sum", "mean", "median", "stdev", "rstdev"):
            measurement[key] = getattr(stats, key)
    return measurement
