# microbench/core/progress.py
"""
Progress sinks

The runner notifies a progress logger before and after every benchmark,
subject and iteration. Loggers only observe: they receive the objects being
worked on and must not change them.
"""
from __future__ import annotations
import logging
from abc import ABC
from typing import Optional

from .models import BenchmarkMetadata, SubjectMetadata
from .results import BenchmarkResult, Iteration, SubjectResult


class ProgressLogger(ABC):
    """Base progress logger; every hook is a no-op by default"""

    def benchmark_start(self, benchmark: BenchmarkMetadata) -> None:
        pass

    def benchmark_end(self, benchmark: BenchmarkMetadata, result: BenchmarkResult) -> None:
        pass

    def subject_start(self, subject: SubjectMetadata) -> None:
        pass

    def subject_end(self, subject: SubjectMetadata, result: SubjectResult) -> None:
        pass

    def iteration_start(self, subject: SubjectMetadata, variant_index: int, iteration_index: int) -> None:
        pass

    def iteration_end(self, subject: SubjectMetadata, iteration: Iteration) -> None:
        pass


class NullProgressLogger(ProgressLogger):
    pass


class LoggingProgressLogger(ProgressLogger):
    """Forward progress events to the standard ``logging`` module"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("microbench.progress")

    def benchmark_start(self, benchmark: BenchmarkMetadata) -> None:
        self.logger.info(f"{benchmark.class_name} ({benchmark.path or '-'})")

    def benchmark_end(self, benchmark: BenchmarkMetadata, result: BenchmarkResult) -> None:
        self.logger.debug(f"{benchmark.class_name}: {len(result.subjects)} subject(s) done")

    def subject_start(self, subject: SubjectMetadata) -> None:
        self.logger.info(f"  {subject.name}" + (f" - {subject.description}" if subject.description else ""))

    def subject_end(self, subject: SubjectMetadata, result: SubjectResult) -> None:
        for variant in result.variants:
            stats = variant.stats
            if stats is None:
                continue
            status = "ok" if variant.passed else f"{len(variant.failures)} assertion(s) failed"
            self.logger.info(
                f"    #{variant.index} {variant.parameters.as_dict()} "
                f"mean={stats.mean:.3f}μs min={stats.min:.3f}μs max={stats.max:.3f}μs "
                f"rstdev={stats.rstdev:.2f}% [{status}]"
            )

    def iteration_end(self, subject: SubjectMetadata, iteration: Iteration) -> None:
        self.logger.debug(f"    {subject.name} iteration #{iteration.index}: {iteration.time:.3f}μs")
