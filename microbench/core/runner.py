"""
Microbench runner

Executes built ``BenchmarkMetadata`` sequentially and returns a
``SuiteResult``. Per benchmark: static before-class hooks, then every subject
in declaration order (one fresh instance per subject), then static
after-class hooks. Per subject: every variant of the Cartesian product of its
providers' parameter sets, and per variant ``iterations`` times
before hooks → timed call → after hooks.

Timed calls never run under ``tracemalloc``. With ``measure_memory`` each
iteration is followed by an untimed pass (hooks included) that traces the
same call, and its allocations are recorded on the iteration.
"""
from __future__ import annotations
import inspect
import itertools
import logging
import threading
import time
import tracemalloc
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from microbench.assertion.evaluator import Evaluator
from microbench.assertion.parser import parse
from .exceptions import ExecutionFailure, ExpressionError, MicrobenchError
from .models import BenchmarkMetadata, ParameterSet, SubjectMetadata
from .progress import NullProgressLogger, ProgressLogger
from .results import (
    AssertionFailure,
    BenchmarkResult,
    Iteration,
    SubjectResult,
    SuiteResult,
    VariantResult,
    variant_measurement,
)

logger = logging.getLogger("microbench.runner")


@dataclass(frozen=True)
class IterationContext:
    """Passed to subjects and hooks that accept an argument"""
    subject: str
    variant_index: int
    index: int
    parameters: ParameterSet


def cartesian_parameter_sets(provider_sets: Optional[List[List[ParameterSet]]]) -> List[ParameterSet]:
    """
    Combine the output of several providers into variants.

    The product is taken across providers: two providers returning 2 and 3
    sets give 6 variants, each merging one set from every provider in
    provider order. An empty provider output counts as one empty set.
    """
    if not provider_sets:
        return [ParameterSet()]
    factors = [sets if sets else [ParameterSet()] for sets in provider_sets]
    return [ParameterSet.merge(list(combination)) for combination in itertools.product(*factors)]


def _accepts_argument(func: Callable) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    return any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL)
        for p in signature.parameters.values()
    )


def _default_instance_factory(benchmark: BenchmarkMetadata) -> Any:
    if benchmark.benchmark_class is None:
        raise MicrobenchError(f'Benchmark class "{benchmark.class_name}" is not loaded')
    return benchmark.benchmark_class()


class _Aborted(Exception):
    pass


class Runner:
    def __init__(
        self,
        benchmarks: Optional[Iterable[BenchmarkMetadata]] = None,
        progress: Optional[ProgressLogger] = None,
        instance_factory: Optional[Callable[[BenchmarkMetadata], Any]] = None,
        measure_memory: bool = False,
        stop_event: Optional[threading.Event] = None,
        evaluator: Optional[Evaluator] = None,
        context: Optional[str] = None,
    ):
        self.benchmarks = list(benchmarks) if benchmarks is not None else None
        self.progress = progress or NullProgressLogger()
        self.instance_factory = instance_factory or _default_instance_factory
        self.measure_memory = measure_memory
        self.stop_event = stop_event or threading.Event()
        self.evaluator = evaluator or Evaluator()
        self.context = context

    def abort(self) -> None:
        """Stop the current run before its next iteration."""
        self.stop_event.set()

    def run_all(self) -> SuiteResult:
        if self.benchmarks is None:
            raise ValueError("Runner has no benchmark collection, use run() with an explicit selection")
        return self.run(self.benchmarks)

    def run(self, benchmarks: Sequence[BenchmarkMetadata]) -> SuiteResult:
        suite = SuiteResult(context=self.context)
        if tracemalloc.is_tracing():
            logger.warning("tracemalloc is already tracing, measured times include its overhead")

        try:
            for benchmark in benchmarks:
                self._run_benchmark(benchmark, suite)
        except _Aborted:
            suite.aborted = True
            logger.warning(f"Run aborted after {suite.iteration_count} iteration(s)")

        logger.info(
            f"Run finished: {len(suite.benchmarks)} benchmark(s), {suite.iteration_count} iteration(s), "
            f"{len(suite.failures)} assertion failure(s)"
        )
        return suite

    # ---------- benchmark / subject ----------
    def _run_benchmark(self, benchmark: BenchmarkMetadata, suite: SuiteResult) -> None:
        result = BenchmarkResult(class_name=benchmark.class_name, path=benchmark.path)
        suite.benchmarks.append(result)
        self.progress.benchmark_start(benchmark)

        self._call_class_hooks(benchmark, benchmark.before_class_methods, suite)
        for subject in benchmark.iter_subjects():
            self._run_subject(benchmark, subject, result, suite)
        self._call_class_hooks(benchmark, benchmark.after_class_methods, suite)

        self.progress.benchmark_end(benchmark, result)

    def _call_class_hooks(self, benchmark: BenchmarkMetadata, names: List[str], suite: SuiteResult) -> None:
        for name in names:
            try:
                if benchmark.benchmark_class is None:
                    raise MicrobenchError(f'Benchmark class "{benchmark.class_name}" is not loaded')
                getattr(benchmark.benchmark_class, name)()
            except Exception as e:
                raise ExecutionFailure(benchmark.class_name, None, name, suite=suite, error=e) from e

    def _run_subject(
        self,
        benchmark: BenchmarkMetadata,
        subject: SubjectMetadata,
        benchmark_result: BenchmarkResult,
        suite: SuiteResult,
    ) -> None:
        if subject.param_providers and not subject.is_resolved:
            raise MicrobenchError(
                f'Parameter sets of {benchmark.class_name}::{subject.name} are not resolved, '
                "build the metadata with MetadataFactory"
            )

        result = SubjectResult(name=subject.name, description=subject.description, groups=list(subject.groups))
        benchmark_result.subjects.append(result)
        self.progress.subject_start(subject)

        def fail(method: str, error: Exception, variant_index=None, iteration_index=None):
            return ExecutionFailure(
                benchmark.class_name, subject.name, method, variant_index, iteration_index, suite, error
            )

        try:
            instance = self.instance_factory(benchmark)
            method = getattr(instance, subject.name)
            before = [(name, getattr(instance, name)) for name in subject.before_methods]
            after = [(name, getattr(instance, name)) for name in subject.after_methods]
        except Exception as e:
            raise fail(subject.name, e) from e

        takes_context = {name: _accepts_argument(func) for name, func in before + after + [(subject.name, method)]}

        for variant_index, parameters in enumerate(cartesian_parameter_sets(subject.parameter_sets)):
            variant = VariantResult(index=variant_index, parameters=parameters)
            result.variants.append(variant)

            for iteration_index in range(subject.iterations):
                if self.stop_event.is_set():
                    if not variant.iterations:
                        result.variants.pop()
                    raise _Aborted()

                context = IterationContext(subject.name, variant_index, iteration_index, parameters)
                args: Tuple = (context,)
                self.progress.iteration_start(subject, variant_index, iteration_index)

                def call(measure: Callable):
                    for name, hook in before:
                        try:
                            hook(*(args if takes_context[name] else ()))
                        except Exception as e:
                            raise fail(name, e, variant_index, iteration_index) from e
                    try:
                        measured = measure(method, args if takes_context[subject.name] else ())
                    except Exception as e:
                        raise fail(subject.name, e, variant_index, iteration_index) from e
                    for name, hook in after:
                        try:
                            hook(*(args if takes_context[name] else ()))
                        except Exception as e:
                            raise fail(name, e, variant_index, iteration_index) from e
                    return measured

                elapsed = call(self._time)
                memory = mem_peak = 0
                if self.measure_memory:
                    memory, mem_peak = call(self._trace)

                iteration = Iteration(iteration_index, parameters, elapsed, memory, mem_peak)
                variant.iterations.append(iteration)
                self.progress.iteration_end(subject, iteration)

            try:
                variant.failures = self._check_assertions(subject, benchmark_result, result, variant, suite)
            except ExpressionError as e:
                raise fail(subject.name, e, variant_index) from e

        self.progress.subject_end(subject, result)

    # ---------- measurement ----------
    @staticmethod
    def _time(func: Callable, args: Tuple) -> float:
        """Elapsed microseconds of one call"""
        start = time.perf_counter_ns()
        func(*args)
        return (time.perf_counter_ns() - start) / 1000.0

    @staticmethod
    def _trace(func: Callable, args: Tuple) -> Tuple[int, int]:
        """Bytes still allocated after one call and its allocation peak"""
        started = not tracemalloc.is_tracing()
        if started:
            tracemalloc.start()
        try:
            tracemalloc.reset_peak()
            baseline, _ = tracemalloc.get_traced_memory()
            func(*args)
            current, peak = tracemalloc.get_traced_memory()
        finally:
            if started:
                tracemalloc.stop()
        return current - baseline, max(0, peak - baseline)

    def _check_assertions(
        self,
        subject: SubjectMetadata,
        benchmark_result: BenchmarkResult,
        subject_result: SubjectResult,
        variant: VariantResult,
        suite: SuiteResult,
    ) -> List[AssertionFailure]:
        if not subject.assertions:
            return []
        constraints = subject.constraints or [parse(expression) for expression in subject.assertions]
        measurement = variant_measurement(benchmark_result, subject_result, variant, suite.context, suite.date)

        failures = []
        for expression, constraint in zip(subject.assertions, constraints):
            if self.evaluator.evaluate(constraint, measurement):
                continue
            message = (
                f'Assertion "{expression}" failed for {benchmark_result.class_name}::{subject.name} '
                f"variant #{variant.index} (mean={measurement.get('mean', 0):.3f}μs, "
                f"mem_peak={measurement['mem_peak']}b)"
            )
            logger.warning(message)
            failures.append(AssertionFailure(expression, message))
        return failures
