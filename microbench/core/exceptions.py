"""
Microbench error hierarchy

Every error raised on purpose by the library derives from ``MicrobenchError``.
Metadata problems are ``InvalidArgumentError`` subclasses (and therefore also
``ValueError``), so callers can treat a broken benchmark declaration like any
other bad argument.
"""
from __future__ import annotations
from typing import Any, Optional


class MicrobenchError(Exception):
    """Base class for all microbench errors"""


class InvalidArgumentError(MicrobenchError, ValueError):
    """A benchmark declaration or argument is malformed"""


class ValidationError(InvalidArgumentError):
    """A hook or method declared on a benchmark class is missing or has the wrong staticness"""


class ParameterShapeError(InvalidArgumentError):
    """A parameter provider returned a value of the wrong shape"""


class ExpressionError(MicrobenchError, ValueError):
    """Base class for assertion expression errors"""


class InvalidTimeUnit(ExpressionError):
    def __init__(self, unit: str, valid: Optional[list] = None):
        self.unit = unit
        message = f'Invalid time unit "{unit}"'
        if valid:
            message += f", valid units: {', '.join(valid)}"
        super().__init__(message)


class UnitMismatch(ExpressionError):
    """A time quantity was compared with a plain scalar"""


class ExpressionSyntaxError(ExpressionError):
    def __init__(self, message: str, expression: str = "", position: Optional[int] = None):
        self.expression = expression
        self.position = position
        if position is not None:
            message = f"{message} at position {position} in \"{expression}\""
        super().__init__(message)


class ExecutionFailure(MicrobenchError, RuntimeError):
    """
    Raised when a benchmarked method or one of its hooks fails.

    The original exception is chained as ``__cause__``. ``suite`` holds the
    results recorded before the failure.
    """

    def __init__(
        self,
        benchmark: str,
        subject: Optional[str],
        method: str,
        variant_index: Optional[int] = None,
        iteration_index: Optional[int] = None,
        suite: Any = None,
        error: Optional[BaseException] = None,
    ):
        self.benchmark = benchmark
        self.subject = subject
        self.method = method
        self.variant_index = variant_index
        self.iteration_index = iteration_index
        self.suite = suite
        self.error = error

        location = f"{benchmark}::{method}"
        if subject is not None and subject != method:
            location += f" (subject {subject})"
        if variant_index is not None:
            location += f", parameter set #{variant_index}"
        if iteration_index is not None:
            location += f", iteration #{iteration_index}"
        reason = f"{type(error).__name__}: {error}" if error is not None else "unknown error"
        super().__init__(f"Benchmark failed in {location}: {reason}")
