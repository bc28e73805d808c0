"""Core subpackage: models, config, validation and the execution pipeline.

Only leaf modules are re-exported here; the factory, runner and engine import
``microbench.assertion`` and are imported from their own modules.
"""

from .exceptions import (
    MicrobenchError,
    InvalidArgumentError,
    ValidationError,
    ParameterShapeError,
    ExpressionError,
    ExecutionFailure,
)
from .models import ParameterSet, SubjectMetadata, BenchmarkMetadata
from .validate import SuiteDocumentValidator, validate_document, ValidationResult
from .config import RunnerConfig, DatabaseConfig, MicrobenchConfig

__all__ = [
    "MicrobenchError",
    "InvalidArgumentError",
    "ValidationError",
    "ParameterShapeError",
    "ExpressionError",
    "ExecutionFailure",
    "ParameterSet",
    "SubjectMetadata",
    "BenchmarkMetadata",
    "SuiteDocumentValidator",
    "validate_document",
    "ValidationResult",
    "RunnerConfig",
    "DatabaseConfig",
    "MicrobenchConfig",
]
