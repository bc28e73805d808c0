"""
Microbench: a micro-benchmark runner

Discovers benchmark classes, runs their subjects over parameter sweeps and
iterations, checks assertions on the measurements and keeps a history of
runs in SQLite.
"""

__version__ = "0.1.0"

# Public API re-exports from subpackages
from .core.exceptions import (
    MicrobenchError,
    InvalidArgumentError,
    ValidationError,
    ParameterShapeError,
    ExpressionError,
    ExecutionFailure,
)
from .core.config import (
    RunnerConfig,
    DatabaseConfig,
    MicrobenchConfig,
)
from .assertion import Evaluator, QueryTranslator, TimeUnit, parse
from .core.driver import (
    subject,
    skip,
    iterations,
    groups,
    before_methods,
    after_methods,
    param_providers,
    assertion,
    before_class_methods,
    after_class_methods,
)
from .core.models import ParameterSet, SubjectMetadata, BenchmarkMetadata
from .core.factory import MetadataFactory
from .core.runner import Runner, IterationContext
from .core.results import SuiteResult
from .core.engine import BenchEngine
from .adapters.sqlite_adapter import SQLiteStorage
from .adapters.base import StorageResult, BaseStorage
