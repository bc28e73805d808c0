"""
Declaration decorators and the driver that reads them.

Benchmark classes describe themselves with decorators::

    @groups("strings")
    @before_class_methods("set_up_class")
    class JoinBench:
        @staticmethod
        def set_up_class():
            ...

        def provide_sizes(self):
            return [{"size": 10}, {"size": 1000}]

        @iterations(5)
        @param_providers("provide_sizes")
        @assertion("mean < 2 ms")
        def bench_join(self, iteration):
            "".join("x" for _ in range(iteration.parameters["size"]))

Class-level declarations are defaults for every subject; subject-level
declarations override them, except ``groups`` and ``assertions`` which add up.
"""
from __future__ import annotations
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError
from .models import BenchmarkMetadata, SubjectMetadata
from .reflection import DECLARATION_ATTR, DEFAULT_SUBJECT_PREFIX, ReflectedClass, unwrap, is_subject

logger = logging.getLogger(__name__)

CLASS_ONLY_KEYS = ("before_class_methods", "after_class_methods")
ADDITIVE_KEYS = ("groups", "assertions")


def _declarations(target: Any) -> Dict[str, Any]:
    func = unwrap(target)
    if inspect.isclass(func):
        # never write into a dict inherited from a base class
        decl = func.__dict__.get(DECLARATION_ATTR)
        if decl is None:
            decl = {}
            setattr(func, DECLARATION_ATTR, decl)
        return decl
    decl = getattr(func, DECLARATION_ATTR, None)
    if decl is None:
        decl = {}
        setattr(func, DECLARATION_ATTR, decl)
    return decl


def _declare(key: str, value: Any, append: bool = False, class_only: bool = False) -> Callable:
    def decorator(target):
        if class_only and not inspect.isclass(target):
            raise TypeError(f"@{key} can only decorate a class")
        decl = _declarations(target)
        if append:
            decl.setdefault(key, [])
            decl[key] = list(decl[key]) + list(value)
        else:
            decl[key] = value
        return target
    return decorator


def subject(func: Optional[Callable] = None, *, description: Optional[str] = None):
    """Mark a method as a subject regardless of its name."""
    def decorator(target):
        decl = _declarations(target)
        decl["subject"] = True
        if description is not None:
            decl["description"] = description
        return target
    if func is not None:
        return decorator(func)
    return decorator


def skip(target):
    return _declare("skip", True)(target)


def iterations(count: int):
    if not isinstance(count, int) or isinstance(count, bool) or count < 1:
        raise ValueError(f"Iteration count must be a positive integer, got {count!r}")
    return _declare("iterations", count)


def groups(*names: str):
    return _declare("groups", names, append=True)


def before_methods(*names: str):
    return _declare("before_methods", list(names))


def after_methods(*names: str):
    return _declare("after_methods", list(names))


def param_providers(*names: str):
    return _declare("param_providers", list(names))


def assertion(expression: str):
    return _declare("assertions", [expression], append=True)


def before_class_methods(*names: str):
    return _declare("before_class_methods", list(names), class_only=True)


def after_class_methods(*names: str):
    return _declare("after_class_methods", list(names), class_only=True)


class AttributeDriver:
    """Build unvalidated ``BenchmarkMetadata`` from reflected declarations."""

    def __init__(self, default_iterations: int = 1, subject_prefix: str = DEFAULT_SUBJECT_PREFIX):
        self.default_iterations = default_iterations
        self.subject_prefix = subject_prefix

    def get_metadata_for_class(self, reflected: ReflectedClass) -> BenchmarkMetadata:
        class_decl = reflected.metadata
        subjects: List[SubjectMetadata] = []

        for name, method in reflected.methods.items():
            if not is_subject(name, method, self.subject_prefix):
                continue
            subjects.append(self._build_subject(reflected, name, method.metadata, method.docstring))

        try:
            return BenchmarkMetadata(
                class_name=reflected.name,
                path=reflected.path,
                benchmark_class=reflected.target,
                subjects=subjects,
                before_class_methods=class_decl.get("before_class_methods", []),
                after_class_methods=class_decl.get("after_class_methods", []),
            )
        except PydanticValidationError as e:
            raise ValidationError(f'Invalid benchmark class "{reflected.name}": {e}') from e

    def _build_subject(
        self,
        reflected: ReflectedClass,
        name: str,
        decl: Dict[str, Any],
        docstring: Optional[str],
    ) -> SubjectMetadata:
        class_decl = reflected.metadata
        values: Dict[str, Any] = {
            "name": name,
            "iterations": self.default_iterations,
        }
        for key, value in class_decl.items():
            if key in CLASS_ONLY_KEYS or key == "subject":
                continue
            values[key] = list(value) if isinstance(value, (list, tuple)) else value
        for key, value in decl.items():
            if key == "subject":
                continue
            if key in ADDITIVE_KEYS:
                values[key] = list(values.get(key, [])) + list(value)
            else:
                values[key] = list(value) if isinstance(value, (list, tuple)) else value

        if not values.get("description") and docstring:
            values["description"] = docstring.splitlines()[0]

        try:
            return SubjectMetadata(**values)
        except PydanticValidationError as e:
            raise ValidationError(
                f'Invalid subject "{name}" in benchmark class "{reflected.name}": {e}'
            ) from e
