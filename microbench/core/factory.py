"""
Microbench metadata factory

Turns a reflected benchmark class into validated ``BenchmarkMetadata``. The
build has two phases: the driver produces the structural metadata, then the
factory validates hooks and resolves every parameter provider exactly once.
"""
from __future__ import annotations
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, List, Optional

from microbench.assertion.checker import check
from microbench.assertion.parser import parse
from .driver import AttributeDriver
from .exceptions import ExpressionError, ParameterShapeError, ValidationError
from .models import SCALAR_TYPES, BenchmarkMetadata, SubjectMetadata
from .reflection import InvocationError, MethodInvoker, ModuleReflector, ReflectedClass, ReflectionInvoker, Reflector

logger = logging.getLogger("microbench.factory")


def type_name(value: Any) -> str:
    """Type name used in parameter error messages"""
    if value is None:
        return "NULL"
    return type(value).__name__


class MetadataFactory:
    def __init__(
        self,
        reflector: Optional[Reflector] = None,
        driver: Optional[AttributeDriver] = None,
        invoker: Optional[MethodInvoker] = None,
    ):
        self.reflector = reflector or ModuleReflector()
        self.driver = driver or AttributeDriver()
        self.invoker = invoker or ReflectionInvoker()

    def get_metadata_for_file(self, path: str | Path) -> Optional[BenchmarkMetadata]:
        """Reflect ``path`` and build its metadata; ``None`` when it holds no benchmark."""
        reflected = self.reflector.reflect_file(path)
        return self.build_from_reflected_class(reflected)

    def build_from_reflected_class(self, reflected: Optional[ReflectedClass]) -> Optional[BenchmarkMetadata]:
        if reflected is None:
            return None
        if reflected.is_abstract:
            logger.debug(f"Skipping abstract benchmark class {reflected.name}")
            return None

        metadata = self.driver.get_metadata_for_class(reflected)

        self._validate_benchmark(reflected, metadata)
        for subject in metadata.subjects:
            self._validate_subject(reflected, subject)
            subject.set_parameter_sets(self._get_parameter_sets(reflected, metadata, subject))
            subject.constraints = self._parse_assertions(reflected, subject)

        logger.debug(f"Built metadata for {reflected.name} with {len(metadata.subjects)} subject(s)")
        return metadata

    # ---------- validation ----------
    def _validate_benchmark(self, reflected: ReflectedClass, metadata: BenchmarkMetadata) -> None:
        for name in metadata.before_class_methods:
            self._validate_method_exists("before class", reflected, name, is_static=True)
        for name in metadata.after_class_methods:
            self._validate_method_exists("after class", reflected, name, is_static=True)

    def _validate_subject(self, reflected: ReflectedClass, subject: SubjectMetadata) -> None:
        for name in subject.before_methods:
            self._validate_method_exists("before", reflected, name, is_static=False)
        for name in subject.after_methods:
            self._validate_method_exists("after", reflected, name, is_static=False)

    def _validate_method_exists(self, context: str, reflected: ReflectedClass, name: str, is_static: bool) -> None:
        if not self._exists(reflected, name):
            raise ValidationError(
                f'Unknown {context} method "{name}" in benchmark class "{reflected.name}"'
            )
        if self.invoker.is_static(reflected, name) != is_static:
            raise ValidationError(
                f'{context} method "{name}" must {"be" if is_static else "not be"} static '
                f'in benchmark class "{reflected.name}"'
            )

    def _exists(self, reflected: ReflectedClass, name: str) -> bool:
        try:
            return bool(self.invoker.exists(reflected, name))
        except InvocationError:
            return False

    # ---------- parameters ----------
    def _get_parameter_sets(
        self,
        reflected: ReflectedClass,
        metadata: BenchmarkMetadata,
        subject: SubjectMetadata,
    ) -> List[List[dict]]:
        parameter_sets: List[List[dict]] = []
        for provider in subject.param_providers:
            if not self._exists(reflected, provider):
                raise ValidationError(
                    f'Unknown parameter provider method "{provider}" in benchmark class "{reflected.name}"'
                )
            try:
                raw = self.invoker.invoke(reflected, provider)
            except InvocationError as e:
                raise ValidationError(
                    f'Unknown parameter provider method "{provider}" in benchmark class "{reflected.name}"'
                ) from e
            parameter_sets.append(self._validate_parameter_sets(raw, metadata.class_name, subject.name))
        return parameter_sets

    def _validate_parameter_sets(self, raw: Any, benchmark: str, method: str) -> List[dict]:
        if isinstance(raw, tuple):
            raw = list(raw)
        if not isinstance(raw, list):
            raise ParameterShapeError(
                f'Each parameter set must be a list, got "{type_name(raw)}" for {benchmark}::{method}'
            )

        validated: List[dict] = []
        for parameter_set in raw:
            if not isinstance(parameter_set, Mapping):
                raise ParameterShapeError(
                    f'Each parameter group must be a dict, got "{type_name(parameter_set)}" '
                    f"for {benchmark}::{method}"
                )
            for key, value in parameter_set.items():
                if not isinstance(key, str):
                    raise ParameterShapeError(
                        f'Parameter names must be strings, got "{type_name(key)}" in {benchmark}:{method}'
                    )
                if not isinstance(value, SCALAR_TYPES):
                    raise ParameterShapeError(
                        f'Only scalar values allowed as parameter values, got "{type_name(value)}" '
                        f"in {benchmark}:{method}"
                    )
            validated.append(dict(parameter_set))
        return validated

    def _parse_assertions(self, reflected: ReflectedClass, subject: SubjectMetadata) -> list:
        constraints = []
        for expression in subject.assertions:
            try:
                constraint = parse(expression)
                check(constraint)
                constraints.append(constraint)
            except ExpressionError as e:
                raise ValidationError(
                    f'Invalid assertion "{expression}" on subject "{subject.name}" '
                    f'in benchmark class "{reflected.name}": {e}'
                ) from e
        return constraints
