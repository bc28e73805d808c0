"""
Microbench reflection layer

The metadata factory never inspects Python classes directly. It works on
``ReflectedClass`` descriptions produced by a ``Reflector`` and calls methods
through a ``MethodInvoker``. ``ModuleReflector`` and ``ReflectionInvoker`` are
the default implementations: they import the benchmark file and use
``inspect`` on the loaded class.
"""
from __future__ import annotations
import hashlib
import importlib.util
import inspect
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .exceptions import MicrobenchError

logger = logging.getLogger(__name__)

# attribute set by the declaration decorators in ``driver``
DECLARATION_ATTR = "__microbench__"
DEFAULT_SUBJECT_PREFIX = "bench"


class InvocationError(MicrobenchError):
    """A method could not be invoked through the reflection capability"""


@dataclass
class ReflectedMethod:
    name: str
    is_static: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)
    docstring: Optional[str] = None


@dataclass
class ReflectedClass:
    name: str
    path: Optional[str] = None
    is_abstract: bool = False
    methods: Dict[str, ReflectedMethod] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    target: Optional[type] = None

    def has_method(self, name: str) -> bool:
        return name in self.methods

    def get_method(self, name: str) -> ReflectedMethod:
        try:
            return self.methods[name]
        except KeyError:
            raise InvocationError(f'Method "{name}" does not exist on class "{self.name}"')


class Reflector(Protocol):
    def reflect_file(self, path: str | Path) -> Optional[ReflectedClass]:
        """Return the benchmark class defined in ``path``, or ``None``."""
        ...


class MethodInvoker(Protocol):
    def exists(self, reflected: ReflectedClass, method: str) -> bool:
        ...

    def is_static(self, reflected: ReflectedClass, method: str) -> bool:
        ...

    def invoke(self, reflected: ReflectedClass, method: str) -> Any:
        ...


def is_subject(name: str, method: ReflectedMethod, prefix: str = DEFAULT_SUBJECT_PREFIX) -> bool:
    if "subject" in method.metadata:
        return bool(method.metadata["subject"])
    return bool(prefix) and name.startswith(prefix) and not method.is_static


def unwrap(raw: Any) -> Any:
    if isinstance(raw, (staticmethod, classmethod)):
        return raw.__func__
    return raw


class ModuleReflector:
    """Load a Python file and reflect the benchmark class it defines."""

    def __init__(self, subject_prefix: str = DEFAULT_SUBJECT_PREFIX):
        self.subject_prefix = subject_prefix

    def reflect_file(self, path: str | Path) -> Optional[ReflectedClass]:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Benchmark file not found: {path}")
        module = self._load_module(path)

        candidates: List[ReflectedClass] = []
        for obj in vars(module).values():
            if not inspect.isclass(obj) or obj.__module__ != module.__name__:
                continue
            reflected = self.reflect_class(obj, str(path))
            if any(is_subject(n, m, self.subject_prefix) for n, m in reflected.methods.items()):
                candidates.append(reflected)

        if not candidates:
            logger.debug(f"No benchmark class found in {path}")
            return None
        if len(candidates) > 1:
            logger.debug(
                f"{path} defines {len(candidates)} benchmark classes, using the last one: {candidates[-1].name}"
            )
        return candidates[-1]

    def reflect_class(self, cls: type, path: Optional[str] = None) -> ReflectedClass:
        methods: Dict[str, ReflectedMethod] = {}
        metadata: Dict[str, Any] = {}
        # walk the MRO base-first so subclasses override
        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            metadata.update(klass.__dict__.get(DECLARATION_ATTR, {}))
            for name, raw in vars(klass).items():
                if name.startswith("__"):
                    continue
                func = unwrap(raw)
                if not callable(func) or inspect.isclass(func):
                    continue
                methods[name] = ReflectedMethod(
                    name=name,
                    is_static=isinstance(raw, (staticmethod, classmethod)),
                    metadata=dict(getattr(func, DECLARATION_ATTR, {})),
                    docstring=inspect.getdoc(func),
                )

        return ReflectedClass(
            name=cls.__name__,
            path=path,
            is_abstract=inspect.isabstract(cls),
            methods=methods,
            metadata=metadata,
            target=cls,
        )

    def _load_module(self, path: Path):
        resolved = path.resolve()
        digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:10]
        module_name = f"_microbench_{resolved.stem}_{digest}"
        if module_name in sys.modules:
            return sys.modules[module_name]

        spec = importlib.util.spec_from_file_location(module_name, resolved)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load benchmark file: {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise
        return module


class ReflectionInvoker:
    """``MethodInvoker`` backed by the class object held in ``ReflectedClass.target``."""

    def exists(self, reflected: ReflectedClass, method: str) -> bool:
        return reflected.has_method(method)

    def is_static(self, reflected: ReflectedClass, method: str) -> bool:
        return reflected.get_method(method).is_static

    def invoke(self, reflected: ReflectedClass, method: str) -> Any:
        if reflected.target is None:
            raise InvocationError(f'Class "{reflected.name}" is not loaded, cannot invoke "{method}"')
        if not self.exists(reflected, method):
            raise InvocationError(f'Method "{method}" does not exist on class "{reflected.name}"')
        try:
            if self.is_static(reflected, method):
                return getattr(reflected.target, method)()
            return getattr(reflected.target(), method)()
        except Exception as e:
            raise InvocationError(f'Invoking "{reflected.name}::{method}" failed: {e}') from e
