# Benchmark metadata models
from __future__ import annotations
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union
from pydantic import BaseModel, Field, RootModel, field_serializer, field_validator, model_validator

Scalar = Union[bool, int, float, str]
SCALAR_TYPES = (bool, int, float, str)


class ParameterSet(RootModel):
    """Ordered mapping of parameter name to scalar value. Immutable."""
    model_config = {"frozen": True}

    root: Mapping[str, Scalar] = Field(default_factory=dict)

    @field_validator("root", mode="after")
    @classmethod
    def _read_only(cls, v):
        return MappingProxyType(dict(v))

    @field_serializer("root")
    def _dump_root(self, v):
        return dict(v)

    def __len__(self):
        return len(self.root)

    def __getitem__(self, key):
        return self.root[key]

    def __contains__(self, key):
        return key in self.root

    def keys(self):
        return self.root.keys()

    def items(self):
        return self.root.items()

    def as_dict(self) -> Dict[str, Scalar]:
        return dict(self.root)

    @classmethod
    def merge(cls, sets: List["ParameterSet"]) -> "ParameterSet":
        merged: Dict[str, Scalar] = {}
        for parameter_set in sets:
            merged.update(parameter_set.root)
        return cls(merged)


class SubjectMetadata(BaseModel):
    """One benchmarked method"""
    model_config = {"arbitrary_types_allowed": True}

    name: str
    iterations: int = Field(default=1, ge=1)
    param_providers: List[str] = Field(default_factory=list)
    before_methods: List[str] = Field(default_factory=list)
    after_methods: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    groups: List[str] = Field(default_factory=list)
    assertions: List[str] = Field(default_factory=list)
    skip: bool = False

    # filled by the metadata factory
    constraints: List[Any] = Field(default_factory=list, exclude=True)
    parameter_sets: Optional[List[List[ParameterSet]]] = None

    @field_validator("groups", "before_methods", "after_methods", "param_providers")
    @classmethod
    def _unique(cls, v):
        seen = []
        for item in v:
            if item not in seen:
                seen.append(item)
        return seen

    def set_parameter_sets(self, parameter_sets: List[List[Any]]) -> None:
        """Attach the resolved provider output; allowed once per subject."""
        if self.parameter_sets is not None:
            raise RuntimeError(f'Parameter sets for subject "{self.name}" have already been resolved')
        self.parameter_sets = [
            [ps if isinstance(ps, ParameterSet) else ParameterSet(ps) for ps in provider_sets]
            for provider_sets in parameter_sets
        ]

    @property
    def is_resolved(self) -> bool:
        return self.parameter_sets is not None

    def in_groups(self, groups: List[str]) -> bool:
        return bool(set(groups) & set(self.groups))


class BenchmarkMetadata(BaseModel):
    """A benchmark class and its subjects"""
    model_config = {"arbitrary_types_allowed": True}

    class_name: str
    path: Optional[str] = None
    benchmark_class: Optional[Any] = Field(default=None, exclude=True)
    subjects: List[SubjectMetadata] = Field(default_factory=list)
    before_class_methods: List[str] = Field(default_factory=list)
    after_class_methods: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_subjects(self):
        names = [s.name for s in self.subjects]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate subjects in benchmark {self.class_name}: {', '.join(duplicates)}")
        return self

    def get_subject(self, name: str) -> Optional[SubjectMetadata]:
        for subject in self.subjects:
            if subject.name == name:
                return subject
        return None

    def iter_subjects(self, include_skipped: bool = False) -> Iterator[SubjectMetadata]:
        for subject in self.subjects:
            if subject.skip and not include_skipped:
                continue
            yield subject

    def has_subjects(self) -> bool:
        return any(True for _ in self.iter_subjects())
