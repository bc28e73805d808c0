"""
Assertion expression AST

Constraint nodes (``Comparison``, ``And``, ``Or``, ``Not``) combine value
nodes (``ScalarValue``, ``TimeValue``, ``PropertyAccess``). Nodes are frozen
dataclasses and are consumed by the visitors in ``evaluator`` and ``query``.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Union

from .time_unit import TimeUnit

Scalar = Union[str, int, float, bool]

OPERATORS = ("<", "<=", "=", "==", "!=", ">", ">=")


class Node:
    """Base class of every expression node"""


class Value(Node):
    """Base class of value nodes"""


class Constraint(Node):
    """Base class of boolean nodes"""


@dataclass(frozen=True)
class ScalarValue(Value):
    value: Scalar


@dataclass(frozen=True)
class TimeValue(Value):
    value: float
    unit: TimeUnit = TimeUnit.MICROSECONDS

    def __post_init__(self):
        # raises InvalidTimeUnit for anything outside the enumeration
        object.__setattr__(self, "unit", TimeUnit.resolve(self.unit))
        object.__setattr__(self, "value", float(self.value))

    @classmethod
    def from_microseconds(cls, value: float) -> "TimeValue":
        return cls(value, TimeUnit.MICROSECONDS)

    def to_microseconds(self) -> float:
        return self.unit.to_microseconds(self.value)


@dataclass(frozen=True)
class PropertyAccess(Value):
    name: str


@dataclass(frozen=True)
class Comparison(Constraint):
    left: Value
    operator: str
    right: Value

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise ValueError(f"Unknown comparison operator: {self.operator}")


@dataclass(frozen=True)
class And(Constraint):
    left: Node
    right: Node


@dataclass(frozen=True)
class Or(Constraint):
    left: Node
    right: Node


@dataclass(frozen=True)
class Not(Constraint):
    operand: Node


__all__ = [
    "Node",
    "Value",
    "Constraint",
    "ScalarValue",
    "TimeValue",
    "PropertyAccess",
    "Comparison",
    "And",
    "Or",
    "Not",
    "OPERATORS",
    "Scalar",
]
