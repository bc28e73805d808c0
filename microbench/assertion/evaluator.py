"""
Evaluator: reduces an assertion AST against a measurement.

A measurement is any mapping from property name (see ``properties``) to
value. Time properties and ``TimeValue`` literals are compared in
microseconds.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from microbench.core.exceptions import ExpressionError

from .ast import And, Comparison, Node, Not, Or, PropertyAccess, ScalarValue, TimeValue
from .checker import check_comparison
from .properties import get_property
from .visitor import NodeVisitor


@dataclass(frozen=True)
class Quantity:
    value: Any
    is_time: bool = False


def compare(actual: Any, operator: str, expected: Any) -> bool:
    """Apply a comparison operator, NULL-safe and existential over sequences"""
    if isinstance(actual, (list, tuple)):
        return any(compare(item, operator, expected) for item in actual)
    if isinstance(expected, (list, tuple)):
        return any(compare(actual, operator, item) for item in expected)
    # NULL never matches, as in SQL
    if actual is None or expected is None:
        return False
    try:
        if operator in ("=", "=="):
            return actual == expected
        if operator == "!=":
            return actual != expected
        if operator == "<":
            return actual < expected
        if operator == "<=":
            return actual <= expected
        if operator == ">":
            return actual > expected
        if operator == ">=":
            return actual >= expected
    except TypeError as e:
        raise ExpressionError(f"Cannot compare {actual!r} {operator} {expected!r}: {e}")
    raise ExpressionError(f"Unknown operator: {operator}")


class Evaluator(NodeVisitor):
    """Evaluate constraint nodes to ``bool`` and value nodes to numbers/strings"""

    def __init__(self, measurement: Optional[Mapping[str, Any]] = None):
        self.measurement: Mapping[str, Any] = measurement or {}

    def evaluate(self, node: Node, measurement: Optional[Mapping[str, Any]] = None) -> Any:
        previous = self.measurement
        if measurement is not None:
            self.measurement = measurement
        try:
            result = self.visit(node)
        finally:
            self.measurement = previous
        return result.value if isinstance(result, Quantity) else result

    def visit_ScalarValue(self, node: ScalarValue) -> Quantity:
        return Quantity(node.value)

    def visit_TimeValue(self, node: TimeValue) -> Quantity:
        return Quantity(node.to_microseconds(), is_time=True)

    def visit_PropertyAccess(self, node: PropertyAccess) -> Quantity:
        prop = get_property(node.name)
        if node.name not in self.measurement:
            raise ExpressionError(f'Property "{node.name}" is not available in this measurement')
        return Quantity(self.measurement[node.name], is_time=prop.is_time)

    def visit_Comparison(self, node: Comparison) -> bool:
        check_comparison(node)
        left = self.visit(node.left)
        right = self.visit(node.right)
        return compare(left.value, node.operator, right.value)

    def visit_And(self, node: And) -> bool:
        return self._truth(node.left) and self._truth(node.right)

    def visit_Or(self, node: Or) -> bool:
        return self._truth(node.left) or self._truth(node.right)

    def visit_Not(self, node: Not) -> bool:
        return not self._truth(node.operand)

    def _truth(self, node: Node) -> bool:
        result = self.visit(node)
        if isinstance(result, Quantity):
            return bool(result.value)
        return bool(result)


def evaluate(node: Node, measurement: Mapping[str, Any]) -> Any:
    return Evaluator().evaluate(node, measurement)
