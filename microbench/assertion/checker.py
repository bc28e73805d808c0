"""
Static checks on assertion expressions.

Both sides of a comparison must agree on unit (time or plain) and on kind
(text or number). The evaluator and the query translator run the same
check on every comparison, and ``TypeChecker`` runs it over a whole tree
without a measurement so bad assertions fail when metadata is built.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from microbench.core.exceptions import ExpressionError, UnitMismatch

from .ast import And, Comparison, Node, Not, Or, PropertyAccess, ScalarValue, TimeValue
from .properties import NUMBER, TEXT, get_property
from .visitor import NodeVisitor


@dataclass(frozen=True)
class Operand:
    label: str
    kind: str
    is_time: bool = False


def describe(node: Node) -> str:
    if isinstance(node, PropertyAccess):
        return node.name
    if isinstance(node, TimeValue):
        return f"{node.value:g} {node.unit.value}"
    if isinstance(node, ScalarValue):
        return repr(node.value)
    return type(node).__name__


def operand(node: Node) -> Operand:
    if isinstance(node, PropertyAccess):
        prop = get_property(node.name)
        return Operand(node.name, prop.kind, prop.is_time)
    if isinstance(node, TimeValue):
        return Operand(describe(node), NUMBER, True)
    if isinstance(node, ScalarValue):
        # bools compare as 0/1 in Python and SQLite alike
        return Operand(describe(node), TEXT if isinstance(node.value, str) else NUMBER)
    raise ExpressionError(f"{type(node).__name__} cannot be compared, only values can")


def check_units(left: Tuple[bool, str], right: Tuple[bool, str]) -> None:
    """Raise ``UnitMismatch`` when a time quantity meets a plain scalar"""
    (left_time, left_label), (right_time, right_label) = left, right
    if left_time != right_time:
        raise UnitMismatch(
            f"Cannot compare {left_label} ({'time' if left_time else 'scalar'}) "
            f"with {right_label} ({'time' if right_time else 'scalar'})"
        )


def check_comparison(node: Comparison) -> None:
    left, right = operand(node.left), operand(node.right)
    check_units((left.is_time, left.label), (right.is_time, right.label))
    if left.kind != right.kind:
        raise ExpressionError(f"Cannot compare {left.label} ({left.kind}) with {right.label} ({right.kind})")


class TypeChecker(NodeVisitor):
    def check(self, node: Node) -> None:
        self.visit(node)

    def visit_Comparison(self, node: Comparison) -> None:
        check_comparison(node)

    def visit_And(self, node: And) -> None:
        self.visit(node.left)
        self.visit(node.right)

    def visit_Or(self, node: Or) -> None:
        self.visit(node.left)
        self.visit(node.right)

    def visit_Not(self, node: Not) -> None:
        self.visit(node.operand)

    def visit_PropertyAccess(self, node: PropertyAccess) -> None:
        get_property(node.name)

    def visit_ScalarValue(self, node: ScalarValue) -> None:
        pass

    def visit_TimeValue(self, node: TimeValue) -> None:
        pass


def check(node: Node) -> None:
    """Raise ``ExpressionError`` if any comparison in ``node`` mixes units or kinds"""
    TypeChecker().check(node)
