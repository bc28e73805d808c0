"""
Query translator: lowers an assertion AST into a SQL predicate.

The translator never executes anything. It returns a predicate template and
the ordered list of values bound to its placeholders (one per literal value
node, left to right). Time literals are bound in microseconds. Comparisons on
nullable columns are guarded with ``IS NOT NULL`` and the ``group`` property
becomes an ``EXISTS`` sub-query, so the predicate selects exactly the rows for
which ``Evaluator`` returns ``True``.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Tuple

from microbench.core.exceptions import ExpressionError

from .ast import And, Comparison, Node, Not, Or, PropertyAccess, ScalarValue, TimeValue
from .checker import check_comparison
from .properties import get_property
from .visitor import NodeVisitor

GROUP_EXISTS = (
    "EXISTS (SELECT 1 FROM sgroup_subject"
    " JOIN sgroup ON sgroup.id = sgroup_subject.sgroup_id"
    " WHERE sgroup_subject.subject_id = subject.id AND {comparison})"
)

SQL_OPERATORS = {
    "<": "<",
    "<=": "<=",
    "=": "=",
    "==": "=",
    "!=": "!=",
    ">": ">",
    ">=": ">=",
}


@dataclass
class Fragment:
    sql: str
    values: List[Any] = field(default_factory=list)
    is_time: bool = False
    column: str | None = None
    is_group: bool = False


class QueryTranslator(NodeVisitor):
    def __init__(self, placeholder: str = "?"):
        self.placeholder = placeholder

    def translate(self, node: Node) -> Tuple[str, List[Any]]:
        if isinstance(node, (PropertyAccess, ScalarValue, TimeValue)):
            raise ExpressionError("A query predicate must be a constraint, got a bare value")
        fragment = self.visit(node)
        return fragment.sql, list(fragment.values)

    def visit_ScalarValue(self, node: ScalarValue) -> Fragment:
        return Fragment(self.placeholder, [node.value])

    def visit_TimeValue(self, node: TimeValue) -> Fragment:
        return Fragment(self.placeholder, [node.to_microseconds()], is_time=True)

    def visit_PropertyAccess(self, node: PropertyAccess) -> Fragment:
        prop = get_property(node.name)
        if prop.column is None:
            raise ExpressionError(f'Property "{node.name}" cannot be used in a query')
        return Fragment(
            prop.column,
            is_time=prop.is_time,
            column=prop.column,
            is_group=node.name == "group",
        )

    def visit_Comparison(self, node: Comparison) -> Fragment:
        check_comparison(node)
        left = self.visit(node.left)
        right = self.visit(node.right)

        sql = f"{left.sql} {SQL_OPERATORS[node.operator]} {right.sql}"
        guards = [f"{f.column} IS NOT NULL" for f in (left, right) if f.column and not f.is_group]
        if guards:
            sql = " AND ".join(guards + [sql])
        if left.is_group or right.is_group:
            sql = GROUP_EXISTS.format(comparison=sql)
        else:
            sql = f"({sql})"
        return Fragment(sql, left.values + right.values)

    def visit_And(self, node: And) -> Fragment:
        return self._binary("AND", node.left, node.right)

    def visit_Or(self, node: Or) -> Fragment:
        return self._binary("OR", node.left, node.right)

    def visit_Not(self, node: Not) -> Fragment:
        operand = self.visit(node.operand)
        return Fragment(f"NOT {operand.sql}", operand.values)

    def _binary(self, keyword: str, left_node: Node, right_node: Node) -> Fragment:
        left = self.visit(left_node)
        right = self.visit(right_node)
        return Fragment(f"({left.sql} {keyword} {right.sql})", left.values + right.values)


def translate(node: Node, placeholder: str = "?") -> Tuple[str, List[Any]]:
    return QueryTranslator(placeholder).translate(node)
