from __future__ import annotations
from typing import Any

from .ast import Node


class NodeVisitor:
    """
    Dispatches a node to ``visit_<ClassName>``.

    Each concrete visitor must handle every node class; a node without a
    matching method ends up in ``generic_visit`` which raises ``TypeError``.
    """

    def visit(self, node: Node) -> Any:
        method = getattr(self, "visit_" + type(node).__name__, None)
        if method is None:
            return self.generic_visit(node)
        return method(node)

    def generic_visit(self, node: Node) -> Any:
        raise TypeError(f"{type(self).__name__} cannot visit node of type {type(node).__name__}")
