"""Assertion subpackage: expression AST, parser, evaluator and query translator."""

from .ast import And, Comparison, Node, Not, Or, PropertyAccess, ScalarValue, TimeValue
from .checker import TypeChecker, check
from .evaluator import Evaluator, evaluate
from .parser import parse
from .properties import PROPERTIES, Property
from .query import QueryTranslator, translate
from .time_unit import TimeUnit

__all__ = [
    "And",
    "Comparison",
    "Node",
    "Not",
    "Or",
    "PropertyAccess",
    "ScalarValue",
    "TimeValue",
    "TypeChecker",
    "check",
    "Evaluator",
    "evaluate",
    "parse",
    "PROPERTIES",
    "Property",
    "QueryTranslator",
    "translate",
    "TimeUnit",
]
