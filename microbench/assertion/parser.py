"""
Parser for assertion expressions.

Grammar::

    expression := or
    or         := and ("or" and)*
    and        := not ("and" not)*
    not        := "not" not | primary
    primary    := "(" expression ")" | value OPERATOR value
    value      := NUMBER [UNIT] | STRING | "true" | "false" | PROPERTY

Examples: ``mean < 10 ms``, ``mem_peak <= 1024 and not (subject = "benchFoo")``.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import List, Optional

from microbench.core.exceptions import ExpressionError, ExpressionSyntaxError

from .ast import And, Comparison, Node, Not, Or, PropertyAccess, ScalarValue, TimeValue, Value
from .properties import get_property

TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
  | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
  | (?P<op><=|>=|==|!=|<|>|=)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<ident>[A-Za-z_μ][A-Za-z0-9_μ]*)
    """,
    re.VERBOSE,
)

KEYWORDS = {"and", "or", "not", "true", "false"}


@dataclass
class Token:
    kind: str
    text: str
    position: int


def tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    position = 0
    while position < len(expression):
        match = TOKEN_RE.match(expression, position)
        if match is None:
            raise ExpressionSyntaxError(
                f"Unexpected character {expression[position]!r}", expression, position
            )
        kind = match.lastgroup
        if kind != "ws":
            tokens.append(Token(kind, match.group(), position))
        position = match.end()
    return tokens


class Parser:
    def __init__(self, expression: str):
        self.expression = expression
        self.tokens = tokenize(expression)
        self.index = 0

    def parse(self) -> Node:
        if not self.tokens:
            raise ExpressionSyntaxError("Empty expression", self.expression, 0)
        node = self._parse_or()
        token = self._peek()
        if token is not None:
            self._error(f"Unexpected {token.text!r}", token)
        return node

    # ---------- grammar ----------
    def _parse_or(self) -> Node:
        node = self._parse_and()
        while self._accept_keyword("or"):
            node = Or(node, self._parse_and())
        return node

    def _parse_and(self) -> Node:
        node = self._parse_not()
        while self._accept_keyword("and"):
            node = And(node, self._parse_not())
        return node

    def _parse_not(self) -> Node:
        if self._accept_keyword("not"):
            return Not(self._parse_not())
        return self._parse_primary()

    def _parse_primary(self) -> Node:
        token = self._peek()
        if token is not None and token.kind == "lparen":
            self.index += 1
            node = self._parse_or()
            self._expect("rparen", "')'")
            return node
        left = self._parse_value()
        operator = self._expect("op", "comparison operator")
        right = self._parse_value()
        return Comparison(left, operator.text, right)

    def _parse_value(self) -> Value:
        token = self._peek()
        if token is None:
            raise ExpressionSyntaxError("Unexpected end of expression", self.expression, len(self.expression))
        self.index += 1

        if token.kind == "number":
            number = float(token.text) if any(c in token.text for c in ".eE") else int(token.text)
            unit = self._peek()
            if unit is not None and unit.kind == "ident" and unit.text.lower() not in KEYWORDS:
                self.index += 1
                return TimeValue(number, unit.text)
            return ScalarValue(number)

        if token.kind == "string":
            body = token.text[1:-1]
            return ScalarValue(re.sub(r"\\(.)", r"\1", body))

        if token.kind == "ident":
            lowered = token.text.lower()
            if lowered in ("true", "false"):
                return ScalarValue(lowered == "true")
            if lowered in KEYWORDS:
                self._error(f"Unexpected keyword {token.text!r}", token)
            try:
                get_property(token.text)
            except ExpressionError as e:
                self._error(str(e), token)
            return PropertyAccess(token.text)

        self._error(f"Expected a value, got {token.text!r}", token)

    # ---------- helpers ----------
    def _peek(self) -> Optional[Token]:
        if self.index < len(self.tokens):
            return self.tokens[self.index]
        return None

    def _accept_keyword(self, keyword: str) -> bool:
        token = self._peek()
        if token is not None and token.kind == "ident" and token.text.lower() == keyword:
            self.index += 1
            return True
        return False

    def _expect(self, kind: str, label: str) -> Token:
        token = self._peek()
        if token is None:
            raise ExpressionSyntaxError(f"Expected {label}, reached end of expression", self.expression, len(self.expression))
        if token.kind != kind:
            self._error(f"Expected {label}, got {token.text!r}", token)
        self.index += 1
        return token

    def _error(self, message: str, token: Token):
        raise ExpressionSyntaxError(message, self.expression, token.position)


def parse(expression: str) -> Node:
    """Parse an assertion expression into an AST"""
    return Parser(expression).parse()
