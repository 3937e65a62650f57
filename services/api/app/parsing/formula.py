"""
Arithmetic formula parser for catalog conversion formulas.

Formulas are single-variable expressions such as ``value * 9/5 + 32``.
Supported grammar:

    expr   := term (('+' | '-') term)*
    term   := unary (('*' | '/') unary)*
    unary  := ('+' | '-') unary | atom
    atom   := NUMBER | 'value' | '(' expr ')'

Anything else (other identifiers, operators, stray characters) is rejected
with FormulaSyntaxError, as are formulas longer than MAX_TOKENS tokens or
nested deeper than MAX_NESTING. Evaluation is pure float arithmetic.
"""

import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Tuple, Union

VARIABLE_NAME = "value"

# Catalog formulas are short; these bound parser and evaluator recursion.
MAX_TOKENS = 256
MAX_NESTING = 32

# number | identifier | operator/paren | whitespace | anything else
TOKEN_REGEX = re.compile(
    r"""
    (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>[-+*/()])
    |(?P<space>\s+)
    |(?P<other>.)
    """,
    re.VERBOSE,
)


class FormulaSyntaxError(ValueError):
    """Raised when a formula is not pure arithmetic over ``value``."""


class FormulaEvaluationError(ArithmeticError):
    """Raised when a well-formed formula cannot produce a finite number."""


# --- AST ---

@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    pass


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


Node = Union[Number, Variable, UnaryOp, BinaryOp]
Token = Tuple[str, str]


def tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    for match in TOKEN_REGEX.finditer(expression):
        kind = match.lastgroup
        text = match.group()
        if kind == "space":
            continue
        if kind == "other":
            raise FormulaSyntaxError(f"Unexpected character {text!r} at position {match.start()}")
        if kind == "name" and text != VARIABLE_NAME:
            raise FormulaSyntaxError(f"Unknown identifier {text!r}; only '{VARIABLE_NAME}' is allowed")
        tokens.append((kind, text))
        if len(tokens) > MAX_TOKENS:
            raise FormulaSyntaxError(f"Formula too long; at most {MAX_TOKENS} tokens are allowed")
    return tokens


class _Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def _peek(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return ("end", "")

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise FormulaSyntaxError("Formula nested too deeply")

    def _advance(self) -> Token:
        token = self._peek()
        self.pos += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaSyntaxError("Empty formula")
        node = self._expr()
        kind, text = self._peek()
        if kind != "end":
            raise FormulaSyntaxError(f"Unexpected token {text!r}")
        return node

    def _expr(self) -> Node:
        node = self._term()
        while self._peek() in (("op", "+"), ("op", "-")):
            _, op = self._advance()
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._unary()
        while self._peek() in (("op", "*"), ("op", "/")):
            _, op = self._advance()
            node = BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> Node:
        if self._peek() in (("op", "+"), ("op", "-")):
            _, op = self._advance()
            self._enter()
            node = UnaryOp(op, self._unary())
            self.depth -= 1
            return node
        return self._atom()

    def _atom(self) -> Node:
        kind, text = self._advance()
        if kind == "number":
            return Number(float(text))
        if kind == "name":
            return Variable()
        if (kind, text) == ("op", "("):
            self._enter()
            node = self._expr()
            if self._advance() != ("op", ")"):
                raise FormulaSyntaxError("Missing closing parenthesis")
            self.depth -= 1
            return node
        if kind == "end":
            raise FormulaSyntaxError("Unexpected end of formula")
        raise FormulaSyntaxError(f"Unexpected token {text!r}")


def _evaluate(node: Node, value: float) -> float:
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Variable):
        return value
    if isinstance(node, UnaryOp):
        operand = _evaluate(node.operand, value)
        return -operand if node.op == "-" else operand

    left = _evaluate(node.left, value)
    right = _evaluate(node.right, value)
    if node.op == "+":
        return left + right
    if node.op == "-":
        return left - right
    if node.op == "*":
        return left * right
    if right == 0:
        raise FormulaEvaluationError("Division by zero")
    return left / right


@dataclass(frozen=True)
class Formula:
    source: str
    root: Node

    def evaluate(self, value: float) -> float:
        """Substitute ``value`` and compute the result."""
        result = _evaluate(self.root, float(value))
        if not math.isfinite(result):
            raise FormulaEvaluationError(f"Formula {self.source!r} produced a non-finite result")
        return result


@lru_cache(maxsize=512)
def parse_formula(expression: str) -> Formula:
    """Parse a formula string. Results are cached; formulas are immutable."""
    if not isinstance(expression, str):
        raise FormulaSyntaxError("Formula must be a string")
    return Formula(source=expression, root=_Parser(tokenize(expression)).parse())
