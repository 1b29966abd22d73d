"""Closed-vocabulary arithmetic expressions for custom transforms.

Grammar (lowest to highest precedence):

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | power
    power   := primary (("^" | "**") unary)?
    primary := NUMBER | CONSTANT | VARIABLE | FUNC "(" expr ("," expr)* ")" | "(" expr ")"

Variables are ``x, min, max, mean, std``; constants ``PI, E``; functions
``sqrt log log10 log2 exp abs sin cos tan floor ceil round`` take one argument
and ``pow`` takes two. Any other identifier is a parse error, so nothing
outside this vocabulary can ever run.

Evaluation walks the tree with numpy ufuncs. Variables may be scalars or
arrays, which lets a whole feature column be transformed in one pass. Domain
errors (log of a negative, division by zero, overflow) produce NaN/inf instead
of raising; deciding what to do with those is left to the caller.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Union

import numpy as np

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


class ExpressionError(ValueError):
    """Raised for text that is not a valid expression in the grammar."""

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        super().__init__(message)


VARIABLES = frozenset({"x", "min", "max", "mean", "std"})

CONSTANTS: dict[str, float] = {"PI": math.pi, "E": math.e}


def _round_half_up(a):
    return np.floor(a + 0.5)


# name -> (arity, ufunc)
FUNCTIONS: dict[str, tuple[int, Callable]] = {
    "sqrt": (1, np.sqrt),
    "log": (1, np.log),
    "log10": (1, np.log10),
    "log2": (1, np.log2),
    "exp": (1, np.exp),
    "abs": (1, np.abs),
    "sin": (1, np.sin),
    "cos": (1, np.cos),
    "tan": (1, np.tan),
    "floor": (1, np.floor),
    "ceil": (1, np.ceil),
    "round": (1, _round_half_up),
    "pow": (2, np.power),
}

_BINARY_OPS: dict[str, Callable] = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.divide,
    "^": np.power,
}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>\*\*|[-+*/^(),])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "name", "op" or "end"
    text: str
    pos: int


def tokenize(source: str) -> list[Token]:
    """Split an expression into tokens, ending with an ``end`` token.

    Raises:
        ExpressionError: On any character outside the grammar.
    """
    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if match is None:
            raise ExpressionError(f"Unexpected character {source[pos]!r} at position {pos}", pos)
        kind = match.lastgroup
        if kind != "ws":
            text = match.group()
            tokens.append(Token(kind, "^" if text == "**" else text, pos))
        pos = match.end()
    tokens.append(Token("end", "", len(source)))
    return tokens


# =========================================================================
# AST
# =========================================================================


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple[Node, ...]


Node = Union[Number, Variable, UnaryOp, BinaryOp, Call]


class _Parser:
    """Recursive-descent parser producing an AST from a token list."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _at_op(self, *ops: str) -> bool:
        return self.current.kind == "op" and self.current.text in ops

    def advance(self) -> Token:
        token = self.current
        if token.kind != "end":
            self.index += 1
        return token

    def expect(self, text: str, context: str = "") -> Token:
        if not self._at_op(text):
            token = self.current
            found = "end of expression" if token.kind == "end" else repr(token.text)
            suffix = f" {context}" if context else ""
            raise ExpressionError(f"Expected {text!r}{suffix}, found {found}", token.pos)
        return self.advance()

    def parse(self) -> Node:
        if self.current.kind == "end":
            raise ExpressionError("Expression is empty", 0)
        node = self.expression()
        if self.current.kind != "end":
            token = self.current
            raise ExpressionError(f"Unexpected {token.text!r} at position {token.pos}", token.pos)
        return node

    def expression(self) -> Node:
        node = self.term()
        while self._at_op("+", "-"):
            op = self.advance().text
            node = BinaryOp(op, node, self.term())
        return node

    def term(self) -> Node:
        node = self.unary()
        while self._at_op("*", "/"):
            op = self.advance().text
            node = BinaryOp(op, node, self.unary())
        return node

    def unary(self) -> Node:
        if self._at_op("+", "-"):
            op = self.advance().text
            return UnaryOp(op, self.unary())
        return self.power()

    def power(self) -> Node:
        base = self.primary()
        if self._at_op("^"):
            self.advance()
            # Right associative: 2^3^2 == 2^(3^2); also admits 2^-1
            return BinaryOp("^", base, self.unary())
        return base

    def primary(self) -> Node:
        token = self.current

        if token.kind == "number":
            self.advance()
            return Number(float(token.text))

        if token.kind == "name":
            self.advance()
            return self._name(token)

        if self._at_op("("):
            self.advance()
            node = self.expression()
            self.expect(")", "to close parenthesis")
            return node

        if token.kind == "end":
            raise ExpressionError("Unexpected end of expression", token.pos)
        raise ExpressionError(f"Unexpected {token.text!r} at position {token.pos}", token.pos)

    def _name(self, token: Token) -> Node:
        name = token.text

        if name in FUNCTIONS:
            arity, _ = FUNCTIONS[name]
            self.expect("(", f"after function {name!r}")
            args = [self.expression()]
            while self._at_op(","):
                self.advance()
                args.append(self.expression())
            self.expect(")", f"to close call to {name!r}")
            if len(args) != arity:
                raise ExpressionError(
                    f"Function {name!r} takes {arity} argument{'s' if arity > 1 else ''}, got {len(args)}",
                    token.pos,
                )
            return Call(name, tuple(args))

        if self._at_op("("):
            raise ExpressionError(f"{name!r} is not a function", token.pos)
        if name in VARIABLES:
            return Variable(name)
        if name in CONSTANTS:
            return Number(CONSTANTS[name])
        raise ExpressionError(f"Unknown identifier {name!r}", token.pos)


def _evaluate(node: Node, env: Mapping[str, np.ndarray | np.float64]):
    if isinstance(node, Number):
        return np.float64(node.value)
    if isinstance(node, Variable):
        try:
            return env[node.name]
        except KeyError:
            raise ExpressionError(f"No value bound for variable {node.name!r}") from None
    if isinstance(node, UnaryOp):
        operand = _evaluate(node.operand, env)
        return np.negative(operand) if node.op == "-" else operand
    if isinstance(node, BinaryOp):
        return _BINARY_OPS[node.op](_evaluate(node.left, env), _evaluate(node.right, env))
    if isinstance(node, Call):
        _, func = FUNCTIONS[node.name]
        return func(*(_evaluate(arg, env) for arg in node.args))
    raise TypeError(f"Unknown node type: {type(node).__name__}")


@dataclass(frozen=True)
class Expression:
    """A parsed expression, reusable across evaluations."""

    source: str
    root: Node

    def evaluate(self, **variables: float | np.ndarray) -> np.float64 | np.ndarray:
        """Evaluate with the given variable bindings.

        Scalars give a numpy scalar, arrays give an array of the broadcast
        shape. Floating point errors are silenced and show up as NaN/inf.

        Raises:
            ExpressionError: If the expression uses a variable not bound here.
        """
        env = {
            name: np.float64(value) if np.isscalar(value) else np.asarray(value, dtype=np.float64)
            for name, value in variables.items()
        }
        with np.errstate(all="ignore"):
            return _evaluate(self.root, env)


@lru_cache(maxsize=256)
def compile_expression(source: str) -> Expression:
    """Parse an expression string.

    Raises:
        ExpressionError: If the text is outside the grammar.
    """
    try:
        root = _Parser(tokenize(source)).parse()
    except RecursionError:
        raise ExpressionError("Expression is nested too deeply") from None
    return Expression(source=source, root=root)
