"""Condition expressions for flow branching.

Expressions are parsed into a small tagged AST and evaluated by a dedicated
interpreter against the user's message. Nothing is ever executed as code.

Supports:
- PIN/code shortcut: an all-digit expression ("1234") matches the exact text
- Predicates (case-insensitive): includes("x"), equals("x"),
  startsWith("x"), endsWith("x")
- Values: text, length, string and number literals, true, false
- Comparison: ==, ===, !=, !==, <, <=, >, >=
- Boolean: && / and, || / or, ! / not, parentheses
"""

import logging
import operator
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Union

from cachetools import LRUCache, cached

from chatflow.core.errors import ExpressionError

logger = logging.getLogger(__name__)

# Longer operators first to avoid partial matches
_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "===": operator.eq,
    "!==": operator.ne,
    "==": operator.eq,
    "!=": operator.ne,
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
}

# Mirror image of each comparator, used when a literal is on the left
_FLIPPED = {"<": ">", ">": "<", "<=": ">=", ">=": "<="}

_TOKEN_RE = re.compile(
    r"""
    (?P<number>\d+(?:\.\d+)?)
    |(?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>===|!==|==|!=|<=|>=|&&|\|\||[<>!(),])
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

_DIGITS_RE = re.compile(r"^[0-9]+$")

# Deepest run of "(" and "!" an expression may nest
MAX_NESTING = 64


# =============================================================================
# AST
# =============================================================================


@dataclass(frozen=True)
class Literal:
    value: str | float | bool


@dataclass(frozen=True)
class Text:
    """The subject text itself."""


@dataclass(frozen=True)
class Length:
    """Length of the subject text."""


@dataclass(frozen=True)
class Includes:
    needle: str


@dataclass(frozen=True)
class Equals:
    needle: str


@dataclass(frozen=True)
class StartsWith:
    needle: str


@dataclass(frozen=True)
class EndsWith:
    needle: str


@dataclass(frozen=True)
class LengthCompare:
    op: str
    value: float


@dataclass(frozen=True)
class Compare:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class And:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Or:
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Not:
    operand: "Expr"


Expr = Union[
    Literal,
    Text,
    Length,
    Includes,
    Equals,
    StartsWith,
    EndsWith,
    LengthCompare,
    Compare,
    And,
    Or,
    Not,
]

_PREDICATES: dict[str, type[Includes | Equals | StartsWith | EndsWith]] = {
    "includes": Includes,
    "equals": Equals,
    "startswith": StartsWith,
    "endswith": EndsWith,
}


# =============================================================================
# Tokenizer
# =============================================================================


@dataclass(frozen=True)
class _Token:
    kind: str  # number | string | name | op | end
    value: str
    pos: int


def _unquote(raw: str) -> str:
    body = raw[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _tokenize(expr: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(expr):
        if expr[pos].isspace():
            pos += 1
            continue
        match = _TOKEN_RE.match(expr, pos)
        if not match:
            raise ExpressionError(f"Unexpected character {expr[pos]!r} at position {pos}")
        kind = match.lastgroup or "op"
        value = match.group()
        if kind == "string":
            value = _unquote(value)
        tokens.append(_Token(kind, value, pos))
        pos = match.end()
    tokens.append(_Token("end", "", len(expr)))
    return tokens


# =============================================================================
# Parser
# =============================================================================


class _Parser:
    """Recursive-descent parser.

    Grammar:
        or_expr   := and_expr (("||" | "or") and_expr)*
        and_expr  := not_expr (("&&" | "and") not_expr)*
        not_expr  := ("!" | "not") not_expr | compare
        compare   := operand (COMPARATOR operand)?
        operand   := NUMBER | STRING | "true" | "false" | "text" | "length"
                   | PREDICATE "(" (STRING | NUMBER) ")" | "(" or_expr ")"
    """

    def __init__(self, expr: str) -> None:
        self.tokens = _tokenize(expr)
        self.index = 0
        self.depth = 0

    @property
    def current(self) -> _Token:
        return self.tokens[self.index]

    def _advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _at_keyword(self, *words: str) -> bool:
        token = self.current
        if token.kind == "op":
            return token.value in words
        return token.kind == "name" and token.value.lower() in words

    def _descend(self, token: _Token) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ExpressionError(
                f"Expression nests deeper than {MAX_NESTING} levels at position {token.pos}"
            )

    def _expect(self, value: str) -> None:
        token = self._advance()
        if token.kind != "op" or token.value != value:
            raise ExpressionError(f"Expected {value!r} at position {token.pos}")

    def parse(self) -> Expr:
        node = self._or_expr()
        if self.current.kind != "end":
            raise ExpressionError(
                f"Unexpected {self.current.value!r} at position {self.current.pos}"
            )
        return node

    def _or_expr(self) -> Expr:
        node = self._and_expr()
        while self._at_keyword("||", "or"):
            self._advance()
            node = Or(node, self._and_expr())
        return node

    def _and_expr(self) -> Expr:
        node = self._not_expr()
        while self._at_keyword("&&", "and"):
            self._advance()
            node = And(node, self._not_expr())
        return node

    def _not_expr(self) -> Expr:
        if not self._at_keyword("!", "not"):
            return self._compare()
        self._descend(self._advance())
        node = Not(self._not_expr())
        self.depth -= 1
        return node

    def _compare(self) -> Expr:
        left = self._operand()
        token = self.current
        if token.kind != "op" or token.value not in _COMPARATORS:
            return left

        self._advance()
        right = self._operand()
        if self.current.kind == "op" and self.current.value in _COMPARATORS:
            raise ExpressionError(f"Chained comparison at position {self.current.pos}")

        op = token.value
        if isinstance(left, Length) and (number := _number(right)) is not None:
            return LengthCompare(op, number)
        if isinstance(right, Length) and (number := _number(left)) is not None:
            return LengthCompare(_FLIPPED.get(op, op), number)
        return Compare(op, left, right)

    def _operand(self) -> Expr:
        token = self._advance()

        if token.kind == "number":
            return Literal(float(token.value))
        if token.kind == "string":
            return Literal(token.value)
        if token.kind == "op" and token.value == "(":
            self._descend(token)
            node = self._or_expr()
            self._expect(")")
            self.depth -= 1
            return node
        if token.kind == "name":
            name = token.value
            lowered = name.lower()
            if lowered == "true":
                return Literal(True)
            if lowered == "false":
                return Literal(False)
            if name == "text":
                return Text()
            if name == "length":
                return Length()
            predicate = _PREDICATES.get(lowered)
            if predicate is not None:
                self._expect("(")
                arg = self._advance()
                if arg.kind not in ("string", "number"):
                    raise ExpressionError(
                        f"{name}() expects a string argument at position {arg.pos}"
                    )
                self._expect(")")
                return predicate(arg.value)
            raise ExpressionError(f"Unknown name {name!r} at position {token.pos}")

        if token.kind == "end":
            raise ExpressionError("Unexpected end of expression")
        raise ExpressionError(f"Unexpected {token.value!r} at position {token.pos}")


def _number(node: Expr) -> float | None:
    if isinstance(node, Literal) and _kind(node.value) == "number":
        return float(node.value)
    return None


@cached(cache=LRUCache(maxsize=512))
def parse_expression(expr: str) -> Expr:
    """Parse an authored expression into an AST.

    Raises:
        ExpressionError: If the expression is malformed.
    """
    return _Parser(expr).parse()


# =============================================================================
# Interpreter
# =============================================================================


def _value(node: Expr, subject: str) -> str | float | bool:
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, Text):
        return subject
    if isinstance(node, Length):
        return float(len(subject))

    folded = subject.lower()
    if isinstance(node, Includes):
        return node.needle.lower() in folded
    if isinstance(node, Equals):
        return folded == node.needle.lower()
    if isinstance(node, StartsWith):
        return folded.startswith(node.needle.lower())
    if isinstance(node, EndsWith):
        return folded.endswith(node.needle.lower())

    if isinstance(node, LengthCompare):
        return _COMPARATORS[node.op](float(len(subject)), node.value)
    if isinstance(node, Compare):
        return _compare(node.op, _value(node.left, subject), _value(node.right, subject))

    if isinstance(node, And):
        return bool(_value(node.left, subject)) and bool(_value(node.right, subject))
    if isinstance(node, Or):
        return bool(_value(node.left, subject)) or bool(_value(node.right, subject))
    if isinstance(node, Not):
        return not _value(node.operand, subject)

    raise ExpressionError(f"Unsupported expression node: {type(node).__name__}")


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, float):
        return "number"
    return "string"


def _compare(op: str, left: Any, right: Any) -> bool:
    same_kind = _kind(left) == _kind(right)

    # Equality across kinds is strict: never equal
    if op in ("==", "==="):
        return same_kind and left == right
    if op in ("!=", "!=="):
        return not same_kind or left != right

    if not same_kind or _kind(left) == "bool":
        raise ExpressionError(f"Cannot order {_kind(left)} and {_kind(right)} with {op!r}")
    return bool(_COMPARATORS[op](left, right))


def evaluate(node: Expr, text: str) -> bool:
    """Evaluate a parsed expression against the user's text."""
    return bool(_value(node, text.strip()))


def is_digits_only(expr: str) -> bool:
    return bool(_DIGITS_RE.match((expr or "").strip()))


def evaluate_condition(expr: str, text: str) -> bool:
    """Evaluate an authored condition against the user's text.

    Never raises: malformed expressions are logged and resolve to False.

    Examples:
        >>> evaluate_condition("1234", " 1234 ")
        True
        >>> evaluate_condition('includes("refund")', "I want a REFUND")
        True
        >>> evaluate_condition("length > 3 && !startsWith('no')", "yes please")
        True
    """
    subject = (text or "").strip()
    if is_digits_only(expr):
        return subject == expr.strip()

    try:
        return evaluate(parse_expression(expr or ""), subject)
    except ExpressionError as e:
        logger.warning(f"Expression evaluation error for {expr!r}: {e}")
    except RecursionError:
        # Long flat chains of && and || still build deep trees
        logger.warning(f"Expression too deeply nested to evaluate: {expr[:80]!r}")
    return False
