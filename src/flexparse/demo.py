"""
A small expression language built on the engine, all in one place:

- **Tokens**: punctuation, `=`/`==`/`===`, strings, ints, floats, identifiers
- **Scanner rules**: ordered, longest sequence first
- **Grammar**: statements and a precedence-climbing expression grammar

Statements are `name = expr;` or `expr;`; `#` starts a line comment.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Final

from .api import Language
from .ast import Node
from .cursor import CharCursor
from .diagnostics import INVALID_CHARACTER, ErrorCode
from .grammar import Body, Default, Delegate, Fail, Grammar, Rule, alt, many, n, t
from .lexer import Scanner, invalid_character
from .parser import Parser
from .scan_rules import (
    Advance,
    Break,
    CharClass,
    Check,
    Done,
    If,
    Literal,
    Loop,
    Push,
    Raise,
    ScanContext,
    Sequence,
    Set,
    Skip,
    Structured,
    opened,
)


class TokenKind(str, Enum):
    SLASH = "/"
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    LPAREN = "("
    RPAREN = ")"
    DOT = "."
    COLON = ":"
    SEMI = ";"
    EQ = "="
    EE = "=="
    EEE = "==="

    STR = "STR"
    INT = "INT"
    FLOAT = "FLOAT"
    IDENT = "IDENT"


STRING_NOT_CLOSED: Final[ErrorCode] = ErrorCode(
    code="E0101",
    title="string not closed",
    template='expected `"` to close the string opened at {0}',
)

EXPECTED_EXPRESSION: Final[ErrorCode] = ErrorCode(
    code="E0102",
    title="expected expression",
    template="an expression was expected here",
)

EXPECTED_STATEMENT: Final[ErrorCode] = ErrorCode(
    code="E0103",
    title="expected statement",
    template="a statement was expected here",
    hint="statements look like `name = expr;` or `expr;`",
)


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Num:
    value: int | float


@dataclass(frozen=True, slots=True)
class Str:
    value: str


@dataclass(frozen=True, slots=True)
class Name:
    ident: str


@dataclass(frozen=True, slots=True)
class Attr:
    obj: str
    attr: str


@dataclass(frozen=True, slots=True)
class Neg:
    operand: Node


@dataclass(frozen=True, slots=True)
class BinOp:
    op: str
    left: Node
    right: Node


@dataclass(frozen=True, slots=True)
class Assign:
    target: str
    value: Node


@dataclass(frozen=True, slots=True)
class ExprStmt:
    expr: Node


@dataclass(frozen=True, slots=True)
class Program:
    statements: tuple[Node, ...]


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------

DIGITS = CharClass.of("0123456789")
WHITESPACE = CharClass.of(" \t\r\n")
IDENT_START = CharClass.where(lambda ch: ch.isalpha() or ch == "_")
IDENT_CHAR = CharClass.where(lambda ch: ch.isalnum() or ch == "_")


def _skip_comment(cursor: CharCursor) -> None:
    while cursor.current() not in (None, "\n"):
        cursor.advance()


def _float(ctx: ScanContext) -> float:
    return float(ctx["number"])  # type: ignore[arg-type]


# A second `.` ends the literal; it starts the next token.
NUMBER = (
    Set("number", ""),
    Set("dot", False),
    Loop(
        (
            Set("matched", False),
            Check(DIGITS, (Set("matched", True), Push("number"))),
            Check(
                ".",
                (
                    If(lambda ctx: bool(ctx["dot"]), (Done(TokenKind.FLOAT, _float),)),
                    Set("matched", True),
                    Set("dot", True),
                    Push("number"),
                ),
            ),
            If(lambda ctx: not ctx["matched"], (Break("number"),)),
        ),
        name="number",
    ),
    If(lambda ctx: bool(ctx["dot"]), (Done(TokenKind.FLOAT, _float),)),
    Done(TokenKind.INT, lambda ctx: int(ctx["number"])),  # type: ignore[arg-type]
)

STRING = (
    Advance(),
    Set("text", ""),
    Loop(
        (
            Check('"', (Advance(), Done(TokenKind.STR, lambda ctx: ctx["text"]))),
            Push("text"),
        )
    ),
    Raise(STRING_NOT_CLOSED, opened),
)

IDENTIFIER = (
    Set("name", ""),
    Loop(
        (
            If(lambda ctx: ctx.current not in IDENT_CHAR, (Break(),)),
            Push("name"),
        )
    ),
    Done(TokenKind.IDENT, lambda ctx: ctx["name"]),
)

SCAN_RULES = (
    Literal("/", TokenKind.SLASH),
    Literal("+", TokenKind.PLUS),
    Literal("-", TokenKind.MINUS),
    Literal("*", TokenKind.STAR),
    Literal("(", TokenKind.LPAREN),
    Literal(")", TokenKind.RPAREN),
    Literal(".", TokenKind.DOT),
    Literal(":", TokenKind.COLON),
    Literal(";", TokenKind.SEMI),
    Skip(WHITESPACE),
    Skip("#", _skip_comment),
    Sequence("===", TokenKind.EEE),
    Sequence("==", TokenKind.EE),
    Literal("=", TokenKind.EQ),
    Structured('"', STRING),
    Structured(DIGITS, NUMBER),
    Structured(IDENT_START, IDENTIFIER),
)


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------


def _binop(op: str):
    return lambda b: BinOp(op, b["left"], b["right"])


def _left(b) -> object:
    return b["left"].payload


def _operators(name: str, operand: str, ops: dict[TokenKind, str]) -> Rule:
    """`operand (op name)?`, right associative."""
    return Rule(
        name,
        (
            alt(
                n(operand, "left"),
                body=Body(
                    tuple(alt(t(kind), n(name, "right"), build=_binop(op)) for kind, op in ops.items()),
                    fallback=Default(build=_left),
                ),
            ),
        ),
        fallback=Fail(EXPECTED_EXPRESSION),
    )


RULES = (
    Rule(
        "program",
        (alt(many("statement", "statements", min=1), build=lambda b: Program(b["statements"])),),
        fallback=Fail(EXPECTED_STATEMENT),
    ),
    Rule(
        "statement",
        (
            alt(
                t(TokenKind.IDENT, "target"),
                t(TokenKind.EQ),
                n("expression", "value"),
                t(TokenKind.SEMI),
                build=lambda b: Assign(b["target"].value, b["value"]),
            ),
            alt(n("expression", "expr"), t(TokenKind.SEMI), build=lambda b: ExprStmt(b["expr"])),
        ),
        fallback=Fail(EXPECTED_STATEMENT),
    ),
    _operators("expression", "sum", {TokenKind.EEE: "===", TokenKind.EE: "=="}),
    _operators("sum", "product", {TokenKind.PLUS: "+", TokenKind.MINUS: "-"}),
    _operators("product", "unary", {TokenKind.STAR: "*", TokenKind.SLASH: "/"}),
    Rule(
        "unary",
        (alt(t(TokenKind.MINUS), n("unary", "operand"), build=lambda b: Neg(b["operand"])),),
        fallback=Delegate("atom"),
    ),
    Rule(
        "atom",
        (
            alt(t(TokenKind.INT, "v"), build=lambda b: Num(b["v"].value)),
            alt(t(TokenKind.FLOAT, "v"), build=lambda b: Num(b["v"].value)),
            alt(t(TokenKind.STR, "v"), build=lambda b: Str(b["v"].value)),
            alt(
                t(TokenKind.IDENT, "obj"),
                t(TokenKind.DOT),
                t(TokenKind.IDENT, "attr"),
                build=lambda b: Attr(b["obj"].value, b["attr"].value),
            ),
            alt(t(TokenKind.IDENT, "v"), build=lambda b: Name(b["v"].value)),
            alt(
                t(TokenKind.LPAREN),
                n("expression", "inner"),
                t(TokenKind.RPAREN),
                build=lambda b: b["inner"].payload,
            ),
        ),
        fallback=Fail(EXPECTED_EXPRESSION),
    ),
)


def build_scanner() -> Scanner:
    return Scanner(SCAN_RULES, invalid_character(INVALID_CHARACTER))


def build_grammar() -> Grammar:
    return Grammar.of("program", RULES)


@lru_cache(maxsize=1)
def demo_language() -> Language:
    return Language(scanner=build_scanner(), parser=Parser.for_grammar(build_grammar()))
