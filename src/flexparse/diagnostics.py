"""Diagnostic codes and the structured diagnostics both engines produce."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal

from .spans import Position, Span

Severity = Literal["fatal", "recoverable"]


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A single error report.

    `spans[0]` is the primary location; any further spans are the ones the
    message refers to (e.g. where an unclosed string was opened).
    """

    code: str
    title: str
    message: str
    spans: tuple[Span, ...]
    severity: Severity = "recoverable"
    hint: str | None = None

    @property
    def span(self) -> Span:
        return self.spans[0]

    @property
    def fatal(self) -> bool:
        return self.severity == "fatal"

    def render(self) -> str:
        lines = [f"error[{self.code}]: {self.title}", f"  --> {self.span.format()}"]
        if self.message:
            lines.append(f"  {self.message}")
        if self.hint:
            lines.append(f"hint: {self.hint}")
        return "\n".join(lines)

    def throw(self) -> None:
        from .errors import LexError, ParseError

        if self.fatal:
            raise LexError(self)
        raise ParseError(self)


@dataclass(frozen=True, slots=True)
class ErrorCode:
    """A stable diagnostic code with a title and a `str.format` message template.

    Template slots are filled positionally; `Span`/`Position` arguments render
    as `file:line:column` and are attached to the diagnostic as extra spans.
    """

    code: str
    title: str
    template: str = ""
    hint: str | None = None

    def at(
        self,
        where: Span | Position,
        *args: object,
        severity: Severity = "recoverable",
    ) -> Diagnostic:
        primary = Span.empty(where) if isinstance(where, Position) else where
        spans = [primary]
        rendered: list[object] = []
        for arg in args:
            if isinstance(arg, Position):
                arg = Span.empty(arg)
            if isinstance(arg, Span):
                spans.append(arg)
                rendered.append(arg.format())
            else:
                rendered.append(arg)
        return Diagnostic(
            code=self.code,
            title=self.title,
            message=self.template.format(*rendered),
            spans=tuple(spans),
            severity=severity,
            hint=self.hint,
        )

    def fatal(self, where: Span | Position, *args: object) -> Diagnostic:
        return self.at(where, *args, severity="fatal")


def describe(kind: object) -> str:
    """Display form of a token kind (enum value when it has one)."""
    return str(getattr(kind, "value", kind))


INVALID_CHARACTER: Final[ErrorCode] = ErrorCode(
    code="E0001",
    title="invalid character",
    template="`{0}` is an invalid character",
)

EXPECTED_TOKEN: Final[ErrorCode] = ErrorCode(
    code="E0002",
    title="unexpected token",
    template="expected `{0}`, found `{1}`",
)

UNEXPECTED_TOKEN: Final[ErrorCode] = ErrorCode(
    code="E0003",
    title="unexpected token",
    template="`{0}` was not expected here",
    hint="remove the token or complete the construct before it",
)

NO_ALTERNATIVE: Final[ErrorCode] = ErrorCode(
    code="E0004",
    title="syntax error",
    template="expected {0} here",
)
