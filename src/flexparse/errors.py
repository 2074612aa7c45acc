from __future__ import annotations

from dataclasses import dataclass

from .diagnostics import Diagnostic
from .spans import Span


@dataclass(slots=True)
class CompileError(Exception):
    diagnostic: Diagnostic

    @property
    def span(self) -> Span:
        return self.diagnostic.span

    @property
    def code(self) -> str:
        return self.diagnostic.code

    def __str__(self) -> str:
        return self.diagnostic.render()


class LexError(CompileError):
    """Fatal scanning error; the whole scan is abandoned."""


class ParseError(CompileError):
    """The furthest recoverable failure, surfaced once every alternative failed."""


class EmptyTokenStream(RuntimeError):
    """Position lookup on a token cursor with no tokens and no end-of-input position."""


class GrammarError(ValueError):
    pass
