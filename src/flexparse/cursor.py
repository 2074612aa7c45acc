"""Backtrackable cursors over characters and over tokens.

Both kinds share one discipline: `spawn()` takes a cheap checkpoint, the
checkpoint is mutated speculatively, and `commit(child)` copies it back only
when the speculative match succeeded. Dropping a child is the rollback.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, TypeVar

from .errors import EmptyTokenStream
from .spans import Position, Span, advance_position, retreat_position
from .tokens import Token

C = TypeVar("C", bound="Cursor")


class Cursor(Protocol):
    def advance(self) -> None: ...

    def revance(self) -> None: ...

    def spawn(self: C) -> C: ...

    def commit(self: C, child: C) -> None: ...

    def current(self) -> object | None: ...

    def position(self) -> Position | Span: ...


class CharCursor:
    """Cursor over raw text.

    `start` and `end` delimit the half-open span of the token being built.
    """

    __slots__ = ("source", "start", "end")

    def __init__(self, source: str, *, file: str = "<memory>") -> None:
        self.source = source
        self.start = Position(file)
        self.end = self.start

    @property
    def file(self) -> str:
        return self.start.file

    @property
    def done(self) -> bool:
        return self.end.offset >= len(self.source)

    def current(self) -> str | None:
        if self.done:
            return None
        return self.source[self.end.offset]

    def advance(self) -> None:
        ch = self.current()
        if ch is None:
            return
        self.end = advance_position(self.end, ch)

    def revance(self) -> None:
        self.end = retreat_position(self.source, self.end)
        if self.end < self.start:
            self.start = self.end

    def spawn(self) -> CharCursor:
        child = CharCursor.__new__(CharCursor)
        child.source = self.source
        child.start = self.start
        child.end = self.end
        return child

    def commit(self, child: CharCursor) -> None:
        self.start = child.start
        self.end = child.end

    def mark(self) -> None:
        """Start the next token where the last one ended."""
        self.start = self.end

    def position(self) -> Position:
        return self.end

    def rposition(self) -> Position:
        """Position of the last consumed character."""
        return retreat_position(self.source, self.end)

    def span(self) -> Span:
        return self.start.combine(self.end)

    def lexeme(self) -> str:
        return self.source[self.start.offset : self.end.offset]

    def __repr__(self) -> str:
        return f"CharCursor({self.start.format()}..{self.end.offset})"


class TokenCursor:
    """Cursor over a token sequence, one token per step.

    Past the last token `position()` reports a synthesized end-of-input span,
    either the `eof` position given at construction or one line past the last
    token.
    """

    __slots__ = ("tokens", "index", "eof")

    def __init__(self, tokens: Sequence[Token], *, eof: Position | None = None) -> None:
        self.tokens = tokens
        self.index = 0
        self.eof = eof

    @property
    def done(self) -> bool:
        return self.index >= len(self.tokens)

    def current_token(self) -> Token | None:
        if self.done:
            return None
        return self.tokens[self.index]

    def current(self) -> object | None:
        tok = self.current_token()
        return None if tok is None else tok.kind

    def advance(self) -> None:
        if not self.done:
            self.index += 1

    def revance(self) -> None:
        if self.index:
            self.index -= 1

    def spawn(self) -> TokenCursor:
        child = TokenCursor.__new__(TokenCursor)
        child.tokens = self.tokens
        child.index = self.index
        child.eof = self.eof
        return child

    def commit(self, child: TokenCursor) -> None:
        self.index = child.index

    def position(self) -> Span:
        tok = self.current_token()
        if tok is not None:
            return tok.span
        return Span.empty(self._end_of_input())

    def span_from(self, index: int) -> Span:
        """Span of the tokens consumed since `index`."""
        if self.index <= index:
            return Span.empty(self.position().start)
        return self.tokens[index].span.combine(self.tokens[self.index - 1].span)

    def _end_of_input(self) -> Position:
        if self.eof is not None:
            return self.eof
        if not self.tokens:
            raise EmptyTokenStream("cannot locate the end of an empty token stream")
        last = self.tokens[-1].span.end
        return Position(last.file, last.line + 1, 1, last.offset)

    def __repr__(self) -> str:
        return f"TokenCursor({self.index}/{len(self.tokens)})"
