from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class Position:
    """A concrete source position.

    Offsets are 0-based; line/column are 1-based for user-facing messages.
    Two positions compare (and hash) by offset alone.
    """

    file: str
    line: int = 1
    column: int = 1
    offset: int = 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return self.offset == other.offset

    def __lt__(self, other: Position) -> bool:
        if not isinstance(other, Position):
            return NotImplemented
        return self.offset < other.offset

    def __hash__(self) -> int:
        return hash(self.offset)

    def combine(self, other: Position) -> Span:
        return combine(self, other)

    def format(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open span [start, end) in a single file."""

    file: str
    start: Position
    end: Position

    @classmethod
    def empty(cls, pos: Position) -> Span:
        return cls(file=pos.file, start=pos, end=pos)

    def combine(self, other: Span | Position) -> Span:
        return combine(self, other)

    def format(self) -> str:
        return self.start.format()

    def __len__(self) -> int:
        return self.end.offset - self.start.offset


def combine(a: Span | Position, b: Span | Position) -> Span:
    """Smallest span containing both arguments."""
    a_start, a_end = (a, a) if isinstance(a, Position) else (a.start, a.end)
    b_start, b_end = (b, b) if isinstance(b, Position) else (b.start, b.end)
    start = min(a_start, b_start)
    end = max(a_end, b_end)
    return Span(file=start.file, start=start, end=end)


def advance_position(pos: Position, ch: str) -> Position:
    if ch == "\n":
        return Position(pos.file, pos.line + 1, 1, pos.offset + 1)
    return Position(pos.file, pos.line, pos.column + 1, pos.offset + 1)


def retreat_position(source: str, pos: Position) -> Position:
    """Inverse of advance_position over `source`; a no-op at offset 0."""
    if pos.offset == 0:
        return pos
    offset = pos.offset - 1
    if source[offset] != "\n":
        return Position(pos.file, pos.line, pos.column - 1, offset)
    # rfind returns -1 on the first line, which lines the column up with offset + 1
    column = offset - source.rfind("\n", 0, offset)
    return Position(pos.file, pos.line - 1, column, offset)
