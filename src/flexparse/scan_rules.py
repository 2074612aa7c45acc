"""Scanner rule descriptors.

A scanner is an ordered tuple of rules; the first rule whose start character
matches and that produces a token (or skips input) wins. `Structured` rules
run a small step program over a spawned cursor:

    Structured(DIGITS, (
        Set("number", ""),
        Loop((Check(DIGITS, (Push("number"),)), ...), name="number"),
        Done(INT, lambda ctx: int(ctx["number"])),
    ))
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from typing import Union

from .cursor import CharCursor
from .diagnostics import ErrorCode
from .spans import Position


@dataclass(frozen=True, slots=True)
class CharClass:
    members: frozenset[str] = frozenset()
    predicate: Callable[[str], bool] | None = None

    @classmethod
    def of(cls, chars: Iterable[str]) -> CharClass:
        return cls(members=frozenset(chars))

    @classmethod
    def where(cls, predicate: Callable[[str], bool]) -> CharClass:
        return cls(predicate=predicate)

    def __contains__(self, ch: object) -> bool:
        if ch in self.members:
            return True
        return self.predicate is not None and isinstance(ch, str) and self.predicate(ch)

    def __or__(self, other: CharClass) -> CharClass:
        if self.predicate is None and other.predicate is None:
            return CharClass(self.members | other.members)
        return CharClass(members=self.members | other.members, predicate=lambda ch: ch in self or ch in other)


Matcher = Union[str, CharClass]


def matches(match: Matcher, ch: str | None) -> bool:
    if ch is None:
        return False
    if isinstance(match, CharClass):
        return ch in match
    return ch == match


class ScanContext:
    """Local state of one structured rule invocation."""

    __slots__ = ("cursor", "opened", "vars")

    def __init__(self, cursor: CharCursor) -> None:
        self.cursor = cursor
        self.opened: Position = cursor.position()
        self.vars: dict[str, object] = {}

    @property
    def current(self) -> str | None:
        return self.cursor.current()

    def __getitem__(self, name: str) -> object:
        return self.vars[name]

    def __setitem__(self, name: str, value: object) -> None:
        self.vars[name] = value


Value = Union[object, Callable[[ScanContext], object]]


def resolve(value: Value, ctx: ScanContext) -> object:
    return value(ctx) if callable(value) else value


# ---------------------------------------------------------------------------
# Top-level rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Literal:
    match: Matcher
    kind: Hashable
    value: object = None


@dataclass(frozen=True, slots=True)
class Sequence:
    text: str
    kind: Hashable
    value: object = None

    def __post_init__(self) -> None:
        if not self.text:
            raise ValueError("Sequence() requires at least one character")


@dataclass(frozen=True, slots=True)
class Skip:
    match: Matcher
    # Receives the live cursor positioned on the matching character; consumes one char when absent.
    action: Callable[[CharCursor], None] | None = None


@dataclass(frozen=True, slots=True)
class Structured:
    match: Matcher
    steps: tuple[Step, ...]


ScanRule = Union[Literal, Sequence, Skip, Structured]


# ---------------------------------------------------------------------------
# Steps of a structured rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Advance:
    pass


@dataclass(frozen=True, slots=True)
class Check:
    match: Matcher
    steps: tuple[Step, ...]


@dataclass(frozen=True, slots=True)
class If:
    predicate: Callable[[ScanContext], bool]
    steps: tuple[Step, ...]


@dataclass(frozen=True, slots=True)
class Set:
    name: str
    value: Value = None


@dataclass(frozen=True, slots=True)
class Push:
    name: str


@dataclass(frozen=True, slots=True)
class Loop:
    steps: tuple[Step, ...]
    name: str | None = None


@dataclass(frozen=True, slots=True)
class Break:
    name: str | None = None


@dataclass(frozen=True, slots=True)
class Peek:
    steps: tuple[Step, ...]


@dataclass(frozen=True, slots=True)
class Do:
    action: Callable[[ScanContext], None]


@dataclass(frozen=True, slots=True)
class Done:
    kind: Hashable
    value: Value = None


@dataclass(frozen=True, slots=True)
class Raise:
    code: ErrorCode
    args: tuple[Value, ...] = field(default=())

    def __init__(self, code: ErrorCode, *args: Value) -> None:
        object.__setattr__(self, "code", code)
        object.__setattr__(self, "args", args)


Step = Union[Advance, Check, If, Set, Push, Loop, Break, Peek, Do, Done, Raise]


def opened(ctx: ScanContext) -> Position:
    """Raise argument: where the structured rule started."""
    return ctx.opened


def current(ctx: ScanContext) -> str:
    """Raise argument: the character under the rule's cursor."""
    ch = ctx.current
    return "end of input" if ch is None else ch
