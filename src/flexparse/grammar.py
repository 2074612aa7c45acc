from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Union

from .diagnostics import ErrorCode
from .errors import GrammarError

if TYPE_CHECKING:
    from .ast import Node
    from .cursor import TokenCursor
    from .parser import Failure
    from .tokens import Token


ANY = object()

Bindings = Mapping[str, "Node | Token | tuple[Node, ...]"]
BuildFn = Callable[[Bindings], object]
ParseFn = Callable[["TokenCursor"], "Node | Failure"]


@dataclass(frozen=True, slots=True)
class Tok:
    """Requirement: the current token has `kind` (and `value`, when given)."""

    kind: Hashable
    bind: str | None = None
    value: object = ANY

    def accepts(self, token: Token) -> bool:
        if token.kind != self.kind:
            return False
        return self.value is ANY or token.value == self.value

    def __str__(self) -> str:
        return f"T({getattr(self.kind, 'value', self.kind)})"


@dataclass(frozen=True, slots=True)
class Sub:
    """Requirement: another rule (by name) or a parse function matches here."""

    rule: str | ParseFn
    bind: str | None = None

    def __str__(self) -> str:
        name = self.rule if isinstance(self.rule, str) else getattr(self.rule, "__name__", "<fn>")
        return f"N({name})"


@dataclass(frozen=True, slots=True)
class Many:
    """Requirement: `rule` matched repeatedly, binding the tuple of nodes.

    Repetition is a loop, so long flat lists do not grow the call stack. An
    item failing before its first requirement ends the list; an item failing
    further in is reported.
    """

    rule: str | ParseFn
    bind: str | None = None
    min: int = 0

    def __str__(self) -> str:
        name = self.rule if isinstance(self.rule, str) else getattr(self.rule, "__name__", "<fn>")
        return f"N({name})*"


Requirement = Union[Tok, Sub, Many]


@dataclass(frozen=True, slots=True)
class Fail:
    """Fallback: report `code` at the current position."""

    code: ErrorCode
    args: tuple[object, ...] = ()


@dataclass(frozen=True, slots=True)
class Default:
    """Fallback: succeed without consuming further input.

    `build`, when given, computes the payload from the bindings matched so far.
    """

    payload: object = None
    build: BuildFn | None = None


@dataclass(frozen=True, slots=True)
class Raw:
    """Fallback: hand over to an arbitrary parse function."""

    func: ParseFn


@dataclass(frozen=True, slots=True)
class Delegate:
    """Fallback: parse `rule` instead and wrap its payload."""

    rule: str
    wrap: Callable[[Node], object] = lambda node: node.payload


Fallback = Union[Fail, Default, Raw, Delegate]


@dataclass(frozen=True, slots=True)
class Body:
    alternatives: tuple[Alt, ...]
    fallback: Fallback | None = None


@dataclass(frozen=True, slots=True)
class Alt:
    """A sequence of requirements ending in a payload builder or a nested body."""

    requirements: tuple[Requirement, ...]
    build: BuildFn | None = None
    body: Body | None = None

    def __post_init__(self) -> None:
        if (self.build is None) == (self.body is None):
            raise GrammarError("an alternative needs exactly one of build= or body=")

    def __str__(self) -> str:
        rhs = " ".join(str(r) for r in self.requirements) if self.requirements else "ε"
        return rhs + (" { ... }" if self.body is not None else "")


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    alternatives: tuple[Alt, ...]
    fallback: Fallback | None = None


@dataclass(frozen=True, slots=True)
class Grammar:
    start: str
    rules: Mapping[str, Rule] = field(default_factory=dict)

    @classmethod
    def of(cls, start: str, rules: Iterable[Rule]) -> Grammar:
        table: dict[str, Rule] = {}
        for rule in rules:
            if rule.name in table:
                raise GrammarError(f"duplicate rule: {rule.name}")
            table[rule.name] = rule
        return cls(start=start, rules=MappingProxyType(table))

    def __post_init__(self) -> None:
        if self.start not in self.rules:
            raise GrammarError(f"start rule is not defined: {self.start}")
        for rule in self.rules.values():
            for name in _referenced(rule.alternatives, rule.fallback):
                if name not in self.rules:
                    raise GrammarError(f"rule {rule.name!r} references undefined rule {name!r}")

    def __getitem__(self, name: str) -> Rule:
        try:
            return self.rules[name]
        except KeyError:
            raise GrammarError(f"undefined rule: {name}") from None


def _referenced(alternatives: tuple[Alt, ...], fallback: Fallback | None) -> Iterable[str]:
    if isinstance(fallback, Delegate):
        yield fallback.rule
    for alt in alternatives:
        for req in alt.requirements:
            if isinstance(req, (Sub, Many)) and isinstance(req.rule, str):
                yield req.rule
        if alt.body is not None:
            yield from _referenced(alt.body.alternatives, alt.body.fallback)


def t(kind: Hashable, bind: str | None = None, *, value: object = ANY) -> Tok:
    return Tok(kind, bind, value)


def n(rule: str | ParseFn, bind: str | None = None) -> Sub:
    return Sub(rule, bind)


def alt(*requirements: Requirement, build: BuildFn | None = None, body: Body | None = None) -> Alt:
    return Alt(tuple(requirements), build=build, body=body)


def many(rule: str | ParseFn, bind: str | None = None, *, min: int = 0) -> Many:
    return Many(rule, bind, min)
