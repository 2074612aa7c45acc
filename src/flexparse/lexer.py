from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass

from .cursor import CharCursor
from .diagnostics import INVALID_CHARACTER, ErrorCode
from .errors import LexError
from .scan_rules import (
    Advance,
    Break,
    Check,
    Do,
    Done,
    If,
    Literal,
    Loop,
    Peek,
    Push,
    Raise,
    ScanContext,
    ScanRule,
    Sequence,
    Set,
    Skip,
    Step,
    Structured,
    matches,
    resolve,
)
from .spans import Span
from .tokens import Token

logger = logging.getLogger(__name__)

DefaultHandler = Callable[[CharCursor], "Token | None"]


@dataclass(frozen=True, slots=True)
class ScannerOptions:
    emit_eof: bool = False
    eof_kind: Hashable = "EOF"


def invalid_character(code: ErrorCode = INVALID_CHARACTER) -> DefaultHandler:
    """Default handler raising `code` at the unrecognized character."""

    def handler(cursor: CharCursor) -> Token | None:
        pos = cursor.position()
        raise LexError(code.fatal(pos, cursor.current()))

    return handler


# Control signals of the step interpreter.
class _Emit:
    __slots__ = ("token",)

    def __init__(self, token: Token) -> None:
        self.token = token


class _Break:
    __slots__ = ("name",)

    def __init__(self, name: str | None) -> None:
        self.name = name


class Scanner:
    """Interpreter over an ordered tuple of scan rules."""

    def __init__(
        self,
        rules: Iterable[ScanRule],
        default: DefaultHandler,
        *,
        options: ScannerOptions | None = None,
    ) -> None:
        if default is None:
            raise TypeError("Scanner requires a default handler for unmatched characters")
        self.rules: tuple[ScanRule, ...] = tuple(rules)
        self.default = default
        self.options = options or ScannerOptions()

    def tokenize(self, source: str, *, file: str = "<memory>") -> list[Token]:
        return self.scan(file, source)

    def scan(self, file: str, source: str) -> list[Token]:
        cursor = CharCursor(source, file=file)
        tokens: list[Token] = []

        while cursor.current() is not None:
            tok = self._step(cursor)
            if tok is not None:
                tokens.append(tok)
            cursor.mark()

        if self.options.emit_eof:
            eof = cursor.position()
            tokens.append(Token(self.options.eof_kind, "", Span.empty(eof)))
        logger.debug("scanned %d tokens from %s", len(tokens), file)
        return tokens

    def _step(self, cursor: CharCursor) -> Token | None:
        """Run the first matching rule; None when the rule only skipped input."""
        ch = cursor.current()
        for rule in self.rules:
            if not matches(_first(rule), ch):
                continue

            if isinstance(rule, Literal):
                cursor.advance()
                return _emit(cursor, rule.kind, rule.value)

            if isinstance(rule, Skip):
                if rule.action is None:
                    cursor.advance()
                    return None
                before = cursor.position()
                rule.action(cursor)
                if cursor.position() == before:
                    raise RuntimeError(f"skip action did not consume input at {before.format()}")
                return None

            if isinstance(rule, Sequence):
                child = cursor.spawn()
                for expected in rule.text:
                    if child.current() != expected:
                        break
                    child.advance()
                else:
                    cursor.commit(child)
                    return _emit(cursor, rule.kind, rule.value)
                continue

            if isinstance(rule, Structured):
                ctx = ScanContext(cursor.spawn())
                signal = self._run(rule.steps, ctx)
                if isinstance(signal, _Emit):
                    cursor.commit(ctx.cursor)
                    return signal.token
                continue

            raise TypeError(f"unknown scan rule: {rule!r}")

        before = cursor.position()
        tok = self.default(cursor)
        if cursor.position() == before:
            raise RuntimeError(f"default handler did not consume input at {before.format()}")
        return tok

    def _run(self, steps: tuple[Step, ...], ctx: ScanContext) -> _Emit | _Break | None:
        for step in steps:
            signal = self._exec(step, ctx)
            if signal is not None:
                return signal
        return None

    def _exec(self, step: Step, ctx: ScanContext) -> _Emit | _Break | None:
        child = ctx.cursor

        if isinstance(step, Advance):
            child.advance()
            return None

        if isinstance(step, Check):
            if matches(step.match, child.current()):
                return self._run(step.steps, ctx)
            return None

        if isinstance(step, If):
            if step.predicate(ctx):
                return self._run(step.steps, ctx)
            return None

        if isinstance(step, Set):
            ctx[step.name] = resolve(step.value, ctx)
            return None

        if isinstance(step, Push):
            ch = child.current()
            if ch is not None:
                ctx[step.name] = ctx[step.name] + ch  # type: ignore[operator]
            return None

        if isinstance(step, Loop):
            while child.current() is not None:
                signal = self._run(step.steps, ctx)
                if isinstance(signal, _Break):
                    if signal.name is None or signal.name == step.name:
                        break
                    return signal
                if signal is not None:
                    return signal
                child.advance()
            return None

        if isinstance(step, Break):
            return _Break(step.name)

        if isinstance(step, Peek):
            if child.current() is None:
                return None
            signal = self._run(step.steps, ctx)
            if signal is None:
                child.advance()
            return signal

        if isinstance(step, Do):
            step.action(ctx)
            return None

        if isinstance(step, Done):
            return _Emit(_emit(child, step.kind, resolve(step.value, ctx)))

        if isinstance(step, Raise):
            args = tuple(resolve(a, ctx) for a in step.args)
            raise LexError(step.code.fatal(child.position(), *args))

        raise TypeError(f"unknown scan step: {step!r}")


def _first(rule: ScanRule) -> object:
    if isinstance(rule, Sequence):
        return rule.text[0]
    return rule.match


def _emit(cursor: CharCursor, kind: Hashable, value: object) -> Token:
    return Token(kind=kind, lexeme=cursor.lexeme(), span=cursor.span(), value=value)
