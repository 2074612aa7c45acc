from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .ast import Node
from .cursor import TokenCursor
from .diagnostics import EXPECTED_TOKEN, NO_ALTERNATIVE, UNEXPECTED_TOKEN, Diagnostic, describe
from .errors import ParseError
from .grammar import ANY, Alt, Default, Delegate, Fail, Fallback, Grammar, Many, Raw, Sub, Tok
from .spans import Position
from .tokens import Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Failure:
    """A recoverable parse failure.

    `depth` counts the requirements matched before the failure; the deepest
    failure among competing alternatives is the one reported.
    """

    depth: int
    diagnostic: Diagnostic

    def deeper(self, by: int) -> Failure:
        return Failure(self.depth + by, self.diagnostic)


@dataclass(frozen=True, slots=True)
class ParserOptions:
    # Report trailing tokens left after the start rule matched.
    require_eof: bool = True
    # Log every rule commit and failure at DEBUG level.
    trace: bool = False


# (committed node, speculative cursor to commit)
_Success = tuple[Node, TokenCursor]


@dataclass(slots=True)
class Parser:
    grammar: Grammar
    options: ParserOptions = ParserOptions()

    @classmethod
    def for_grammar(cls, grammar: Grammar, **options: bool) -> Parser:
        return cls(grammar=grammar, options=ParserOptions(**options))

    def parse(self, tokens: Sequence[Token], *, rule: str | None = None, eof: Position | None = None) -> Node:
        out = self.try_parse(tokens, rule=rule, eof=eof)
        if isinstance(out, Diagnostic):
            raise ParseError(out)
        return out

    def try_parse(
        self,
        tokens: Sequence[Token],
        *,
        rule: str | None = None,
        eof: Position | None = None,
    ) -> Node | Diagnostic:
        cursor = TokenCursor(tuple(tokens), eof=eof)
        out = self.parse_rule(rule or self.grammar.start, cursor)
        if isinstance(out, Failure):
            return out.diagnostic
        tok = cursor.current_token()
        if self.options.require_eof and tok is not None:
            return UNEXPECTED_TOKEN.at(tok.span, tok.lexeme or describe(tok.kind))
        return out

    def parse_rule(self, name: str, cursor: TokenCursor) -> Node | Failure:
        """Parse `name` at `cursor`; the cursor only moves on success."""
        rule = self.grammar[name]
        fallback = rule.fallback or Fail(NO_ALTERNATIVE, name)
        out = self._alternatives(rule.alternatives, fallback, cursor, cursor.index, 0, {})
        if isinstance(out, Failure):
            if self.options.trace:
                logger.debug("%s failed at depth %d: %s", name, out.depth, out.diagnostic.message)
            return out
        node, child = out
        cursor.commit(child)
        if self.options.trace:
            logger.debug("%s matched %s", name, node.span.format())
        return node

    def _alternatives(
        self,
        alternatives: tuple[Alt, ...],
        fallback: Fallback | None,
        cursor: TokenCursor,
        start: int,
        depth: int,
        bindings: dict[str, object],
    ) -> _Success | Failure:
        best: Failure | None = None
        for alt in alternatives:
            out = self._alternative(alt, cursor.spawn(), start, depth, bindings)
            if not isinstance(out, Failure):
                return out
            # Ties keep the first failure recorded.
            if best is None or out.depth > best.depth:
                best = out

        if best is not None and (best.depth > depth or fallback is None):
            return best
        if fallback is None:
            return Failure(depth, _no_alternative(cursor, "a valid construct"))
        return self._fallback(fallback, cursor, start, depth, bindings)

    def _alternative(
        self,
        alt: Alt,
        child: TokenCursor,
        start: int,
        depth: int,
        bindings: dict[str, object],
    ) -> _Success | Failure:
        bound = dict(bindings)
        for req in alt.requirements:
            if isinstance(req, Tok):
                tok = child.current_token()
                if tok is None or not req.accepts(tok):
                    return Failure(depth, _expected(req, child))
                child.advance()
                if req.bind is not None:
                    bound[req.bind] = tok
                depth += 1
            elif isinstance(req, Sub):
                out = self._sub(req, child)
                if isinstance(out, Failure):
                    return out.deeper(depth)
                if req.bind is not None:
                    bound[req.bind] = out
                depth += 1
            elif isinstance(req, Many):
                items = self._many(req, child, depth)
                if isinstance(items, Failure):
                    return items
                if req.bind is not None:
                    bound[req.bind] = items
                depth += len(items)
            else:
                raise TypeError(f"unknown requirement: {req!r}")

        if alt.body is not None:
            return self._alternatives(alt.body.alternatives, alt.body.fallback, child, start, depth, bound)

        if alt.build is None:
            raise RuntimeError(f"alternative has neither build nor body: {alt}")
        return Node(child.span_from(start), alt.build(bound)), child

    def _sub(self, req: Sub | Many, cursor: TokenCursor) -> Node | Failure:
        if isinstance(req.rule, str):
            return self.parse_rule(req.rule, cursor)
        return _call(req.rule, cursor)

    def _many(self, req: Many, cursor: TokenCursor, depth: int) -> tuple[Node, ...] | Failure:
        items: list[Node] = []
        while True:
            before = cursor.index
            out = self._sub(req, cursor)
            if isinstance(out, Failure):
                if out.depth > 0 or len(items) < req.min:
                    return out.deeper(depth + len(items))
                return tuple(items)
            if cursor.index == before:
                raise RuntimeError(f"repeated {req} matched without consuming a token")
            items.append(out)

    def _fallback(
        self,
        fallback: Fallback,
        cursor: TokenCursor,
        start: int,
        depth: int,
        bindings: dict[str, object],
    ) -> _Success | Failure:
        if isinstance(fallback, Fail):
            return Failure(depth, fallback.code.at(cursor.position(), *fallback.args))

        if isinstance(fallback, Default):
            payload = fallback.build(bindings) if fallback.build is not None else fallback.payload
            return Node(cursor.span_from(start), payload), cursor

        if isinstance(fallback, Raw):
            child = cursor.spawn()
            out = _call(fallback.func, child)
            if isinstance(out, Failure):
                return out
            return out, child

        if isinstance(fallback, Delegate):
            child = cursor.spawn()
            out = self.parse_rule(fallback.rule, child)
            if isinstance(out, Failure):
                return out.deeper(depth)
            return Node(child.span_from(start), fallback.wrap(out)), child

        raise TypeError(f"unknown fallback: {fallback!r}")


def _call(func, cursor: TokenCursor) -> Node | Failure:
    out = func(cursor)
    if not isinstance(out, (Node, Failure)):
        raise TypeError(f"parse function returned {type(out)!r}, expected Node or Failure")
    return out


def _found(cursor: TokenCursor) -> str:
    tok = cursor.current_token()
    if tok is None:
        return "end of input"
    return tok.lexeme or describe(tok.kind)


def _expected(req: Tok, cursor: TokenCursor) -> Diagnostic:
    expected = describe(req.kind) if req.value is ANY else f"{describe(req.kind)} {req.value!r}"
    return EXPECTED_TOKEN.at(cursor.position(), expected, _found(cursor))


def _no_alternative(cursor: TokenCursor, what: str) -> Diagnostic:
    return NO_ALTERNATIVE.at(cursor.position(), what)
