from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .ast import Node
from .diagnostics import Diagnostic
from .lexer import Scanner
from .parser import Parser
from .spans import Position
from .tokens import Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Language:
    """A scanner and a parser run back to back: source text in, node tree out."""

    scanner: Scanner
    parser: Parser

    def tokenize(self, src: str, *, file: str = "<memory>") -> list[Token]:
        return self.scanner.scan(file, src)

    def parse_source(self, src: str, *, file: str = "<memory>") -> Node:
        toks = self.tokenize(src, file=file)
        return self.parser.parse(toks, eof=_eof(toks, file))

    def check_source(self, src: str, *, file: str = "<memory>") -> Node | Diagnostic:
        """Like parse_source, but a syntax error is returned instead of raised.

        Lexical errors are always raised.
        """
        toks = self.tokenize(src, file=file)
        return self.parser.try_parse(toks, eof=_eof(toks, file))

    def parse_file(self, path: str | Path) -> Node:
        p = Path(path).expanduser().resolve()
        logger.debug("parsing %s", p)
        src = p.read_text(encoding="utf-8")
        return self.parse_source(src, file=str(p))


def _eof(toks: list[Token], file: str) -> Position | None:
    # With no tokens there is nothing to synthesize an end position from.
    return None if toks else Position(file)
