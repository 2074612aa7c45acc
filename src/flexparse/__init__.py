from __future__ import annotations

from .api import Language
from .ast import Node
from .cursor import CharCursor, Cursor, TokenCursor
from .diagnostics import Diagnostic, ErrorCode
from .errors import CompileError, EmptyTokenStream, GrammarError, LexError, ParseError
from .grammar import Alt, Body, Default, Delegate, Fail, Grammar, Many, Raw, Rule, Sub, Tok, alt, many, n, t
from .lexer import Scanner, ScannerOptions, invalid_character
from .parser import Failure, Parser, ParserOptions
from .spans import Position, Span, combine
from .tokens import Token

__all__ = [
    "Alt",
    "Body",
    "CharCursor",
    "CompileError",
    "Cursor",
    "Default",
    "Delegate",
    "Diagnostic",
    "EmptyTokenStream",
    "ErrorCode",
    "Fail",
    "Failure",
    "Grammar",
    "GrammarError",
    "Language",
    "LexError",
    "Many",
    "Node",
    "ParseError",
    "Parser",
    "ParserOptions",
    "Position",
    "Raw",
    "Rule",
    "Scanner",
    "ScannerOptions",
    "Span",
    "Sub",
    "Tok",
    "Token",
    "TokenCursor",
    "alt",
    "combine",
    "invalid_character",
    "many",
    "n",
    "t",
]
