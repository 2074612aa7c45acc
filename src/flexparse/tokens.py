from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

from .diagnostics import describe
from .spans import Span

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True, slots=True)
class Token(Generic[K]):
    kind: K
    lexeme: str
    span: Span
    value: object = None

    def __repr__(self) -> str:
        if self.value is None:
            return f"Token({describe(self.kind)}, {self.lexeme!r}, {self.span.format()})"
        return f"Token({describe(self.kind)}({self.value!r}), {self.span.format()})"
