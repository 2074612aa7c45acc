from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

from .spans import Span

P = TypeVar("P")


@dataclass(frozen=True, slots=True)
class Node(Generic[P]):
    """A parsed value together with the span of every token consumed to build it."""

    span: Span
    payload: P
