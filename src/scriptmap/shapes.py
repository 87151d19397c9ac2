"""Failure shapes understood by the diagnostic normalizer.

An embedding converts whatever its compiler or runtime raises into one of
these before normalization, so the normalizer never sees host exception
types. Line numbers here are 1-based and in flattened coordinates, as the
compiler reported them.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Frame:
    """One entry of a failure's call chain."""

    name: str
    filename: str
    line: int


@dataclass(frozen=True, slots=True)
class RuntimeWithLine:
    """Execution failure that may carry the line it happened on (<= 0 if not)."""

    failure: object
    message: str
    line: int
    cause: Shape | None = None
    frames: tuple[Frame, ...] = ()


@dataclass(frozen=True, slots=True)
class SyntaxSpan:
    failure: object
    message: str
    start_line: int
    end_line: int
    start_column: int = -1
    end_column: int = -1


@dataclass(frozen=True, slots=True)
class WrappedFailure:
    """A compilation message that wraps another failure."""

    shape: Shape


@dataclass(frozen=True, slots=True)
class PlainText:
    text: str


Message = SyntaxSpan | WrappedFailure | PlainText


@dataclass(frozen=True, slots=True)
class CompilationAggregate:
    failure: object
    messages: tuple[Message, ...]


@dataclass(frozen=True, slots=True)
class Opaque:
    """Anything else; only its call chain is of use."""

    failure: object
    frames: tuple[Frame, ...] = ()
    cause: Opaque | None = None


Shape = RuntimeWithLine | SyntaxSpan | CompilationAggregate | Opaque


def walk_frames(shape: Shape | None) -> Iterator[Frame]:
    """Frames of a failure, then of its cause, and so on."""
    cur = shape
    while isinstance(cur, (RuntimeWithLine, Opaque)):
        yield from cur.frames
        cur = cur.cause
