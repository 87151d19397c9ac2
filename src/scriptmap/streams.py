from __future__ import annotations

from collections.abc import Callable
from typing import TextIO


class LineStreamStack:
    """A stack of text streams read as one sequence of lines.

    Lines always come from the top stream. When it runs dry it is closed and
    popped, ``on_pop`` is called, and reading continues with the stream below.
    """

    def __init__(self, stream: TextIO | None = None, *, on_pop: Callable[[], None] | None = None) -> None:
        self._streams: list[TextIO] = []
        self._on_pop = on_pop
        if stream is not None:
            self._streams.append(stream)

    def __len__(self) -> int:
        return len(self._streams)

    def push(self, stream: TextIO) -> None:
        self._streams.append(stream)

    def readline(self) -> str:
        """Return the next line (with its newline), or "" once everything is exhausted."""
        while self._streams:
            line = self._streams[-1].readline()
            if line:
                return line
            self._pop()
        return ""

    def _pop(self) -> None:
        self._streams.pop().close()
        if self._on_pop is not None:
            self._on_pop()

    def close(self) -> None:
        while self._streams:
            self._streams.pop().close()
