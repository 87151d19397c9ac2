from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CodeLocation:
    """A line in an original source.

    Lines are 0-based; diagnostics convert to 1-based for user-facing messages.
    ``source`` is None for anonymous content.
    """

    source: str | None
    line: int

    def format(self) -> str:
        src = self.source if self.source is not None else "(unknown source)"
        return f"{src}:{self.line}"


@dataclass(frozen=True, slots=True)
class CodeSpan(CodeLocation):
    """Half-open line range [line, end) in a single source.

    ``end`` is -1 while the range is still open.
    """

    end: int = -1

    @property
    def is_open(self) -> bool:
        return self.end < 0

    def contains(self, line: int) -> bool:
        return line >= self.line and (self.end < 0 or line < self.end)

    def size(self) -> int:
        if self.end < 0:
            raise ValueError(f"span is still open: {self.format()}")
        return self.end - self.line

    def format(self) -> str:
        if self.end >= 0:
            src = self.source if self.source is not None else "(unknown source)"
            return f"{src}:{self.line}→{self.end}"
        return CodeLocation.format(self)
