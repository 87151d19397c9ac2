from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .errors import TranslationError
from .spans import CodeLocation, CodeSpan


@dataclass(slots=True)
class Origin:
    """One contiguous run of flattened lines produced by a single source.

    ``start`` and ``end`` are flattened line numbers (global, not relative to
    the parent). ``end`` stays -1 until the source has been read completely.
    """

    source: str | None
    start: int
    parent: int | None = None
    end: int = -1
    children: list[int] = field(default_factory=list)

    def span(self) -> CodeSpan:
        return CodeSpan(source=self.source, line=self.start, end=self.end)


class OriginTree:
    """Source span tree, built while reading and queried afterwards.

    Spans live in an arena and refer to each other by index. The stack of open
    spans mirrors the stack of open include streams; its top is the span that
    receives newly included children.
    """

    def __init__(self, source: str | None, start: int = 0) -> None:
        self._nodes: list[Origin] = [Origin(source=source, start=start)]
        self._open: list[int] = [0]

    @property
    def root(self) -> Origin:
        return self._nodes[0]

    @property
    def current(self) -> int | None:
        return self._open[-1] if self._open else None

    @property
    def depth(self) -> int:
        return len(self._open)

    @property
    def closed(self) -> bool:
        return not self._open

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> Origin:
        return self._nodes[index]

    def open_child(self, source: str | None, line: int) -> int:
        if not self._open:
            raise RuntimeError("cannot include into a closed document")
        parent_idx = self._open[-1]
        parent = self._nodes[parent_idx]
        if parent.children:
            last = self._nodes[parent.children[-1]]
            if last.end < 0 or line < last.end:
                raise RuntimeError(f"overlapping include at line {line} in {parent.span().format()}")
        idx = len(self._nodes)
        self._nodes.append(Origin(source=source, start=line, parent=parent_idx))
        parent.children.append(idx)
        self._open.append(idx)
        return idx

    def close(self, line: int) -> int | None:
        if not self._open:
            raise RuntimeError("close() called with no open span")
        node = self._nodes[self._open.pop()]
        if node.end >= 0:
            raise RuntimeError(f"span closed twice: {node.span().format()}")
        if line < node.start:
            raise RuntimeError(f"span would end before it starts: {node.span().format()} at {line}")
        node.end = line
        return self.current

    def spans(self) -> Iterator[tuple[int, CodeSpan]]:
        """Yield (depth, span) pairs in pre-order."""
        stack = [(0, 0)]
        while stack:
            depth, idx = stack.pop()
            node = self._nodes[idx]
            yield depth, node.span()
            stack.extend((depth + 1, c) for c in reversed(node.children))

    def translate(self, line: int) -> CodeLocation:
        """Map a 0-based flattened line to a 0-based line in its original source."""
        idx = 0
        while True:
            node = self._nodes[idx]
            span = node.span()
            if not span.contains(line):
                raise TranslationError(
                    location=None,
                    message=f"line {line} is not inside span {span.format()}",
                    line=line,
                )

            delta = 0
            nested: int | None = None
            for c in node.children:
                child = self._nodes[c]
                if child.start > line:
                    break
                if child.span().contains(line):
                    nested = c
                    break
                # -1: the directive line itself is not part of the output
                delta += child.span().size() - 1

            if nested is None:
                return CodeLocation(source=node.source, line=line - node.start - delta)
            idx = nested
