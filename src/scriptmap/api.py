from __future__ import annotations

import io
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from .include import IncludeProcessor
from .origins import OriginTree
from .spans import CodeLocation


@dataclass(frozen=True, slots=True)
class FlattenResult:
    text: str
    source: str | None
    origins: OriginTree | None  # None for anonymous documents

    def lines(self) -> list[str]:
        # Flattened lines are always "\n"-terminated; splitlines() would also
        # break on form feeds and other separators.
        return self.text.split("\n")[:-1]

    def translate(self, line: int) -> CodeLocation:
        if self.origins is None:
            return CodeLocation(source=None, line=line)
        return self.origins.translate(line)

    def mapping(self) -> Iterator[tuple[int, CodeLocation]]:
        """Yield (flattened line, original location) for every flattened line."""
        for i in range(len(self.lines())):
            yield i, self.translate(i)


def flatten_source(
    src: str,
    *,
    base: str | Path | None = None,
    include_path: list[str | Path] | None = None,
    stdlib: bool = True,
) -> FlattenResult:
    """Flatten in-memory text. Includes only work when ``base`` is given."""
    with IncludeProcessor(
        io.StringIO(src), base=base, include_path=include_path or (), stdlib=stdlib
    ) as reader:
        text = reader.read()
    return FlattenResult(text=text, source=None, origins=reader.origins)


def flatten_file(
    path: str | Path,
    *,
    encoding: str = "utf-8",
    include_path: list[str | Path] | None = None,
    stdlib: bool = True,
) -> FlattenResult:
    with IncludeProcessor.open(
        path, encoding=encoding, include_path=include_path or (), stdlib=stdlib
    ) as reader:
        text = reader.read()
    root = reader.origins.root.source if reader.origins is not None else None
    return FlattenResult(text=text, source=root, origins=reader.origins)
