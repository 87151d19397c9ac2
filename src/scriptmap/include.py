from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from .errors import DuplicateInclude, InclusionDisabled, MalformedDirective, UnresolvedInclude
from .locators import normalize, open_text, resolve, stdlib_locator
from .origins import OriginTree
from .spans import CodeLocation
from .streams import LineStreamStack


logger = logging.getLogger(__name__)

DIRECTIVE = "#include"
_MARKERS = (DIRECTIVE + " ", "//" + DIRECTIVE + " ")


def parse_directive(line: str, *, location: CodeLocation | None = None) -> str | None:
    """Return the quoted target of an include directive, or None for other lines.

    Both ``#include "x"`` and ``//#include 'x'`` are accepted; the second form
    keeps the directive invisible to the script compiler's own syntax.
    """
    stripped = line.strip()
    if not stripped.startswith(_MARKERS):
        return None

    arg = stripped[stripped.index(DIRECTIVE) + len(DIRECTIVE):].strip()
    if len(arg) < 2 or arg[0] not in "\"'" or arg[-1] != arg[0]:
        raise MalformedDirective(
            location=location,
            message=f"bad argument for {DIRECTIVE}: {arg!r}",
            hint=f'quote the file name: {DIRECTIVE} "file.script"',
        )
    return arg[1:-1]


@dataclass(slots=True)
class _OpenSource:
    source: str | None
    lines: int = 0  # lines read so far from this source


class IncludeProcessor:
    """A text reader that expands ``#include`` directives while recording origins.

    Every flattened line handed out can later be mapped back to the source it
    came from with :meth:`translate`. Each document gets its own processor;
    a file may be included at most once per document.
    """

    def __init__(
        self,
        stream: TextIO,
        *,
        base: str | Path | None = None,
        source: str | None = None,
        encoding: str = "utf-8",
        include_path: Iterable[str | Path] = (),
        stdlib: bool = True,
    ) -> None:
        self.encoding = encoding
        self._base = normalize(base) if base is not None else None
        self._open: list[_OpenSource] = [_OpenSource(source)]
        self._streams = LineStreamStack(stream, on_pop=self._source_exhausted)
        self._line = 0

        # Without a base there is nothing to resolve against: inclusion is off
        # and flattened lines are the original lines.
        self._origins = OriginTree(source) if self._base is not None else None

        self._included: set[str] = set()
        if source is not None:
            self._included.add(source)

        path: list[str] = []
        if self._base is not None:
            path.append(self._base)
        path.extend(normalize(p) for p in include_path)
        if stdlib:
            std = stdlib_locator()
            if std is not None:
                path.append(std)
        self._search_path = tuple(path)

    @classmethod
    def open(
        cls,
        locator: str | Path,
        *,
        encoding: str = "utf-8",
        include_path: Iterable[str | Path] = (),
        stdlib: bool = True,
    ) -> IncludeProcessor:
        loc = normalize(locator)
        stream = open_text(loc, encoding=encoding)
        return cls(
            stream,
            base=loc,
            source=loc,
            encoding=encoding,
            include_path=include_path,
            stdlib=stdlib,
        )

    @property
    def search_path(self) -> tuple[str, ...]:
        return self._search_path

    @property
    def origins(self) -> OriginTree | None:
        return self._origins

    @property
    def line(self) -> int:
        """Number of flattened lines emitted so far."""
        return self._line

    @property
    def included(self) -> frozenset[str]:
        return frozenset(self._included)

    def __enter__(self) -> IncludeProcessor:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        line = self.readline()
        if not line:
            raise StopIteration
        return line

    def close(self) -> None:
        self._streams.close()

    def read(self) -> str:
        return "".join(self)

    def readline(self) -> str:
        """Return the next flattened line, always newline-terminated, or "" at the end."""
        while True:
            raw = self._streams.readline()
            if not raw:
                return ""

            current = self._open[-1]
            here = CodeLocation(source=current.source, line=current.lines)
            current.lines += 1

            if self._base is None and raw.strip().startswith(_MARKERS):
                # Even a malformed directive means inclusion was attempted.
                self._include_disabled(here)

            target = parse_directive(raw, location=here)
            if target is None:
                self._line += 1
                return raw if raw.endswith("\n") else raw + "\n"

            self._include(target, raw.strip(), here)

    def translate(self, line: int) -> CodeLocation:
        """Map a 0-based flattened line to (source, 0-based original line)."""
        if self._origins is None:
            return CodeLocation(source=None, line=line)
        return self._origins.translate(line)

    def _source_exhausted(self) -> None:
        self._open.pop()
        if self._origins is not None:
            self._origins.close(self._line)

    def _include(self, target: str, directive: str, here: CodeLocation) -> None:
        found: tuple[str, TextIO] | None = None
        for root in self._search_path:
            try:
                candidate = resolve(root, target)
            except UnresolvedInclude as e:
                raise UnresolvedInclude(
                    location=here, message=e.message, hint=e.hint, directive=directive
                ) from None

            if candidate in self._included:
                raise DuplicateInclude(
                    location=here,
                    message=f"not including {candidate!r}: already loaded",
                    hint="each file may be included once per document; remove the repeated or cyclic include",
                    target=candidate,
                )

            try:
                stream = open_text(candidate, encoding=self.encoding)
            except OSError as e:
                logger.debug("include candidate %s not readable: %s", candidate, e)
                continue
            found = (candidate, stream)
            break

        if found is None:
            raise UnresolvedInclude(
                location=here,
                message=f"failed to open {target!r}",
                hint="searched: " + ", ".join(self._search_path),
                directive=directive,
            )

        candidate, stream = found
        logger.debug("Including script from %s", candidate)
        self._included.add(candidate)
        if self._origins is None:
            raise RuntimeError("include processor has a base but no origin tree")
        self._origins.open_child(candidate, self._line)
        self._open.append(_OpenSource(candidate))
        self._streams.push(stream)

    def _include_disabled(self, here: CodeLocation) -> None:
        raise InclusionDisabled(
            location=here,
            message=f"{DIRECTIVE} disabled (reason: anonymous stream)",
            hint="open the document by locator, or pass base= to resolve includes",
        )


def flatten(
    locator: str | Path,
    *,
    encoding: str = "utf-8",
    include_path: Iterable[str | Path] = (),
    stdlib: bool = True,
) -> tuple[str, IncludeProcessor]:
    """Read a whole document; return the flattened text and the closed processor."""
    with IncludeProcessor.open(
        locator, encoding=encoding, include_path=include_path, stdlib=stdlib
    ) as reader:
        text = reader.read()
    return text, reader
