"""Locators name the sources a document is assembled from.

Three spellings are understood:

- a filesystem path (``scripts/main.script``),
- a ``file:`` URL,
- an archive member, ``zip:<archive>!/<member>``.

Filesystem locators are normalized to absolute paths, so the same file reached
through two relative spellings compares equal.
"""

from __future__ import annotations

import io
import os
import posixpath
import zipfile
from importlib import resources
from pathlib import Path
from typing import TextIO
from urllib.parse import unquote, urlparse

from .errors import UnresolvedInclude


ZIP_SCHEME = "zip:"
ZIP_SEP = "!/"

STDLIB_PACKAGE = "scriptmap"
STDLIB_RESOURCE = "script_include/stdlib.script"


def is_archive(locator: str) -> bool:
    return locator.startswith(ZIP_SCHEME)


def split_archive(locator: str) -> tuple[str, str]:
    body = locator[len(ZIP_SCHEME):]
    archive, sep, member = body.partition(ZIP_SEP)
    if not sep:
        raise ValueError(f"archive locator without member path: {locator!r}")
    return archive, member


def archive_locator(archive: str | Path, member: str) -> str:
    return f"{ZIP_SCHEME}{archive}{ZIP_SEP}{member.lstrip('/')}"


def normalize(locator: str | Path) -> str:
    if isinstance(locator, Path):
        return str(locator.expanduser().resolve())
    if is_archive(locator):
        archive, member = split_archive(locator)
        return archive_locator(Path(archive).expanduser().resolve(), posixpath.normpath(member))
    if locator.startswith("file:"):
        return str(Path(unquote(urlparse(locator).path)).resolve())
    return str(Path(locator).expanduser().resolve())


def resolve(base: str, relative: str) -> str:
    """Resolve ``relative`` against the directory containing ``base``."""
    if is_archive(base):
        # Plain URL joining does not understand the "!/" separator, so splice
        # onto the member path by hand.
        if relative.startswith("/"):
            raise UnresolvedInclude(
                location=None,
                message=f"absolute include path {relative!r} inside archive {base!r}",
                hint="use a path relative to the including file",
                directive=relative,
            )
        archive, member = split_archive(base)
        idx = member.rfind("/")
        joined = member[: idx + 1] + relative if idx >= 0 else relative
        norm = posixpath.normpath(joined)
        if norm.startswith("../") or norm == "..":
            raise UnresolvedInclude(
                location=None,
                message=f"include path {relative!r} escapes archive {archive!r}",
                directive=relative,
            )
        return archive_locator(archive, norm)

    base_path = Path(normalize(base))
    # Include roots given as directories resolve inside the directory itself.
    parent = base_path if base_path.is_dir() else base_path.parent
    return str((parent / relative).resolve())


def open_text(locator: str, *, encoding: str = "utf-8") -> TextIO:
    """Open a locator for reading text. Raises OSError if it cannot be opened."""
    if is_archive(locator):
        archive, member = split_archive(locator)
        zf = zipfile.ZipFile(archive)
        try:
            raw = zf.open(member)
        except KeyError:
            zf.close()
            raise FileNotFoundError(f"no member {member!r} in {archive!r}") from None
        # ZipExtFile keeps reading from the archive's file handle.
        return _ArchiveText(raw, zf, encoding=encoding)
    return open(os.fspath(locator), encoding=encoding)


class _ArchiveText(io.TextIOWrapper):
    def __init__(self, raw, archive: zipfile.ZipFile, *, encoding: str) -> None:
        super().__init__(raw, encoding=encoding)
        self._archive = archive

    def close(self) -> None:
        try:
            super().close()
        finally:
            self._archive.close()


def stdlib_locator() -> str | None:
    """Locator of the bundled script standard library, if this install exposes it."""
    try:
        res = resources.files(STDLIB_PACKAGE).joinpath(STDLIB_RESOURCE)
    except ModuleNotFoundError:
        return None
    if isinstance(res, Path):
        return str(res.resolve()) if res.is_file() else None
    if isinstance(res, zipfile.Path):
        if not res.is_file():
            return None
        return archive_locator(Path(str(res.root.filename)).resolve(), res.at)
    return None
