from __future__ import annotations

from dataclasses import dataclass

from .spans import CodeLocation


@dataclass(slots=True)
class ScriptMapError(Exception):
    location: CodeLocation | None
    message: str
    hint: str | None = None

    def __str__(self) -> str:
        base = self.message
        if self.location is not None:
            base = f"{self.location.format()}: {self.message}"
        if self.hint:
            return f"{base}\nhint: {self.hint}"
        return base


@dataclass(slots=True)
class IncludeError(ScriptMapError):
    """Processing of a document was aborted; no partial output is usable."""


@dataclass(slots=True)
class MalformedDirective(IncludeError):
    pass


@dataclass(slots=True)
class UnresolvedInclude(IncludeError):
    directive: str = ""


@dataclass(slots=True)
class DuplicateInclude(IncludeError):
    target: str = ""


@dataclass(slots=True)
class InclusionDisabled(IncludeError):
    pass


@dataclass(slots=True)
class TranslationError(ScriptMapError):
    """A flattened line fell outside every known span.

    Given correct span bookkeeping this cannot happen, so it indicates a bug
    (or a host whose line counting disagrees with ours).
    """

    line: int = -1
