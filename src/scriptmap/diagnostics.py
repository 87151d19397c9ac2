from __future__ import annotations

from collections.abc import Sequence

from .spans import CodeLocation


UNKNOWN = -1


class ScriptDiagnostic(Exception):
    """A script failure located in the author's original source.

    Lines are 1-based; ``-1`` marks an unknown line or column. The failure that
    triggered the diagnostic is kept as ``failure`` and as ``__cause__``.
    """

    def __init__(
        self,
        failure: object,
        *,
        source: str | None = None,
        start_line: int = UNKNOWN,
        end_line: int = UNKNOWN,
        start_column: int = UNKNOWN,
        end_column: int = UNKNOWN,
        message: str | None = None,
    ) -> None:
        if message is None:
            message = _describe(failure)
        super().__init__(message)
        self.failure = failure
        self.source = source
        self.start_line = start_line
        self.end_line = end_line
        self.start_column = start_column
        self.end_column = end_column
        self.message = message
        if isinstance(failure, BaseException):
            self.__cause__ = failure

    @classmethod
    def at(cls, failure: object, location: CodeLocation, *, message: str | None = None) -> ScriptDiagnostic:
        """Location-only diagnostic from a 0-based translated location."""
        return cls(failure, source=location.source, start_line=location.line + 1, message=message)

    @property
    def location(self) -> CodeLocation | None:
        if self.start_line < 1:
            return None
        return CodeLocation(source=self.source, line=self.start_line - 1)

    def __str__(self) -> str:
        src = self.source if self.source is not None else "(unknown source)"
        return f"FILE: {src}\nLINE: {self.start_line}\n{self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(source={self.source!r}, start_line={self.start_line}, "
            f"end_line={self.end_line}, message={self.message!r})"
        )


class DiagnosticAggregate(ScriptDiagnostic):
    """Several independent diagnostics from one compilation pass.

    The first child's location stands for the whole aggregate.
    """

    def __init__(self, failure: object, children: Sequence[ScriptDiagnostic]) -> None:
        self.children = tuple(children)
        first = self.children[0] if self.children else None
        super().__init__(
            failure,
            source=first.source if first else None,
            start_line=first.start_line if first else UNKNOWN,
            end_line=first.end_line if first else UNKNOWN,
            start_column=first.start_column if first else UNKNOWN,
            end_column=first.end_column if first else UNKNOWN,
            message=f"{len(self.children)} script errors",
        )

    def __str__(self) -> str:
        parts = [f"{self.message}:"]
        parts.extend(str(c) for c in self.children)
        return "\n".join(parts) + "\n"


def _describe(failure: object) -> str:
    if isinstance(failure, BaseException):
        text = str(failure)
        name = type(failure).__name__
        return f"{name}: {text}" if text else name
    return str(failure)
