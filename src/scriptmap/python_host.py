"""Run dialog scripts written in Python itself.

The host flattens a script, compiles it under a fixed pseudo file name and
executes it into a namespace. Failures are classified into shapes and
normalized, so callers only ever see :class:`ScriptDiagnostic` values located
in the author's files (or, for failures with no script frame at all, the raw
exception).
"""

from __future__ import annotations

import io
import logging
import traceback
from pathlib import Path
from types import CodeType, TracebackType
from typing import Any, TextIO

from .diagnostics import ScriptDiagnostic
from .include import IncludeProcessor
from .normalizer import DiagnosticNormalizer
from .shapes import (
    CompilationAggregate,
    Frame,
    Message,
    Opaque,
    PlainText,
    RuntimeWithLine,
    Shape,
    SyntaxSpan,
    WrappedFailure,
)


logger = logging.getLogger(__name__)

SCRIPT_FILENAME = "<dialog-script>"


class ScriptExecutionError(Exception):
    """The script failed while running; ``lineno`` is 1-based, -1 if unknown."""

    def __init__(self, message: str, lineno: int = -1) -> None:
        super().__init__(message)
        self.lineno = lineno


def extract_frames(tb: TracebackType | None) -> tuple[Frame, ...]:
    # Innermost frame first: that is where the failure happened.
    frames = [
        Frame(name=fs.name, filename=fs.filename, line=fs.lineno or -1)
        for fs in traceback.extract_tb(tb)
    ]
    frames.reverse()
    return tuple(frames)


def _opaque(exc: BaseException, seen: set[int]) -> Opaque:
    seen.add(id(exc))
    nxt = exc.__cause__ or exc.__context__
    cause = None
    if nxt is not None and id(nxt) not in seen:
        cause = _opaque(nxt, seen)
    return Opaque(failure=exc, frames=extract_frames(exc.__traceback__), cause=cause)


def classify_exception(exc: BaseException, *, filename: str = SCRIPT_FILENAME) -> Shape:
    """Convert a Python exception raised by compiling/running a script into a shape."""
    if isinstance(exc, ScriptExecutionError):
        cause = exc.__cause__
        return RuntimeWithLine(
            failure=exc,
            message=str(exc),
            line=exc.lineno,
            cause=classify_exception(cause, filename=filename) if cause is not None else None,
            frames=extract_frames(exc.__traceback__),
        )

    if isinstance(exc, SyntaxError) and exc.filename == filename and exc.lineno:
        return SyntaxSpan(
            failure=exc,
            message=f"{type(exc).__name__}: {exc.msg}",
            start_line=exc.lineno,
            end_line=exc.end_lineno or exc.lineno,
            start_column=exc.offset if exc.offset is not None else -1,
            end_column=exc.end_offset if exc.end_offset is not None else -1,
        )

    if isinstance(exc, BaseExceptionGroup):
        messages: list[Message] = []
        for sub in exc.exceptions:
            shape = classify_exception(sub, filename=filename)
            if isinstance(shape, SyntaxSpan):
                messages.append(shape)
            elif isinstance(shape, Opaque) and not shape.frames and shape.cause is None:
                messages.append(PlainText(text=f"{type(sub).__name__}: {sub}"))
            else:
                messages.append(WrappedFailure(shape=shape))
        return CompilationAggregate(failure=exc, messages=tuple(messages))

    return _opaque(exc, set())


class PythonScriptHost:
    """Loads a dialog script and calls into it, reporting failures in original coordinates."""

    def __init__(self, *, filename: str = SCRIPT_FILENAME) -> None:
        self.filename = filename
        self.namespace: dict[str, Any] = {}
        self.reader: IncludeProcessor | None = None
        self.normalizer = DiagnosticNormalizer(
            None,
            is_script_frame=self.is_script_frame,
            classify=self.classify,
        )

    def is_script_frame(self, frame: Frame) -> bool:
        return frame.filename == self.filename

    def classify(self, exc: BaseException) -> Shape:
        return classify_exception(exc, filename=self.filename)

    @property
    def output(self) -> list[str]:
        return self.namespace.setdefault("OUTPUT", [])

    def load(
        self,
        locator: str | Path,
        *,
        encoding: str = "utf-8",
        include_path: list[str | Path] | None = None,
        stdlib: bool = True,
    ) -> dict[str, Any]:
        reader = IncludeProcessor.open(
            locator, encoding=encoding, include_path=include_path or (), stdlib=stdlib
        )
        return self._load(reader)

    def load_stream(self, stream: TextIO, *, base: str | Path | None = None) -> dict[str, Any]:
        return self._load(IncludeProcessor(stream, base=base))

    def load_source(self, src: str, *, base: str | Path | None = None) -> dict[str, Any]:
        return self.load_stream(io.StringIO(src), base=base)

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        fn = self.namespace.get(name)
        if not callable(fn):
            raise KeyError(f"script defines no callable {name!r}")
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            diag = self._diagnose(e)
            if diag is None or diag is e:
                raise
            raise diag from e

    def _load(self, reader: IncludeProcessor) -> dict[str, Any]:
        with reader:
            text = reader.read()
        self.reader = reader
        self.normalizer.translator = reader
        logger.debug("compiling %d flattened lines as %s", reader.line, self.filename)

        try:
            code = compile(text, self.filename, "exec")
        except SyntaxError as e:
            diag = self._diagnose(e)
            if diag is None:
                raise
            raise diag from e

        self.namespace = {"__name__": "__dialog_script__", "OUTPUT": []}
        self._exec(code)
        return self.namespace

    def _exec(self, code: CodeType) -> None:
        try:
            try:
                exec(code, self.namespace)
            except Exception as e:
                frame = next(
                    (f for f in extract_frames(e.__traceback__) if self.is_script_frame(f)),
                    None,
                )
                raise ScriptExecutionError(
                    f"{type(e).__name__}: {e}", frame.line if frame is not None else -1
                ) from e
        except ScriptExecutionError as e:
            diag = self._diagnose(e)
            if diag is None:
                raise
            raise diag from e

    def _diagnose(self, exc: Exception) -> ScriptDiagnostic | None:
        out = self.normalizer.normalize(exc)
        return out if isinstance(out, ScriptDiagnostic) else None
