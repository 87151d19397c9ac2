from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from .diagnostics import DiagnosticAggregate, ScriptDiagnostic
from .errors import TranslationError
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
    walk_frames,
)
from .spans import CodeLocation


logger = logging.getLogger(__name__)


class Translator(Protocol):
    def translate(self, line: int) -> CodeLocation: ...


Classifier = Callable[[BaseException], Shape]
FramePredicate = Callable[[Frame], bool]


class DiagnosticNormalizer:
    """Turn compiler/runtime failures into diagnostics located in original sources.

    ``translator`` maps 0-based flattened lines to original locations (normally
    the :class:`~scriptmap.include.IncludeProcessor` that produced the script;
    None means flattened lines are original lines). ``is_script_frame`` decides
    which call-chain frames belong to compiled script code, and ``classify``
    converts raw host exceptions into shapes.
    """

    def __init__(
        self,
        translator: Translator | None,
        *,
        is_script_frame: FramePredicate,
        classify: Classifier | None = None,
    ) -> None:
        self.translator = translator
        self.is_script_frame = is_script_frame
        self.classify = classify

    def normalize(self, failure: object) -> object:
        """Return a ScriptDiagnostic for ``failure``, or ``failure`` itself if no location is known."""
        if isinstance(failure, ScriptDiagnostic):
            return failure

        shape = self._shape_of(failure)
        out = self._try_normalize(shape)
        if out is not None:
            return out

        logger.debug("Unknown failure, no script location found in call chain: %r", failure)
        return failure

    def normalize_error(self, exc: BaseException) -> BaseException:
        """Like :meth:`normalize`, for use in ``raise``."""
        out = self.normalize(exc)
        if not isinstance(out, BaseException):
            raise TypeError(f"normalizer returned a non-exception: {out!r}")
        return out

    def translate(self, line: int) -> CodeLocation:
        """Translate a 0-based flattened line."""
        if line < 0:
            raise TranslationError(location=None, message=f"negative line number {line}", line=line)
        if self.translator is None:
            return CodeLocation(source=None, line=line)
        return self.translator.translate(line)

    def _shape_of(self, failure: object) -> Shape:
        if isinstance(failure, (RuntimeWithLine, SyntaxSpan, CompilationAggregate, Opaque)):
            return failure
        if isinstance(failure, BaseException) and self.classify is not None:
            return self.classify(failure)
        return Opaque(failure=failure)

    def _try_normalize(self, shape: Shape) -> ScriptDiagnostic | None:
        if isinstance(shape, RuntimeWithLine):
            return self._runtime(shape)
        if isinstance(shape, CompilationAggregate):
            return self._aggregate(shape)
        if isinstance(shape, SyntaxSpan):
            return self._syntax(shape)
        return self._from_frames(shape)

    def _runtime(self, shape: RuntimeWithLine) -> ScriptDiagnostic | None:
        # Runtime failures are often wrapped several times, and only some of
        # the wrappers know the line. Unwrap until one does, or until the
        # chain turns into something else.
        cur: Shape | None = shape
        while isinstance(cur, RuntimeWithLine):
            if cur.line > 0:
                return ScriptDiagnostic.at(shape.failure, self.translate(cur.line - 1))
            cur = cur.cause

        if cur is not None and not isinstance(cur, Opaque):
            out = self._try_normalize(cur)
            if out is not None:
                return out
        return self._from_frames(shape)

    def _aggregate(self, shape: CompilationAggregate) -> ScriptDiagnostic:
        children = [self._message(m) for m in shape.messages]
        if len(children) == 1:
            return children[0]
        return DiagnosticAggregate(shape.failure, children)

    def _message(self, m: Message) -> ScriptDiagnostic:
        if isinstance(m, SyntaxSpan):
            return self._syntax(m)
        if isinstance(m, WrappedFailure):
            out = self._try_normalize(m.shape)
            if out is not None:
                return out
            # Nothing located, still report it as part of the aggregate.
            return ScriptDiagnostic(m.shape.failure)
        if isinstance(m, PlainText):
            return ScriptDiagnostic(m.text, message=m.text)
        raise AssertionError(f"unknown compilation message: {m!r}")

    def _syntax(self, shape: SyntaxSpan) -> ScriptDiagnostic:
        start = self.translate(shape.start_line - 1)
        end = start
        if shape.end_line > 0 and shape.end_line != shape.start_line:
            end = self.translate(shape.end_line - 1)
        if start.source != end.source:
            raise TranslationError(
                location=start,
                message=f"syntax error spans two sources: {start.format()} .. {end.format()}",
            )
        return ScriptDiagnostic(
            shape.failure,
            source=start.source,
            start_line=start.line + 1,
            end_line=end.line + 1,
            start_column=shape.start_column,
            end_column=shape.end_column,
            message=shape.message,
        )

    def _from_frames(self, shape: Shape) -> ScriptDiagnostic | None:
        for frame in walk_frames(shape):
            if not self.is_script_frame(frame):
                continue
            if frame.line <= 0:
                raise TranslationError(
                    location=None,
                    message=f"script frame {frame.name!r} has no usable line number ({frame.line})",
                    line=frame.line,
                )
            return ScriptDiagnostic.at(shape.failure, self.translate(frame.line - 1))
        return None