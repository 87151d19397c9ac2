from __future__ import annotations

import logging

import pytest

from scriptmap import (
    CodeLocation,
    DiagnosticAggregate,
    DiagnosticNormalizer,
    OriginTree,
    ScriptDiagnostic,
    TranslationError,
)
from scriptmap.shapes import (
    CompilationAggregate,
    Frame,
    Opaque,
    PlainText,
    RuntimeWithLine,
    SyntaxSpan,
    WrappedFailure,
)


SCRIPT = "<script>"


def _tree() -> OriginTree:
    # Flattened: A0, B0, B1, A2
    t = OriginTree("A")
    t.open_child("B", 1)
    t.close(3)
    t.close(4)
    return t


def _normalizer(**kw) -> DiagnosticNormalizer:
    return DiagnosticNormalizer(_tree(), is_script_frame=lambda f: f.filename == SCRIPT, **kw)


def test_already_normalized_is_returned_unchanged() -> None:
    d = ScriptDiagnostic(ValueError("x"), source="A", start_line=1)
    assert _normalizer().normalize(d) is d


def test_runtime_with_line() -> None:
    err = RuntimeError("boom")
    out = _normalizer().normalize(RuntimeWithLine(failure=err, message="boom", line=3))
    assert isinstance(out, ScriptDiagnostic)
    assert (out.source, out.start_line) == ("B", 2)
    assert out.failure is err
    assert out.__cause__ is err
    assert out.start_column == -1 and out.end_line == -1


def test_runtime_unwraps_until_a_line_is_found() -> None:
    outer = RuntimeError("outer")
    shape = RuntimeWithLine(
        failure=outer,
        message="outer",
        line=0,
        cause=RuntimeWithLine(
            failure=RuntimeError("middle"),
            message="middle",
            line=-1,
            cause=RuntimeWithLine(failure=RuntimeError("inner"), message="inner", line=4),
        ),
    )
    out = _normalizer().normalize(shape)
    assert isinstance(out, ScriptDiagnostic)
    assert (out.source, out.start_line) == ("A", 3)
    assert out.failure is outer


def test_runtime_unwraps_to_other_shape() -> None:
    syntax = SyntaxSpan(failure=SyntaxError("bad"), message="bad", start_line=2, end_line=2)
    shape = RuntimeWithLine(failure=RuntimeError("x"), message="x", line=0, cause=syntax)
    out = _normalizer().normalize(shape)
    assert isinstance(out, ScriptDiagnostic)
    assert (out.source, out.start_line, out.message) == ("B", 1, "bad")


def test_runtime_without_any_line_uses_frames() -> None:
    cause = Opaque(
        failure=ValueError("v"),
        frames=(Frame("helper", "host.py", 10), Frame("on_start", SCRIPT, 4)),
    )
    shape = RuntimeWithLine(failure=RuntimeError("x"), message="x", line=-1, cause=cause)
    out = _normalizer().normalize(shape)
    assert isinstance(out, ScriptDiagnostic)
    assert (out.source, out.start_line) == ("A", 3)


def test_runtime_without_any_location_is_returned_unchanged() -> None:
    shape = RuntimeWithLine(failure=RuntimeError("x"), message="x", line=-1)
    assert _normalizer().normalize(shape) is shape


def test_syntax_span() -> None:
    err = SyntaxError("bad")
    out = _normalizer().normalize(
        SyntaxSpan(failure=err, message="bad", start_line=2, end_line=3, start_column=5, end_column=1)
    )
    assert isinstance(out, ScriptDiagnostic)
    assert out.source == "B"
    assert (out.start_line, out.end_line) == (1, 2)
    assert (out.start_column, out.end_column) == (5, 1)
    assert str(out) == "FILE: B\nLINE: 1\nbad"


def test_syntax_span_across_sources_is_error() -> None:
    shape = SyntaxSpan(failure=SyntaxError("bad"), message="bad", start_line=1, end_line=2)
    with pytest.raises(TranslationError):
        _normalizer().normalize(shape)


def test_single_compilation_error_is_not_aggregated() -> None:
    shape = CompilationAggregate(
        failure=Exception("compile"),
        messages=(SyntaxSpan(failure=None, message="bad", start_line=4, end_line=4),),
    )
    out = _normalizer().normalize(shape)
    assert type(out) is ScriptDiagnostic
    assert (out.source, out.start_line) == ("A", 3)


def test_multiple_compilation_errors_are_aggregated() -> None:
    failure = Exception("compile")
    shape = CompilationAggregate(
        failure=failure,
        messages=(
            SyntaxSpan(failure=None, message="first", start_line=2, end_line=2, start_column=3),
            WrappedFailure(RuntimeWithLine(failure=ValueError("w"), message="w", line=4)),
            PlainText("something odd"),
        ),
    )
    out = _normalizer().normalize(shape)
    assert isinstance(out, DiagnosticAggregate)
    assert len(out.children) == 3
    first = out.children[0]
    assert (out.source, out.start_line, out.start_column) == (first.source, first.start_line, first.start_column)
    assert (out.source, out.start_line) == ("B", 1)
    assert out.children[1].source == "A"
    assert out.children[2].source is None and out.children[2].message == "something odd"
    assert out.failure is failure

    text = str(out)
    assert text.startswith("3 script errors:\n")
    for child in out.children:
        assert str(child) in text


def test_wrapped_failure_without_location_is_kept() -> None:
    err = ValueError("lost")
    shape = CompilationAggregate(
        failure=Exception("compile"),
        messages=(WrappedFailure(Opaque(failure=err)), PlainText("x")),
    )
    out = _normalizer().normalize(shape)
    assert isinstance(out, DiagnosticAggregate)
    assert out.children[0].failure is err
    assert out.children[0].start_line == -1
    assert out.children[0].location is None


def test_opaque_first_script_frame_wins() -> None:
    err = KeyError("k")
    shape = Opaque(
        failure=err,
        frames=(Frame("dispatch", "host.py", 99),),
        cause=Opaque(
            failure=ValueError("inner"),
            frames=(Frame("react", SCRIPT, 2), Frame("react_outer", SCRIPT, 4)),
        ),
    )
    out = _normalizer().normalize(shape)
    assert isinstance(out, ScriptDiagnostic)
    assert (out.source, out.start_line, out.end_line) == ("B", 1, -1)
    assert out.failure is err


def test_opaque_without_script_frame_is_returned_unchanged(caplog: pytest.LogCaptureFixture) -> None:
    err = KeyError("k")
    shape = Opaque(failure=err, frames=(Frame("dispatch", "host.py", 99),))
    with caplog.at_level(logging.DEBUG, logger="scriptmap.normalizer"):
        assert _normalizer().normalize(shape) is shape
    assert "no script location found" in caplog.text


def test_script_frame_without_line_is_error() -> None:
    shape = Opaque(failure=KeyError("k"), frames=(Frame("react", SCRIPT, 0),))
    with pytest.raises(TranslationError):
        _normalizer().normalize(shape)


@pytest.mark.parametrize("line,expected", [(4, CodeLocation("A", 2)), (5, None)])
def test_last_line_boundary(line: int, expected: CodeLocation | None) -> None:
    # A host that counts one line too many must fail loudly, not point elsewhere.
    shape = RuntimeWithLine(failure=RuntimeError("x"), message="x", line=line)
    if expected is None:
        with pytest.raises(TranslationError):
            _normalizer().normalize(shape)
    else:
        out = _normalizer().normalize(shape)
        assert isinstance(out, ScriptDiagnostic)
        assert out.location == expected


def test_raw_exceptions_go_through_classifier() -> None:
    err = ValueError("v")
    n = _normalizer(classify=lambda e: RuntimeWithLine(failure=e, message=str(e), line=2))
    out = n.normalize(err)
    assert isinstance(out, ScriptDiagnostic)
    assert out.failure is err
    assert (out.source, out.start_line) == ("B", 1)
    assert n.normalize_error(err) is not err


def test_raw_exception_without_classifier_is_returned_unchanged() -> None:
    err = ValueError("v")
    n = _normalizer()
    assert n.normalize(err) is err
    assert n.normalize_error(err) is err


def test_without_translator_lines_are_original() -> None:
    n = DiagnosticNormalizer(None, is_script_frame=lambda f: True)
    out = n.normalize(RuntimeWithLine(failure=RuntimeError("x"), message="x", line=7))
    assert isinstance(out, ScriptDiagnostic)
    assert (out.source, out.start_line) == (None, 7)
