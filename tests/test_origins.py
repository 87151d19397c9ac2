from __future__ import annotations

import pytest

from scriptmap import CodeLocation, OriginTree, TranslationError


def _scenario() -> OriginTree:
    # A (3 lines) includes B (2 lines) on its second line.
    t = OriginTree("A")
    t.open_child("B", 1)
    t.close(3)
    t.close(4)
    return t


def _nested() -> OriginTree:
    # A: a0, #include B, a2    B: b0, #include C, b2    C: c0, c1
    t = OriginTree("A")
    t.open_child("B", 1)
    t.open_child("C", 2)
    t.close(4)
    t.close(5)
    t.close(6)
    return t


def test_scenario_translation() -> None:
    t = _scenario()
    assert t.translate(0) == CodeLocation("A", 0)
    assert t.translate(1) == CodeLocation("B", 0)
    assert t.translate(2) == CodeLocation("B", 1)
    assert t.translate(3) == CodeLocation("A", 2)


def test_nested_translation() -> None:
    t = _nested()
    got = [t.translate(i) for i in range(6)]
    assert got == [
        CodeLocation("A", 0),
        CodeLocation("B", 0),
        CodeLocation("C", 0),
        CodeLocation("C", 1),
        CodeLocation("B", 2),
        CodeLocation("A", 2),
    ]


def test_empty_include_shifts_following_lines() -> None:
    t = OriginTree("A")
    t.open_child("E", 1)
    t.close(1)
    t.close(2)
    assert t.translate(0) == CodeLocation("A", 0)
    assert t.translate(1) == CodeLocation("A", 2)


def test_no_children_is_identity() -> None:
    t = OriginTree("A")
    t.close(5)
    assert [t.translate(i).line for i in range(5)] == list(range(5))


@pytest.mark.parametrize("line", [-1, 4, 100])
def test_out_of_range_is_error(line: int) -> None:
    with pytest.raises(TranslationError) as e:
        _scenario().translate(line)
    assert e.value.line == line
    assert "not inside span" in str(e.value)


def test_open_root_extends_to_end() -> None:
    t = OriginTree("A")
    t.open_child("B", 1)
    t.close(3)
    # Root still open: every line after B belongs to A.
    assert t.translate(50) == CodeLocation("A", 49)
    assert not t.closed


def test_close_and_open_after_close_are_bugs() -> None:
    t = _scenario()
    assert t.closed
    with pytest.raises(RuntimeError):
        t.close(4)
    with pytest.raises(RuntimeError):
        t.open_child("X", 4)


def test_close_before_start_is_bug() -> None:
    t = OriginTree("A")
    t.open_child("B", 3)
    with pytest.raises(RuntimeError):
        t.close(2)


def test_spans_preorder() -> None:
    out = [(d, s.format()) for d, s in _nested().spans()]
    assert out == [(0, "A:0→6"), (1, "B:1→5"), (2, "C:2→4")]


def test_current_and_depth_follow_open_spans() -> None:
    t = OriginTree("A")
    assert t.current == 0
    b = t.open_child("B", 0)
    assert t.current == b and t.depth == 2
    assert t[b].parent == 0
    assert t.close(2) == 0
    assert t.root.children == [b]
    assert t.close(2) is None
    assert len(t) == 2
