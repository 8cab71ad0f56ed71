from __future__ import annotations

import pytest

from polyseg.types import (
    ArcSegData,
    ParabolaData,
    Point,
    PolyList,
    PolySeg,
    Rect,
    LineType,
    RunNode,
    Straight,
)


def test_payload_must_match_line_type() -> None:
    with pytest.raises(TypeError):
        PolySeg(LineType.PARABOLA, Point(10, 0), Straight())
    with pytest.raises(TypeError):
        PolySeg(LineType.NURBS, Point(10, 0), RunNode())


def test_make_fills_default_payload() -> None:
    seg = PolySeg.make(LineType.ARCSEGLINE, 5, 7)
    assert isinstance(seg.data, ArcSegData)
    assert seg.pt == Point(5.0, 7.0)

    seg = PolySeg.make(2, 1, 1)
    assert seg.line_type is LineType.ARCLINE


def test_poly_list_starts_with_anchor() -> None:
    chain = PolyList()
    assert len(chain.segs) == 1
    assert chain.segs[0].pt == Point(0.0, 0.0)
    assert not chain.closed


def test_rect_helpers() -> None:
    rect = Rect.from_points(Point(10, 20), Point(0, 0))
    assert (rect.x, rect.y, rect.width, rect.height) == (0, 0, 10, 20)
    assert rect.center() == Point(5, 10)
    assert rect.contains(Point(10, 20))
    assert not rect.contains(Point(10.5, 20))
    grown = rect.inflated(1, 2)
    assert (grown.x, grown.y, grown.width, grown.height) == (-1, -2, 12, 24)


def test_point_arithmetic() -> None:
    a = Point(3, 4)
    assert a - Point(3, 0) == Point(0, 4)
    assert a + Point(1, 1) == Point(4, 5)
    assert a.distance_to(Point()) == pytest.approx(5.0)
    assert a.scaled(2, -1) == Point(6, -4)


def test_payloads_are_independent() -> None:
    first = PolySeg.make(LineType.PARABOLA, 10, 0)
    second = PolySeg.make(LineType.PARABOLA, 20, 0)
    assert isinstance(first.data, ParabolaData)
    first.data.bulge = 12.0
    assert second.data.bulge == 0.0
