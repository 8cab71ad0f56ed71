import math

import pytest

from polyseg.curves import (
    arc_quadrant,
    arcline_param_from_point,
    arcline_points,
    arcseg_adjust_point,
    arcseg_points,
    bezier_points,
    elliptical_arc_points,
    parabola_adjust_point,
    parabola_param_from_point,
    parabola_points,
)
from polyseg.types import ArcQuad, ClockSense, Point


def _close(p: Point, x: float, y: float, tol: float = 1e-6) -> bool:
    return abs(p.x - x) <= tol and abs(p.y - y) <= tol


def test_quadratic_bezier_midpoint() -> None:
    pts = bezier_points([Point(0, 0), Point(50, 100), Point(100, 0)], 3)
    assert len(pts) == 3
    assert _close(pts[0], 0, 0)
    assert _close(pts[1], 50, 50)
    assert _close(pts[2], 100, 0)


def test_bezier_is_placed() -> None:
    pts = bezier_points([Point(0, 0), Point(10, 0), Point(20, 0), Point(30, 0)], 4, (2.0, 1.0), (5.0, 5.0))
    assert _close(pts[0], 5, 5)
    assert _close(pts[-1], 65, 5)


def test_parabola_short_chord_has_no_samples() -> None:
    assert parabola_points(Point(0, 0), Point(0.5, 0), 20, 0, 10) == []
    assert parabola_points(Point(0, 0), Point(100, 0), 0.5, 0, 10) == []


def test_parabola_apex() -> None:
    pts = parabola_points(Point(0, 0), Point(100, 0), 20, 0, 101)
    assert len(pts) == 101
    assert _close(pts[0], 0, 0)
    assert _close(pts[50], 50, 20)
    assert _close(pts[-1], 100, 0)


def test_parabola_handle_round_trip() -> None:
    handle = parabola_adjust_point(Point(0, 0), Point(100, 0), 20, 0)
    assert handle is not None and _close(handle, 50, 20)
    assert parabola_param_from_point(Point(0, 0), Point(100, 0), handle) == pytest.approx((20, 0))


def test_parabola_reversed_chord() -> None:
    handle = parabola_adjust_point(Point(100, 0), Point(0, 0), 20, 0)
    assert handle is not None and _close(handle, 50, -20)
    bulge, shift = parabola_param_from_point(Point(100, 0), Point(0, 0), handle)
    assert bulge == pytest.approx(20)
    assert shift == pytest.approx(0)


def test_parabola_slanted_round_trip() -> None:
    p0, p1 = Point(0, 0), Point(80, 60)
    handle = parabola_adjust_point(p0, p1, 15, 6)
    bulge, shift = parabola_param_from_point(p0, p1, handle)
    assert bulge == pytest.approx(15)
    assert shift == pytest.approx(6)


def test_parabola_handle_needs_a_chord() -> None:
    assert parabola_adjust_point(Point(1, 1), Point(1, 1), 10, 0) is None
    assert parabola_param_from_point(Point(1, 1), Point(1.5, 1), Point(5, 5)) is None


@pytest.mark.parametrize(
    "end, sense, rotation, quadrant",
    [
        (Point(10, 10), ClockSense.CLOCKWISE, -math.pi / 2, ArcQuad.BL),
        (Point(-10, 10), ClockSense.CLOCKWISE, 0.0, ArcQuad.BR),
        (Point(10, -10), ClockSense.CLOCKWISE, 0.0, ArcQuad.TL),
        (Point(-10, -10), ClockSense.CLOCKWISE, -math.pi / 2, ArcQuad.TR),
        (Point(10, -10), ClockSense.COUNTER_CLOCKWISE, math.pi / 2, ArcQuad.TR),
    ],
)
def test_arc_quadrant(end: Point, sense: ClockSense, rotation: float, quadrant: ArcQuad) -> None:
    got_rotation, got_quadrant = arc_quadrant(Point(0, 0), end, 0.0, sense)
    assert got_quadrant is quadrant
    assert got_rotation == pytest.approx(rotation)


def test_arcseg_is_a_quarter_circle() -> None:
    pts = arcseg_points(Point(0, 0), Point(10, 10), 0.0, ArcQuad.BL, 20)
    assert len(pts) == 20
    assert _close(pts[0], 0, 0)
    assert _close(pts[-1], 10, 10)
    for p in pts:
        assert math.hypot(p.x - 10, p.y) == pytest.approx(10)


def test_arcseg_adjust_point_is_the_corner() -> None:
    assert arcseg_adjust_point(Point(0, 0), Point(10, 10), 0.0) == Point(10, 0)
    corner = arcseg_adjust_point(Point(0, 0), Point(10, 10), math.pi / 2)
    assert corner.x == pytest.approx(0)
    assert corner.y == pytest.approx(10)


def test_arcseg_degenerate_chords_have_no_samples() -> None:
    assert arcseg_points(Point(0, 0), Point(0.2, 0.2), 0.0, ArcQuad.BL, 20) == []
    assert arcseg_points(Point(0, 0), Point(0, 30), 0.0, ArcQuad.BL, 20) == []


def test_arcline_points_lie_on_circle() -> None:
    pts = arcline_points(Point(0, 0), Point(100, 0), 50, 51)
    assert len(pts) == 51
    assert _close(pts[0], 0, 0)
    assert _close(pts[25], 50, 50)
    assert _close(pts[-1], 100, 0)
    for p in pts:
        assert math.hypot(p.x - 50, p.y) == pytest.approx(50)


def test_arcline_zero_curve_has_no_samples() -> None:
    assert arcline_points(Point(0, 0), Point(100, 0), 0, 51) == []
    assert arcline_points(Point(3, 3), Point(3, 3), 20, 51) == []


@pytest.mark.parametrize(
    "handle, expected",
    [
        (Point(50, 1000), 500.0),
        (Point(50, -30), -30.0),
        (Point(50, 0.2), 1.0),
    ],
)
def test_arcline_param_is_clamped(handle: Point, expected: float) -> None:
    assert arcline_param_from_point(Point(0, 0), Point(100, 0), handle) == pytest.approx(expected)


def test_ellipse_through_three_points() -> None:
    pts = elliptical_arc_points(Point(0, 0), Point(50, 50), Point(100, 0), 1.0, 0.0, 3)
    assert len(pts) == 3
    assert _close(pts[0], 0, 0)
    assert _close(pts[1], 50, 50)
    assert _close(pts[2], 100, 0)


def test_ellipse_collinear_falls_back_to_chord() -> None:
    pts = elliptical_arc_points(Point(0, 0), Point(50, 0), Point(100, 0), 1.0, 0.0, 9)
    assert pts == [Point(0, 0), Point(100, 0)]
