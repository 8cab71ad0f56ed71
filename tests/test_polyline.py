from __future__ import annotations

from typing import List, Sequence, Tuple

import pytest

from polyseg.metrics import MetricsTracker, use_tracker
from polyseg.polygon import Polygon
from polyseg.polyline import PolyLine
from polyseg.types import (
    ArcLineData,
    ArcQuad,
    ArcSegData,
    CanvasPolicy,
    EllipseData,
    BezierData,
    FlipFlags,
    HitCode,
    HitResult,
    HookPoint,
    LineStyle,
    LineType,
    ParabolaData,
    Point,
    PolySeg,
)


def _pts(coords: Sequence[Tuple[float, float]]) -> List[Point]:
    return [Point(float(x), float(y)) for x, y in coords]


def _xy(points: Sequence[Point]) -> List[Tuple[float, float]]:
    return [(p.x, p.y) for p in points]


def _flat(points: Sequence[Point]) -> List[float]:
    return [c for p in points for c in (p.x, p.y)]


def _rectangle(**kwargs) -> PolyLine:
    return PolyLine.from_points(_pts([(0, 0), (100, 0), (100, 50), (0, 50)]), closed=True, **kwargs)


def _curvy() -> PolyLine:
    segs = [
        PolySeg(),
        PolySeg.make(LineType.LINE, 100, 0),
        PolySeg.make(LineType.PARABOLA, 200, 0, ParabolaData(bulge=20)),
        PolySeg.make(LineType.ARCLINE, 200, 100, ArcLineData(curve=30)),
        PolySeg.make(LineType.ELLIPSE, 200, 100, EllipseData(rotation_tenths=300)),
        PolySeg.make(LineType.ELLIPSEEND, 150, 150, BezierData()),
        PolySeg.make(LineType.ELLIPSEEND, 100, 100, BezierData()),
    ]
    return PolyLine(Point(0, 0), segs)


def test_short_parabola_is_drawn_between_its_anchors() -> None:
    shape = PolyLine(
        Point(10, 10),
        [PolySeg(), PolySeg.make(LineType.PARABOLA, 0.5, 0, ParabolaData(bulge=20))],
    )
    assert _xy(shape.get_poly_points(absolute=True)) == [(10, 10), (10.5, 10)]


def test_from_points_requires_points() -> None:
    with pytest.raises(ValueError):
        PolyLine.from_points([])


def test_closed_chain_is_sealed() -> None:
    shape = _rectangle()
    segs = shape.polylist.segs
    assert len(segs) == 5
    assert segs[-1].pt == segs[0].pt
    assert shape.end_point == shape.start_point
    assert (shape.polylist.dim.x, shape.polylist.dim.y) == (100, 50)
    assert shape.get_scale() == (1.0, 1.0)


def test_frame_relative_points() -> None:
    shape = PolyLine.from_points(_pts([(10, 20), (110, 20), (110, 70)]))
    assert _xy(shape.get_poly_points(all_segments=True)) == [(0, 0), (100, 0), (100, 50)]
    assert _xy(shape.get_poly_points(absolute=True, all_segments=True)) == [(10, 20), (110, 20), (110, 70)]


def test_border_inflates_closed_frame() -> None:
    shape = _rectangle(style=LineStyle(thickness=4, border_thickness=1))
    assert (shape.inside.x, shape.inside.width) == (0, 100)
    assert (shape.frame.x, shape.frame.y, shape.frame.width, shape.frame.height) == (-2, -2, 104, 54)
    assert shape.get_scale() == (1.0, 1.0)


def test_scale_object_is_linear() -> None:
    shape = PolyLine.from_points(_pts([(10, 10), (110, 10), (110, 60)]))
    shape.scale_object(scale_x=2, scale_y=3)
    assert _xy(shape.get_poly_points(absolute=True, all_segments=True)) == [(20, 30), (220, 30), (220, 180)]
    frame = shape.frame
    assert (frame.x, frame.y, frame.width, frame.height) == (20, 30, 200, 150)


def test_scale_closed_rectangle_updates_dim() -> None:
    shape = _rectangle()
    shape.scale_object(scale_x=2, scale_y=3)
    assert (shape.polylist.dim.x, shape.polylist.dim.y) == (200, 150)
    assert _xy(shape.get_poly_points(absolute=True, all_segments=True)) == [
        (0, 0),
        (200, 0),
        (200, 150),
        (0, 150),
        (0, 0),
    ]


def test_scale_object_offsets_and_rotates() -> None:
    shape = PolyLine.from_points(_pts([(0, 0), (100, 0)]))
    shape.scale_object(offset_x=5, offset_y=7, center=Point(5, 7), rotation=90, scale_x=1, scale_y=1)
    assert shape.start_point == Point(5, 7)
    assert shape.end_point.x == pytest.approx(5)
    assert shape.end_point.y == pytest.approx(107)


def test_scale_object_adjusts_thickness() -> None:
    shape = PolyLine.from_points(_pts([(0, 0), (100, 0)]), style=LineStyle(thickness=2))
    shape.scale_object(scale_x=3, scale_y=1.5, adjust_thickness=True)
    assert shape.style.thickness == pytest.approx(6)


def test_scale_keeps_parabola_handle_proportional() -> None:
    shape = PolyLine(
        Point(0, 0),
        [PolySeg(), PolySeg.make(LineType.PARABOLA, 100, 0, ParabolaData(bulge=20))],
    )
    shape.scale_object(scale_x=2, scale_y=2)
    data = shape.polylist.segs[1].data
    assert data.bulge == pytest.approx(40)
    assert shape.frame.height == pytest.approx(40, abs=0.01)


def test_set_size_open_chain() -> None:
    shape = PolyLine.from_points(_pts([(10, 10), (110, 10), (110, 60)]))
    shape.set_size(200, 100)
    assert shape.start_point == Point(10, 10)
    assert shape.end_point == Point(210, 110)
    frame = shape.frame
    assert (frame.x, frame.y, frame.width, frame.height) == (10, 10, 200, 100)


def test_flip_twice_restores_the_outline() -> None:
    shape = _curvy()
    before = _xy(shape.get_poly_points(absolute=True))

    shape.flip(FlipFlags.HORIZONTAL)
    assert shape.start_point == Point(200, 0)
    assert shape.polylist.segs[3].data.curve == pytest.approx(-30)
    assert shape.polylist.segs[4].data.rotation_tenths == pytest.approx(3300)
    assert shape.polylist.segs[2].data.bulge == pytest.approx(-20)

    shape.flip(FlipFlags.HORIZONTAL)
    after = _xy(shape.get_poly_points(absolute=True))
    assert len(after) == len(before)
    for got, want in zip(after, before):
        assert got == pytest.approx(want, abs=1e-6)
    assert shape.polylist.segs[2].data.bulge == pytest.approx(20)
    assert shape.polylist.segs[3].data.curve == pytest.approx(30)
    assert shape.polylist.segs[4].data.rotation_tenths == pytest.approx(300)


def test_vertical_flip_mirrors_parabola_side() -> None:
    shape = PolyLine(
        Point(0, 0),
        [PolySeg(), PolySeg.make(LineType.PARABOLA, 100, 0, ParabolaData(bulge=20))],
    )
    shape.flip(FlipFlags.VERTICAL)
    # the apex now sits above the chord
    ys = [p.y for p in shape.get_poly_points(absolute=True)]
    assert min(ys) == pytest.approx(0, abs=0.01)
    assert max(ys) == pytest.approx(20, abs=0.01)
    assert shape.start_point.y == pytest.approx(20, abs=0.01)


def test_flip_arc_segment_swaps_quadrant() -> None:
    shape = PolyLine(
        Point(0, 0),
        [PolySeg(), PolySeg.make(LineType.ARCSEGLINE, 10, 10, ArcSegData(quadrant=ArcQuad.BL))],
    )
    shape.flip(FlipFlags.HORIZONTAL)
    assert shape.polylist.segs[1].data.quadrant is ArcQuad.BR
    shape.flip(FlipFlags.HORIZONTAL)
    assert shape.polylist.segs[1].data.quadrant is ArcQuad.BL


@pytest.mark.parametrize(
    "query, segment",
    [
        (Point(50, 0), 1),
        (Point(100, 25), 2),
        (Point(50, 50), 3),
        (Point(0, 25), 4),
        (Point(50, 25), -1),
    ],
)
def test_poly_hit_seg(query: Point, segment: int) -> None:
    assert _rectangle(style=LineStyle(thickness=2)).poly_hit_seg(query) == segment


def test_hit_reports_curved_segment() -> None:
    shape = PolyLine(
        Point(0, 0),
        [
            PolySeg(),
            PolySeg.make(LineType.LINE, 100, 0),
            PolySeg.make(LineType.PARABOLA, 200, 0, ParabolaData(bulge=40)),
        ],
    )
    result = HitResult()
    assert shape.hit(Point(150, 38), result) is HitCode.BORDER
    assert result.segment == 2


def test_knob_hits() -> None:
    shape = PolyLine.from_points(_pts([(0, 0), (100, 0)]))
    result = HitResult()
    assert shape.hit(Point(3, 4), result, knob=True) is HitCode.PLAPP
    assert result.segment == HookPoint.KTL
    assert result.pt == Point(0, 0)

    result = HitResult()
    assert shape.hit(Point(97, 2), result, knob=True) is HitCode.PLAPP
    assert result.segment == HookPoint.KTR

    assert shape.hit(Point(3, 4), knob=True, hook_point=HookPoint.KTL) is HitCode.NONE
    assert shape.hit(Point(50, 3), knob=True) is HitCode.NONE

    result = HitResult()
    assert shape.hit(Point(50, 3), result) is HitCode.BORDER
    assert result.segment == 1
    assert result.pt == Point(50, 0)


def test_border_only_hit_skips_the_knobs() -> None:
    shape = PolyLine.from_points(_pts([(0, 0), (100, 0)]))
    result = HitResult()
    assert shape.hit(Point(3, 4), result, border_only=True) is HitCode.BORDER
    assert result.segment == 1
    assert (result.pt.x, result.pt.y) == pytest.approx((3, 0))
    assert shape.hit(Point(3, 4), knob=True, border_only=True) is HitCode.NONE


def test_rotation_is_committed() -> None:
    shape = PolyLine.from_points(_pts([(10, 10), (110, 10)]))
    assert shape.after_rotate_shape(Point(10, 10), 0, 90)
    assert shape.start_point == Point(10, 10)
    assert shape.end_point.x == pytest.approx(10)
    assert shape.end_point.y == pytest.approx(110)


def test_rotation_rejected_when_canvas_cannot_grow() -> None:
    shape = PolyLine.from_points(_pts([(10, 10), (110, 10)]))
    before = shape.snapshot()
    tracker = MetricsTracker()
    with use_tracker(tracker):
        assert not shape.after_rotate_shape(Point(10, 10), 0, -90, CanvasPolicy(no_auto_grow=True))
    assert shape.snapshot() == before
    assert tracker.get_count("transform.rejected") == 1


def test_rotation_turns_curve_parameters() -> None:
    shape = _curvy()
    shape.polylist.segs.append(PolySeg.make(LineType.ARCSEGLINE, 150, 200, ArcSegData()))
    shape.after_rotate_shape(shape.frame.center(), 10, 40)
    assert shape.polylist.segs[4].data.rotation_tenths == pytest.approx(600)
    assert shape.polylist.segs[-1].data.rotation == pytest.approx(0.5235987755982988)


# ----------------------------------------------------------------------
# Polygon


def _polygon(**kwargs) -> Polygon:
    return Polygon.from_points(_pts([(0, 0), (100, 0), (100, 50), (0, 50)]), **kwargs)


def test_polygon_is_always_closed() -> None:
    shape = Polygon.from_points(_pts([(0, 0), (10, 0), (10, 10)]), closed=False)
    assert shape.polylist.closed
    assert shape.polylist.segs[-1].pt == Point(0, 0)


def test_polygon_set_size_normalises() -> None:
    shape = _polygon()
    shape.set_size(200, 100)
    assert shape.get_scale() == pytest.approx((2, 2))
    assert (shape.polylist.dim.x, shape.polylist.dim.y) == (100, 50)
    assert shape.polylist.segs[1].pt == Point(100, 0)
    assert _xy(shape.get_poly_points(absolute=True, all_segments=True)) == [
        (0, 0),
        (200, 0),
        (200, 100),
        (0, 100),
        (0, 0),
    ]
    frame = shape.frame
    assert (frame.width, frame.height) == (200, 100)

    shape.scale_object()
    assert shape.get_scale() == (1.0, 1.0)
    assert shape.polylist.segs[1].pt == Point(200, 0)
    assert (shape.polylist.dim.x, shape.polylist.dim.y) == (200, 100)


def test_polygon_set_size_keeps_the_box_origin() -> None:
    shape = Polygon.from_points(_pts([(10, 20), (110, 20), (110, 70), (10, 70)]))
    shape.set_size(50, 25)
    assert shape.start_point == Point(10, 20)
    assert (shape.inside.x, shape.inside.y) == (10, 20)
    assert shape.end_point == Point(10, 20)


def test_resized_polygon_node_edit_keeps_the_scale() -> None:
    shape = Polygon.from_points(_pts([(10, 10), (110, 10), (110, 60), (10, 60)]))
    shape.set_size(200, 100)
    shape.modify_node(2, Point(250, 150))
    assert shape.get_scale() == pytest.approx((2, 2))
    assert _flat(shape.get_poly_points(absolute=True, all_segments=True)) == pytest.approx(
        [10, 10, 210, 10, 250, 150, 10, 110, 10, 10]
    )
    assert (shape.polylist.dim.x, shape.polylist.dim.y) == pytest.approx((120, 70))
    assert (shape.inside.width, shape.inside.height) == pytest.approx((240, 140))


def test_resized_polygon_length_edit_keeps_the_scale() -> None:
    shape = Polygon.from_points(_pts([(10, 10), (110, 10), (110, 60), (10, 60)]))
    shape.set_size(200, 100)
    assert shape.set_segment_length(1, 300)
    assert shape.get_scale() == pytest.approx((2, 2))
    anchors = shape.get_poly_points(absolute=True, all_segments=True)
    assert _flat(anchors[:3]) == pytest.approx([10, 10, 310, 10, 210, 110])
    assert shape.get_segment_length(1) == pytest.approx(300)


def test_polygon_hit_inside_and_border() -> None:
    shape = _polygon()
    result = HitResult()
    assert shape.hit(Point(50, 25), result) is HitCode.INSIDE
    assert shape.hit(Point(50, 1)) is HitCode.INSIDE

    result = HitResult()
    assert shape.hit(Point(50, 1), result, border_only=True) is HitCode.BORDER
    assert result.segment == 1

    result = HitResult()
    assert shape.hit(Point(50, -0.4), result) is HitCode.BORDER
    assert result.segment == 1

    assert shape.hit(Point(50, -10)) is HitCode.NONE
    assert shape.hit(Point(50, 25), knob=True) is HitCode.NONE


def test_transparent_polygon_only_hits_its_stroke() -> None:
    shape = _polygon(style=LineStyle(transparent=True))
    assert shape.hit(Point(50, 25)) is HitCode.NONE
    assert shape.hit(Point(99, 25)) is HitCode.BORDER


def test_rotated_polygon_hit() -> None:
    shape = _polygon()
    shape.rotation_angle = 90.0
    assert shape.hit(Point(50, -10)) is HitCode.INSIDE
