from typing import List

import pytest

from polyseg.config import EngineConfig
from polyseg.tessellate import Placement, tessellate
from polyseg.types import (
    ArcLineData,
    ArcSegData,
    BezierData,
    LineType,
    ParabolaData,
    Point,
    PolyList,
    PolySeg,
)


def _rectangle() -> PolyList:
    return PolyList(
        segs=[
            PolySeg(),
            PolySeg.make(LineType.LINE, 100, 0),
            PolySeg.make(LineType.LINE, 100, 50),
            PolySeg.make(LineType.LINE, 0, 50),
            PolySeg.make(LineType.LINE, 0, 0),
        ],
        closed=True,
    )


def test_rectangle_outline() -> None:
    pts = tessellate(_rectangle(), Placement(Point(10, 20)), samples=8)
    assert pts == [Point(10, 20), Point(110, 20), Point(110, 70), Point(10, 70), Point(10, 20)]


def test_degenerate_curves_tessellate_to_their_anchors() -> None:
    chain = PolyList(
        segs=[PolySeg(), PolySeg.make(LineType.PARABOLA, 0.5, 0, ParabolaData(bulge=20))]
    )
    boundaries: List[int] = []
    pts = tessellate(chain, Placement(Point(10, 10)), samples=20, boundaries=boundaries)
    assert pts == [Point(10, 10), Point(10.5, 10)]
    assert boundaries == [1]

    chain = PolyList(segs=[PolySeg(), PolySeg.make(LineType.ARCSEGLINE, 0, 30, ArcSegData())])
    assert tessellate(chain, Placement(Point(0, 0)), samples=20) == [Point(0, 0), Point(0, 30)]


def test_anchors_only() -> None:
    chain = PolyList(
        segs=[
            PolySeg(),
            PolySeg.make(LineType.PARABOLA, 100, 0, ParabolaData(bulge=30)),
            PolySeg.make(LineType.LINE, 100, 40),
        ]
    )
    pts = tessellate(chain, Placement(Point(0, 0), 2.0, 1.0), samples=20, all_segments=True)
    assert pts == [Point(0, 0), Point(200, 0), Point(200, 40)]


def test_first_and_last_point_are_anchors() -> None:
    chain = PolyList(
        segs=[
            PolySeg(),
            PolySeg.make(LineType.ARCLINE, 100, 0, ArcLineData(curve=25)),
            PolySeg.make(LineType.PARABOLA, 100, 80, ParabolaData(bulge=-10)),
        ]
    )
    placement = Placement(Point(5, 5))
    pts = tessellate(chain, placement, samples=12)
    assert pts[0] == Point(5, 5)
    assert pts[-1] == Point(105, 85)


def test_boundaries_mark_segment_ends() -> None:
    chain = PolyList(
        segs=[
            PolySeg(),
            PolySeg.make(LineType.LINE, 100, 0),
            PolySeg.make(LineType.PARABOLA, 200, 0, ParabolaData(bulge=20)),
        ]
    )
    boundaries: List[int] = []
    pts = tessellate(chain, Placement(Point(0, 0)), samples=10, boundaries=boundaries)
    assert boundaries == [1, 12]
    assert len(pts) == 13
    assert pts[-1] == Point(200, 0)


def test_cubic_bezier_run() -> None:
    chain = PolyList(
        segs=[
            PolySeg(),
            PolySeg.make(LineType.CUBEBEZ, 0, 0, BezierData()),
            PolySeg.make(LineType.CUBEBEZCON, 30, 50, BezierData()),
            PolySeg.make(LineType.CUBEBEZCON, 70, 50, BezierData()),
            PolySeg.make(LineType.CUBEBEZCON, 100, 0, BezierData()),
        ]
    )
    boundaries: List[int] = []
    pts = tessellate(chain, Placement(Point(0, 0)), samples=9, boundaries=boundaries)
    assert len(pts) == 10
    assert (pts[-1].x, pts[-1].y) == pytest.approx((100, 0))
    # continuation entries add no points but still close a segment
    assert boundaries == [9, 9, 9, 9]


def test_arcline_uses_configured_density() -> None:
    chain = PolyList(
        segs=[PolySeg(), PolySeg.make(LineType.ARCLINE, 100, 0, ArcLineData(curve=30))]
    )
    pts = tessellate(chain, Placement(Point(0, 0)), samples=4, config=EngineConfig(arc_points=7))
    assert len(pts) == 1 + 7 + 1
