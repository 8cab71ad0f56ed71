"""Walk a segment chain and stitch the per-kind evaluators together."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from . import curves, nurbs
from .config import EngineConfig
from .metrics import count
from .types import (
    ArcLineData,
    ArcSegData,
    EllipseData,
    LineType,
    ParabolaData,
    Point,
    PolyList,
)


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    """Where chain-relative points land: ``pt * scale + origin``."""

    origin: Point
    scale_x: float = 1.0
    scale_y: float = 1.0

    @property
    def scale(self):
        return (self.scale_x, self.scale_y)

    @property
    def offset(self):
        return (self.origin.x, self.origin.y)

    def place(self, pt: Point) -> Point:
        return Point(pt.x * self.scale_x + self.origin.x, pt.y * self.scale_y + self.origin.y)


_STRAIGHT = (LineType.LINE, LineType.MOVETO, LineType.MOVETO_NEWPOLY)


def tessellate(
    chain: PolyList,
    placement: Placement,
    samples: int,
    all_segments: bool = False,
    boundaries: Optional[List[int]] = None,
    config: Optional[EngineConfig] = None,
) -> List[Point]:
    """Return the sampled outline of *chain*.

    With *all_segments* only the segment endpoints are emitted, one per
    segment. Otherwise each segment is sampled by its evaluator; when
    *boundaries* is given it receives, for every segment after the anchor,
    the index of that segment's last point in the result.
    """

    cfg = config or EngineConfig()
    segs = chain.segs
    count("tessellate.calls")
    if not segs:
        return []
    if all_segments:
        return [placement.place(seg.pt) for seg in segs]

    scale = placement.scale
    offset = placement.offset
    points: List[Point] = [placement.place(segs[0].pt)]
    nseg = len(segs)

    for i in range(1, nseg):
        seg = segs[i]
        kind = seg.line_type
        prev = segs[i - 1].pt

        if kind in _STRAIGHT:
            points.append(placement.place(seg.pt))
        elif kind in (LineType.NURBS, LineType.SPLINE):
            tail = LineType.NURBSSEG if kind == LineType.NURBS else LineType.SPLINECON
            if i < nseg - 1 and segs[i + 1].line_type == tail:
                length = nurbs.run_chord_length(segs, i)
                dense = math.floor(length / cfg.run_pixels_per_sample * cfg.doc_scale)
                dense = max(dense, samples)
                points.extend(nurbs.run_points(segs, i, dense, scale, offset))
            else:
                points.append(placement.place(seg.pt))
        elif kind == LineType.QUADBEZ:
            if i + 2 < nseg:
                points.extend(curves.bezier_points([s.pt for s in segs[i : i + 3]], samples, scale, offset))
            else:
                points.append(placement.place(seg.pt))
        elif kind == LineType.CUBEBEZ:
            if i + 3 < nseg:
                points.extend(curves.bezier_points([s.pt for s in segs[i : i + 4]], samples, scale, offset))
            else:
                points.append(placement.place(seg.pt))
        elif kind == LineType.ELLIPSE:
            data = seg.data
            assert isinstance(data, EllipseData)
            if i + 2 < nseg:
                points.extend(
                    curves.elliptical_arc_points(
                        seg.pt,
                        segs[i + 1].pt,
                        segs[i + 2].pt,
                        data.eccentricity,
                        data.rotation_tenths,
                        samples,
                        scale,
                        offset,
                    )
                )
            else:
                points.append(placement.place(seg.pt))
        elif kind == LineType.PARABOLA:
            data = seg.data
            assert isinstance(data, ParabolaData)
            points.extend(curves.parabola_points(prev, seg.pt, data.bulge, data.offset, samples, scale, offset))
            points.append(placement.place(seg.pt))
        elif kind == LineType.ARCSEGLINE:
            data = seg.data
            assert isinstance(data, ArcSegData)
            points.extend(curves.arcseg_points(prev, seg.pt, data.rotation, data.quadrant, samples, scale, offset))
            points.append(placement.place(seg.pt))
        elif kind == LineType.ARCLINE:
            data = seg.data
            assert isinstance(data, ArcLineData)
            if data.curve != 0:
                points.extend(curves.arcline_points(prev, seg.pt, data.curve, cfg.arc_points, scale, offset))
            points.append(placement.place(seg.pt))
        # continuation entries are consumed by the segment that opened them

        if boundaries is not None:
            boundaries.append(len(points) - 1)

    return points
