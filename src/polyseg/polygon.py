"""Closed outlines whose points live in a normalised box."""
from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Sequence

from .geom import line_dstyle_hit, point_in_polygon, rotate_points_about_center
from .polyline import PolyLine
from .types import HitCode, HitResult, HookPoint, Point, PolySeg, Rect


log = logging.getLogger(__name__)


class Polygon(PolyLine):
    """A filled, always-closed chain.

    Unlike an open :class:`PolyLine`, resizing a polygon only changes its
    ``inside`` box: the segment points stay in the ``dim`` box they were
    drawn in and are scaled on every tessellation until
    :meth:`scale_object` bakes the live scale back into them.
    """

    def __init__(self, start: Optional[Point] = None, segs: Optional[Sequence[PolySeg]] = None, **kwargs: Any) -> None:
        kwargs.pop("closed", None)
        super().__init__(start, segs, closed=True, **kwargs)

    @classmethod
    def from_points(cls, points: Sequence[Point], closed: bool = True, **kwargs: Any) -> "Polygon":
        return super().from_points(points, closed=True, **kwargs)  # type: ignore[return-value]

    def calc_frame(self) -> Rect:
        """Refit the frame; a normalised polygon keeps its live scale.

        ``dim`` is re-derived as the new box in chain units so that edits to
        the points of a resized polygon do not change ``inside / dim``.
        """

        if not self._is_normalized():
            return super().calc_frame()
        sx, sy = self.get_scale()
        box = self._bounding_box(self.get_poly_points(absolute=True))
        self.inside = box
        self.polylist.dim = Point(box.width / sx, box.height / sy)
        self.frame = self._outer(box)
        self.polylist.offset = Point((self.start_point.x - box.x) / sx, (self.start_point.y - box.y) / sy)
        return self.frame

    def set_size(self, width: float, height: float) -> None:
        """Stretch the live box; the normalised points are left alone."""

        if width <= 0 or height <= 0:
            return
        dim = self.polylist.dim
        if not (dim.x and dim.y):
            self.polylist.dim = Point(self.inside.width, self.inside.height)
        offset = self.polylist.offset
        self.inside = Rect(self.inside.x, self.inside.y, width, height)
        sx, sy = self.get_scale()
        self.start_point = Point(self.inside.x + offset.x * sx, self.inside.y + offset.y * sy)
        self._sync_end()
        self.calc_frame()

    def hit(
        self,
        pt: Point,
        result: Optional[HitResult] = None,
        knob: bool = False,
        hook_point: HookPoint = HookPoint.NONE,
        border_only: bool = False,
    ) -> HitCode:
        """Classify *pt* as ``INSIDE``, ``BORDER`` or a miss.

        The query is first turned into the shape's unrotated frame.
        Transparent fills and *border_only* requests only count the stroke.
        """

        if result is None:
            result = HitResult()
        if knob:
            return HitCode.NONE
        query = [pt.copy()]
        if self.rotation_angle:
            rotate_points_about_center(self.frame, math.radians(self.rotation_angle), query)
        target = query[0]

        half = self.style.thickness / 2
        if not self.frame.inflated(half, half).contains(target):
            return HitCode.NONE

        boundaries: List[int] = []
        points = self.get_poly_points(absolute=True, boundaries=boundaries)
        if not (self.style.transparent or border_only) and point_in_polygon(points, target):
            result.hitcode = HitCode.INSIDE
            result.segment = -1
            result.pt = target
            return result.hitcode

        hit = line_dstyle_hit(points, target, self.style.thickness, slop=self.config.hit_slop)
        if hit is None:
            return HitCode.NONE
        result.hitcode = HitCode.BORDER
        result.segment = self._segment_for(hit.index, boundaries)
        result.pt = hit.pt
        return result.hitcode
