"""Segment chains anchored in document space.

A :class:`PolyLine` owns one :class:`~polyseg.types.PolyList` together with
its absolute anchors (``start_point``/``end_point``), the bounding ``frame``
and the ``inside`` box a closed chain is normalised against. Every mutating
operation ends with :meth:`PolyLine.calc_frame` so the frame never lags
behind the segments.
"""
from __future__ import annotations

import copy
import logging
import math
from bisect import bisect_right
from typing import Any, Dict, List, Optional, Sequence, Tuple

from . import curves
from .config import EngineConfig
from .editing import ChainEditMixin
from .geom import inflate_point, line_dstyle_hit, poly_rect, rotate_points_about_point
from .metrics import count
from .tessellate import Placement, tessellate
from .types import (
    ArcLineData,
    ArcSegData,
    CanvasPolicy,
    DimensionFlags,
    EllipseData,
    FlipFlags,
    FloatingDims,
    HitCode,
    HitResult,
    HookPoint,
    LineStyle,
    LineType,
    ParabolaData,
    Point,
    PolyList,
    PolySeg,
    Rect,
)


log = logging.getLogger(__name__)


class PolyLine(ChainEditMixin):
    """An open or closed chain of typed segments."""

    def __init__(
        self,
        start: Optional[Point] = None,
        segs: Optional[Sequence[PolySeg]] = None,
        closed: bool = False,
        style: Optional[LineStyle] = None,
        config: Optional[EngineConfig] = None,
        dimensions: DimensionFlags = DimensionFlags(0),
    ) -> None:
        self.config = config or EngineConfig()
        self.style = style or LineStyle()
        self.start_point = start.copy() if start is not None else Point()
        self.end_point = self.start_point.copy()
        self.polylist = PolyList(segs=list(segs) if segs else [PolySeg()], closed=closed)
        self.frame = Rect()
        self.inside = Rect()
        self.rotation_angle = 0.0
        self.dimensions = DimensionFlags(dimensions)
        self.rflags = FloatingDims(0)
        self.rwd = 0.0
        self.rht = 0.0
        self._reanchor()
        if closed:
            self._seal()
        self._sync_end()
        self.calc_frame()

    @classmethod
    def from_points(cls, points: Sequence[Point], closed: bool = False, **kwargs: Any) -> "PolyLine":
        """Build a chain of straight segments through absolute *points*."""

        if not points:
            raise ValueError("at least one point is required")
        start = points[0]
        segs = [PolySeg()]
        segs += [PolySeg.make(LineType.LINE, p.x - start.x, p.y - start.y) for p in points[1:]]
        return cls(start, segs, closed=closed, **kwargs)

    # ------------------------------------------------------------------
    # Coordinates

    def get_scale(self) -> Tuple[float, float]:
        """Live scale of a normalised closed chain, ``(1, 1)`` otherwise."""

        dim = self.polylist.dim
        if self.polylist.closed and dim.x and dim.y:
            return self.inside.width / dim.x, self.inside.height / dim.y
        return 1.0, 1.0

    def _is_normalized(self) -> bool:
        return self.get_scale() != (1.0, 1.0)

    def placement(self, absolute: bool = False) -> Placement:
        sx, sy = self.get_scale()
        if absolute:
            origin = self.start_point.copy()
        else:
            origin = Point(self.start_point.x - self.frame.x, self.start_point.y - self.frame.y)
        return Placement(origin, sx, sy)

    def to_chain(self, pt: Point) -> Point:
        """Absolute *pt* expressed in the chain's own units."""

        sx, sy = self.get_scale()
        return Point((pt.x - self.start_point.x) / sx, (pt.y - self.start_point.y) / sy)

    def get_poly_points(
        self,
        samples: Optional[int] = None,
        absolute: bool = False,
        all_segments: bool = False,
        closed_segments: bool = False,
        boundaries: Optional[List[int]] = None,
    ) -> List[Point]:
        """Tessellate the chain.

        Points are frame-relative unless *absolute* is set. ``closed_segments``
        is accepted for call compatibility and ignored.
        """

        if samples is None:
            samples = self.config.max_poly_points
        return tessellate(
            self.polylist,
            self.placement(absolute),
            samples,
            all_segments=all_segments,
            boundaries=boundaries,
            config=self.config,
        )

    def _outer(self, box: Rect) -> Rect:
        if self.style.border_thickness:
            half = self.style.thickness / 2
            return box.inflated(half, half)
        return box.copy()

    @staticmethod
    def _bounding_box(points: Sequence[Point]) -> Rect:
        box = poly_rect(points)
        box.width = max(box.width, 1.0)
        box.height = max(box.height, 1.0)
        return box

    def calc_frame(self) -> Rect:
        self.polylist.dim = Point()
        box = self._bounding_box(self.get_poly_points(absolute=True))
        self.inside = box.copy()
        if self.polylist.closed:
            self.polylist.dim = Point(box.width, box.height)
            self.polylist.offset = Point(self.start_point.x - box.x, self.start_point.y - box.y)
            self.frame = self._outer(box)
        else:
            self.frame = box
        return self.frame

    # ------------------------------------------------------------------
    # Bookkeeping

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy({k: v for k, v in self.__dict__.items() if k != "config"})

    def restore(self, state: Dict[str, Any]) -> None:
        self.__dict__.update(copy.deepcopy(state))

    def offset_shape(self, dx: float, dy: float) -> None:
        for p in (self.start_point, self.end_point):
            p.x += dx
            p.y += dy
        for r in (self.frame, self.inside):
            r.x += dx
            r.y += dy

    def _fix_negative_frame(self) -> bool:
        dx = -self.frame.x if self.frame.x < 0 else 0.0
        dy = -self.frame.y if self.frame.y < 0 else 0.0
        if not dx and not dy:
            return False
        if dy and self.dimensions & (DimensionFlags.ALWAYS | DimensionFlags.SELECT):
            dy += self.config.dim_standoff
        log.debug("Shifting chain by (%.2f, %.2f) to keep the frame on the canvas", dx, dy)
        self.offset_shape(dx, dy)
        return True

    def _sync_end(self) -> None:
        sx, sy = self.get_scale()
        last = self.polylist.segs[-1].pt
        self.end_point = Point(self.start_point.x + last.x * sx, self.start_point.y + last.y * sy)

    def _reanchor(self) -> None:
        segs = self.polylist.segs
        shift = segs[0].pt.copy()
        if not shift.x and not shift.y:
            return
        sx, sy = self.get_scale()
        for seg in segs:
            seg.pt = seg.pt - shift
        self.start_point = Point(self.start_point.x + shift.x * sx, self.start_point.y + shift.y * sy)

    def _seal(self) -> None:
        segs = self.polylist.segs
        last = segs[-1].pt
        if len(segs) == 1 or last.x or last.y:
            segs.append(PolySeg.make(LineType.LINE, 0.0, 0.0))
        segs[-1].pt = segs[0].pt.copy()

    def _rebuild(self, points: Sequence[Point]) -> None:
        """Re-derive anchors and relative points from absolute anchor *points*."""

        segs = self.polylist.segs
        start = points[0].copy()
        self.start_point = start
        for seg, p in zip(segs, points):
            seg.pt = Point(p.x - start.x, p.y - start.y)
        if self.polylist.closed:
            segs[-1].pt = segs[0].pt.copy()
        self._sync_end()

    def _refresh_quadrant(self, index: int) -> None:
        segs = self.polylist.segs
        if 0 < index < len(segs) and segs[index].line_type == LineType.ARCSEGLINE:
            data = segs[index].data
            assert isinstance(data, ArcSegData)
            _, data.quadrant = curves.arc_quadrant(segs[index - 1].pt, segs[index].pt, data.rotation)

    # ------------------------------------------------------------------
    # Curvature handles

    def _curve_handles(self, kinds: Sequence[LineType] = (LineType.PARABOLA, LineType.ARCLINE)) -> Dict[int, Point]:
        """Chain-relative drag handles of the curvature-bearing segments."""

        segs = self.polylist.segs
        handles: Dict[int, Point] = {}
        for i in range(1, len(segs)):
            seg = segs[i]
            if seg.line_type not in kinds:
                continue
            prev = segs[i - 1].pt
            data = seg.data
            if isinstance(data, ParabolaData) and data.bulge != 0:
                handle = curves.parabola_adjust_point(prev, seg.pt, data.bulge, data.offset)
                if handle is None:
                    data.bulge = 0.0
                    data.offset = 0.0
                else:
                    handles[i] = handle
            elif isinstance(data, ArcLineData) and data.curve != 0:
                apex = curves.arcline_apex(prev, seg.pt, data.curve)
                if apex is not None:
                    handles[i] = apex
        return handles

    def _apply_handles(self, handles: Dict[int, Point]) -> None:
        segs = self.polylist.segs
        cfg = self.config
        for i, handle in handles.items():
            seg = segs[i]
            prev = segs[i - 1].pt
            data = seg.data
            if isinstance(data, ParabolaData):
                params = curves.parabola_param_from_point(prev, seg.pt, handle)
                data.bulge, data.offset = params if params is not None else (0.0, 0.0)
            elif isinstance(data, ArcLineData):
                data.curve = curves.arcline_param_from_point(
                    prev, seg.pt, handle, cfg.arc_adjust_min, cfg.arc_adjust_max
                )

    def _scale_segments(self, sx: float, sy: float) -> None:
        handles = self._curve_handles()
        for seg in self.polylist.segs:
            seg.pt = seg.pt.scaled(sx, sy)
        self._apply_handles({i: h.scaled(sx, sy) for i, h in handles.items()})

    # ------------------------------------------------------------------
    # Transforms

    def scale_object(
        self,
        offset_x: float = 0.0,
        offset_y: float = 0.0,
        center: Optional[Point] = None,
        rotation: float = 0.0,
        scale_x: float = 0.0,
        scale_y: float = 0.0,
        adjust_thickness: bool = False,
    ) -> None:
        """Scale the chain, then translate and optionally rotate it.

        With ``scale_x == 0`` the live scale of a normalised closed chain is
        baked into its points; the chain does not move. Otherwise the
        anchors scale about the document origin, the result is offset by
        ``(offset_x, offset_y)`` and turned by *rotation* degrees about
        *center*.
        """

        bake = scale_x == 0
        if bake:
            if not self._is_normalized():
                return
            scale_x, scale_y = self.get_scale()
        elif self._is_normalized():
            self.scale_object()
        if not scale_y:
            scale_y = scale_x

        self.rflags = FloatingDims(0)
        if scale_x != 1 or scale_y != 1:
            if adjust_thickness:
                factor = max(scale_x, scale_y)
                self.style.thickness *= factor
                self.style.border_thickness *= factor
            self._scale_segments(scale_x, scale_y)
            if not bake:
                self.start_point = self.start_point.scaled(scale_x, scale_y)
        self._finish_scale(offset_x, offset_y, center, rotation)

    def _finish_scale(self, offset_x: float, offset_y: float, center: Optional[Point], rotation: float) -> None:
        self.polylist.dim = Point()
        points = self.get_poly_points(absolute=True, all_segments=True)
        for p in points:
            p.x += offset_x
            p.y += offset_y
        if rotation:
            pivot = center if center is not None else self.frame.center()
            rotate_points_about_point(pivot, 2 * math.pi - math.radians(rotation), points)
        self._rebuild(points)
        self.calc_frame()

    def set_size(self, width: float, height: float) -> None:
        """Resize the chain to *width* x *height*, keeping the frame origin."""

        if self._is_normalized():
            self.scale_object()
        box = self.inside
        sx = width / box.width if box.width > 0 and width > 0 else 1.0
        sy = height / box.height if box.height > 0 and height > 0 else 1.0
        self.rflags = FloatingDims(0)
        if sx == 1 and sy == 1:
            return
        self._scale_segments(sx, sy)
        self.start_point = Point(
            box.x + (self.start_point.x - box.x) * sx,
            box.y + (self.start_point.y - box.y) * sy,
        )
        self.polylist.dim = Point()
        self._sync_end()
        self.calc_frame()

    def flip(self, flags: FlipFlags) -> None:
        """Mirror the chain inside its own bounding box."""

        flags = FlipFlags(flags)
        if FlipFlags.VERTICAL in flags:
            self._mirror(horizontal=False)
        if FlipFlags.HORIZONTAL in flags:
            self._mirror(horizontal=True)
        self._sync_end()
        self.calc_frame()

    def _mirror(self, horizontal: bool) -> None:
        segs = self.polylist.segs
        raw = tessellate(self.polylist, Placement(Point()), self.config.max_poly_points, config=self.config)
        box = poly_rect(raw)
        cx = box.x + box.width / 2
        cy = box.y + box.height / 2

        def mirror(p: Point) -> Point:
            if horizontal:
                return Point(2 * cx - p.x, p.y)
            return Point(p.x, 2 * cy - p.y)

        handles = self._curve_handles(kinds=(LineType.PARABOLA,))
        for seg in segs:
            seg.pt = mirror(seg.pt)
        self._apply_handles({i: mirror(h) for i, h in handles.items()})

        for i in range(1, len(segs)):
            data = segs[i].data
            if isinstance(data, ArcLineData):
                data.curve = -data.curve
            elif isinstance(data, EllipseData):
                data.rotation_tenths = (3600 - data.rotation_tenths) % 3600
            elif isinstance(data, ArcSegData):
                data.rotation = -data.rotation
                self._refresh_quadrant(i)
        self._reanchor()

    def after_rotate_shape(
        self,
        pivot: Point,
        start_angle: float,
        end_angle: float,
        policy: Optional[CanvasPolicy] = None,
    ) -> bool:
        """Commit an interactive rotation from *start_angle* to *end_angle* degrees.

        Returns ``False`` and leaves the chain untouched when the canvas may
        not grow and the rotated frame would leave it.
        """

        policy = policy or self.config.canvas
        before = self.snapshot()
        delta = end_angle - start_angle
        for seg in self.polylist.segs[1:]:
            data = seg.data
            if isinstance(data, EllipseData):
                data.rotation_tenths = (data.rotation_tenths + 10 * delta) % 3600
            elif isinstance(data, ArcSegData):
                data.rotation += math.radians(delta)

        sx, sy = self.get_scale()
        points = self.get_poly_points(absolute=True, all_segments=True)
        if sx != 1 or sy != 1:
            self._scale_segments(sx, sy)
            self.polylist.dim = Point()
        rotate_points_about_point(pivot, -math.radians(delta), points)
        self._rebuild(points)
        self.calc_frame()

        if policy.no_auto_grow and (self.frame.x < 0 or self.frame.y < 0):
            log.info("Rotation by %.1f degrees rejected: frame would leave the canvas", delta)
            count("transform.rejected")
            self.restore(before)
            return False
        return True

    # ------------------------------------------------------------------
    # Hit testing

    def _segment_for(self, flat_index: int, boundaries: Sequence[int]) -> int:
        if not boundaries:
            return -1
        pos = min(bisect_right(boundaries, flat_index), len(boundaries) - 1)
        return pos + 1

    def poly_hit_seg(self, pt: Point) -> int:
        """Logical index of the segment under absolute *pt*, or ``-1``."""

        boundaries: List[int] = []
        points = self.get_poly_points(absolute=True, boundaries=boundaries)
        hit = line_dstyle_hit(points, pt, self.style.thickness, slop=self.config.hit_slop)
        if hit is None:
            return -1
        return self._segment_for(hit.index, boundaries)

    def _knob_hit(self, pt: Point, result: HitResult, hook_point: HookPoint) -> bool:
        size = 2 * self.config.knob_radius
        knobs = ((HookPoint.KTL, self.start_point), (HookPoint.KTR, self.end_point))
        for knob, anchor in knobs:
            if knob == hook_point:
                continue
            if inflate_point(anchor, size).contains(pt):
                result.hitcode = HitCode.PLAPP
                result.segment = int(knob)
                result.pt = anchor.copy()
                return True
        return False

    def hit(
        self,
        pt: Point,
        result: Optional[HitResult] = None,
        knob: bool = False,
        hook_point: HookPoint = HookPoint.NONE,
        border_only: bool = False,
    ) -> HitCode:
        """Classify absolute *pt* against the chain.

        Open chains report their end knobs first (``PLAPP``) unless
        *border_only* is set. With *knob* set nothing else is tested.
        Otherwise a stroke hit returns ``BORDER`` with the logical segment
        index in *result*.
        """

        if result is None:
            result = HitResult()
        if not (self.polylist.closed or border_only) and self._knob_hit(pt, result, hook_point):
            return result.hitcode
        if knob:
            return HitCode.NONE

        boundaries: List[int] = []
        points = self.get_poly_points(absolute=True, boundaries=boundaries)
        hit = line_dstyle_hit(points, pt, self.style.thickness, slop=self.config.hit_slop)
        if hit is None:
            return HitCode.NONE
        result.hitcode = HitCode.BORDER
        result.segment = self._segment_for(hit.index, boundaries)
        result.pt = hit.pt
        return result.hitcode
