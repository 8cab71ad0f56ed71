"""Structural edits of a segment chain: nodes, corners, closing and dimensions."""
from __future__ import annotations

import copy
import logging
import math
from typing import TYPE_CHECKING, List, Optional, Tuple

from . import curves
from .geom import (
    calc_angle_from_points,
    ccw_angle_between,
    inflate_line,
    rotate_points_about_point,
    snap_to_segment,
)
from .types import (
    ArcLineData,
    DimensionFlags,
    FloatingDims,
    HitCode,
    HitResult,
    HookPoint,
    LineType,
    ParabolaData,
    Point,
    PolySeg,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .polyline import PolyLine


log = logging.getLogger(__name__)

# Kinds a corner can be split into without breaking a Bezier or run layout.
_SPLITTABLE = (LineType.LINE, LineType.ARCLINE, LineType.PARABOLA, LineType.ARCSEGLINE)

_RIGHT_ANGLE_SLACK = 0.052
CORNER_STUB = 50.0


def parse_dimension(text: str) -> Optional[float]:
    """Length typed into a dimension label, or ``None`` if unusable."""

    try:
        value = float(str(text).strip())
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


class ChainEditMixin:
    """Edits shared by :class:`~polyseg.polyline.PolyLine` and its subclasses."""

    def _valid_index(self: "PolyLine", index: int) -> bool:
        return 0 <= index < len(self.polylist.segs)

    # ------------------------------------------------------------------
    # Anchors and nodes

    def adjust_line_end(self: "PolyLine", pt: Point) -> None:
        segs = self.polylist.segs
        if self.polylist.closed:
            self.adjust_line_start(pt)
            return
        last = len(segs) - 1
        if last < 1:
            return
        segs[last].pt = self.to_chain(pt)
        self._refresh_quadrant(last)
        self._sync_end()
        self.calc_frame()

    def adjust_line_start(self: "PolyLine", pt: Point) -> None:
        segs = self.polylist.segs
        delta = self.to_chain(pt)
        self.start_point = pt.copy()
        for seg in segs[1:]:
            seg.pt = seg.pt - delta
        if self.polylist.closed:
            segs[-1].pt = segs[0].pt.copy()

        if len(segs) > 1:
            kind = segs[1].line_type
            if kind == LineType.ARCSEGLINE:
                self._refresh_quadrant(1)
            elif kind in (LineType.QUADBEZ, LineType.CUBEBEZ, LineType.ELLIPSE):
                segs[1].pt = segs[0].pt.copy()
            elif kind in (LineType.NURBS, LineType.SPLINE):
                for j in (1, 2):
                    if j < len(segs):
                        segs[j].pt = segs[0].pt.copy()
        self._sync_end()
        self.calc_frame()

    def modify_node(self: "PolyLine", index: int, pt: Point) -> None:
        """Move node *index* to absolute *pt*."""

        segs = self.polylist.segs
        if not self._valid_index(index):
            return
        if index == 0:
            self.adjust_line_start(pt)
            return
        if index == len(segs) - 1:
            self.adjust_line_end(pt)
            return
        segs[index].pt = self.to_chain(pt)
        self._refresh_quadrant(index)
        self._refresh_quadrant(index + 1)
        self.polylist.invalidate_cache()
        self._sync_end()
        self.calc_frame()

    def modify_curve(self: "PolyLine", index: int, pt: Point) -> None:
        """Reshape segment *index* so its curvature handle sits at absolute *pt*."""

        segs = self.polylist.segs
        if not 0 < index < len(segs):
            return
        seg = segs[index]
        prev = segs[index - 1].pt
        handle = self.to_chain(pt)
        data = seg.data
        if isinstance(data, ParabolaData):
            params = curves.parabola_param_from_point(prev, seg.pt, handle)
            if params is None:
                return
            data.bulge, data.offset = params
        elif isinstance(data, ArcLineData):
            cfg = self.config
            data.curve = curves.arcline_param_from_point(prev, seg.pt, handle, cfg.arc_adjust_min, cfg.arc_adjust_max)
        else:
            return
        self.calc_frame()

    # ------------------------------------------------------------------
    # Corners and closing

    def add_corner(self: "PolyLine", pt: Point) -> int:
        """Split the segment under *pt* with a new node; returns its index or ``-1``."""

        index = self.poly_hit_seg(pt)
        segs = self.polylist.segs
        if index < 1:
            return -1
        seg = segs[index]
        if seg.line_type not in _SPLITTABLE:
            log.debug("Cannot add a corner inside a %s segment", seg.line_type.name)
            return -1

        anchors = self.get_poly_points(absolute=True, all_segments=True)
        corner = pt.copy()
        if seg.line_type == LineType.LINE:
            corner = snap_to_segment(pt, anchors[index - 1], anchors[index])
        last = len(segs) - 1
        terminal = not self.polylist.closed and index in (1, last)

        node = PolySeg(line_type=seg.line_type, pt=self.to_chain(corner), data=copy.deepcopy(seg.data))
        segs.insert(index, node)
        self.polylist.invalidate_cache()
        self._refresh_quadrant(index)
        self._refresh_quadrant(index + 1)

        if terminal:
            # the clicked point becomes a bend and the end beyond it a short stub
            a, b = anchors[index - 1], anchors[index]
            length = a.distance_to(b)
            if length > 0:
                ux = (b.x - a.x) / length
                uy = (b.y - a.y) / length
                stub = Point(corner.x - uy * CORNER_STUB, corner.y + ux * CORNER_STUB)
                if index == 1:
                    self.adjust_line_start(stub)
                else:
                    self.adjust_line_end(stub)
        self._sync_end()
        self.calc_frame()
        self._fix_negative_frame()
        return index

    def close_polygon(self: "PolyLine", hook_point: HookPoint, pt: Point, result: Optional[HitResult] = None) -> bool:
        """Would dropping end *hook_point* at *pt* close the chain?

        On success ``result.pt`` holds the opposite anchor to snap onto.
        """

        if result is None:
            result = HitResult()
        if self.polylist.closed or len(self.polylist.segs) <= 3:
            return False
        if self.hit(pt, result, knob=True, hook_point=hook_point) != HitCode.PLAPP:
            return False
        if hook_point == HookPoint.KTL and result.segment == HookPoint.KTR:
            result.pt = self.end_point.copy()
            return True
        if hook_point == HookPoint.KTR and result.segment == HookPoint.KTL:
            result.pt = self.start_point.copy()
            return True
        return False

    def close_chain(self: "PolyLine") -> None:
        """Mark the chain closed and unify its anchors."""

        segs = self.polylist.segs
        self.polylist.closed = True
        segs[-1].pt = segs[0].pt.copy()
        self.end_point = self.start_point.copy()
        self.dimensions = (self.dimensions & ~(DimensionFlags.TOTAL | DimensionFlags.END_PTS)) | DimensionFlags.ALL_SEG
        self.polylist.invalidate_cache()
        self.calc_frame()

    def _try_self_close(self: "PolyLine", hook_point: HookPoint, pt: Point) -> bool:
        result = HitResult()
        if not self.close_polygon(hook_point, pt, result):
            return False
        log.debug("Chain closed itself at (%.2f, %.2f)", result.pt.x, result.pt.y)
        self.close_chain()
        return True

    def draw_release(self: "PolyLine") -> bool:
        """Drop a trailing near-duplicate segment left by a drawing gesture."""

        segs = self.polylist.segs
        if self.polylist.closed or len(segs) <= 2:
            return False
        if segs[-1].pt.distance_to(segs[-2].pt) >= self.config.draw_release_min:
            return False
        segs.pop()
        self.polylist.invalidate_cache()
        self._sync_end()
        self.calc_frame()
        return True

    # ------------------------------------------------------------------
    # Numeric edits

    def set_segment_angle(self: "PolyLine", index: int, angle: float) -> None:
        """Turn segment *index* to *angle* degrees, counter-clockwise on screen."""

        segs = self.polylist.segs
        if index <= 0 or index >= len(segs):
            return
        anchors = self.get_poly_points(absolute=True, all_segments=True)
        pts = [anchors[index - 1].copy(), anchors[index].copy()]
        current = ccw_angle_between(pts[0], pts[1])
        rotate_points_about_point(pts[0], -current, pts)
        rotate_points_about_point(pts[0], math.radians(angle), pts)
        if index == len(segs) - 1:
            self.adjust_line_end(pts[1])
        else:
            self.modify_node(index, pts[1])
        self._fix_negative_frame()

    def set_segment_length(self: "PolyLine", index: int, length: float) -> bool:
        """Stretch segment *index* to *length* along its current direction."""

        segs = self.polylist.segs
        if index <= 0 or index >= len(segs) or length < 0:
            return False
        anchors = self.get_poly_points(absolute=True, all_segments=True)
        last = len(segs) - 1
        leading = not self.polylist.closed and index == 1 and len(segs) > 2
        if leading:
            fixed, moving = anchors[1], anchors[0]
        else:
            fixed, moving = anchors[index - 1], anchors[index]

        if fixed.x == moving.x and fixed.y == moving.y:
            other = 2 if index == 1 else index - 1
            if other > last:
                return False
            angle = calc_angle_from_points(anchors[other - 1], anchors[other]) + 90
            angle = angle - 360 if angle >= 360 else angle
        else:
            angle = calc_angle_from_points(fixed, moving)

        rad = math.radians(angle)
        pts = [fixed.copy(), moving.copy()]
        rotate_points_about_point(fixed, rad, pts)
        pts[1] = Point(pts[0].x + length, pts[0].y)
        rotate_points_about_point(fixed, -rad, pts)
        target = pts[1]

        if index == last:
            self.adjust_line_end(target)
            if not self.polylist.closed:
                self._try_self_close(HookPoint.KTR, target)
        elif leading:
            self.adjust_line_start(target)
            self._try_self_close(HookPoint.KTL, target)
        else:
            self.modify_node(index, target)
        return True

    def update_segment_dimension_from_text(self: "PolyLine", text: str, index: int) -> bool:
        length = parse_dimension(text)
        if length is None:
            log.debug("Ignoring dimension text %r", text)
            return False
        return self.set_segment_length(index, length)

    def update_dimension_from_text(self: "PolyLine", text: str, index: int) -> bool:
        """Apply a typed dimension according to the chain's dimension mode."""

        length = parse_dimension(text)
        if length is None:
            log.debug("Ignoring dimension text %r", text)
            return False
        flags = self.dimensions
        if DimensionFlags.ALL_SEG in flags or not flags & (DimensionFlags.END_PTS | DimensionFlags.TOTAL):
            target = length
            if self._has_exterior_dimensions():
                target -= self.get_exterior_segment_length(index) - self.get_segment_length(index)
                if target < 0:
                    log.debug("Dimension %.2f is shorter than the border allows", length)
                    return False
            if not self.set_segment_length(index, target):
                return False
            info = self.poly_rectangular_info()
            if info is None:
                self.rflags = FloatingDims(0)
            else:
                wd, ht = info
                if index in (wd, wd + 2):
                    self.rwd = length
                    self.rflags |= FloatingDims.WIDTH
                elif index in (ht, ht + 2):
                    self.rht = length
                    self.rflags |= FloatingDims.HEIGHT
        elif DimensionFlags.END_PTS in flags:
            if not self._set_end_points_length(length):
                return False
        elif not self._set_total_length(length):
            return False
        self._fix_negative_frame()
        return True

    def _set_end_points_length(self: "PolyLine", length: float) -> bool:
        start, end = self.start_point, self.end_point
        span = start.distance_to(end)
        if span == 0:
            return False
        factor = length / span
        self.adjust_line_end(Point(start.x + (end.x - start.x) * factor, start.y + (end.y - start.y) * factor))
        return True

    def _set_total_length(self: "PolyLine", length: float) -> bool:
        total = self.get_total_length()
        if total <= 0 or length <= 0:
            return False
        factor = length / total
        frame = self.frame
        # keep the frame centred where it was
        dx = -(frame.x * factor - frame.x) - (frame.width * factor - frame.width) / 2
        dy = -(frame.y * factor - frame.y) - (frame.height * factor - frame.height) / 2
        self.scale_object(dx, dy, None, 0.0, factor, factor)
        return True

    # ------------------------------------------------------------------
    # Queries

    def get_segment_length(self: "PolyLine", index: int) -> float:
        if index <= 0 or index >= len(self.polylist.segs):
            return 0.0
        anchors = self.get_poly_points(absolute=True, all_segments=True)
        return anchors[index - 1].distance_to(anchors[index])

    def _has_exterior_dimensions(self: "PolyLine") -> bool:
        return self.polylist.closed and bool(self.style.border_thickness) and self.style.thickness > 0

    def get_exterior_segment_length(self: "PolyLine", index: int) -> float:
        """Length of segment *index* along the outer edge of a bordered closed chain.

        Chains without a border measure their anchors, as
        :meth:`get_segment_length` does.
        """

        if index <= 0 or index >= len(self.polylist.segs):
            return 0.0
        anchors = self.get_poly_points(absolute=True, all_segments=True)
        if self._has_exterior_dimensions():
            anchors = inflate_line(anchors, self.style.thickness / 2, closed=True, outward=True)
        return anchors[index - 1].distance_to(anchors[index])

    def get_total_length(self: "PolyLine") -> float:
        anchors = self.get_poly_points(absolute=True, all_segments=True)
        return sum(anchors[i - 1].distance_to(anchors[i]) for i in range(1, len(anchors)))

    def is_terminal_segment(self: "PolyLine", index: int) -> bool:
        return not self.polylist.closed and index in (1, len(self.polylist.segs) - 1)

    def get_segments_before_and_after(self: "PolyLine", index: int) -> Tuple[int, int]:
        count = len(self.polylist.segs)
        closed = self.polylist.closed
        after = index + 1
        if after >= count:
            after = 1 if closed else -1
        before = index - 1
        if before == 0:
            before = count - 1 if closed else -1
        return before, after

    def is_right_angle(self: "PolyLine", index: int, tolerance: float = 1.0) -> bool:
        """Do the segments meeting at node *index* form a right angle?"""

        segs = self.polylist.segs
        if not self._valid_index(index):
            return False
        before = index - 1
        if before < 0:
            if not self.polylist.closed:
                return False
            before = len(segs) - 1
        after = index + 1
        if after > len(segs) - 1:
            if not self.polylist.closed:
                return False
            after = 1
        if self.polylist.closed and segs[before].pt == segs[index].pt and len(segs) > 2:
            before = len(segs) - 2
        first = calc_angle_from_points(segs[before].pt, segs[index].pt)
        second = calc_angle_from_points(segs[index].pt, segs[after].pt)
        diff = abs(first - second)
        return abs(90 - diff) <= tolerance or abs(270 - diff) <= tolerance

    def poly_rectangular_info(self: "PolyLine") -> Optional[Tuple[int, int]]:
        """Segment indices carrying width and height if the chain is a rectangle."""

        segs = self.polylist.segs
        if len(segs) != 5 or not self.polylist.closed:
            return None
        raw = self.get_poly_points(absolute=True, all_segments=True)
        points: List[Point] = [
            p for i, p in enumerate(raw) if not (i < len(raw) - 1 and p == raw[i + 1])
        ]
        if len(points) != 5:
            return None

        previous = 0.0
        for i in range(len(points) - 1):
            current = ccw_angle_between(points[i], points[i + 1])
            if i > 0:
                turn = current - previous
                if turn < 0:
                    turn += 2 * math.pi
                if turn > math.pi:
                    turn -= math.pi
                if abs(turn - math.pi / 2) > _RIGHT_ANGLE_SLACK:
                    return None
            previous = current

        for a, b in ((0, 2), (1, 3)):
            first = points[a].distance_to(points[a + 1])
            second = points[b].distance_to(points[b + 1])
            if second == 0 or not 0.99 < first / second < 1.01:
                return None

        heading = ccw_angle_between(points[0], points[1])
        if heading < math.pi / 4 or heading > 1.5 * math.pi or 0.75 * math.pi < heading < 1.25 * math.pi:
            return 1, 2
        return 2, 1
