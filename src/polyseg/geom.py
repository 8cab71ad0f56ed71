"""Point-list primitives shared by the tessellator, transforms and hit tests."""
from __future__ import annotations

import math
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .types import Point, Rect


HIT_SLOP = 12.0
_TRIG_SNAP = 1e-4


class LineHit(NamedTuple):
    index: int
    pt: Point
    distance: float


def as_array(points: Sequence[Point]) -> np.ndarray:
    if not points:
        return np.zeros((0, 2), dtype=float)
    return np.array([(p.x, p.y) for p in points], dtype=float)


def from_array(arr: np.ndarray) -> List[Point]:
    return [Point(float(x), float(y)) for x, y in arr]


def rotate_points_about_point(center: Point, angle: float, points: List[Point]) -> None:
    """Rotate *points* in place about *center* by *angle* radians.

    Positive angles turn clockwise in math orientation, which appears
    counter-clockwise on a y-down canvas. Near-zero sin/cos terms snap to 0
    so quarter turns stay exact.
    """

    if angle == 0 or not points:
        return
    sin_a = math.sin(angle)
    cos_a = math.cos(angle)
    if abs(sin_a) < _TRIG_SNAP:
        sin_a = 0.0
    if abs(cos_a) < _TRIG_SNAP:
        cos_a = 0.0
    for p in points:
        dx = p.x - center.x
        dy = p.y - center.y
        p.x = dx * cos_a + dy * sin_a + center.x
        p.y = -dx * sin_a + dy * cos_a + center.y


def rotate_points_about_center(frame: Rect, angle: float, points: List[Point]) -> None:
    if angle == 0:
        return
    rotate_points_about_point(frame.center(), angle, points)


def calc_angle_from_points(start: Point, end: Point) -> float:
    """Direction of ``start -> end`` in degrees, ``[0, 360)``, y-down."""

    dx = end.x - start.x
    dy = end.y - start.y
    if dy == 0:
        return 0.0 if dx >= 0 else 180.0
    if dx == 0:
        return 90.0 if dy > 0 else 270.0
    angle = math.degrees(math.atan(dy / dx))
    if dx < 0:
        angle += 180.0
    elif dy < 0:
        angle += 360.0
    return angle


def ccw_angle_between(start: Point, end: Point) -> float:
    """Counter-clockwise angle of ``start -> end`` in radians, ``[0, 2pi)``."""

    dx = end.x - start.x
    dy = start.y - end.y
    if dx == 0:
        angle = math.pi / 2 if dy >= 0 else -math.pi / 2
    elif dy == 0:
        angle = 0.0 if dx >= 0 else math.pi
    else:
        angle = math.atan2(dy, dx)
    if angle < 0:
        angle += 2 * math.pi
    return angle


def poly_rect(points: Sequence[Point]) -> Rect:
    if not points:
        return Rect()
    arr = as_array(points)
    lo = arr.min(axis=0)
    hi = arr.max(axis=0)
    return Rect(float(lo[0]), float(lo[1]), float(hi[0] - lo[0]), float(hi[1] - lo[1]))


def inflate_point(pt: Point, size: float) -> Rect:
    half = size / 2.0
    return Rect(pt.x - half, pt.y - half, size, size)


def snap_to_segment(pt: Point, a: Point, b: Point) -> Point:
    dx = b.x - a.x
    dy = b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return a.copy()
    t = ((pt.x - a.x) * dx + (pt.y - a.y) * dy) / length_sq
    t = min(1.0, max(0.0, t))
    return Point(a.x + t * dx, a.y + t * dy)


def line_dstyle_hit(
    points: Sequence[Point],
    pt: Point,
    thickness: float,
    tolerance: float = 0.0,
    slop: float = HIT_SLOP,
) -> Optional[LineHit]:
    """Test *pt* against the polyline *points*.

    A segment is hit when the query lies within ``thickness / 2 + slop +
    tolerance`` of it. The nearest hit segment wins; its flattened index
    (segment ``i`` joins ``points[i]`` and ``points[i + 1]``) and the
    projection of *pt* onto it are returned. ``None`` means no hit.
    """

    if len(points) < 2:
        return None
    arr = as_array(points)
    a = arr[:-1]
    b = arr[1:]
    d = b - a
    q = np.array([pt.x, pt.y], dtype=float)
    length_sq = np.einsum("ij,ij->i", d, d)
    safe = np.where(length_sq > 0, length_sq, 1.0)
    t = np.clip(np.einsum("ij,ij->i", q - a, d) / safe, 0.0, 1.0)
    t = np.where(length_sq > 0, t, 0.0)
    proj = a + d * t[:, None]
    dist = np.linalg.norm(proj - q, axis=1)
    limit = thickness / 2.0 + slop + tolerance
    candidates = np.nonzero(dist <= limit)[0]
    if candidates.size == 0:
        return None
    best = int(candidates[np.argmin(dist[candidates])])
    hit_pt = Point(float(proj[best, 0]), float(proj[best, 1]))
    return LineHit(best, hit_pt, float(dist[best]))


def point_in_polygon(points: Sequence[Point], pt: Point) -> bool:
    """Even-odd containment test; the ring is closed implicitly."""

    if len(points) < 3:
        return False
    arr = as_array(points)
    xs = arr[:, 0]
    ys = arr[:, 1]
    xj = np.roll(xs, 1)
    yj = np.roll(ys, 1)
    crosses = (ys > pt.y) != (yj > pt.y)
    with np.errstate(divide="ignore", invalid="ignore"):
        x_at = (xj - xs) * (pt.y - ys) / (yj - ys) + xs
    inside = crosses & (pt.x < x_at)
    return bool(np.count_nonzero(inside) % 2)


def signed_area(points: Sequence[Point]) -> float:
    arr = as_array(points)
    if arr.shape[0] < 3:
        return 0.0
    x = arr[:, 0]
    y = arr[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y))


def _unit_normals(arr: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    d = np.diff(arr, axis=0)
    lengths = np.linalg.norm(d, axis=1)
    keep = lengths > 1e-9
    normals = np.zeros_like(d)
    normals[keep] = np.column_stack((d[keep, 1], -d[keep, 0])) / lengths[keep, None]
    return normals, keep


def inflate_line(
    points: Sequence[Point], thickness: float, closed: bool, outward: bool
) -> List[Point]:
    """Offset a polyline by *thickness* with mitred joins.

    For closed rings the side is chosen from the winding so that
    ``outward=True`` grows the enclosed area. Open chains offset to the left
    of travel for ``outward=True``. Mitres are capped at four times the
    offset so spikes cannot run away at sharp corners.
    """

    if len(points) < 2 or thickness == 0:
        return [p.copy() for p in points]

    arr = as_array(points)
    if closed and np.allclose(arr[0], arr[-1]):
        arr = arr[:-1]
        ring_closed = True
    else:
        ring_closed = closed

    if ring_closed:
        ring = np.vstack((arr, arr[:1]))
        normals, keep = _unit_normals(ring)
        sign = 1.0 if signed_area(from_array(arr)) > 0 else -1.0
        sign = sign if outward else -sign
    else:
        normals, keep = _unit_normals(arr)
        sign = -1.0 if outward else 1.0

    if not keep.any():
        return [p.copy() for p in points]

    # carry the last valid normal across zero-length segments
    valid = normals.copy()
    last = valid[np.argmax(keep)]
    for i in range(valid.shape[0]):
        if keep[i]:
            last = valid[i]
        else:
            valid[i] = last

    offset = thickness * sign
    count = arr.shape[0]
    out = np.empty_like(arr)
    for i in range(count):
        if ring_closed:
            n_prev = valid[i - 1]
            n_next = valid[i % valid.shape[0]]
        else:
            n_prev = valid[max(i - 1, 0)]
            n_next = valid[min(i, valid.shape[0] - 1)]
        bisector = n_prev + n_next
        norm = float(np.linalg.norm(bisector))
        if norm < 1e-9:
            out[i] = arr[i] + n_next * offset
            continue
        bisector /= norm
        cos_half = float(np.dot(bisector, n_next))
        miter = offset / cos_half if abs(cos_half) > 0.25 else offset * 4.0 * np.sign(cos_half)
        out[i] = arr[i] + bisector * miter

    result = from_array(out)
    if ring_closed and closed and len(points) > count:
        result.append(result[0].copy())
    return result
