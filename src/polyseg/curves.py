"""Per-kind curve evaluators.

Every evaluator is pure: it reads chain-relative control points, samples the
curve and returns document points ``p * scale + offset``. Degenerate input
never raises; each evaluator falls back to the straight chord instead.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .geom import from_array, rotate_points_about_point
from .types import ArcQuad, ClockSense, Point


log = logging.getLogger(__name__)

Scale = Tuple[float, float]
Offset = Tuple[float, float]

_UNIT: Scale = (1.0, 1.0)
_ORIGIN: Offset = (0.0, 0.0)


def _place(p: Point, scale: Scale, offset: Offset) -> Point:
    return Point(p.x * scale[0] + offset[0], p.y * scale[1] + offset[1])


def _place_array(arr: np.ndarray, scale: Scale, offset: Offset) -> List[Point]:
    placed = arr * np.asarray(scale, dtype=float) + np.asarray(offset, dtype=float)
    return from_array(placed)


def _chord(p0: Point, p1: Point, scale: Scale, offset: Offset) -> List[Point]:
    return [_place(p0, scale, offset), _place(p1, scale, offset)]


def effective_angle(angle: float) -> float:
    """Fold *angle* into ``[-pi/2, pi/2]`` keeping the chord orientation."""

    folded = math.asin(max(-1.0, min(1.0, math.sin(angle))))
    if math.cos(angle) < 0:
        folded = -folded
    return folded


# ---------------------------------------------------------------------------
# Bezier


def bezier_points(
    controls: Sequence[Point], count: int, scale: Scale = _UNIT, offset: Offset = _ORIGIN
) -> List[Point]:
    """Sample a quadratic (3 controls) or cubic (4 controls) Bezier curve."""

    count = max(int(count), 2)
    ctrl = np.array([(p.x, p.y) for p in controls], dtype=float)
    degree = ctrl.shape[0] - 1
    t = np.linspace(0.0, 1.0, count)[:, None]
    s = 1.0 - t
    coeffs = [math.comb(degree, k) * s ** (degree - k) * t ** k for k in range(degree + 1)]
    curve = sum(c * ctrl[k] for k, c in enumerate(coeffs))
    return _place_array(curve, scale, offset)


# ---------------------------------------------------------------------------
# Parabola


def _horizontal_frame(p0: Point, p1: Point) -> Tuple[float, bool]:
    """Angle that turns the chord horizontal, and whether it runs backwards."""

    dx = p1.x - p0.x
    dy = p1.y - p0.y
    length = math.hypot(dx, dy)
    if round(6 * abs(dy)) < 1 or length == 0:
        return 0.0, dx < 0
    angle = math.asin(dy / length)
    backwards = dx < 0
    if backwards:
        angle = -angle
    return angle, backwards


def parabola_points(
    p0: Point,
    p1: Point,
    bulge: float,
    shift: float,
    count: int,
    scale: Scale = _UNIT,
    offset: Offset = _ORIGIN,
) -> List[Point]:
    """Parabolic arc from *p0* to *p1* whose apex sits *bulge* off the chord.

    *shift* moves the apex along the chord. Both are in live (scaled) units.
    A bulge under one unit or a chord under one unit yields no samples, so
    the segment is drawn as its chord.
    """

    a = Point(p0.x * scale[0], p0.y * scale[1])
    b = Point(p1.x * scale[0], p1.y * scale[1])
    if abs(bulge) < 1 or a.distance_to(b) < 1:
        return []

    count = max(int(count), 2)
    angle, backwards = _horizontal_frame(a, b)
    if backwards:
        bulge = -bulge
        shift = -shift
    mid = Point((a.x + b.x) / 2, (a.y + b.y) / 2)
    pts = [a, b]
    rotate_points_about_point(mid, angle, pts)
    a, b = pts

    apex = Point((a.x + b.x) / 2, a.y + bulge)
    x0 = a.x - apex.x
    x1 = b.x - apex.x
    k = (a.y - apex.y) / (x0 * x0)
    lean = shift / bulge

    xs = np.linspace(x0, x1, count)
    xs = xs + lean * (bulge + k * xs * xs)
    ys = k * xs * xs
    out = [Point(float(x) + apex.x, float(y) + apex.y) for x, y in zip(xs, ys)]
    rotate_points_about_point(mid, -angle, out)
    return [Point(p.x + offset[0], p.y + offset[1]) for p in out]


def parabola_adjust_point(p0: Point, p1: Point, bulge: float, shift: float) -> Optional[Point]:
    """Handle position for a parabola, chain-relative. ``None`` for short chords."""

    if p0.distance_to(p1) < 1:
        return None
    angle, backwards = _horizontal_frame(p0, p1)
    if backwards:
        bulge = -bulge
        shift = -shift
    mid = Point((p0.x + p1.x) / 2, (p0.y + p1.y) / 2)
    pts = [p0.copy(), p1.copy()]
    rotate_points_about_point(mid, angle, pts)
    handle = [Point((pts[0].x + pts[1].x) / 2 + shift, pts[0].y + bulge)]
    rotate_points_about_point(mid, -angle, handle)
    return handle[0]


def parabola_param_from_point(p0: Point, p1: Point, handle: Point) -> Optional[Tuple[float, float]]:
    """Inverse of :func:`parabola_adjust_point`; shift snaps down to 1/6 units."""

    if p0.distance_to(p1) < 1:
        return None
    angle, backwards = _horizontal_frame(p0, p1)
    direction = -1.0 if backwards else 1.0
    mid = Point((p0.x + p1.x) / 2, (p0.y + p1.y) / 2)
    pts = [p0.copy(), p1.copy(), handle.copy()]
    rotate_points_about_point(mid, angle, pts)
    bulge = (pts[2].y - pts[0].y) * direction
    shift = (pts[2].x - (pts[0].x + pts[1].x) / 2) * direction
    shift = math.floor(6 * shift + 1e-6) / 6
    return bulge, shift


# ---------------------------------------------------------------------------
# Three point elliptical arc


def arc_direction(a: Point, c: Point, b: Point) -> int:
    """Side of *b* relative to the chord ``a -> c``: ``1``, ``-1`` or ``0`` if collinear."""

    xa, ya = math.floor(a.x), math.floor(a.y)
    xc, yc = math.floor(c.x), math.floor(c.y)
    xb, yb = math.floor(b.x), math.floor(b.y)
    if xa == xc:
        if xb < xa:
            return 1 if yc > ya else -1
        if xb > xa:
            return -1 if yc > ya else 1
        return 0
    if ya == yc:
        if yb < ya:
            return -1 if xc > xa else 1
        if yb > ya:
            return 1 if xc > xa else -1
        return 0
    slope = (yc - ya) / (xc - xa)
    expected = slope * xb + (ya - slope * xa)
    if abs(yb - expected) > 0.001:
        if yb > expected:
            return 1 if xc > xa else -1
        return -1 if xc > xa else 1
    return 0


def _rotate_std(x: float, y: float, angle: float) -> Tuple[float, float]:
    c = math.cos(angle)
    s = math.sin(angle)
    return x * c - y * s, x * s + y * c


def elliptical_arc_points(
    start: Point,
    through: Point,
    end: Point,
    eccentricity: float,
    rotation_tenths: float,
    count: int,
    scale: Scale = _UNIT,
    offset: Offset = _ORIGIN,
) -> List[Point]:
    """Arc of the ellipse through three points.

    The ellipse has axis ratio *eccentricity* (major / minor) and is turned
    by ``rotation_tenths / 10`` degrees. Control coordinates are floored to
    whole units first. Collinear or coincident controls give the chord.
    """

    a = Point(math.floor(start.x), math.floor(start.y))
    m = Point(math.floor(through.x), math.floor(through.y))
    c = Point(math.floor(end.x), math.floor(end.y))
    if (m.x == a.x and m.y == a.y) or (m.x == c.x and m.y == c.y):
        return _chord(a, c, scale, offset)

    direction = arc_direction(a, c, m)
    if direction == 0:
        return _chord(a, c, scale, offset)

    e = eccentricity if eccentricity else 1.0
    rot = math.radians(rotation_tenths / 10.0)
    (xa, ya), (xc, yc), (xb, yb) = (_rotate_std(p.x, p.y, -rot) for p in (a, c, m))

    e2 = e * e
    lhs = np.array(
        [[2 * (xa - xc), 2 * e2 * (ya - yc)], [2 * (xc - xb), 2 * e2 * (yc - yb)]],
        dtype=float,
    )
    rhs = np.array(
        [(xa * xa - xc * xc) + e2 * (ya * ya - yc * yc), (xc * xc - xb * xb) + e2 * (yc * yc - yb * yb)],
        dtype=float,
    )
    det = float(np.linalg.det(lhs))
    if abs(det) < 1e-9:
        log.debug("elliptical arc: singular centre solve, using chord")
        return _chord(a, c, scale, offset)
    h, k = np.linalg.solve(lhs, rhs)
    major = math.sqrt((xa - h) ** 2 + e2 * (ya - k) ** 2)
    minor = major / e

    def _theta(x: float, y: float) -> float:
        return math.atan2(k - y, (x - h) / e)

    theta0 = _theta(xa, ya)
    theta1 = _theta(xc, yc)
    if theta1 < theta0:
        theta1 += 2 * math.pi
    if direction == 1:
        sweep = theta1 - theta0
    else:
        sweep = -(2 * math.pi - (theta1 - theta0))

    count = max(int(count), 2)
    thetas = theta0 + sweep * np.linspace(0.0, 1.0, count)
    local_x = h + major * np.cos(thetas)
    local_y = k - minor * np.sin(thetas)
    cos_r = math.cos(rot)
    sin_r = math.sin(rot)
    world = np.column_stack((local_x * cos_r - local_y * sin_r, local_x * sin_r + local_y * cos_r))
    if not np.all(np.isfinite(world)):
        return _chord(a, c, scale, offset)
    return _place_array(world, scale, offset)


# ---------------------------------------------------------------------------
# Arc-segment corners


def arc_quadrant(
    p0: Point, p1: Point, rotation: float, sense: ClockSense = ClockSense.CLOCKWISE
) -> Tuple[float, ArcQuad]:
    """Classify the corner ``p0 -> p1`` after turning it by *rotation*.

    Returns the rotation a freshly drawn corner should carry together with
    its quadrant. Counter-clockwise corners swap to the neighbouring
    quadrant pair.
    """

    pts = [p0.copy(), p1.copy()]
    if abs(rotation) >= 0.01:
        rotate_points_about_point(p0, effective_angle(rotation), pts)
    first, second = pts
    ccw = sense == ClockSense.COUNTER_CLOCKWISE
    half_pi = math.pi / 2

    if second.x > first.x:
        if second.y > first.y:
            return (0.0 if ccw else -half_pi), ArcQuad.BL
        if ccw:
            return half_pi, ArcQuad.TR
        return 0.0, ArcQuad.TL
    if second.y > first.y:
        if ccw:
            return half_pi, ArcQuad.BL
        return 0.0, ArcQuad.BR
    return (0.0 if ccw else -half_pi), ArcQuad.TR


def arcseg_points(
    p0: Point,
    p1: Point,
    rotation: float,
    quadrant: ArcQuad,
    count: int,
    scale: Scale = _UNIT,
    offset: Offset = _ORIGIN,
) -> List[Point]:
    """Quarter-ellipse corner from *p0* to *p1* in the frame turned by *rotation*.

    Chords under one unit, or with no horizontal extent, yield no samples.
    """

    a = Point(p0.x * scale[0], p0.y * scale[1])
    b = Point(p1.x * scale[0], p1.y * scale[1])
    if a.distance_to(b) < 1:
        return []

    angle = effective_angle(rotation) if abs(rotation) >= 0.01 else 0.0
    pivot = a.copy()
    pts = [a.copy(), b.copy()]
    rotate_points_about_point(pivot, angle, pts)
    a_r, b_r = pts

    cx = b_r.x
    cy = a_r.y
    sign = -1.0 if quadrant in (ArcQuad.TL, ArcQuad.TR) else 1.0
    x0 = a_r.x - cx
    width = abs(x0)
    height = abs(b_r.y - a_r.y)
    if width * width < 0.0001:
        return []

    count = max(int(count), 2)
    xs = np.linspace(x0, 0.0, count)
    ys = sign * np.sqrt(np.clip(1.0 - xs * xs / (width * width), 0.0, None)) * height
    out = [Point(float(x) + cx, float(y) + cy) for x, y in zip(xs, ys)]
    rotate_points_about_point(pivot, -angle, out)
    return [Point(p.x + offset[0], p.y + offset[1]) for p in out]


def arcseg_adjust_point(p0: Point, p1: Point, rotation: float) -> Point:
    angle = effective_angle(rotation) if abs(rotation) >= 0.01 else 0.0
    pts = [p0.copy(), p1.copy()]
    rotate_points_about_point(p0, angle, pts)
    corner = [Point(pts[1].x, pts[0].y)]
    rotate_points_about_point(p0, -angle, corner)
    return corner[0]


# ---------------------------------------------------------------------------
# Chord + bulge circular arc


def _chord_normal(p0: Point, p1: Point) -> Optional[Tuple[Point, Point, float]]:
    dx = p1.x - p0.x
    dy = p1.y - p0.y
    length = math.hypot(dx, dy)
    if length == 0:
        return None
    mid = Point(p0.x + dx / 2, p0.y + dy / 2)
    normal = Point(-dy / length, dx / length)
    return mid, normal, length


def arcline_apex(p0: Point, p1: Point, curve: float) -> Optional[Point]:
    """Top of the arc bulge; positive *curve* bends to the chord's left normal."""

    frame = _chord_normal(p0, p1)
    if frame is None:
        return None
    mid, normal, _ = frame
    return Point(mid.x + normal.x * curve, mid.y + normal.y * curve)


def arcline_param_from_point(
    p0: Point, p1: Point, handle: Point, lo: float = 1.0, hi: float = 500.0
) -> float:
    frame = _chord_normal(p0, p1)
    if frame is None:
        return 0.0
    mid, normal, _ = frame
    signed = (handle.x - mid.x) * normal.x + (handle.y - mid.y) * normal.y
    adjust = min(max(abs(signed), lo), hi)
    return adjust if signed >= 0 else -adjust


def arcline_points(
    p0: Point,
    p1: Point,
    curve: float,
    count: int,
    scale: Scale = _UNIT,
    offset: Offset = _ORIGIN,
) -> List[Point]:
    """Circular arc through *p0*, the bulge apex and *p1*.

    The arc is solved in chain units and then placed, so a non-uniform
    scale stretches it into an ellipse. A zero bulge or zero chord yields no
    interior samples.
    """

    if curve == 0:
        return []
    frame = _chord_normal(p0, p1)
    if frame is None:
        return []
    mid, normal, length = frame
    bulge = abs(curve)
    side = 1.0 if curve >= 0 else -1.0
    half = length / 2
    radius = (half * half + bulge * bulge) / (2 * bulge)
    apex = Point(mid.x + side * normal.x * bulge, mid.y + side * normal.y * bulge)
    centre = Point(apex.x - side * normal.x * radius, apex.y - side * normal.y * radius)

    phi0 = math.atan2(p0.y - centre.y, p0.x - centre.x)
    phi1 = math.atan2(p1.y - centre.y, p1.x - centre.x)
    phia = math.atan2(apex.y - centre.y, apex.x - centre.x)
    two_pi = 2 * math.pi
    sweep = (phi1 - phi0) % two_pi
    if (phia - phi0) % two_pi > sweep:
        sweep -= two_pi

    count = max(int(count), 2)
    phis = phi0 + sweep * np.linspace(0.0, 1.0, count)
    arc = np.column_stack((centre.x + radius * np.cos(phis), centre.y + radius * np.sin(phis)))
    return _place_array(arc, scale, offset)
