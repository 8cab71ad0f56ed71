from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Dict, List, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .nurbs import BasisCache


@dataclass
class Point:
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def copy(self) -> "Point":
        return Point(self.x, self.y)

    def scaled(self, sx: float, sy: float) -> "Point":
        return Point(self.x * sx, self.y * sy)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass
class Rect:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_points(cls, a: Point, b: Point) -> "Rect":
        return cls(min(a.x, b.x), min(a.y, b.y), abs(b.x - a.x), abs(b.y - a.y))

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def center(self) -> Point:
        return Point(self.x + self.width / 2.0, self.y + self.height / 2.0)

    def inflated(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x - dx, self.y - dy, self.width + 2 * dx, self.height + 2 * dy)

    def contains(self, pt: Point) -> bool:
        return self.x <= pt.x <= self.right and self.y <= pt.y <= self.bottom

    def copy(self) -> "Rect":
        return Rect(self.x, self.y, self.width, self.height)


class LineType(IntEnum):
    LINE = 1
    ARCLINE = 2
    ARCSEGLINE = 4
    PARABOLA = 6
    NURBS = 501
    NURBSSEG = 502
    ELLIPSE = 503
    ELLIPSEEND = 504
    QUADBEZ = 505
    QUADBEZCON = 506
    CUBEBEZ = 507
    CUBEBEZCON = 508
    SPLINE = 509
    SPLINECON = 510
    MOVETO = 600
    MOVETO_NEWPOLY = 601


class ArcQuad(IntEnum):
    """Corner orientation of an arc-segment, named by the bulge side."""

    TL = 0
    BL = 1
    BR = 2
    TR = 3


class ClockSense(IntEnum):
    CLOCKWISE = 0
    COUNTER_CLOCKWISE = 1


class HitCode(IntEnum):
    NONE = 0
    BORDER = 40
    INSIDE = 41
    PLAPP = 73


class HookPoint(IntEnum):
    NONE = 0
    KTL = 1
    KTR = 2


class FlipFlags(IntFlag):
    NONE = 0
    HORIZONTAL = 1
    VERTICAL = 2


class DimensionFlags(IntFlag):
    NONE = 0
    END_PTS = 1
    ALL_SEG = 2
    TOTAL = 4
    SELECT = 8
    ALWAYS = 16
    STANDOFF = 128


class FloatingDims(IntFlag):
    NONE = 0
    WIDTH = 1
    HEIGHT = 2


# Segment payloads. Each LineType accepts exactly one payload class, so a
# segment cannot carry parameters that mean nothing for its kind.


@dataclass
class Straight:
    pass


@dataclass
class ArcLineData:
    """Circular arc through the chord with a signed bulge.

    ``curve`` is the bulge height; ``>= 0`` bends to the reversed side.
    ``0`` draws a straight chord.
    """

    curve: float = 0.0


@dataclass
class ArcSegData:
    rotation: float = 0.0
    quadrant: ArcQuad = ArcQuad.TL


@dataclass
class ParabolaData:
    bulge: float = 0.0
    offset: float = 0.0


@dataclass
class EllipseData:
    eccentricity: float = 1.0
    rotation_tenths: float = 0.0


@dataclass
class BezierData:
    pass


@dataclass
class RunStart:
    """First entry of a NURBS/spline run.

    ``knot == -1`` requests a uniform knot vector. ``order_ref`` is the
    curve degree minus one. ``end_knot`` closes a spline knot vector.
    """

    knot: float = -1.0
    weight: float = 1.0
    order_ref: int = 2
    end_knot: float = 1.0
    cache: Optional["BasisCache"] = field(default=None, repr=False, compare=False)


@dataclass
class RunNode:
    knot: float = 0.0
    weight: float = 1.0


Payload = Union[
    Straight, ArcLineData, ArcSegData, ParabolaData, EllipseData, BezierData, RunStart, RunNode
]

PAYLOAD_TYPES: Dict[LineType, type] = {
    LineType.LINE: Straight,
    LineType.MOVETO: Straight,
    LineType.MOVETO_NEWPOLY: Straight,
    LineType.ARCLINE: ArcLineData,
    LineType.ARCSEGLINE: ArcSegData,
    LineType.PARABOLA: ParabolaData,
    LineType.ELLIPSE: EllipseData,
    LineType.ELLIPSEEND: BezierData,
    LineType.QUADBEZ: BezierData,
    LineType.QUADBEZCON: BezierData,
    LineType.CUBEBEZ: BezierData,
    LineType.CUBEBEZCON: BezierData,
    LineType.NURBS: RunStart,
    LineType.NURBSSEG: RunNode,
    LineType.SPLINE: RunStart,
    LineType.SPLINECON: RunNode,
}

CONTINUATION_TYPES = frozenset(
    {
        LineType.NURBSSEG,
        LineType.SPLINECON,
        LineType.QUADBEZCON,
        LineType.CUBEBEZCON,
        LineType.ELLIPSEEND,
    }
)


@dataclass
class PolySeg:
    line_type: LineType = LineType.LINE
    pt: Point = field(default_factory=Point)
    data: Payload = field(default_factory=Straight)
    dim_deflection: float = 0.0

    def __post_init__(self) -> None:
        self.line_type = LineType(self.line_type)
        expected = PAYLOAD_TYPES[self.line_type]
        if not isinstance(self.data, expected):
            raise TypeError(
                f"{self.line_type.name} segment needs {expected.__name__}, "
                f"got {type(self.data).__name__}"
            )

    @classmethod
    def make(cls, line_type: LineType, x: float, y: float, data: Optional[Payload] = None) -> "PolySeg":
        if data is None:
            data = PAYLOAD_TYPES[LineType(line_type)]()
        return cls(line_type, Point(float(x), float(y)), data)


@dataclass
class PolyList:
    segs: List[PolySeg] = field(default_factory=lambda: [PolySeg()])
    closed: bool = False
    dim: Point = field(default_factory=Point)
    offset: Point = field(default_factory=Point)
    flags: int = 0
    wasline: bool = False

    def invalidate_cache(self) -> None:
        """Drop every memoized run basis. Called after structural edits."""

        for seg in self.segs:
            if isinstance(seg.data, RunStart) and seg.data.cache is not None:
                seg.data.cache.clear()


@dataclass
class HitResult:
    hitcode: HitCode = HitCode.NONE
    segment: int = -1
    pt: Point = field(default_factory=Point)


@dataclass(frozen=True)
class CanvasPolicy:
    no_auto_grow: bool = False


@dataclass
class LineStyle:
    thickness: float = 1.0
    border_thickness: float = 0.0
    transparent: bool = False
