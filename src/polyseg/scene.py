"""Build chains from YAML scene descriptions.

A scene is a mapping such as::

    kind: polygon
    start: [10, 10]
    style: {thickness: 2}
    segments:
      - [line, 100, 0]
      - {type: parabola, to: [100, 50], bulge: 20}
      - [line, 0, 50]

Segment coordinates are relative to ``start``; the anchor segment is
implicit. Closed chains are sealed back onto the anchor automatically.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Mapping, Optional

from .config import EngineConfig, load_config
from .polygon import Polygon
from .polyline import PolyLine
from .types import ArcQuad, DimensionFlags, LineStyle, LineType, PAYLOAD_TYPES, Point, PolySeg


log = logging.getLogger(__name__)

_ALIASES = {
    "arc": LineType.ARCLINE,
    "arcseg": LineType.ARCSEGLINE,
    "bezier": LineType.CUBEBEZ,
}


def _point(raw: Any, what: str) -> Point:
    if isinstance(raw, Mapping):
        raw = [raw.get("x"), raw.get("y")]
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ValueError(f"{what}: expected [x, y], got {raw!r}")
    try:
        return Point(float(raw[0]), float(raw[1]))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{what}: coordinates must be numbers ({exc})") from exc


def _line_type(name: Any, where: str) -> LineType:
    if isinstance(name, int):
        try:
            return LineType(name)
        except ValueError as exc:
            raise ValueError(f"{where}: unknown segment code {name}") from exc
    key = str(name).strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return LineType[key.upper()]
    except KeyError as exc:
        raise ValueError(f"{where}: unknown segment type {name!r}") from exc


def _payload(kind: LineType, raw: Mapping[str, Any], where: str) -> Any:
    cls = PAYLOAD_TYPES[kind]
    values: Dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if f.name == "cache" or f.name not in raw:
            continue
        value = raw[f.name]
        if f.name == "quadrant":
            try:
                value = ArcQuad[str(value).upper()] if isinstance(value, str) else ArcQuad(value)
            except (KeyError, ValueError) as exc:
                raise ValueError(f"{where}: bad quadrant {value!r}") from exc
        elif f.name == "order_ref":
            value = int(value)
        else:
            try:
                value = float(value)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"{where}: {f.name} must be a number") from exc
        values[f.name] = value
    return cls(**values)


def parse_segment(raw: Any, index: int) -> PolySeg:
    where = f"segments[{index}]"
    if isinstance(raw, (list, tuple)):
        if len(raw) != 3:
            raise ValueError(f"{where}: expected [type, x, y]")
        kind = _line_type(raw[0], where)
        pt = _point(raw[1:], where)
        return PolySeg(kind, pt, PAYLOAD_TYPES[kind]())
    if not isinstance(raw, Mapping):
        raise ValueError(f"{where}: expected a list or a mapping")
    kind = _line_type(raw.get("type", "line"), where)
    if "to" not in raw:
        raise ValueError(f"{where}: missing 'to'")
    return PolySeg(kind, _point(raw["to"], where), _payload(kind, raw, where))


def _dimensions(raw: Any) -> DimensionFlags:
    flags = DimensionFlags(0)
    if raw is None:
        return flags
    names = [raw] if isinstance(raw, str) else list(raw)
    for name in names:
        try:
            flags |= DimensionFlags[str(name).upper()]
        except KeyError as exc:
            raise ValueError(f"unknown dimension flag {name!r}") from exc
    return flags


def build_shape(scene: Any, config: Optional[EngineConfig] = None) -> PolyLine:
    """Turn a scene mapping into a :class:`PolyLine` or :class:`Polygon`."""

    if not isinstance(scene, Mapping):
        raise ValueError("Scene root must be a mapping")
    kind = str(scene.get("kind", "polyline")).lower()
    if kind not in ("polyline", "polygon"):
        raise ValueError(f"Unknown scene kind {kind!r}")
    raw_segments = scene.get("segments") or []
    if not isinstance(raw_segments, list):
        raise ValueError("segments must be a list")

    start = _point(scene.get("start", [0, 0]), "start")
    segs: List[PolySeg] = [PolySeg()]
    segs += [parse_segment(raw, i) for i, raw in enumerate(raw_segments)]

    style_raw = scene.get("style") or {}
    if not isinstance(style_raw, Mapping):
        raise ValueError("style must be a mapping")
    style = LineStyle(
        thickness=float(style_raw.get("thickness", 1.0)),
        border_thickness=float(style_raw.get("border_thickness", 0.0)),
        transparent=bool(style_raw.get("transparent", False)),
    )

    options: Dict[str, Any] = {
        "style": style,
        "config": config,
        "dimensions": _dimensions(scene.get("dimensions")),
    }
    if kind == "polygon":
        shape: PolyLine = Polygon(start, segs, **options)
    else:
        shape = PolyLine(start, segs, closed=bool(scene.get("closed", False)), **options)
    shape.rotation_angle = float(scene.get("rotation", 0.0))
    log.debug("Built %s with %d segments", kind, len(shape.polylist.segs))
    return shape


def load_scene(path: str, config: Optional[EngineConfig] = None) -> PolyLine:
    return build_shape(load_config(path), config)
