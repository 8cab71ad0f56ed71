from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .types import CanvasPolicy


log = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "max_poly_points": 100,
    "arc_points": 50,
    "hit_slop": 12.0,
    "knob_size": 9.0,
    "dim_standoff": 25.0,
    "doc_scale": 1.0,
    "doc_to_screen_scale": 1.0,
    "run_pixels_per_sample": 8.0,
    "arc_adjust_min": 1.0,
    "arc_adjust_max": 500.0,
    "draw_release_min": 5.0,
    "canvas": {"no_auto_grow": False},
}


def load_config(path: str) -> dict:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")
    return yaml.safe_load(p.read_text(encoding="utf-8"))


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    result: Dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@dataclass(frozen=True)
class EngineConfig:
    max_poly_points: int = 100
    arc_points: int = 50
    hit_slop: float = 12.0
    knob_size: float = 9.0
    dim_standoff: float = 25.0
    doc_scale: float = 1.0
    doc_to_screen_scale: float = 1.0
    run_pixels_per_sample: float = 8.0
    arc_adjust_min: float = 1.0
    arc_adjust_max: float = 500.0
    draw_release_min: float = 5.0
    canvas: CanvasPolicy = field(default_factory=CanvasPolicy)

    @property
    def knob_radius(self) -> float:
        """Half-size of the square that catches an endpoint knob."""

        scale = self.doc_to_screen_scale
        if self.doc_scale <= 0.5:
            scale *= 2
        return self.knob_size / scale

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping[str, Any]]) -> "EngineConfig":
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ValueError("Config root must be a mapping")
        merged = deep_merge(DEFAULTS, raw)
        unknown = sorted(set(merged) - set(DEFAULTS))
        for key in unknown:
            log.warning("Ignoring unknown config key %r", key)
        canvas = merged.get("canvas") or {}
        if not isinstance(canvas, Mapping):
            raise ValueError("canvas must be a mapping")
        try:
            return cls(
                max_poly_points=int(merged["max_poly_points"]),
                arc_points=int(merged["arc_points"]),
                hit_slop=float(merged["hit_slop"]),
                knob_size=float(merged["knob_size"]),
                dim_standoff=float(merged["dim_standoff"]),
                doc_scale=float(merged["doc_scale"]),
                doc_to_screen_scale=float(merged["doc_to_screen_scale"]),
                run_pixels_per_sample=float(merged["run_pixels_per_sample"]),
                arc_adjust_min=float(merged["arc_adjust_min"]),
                arc_adjust_max=float(merged["arc_adjust_max"]),
                draw_release_min=float(merged["draw_release_min"]),
                canvas=CanvasPolicy(no_auto_grow=bool(canvas.get("no_auto_grow", False))),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid config value: {exc}") from exc


def load_engine_config(path: Optional[str] = None) -> EngineConfig:
    if path is None:
        return EngineConfig()
    return EngineConfig.from_mapping(load_config(path))
