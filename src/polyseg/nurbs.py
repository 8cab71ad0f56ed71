"""Rational B-spline runs (NURBS and splines) with a memoized basis."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .metrics import count
from .types import LineType, Point, PolySeg, RunNode, RunStart


log = logging.getLogger(__name__)

KNOT_EPS = 1e-11
KNOT_QUANTUM = 1e-4


@dataclass
class _Entry:
    fingerprint: Tuple[float, ...]
    basis: np.ndarray


@dataclass
class BasisCache:
    """Basis matrices of one run keyed by sample count.

    The matrix does not depend on the placement scale, so resizing a chain
    reuses it. Each entry also remembers the knots and weights it was built
    from; a lookup after an in-place parameter edit misses, and storing the
    rebuilt matrix drops every entry of the old parameters. At most
    ``limit`` sample counts are kept, oldest first out.
    """

    entries: Dict[int, _Entry] = field(default_factory=dict)
    limit: int = 4

    def get(self, samples: int, fingerprint: Tuple[float, ...]) -> Optional[np.ndarray]:
        entry = self.entries.get(samples)
        if entry is None or entry.fingerprint != fingerprint:
            return None
        return entry.basis

    def put(self, samples: int, fingerprint: Tuple[float, ...], basis: np.ndarray) -> None:
        stale = [key for key, entry in self.entries.items() if entry.fingerprint != fingerprint]
        for key in stale:
            del self.entries[key]
        self.entries.pop(samples, None)
        while len(self.entries) >= self.limit:
            del self.entries[next(iter(self.entries))]
        self.entries[samples] = _Entry(fingerprint, basis)

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class RunLayout:
    start: int
    stop: int
    order: int
    controls: List[Point]
    weights: np.ndarray
    knots: np.ndarray


def run_length(segs: Sequence[PolySeg], start: int) -> int:
    """Index one past the last continuation entry of the run at *start*."""

    head = segs[start].line_type
    tail = LineType.NURBSSEG if head == LineType.NURBS else LineType.SPLINECON
    stop = start + 1
    while stop < len(segs) and segs[stop].line_type == tail:
        stop += 1
    return stop


def normalize_knots(raw: Sequence[float]) -> np.ndarray:
    """Map knots onto ``[0, 1]``, quantize them and force them non-decreasing."""

    knots = np.asarray(raw, dtype=float)
    span = knots[-1] - knots[0]
    if not np.isfinite(span) or span <= 0:
        return np.linspace(0.0, 1.0, knots.size)
    knots = (knots - knots[0]) / span
    knots = np.floor(knots / KNOT_QUANTUM + 1e-6) * KNOT_QUANTUM
    knots = np.maximum.accumulate(knots)
    return knots


def uniform_knots(count: int, order: int) -> np.ndarray:
    """Clamped uniform knot vector for *count* controls of the given *order*."""

    inner = max(count - order, 0)
    raw = [0.0] * order + [float(i) for i in range(1, inner + 1)] + [float(inner + 1)] * order
    return normalize_knots(raw)


def _layout(segs: Sequence[PolySeg], start: int) -> RunLayout:
    head = segs[start]
    assert isinstance(head.data, RunStart)
    stop = run_length(segs, start)
    nodes = segs[start + 1 : stop]
    order = max(int(head.data.order_ref) + 1, 1)

    if head.line_type == LineType.NURBS:
        controls = [s.pt for s in nodes]
        weights = np.array([s.data.weight for s in nodes], dtype=float)  # type: ignore[union-attr]
        count = len(controls)
        if count == 0:
            return RunLayout(start, stop, 0, [], weights, np.zeros(0))
        order = min(order, count)
        if head.data.knot == -1:
            knots = uniform_knots(count, order)
        else:
            raw = [head.data.knot] + [s.data.knot for s in nodes]  # type: ignore[union-attr]
            raw = (raw + [raw[-1]] * (count + order))[: count + order]
            knots = normalize_knots(raw)
    else:
        controls = [head.pt] + [s.pt for s in nodes]
        weights = np.ones(len(controls), dtype=float)
        count = len(controls)
        order = min(order, count)
        raw = [head.data.knot, head.data.weight]
        raw += [s.data.weight for s in nodes[1:]]  # type: ignore[union-attr]
        raw += [head.data.end_knot] * order
        raw = (raw + [raw[-1]] * (count + order))[: count + order]
        knots = normalize_knots(raw)

    weights = np.where(np.isfinite(weights) & (weights > 0), weights, 1.0)
    return RunLayout(start, stop, order, list(controls), weights, knots)


def compute_basis(knots: np.ndarray, weights: np.ndarray, order: int, samples: int) -> np.ndarray:
    """Rational basis matrix of shape ``(samples, len(weights))``.

    Cox-de Boor recursion over the valid parameter range. Zero knot spans
    are replaced by a tiny denominator so repeated knots never divide by
    zero. Each row is normalised by the weighted sum.
    """

    count = weights.size
    valid = [i for i in range(order - 1, count) if knots[i + 1] > knots[i]]
    if not valid:
        knots = uniform_knots(count, order)
        valid = [i for i in range(order - 1, count) if knots[i + 1] > knots[i]]
    lo = knots[valid[0]]
    hi = knots[valid[-1] + 1]
    u = np.linspace(lo, hi, samples)

    nspans = knots.size - 1
    span = np.searchsorted(knots, u, side="right") - 1
    span = np.clip(span, valid[0], valid[-1])
    basis = np.zeros((samples, nspans), dtype=float)
    basis[np.arange(samples), span] = 1.0

    for k in range(2, order + 1):
        nxt = np.zeros_like(basis)
        for i in range(nspans - k + 1):
            left = knots[i + k - 1] - knots[i]
            right = knots[i + k] - knots[i + 1]
            if left == 0:
                left = KNOT_EPS
            if right == 0:
                right = KNOT_EPS
            nxt[:, i] = (u - knots[i]) / left * basis[:, i] + (knots[i + k] - u) / right * basis[:, i + 1]
        basis = nxt

    basis = basis[:, :count] * weights
    total = basis.sum(axis=1, keepdims=True)
    total = np.where(np.abs(total) > KNOT_EPS, total, 1.0)
    return basis / total


def run_points(
    segs: Sequence[PolySeg],
    start: int,
    samples: int,
    scale: Tuple[float, float] = (1.0, 1.0),
    offset: Tuple[float, float] = (0.0, 0.0),
) -> List[Point]:
    """Tessellate the NURBS or spline run beginning at *start*."""

    head = segs[start]
    if not isinstance(head.data, RunStart):
        raise TypeError(f"segment {start} does not start a run")
    layout = _layout(segs, start)
    if not layout.controls:
        return []
    samples = max(int(samples), 2)

    fingerprint = tuple(layout.knots.tolist()) + tuple(layout.weights.tolist()) + (float(layout.order),)
    if head.data.cache is None:
        head.data.cache = BasisCache()
    cache = head.data.cache
    basis = cache.get(samples, fingerprint)
    if basis is None:
        basis = compute_basis(layout.knots, layout.weights, layout.order, samples)
        cache.put(samples, fingerprint, basis)
        count("basis.miss")
    else:
        count("basis.hit")

    ctrl = np.array([(p.x, p.y) for p in layout.controls], dtype=float)
    curve = basis @ ctrl
    curve = curve * np.asarray(scale, dtype=float) + np.asarray(offset, dtype=float)
    return [Point(float(x), float(y)) for x, y in curve]


def run_chord_length(segs: Sequence[PolySeg], start: int) -> float:
    stop = run_length(segs, start)
    total = 0.0
    for i in range(start + 1, stop):
        total += segs[i].pt.distance_to(segs[i - 1].pt)
    return total


__all__ = [
    "BasisCache",
    "compute_basis",
    "normalize_knots",
    "run_chord_length",
    "run_length",
    "run_points",
    "uniform_knots",
]
