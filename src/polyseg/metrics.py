"""Counters and timings for tessellation work, scoped with a context variable."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from time import perf_counter
from typing import Dict, Iterator, Optional


_ACTIVE: ContextVar["MetricsTracker | None"] = ContextVar("polyseg_metrics", default=None)


@dataclass
class MetricsTracker:
    """Basis cache hits, tessellation calls, rejected transforms and run times."""

    counters: Dict[str, float] = field(default_factory=dict)
    timings: Dict[str, float] = field(default_factory=dict)

    def increment(self, key: str, value: float = 1.0) -> None:
        self.counters[key] = self.counters.get(key, 0.0) + value

    def get_count(self, key: str) -> float:
        return self.counters.get(key, 0.0)

    def record(self, key: str, seconds: float) -> None:
        if seconds >= 0.0:
            self.timings[key] = self.timings.get(key, 0.0) + seconds

    def summary(self) -> str:
        parts = [f"{key}={int(value)}" for key, value in sorted(self.counters.items())]
        parts += [f"{key}={value * 1000:.1f}ms" for key, value in sorted(self.timings.items())]
        return " | ".join(parts)


def get_tracker() -> "MetricsTracker | None":
    return _ACTIVE.get()


@contextmanager
def use_tracker(tracker: MetricsTracker) -> Iterator[MetricsTracker]:
    token = _ACTIVE.set(tracker)
    try:
        yield tracker
    finally:
        _ACTIVE.reset(token)


def count(key: str, value: float = 1.0) -> None:
    """Bump *key* on the active tracker; a no-op outside :func:`use_tracker`."""

    tracker = _ACTIVE.get()
    if tracker is not None:
        tracker.increment(key, value)


@contextmanager
def timed(key: str, logger: Optional[logging.Logger] = None) -> Iterator[None]:
    """Add the wall-clock time of the block to the active tracker under *key*."""

    start = perf_counter()
    try:
        yield
    finally:
        elapsed = perf_counter() - start
        tracker = _ACTIVE.get()
        if tracker is not None:
            tracker.record(key, elapsed)
        if logger is not None:
            logger.debug("%s took %.3f s", key, elapsed)


__all__ = ["MetricsTracker", "count", "get_tracker", "timed", "use_tracker"]
