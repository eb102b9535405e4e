"""Per-stage timing of the tick loop.

Each tick is split into stages (gesture read, forces, integration,
appearance) and timed with ``time.perf_counter``. Statistics cover a rolling
window so the numbers follow the current load.
"""

from __future__ import annotations

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import numpy as np


@dataclass
class StageStats:
    """Timing statistics for one stage, in milliseconds."""
    name: str
    avg_ms: float
    min_ms: float
    max_ms: float
    p95_ms: float
    call_count: int

    def to_dict(self) -> dict:
        return {
            "avg_ms": round(self.avg_ms, 3),
            "min_ms": round(self.min_ms, 3),
            "max_ms": round(self.max_ms, 3),
            "p95_ms": round(self.p95_ms, 3),
            "calls": self.call_count,
        }


class TickProfiler:
    """Times named stages of the tick.

    Usage:
        profiler = TickProfiler()
        with profiler.stage("forces"):
            ...
        profiler.summary()
    """

    STAGES = ("gesture", "forces", "integrate", "appearance", "tick")

    def __init__(self, window_size: int = 120, enabled: bool = True):
        self._window_size = window_size
        self._timings: dict[str, deque[float]] = {}
        self._counts: dict[str, int] = {}
        self.enabled = enabled
        for name in self.STAGES:
            self._ensure(name)

    def _ensure(self, name: str):
        if name not in self._timings:
            self._timings[name] = deque(maxlen=self._window_size)
            self._counts[name] = 0

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        if not self.enabled:
            yield
            return

        self._ensure(name)
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self._timings[name].append((time.perf_counter() - t0) * 1000.0)
            self._counts[name] += 1

    def get_stage_stats(self, name: str) -> StageStats | None:
        timings = self._timings.get(name)
        if not timings:
            return None

        arr = np.fromiter(timings, dtype=np.float64)
        return StageStats(
            name=name,
            avg_ms=float(arr.mean()),
            min_ms=float(arr.min()),
            max_ms=float(arr.max()),
            p95_ms=float(np.percentile(arr, 95)),
            call_count=self._counts[name],
        )

    def summary(self) -> dict[str, dict]:
        """Stats for every stage that has run, keyed by stage name."""
        result = {}
        for name in self._timings:
            stats = self.get_stage_stats(name)
            if stats is not None:
                result[name] = stats.to_dict()
        return result

    def reset(self):
        for timings in self._timings.values():
            timings.clear()
        for name in self._counts:
            self._counts[name] = 0
