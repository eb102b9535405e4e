"""Prometheus text-format metrics for a running session.

Tracked metrics:
- particle_engine_ticks_total (counter)
- particle_engine_tick_latency_seconds (histogram)
- particle_engine_shape_changes_total (counter, by shape)
- particle_engine_palette_changes_total (counter, by palette)
- particle_engine_gestures_total (counter, by label)
- particle_engine_explosions_total (counter)
- particle_engine_explosion_energy (gauge)
- particle_engine_hand_detection_rate (gauge)
- particle_engine_render_clients (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter

PREFIX = "particle_engine"


class _Histogram:
    """Cumulative-bucket histogram."""

    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, bound in enumerate(self.buckets):
                if value <= bound:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> list[str]:
        lines = [f"# HELP {name} {help_text}", f"# TYPE {name} histogram"]
        with self._lock:
            cumulative = 0
            for bound, count in zip(self.buckets, self.bucket_counts):
                cumulative += count
                lines.append(f'{name}_bucket{{le="{bound}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return lines


def _counter_block(name: str, help_text: str, label: str, counts: Counter) -> list[str]:
    lines = [f"# HELP {name} {help_text}", f"# TYPE {name} counter"]
    for key, value in sorted(counts.items()):
        lines.append(f'{name}{{{label}="{key}"}} {value}')
    return lines


def _scalar_block(name: str, help_text: str, kind: str, value) -> list[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {kind}", f"{name} {value}"]


class MetricsCollector:
    """Counts session events and renders them for a /metrics endpoint."""

    def __init__(self):
        self._shapes: Counter = Counter()
        self._palettes: Counter = Counter()
        self._gestures: Counter = Counter()
        self._ticks = 0
        self._explosions = 0
        self._explosion_energy = 0.0
        self._hand_detection_rate = 0.0
        self._render_clients = 0
        self._lock = threading.Lock()
        self._start_time = time.time()

        # 60 fps leaves ~16.7ms per tick
        self._latency = _Histogram([0.0005, 0.001, 0.002, 0.005, 0.010, 0.0167, 0.033, 0.100])

    def record_tick(self, latency_seconds: float, explosion_energy: float):
        with self._lock:
            self._ticks += 1
            self._explosion_energy = explosion_energy
        self._latency.observe(latency_seconds)

    def record_shape(self, shape: str):
        with self._lock:
            self._shapes[shape] += 1

    def record_palette(self, palette: str):
        with self._lock:
            self._palettes[palette] += 1

    def record_explosion(self):
        with self._lock:
            self._explosions += 1

    def record_gesture(self, label: str, detecting: bool):
        with self._lock:
            if detecting:
                self._gestures[label] += 1
            rate = 1.0 if detecting else 0.0
            self._hand_detection_rate = 0.95 * self._hand_detection_rate + 0.05 * rate

    def set_render_clients(self, count: int):
        self._render_clients = count

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def gesture_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._gestures)

    def render(self) -> str:
        """All metrics in Prometheus text exposition format."""
        blocks: list[list[str]] = [
            _scalar_block(
                f"{PREFIX}_uptime_seconds", "Time since session start", "gauge",
                f"{time.time() - self._start_time:.1f}",
            ),
        ]
        with self._lock:
            blocks += [
                _scalar_block(f"{PREFIX}_ticks_total", "Ticks integrated", "counter", self._ticks),
                _counter_block(
                    f"{PREFIX}_shape_changes_total", "Shape selections", "shape", self._shapes
                ),
                _counter_block(
                    f"{PREFIX}_palette_changes_total", "Palette selections", "palette", self._palettes
                ),
                _counter_block(
                    f"{PREFIX}_gestures_total", "Classified hand frames by label", "gesture",
                    self._gestures,
                ),
                _scalar_block(
                    f"{PREFIX}_explosions_total", "Manual explosions triggered", "counter",
                    self._explosions,
                ),
                _scalar_block(
                    f"{PREFIX}_explosion_energy", "Current explosion energy", "gauge",
                    f"{self._explosion_energy:.4f}",
                ),
                _scalar_block(
                    f"{PREFIX}_hand_detection_rate",
                    "Exponential moving average of hand presence", "gauge",
                    f"{self._hand_detection_rate:.4f}",
                ),
                _scalar_block(
                    f"{PREFIX}_render_clients", "Connected render clients", "gauge",
                    self._render_clients,
                ),
            ]
        blocks.append(self._latency.render(
            f"{PREFIX}_tick_latency_seconds", "Wall time spent per tick"
        ))

        return "\n\n".join("\n".join(b) for b in blocks) + "\n"
