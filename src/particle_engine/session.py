"""Session controller: owns the engine and routes external events into it."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import numpy as np

from particle_engine.classifier import GestureClassifier
from particle_engine.config import EngineConfig
from particle_engine.gestures import GestureSample
from particle_engine.integrator import Integrator, view_rotation
from particle_engine.metrics import MetricsCollector
from particle_engine.palettes import PALETTES, next_palette
from particle_engine.particles import ParticleStore, RenderFrame
from particle_engine.profiler import TickProfiler
from particle_engine.shapes import SHAPES, generate
from particle_engine.state import MANUAL_EXPLOSION, RETARGET_EXPLOSION, AnimationState

logger = logging.getLogger("particle_engine.session")

# Number keys select shapes in declaration order.
KEY_SHAPES = {str(i + 1): shape for i, shape in enumerate(SHAPES)}
KEY_NEXT_PALETTE = "c"
KEY_EXPLODE = " "


class Session:
    """One live particle session.

    Control events (shape, palette, explosion, keys) are expected between
    ticks, from the thread that runs ``tick``. ``on_landmarks`` may be
    called from a capture thread; it only replaces the gesture slot.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rng: Optional[np.random.Generator] = None,
        metrics: Optional[MetricsCollector] = None,
        profiler: Optional[TickProfiler] = None,
    ):
        self.config = config or EngineConfig()
        self._rng = rng or np.random.default_rng(self.config.seed)
        self.metrics = metrics or MetricsCollector()
        self.profiler = profiler or TickProfiler()

        targets = generate(self.config.shape, self.config.particle_count, self._rng)
        self.state = AnimationState(
            shape=self.config.shape,
            palette=self.config.palette,
            targets=targets,
        )
        self.particles = ParticleStore.seeded(targets, self._rng)
        self.classifier = GestureClassifier()
        self.integrator = Integrator(rng=self._rng, profiler=self.profiler)

        self._frame_callbacks: list[Callable[[RenderFrame], None]] = []
        self._frame: Optional[RenderFrame] = None

        logger.info(
            "Session started: %d particles, shape=%s, palette=%s",
            self.particles.count, self.state.shape, self.state.palette,
        )

    # --- Control surface ---

    def select_shape(self, shape: str):
        """Retarget the swarm onto ``shape``.

        The jump in targets is masked by raising explosion energy; particles
        fly to the new cloud under the normal spring.
        """
        if shape not in SHAPES:
            raise ValueError(f"Unknown shape '{shape}', expected one of {SHAPES}")

        targets = generate(shape, self.particles.count, self._rng)
        self.particles.retarget(targets)
        self.state.targets = targets
        self.state.shape = shape
        self.state.raise_explosion(RETARGET_EXPLOSION)
        self.metrics.record_shape(shape)
        logger.info("Shape -> %s", shape)

    def select_palette(self, palette: str):
        if palette not in PALETTES:
            raise ValueError(
                f"Unknown palette '{palette}', expected one of {tuple(PALETTES)}"
            )
        self.state.palette = palette
        self.metrics.record_palette(palette)
        logger.info("Palette -> %s", palette)

    def cycle_palette(self) -> str:
        self.select_palette(next_palette(self.state.palette))
        return self.state.palette

    def trigger_explosion(self):
        self.state.explosion = MANUAL_EXPLOSION
        self.metrics.record_explosion()
        logger.debug("Explosion triggered")

    def handle_key(self, key: str) -> bool:
        """Apply a keyboard binding. Returns False for unbound keys."""
        if key in KEY_SHAPES:
            self.select_shape(KEY_SHAPES[key])
        elif key == KEY_NEXT_PALETTE:
            self.cycle_palette()
        elif key == KEY_EXPLODE:
            self.trigger_explosion()
        else:
            return False
        return True

    # --- Landmark feed ---

    def on_landmarks(self, landmarks: Optional[np.ndarray]) -> GestureSample:
        """Classify one landmark frame and make it the live gesture.

        ``None`` means the frame had no hand.
        """
        sample = self.classifier.update(landmarks)
        self.state.gesture = sample
        self.metrics.record_gesture(sample.label.value, sample.detecting)
        return sample

    # --- Tick / render sink ---

    def on_frame(self, callback: Callable[[RenderFrame], None]):
        """Register a render sink, called after every tick."""
        self._frame_callbacks.append(callback)

    def tick(self) -> RenderFrame:
        t0 = time.perf_counter()
        self.integrator.tick(self.state, self.particles, self.config.dt)
        self.metrics.record_tick(time.perf_counter() - t0, self.state.explosion)

        self._frame = self.particles.snapshot(
            self.state.ticks, self.state.time, view_rotation(self.state.time)
        )
        for cb in self._frame_callbacks:
            cb(self._frame)
        return self._frame

    def run_ticks(self, count: int) -> Optional[RenderFrame]:
        """Advance ``count`` ticks back to back, without pacing."""
        for _ in range(count):
            self.tick()
        return self._frame

    @property
    def frame(self) -> Optional[RenderFrame]:
        """Last completed frame, or None before the first tick."""
        return self._frame

    def status(self) -> dict:
        gesture = self.state.gesture
        return {
            "shape": self.state.shape,
            "palette": self.state.palette,
            "particles": self.particles.count,
            "gesture": gesture.to_dict(),
            "explosion": round(self.state.explosion, 4),
            "time": round(self.state.time, 4),
            "ticks": self.state.ticks,
        }
