"""Process-wide animation state shared between control events and ticks."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import numpy as np

from particle_engine.gestures import GestureSample

EXPLOSION_DECAY = 0.95
EXPLOSION_CUTOFF = 0.01
RETARGET_EXPLOSION = 0.5
MANUAL_EXPLOSION = 1.0


@dataclass
class AnimationState:
    """Everything the integrator reads on each tick.

    The gesture slot is written from the landmark feed, which may live on
    another thread, so reads and writes go through a lock.
    """

    shape: str = "sphere"
    palette: str = "rainbow"
    targets: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    time: float = 0.0
    explosion: float = 0.0
    ticks: int = 0
    _gesture: GestureSample = field(default_factory=GestureSample.neutral, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def gesture(self) -> GestureSample:
        with self._lock:
            return self._gesture

    @gesture.setter
    def gesture(self, sample: GestureSample):
        with self._lock:
            self._gesture = sample

    def raise_explosion(self, energy: float):
        """Explosion energy becomes at least ``energy``."""
        self.explosion = max(self.explosion, energy)

    def decay_explosion(self):
        self.explosion *= EXPLOSION_DECAY
        if self.explosion < EXPLOSION_CUTOFF:
            self.explosion = 0.0
