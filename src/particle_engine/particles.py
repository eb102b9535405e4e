"""Per-particle state, stored as index-aligned numpy arrays."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from particle_engine.palettes import hue_sweep


@dataclass
class RenderFrame:
    """Snapshot handed to the renderer after a tick completes."""
    tick: int
    time: float
    positions: np.ndarray
    colors: np.ndarray
    sizes: np.ndarray
    rotation: tuple[float, float]  # (x, y) radians

    def to_dict(self, precision: int = 3) -> dict:
        return {
            "type": "frame",
            "tick": self.tick,
            "time": round(self.time, 4),
            "positions": np.round(self.positions, precision).ravel().tolist(),
            "colors": np.round(self.colors, precision).ravel().tolist(),
            "sizes": np.round(self.sizes, precision).tolist(),
            "rotation": [round(r, 4) for r in self.rotation],
        }


class ParticleStore:
    """Positions, velocities, targets, sizes and colors for N particles.

    N is fixed at construction. Row ``i`` of every array always refers to
    the same particle, including across retargets.
    """

    def __init__(self, count: int):
        if count <= 0:
            raise ValueError(f"Particle count must be positive, got {count}")
        self.count = count
        self.positions = np.zeros((count, 3))
        self.velocities = np.zeros((count, 3))
        self.targets = np.zeros((count, 3))
        self.sizes = np.zeros(count)
        self.colors = np.zeros((count, 3))

    @classmethod
    def seeded(
        cls, targets: np.ndarray, rng: Optional[np.random.Generator] = None
    ) -> ParticleStore:
        """Store whose particles start on ``targets`` with a small random drift."""
        rng = rng or np.random.default_rng()
        targets = np.asarray(targets, dtype=np.float64)
        store = cls(len(targets))

        store.targets[:] = targets
        store.positions[:] = targets
        store.velocities[:] = (rng.random((store.count, 3)) - 0.5) * 0.01
        store.sizes[:] = rng.random(store.count) * 0.1 + 0.05
        store.colors[:] = hue_sweep(store.count)
        return store

    def retarget(self, points: np.ndarray) -> int:
        """Replace targets index-for-index.

        Indices beyond ``len(points)`` keep their previous target; extra
        points are ignored. Returns the number of targets replaced.
        """
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        n = min(len(points), self.count)
        self.targets[:n] = points[:n]
        return n

    def snapshot(self, tick: int, time: float, rotation: tuple[float, float]) -> RenderFrame:
        return RenderFrame(
            tick=tick,
            time=time,
            positions=self.positions.copy(),
            colors=self.colors.copy(),
            sizes=self.sizes.copy(),
            rotation=rotation,
        )

    def distances_to(self, points: np.ndarray) -> np.ndarray:
        """Per-particle distance from current position to ``points``."""
        return np.linalg.norm(self.positions - points, axis=1)

    def __len__(self) -> int:
        return self.count
