"""Spring-damped particle update, one fixed step per tick."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from particle_engine.gestures import GestureLabel
from particle_engine.palettes import palette_colors
from particle_engine.particles import ParticleStore
from particle_engine.profiler import TickProfiler
from particle_engine.state import AnimationState

DEFAULT_DT = 1.0 / 60.0


@dataclass
class SpringParams:
    """Tuning constants of the choreography.

    The model is stylistic: velocities are in world units per tick and
    ``dt`` only advances the animation clock.
    """
    spring: float = 0.03
    damping: float = 0.92
    noise_amplitude: float = 0.02
    hand_offset_scale: float = 6.0
    explosion_impulse: float = 0.5
    base_size: float = 0.08
    size_variation: float = 0.05
    pinch_size_variation: float = 0.15


class Integrator:
    """Advances a ParticleStore toward the state's target cloud.

    Usage:
        integrator = Integrator(rng=np.random.default_rng(0))
        integrator.tick(state, particles)
    """

    def __init__(
        self,
        params: Optional[SpringParams] = None,
        rng: Optional[np.random.Generator] = None,
        profiler: Optional[TickProfiler] = None,
    ):
        self.params = params or SpringParams()
        self._rng = rng or np.random.default_rng()
        self.profiler = profiler or TickProfiler(enabled=False)

    def tick(
        self, state: AnimationState, particles: ParticleStore, dt: float = DEFAULT_DT
    ):
        """Advance ``particles`` by one step and age ``state`` by ``dt``."""
        if dt <= 0:
            raise ValueError(f"dt must be positive, got {dt}")

        p = self.params
        n = particles.count
        t = state.time
        index = np.arange(n)

        with self.profiler.stage("tick"):
            with self.profiler.stage("gesture"):
                gesture = state.gesture
                goal = particles.targets * gesture.spread
                if gesture.hand_position is not None:
                    hx, hy = gesture.hand_position
                    goal[:, 0] += (hx - 0.5) * p.hand_offset_scale
                    goal[:, 1] += (0.5 - hy) * p.hand_offset_scale

            with self.profiler.stage("forces"):
                vel = particles.velocities
                if state.explosion > 0:
                    force = state.explosion * p.explosion_impulse
                    vel += (self._rng.random((n, 3)) - 0.5) * force

                noise = np.sin(t * 2 + index * 0.1) * p.noise_amplitude
                vel[:, 0] += noise
                vel[:, 1] += noise

                # Spring impulse first, then damping over the whole velocity.
                vel += (goal - particles.positions) * p.spring
                vel *= p.damping

            with self.profiler.stage("integrate"):
                particles.positions += vel

            with self.profiler.stage("appearance"):
                variation = (
                    p.pinch_size_variation
                    if gesture.label == GestureLabel.PINCH
                    else p.size_variation
                )
                particles.sizes[:] = p.base_size + np.sin(t * 3 + index * 0.05) * variation
                particles.colors[:] = palette_colors(state.palette, n, t)

            state.decay_explosion()
            state.time = t + dt
            state.ticks += 1


def view_rotation(time: float) -> tuple[float, float]:
    """Slow sway applied to the whole cloud by the renderer, (x, y) radians."""
    return (math.sin(time * 0.15) * 0.1, math.sin(time * 0.2) * 0.3)
