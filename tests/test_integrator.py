"""Tests for the spring-damped particle update."""

import math

import numpy as np
import pytest

from particle_engine.gestures import GestureLabel, GestureSample
from particle_engine.integrator import Integrator, SpringParams, view_rotation
from particle_engine.palettes import palette_colors
from particle_engine.particles import ParticleStore
from particle_engine.profiler import TickProfiler
from particle_engine.shapes import generate
from particle_engine.state import AnimationState


def single(target=(0.0, 0.0, 0.0)):
    store = ParticleStore(1)
    store.targets[0] = target
    state = AnimationState(targets=store.targets.copy())
    return state, store


@pytest.fixture
def integrator():
    return Integrator(rng=np.random.default_rng(0))


class TestSpring:
    def test_spring_then_damping(self, integrator):
        state, store = single((1.0, 0.0, 0.0))
        integrator.tick(state, store, 1 / 60)
        # noise is sin(0) = 0 for particle 0 at t=0
        assert store.velocities[0, 0] == pytest.approx(0.92 * 0.03)
        assert store.positions[0, 0] == pytest.approx(0.92 * 0.03)
        assert store.velocities[0, 1] == pytest.approx(0.0)

    def test_damping_applies_to_existing_velocity(self, integrator):
        state, store = single()
        store.velocities[0] = [0.0, 0.0, 1.0]
        integrator.tick(state, store)
        assert store.velocities[0, 2] == pytest.approx(0.92 * (1.0 - 0.03 * 0.0))
        assert store.positions[0, 2] == pytest.approx(0.92)

    def test_noise_only_in_plane(self, integrator):
        state, store = single()
        state.time = math.pi / 4  # sin(2t) = 1
        integrator.tick(state, store)
        assert store.velocities[0, 0] == pytest.approx(0.92 * 0.02)
        assert store.velocities[0, 1] == pytest.approx(0.92 * 0.02)
        assert store.velocities[0, 2] == 0.0

    def test_spread_scales_target(self, integrator):
        state, store = single((1.0, 0.0, 2.0))
        state.gesture = GestureSample(spread=2.0)
        integrator.tick(state, store)
        assert store.velocities[0, 0] == pytest.approx(0.92 * 0.03 * 2.0)
        assert store.velocities[0, 2] == pytest.approx(0.92 * 0.03 * 4.0)

    def test_hand_offset_planar(self, integrator):
        state, store = single()
        state.gesture = GestureSample(hand_position=(1.0, 0.0), detecting=True)
        integrator.tick(state, store)
        assert store.velocities[0, 0] == pytest.approx(0.92 * 0.03 * 3.0)
        assert store.velocities[0, 1] == pytest.approx(0.92 * 0.03 * 3.0)
        assert store.velocities[0, 2] == 0.0

    def test_hand_at_center_has_no_offset(self, integrator):
        state, store = single()
        state.gesture = GestureSample(hand_position=(0.5, 0.5), detecting=True)
        integrator.tick(state, store)
        np.testing.assert_allclose(store.velocities[0], 0.0, atol=1e-15)

    def test_targets_are_not_mutated(self, integrator):
        state, store = single((1.0, 1.0, 1.0))
        state.gesture = GestureSample(spread=3.0, hand_position=(0.9, 0.1), detecting=True)
        integrator.tick(state, store)
        np.testing.assert_array_equal(store.targets[0], [1.0, 1.0, 1.0])

    def test_custom_params(self):
        state, store = single((1.0, 0.0, 0.0))
        Integrator(SpringParams(spring=0.1, damping=0.5)).tick(state, store)
        assert store.velocities[0, 0] == pytest.approx(0.05)

    def test_rejects_bad_dt(self, integrator):
        state, store = single()
        with pytest.raises(ValueError):
            integrator.tick(state, store, 0.0)


class TestExplosion:
    def test_explosion_kicks_all_axes(self, integrator):
        state, store = single()
        state.explosion = 1.0
        integrator.tick(state, store)
        assert store.velocities[0, 2] != 0.0
        assert np.abs(store.velocities).max() <= 0.92 * 0.25 + 1e-12

    def test_no_kick_without_energy(self, integrator):
        state, store = single()
        integrator.tick(state, store)
        assert store.velocities[0, 2] == 0.0

    def test_energy_decays_per_tick(self, integrator):
        state, store = single()
        state.explosion = 1.0
        for k in range(1, 120):
            integrator.tick(state, store)
            if k < 89:
                assert state.explosion == pytest.approx(0.95 ** k)
        assert state.explosion == 0.0


class TestAppearance:
    def test_size_pulse(self, integrator):
        state, store = single()
        state.time = math.pi / 6  # sin(3t) = 1
        integrator.tick(state, store)
        assert store.sizes[0] == pytest.approx(0.08 + 0.05)

    def test_pinch_amplifies_pulse(self, integrator):
        state, store = single()
        state.time = math.pi / 6
        state.gesture = GestureSample(label=GestureLabel.PINCH)
        integrator.tick(state, store)
        assert store.sizes[0] == pytest.approx(0.08 + 0.15)

    def test_colors_from_palette(self, integrator):
        store = ParticleStore.seeded(generate("sphere", 30))
        state = AnimationState(palette="ocean", time=2.0, targets=store.targets.copy())
        integrator.tick(state, store)
        np.testing.assert_allclose(store.colors, palette_colors("ocean", 30, 2.0))


class TestClock:
    def test_fixed_time_step(self, integrator):
        state, store = single()
        for _ in range(10):
            integrator.tick(state, store, 0.016)
        assert state.time == pytest.approx(0.16)
        assert state.ticks == 10

    def test_profiler_records_stages(self):
        profiler = TickProfiler()
        state, store = single()
        Integrator(profiler=profiler).tick(state, store)
        summary = profiler.summary()
        for stage in ("gesture", "forces", "integrate", "appearance", "tick"):
            assert summary[stage]["calls"] == 1

    def test_view_rotation(self):
        assert view_rotation(0.0) == (0.0, 0.0)
        rx, ry = view_rotation(10.0)
        assert abs(rx) <= 0.1 and abs(ry) <= 0.3


class TestStability:
    def test_converges_without_noise(self):
        store = ParticleStore.seeded(generate("sphere", 300), np.random.default_rng(1))
        store.positions += 1.0
        store.velocities[:] = 0.0
        state = AnimationState(targets=store.targets.copy())
        integrator = Integrator(SpringParams(noise_amplitude=0.0))

        start = store.distances_to(store.targets).mean()
        history = []
        for _ in range(100):
            integrator.tick(state, store, 1 / 60)
            history.append(store.distances_to(store.targets).mean())

        assert np.mean(history[80:]) < np.mean(history[:20])
        assert history[-1] < 0.1 * start

    def test_bounded_under_erratic_gestures(self):
        rng = np.random.default_rng(3)
        store = ParticleStore.seeded(generate("butterfly", 500, rng), rng)
        state = AnimationState(targets=store.targets.copy())
        integrator = Integrator(rng=rng)

        for i in range(600):
            if i % 3 == 0:
                hand = None if rng.random() < 0.3 else tuple(rng.random(2))
                state.gesture = GestureSample(
                    label=GestureLabel.OPEN,
                    spread=float(rng.uniform(0.3, 6.0)),
                    hand_position=hand,
                    detecting=hand is not None,
                )
            if i % 50 == 0:
                state.explosion = 1.0
            integrator.tick(state, store)

        assert np.isfinite(store.positions).all()
        assert np.abs(store.positions).max() < 200
