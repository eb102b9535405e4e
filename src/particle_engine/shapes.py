"""Target point clouds for the named particle shapes.

Every generator samples a closed-form curve or surface at ``count`` values of
its parameter. Surface shapes use the golden-angle ("Fibonacci sphere")
sampling so points are spread near-uniformly over the sphere.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

import numpy as np

SHAPES = (
    "heart",
    "flower",
    "saturn",
    "firework",
    "spiral",
    "sphere",
    "star",
    "butterfly",
)

# Points that cannot be produced land somewhere inside this cube instead.
FALLBACK_EXTENT = 5.0

ShapeFn = Callable[[int, np.random.Generator], np.ndarray]


def fibonacci_sphere(count: int, radius: float | np.ndarray = 1.0) -> np.ndarray:
    """Near-uniform points on a sphere, shape (count, 3).

    ``radius`` may be a scalar or one radius per point.
    """
    if count <= 0:
        return np.empty((0, 3))

    i = np.arange(count)
    phi = np.arccos(-1.0 + (2.0 * i) / count)
    theta = math.sqrt(count * math.pi) * phi
    r = np.asarray(radius, dtype=np.float64)

    return np.column_stack([
        r * np.cos(theta) * np.sin(phi),
        r * np.sin(theta) * np.sin(phi),
        r * np.cos(phi),
    ])


def _jitter(rng: np.random.Generator, count: int, amplitude: float) -> np.ndarray:
    """Uniform noise in [-amplitude/2, amplitude/2)."""
    return (rng.random(count) - 0.5) * amplitude


def _heart(count: int, rng: np.random.Generator) -> np.ndarray:
    t = np.arange(count) / count * 2 * math.pi
    x = 16 * np.sin(t) ** 3
    y = 13 * np.cos(t) - 5 * np.cos(2 * t) - 2 * np.cos(3 * t) - np.cos(4 * t)
    z = _jitter(rng, count, 5.0)
    return np.column_stack([x * 0.15, y * 0.15, z * 0.3])


def _flower(count: int, rng: np.random.Generator) -> np.ndarray:
    t = np.arange(count) / count * 2 * math.pi * 6
    r = 2 + np.cos(5 * t)
    return np.column_stack([r * np.cos(t), r * np.sin(t), _jitter(rng, count, 2.0)])


def _saturn(count: int, rng: np.random.Generator) -> np.ndarray:
    ring_count = int(math.floor(count * 0.6))
    planet_count = count - ring_count

    angle = np.arange(ring_count) / max(ring_count, 1) * 2 * math.pi
    radius = 3 + _jitter(rng, ring_count, 0.5)
    ring = np.column_stack([
        np.cos(angle) * radius,
        _jitter(rng, ring_count, 0.2),
        np.sin(angle) * radius,
    ])

    planet = fibonacci_sphere(planet_count, 1.5)
    return np.concatenate([ring.reshape(-1, 3), planet.reshape(-1, 3)])


def _firework(count: int, rng: np.random.Generator) -> np.ndarray:
    return fibonacci_sphere(count, 2 + rng.random(count) * 2)


def _sphere(count: int, rng: np.random.Generator) -> np.ndarray:
    return fibonacci_sphere(count, 2.5)


def _spiral(count: int, rng: np.random.Generator) -> np.ndarray:
    t = np.arange(count) / count * math.pi * 8
    radius = t * 0.15
    return np.column_stack([np.cos(t) * radius, t * 0.2 - 3, np.sin(t) * radius])


def _star(count: int, rng: np.random.Generator) -> np.ndarray:
    i = np.arange(count)
    t = i / count * 2 * math.pi
    r = np.where(i % 2 == 0, 3.0, 1.5)
    return np.column_stack([
        np.cos(t * 5) * r,
        np.sin(t * 5) * r,
        _jitter(rng, count, 2.0),
    ])


def _butterfly(count: int, rng: np.random.Generator) -> np.ndarray:
    t = np.arange(count) / count * math.pi * 12
    r = np.exp(np.cos(t)) - 2 * np.cos(4 * t) - np.sin(t / 12) ** 5
    return np.column_stack([
        np.sin(t) * r * 1.2,
        np.cos(t) * r * 1.2,
        _jitter(rng, count, 1.5),
    ])


_GENERATORS: dict[str, ShapeFn] = {
    "heart": _heart,
    "flower": _flower,
    "saturn": _saturn,
    "firework": _firework,
    "spiral": _spiral,
    "sphere": _sphere,
    "star": _star,
    "butterfly": _butterfly,
}


def fallback_points(count: int, rng: np.random.Generator) -> np.ndarray:
    """Uniform random points inside the fallback cube."""
    return (rng.random((count, 3)) - 0.5) * 2 * FALLBACK_EXTENT


def conform(
    points: np.ndarray, count: int, rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """Return exactly ``count`` finite points.

    Missing rows and non-finite rows are replaced by fallback points; extra
    rows are dropped.
    """
    rng = rng or np.random.default_rng()
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)[:count]

    out = np.empty((count, 3))
    n = len(points)
    out[:n] = points
    if n < count:
        out[n:] = fallback_points(count - n, rng)

    bad = ~np.isfinite(out).all(axis=1)
    if bad.any():
        out[bad] = fallback_points(int(bad.sum()), rng)
    return out


def generate(
    shape: str, count: int, rng: Optional[np.random.Generator] = None
) -> np.ndarray:
    """Generate the target cloud for ``shape``.

    Args:
        shape: One of ``SHAPES``.
        count: Number of points, >= 0.
        rng: Source of the jitter; a fresh generator when omitted.

    Returns:
        Array of shape (count, 3). Jittered shapes differ between calls
        unless a seeded ``rng`` is passed.
    """
    fn = _GENERATORS.get(shape)
    if fn is None:
        raise ValueError(f"Unknown shape '{shape}', expected one of {SHAPES}")
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")

    rng = rng or np.random.default_rng()
    if count == 0:
        return np.empty((0, 3))

    return conform(fn(count, rng), count, rng)
