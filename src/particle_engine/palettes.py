"""Color palettes and the drifting palette band."""

from __future__ import annotations

import colorsys
import math

import numpy as np

# Anchor colors, in the order palettes cycle.
PALETTES: dict[str, tuple[int, ...]] = {
    "rainbow": (0xFF0000, 0xFF7F00, 0xFFFF00, 0x00FF00, 0x0000FF, 0x8B00FF),
    "sunset": (0xFF6B6B, 0xFECA57, 0xFF9FF3, 0xF368E0),
    "ocean": (0x00D2D3, 0x54A0FF, 0x5F27CD, 0x341F97),
    "forest": (0x00B894, 0x55EFC4, 0x81ECEC, 0x00CEC9),
    "fire": (0xFF4757, 0xFF6348, 0xFFA502, 0xFFFA65),
    "neon": (0x00FF87, 0x60EFFF, 0xFF00C3, 0xFFF200),
}

DRIFT_RATE = 0.1  # palette cycles per second


def hex_to_rgb(value: int) -> tuple[float, float, float]:
    return (
        ((value >> 16) & 0xFF) / 255.0,
        ((value >> 8) & 0xFF) / 255.0,
        (value & 0xFF) / 255.0,
    )


def anchors(palette: str) -> np.ndarray:
    """Anchor colors as an (n, 3) float array."""
    try:
        colors = PALETTES[palette]
    except KeyError:
        raise ValueError(
            f"Unknown palette '{palette}', expected one of {tuple(PALETTES)}"
        ) from None
    return np.array([hex_to_rgb(c) for c in colors])


def next_palette(palette: str) -> str:
    names = list(PALETTES)
    return names[(names.index(palette) + 1) % len(names)]


def color_at(palette: str, index: int, count: int, time: float) -> tuple[float, float, float]:
    """Color of particle ``index`` of ``count`` at ``time``."""
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    table = anchors(palette)
    n = len(table)

    u = (index / count + time * DRIFT_RATE) % 1.0
    scaled = u * n
    segment = int(math.floor(scaled)) % n
    frac = scaled % 1.0

    color = table[segment] + (table[(segment + 1) % n] - table[segment]) * frac
    return (float(color[0]), float(color[1]), float(color[2]))


def palette_colors(palette: str, count: int, time: float) -> np.ndarray:
    """``color_at`` for every index at once, shape (count, 3)."""
    table = anchors(palette)
    n = len(table)

    u = (np.arange(count) / max(count, 1) + time * DRIFT_RATE) % 1.0
    scaled = u * n
    segment = np.floor(scaled).astype(np.int64) % n
    frac = (scaled % 1.0)[:, None]

    start = table[segment]
    return start + (table[(segment + 1) % n] - start) * frac


def hue_sweep(count: int, saturation: float = 0.8, lightness: float = 0.6) -> np.ndarray:
    """One full hue turn across the population, used before the first tick."""
    return np.array([
        colorsys.hls_to_rgb(i / count, lightness, saturation) for i in range(count)
    ]).reshape(-1, 3)
