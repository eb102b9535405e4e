"""Rule-based gesture classification from 2D hand landmarks."""

from __future__ import annotations

from typing import Optional

import numpy as np

from particle_engine.gestures import GestureLabel, GestureSample, Landmark

PINCH_THRESHOLD = 0.08
SPREAD_GAIN = 5.0
FIST_SPREAD = 0.3


def _as_landmarks(landmarks) -> np.ndarray:
    try:
        lm = np.asarray(landmarks, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Landmarks must be numeric: {e}") from e
    if lm.ndim != 2 or lm.shape[0] != Landmark.COUNT or lm.shape[1] < 2:
        raise ValueError(
            f"Expected {Landmark.COUNT} landmarks with x/y, got shape {lm.shape}"
        )
    if not np.isfinite(lm[:, :2]).all():
        raise ValueError("Landmark coordinates must be finite")
    return lm[:, :2]


def is_fist(lm: np.ndarray) -> bool:
    """All four fingertips below their PIP joints (y grows downward)."""
    return all(lm[tip, 1] > lm[pip, 1] for tip, pip in Landmark.FINGERS)


def is_peace(lm: np.ndarray) -> bool:
    """Index and middle raised, ring and pinky folded."""
    index_up = lm[Landmark.INDEX_TIP, 1] < lm[Landmark.INDEX_PIP, 1]
    middle_up = lm[Landmark.MIDDLE_TIP, 1] < lm[Landmark.MIDDLE_PIP, 1]
    ring_down = lm[Landmark.RING_TIP, 1] > lm[Landmark.RING_PIP, 1]
    pinky_down = lm[Landmark.PINKY_TIP, 1] > lm[Landmark.PINKY_PIP, 1]
    return bool(index_up and middle_up and ring_down and pinky_down)


def classify(landmarks) -> GestureSample:
    """Classify one detected hand.

    Args:
        landmarks: 21 normalized landmarks, shape (21, 2) or (21, 3). Only
            x and y are used.

    Returns:
        A detecting GestureSample.
    """
    lm = _as_landmarks(landmarks)

    palm = (lm[Landmark.WRIST] + lm[Landmark.MIDDLE_MCP]) / 2
    raw_spread = float(np.linalg.norm(lm[Landmark.THUMB_TIP] - lm[Landmark.PINKY_TIP]))
    pinch_dist = float(np.linalg.norm(lm[Landmark.THUMB_TIP] - lm[Landmark.INDEX_TIP]))

    # Each test overwrites the previous result, in this order.
    label = GestureLabel.OPEN
    if is_fist(lm):
        label = GestureLabel.FIST
    if is_peace(lm):
        label = GestureLabel.PEACE
    if pinch_dist < PINCH_THRESHOLD:
        label = GestureLabel.PINCH

    spread = FIST_SPREAD if label == GestureLabel.FIST else 1.0 + raw_spread * SPREAD_GAIN

    return GestureSample(
        label=label,
        spread=spread,
        hand_position=(float(palm[0]), float(palm[1])),
        detecting=True,
    )


def absent(previous: GestureSample) -> GestureSample:
    """Sample for a frame with no hand: keeps label and spread."""
    return previous.without_hand()


class GestureClassifier:
    """Turns the landmark feed into a stream of gesture samples.

    Remembers the last sample so frames without a hand carry the previous
    label and spread forward.
    """

    def __init__(self):
        self._last = GestureSample.neutral()

    def update(self, landmarks: Optional[np.ndarray]) -> GestureSample:
        """Classify a frame. ``None`` means no hand was detected."""
        if landmarks is None:
            self._last = absent(self._last)
        else:
            self._last = classify(landmarks)
        return self._last

    @property
    def last(self) -> GestureSample:
        return self._last

    def reset(self):
        self._last = GestureSample.neutral()
