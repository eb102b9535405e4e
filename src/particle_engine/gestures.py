"""Gesture vocabulary and the per-frame gesture sample."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class GestureLabel(str, Enum):
    """Discrete hand gestures understood by the engine."""
    OPEN = "open"
    FIST = "fist"
    PINCH = "pinch"
    PEACE = "peace"


class Landmark:
    """MediaPipe hand landmark indices used by the classifier."""
    WRIST = 0
    THUMB_TIP = 4
    INDEX_PIP, INDEX_TIP = 6, 8
    MIDDLE_MCP, MIDDLE_PIP, MIDDLE_TIP = 9, 10, 12
    RING_PIP, RING_TIP = 14, 16
    PINKY_PIP, PINKY_TIP = 18, 20

    COUNT = 21

    # (tip, pip) for the four non-thumb fingers
    FINGERS = ((8, 6), (12, 10), (16, 14), (20, 18))


@dataclass(frozen=True)
class GestureSample:
    """Control signal derived from one landmark frame.

    ``spread`` scales the target cloud. ``hand_position`` is the palm center
    in normalized image coordinates (origin top-left), or None when no hand
    is in view.
    """

    label: GestureLabel = GestureLabel.OPEN
    spread: float = 1.0
    hand_position: Optional[tuple[float, float]] = None
    detecting: bool = False

    @classmethod
    def neutral(cls) -> GestureSample:
        return cls()

    def without_hand(self) -> GestureSample:
        """Same label and spread, hand cleared."""
        return replace(self, hand_position=None, detecting=False)

    def to_dict(self) -> dict:
        return {
            "label": self.label.value,
            "spread": self.spread,
            "hand_position": list(self.hand_position) if self.hand_position else None,
            "detecting": self.detecting,
        }
