"""Single-hand landmark extraction using MediaPipe."""

from typing import Optional

import numpy as np

try:
    import mediapipe as mp
except ImportError:
    mp = None


class HandDetector:
    """Extracts the 21 landmarks of at most one hand per frame.

    Landmarks are (x, y) normalized to [0, 1] relative to the image, origin
    top-left. Depth is discarded; the classifier works in the image plane.
    """

    def __init__(
        self,
        min_detection_confidence: float = 0.7,
        min_tracking_confidence: float = 0.5,
        model_complexity: int = 1,
    ):
        if mp is None:
            raise ImportError(
                "mediapipe is required. Install with: pip install 'particle-engine[camera]'"
            )

        self._hands = mp.solutions.hands.Hands(
            static_image_mode=False,
            max_num_hands=1,
            model_complexity=model_complexity,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def detect(self, frame_rgb: np.ndarray) -> Optional[np.ndarray]:
        """Landmarks of the first detected hand, shape (21, 2), or None.

        Args:
            frame_rgb: RGB image as numpy array (H, W, 3), uint8.
        """
        results = self._hands.process(frame_rgb)
        if not results.multi_hand_landmarks:
            return None

        hand = results.multi_hand_landmarks[0]
        return np.array([[lm.x, lm.y] for lm in hand.landmark], dtype=np.float32)

    def close(self):
        """Release MediaPipe resources."""
        self._hands.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
