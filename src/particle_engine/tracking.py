"""Camera-driven landmark feed.

Reads frames from an OpenCV capture on a background thread, runs the hand
detector and pushes each result into ``Session.on_landmarks``. Any failure
to acquire the camera or the model disables tracking; the session keeps
running with the last gesture and no hand.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import numpy as np

try:
    import cv2
except ImportError:
    cv2 = None

from particle_engine.config import EngineConfig

logger = logging.getLogger("particle_engine.tracking")

LandmarkSink = Callable[[Optional[np.ndarray]], object]


class HandTrackingFeed:
    """Delivers one landmark sample (or None) per camera frame to ``sink``."""

    def __init__(
        self,
        sink: LandmarkSink,
        config: Optional[EngineConfig] = None,
        detector_factory: Optional[Callable[[], object]] = None,
        capture_factory: Optional[Callable[[], object]] = None,
    ):
        self._sink = sink
        self.config = config or EngineConfig()
        self._detector_factory = detector_factory or self._default_detector
        self._capture_factory = capture_factory or self._default_capture
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self.enabled = False
        self.frames = 0
        self.error: Optional[str] = None

    def _default_detector(self):
        from particle_engine.detector import HandDetector

        return HandDetector(
            min_detection_confidence=self.config.min_detection_confidence,
            min_tracking_confidence=self.config.min_tracking_confidence,
        )

    def _default_capture(self):
        if cv2 is None:
            raise ImportError("opencv-python is required for camera capture")
        capture = cv2.VideoCapture(self.config.camera_index)
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.camera_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.camera_height)
        return capture

    def _disable(self, reason: str):
        self.enabled = False
        self.error = reason
        logger.error("Hand tracking disabled: %s", reason)
        self._sink(None)

    def start(self) -> bool:
        """Open camera and detector and start the feed thread.

        Returns False (and logs) if either cannot be acquired.
        """
        try:
            capture = self._capture_factory()
            if not capture.isOpened():
                capture.release()
                self._disable(f"could not open camera {self.config.camera_index}")
                return False
        except Exception as e:
            self._disable(f"camera unavailable ({e})")
            return False

        try:
            detector = self._detector_factory()
        except Exception as e:
            capture.release()
            self._disable(f"hand model unavailable ({e})")
            return False

        self.enabled = True
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, args=(capture, detector), name="hand-tracking", daemon=True
        )
        self._thread.start()
        logger.info("Hand tracking started on camera %d", self.config.camera_index)
        return True

    def _loop(self, capture, detector):
        try:
            while not self._stop.is_set():
                ok, frame = capture.read()
                if not ok:
                    time.sleep(0.01)
                    continue

                frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                self._sink(detector.detect(frame_rgb))
                self.frames += 1
        except Exception as e:
            self._disable(f"capture loop failed ({e})")
        finally:
            capture.release()
            detector.close()
            logger.info("Hand tracking stopped after %d frames", self.frames)

    def stop(self, timeout: float = 1.0):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self.enabled = False
