# camera.py
"""A thin wrapper around cv2.VideoCapture for files and network streams."""
from __future__ import annotations

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

log = logging.getLogger(__name__)


class VideoSourceError(RuntimeError):
    """The controller's video URL could not be opened."""


class VideoSource:
    def __init__(self, url: str):
        self.url = url
        self.cap: Optional[cv2.VideoCapture] = None

        # Exposed runtime values
        self.actual_width = 0
        self.actual_height = 0
        self.actual_fps = 0.0

    # --------------- Public API ---------------------
    def open(self) -> bool:
        self.cap = cv2.VideoCapture(self.url, cv2.CAP_ANY)
        if not self.cap or not self.cap.isOpened():
            log.error("Could not open %s", self.url)
            self.cap = None
            return False

        self.actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.actual_fps = self.cap.get(cv2.CAP_PROP_FPS)
        log.info(
            "%s: %dx%d@%.1f FPS",
            self.url, self.actual_width, self.actual_height, self.actual_fps,
        )
        return True

    def read(self) -> Optional[np.ndarray]:
        """Next BGR frame, or None at end of stream / on a failed grab."""
        if not self.is_opened():
            return None
        ret, frame = self.cap.read()
        return frame if ret and frame is not None else None

    def is_opened(self) -> bool:
        return bool(self.cap and self.cap.isOpened())

    def release(self) -> None:
        if self.cap:
            log.info("Releasing %s", self.url)
            self.cap.release()
            self.cap = None

    # Convenience for other modules
    def get_properties(self) -> Tuple[int, int, float]:
        return self.actual_width, self.actual_height, self.actual_fps
