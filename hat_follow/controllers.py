# controllers.py
"""Actuator boundary: the Controller interface and a replay-only mock."""
from __future__ import annotations

import abc
import logging

log = logging.getLogger(__name__)


class Controller(abc.ABC):
    """
    Everything the follower needs from a flying platform.

    ``move_all`` arguments are normalised to [-1, 1]; the sign gives the
    direction (right / forward / up / clockwise are positive).
    """

    # Lifecycle
    @abc.abstractmethod
    def init(self) -> None: ...

    @abc.abstractmethod
    def shutdown(self) -> None: ...

    @abc.abstractmethod
    def takeoff(self) -> None: ...

    @abc.abstractmethod
    def land(self) -> None: ...

    # Actuation
    @abc.abstractmethod
    def move_all(
        self, lateral: float, longitudinal: float, vertical: float, turn: float
    ) -> None: ...

    @abc.abstractmethod
    def stop(self) -> None:
        """Halt all movement."""

    # Video
    @abc.abstractmethod
    def get_video_width(self) -> int: ...

    @abc.abstractmethod
    def get_video_height(self) -> int: ...

    @abc.abstractmethod
    def get_opencv_url(self) -> str:
        """Anything ``cv2.VideoCapture`` can open."""

    # Calibration
    @abc.abstractmethod
    def get_kv(self) -> float:
        """Pixels-per-frame → command-range conversion factor."""

    @abc.abstractmethod
    def get_ka(self) -> float:
        """Radians-per-frame → turn-command conversion factor."""


class MockController(Controller):
    """
    Serves a prerecorded video and ignores every command.  Use it to run the
    tracking pipeline without hardware.
    """

    def __init__(self, filename: str, width: int, height: int) -> None:
        self.filename = filename
        self.width = width
        self.height = height

    def init(self) -> None:
        log.info("Mock controller replaying %s (%dx%d)", self.filename, self.width, self.height)

    def shutdown(self) -> None:
        pass

    def takeoff(self) -> None:
        pass

    def land(self) -> None:
        pass

    def move_all(
        self, lateral: float, longitudinal: float, vertical: float, turn: float
    ) -> None:
        pass

    def stop(self) -> None:
        pass

    def get_video_width(self) -> int:
        return self.width

    def get_video_height(self) -> int:
        return self.height

    def get_opencv_url(self) -> str:
        return self.filename

    def get_kv(self) -> float:
        return 1.0

    def get_ka(self) -> float:
        return 1.0

    def __repr__(self) -> str:
        return f"<MockController {self.filename!r} {self.width}x{self.height}>"
