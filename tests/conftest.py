"""
Shared fixtures and fakes for the hat_follow test-suite
"""

from typing import Iterable, List, Optional

import numpy as np
import pytest

from hat_follow.common import DetectionResult
from hat_follow.controllers import Controller
from hat_follow.detector import Detector
from hat_follow.geometry import PointConverter
from hat_follow.hat import Hat, LabColor


class RecordingController(Controller):
    """Controller that logs every call instead of flying"""

    def __init__(self, width=640, height=480, kv=1.0, ka=1.0, url="fake.mp4"):
        self.width = width
        self.height = height
        self.kv = kv
        self.ka = ka
        self.url = url
        self.calls: List[str] = []
        self.moves: List[tuple] = []

    def init(self):
        self.calls.append("init")

    def shutdown(self):
        self.calls.append("shutdown")

    def takeoff(self):
        self.calls.append("takeoff")

    def land(self):
        self.calls.append("land")

    def move_all(self, lateral, longitudinal, vertical, turn):
        self.calls.append("move_all")
        self.moves.append((lateral, longitudinal, vertical, turn))

    def stop(self):
        self.calls.append("stop")

    def get_video_width(self):
        return self.width

    def get_video_height(self):
        return self.height

    def get_opencv_url(self):
        return self.url

    def get_kv(self):
        return self.kv

    def get_ka(self):
        return self.ka


class ScriptedDetector(Detector):
    """Replays a fixed list of results, then reports nothing"""

    def __init__(self, results: Iterable[DetectionResult]):
        self.results = list(results)
        self.hints = []

    def detect_new_position(self, frame_bgr, hint, converter):
        self.hints.append(hint)
        if self.results:
            return self.results.pop(0)
        return DetectionResult.empty()


class FakeSource:
    """Stand-in for VideoSource serving a fixed number of black frames"""

    def __init__(self, n_frames=3, width=640, height=480, can_open=True):
        self.url = "fake://source"
        self.remaining = n_frames
        self.width = width
        self.height = height
        self.can_open = can_open
        self.opened = False
        self.released = False

    def open(self):
        self.opened = self.can_open
        return self.can_open

    def is_opened(self):
        return self.opened

    def read(self) -> Optional[np.ndarray]:
        if self.remaining <= 0:
            return None
        self.remaining -= 1
        return np.zeros((self.height, self.width, 3), dtype=np.uint8)

    def release(self):
        self.released = True
        self.opened = False

    def get_properties(self):
        return self.width, self.height, 30.0


class FakeExporter:
    """Collects (resource, payload) pairs synchronously"""

    def __init__(self):
        self.messages = []
        self.closed = False

    def write(self, resource, payload):
        self.messages.append((resource, payload))
        return True

    def close(self):
        self.closed = True


@pytest.fixture
def converter():
    return PointConverter(640, 480)


@pytest.fixture
def controller():
    return RecordingController()


@pytest.fixture
def blue_hat():
    """Hat whose Lab range contains pure BGR blue and excludes black"""
    return Hat(LabColor.from_lab(0, 20, -127), LabColor.from_lab(80, 127, -20), 800.0)
