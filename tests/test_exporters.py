"""
Tests for the background video and text exporters
"""

import threading

import numpy as np
import pytest

from hat_follow import exporters
from hat_follow.config import ExportConfig
from hat_follow.exporters import TextExporter, VideoExporter


class FakeWriter:
    """cv2.VideoWriter replacement that counts frames"""

    instances = []
    opened = True

    def __init__(self, path, fourcc, fps, size):
        self.path = path
        self.fps = fps
        self.size = size
        self.frames = 0
        self.released = False
        FakeWriter.instances.append(self)

    def isOpened(self):
        return FakeWriter.opened

    def write(self, frame):
        self.frames += 1

    def release(self):
        self.released = True


@pytest.fixture
def fake_writer(monkeypatch):
    FakeWriter.instances = []
    FakeWriter.opened = True
    monkeypatch.setattr(exporters.cv2, "VideoWriter", FakeWriter)
    return FakeWriter


class TestTextExporter:
    """Test TextExporter"""

    def test_rows_are_appended(self, tmp_path):
        """Rows land in order, the file is truncated first"""
        path = tmp_path / "det.txt"
        path.write_text("stale\n")
        with TextExporter() as ex:
            for row in ("1\n", "0\n", "1\n"):
                assert ex.write(str(path), row)
        assert path.read_text() == "1\n0\n1\n"

    def test_write_after_close(self, tmp_path):
        """A closed exporter refuses new messages"""
        ex = TextExporter()
        ex.close()
        ex.close()
        assert not ex.is_alive()
        with pytest.raises(RuntimeError):
            ex.write(str(tmp_path / "x.txt"), "1\n")

    def test_full_queue_drops(self, tmp_path):
        """Overflow is dropped and counted, never blocking"""
        gate = threading.Event()
        busy = threading.Event()

        class SlowText(TextExporter):
            def _handle(self, resource, payload):
                busy.set()
                gate.wait(5)
                super()._handle(resource, payload)

        path = str(tmp_path / "slow.txt")
        ex = SlowText(ExportConfig(queue_size=1))
        ex.write(path, "a")
        assert busy.wait(5)
        assert ex.write(path, "b")
        assert not ex.write(path, "c")
        assert ex.dropped == 1
        gate.set()
        ex.close()
        assert (tmp_path / "slow.txt").read_text() == "ab"

    def test_io_error_does_not_kill_worker(self, tmp_path):
        """A bad path is logged and later messages still go through"""
        good = tmp_path / "ok.txt"
        with TextExporter() as ex:
            ex.write(str(tmp_path / "missing" / "bad.txt"), "1\n")
            ex.write(str(good), "1\n")
        assert good.read_text() == "1\n"


class TestVideoExporter:
    """Test VideoExporter with a fake writer"""

    def test_frames_written_and_released(self, fake_writer):
        """One writer per file, sized from the first frame"""
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        with VideoExporter() as ex:
            for _ in range(4):
                ex.write("out.mp4", frame)
        (w,) = fake_writer.instances
        assert w.size == (64, 48)
        assert w.fps == 30.0
        assert w.frames == 4
        assert w.released

    def test_unopenable_writer(self, fake_writer):
        """A writer that fails to open is reported, not fatal"""
        fake_writer.opened = False
        with VideoExporter() as ex:
            ex.write("out.mp4", np.zeros((8, 8, 3), dtype=np.uint8))
        assert all(w.frames == 0 for w in fake_writer.instances)
