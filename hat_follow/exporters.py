# exporters.py
"""
Background writers for annotated video and per-frame text logs.

Each exporter owns one worker thread fed by a bounded queue of
``(resource_name, payload)`` messages; the control loop only ever calls the
non-blocking :meth:`_ExportWorker.write`.
"""
from __future__ import annotations

import abc
import logging
import queue
import threading
from typing import Any, Dict, Optional, TextIO, Tuple

import cv2
import numpy as np

from hat_follow.config import ExportConfig

log = logging.getLogger(__name__)

_Message = Tuple[str, Any]


class _ExportWorker(threading.Thread, abc.ABC):
    def __init__(self, cfg: Optional[ExportConfig] = None, *, name: str) -> None:
        super().__init__(name=name, daemon=True)
        self.cfg = cfg or ExportConfig()
        self._queue: "queue.Queue[_Message]" = queue.Queue(maxsize=self.cfg.queue_size)
        self._closed = False
        self.dropped = 0
        self.start()

    # ---------------- Producer side ----------------
    def write(self, resource: str, payload: Any) -> bool:
        """Queue ``payload`` for ``resource``; False if it had to be dropped."""
        if self._closed:
            raise RuntimeError(f"{self.name} is closed")
        try:
            self._queue.put_nowait((resource, payload))
        except queue.Full:
            self.dropped += 1
            log.warning("%s queue full, dropped message for %s (%d so far)",
                        self.name, resource, self.dropped)
            return False
        return True

    def close(self, timeout: Optional[float] = None) -> None:
        """Flush pending messages, close every handle and join the worker."""
        if self._closed:
            return
        self._closed = True
        self._queue.put(("", None))   # shutdown sentinel
        self.join(timeout)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ---------------- Consumer side ----------------
    def run(self) -> None:
        while True:
            resource, payload = self._queue.get()
            if payload is None:
                break
            try:
                self._handle(resource, payload)
            except (OSError, cv2.error) as exc:
                log.error("%s failed writing %s: %s", self.name, resource, exc)
        self._close_all()

    @abc.abstractmethod
    def _handle(self, resource: str, payload: Any) -> None: ...

    @abc.abstractmethod
    def _close_all(self) -> None: ...


# ---------------------------------------------------------------------------- #
#   V I D E O
# ---------------------------------------------------------------------------- #
class VideoExporter(_ExportWorker):
    """Writes BGR frames to one ``cv2.VideoWriter`` per file name."""

    def __init__(self, cfg: Optional[ExportConfig] = None) -> None:
        self._writers: Dict[str, cv2.VideoWriter] = {}
        super().__init__(cfg, name="VideoExporter")

    def _open(self, path: str, frame: np.ndarray) -> cv2.VideoWriter:
        h, w = frame.shape[:2]
        fourcc = cv2.VideoWriter_fourcc(*self.cfg.fourcc_str)
        writer = cv2.VideoWriter(path, fourcc, self.cfg.fps, (w, h))
        if not writer.isOpened():
            raise OSError(f"could not open video writer for {path}")
        log.info("Recording %dx%d@%.0f to %s", w, h, self.cfg.fps, path)
        return writer

    def _handle(self, resource: str, payload: np.ndarray) -> None:
        writer = self._writers.get(resource)
        if writer is None:
            writer = self._writers[resource] = self._open(resource, payload)
        writer.write(payload)

    def _close_all(self) -> None:
        for path, writer in self._writers.items():
            writer.release()
            log.info("Closed %s", path)
        self._writers.clear()


# ---------------------------------------------------------------------------- #
#   T E X T
# ---------------------------------------------------------------------------- #
class TextExporter(_ExportWorker):
    """Appends raw strings; each file is truncated when first written."""

    def __init__(self, cfg: Optional[ExportConfig] = None) -> None:
        self._files: Dict[str, TextIO] = {}
        super().__init__(cfg, name="TextExporter")

    def _handle(self, resource: str, payload: str) -> None:
        fp = self._files.get(resource)
        if fp is None:
            fp = self._files[resource] = open(resource, "w", encoding="utf-8")
        fp.write(payload)

    def _close_all(self) -> None:
        for fp in self._files.values():
            fp.close()
        self._files.clear()
