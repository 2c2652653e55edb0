# serial_controller.py
"""Serial-bridged flight controller speaking a line-based ASCII protocol."""
from __future__ import annotations

import logging
import re
import threading
import time
from enum import Enum, auto
from typing import Optional

import serial

from hat_follow.common import clamp
from hat_follow.config import SerialConfig
from hat_follow.controllers import Controller

log = logging.getLogger(__name__)


# ------------------- Exceptions / Enums -------------------
class FirmwareError(RuntimeError):
    """Raised when the bridge does not acknowledge a command in time."""


class _Ack(str, Enum):
    TAKEOFF_OK = auto()
    LAND_OK = auto()


_ACK_PATTERN = re.compile(r"^(TAKEOFF_OK|LAND_OK)$")


# ---------------------- Main class ----------------------
class SerialController(Controller):
    """
    Commands (newline terminated, upper-cased):

    ``TAKEOFF`` → ``TAKEOFF_OK``, ``LAND`` → ``LAND_OK``,
    ``MOVE lr bf du turn`` and ``STOP`` are fire-and-forget.
    """

    def __init__(self, cfg: SerialConfig, *, eol: str = "\n", auto_flush: bool = True):
        self.cfg = cfg
        self._eol = eol.encode()
        self._auto_flush = auto_flush
        self._ser: Optional[serial.Serial] = None
        self._lock = threading.Lock()

    # ---------------- Serial plumbing ----------------
    def init(self) -> None:
        if self._ser and self._ser.is_open:
            return
        wt = self.cfg.write_timeout if self.cfg.write_timeout is not None else self.cfg.timeout
        self._ser = serial.Serial(
            port=self.cfg.port,
            baudrate=self.cfg.baudrate,
            timeout=self.cfg.timeout,
            write_timeout=wt,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
        )
        time.sleep(0.2)
        if self._ser.is_open:
            self._ser.reset_input_buffer()
        log.info("Opened %s @ %d baud", self.cfg.port, self.cfg.baudrate)

    def shutdown(self) -> None:
        if self._ser and self._ser.is_open:
            self._ser.close()
            log.info("Closed %s", self.cfg.port)
        self._ser = None

    def is_open(self) -> bool:
        return bool(self._ser and self._ser.is_open)

    # ------------------ Public API -------------------
    def takeoff(self) -> None:
        self._cmd("TAKEOFF", expect=_Ack.TAKEOFF_OK)

    def land(self) -> None:
        self._cmd("LAND", expect=_Ack.LAND_OK)

    def move_all(
        self, lateral: float, longitudinal: float, vertical: float, turn: float
    ) -> None:
        lr, bf, du, tr = (clamp(v) for v in (lateral, longitudinal, vertical, turn))
        self._cmd(f"MOVE {lr:.3f} {bf:.3f} {du:.3f} {tr:.3f}", wait=False)

    def stop(self) -> None:
        self._cmd("STOP", wait=False)

    def get_video_width(self) -> int:
        return self.cfg.video_width

    def get_video_height(self) -> int:
        return self.cfg.video_height

    def get_opencv_url(self) -> str:
        return self.cfg.video_url

    def get_kv(self) -> float:
        return self.cfg.kv

    def get_ka(self) -> float:
        return self.cfg.ka

    # ----------------- Internal core -----------------
    def _cmd(
        self,
        cmd: str,
        expect: Optional[_Ack] = None,
        *,
        wait: bool = True,
    ) -> Optional[str]:
        if not self.is_open():
            raise RuntimeError("Serial port is not open")
        with self._lock:
            self._ser.write(cmd.upper().encode() + self._eol)
            if self._auto_flush:
                self._ser.flush()
            if not wait:
                return None
            while True:
                raw = self._ser.readline()
                if not raw:
                    raise FirmwareError(f"Timeout waiting for response to {cmd!r}")
                line = raw.decode(errors="replace").strip()
                if expect and line == expect.name:
                    return line
                if _ACK_PATTERN.match(line):
                    log.debug("Ignoring stale ack %r while waiting for %s", line, expect)

    # ---------------- Context / repr ---------------
    def __enter__(self) -> "SerialController":
        self.init()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        state = "open" if self.is_open() else "closed"
        return f"<SerialController port={self.cfg.port!r} ({state})>"
