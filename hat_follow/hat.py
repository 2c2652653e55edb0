# hat.py
"""Marker ("hat") description and its four-line descriptor file."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from hat_follow.common import clamp

log = logging.getLogger(__name__)


class HatFileError(ValueError):
    """Raised when a hat descriptor file is missing or malformed."""


@dataclass(frozen=True, slots=True)
class LabColor:
    """A CIE Lab color stored on OpenCV's 8-bit scale.

    Build it with :meth:`from_lab` using human units (L 0‒100, a/b ‒127‒127);
    out-of-range inputs are clamped, never rejected.
    """
    l: int
    a: int
    b: int

    @classmethod
    def from_lab(cls, l: int, a: int, b: int) -> "LabColor":
        ll = clamp(int(l), 0, 100)
        aa = clamp(int(a), -127, 127)
        bb = clamp(int(b), -127, 127)
        return cls(ll * 255 // 100, aa + 128, bb + 128)

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.l, self.a, self.b)


@dataclass(frozen=True)
class Hat:
    """Color range plus the expected projected area (px² at the reference
    resolution) of the marker worn by the person being followed."""
    color_low: LabColor
    color_high: LabColor
    size_avg: float

    def __post_init__(self) -> None:
        if not self.size_avg > 0:
            raise ValueError(f"expected hat area must be positive, got {self.size_avg}")


def _parse_triple(line: str, lineno: int) -> LabColor:
    parts = line.split()
    if len(parts) != 3:
        raise HatFileError(f"line {lineno}: expected 'l a b', got {line!r}")
    try:
        l, a, b = (int(p) for p in parts)
    except ValueError as exc:
        raise HatFileError(f"line {lineno}: {exc}") from exc
    return LabColor.from_lab(l, a, b)


def read_hat_file(path: str | Path) -> Tuple[str, Hat]:
    """
    Parse a descriptor file laid out as::

        video_file_name
        l1 a1 b1
        l2 a2 b2
        hat_size

    Returns ``(video_source, hat)``.  Rows after the fourth are ignored.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise HatFileError(f"cannot read hat file {path}: {exc}") from exc

    rows = text.split("\n")
    if len(rows) < 4:
        raise HatFileError(f"{path}: expected 4 rows, got {len(rows)}")

    video = rows[0].strip()
    if not video:
        raise HatFileError(f"{path}: empty video source on line 1")
    low = _parse_triple(rows[1], 2)
    high = _parse_triple(rows[2], 3)
    try:
        size = float(rows[3].strip())
    except ValueError as exc:
        raise HatFileError(f"line 4: {exc}") from exc

    try:
        hat = Hat(low, high, size)
    except ValueError as exc:
        raise HatFileError(str(exc)) from exc

    log.info("Loaded hat from %s (area %.1f px²)", path, size)
    return video, hat
