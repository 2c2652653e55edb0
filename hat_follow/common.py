# common.py
"""Objects that are shared across multiple modules."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from hat_follow.geometry import CartesianPoint

VERTICAL_ANGLE = math.pi / 2.0


def clamp(value: float, lo: float = -1.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class DetectionResult:
    """
    A single-frame detector output.
    ``position`` is ``None`` when nothing qualified; ``angle`` lies in
    (-pi/2, pi/2] whenever it is present.
    """
    position: Optional[CartesianPoint] = None
    angle: Optional[float] = None
    certainty: float = 0.0

    @classmethod
    def empty(cls) -> "DetectionResult":
        return cls()

    @property
    def found(self) -> bool:
        return self.position is not None


@dataclass(frozen=True)
class FilterState:
    """Snapshot of a filter after its once-per-frame update."""
    position: Optional[CartesianPoint]
    angle: float
    velocity: Tuple[float, float]   # px / frame
    certainty: float
    frames_unknown: int


@dataclass(frozen=True)
class ControlVector:
    """(lateral, longitudinal, vertical, turn), each in [-1, 1]."""
    lateral: float = 0.0
    longitudinal: float = 0.0
    vertical: float = 0.0
    turn: float = 0.0

    def l1_distance(self, other: "ControlVector") -> float:
        return (
            abs(self.lateral - other.lateral)
            + abs(self.longitudinal - other.longitudinal)
            + abs(self.vertical - other.vertical)
            + abs(self.turn - other.turn)
        )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.lateral, self.longitudinal, self.vertical, self.turn)
