# filters.py
"""Temporal filters: bounded-memory hold and a per-frame Kalman variant."""
from __future__ import annotations

import abc
import logging
from typing import Optional, Tuple

import numpy as np
from filterpy.common import Q_discrete_white_noise
from filterpy.kalman import KalmanFilter

from hat_follow.common import DetectionResult, FilterState
from hat_follow.config import FilterConfig
from hat_follow.geometry import CartesianPoint
from hat_follow.markers import BLUE, MarkerDrawer

log = logging.getLogger(__name__)


class Filter(abc.ABC):
    """
    Strategy interface.  Implementations are updated exactly once per frame
    and must keep the angle of the last detection that supplied one, always
    overwrite the certainty, and forget a position after
    ``max_frames_unknown`` consecutive misses.
    """

    def __init__(self, max_frames_unknown: int) -> None:
        if max_frames_unknown < 0:
            raise ValueError("max_frames_unknown must be >= 0")
        self.max_frames_unknown = max_frames_unknown
        self.position: Optional[CartesianPoint] = None
        self.angle: float = 0.0
        self.vx: float = 0.0
        self.vy: float = 0.0
        self.certainty: float = 0.0
        self.frames_unknown: int = 0

    @abc.abstractmethod
    def update_estimation(self, result: DetectionResult) -> FilterState:
        """Fold one frame's detection into the estimate."""

    # ------------------------------------------------------------------ #
    #   S H A R E D   B O O K K E E P I N G
    # ------------------------------------------------------------------ #
    def _register_miss(self) -> bool:
        """Count a frame without detection; True if the position was dropped."""
        if self.position is None:
            return False
        if self.frames_unknown >= self.max_frames_unknown:
            log.debug("Marker lost for %d frames, forgetting it", self.frames_unknown + 1)
            self.position = None
            self.frames_unknown = 0
            self.vx = self.vy = 0.0
            return True
        self.frames_unknown += 1
        return False

    def _finish(self, result: DetectionResult) -> FilterState:
        if result.angle is not None:
            self.angle = result.angle
        self.certainty = result.certainty
        return self.state()

    def state(self) -> FilterState:
        return FilterState(
            position=self.position,
            angle=self.angle,
            velocity=(self.vx, self.vy),
            certainty=self.certainty,
            frames_unknown=self.frames_unknown,
        )

    @property
    def velocity(self) -> Tuple[float, float]:
        return (self.vx, self.vy)

    def draw_on_image(self, drawer: MarkerDrawer) -> None:
        if self.position is not None:
            drawer.point(self.position, BLUE)


# ---------------------------------------------------------------------------- #
#   M E M O R Y   F I L T E R
# ---------------------------------------------------------------------------- #
class MemoryFilter(Filter):
    """
    Last-value hold with first-difference velocity.  ``max_frames_unknown=0``
    forgets the marker on the very first miss.
    """

    def __init__(self, max_frames_unknown: int = FilterConfig.max_frames_unknown) -> None:
        super().__init__(max_frames_unknown)

    def update_estimation(self, result: DetectionResult) -> FilterState:
        new = result.position
        if new is not None:
            if self.position is not None:
                self.vx = float(new.x - self.position.x)
                self.vy = float(new.y - self.position.y)
            self.position = new
            self.frames_unknown = 0
        else:
            self._register_miss()
        return self._finish(result)


# ---------------------------------------------------------------------------- #
#   K A L M A N   F I L T E R
# ---------------------------------------------------------------------------- #
class KalmanMemoryFilter(Filter):
    """4-state constant-velocity Kalman filter stepped once per frame (dt = 1)."""

    def __init__(self, cfg: Optional[FilterConfig] = None) -> None:
        self.cfg = cfg or FilterConfig()
        super().__init__(self.cfg.max_frames_unknown)

        self.kf = KalmanFilter(dim_x=4, dim_z=2)
        self.kf.F = np.array(
            [
                [1, 0, 1, 0],
                [0, 1, 0, 1],
                [0, 0, 1, 0],
                [0, 0, 0, 1],
            ],
            dtype=float,
        )
        self.kf.H = np.array([[1, 0, 0, 0], [0, 1, 0, 0]], dtype=float)

        mvar = self.cfg.measurement_noise_std ** 2
        self.kf.R = np.diag([mvar, mvar])
        self.kf.Q = Q_discrete_white_noise(
            dim=2, dt=1.0, var=self.cfg.process_noise_std ** 2,
            order_by_dim=False, block_size=2,
        )
        self._reset_covariance()
        self.kf.x = np.zeros((4, 1))
        self.initialized = False

    def _reset_covariance(self) -> None:
        pos_var = self.cfg.measurement_noise_std ** 2
        vel_var = self.cfg.initial_velocity_error_std ** 2
        self.kf.P = np.diag([pos_var, pos_var, vel_var, vel_var])

    def _pull_state(self) -> None:
        x, y, vx, vy = self.kf.x.flatten()
        self.position = CartesianPoint(int(round(x)), int(round(y)))
        self.vx, self.vy = float(vx), float(vy)

    def update_estimation(self, result: DetectionResult) -> FilterState:
        meas = result.position
        if meas is not None:
            if not self.initialized:
                # First detection initialises the state
                self.kf.x = np.array([[meas.x], [meas.y], [0.0], [0.0]], dtype=float)
                self._reset_covariance()
                self.initialized = True
            else:
                self.kf.predict()
                self.kf.update(np.array([[meas.x], [meas.y]], dtype=float))
            self._pull_state()
            self.frames_unknown = 0
        elif self.initialized:
            if self._register_miss():
                self.initialized = False
            else:
                # Coast on the motion model while the marker is hidden
                self.kf.predict()
                self._pull_state()
        return self._finish(result)
