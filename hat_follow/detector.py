# detector.py
"""Marker detectors: best-fit contour selection, centroid and orientation."""
from __future__ import annotations

import abc
import logging
import math
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from hat_follow.common import VERTICAL_ANGLE, DetectionResult
from hat_follow.config import DetectorConfig
from hat_follow.geometry import (
    CartesianPoint,
    PointConverter,
    centroid,
    closest_point,
)
from hat_follow.hat import Hat
from hat_follow.markers import DARK_GREEN, GREEN, RED, MarkerDrawer
from hat_follow.segmentation import Contour, LabContourExtractor, contour_area

log = logging.getLogger(__name__)

ContourSource = Callable[[np.ndarray, PointConverter], List[Contour]]


class Detector(abc.ABC):
    """Strategy interface injected into :class:`~hat_follow.follower.HatFollower`."""

    @abc.abstractmethod
    def detect_new_position(
        self,
        frame_bgr: np.ndarray,
        hint: Optional[CartesianPoint],
        converter: PointConverter,
    ) -> DetectionResult:
        """Run once per frame.  ``hint`` is the filter's previous estimate."""

    def draw_on_image(self, drawer: MarkerDrawer) -> None:
        """Queue diagnostic markers; optional."""


# ---------------------------------------------------------------------------- #
#   O R I E N T A T I O N
# ---------------------------------------------------------------------------- #
def side_points(
    center: CartesianPoint, contour: Sequence[CartesianPoint]
) -> Tuple[CartesianPoint, CartesianPoint]:
    """
    Two near-antipodal boundary points: A is closest to the center C, B is
    closest to A's reflection through C (A itself is not excluded).
    """
    a, _ = closest_point(contour, center)
    mirrored = CartesianPoint(2 * center.x - a.x, 2 * center.y - a.y)
    b, _ = closest_point(contour, mirrored)
    return a, b


def orientation(a: CartesianPoint, b: CartesianPoint) -> float:
    """Normal of line AB as an angle in (-pi/2, pi/2]."""
    if a.y == b.y:
        return VERTICAL_ANGLE
    if a.x == b.x:
        # infinite slope, 1/slope == 0
        return 0.0
    slope = (a.y - b.y) / (a.x - b.x)
    return math.atan(1.0 / slope)


# ---------------------------------------------------------------------------- #
#   N A I V E   D E T E C T O R
# ---------------------------------------------------------------------------- #
class NaiveDetector(Detector):
    """
    Picks the in-range contour whose area is closest to the hat's expected
    area (within the configured band), takes the mean of its boundary points
    as the center and the normal of its short axis as the orientation.

    Previous positions are not used for detection.
    """

    def __init__(
        self,
        hat: Hat,
        config: Optional[DetectorConfig] = None,
        contour_source: Optional[ContourSource] = None,
    ) -> None:
        self.hat = hat
        self.config = config or DetectorConfig()
        self.contour_source: ContourSource = contour_source or LabContourExtractor(
            hat.color_low, hat.color_high
        )

        # Last reported values; kept across misses for drawing only
        self.last_position: Optional[CartesianPoint] = None
        self.last_angle: float = 0.0
        self.certainty: float = 0.0
        self.side_points: Optional[Tuple[CartesianPoint, CartesianPoint]] = None

    # ------------------------------------------------------------------ #
    #   S E L E C T I O N
    # ------------------------------------------------------------------ #
    def _certainty(self, area: float) -> float:
        diff = abs(self.hat.size_avg - area)
        if diff == 0.0:
            return 1.0
        return min(1.0, max(0.0, self.config.certainty_scale / diff))

    def best_fit_contour(
        self, contours: Sequence[Contour]
    ) -> Optional[Tuple[Contour, float]]:
        """Return ``(contour, area)`` of the best in-band candidate, or None."""
        expected = self.hat.size_avg
        lo = expected * self.config.min_area_ratio
        hi = expected * self.config.max_area_ratio

        best: Optional[Tuple[Contour, float]] = None
        best_diff = math.inf
        for contour in contours:
            if len(contour) < 1:
                continue
            area = contour_area(contour)
            if not lo <= area <= hi:
                continue
            diff = abs(expected - area)
            if diff < best_diff:
                best, best_diff = (contour, area), diff
        return best

    # ------------------------------------------------------------------ #
    #   D E T E C T I O N
    # ------------------------------------------------------------------ #
    def detect_in_contours(self, contours: Sequence[Contour]) -> DetectionResult:
        fit = self.best_fit_contour(contours)
        if fit is None:
            self.certainty = 0.0
            return DetectionResult.empty()

        contour, area = fit
        center = centroid(contour)
        a, b = side_points(center, contour)
        angle = orientation(a, b)
        cert = self._certainty(area)

        self.last_position = center
        self.last_angle = angle
        self.certainty = cert
        self.side_points = (a, b)
        log.debug(
            "hat at (%d, %d) area=%.0f angle=%.3f cert=%.2f",
            center.x, center.y, area, angle, cert,
        )
        return DetectionResult(center, angle, cert)

    def detect_new_position(
        self,
        frame_bgr: np.ndarray,
        hint: Optional[CartesianPoint],
        converter: PointConverter,
    ) -> DetectionResult:
        contours = self.contour_source(frame_bgr, converter)
        return self.detect_in_contours(contours)

    # ------------------------------------------------------------------ #
    #   D R A W I N G
    # ------------------------------------------------------------------ #
    def draw_on_image(self, drawer: MarkerDrawer, ray_len: int = 100) -> None:
        if self.last_position is None:
            return
        c = self.last_position
        if self.last_angle == VERTICAL_ANGLE:
            tip = CartesianPoint(c.x, c.y + ray_len)
        else:
            tip = CartesianPoint(
                c.x + int(ray_len * math.cos(self.last_angle)),
                c.y + int(ray_len * math.sin(self.last_angle)),
            )
        drawer.point(c, RED)
        drawer.line(c, tip, RED, thickness=2)

        if self.side_points is not None:
            a, b = self.side_points
            drawer.circle(a, 5, DARK_GREEN)
            drawer.line(a, b, GREEN, thickness=2)
            drawer.circle(b, 5, GREEN)
