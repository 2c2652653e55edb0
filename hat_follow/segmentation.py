# segmentation.py
"""OpenCV Lab color segmentation → Cartesian contours."""
from __future__ import annotations

from typing import List

import cv2
import numpy as np

from hat_follow.geometry import CartesianPoint, PointConverter
from hat_follow.hat import LabColor

Contour = List[CartesianPoint]


def get_mask(lab: np.ndarray, lower: LabColor, upper: LabColor) -> np.ndarray:
    """``cv2.inRange`` mask of every Lab pixel between the two colors."""
    lo = np.array(lower.as_tuple(), dtype=np.uint8)
    hi = np.array(upper.as_tuple(), dtype=np.uint8)
    return cv2.inRange(lab, lo, hi)


def find_raster_contours(
    frame_bgr: np.ndarray, lower: LabColor, upper: LabColor
) -> List[np.ndarray]:
    """External contours (every boundary pixel kept) of in-range regions."""
    lab = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2Lab)
    mask = get_mask(lab, lower, upper)
    _, thresh = cv2.threshold(mask, 40, 255, cv2.THRESH_BINARY)
    contours, _ = cv2.findContours(
        thresh, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_NONE
    )
    return list(contours)


class LabContourExtractor:
    """Callable contour source bound to one color range."""

    def __init__(self, lower: LabColor, upper: LabColor) -> None:
        self.lower = lower
        self.upper = upper

    def __call__(
        self, frame_bgr: np.ndarray, converter: PointConverter
    ) -> List[Contour]:
        out: List[Contour] = []
        for raw in find_raster_contours(frame_bgr, self.lower, self.upper):
            pts = raw.reshape(-1, 2)
            if len(pts) == 0:
                continue
            out.append(converter.contour_from_image(pts.tolist()))
        return out


def contour_area(contour: Contour) -> float:
    """Absolute polygon area; y-flip does not change it."""
    if len(contour) < 3:
        return 0.0
    arr = np.array([p.as_tuple() for p in contour], dtype=np.int32).reshape(-1, 1, 2)
    return float(cv2.contourArea(arr))
