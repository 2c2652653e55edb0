# markers.py
"""Deferred drawing of Cartesian-space markers onto BGR frames."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union

import cv2
import numpy as np

from hat_follow.geometry import CartesianPoint, PointConverter

Color = Tuple[int, int, int]   # BGR

RED: Color = (0, 0, 255)
GREEN: Color = (0, 255, 0)
DARK_GREEN: Color = (0, 100, 0)
BLUE: Color = (255, 0, 0)


@dataclass(frozen=True)
class _Point:
    p: CartesianPoint
    color: Color


@dataclass(frozen=True)
class _Line:
    a: CartesianPoint
    b: CartesianPoint
    color: Color
    thickness: int


@dataclass(frozen=True)
class _Circle:
    p: CartesianPoint
    radius: int
    color: Color


_Marker = Union[_Point, _Line, _Circle]


class MarkerDrawer:
    """Collects markers during a frame and renders them in one go."""

    def __init__(self) -> None:
        self._markers: List[_Marker] = []

    def __len__(self) -> int:
        return len(self._markers)

    def point(self, p: CartesianPoint, color: Color) -> None:
        """Small circle, radius 5, thickness 2."""
        self._markers.append(_Point(p, color))

    def line(
        self, a: CartesianPoint, b: CartesianPoint, color: Color, thickness: int = 1
    ) -> None:
        self._markers.append(_Line(a, b, color, thickness))

    def circle(self, p: CartesianPoint, radius: int, color: Color) -> None:
        self._markers.append(_Circle(p, radius, color))

    def draw_on_image(self, img: np.ndarray, converter: PointConverter) -> None:
        """Render every queued marker, then forget them."""
        for m in self._markers:
            if isinstance(m, _Point):
                cv2.circle(img, converter.to_image(m.p).as_tuple(), 5, m.color, 2, cv2.LINE_8)
            elif isinstance(m, _Line):
                cv2.line(
                    img,
                    converter.to_image(m.a).as_tuple(),
                    converter.to_image(m.b).as_tuple(),
                    m.color,
                    m.thickness,
                    cv2.LINE_8,
                )
            else:
                cv2.circle(
                    img, converter.to_image(m.p).as_tuple(), m.radius, m.color, 2, cv2.LINE_8
                )
        self._markers.clear()
