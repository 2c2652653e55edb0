# geometry.py
"""Point types and the raster ↔ centered-Cartesian converter.

Every tracking calculation happens in a Cartesian system whose origin is the
frame center and whose y axis points *up*.  OpenCV only ever sees
:class:`RasterPoint` values; the two types never compare equal, so a raster
point cannot leak into the maths by accident.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple


@dataclass(frozen=True, slots=True)
class CartesianPoint:
    """Integer point, origin at the frame center, y-up."""
    x: int
    y: int

    def dist_sq(self, other: "CartesianPoint") -> int:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class RasterPoint:
    """Integer point, origin top-left, y-down (OpenCV pixel space)."""
    x: int
    y: int

    def as_tuple(self) -> Tuple[int, int]:
        return (self.x, self.y)


def trunc_div(num: int, den: int) -> int:
    """Integer division rounding toward zero (``//`` floors)."""
    q = abs(num) // abs(den)
    return q if (num >= 0) == (den > 0) else -q


# ---------------------------------------------------------------------------- #
#   C O N V E R T E R
# ---------------------------------------------------------------------------- #
class PointConverter:
    """Maps between raster pixels and the centered Cartesian system.

    Halving is truncating, so for odd frame sizes a forward-then-back round
    trip can be off by one pixel at the edges.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"frame size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self._half_w = self.width // 2
        self._half_h = self.height // 2

    @staticmethod
    def center() -> CartesianPoint:
        return CartesianPoint(0, 0)

    def from_image(self, point: RasterPoint) -> CartesianPoint:
        return CartesianPoint(point.x - self._half_w, -(point.y - self._half_h))

    def to_image(self, point: CartesianPoint) -> RasterPoint:
        return RasterPoint(point.x + self._half_w, self._half_h - point.y)

    def contour_from_image(
        self, contour: Iterable[Tuple[int, int]]
    ) -> List[CartesianPoint]:
        """Convert raw ``(x, y)`` raster pairs, e.g. a squeezed cv2 contour."""
        return [self.from_image(RasterPoint(int(x), int(y))) for x, y in contour]

    def contour_to_image(
        self, contour: Iterable[CartesianPoint]
    ) -> List[RasterPoint]:
        return [self.to_image(p) for p in contour]

    def __repr__(self) -> str:
        return f"<PointConverter {self.width}x{self.height}>"


# ---------------------------------------------------------------------------- #
#   C O N T O U R   H E L P E R S
# ---------------------------------------------------------------------------- #
def centroid(points: Sequence[CartesianPoint]) -> CartesianPoint:
    """Unweighted mean of all points (duplicates count), truncated."""
    if not points:
        raise ValueError("centroid of an empty contour")
    n = len(points)
    sx = sum(p.x for p in points)
    sy = sum(p.y for p in points)
    return CartesianPoint(trunc_div(sx, n), trunc_div(sy, n))


def closest_point(
    points: Sequence[CartesianPoint], target: CartesianPoint
) -> Tuple[CartesianPoint, int]:
    """Return ``(point, squared_distance)``; the first minimum wins ties."""
    if not points:
        raise ValueError("closest_point on an empty contour")
    best = points[0]
    best_d = best.dist_sq(target)
    for p in points[1:]:
        d = p.dist_sq(target)
        if d < best_d:
            best, best_d = p, d
    return best, best_d
