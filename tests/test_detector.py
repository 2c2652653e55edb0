"""
Tests for color segmentation and the naive detector
"""

import math

import cv2
import numpy as np
import pytest

from hat_follow.common import VERTICAL_ANGLE
from hat_follow.detector import NaiveDetector, orientation, side_points
from hat_follow.geometry import CartesianPoint
from hat_follow.hat import Hat, LabColor
from hat_follow.markers import MarkerDrawer
from hat_follow.segmentation import LabContourExtractor, contour_area


def rect(x0, y0, w, h):
    """Four-corner contour of an axis-aligned rectangle"""
    return [
        CartesianPoint(x0, y0),
        CartesianPoint(x0 + w, y0),
        CartesianPoint(x0 + w, y0 + h),
        CartesianPoint(x0, y0 + h),
    ]


def hat_with_area(area):
    return Hat(LabColor.from_lab(0, 0, 0), LabColor.from_lab(100, 0, 0), area)


class TestOrientation:
    """Test orientation and side_points"""

    def test_horizontal_segment_is_vertical_sentinel(self):
        """Equal y gives the vertical angle"""
        assert orientation(CartesianPoint(0, 0), CartesianPoint(10, 0)) == VERTICAL_ANGLE

    def test_vertical_segment_is_zero(self):
        """Equal x gives angle 0"""
        assert orientation(CartesianPoint(3, 0), CartesianPoint(3, 9)) == 0.0

    def test_diagonal(self):
        """Slope 1 gives pi/4"""
        assert orientation(CartesianPoint(0, 0), CartesianPoint(2, 2)) == pytest.approx(math.pi / 4)

    def test_range(self):
        """Every angle lies in (-pi/2, pi/2]"""
        pts = [CartesianPoint(x, y) for x in range(-3, 4) for y in range(-3, 4)]
        for a in pts:
            for b in pts:
                if a == b:
                    continue
                angle = orientation(a, b)
                assert -math.pi / 2 < angle <= math.pi / 2

    def test_side_points_reflect_through_center(self):
        """B is the point closest to A mirrored through C"""
        contour = rect(0, 0, 40, 20)
        a, b = side_points(CartesianPoint(20, 10), contour)
        assert a == CartesianPoint(0, 0)
        assert b == CartesianPoint(40, 20)


class TestBestFit:
    """Test NaiveDetector contour selection"""

    def test_exact_area_is_fully_certain(self):
        """Area equal to the expected one gives certainty 1.0"""
        det = NaiveDetector(hat_with_area(800.0))
        result = det.detect_in_contours([rect(0, 0, 40, 20)])
        assert result.found
        assert result.certainty == 1.0
        assert result.position == CartesianPoint(20, 10)
        assert result.angle == pytest.approx(math.atan(2.0))

    def test_rejects_out_of_band(self):
        """A contour 2.1x the expected area is never selected"""
        det = NaiveDetector(hat_with_area(800.0))
        result = det.detect_in_contours([rect(0, 0, 60, 28)])   # 1680 = 2.1 * 800
        assert not result.found
        assert result.angle is None
        assert result.certainty == 0.0

    def test_band_is_inclusive(self):
        """Areas exactly at 0.5x and 1.5x qualify"""
        det = NaiveDetector(hat_with_area(800.0))
        assert det.best_fit_contour([rect(0, 0, 20, 20)]) is not None     # 400
        assert det.best_fit_contour([rect(0, 0, 40, 30)]) is not None     # 1200

    def test_picks_closest_area(self):
        """The candidate nearest the expected area wins"""
        det = NaiveDetector(hat_with_area(800.0))
        far = rect(0, 0, 20, 25)      # 500
        near = rect(100, 100, 30, 27)  # 810
        contour, area = det.best_fit_contour([far, near])
        assert contour is near
        assert area == pytest.approx(810.0)

    def test_certainty_decays_with_error(self):
        """Certainty is 500 / |area error|, bounded to [0, 1]"""
        det = NaiveDetector(hat_with_area(2000.0))
        result = det.detect_in_contours([rect(0, 0, 40, 35)])   # 1400, diff 600
        assert result.certainty == pytest.approx(500.0 / 600.0)
        assert 0.0 <= result.certainty <= 1.0

    @pytest.mark.parametrize("contour", [[], [CartesianPoint(1, 1)], [CartesianPoint(0, 0), CartesianPoint(5, 5)]])
    def test_degenerate_contours(self, contour):
        """Empty and sub-triangle contours never qualify"""
        det = NaiveDetector(hat_with_area(800.0))
        assert not det.detect_in_contours([contour]).found

    def test_miss_keeps_last_position_for_drawing(self):
        """A miss returns no position but the detector remembers the last one"""
        det = NaiveDetector(hat_with_area(800.0))
        det.detect_in_contours([rect(0, 0, 40, 20)])
        result = det.detect_in_contours([])
        assert result.position is None
        assert det.last_position == CartesianPoint(20, 10)
        assert det.certainty == 0.0

    def test_draw_queues_markers(self):
        """Drawing queues center, ray and side points"""
        det = NaiveDetector(hat_with_area(800.0))
        drawer = MarkerDrawer()
        det.draw_on_image(drawer)
        assert len(drawer) == 0
        det.detect_in_contours([rect(0, 0, 40, 20)])
        det.draw_on_image(drawer)
        assert len(drawer) == 5


class TestSegmentation:
    """Test Lab segmentation on synthetic frames"""

    @pytest.fixture
    def frame(self):
        img = np.zeros((480, 640, 3), dtype=np.uint8)
        img[100:120, 100:140] = (255, 0, 0)   # blue 40x20 block
        return img

    def test_finds_blue_block(self, frame, blue_hat, converter):
        """Exactly one contour, located where the block was painted"""
        extractor = LabContourExtractor(blue_hat.color_low, blue_hat.color_high)
        contours = extractor(frame, converter)
        assert len(contours) == 1
        assert contour_area(contours[0]) == pytest.approx(39 * 19)

    def test_black_frame_has_no_contours(self, blue_hat, converter):
        """Nothing in range, nothing found"""
        extractor = LabContourExtractor(blue_hat.color_low, blue_hat.color_high)
        assert extractor(np.zeros((480, 640, 3), dtype=np.uint8), converter) == []

    def test_detect_new_position(self, frame, blue_hat, converter):
        """End-to-end detection lands on the block center"""
        det = NaiveDetector(blue_hat)
        result = det.detect_new_position(frame, None, converter)
        assert result.found
        # block spans raster x 100..139, y 100..119
        assert abs(result.position.x - (-200)) <= 1
        assert abs(result.position.y - 130) <= 1
        assert result.certainty == 1.0
        assert result.angle == pytest.approx(0.0, abs=0.1)

    def test_drawer_renders_on_frame(self, converter):
        """Markers end up as pixels and the queue is emptied"""
        img = np.zeros((480, 640, 3), dtype=np.uint8)
        drawer = MarkerDrawer()
        drawer.line(CartesianPoint(-50, 0), CartesianPoint(50, 0), (0, 0, 255))
        drawer.draw_on_image(img, converter)
        assert len(drawer) == 0
        assert img[240, 320, 2] == 255
        assert cv2.countNonZero(img[:, :, 2]) > 0
