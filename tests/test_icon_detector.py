"""
Icon Detector Tests
===================

Tests for villager icon detection in the working area.
"""

import cv2
import numpy as np
import pytest

from aoe4_overlay.geometry import Rect
from aoe4_overlay.ocr import EngineLoadError
from aoe4_overlay.perception import NOT_FOUND, IconDetector


def _area_with_icon(icon: np.ndarray, x: int, y: int, height: int = 486) -> np.ndarray:
    image = np.zeros((height, 267, 3), dtype=np.uint8)
    h, w = icon.shape[:2]
    image[y:y + h, x:x + w] = icon
    return image


class TestIconDetector:
    """Tests for IconDetector."""

    def test_icon_present(self, icon_template):
        """Verify the icon is found inside the search area."""
        detector = IconDetector(icon_template)
        image = _area_with_icon(icon_template, 40, 30)

        match = detector.locate(image)
        assert match.present
        assert match.score > 0.95
        assert match.rect == Rect(40, 30, 20, 20)
        assert detector.detect(image)

    def test_icon_absent(self, icon_template):
        """Verify a blank search area reports no icon."""
        detector = IconDetector(icon_template)
        image = np.zeros((486, 267, 3), dtype=np.uint8)
        assert not detector.detect(image)

    def test_icon_outside_search_area(self, icon_template):
        """Verify an icon below the search area is not reported."""
        detector = IconDetector(icon_template)
        image = _area_with_icon(icon_template, 40, 300)
        assert not detector.detect(image)

    def test_taller_frame(self, icon_template):
        """Verify the search area follows the bottom-anchored working area."""
        detector = IconDetector(icon_template)
        image = _area_with_icon(icon_template, 10, 600 - 486 + 5, height=600)
        assert detector.detect(image)

    def test_search_area_out_of_bounds(self, icon_template):
        """Verify a frame too short for the search area reports no icon."""
        detector = IconDetector(icon_template)
        image = np.zeros((100, 267, 3), dtype=np.uint8)
        assert detector.locate(image) == NOT_FOUND

    def test_template_larger_than_search(self):
        """Verify a template that cannot fit reports no icon."""
        detector = IconDetector(np.full((100, 30, 3), 200, dtype=np.uint8))
        image = np.zeros((486, 267, 3), dtype=np.uint8)
        assert not detector.detect(image)

    def test_threshold(self, icon_template):
        """Verify the threshold bounds presence."""
        detector = IconDetector(icon_template, threshold=1.1)
        image = _area_with_icon(icon_template, 40, 30)
        match = detector.locate(image)
        assert not match.present
        assert match.score > 0.95

    def test_from_file(self, tmp_path, icon_template):
        """Verify loading the template from disk."""
        path = tmp_path / "icon.png"
        cv2.imwrite(str(path), icon_template)

        detector = IconDetector.from_file(str(path))
        assert detector.template.shape == icon_template.shape
        assert detector.detect(_area_with_icon(icon_template, 0, 0))

    def test_from_file_missing(self, tmp_path):
        """Verify a missing template fails to load."""
        with pytest.raises(EngineLoadError):
            IconDetector.from_file(str(tmp_path / "missing.png"))

    def test_empty_template(self):
        """Verify an empty template is rejected."""
        with pytest.raises(EngineLoadError):
            IconDetector(np.zeros((0, 0, 3), dtype=np.uint8))
