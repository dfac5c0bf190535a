"""
Image Analyzer Tests
====================

Tests for color normalization, brightening and per-frame analysis.
"""

import numpy as np
import pytest

from conftest import StaticEngine, make_bgra, render_text

from aoe4_overlay.geometry import STAT_REGIONS
from aoe4_overlay.ocr import TemplateMatchingEngine
from aoe4_overlay.perception import IconDetector, ImageAnalyzer, brighten_for_ocr, to_bgr
from aoe4_overlay.stream import FrameFormatError


class TestColorNormalization:
    """Tests for to_bgr and brighten_for_ocr."""

    def test_bgra_to_bgr(self):
        """Verify the alpha channel is dropped."""
        image = make_bgra(10, 5, value=7)
        assert to_bgr(image).shape == (5, 10, 3)

    def test_gray_to_bgr(self):
        """Verify grayscale input is expanded."""
        assert to_bgr(np.zeros((5, 10), dtype=np.uint8)).shape == (5, 10, 3)

    def test_unsupported_layout(self):
        """Verify unknown channel counts are malformed."""
        with pytest.raises(FrameFormatError):
            to_bgr(np.zeros((5, 10, 2), dtype=np.uint8))

    def test_brighten_saturates(self):
        """Verify the brighten delta is added with saturation."""
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[0, 0] = (240, 240, 240)
        boosted = brighten_for_ocr(bgr, 30)

        assert boosted.shape == (2, 2, 3)
        assert boosted[0, 0].tolist() == [255, 255, 255]
        assert boosted[1, 1].tolist() == [30, 30, 30]

    def test_brighten_is_gray(self):
        """Verify the boosted image has equal channels."""
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[:, :, 2] = 200
        boosted = brighten_for_ocr(bgr)
        assert np.all(boosted[:, :, 0] == boosted[:, :, 1])
        assert np.all(boosted[:, :, 1] == boosted[:, :, 2])


class TestImageAnalyzer:
    """Tests for ImageAnalyzer."""

    def test_result_shape_and_timings(self, bgra_frame):
        """Verify one text per region and non-negative timings."""
        engine = StaticEngine(("10/200", "150"))
        analyzer = ImageAnalyzer(engine)

        result = analyzer.analyze(bgra_frame)
        assert len(result.texts) == len(STAT_REGIONS)
        assert result.texts[:2] == ("10/200", "150")
        assert result.has_icon is False
        assert min(result.icon_detect_ms, result.color_convert_ms, result.recognition_ms) >= 0.0
        assert engine.calls == [(486, 267, 3)]

    def test_icon_detected_before_brightening(self, bgra_frame, icon_template):
        """Verify icon detection sees the color image."""
        bgra_frame[30:50, 40:60, :3] = icon_template
        analyzer = ImageAnalyzer(StaticEngine(()), IconDetector(icon_template))
        assert analyzer.analyze(bgra_frame).has_icon

    def test_end_to_end_template(self, bgra_frame, template_dir):
        """Verify rendered stats are read from a BGRA frame."""
        food = STAT_REGIONS[1].to_rect(486)
        idle = STAT_REGIONS[5].to_rect(486)
        for rect, text in ((food, "1250"), (idle, "3")):
            rendered = render_text(text)
            y, x = rect.y + 8, rect.x + 4
            bgra_frame[y:y + rendered.shape[0], x:x + rendered.shape[1], :3] = rendered[:, :, None]

        analyzer = ImageAnalyzer(TemplateMatchingEngine.from_directory(template_dir))
        result = analyzer.analyze(bgra_frame)

        assert result.texts[1] == "1250"
        assert result.texts[5] == "3"
        assert result.texts[0] == ""
