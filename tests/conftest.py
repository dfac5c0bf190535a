"""
Test Configuration
==================

Pytest fixtures and test configuration for aoe4_overlay.

All images are synthetic: glyph templates are drawn with OpenCV, so no
model or asset files are needed.
"""

from typing import List, Sequence, Tuple

import cv2
import numpy as np
import pytest

from aoe4_overlay.geometry.regions import StatRegion
from aoe4_overlay.ocr.base import RecognitionError


GLYPH_WIDTH = 12
GLYPH_HEIGHT = 16
SYMBOLS = "0123456789/"


def render_glyph(symbol: str) -> np.ndarray:
    """Draw one symbol, white on black, into a GLYPH_HEIGHT x GLYPH_WIDTH cell."""
    cell = np.zeros((GLYPH_HEIGHT, GLYPH_WIDTH), dtype=np.uint8)
    cv2.putText(cell, symbol, (2, 12), cv2.FONT_HERSHEY_SIMPLEX, 0.4, 255, 1, cv2.LINE_AA)
    return cell


def render_text(text: str) -> np.ndarray:
    """Lay glyph cells side by side, one every GLYPH_WIDTH pixels."""
    return np.hstack([render_glyph(c) for c in text])


def make_bgra(width: int, height: int, value: int = 0) -> np.ndarray:
    image = np.full((height, width, 4), value, dtype=np.uint8)
    image[:, :, 3] = 255
    return image


class StaticEngine:
    """Engine returning a fixed answer for every region."""

    def __init__(self, texts: Sequence[str], name: str = "static") -> None:
        self.texts = tuple(texts)
        self._name = name
        self.calls: List[Tuple[int, ...]] = []

    @property
    def name(self) -> str:
        return self._name

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        self.calls.append(image.shape)
        return self.texts[:len(regions)] + ("",) * max(0, len(regions) - len(self.texts))


class FailingEngine:
    """Engine whose backend always fails."""

    name = "failing"

    def __init__(self) -> None:
        self.calls = 0

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        self.calls += 1
        raise RecognitionError("backend unavailable")


class FakePredictor:
    """
    Text predictor keyed on crop width.

    Regions in the default table all share a size, so tests build their
    own regions with distinct widths to address answers.
    """

    def __init__(self, answers: dict, default: Tuple[str, float] = ("", 0.0)) -> None:
        self.answers = answers
        self.default = default
        self.batches: List[int] = []

    def predict(self, images: Sequence[np.ndarray]) -> List[Tuple[str, float]]:
        self.batches.append(len(images))
        results = []
        for image in images:
            answer = self.answers.get(image.shape[1], self.default)
            if isinstance(answer, Exception):
                raise answer
            results.append(answer)
        return results


@pytest.fixture
def glyph_templates():
    """Map of symbol -> rendered grayscale template."""
    return {symbol: render_glyph(symbol) for symbol in SYMBOLS}


@pytest.fixture
def template_dir(tmp_path, glyph_templates):
    """Template directory following the <digit>-<variant>.png / slash.png layout."""
    directory = tmp_path / "digits"
    directory.mkdir()
    for symbol, image in glyph_templates.items():
        name = "slash.png" if symbol == "/" else f"{symbol}-0.png"
        cv2.imwrite(str(directory / name), image)
    return directory


@pytest.fixture
def icon_template():
    """Small BGR icon: filled circle over a bar."""
    icon = np.zeros((20, 20, 3), dtype=np.uint8)
    cv2.circle(icon, (10, 7), 5, (40, 200, 240), -1)
    cv2.rectangle(icon, (4, 13), (15, 18), (200, 120, 30), -1)
    return icon


@pytest.fixture
def bgra_frame():
    """Black BGRA frame exactly the size of the working area."""
    return make_bgra(267, 486)


@pytest.fixture
def test_regions():
    """Three regions of distinct widths near the bottom of the working area."""
    return (
        StatRegion("first", 10, -100, width=30, height=20),
        StatRegion("second", 50, -100, width=40, height=20),
        StatRegion("third", 100, -100, width=50, height=20),
    )
