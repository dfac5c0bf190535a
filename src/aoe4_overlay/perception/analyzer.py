"""
Image Analyzer
==============

Turns one working-area image into an AnalysisResult.

Stages:
    1. Color normalization: drop the alpha channel (BGRA -> BGR)
    2. Icon detection on the normalized BGR image
    3. Contrast boost: BGR -> GRAY -> RGB, then a saturating brighten
    4. Region recognition on the boosted image

Timings:
    icon_detect_ms and color_convert_ms are measured directly;
    recognition_ms is the whole call minus the other stages. All are
    clamped at zero.
"""

import logging
import time
from typing import Optional, Sequence

import cv2
import numpy as np

from aoe4_overlay.geometry.regions import STAT_REGIONS, StatRegion
from aoe4_overlay.models.analysis import AnalysisResult
from aoe4_overlay.ocr.base import OcrEngine
from aoe4_overlay.perception.icon_detector import IconDetector
from aoe4_overlay.stream.frame import FrameFormatError


logger = logging.getLogger(__name__)


BRIGHTEN_DELTA = 30


def _elapsed_ms(start: float, end: float) -> float:
    return max(0.0, (end - start) * 1000.0)


def to_bgr(image: np.ndarray) -> np.ndarray:
    """
    Normalize an image to 3-channel BGR.

    Raises:
        FrameFormatError: If the channel layout is not gray, BGR or BGRA
    """
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise FrameFormatError(f"Unsupported image shape {image.shape}")


def brighten_for_ocr(bgr: np.ndarray, delta: int = BRIGHTEN_DELTA) -> np.ndarray:
    """Grayscale the image, expand back to RGB and add `delta` with saturation."""
    gray = cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
    rgb = cv2.cvtColor(gray, cv2.COLOR_GRAY2RGB)
    return cv2.add(rgb, np.full_like(rgb, delta))


class ImageAnalyzer:
    """
    Icon detection plus region recognition for a single image.

    Attributes:
        engine: Recognition engine
        icon_detector: Villager icon detector, or None to skip detection
        regions: Region table read by the engine
        brighten_delta: Brightness added before recognition
    """

    def __init__(
        self,
        engine: OcrEngine,
        icon_detector: Optional[IconDetector] = None,
        regions: Sequence[StatRegion] = STAT_REGIONS,
        brighten_delta: int = BRIGHTEN_DELTA,
    ) -> None:
        self.engine = engine
        self.icon_detector = icon_detector
        self.regions = tuple(regions)
        self.brighten_delta = brighten_delta

    def analyze(self, image: np.ndarray) -> AnalysisResult:
        """
        Analyze a working-area image.

        Args:
            image: BGRA, BGR or grayscale image (H, W[, C]) uint8

        Returns:
            AnalysisResult with one string per region

        Raises:
            FrameFormatError: If the image layout is unsupported
            RecognitionError: If the engine fails
        """
        call_start = time.perf_counter()

        convert_start = call_start
        bgr = to_bgr(image)
        convert_ms = _elapsed_ms(convert_start, time.perf_counter())

        icon_start = time.perf_counter()
        has_icon = self.icon_detector.detect(bgr) if self.icon_detector is not None else False
        icon_ms = _elapsed_ms(icon_start, time.perf_counter())

        convert_start = time.perf_counter()
        boosted = brighten_for_ocr(bgr, self.brighten_delta)
        convert_ms += _elapsed_ms(convert_start, time.perf_counter())

        texts = self.engine.recognize(boosted, self.regions)

        total_ms = _elapsed_ms(call_start, time.perf_counter())
        recognition_ms = max(0.0, total_ms - icon_ms - convert_ms)

        return AnalysisResult(
            texts=tuple(texts),
            has_icon=has_icon,
            icon_detect_ms=icon_ms,
            color_convert_ms=convert_ms,
            recognition_ms=recognition_ms,
        )
