"""
Perception Module
=================

Image-level analysis of the working area.

Components:
    - IconDetector: Villager icon presence check (template matching)
    - ImageAnalyzer: Color normalization, icon detection and recognition
      combined into one AnalysisResult
"""

from aoe4_overlay.perception.analyzer import (
    BRIGHTEN_DELTA,
    ImageAnalyzer,
    brighten_for_ocr,
    to_bgr,
)
from aoe4_overlay.perception.icon_detector import (
    ICON_THRESHOLD,
    NOT_FOUND,
    IconDetector,
    IconMatch,
)

__all__ = [
    "BRIGHTEN_DELTA",
    "ImageAnalyzer",
    "brighten_for_ocr",
    "to_bgr",
    "ICON_THRESHOLD",
    "NOT_FOUND",
    "IconDetector",
    "IconMatch",
]
