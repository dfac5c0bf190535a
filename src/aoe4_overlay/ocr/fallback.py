"""
Fallback OCR Engine
===================

Wraps a primary engine with a secondary one that is only consulted for
regions the primary left unread.
"""

import logging
from typing import Sequence, Tuple

import numpy as np

from aoe4_overlay.geometry.regions import StatRegion
from aoe4_overlay.ocr.base import OcrEngine


logger = logging.getLogger(__name__)


class FallbackEngine:
    """
    Primary engine with a secondary for empty regions.

    The secondary runs at most once per frame, and only when at least one
    primary result is empty. Non-empty primary results are never replaced.
    """

    def __init__(self, primary: OcrEngine, fallback: OcrEngine) -> None:
        self.primary = primary
        self.fallback = fallback
        self.fallback_calls: int = 0
        self.regions_recovered: int = 0

    @property
    def name(self) -> str:
        return f"{self.primary.name}+{self.fallback.name}"

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        texts = list(self.primary.recognize(image, regions))

        missing = [i for i, text in enumerate(texts) if not text]
        if not missing:
            return tuple(texts)

        self.fallback_calls += 1
        secondary = self.fallback.recognize(image, regions)

        for i in missing:
            if secondary[i]:
                texts[i] = secondary[i]
                self.regions_recovered += 1
                logger.debug(f"Region {regions[i].name} recovered by {self.fallback.name}")

        return tuple(texts)
