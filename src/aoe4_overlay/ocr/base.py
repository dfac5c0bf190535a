"""
OCR Engine Base Interface
=========================

Shared contract for every recognition engine.

Design Rules:
    - `recognize` returns exactly one string per region, "" when unread
    - Every engine applies the same acceptance predicate (digits and '/')
    - Construction failures raise EngineLoadError; call failures raise RecognitionError
"""

from typing import Optional, Protocol, Sequence, Tuple

import numpy as np

from aoe4_overlay.geometry.regions import StatRegion
from aoe4_overlay.models.analysis import short_string


ACCEPTED_SYMBOLS = frozenset("0123456789/")


class EngineLoadError(Exception):
    """Raised when model, dictionary or template resources cannot be loaded."""
    pass


class RecognitionError(Exception):
    """Raised when a recognition backend fails during a call."""
    pass


def is_accepted(text: str) -> bool:
    """True iff `text` is non-empty and made only of ASCII digits and '/'."""
    return bool(text) and all(c in ACCEPTED_SYMBOLS for c in text)


def accept(text: str) -> str:
    """Return the bounded text if accepted, otherwise ""."""
    text = text.strip()
    return short_string(text) if is_accepted(text) else ""


def crop_region(image: np.ndarray, region: StatRegion) -> Optional[np.ndarray]:
    """
    Crop a region out of an image.

    The region is clamped to the image; returns None when nothing of it
    lies inside the image.
    """
    height, width = image.shape[:2]
    rect = region.to_rect(height).clamp(width, height)
    if rect.is_empty:
        return None
    return image[rect.y:rect.y + rect.height, rect.x:rect.x + rect.width]


class OcrEngine(Protocol):
    """
    Protocol for recognition engines.

    All implementations take an RGB image (H, W, 3) and the region
    table and return one accepted-or-empty string per region.
    """

    @property
    def name(self) -> str:
        ...

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        ...
