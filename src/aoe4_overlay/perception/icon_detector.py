"""
Icon Detector
=============

Detects the idle-villager icon near the top of the working area.

The icon only appears while idle villagers exist, so its presence tells
the overlay whether the idle count region is meaningful.

Algorithm:
    1. Place the fixed search rectangle relative to the working area
    2. Clamp it to the image; an empty rectangle means "not present"
    3. Run TM_CCOEFF_NORMED with the icon template inside it
    4. Present iff the best score >= threshold
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

from aoe4_overlay.geometry.regions import AREA_HEIGHT, ICON_SEARCH_AREA, Rect, icon_search_rect
from aoe4_overlay.ocr.base import EngineLoadError


logger = logging.getLogger(__name__)


ICON_THRESHOLD = 0.6


@dataclass(frozen=True, slots=True)
class IconMatch:
    """
    Icon search outcome.

    Attributes:
        present: Whether the best score reached the threshold
        score: Best normalized cross-correlation score (0 when not searched)
        rect: Best-match rectangle in image coordinates, if searched
    """

    present: bool
    score: float
    rect: Optional[Rect] = None


NOT_FOUND = IconMatch(present=False, score=0.0)


class IconDetector:
    """
    Template-based presence check for the villager icon.

    Example:
        detector = IconDetector.from_file("./assets/villager_icon.png")
        if detector.detect(bgr_image):
            ...
    """

    def __init__(
        self,
        template: np.ndarray,
        threshold: float = ICON_THRESHOLD,
        search_area: Rect = ICON_SEARCH_AREA,
        area_height: int = AREA_HEIGHT,
    ) -> None:
        if template is None or template.size == 0:
            raise EngineLoadError("Icon template is empty")

        self.template = template
        self.threshold = threshold
        self.search_area = search_area
        self.area_height = area_height

    @classmethod
    def from_file(cls, template_path: str, threshold: float = ICON_THRESHOLD) -> "IconDetector":
        """
        Load the icon template from disk.

        Raises:
            EngineLoadError: If the image cannot be read
        """
        if not Path(template_path).exists():
            raise EngineLoadError(f"Icon template not found: {template_path}")

        template = cv2.imread(template_path, cv2.IMREAD_COLOR)
        if template is None:
            raise EngineLoadError(f"Could not decode icon template: {template_path}")

        logger.info(f"Icon template loaded: {template_path} ({template.shape[1]}x{template.shape[0]})")
        return cls(template, threshold=threshold)

    def locate(self, image: np.ndarray) -> IconMatch:
        """
        Search for the icon in a BGR image of the working area.

        Returns:
            IconMatch; NOT_FOUND when the search rectangle falls outside the
            image or is smaller than the template
        """
        img_h, img_w = image.shape[:2]
        search = icon_search_rect(img_h, self.search_area, self.area_height).clamp(img_w, img_h)
        if search.is_empty:
            return NOT_FOUND

        tpl_h, tpl_w = self.template.shape[:2]
        if tpl_h > search.height or tpl_w > search.width:
            return NOT_FOUND

        roi = image[search.y:search.y + search.height, search.x:search.x + search.width]
        template = self.template
        if roi.ndim != template.ndim:
            # Match channel layout of the search image
            if roi.ndim == 2:
                template = cv2.cvtColor(template, cv2.COLOR_BGR2GRAY)
            else:
                roi = cv2.cvtColor(roi, cv2.COLOR_GRAY2BGR)

        result = cv2.matchTemplate(roi, template, cv2.TM_CCOEFF_NORMED)
        _min_val, max_val, _min_loc, max_loc = cv2.minMaxLoc(result)
        score = float(max_val) if np.isfinite(max_val) else 0.0

        rect = Rect(search.x + max_loc[0], search.y + max_loc[1], tpl_w, tpl_h)
        return IconMatch(present=score >= self.threshold, score=score, rect=rect)

    def detect(self, image: np.ndarray) -> bool:
        """True iff the icon is present in the image."""
        return self.locate(image).present
