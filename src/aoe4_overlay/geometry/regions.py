"""
Region Table
============

Static screen geometry for the in-game statistics panel.

All regions are declared ONCE at import time and never discovered at
runtime. Vertical positions are offsets from the BOTTOM of the frame
(negative values), because the statistics panel is anchored to the
bottom-left corner of the game window regardless of resolution.

Example:
    from aoe4_overlay.geometry import STAT_REGIONS, resolve_region

    for region in STAT_REGIONS:
        x, y, w, h = resolve_region(region, image_height=486)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple


# Height of the bottom-anchored working area the offsets were measured in
AREA_Y_OFFSET = -486
AREA_HEIGHT = -AREA_Y_OFFSET
AREA_WIDTH = 267

# Size of every statistic text box
STAT_WIDTH = 80
STAT_HEIGHT = 34


class RegionCategory(str, Enum):
    """Classification tag attached to a region."""

    UNCLASSIFIED = "unclassified"
    IDLE_COUNT = "idle_count"
    POPULATION_RATIO = "population_ratio"


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle in image pixel coordinates (top-left origin)."""

    x: int
    y: int
    width: int
    height: int

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.x, self.y, self.width, self.height)

    def clamp(self, image_width: int, image_height: int) -> "Rect":
        """
        Clip the rectangle to the image bounds.

        The result may have non-positive width or height when the
        rectangle lies entirely outside the image; callers check
        `is_empty` before slicing.
        """
        x = max(0, self.x)
        y = max(0, self.y)
        width = min(self.x + self.width, image_width) - x
        height = min(self.y + self.height, image_height) - y
        return Rect(x, y, width, height)

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True, slots=True)
class StatRegion:
    """
    Named statistic box on screen.

    Attributes:
        name: Human-readable statistic name
        x: Left edge in pixels
        y_offset: Top edge as an offset from the frame bottom (negative)
        width: Box width in pixels
        height: Box height in pixels
        category: Classification tag
    """

    name: str
    x: int
    y_offset: int
    width: int = STAT_WIDTH
    height: int = STAT_HEIGHT
    category: RegionCategory = RegionCategory.UNCLASSIFIED

    def to_rect(self, image_height: int) -> Rect:
        """Resolve the bottom-anchored offset into image coordinates."""
        return Rect(self.x, image_height + self.y_offset, self.width, self.height)


STAT_REGIONS: Tuple[StatRegion, ...] = (
    StatRegion("Pop", 50, 190 + AREA_Y_OFFSET, category=RegionCategory.POPULATION_RATIO),
    StatRegion("Food", 50, 265 + AREA_Y_OFFSET),
    StatRegion("Wood", 50, 318 + AREA_Y_OFFSET),
    StatRegion("Gold", 50, 369 + AREA_Y_OFFSET),
    StatRegion("Stone", 50, 421 + AREA_Y_OFFSET),
    StatRegion("Idle", 187, 190 + AREA_Y_OFFSET, category=RegionCategory.IDLE_COUNT),
    StatRegion("Food Worker", 187, 262 + AREA_Y_OFFSET),
    StatRegion("Wood Worker", 187, 315 + AREA_Y_OFFSET),
    StatRegion("Gold Worker", 187, 366 + AREA_Y_OFFSET),
    StatRegion("Stone Worker", 187, 419 + AREA_Y_OFFSET),
)

REGION_COUNT = len(STAT_REGIONS)

# Villager icon search rectangle, relative to the top of the working area
ICON_SEARCH_AREA = Rect(0, 0, 250, 80)


def find_region_index(
    category: RegionCategory,
    regions: Sequence[StatRegion] = STAT_REGIONS,
) -> Optional[int]:
    """Return the index of the first region with the given category."""
    for index, region in enumerate(regions):
        if region.category == category:
            return index
    return None


def resolve_region(region: StatRegion, image_height: int) -> Tuple[int, int, int, int]:
    """Resolve a region into an (x, y, width, height) tuple."""
    return region.to_rect(image_height).as_tuple()


def capture_area(frame_width: int, frame_height: int, area_width: int = AREA_WIDTH, area_height: int = AREA_HEIGHT) -> Rect:
    """
    Compute the bottom-left working area inside a frame.

    Frames smaller than the working area are used whole along the short
    dimension.
    """
    width = min(area_width, frame_width)
    height = min(area_height, frame_height)
    return Rect(0, frame_height - height, width, height)


def icon_search_rect(image_height: int, area: Rect = ICON_SEARCH_AREA, area_height: int = AREA_HEIGHT) -> Rect:
    """Place the icon search rectangle relative to the top of the working area."""
    return Rect(area.x, image_height - area_height + area.y, area.width, area.height)
