"""
Geometry Module
===============

Static screen geometry for the statistics panel.

All regions are declared at startup and remain fixed; no runtime discovery.
"""

from aoe4_overlay.geometry.regions import (
    AREA_HEIGHT,
    AREA_WIDTH,
    ICON_SEARCH_AREA,
    REGION_COUNT,
    STAT_REGIONS,
    Rect,
    RegionCategory,
    StatRegion,
    capture_area,
    find_region_index,
    icon_search_rect,
    resolve_region,
)

__all__ = [
    "AREA_HEIGHT",
    "AREA_WIDTH",
    "ICON_SEARCH_AREA",
    "REGION_COUNT",
    "STAT_REGIONS",
    "Rect",
    "RegionCategory",
    "StatRegion",
    "capture_area",
    "find_region_index",
    "icon_search_rect",
    "resolve_region",
]
