"""
AOE4 Overlay
============

Reads the resource, population and villager stats from the Age of
Empires IV HUD and serves them to an overlay.

Frames are captured from the screen, the bottom-left stat panel is
cropped out, the idle-villager icon is detected, and each stat region is
recognized as a short string of digits and '/'.

Components:
    - stream: Frame capture and the single-slot frame hand-off
    - geometry: Region table and capture-area geometry
    - perception: Icon detection and per-frame analysis
    - ocr: Recognition engines (template matching, neural)
    - pipeline: Frame processor loop and result collection

Example:
    from aoe4_overlay.config import get_settings
    from aoe4_overlay.ocr import create_engine

    engine = create_engine(get_settings().ocr)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
