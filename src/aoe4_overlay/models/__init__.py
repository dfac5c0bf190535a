"""
Data Models
===========

Typed results and messages for the overlay pipeline.

Models:
    Analysis:
        - AnalysisResult: Per-frame recognized strings, icon flag and timings
        - short_string: Truncation helper for bounded region strings

    Commands:
        - ProcessedFrame, AboutToProcessFrames, Quit: Presentation messages
        - GuiCommand: Union of the above
"""

from aoe4_overlay.models.analysis import (
    SHORT_STRING_CAPACITY,
    AnalysisResult,
    short_string,
)
from aoe4_overlay.models.commands import (
    AboutToProcessFrames,
    GuiCommand,
    ProcessedFrame,
    Quit,
)

__all__ = [
    # Analysis
    "SHORT_STRING_CAPACITY",
    "AnalysisResult",
    "short_string",
    # Commands
    "AboutToProcessFrames",
    "GuiCommand",
    "ProcessedFrame",
    "Quit",
]
