"""
Presentation Commands
=====================

Messages delivered to the presentation consumer over the bounded
result channel.

Delivery Rules:
    - ProcessedFrame and AboutToProcessFrames are best-effort (dropped when full)
    - Quit is retried by the sender until accepted or a deadline passes
"""

from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from aoe4_overlay.models.analysis import AnalysisResult


@dataclass(frozen=True, slots=True)
class ProcessedFrame:
    """A successfully analyzed frame, optionally with the cropped BGR image."""

    analysis: AnalysisResult
    image: Optional[np.ndarray] = None


@dataclass(frozen=True, slots=True)
class AboutToProcessFrames:
    """Sent once when the processor starts consuming frames."""
    pass


@dataclass(frozen=True, slots=True)
class Quit:
    """Sent when the processor loop terminates."""

    reason: str = "stop"


GuiCommand = Union[ProcessedFrame, AboutToProcessFrames, Quit]
