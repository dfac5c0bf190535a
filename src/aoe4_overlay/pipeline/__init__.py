"""
Pipeline Module
===============

Frame consumer loop and its presentation-side counterpart.

Components:
    - FrameProcessor: Drains the FrameSlot and publishes GuiCommands
    - ProcessorMetrics: Counters and last stage timings
    - ResultCollector: Consumes GuiCommands and keeps the latest result
"""

from aoe4_overlay.pipeline.processor import (
    MAX_CONSECUTIVE_FAILURES,
    SUMMARY_INTERVAL,
    FrameProcessor,
    ProcessorMetrics,
)
from aoe4_overlay.pipeline.results import ResultCollector

__all__ = [
    "MAX_CONSECUTIVE_FAILURES",
    "SUMMARY_INTERVAL",
    "FrameProcessor",
    "ProcessorMetrics",
    "ResultCollector",
]
