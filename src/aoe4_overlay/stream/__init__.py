"""
Stream Module
=============

Frame ingestion components.

This module provides the handoff layer between capture and recognition:
    - RawFrame: Captured BGRA frame (immutable bytes + dimensions)
    - FrameSlot: Single-slot latest-frame buffer with drop accounting
    - ScreenGrabber: mss-based producer thread

Example:
    from aoe4_overlay.stream import FrameSlot, RawFrame

    slot = FrameSlot()
    slot.write(RawFrame.from_buffer(width, height, stride, pixels))

    drained = slot.drain()
    if drained is not None:
        frame, dropped = drained
"""

from aoe4_overlay.stream.frame import BYTES_PER_PIXEL, FrameFormatError, RawFrame
from aoe4_overlay.stream.slot import FrameSlot
from aoe4_overlay.stream.capture import FrameSource, ScreenGrabber


__all__ = [
    "BYTES_PER_PIXEL",
    "FrameFormatError",
    "RawFrame",
    "FrameSlot",
    "FrameSource",
    "ScreenGrabber",
]
