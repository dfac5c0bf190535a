"""
Frame Slot
==========

Single-frame, overwrite-on-write handoff between the capture producer
and the frame processor.

Design Rules:
    - Holds at most ONE frame; a new write replaces the previous one
    - Counts writes since the last drain so overwritten frames are accounted for
    - The lock covers only the swap of frame + counter, never any processing
"""

import logging
import threading
from typing import Optional, Tuple

from aoe4_overlay.stream.frame import RawFrame


logger = logging.getLogger(__name__)


class FrameSlot:
    """
    Mutex-guarded latest-frame holder with drop accounting.

    Example:
        slot = FrameSlot()

        # Producer
        slot.write(frame)

        # Consumer
        drained = slot.drain()
        if drained is not None:
            frame, dropped = drained
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[RawFrame] = None
        self._frames_written: int = 0
        self._total_written: int = 0
        self._total_dropped: int = 0

    def write(self, frame: RawFrame) -> None:
        """
        Replace the held frame unconditionally.

        Never blocks on recognition work and never fails. If the previous
        frame was not drained it is lost and counted on the next drain.
        """
        with self._lock:
            self._frame = frame
            self._frames_written += 1
            self._total_written += 1

    def write_bytes(self, width: int, height: int, stride: int, pixel_bytes) -> None:
        """Producer entry point taking raw buffer fields."""
        self.write(RawFrame.from_buffer(width, height, stride, pixel_bytes))

    def drain(self) -> Optional[Tuple[RawFrame, int]]:
        """
        Take the latest frame.

        Returns:
            None if nothing was written since the last drain, otherwise
            (frame, dropped) where dropped is the number of frames that
            were overwritten before being consumed.
        """
        with self._lock:
            if self._frames_written == 0 or self._frame is None:
                return None
            frame = self._frame
            dropped = self._frames_written - 1
            self._frames_written = 0
            self._total_dropped += dropped
        return frame, dropped

    @property
    def pending(self) -> int:
        """Writes since the last drain."""
        with self._lock:
            return self._frames_written

    def metrics(self) -> dict:
        """
        Get slot metrics for observability.

        Returns:
            Dict with pending, total_written, total_dropped
        """
        with self._lock:
            return {
                "pending": self._frames_written,
                "total_written": self._total_written,
                "total_dropped": self._total_dropped,
            }
