"""
Screen Capture Producer
=======================

Frame producer that feeds the FrameSlot.

This module provides:
    - FrameSource: Protocol for anything that can deliver raw BGRA frames
    - ScreenGrabber: Background thread grabbing a monitor with mss

Design Rules:
    - Producer never waits on recognition: it writes to the slot and signals
    - Capture errors are logged and retried on the next tick
"""

import logging
import threading
import time
from typing import Callable, Optional, Protocol

import mss
from mss.exception import ScreenShotError

from aoe4_overlay.stream.frame import BYTES_PER_PIXEL, RawFrame
from aoe4_overlay.stream.slot import FrameSlot


logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """
    Protocol for frame producers.

    Implementations deliver frames into a FrameSlot from their own
    thread and notify the consumer after each write.
    """

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class ScreenGrabber:
    """
    Periodic monitor capture using mss.

    Attributes:
        slot: FrameSlot receiving every grabbed frame
        monitor: mss monitor index (1 = primary)
        interval_ms: Delay between grabs
        frames_captured: Number of frames written to the slot
        capture_errors: Number of failed grabs

    Example:
        slot = FrameSlot()
        grabber = ScreenGrabber(slot, on_frame=processor.signal_new_frame)
        grabber.start()
        ...
        grabber.stop()
    """

    def __init__(
        self,
        slot: FrameSlot,
        on_frame: Optional[Callable[[], None]] = None,
        monitor: int = 1,
        interval_ms: int = 33,
    ) -> None:
        self.slot = slot
        self.on_frame = on_frame
        self.monitor = monitor
        self.interval_ms = interval_ms

        self.frames_captured: int = 0
        self.capture_errors: int = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the capture thread."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="screen_grabber", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Signal the capture thread to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _run(self) -> None:
        logger.info(f"ScreenGrabber started: monitor={self.monitor}, interval={self.interval_ms}ms")
        interval = self.interval_ms / 1000.0

        with mss.mss() as sct:
            if self.monitor >= len(sct.monitors):
                logger.error(
                    f"Monitor {self.monitor} not available "
                    f"({len(sct.monitors) - 1} monitors detected)"
                )
                return
            monitor = sct.monitors[self.monitor]

            while not self._stop_event.is_set():
                started = time.perf_counter()
                try:
                    shot = sct.grab(monitor)
                    self.slot.write(
                        RawFrame(
                            width=shot.width,
                            height=shot.height,
                            stride=shot.width * BYTES_PER_PIXEL,
                            data=bytes(shot.raw),
                        )
                    )
                    self.frames_captured += 1
                    if self.on_frame is not None:
                        self.on_frame()
                except ScreenShotError as e:
                    self.capture_errors += 1
                    logger.warning(f"Screen grab failed: {e}")

                elapsed = time.perf_counter() - started
                self._stop_event.wait(max(0.0, interval - elapsed))

        logger.info(f"ScreenGrabber stopped after {self.frames_captured} frames")
