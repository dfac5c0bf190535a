"""
Result Collector
================

Presentation-side consumer of the result queue.

Keeps the most recent AnalysisResult for readers that poll (HTTP,
WebSocket) and stops when the processor sends Quit.
"""

import logging
import queue
import threading
import time
from typing import Optional

from aoe4_overlay.models.analysis import AnalysisResult
from aoe4_overlay.models.commands import AboutToProcessFrames, GuiCommand, ProcessedFrame, Quit


logger = logging.getLogger(__name__)


class ResultCollector:
    """
    Drains GuiCommands and exposes the latest analysis.

    Attributes:
        results_received: ProcessedFrame commands consumed
        quit_reason: Reason carried by the Quit command, once received
    """

    def __init__(self, result_queue: "queue.Queue[GuiCommand]", poll_interval: float = 0.5) -> None:
        self._queue = result_queue
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._latest: Optional[AnalysisResult] = None
        self._latest_time: float = 0.0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.processing_started = False
        self.results_received: int = 0
        self.quit_reason: Optional[str] = None

    @property
    def latest(self) -> Optional[AnalysisResult]:
        with self._lock:
            return self._latest

    @property
    def latest_age(self) -> Optional[float]:
        """Seconds since the latest result arrived."""
        with self._lock:
            if self._latest is None:
                return None
            return time.time() - self._latest_time

    def handle(self, command: GuiCommand) -> bool:
        """
        Apply one command.

        Returns:
            False when the command ends consumption (Quit)
        """
        if isinstance(command, ProcessedFrame):
            with self._lock:
                self._latest = command.analysis
                self._latest_time = time.time()
            self.results_received += 1
            return True

        if isinstance(command, AboutToProcessFrames):
            self.processing_started = True
            logger.info("Frame processing started")
            return True

        if isinstance(command, Quit):
            self.quit_reason = command.reason
            logger.info(f"Frame processor quit: {command.reason}")
            return False

        logger.warning(f"Ignoring unknown command: {command!r}")
        return True

    def run(self) -> None:
        """Consume commands until Quit or stop()."""
        while not self._stop_event.is_set():
            try:
                command = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if not self.handle(command):
                break

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="result-collector", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
