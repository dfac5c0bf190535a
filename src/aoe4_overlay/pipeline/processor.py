"""
Frame Processor
===============

Consumer loop between the frame slot and the presentation side.

Loop:
    - Wait for the new-frame event; signals arriving while a frame is
      being processed collapse into one pending wake-up
    - Check the stop flag before every drain; a stop request is honored
      as soon as the in-flight frame finishes
    - Drain the FrameSlot; nothing pending means no work this iteration
    - Crop the frame to the bottom-left working area
    - Analyze it (icon + recognition) into an AnalysisResult
    - Non-blocking send to the bounded result queue; full means drop

Design Rules:
    - The loop never blocks on the result queue, except for Quit
    - Malformed frames are skipped and counted
    - Recognition failures are skipped and counted; after
      max_consecutive_failures in a row the loop stops with
      RecognitionError
    - Quit is always sent downstream when the loop exits
"""

import logging
import queue
import threading
from typing import Optional

from aoe4_overlay.geometry.regions import AREA_HEIGHT, AREA_WIDTH, capture_area
from aoe4_overlay.models.analysis import AnalysisResult
from aoe4_overlay.models.commands import AboutToProcessFrames, GuiCommand, ProcessedFrame, Quit
from aoe4_overlay.ocr.base import RecognitionError
from aoe4_overlay.perception.analyzer import ImageAnalyzer, to_bgr
from aoe4_overlay.stream.frame import FrameFormatError
from aoe4_overlay.stream.slot import FrameSlot


logger = logging.getLogger(__name__)


SUMMARY_INTERVAL = 100
MAX_CONSECUTIVE_FAILURES = 10
QUIT_RETRY_ATTEMPTS = 20
QUIT_RETRY_INTERVAL = 0.05


class ProcessorMetrics:
    """Metrics for FrameProcessor observability."""

    __slots__ = (
        "frames_received",
        "frames_processed",
        "frames_dropped_input",
        "results_dropped",
        "malformed_frames",
        "failed_frames",
        "consecutive_failures",
        "last_icon_detect_ms",
        "last_color_convert_ms",
        "last_recognition_ms",
    )

    def __init__(self) -> None:
        self.frames_received: int = 0
        self.frames_processed: int = 0
        self.frames_dropped_input: int = 0
        self.results_dropped: int = 0
        self.malformed_frames: int = 0
        self.failed_frames: int = 0
        self.consecutive_failures: int = 0
        self.last_icon_detect_ms: float = 0.0
        self.last_color_convert_ms: float = 0.0
        self.last_recognition_ms: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dictionary."""
        return {name: getattr(self, name) for name in self.__slots__}


class FrameProcessor:
    """
    Pulls frames from a FrameSlot and publishes analysis results.

    The producer calls `signal_new_frame()` after each slot write;
    `request_stop()` ends the loop. `run()` executes on the calling
    thread, `start()` runs it on a background thread.

    Example:
        processor = FrameProcessor(analyzer, slot, queue.Queue(maxsize=2))
        processor.start()
        ...
        processor.request_stop()
        processor.join()
    """

    def __init__(
        self,
        analyzer: ImageAnalyzer,
        slot: FrameSlot,
        result_queue: "queue.Queue[GuiCommand]",
        area_width: int = AREA_WIDTH,
        area_height: int = AREA_HEIGHT,
        summary_interval: int = SUMMARY_INTERVAL,
        max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES,
        include_image: bool = False,
    ) -> None:
        self._analyzer = analyzer
        self._slot = slot
        self._results = result_queue
        self._frame_ready = threading.Event()
        self._stop_requested = threading.Event()

        self.area_width = area_width
        self.area_height = area_height
        self.summary_interval = summary_interval
        self.max_consecutive_failures = max_consecutive_failures
        self.include_image = include_image

        self._metrics = ProcessorMetrics()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self.error: Optional[BaseException] = None

    @property
    def metrics(self) -> ProcessorMetrics:
        return self._metrics

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # Control signals
    # =========================================================================

    def signal_new_frame(self) -> None:
        """Wake the loop to drain the slot. Repeated signals coalesce."""
        self._frame_ready.set()

    def request_stop(self) -> None:
        """Ask the loop to exit once the in-flight frame, if any, is done."""
        self._stop_requested.set()
        self._frame_ready.set()

    @property
    def frame_pending(self) -> bool:
        """Whether a new-frame signal is waiting to be consumed."""
        return self._frame_ready.is_set() and not self._stop_requested.is_set()

    # =========================================================================
    # Loop
    # =========================================================================

    def run(self) -> None:
        """
        Process frames until a stop signal arrives.

        Raises:
            RecognitionError: After too many consecutive recognition failures
        """
        self._running = True
        self._send_best_effort(AboutToProcessFrames())
        logger.info("Frame processor started")

        reason = "stop"
        try:
            while True:
                self._frame_ready.wait()
                self._frame_ready.clear()
                if self._stop_requested.is_set():
                    logger.info("Received stop signal, stopping frame processor")
                    break
                self.process_once()
        except RecognitionError:
            reason = "recognition_failure"
            raise
        except Exception:
            reason = "error"
            raise
        finally:
            self._running = False
            m = self._metrics
            logger.info(
                f"Frame processor stopped. Processed {m.frames_processed} frames "
                f"(received: {m.frames_received}, dropped input: {m.frames_dropped_input}, "
                f"dropped results: {m.results_dropped}, failed: {m.failed_frames})"
            )
            self._send_quit(Quit(reason=reason))

    def process_once(self) -> Optional[AnalysisResult]:
        """
        Drain the slot and process the frame found there, if any.

        Returns:
            The AnalysisResult, or None when nothing was processed

        Raises:
            RecognitionError: When the consecutive-failure limit is reached
        """
        drained = self._slot.drain()
        if drained is None:
            logger.debug("No frame available, skipping")
            return None

        frame, dropped = drained
        m = self._metrics
        m.frames_received += 1
        m.frames_dropped_input += dropped

        try:
            image = frame.to_array()
        except FrameFormatError as e:
            m.malformed_frames += 1
            logger.warning(f"Skipping malformed frame {frame!r}: {e}")
            return None

        img_h, img_w = image.shape[:2]
        area = capture_area(img_w, img_h, self.area_width, self.area_height)
        image = image[area.y:area.y + area.height, area.x:area.x + area.width]

        try:
            analysis = self._analyzer.analyze(image)
        except FrameFormatError as e:
            m.malformed_frames += 1
            logger.warning(f"Skipping frame with unsupported layout: {e}")
            return None
        except RecognitionError as e:
            m.failed_frames += 1
            m.consecutive_failures += 1
            logger.error(
                f"Recognition failed ({m.consecutive_failures}/"
                f"{self.max_consecutive_failures} consecutive): {e}"
            )
            if m.consecutive_failures >= self.max_consecutive_failures:
                logger.error("Too many consecutive recognition failures, stopping frame processor")
                raise
            return None

        m.consecutive_failures = 0
        m.frames_processed += 1
        m.last_icon_detect_ms = analysis.icon_detect_ms
        m.last_color_convert_ms = analysis.color_convert_ms
        m.last_recognition_ms = analysis.recognition_ms

        if self.summary_interval and m.frames_processed % self.summary_interval == 0:
            logger.info(
                f"Processed {m.frames_processed} frames (received: {m.frames_received}, "
                f"dropped: {m.frames_dropped_input + m.results_dropped}). "
                f"Icon/Convert/OCR time: {analysis.icon_detect_ms:.1f}/"
                f"{analysis.color_convert_ms:.1f}/{analysis.recognition_ms:.1f} ms"
            )

        command = ProcessedFrame(
            analysis=analysis,
            image=to_bgr(image) if self.include_image else None,
        )
        if not self._send_best_effort(command):
            m.results_dropped += 1
            logger.debug(f"Dropped processed frame (queue full). Total dropped: {m.results_dropped}")

        return analysis

    # =========================================================================
    # Output
    # =========================================================================

    def _send_best_effort(self, command: GuiCommand) -> bool:
        try:
            self._results.put_nowait(command)
            return True
        except queue.Full:
            return False

    def _send_quit(self, command: Quit) -> None:
        for _ in range(QUIT_RETRY_ATTEMPTS):
            try:
                self._results.put(command, timeout=QUIT_RETRY_INTERVAL)
                return
            except queue.Full:
                continue
        logger.warning("Result queue stayed full, Quit command not delivered")

    # =========================================================================
    # Thread management
    # =========================================================================

    def start(self) -> None:
        """Run the loop on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Frame processor already running")
            return
        self._thread = threading.Thread(target=self._thread_main, name="frame-processor", daemon=True)
        self._thread.start()

    def _thread_main(self) -> None:
        try:
            self.run()
        except RecognitionError as e:
            self.error = e
            logger.error(f"Frame processor terminated: {e}")
        except Exception as e:
            self.error = e
            logger.exception(f"Frame processor crashed: {e}")

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
