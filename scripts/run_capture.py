#!/usr/bin/env python3
"""
Capture Pipeline Run Script
===========================

Standalone script to exercise the capture -> recognition pipeline
without the HTTP service.

This script:
    1. Builds the configured engine and icon detector
    2. Captures the screen for a configurable duration
    3. Logs pipeline stats and the latest result every few seconds
    4. Reports a final summary

Usage:
    python scripts/run_capture.py --duration 60
    python scripts/run_capture.py --config config.yaml --monitor 2
"""

import argparse
import logging
import os
import queue
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from aoe4_overlay.config import load_config
from aoe4_overlay.geometry import STAT_REGIONS
from aoe4_overlay.ocr import create_engine
from aoe4_overlay.perception import IconDetector, ImageAnalyzer
from aoe4_overlay.pipeline import FrameProcessor, ResultCollector
from aoe4_overlay.stream import FrameSlot, ScreenGrabber


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def run(config_path, duration: int, monitor, report_interval: int) -> dict:
    """
    Run the pipeline for `duration` seconds.

    Returns:
        Final metrics dict
    """
    settings = load_config(config_path)
    if monitor is not None:
        settings.capture.monitor = monitor

    logger.info("=" * 60)
    logger.info("Capture Pipeline Run")
    logger.info("=" * 60)
    logger.info(f"Engine: {settings.ocr.engine}")
    logger.info(f"Monitor: {settings.capture.monitor}")
    logger.info(f"Duration: {duration} seconds")
    logger.info("=" * 60)

    engine = create_engine(settings.ocr)
    analyzer = ImageAnalyzer(
        engine,
        IconDetector.from_file(settings.icon.template_path, threshold=settings.icon.threshold),
        brighten_delta=settings.processor.brighten_delta,
    )

    results: queue.Queue = queue.Queue(maxsize=settings.processor.result_queue_size)
    slot = FrameSlot()
    processor = FrameProcessor(
        analyzer,
        slot,
        results,
        area_width=settings.processor.area_width,
        area_height=settings.processor.area_height,
        summary_interval=settings.processor.summary_interval,
        max_consecutive_failures=settings.processor.max_consecutive_failures,
    )
    collector = ResultCollector(results)
    grabber = ScreenGrabber(
        slot,
        on_frame=processor.signal_new_frame,
        monitor=settings.capture.monitor,
        interval_ms=settings.capture.interval_ms,
    )

    collector.start()
    processor.start()
    grabber.start()

    start_time = time.time()
    last_report_time = start_time
    names = [region.name for region in STAT_REGIONS]

    try:
        while time.time() - start_time < duration:
            if not processor.is_running and processor.error is not None:
                logger.error(f"Processor stopped: {processor.error}")
                break

            if time.time() - last_report_time >= report_interval:
                m = processor.metrics
                logger.info("-" * 40)
                logger.info(f"Frames captured: {grabber.frames_captured}")
                logger.info(f"Frames processed: {m.frames_processed}")
                logger.info(f"Dropped input/results: {m.frames_dropped_input}/{m.results_dropped}")
                latest = collector.latest
                if latest is not None:
                    logger.info(f"Latest: {latest.to_dict(names)}")
                last_report_time = time.time()

            time.sleep(0.5)

    except KeyboardInterrupt:
        logger.info("Run interrupted by user")
    finally:
        grabber.stop()
        processor.request_stop()
        processor.join(timeout=5.0)
        collector.stop()
        engine.close()

    total_time = time.time() - start_time
    m = processor.metrics
    avg_fps = m.frames_processed / total_time if total_time > 0 else 0

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Frames captured: {grabber.frames_captured}")
    logger.info(f"Capture errors: {grabber.capture_errors}")
    logger.info(f"Frames processed: {m.frames_processed}")
    logger.info(f"Average processed FPS: {avg_fps:.1f}")
    logger.info(f"Failed frames: {m.failed_frames}")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "frames_captured": grabber.frames_captured,
        "avg_fps": avg_fps,
        **m.to_dict(),
    }


def main():
    parser = argparse.ArgumentParser(
        description="Run the capture and recognition pipeline without the HTTP service"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Run duration in seconds (default: 60)",
    )
    parser.add_argument("--monitor", type=int, default=None, help="mss monitor index")
    parser.add_argument(
        "--report-interval",
        type=int,
        default=5,
        help="Seconds between progress reports (default: 5)",
    )

    args = parser.parse_args()
    result = run(args.config, args.duration, args.monitor, args.report_interval)
    sys.exit(0 if result["frames_processed"] > 0 else 1)


if __name__ == "__main__":
    main()
