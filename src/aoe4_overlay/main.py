"""
AOE4 Overlay Main Application
=============================

FastAPI entry point for the stat overlay service.

Pipeline:
    ScreenGrabber -> FrameSlot -> FrameProcessor -> result queue -> ResultCollector

Endpoints:
    GET  /          - Service information
    GET  /health    - Liveness probe (is process alive?)
    GET  /ready     - Readiness probe (processor running + first result?)
    GET  /metrics   - Slot, processor and engine counters
    GET  /output    - Latest analysis result
    WS   /ws/output - Real-time result stream
"""

import asyncio
import logging
import os
import queue
import signal
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, WebSocket
from fastapi.responses import JSONResponse

from aoe4_overlay import __version__
from aoe4_overlay.config import get_settings, setup_logging
from aoe4_overlay.geometry import STAT_REGIONS
from aoe4_overlay.ocr import Engine, create_engine
from aoe4_overlay.perception import IconDetector, ImageAnalyzer
from aoe4_overlay.pipeline import FrameProcessor, ResultCollector
from aoe4_overlay.stream import FrameSlot, ScreenGrabber


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

# Shutdown flag
_shutdown_flag: bool = False

_engine: Optional[Engine] = None
_frame_slot: Optional[FrameSlot] = None
_processor: Optional[FrameProcessor] = None
_grabber: Optional[ScreenGrabber] = None
_collector: Optional[ResultCollector] = None

_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_processor() -> Optional[FrameProcessor]:
    return _processor

def get_collector() -> Optional[ResultCollector]:
    return _collector

def is_ready() -> bool:
    return (
        _processor is not None
        and _processor.is_running
        and _collector is not None
        and _collector.latest is not None
    )


# =============================================================================
# Signal Handlers
# =============================================================================

def _handle_sigterm(signum, frame):
    """Handle SIGTERM for graceful shutdown."""
    global _shutdown_flag
    logger.info("Received SIGTERM, initiating graceful shutdown...")
    _shutdown_flag = True
    if _processor is not None:
        _processor.request_stop()


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _engine, _frame_slot, _processor, _grabber, _collector
    global _startup_time, _shutdown_flag

    settings = get_settings()
    setup_logging(settings)

    signal.signal(signal.SIGTERM, _handle_sigterm)

    # Startup
    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting aoe4-overlay {__version__}")

    # Recognition resources; failures here abort startup
    _engine = create_engine(settings.ocr)
    icon_detector = IconDetector.from_file(
        settings.icon.template_path,
        threshold=settings.icon.threshold,
    )
    analyzer = ImageAnalyzer(
        _engine,
        icon_detector,
        regions=STAT_REGIONS,
        brighten_delta=settings.processor.brighten_delta,
    )

    result_queue: queue.Queue = queue.Queue(maxsize=settings.processor.result_queue_size)
    _frame_slot = FrameSlot()
    _processor = FrameProcessor(
        analyzer,
        _frame_slot,
        result_queue,
        area_width=settings.processor.area_width,
        area_height=settings.processor.area_height,
        summary_interval=settings.processor.summary_interval,
        max_consecutive_failures=settings.processor.max_consecutive_failures,
        include_image=settings.processor.include_image,
    )
    _collector = ResultCollector(result_queue)
    _grabber = ScreenGrabber(
        _frame_slot,
        on_frame=_processor.signal_new_frame,
        monitor=settings.capture.monitor,
        interval_ms=settings.capture.interval_ms,
    )

    _collector.start()
    _processor.start()
    _grabber.start()

    logger.info(f"All components started (engine={_engine.name})")

    yield

    # Shutdown
    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    _grabber.stop()
    _processor.request_stop()
    _processor.join(timeout=5.0)
    _collector.stop()
    _engine.close()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="aoe4-overlay",
    description="Resource and villager stat reader for the Age of Empires IV HUD",
    version=__version__,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    settings = get_settings()
    return JSONResponse({
        "service": "aoe4-overlay",
        "version": __version__,
        "status": "running",
        "ocr_engine": _engine.name if _engine else settings.ocr.engine,
        "regions": [region.name for region in STAT_REGIONS],
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the pipeline producing results?

    Returns 200 once the processor runs and a first result exists,
    503 otherwise.
    """
    processor_running = _processor is not None and _processor.is_running
    has_result = _collector is not None and _collector.latest is not None

    if is_ready():
        return JSONResponse({
            "status": "ready",
            "processor_running": processor_running,
            "frames_processed": _processor.metrics.frames_processed,
        })
    return JSONResponse(
        {
            "status": "not_ready",
            "processor_running": processor_running,
            "has_result": has_result,
        },
        status_code=503,
    )


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    slot_metrics = _frame_slot.metrics() if _frame_slot else {}
    processor_metrics = _processor.metrics.to_dict() if _processor else {}

    capture_metrics = {}
    if _grabber:
        capture_metrics = {
            "frames_captured": _grabber.frames_captured,
            "capture_errors": _grabber.capture_errors,
        }

    collector_metrics = {}
    if _collector:
        collector_metrics = {
            "results_received": _collector.results_received,
            "quit_reason": _collector.quit_reason,
        }

    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "ocr_engine": _engine.name if _engine else None,
        "slot": slot_metrics,
        "processor": processor_metrics,
        "capture": capture_metrics,
        "presentation": collector_metrics,
    })


@app.get("/output")
async def output() -> JSONResponse:
    """Get the latest analysis result."""
    latest = _collector.latest if _collector else None

    if latest is None:
        return JSONResponse(
            {"error": "No output available yet"},
            status_code=503,
        )

    return JSONResponse(latest.to_dict([region.name for region in STAT_REGIONS]))


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/output")
async def output_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time output."""
    await websocket.accept()
    logger.info("Client connected to /ws/output")

    region_names = [region.name for region in STAT_REGIONS]
    try:
        while not _shutdown_flag:
            latest = _collector.latest if _collector else None
            if latest:
                await websocket.send_json(latest.to_dict(region_names))
            await asyncio.sleep(1.0)

    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        logger.info("Client disconnected from /ws/output")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "aoe4_overlay.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
