"""
AOE4 Overlay Configuration
==========================

This module handles configuration loading for the stat overlay.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    AOE4_OVERLAY_ENGINE            -> ocr.engine
    AOE4_OVERLAY_MODEL_PATH        -> ocr.neural.model_path
    AOE4_OVERLAY_DICT_PATH         -> ocr.neural.dict_path
    AOE4_OVERLAY_TEMPLATE_DIR      -> ocr.template.template_dir
    AOE4_OVERLAY_MATCH_THRESHOLD   -> ocr.template.match_threshold
    AOE4_OVERLAY_MIN_CONFIDENCE    -> ocr.template.min_confidence
    AOE4_OVERLAY_ICON_TEMPLATE     -> icon.template_path
    AOE4_OVERLAY_RESULT_QUEUE_SIZE -> processor.result_queue_size
    AOE4_OVERLAY_LOG_LEVEL         -> logging.level
    AOE4_OVERLAY_PORT / PORT       -> server.port

Example:
    from aoe4_overlay.config import get_settings

    settings = get_settings()
    print(settings.ocr.engine)
    print(settings.ocr.template.match_threshold)
"""

import os
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class CaptureConfig(BaseModel):
    """Screen capture producer configuration."""

    monitor: int = Field(default=1, ge=0, description="mss monitor index (0 = all monitors)")
    interval_ms: int = Field(
        default=33,
        ge=1,
        description="Delay between screen grabs in milliseconds",
    )


class ProcessorConfig(BaseModel):
    """Frame processor (consumer loop) configuration."""

    area_width: int = Field(
        default=267,
        ge=1,
        description="Width of the working area anchored at the bottom-left of the frame",
    )
    area_height: int = Field(
        default=486,
        ge=1,
        description="Height of the working area anchored at the bottom-left of the frame",
    )
    brighten_delta: int = Field(
        default=30,
        ge=0,
        le=255,
        description="Brightness added to every channel before recognition",
    )
    result_queue_size: int = Field(
        default=2,
        ge=1,
        description="Capacity of the bounded result channel",
    )
    summary_interval: int = Field(
        default=100,
        ge=1,
        description="Log a processing summary every N processed frames",
    )
    max_consecutive_failures: int = Field(
        default=10,
        ge=1,
        description="Consecutive engine failures tolerated before the loop terminates",
    )
    include_image: bool = Field(
        default=False,
        description="Attach the cropped frame to each ProcessedFrame command",
    )


class NeuralOcrConfig(BaseModel):
    """ONNX text-recognition backend configuration."""

    model_path: str = Field(
        default="./models/latin_ppocrv5_mobile_rec.onnx",
        description="Path to the ONNX recognition model",
    )
    dict_path: str = Field(
        default="./models/numbers_only_dict.txt",
        description="Path to the character dictionary (one symbol per line)",
    )
    input_shape: Tuple[int, int, int] = Field(
        default=(3, 48, 320),
        description="Model input shape (channels, height, max width)",
    )
    batch_size: int = Field(default=8, ge=1, description="Images per inference batch")
    confidence_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum recognition score for per-region variants",
    )
    workers: int = Field(default=8, ge=1, description="Worker threads for the parallel variant")
    providers: list[str] = Field(
        default_factory=lambda: ["CPUExecutionProvider"],
        description="onnxruntime execution providers, in priority order",
    )


class TemplateOcrConfig(BaseModel):
    """Template-matching digit recognizer configuration."""

    template_dir: str = Field(
        default="./assets/digits",
        description="Directory of digit/slash glyph templates",
    )
    match_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum normalized cross-correlation for a candidate match",
    )
    min_confidence: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Minimum mean match score for a region result to be accepted",
    )
    min_separation: int = Field(
        default=10,
        ge=1,
        description="Minimum horizontal distance in pixels between accepted symbols",
    )
    max_symbols: int = Field(
        default=8,
        ge=1,
        description="Maximum characters per region result",
    )


class FallbackOcrConfig(BaseModel):
    """Optional secondary engine consulted for unread regions."""

    engine: Optional[str] = Field(
        default=None,
        description="Fallback engine variant, or None to disable",
    )


class OcrConfig(BaseModel):
    """Recognition engine selection."""

    engine: str = Field(
        default="template",
        description="Engine variant: 'template', 'neural_batch', 'neural_parallel' or 'neural_sequential'",
    )
    neural: NeuralOcrConfig = Field(default_factory=NeuralOcrConfig)
    template: TemplateOcrConfig = Field(default_factory=TemplateOcrConfig)
    fallback: FallbackOcrConfig = Field(default_factory=FallbackOcrConfig)


class IconConfig(BaseModel):
    """Villager icon detector configuration."""

    template_path: str = Field(
        default="./assets/villager_icon.png",
        description="Path to the icon template image",
    )
    threshold: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        description="Minimum best-match score for the icon to count as present",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8401, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the overlay.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)
    ocr: OcrConfig = Field(default_factory=OcrConfig)
    icon: IconConfig = Field(default_factory=IconConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Engine selection
    if env_engine := os.environ.get("AOE4_OVERLAY_ENGINE"):
        config_data.setdefault("ocr", {})["engine"] = env_engine
    if env_model := os.environ.get("AOE4_OVERLAY_MODEL_PATH"):
        config_data.setdefault("ocr", {}).setdefault("neural", {})["model_path"] = env_model
    if env_dict := os.environ.get("AOE4_OVERLAY_DICT_PATH"):
        config_data.setdefault("ocr", {}).setdefault("neural", {})["dict_path"] = env_dict

    # Template matching thresholds
    if env_dir := os.environ.get("AOE4_OVERLAY_TEMPLATE_DIR"):
        config_data.setdefault("ocr", {}).setdefault("template", {})["template_dir"] = env_dir
    if env_mt := os.environ.get("AOE4_OVERLAY_MATCH_THRESHOLD"):
        config_data.setdefault("ocr", {}).setdefault("template", {})["match_threshold"] = float(env_mt)
    if env_mc := os.environ.get("AOE4_OVERLAY_MIN_CONFIDENCE"):
        config_data.setdefault("ocr", {}).setdefault("template", {})["min_confidence"] = float(env_mc)

    # Icon
    if env_icon := os.environ.get("AOE4_OVERLAY_ICON_TEMPLATE"):
        config_data.setdefault("icon", {})["template_path"] = env_icon

    # Processor
    if env_queue := os.environ.get("AOE4_OVERLAY_RESULT_QUEUE_SIZE"):
        config_data.setdefault("processor", {})["result_queue_size"] = int(env_queue)

    # Server settings
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("AOE4_OVERLAY_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("AOE4_OVERLAY_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once and cache them for the process lifetime."""
    return load_config()
