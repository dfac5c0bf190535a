"""
OCR Module
==========

Recognition of the numeric stat strings shown in the capture area.

Components:
    - Engine / create_engine: Closed set of engine variants and factory
    - TemplateMatchingEngine: OpenCV template matching over digit glyphs
    - NeuralBatchEngine, NeuralParallelEngine, NeuralSequentialEngine:
      engines backed by the ONNX TextRecognizer
    - FallbackEngine: Secondary engine for regions the primary left unread
"""

from aoe4_overlay.ocr.base import (
    ACCEPTED_SYMBOLS,
    EngineLoadError,
    OcrEngine,
    RecognitionError,
    accept,
    crop_region,
    is_accepted,
)
from aoe4_overlay.ocr.engine import (
    Engine,
    EngineKind,
    create_engine,
    parse_engine_kind,
)
from aoe4_overlay.ocr.fallback import FallbackEngine
from aoe4_overlay.ocr.neural import (
    NeuralBatchEngine,
    NeuralParallelEngine,
    NeuralSequentialEngine,
    TextPredictor,
)
from aoe4_overlay.ocr.recognizer import TextRecognizer, load_character_dict
from aoe4_overlay.ocr.template_matching import (
    DigitMatch,
    DigitTemplateMatcher,
    DigitTemplates,
    TemplateMatchingEngine,
    suppress_overlaps,
)

__all__ = [
    # Base
    "ACCEPTED_SYMBOLS",
    "EngineLoadError",
    "OcrEngine",
    "RecognitionError",
    "accept",
    "crop_region",
    "is_accepted",
    # Engine
    "Engine",
    "EngineKind",
    "create_engine",
    "parse_engine_kind",
    # Variants
    "FallbackEngine",
    "NeuralBatchEngine",
    "NeuralParallelEngine",
    "NeuralSequentialEngine",
    "TextPredictor",
    "TextRecognizer",
    "load_character_dict",
    "DigitMatch",
    "DigitTemplateMatcher",
    "DigitTemplates",
    "TemplateMatchingEngine",
    "suppress_overlaps",
]
