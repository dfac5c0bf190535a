"""
Recognition Engine
==================

Closed set of recognition engines behind one `recognize` call.

Variants:
    - TEMPLATE: OpenCV template matching over digit glyphs
    - NEURAL_BATCH: neural recognizer, all regions in one batch
    - NEURAL_PARALLEL: neural recognizer, one request per region on a pool
    - NEURAL_SEQUENTIAL: neural recognizer, one request per region inline
    - FALLBACK: any of the above backed by a secondary engine

Factory Pattern:
    Use `create_engine(ocr_config)` to build the configured variant.
    Construction failures raise EngineLoadError and are fatal to callers.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple, Union

import numpy as np

from aoe4_overlay.config import OcrConfig
from aoe4_overlay.geometry.regions import StatRegion
from aoe4_overlay.ocr.base import RecognitionError
from aoe4_overlay.ocr.fallback import FallbackEngine
from aoe4_overlay.ocr.neural import (
    NeuralBatchEngine,
    NeuralParallelEngine,
    NeuralSequentialEngine,
)
from aoe4_overlay.ocr.recognizer import TextRecognizer
from aoe4_overlay.ocr.template_matching import TemplateMatchingEngine


logger = logging.getLogger(__name__)


class EngineKind(str, Enum):
    """Recognition engine variants."""

    TEMPLATE = "template"
    NEURAL_BATCH = "neural_batch"
    NEURAL_PARALLEL = "neural_parallel"
    NEURAL_SEQUENTIAL = "neural_sequential"
    FALLBACK = "fallback"


EngineImpl = Union[
    TemplateMatchingEngine,
    NeuralBatchEngine,
    NeuralParallelEngine,
    NeuralSequentialEngine,
    FallbackEngine,
]

_IMPL_TYPES = {
    EngineKind.TEMPLATE: TemplateMatchingEngine,
    EngineKind.NEURAL_BATCH: NeuralBatchEngine,
    EngineKind.NEURAL_PARALLEL: NeuralParallelEngine,
    EngineKind.NEURAL_SEQUENTIAL: NeuralSequentialEngine,
    EngineKind.FALLBACK: FallbackEngine,
}


@dataclass(frozen=True)
class Engine:
    """
    Tagged recognition engine.

    The kind is checked against the wrapped implementation at
    construction, so dispatch never meets an unexpected pairing.
    """

    kind: EngineKind
    impl: EngineImpl

    def __post_init__(self) -> None:
        expected = _IMPL_TYPES[self.kind]
        if not isinstance(self.impl, expected):
            raise TypeError(
                f"Engine kind {self.kind.value} requires {expected.__name__}, "
                f"got {type(self.impl).__name__}"
            )

    @classmethod
    def template(cls, impl: TemplateMatchingEngine) -> "Engine":
        return cls(EngineKind.TEMPLATE, impl)

    @classmethod
    def neural_batch(cls, impl: NeuralBatchEngine) -> "Engine":
        return cls(EngineKind.NEURAL_BATCH, impl)

    @classmethod
    def neural_parallel(cls, impl: NeuralParallelEngine) -> "Engine":
        return cls(EngineKind.NEURAL_PARALLEL, impl)

    @classmethod
    def neural_sequential(cls, impl: NeuralSequentialEngine) -> "Engine":
        return cls(EngineKind.NEURAL_SEQUENTIAL, impl)

    @classmethod
    def fallback(cls, primary: "Engine", secondary: "Engine") -> "Engine":
        return cls(EngineKind.FALLBACK, FallbackEngine(primary, secondary))

    @property
    def name(self) -> str:
        return self.impl.name

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        """
        Recognize one string per region.

        Args:
            image: RGB image (H, W, 3)
            regions: Region table to read

        Returns:
            Tuple aligned with `regions`; "" for unread regions

        Raises:
            RecognitionError: If the backend fails for the whole frame or
                returns a result not aligned with `regions`
        """
        texts = self.impl.recognize(image, regions)
        if len(texts) != len(regions):
            raise RecognitionError(
                f"{self.name} returned {len(texts)} strings for {len(regions)} regions"
            )
        return texts

    def close(self) -> None:
        """Release worker pools held by the engine."""
        if self.kind is EngineKind.NEURAL_PARALLEL:
            self.impl.close()
        elif self.kind is EngineKind.FALLBACK:
            self.impl.primary.close()
            self.impl.fallback.close()


def _build(kind: EngineKind, config: OcrConfig) -> Engine:
    if kind is EngineKind.TEMPLATE:
        tpl = config.template
        return Engine.template(
            TemplateMatchingEngine.from_directory(
                tpl.template_dir,
                match_threshold=tpl.match_threshold,
                min_confidence=tpl.min_confidence,
                min_separation=tpl.min_separation,
                max_symbols=tpl.max_symbols,
            )
        )

    neural = config.neural
    recognizer = TextRecognizer.from_files(
        neural.model_path,
        neural.dict_path,
        input_shape=tuple(neural.input_shape),
        batch_size=neural.batch_size,
        providers=neural.providers,
    )

    if kind is EngineKind.NEURAL_BATCH:
        return Engine.neural_batch(NeuralBatchEngine(recognizer))
    if kind is EngineKind.NEURAL_PARALLEL:
        return Engine.neural_parallel(
            NeuralParallelEngine(
                recognizer,
                confidence_threshold=neural.confidence_threshold,
                workers=neural.workers,
            )
        )
    if kind is EngineKind.NEURAL_SEQUENTIAL:
        return Engine.neural_sequential(
            NeuralSequentialEngine(recognizer, confidence_threshold=neural.confidence_threshold)
        )

    raise ValueError(f"Engine kind {kind.value} cannot be built directly")


def parse_engine_kind(value: str) -> EngineKind:
    """Parse a configured engine name, rejecting unknown names."""
    try:
        return EngineKind(value.strip().lower())
    except ValueError:
        valid = ", ".join(k.value for k in EngineKind if k is not EngineKind.FALLBACK)
        raise ValueError(f"Unknown OCR engine '{value}'. Valid options: {valid}") from None


def create_engine(config: OcrConfig) -> Engine:
    """
    Build the configured recognition engine.

    If `config.fallback.engine` names a second variant, the primary is
    wrapped in a FallbackEngine using it for unread regions.

    Raises:
        EngineLoadError: If model, dictionary or template resources fail to load
        ValueError: If an engine name is unknown
    """
    kind = parse_engine_kind(config.engine)
    if kind is EngineKind.FALLBACK:
        raise ValueError("'fallback' is not a primary engine; set ocr.fallback.engine instead")

    engine = _build(kind, config)
    logger.info(f"Recognition engine created: {engine.name}")

    if config.fallback.engine:
        secondary_kind = parse_engine_kind(config.fallback.engine)
        if secondary_kind is EngineKind.FALLBACK or secondary_kind is kind:
            raise ValueError(
                f"Invalid fallback engine '{config.fallback.engine}' for primary '{kind.value}'"
            )
        secondary = _build(secondary_kind, config)
        engine = Engine.fallback(engine, secondary)
        logger.info(f"Fallback engine enabled: {engine.name}")

    return engine
