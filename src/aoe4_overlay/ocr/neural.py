"""
Neural OCR Engines
==================

Recognition engines backed by a neural text recognizer.

Variants:
    - NeuralBatchEngine: all regions submitted as one batch
    - NeuralParallelEngine: one request per region on a worker pool
    - NeuralSequentialEngine: one request per region on the calling thread

All variants share the acceptance predicate from `ocr.base`. The
per-region variants additionally require score > confidence_threshold.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Protocol, Sequence, Tuple

import numpy as np

from aoe4_overlay.geometry.regions import StatRegion
from aoe4_overlay.ocr.base import RecognitionError, accept, crop_region


logger = logging.getLogger(__name__)


DEFAULT_CONFIDENCE_THRESHOLD = 0.5


class TextPredictor(Protocol):
    """Anything that turns image crops into (text, score) pairs."""

    def predict(self, images: Sequence[np.ndarray]) -> List[Tuple[str, float]]:
        ...


def _predict_single(predictor: TextPredictor, crop: np.ndarray) -> Tuple[str, float]:
    """
    Run the predictor on one crop.

    Raises:
        RecognitionError: If the backend does not return exactly one result
    """
    predictions = predictor.predict([crop])
    if len(predictions) != 1:
        raise RecognitionError(f"Backend returned {len(predictions)} results for 1 region")
    return predictions[0]


class NeuralBatchEngine:
    """
    Batch recognition of every region in a single backend call.

    No score threshold is applied; a region is kept when its text
    passes the acceptance predicate.
    """

    def __init__(self, predictor: TextPredictor) -> None:
        self._predictor = predictor

    @property
    def name(self) -> str:
        return "neural_batch"

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        texts = [""] * len(regions)

        crops = []
        slots = []
        for i, region in enumerate(regions):
            crop = crop_region(image, region)
            if crop is None:
                continue
            crops.append(crop)
            slots.append(i)

        if not crops:
            return tuple(texts)

        predictions = self._predictor.predict(crops)
        if len(predictions) != len(crops):
            raise RecognitionError(
                f"Backend returned {len(predictions)} results for {len(crops)} regions"
            )

        for slot, (text, _score) in zip(slots, predictions):
            texts[slot] = accept(text)

        return tuple(texts)


class NeuralParallelEngine:
    """
    Per-region recognition spread over a fixed-size thread pool.

    Results land in fixed per-region slots, so completion order does not
    matter. A failing region is left unread instead of failing the frame.

    Attributes:
        confidence_threshold: Minimum score for a result to be accepted
        workers: Thread pool size
    """

    def __init__(
        self,
        predictor: TextPredictor,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        workers: int = 8,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self._predictor = predictor
        self.confidence_threshold = confidence_threshold
        self.workers = workers
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ocr")
        self.region_errors: int = 0

    @property
    def name(self) -> str:
        return "neural_parallel"

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        texts = [""] * len(regions)

        futures = {}
        for i, region in enumerate(regions):
            crop = crop_region(image, region)
            if crop is None:
                continue
            futures[i] = self._executor.submit(self._recognize_one, crop)

        for i, future in futures.items():
            try:
                texts[i] = future.result()
            except RecognitionError as e:
                self.region_errors += 1
                logger.debug(f"Region {regions[i].name} recognition failed: {e}")

        return tuple(texts)

    def _recognize_one(self, crop: np.ndarray) -> str:
        text, score = _predict_single(self._predictor, crop)
        if score > self.confidence_threshold:
            return accept(text)
        return ""

    def close(self) -> None:
        """Shut the worker pool down."""
        self._executor.shutdown(wait=True)


class NeuralSequentialEngine:
    """Per-region recognition on the calling thread with a score threshold."""

    def __init__(
        self,
        predictor: TextPredictor,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ) -> None:
        self._predictor = predictor
        self.confidence_threshold = confidence_threshold

    @property
    def name(self) -> str:
        return "neural_sequential"

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        texts: List[str] = []
        for region in regions:
            crop = crop_region(image, region)
            text = ""
            if crop is not None:
                raw, score = _predict_single(self._predictor, crop)
                if score > self.confidence_threshold:
                    text = accept(raw)
            texts.append(text)
        return tuple(texts)
