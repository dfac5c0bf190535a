"""
ONNX Text Recognizer
====================

Neural text-recognition backend built on onnxruntime.

Runs a PP-OCR style recognition model (single text line in, per-step
character probabilities out) and decodes it with greedy CTC.

Preprocessing:
    1. Resize to the model height keeping aspect ratio (width capped)
    2. Normalize to [-1, 1]: (x / 255 - 0.5) / 0.5
    3. Right-pad with zeros to the batch width, CHW float32

Postprocessing:
    argmax per step -> collapse repeats -> drop blank (index 0).
    The score is the mean probability of the kept steps.
"""

import logging
import math
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np
import onnxruntime as ort

from aoe4_overlay.ocr.base import EngineLoadError, RecognitionError


logger = logging.getLogger(__name__)


CTC_BLANK = 0


def load_character_dict(dict_path: str) -> List[str]:
    """
    Load a recognition dictionary.

    One symbol per line. Index 0 is reserved for the CTC blank and a
    trailing space symbol is appended, matching the model's class layout.

    Raises:
        EngineLoadError: If the file is missing or empty
    """
    path = Path(dict_path)
    if not path.exists():
        raise EngineLoadError(f"Character dictionary not found: {dict_path}")

    with open(path, "r", encoding="utf-8") as f:
        symbols = [line.rstrip("\r\n") for line in f]
    symbols = [s for s in symbols if s]

    if not symbols:
        raise EngineLoadError(f"Character dictionary is empty: {dict_path}")

    return ["<blank>"] + symbols + [" "]


class TextRecognizer:
    """
    Batched single-line text recognizer.

    Attributes:
        characters: Class index -> symbol table (index 0 = blank)
        input_shape: (channels, height, max_width) of the model input
        batch_size: Maximum images per inference call

    Example:
        recognizer = TextRecognizer.from_files(
            "models/latin_ppocrv5_mobile_rec.onnx",
            "models/numbers_only_dict.txt",
        )
        [(text, score)] = recognizer.predict([crop])
    """

    def __init__(
        self,
        session,
        characters: Sequence[str],
        input_shape: Tuple[int, int, int] = (3, 48, 320),
        batch_size: int = 8,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")

        self._session = session
        self.characters = list(characters)
        self.input_shape = tuple(input_shape)
        self.batch_size = batch_size
        self._input_name = session.get_inputs()[0].name

    @classmethod
    def from_files(
        cls,
        model_path: str,
        dict_path: str,
        input_shape: Tuple[int, int, int] = (3, 48, 320),
        batch_size: int = 8,
        providers: Optional[Sequence[str]] = None,
    ) -> "TextRecognizer":
        """
        Load the model and dictionary.

        Raises:
            EngineLoadError: If either resource cannot be loaded
        """
        characters = load_character_dict(dict_path)

        if not Path(model_path).exists():
            raise EngineLoadError(f"Recognition model not found: {model_path}")

        try:
            session = ort.InferenceSession(
                model_path,
                providers=list(providers) if providers else ["CPUExecutionProvider"],
            )
        except Exception as e:
            raise EngineLoadError(f"Failed to load recognition model {model_path}: {e}") from e

        logger.info(
            f"TextRecognizer loaded: model={model_path}, "
            f"classes={len(characters)}, batch_size={batch_size}, "
            f"providers={session.get_providers()}"
        )
        return cls(session, characters, input_shape=input_shape, batch_size=batch_size)

    def predict(self, images: Sequence[np.ndarray]) -> List[Tuple[str, float]]:
        """
        Recognize one text line per image.

        Args:
            images: RGB or grayscale crops

        Returns:
            (text, score) per input image, in input order

        Raises:
            RecognitionError: If inference fails
        """
        results: List[Tuple[str, float]] = []
        for start in range(0, len(images), self.batch_size):
            chunk = images[start:start + self.batch_size]
            batch = self._prepare_batch(chunk)
            try:
                outputs = self._session.run(None, {self._input_name: batch})
            except Exception as e:
                raise RecognitionError(f"Recognition inference failed: {e}") from e
            results.extend(self._decode(outputs[0]))
        return results

    def _prepare_batch(self, images: Sequence[np.ndarray]) -> np.ndarray:
        """Resize, normalize and pad a chunk into an (N, C, H, W) tensor."""
        channels, height, max_width = self.input_shape

        widths = []
        for image in images:
            h, w = image.shape[:2]
            ratio = w / float(max(h, 1))
            widths.append(max(1, min(max_width, int(math.ceil(height * ratio)))))
        batch_width = max(widths)

        batch = np.zeros((len(images), channels, height, batch_width), dtype=np.float32)
        for i, (image, width) in enumerate(zip(images, widths)):
            if image.ndim == 2:
                image = cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
            resized = cv2.resize(image, (width, height)).astype(np.float32)
            resized = (resized / 255.0 - 0.5) / 0.5
            batch[i, :, :, :width] = resized.transpose(2, 0, 1)[:channels]
        return batch

    def _decode(self, probs: np.ndarray) -> List[Tuple[str, float]]:
        """Greedy CTC decoding of (N, T, C) probabilities."""
        indices = probs.argmax(axis=2)
        scores = probs.max(axis=2)

        decoded: List[Tuple[str, float]] = []
        for seq, seq_scores in zip(indices, scores):
            chars = []
            kept = []
            previous = None
            for idx, score in zip(seq, seq_scores):
                idx = int(idx)
                if idx != previous and idx != CTC_BLANK and idx < len(self.characters):
                    chars.append(self.characters[idx])
                    kept.append(float(score))
                previous = idx
            text = "".join(chars)
            confidence = float(np.mean(kept)) if kept else 0.0
            decoded.append((text, confidence))
        return decoded
