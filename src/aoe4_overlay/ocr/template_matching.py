"""
Template Matching OCR Engine
============================

Digit recognition without a neural model, using OpenCV template matching.

Algorithm (per region):
    1. Convert the region to grayscale
    2. Slide every glyph template (0-9 and '/', several variants each)
       over the region with TM_CCOEFF_NORMED and keep every location
       scoring >= match_threshold
    3. Order candidates left to right
    4. 1-D non-max suppression: visit candidates by descending score and
       keep one only if it is at least min_separation pixels away from
       every kept candidate
    5. Re-order kept candidates by x and concatenate their symbols,
       truncating to max_symbols
    6. Confidence = mean score of kept candidates (0 when none)

Symbols sit on one horizontal baseline, so suppression only compares x.

Template Directory Layout:
    slash.png / slash-<variant>.png   -> '/'
    <digit>-<variant>.png             -> that digit
    anything else                     -> ignored with a warning
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from aoe4_overlay.geometry.regions import StatRegion
from aoe4_overlay.models.analysis import SHORT_STRING_CAPACITY
from aoe4_overlay.ocr.base import EngineLoadError, crop_region, is_accepted


logger = logging.getLogger(__name__)


# Matching parameters
MATCH_THRESHOLD = 0.7
MIN_CONFIDENCE = 0.75
MIN_SEPARATION = 10

SLASH_STEM = "slash"
TEMPLATE_SUFFIXES = (".png", ".jpg", ".jpeg", ".bmp")


@dataclass(frozen=True, slots=True)
class DigitMatch:
    """
    Candidate glyph location.

    Attributes:
        symbol: Matched character ('0'-'9' or '/')
        x: Left edge of the match in the region
        confidence: Normalized cross-correlation score
    """

    symbol: str
    x: int
    confidence: float


class DigitTemplates:
    """Manages glyph templates for template matching."""

    def __init__(self) -> None:
        self.templates: Dict[str, List[np.ndarray]] = {}

    @classmethod
    def from_directory(cls, template_dir: Path) -> "DigitTemplates":
        """
        Load glyph templates from a directory.

        Raises:
            EngineLoadError: If the directory is missing or yields no templates
        """
        templates = cls()
        templates.load_templates(Path(template_dir))
        return templates

    def load_templates(self, template_dir: Path) -> None:
        """
        Load every recognizable template file in `template_dir`.

        Args:
            template_dir: Path to directory containing template images

        Raises:
            EngineLoadError: If the directory is missing or no template loads
        """
        self.templates.clear()

        if not template_dir.is_dir():
            raise EngineLoadError(f"Template directory not found: {template_dir}")

        for path in sorted(template_dir.iterdir()):
            if path.suffix.lower() not in TEMPLATE_SUFFIXES:
                continue

            symbol = self._symbol_for(path.stem)
            if symbol is None:
                logger.warning(f"Ignoring template file: '{path}'")
                continue

            img = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
            if img is None or img.size == 0:
                logger.warning(f"Could not read template image: '{path}'")
                continue

            self.add(symbol, img)

        if not self.templates:
            raise EngineLoadError(f"No digit templates could be loaded from {template_dir}")

        logger.info(
            f"Loaded {self.count} glyph templates for symbols "
            f"{''.join(sorted(self.templates))} from {template_dir}"
        )

    @staticmethod
    def _symbol_for(stem: str) -> Optional[str]:
        if stem == SLASH_STEM or stem.startswith(SLASH_STEM + "-"):
            return "/"
        head, sep, _variant = stem.partition("-")
        if sep and len(head) == 1 and head.isdigit():
            return head
        return None

    def add(self, symbol: str, template: np.ndarray) -> None:
        """Register a grayscale template for `symbol`."""
        if template.ndim != 2:
            template = cv2.cvtColor(template, cv2.COLOR_BGR2GRAY)
        self.templates.setdefault(symbol, []).append(template)

    @property
    def count(self) -> int:
        return sum(len(variants) for variants in self.templates.values())

    def items(self) -> Iterable[Tuple[str, List[np.ndarray]]]:
        """Symbols in sorted order, for deterministic matching."""
        for symbol in sorted(self.templates):
            yield symbol, self.templates[symbol]


def suppress_overlaps(matches: Sequence[DigitMatch], min_separation: int = MIN_SEPARATION) -> List[DigitMatch]:
    """
    Keep the strongest candidate per horizontal neighbourhood.

    Candidates are visited by descending confidence (ties broken by x,
    then symbol) and kept only if at least `min_separation` pixels away
    from every candidate kept so far. The result is ordered by x.
    """
    kept: List[DigitMatch] = []
    for candidate in sorted(matches, key=lambda m: (-m.confidence, m.x, m.symbol)):
        if all(abs(candidate.x - existing.x) >= min_separation for existing in kept):
            kept.append(candidate)

    kept.sort(key=lambda m: m.x)
    return kept


class DigitTemplateMatcher:
    """
    Multi-glyph template search with overlap suppression.

    Attributes:
        match_threshold: Minimum score for a candidate location
        min_separation: Minimum x distance between accepted symbols
        max_symbols: Output capacity; longer reads are truncated
    """

    def __init__(
        self,
        templates: DigitTemplates,
        match_threshold: float = MATCH_THRESHOLD,
        min_separation: int = MIN_SEPARATION,
        max_symbols: int = SHORT_STRING_CAPACITY,
    ) -> None:
        self._templates = templates
        self.match_threshold = match_threshold
        self.min_separation = min_separation
        self.max_symbols = max_symbols

    @property
    def templates(self) -> DigitTemplates:
        """Access to glyph templates for external tools."""
        return self._templates

    def find_candidates(self, gray: np.ndarray) -> List[DigitMatch]:
        """
        Collect every template location scoring >= match_threshold.

        Returns:
            Candidates ordered left to right
        """
        matches: List[DigitMatch] = []
        img_h, img_w = gray.shape[:2]

        for symbol, variants in self._templates.items():
            for template in variants:
                tpl_h, tpl_w = template.shape[:2]
                if tpl_h > img_h or tpl_w > img_w:
                    continue

                result = cv2.matchTemplate(gray, template, cv2.TM_CCOEFF_NORMED)
                result = np.nan_to_num(result, nan=0.0, posinf=0.0, neginf=0.0)

                ys, xs = np.nonzero(result >= self.match_threshold)
                for y, x in zip(ys, xs):
                    matches.append(DigitMatch(symbol, int(x), float(result[y, x])))

        matches.sort(key=lambda m: m.x)
        return matches

    def assemble(self, matches: Sequence[DigitMatch]) -> Tuple[str, float]:
        """
        Turn candidates into an ordered string and its confidence.

        Returns:
            (text, mean confidence); ("", 0.0) when nothing survives
        """
        kept = suppress_overlaps(matches, self.min_separation)
        if not kept:
            return "", 0.0

        if len(kept) > self.max_symbols:
            logger.warning(
                f"Recognized {len(kept)} symbols, but maximum supported is "
                f"{self.max_symbols}. Truncating."
            )

        text = "".join(m.symbol for m in kept[:self.max_symbols])
        confidence = sum(m.confidence for m in kept) / len(kept)
        return text, confidence

    def recognize(self, gray: np.ndarray) -> Tuple[str, float]:
        """Recognize the symbol string in a grayscale region."""
        return self.assemble(self.find_candidates(gray))


class TemplateMatchingEngine:
    """
    OCR engine using OpenCV template matching.

    A region result is kept only if it passes the acceptance predicate
    and its mean match score reaches min_confidence.

    Example:
        engine = TemplateMatchingEngine.from_directory("./assets/digits")
        texts = engine.recognize(rgb_image, STAT_REGIONS)
    """

    def __init__(self, matcher: DigitTemplateMatcher, min_confidence: float = MIN_CONFIDENCE) -> None:
        self._matcher = matcher
        self.min_confidence = min_confidence

    @classmethod
    def from_directory(
        cls,
        template_dir,
        match_threshold: float = MATCH_THRESHOLD,
        min_confidence: float = MIN_CONFIDENCE,
        min_separation: int = MIN_SEPARATION,
        max_symbols: int = SHORT_STRING_CAPACITY,
    ) -> "TemplateMatchingEngine":
        templates = DigitTemplates.from_directory(Path(template_dir))
        matcher = DigitTemplateMatcher(
            templates,
            match_threshold=match_threshold,
            min_separation=min_separation,
            max_symbols=max_symbols,
        )
        return cls(matcher, min_confidence=min_confidence)

    @property
    def name(self) -> str:
        return "template"

    @property
    def matcher(self) -> DigitTemplateMatcher:
        return self._matcher

    def recognize_region(self, region_image: np.ndarray) -> Tuple[str, float]:
        """Recognize one RGB (or grayscale) region, returning (text, confidence)."""
        if region_image.ndim == 3:
            gray = cv2.cvtColor(region_image, cv2.COLOR_RGB2GRAY)
        else:
            gray = region_image
        return self._matcher.recognize(gray)

    def recognize(self, image: np.ndarray, regions: Sequence[StatRegion]) -> Tuple[str, ...]:
        texts: List[str] = []
        for region in regions:
            crop = crop_region(image, region)
            if crop is None:
                texts.append("")
                continue

            text, confidence = self.recognize_region(crop)
            if is_accepted(text) and confidence >= self.min_confidence:
                texts.append(text)
            else:
                texts.append("")
        return tuple(texts)
