"""
Analysis Models
===============

Per-frame recognition output.

Region strings are bounded: at most SHORT_STRING_CAPACITY characters,
so an AnalysisResult is small and cheap to copy between threads.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple


SHORT_STRING_CAPACITY = 8


def short_string(text: str, capacity: int = SHORT_STRING_CAPACITY) -> str:
    """Truncate `text` to the fixed region-string capacity."""
    return text[:capacity]


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """
    Recognition result for one processed frame.

    Attributes:
        texts: One recognized string per region, "" when unread
        has_icon: Whether the villager icon was found
        icon_detect_ms: Time spent in icon detection
        color_convert_ms: Time spent normalizing/brightening the image
        recognition_ms: Time spent in the recognition engine
    """

    texts: Tuple[str, ...]
    has_icon: bool
    icon_detect_ms: float = 0.0
    color_convert_ms: float = 0.0
    recognition_ms: float = 0.0

    def __post_init__(self) -> None:
        """Validate invariants."""
        for text in self.texts:
            if len(text) > SHORT_STRING_CAPACITY:
                raise ValueError(
                    f"Region text {text!r} exceeds {SHORT_STRING_CAPACITY} characters"
                )
        if min(self.icon_detect_ms, self.color_convert_ms, self.recognition_ms) < 0:
            raise ValueError("Stage durations must be non-negative")

    @property
    def total_ms(self) -> float:
        return self.icon_detect_ms + self.color_convert_ms + self.recognition_ms

    def text_for(self, index: int) -> Optional[str]:
        """Return the region text, or None when the region was unread."""
        text = self.texts[index]
        return text or None

    def to_dict(self, region_names: Optional[Sequence[str]] = None) -> Dict:
        """Export as dictionary for logging/serialization."""
        if region_names is not None:
            texts = {name: text for name, text in zip(region_names, self.texts)}
        else:
            texts = list(self.texts)
        return {
            "texts": texts,
            "has_icon": self.has_icon,
            "timings_ms": {
                "icon_detect": round(self.icon_detect_ms, 3),
                "color_convert": round(self.color_convert_ms, 3),
                "recognition": round(self.recognition_ms, 3),
            },
        }

    def __repr__(self) -> str:
        return (
            f"AnalysisResult(texts={list(self.texts)}, has_icon={self.has_icon}, "
            f"ocr={self.recognition_ms:.1f}ms)"
        )
