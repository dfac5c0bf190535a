#!/usr/bin/env python3
"""
Offline Screenshot Analysis
===========================

Runs icon detection and region recognition on a saved screenshot and
optionally writes an annotated copy.

Usage:
    python scripts/analyze_image.py screenshot.png
    python scripts/analyze_image.py screenshot.png --out annotated.png --engine neural_batch
"""

import argparse
import json
import logging
import os
import sys

import cv2

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from aoe4_overlay.config import load_config
from aoe4_overlay.geometry import STAT_REGIONS, capture_area
from aoe4_overlay.ocr import create_engine
from aoe4_overlay.perception import IconDetector, ImageAnalyzer


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


# Colors (BGR)
REGION_COLOR = (0, 0, 255)
TEXT_COLOR = (0, 255, 0)
ICON_COLOR = (255, 200, 0)


def annotate(image, texts, icon_match):
    """Draw region boxes, recognized text and the icon match."""
    output = image.copy()
    height = output.shape[0]

    for region, text in zip(STAT_REGIONS, texts):
        rect = region.to_rect(height)
        cv2.rectangle(
            output,
            (rect.x, rect.y),
            (rect.x + rect.width, rect.y + rect.height),
            REGION_COLOR,
            1,
        )
        cv2.putText(
            output,
            text or "-",
            (rect.x + 2, rect.y - 3),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.4,
            TEXT_COLOR,
            1,
        )

    if icon_match.rect is not None:
        r = icon_match.rect
        cv2.rectangle(output, (r.x, r.y), (r.x + r.width, r.y + r.height), ICON_COLOR, 1)
        cv2.putText(
            output,
            f"icon {icon_match.score:.2f}",
            (r.x, r.y + r.height + 12),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.4,
            ICON_COLOR,
            1,
        )

    return output


def main():
    parser = argparse.ArgumentParser(description="Analyze a saved screenshot")
    parser.add_argument("image", type=str, help="Screenshot path")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--engine", type=str, default=None, help="Override the OCR engine")
    parser.add_argument("--out", type=str, default=None, help="Write an annotated image here")
    args = parser.parse_args()

    settings = load_config(args.config)
    if args.engine:
        settings.ocr.engine = args.engine

    image = cv2.imread(args.image, cv2.IMREAD_COLOR)
    if image is None:
        logger.error(f"Failed to load image from {args.image}")
        sys.exit(1)
    logger.info(f"Loaded image: {image.shape[1]}x{image.shape[0]}")

    area = capture_area(
        image.shape[1],
        image.shape[0],
        settings.processor.area_width,
        settings.processor.area_height,
    )
    image = image[area.y:area.y + area.height, area.x:area.x + area.width]

    engine = create_engine(settings.ocr)
    detector = IconDetector.from_file(settings.icon.template_path, threshold=settings.icon.threshold)
    analyzer = ImageAnalyzer(engine, detector, brighten_delta=settings.processor.brighten_delta)

    try:
        result = analyzer.analyze(image)
        icon_match = detector.locate(image)
    finally:
        engine.close()

    print(json.dumps(result.to_dict([region.name for region in STAT_REGIONS]), indent=2))

    if args.out:
        cv2.imwrite(args.out, annotate(image, result.texts, icon_match))
        logger.info(f"Annotated image written to {args.out}")


if __name__ == "__main__":
    main()
