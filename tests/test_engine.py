"""
Engine Dispatch Tests
=====================

Tests for the closed engine set, the factory and the fallback wrapper.
"""

import numpy as np
import pytest

from conftest import StaticEngine, render_text

from aoe4_overlay.config import OcrConfig
from aoe4_overlay.geometry import STAT_REGIONS
from aoe4_overlay.ocr import (
    Engine,
    EngineKind,
    EngineLoadError,
    FallbackEngine,
    NeuralBatchEngine,
    RecognitionError,
    TemplateMatchingEngine,
    create_engine,
    parse_engine_kind,
)


class TestFallbackEngine:
    """Tests for FallbackEngine."""

    def test_fills_only_empty_regions(self, test_regions):
        """Verify non-empty primary results are never replaced."""
        primary = StaticEngine(("1", "", ""), name="primary")
        secondary = StaticEngine(("9", "5", ""), name="secondary")
        engine = FallbackEngine(primary, secondary)

        image = np.zeros((486, 267, 3), dtype=np.uint8)
        assert engine.recognize(image, test_regions) == ("1", "5", "")
        assert engine.fallback_calls == 1
        assert engine.regions_recovered == 1
        assert engine.name == "primary+secondary"

    def test_not_called_when_complete(self, test_regions):
        """Verify the secondary is skipped when every region was read."""
        primary = StaticEngine(("1", "2", "3"))
        secondary = StaticEngine(("9", "9", "9"))
        engine = FallbackEngine(primary, secondary)

        image = np.zeros((486, 267, 3), dtype=np.uint8)
        assert engine.recognize(image, test_regions) == ("1", "2", "3")
        assert secondary.calls == []
        assert engine.fallback_calls == 0


class TestEngine:
    """Tests for the tagged Engine wrapper."""

    def test_kind_must_match_impl(self):
        """Verify a mismatched kind and implementation are rejected."""
        with pytest.raises(TypeError):
            Engine(EngineKind.TEMPLATE, NeuralBatchEngine(predictor=None))

    def test_dispatch(self, template_dir):
        """Verify recognize dispatches to the wrapped implementation."""
        engine = Engine.template(TemplateMatchingEngine.from_directory(template_dir))
        image = np.zeros((486, 267, 3), dtype=np.uint8)
        rect = STAT_REGIONS[0].to_rect(486)
        rendered = render_text("12/5")
        image[rect.y + 8:rect.y + 8 + rendered.shape[0], rect.x + 4:rect.x + 4 + rendered.shape[1]] = rendered[:, :, None]

        texts = engine.recognize(image, STAT_REGIONS)
        assert len(texts) == len(STAT_REGIONS)
        assert texts[0] == "12/5"
        assert all(text == "" for text in texts[1:])
        assert engine.name == "template"

    def test_misaligned_result(self, template_dir, test_regions):
        """Verify a result not aligned with the regions is a recognition failure."""

        class ShortTemplateEngine(TemplateMatchingEngine):
            def recognize(self, image, regions):
                return ("1",)

        base = TemplateMatchingEngine.from_directory(template_dir)
        engine = Engine.template(ShortTemplateEngine(base.matcher))
        image = np.zeros((486, 267, 3), dtype=np.uint8)

        with pytest.raises(RecognitionError):
            engine.recognize(image, test_regions)

    def test_fallback_of_engines(self, template_dir):
        """Verify engines compose through the fallback variant."""
        primary = Engine.template(TemplateMatchingEngine.from_directory(template_dir))
        secondary = Engine.template(TemplateMatchingEngine.from_directory(template_dir))
        engine = Engine.fallback(primary, secondary)
        assert engine.kind is EngineKind.FALLBACK
        assert engine.name == "template+template"


class TestEngineFactory:
    """Tests for create_engine."""

    def test_parse_engine_kind(self):
        """Verify names are parsed case-insensitively."""
        assert parse_engine_kind("Neural_Parallel") is EngineKind.NEURAL_PARALLEL
        with pytest.raises(ValueError):
            parse_engine_kind("tesseract")

    def test_template_engine(self, template_dir):
        """Verify the default engine is template matching."""
        config = OcrConfig.model_validate({"template": {"template_dir": str(template_dir)}})
        engine = create_engine(config)
        assert engine.kind is EngineKind.TEMPLATE

    def test_template_dir_missing(self, tmp_path):
        """Verify a missing template directory is fatal."""
        config = OcrConfig.model_validate({"template": {"template_dir": str(tmp_path / "none")}})
        with pytest.raises(EngineLoadError):
            create_engine(config)

    def test_neural_model_missing(self, tmp_path):
        """Verify missing neural resources are fatal."""
        config = OcrConfig.model_validate({
            "engine": "neural_batch",
            "neural": {
                "model_path": str(tmp_path / "model.onnx"),
                "dict_path": str(tmp_path / "dict.txt"),
            },
        })
        with pytest.raises(EngineLoadError):
            create_engine(config)

    def test_fallback_not_primary(self):
        """Verify 'fallback' cannot be selected as the primary engine."""
        with pytest.raises(ValueError):
            create_engine(OcrConfig(engine="fallback"))

    def test_unknown_engine(self):
        """Verify unknown engine names are rejected."""
        with pytest.raises(ValueError):
            create_engine(OcrConfig(engine="tesseract"))

    def test_fallback_same_as_primary(self, template_dir):
        """Verify a fallback identical to the primary is rejected."""
        config = OcrConfig.model_validate({
            "engine": "template",
            "template": {"template_dir": str(template_dir)},
            "fallback": {"engine": "template"},
        })
        with pytest.raises(ValueError):
            create_engine(config)

    def test_fallback_load_failure(self, template_dir, tmp_path):
        """Verify a fallback engine that cannot load is fatal."""
        config = OcrConfig.model_validate({
            "engine": "template",
            "template": {"template_dir": str(template_dir)},
            "neural": {"dict_path": str(tmp_path / "missing.txt")},
            "fallback": {"engine": "neural_sequential"},
        })
        with pytest.raises(EngineLoadError):
            create_engine(config)
