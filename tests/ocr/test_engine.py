"""Unit tests for the recognition oracle interface and engine factory."""

from unittest.mock import patch

import pytest

from src.common.config_loader import RecognitionConfig
from src.ocr.engine import RecognitionOracle, create_engine


class TestRecognitionOracle:
    """Test the structural oracle protocol."""

    def test_stub_satisfies_protocol(self, stub_oracle):
        """Test any object with recognize() is accepted."""
        assert isinstance(stub_oracle, RecognitionOracle)

    def test_object_without_recognize(self):
        assert not isinstance(object(), RecognitionOracle)


class TestCreateEngine:
    """Test create_engine factory."""

    @patch("src.ocr.engine_tesseract.TesseractEngine")
    def test_tesseract(self, mock_engine_cls):
        """Test the tesseract backend is created with the configured language."""
        engine = create_engine(RecognitionConfig(engine="Tesseract", lang="vie"))

        mock_engine_cls.assert_called_once_with(lang="vie")
        assert engine is mock_engine_cls.return_value

    def test_unknown_engine(self):
        """Test unknown engine types raise ValueError."""
        with pytest.raises(ValueError, match="Unknown recognition engine"):
            create_engine(RecognitionConfig(engine="rapidocr"))

    @patch("src.ocr.engine_tesseract.TesseractEngine", side_effect=RuntimeError("not installed"))
    def test_missing_backend(self, _mock_engine_cls):
        """Test a missing backend surfaces as RuntimeError."""
        with pytest.raises(RuntimeError, match="not installed"):
            create_engine(RecognitionConfig())
