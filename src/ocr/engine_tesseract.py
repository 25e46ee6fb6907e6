"""Tesseract OCR engine wrapper for asset tag digit recognition.

This module provides a digit-only interface to Tesseract OCR used as the
pipeline's recognition oracle.

Example:
    >>> from src.ocr import TesseractEngine, EngineCallConfig, PageSegMode
    >>> engine = TesseractEngine()
    >>> candidate = engine.recognize(roi, EngineCallConfig(PageSegMode.SINGLE_LINE))
    >>> print(candidate.digits, candidate.confidence)
    '0424102470200259' 91.0
"""

import logging

import numpy as np
import pytesseract

from src.common.types import PixelBuffer

from .types import Candidate, EngineCallConfig
from .validator import normalize_digits

logger = logging.getLogger(__name__)


def build_tesseract_config(config: EngineCallConfig) -> str:
    """Render a typed call configuration as Tesseract command-line options.

    Example:
        >>> build_tesseract_config(EngineCallConfig(PageSegMode.SPARSE_TEXT))
        '--psm 11 --dpi 300 -c tessedit_char_whitelist=0123456789'
    """
    return (
        f"--psm {config.page_seg_mode.value} "
        f"--dpi {config.dpi_hint} "
        f"-c tessedit_char_whitelist={config.alphabet}"
    )


class TesseractEngine:
    """Wrapper for Tesseract OCR restricted to digit recognition.

    This class verifies the Tesseract installation once and then serves
    stateless ``recognize`` calls, so a single instance can be shared by
    concurrent worker threads.

    Args:
        lang: Tesseract language code.

    Example:
        >>> engine = TesseractEngine()
        >>> candidate = engine.recognize(roi, call_config)
        >>> if candidate.digits:
        ...     print(f"Digits: {candidate.digits}, Confidence: {candidate.confidence:.1f}")
    """

    def __init__(self, lang: str = "eng"):
        """Initialize Tesseract engine wrapper.

        Args:
            lang: Tesseract language code.

        Raises:
            RuntimeError: If the Tesseract binary is not available.
        """
        self.lang = lang

        # Verify Tesseract is available
        try:
            version = pytesseract.get_tesseract_version()
            logger.info(f"Tesseract engine initialized: version {version}")
        except Exception as e:
            logger.error(f"Tesseract not found or not properly configured: {e}")
            raise RuntimeError(
                "Tesseract not available. Please install Tesseract OCR.\n"
                "Windows: choco install tesseract\n"
                "Linux: sudo apt-get install tesseract-ocr\n"
                "MacOS: brew install tesseract"
            ) from e

    def recognize(self, image: PixelBuffer, config: EngineCallConfig) -> Candidate:
        """Recognize digits in one image variant.

        This method:
        1. Runs Tesseract with the page segmentation mode, DPI hint and
           alphabet whitelist of ``config``
        2. Joins the detected words in left-to-right reading order
        3. Averages the word confidences (0-100)

        Args:
            image: Grayscale or binary line image.
            config: Typed engine settings for this call.

        Returns:
            Candidate with raw text, digit projection and confidence. Empty
            text with zero confidence when nothing was detected.

        Raises:
            pytesseract.TesseractError: If the Tesseract process fails.
        """
        tesseract_config = build_tesseract_config(config)
        lang = config.lang or self.lang

        logger.debug(f"Running Tesseract (lang={lang}), config: {tesseract_config}")

        data = pytesseract.image_to_data(
            image.data,
            lang=lang,
            config=tesseract_config,
            output_type=pytesseract.Output.DICT,
        )

        # Parse detections
        words = []
        for i in range(len(data["text"])):
            text = str(data["text"][i]).strip()
            conf = float(data["conf"][i])

            # conf < 0 marks layout rows without recognized text
            if text and conf >= 0:
                words.append((int(data["left"][i]), text, conf))

        if not words:
            logger.debug(f"Tesseract returned no text (psm={config.page_seg_mode.value})")
            return Candidate(
                raw_text="",
                digits="",
                confidence=0.0,
                page_seg_mode=config.page_seg_mode,
            )

        # Sort detections by X coordinate (left-to-right reading order)
        words.sort(key=lambda w: w[0])

        raw_text = " ".join(w[1] for w in words)
        confidence = float(np.mean([w[2] for w in words]))

        logger.debug(
            f"Tesseract extraction: text='{raw_text}', "
            f"confidence={confidence:.1f}, words={len(words)}"
        )

        return Candidate(
            raw_text=raw_text,
            digits=normalize_digits(raw_text),
            confidence=confidence,
            page_seg_mode=config.page_seg_mode,
        )
