"""Digit recognition, sequence validation and ensemble voting.

This module recognizes asset-tag digit lines with an external recognition
engine, extracts the prefixed asset sequence and combines many noisy reads
into one validated value per line.

Core Components:
    - types: Data structures (Candidate, EngineCallConfig, SequenceResult, AssetCode)
    - engine: RecognitionOracle protocol and engine factory
    - engine_tesseract: Tesseract-backed oracle (digits only)
    - validator: Prefixed sequence extraction, plausibility check, decoding
    - variants: Binarization variants of a line ROI
    - voting: Confidence-weighted per-character voting
    - recognizer: Async ensemble over variants, ROIs and LineGroups

Example:
    >>> from src.ocr import LineRecognizer, create_engine
    >>> recognizer = LineRecognizer(create_engine(config.recognition), config)
    >>> outcome = await recognizer.recognize_group(gray, group, asyncio.Semaphore(4))
    >>> if outcome.result:
    ...     print(f"Sequence: {outcome.result.digits}")
"""

from .engine import RecognitionOracle, create_engine
from .engine_tesseract import TesseractEngine, build_tesseract_config
from .recognizer import GroupRecognition, LineRecognizer, RoiRecognition
from .types import (
    DIGITS,
    AssetCode,
    Candidate,
    EngineCallConfig,
    PageSegMode,
    SequenceResult,
    VariantKind,
)
from .validator import (
    decode_sequence,
    detect_room,
    extract_prefixed_sequence,
    is_valid_sequence,
    match_room,
    normalize_digits,
)
from .variants import build_variants, low_threshold_variant, variants_per_line
from .voting import consensus, vote_per_char

__all__ = [
    # Types
    "DIGITS",
    "AssetCode",
    "Candidate",
    "EngineCallConfig",
    "PageSegMode",
    "SequenceResult",
    "VariantKind",
    # Engines
    "RecognitionOracle",
    "create_engine",
    "TesseractEngine",
    "build_tesseract_config",
    # Validation
    "normalize_digits",
    "extract_prefixed_sequence",
    "is_valid_sequence",
    "decode_sequence",
    "match_room",
    "detect_room",
    # Variants and voting
    "build_variants",
    "low_threshold_variant",
    "variants_per_line",
    "vote_per_char",
    "consensus",
    # Recognition
    "LineRecognizer",
    "RoiRecognition",
    "GroupRecognition",
]
