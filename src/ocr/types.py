"""Type definitions for the recognition module.

This module defines the data structures exchanged between the recognition
engine, the variant builder and the voting stage.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

DIGITS = "0123456789"


class PageSegMode(Enum):
    """Page segmentation assumption passed to the engine (Tesseract PSM)."""

    SINGLE_BLOCK = 6  # Assume a single uniform block of text
    SINGLE_LINE = 7  # Treat the image as a single text line
    SPARSE_TEXT = 11  # Find as much text as possible in no particular order
    RAW_LINE = 13  # Single text line, bypassing Tesseract-specific layout hacks

    @classmethod
    def from_name(cls, name: str) -> "PageSegMode":
        """Look up a mode by its configuration name (e.g. "single_line").

        Raises:
            ValueError: If the name is unknown.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError as e:
            raise ValueError(f"Unknown page segmentation mode: {name!r}") from e


class VariantKind(Enum):
    """Binarization variant a candidate was recognized from."""

    GRAY_ENHANCED = "gray_enhanced"  # Contrast-stretched grayscale
    OTSU_CLOSED = "otsu_closed"  # Blur + Otsu + morphological closing
    ADAPTIVE_CLOSED = "adaptive_closed"  # Local-mean threshold + closing
    GAMMA = "gamma"  # Gamma-corrected grayscale
    FIXED_THRESHOLD = "fixed_threshold"  # Grayscale binarized at a fixed level
    LOW_THRESHOLD = "low_threshold"  # Low-confidence retry binarization


@dataclass(frozen=True)
class EngineCallConfig:
    """Typed engine settings for one recognition call.

    Attributes:
        page_seg_mode: Layout assumption for the engine
        alphabet: Characters the engine may emit
        dpi_hint: Resolution hint in dots per inch
        lang: Engine language code
    """

    page_seg_mode: PageSegMode
    alphabet: str = DIGITS
    dpi_hint: int = 300
    lang: str = "eng"


@dataclass
class Candidate:
    """One engine invocation's output on one image variant.

    Attributes:
        raw_text: Text exactly as returned by the engine
        digits: Digit-only projection of raw_text
        confidence: Engine confidence (0-100), a relative ranking signal
        variant: Variant the text was read from (diagnostic)
        page_seg_mode: Segmentation mode used (diagnostic)
    """

    raw_text: str
    digits: str
    confidence: float
    variant: Optional[VariantKind] = None
    page_seg_mode: Optional[PageSegMode] = None


@dataclass
class SequenceResult:
    """Validated digit sequence with aggregated confidence.

    Attributes:
        digits: Sequence passing the plausibility predicate
        confidence: Aggregated confidence (0-100)
        support: Number of candidates that contributed to the decision
    """

    digits: str
    confidence: float
    support: int = 1


@dataclass(frozen=True)
class AssetCode:
    """Decoded ``CODE.YEAR`` asset identifier.

    Attributes:
        code: Asset number (1-9999)
        year: Two-digit acquisition year
    """

    code: int
    year: int

    def __str__(self) -> str:
        return f"{self.code}.{self.year:02d}"
