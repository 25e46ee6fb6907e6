"""Binarization variants of a line ROI.

Each variant is an independent, freshly allocated buffer, so recognition
calls on different variants never share pixels.
"""

import logging
from typing import List, Tuple

from src.common.config_loader import EnhanceConfig, FallbackConfig, RecognitionConfig
from src.common.types import PixelBuffer
from src.imaging.enhance import (
    adaptive_threshold,
    apply_gamma,
    binarize,
    box_blur,
    contrast_stretch,
    morphological_close,
    otsu_binarize,
    otsu_threshold,
    scale_to_height,
    to_grayscale,
)

from .types import VariantKind

logger = logging.getLogger(__name__)

Variant = Tuple[VariantKind, PixelBuffer]


def normalize_roi(roi: PixelBuffer, recognition: RecognitionConfig) -> PixelBuffer:
    """Grayscale the ROI and rescale it to the canonical working height."""
    return scale_to_height(to_grayscale(roi), recognition.roi_height)


def build_variants(
    roi: PixelBuffer,
    recognition: RecognitionConfig,
    enhance: EnhanceConfig,
    turbo: bool = False,
) -> List[Variant]:
    """
    Build the recognition variants of one line ROI.

    Variants (in order):
    1. GRAY_ENHANCED: contrast stretch with the ROI percentiles
    2. OTSU_CLOSED: box blur, Otsu threshold, morphological closing
    3. ADAPTIVE_CLOSED: local-mean threshold, closing (skipped in turbo)
    4. GAMMA: one per configured gamma value (skipped in turbo)
    5. FIXED_THRESHOLD: grayscale binarized at each configured level
       (skipped in turbo)

    Args:
        roi: Line ROI pixels (any channel count).
        recognition: Canonical height, gamma values and fixed thresholds.
        enhance: Contrast percentiles and adaptive threshold parameters.
        turbo: Build the reduced variant set.

    Returns:
        ``(kind, buffer)`` pairs.
    """
    gray = normalize_roi(roi, recognition)
    stretched = contrast_stretch(
        gray, enhance.roi_contrast_lower_pct, enhance.roi_contrast_upper_pct
    )

    variants: List[Variant] = [
        (VariantKind.GRAY_ENHANCED, stretched),
        (VariantKind.OTSU_CLOSED, morphological_close(otsu_binarize(box_blur(stretched)))),
    ]

    if not turbo:
        window = int(gray.height * enhance.adaptive_window_ratio)
        adaptive = adaptive_threshold(stretched, window, enhance.adaptive_c)
        variants.append((VariantKind.ADAPTIVE_CLOSED, morphological_close(adaptive)))
        for gamma in recognition.gamma_values:
            variants.append((VariantKind.GAMMA, apply_gamma(gray, gamma)))
        for level in recognition.fixed_thresholds:
            variants.append((VariantKind.FIXED_THRESHOLD, binarize(gray, level)))

    logger.debug(
        f"Built {len(variants)} variants at {gray.width}x{gray.height} (turbo={turbo})"
    )
    return variants


def low_threshold_variant(
    roi: PixelBuffer, recognition: RecognitionConfig, fallback: FallbackConfig
) -> Variant:
    """
    Build the retry variant used when an ROI's result is missing or weak.

    The blurred ROI is binarized slightly below its Otsu level (but not
    below ``fallback.min_threshold``), which keeps faint strokes that the
    regular variants lose.
    """
    blurred = box_blur(normalize_roi(roi, recognition))
    level = max(fallback.min_threshold, otsu_threshold(blurred) - fallback.threshold_offset)
    return VariantKind.LOW_THRESHOLD, binarize(blurred, level)


def variants_per_line(recognition: RecognitionConfig, turbo: bool = False) -> int:
    """Number of oracle calls one ROI costs before any retry pass."""
    if turbo:
        n_variants = 2
    else:
        n_variants = 3 + len(recognition.gamma_values) + len(recognition.fixed_thresholds)
    return n_variants * len(recognition.active_page_seg_modes(turbo))
