"""
Projection-profile deskew.

Text lines photographed at a slight angle smear their ink across many rows.
Rotating until the horizontal ink projection has the sharpest peaks restores
them. The search is exhaustive over a bounded angle range, which is more
robust on short digit strips than Hough-line estimation.
"""

import logging
from typing import List, Tuple

import numpy as np

from src.common.config_loader import DeskewConfig
from src.common.types import PixelBuffer

from .enhance import box_blur, otsu_binarize, rotate, scale_to_height, to_grayscale

logger = logging.getLogger(__name__)


def horizontal_ink_profile(binary: PixelBuffer, ink_level: int = 128) -> np.ndarray:
    """Count ink pixels (gray < ink_level) per row."""
    return np.count_nonzero(binary.data < ink_level, axis=1).astype(np.int64)


def projection_sharpness(binary: PixelBuffer) -> float:
    """
    Score a binary image by the sum of squared consecutive row differences.

    Well-aligned lines produce tall, narrow projection peaks and therefore
    large differences between neighboring rows.

    Args:
        binary: Binary buffer (0 = ink).

    Returns:
        Sharpness score (higher is better aligned).
    """
    profile = horizontal_ink_profile(binary)
    if profile.size < 2:
        return 0.0
    return float(np.sum(np.diff(profile) ** 2))


def candidate_angles(max_angle: float, step: float) -> List[float]:
    """
    List search angles ordered by increasing absolute value.

    Order: 0, -step, +step, -2*step, +2*step, ... up to ``max_angle``. The
    search keeps the first best score, so ties resolve to the smallest
    absolute angle (negative before positive).

    Args:
        max_angle: Search bound in degrees.
        step: Increment in degrees.

    Returns:
        Ordered list of angles.
    """
    n_steps = int(np.floor(max_angle / step + 1e-9))
    angles = [0.0]
    for i in range(1, n_steps + 1):
        magnitude = round(i * step, 6)
        angles.extend([-magnitude, magnitude])
    return angles


def score_angle(gray: PixelBuffer, angle: float) -> float:
    """Rotate, smooth, Otsu-binarize and score one candidate angle."""
    rotated = rotate(gray, angle) if angle != 0.0 else gray
    binary = otsu_binarize(box_blur(rotated))
    return projection_sharpness(binary)


def estimate_skew(buffer: PixelBuffer, config: DeskewConfig) -> float:
    """
    Find the rotation that maximizes projection sharpness.

    Args:
        buffer: Input buffer.
        config: Search range, step and analysis resolution.

    Returns:
        Best rotation angle in degrees (counter-clockwise).
    """
    gray = to_grayscale(buffer)
    if config.analysis_height and gray.height > config.analysis_height:
        gray = scale_to_height(gray, config.analysis_height)

    best_angle = 0.0
    best_score = -1.0
    for angle in candidate_angles(config.max_angle, config.step):
        score = score_angle(gray, angle)
        if score > best_score:
            best_score = score
            best_angle = angle

    logger.debug(f"Deskew search selected {best_angle:+.1f} deg (score={best_score:.0f})")
    return best_angle


def deskew(buffer: PixelBuffer, config: DeskewConfig) -> Tuple[PixelBuffer, float]:
    """
    Re-render the buffer at the sharpest projection angle.

    Args:
        buffer: Input buffer.
        config: Deskew configuration.

    Returns:
        Tuple of (deskewed buffer, applied angle). When the best angle is 0
        or the search is disabled, the input buffer is returned as-is.
    """
    if not config.enabled or config.max_angle == 0:
        return buffer, 0.0

    angle = estimate_skew(buffer, config)
    if angle == 0.0:
        return buffer, 0.0

    return rotate(buffer, angle), angle
