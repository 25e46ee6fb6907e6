"""
Pixel-level enhancement and binarization primitives.

Every function takes a PixelBuffer and returns a *new* PixelBuffer; inputs are
never modified. Binary buffers use 0 for ink and 255 for background.

Functions:
1. to_grayscale / box_blur / apply_gamma - photometric normalization
2. contrast_stretch - percentile-based linear rescale
3. otsu_threshold / binarize - global thresholding
4. adaptive_threshold - local-mean thresholding via an integral image
5. morphological_close - reconnect broken strokes
6. scale_to_height / rotate - geometric helpers
"""

import logging

import cv2
import numpy as np

from src.common.types import PixelBuffer

logger = logging.getLogger(__name__)

INK = 0
BACKGROUND = 255

_KERNEL_3X3 = np.ones((3, 3), dtype=np.uint8)


def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """
    Convert to single-channel luma (0.299R + 0.587G + 0.114B).

    Args:
        buffer: Grayscale, BGR or BGRA buffer.

    Returns:
        Grayscale buffer (always a new array).
    """
    if buffer.is_grayscale:
        return PixelBuffer(data=buffer.to_numpy().reshape(buffer.height, buffer.width))
    data = buffer.data
    if data.shape[2] == 4:
        return PixelBuffer(data=cv2.cvtColor(data, cv2.COLOR_BGRA2GRAY))
    return PixelBuffer(data=cv2.cvtColor(data, cv2.COLOR_BGR2GRAY))


def box_blur(buffer: PixelBuffer) -> PixelBuffer:
    """3x3 mean filter with replicated borders to suppress sensor noise."""
    gray = to_grayscale(buffer).data
    return PixelBuffer(data=cv2.blur(gray, (3, 3), borderType=cv2.BORDER_REPLICATE))


def apply_gamma(buffer: PixelBuffer, gamma: float) -> PixelBuffer:
    """
    Apply gamma correction through a 256-entry lookup table.

    Gamma > 1 brightens mid-tones, gamma < 1 darkens them.

    Args:
        buffer: Input buffer (converted to grayscale).
        gamma: Gamma value, clamped to >= 0.01.

    Returns:
        Gamma-corrected grayscale buffer.
    """
    inv_gamma = 1.0 / max(0.01, gamma)
    table = (np.power(np.arange(256) / 255.0, inv_gamma) * 255.0).astype(np.uint8)
    gray = to_grayscale(buffer).data
    return PixelBuffer(data=cv2.LUT(gray, table))


def histogram(buffer: PixelBuffer) -> np.ndarray:
    """256-bin intensity histogram of the grayscale image."""
    gray = to_grayscale(buffer).data
    return np.bincount(gray.ravel(), minlength=256).astype(np.float64)


def contrast_stretch(
    buffer: PixelBuffer, lower_pct: float = 5.0, upper_pct: float = 95.0
) -> PixelBuffer:
    """
    Linearly rescale the [lower_pct, upper_pct] population range to 0..255.

    The gray levels are taken from the cumulative histogram: the first level
    at which the cumulative population reaches each percentile.

    Args:
        buffer: Input buffer (converted to grayscale).
        lower_pct: Lower population percentile (0-100).
        upper_pct: Upper population percentile (0-100).

    Returns:
        Stretched grayscale buffer, or an unchanged grayscale copy if the
        percentile range is degenerate.
    """
    gray = to_grayscale(buffer).data
    hist = np.bincount(gray.ravel(), minlength=256)
    cumulative = np.cumsum(hist)
    total = cumulative[-1]

    lo = int(np.searchsorted(cumulative, total * lower_pct / 100.0))
    hi = int(np.searchsorted(cumulative, total * upper_pct / 100.0))
    lo = min(lo, 255)
    hi = min(hi, 255)

    if hi <= lo:
        logger.debug(f"Contrast stretch skipped: degenerate range lo={lo}, hi={hi}")
        return PixelBuffer(data=gray.copy())

    scale = 255.0 / (hi - lo)
    stretched = np.clip((gray.astype(np.float32) - lo) * scale, 0, 255)
    return PixelBuffer(data=stretched.astype(np.uint8))


def otsu_threshold(buffer: PixelBuffer) -> int:
    """
    Compute the Otsu threshold over the 256-bin histogram.

    Levels ``<= t`` form the ink class. The first level maximizing the
    between-class variance wins. Single-level images have no valid split and
    return 127.

    Args:
        buffer: Input buffer (converted to grayscale).

    Returns:
        Threshold level in 0..255.
    """
    hist = histogram(buffer)
    total = hist.sum()
    levels = np.arange(256, dtype=np.float64)

    weight_bg = np.cumsum(hist)
    weight_fg = total - weight_bg
    sum_bg = np.cumsum(levels * hist)
    sum_total = sum_bg[-1]

    valid = (weight_bg > 0) & (weight_fg > 0)
    if not np.any(valid):
        return 127

    with np.errstate(divide="ignore", invalid="ignore"):
        mean_bg = sum_bg / weight_bg
        mean_fg = (sum_total - sum_bg) / weight_fg
        between = weight_bg * weight_fg * (mean_bg - mean_fg) ** 2

    between = np.where(valid, between, -1.0)
    return int(np.argmax(between))


def binarize(buffer: PixelBuffer, threshold: int) -> PixelBuffer:
    """
    Binarize at a fixed level: ``gray > threshold`` becomes background.

    Args:
        buffer: Input buffer (converted to grayscale).
        threshold: Gray level; values at or below it become ink.

    Returns:
        Binary buffer with values {0, 255}.
    """
    gray = to_grayscale(buffer).data
    out = np.where(gray > threshold, BACKGROUND, INK).astype(np.uint8)
    return PixelBuffer(data=out)


def otsu_binarize(buffer: PixelBuffer) -> PixelBuffer:
    """Binarize at the buffer's own Otsu threshold."""
    return binarize(buffer, otsu_threshold(buffer))


def adaptive_threshold(buffer: PixelBuffer, window: int, c: int = 10) -> PixelBuffer:
    """
    Binarize each pixel against the mean of its local window.

    The local mean comes from a summed-area table (``cv2.integral``), so the
    cost is independent of the window size. Windows are clamped at the image
    border (the mean is taken over the pixels that exist).

    Args:
        buffer: Input buffer (converted to grayscale).
        window: Window side length in pixels (forced odd, at least 3).
        c: Constant subtracted from the local mean.

    Returns:
        Binary buffer; pixels brighter than ``mean - c`` become background.
    """
    gray = to_grayscale(buffer).data
    h, w = gray.shape
    window = max(3, int(window))
    if window % 2 == 0:
        window += 1
    r = window // 2

    integral = cv2.integral(gray, sdepth=cv2.CV_64F)

    ys = np.arange(h)
    xs = np.arange(w)
    y0 = np.clip(ys - r, 0, h)
    y1 = np.clip(ys + r + 1, 0, h)
    x0 = np.clip(xs - r, 0, w)
    x1 = np.clip(xs + r + 1, 0, w)

    sums = (
        integral[np.ix_(y1, x1)]
        - integral[np.ix_(y0, x1)]
        - integral[np.ix_(y1, x0)]
        + integral[np.ix_(y0, x0)]
    )
    counts = np.outer(y1 - y0, x1 - x0)
    local_mean = sums / counts

    out = np.where(gray > local_mean - c, BACKGROUND, INK).astype(np.uint8)
    return PixelBuffer(data=out)


def morphological_close(buffer: PixelBuffer) -> PixelBuffer:
    """
    Close ink strokes: 3x3 ink dilation followed by 3x3 ink erosion.

    A pixel becomes ink when any 3x3 neighbor is ink, then stays ink only if
    all 3x3 neighbors of the dilated image are ink. Gaps of one or two pixels
    in a stroke are bridged without thickening the stroke overall.

    Args:
        buffer: Binary buffer (0 = ink).

    Returns:
        Closed binary buffer.
    """
    gray = to_grayscale(buffer).data
    ink = cv2.bitwise_not(gray)
    closed = cv2.morphologyEx(ink, cv2.MORPH_CLOSE, _KERNEL_3X3)
    return PixelBuffer(data=cv2.bitwise_not(closed))


def scale_to_height(buffer: PixelBuffer, target_height: int) -> PixelBuffer:
    """
    Uniformly rescale so the buffer is ``target_height`` rows tall.

    Upscaling uses bicubic interpolation, downscaling uses area averaging.

    Args:
        buffer: Input buffer (any channel count).
        target_height: Desired height in pixels.

    Returns:
        Rescaled buffer (aspect ratio preserved, width at least 1).
    """
    target_height = max(1, int(target_height))
    if buffer.height == target_height:
        return PixelBuffer(data=buffer.data.copy())

    ratio = target_height / buffer.height
    target_width = max(1, int(buffer.width * ratio))
    interpolation = cv2.INTER_CUBIC if ratio > 1 else cv2.INTER_AREA
    resized = cv2.resize(
        buffer.data, (target_width, target_height), interpolation=interpolation
    )
    return PixelBuffer(data=resized)


def rotate(buffer: PixelBuffer, angle_deg: float, fill: int = BACKGROUND) -> PixelBuffer:
    """
    Rotate about the center onto an expanded canvas.

    The canvas grows to the rotated bounding box so no content is cropped;
    uncovered area is filled with a light background.

    Args:
        buffer: Input buffer (any channel count).
        angle_deg: Counter-clockwise rotation in degrees.
        fill: Gray level for the padding.

    Returns:
        Rotated buffer.
    """
    h, w = buffer.height, buffer.width
    center = (w / 2.0, h / 2.0)

    matrix = cv2.getRotationMatrix2D(center, angle_deg, 1.0)

    cos = abs(matrix[0, 0])
    sin = abs(matrix[0, 1])
    new_w = int(np.ceil(h * sin + w * cos))
    new_h = int(np.ceil(h * cos + w * sin))

    matrix[0, 2] += (new_w / 2.0) - center[0]
    matrix[1, 2] += (new_h / 2.0) - center[1]

    border_value = (fill,) * max(1, buffer.channels)
    rotated = cv2.warpAffine(
        buffer.data,
        matrix,
        (new_w, new_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=border_value,
    )
    return PixelBuffer(data=rotated)
