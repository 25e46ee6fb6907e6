"""Projection-profile line and column segmentation.

This module turns a binarized tag photo into line regions of interest:

1. **Line bands**: rows whose ink count exceeds a width-relative threshold
   form bands. Tall bands are re-scanned for rows far below their own peak
   to split visually touching lines; bands separated by a tiny gap are
   merged back before padding.

2. **Column hypotheses**: labels are often printed in a narrow column next to
   logos or barcodes. The densest ink columns are cropped as independent
   hypotheses (plus one full-width pass) and each is line-segmented on its own.

3. **Margin trimming**: each line is cropped horizontally to its inked extent
   so empty margins do not dilute recognition.

Example:
    >>> from src.segmentation import segment_lines
    >>> lines = segment_lines(binary, config.segmentation)
    >>> print([(l.y, l.h) for l in lines])
    [(112, 64), (240, 66)]
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from src.common.config_loader import SegmentationConfig
from src.common.types import LineBox, PixelBuffer
from src.imaging.enhance import box_blur, otsu_binarize

logger = logging.getLogger(__name__)


def horizontal_projection(binary: PixelBuffer, ink_level: int = 128) -> np.ndarray:
    """Count ink pixels (gray < ink_level) in every row."""
    return np.count_nonzero(binary.data < ink_level, axis=1).astype(np.int64)


def vertical_projection(binary: PixelBuffer, ink_level: int = 128) -> np.ndarray:
    """Count ink pixels (gray < ink_level) in every column."""
    return np.count_nonzero(binary.data < ink_level, axis=0).astype(np.int64)


def _runs(mask: np.ndarray) -> List[Tuple[int, int]]:
    """Return ``(start, end)`` (end exclusive) for each run of True values."""
    if mask.size == 0:
        return []
    padded = np.concatenate(([False], mask.astype(bool), [False]))
    edges = np.flatnonzero(np.diff(padded.astype(np.int8)))
    return [(int(s), int(e)) for s, e in zip(edges[0::2], edges[1::2])]


def segment_lines(
    binary: PixelBuffer,
    config: SegmentationConfig,
    limit: Optional[int] = None,
) -> List[LineBox]:
    """
    Detect horizontal text-line bands in a binary buffer.

    Args:
        binary: Binary buffer (0 = ink).
        config: Segmentation thresholds.
        limit: Stop once this many lines have been found (None = no cap).

    Returns:
        Full-width LineBoxes in top-to-bottom order.
    """
    width, height = binary.width, binary.height
    proj = horizontal_projection(binary, config.ink_level)

    band_threshold = max(config.band_min_ink, int(width * config.band_ink_ratio))
    split_threshold = max(config.split_min_ink, int(width * config.split_ink_ratio))
    pad = config.band_padding

    raw_bands = [
        (s, e)
        for s, e in _runs(proj > band_threshold)
        if e - s >= config.min_band_height
    ]

    refined: List[Tuple[int, int]] = []
    for start, end in raw_bands:
        if end - start <= config.split_height:
            refined.append((start, end))
            continue
        band = proj[start:end]
        # Valleys well below the band's own peak separate touching lines
        valley_threshold = max(split_threshold, int(band.max() * config.split_valley_ratio))
        pieces = [
            (start + s, start + e)
            for s, e in _runs(band > valley_threshold)
            if e - s >= config.min_band_height
        ]
        if len(pieces) > 1:
            logger.debug(f"Split band {start}-{end} into {len(pieces)} lines")
        refined.extend(pieces)

    merged: List[List[int]] = []
    for start, end in refined:
        if merged and start - merged[-1][1] <= config.merge_gap:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])

    lines: List[LineBox] = []
    for start, end in merged:
        start, end = max(0, start - pad), min(height, end + pad)
        if end - start < config.min_line_height:
            continue
        lines.append(LineBox(x=0, y=start, w=width, h=end - start))
        if limit is not None and len(lines) >= limit:
            logger.debug(f"Line limit {limit} reached, stopping segmentation")
            break

    logger.debug(
        f"Segmented {len(lines)} lines from {len(raw_bands)} raw bands "
        f"(threshold={band_threshold}, split_threshold={split_threshold})"
    )
    return lines


def select_columns(binary: PixelBuffer, config: SegmentationConfig) -> List[LineBox]:
    """
    Pick the densest ink columns as independent segmentation hypotheses.

    Columns are visited from highest to lowest ink density (stable order for
    equal densities). A column is chosen if it is at least the minimum
    separation away from every chosen column; a fixed-width region centered
    on it becomes one hypothesis. Empty columns are never chosen. The full
    frame is always appended last as a fallback hypothesis.

    Args:
        binary: Binary buffer (0 = ink).
        config: Column width, separation and count.

    Returns:
        Column regions, each tagged with its hypothesis index.
    """
    width, height = binary.width, binary.height
    proj = vertical_projection(binary, config.ink_level)

    roi_w = min(width, max(config.min_column_width, int(width * config.column_width_ratio)))
    min_separation = int(roi_w * config.column_separation_ratio)

    chosen: List[int] = []
    columns: List[LineBox] = []
    if config.num_columns > 0:
        for x in np.argsort(-proj, kind="stable"):
            x = int(x)
            if proj[x] == 0:
                break
            if any(abs(cx - x) < min_separation for cx in chosen):
                continue
            start_x = int(np.clip(x - roi_w // 2, 0, width - roi_w))
            columns.append(
                LineBox(x=start_x, y=0, w=roi_w, h=height, hypothesis=len(columns))
            )
            chosen.append(x)
            if len(columns) >= config.num_columns:
                break

    columns.append(LineBox(x=0, y=0, w=width, h=height, hypothesis=len(columns)))

    logger.debug(
        f"Selected {len(columns) - 1} dense columns (width={roi_w}) "
        f"at x={chosen} plus full frame"
    )
    return columns


def trim_line(gray_roi: PixelBuffer, box: LineBox, config: SegmentationConfig) -> LineBox:
    """
    Crop a line box horizontally to its inked extent.

    Args:
        gray_roi: Grayscale pixels of ``box``.
        box: The line box in source coordinates.
        config: Trim density threshold and padding.

    Returns:
        Narrowed LineBox, or ``box`` unchanged if no column carries ink.
    """
    binary = otsu_binarize(gray_roi)
    density = vertical_projection(binary, config.ink_level) / float(binary.height)
    inked = np.flatnonzero(density > config.trim_ink_ratio)
    if inked.size == 0:
        return box

    x0 = max(0, int(inked[0]) - config.trim_padding)
    x1 = min(binary.width, int(inked[-1]) + 1 + config.trim_padding)
    return LineBox(
        x=box.x + x0, y=box.y, w=x1 - x0, h=box.h, hypothesis=box.hypothesis
    )


def segment_hypotheses(
    gray: PixelBuffer,
    columns: List[LineBox],
    config: SegmentationConfig,
    limit: Optional[int] = None,
) -> List[LineBox]:
    """
    Line-segment every column hypothesis and trim the resulting lines.

    Each column is re-binarized on its own (blur + Otsu) because the best
    global threshold of the full frame is not necessarily right for a crop.

    Args:
        gray: Grayscale, deskewed source buffer.
        columns: Column regions from :func:`select_columns`.
        config: Segmentation configuration.
        limit: Maximum lines per hypothesis (None = no cap).

    Returns:
        Line ROIs in source coordinates, tagged with their hypothesis.
    """
    rois: List[LineBox] = []
    for column in columns:
        column_binary = otsu_binarize(box_blur(gray.crop(column)))
        for line in segment_lines(column_binary, config, limit=limit):
            placed = line.offset(dx=column.x, dy=column.y).with_hypothesis(
                column.hypothesis
            )
            rois.append(trim_line(gray.crop(placed), placed, config))

    logger.debug(f"Segmented {len(rois)} line ROIs across {len(columns)} hypotheses")
    return rois
