"""Segmentation: line bands, column hypotheses and line grouping.

Core Components:
    - segmenter: Horizontal/vertical projection profiles, line band
      detection with split/merge, dense-column selection, margin trimming
    - grouper: Clusters ROIs from different column hypotheses into LineGroups
"""

from .grouper import LineGroup, group_lines
from .segmenter import (
    horizontal_projection,
    segment_hypotheses,
    segment_lines,
    select_columns,
    trim_line,
    vertical_projection,
)

__all__ = [
    "LineGroup",
    "group_lines",
    "horizontal_projection",
    "vertical_projection",
    "segment_lines",
    "select_columns",
    "trim_line",
    "segment_hypotheses",
]
