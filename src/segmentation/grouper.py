"""Cluster line ROIs from different column hypotheses into physical lines.

Each column hypothesis segments the same tag independently, so one printed
line usually shows up once per hypothesis at nearly the same vertical
position. Grouping those ROIs gives the voting stage several independent
views of each line.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from src.common.types import LineBox

logger = logging.getLogger(__name__)


@dataclass
class LineGroup:
    """ROIs believed to depict the same physical text line.

    Attributes:
        index: Position of the group in top-to-bottom order.
        members: ROIs, at most one per column hypothesis.
    """

    index: int
    members: List[LineBox] = field(default_factory=list)

    @property
    def reference_y(self) -> int:
        """Vertical position every member is compared against."""
        return self.members[0].y

    @property
    def hypotheses(self) -> List[int]:
        """Column hypothesis index of each member."""
        return [m.hypothesis for m in self.members]

    def accepts(self, roi: LineBox, tolerance_px: int) -> bool:
        """Check if ``roi`` belongs to this group."""
        return (
            abs(roi.y - self.reference_y) < tolerance_px
            and roi.hypothesis not in self.hypotheses
        )


def group_lines(
    rois: List[LineBox], tolerance_px: int = 4, limit: Optional[int] = None
) -> List[LineGroup]:
    """
    Group ROIs by vertical position.

    ROIs are sorted by ``(y, hypothesis, x)``; each ROI joins the currently
    open group if it lies within ``tolerance_px`` of the group's reference y
    and its hypothesis is not represented yet, otherwise it opens a new group.

    Args:
        rois: Line ROIs from all column hypotheses.
        tolerance_px: Maximum vertical distance (exclusive) to the reference y.
        limit: Keep at most this many groups (None = all).

    Returns:
        Line groups in top-to-bottom order with consecutive indices.
    """
    groups: List[LineGroup] = []
    for roi in sorted(rois, key=lambda r: (r.y, r.hypothesis, r.x)):
        if groups and groups[-1].accepts(roi, tolerance_px):
            groups[-1].members.append(roi)
        else:
            groups.append(LineGroup(index=len(groups), members=[roi]))

    if limit is not None and len(groups) > limit:
        logger.debug(f"Capping {len(groups)} line groups to {limit}")
        groups = groups[:limit]

    logger.debug(f"Grouped {len(rois)} ROIs into {len(groups)} line groups")
    return groups
