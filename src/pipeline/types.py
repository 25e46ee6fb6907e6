"""Type definitions for the detection pipeline.

This module defines the caller-facing options, progress events and result
structures of :class:`src.pipeline.full_pipeline.AssetCodePipeline`.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from src.ocr.types import AssetCode


class ProgressPhase(Enum):
    """Named pipeline phases, in emission order."""

    DESKEW_CROP = "deskew_crop"
    NORMALIZE = "normalize"
    SEGMENT = "segment"
    RECOGNIZE = "recognize"
    VOTE = "vote"
    DONE = "done"


@dataclass
class ProgressEvent:
    """Progress notification passed to ``DetectOptions.on_progress``.

    Attributes:
        phase: Pipeline phase
        current: Completed units within the phase
        total: Total units within the phase
        detail: Optional human-readable note
    """

    phase: ProgressPhase
    current: int
    total: int
    detail: Optional[str] = None


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class DetectOptions:
    """Per-call options for ``detect``.

    Attributes:
        on_progress: Called synchronously for every ProgressEvent
        batch_size: LineGroups per batch and maximum concurrent oracle calls
            (None uses the pipeline configuration; values below 1 are treated as 1)
        turbo: Use the reduced variant set
        max_lines: Cap on lines per hypothesis and on LineGroups
            (None or <= 0 means unbounded)
    """

    on_progress: Optional[ProgressCallback] = None
    batch_size: Optional[int] = None
    turbo: bool = False
    max_lines: Optional[int] = None

    def __post_init__(self):
        if self.batch_size is not None:
            self.batch_size = max(1, int(self.batch_size))
        if self.max_lines is not None and self.max_lines <= 0:
            self.max_lines = None


@dataclass
class PipelineStats:
    """Timing, confidence and diagnostic statistics of one ``detect`` call.

    Attributes:
        total_lines: Number of LineGroups recognized
        kept_lines: LineGroups that produced a plausible sequence
        avg_confidence: Mean confidence of kept lines (None if none kept)
        duration_ms: Wall-clock duration of the call
        dropped_indices: Indices of LineGroups without a plausible sequence
        variants_tried_per_line: Oracle calls per ROI before any retry pass
        deskew_angle: Rotation applied to the image, in degrees
    """

    total_lines: int = 0
    kept_lines: int = 0
    avg_confidence: Optional[float] = None
    duration_ms: int = 0
    dropped_indices: List[int] = field(default_factory=list)
    variants_tried_per_line: int = 0
    deskew_angle: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "totalLines": self.total_lines,
            "keptLines": self.kept_lines,
            "durationMs": self.duration_ms,
            "droppedIndices": list(self.dropped_indices),
            "variantsTriedPerLine": self.variants_tried_per_line,
            "deskewAngle": self.deskew_angle,
        }
        if self.avg_confidence is not None:
            data["avgConfidence"] = self.avg_confidence
        return data


@dataclass
class PipelineResult:
    """Outcome of one ``detect`` call.

    Attributes:
        codes: Deduplicated plausible sequences in first-seen order
        stats: Diagnostic statistics
        asset_codes: Decoded ``CODE.YEAR`` values of ``codes`` (undecodable skipped)
        detected_room: Room owning the majority of ``codes`` (None if unknown)
    """

    codes: List[str] = field(default_factory=list)
    stats: PipelineStats = field(default_factory=PipelineStats)
    asset_codes: List[AssetCode] = field(default_factory=list)
    detected_room: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the result to a JSON-serializable dictionary.

        Returns:
            Dictionary with camelCase keys
        """
        data: Dict[str, Any] = {
            "codes": list(self.codes),
            "assetCodes": [str(code) for code in self.asset_codes],
            "stats": self.stats.to_dict(),
        }
        if self.detected_room is not None:
            data["detectedRoom"] = self.detected_room
        return data
