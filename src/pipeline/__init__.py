"""End-to-end asset code detection.

Core Components:
    - types: DetectOptions, ProgressEvent, PipelineStats, PipelineResult
    - full_pipeline: AssetCodePipeline orchestrator, module-level
      detect/detect_sync/warm_up helpers and the command-line entry point

Example:
    >>> from src.pipeline import detect_sync, DetectOptions
    >>> result = detect_sync(Path("tag.jpg"), DetectOptions(turbo=True))
    >>> print(result.to_dict()["codes"])
"""

from .full_pipeline import AssetCodePipeline, detect, detect_sync, get_pipeline, warm_up
from .types import (
    DetectOptions,
    PipelineResult,
    PipelineStats,
    ProgressCallback,
    ProgressEvent,
    ProgressPhase,
)

__all__ = [
    "AssetCodePipeline",
    "detect",
    "detect_sync",
    "get_pipeline",
    "warm_up",
    "DetectOptions",
    "PipelineResult",
    "PipelineStats",
    "ProgressCallback",
    "ProgressEvent",
    "ProgressPhase",
]
