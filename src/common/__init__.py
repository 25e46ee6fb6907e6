"""
Common types and configuration shared across all modules.

This module provides the standardized pixel buffer and line box types and the
Pydantic configuration tree used by imaging, segmentation, OCR and pipeline
modules.
"""

from src.common.config_loader import (
    Config,
    DeskewConfig,
    EnhanceConfig,
    FallbackConfig,
    LoaderConfig,
    PipelineConfig,
    RecognitionConfig,
    RoomRule,
    SegmentationConfig,
    SequenceConfig,
    get_default_config,
    load_config,
)
from src.common.types import LineBox, PixelBuffer

__all__ = [
    "PixelBuffer",
    "LineBox",
    "Config",
    "LoaderConfig",
    "DeskewConfig",
    "EnhanceConfig",
    "SegmentationConfig",
    "RecognitionConfig",
    "FallbackConfig",
    "SequenceConfig",
    "RoomRule",
    "PipelineConfig",
    "load_config",
    "get_default_config",
]
