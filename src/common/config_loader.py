"""Configuration loader with Pydantic validation for the recognition pipeline.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values. Every heuristic constant
of the pipeline (percentiles, window sizes, column widths, tolerances) lives
here so it can be tuned per deployment without touching code.
"""

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, model_validator


class LoaderConfig(BaseModel):
    """Image loading configuration.

    Attributes:
        min_height: Minimum working height; smaller images are upscaled
    """

    min_height: int = Field(default=1000, gt=0)


class DeskewConfig(BaseModel):
    """Rotation search configuration.

    Attributes:
        enabled: Run the deskew search at all
        max_angle: Search bound in degrees (searches -max_angle..+max_angle)
        step: Angle increment in degrees
        analysis_height: Score on a copy downscaled to this height (0 = full size)
    """

    enabled: bool = True
    max_angle: float = Field(default=6.0, ge=0.0, le=45.0)
    step: float = Field(default=0.5, gt=0.0)
    analysis_height: int = Field(default=800, ge=0)


class EnhanceConfig(BaseModel):
    """Contrast and thresholding configuration.

    Attributes:
        contrast_lower_pct: Lower population percentile for contrast stretch
        contrast_upper_pct: Upper population percentile for contrast stretch
        roi_contrast_lower_pct: Tighter lower percentile used on line ROIs
        roi_contrast_upper_pct: Tighter upper percentile used on line ROIs
        adaptive_window_ratio: Adaptive threshold window as a fraction of ROI height
        adaptive_c: Constant subtracted from the local mean
    """

    contrast_lower_pct: float = Field(default=5.0, ge=0.0, le=100.0)
    contrast_upper_pct: float = Field(default=95.0, ge=0.0, le=100.0)
    roi_contrast_lower_pct: float = Field(default=3.0, ge=0.0, le=100.0)
    roi_contrast_upper_pct: float = Field(default=97.0, ge=0.0, le=100.0)
    adaptive_window_ratio: float = Field(default=0.5, gt=0.0)
    adaptive_c: int = 10

    @model_validator(mode="after")
    def _check_percentiles(self) -> "EnhanceConfig":
        if self.contrast_lower_pct >= self.contrast_upper_pct:
            raise ValueError("contrast_lower_pct must be < contrast_upper_pct")
        if self.roi_contrast_lower_pct >= self.roi_contrast_upper_pct:
            raise ValueError("roi_contrast_lower_pct must be < roi_contrast_upper_pct")
        return self


class SegmentationConfig(BaseModel):
    """Projection-profile segmentation configuration.

    Attributes:
        ink_level: Gray level below which a pixel counts as ink
        band_ink_ratio: Row ink threshold as a fraction of width
        band_min_ink: Absolute floor for the row ink threshold
        split_ink_ratio: Width-relative floor of the row threshold inside tall bands
        split_min_ink: Absolute floor for the split threshold
        split_valley_ratio: Rows of a tall band whose ink is at most this fraction
            of the band peak count as gaps between touching lines
        min_band_height: Minimum raw band height in rows
        split_height: Bands taller than this are re-examined for internal gaps
        band_padding: Rows of padding added above and below each band
        merge_gap: Bands separated by at most this many rows (before padding) are merged
        min_line_height: Final line boxes shorter than this are discarded
        num_columns: Number of dense-column hypotheses (full width is added on top)
        column_width_ratio: Column crop width as a fraction of image width
        min_column_width: Absolute floor for the column crop width
        column_separation_ratio: Minimum distance between chosen columns, relative to crop width
        trim_ink_ratio: Column ink density needed to count as content when trimming
        trim_padding: Pixels kept on each side after trimming
        group_tolerance_px: Max vertical distance for ROIs to share a line group
    """

    ink_level: int = Field(default=128, ge=1, le=255)
    band_ink_ratio: float = Field(default=0.01, ge=0.0, le=1.0)
    band_min_ink: int = Field(default=2, ge=0)
    split_ink_ratio: float = Field(default=0.005, ge=0.0, le=1.0)
    split_min_ink: int = Field(default=1, ge=0)
    split_valley_ratio: float = Field(default=0.15, ge=0.0, lt=1.0)
    min_band_height: int = Field(default=8, ge=1)
    split_height: int = Field(default=18, ge=1)
    band_padding: int = Field(default=2, ge=0)
    merge_gap: int = Field(default=1, ge=0)
    min_line_height: int = Field(default=7, ge=1)
    num_columns: int = Field(default=3, ge=0)
    column_width_ratio: float = Field(default=0.55, gt=0.0, le=1.0)
    min_column_width: int = Field(default=48, ge=1)
    column_separation_ratio: float = Field(default=0.6, ge=0.0)
    trim_ink_ratio: float = Field(default=0.02, ge=0.0, le=1.0)
    trim_padding: int = Field(default=6, ge=0)
    group_tolerance_px: int = Field(default=4, ge=1)


class FallbackConfig(BaseModel):
    """Low-confidence retry pass for a single ROI.

    Attributes:
        enabled: Run the extra pass when the ROI result is missing or weak
        min_confidence: Results below this confidence trigger the pass
        threshold_offset: Subtracted from the ROI Otsu threshold
        min_threshold: Floor for the lowered threshold
    """

    enabled: bool = True
    min_confidence: float = Field(default=60.0, ge=0.0, le=100.0)
    threshold_offset: int = Field(default=10, ge=0)
    min_threshold: int = Field(default=100, ge=0, le=255)


class RecognitionConfig(BaseModel):
    """Recognition engine and variant configuration.

    Attributes:
        engine: Engine type (currently only "tesseract")
        lang: Engine language code
        roi_height: Canonical height line ROIs are rescaled to
        dpi_hint: Resolution hint passed to the engine
        page_seg_modes: Page segmentation assumptions tried per variant
        extra_page_seg_modes: Additional assumptions tried per variant (full mode only)
        gamma_values: Extra gamma-corrected variants (full mode only)
        fixed_thresholds: Extra fixed-level binarizations of the ROI (full mode only)
        fallback: Low-confidence retry configuration
    """

    engine: str = "tesseract"
    lang: str = "eng"
    roi_height: int = Field(default=96, ge=16)
    dpi_hint: int = Field(default=300, gt=0)
    page_seg_modes: List[str] = Field(
        default_factory=lambda: ["single_line", "sparse_text"], min_length=1
    )
    extra_page_seg_modes: List[str] = Field(default_factory=list)
    gamma_values: List[float] = Field(default_factory=list)
    fixed_thresholds: List[int] = Field(default_factory=list)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "RecognitionConfig":
        for level in self.fixed_thresholds:
            if not 0 <= level <= 255:
                raise ValueError(f"Fixed threshold must be in [0, 255], got {level}")
        return self

    def active_page_seg_modes(self, turbo: bool = False) -> List[str]:
        """Mode names tried per variant (extra modes only in full mode)."""
        if turbo:
            return list(self.page_seg_modes)
        return list(self.page_seg_modes) + list(self.extra_page_seg_modes)


class SequenceConfig(BaseModel):
    """Asset sequence format configuration.

    Attributes:
        prefixes: Fixed numeric prefixes a sequence must start with
        min_tail_digits: Minimum digits following the prefix
        max_tail_digits: Maximum digits following the prefix
        min_length: Minimum plausible sequence length
        year_min: Smallest accepted two-digit year
        year_max: Largest accepted two-digit year
    """

    prefixes: List[str] = Field(default_factory=lambda: ["0423", "0424"], min_length=1)
    min_tail_digits: int = Field(default=9, ge=0)
    max_tail_digits: int = Field(default=14, ge=0)
    min_length: int = Field(default=13, ge=10)
    year_min: int = Field(default=20, ge=0, le=99)
    year_max: int = Field(default=99, ge=0, le=99)

    @model_validator(mode="after")
    def _check_ranges(self) -> "SequenceConfig":
        if self.min_tail_digits > self.max_tail_digits:
            raise ValueError("min_tail_digits must be <= max_tail_digits")
        if self.year_min > self.year_max:
            raise ValueError("year_min must be <= year_max")
        for prefix in self.prefixes:
            if not (prefix.isascii() and prefix.isdigit()):
                raise ValueError(f"Sequence prefix must be numeric, got {prefix!r}")
        return self


class RoomRule(BaseModel):
    """Maps a sequence prefix to the room that owns the asset.

    Attributes:
        prefix: Digit prefix, matched against the start of a sequence
        room: Room label reported in the result
    """

    prefix: str
    room: str


class PipelineConfig(BaseModel):
    """Orchestrator defaults.

    Attributes:
        batch_size: Default number of line groups processed concurrently
    """

    batch_size: int = Field(default=4, ge=1)


def _default_rooms() -> List[RoomRule]:
    return [
        RoomRule(prefix="0424201", room="CMT8"),
        RoomRule(prefix="0424202", room="NS"),
        RoomRule(prefix="0424203", room="ĐS"),
        RoomRule(prefix="0424204", room="LĐH"),
        RoomRule(prefix="042300", room="DVKH"),
        RoomRule(prefix="042410", room="QLN"),
    ]


class Config(BaseModel):
    """Root configuration container.

    Attributes:
        loader: Image loading configuration
        deskew: Rotation search configuration
        enhance: Contrast and thresholding configuration
        segmentation: Line and column segmentation configuration
        recognition: Engine and variant configuration
        sequence: Sequence format and plausibility configuration
        rooms: Ordered prefix -> room table (first match wins)
        pipeline: Orchestrator defaults
    """

    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    deskew: DeskewConfig = Field(default_factory=DeskewConfig)
    enhance: EnhanceConfig = Field(default_factory=EnhanceConfig)
    segmentation: SegmentationConfig = Field(default_factory=SegmentationConfig)
    recognition: RecognitionConfig = Field(default_factory=RecognitionConfig)
    sequence: SequenceConfig = Field(default_factory=SequenceConfig)
    rooms: List[RoomRule] = Field(default_factory=_default_rooms)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)


def load_config(config_path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Sections missing from the file keep their defaults.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("src/common/config.yaml"))
        >>> print(config.loader.min_height)
        1000
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    return Config(**config_dict)


def get_default_config() -> Config:
    """Get default configuration from bundled config.yaml file.

    Returns:
        Config object loaded from src/common/config.yaml

    Example:
        >>> config = get_default_config()
        >>> print(config.recognition.engine)
        tesseract
    """
    default_config_path = Path(__file__).parent / "config.yaml"
    if default_config_path.exists():
        return load_config(default_config_path)
    else:
        # Fallback to hardcoded defaults if config file is missing
        return Config()
