"""
Full End-to-End Pipeline

Orchestrates all stages for asset code extraction from a tag photo:

1. Decode + minimum-resolution upscale (the only fatal stage)
2. Deskew by projection sharpness
3. Contrast normalization and global binarization
4. Column hypotheses, line segmentation and line grouping
5. Ensemble recognition of every LineGroup (bounded concurrency)
6. Validation, deduplication, decoding and room detection

Example:
    >>> from src.pipeline import AssetCodePipeline, DetectOptions
    >>> pipeline = AssetCodePipeline()
    >>> result = await pipeline.detect(image_bytes, DetectOptions(turbo=True))
    >>> print(result.codes, [str(c) for c in result.asset_codes])
    ['0424102470200259'] ['259.24']
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np

from src.common.config_loader import Config, get_default_config, load_config
from src.common.types import PixelBuffer
from src.imaging.deskew import deskew
from src.imaging.enhance import box_blur, contrast_stretch, otsu_binarize, to_grayscale
from src.imaging.loader import ImageDecodeError, ImageInput, load_image
from src.ocr.engine import RecognitionOracle, create_engine
from src.ocr.recognizer import GroupRecognition, LineRecognizer
from src.ocr.types import EngineCallConfig, PageSegMode
from src.ocr.validator import decode_sequence, detect_room
from src.ocr.variants import variants_per_line
from src.segmentation.grouper import group_lines
from src.segmentation.segmenter import segment_hypotheses, select_columns
from src.utils.logging_config import setup_logging

from .types import (
    DetectOptions,
    PipelineResult,
    PipelineStats,
    ProgressEvent,
    ProgressPhase,
)

logger = logging.getLogger(__name__)


class AssetCodePipeline:
    """End-to-end pipeline for asset code extraction.

    The recognition engine is created on first use (or injected), so
    constructing a pipeline is cheap and does not require Tesseract.

    Args:
        config: Pipeline configuration. If None, uses the bundled defaults.
        oracle: Recognition engine. If None, one is created from
            ``config.recognition`` when first needed.

    Example:
        >>> pipeline = AssetCodePipeline(oracle=TesseractEngine())
        >>> await pipeline.warm_up()
        >>> result = await pipeline.detect(Path("tag.jpg"))
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        oracle: Optional[RecognitionOracle] = None,
    ):
        self.config = config if config is not None else get_default_config()
        self._oracle = oracle
        self._warmed_up = False

    @property
    def oracle(self) -> RecognitionOracle:
        """Recognition engine, created on first access."""
        if self._oracle is None:
            self._oracle = create_engine(self.config.recognition)
        return self._oracle

    @property
    def is_warmed_up(self) -> bool:
        return self._warmed_up

    async def warm_up(self) -> None:
        """
        Pay the engine initialization cost ahead of the first ``detect``.

        Runs one trivial recognition on a small blank image. Repeated calls
        after a successful warm-up are no-ops. Failures are logged and never
        raised.
        """
        if self._warmed_up:
            return

        blank = PixelBuffer(data=np.full((16, 32), 255, dtype=np.uint8))
        call_config = EngineCallConfig(
            page_seg_mode=PageSegMode.SINGLE_LINE,
            dpi_hint=self.config.recognition.dpi_hint,
            lang=self.config.recognition.lang,
        )
        try:
            oracle = self.oracle
            await asyncio.to_thread(oracle.recognize, blank, call_config)
        except Exception as e:
            logger.warning(f"Recognition engine warm-up failed: {e}")
            return

        self._warmed_up = True
        logger.info("Recognition engine warmed up")

    async def detect(
        self, image: ImageInput, options: Optional[DetectOptions] = None
    ) -> PipelineResult:
        """
        Extract asset codes from a tag photo.

        Args:
            image: Encoded bytes, a file path, a decoded array or a PixelBuffer.
            options: Per-call options (defaults if None).

        Returns:
            PipelineResult; ``codes`` is empty when nothing plausible was read.

        Raises:
            ImageDecodeError: If the image cannot be decoded.
            RuntimeError: If the recognition engine cannot be created.
        """
        options = options or DetectOptions()
        start_time = time.perf_counter()
        config = self.config

        def emit(phase: ProgressPhase, current: int, total: int, detail: Optional[str] = None):
            if options.on_progress is not None:
                options.on_progress(ProgressEvent(phase, current, total, detail))

        buffer = load_image(image, min_height=config.loader.min_height)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 1: DESKEW
        # ═══════════════════════════════════════════════════════════════
        emit(ProgressPhase.DESKEW_CROP, 0, 1, "Estimating rotation")
        upright, angle = deskew(buffer, config.deskew)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 2: NORMALIZE
        # ═══════════════════════════════════════════════════════════════
        emit(ProgressPhase.NORMALIZE, 0, 1, "Normalizing contrast")
        gray = to_grayscale(upright)
        enhanced = contrast_stretch(
            gray, config.enhance.contrast_lower_pct, config.enhance.contrast_upper_pct
        )
        binary = otsu_binarize(box_blur(enhanced))

        # ═══════════════════════════════════════════════════════════════
        # STAGE 3: SEGMENT
        # ═══════════════════════════════════════════════════════════════
        emit(ProgressPhase.SEGMENT, 0, 1, "Segmenting lines")
        columns = select_columns(binary, config.segmentation)
        rois = segment_hypotheses(enhanced, columns, config.segmentation, limit=options.max_lines)
        groups = group_lines(
            rois, config.segmentation.group_tolerance_px, limit=options.max_lines
        )
        total = len(groups)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 4: RECOGNIZE
        # ═══════════════════════════════════════════════════════════════
        emit(ProgressPhase.RECOGNIZE, 0, total, "Recognizing lines")
        outcomes: Dict[int, GroupRecognition] = {}
        if groups:
            recognizer = LineRecognizer(self.oracle, config)
            batch_size = options.batch_size or config.pipeline.batch_size
            semaphore = asyncio.Semaphore(batch_size)
            completed = 0
            for i in range(0, total, batch_size):
                batch = groups[i : i + batch_size]
                jobs = [
                    recognizer.recognize_group(gray, group, semaphore, turbo=options.turbo)
                    for group in batch
                ]
                # Completion order within a batch is arbitrary
                for next_done in asyncio.as_completed(jobs):
                    outcome = await next_done
                    outcomes[outcome.index] = outcome
                    completed += 1
                    emit(
                        ProgressPhase.RECOGNIZE,
                        completed,
                        total,
                        f"Recognized line {completed}/{total}",
                    )

        # ═══════════════════════════════════════════════════════════════
        # STAGE 5: VOTE
        # ═══════════════════════════════════════════════════════════════
        codes: List[str] = []
        confidences: List[float] = []
        dropped: List[int] = []
        for group in groups:
            result = outcomes[group.index].result
            if result is None:
                dropped.append(group.index)
                logger.debug(f"Dropped line {group.index}: no plausible sequence")
                continue
            confidences.append(result.confidence)
            if result.digits not in codes:
                codes.append(result.digits)
        emit(ProgressPhase.VOTE, len(confidences), total, "Combining line results")

        asset_codes = [c for c in (decode_sequence(s, config.sequence) for s in codes) if c]
        detected_room = detect_room(codes, config.rooms)

        stats = PipelineStats(
            total_lines=total,
            kept_lines=len(confidences),
            avg_confidence=float(np.mean(confidences)) if confidences else None,
            duration_ms=int(round((time.perf_counter() - start_time) * 1000)),
            dropped_indices=dropped,
            variants_tried_per_line=variants_per_line(config.recognition, options.turbo),
            deskew_angle=angle,
        )

        logger.info(
            f"Detected {len(codes)} codes from {total} lines "
            f"(kept={stats.kept_lines}, angle={angle:+.1f}, {stats.duration_ms} ms)"
        )
        emit(ProgressPhase.DONE, len(codes), total, "Done")

        return PipelineResult(
            codes=codes,
            stats=stats,
            asset_codes=asset_codes,
            detected_room=detected_room,
        )


_default_pipeline: Optional[AssetCodePipeline] = None


def get_pipeline() -> AssetCodePipeline:
    """Return the shared default pipeline, creating it on first call."""
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = AssetCodePipeline()
    return _default_pipeline


async def detect(image: ImageInput, options: Optional[DetectOptions] = None) -> PipelineResult:
    """Run :meth:`AssetCodePipeline.detect` on the shared default pipeline."""
    return await get_pipeline().detect(image, options)


def detect_sync(image: ImageInput, options: Optional[DetectOptions] = None) -> PipelineResult:
    """Blocking wrapper around :func:`detect` for non-async callers."""
    return asyncio.run(detect(image, options))


async def warm_up() -> None:
    """Warm up the shared default pipeline's recognition engine."""
    await get_pipeline().warm_up()


def main():
    parser = argparse.ArgumentParser(description="Extract asset codes from a tag photo")
    parser.add_argument("--input", type=str, required=True, help="Input image")
    parser.add_argument("--turbo", action="store_true", help="Use fewer variants per line")
    parser.add_argument("--batch-size", type=int, default=None, help="Lines recognized concurrently")
    parser.add_argument("--max-lines", type=int, default=None, help="Maximum lines to recognize")
    parser.add_argument("--config", type=str, default=None, help="Configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    setup_logging(verbose=args.verbose)

    config = load_config(Path(args.config)) if args.config else get_default_config()
    pipeline = AssetCodePipeline(config=config)

    def log_progress(event: ProgressEvent):
        logger.info(f"[{event.phase.value}] {event.current}/{event.total} {event.detail or ''}")

    options = DetectOptions(
        on_progress=log_progress,
        batch_size=args.batch_size,
        turbo=args.turbo,
        max_lines=args.max_lines,
    )

    try:
        result = asyncio.run(pipeline.detect(Path(args.input), options))
    except (ImageDecodeError, RuntimeError) as e:
        logger.error(f"Detection failed: {e}")
        return 1

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
