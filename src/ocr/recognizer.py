"""Ensemble recognition of line ROIs and LineGroups.

For each ROI the recognizer runs the oracle on every variant under every
configured page segmentation mode, keeps the plausible prefixed sequences
and votes them down to one winner. The winners of all ROIs in a LineGroup
are then voted again to give the line's value.

Oracle calls are the only blocking work; they run in worker threads via
``asyncio.to_thread`` and acquire a shared semaphore, so the number of
calls in flight never exceeds the semaphore's size.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Tuple

from src.common.config_loader import Config
from src.common.types import LineBox, PixelBuffer
from src.segmentation.grouper import LineGroup

from .engine import RecognitionOracle
from .types import Candidate, EngineCallConfig, PageSegMode, SequenceResult, VariantKind
from .validator import extract_prefixed_sequence, is_valid_sequence
from .variants import Variant, build_variants, low_threshold_variant
from .voting import consensus

logger = logging.getLogger(__name__)


@dataclass
class RoiRecognition:
    """Recognition outcome for one line ROI.

    Attributes:
        box: ROI location in the deskewed image
        result: Within-ROI consensus, None if nothing plausible was read
        candidates: Every oracle answer that came back (diagnostic)
        calls: Number of oracle calls issued, including the retry pass
        used_fallback: Whether the low-threshold retry produced the result
    """

    box: Optional[LineBox]
    result: Optional[SequenceResult]
    candidates: List[Candidate] = field(default_factory=list)
    calls: int = 0
    used_fallback: bool = False


@dataclass
class GroupRecognition:
    """Recognition outcome for one LineGroup.

    Attributes:
        index: LineGroup index
        result: Cross-hypothesis consensus, None if the line is dropped
        rois: Per-member outcomes
    """

    index: int
    result: Optional[SequenceResult]
    rois: List[RoiRecognition] = field(default_factory=list)


class LineRecognizer:
    """Runs the recognition ensemble against a RecognitionOracle.

    Args:
        oracle: Recognition engine (production or stub).
        config: Pipeline configuration.

    Example:
        >>> recognizer = LineRecognizer(TesseractEngine(), get_default_config())
        >>> semaphore = asyncio.Semaphore(4)
        >>> outcome = await recognizer.recognize_roi(roi_pixels, semaphore)
        >>> print(outcome.result.digits if outcome.result else None)
    """

    def __init__(self, oracle: RecognitionOracle, config: Config):
        self.oracle = oracle
        self.config = config
        self.base_call_configs = self._build_call_configs(turbo=True)
        self.full_call_configs = self._build_call_configs(turbo=False)

    def _build_call_configs(self, turbo: bool) -> List[EngineCallConfig]:
        recognition = self.config.recognition
        return [
            EngineCallConfig(
                page_seg_mode=PageSegMode.from_name(name),
                dpi_hint=recognition.dpi_hint,
                lang=recognition.lang,
            )
            for name in recognition.active_page_seg_modes(turbo)
        ]

    def call_configs(self, turbo: bool = False) -> List[EngineCallConfig]:
        """Engine call configurations tried on every variant."""
        return self.base_call_configs if turbo else self.full_call_configs

    def _safe_recognize(
        self, kind: VariantKind, image: PixelBuffer, call_config: EngineCallConfig
    ) -> Optional[Candidate]:
        try:
            candidate = self.oracle.recognize(image, call_config)
        except Exception as e:
            logger.warning(
                f"Recognition failed for variant={kind.value}, "
                f"psm={call_config.page_seg_mode.value}: {e}"
            )
            return None
        return replace(candidate, variant=kind, page_seg_mode=call_config.page_seg_mode)

    async def _call(
        self,
        semaphore: asyncio.Semaphore,
        kind: VariantKind,
        image: PixelBuffer,
        call_config: EngineCallConfig,
    ) -> Optional[Candidate]:
        async with semaphore:
            return await asyncio.to_thread(self._safe_recognize, kind, image, call_config)

    async def _run_variants(
        self,
        variants: List[Variant],
        semaphore: asyncio.Semaphore,
        call_configs: List[EngineCallConfig],
    ) -> Tuple[List[Candidate], int]:
        jobs = [
            self._call(semaphore, kind, image, call_config)
            for kind, image in variants
            for call_config in call_configs
        ]
        answers = await asyncio.gather(*jobs)
        return [c for c in answers if c is not None], len(jobs)

    def candidate_pool(self, candidates: List[Candidate]) -> List[Tuple[str, float]]:
        """Project candidates to their plausible prefixed sequences."""
        pool = []
        for candidate in candidates:
            sequence = extract_prefixed_sequence(candidate.digits, self.config.sequence)
            if sequence and is_valid_sequence(sequence, self.config.sequence):
                pool.append((sequence, candidate.confidence))
        return pool

    async def recognize_roi(
        self,
        roi: PixelBuffer,
        semaphore: asyncio.Semaphore,
        turbo: bool = False,
        box: Optional[LineBox] = None,
    ) -> RoiRecognition:
        """
        Recognize one line ROI with the variant ensemble.

        Args:
            roi: ROI pixels.
            semaphore: Bounds concurrent oracle calls.
            turbo: Use the reduced variant set.
            box: ROI location, carried into the outcome.

        Returns:
            RoiRecognition with the within-ROI consensus (or None).
        """
        recognition = self.config.recognition
        variants = build_variants(roi, recognition, self.config.enhance, turbo=turbo)
        candidates, calls = await self._run_variants(
            variants, semaphore, self.call_configs(turbo)
        )
        result = consensus(self.candidate_pool(candidates), self.config.sequence)
        outcome = RoiRecognition(box=box, result=result, candidates=candidates, calls=calls)

        fallback = recognition.fallback
        if fallback.enabled and (result is None or result.confidence < fallback.min_confidence):
            retry = [low_threshold_variant(roi, recognition, fallback)]
            # Retry runs under the base modes only
            retry_candidates, retry_calls = await self._run_variants(
                retry, semaphore, self.base_call_configs
            )
            outcome.candidates.extend(retry_candidates)
            outcome.calls += retry_calls

            retry_result = consensus(self.candidate_pool(retry_candidates), self.config.sequence)
            if retry_result is not None:
                logger.debug(
                    f"Low-threshold retry replaced "
                    f"{result.digits if result else None} with {retry_result.digits}"
                )
                outcome.result = retry_result
                outcome.used_fallback = True

        return outcome

    async def recognize_group(
        self,
        gray: PixelBuffer,
        group: LineGroup,
        semaphore: asyncio.Semaphore,
        turbo: bool = False,
    ) -> GroupRecognition:
        """
        Recognize every member of a LineGroup and vote across hypotheses.

        Args:
            gray: Deskewed grayscale image the ROIs refer to.
            group: ROIs believed to show the same physical line.
            semaphore: Bounds concurrent oracle calls.
            turbo: Use the reduced variant set.

        Returns:
            GroupRecognition whose result is None when the line is dropped.
        """
        rois = await asyncio.gather(
            *[
                self.recognize_roi(gray.crop(box), semaphore, turbo=turbo, box=box)
                for box in group.members
            ]
        )
        winners = [(r.result.digits, r.result.confidence) for r in rois if r.result]
        result = consensus(winners, self.config.sequence)

        logger.debug(
            f"Line {group.index}: {len(winners)}/{len(rois)} ROIs produced a sequence, "
            f"result={result.digits if result else None}"
        )
        return GroupRecognition(index=group.index, result=result, rois=list(rois))
