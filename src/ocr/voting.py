"""Confidence-weighted per-character voting.

The same algorithm runs twice per line: once over the variant candidates of
a single ROI, then over the per-ROI winners of a LineGroup.

Algorithm:
1. Pick the modal string length (ties: highest total confidence, then
   first seen) and keep only candidates of that length.
2. For every character position choose the character with the largest
   summed confidence (ties: first seen). If every weight is zero the
   vote is an unweighted plurality.
3. Accept the voted string only if it is a plausible sequence; otherwise
   fall back to the first candidate that is plausible on its own.

Example:
    >>> vote_per_char([("123456", 80), ("123450", 40), ("123456", 90)])
    '123456'
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from src.common.config_loader import SequenceConfig

from .types import SequenceResult
from .validator import is_valid_sequence

logger = logging.getLogger(__name__)

# (digits, confidence) pairs
Pool = Sequence[Tuple[str, float]]


def _modal_length(pool: Pool) -> int:
    counts: Dict[int, int] = {}
    weights: Dict[int, float] = {}
    for text, conf in pool:
        n = len(text)
        counts[n] = counts.get(n, 0) + 1
        weights[n] = weights.get(n, 0.0) + max(0.0, conf)
    # dicts keep first-seen order, and max() keeps the first of equal keys
    return max(counts, key=lambda n: (counts[n], weights[n]))


def vote_per_char(pool: Pool) -> Optional[str]:
    """
    Combine same-length candidates position by position.

    Args:
        pool: ``(text, confidence)`` pairs; empty texts are ignored.

    Returns:
        Voted string, or None if the pool holds no text.
    """
    pool = [(text, conf) for text, conf in pool if text]
    if not pool:
        return None

    length = _modal_length(pool)
    same = [(text, max(0.0, conf)) for text, conf in pool if len(text) == length]
    weighted = any(conf > 0 for _, conf in same)

    chars: List[str] = []
    for pos in range(length):
        scores: Dict[str, float] = {}
        for text, conf in same:
            ch = text[pos]
            scores[ch] = scores.get(ch, 0.0) + (conf if weighted else 1.0)
        chars.append(max(scores, key=lambda c: scores[c]))

    return "".join(chars)


def consensus(
    pool: Pool, config: Optional[SequenceConfig] = None
) -> Optional[SequenceResult]:
    """
    Vote over a candidate pool and validate the outcome.

    Args:
        pool: ``(digits, confidence)`` pairs.
        config: Plausibility configuration (defaults apply when None).

    Returns:
        SequenceResult for the voted value if plausible, else for the first
        individually plausible candidate, else None.
    """
    config = config or SequenceConfig()
    pool = [(text, conf) for text, conf in pool if text]
    voted = vote_per_char(pool)
    if voted is None:
        return None

    if is_valid_sequence(voted, config):
        same = [conf for text, conf in pool if len(text) == len(voted)]
        exact = [conf for text, conf in pool if text == voted]
        confidence = float(np.mean(exact if exact else same))
        return SequenceResult(digits=voted, confidence=confidence, support=len(same))

    for text, conf in pool:
        if is_valid_sequence(text, config):
            logger.debug(f"Voted '{voted}' is implausible, falling back to '{text}'")
            return SequenceResult(digits=text, confidence=float(conf), support=1)

    logger.debug(f"No plausible sequence among {len(pool)} candidates")
    return None
