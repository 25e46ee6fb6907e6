"""Asset sequence extraction, plausibility check and decoding.

Asset tags carry a long digit sequence: a fixed numeric prefix identifying
the organization, department digits, a two-digit year and a four-digit asset
number. Reading left to right, the year sits at positions -10..-8 and the asset
number occupies the last four digits:

    0424 10 24 7020 0259
    ^^^^       ^^        prefix, year (s[-10:-8])
                    ^^^^ code (s[-4:])

The plausibility predicate gates both per-ROI candidates and final output:
a sequence is plausible iff it has at least 13 digits and its year decodes to
a value in [20, 99].
"""

import re
from collections import Counter
from typing import Iterable, List, Optional

from src.common.config_loader import RoomRule, SequenceConfig

from .types import AssetCode

_NON_DIGIT = re.compile(r"[^0-9]")
_YEAR_DIGITS = re.compile(r"[0-9]{2}")
_CODE_DIGITS = re.compile(r"[0-9]{4}")
_DEFAULT_SEQUENCE = SequenceConfig()


def normalize_digits(text: str) -> str:
    """Drop every non-digit character.

    Example:
        >>> normalize_digits(" 0424-1024 70200259\\n")
        '0424102470200259'
    """
    return _NON_DIGIT.sub("", text or "")


def sequence_pattern(config: SequenceConfig = _DEFAULT_SEQUENCE) -> re.Pattern:
    """Build the prefixed-sequence regex (prefix followed by 9-14 digits)."""
    prefixes = "|".join(re.escape(p) for p in config.prefixes)
    return re.compile(
        f"(?:{prefixes})[0-9]{{{config.min_tail_digits},{config.max_tail_digits}}}"
    )


def extract_prefixed_sequence(
    digits: str, config: SequenceConfig = _DEFAULT_SEQUENCE
) -> Optional[str]:
    """Find the longest prefixed sequence in a digit string.

    Args:
        digits: Digit-only text (see :func:`normalize_digits`).
        config: Prefixes and tail length bounds.

    Returns:
        Longest match (first one on equal length), or None if nothing matches.

    Example:
        >>> extract_prefixed_sequence("99042410247020025911")
        '042410247020025911'
    """
    matches = sequence_pattern(config).findall(digits or "")
    if not matches:
        return None
    best = matches[0]
    for match in matches:
        if len(match) > len(best):
            best = match
    return best


def is_valid_sequence(sequence: Optional[str], config: SequenceConfig = _DEFAULT_SEQUENCE) -> bool:
    """Check the plausibility predicate.

    Args:
        sequence: Candidate digit string.
        config: Minimum length and accepted year range.

    Returns:
        True iff ``len >= min_length`` and ``year_min <= int(s[-10:-8]) <= year_max``.

    Example:
        >>> is_valid_sequence("0424102470200259")
        True
        >>> is_valid_sequence("0424101970200259")  # year 19
        False
    """
    if not sequence or len(sequence) < config.min_length:
        return False
    year_digits = sequence[-10:-8]
    if not _YEAR_DIGITS.fullmatch(year_digits):
        return False
    return config.year_min <= int(year_digits) <= config.year_max


def decode_sequence(
    sequence: str, config: SequenceConfig = _DEFAULT_SEQUENCE
) -> Optional[AssetCode]:
    """Decode a plausible sequence into its ``(code, year)`` pair.

    Args:
        sequence: Digit sequence.
        config: Plausibility configuration.

    Returns:
        AssetCode, or None if the sequence is implausible or its code is 0.

    Example:
        >>> str(decode_sequence("0424102470200259"))
        '259.24'
    """
    if not is_valid_sequence(sequence, config) or not _CODE_DIGITS.fullmatch(sequence[-4:]):
        return None
    code = int(sequence[-4:])
    if code <= 0:
        return None
    return AssetCode(code=code, year=int(sequence[-10:-8]))


def match_room(sequence: str, rooms: Iterable[RoomRule]) -> Optional[str]:
    """Return the room of the first rule whose prefix starts the sequence."""
    for rule in rooms:
        if sequence.startswith(rule.prefix):
            return rule.room
    return None


def detect_room(sequences: Iterable[str], rooms: List[RoomRule]) -> Optional[str]:
    """Vote for the room owning a batch of sequences.

    Each sequence votes for the room of its first matching prefix rule; the
    room with the most votes wins (earliest voted room on ties).

    Args:
        sequences: Recognized sequences.
        rooms: Ordered prefix -> room rules.

    Returns:
        Winning room label, or None if no sequence matches a rule.
    """
    votes = Counter()
    for sequence in sequences:
        room = match_room(sequence, rooms)
        if room is not None:
            votes[room] += 1
    if not votes:
        return None
    return max(votes, key=lambda room: votes[room])
