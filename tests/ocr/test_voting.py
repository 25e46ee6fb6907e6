"""Unit tests for confidence-weighted per-character voting."""

import pytest

from src.common.config_loader import SequenceConfig
from src.ocr.voting import consensus, vote_per_char


class TestVotePerChar:
    """Test the per-character voting algorithm."""

    def test_weighted_example(self):
        """Test weighted voting recovers the majority string."""
        pool = [("123456", 80), ("123450", 40), ("123456", 90)]
        assert vote_per_char(pool) == "123456"

    def test_confidence_outweighs_count(self):
        """Test one confident read beats two weak ones at a position."""
        pool = [("111", 10), ("112", 10), ("113", 50)]
        assert vote_per_char(pool) == "113"

    def test_modal_length(self):
        """Test candidates of the most common length decide the result."""
        pool = [("12345", 99), ("1234", 10), ("1234", 10)]
        assert vote_per_char(pool) == "1234"

    def test_length_tie_uses_total_confidence(self):
        """Test equally common lengths are decided by total confidence."""
        pool = [("1234", 10), ("12345", 90)]
        assert vote_per_char(pool) == "12345"

    def test_length_tie_first_seen(self):
        """Test fully tied lengths keep the first seen."""
        pool = [("1234", 50), ("12345", 50)]
        assert vote_per_char(pool) == "1234"

    def test_zero_weights_fall_back_to_plurality(self):
        """Test degenerate weights use plain counts."""
        pool = [("10", 0), ("20", 0), ("20", 0)]
        assert vote_per_char(pool) == "20"

    def test_character_tie_first_seen(self):
        """Test tied positions keep the first seen character."""
        assert vote_per_char([("5", 30), ("6", 30)]) == "5"

    def test_mixes_positions(self):
        """Test each position is voted independently."""
        pool = [("190", 50), ("280", 50), ("299", 60)]
        assert vote_per_char(pool) == "290"

    def test_empty(self):
        """Test empty pools (or only empty texts) have no result."""
        assert vote_per_char([]) is None
        assert vote_per_char([("", 90)]) is None


class TestConsensus:
    """Test validated consensus."""

    def test_plausible_vote(self, sample_sequence):
        """Test a plausible vote is returned with its mean confidence."""
        noisy = sample_sequence[:-1] + "8"
        result = consensus([(sample_sequence, 80), (noisy, 40), (sample_sequence, 90)])
        assert result.digits == sample_sequence
        assert result.confidence == pytest.approx(85.0)
        assert result.support == 3

    def test_voted_string_not_in_pool(self):
        """Test confidence falls back to the same-length mean."""
        pool = [
            ("0424102470200259", 50),
            ("0424102470200358", 30),
            ("0424102470200158", 30),
            ("0424102470200250", 10),
        ]
        result = consensus(pool)
        assert result.digits == "0424102470200258"
        assert result.confidence == pytest.approx(30.0)

    def test_validity_beats_majority(self):
        """Test an implausible vote falls back to the first plausible candidate."""
        pool = [
            ("0424101970200259", 90),  # year 19
            ("0424101970200259", 90),
            ("0424102470200259", 10),
        ]
        result = consensus(pool)
        assert result.digits == "0424102470200259"
        assert result.support == 1
        assert result.confidence == 10

    def test_nothing_plausible(self):
        """Test a pool without plausible candidates gives None."""
        assert consensus([("0424101970200259", 90), ("12345", 90)]) is None
        assert consensus([]) is None

    def test_config_is_respected(self, sample_sequence):
        """Test a stricter year range rejects the sample."""
        assert consensus([(sample_sequence, 90)], SequenceConfig(year_min=30)) is None
