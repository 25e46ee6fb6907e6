"""Unit tests for projection-profile deskew."""

import numpy as np
import pytest

from src.common.config_loader import DeskewConfig
from src.common.types import PixelBuffer
from src.imaging.deskew import (
    candidate_angles,
    deskew,
    estimate_skew,
    projection_sharpness,
)
from src.imaging.enhance import rotate


@pytest.fixture
def upright_tag(tag_renderer):
    """Fixture providing a two-line horizontal digit tag."""
    return PixelBuffer(data=tag_renderer(["0424102470200259", "0423001970200012"]))


class TestCandidateAngles:
    """Test search order."""

    def test_order_by_absolute_value(self):
        """Test angles start at 0 and alternate negative/positive."""
        assert candidate_angles(1.0, 0.5) == [0.0, -0.5, 0.5, -1.0, 1.0]

    def test_zero_range(self):
        """Test a zero bound only evaluates 0."""
        assert candidate_angles(0.0, 0.5) == [0.0]


class TestProjectionSharpness:
    """Test the sharpness score."""

    def test_sharp_band_beats_diffuse_band(self):
        """Test a solid band scores higher than a gradual one."""
        sharp = np.full((40, 50), 255, dtype=np.uint8)
        sharp[10:20, :] = 0
        diffuse = np.full((40, 50), 255, dtype=np.uint8)
        diffuse[5:25, :25] = 0
        assert projection_sharpness(PixelBuffer(data=sharp)) > projection_sharpness(
            PixelBuffer(data=diffuse)
        )

    def test_blank_image_scores_zero(self):
        """Test an empty image has no sharpness."""
        blank = PixelBuffer(data=np.full((10, 10), 255, dtype=np.uint8))
        assert projection_sharpness(blank) == 0.0


class TestDeskew:
    """Test the rotation search."""

    def test_upright_input_is_noop(self, upright_tag):
        """Test a horizontal tag selects an angle within one step of 0."""
        config = DeskewConfig()
        angle = estimate_skew(upright_tag, config)
        assert abs(angle) <= config.step

    def test_recovers_rotation(self, upright_tag):
        """Test a 4 degree rotation is undone."""
        rotated = rotate(upright_tag, 4.0)
        corrected, angle = deskew(rotated, DeskewConfig())
        assert abs(angle + 4.0) <= 0.5
        assert corrected.width > rotated.width

    def test_blank_image_keeps_buffer(self):
        """Test equal scores resolve to 0 and return the input unchanged."""
        blank = PixelBuffer(data=np.full((50, 80), 255, dtype=np.uint8))
        corrected, angle = deskew(blank, DeskewConfig())
        assert angle == 0.0
        assert corrected is blank

    def test_disabled(self, upright_tag):
        """Test the search can be switched off."""
        rotated = rotate(upright_tag, 4.0)
        corrected, angle = deskew(rotated, DeskewConfig(enabled=False))
        assert angle == 0.0
        assert corrected is rotated
