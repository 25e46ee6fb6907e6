"""Unit tests for the enhancement and binarization primitives."""

import numpy as np
import pytest

from src.common.types import PixelBuffer
from src.imaging.enhance import (
    adaptive_threshold,
    apply_gamma,
    binarize,
    box_blur,
    contrast_stretch,
    morphological_close,
    otsu_binarize,
    otsu_threshold,
    rotate,
    scale_to_height,
    to_grayscale,
)


def _buffer(array):
    return PixelBuffer(data=np.asarray(array, dtype=np.uint8))


@pytest.fixture
def bimodal():
    """Fixture providing a dark square (40) on a light background (200)."""
    data = np.full((40, 40), 200, dtype=np.uint8)
    data[10:30, 10:30] = 40
    return _buffer(data)


class TestGrayscale:
    """Test grayscale conversion."""

    def test_luma_weights(self):
        """Test BGR conversion uses 0.299R + 0.587G + 0.114B."""
        data = np.zeros((2, 2, 3), dtype=np.uint8)
        data[..., 2] = 255  # red channel in BGR order
        gray = to_grayscale(_buffer(data))
        assert gray.is_grayscale
        assert abs(int(gray.data[0, 0]) - 76) <= 1

    def test_gray_input_is_copied(self, bimodal):
        """Test a grayscale input yields a new equal array."""
        gray = to_grayscale(bimodal)
        assert gray.data is not bimodal.data
        assert np.array_equal(gray.data, bimodal.data)

    def test_bgra_input(self):
        """Test 4-channel input converts to one channel."""
        gray = to_grayscale(_buffer(np.full((3, 3, 4), 128)))
        assert gray.shape == (3, 3)


class TestBlurAndGamma:
    """Test photometric helpers."""

    def test_box_blur_uniform_image_unchanged(self):
        """Test a flat image stays flat after blurring."""
        blurred = box_blur(_buffer(np.full((5, 5), 90)))
        assert np.all(blurred.data == 90)

    def test_box_blur_averages_neighbors(self):
        """Test a single bright pixel is spread over its 3x3 neighborhood."""
        data = np.zeros((5, 5), dtype=np.uint8)
        data[2, 2] = 90
        blurred = box_blur(_buffer(data))
        assert blurred.data[2, 2] == 10
        assert blurred.data[1, 1] == 10
        assert blurred.data[0, 0] == 0

    def test_gamma_brightens_midtones(self):
        """Test gamma > 1 brightens mid gray, preserving the extremes."""
        data = np.array([[0, 128, 255]], dtype=np.uint8)
        out = apply_gamma(_buffer(data), 2.0).data
        assert out[0, 0] == 0
        assert out[0, 1] > 128
        assert out[0, 2] == 255


class TestContrastStretch:
    """Test percentile contrast stretching."""

    def test_range_is_expanded(self):
        """Test a narrow intensity range is spread towards 0..255."""
        data = np.tile(np.linspace(100, 150, 64).astype(np.uint8), (8, 1))
        out = contrast_stretch(_buffer(data), 5.0, 95.0).data
        assert out.min() == 0
        assert out.max() == 255

    def test_degenerate_range_is_noop(self):
        """Test a flat image is returned unchanged."""
        data = np.full((10, 10), 77, dtype=np.uint8)
        out = contrast_stretch(_buffer(data))
        assert np.array_equal(out.data, data)

    def test_input_not_modified(self, bimodal):
        """Test the input buffer keeps its pixels."""
        before = bimodal.to_numpy()
        contrast_stretch(bimodal)
        assert np.array_equal(bimodal.data, before)


class TestOtsu:
    """Test Otsu thresholding and binarization."""

    def test_threshold_separates_modes(self, bimodal):
        """Test the threshold lies between the two gray levels."""
        t = otsu_threshold(bimodal)
        assert 40 <= t < 200

    def test_binarize_maps_to_ink_and_background(self, bimodal):
        """Test the dark square becomes ink and the rest background."""
        binary = otsu_binarize(bimodal)
        assert set(np.unique(binary.data)) == {0, 255}
        assert np.all(binary.data[10:30, 10:30] == 0)
        assert binary.data[0, 0] == 255

    def test_binarization_is_idempotent(self, bimodal):
        """Test re-binarizing a binary buffer at its own threshold reproduces it."""
        binary = otsu_binarize(bimodal)
        again = binarize(binary, otsu_threshold(binary))
        assert np.array_equal(again.data, binary.data)

    def test_uniform_image(self):
        """Test a single-level image yields 127 and binarizes consistently."""
        white = _buffer(np.full((8, 8), 255))
        assert otsu_threshold(white) == 127
        assert np.all(otsu_binarize(white).data == 255)

    def test_fixed_threshold(self):
        """Test values at or below the level become ink."""
        out = binarize(_buffer([[99, 100, 101]]), 100).data
        assert out.tolist() == [[0, 0, 255]]


class TestAdaptiveThreshold:
    """Test local-mean thresholding."""

    def test_handles_illumination_gradient(self):
        """Test dark strokes are found on both the dim and bright sides."""
        data = np.tile(np.linspace(90, 250, 120).astype(np.uint8), (40, 1))
        data[18:22, 10:20] = data[18:22, 10:20] // 3
        data[18:22, 100:110] = data[18:22, 100:110] // 3
        out = adaptive_threshold(_buffer(data), window=15, c=10).data
        assert np.all(out[19:21, 12:18] == 0)
        assert np.all(out[19:21, 102:108] == 0)
        assert out[5, 60] == 255

    def test_even_window_is_accepted(self, bimodal):
        """Test an even window size is bumped to odd without error."""
        out = adaptive_threshold(bimodal, window=10)
        assert out.shape == bimodal.shape


class TestMorphologicalClose:
    """Test stroke closing."""

    def test_bridges_single_pixel_gap(self):
        """Test a one-pixel gap in a horizontal stroke is closed."""
        data = np.full((9, 15), 255, dtype=np.uint8)
        data[3:6, 2:7] = 0
        data[3:6, 8:13] = 0
        closed = morphological_close(_buffer(data)).data
        assert np.all(closed[3:6, 7] == 0)

    def test_does_not_thicken_stroke(self):
        """Test a solid stroke keeps its extent."""
        data = np.full((9, 15), 255, dtype=np.uint8)
        data[3:6, 2:13] = 0
        closed = morphological_close(_buffer(data)).data
        assert np.array_equal(closed, data)


class TestGeometry:
    """Test rescaling and rotation."""

    def test_scale_to_height_keeps_aspect(self):
        """Test uniform scaling to a target height."""
        out = scale_to_height(_buffer(np.zeros((50, 200))), 100)
        assert out.shape == (100, 400)

    def test_rotate_expands_canvas(self):
        """Test rotation grows the canvas and fills with background."""
        out = rotate(_buffer(np.zeros((20, 100))), 10.0)
        assert out.width >= 100
        assert out.height > 20
        assert out.data[0, 0] == 255

    def test_rotate_zero_keeps_size(self, bimodal):
        """Test a zero rotation keeps the canvas size."""
        out = rotate(bimodal, 0.0)
        assert out.shape == bimodal.shape
