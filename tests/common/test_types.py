"""Unit tests for the shared PixelBuffer and LineBox types."""

import numpy as np
import pytest
from pydantic import ValidationError

from src.common.types import LineBox, PixelBuffer


class TestPixelBuffer:
    """Test PixelBuffer validation and helpers."""

    def test_grayscale_properties(self):
        """Test shape helpers on a grayscale buffer."""
        buffer = PixelBuffer(data=np.zeros((20, 30), dtype=np.uint8))
        assert buffer.height == 20
        assert buffer.width == 30
        assert buffer.channels == 1
        assert buffer.is_grayscale

    def test_color_properties(self):
        """Test shape helpers on a BGR buffer."""
        buffer = PixelBuffer(data=np.zeros((20, 30, 3), dtype=np.uint8))
        assert buffer.channels == 3
        assert not buffer.is_grayscale

    def test_data_is_read_only(self):
        """Test that wrapped pixels cannot be modified in place."""
        buffer = PixelBuffer(data=np.zeros((4, 4), dtype=np.uint8))
        with pytest.raises(ValueError):
            buffer.data[0, 0] = 255

    def test_to_numpy_returns_writable_copy(self):
        """Test that to_numpy gives an independent array."""
        buffer = PixelBuffer(data=np.zeros((4, 4), dtype=np.uint8))
        array = buffer.to_numpy()
        array[0, 0] = 255
        assert buffer.data[0, 0] == 0

    def test_rejects_wrong_dtype(self):
        """Test that non-uint8 arrays are rejected."""
        with pytest.raises(ValidationError):
            PixelBuffer(data=np.zeros((4, 4), dtype=np.float32))

    def test_rejects_empty_array(self):
        """Test that empty arrays are rejected."""
        with pytest.raises(ValidationError):
            PixelBuffer(data=np.zeros((0, 4), dtype=np.uint8))

    def test_rejects_bad_channel_count(self):
        """Test that 2-channel images are rejected."""
        with pytest.raises(ValidationError):
            PixelBuffer(data=np.zeros((4, 4, 2), dtype=np.uint8))

    def test_crop_copies_region(self):
        """Test cropping returns the requested region."""
        data = np.arange(100, dtype=np.uint8).reshape(10, 10)
        buffer = PixelBuffer(data=data)
        crop = buffer.crop(LineBox(x=2, y=3, w=4, h=2))
        assert crop.shape == (2, 4)
        assert crop.data[0, 0] == 32

    def test_crop_clips_to_bounds(self):
        """Test cropping a box that extends past the image."""
        buffer = PixelBuffer(data=np.zeros((10, 10), dtype=np.uint8))
        crop = buffer.crop(LineBox(x=8, y=8, w=10, h=10))
        assert crop.shape == (2, 2)


class TestLineBox:
    """Test LineBox geometry."""

    def test_creation(self):
        """Test basic attributes and derived edges."""
        box = LineBox(x=10, y=20, w=30, h=8, hypothesis=2)
        assert box.right == 40
        assert box.bottom == 28
        assert (box.x, box.y, box.w, box.h) == (10, 20, 30, 8)
        assert box.hypothesis == 2

    def test_numpy_coordinates_are_converted(self):
        """Test that numpy scalars become plain ints."""
        box = LineBox(x=np.int64(3), y=np.int32(4), w=np.float64(5.0), h=6)
        assert isinstance(box.x, int)
        assert box.w == 5

    def test_rejects_empty_box(self):
        """Test that zero-size boxes are rejected."""
        with pytest.raises(ValidationError):
            LineBox(x=0, y=0, w=0, h=5)

    def test_rejects_negative_origin(self):
        """Test that negative coordinates are rejected."""
        with pytest.raises(ValidationError):
            LineBox(x=-1, y=0, w=5, h=5)

    def test_offset_and_hypothesis(self):
        """Test translation and hypothesis tagging produce new boxes."""
        box = LineBox(x=1, y=2, w=3, h=4)
        moved = box.offset(dx=10, dy=20).with_hypothesis(1)
        assert (moved.x, moved.y, moved.w, moved.h) == (11, 22, 3, 4)
        assert moved.hypothesis == 1
        assert (box.x, box.y) == (1, 2)

    def test_clip(self):
        """Test clipping keeps at least one pixel."""
        box = LineBox(x=95, y=0, w=20, h=5).clip(100, 50)
        assert (box.x, box.y, box.w, box.h) == (95, 0, 5, 5)
