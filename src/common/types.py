"""
Common type definitions for the asset tag recognition pipeline.

This module provides Pydantic-based type definitions for the two structures
shared by every stage of the pipeline: pixel buffers and line boxes.

These types provide:
- Type validation and conversion
- Immutability (every transform produces a new buffer)
- Helper methods for cropping and coordinate bookkeeping
- Integration with numpy arrays and OpenCV
"""

from typing import Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator


class PixelBuffer(BaseModel):
    """
    Immutable wrapper for image arrays (numpy.ndarray).

    The wrapped array is flagged read-only on construction, so a buffer
    handed to one stage can never be altered by another. Transforms in
    ``src.imaging.enhance`` always allocate a fresh array and wrap it in a
    new PixelBuffer.

    Attributes:
        data: The underlying numpy array containing image data.
            Shape: (H, W) for grayscale, (H, W, 3) BGR or (H, W, 4) BGRA.
            Dtype: uint8 (0-255).

    Example:
        >>> import cv2
        >>> buffer = PixelBuffer(data=cv2.imread("tag.jpg"))
        >>> print(buffer.height, buffer.width)  # 480, 640
        >>> buffer.data[0, 0] = 0  # raises ValueError: read-only
    """

    data: np.ndarray = Field(..., description="Image data as numpy array")

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate that the numpy array is a valid image and freeze it.

        Args:
            v: Numpy array to validate.

        Returns:
            Validated, read-only numpy array.

        Raises:
            ValueError: If array is not a valid image format.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError("Image array is empty")

        if len(v.shape) not in (2, 3):
            raise ValueError(
                f"Expected 2D (grayscale) or 3D (color) image, got shape {v.shape}"
            )

        if len(v.shape) == 3 and v.shape[2] not in (1, 3, 4):
            raise ValueError(
                f"Expected 1, 3, or 4 channels for color image, got {v.shape[2]}"
            )

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        v.flags.writeable = False
        return v

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get image shape (H, W) or (H, W, C)."""
        return self.data.shape

    @property
    def height(self) -> int:
        """Get image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Get image width in pixels."""
        return int(self.data.shape[1])

    @property
    def channels(self) -> int:
        """Get number of channels (1 for grayscale, 3 for BGR, 4 for BGRA)."""
        if len(self.data.shape) == 2:
            return 1
        return int(self.data.shape[2])

    @property
    def is_grayscale(self) -> bool:
        """Check if image is single channel."""
        return self.channels == 1

    def to_numpy(self) -> np.ndarray:
        """
        Get a writable copy of the underlying array.

        Returns:
            Copy of the image data, safe for in-place OpenCV drawing.
        """
        return self.data.copy()

    def crop(self, box: "LineBox") -> "PixelBuffer":
        """
        Cut a rectangular region out of the buffer.

        The box is clipped to the buffer bounds first; the returned buffer
        owns its own copy of the pixels.

        Args:
            box: Region to extract, in this buffer's coordinates.

        Returns:
            New PixelBuffer containing only the region.
        """
        clipped = box.clip(self.width, self.height)
        region = self.data[clipped.y : clipped.bottom, clipped.x : clipped.right]
        return PixelBuffer(data=np.ascontiguousarray(region).copy())

    def __repr__(self) -> str:
        """String representation of PixelBuffer."""
        return f"PixelBuffer(shape={self.shape}, dtype={self.data.dtype})"


class LineBox(BaseModel):
    """
    Rectangle ``(x, y, w, h)`` into a source buffer believed to hold one line.

    Produced by the segmenter and consumed by the recognition adapter. The
    ``hypothesis`` field records which column hypothesis produced the box so
    the grouper can keep at most one box per hypothesis in a line group.

    Attributes:
        x: Left edge.
        y: Top edge.
        w: Width in pixels (> 0).
        h: Height in pixels (> 0).
        hypothesis: Index of the column hypothesis (0 when not applicable).

    Example:
        >>> box = LineBox(x=10, y=40, w=300, h=32)
        >>> print(box.right, box.bottom)  # 310, 72
        >>> box.offset(dx=100).x  # 110
    """

    x: int = Field(..., description="Left edge")
    y: int = Field(..., description="Top edge")
    w: int = Field(..., description="Width in pixels")
    h: int = Field(..., description="Height in pixels")
    hypothesis: int = Field(default=0, ge=0, description="Column hypothesis index")

    model_config = {"frozen": True}

    @field_validator("x", "y", "w", "h", mode="before")
    @classmethod
    def _convert_to_int(cls, v: Union[int, float]) -> int:
        """
        Convert coordinate to int, rounding if float.

        Args:
            v: Coordinate value (int or float, numpy scalars included).

        Returns:
            Integer coordinate.
        """
        if isinstance(v, (int, float, np.integer, np.floating)):
            return int(round(float(v)))
        raise ValueError(f"Coordinate must be numeric, got {type(v)}")

    @model_validator(mode="after")
    def _validate_box(self) -> "LineBox":
        """
        Validate box geometry after initialization.

        Raises:
            ValueError: If the box is empty or has negative origin.
        """
        if self.w <= 0 or self.h <= 0:
            raise ValueError(
                f"Invalid line box: w ({self.w}) and h ({self.h}) must be > 0"
            )
        if self.x < 0 or self.y < 0:
            raise ValueError(
                f"Invalid line box: coordinates must be non-negative, "
                f"got x={self.x}, y={self.y}"
            )
        return self

    @property
    def right(self) -> int:
        """Exclusive right edge (x + w)."""
        return self.x + self.w

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge (y + h)."""
        return self.y + self.h

    def offset(self, dx: int = 0, dy: int = 0) -> "LineBox":
        """
        Translate the box, e.g. from column-local to global coordinates.

        Returns:
            New LineBox shifted by (dx, dy).
        """
        return self.model_copy(update={"x": self.x + dx, "y": self.y + dy})

    def with_hypothesis(self, hypothesis: int) -> "LineBox":
        """Return a copy tagged with a column hypothesis index."""
        return self.model_copy(update={"hypothesis": hypothesis})

    def clip(self, image_width: int, image_height: int) -> "LineBox":
        """
        Clip box to image boundaries.

        Args:
            image_width: Image width in pixels.
            image_height: Image height in pixels.

        Returns:
            New LineBox inside the image, at least 1x1.
        """
        x = max(0, min(self.x, image_width - 1))
        y = max(0, min(self.y, image_height - 1))
        right = max(x + 1, min(self.right, image_width))
        bottom = max(y + 1, min(self.bottom, image_height))

        return LineBox(
            x=x, y=y, w=right - x, h=bottom - y, hypothesis=self.hypothesis
        )

    def __repr__(self) -> str:
        """String representation of LineBox."""
        return (
            f"LineBox(x={self.x}, y={self.y}, w={self.w}, h={self.h}, "
            f"hypothesis={self.hypothesis})"
        )
