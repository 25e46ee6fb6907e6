"""Image decoding and minimum-resolution normalization.

Decoding is the only fatal stage of the pipeline: if the input cannot be
turned into pixels, :class:`ImageDecodeError` is raised and nothing
downstream runs.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from src.common.types import PixelBuffer

from .enhance import scale_to_height

logger = logging.getLogger(__name__)

ImageInput = Union[bytes, bytearray, memoryview, str, Path, np.ndarray, PixelBuffer]


class ImageDecodeError(ValueError):
    """Raised when the input image cannot be decoded."""


def decode_image(image: ImageInput) -> PixelBuffer:
    """
    Decode raw bytes, a file path, or an array into a PixelBuffer.

    Args:
        image: Encoded image bytes, a path to an image file, an already
            decoded uint8 array (H, W) / (H, W, 3|4), or a PixelBuffer.

    Returns:
        PixelBuffer owning its own pixel data.

    Raises:
        ImageDecodeError: If the input is empty, unreadable or not an image.
    """
    if isinstance(image, PixelBuffer):
        return image

    if isinstance(image, np.ndarray):
        try:
            return PixelBuffer(data=np.ascontiguousarray(image).copy())
        except ValueError as e:
            raise ImageDecodeError(f"Invalid image array: {e}") from e

    if isinstance(image, (str, Path)):
        path = Path(image)
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ImageDecodeError(f"Cannot read image file {path}: {e}") from e
        logger.debug(f"Read {len(raw)} bytes from {path}")
        return _decode_bytes(raw, source=str(path))

    if isinstance(image, (bytes, bytearray, memoryview)):
        return _decode_bytes(bytes(image), source="<bytes>")

    raise ImageDecodeError(f"Unsupported image input type: {type(image).__name__}")


def _decode_bytes(raw: bytes, source: str) -> PixelBuffer:
    if not raw:
        raise ImageDecodeError(f"Empty image data from {source}")

    encoded = np.frombuffer(raw, dtype=np.uint8)
    decoded = cv2.imdecode(encoded, cv2.IMREAD_COLOR)
    if decoded is None or decoded.size == 0:
        raise ImageDecodeError(
            f"Could not decode image from {source} ({len(raw)} bytes): "
            "unsupported format or corrupt data"
        )
    return PixelBuffer(data=decoded)


def load_image(image: ImageInput, min_height: int = 1000) -> PixelBuffer:
    """
    Decode an image and upscale it to the minimum working height.

    The thresholding heuristics and the recognition engine are calibrated for
    a minimum stroke width in pixels, so small photos are uniformly upscaled
    (bicubic) before any other processing. Larger images are left untouched.

    Args:
        image: See :func:`decode_image`.
        min_height: Minimum height in pixels.

    Returns:
        PixelBuffer at least ``min_height`` rows tall.

    Raises:
        ImageDecodeError: If the input cannot be decoded.

    Example:
        >>> buffer = load_image(Path("tag.jpg").read_bytes())
        >>> buffer.height >= 1000
        True
    """
    buffer = decode_image(image)

    if buffer.height < min_height:
        original = (buffer.width, buffer.height)
        buffer = scale_to_height(buffer, min_height)
        logger.debug(
            f"Upscaled image from {original[0]}x{original[1]} "
            f"to {buffer.width}x{buffer.height}"
        )

    return buffer
