"""Imaging: decoding, enhancement and deskew.

Core Components:
    - loader: Decode bytes/paths/arrays into PixelBuffers, enforce min height
    - enhance: Pure PixelBuffer -> PixelBuffer transforms (gray, blur,
      contrast stretch, Otsu, adaptive threshold, closing, rotate, rescale)
    - deskew: Projection-sharpness rotation search

Example:
    >>> from src.imaging import load_image, deskew
    >>> buffer = load_image(image_bytes)
    >>> upright, angle = deskew(buffer, config.deskew)
"""

from .deskew import candidate_angles, deskew, estimate_skew, projection_sharpness
from .enhance import (
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
from .loader import ImageDecodeError, decode_image, load_image

__all__ = [
    # Loader
    "ImageDecodeError",
    "decode_image",
    "load_image",
    # Enhancement
    "to_grayscale",
    "box_blur",
    "apply_gamma",
    "contrast_stretch",
    "otsu_threshold",
    "otsu_binarize",
    "binarize",
    "adaptive_threshold",
    "morphological_close",
    "scale_to_height",
    "rotate",
    # Deskew
    "candidate_angles",
    "deskew",
    "estimate_skew",
    "projection_sharpness",
]
