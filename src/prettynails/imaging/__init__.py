"""
Imaging Module
==============

Pixel-level processing for hand photos.

Components:
    - codec: Decode/encode between bytes and RawImage, format detection
    - ImageValidator: Dimension, size and format policy checks
    - ImageNormalizer: Orientation, downscale, enhancement, hand crop
    - MaskBuilder: Fingertip disc masks for generative edits
"""

from prettynails.imaging.codec import (
    compress_jpeg,
    decode_image,
    detect_format,
    encode_pixels,
    image_from_pixels,
)
from prettynails.imaging.validator import ImageValidator, ValidationOutcome
from prettynails.imaging.normalizer import ImageNormalizer, PreparedImage, hand_bounds
from prettynails.imaging.mask import MaskBuilder

__all__ = [
    "compress_jpeg",
    "decode_image",
    "detect_format",
    "encode_pixels",
    "image_from_pixels",
    "ImageValidator",
    "ValidationOutcome",
    "ImageNormalizer",
    "PreparedImage",
    "hand_bounds",
    "MaskBuilder",
]
