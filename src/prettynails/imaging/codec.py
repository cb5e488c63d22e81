"""
Image Codec
===========

Decoding and encoding between encoded bytes and RawImage.

Design Rules:
    - This is the ONLY place in the codebase that decodes or encodes images
    - Pixels are kept in stored orientation; the EXIF tag travels alongside
    - Fails fast on corrupt input with InvalidImageError
"""

import io
import logging
from typing import Optional

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from prettynails.models.errors import InvalidImageError, ProcessingFailedError
from prettynails.models.image import UPRIGHT, ImageFormat, RawImage


logger = logging.getLogger(__name__)


JPEG_SIGNATURE = b"\xff\xd8\xff"
PNG_SIGNATURE = b"\x89PNG"

EXIF_ORIENTATION_TAG = 0x0112


def detect_format(data: bytes) -> Optional[ImageFormat]:
    """
    Identify the encoding from its magic number.

    Args:
        data: Encoded image bytes

    Returns:
        ImageFormat, or None when the signature is not JPEG or PNG
    """
    if data[:3] == JPEG_SIGNATURE:
        return ImageFormat.JPEG
    if data[:4] == PNG_SIGNATURE:
        return ImageFormat.PNG
    return None


def read_orientation(data: bytes) -> int:
    """Read the EXIF orientation tag, defaulting to upright."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            value = img.getexif().get(EXIF_ORIENTATION_TAG, UPRIGHT)
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"No EXIF orientation available: {e}")
        return UPRIGHT

    if not isinstance(value, int) or not 1 <= value <= 8:
        return UPRIGHT
    return value


def decode_image(data: bytes) -> RawImage:
    """
    Decode encoded bytes into a RawImage.

    Args:
        data: JPEG or PNG bytes

    Returns:
        RawImage with BGR pixels in stored orientation

    Raises:
        InvalidImageError: If the bytes cannot be decoded
    """
    if not data:
        raise InvalidImageError("Image data is empty")

    nparr = np.frombuffer(data, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR | cv2.IMREAD_IGNORE_ORIENTATION)

    if bgr is None:
        raise InvalidImageError("Image data could not be decoded")

    if bgr.ndim != 3 or bgr.shape[2] != 3:
        raise InvalidImageError(f"Invalid image shape: {bgr.shape}")

    return RawImage(
        pixels=bgr,
        data=bytes(data),
        format=detect_format(data),
        orientation=read_orientation(data),
    )


def encode_pixels(
    pixels: np.ndarray,
    fmt: ImageFormat = ImageFormat.JPEG,
    quality: int = 80,
) -> bytes:
    """
    Encode a pixel array.

    Args:
        pixels: BGR (H, W, 3) or single-channel (H, W) uint8 array
        fmt: Target encoding
        quality: JPEG quality 1-100 (ignored for PNG)

    Returns:
        Encoded bytes

    Raises:
        ProcessingFailedError: If OpenCV cannot encode the array
    """
    if fmt is ImageFormat.JPEG:
        ok, buffer = cv2.imencode(".jpg", pixels, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    else:
        ok, buffer = cv2.imencode(".png", pixels)

    if not ok:
        raise ProcessingFailedError("Failed to compress image for processing")

    return buffer.tobytes()


def image_from_pixels(
    pixels: np.ndarray,
    fmt: ImageFormat = ImageFormat.PNG,
    quality: int = 95,
) -> RawImage:
    """Wrap freshly produced pixels in an upright RawImage."""
    return RawImage(
        pixels=pixels,
        data=encode_pixels(pixels, fmt, quality),
        format=fmt,
        orientation=UPRIGHT,
    )


def compress_jpeg(image: RawImage, quality: int = 80) -> bytes:
    """JPEG-compress an image's pixels."""
    return encode_pixels(image.pixels, ImageFormat.JPEG, quality)
