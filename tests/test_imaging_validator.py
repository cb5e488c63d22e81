"""
Image Validator Tests
=====================

Dimension, byte-size and format policy checks.
"""

import numpy as np
import pytest

from prettynails.imaging.codec import decode_image
from prettynails.imaging.validator import ImageValidator
from prettynails.models.errors import ErrorKind, InvalidImageError
from prettynails.models.image import ImageFormat, RawImage


class TestDimensions:
    """Width and height limits."""

    def test_accepts_typical_photo(self, jpeg_bytes):
        outcome = ImageValidator().validate(decode_image(jpeg_bytes))
        assert outcome.is_valid
        assert outcome.format == ImageFormat.JPEG

    def test_accepts_exact_bounds(self, make_image_bytes):
        validator = ImageValidator()
        assert validator.validate(decode_image(make_image_bytes(256, 256))).is_valid
        assert validator.validate(decode_image(make_image_bytes(2048, 256))).is_valid

    def test_rejects_small_side(self, make_image_bytes):
        outcome = ImageValidator().validate(decode_image(make_image_bytes(255, 600)))
        assert not outcome.is_valid
        assert "too small" in outcome.reasons[0]

    def test_rejects_large_side(self, make_image_bytes):
        outcome = ImageValidator().validate(decode_image(make_image_bytes(3000, 3000)))
        assert not outcome.is_valid
        assert "too large" in outcome.reasons[0]

    def test_rejects_image_without_pixels(self, jpeg_bytes):
        empty = RawImage(pixels=np.zeros((0, 0, 3), dtype=np.uint8), data=jpeg_bytes)
        outcome = ImageValidator().validate(empty)
        assert not outcome.is_valid
        assert "no pixels" in outcome.reasons[0]


class TestEncoding:
    """Byte cap and format signature."""

    def test_png_accepted(self, make_image_bytes):
        outcome = ImageValidator().validate(decode_image(make_image_bytes(300, 300, ".png")))
        assert outcome.is_valid
        assert outcome.format == ImageFormat.PNG

    def test_rejects_oversized_file(self, jpeg_bytes):
        image = decode_image(jpeg_bytes)
        outcome = ImageValidator(max_bytes=len(jpeg_bytes) - 1).validate(image)
        assert not outcome.is_valid
        assert any("limit" in reason for reason in outcome.reasons)

    def test_byte_cap_is_inclusive(self, jpeg_bytes):
        image = decode_image(jpeg_bytes)
        assert ImageValidator(max_bytes=len(jpeg_bytes)).validate(image).is_valid

    def test_rejects_unknown_signature(self, make_pixels):
        image = RawImage(pixels=make_pixels(300, 300), data=b"GIF89a" + b"\x00" * 32)
        outcome = ImageValidator().validate(image)
        assert not outcome.is_valid
        assert outcome.format is None

    def test_collects_every_reason(self, make_pixels):
        image = RawImage(pixels=make_pixels(100, 100), data=b"BM" + b"\x00" * 64)
        outcome = ImageValidator(max_bytes=10).validate(image)
        assert len(outcome.reasons) == 3


class TestRaiseForInvalid:

    def test_valid_outcome_does_not_raise(self, jpeg_bytes):
        ImageValidator().validate(decode_image(jpeg_bytes)).raise_for_invalid()

    def test_invalid_outcome_raises_invalid_image(self, make_image_bytes):
        outcome = ImageValidator().validate(decode_image(make_image_bytes(100, 100)))
        with pytest.raises(InvalidImageError) as excinfo:
            outcome.raise_for_invalid()
        assert excinfo.value.kind == ErrorKind.INVALID_IMAGE
        assert "too small" in excinfo.value.message
