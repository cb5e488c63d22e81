"""
Image Validator
===============

Policy checks on submitted images before any processing happens.

Checks:
    - width and height are positive
    - min_dimension <= width, height <= max_dimension
    - encoded size <= max_bytes
    - first bytes carry a JPEG or PNG signature

Pure function of the input; no side effects.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from prettynails.imaging.codec import detect_format
from prettynails.models.errors import InvalidImageError
from prettynails.models.image import ImageFormat, RawImage


logger = logging.getLogger(__name__)


MIN_DIMENSION = 256
MAX_DIMENSION = 2048
MAX_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Result of validating one image.

    Attributes:
        reasons: Human-readable rejection reasons (empty when valid)
        format: Detected encoding, None when unrecognized
    """

    reasons: Tuple[str, ...] = ()
    format: Optional[ImageFormat] = None

    @property
    def is_valid(self) -> bool:
        return not self.reasons

    def raise_for_invalid(self) -> None:
        """Raise InvalidImageError carrying every rejection reason."""
        if self.reasons:
            raise InvalidImageError("The selected image is not valid: " + "; ".join(self.reasons))


class ImageValidator:
    """
    Checks image dimensions, encoded size and format against limits.

    Attributes:
        min_dimension: Smallest accepted width/height
        max_dimension: Largest accepted width/height
        max_bytes: Largest accepted encoded size
    """

    def __init__(
        self,
        min_dimension: int = MIN_DIMENSION,
        max_dimension: int = MAX_DIMENSION,
        max_bytes: int = MAX_BYTES,
    ) -> None:
        self.min_dimension = min_dimension
        self.max_dimension = max_dimension
        self.max_bytes = max_bytes

    def validate(self, image: RawImage) -> ValidationOutcome:
        """
        Validate an image against the configured policy.

        Args:
            image: Image to check

        Returns:
            ValidationOutcome listing every failed check
        """
        reasons = []
        width, height = image.width, image.height

        if width <= 0 or height <= 0:
            reasons.append("image has no pixels")
        elif width < self.min_dimension or height < self.min_dimension:
            reasons.append(
                f"image is too small ({width}x{height}, "
                f"minimum {self.min_dimension}px per side)"
            )
        elif width > self.max_dimension or height > self.max_dimension:
            reasons.append(
                f"image is too large ({width}x{height}, "
                f"maximum {self.max_dimension}px per side)"
            )

        if len(image.data) > self.max_bytes:
            reasons.append(
                f"image file is {len(image.data)} bytes, limit is {self.max_bytes}"
            )

        fmt = detect_format(image.data)
        if fmt is None:
            reasons.append("image format is not supported (use JPEG or PNG)")

        if reasons:
            logger.info(f"Image rejected: {'; '.join(reasons)}")

        return ValidationOutcome(reasons=tuple(reasons), format=fmt)
