"""
Image Data Model
================

Internal image representation shared by every pipeline stage.

Design Rules:
    - RawImage is immutable; stages return new instances
    - Pixels are BGR uint8 arrays (OpenCV convention)
    - The encoded source bytes travel with the pixels so validation can
      inspect format signatures and wire size
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np


class ImageFormat(str, Enum):
    """Encoded image formats accepted by the pipeline."""

    JPEG = "jpeg"
    PNG = "png"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"


# EXIF orientation tag value for pixels that need no transform
UPRIGHT = 1


@dataclass(frozen=True)
class RawImage:
    """
    Decoded image with its encoded source.

    Attributes:
        pixels: BGR pixel array (H, W, 3), dtype=uint8, as stored
        data: Encoded bytes the pixels were decoded from
        format: Detected encoding, None when unrecognized
        orientation: EXIF orientation tag (1-8, 1 = upright)
    """

    pixels: np.ndarray
    data: bytes
    format: Optional[ImageFormat] = None
    orientation: int = UPRIGHT

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0]) if self.pixels.ndim >= 2 else 0

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1]) if self.pixels.ndim >= 2 else 0

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return self.width, self.height

    @property
    def is_upright(self) -> bool:
        return self.orientation == UPRIGHT

    def __repr__(self) -> str:
        """Compact repr that doesn't dump pixel data."""
        fmt = self.format.value if self.format else None
        return (
            f"RawImage({self.width}x{self.height}, format={fmt}, "
            f"orientation={self.orientation}, bytes={len(self.data)})"
        )
