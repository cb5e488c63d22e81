"""
Nail Mask Builder
=================

Single-channel masks confining generative edits to the nails.

Mask Layout:
    - Same height and width as the source image
    - Background 0 (black)
    - One filled disc of 255 (white) per fingertip keypoint whose
      confidence is at or above the mask threshold

No qualifying keypoints yields an all-black mask, never an error.
"""

import logging
from typing import Sequence

import cv2
import numpy as np

from prettynails.models.hand import HandObservation
from prettynails.models.image import RawImage


logger = logging.getLogger(__name__)


MASK_CONFIDENCE = 0.3
DISC_RADIUS_PX = 15


class MaskBuilder:
    """
    Renders fingertip discs into a binary mask.

    Attributes:
        min_confidence: Keypoints below this are left out of the mask
        radius: Disc radius in image pixels
    """

    def __init__(
        self,
        min_confidence: float = MASK_CONFIDENCE,
        radius: int = DISC_RADIUS_PX,
    ) -> None:
        self.min_confidence = min_confidence
        self.radius = radius

    def build_mask(
        self,
        image: RawImage,
        observations: Sequence[HandObservation],
    ) -> np.ndarray:
        """
        Build the nail mask for an image.

        Args:
            image: Image the observations were detected on
            observations: Detected hands

        Returns:
            Mask as np.ndarray (H, W), dtype=uint8, values 0 or 255
        """
        return self.build_for_size(image.width, image.height, observations)

    def build_for_size(
        self,
        width: int,
        height: int,
        observations: Sequence[HandObservation],
    ) -> np.ndarray:
        """Build a nail mask of the given pixel size."""
        mask = np.zeros((height, width), dtype=np.uint8)

        disc_count = 0
        for observation in observations:
            for kp in observation.fingertips(self.min_confidence):
                px, py = kp.to_pixels(width, height)
                cv2.circle(
                    mask,
                    (int(round(px)), int(round(py))),
                    self.radius,
                    255,
                    thickness=-1,
                )
                disc_count += 1

        logger.debug(f"Nail mask built: {disc_count} discs on {width}x{height}")
        return mask
