"""
Hand Detector
=============

Pluggable hand-pose abstraction for fingertip and nail detection.

This module provides the HandDetector protocol, a deterministic
StaticHandDetector, and helpers that turn observations into fingertips
and nail regions.

Design Rules:
    - Detection failure is a data outcome: an empty list, never an exception
    - Keypoints are normalized with a top-left origin
    - Consumers choose their own confidence threshold
      (0.3 for masks and crops, 0.5 for quality estimates)
"""

import logging
from typing import List, Protocol, Sequence

from prettynails.models.hand import HandObservation, Keypoint, NailRegion
from prettynails.models.image import RawImage


logger = logging.getLogger(__name__)


MASK_CONFIDENCE = 0.3
QUALITY_CONFIDENCE = 0.5


class HandDetector(Protocol):
    """
    Protocol for hand-pose backends.

    Implementations:
        - StaticHandDetector (testing, demos)
        - MediaPipeHandDetector (production)
    """

    def detect(self, image: RawImage) -> List[HandObservation]:
        """
        Detect hands in an upright image.

        Args:
            image: Image to analyze

        Returns:
            Zero or more hand observations
        """
        ...


class StaticHandDetector:
    """
    Deterministic detector returning a fixed set of observations.

    Used to substitute pose estimation in tests and offline runs. An image
    without pixels still yields no hands, matching real backends.
    """

    def __init__(self, observations: Sequence[HandObservation] = ()) -> None:
        self.observations = list(observations)
        self.call_count = 0

    def detect(self, image: RawImage) -> List[HandObservation]:
        self.call_count += 1
        if image.width == 0 or image.height == 0:
            return []
        return list(self.observations)


def detect_hands(detector: HandDetector, image: RawImage) -> List[HandObservation]:
    """
    Run a detector, absorbing backend failures.

    Any exception from the backend is logged and reported as "no hands".
    """
    try:
        return list(detector.detect(image))
    except Exception as e:
        logger.error(f"Hand detection failed ({type(detector).__name__}): {e}")
        return []


def fingertips(
    observations: Sequence[HandObservation],
    min_confidence: float = MASK_CONFIDENCE,
) -> List[Keypoint]:
    """All fingertip keypoints at or above `min_confidence`, hand by hand."""
    return [
        kp
        for observation in observations
        for kp in observation.fingertips(min_confidence)
    ]


def nail_regions(
    observations: Sequence[HandObservation],
    width: int,
    height: int,
    min_confidence: float = QUALITY_CONFIDENCE,
    size: int = 20,
) -> List[NailRegion]:
    """
    Square nail regions centered on confident fingertips.

    Regions are clamped to the image; a region clamped to zero area is
    dropped.

    Args:
        observations: Detected hands
        width: Image width in pixels
        height: Image height in pixels
        min_confidence: Fingertip confidence threshold
        size: Side length of each region in pixels

    Returns:
        Nail regions in detection order
    """
    regions = []
    half = size / 2.0

    for kp in fingertips(observations, min_confidence):
        cx, cy = kp.to_pixels(width, height)
        x0 = min(max(0, int(round(cx - half))), width)
        y0 = min(max(0, int(round(cy - half))), height)
        x1 = min(max(0, int(round(cx + half))), width)
        y1 = min(max(0, int(round(cy + half))), height)

        if x1 <= x0 or y1 <= y0:
            continue

        regions.append(NailRegion(
            x=x0,
            y=y0,
            width=x1 - x0,
            height=y1 - y0,
            joint=kp.joint,
            confidence=kp.confidence,
        ))

    return regions
