"""
Image Normalizer
================

Orientation fix, downscaling, enhancement and hand-region cropping.

Every operation takes and returns a RawImage, is independently callable,
and is idempotent. Enhancement and cropping are best-effort: a failure is
logged and the input image is passed through unchanged.

Enhancement Pipeline (in order):
    1. Exposure boost     pixels * 2^EV              (EV = +0.2)
    2. Saturation         HSV S channel * factor     (factor = 1.1)
    3. Unsharp mask       img + k * (img - blur)     (k = 0.5)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from prettynails.imaging.codec import image_from_pixels
from prettynails.models.errors import PipelineError
from prettynails.models.hand import HandObservation
from prettynails.models.image import ImageFormat, RawImage


logger = logging.getLogger(__name__)


# (x0, y0, x1, y1) in pixels, exclusive of x1/y1
Box = Tuple[int, int, int, int]


def _reencode(image: RawImage, pixels: np.ndarray) -> RawImage:
    """Build an upright RawImage from new pixels, keeping the source format."""
    return image_from_pixels(pixels, image.format or ImageFormat.JPEG, quality=95)


def apply_orientation(pixels: np.ndarray, orientation: int) -> np.ndarray:
    """Transform stored pixels so an EXIF-tagged image displays upright."""
    if orientation == 2:
        return cv2.flip(pixels, 1)
    if orientation == 3:
        return cv2.rotate(pixels, cv2.ROTATE_180)
    if orientation == 4:
        return cv2.flip(pixels, 0)
    if orientation == 5:
        return cv2.transpose(pixels)
    if orientation == 6:
        return cv2.rotate(pixels, cv2.ROTATE_90_CLOCKWISE)
    if orientation == 7:
        return cv2.rotate(cv2.transpose(pixels), cv2.ROTATE_180)
    if orientation == 8:
        return cv2.rotate(pixels, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return pixels


def hand_bounds(
    width: int,
    height: int,
    observations: Sequence[HandObservation],
    min_confidence: float = 0.3,
    padding: float = 0.1,
) -> Optional[Box]:
    """
    Union bounding box of all confident keypoints, padded and clamped.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        observations: Detected hands
        min_confidence: Keypoints must be strictly above this
        padding: Expansion per side as a fraction of the box size

    Returns:
        Pixel box, or None when no keypoint qualifies
    """
    xs = []
    ys = []
    for observation in observations:
        for kp in observation.keypoints:
            if kp.confidence > min_confidence:
                xs.append(kp.x * width)
                ys.append(kp.y * height)

    if not xs:
        return None

    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    pad_x = (max_x - min_x) * padding
    pad_y = (max_y - min_y) * padding

    x0 = max(0, int(np.floor(min_x - pad_x)))
    y0 = max(0, int(np.floor(min_y - pad_y)))
    x1 = min(width, int(np.ceil(max_x + pad_x)))
    y1 = min(height, int(np.ceil(max_y + pad_y)))

    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def crop_pixels(pixels: np.ndarray, box: Box) -> np.ndarray:
    x0, y0, x1, y1 = box
    return np.ascontiguousarray(pixels[y0:y1, x0:x1])


@dataclass(frozen=True)
class PreparedImage:
    """Image ready for generation plus the crop applied to it, if any."""

    image: RawImage
    crop_box: Optional[Box] = None
    # (width, height) before cropping
    source_size: Optional[Tuple[int, int]] = None


class ImageNormalizer:
    """
    Normalizes and optimizes images ahead of generation.

    Attributes:
        max_dimension: Downscale limit for either side
        exposure_ev: Exposure boost in EV
        saturation: Saturation multiplier
        sharpen_intensity: Unsharp mask strength
        sharpen_radius: Gaussian sigma for the unsharp mask
        crop_confidence: Keypoint threshold for hand crops
        crop_padding: Fractional expansion of the hand box
        enhance_enabled: Apply enhancement in prepare_for_generation
        crop_enabled: Apply hand crop in prepare_for_generation
    """

    def __init__(
        self,
        max_dimension: int = 2048,
        exposure_ev: float = 0.2,
        saturation: float = 1.1,
        sharpen_intensity: float = 0.5,
        sharpen_radius: float = 2.5,
        crop_confidence: float = 0.3,
        crop_padding: float = 0.1,
        enhance_enabled: bool = False,
        crop_enabled: bool = False,
    ) -> None:
        self.max_dimension = max_dimension
        self.exposure_ev = exposure_ev
        self.saturation = saturation
        self.sharpen_intensity = sharpen_intensity
        self.sharpen_radius = sharpen_radius
        self.crop_confidence = crop_confidence
        self.crop_padding = crop_padding
        self.enhance_enabled = enhance_enabled
        self.crop_enabled = crop_enabled

    # -------------------------------------------------------------------------
    # Orientation and size
    # -------------------------------------------------------------------------

    def normalize_orientation(self, image: RawImage) -> RawImage:
        """Bake EXIF orientation into the pixels; no-op when upright."""
        if image.is_upright:
            return image

        pixels = apply_orientation(image.pixels, image.orientation)
        logger.debug(f"Applied EXIF orientation {image.orientation}")
        return _reencode(image, pixels)

    def downscale_to_limit(self, image: RawImage) -> RawImage:
        """Uniformly shrink so both sides fit max_dimension; never upscales."""
        width, height = image.size
        if width <= self.max_dimension and height <= self.max_dimension:
            return image

        scale = min(self.max_dimension / width, self.max_dimension / height)
        new_size = (
            max(1, min(self.max_dimension, int(round(width * scale)))),
            max(1, min(self.max_dimension, int(round(height * scale)))),
        )
        pixels = cv2.resize(image.pixels, new_size, interpolation=cv2.INTER_AREA)
        logger.info(f"Downscaled image {width}x{height} -> {new_size[0]}x{new_size[1]}")
        return _reencode(image, pixels)

    # -------------------------------------------------------------------------
    # Enhancement
    # -------------------------------------------------------------------------

    def _adjust_exposure(self, pixels: np.ndarray) -> np.ndarray:
        gain = 2.0 ** self.exposure_ev
        return np.clip(pixels.astype(np.float32) * gain, 0, 255).astype(np.uint8)

    def _adjust_saturation(self, pixels: np.ndarray) -> np.ndarray:
        hsv = cv2.cvtColor(pixels, cv2.COLOR_BGR2HSV).astype(np.float32)
        hsv[..., 1] = np.clip(hsv[..., 1] * self.saturation, 0, 255)
        return cv2.cvtColor(hsv.astype(np.uint8), cv2.COLOR_HSV2BGR)

    def _unsharp_mask(self, pixels: np.ndarray) -> np.ndarray:
        blurred = cv2.GaussianBlur(pixels, (0, 0), self.sharpen_radius)
        return cv2.addWeighted(
            pixels, 1.0 + self.sharpen_intensity,
            blurred, -self.sharpen_intensity,
            0,
        )

    def enhance(self, image: RawImage) -> RawImage:
        """
        Apply exposure, saturation and sharpening.

        Any stage failure returns the pre-enhancement image unchanged.
        """
        try:
            pixels = self._adjust_exposure(image.pixels)
            pixels = self._adjust_saturation(pixels)
            pixels = self._unsharp_mask(pixels)
            return _reencode(image, pixels)
        except (cv2.error, ValueError, TypeError, PipelineError) as e:
            logger.warning(f"Enhancement skipped, using original image: {e}")
            return image

    # -------------------------------------------------------------------------
    # Cropping
    # -------------------------------------------------------------------------

    def hand_bounds(
        self,
        image: RawImage,
        observations: Sequence[HandObservation],
    ) -> Optional[Box]:
        return hand_bounds(
            image.width,
            image.height,
            observations,
            min_confidence=self.crop_confidence,
            padding=self.crop_padding,
        )

    def crop_to_hands(
        self,
        image: RawImage,
        observations: Sequence[HandObservation],
    ) -> RawImage:
        """Crop to the padded union of hand keypoints; unchanged without hands."""
        box = self.hand_bounds(image, observations)
        if box is None:
            return image

        try:
            return _reencode(image, crop_pixels(image.pixels, box))
        except (cv2.error, ValueError, PipelineError) as e:
            logger.warning(f"Hand crop skipped, using full image: {e}")
            return image

    # -------------------------------------------------------------------------
    # Pipeline entry
    # -------------------------------------------------------------------------

    def prepare_for_generation(
        self,
        image: RawImage,
        observations: Sequence[HandObservation] = (),
    ) -> PreparedImage:
        """
        Orientation fix and downscale, plus optional enhancement and crop.

        Keypoints are normalized, so they stay valid across the uniform
        downscale and can drive the crop afterwards.
        """
        prepared = self.downscale_to_limit(self.normalize_orientation(image))

        if self.enhance_enabled:
            prepared = self.enhance(prepared)

        source_size = prepared.size

        box = None
        if self.crop_enabled:
            box = self.hand_bounds(prepared, observations)
            if box is not None:
                cropped = self.crop_to_hands(prepared, observations)
                if cropped is prepared:
                    box = None
                prepared = cropped

        return PreparedImage(image=prepared, crop_box=box, source_size=source_size)
