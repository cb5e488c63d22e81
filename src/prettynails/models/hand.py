"""
Hand Models
===========

Keypoints, hand observations and nail regions produced by detection.

Coordinates:
    Keypoints are normalized to [0, 1] x [0, 1] with the origin at the
    top-left corner of the (upright) image. NailRegions are in pixels.
"""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class JointName(str, Enum):
    """
    Anatomical hand joints, in MediaPipe landmark order.

    Index in this enum equals the MediaPipe Hands landmark index.
    """

    WRIST = "wrist"
    THUMB_CMC = "thumb_cmc"
    THUMB_MCP = "thumb_mcp"
    THUMB_IP = "thumb_ip"
    THUMB_TIP = "thumb_tip"
    INDEX_MCP = "index_mcp"
    INDEX_PIP = "index_pip"
    INDEX_DIP = "index_dip"
    INDEX_TIP = "index_tip"
    MIDDLE_MCP = "middle_mcp"
    MIDDLE_PIP = "middle_pip"
    MIDDLE_DIP = "middle_dip"
    MIDDLE_TIP = "middle_tip"
    RING_MCP = "ring_mcp"
    RING_PIP = "ring_pip"
    RING_DIP = "ring_dip"
    RING_TIP = "ring_tip"
    LITTLE_MCP = "little_mcp"
    LITTLE_PIP = "little_pip"
    LITTLE_DIP = "little_dip"
    LITTLE_TIP = "little_tip"

    @property
    def is_fingertip(self) -> bool:
        return self in FINGERTIP_JOINTS


FINGERTIP_JOINTS = frozenset({
    JointName.THUMB_TIP,
    JointName.INDEX_TIP,
    JointName.MIDDLE_TIP,
    JointName.RING_TIP,
    JointName.LITTLE_TIP,
})


class Keypoint(BaseModel):
    """A single detected joint location."""

    model_config = ConfigDict(frozen=True)

    joint: JointName
    x: float = Field(..., ge=0.0, le=1.0, description="Normalized x (left to right)")
    y: float = Field(..., ge=0.0, le=1.0, description="Normalized y (top to bottom)")
    confidence: float = Field(..., ge=0.0, le=1.0)

    def to_pixels(self, width: int, height: int) -> Tuple[float, float]:
        """Project onto an image of the given size."""
        return self.x * width, self.y * height


class HandObservation(BaseModel):
    """
    One detected hand.

    Attributes:
        keypoints: Ordered keypoints reported for this hand
        handedness: "Left"/"Right" when the backend reports it
    """

    model_config = ConfigDict(frozen=True)

    keypoints: Tuple[Keypoint, ...] = ()
    handedness: Optional[str] = None

    def fingertips(self, min_confidence: float = 0.0) -> Tuple[Keypoint, ...]:
        """Fingertip keypoints at or above `min_confidence`."""
        return tuple(
            kp for kp in self.keypoints
            if kp.joint.is_fingertip and kp.confidence >= min_confidence
        )


class NailRegion(BaseModel):
    """Pixel rectangle around one fingertip, clamped to image bounds."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(..., ge=0)
    y: int = Field(..., ge=0)
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    joint: JointName
    confidence: float = Field(..., ge=0.0, le=1.0)

    @property
    def area(self) -> int:
        return self.width * self.height
