"""
Generation Service Wire Models
==============================

Pydantic schemas for the remote image-generation service.

Request Contract:
    {
        "prompt": "Apply this nail design ...",
        "image": {"data": "<base64>", "mimeType": "image/jpeg"},
        "mask": {"data": "<base64>", "mimeType": "image/jpeg"},   (optional)
        "numImages": 1,
        "aspectRatio": "1:1",
        "safetySettings": [
            {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
            ...
        ]
    }

Response Contract:
    {
        "candidates": [
            {
                "image": {"data": "<base64>", "mimeType": "image/png"},
                "finishReason": "STOP",
                "safetyRatings": [{"category": "...", "probability": "NEGLIGIBLE"}]
            }
        ],
        "error": {"code": 400, "message": "...", "status": "INVALID_ARGUMENT"}
    }
"""

import base64
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
HIGH_PROBABILITY = "HIGH"

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_HARASSMENT",
)


class ImagePayload(BaseModel):
    """Base64 image with its mime type."""

    model_config = ConfigDict(populate_by_name=True)

    data: Optional[str] = None
    mime_type: str = Field(default="image/jpeg", alias="mimeType")

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str = "image/jpeg") -> "ImagePayload":
        return cls(data=base64.b64encode(raw).decode("ascii"), mime_type=mime_type)


class SafetySetting(BaseModel):
    category: str
    threshold: str = BLOCK_MEDIUM_AND_ABOVE


class GenerationRequest(BaseModel):
    """Request body for one image-generation call."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    image: ImagePayload
    mask: Optional[ImagePayload] = None
    num_images: int = Field(default=1, alias="numImages")
    aspect_ratio: str = Field(default="1:1", alias="aspectRatio")
    safety_settings: List[SafetySetting] = Field(
        default_factory=lambda: [SafetySetting(category=c) for c in SAFETY_CATEGORIES],
        alias="safetySettings",
    )

    def to_json_body(self) -> dict:
        """Serialize with wire field names, omitting an absent mask."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SafetyRating(BaseModel):
    category: str
    probability: str


class Candidate(BaseModel):
    """One generated image with its safety assessment."""

    model_config = ConfigDict(populate_by_name=True)

    image: Optional[ImagePayload] = None
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")
    safety_ratings: Optional[List[SafetyRating]] = Field(default=None, alias="safetyRatings")

    @property
    def is_blocked(self) -> bool:
        return any(r.probability == HIGH_PROBABILITY for r in self.safety_ratings or ())


class ServiceError(BaseModel):
    code: int = 0
    message: str = ""
    status: str = ""


class GenerationResponse(BaseModel):
    """Response envelope from the generation service."""

    candidates: Optional[List[Candidate]] = None
    error: Optional[ServiceError] = None
