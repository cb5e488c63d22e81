"""
Test Configuration
==================

Pytest fixtures and test configuration for PrettyNails.

Images are synthesized with OpenCV; hand detection is replaced by
StaticHandDetector; the generation service is an httpx.MockTransport.
"""

import base64
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import cv2
import httpx
import numpy as np
import pytest

from prettynails.catalog.catalog import SAMPLE_DESIGNS
from prettynails.config import Settings
from prettynails.generation.credentials import InMemorySecretStore
from prettynails.models.hand import HandObservation, JointName, Keypoint


API_KEY = "test-api-key"


def _encode(pixels: np.ndarray, ext: str = ".jpg") -> bytes:
    ok, buffer = cv2.imencode(ext, pixels)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def make_pixels() -> Callable[..., np.ndarray]:
    """Factory for solid-color BGR pixel arrays."""
    def _make(width: int, height: int, color: Tuple[int, int, int] = (60, 90, 150)) -> np.ndarray:
        pixels = np.zeros((height, width, 3), dtype=np.uint8)
        pixels[:] = color
        return pixels
    return _make


@pytest.fixture
def make_image_bytes(make_pixels) -> Callable[..., bytes]:
    """Factory for encoded JPEG (default) or PNG images."""
    def _make(width: int = 512, height: int = 512, ext: str = ".jpg") -> bytes:
        return _encode(make_pixels(width, height), ext)
    return _make


@pytest.fixture
def jpeg_bytes(make_image_bytes) -> bytes:
    """A valid 512x512 JPEG."""
    return make_image_bytes(512, 512)


@pytest.fixture
def make_hand() -> Callable[..., HandObservation]:
    """
    Factory for a 21-keypoint hand.

    Joints are spread diagonally across the image; fingertips are at
    least 0.12 apart horizontally. `overrides` maps joints to
    (x, y, confidence).
    """
    def _make(
        confidence: float = 0.9,
        overrides: Optional[Dict[JointName, Tuple[float, float, float]]] = None,
        handedness: str = "Right",
    ) -> HandObservation:
        overrides = overrides or {}
        keypoints = []
        for index, joint in enumerate(JointName):
            x, y, conf = overrides.get(
                joint,
                (0.15 + 0.03 * index, 0.3 + 0.02 * index, confidence),
            )
            keypoints.append(Keypoint(joint=joint, x=x, y=y, confidence=conf))
        return HandObservation(keypoints=tuple(keypoints), handedness=handedness)
    return _make


@pytest.fixture
def hand(make_hand) -> HandObservation:
    """A confidently detected hand."""
    return make_hand()


@pytest.fixture
def design():
    """Classic Red sample design."""
    return SAMPLE_DESIGNS[0]


@pytest.fixture
def secret_store() -> InMemorySecretStore:
    """Secret store holding a generation API key."""
    return InMemorySecretStore({"gemini_api_key": API_KEY})


@pytest.fixture
def settings() -> Settings:
    """Default settings with the static detector backend."""
    return Settings.model_validate({"detection": {"backend": "static"}})


@pytest.fixture
def generated_png_b64(make_pixels) -> str:
    """Base64 PNG standing in for a generated image."""
    return base64.b64encode(_encode(make_pixels(64, 64, (20, 20, 200)), ".png")).decode("ascii")


@pytest.fixture
def success_body(generated_png_b64) -> dict:
    """Generation response with one safe candidate."""
    return {
        "candidates": [
            {
                "image": {"data": generated_png_b64, "mimeType": "image/png"},
                "finishReason": "STOP",
                "safetyRatings": [
                    {"category": "HARM_CATEGORY_HARASSMENT", "probability": "NEGLIGIBLE"},
                ],
            }
        ]
    }


class RecordingService:
    """
    Scripted generation service for httpx.MockTransport.

    Replays `responses` in order (the last one repeats) and records every
    request it receives.
    """

    def __init__(self, responses: Sequence) -> None:
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.responses)) - 1
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def make_service() -> Callable[..., RecordingService]:
    """Factory for RecordingService instances."""
    def _make(*responses) -> RecordingService:
        return RecordingService(responses)
    return _make


@pytest.fixture
def sleep_log():
    """Injected sleep for RetryPolicy that records requested delays."""
    delays: List[float] = []

    async def _sleep(delay: float) -> None:
        delays.append(delay)

    _sleep.delays = delays
    return _sleep
