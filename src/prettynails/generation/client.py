"""
Generation Client
=================

Async client for the remote image-generation service.

This client:
    - Resolves the API credential from a SecretStore
    - Downscales and JPEG-compresses the image (and optional mask)
    - POSTs the request with bearer auth and a fixed timeout
    - Maps transport failures and HTTP statuses onto PipelineError kinds
    - Decodes the first candidate's image and applies the safety gate

HTTP Status Mapping:
    2xx  -> decode response envelope
    401  -> MissingCredentialError (key rejected)
    429  -> QuotaExceededError
    5xx  -> ServerError
    else -> InvalidResponseError

Design Rules:
    - No retries here; see RetryPolicy for the caller-level policy
    - Cancellation propagates and closes the in-flight request
    - The safety gate runs after decoding: an image may be returned by the
      service and still be rejected
"""

import asyncio
import base64
import binascii
import logging
from typing import Optional

import httpx
import numpy as np
from pydantic import ValidationError

from prettynails.generation.credentials import SecretStore
from prettynails.imaging.codec import compress_jpeg, decode_image, encode_pixels
from prettynails.imaging.normalizer import ImageNormalizer
from prettynails.models.errors import (
    ContentFilteredError,
    DecodeError,
    InvalidImageError,
    InvalidResponseError,
    MissingCredentialError,
    NoImageGeneratedError,
    QuotaExceededError,
    ServerError,
    TransportError,
)
from prettynails.models.generation import (
    GenerationRequest,
    GenerationResponse,
    ImagePayload,
)
from prettynails.models.image import ImageFormat, RawImage


logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_ENDPOINT = "/models/imagen-3.0-generate-001:generateImage"
DEFAULT_CREDENTIAL_KEY = "gemini_api_key"


class GenerationClient:
    """
    Client for the image-generation service.

    Attributes:
        secret_store: Source of the API credential
        url: Full endpoint URL
        credential_key: Secret store key of the credential
        timeout: Request timeout in seconds
        jpeg_quality: Upload compression quality (1-100)
    """

    def __init__(
        self,
        secret_store: SecretStore,
        base_url: str = DEFAULT_BASE_URL,
        endpoint: str = DEFAULT_ENDPOINT,
        credential_key: str = DEFAULT_CREDENTIAL_KEY,
        timeout: float = 30.0,
        jpeg_quality: int = 80,
        max_dimension: int = 2048,
        user_agent: str = "PrettyNails/1.0",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            secret_store: Store holding the API credential
            base_url: Service base URL
            endpoint: Generation endpoint path
            credential_key: Key of the credential in the store
            timeout: Request timeout in seconds
            jpeg_quality: JPEG quality for uploads
            max_dimension: Uploads are downscaled to fit this
            user_agent: User-Agent header value
            transport: Optional httpx transport (tests, proxies)
        """
        self.secret_store = secret_store
        self.url = f"{base_url.rstrip('/')}{endpoint}"
        self.credential_key = credential_key
        self.timeout = timeout
        self.jpeg_quality = jpeg_quality
        self.user_agent = user_agent
        self._transport = transport
        self._optimizer = ImageNormalizer(max_dimension=max_dimension)

        self._request_count = 0
        self._error_count = 0

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        image: RawImage,
        mask: Optional[np.ndarray] = None,
    ) -> RawImage:
        """
        Generate an edited image.

        Args:
            prompt: Edit instruction
            image: Source image (upright)
            mask: Optional single-channel mask, same size as image

        Returns:
            Decoded generated image

        Raises:
            PipelineError: One of the mapped error kinds
        """
        api_key = self.secret_store.get(self.credential_key)
        if not api_key:
            raise MissingCredentialError()

        request = self.build_request(prompt, image, mask)
        content = await self._post(request.to_json_body(), api_key)
        return self.parse_response(content)

    def build_request(
        self,
        prompt: str,
        image: RawImage,
        mask: Optional[np.ndarray] = None,
    ) -> GenerationRequest:
        """Compress inputs and assemble the request body."""
        optimized = self._optimizer.downscale_to_limit(image)
        image_bytes = compress_jpeg(optimized, self.jpeg_quality)

        mask_payload = None
        if mask is not None:
            mask_bytes = encode_pixels(mask, ImageFormat.JPEG, self.jpeg_quality)
            mask_payload = ImagePayload.from_bytes(mask_bytes, ImageFormat.JPEG.mime_type)

        return GenerationRequest(
            prompt=prompt,
            image=ImagePayload.from_bytes(image_bytes, ImageFormat.JPEG.mime_type),
            mask=mask_payload,
        )

    def parse_response(self, content: bytes) -> RawImage:
        """
        Decode a 2xx response body into the generated image.

        Raises:
            DecodeError: Body or image payload is malformed
            ServerError: Envelope carries an error object
            NoImageGeneratedError: No candidate image
            ContentFilteredError: First candidate rated HIGH for safety
        """
        try:
            envelope = GenerationResponse.model_validate_json(content)
        except ValidationError as e:
            logger.error(
                f"Malformed generation response: {e.error_count()} error(s), "
                f"body={content[:200]!r}"
            )
            raise DecodeError()

        if envelope.error is not None:
            logger.error(
                f"Generation service error: code={envelope.error.code}, "
                f"status={envelope.error.status}, message={envelope.error.message}"
            )
            raise ServerError(
                f"The image generation service reported an error: "
                f"{envelope.error.message or envelope.error.status or envelope.error.code}"
            )

        candidate = envelope.candidates[0] if envelope.candidates else None
        if candidate is None or candidate.image is None or not candidate.image.data:
            raise NoImageGeneratedError()

        try:
            raw = base64.b64decode(candidate.image.data, validate=True)
            generated = decode_image(raw)
        except (binascii.Error, ValueError, InvalidImageError) as e:
            logger.error(f"Generated image payload could not be decoded: {e}")
            raise DecodeError("The generated image could not be decoded")

        if candidate.is_blocked:
            logger.warning("Generated image withheld: HIGH safety rating")
            raise ContentFilteredError()

        return generated

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _post(self, payload: dict, api_key: str) -> bytes:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {api_key}",
            "User-Agent": self.user_agent,
        }

        self._request_count += 1
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        except asyncio.CancelledError:
            logger.info("Generation request cancelled")
            raise
        except httpx.TimeoutException as e:
            self._error_count += 1
            logger.warning(f"Generation request timed out: {e}")
            raise TransportError(
                f"The request timed out after {self.timeout:.0f}s. "
                "Please check your internet connection."
            )
        except httpx.HTTPError as e:
            self._error_count += 1
            logger.warning(f"Generation request failed: {e}")
            raise TransportError(f"Network error: {e}")

        self._raise_for_status(response)
        return response.content

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        self._error_count += 1
        logger.warning(f"Generation service returned HTTP {status}")

        if status == 401:
            raise MissingCredentialError(
                "The API key was rejected. Please check your settings."
            )
        if status == 429:
            raise QuotaExceededError()
        if 500 <= status < 600:
            raise ServerError(f"The image generation service failed (HTTP {status})")
        raise InvalidResponseError(f"Unexpected response from server (HTTP {status})")

    def get_metrics(self) -> dict:
        """Get client metrics for observability."""
        return {
            "request_count": self._request_count,
            "error_count": self._error_count,
        }
