"""
Pipeline Errors
===============

Typed error taxonomy for the processing pipeline.

Every failure inside the pipeline is expressed as a PipelineError subclass
carrying a machine-readable ErrorKind. The orchestrator converts these into
failed ProcessingResult records; nothing escapes past it.

Rules:
    - One kind per cause
    - Retryability is a property of the kind, not of the call site
    - Messages are human-readable and safe to show to end users
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """
    Machine-readable failure codes.

    Attributes:
        INVALID_IMAGE: Dimension, size, format or decode check failed
        NO_HANDS_DETECTED: Detector found no hands in a valid image
        MISSING_CREDENTIAL: API key absent or rejected by the service
        TRANSPORT_ERROR: Network, DNS or timeout failure
        QUOTA_EXCEEDED: Service rate limit hit (HTTP 429)
        SERVER_ERROR: HTTP 5xx or an error envelope in the response
        NO_IMAGE_GENERATED: Successful response without a usable image
        CONTENT_FILTERED: Safety rating blocked the generated image
        DECODE_ERROR: Response payload could not be decoded
        INVALID_RESPONSE: Any other unexpected HTTP status
        PROCESSING_FAILED: Unexpected internal failure
        CANCELLED: Caller cancelled the request
    """

    INVALID_IMAGE = "invalid_image"
    NO_HANDS_DETECTED = "no_hands_detected"
    MISSING_CREDENTIAL = "missing_credential"
    TRANSPORT_ERROR = "transport_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    SERVER_ERROR = "server_error"
    NO_IMAGE_GENERATED = "no_image_generated"
    CONTENT_FILTERED = "content_filtered"
    DECODE_ERROR = "decode_error"
    INVALID_RESPONSE = "invalid_response"
    PROCESSING_FAILED = "processing_failed"
    CANCELLED = "cancelled"


RETRYABLE_KINDS = frozenset({
    ErrorKind.TRANSPORT_ERROR,
    ErrorKind.QUOTA_EXCEEDED,
    ErrorKind.SERVER_ERROR,
})


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    kind: ErrorKind = ErrorKind.PROCESSING_FAILED
    default_message: str = "Failed to process the image"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        """Whether a caller-level retry may help."""
        return self.kind in RETRYABLE_KINDS

    @property
    def requires_settings(self) -> bool:
        """Whether the user must fix their credential before retrying."""
        return self.kind == ErrorKind.MISSING_CREDENTIAL


class InvalidImageError(PipelineError):
    kind = ErrorKind.INVALID_IMAGE
    default_message = "The selected image is not valid"


class NoHandsDetectedError(PipelineError):
    kind = ErrorKind.NO_HANDS_DETECTED
    default_message = (
        "No hands detected in the image. "
        "Please use a photo showing your hands clearly."
    )


class MissingCredentialError(PipelineError):
    kind = ErrorKind.MISSING_CREDENTIAL
    default_message = "API key is missing or invalid. Please check your settings."


class TransportError(PipelineError):
    kind = ErrorKind.TRANSPORT_ERROR
    default_message = "Network connection error. Please check your internet connection."


class QuotaExceededError(PipelineError):
    kind = ErrorKind.QUOTA_EXCEEDED
    default_message = "API quota exceeded. Please wait a moment and try again."


class ServerError(PipelineError):
    kind = ErrorKind.SERVER_ERROR
    default_message = "The image generation service reported an error"


class NoImageGeneratedError(PipelineError):
    kind = ErrorKind.NO_IMAGE_GENERATED
    default_message = "No image was generated"


class ContentFilteredError(PipelineError):
    kind = ErrorKind.CONTENT_FILTERED
    default_message = (
        "The generated image was withheld by the service's safety filter, "
        "so no result could be produced. Try a different photo."
    )


class DecodeError(PipelineError):
    kind = ErrorKind.DECODE_ERROR
    default_message = "Invalid response from server"


class InvalidResponseError(PipelineError):
    kind = ErrorKind.INVALID_RESPONSE
    default_message = "Unexpected response from server"


class ProcessingFailedError(PipelineError):
    kind = ErrorKind.PROCESSING_FAILED
