"""
Data Models
===========

Typed models shared across the PrettyNails pipeline.

Models:
    Image:
        - RawImage: Decoded pixels with encoded source and orientation
        - ImageFormat: Accepted encodings (JPEG, PNG)

    Hand:
        - JointName, Keypoint, HandObservation, NailRegion

    Design:
        - DesignCategory, DesignDescriptor

    Result:
        - ProcessingStatus, ProcessingResult, ProcessingRequest

    Quality:
        - QualityIssue, QualityLevel, QualityAnalysis

    Errors:
        - ErrorKind, PipelineError and subclasses
"""

from prettynails.models.image import ImageFormat, RawImage
from prettynails.models.hand import (
    FINGERTIP_JOINTS,
    HandObservation,
    JointName,
    Keypoint,
    NailRegion,
)
from prettynails.models.design import DesignCategory, DesignDescriptor
from prettynails.models.result import (
    InvalidTransitionError,
    ProcessingRequest,
    ProcessingResult,
    ProcessingStatus,
)
from prettynails.models.quality import QualityAnalysis, QualityIssue, QualityLevel
from prettynails.models.errors import ErrorKind, PipelineError

__all__ = [
    # Image
    "ImageFormat",
    "RawImage",
    # Hand
    "FINGERTIP_JOINTS",
    "JointName",
    "Keypoint",
    "HandObservation",
    "NailRegion",
    # Design
    "DesignCategory",
    "DesignDescriptor",
    # Result
    "ProcessingStatus",
    "ProcessingResult",
    "ProcessingRequest",
    "InvalidTransitionError",
    # Quality
    "QualityIssue",
    "QualityLevel",
    "QualityAnalysis",
    # Errors
    "ErrorKind",
    "PipelineError",
]
