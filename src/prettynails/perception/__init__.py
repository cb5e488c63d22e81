"""
Perception Module
=================

Hand and fingertip detection for nail processing.

This module provides a black-box abstraction for hand-pose estimation.
The pipeline consumes ONLY HandObservation values, never backend internals.

Components:
    - HandDetector: Protocol for detection backends
    - StaticHandDetector: Deterministic detector for testing
    - MediaPipeHandDetector: MediaPipe Hands (production, optional extra)
    - fingertips / nail_regions: Threshold-filtered derived data
"""

from prettynails.perception.detector import (
    MASK_CONFIDENCE,
    QUALITY_CONFIDENCE,
    HandDetector,
    StaticHandDetector,
    detect_hands,
    fingertips,
    nail_regions,
)

__all__ = [
    "MASK_CONFIDENCE",
    "QUALITY_CONFIDENCE",
    "HandDetector",
    "StaticHandDetector",
    "detect_hands",
    "fingertips",
    "nail_regions",
]
