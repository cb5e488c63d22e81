"""
PrettyNails
===========

Image-to-design processing pipeline for virtual nail try-on.

A user photographs their hand, picks a nail design, and receives an edited
photo with the design applied to their nails. This package provides the
processing core behind that flow.

Components:
    - imaging: Decoding, validation, normalization and nail masks
    - perception: Pluggable hand/fingertip detection
    - analysis: Photo quality scoring and recommendations
    - generation: Remote image-generation client, retry policy, secrets
    - catalog: Read-only nail design catalog
    - pipeline: LangGraph-driven orchestrator with batch support

Example:
    from prettynails.config import load_config
    from prettynails.generation import EnvironmentSecretStore
    from prettynails.pipeline import build_orchestrator

    settings = load_config()
    orchestrator = build_orchestrator(settings, EnvironmentSecretStore())
    result = await orchestrator.process(photo_bytes, design)
"""

__version__ = "0.1.0"
__author__ = "PrettyNails Project"

__all__ = [
    "__version__",
]
