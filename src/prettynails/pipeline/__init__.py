"""
Pipeline Module
===============

Orchestration of the image-to-design processing pipeline.

Components:
    - ProcessingGraph: LangGraph workflow for a single image
    - ProcessingOrchestrator: Result lifecycle, cancellation, batches
    - build_orchestrator / create_detector: Wiring from Settings
"""

from prettynails.pipeline.graph import PROMPT_TEMPLATE, ProcessingGraph, build_prompt
from prettynails.pipeline.orchestrator import (
    ProcessingOrchestrator,
    build_orchestrator,
    create_detector,
)

__all__ = [
    "PROMPT_TEMPLATE",
    "ProcessingGraph",
    "build_prompt",
    "ProcessingOrchestrator",
    "build_orchestrator",
    "create_detector",
]
