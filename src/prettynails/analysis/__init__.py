"""
Analysis Module
===============

Photo suitability scoring.

Components:
    - QualityAnalyzer: Nail detection, resolution and format checks
      combined into a penalized score with recommendations
"""

from prettynails.analysis.quality import QualityAnalyzer

__all__ = [
    "QualityAnalyzer",
]
