"""
Quality Analyzer
================

Scores how suitable a hand photo is for nail-design processing.

Detected Issues (in discovery order):
    1. no_nails_detected  - no fingertip at >= 0.5 confidence
    2. low_resolution     - either side below 512px
    3. invalid_format     - image fails validation

Reserved Issues:
    blurry and poor_lighting carry penalties and recommendations but
    are not detected; no heuristic for them is implemented.
"""

import logging

from prettynails.imaging.validator import ImageValidator
from prettynails.models.image import RawImage
from prettynails.models.quality import ACCEPTABLE_SCORE, QualityAnalysis, QualityIssue
from prettynails.perception.detector import (
    QUALITY_CONFIDENCE,
    HandDetector,
    detect_hands,
    nail_regions,
)


logger = logging.getLogger(__name__)


class QualityAnalyzer:
    """
    Builds QualityAnalysis reports from detection and validation.

    Attributes:
        detector: Hand detector used for nail-area estimates
        validator: Validator used for the format check
        min_confidence: Fingertip threshold for nail areas
        min_resolution: Sides below this count as low resolution
        nail_region_size: Side of each nail area in pixels
        acceptable_score: Score at which a photo is acceptable
    """

    def __init__(
        self,
        detector: HandDetector,
        validator: ImageValidator,
        min_confidence: float = QUALITY_CONFIDENCE,
        min_resolution: int = 512,
        nail_region_size: int = 20,
        acceptable_score: float = ACCEPTABLE_SCORE,
    ) -> None:
        self.detector = detector
        self.validator = validator
        self.min_confidence = min_confidence
        self.min_resolution = min_resolution
        self.nail_region_size = nail_region_size
        self.acceptable_score = acceptable_score

    def analyze(self, image: RawImage) -> QualityAnalysis:
        """
        Score an image and list actionable recommendations.

        Args:
            image: Upright image to analyze

        Returns:
            QualityAnalysis with score, issues, nail areas and hints
        """
        issues = []

        observations = detect_hands(self.detector, image)
        nail_areas = nail_regions(
            observations,
            image.width,
            image.height,
            min_confidence=self.min_confidence,
            size=self.nail_region_size,
        )

        if not nail_areas:
            issues.append(QualityIssue.NO_NAILS_DETECTED)

        if image.width < self.min_resolution or image.height < self.min_resolution:
            issues.append(QualityIssue.LOW_RESOLUTION)

        if not self.validator.validate(image).is_valid:
            issues.append(QualityIssue.INVALID_FORMAT)

        analysis = QualityAnalysis.from_issues(
            issues,
            detected_nail_areas=nail_areas,
            acceptable_score=self.acceptable_score,
        )

        logger.info(
            f"Quality analysis: score={analysis.score:.2f}, "
            f"level={analysis.quality_level.value}, "
            f"nails={len(nail_areas)}, "
            f"issues={[issue.value for issue in analysis.issues]}"
        )
        return analysis
