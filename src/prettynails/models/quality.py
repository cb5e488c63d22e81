"""
Quality Analysis Models
=======================

Suitability scoring for hand photos.

Scoring:
    score = max(0, 1 - sum(penalty(issue) for issue in issues))

    noNailsDetected  0.5
    invalidFormat    0.3
    lowResolution    0.2
    blurry           0.2
    poorLighting     0.1

Tiers:
    [0.8, 1.0] excellent, [0.6, 0.8) good, [0.4, 0.6) fair, else poor.
"""

from enum import Enum
from typing import Iterable, Tuple

from pydantic import BaseModel, ConfigDict, Field

from prettynails.models.hand import NailRegion


ACCEPTABLE_SCORE = 0.6


class QualityIssue(str, Enum):
    """
    Problems that lower a photo's suitability.

    BLURRY and POOR_LIGHTING are reserved: they carry a penalty and a
    recommendation but no detector reports them yet.
    """

    NO_NAILS_DETECTED = "no_nails_detected"
    LOW_RESOLUTION = "low_resolution"
    INVALID_FORMAT = "invalid_format"
    POOR_LIGHTING = "poor_lighting"
    BLURRY = "blurry"

    @property
    def penalty(self) -> float:
        return _PENALTIES[self]

    @property
    def priority(self) -> int:
        """Lower is more important."""
        return _PRIORITIES[self]

    @property
    def recommendation(self) -> str:
        return _RECOMMENDATIONS[self]


_PENALTIES = {
    QualityIssue.NO_NAILS_DETECTED: 0.5,
    QualityIssue.INVALID_FORMAT: 0.3,
    QualityIssue.LOW_RESOLUTION: 0.2,
    QualityIssue.BLURRY: 0.2,
    QualityIssue.POOR_LIGHTING: 0.1,
}

_PRIORITIES = {
    QualityIssue.NO_NAILS_DETECTED: 1,
    QualityIssue.INVALID_FORMAT: 2,
    QualityIssue.LOW_RESOLUTION: 3,
    QualityIssue.BLURRY: 4,
    QualityIssue.POOR_LIGHTING: 5,
}

_RECOMMENDATIONS = {
    QualityIssue.NO_NAILS_DETECTED: "Ensure your hands are clearly visible in the photo",
    QualityIssue.LOW_RESOLUTION: "Use a higher resolution camera or move closer to your hands",
    QualityIssue.INVALID_FORMAT: "Please use a JPEG or PNG image",
    QualityIssue.POOR_LIGHTING: "Take the photo in better lighting conditions",
    QualityIssue.BLURRY: "Hold the camera steady when taking the photo",
}


class QualityLevel(str, Enum):
    """Coarse quality tiers for display."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def from_score(cls, score: float) -> "QualityLevel":
        if score >= 0.8:
            return cls.EXCELLENT
        if score >= 0.6:
            return cls.GOOD
        if score >= 0.4:
            return cls.FAIR
        return cls.POOR


def score_issues(issues: Iterable[QualityIssue]) -> float:
    """Apply per-issue penalties to a perfect score, clamped to [0, 1]."""
    score = 1.0 - sum(issue.penalty for issue in issues)
    # Rounded so tier boundaries are not missed by float drift
    return round(min(1.0, max(0.0, score)), 6)


class QualityAnalysis(BaseModel):
    """
    Derived suitability report for one image.

    Attributes:
        score: Suitability in [0, 1]
        issues: Issues in discovery order
        detected_nail_areas: Nail regions found at the quality threshold
        recommendations: One fixed hint per issue, in issue order
    """

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0.0, le=1.0)
    issues: Tuple[QualityIssue, ...] = ()
    detected_nail_areas: Tuple[NailRegion, ...] = ()
    recommendations: Tuple[str, ...] = ()
    acceptable_score: float = Field(default=ACCEPTABLE_SCORE, ge=0.0, le=1.0)

    @classmethod
    def from_issues(
        cls,
        issues: Iterable[QualityIssue],
        detected_nail_areas: Iterable[NailRegion] = (),
        acceptable_score: float = ACCEPTABLE_SCORE,
    ) -> "QualityAnalysis":
        """Build an analysis, deriving score and recommendations from issues."""
        ordered = tuple(dict.fromkeys(issues))
        return cls(
            score=score_issues(ordered),
            issues=ordered,
            detected_nail_areas=tuple(detected_nail_areas),
            recommendations=tuple(issue.recommendation for issue in ordered),
            acceptable_score=acceptable_score,
        )

    @property
    def is_acceptable(self) -> bool:
        return self.score >= self.acceptable_score

    @property
    def quality_level(self) -> QualityLevel:
        return QualityLevel.from_score(self.score)

    @property
    def most_important_issue(self):
        """Highest-priority issue, or None for a clean photo."""
        if not self.issues:
            return None
        return min(self.issues, key=lambda issue: issue.priority)
