"""
Quality Analysis Tests
======================

Scoring, tiers and the analyzer's issue detection.
"""

import itertools

import pytest

from prettynails.analysis.quality import QualityAnalyzer
from prettynails.imaging.codec import decode_image
from prettynails.imaging.validator import ImageValidator
from prettynails.models.image import RawImage
from prettynails.models.quality import (
    QualityAnalysis,
    QualityIssue,
    QualityLevel,
    score_issues,
)
from prettynails.perception.detector import StaticHandDetector


class TestScoring:
    """Penalty arithmetic."""

    def test_clean_photo_scores_one(self):
        assert score_issues([]) == 1.0

    @pytest.mark.parametrize("issue,expected", [
        (QualityIssue.NO_NAILS_DETECTED, 0.5),
        (QualityIssue.INVALID_FORMAT, 0.7),
        (QualityIssue.LOW_RESOLUTION, 0.8),
        (QualityIssue.BLURRY, 0.8),
        (QualityIssue.POOR_LIGHTING, 0.9),
    ])
    def test_single_issue_penalty(self, issue, expected):
        assert score_issues([issue]) == pytest.approx(expected)

    def test_clamped_at_zero(self):
        assert score_issues(list(QualityIssue)) == 0.0

    def test_adding_issues_never_raises_score(self):
        issues = list(QualityIssue)
        for size in range(len(issues)):
            for subset in itertools.combinations(issues, size):
                for extra in issues:
                    if extra in subset:
                        continue
                    assert score_issues(subset + (extra,)) <= score_issues(subset)


class TestQualityLevel:

    @pytest.mark.parametrize("score,level", [
        (1.0, QualityLevel.EXCELLENT),
        (0.8, QualityLevel.EXCELLENT),
        (0.79, QualityLevel.GOOD),
        (0.6, QualityLevel.GOOD),
        (0.4, QualityLevel.FAIR),
        (0.39, QualityLevel.POOR),
        (0.0, QualityLevel.POOR),
    ])
    def test_tier_boundaries(self, score, level):
        assert QualityLevel.from_score(score) == level


class TestQualityAnalysis:

    def test_from_issues_dedupes_in_order(self):
        analysis = QualityAnalysis.from_issues([
            QualityIssue.LOW_RESOLUTION,
            QualityIssue.NO_NAILS_DETECTED,
            QualityIssue.LOW_RESOLUTION,
        ])
        assert analysis.issues == (QualityIssue.LOW_RESOLUTION, QualityIssue.NO_NAILS_DETECTED)
        assert analysis.score == pytest.approx(0.3)
        assert analysis.recommendations == (
            "Use a higher resolution camera or move closer to your hands",
            "Ensure your hands are clearly visible in the photo",
        )

    def test_acceptability_threshold(self):
        assert QualityAnalysis.from_issues([QualityIssue.LOW_RESOLUTION]).is_acceptable
        assert QualityAnalysis.from_issues([QualityIssue.INVALID_FORMAT]).is_acceptable
        assert not QualityAnalysis.from_issues([QualityIssue.NO_NAILS_DETECTED]).is_acceptable

    def test_most_important_issue(self):
        analysis = QualityAnalysis.from_issues([
            QualityIssue.POOR_LIGHTING,
            QualityIssue.INVALID_FORMAT,
        ])
        assert analysis.most_important_issue == QualityIssue.INVALID_FORMAT
        assert QualityAnalysis.from_issues([]).most_important_issue is None

    def test_reserved_issues_penalized_when_present(self):
        analysis = QualityAnalysis.from_issues([QualityIssue.BLURRY, QualityIssue.POOR_LIGHTING])
        assert analysis.score == pytest.approx(0.7)
        assert analysis.quality_level == QualityLevel.GOOD


class TestQualityAnalyzer:

    def _analyzer(self, observations=()):
        return QualityAnalyzer(StaticHandDetector(observations), ImageValidator())

    def test_good_photo(self, make_image_bytes, hand):
        analysis = self._analyzer([hand]).analyze(decode_image(make_image_bytes(600, 600)))
        assert analysis.issues == ()
        assert analysis.score == 1.0
        assert analysis.quality_level == QualityLevel.EXCELLENT
        assert len(analysis.detected_nail_areas) == 5

    def test_no_hands_and_low_resolution(self, make_image_bytes):
        analysis = self._analyzer().analyze(decode_image(make_image_bytes(300, 300)))
        assert analysis.issues == (
            QualityIssue.NO_NAILS_DETECTED,
            QualityIssue.LOW_RESOLUTION,
        )
        assert analysis.score == pytest.approx(0.3)
        assert analysis.quality_level == QualityLevel.POOR
        assert not analysis.is_acceptable

    def test_low_confidence_tips_count_as_no_nails(self, make_image_bytes, make_hand):
        analyzer = self._analyzer([make_hand(confidence=0.45)])
        analysis = analyzer.analyze(decode_image(make_image_bytes(600, 600)))
        assert analysis.issues == (QualityIssue.NO_NAILS_DETECTED,)
        assert analysis.detected_nail_areas == ()

    def test_invalid_format(self, make_pixels, hand):
        image = RawImage(pixels=make_pixels(600, 600), data=b"GIF89a" + b"\x00" * 16)
        analysis = self._analyzer([hand]).analyze(image)
        assert analysis.issues == (QualityIssue.INVALID_FORMAT,)
        assert analysis.score == pytest.approx(0.7)
        assert analysis.recommendations == ("Please use a JPEG or PNG image",)
