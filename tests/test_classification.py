"""
Score Classifier Tests

Boundaries scale with the project minimum threshold.
"""
import pytest

from qualityeval.engine import SatisfactionGrade, ScoreClassifier, ScoreLevel, classify_score


class TestDefaultThreshold:
    """minimum_threshold = 80: limits 2.75 / 5.0 / 8.75"""

    @pytest.mark.parametrize("score, level", [
        (0.0, ScoreLevel.UNACCEPTABLE),
        (2.74, ScoreLevel.UNACCEPTABLE),
        (2.75, ScoreLevel.MINIMALLY_ACCEPTABLE),
        (4.99, ScoreLevel.MINIMALLY_ACCEPTABLE),
        (5.0, ScoreLevel.TARGET_RANGE),
        (8.74, ScoreLevel.TARGET_RANGE),
        (8.75, ScoreLevel.EXCEEDS_REQUIREMENTS),
        (10.0, ScoreLevel.EXCEEDS_REQUIREMENTS),
    ])
    def test_score_level(self, score, level):
        assert classify_score(score, 80).score_level == level

    @pytest.mark.parametrize("score, grade", [
        (2.74, SatisfactionGrade.UNSATISFACTORY),
        (4.99, SatisfactionGrade.UNSATISFACTORY),
        (5.0, SatisfactionGrade.SATISFACTORY),
        (8.74, SatisfactionGrade.SATISFACTORY),
        (8.75, SatisfactionGrade.VERY_SATISFACTORY),
    ])
    def test_satisfaction_grade(self, score, grade):
        assert classify_score(score, 80).satisfaction_grade == grade

    def test_missing_threshold_uses_default(self):
        assert classify_score(8.75, None) == classify_score(8.75, 80)
        assert classify_score(2.74, None) == classify_score(2.74, 80)

    def test_zero_threshold_is_used_as_given(self):
        classification = classify_score(5, 0)
        assert classification.score_level == ScoreLevel.EXCEEDS_REQUIREMENTS
        assert classification.satisfaction_grade == SatisfactionGrade.VERY_SATISFACTORY
        assert classify_score(0, 0).score_level == ScoreLevel.EXCEEDS_REQUIREMENTS

    def test_to_dict(self):
        assert classify_score(8.75, 80).to_dict() == {
            "score_level": "Exceeds Requirements",
            "satisfaction_grade": "Very Satisfactory",
        }


class TestProportionalThreshold:

    def test_higher_threshold_is_stricter(self):
        # T = 9.0: limits 3.09375 / 5.625 / 9.84375
        result = classify_score(5.0, 90)
        assert result.score_level == ScoreLevel.MINIMALLY_ACCEPTABLE
        assert result.satisfaction_grade == SatisfactionGrade.UNSATISFACTORY

    def test_lower_threshold_is_looser(self):
        # T = 7.0: limits 2.40625 / 4.375 / 7.65625
        result = classify_score(7.7, 70)
        assert result.score_level == ScoreLevel.EXCEEDS_REQUIREMENTS
        assert result.satisfaction_grade == SatisfactionGrade.VERY_SATISFACTORY

    @pytest.mark.parametrize("threshold", [70, 80, 90])
    def test_boundaries_follow_each_threshold(self, threshold):
        t = threshold / 10
        classifier = ScoreClassifier()
        assert classifier.score_level(t * 0.34375 - 0.01, threshold) == ScoreLevel.UNACCEPTABLE
        assert classifier.score_level(t * 0.625, threshold) == ScoreLevel.TARGET_RANGE
        assert classifier.satisfaction_grade(t * 1.09375, threshold) == SatisfactionGrade.VERY_SATISFACTORY
        assert classifier.classify(6, threshold).score_level == ScoreLevel.TARGET_RANGE

    def test_levels_are_monotonic(self):
        classifier = ScoreClassifier()
        order = list(ScoreLevel)
        previous = 0
        for step in range(101):
            index = order.index(classifier.score_level(step / 10, 75))
            assert index >= previous
            previous = index
