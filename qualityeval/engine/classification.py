"""
Score Classifier

Maps a 0-10 score to a qualitative score level and satisfaction grade.
Boundaries are not fixed: they scale with the project's minimum threshold
(a percentage, converted to the 0-10 scale by dividing by 10).

For minimum_threshold = 80 (T = 8.0):

    score level:        < 2.75 Unacceptable
                        < 5.00 Minimally Acceptable
                        < 8.75 Target Range
                        else   Exceeds Requirements

    satisfaction grade: < 5.00 Unsatisfactory
                        < 8.75 Satisfactory
                        else   Very Satisfactory
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
import logging

from qualityeval.config import get_config


logger = logging.getLogger(__name__)


class ScoreLevel(Enum):
    UNACCEPTABLE = "Unacceptable"
    MINIMALLY_ACCEPTABLE = "Minimally Acceptable"
    TARGET_RANGE = "Target Range"
    EXCEEDS_REQUIREMENTS = "Exceeds Requirements"


class SatisfactionGrade(Enum):
    UNSATISFACTORY = "Unsatisfactory"
    SATISFACTORY = "Satisfactory"
    VERY_SATISFACTORY = "Very Satisfactory"


@dataclass(frozen=True)
class ScoreClassification:
    score_level: ScoreLevel
    satisfaction_grade: SatisfactionGrade

    def to_dict(self) -> Dict:
        return {
            "score_level": self.score_level.value,
            "satisfaction_grade": self.satisfaction_grade.value,
        }


class ScoreClassifier:
    """Threshold-proportional classification of final scores."""

    def __init__(self, config: Optional[Dict] = None):
        config = config or get_config()
        classification = config["classification"]
        self.default_minimum_threshold = classification["default_minimum_threshold"]
        self.level_multipliers = classification["score_level"]
        self.grade_multipliers = classification["satisfaction_grade"]

    def _scaled_threshold(self, minimum_threshold: Optional[float]) -> float:
        if minimum_threshold is None:
            minimum_threshold = self.default_minimum_threshold
        return minimum_threshold / 10

    def score_level(self, score: float, minimum_threshold: Optional[float]) -> ScoreLevel:
        """
        Score level for a 0-10 score.

        Args:
            score: Score on the 0-10 scale (e.g. 8.5)
            minimum_threshold: Project minimum threshold as a percentage (e.g. 80)

        Returns:
            ScoreLevel
        """
        t = self._scaled_threshold(minimum_threshold)
        unacceptable = t * self.level_multipliers["unacceptable"]
        minimally_acceptable = t * self.level_multipliers["minimally_acceptable"]
        target_range = t * self.level_multipliers["target_range"]

        logger.debug(
            f"Adaptive limits: unacceptable<{unacceptable:.2f}, "
            f"minimallyAcceptable<{minimally_acceptable:.2f}, targetRange<{target_range:.2f}"
        )

        if score < unacceptable:
            return ScoreLevel.UNACCEPTABLE
        if score < minimally_acceptable:
            return ScoreLevel.MINIMALLY_ACCEPTABLE
        if score < target_range:
            return ScoreLevel.TARGET_RANGE
        return ScoreLevel.EXCEEDS_REQUIREMENTS

    def satisfaction_grade(self, score: float, minimum_threshold: Optional[float]) -> SatisfactionGrade:
        """Satisfaction grade for a 0-10 score."""
        t = self._scaled_threshold(minimum_threshold)
        unsatisfactory = t * self.grade_multipliers["unsatisfactory"]
        satisfactory = t * self.grade_multipliers["satisfactory"]

        if score < unsatisfactory:
            return SatisfactionGrade.UNSATISFACTORY
        if score < satisfactory:
            return SatisfactionGrade.SATISFACTORY
        return SatisfactionGrade.VERY_SATISFACTORY

    def classify(self, score: float, minimum_threshold: Optional[float]) -> ScoreClassification:
        result = ScoreClassification(
            score_level=self.score_level(score, minimum_threshold),
            satisfaction_grade=self.satisfaction_grade(score, minimum_threshold),
        )
        logger.debug(
            f"Classified score={score} threshold={minimum_threshold}%: "
            f"{result.score_level.value} / {result.satisfaction_grade.value}"
        )
        return result


_default_classifier: Optional[ScoreClassifier] = None


def classify_score(score: float, minimum_threshold: Optional[float]) -> ScoreClassification:
    """Classify a score with the default configuration."""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = ScoreClassifier()
    return _default_classifier.classify(score, minimum_threshold)
