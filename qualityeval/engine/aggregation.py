"""
Aggregation Pipeline

Rolls scores up the evaluation hierarchy:

    criterion  = mean(metric weighted values) * importance% / 100
    evaluation = sum(criterion final scores)
    project    = mean(evaluation scores)

The evaluation level is a sum, not a mean: importance percentages of the
criteria of one evaluation add up to 100 and already carry the relative
weight of each criterion.
"""

from typing import Dict, Iterable, List, Optional
import logging

from qualityeval.config import get_config
from qualityeval.errors import AggregationError
from .rounding import round_half_up


logger = logging.getLogger(__name__)


class AggregationPipeline:
    """Pure aggregation steps over already computed child results."""

    def __init__(self, config: Optional[Dict] = None):
        config = config or get_config()
        self.decimals = config["scoring"]["aggregate_decimals"]

    def criterion(self, weighted_values: Iterable[float], importance_percentage: Optional[float]) -> float:
        """
        Final score of a criterion.

        Args:
            weighted_values: Weighted values of the criterion's metrics (0-10)
            importance_percentage: Criterion weight (0-100). None counts as 100.

        Returns:
            Criterion final score, rounded to 2 decimals
        """
        values = self._values(weighted_values, "No metric results to aggregate for criterion")
        multiplier = importance_percentage / 100 if importance_percentage is not None else 1.0

        average = sum(values) / len(values)
        score = round_half_up(average * multiplier, self.decimals)
        logger.debug(
            f"Criterion: avg_weighted={average}, importance={importance_percentage}%, final_score={score}"
        )
        return score

    def evaluation(self, criteria_final_scores: Iterable[float]) -> float:
        """Evaluation score: sum of its criteria final scores."""
        values = self._values(criteria_final_scores, "No criteria results to aggregate for evaluation")
        score = round_half_up(sum(values), self.decimals)
        logger.debug(f"Evaluation score (sum of {len(values)} criteria): {score}")
        return score

    def project(self, evaluation_scores: Iterable[float]) -> float:
        """Project score: mean of its evaluation scores."""
        values = self._values(evaluation_scores, "No evaluation results to aggregate for project")
        score = round_half_up(sum(values) / len(values), self.decimals)
        logger.debug(f"Project score (mean of {len(values)} evaluations): {score}")
        return score

    @staticmethod
    def _values(values: Iterable[float], message: str) -> List[float]:
        values = [float(v) for v in (values or [])]
        if not values:
            raise AggregationError(message)
        return values


_default_pipeline: Optional[AggregationPipeline] = None


def _pipeline() -> AggregationPipeline:
    global _default_pipeline
    if _default_pipeline is None:
        _default_pipeline = AggregationPipeline()
    return _default_pipeline


def aggregate_criterion(weighted_values: Iterable[float], importance_percentage: Optional[float]) -> float:
    return _pipeline().criterion(weighted_values, importance_percentage)


def aggregate_evaluation(criteria_final_scores: Iterable[float]) -> float:
    return _pipeline().evaluation(criteria_final_scores)


def aggregate_project(evaluation_scores: Iterable[float]) -> float:
    return _pipeline().project(evaluation_scores)
