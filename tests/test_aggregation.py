"""Aggregation Pipeline Tests"""
import pytest

from qualityeval.engine import AggregationPipeline, aggregate_criterion, aggregate_evaluation, aggregate_project
from qualityeval.errors import AggregationError


class TestCriterion:

    def test_mean_scaled_by_importance(self):
        assert aggregate_criterion([77.5], 30) == 23.25
        assert aggregate_criterion([10, 5], 50) == 3.75

    def test_rounded_half_up_to_two_decimals(self):
        # mean 8.25 * 0.5 = 4.125
        assert aggregate_criterion([9.0, 7.5], 50) == 4.13

    def test_missing_importance_counts_in_full(self):
        assert aggregate_criterion([6.0, 8.0], None) == 7.0

    def test_zero_importance(self):
        assert aggregate_criterion([6.0, 8.0], 0) == 0.0

    def test_empty(self):
        with pytest.raises(AggregationError):
            aggregate_criterion([], 50)


class TestEvaluation:

    def test_sum_of_criteria(self):
        assert aggregate_evaluation([20, 30, 25]) == 75

    def test_full_weights_sum_to_max(self):
        # Ten out of ten on every metric with weights summing to 100
        criteria = [aggregate_criterion([10.0], pct) for pct in (50, 30, 20)]
        assert aggregate_evaluation(criteria) == 10.0

    def test_empty(self):
        with pytest.raises(AggregationError):
            aggregate_evaluation([])


class TestProject:

    def test_mean_of_evaluations(self):
        assert aggregate_project([8.5, 5.0]) == 6.75

    def test_single_evaluation(self):
        assert aggregate_project([7.3]) == 7.3

    def test_empty(self):
        with pytest.raises(AggregationError):
            aggregate_project([])


def test_aggregation_is_idempotent():
    pipeline = AggregationPipeline()
    first = pipeline.criterion([9.0, 7.5, 6.0], 40)
    assert pipeline.criterion([9.0, 7.5, 6.0], 40) == first
    assert pipeline.evaluation([first, 4.0]) == pipeline.evaluation([first, 4.0])


def test_generators_are_accepted():
    assert aggregate_evaluation(x for x in (1.0, 2.0)) == 3.0
