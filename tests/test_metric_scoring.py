"""
Metric Scorer Tests

Each scoring case normalizes onto the 0-10 scale.
"""
import pytest

from qualityeval.config import load_config
from qualityeval.engine import MetricScorer, ThresholdCaseType, score_metric
from qualityeval.errors import DivisionByZeroError, EvaluationError, UnboundVariableError


class TestSimpleBinary:

    def test_ratio_formula(self):
        score = score_metric("A/B", {"A": 3, "B": 4}, "1", None)
        assert score.case_type == ThresholdCaseType.SIMPLE_BINARY
        assert score.calculated_value == 0.75
        assert score.weighted_value == 7.5

    def test_full_compliance(self):
        score = score_metric("A/B", {"A": 10, "B": 10}, "1", None)
        assert score.weighted_value == 10.0

    def test_fallback_is_traced(self):
        score = score_metric("A", {"A": 0.5}, "7", None)
        assert score.case_type == ThresholdCaseType.SIMPLE_BINARY
        assert score.trace["fallback"] is True
        assert score.weighted_value == 5.0


class TestRatioWithMinThreshold:
    """desired >=10/20min, worst 0/20min: only the numerator is measured."""

    def test_at_or_above_desired(self):
        score = score_metric("A/20", {"A": 12}, ">=10/20min", "0/20min")
        assert score.case_type == ThresholdCaseType.RATIO_WITH_MIN_THRESHOLD
        assert score.calculated_value == 12
        assert score.weighted_value == 10.0

    def test_below_desired(self):
        score = score_metric("A/20", {"A": 8}, ">=10/20min", "0/20min")
        assert score.calculated_value == 8
        assert score.weighted_value == 8.0

    def test_first_variable_is_used(self):
        score = score_metric("A/B", [("A", 5), ("B", 20)], ">=10/20min", "0/20min")
        assert score.weighted_value == 5.0

    def test_no_variables(self):
        with pytest.raises(EvaluationError):
            score_metric("A/20", {}, ">=10/20min", "0/20min")


class TestInverseRatioWithMax:

    def test_within_limit(self):
        score = score_metric("A", {"A": 3}, "0/1min", ">=10/1min")
        assert score.case_type == ThresholdCaseType.INVERSE_RATIO_WITH_MAX
        assert score.weighted_value == 7.0

    def test_at_limit(self):
        assert score_metric("A", {"A": 10}, "0/1min", ">=10/1min").weighted_value == 0.0

    def test_above_limit(self):
        assert score_metric("A", {"A": 12}, "0/1min", ">=10/1min").weighted_value == 0.0


class TestTimeThreshold:

    def test_proportional_to_desired(self):
        score = score_metric("A", {"A": 15}, "20min", ">20 min")
        assert score.case_type == ThresholdCaseType.TIME_THRESHOLD
        assert score.calculated_value == 15
        assert score.weighted_value == 7.5

    def test_over_worst(self):
        assert score_metric("A", {"A": 25}, "20min", ">20 min").weighted_value == 0.0

    def test_overshoot_is_clamped(self):
        # desired 10, worst 20: a value of 15 would weigh 15
        score = score_metric("A", {"A": 15}, "10min", ">20min")
        assert score.weighted_value == 10.0
        assert score.trace["clamped"] is True

    def test_overshoot_without_clamp(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("scoring:\n  clamp_weighted_value: false\n")
        scorer = MetricScorer(config=load_config(config_file))
        score = scorer.score("A", {"A": 15}, "10min", ">20min")
        assert score.weighted_value == 15.0
        assert score.trace["clamped"] is False


class TestZeroWithMaxThreshold:

    def test_within_limit(self):
        score = score_metric("A", {"A": 3}, "0seg", ">=15 seg")
        assert score.case_type == ThresholdCaseType.ZERO_WITH_MAX_THRESHOLD
        assert score.weighted_value == 8.0

    def test_zero_is_perfect(self):
        assert score_metric("A", {"A": 0}, "0seg", ">=15 seg").weighted_value == 10.0

    def test_over_limit(self):
        assert score_metric("A", {"A": 20}, "0seg", ">=15 seg").weighted_value == 0.0

    def test_zero_worst_value(self):
        with pytest.raises(DivisionByZeroError):
            score_metric("A", {"A": 0}, "0seg", ">=0seg")


class TestPercentageWithMax:

    def test_exactly_one(self):
        score = score_metric("A", {"A": 1}, "0 %", ">=10%")
        assert score.case_type == ThresholdCaseType.PERCENTAGE_WITH_MAX
        assert score.weighted_value == 10.0

    def test_proportional(self):
        assert score_metric("A", {"A": 5}, "0 %", ">=10%").weighted_value == 5.0

    def test_at_worst(self):
        assert score_metric("A", {"A": 10}, "0 %", ">=10%").weighted_value == 0.0

    def test_formula_is_evaluated(self):
        score = score_metric("(A/B)*100", {"A": 1, "B": 50}, "0 %", ">=10%")
        assert score.calculated_value == 2.0
        assert score.weighted_value == 8.0
        assert score.trace["shortcut"] is False


class TestNumericWithMax:

    def test_equal_to_desired(self):
        score = score_metric("A", {"A": 1}, "1", ">=4")
        assert score.case_type == ThresholdCaseType.NUMERIC_WITH_MAX
        assert score.weighted_value == 10.0

    def test_proportional(self):
        assert score_metric("A", {"A": 2}, "1", ">=4").weighted_value == 5.0

    def test_at_worst(self):
        assert score_metric("A", {"A": 4}, "1", ">=4").weighted_value == 0.0


class TestNumericWithMin:

    def test_proportional(self):
        score = score_metric("A", {"A": 3}, "4", "0")
        assert score.case_type == ThresholdCaseType.NUMERIC_WITH_MIN
        assert score.calculated_value == 3
        assert score.weighted_value == 7.5

    def test_at_or_above_desired(self):
        assert score_metric("A", {"A": 4}, "4", "0").weighted_value == 10.0
        assert score_metric("A", {"A": 6}, "4", "0").weighted_value == 10.0

    def test_equal_to_worst(self):
        assert score_metric("A", {"A": 0}, "4", "0").weighted_value == 0.0

    def test_zero_desired_value(self):
        with pytest.raises(DivisionByZeroError):
            score_metric("A", {"A": -1}, "0", "0")

    def test_single_symbol_shortcut(self):
        score = score_metric("A", {"A": 3}, "4", "0")
        assert score.trace["shortcut"] is True

    def test_shortcut_requires_matching_symbol(self):
        with pytest.raises(UnboundVariableError):
            score_metric("A", {"B": 3}, "4", "0")

    def test_compound_formula(self):
        score = score_metric("A*2", {"A": 1.5}, "4", "0")
        assert score.calculated_value == 3.0
        assert score.weighted_value == 7.5
        assert score.trace["shortcut"] is False


class TestBounds:

    def test_simple_binary_above_one_is_clamped(self):
        score = score_metric("A", {"A": 1.2}, "1", None)
        assert score.calculated_value == 1.2
        assert score.weighted_value == 10.0

    def test_negative_weight_is_clamped(self):
        assert score_metric("A", {"A": -0.5}, "1", None).weighted_value == 0.0

    @pytest.mark.parametrize("value", [0, 0.3, 1, 2.5, 3.99, 4, 100])
    def test_weighted_value_in_range(self, value):
        weighted = score_metric("A", {"A": value}, "1", ">=4").weighted_value
        assert 0.0 <= weighted <= 10.0

    def test_to_dict(self):
        payload = score_metric("A", {"A": 3}, "4", "0").to_dict()
        assert payload["case_type"] == "NUMERIC_WITH_MIN"
        assert payload["weighted_value"] == 7.5
