"""
Threshold Classifier Tests

Threshold grammar and the decision table of scoring cases.
"""
import pytest

from qualityeval.config import load_config
from qualityeval.engine import ThresholdCaseType, ThresholdClassifier, classify_thresholds, parse_threshold
from qualityeval.errors import ThresholdClassificationError, ThresholdParseError


class TestParse:

    def test_plain_number(self):
        parsed = parse_threshold("4")
        assert parsed.value == 4.0
        assert parsed.operator is None
        assert parsed.unit is None
        assert not parsed.is_ratio

    def test_operator_ratio_and_unit(self):
        parsed = parse_threshold(">=10/20min")
        assert parsed.operator == ">="
        assert parsed.numerator == 10
        assert parsed.denominator == 20
        assert parsed.value == 0.5
        assert parsed.unit == "min"
        assert parsed.reference == 10

    def test_whitespace_is_tolerated(self):
        assert parse_threshold(">= 15 seg") == parse_threshold(">=15seg")
        assert parse_threshold("10 / 20 min") == parse_threshold("10/20min")

    def test_percentage(self):
        parsed = parse_threshold("0 %")
        assert parsed.value == 0
        assert parsed.unit == "%"

    def test_two_char_operator_wins_over_one_char(self):
        assert parse_threshold("<=3").operator == "<="
        assert parse_threshold(">20 min").operator == ">"

    def test_decimal(self):
        assert parse_threshold("0.75").value == 0.75

    @pytest.mark.parametrize("text", ["", "   ", "abc", ">=", "1/0", "10/", "1..2"])
    def test_invalid(self, text):
        with pytest.raises(ThresholdParseError):
            parse_threshold(text)


class TestClassify:
    """One example pair per scoring case."""

    @pytest.mark.parametrize("desired, worst, expected", [
        ("1", None, ThresholdCaseType.SIMPLE_BINARY),
        ("0", None, ThresholdCaseType.SIMPLE_BINARY),
        (">=10/20min", "0/20min", ThresholdCaseType.RATIO_WITH_MIN_THRESHOLD),
        ("0/1min", ">=10/1min", ThresholdCaseType.INVERSE_RATIO_WITH_MAX),
        ("20min", ">20 min", ThresholdCaseType.TIME_THRESHOLD),
        ("0seg", ">=15 seg", ThresholdCaseType.ZERO_WITH_MAX_THRESHOLD),
        ("0 %", ">=10%", ThresholdCaseType.PERCENTAGE_WITH_MAX),
        ("1", ">=4", ThresholdCaseType.NUMERIC_WITH_MAX),
        ("4", "0", ThresholdCaseType.NUMERIC_WITH_MIN),
    ])
    def test_cases(self, desired, worst, expected):
        threshold_case = classify_thresholds(desired, worst)
        assert threshold_case.case_type == expected
        assert not threshold_case.fallback

    def test_empty_worst_means_absent(self):
        assert classify_thresholds("1", "").case_type == ThresholdCaseType.SIMPLE_BINARY

    def test_parsed_structures_are_returned(self):
        threshold_case = classify_thresholds(">=10/20min", "0/20min")
        assert threshold_case.desired.numerator == 10
        assert threshold_case.worst.numerator == 0
        assert threshold_case.to_dict()["case_type"] == "RATIO_WITH_MIN_THRESHOLD"

    def test_first_matching_rule_wins(self):
        # Also has the PERCENTAGE_WITH_MAX shape, which comes later in the table
        threshold_case = classify_thresholds("0/1%", ">=10/1%")
        assert threshold_case.case_type == ThresholdCaseType.INVERSE_RATIO_WITH_MAX


class TestFallback:

    def test_unmatched_pair_falls_back_to_simple_binary(self):
        threshold_case = classify_thresholds("5", None)
        assert threshold_case.case_type == ThresholdCaseType.SIMPLE_BINARY
        assert threshold_case.fallback
        assert threshold_case.desired.value == 5

    def test_missing_desired_falls_back(self):
        threshold_case = classify_thresholds(None, None)
        assert threshold_case.case_type == ThresholdCaseType.SIMPLE_BINARY
        assert threshold_case.fallback
        assert threshold_case.desired.value == 1.0

    def test_strict_mode_raises(self):
        classifier = ThresholdClassifier(strict=True)
        with pytest.raises(ThresholdClassificationError):
            classifier.classify("5", None)

    def test_strict_mode_from_config(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("scoring:\n  strict_thresholds: true\n")
        classifier = ThresholdClassifier(load_config(config_file))
        assert classifier.strict
        with pytest.raises(ThresholdClassificationError):
            classifier.classify("5", "7")

    def test_parse_errors_propagate(self):
        with pytest.raises(ThresholdParseError):
            classify_thresholds("abc", "0")
