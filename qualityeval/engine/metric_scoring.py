"""
Metric Scorer

Turns the measured variables of one metric into a (calculated_value,
weighted_value) pair. The threshold pair picks the scoring case; each case
has its own normalization onto the 0-10 scale (MAX_SCORE = 10):

| Case                     | calculated_value      | weighted_value                                  |
|--------------------------|-----------------------|-------------------------------------------------|
| SIMPLE_BINARY            | formula               | calc * 10                                       |
| RATIO_WITH_MIN_THRESHOLD | first variable A      | A >= D ? 10 : (A/D) * 10                        |
| INVERSE_RATIO_WITH_MAX   | first variable A      | A > W ? 0 : (1 - A/W) * 10                      |
| TIME_THRESHOLD           | formula               | calc > W ? 0 : (calc/D) * 10                    |
| ZERO_WITH_MAX_THRESHOLD  | formula               | calc > W ? 0 : (1 - calc/W) * 10                |
| PERCENTAGE_WITH_MAX      | single symbol/formula | calc >= W ? 0 : calc == 1 ? 10 : (1-calc/W)*10  |
| NUMERIC_WITH_MAX         | single symbol/formula | calc >= W ? 0 : calc == D ? 10 : (1-calc/W)*10  |
| NUMERIC_WITH_MIN         | single symbol/formula | calc == W ? 0 : calc >= D ? 10 : (calc/D) * 10  |

D is the desired numerator (ratios) or value, W the worst numerator or value.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging
import re

from qualityeval.config import get_config
from qualityeval.errors import DivisionByZeroError, EvaluationError
from .formula import FormulaEvaluator, VariableBinding, VariablesInput, normalize_variables
from .rounding import round_half_up
from .thresholds import ThresholdCase, ThresholdCaseType, ThresholdClassifier


logger = logging.getLogger(__name__)

_SINGLE_SYMBOL = re.compile(r"^[A-Za-z]$")


@dataclass(frozen=True)
class MetricScore:
    """Score of one metric for one evaluation."""
    calculated_value: float
    weighted_value: float
    case_type: ThresholdCaseType = ThresholdCaseType.SIMPLE_BINARY
    trace: Dict = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict:
        return {
            "calculated_value": self.calculated_value,
            "weighted_value": self.weighted_value,
            "case_type": self.case_type.value,
            "trace": dict(self.trace),
        }


class MetricScorer:
    """
    Score a metric according to its threshold case.

    Usage:
        scorer = MetricScorer(FormulaEvaluator(), ThresholdClassifier())
        score = scorer.score("A", {"A": 3}, "4", "0")   # weighted_value 7.5
    """

    def __init__(
        self,
        formula_evaluator: Optional[FormulaEvaluator] = None,
        threshold_classifier: Optional[ThresholdClassifier] = None,
        config: Optional[Dict] = None,
    ):
        config = config or get_config()
        self.formula_evaluator = formula_evaluator or FormulaEvaluator(config)
        self.threshold_classifier = threshold_classifier or ThresholdClassifier(config)

        scoring = config["scoring"]
        self.max_score = float(scoring["max_score"])
        self.clamp = scoring["clamp_weighted_value"]
        self.decimals = scoring["metric_decimals"]

        self._handlers: Dict[ThresholdCaseType, Callable] = {
            ThresholdCaseType.SIMPLE_BINARY: self._simple_binary,
            ThresholdCaseType.RATIO_WITH_MIN_THRESHOLD: self._ratio_with_min_threshold,
            ThresholdCaseType.INVERSE_RATIO_WITH_MAX: self._inverse_ratio_with_max,
            ThresholdCaseType.TIME_THRESHOLD: self._time_threshold,
            ThresholdCaseType.ZERO_WITH_MAX_THRESHOLD: self._zero_with_max_threshold,
            ThresholdCaseType.PERCENTAGE_WITH_MAX: self._percentage_with_max,
            ThresholdCaseType.NUMERIC_WITH_MAX: self._numeric_with_max,
            ThresholdCaseType.NUMERIC_WITH_MIN: self._numeric_with_min,
        }
        unhandled = set(ThresholdCaseType) - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No scoring handler for: {sorted(c.value for c in unhandled)}")

    def score(
        self,
        formula: str,
        variables: VariablesInput,
        desired_threshold: Optional[str],
        worst_case: Optional[str],
    ) -> MetricScore:
        """
        Calculate calculated_value and weighted_value for a metric.

        Args:
            formula: Metric formula, e.g. "(A/B)*100"
            variables: Measured variable values
            desired_threshold: Desired threshold string (may be None)
            worst_case: Worst-case threshold string (may be None)

        Returns:
            MetricScore
        """
        logger.debug(f"Calculating score for formula: {formula}")
        logger.debug(f"Desired: {desired_threshold}, Worst: {worst_case}")

        threshold_case = self.threshold_classifier.classify(desired_threshold, worst_case)
        return self.score_case(threshold_case, formula, variables)

    def score_case(
        self,
        threshold_case: ThresholdCase,
        formula: str,
        variables: VariablesInput,
    ) -> MetricScore:
        """Score a metric whose threshold pair is already classified."""
        bindings = normalize_variables(variables)
        handler = self._handlers[threshold_case.case_type]

        trace = {"case_type": threshold_case.case_type.value, "fallback": threshold_case.fallback}
        calculated, weighted = handler(formula, bindings, threshold_case, trace)

        raw_weighted = weighted
        if self.clamp:
            weighted = min(max(weighted, 0.0), self.max_score)
        trace["clamped"] = weighted != raw_weighted

        calculated = round_half_up(calculated, self.decimals)
        weighted = round_half_up(weighted, self.decimals)

        logger.debug(
            f"[{threshold_case.case_type.value}] calculated={calculated}, weighted={weighted}"
        )
        return MetricScore(
            calculated_value=calculated,
            weighted_value=weighted,
            case_type=threshold_case.case_type,
            trace=trace,
        )

    # =========================================================================
    # CASE 1: SIMPLE_BINARY
    # =========================================================================
    def _simple_binary(self, formula, bindings, threshold_case, trace):
        calculated = self.formula_evaluator.evaluate(formula, bindings)
        return calculated, calculated * self.max_score

    # =========================================================================
    # CASE 2: RATIO_WITH_MIN_THRESHOLD
    # The denominator is fixed by the formula, only A is measured.
    # =========================================================================
    def _ratio_with_min_threshold(self, formula, bindings, threshold_case, trace):
        a = self._first_value(bindings)
        d = threshold_case.desired.numerator
        trace.update({"A": a, "D": d})

        if a >= d:
            return a, self.max_score
        return a, self._divide(a, d, "desired numerator") * self.max_score

    # =========================================================================
    # CASE 3: INVERSE_RATIO_WITH_MAX
    # =========================================================================
    def _inverse_ratio_with_max(self, formula, bindings, threshold_case, trace):
        a = self._first_value(bindings)
        w = threshold_case.worst.numerator
        trace.update({"A": a, "W": w})

        if a > w:
            return a, 0.0
        return a, (1 - self._divide(a, w, "worst numerator")) * self.max_score

    # =========================================================================
    # CASE 4: TIME_THRESHOLD
    # =========================================================================
    def _time_threshold(self, formula, bindings, threshold_case, trace):
        calculated = self.formula_evaluator.evaluate(formula, bindings)
        d = threshold_case.desired.value
        w = threshold_case.worst.value
        trace.update({"D": d, "W": w})

        if calculated > w:
            return calculated, 0.0
        return calculated, self._divide(calculated, d, "desired value") * self.max_score

    # =========================================================================
    # CASE 5: ZERO_WITH_MAX_THRESHOLD
    # =========================================================================
    def _zero_with_max_threshold(self, formula, bindings, threshold_case, trace):
        calculated = self.formula_evaluator.evaluate(formula, bindings)
        w = threshold_case.worst.value
        trace.update({"W": w})

        if calculated > w:
            return calculated, 0.0
        return calculated, (1 - self._divide(calculated, w, "worst value")) * self.max_score

    # =========================================================================
    # CASE 6: PERCENTAGE_WITH_MAX
    # =========================================================================
    def _percentage_with_max(self, formula, bindings, threshold_case, trace):
        calculated = self._single_or_evaluate(formula, bindings, trace)
        w = threshold_case.worst.value
        trace.update({"W": w})

        if calculated >= w:
            return calculated, 0.0
        if calculated == 1:
            return calculated, self.max_score
        return calculated, (1 - self._divide(calculated, w, "worst value")) * self.max_score

    # =========================================================================
    # CASE 7: NUMERIC_WITH_MAX
    # =========================================================================
    def _numeric_with_max(self, formula, bindings, threshold_case, trace):
        calculated = self._single_or_evaluate(formula, bindings, trace)
        d = threshold_case.desired.value
        w = threshold_case.worst.value
        trace.update({"D": d, "W": w})

        if calculated >= w:
            return calculated, 0.0
        if calculated == d:
            return calculated, self.max_score
        return calculated, (1 - self._divide(calculated, w, "worst value")) * self.max_score

    # =========================================================================
    # CASE 8: NUMERIC_WITH_MIN
    # =========================================================================
    def _numeric_with_min(self, formula, bindings, threshold_case, trace):
        calculated = self._single_or_evaluate(formula, bindings, trace)
        d = threshold_case.desired.value
        w = threshold_case.worst.value
        trace.update({"D": d, "W": w})

        if calculated == w:
            return calculated, 0.0
        if calculated >= d:
            return calculated, self.max_score
        return calculated, self._divide(calculated, d, "desired value") * self.max_score

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _first_value(bindings: List[VariableBinding]) -> float:
        if not bindings:
            raise EvaluationError("No variables provided")
        return float(bindings[0].value)

    def _single_or_evaluate(self, formula: str, bindings: List[VariableBinding], trace: Dict) -> float:
        """Use the bound value directly when the formula is just that symbol."""
        stripped = (formula or "").strip()
        if _SINGLE_SYMBOL.match(stripped) and len(bindings) == 1 and bindings[0].symbol == stripped:
            trace["shortcut"] = True
            return float(bindings[0].value)
        trace["shortcut"] = False
        return self.formula_evaluator.evaluate(formula, bindings)

    @staticmethod
    def _divide(numerator: float, denominator: float, label: str) -> float:
        if denominator == 0:
            raise DivisionByZeroError(
                f"Cannot normalize against a {label} of zero",
                {"numerator": numerator},
            )
        return numerator / denominator


_default_scorer: Optional[MetricScorer] = None


def score_metric(
    formula: str,
    variables: VariablesInput,
    desired_threshold: Optional[str],
    worst_case: Optional[str],
) -> MetricScore:
    """Score a metric with the default evaluator and classifier."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = MetricScorer()
    return _default_scorer.score(formula, variables, desired_threshold, worst_case)
