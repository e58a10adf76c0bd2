"""
Threshold Classifier

Every metric carries two human-authored threshold strings: the desired value
and the worst case. Their shapes decide which scoring policy applies.

Threshold grammar:
    [operator] (numerator '/' denominator | number) [unit]

    operator: >=, <=, >, <, =
    unit:     min, seg, %

Examples: "1", "0 %", ">=15 seg", ">=10/20min", "0/1min", ">20 min"

Scoring cases (first match wins):
1. SIMPLE_BINARY            desired="1" or "0",  worst absent
2. RATIO_WITH_MIN_THRESHOLD desired=">=10/20min", worst="0/20min"
3. INVERSE_RATIO_WITH_MAX   desired="0/1min",    worst=">=10/1min"
4. TIME_THRESHOLD           desired="20min",     worst=">20 min"
5. ZERO_WITH_MAX_THRESHOLD  desired="0seg",      worst=">=15 seg"
6. PERCENTAGE_WITH_MAX      desired="0 %",       worst=">=10%"
7. NUMERIC_WITH_MAX         desired="1",         worst=">=4"
8. NUMERIC_WITH_MIN         desired="4",         worst="0"
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
import logging
import re

from qualityeval.config import get_config
from qualityeval.errors import ThresholdClassificationError, ThresholdParseError


logger = logging.getLogger(__name__)

_RATIO = re.compile(r"^(\d+(?:\.\d+)?)/(\d+(?:\.\d+)?)$")
_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")


class ThresholdCaseType(Enum):
    """Scoring policies selected by the (desired, worst) threshold pair."""
    SIMPLE_BINARY = "SIMPLE_BINARY"
    RATIO_WITH_MIN_THRESHOLD = "RATIO_WITH_MIN_THRESHOLD"
    INVERSE_RATIO_WITH_MAX = "INVERSE_RATIO_WITH_MAX"
    TIME_THRESHOLD = "TIME_THRESHOLD"
    ZERO_WITH_MAX_THRESHOLD = "ZERO_WITH_MAX_THRESHOLD"
    PERCENTAGE_WITH_MAX = "PERCENTAGE_WITH_MAX"
    NUMERIC_WITH_MAX = "NUMERIC_WITH_MAX"
    NUMERIC_WITH_MIN = "NUMERIC_WITH_MIN"


@dataclass(frozen=True)
class ParsedThreshold:
    """Structured form of one threshold string."""
    value: float
    operator: Optional[str] = None
    numerator: Optional[float] = None
    denominator: Optional[float] = None
    unit: Optional[str] = None

    @property
    def is_ratio(self) -> bool:
        return self.numerator is not None

    @property
    def reference(self) -> float:
        """Numerator for ratios, value otherwise."""
        return self.numerator if self.is_ratio else self.value

    def to_dict(self) -> Dict:
        return {
            "operator": self.operator,
            "value": self.value,
            "numerator": self.numerator,
            "denominator": self.denominator,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class ThresholdCase:
    """A classified threshold pair."""
    case_type: ThresholdCaseType
    desired: ParsedThreshold
    worst: Optional[ParsedThreshold] = None
    fallback: bool = False

    def to_dict(self) -> Dict:
        return {
            "case_type": self.case_type.value,
            "desired": self.desired.to_dict(),
            "worst": self.worst.to_dict() if self.worst else None,
            "fallback": self.fallback,
        }


# =========================================================================
# Decision table
# =========================================================================
# Predicates mirror the structural shape of each case. A numerator or
# denominator "present" means present and non-zero.

def _present(number: Optional[float]) -> bool:
    return number is not None and number != 0


def _is_simple_binary(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return w is None and d.value in (0, 1) and not d.unit


def _is_ratio_with_min(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return (
        w is not None
        and d.operator == ">="
        and _present(d.numerator)
        and _present(d.denominator)
        and bool(d.unit)
        and w.numerator == 0
    )


def _is_inverse_ratio(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return (
        w is not None
        and d.numerator == 0
        and _present(d.denominator)
        and w.operator == ">="
        and _present(w.numerator)
    )


def _is_time(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return (
        w is not None
        and not d.operator
        and d.unit == "min"
        and bool(w.operator)
        and w.unit == "min"
    )


def _is_zero_with_max(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return (
        w is not None
        and d.value == 0
        and d.unit == "seg"
        and w.operator == ">="
        and w.unit == "seg"
    )


def _is_percentage_with_max(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return (
        w is not None
        and d.value == 0
        and d.unit == "%"
        and w.operator == ">="
        and w.unit == "%"
    )


def _is_numeric_with_max(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return (
        w is not None
        and not d.operator
        and not d.unit
        and w.operator == ">="
        and not w.unit
    )


def _is_numeric_with_min(d: ParsedThreshold, w: Optional[ParsedThreshold]) -> bool:
    return (
        w is not None
        and not d.operator
        and not d.unit
        and w.value == 0
        and not w.unit
    )


CASE_RULES: List[Tuple[ThresholdCaseType, Callable]] = [
    (ThresholdCaseType.SIMPLE_BINARY, _is_simple_binary),
    (ThresholdCaseType.RATIO_WITH_MIN_THRESHOLD, _is_ratio_with_min),
    (ThresholdCaseType.INVERSE_RATIO_WITH_MAX, _is_inverse_ratio),
    (ThresholdCaseType.TIME_THRESHOLD, _is_time),
    (ThresholdCaseType.ZERO_WITH_MAX_THRESHOLD, _is_zero_with_max),
    (ThresholdCaseType.PERCENTAGE_WITH_MAX, _is_percentage_with_max),
    (ThresholdCaseType.NUMERIC_WITH_MAX, _is_numeric_with_max),
    (ThresholdCaseType.NUMERIC_WITH_MIN, _is_numeric_with_min),
]


class ThresholdClassifier:
    """
    Parse threshold strings and classify (desired, worst) pairs.

    Pipeline:
    1. Parse each present string into a ParsedThreshold
    2. Walk the decision table, first matching rule wins
    3. Fall back to SIMPLE_BINARY on the desired value (or raise when strict)
    """

    def __init__(self, config: Optional[Dict] = None, strict: Optional[bool] = None):
        config = config or get_config()
        operators = sorted(config["thresholds"]["operators"], key=len, reverse=True)
        units = sorted(config["thresholds"]["units"], key=len, reverse=True)
        self._operator_re = re.compile("^(" + "|".join(re.escape(o) for o in operators) + ")")
        self._unit_re = re.compile(r"\s*(" + "|".join(re.escape(u) for u in units) + r")\s*$")
        self.strict = config["scoring"]["strict_thresholds"] if strict is None else strict

    def parse(self, threshold: str) -> ParsedThreshold:
        """
        Parse a threshold string.

        Args:
            threshold: e.g. ">=10/20min", "0 %", "4"

        Returns:
            ParsedThreshold

        Raises:
            ThresholdParseError: empty or unparsable string
        """
        if threshold is None or not str(threshold).strip():
            raise ThresholdParseError("Threshold cannot be empty")

        text = str(threshold).strip()

        operator_match = self._operator_re.match(text)
        operator = operator_match.group(1) if operator_match else None
        rest = text[len(operator):].strip() if operator else text

        unit_match = self._unit_re.search(rest)
        unit = unit_match.group(1) if unit_match else None
        number_text = rest[:unit_match.start()] if unit_match else rest

        # "10 / 3", "10 /3" and "10/ 3" are all the same ratio
        number_text = re.sub(r"\s+", "", number_text)

        ratio_match = _RATIO.match(number_text)
        if ratio_match:
            numerator = float(ratio_match.group(1))
            denominator = float(ratio_match.group(2))
            if denominator == 0:
                raise ThresholdParseError(
                    f"Threshold ratio has a zero denominator: {threshold}",
                    {"threshold": threshold},
                )
            return ParsedThreshold(
                value=numerator / denominator,
                operator=operator,
                numerator=numerator,
                denominator=denominator,
                unit=unit,
            )

        if not _NUMBER.match(number_text):
            raise ThresholdParseError(
                f"Cannot parse threshold value: {threshold}",
                {"threshold": threshold},
            )

        return ParsedThreshold(value=float(number_text), operator=operator, unit=unit)

    def classify(self, desired: Optional[str], worst: Optional[str]) -> ThresholdCase:
        """
        Classify a (desired, worst) threshold pair into a scoring case.

        Args:
            desired: Desired threshold string, may be None
            worst: Worst-case threshold string, may be None

        Returns:
            ThresholdCase with both parsed structures
        """
        logger.debug(f'Classifying case: desired="{desired}", worst="{worst}"')

        parsed_desired = self.parse(desired) if _given(desired) else None
        parsed_worst = self.parse(worst) if _given(worst) else None

        if parsed_desired is not None:
            for case_type, rule in CASE_RULES:
                if rule(parsed_desired, parsed_worst):
                    logger.debug(f"Case type: {case_type.value}")
                    return ThresholdCase(case_type, parsed_desired, parsed_worst)

        if self.strict:
            raise ThresholdClassificationError(
                f'No scoring case matches desired="{desired}", worst="{worst}"',
                {"desired": desired, "worst": worst},
            )

        logger.warning(
            f'No specific case matched for desired="{desired}", worst="{worst}", '
            f"using SIMPLE_BINARY as default"
        )
        return ThresholdCase(
            ThresholdCaseType.SIMPLE_BINARY,
            parsed_desired or ParsedThreshold(value=1.0),
            None,
            fallback=True,
        )


def _given(threshold: Optional[str]) -> bool:
    return threshold is not None and str(threshold) != ""


_default_classifier: Optional[ThresholdClassifier] = None


def _classifier() -> ThresholdClassifier:
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = ThresholdClassifier()
    return _default_classifier


def parse_threshold(threshold: str) -> ParsedThreshold:
    """Parse a threshold string with the default configuration."""
    return _classifier().parse(threshold)


def classify_thresholds(desired: Optional[str], worst: Optional[str]) -> ThresholdCase:
    """Classify a threshold pair with the default configuration."""
    return _classifier().classify(desired, worst)
