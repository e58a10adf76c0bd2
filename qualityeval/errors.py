"""
Exception taxonomy for qualityeval.

Every error is deterministic for a given configuration: none of them is
retried. Callers recover by correcting the formula text, the threshold
strings, or by computing the lower levels of the hierarchy first.
"""

from typing import Dict, Optional


class QualityEvalError(Exception):
    """Base class for all qualityeval errors."""

    code = "QUALITYEVAL_ERROR"

    def __init__(self, message: str, context: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def to_dict(self) -> Dict:
        return {"code": self.code, "message": self.message, "context": self.context}


# =========================================================================
# Formula errors
# =========================================================================

class FormulaParseError(QualityEvalError):
    """The formula text cannot be turned into an arithmetic expression."""
    code = "FORMULA_PARSE_ERROR"


class EmptyFormulaError(FormulaParseError):
    code = "EMPTY_FORMULA"


class DisallowedTokenError(FormulaParseError):
    code = "DISALLOWED_TOKEN"


class UnboundVariableError(FormulaParseError):
    code = "UNBOUND_VARIABLE"


class InvalidCharacterError(FormulaParseError):
    code = "INVALID_CHARACTER"


class UnbalancedParenthesisError(FormulaParseError):
    code = "UNBALANCED_PARENTHESIS"


class UnexpectedEndError(FormulaParseError):
    code = "UNEXPECTED_END"


class EvaluationError(QualityEvalError):
    """The expression parsed but its value cannot be computed."""
    code = "EVALUATION_ERROR"


class DivisionByZeroError(EvaluationError):
    code = "DIVISION_BY_ZERO"


class NonFiniteResultError(EvaluationError):
    code = "NON_FINITE_RESULT"


# =========================================================================
# Threshold errors
# =========================================================================

class ThresholdParseError(QualityEvalError):
    """A threshold string does not match the threshold grammar."""
    code = "THRESHOLD_PARSE_ERROR"


class ThresholdClassificationError(QualityEvalError):
    """No scoring case matches a (desired, worst) pair in strict mode."""
    code = "THRESHOLD_CLASSIFICATION_ERROR"


# =========================================================================
# Aggregation / collaborator errors
# =========================================================================

class AggregationError(QualityEvalError):
    """A level of the hierarchy has no child results to aggregate."""
    code = "AGGREGATION_ERROR"


class RecordNotFoundError(QualityEvalError):
    code = "RECORD_NOT_FOUND"


class ConfigurationError(QualityEvalError):
    code = "CONFIGURATION_ERROR"
