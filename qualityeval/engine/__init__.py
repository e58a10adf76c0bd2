"""
qualityeval scoring engine

Pure, synchronous components composed leaves first:
1. Formula Evaluator    - safe arithmetic over measured variables
2. Threshold Classifier - threshold grammar and the eight scoring cases
3. Metric Scorer        - (calculated_value, weighted_value) per case
4. Aggregation Pipeline - metric -> criterion -> evaluation -> project
5. Score Classifier     - threshold-proportional levels and grades
"""

from .formula import (
    FormulaEvaluator,
    VariableBinding,
    evaluate_formula,
    find_missing_variables,
    normalize_variables,
)
from .thresholds import (
    ParsedThreshold,
    ThresholdCase,
    ThresholdCaseType,
    ThresholdClassifier,
    classify_thresholds,
    parse_threshold,
)
from .metric_scoring import MetricScore, MetricScorer, score_metric
from .aggregation import (
    AggregationPipeline,
    aggregate_criterion,
    aggregate_evaluation,
    aggregate_project,
)
from .classification import (
    SatisfactionGrade,
    ScoreClassification,
    ScoreClassifier,
    ScoreLevel,
    classify_score,
)

__all__ = [
    # Formula
    "FormulaEvaluator",
    "VariableBinding",
    "evaluate_formula",
    "find_missing_variables",
    "normalize_variables",

    # Thresholds
    "ParsedThreshold",
    "ThresholdCase",
    "ThresholdCaseType",
    "ThresholdClassifier",
    "classify_thresholds",
    "parse_threshold",

    # Metric scoring
    "MetricScore",
    "MetricScorer",
    "score_metric",

    # Aggregation
    "AggregationPipeline",
    "aggregate_criterion",
    "aggregate_evaluation",
    "aggregate_project",

    # Classification
    "SatisfactionGrade",
    "ScoreClassification",
    "ScoreClassifier",
    "ScoreLevel",
    "classify_score",
]
