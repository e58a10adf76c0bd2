"""
Evaluation calculation service

Drives the scoring engine over the records held by a ResultStore:

1. Metric results    - one per evaluation metric, from entered variables
2. Criteria results  - mean weighted value scaled by importance
3. Evaluation result - sum of criteria scores, classified against the
                       project's minimum threshold
4. Project result    - mean of evaluation scores

Every step reads the results persisted by the previous one, so a single
step can be recomputed on its own after values change.
"""

from typing import Any, Dict, List, Optional
import logging

from qualityeval.config import get_config
from qualityeval.engine import AggregationPipeline, MetricScorer, ScoreClassifier
from qualityeval.engine.rounding import round_half_up
from qualityeval.errors import AggregationError, EvaluationError, QualityEvalError
from qualityeval.models import (
    CriterionResult,
    EvaluationResult,
    EvaluationStatus,
    MetricResult,
    ProjectResult,
    ProjectStatus,
)
from qualityeval.store import ResultStore


logger = logging.getLogger(__name__)


class EvaluationCalculator:
    """
    Compute and persist results for evaluations and projects.

    Usage:
        store = ResultStore([project])
        store.save_variables(10, entries)
        calculator = EvaluationCalculator(store)
        summary = calculator.finalize_evaluation(10)
    """

    def __init__(
        self,
        store: ResultStore,
        scorer: Optional[MetricScorer] = None,
        classifier: Optional[ScoreClassifier] = None,
        aggregation: Optional[AggregationPipeline] = None,
        config: Optional[Dict] = None,
    ):
        config = config or get_config()
        self.store = store
        self.scorer = scorer or MetricScorer(config=config)
        self.classifier = classifier or ScoreClassifier(config)
        self.aggregation = aggregation or AggregationPipeline(config)
        self.default_minimum_threshold = config["classification"]["default_minimum_threshold"]

    # =========================================================================
    # Single steps
    # =========================================================================

    def calculate_metric_result(self, eval_metric_id: int) -> MetricResult:
        """Score one evaluation metric from its entered variables and save it."""
        selected = self.store.get_evaluation_metric(eval_metric_id)
        variables = self.store.variables_for(eval_metric_id)
        if not variables:
            raise EvaluationError(
                f"No variables found for evaluation metric {eval_metric_id}",
                {"eval_metric_id": eval_metric_id},
            )

        metric = selected.metric
        logger.debug(f"Calculating metric {metric.code} ({eval_metric_id}) with formula {metric.formula}")

        score = self.scorer.score(
            metric.formula,
            [(v.symbol, v.value) for v in variables],
            metric.desired_threshold,
            metric.worst_case,
        )
        return self.store.save_metric_result(
            MetricResult(
                eval_metric_id=eval_metric_id,
                calculated_value=score.calculated_value,
                weighted_value=score.weighted_value,
                case_type=score.case_type.value,
            )
        )

    def calculate_criteria_results(self, evaluation_id: int, skip_empty: bool = False) -> List[CriterionResult]:
        """
        Aggregate the metric results of every criterion of an evaluation.

        Args:
            evaluation_id: Evaluation to aggregate
            skip_empty: Skip criteria without metric results instead of failing

        Raises:
            AggregationError: a criterion has no metric results
        """
        evaluation = self.store.get_evaluation(evaluation_id)
        results = []

        with self.store.transaction():
            for criterion in evaluation.criteria:
                metric_results = self.store.metric_results_for_criterion(criterion.id)
                if not metric_results:
                    if skip_empty:
                        logger.warning(f"Criterion {criterion.id} has no metric results, skipped")
                        self.store.delete_criterion_result(criterion.id)
                        continue
                    raise AggregationError(
                        f"No metric results found for criterion {criterion.id}",
                        {"eval_criterion_id": criterion.id},
                    )

                final_score = self.aggregation.criterion(
                    [r.weighted_value for r in metric_results],
                    criterion.importance_percentage,
                )
                results.append(
                    self.store.save_criterion_result(
                        CriterionResult(eval_criterion_id=criterion.id, final_score=final_score)
                    )
                )

        return results

    def calculate_evaluation_result(self, evaluation_id: int) -> EvaluationResult:
        """Sum criteria scores and classify against the project threshold."""
        project = self.store.project_of(evaluation_id)
        criteria_results = self.store.criterion_results_for_evaluation(evaluation_id)
        if not criteria_results:
            raise AggregationError(
                f"No criteria results found for evaluation {evaluation_id}",
                {"evaluation_id": evaluation_id},
            )

        score = self.aggregation.evaluation([r.final_score for r in criteria_results])
        classification = self.classifier.classify(score, self._minimum_threshold(project))

        return self.store.save_evaluation_result(
            EvaluationResult(
                evaluation_id=evaluation_id,
                evaluation_score=score,
                score_level=classification.score_level.value,
                satisfaction_grade=classification.satisfaction_grade.value,
            )
        )

    def calculate_project_result(self, project_id: int) -> ProjectResult:
        """Average evaluation scores and classify against the project threshold."""
        project = self.store.get_project(project_id)
        evaluation_results = self.store.evaluation_results_for_project(project_id)
        if not evaluation_results:
            raise AggregationError(
                f"No evaluation results found for project {project_id}",
                {"project_id": project_id},
            )

        score = self.aggregation.project([r.evaluation_score for r in evaluation_results])
        classification = self.classifier.classify(score, self._minimum_threshold(project))

        return self.store.save_project_result(
            ProjectResult(
                project_id=project_id,
                final_project_score=score,
                score_level=classification.score_level.value,
                satisfaction_grade=classification.satisfaction_grade.value,
            )
        )

    def _minimum_threshold(self, project) -> float:
        # An unset or zero project threshold means the default
        return project.minimum_threshold or self.default_minimum_threshold

    # =========================================================================
    # Finalization
    # =========================================================================

    def finalize_evaluation(self, evaluation_id: int, continue_on_error: bool = False) -> Dict[str, Any]:
        """
        Compute every result of an evaluation and mark it completed.

        All writes happen in one transaction: when a step fails nothing of
        this run is kept.

        Args:
            evaluation_id: Evaluation to finalize
            continue_on_error: Skip metrics that cannot be scored (recorded
                under "errors") instead of aborting

        Returns:
            Summary dict
        """
        logger.info(f"Finalizing evaluation {evaluation_id}")
        evaluation = self.store.get_evaluation(evaluation_id)
        errors = []

        with self.store.transaction():
            # Stage 1: metric results
            metric_results = []
            for selected in evaluation.metrics:
                try:
                    metric_results.append(self.calculate_metric_result(selected.id))
                except QualityEvalError as e:
                    if not continue_on_error:
                        raise
                    logger.warning(f"Metric {selected.id} ({selected.metric.code}) skipped: {e}")
                    self.store.delete_metric_result(selected.id)
                    errors.append({"eval_metric_id": selected.id, **e.to_dict()})
            logger.debug(f"Stage 1: {len(metric_results)} metric results [OK]")

            # Stage 2: criteria results
            criteria_results = self.calculate_criteria_results(evaluation_id, skip_empty=continue_on_error)
            logger.debug(f"Stage 2: {len(criteria_results)} criteria results [OK]")

            # Stage 3: evaluation result
            evaluation_result = self.calculate_evaluation_result(evaluation_id)
            logger.debug(f"Stage 3: evaluation score {evaluation_result.evaluation_score} [OK]")

            self.store.set_evaluation_status(evaluation_id, EvaluationStatus.COMPLETED)

        return {
            "message": "Evaluation finalized successfully",
            "evaluation_id": evaluation_id,
            "metric_results": len(metric_results),
            "criteria_results": len(criteria_results),
            "final_score": evaluation_result.evaluation_score,
            "score_level": evaluation_result.score_level,
            "satisfaction_grade": evaluation_result.satisfaction_grade,
            "finalized_at": evaluation_result.created_at,
            "errors": errors,
        }

    def finalize_project(self, project_id: int) -> Dict[str, Any]:
        """Aggregate the project's evaluation results and mark it completed."""
        logger.info(f"Finalizing project {project_id}")

        with self.store.transaction():
            project_result = self.calculate_project_result(project_id)
            self.store.set_project_status(project_id, ProjectStatus.COMPLETED)

        return {
            "message": "Project finalized successfully",
            "project_id": project_id,
            "final_score": project_result.final_project_score,
            "score_level": project_result.score_level,
            "satisfaction_grade": project_result.satisfaction_grade,
            "finalized_at": project_result.created_at,
        }

    # =========================================================================
    # Progress
    # =========================================================================

    def evaluation_status(self, evaluation_id: int) -> Dict[str, Any]:
        evaluation = self.store.get_evaluation(evaluation_id)
        submitted = len(self.store.variables_for_evaluation(evaluation_id))
        expected = sum(len(m.metric.variables) for m in evaluation.metrics)
        evaluation_result = self.store.evaluation_result(evaluation_id)

        return {
            "evaluation_id": evaluation_id,
            "status": self.store.evaluation_status(evaluation_id).value,
            "progress": {
                "variables": {"submitted": submitted, "expected": expected},
                "metric_results": len(self.store.metric_results_for_evaluation(evaluation_id)),
                "is_finalized": evaluation_result is not None,
            },
            "completion_percentage": _percentage(submitted, expected),
        }

    def project_progress(self, project_id: int) -> Dict[str, Any]:
        project = self.store.get_project(project_id)
        evaluation_results = self.store.evaluation_results_for_project(project_id)
        project_result = self.store.project_result(project_id)
        total = len(project.evaluations)

        return {
            "project_id": project_id,
            "total_evaluations": total,
            "completed_evaluations": len(evaluation_results),
            "completion_percentage": _percentage(len(evaluation_results), total),
            "final_result": project_result.to_dict() if project_result else None,
            "status": self.store.project_status(project_id).value,
            "evaluation_results": [r.to_dict() for r in evaluation_results],
        }


def _percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round_half_up(part / total * 100, 0))
