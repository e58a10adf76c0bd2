"""
Result store

In-memory stand-in for the persistence layer: it holds the loaded project
configuration, the entered variable values and every computed result.
Results are upserted (a recomputation overwrites the previous record).
`transaction()` snapshots the mutable state so that a failed recomputation
leaves no partial result set behind.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
import copy
import json
import logging

from qualityeval.errors import ConfigurationError, RecordNotFoundError
from qualityeval.models import (
    CriterionResult,
    Evaluation,
    EvaluationCriterion,
    EvaluationMetric,
    EvaluationResult,
    EvaluationStatus,
    MetricResult,
    Project,
    ProjectResult,
    ProjectStatus,
    VariableEntry,
)


logger = logging.getLogger(__name__)


class ResultStore:
    """Projects, entered values and results, indexed by id"""

    def __init__(self, projects: Optional[Iterable[Project]] = None):
        self._projects: Dict[int, Project] = {}
        self._evaluations: Dict[int, Tuple[Project, Evaluation]] = {}
        self._criteria: Dict[int, Tuple[Evaluation, EvaluationCriterion]] = {}
        self._eval_metrics: Dict[int, Tuple[EvaluationCriterion, EvaluationMetric]] = {}

        # Mutable state, covered by transaction()
        self._variables: Dict[Tuple[int, str], VariableEntry] = {}
        self._metric_results: Dict[int, MetricResult] = {}
        self._criterion_results: Dict[int, CriterionResult] = {}
        self._evaluation_results: Dict[int, EvaluationResult] = {}
        self._project_results: Dict[int, ProjectResult] = {}
        self._evaluation_status: Dict[int, EvaluationStatus] = {}
        self._project_status: Dict[int, ProjectStatus] = {}

        for project in projects or []:
            self.add_project(project)

    # =====================================================================
    # Configuration
    # =====================================================================

    def add_project(self, project: Project):
        if project.id in self._projects:
            raise ConfigurationError(f"Project {project.id} is already loaded")
        self._projects[project.id] = project
        self._project_status[project.id] = ProjectStatus.IN_PROGRESS
        for evaluation in project.evaluations:
            self._evaluations[evaluation.id] = (project, evaluation)
            self._evaluation_status[evaluation.id] = EvaluationStatus.IN_PROGRESS
            for criterion in evaluation.criteria:
                self._criteria[criterion.id] = (evaluation, criterion)
                for selected in criterion.metrics:
                    self._eval_metrics[selected.id] = (criterion, selected)

    def get_project(self, project_id: int) -> Project:
        if project_id not in self._projects:
            raise RecordNotFoundError(f"Project with ID {project_id} not found")
        return self._projects[project_id]

    def get_evaluation(self, evaluation_id: int) -> Evaluation:
        if evaluation_id not in self._evaluations:
            raise RecordNotFoundError(f"Evaluation with ID {evaluation_id} not found")
        return self._evaluations[evaluation_id][1]

    def project_of(self, evaluation_id: int) -> Project:
        self.get_evaluation(evaluation_id)
        return self._evaluations[evaluation_id][0]

    def get_evaluation_metric(self, eval_metric_id: int) -> EvaluationMetric:
        if eval_metric_id not in self._eval_metrics:
            raise RecordNotFoundError(f"EvaluationMetric with ID {eval_metric_id} not found")
        return self._eval_metrics[eval_metric_id][1]

    def evaluation_of_metric(self, eval_metric_id: int) -> Evaluation:
        self.get_evaluation_metric(eval_metric_id)
        criterion = self._eval_metrics[eval_metric_id][0]
        return self._criteria[criterion.id][0]

    # =====================================================================
    # Entered variables
    # =====================================================================

    def save_variables(self, evaluation_id: int, entries: Iterable[VariableEntry]) -> List[VariableEntry]:
        """
        Upsert entered values for one evaluation.

        Every entry must target a metric of that evaluation and, when the
        metric declares its variables, one of the declared symbols.
        """
        self.get_evaluation(evaluation_id)
        saved = []
        with self.transaction():
            for entry in entries:
                selected = self.get_evaluation_metric(entry.eval_metric_id)
                owner = self.evaluation_of_metric(entry.eval_metric_id)
                if owner.id != evaluation_id:
                    raise ConfigurationError(
                        f"EvaluationMetric {entry.eval_metric_id} does not belong to "
                        f"evaluation {evaluation_id}",
                        {"eval_metric_id": entry.eval_metric_id, "evaluation_id": evaluation_id},
                    )
                symbols = selected.metric.symbols
                if symbols and entry.symbol not in symbols:
                    raise RecordNotFoundError(
                        f"FormulaVariable {entry.symbol} not found for metric {selected.metric.code}",
                        {"symbol": entry.symbol, "metric": selected.metric.code},
                    )
                self._variables[(entry.eval_metric_id, entry.symbol)] = entry
                saved.append(entry)

        logger.info(f"Saved {len(saved)} evaluation variables for evaluation {evaluation_id}")
        return saved

    def variables_for(self, eval_metric_id: int) -> List[VariableEntry]:
        """Entered values of a metric, in the metric's declared symbol order."""
        selected = self.get_evaluation_metric(eval_metric_id)
        entries = [v for (mid, _), v in self._variables.items() if mid == eval_metric_id]
        order = {symbol: i for i, symbol in enumerate(selected.metric.symbols)}
        return sorted(entries, key=lambda v: order.get(v.symbol, len(order)))

    def variables_for_evaluation(self, evaluation_id: int) -> List[VariableEntry]:
        evaluation = self.get_evaluation(evaluation_id)
        entries = []
        for selected in evaluation.metrics:
            entries.extend(self.variables_for(selected.id))
        return entries

    def delete_variable(self, eval_metric_id: int, symbol: str):
        key = (eval_metric_id, symbol)
        if key not in self._variables:
            raise RecordNotFoundError(
                f"Variable not found for metric {eval_metric_id} and variable {symbol}"
            )
        del self._variables[key]

    # =====================================================================
    # Results
    # =====================================================================

    def save_metric_result(self, result: MetricResult) -> MetricResult:
        self._metric_results[result.eval_metric_id] = result
        logger.info(f"Saved metric result {result.eval_metric_id} with weighted value {result.weighted_value}")
        return result

    def delete_metric_result(self, eval_metric_id: int):
        self._metric_results.pop(eval_metric_id, None)

    def delete_criterion_result(self, eval_criterion_id: int):
        self._criterion_results.pop(eval_criterion_id, None)

    def save_criterion_result(self, result: CriterionResult) -> CriterionResult:
        self._criterion_results[result.eval_criterion_id] = result
        logger.info(f"Saved criteria result {result.eval_criterion_id} with final score {result.final_score}")
        return result

    def save_evaluation_result(self, result: EvaluationResult) -> EvaluationResult:
        self._evaluation_results[result.evaluation_id] = result
        logger.info(
            f"Saved evaluation result {result.evaluation_id} with score {result.evaluation_score}, "
            f"level: {result.score_level}, grade: {result.satisfaction_grade}"
        )
        return result

    def save_project_result(self, result: ProjectResult) -> ProjectResult:
        self._project_results[result.project_id] = result
        logger.info(
            f"Saved project result {result.project_id} with score {result.final_project_score}, "
            f"level: {result.score_level}, grade: {result.satisfaction_grade}"
        )
        return result

    def metric_results_for_criterion(self, eval_criterion_id: int) -> List[MetricResult]:
        if eval_criterion_id not in self._criteria:
            raise RecordNotFoundError(f"EvaluationCriterion with ID {eval_criterion_id} not found")
        criterion = self._criteria[eval_criterion_id][1]
        return [self._metric_results[m.id] for m in criterion.metrics if m.id in self._metric_results]

    def metric_results_for_evaluation(self, evaluation_id: int) -> List[MetricResult]:
        evaluation = self.get_evaluation(evaluation_id)
        return [self._metric_results[m.id] for m in evaluation.metrics if m.id in self._metric_results]

    def criterion_results_for_evaluation(self, evaluation_id: int) -> List[CriterionResult]:
        evaluation = self.get_evaluation(evaluation_id)
        return [
            self._criterion_results[c.id]
            for c in evaluation.criteria
            if c.id in self._criterion_results
        ]

    def evaluation_result(self, evaluation_id: int) -> Optional[EvaluationResult]:
        self.get_evaluation(evaluation_id)
        return self._evaluation_results.get(evaluation_id)

    def evaluation_results_for_project(self, project_id: int) -> List[EvaluationResult]:
        project = self.get_project(project_id)
        return [
            self._evaluation_results[e.id]
            for e in project.evaluations
            if e.id in self._evaluation_results
        ]

    def project_result(self, project_id: int) -> Optional[ProjectResult]:
        self.get_project(project_id)
        return self._project_results.get(project_id)

    # =====================================================================
    # Status
    # =====================================================================

    def evaluation_status(self, evaluation_id: int) -> EvaluationStatus:
        self.get_evaluation(evaluation_id)
        return self._evaluation_status[evaluation_id]

    def set_evaluation_status(self, evaluation_id: int, status: EvaluationStatus):
        self.get_evaluation(evaluation_id)
        self._evaluation_status[evaluation_id] = status
        logger.info(f"Updated evaluation {evaluation_id} status to {status.value}")

    def project_status(self, project_id: int) -> ProjectStatus:
        self.get_project(project_id)
        return self._project_status[project_id]

    def set_project_status(self, project_id: int, status: ProjectStatus):
        self.get_project(project_id)
        self._project_status[project_id] = status
        logger.info(f"Updated project {project_id} status to {status.value}")

    def reset_evaluation(self, evaluation_id: int):
        """Drop every entered value and result of an evaluation."""
        evaluation = self.get_evaluation(evaluation_id)
        logger.info(f"Resetting evaluation {evaluation_id}")

        self._evaluation_results.pop(evaluation_id, None)
        for criterion in evaluation.criteria:
            self._criterion_results.pop(criterion.id, None)
        for selected in evaluation.metrics:
            self._metric_results.pop(selected.id, None)
            for key in [k for k in self._variables if k[0] == selected.id]:
                del self._variables[key]
        self._evaluation_status[evaluation_id] = EvaluationStatus.IN_PROGRESS

    # =====================================================================
    # Transactions and persistence
    # =====================================================================

    _STATE = (
        "_variables",
        "_metric_results",
        "_criterion_results",
        "_evaluation_results",
        "_project_results",
        "_evaluation_status",
        "_project_status",
    )

    @contextmanager
    def transaction(self):
        """Commit on success, restore the previous state on any exception."""
        snapshot = {name: copy.copy(getattr(self, name)) for name in self._STATE}
        try:
            yield self
        except BaseException:
            for name, value in snapshot.items():
                setattr(self, name, value)
            logger.warning("Transaction rolled back")
            raise

    def to_dict(self) -> Dict:
        return {
            "variables": [v.to_dict() for v in self._variables.values()],
            "metric_results": [r.to_dict() for r in self._metric_results.values()],
            "criteria_results": [r.to_dict() for r in self._criterion_results.values()],
            "evaluation_results": [r.to_dict() for r in self._evaluation_results.values()],
            "project_results": [r.to_dict() for r in self._project_results.values()],
            "evaluation_status": {str(k): v.value for k, v in self._evaluation_status.items()},
            "project_status": {str(k): v.value for k, v in self._project_status.items()},
        }

    def dump(self, path: Path):
        """Save entered values and results to a JSON file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved results to {path}")

    def load(self, path: Path):
        """Restore entered values and results saved by dump()"""
        with open(path, "r") as f:
            data = json.load(f)

        with self.transaction():
            for v in data.get("variables", []):
                entry = VariableEntry.from_dict(v)
                self.get_evaluation_metric(entry.eval_metric_id)
                self._variables[(entry.eval_metric_id, entry.symbol)] = entry
            for r in data.get("metric_results", []):
                self.save_metric_result(MetricResult.from_dict(r))
            for r in data.get("criteria_results", []):
                self.save_criterion_result(CriterionResult.from_dict(r))
            for r in data.get("evaluation_results", []):
                self.save_evaluation_result(EvaluationResult.from_dict(r))
            for r in data.get("project_results", []):
                self.save_project_result(ProjectResult.from_dict(r))
            for k, v in data.get("evaluation_status", {}).items():
                self.set_evaluation_status(int(k), EvaluationStatus(v))
            for k, v in data.get("project_status", {}).items():
                self.set_project_status(int(k), ProjectStatus(v))
