"""Flatten stored results into a table and write it to CSV or JSON"""

from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from qualityeval.store import ResultStore


logger = logging.getLogger(__name__)

COLUMNS = [
    "project_id",
    "project_name",
    "evaluation_id",
    "standard",
    "criterion_id",
    "criterion_name",
    "importance_percentage",
    "eval_metric_id",
    "metric_code",
    "metric_name",
    "case_type",
    "calculated_value",
    "weighted_value",
    "criterion_score",
    "evaluation_score",
    "score_level",
    "satisfaction_grade",
]


def results_frame(store: ResultStore, project_id: int) -> pd.DataFrame:
    """One row per evaluation metric, with the scores of its parents.

    Metrics without a result keep empty score cells.
    """
    project = store.get_project(project_id)
    rows = []

    for evaluation in project.evaluations:
        evaluation_result = store.evaluation_result(evaluation.id)
        criteria_scores = {
            r.eval_criterion_id: r.final_score
            for r in store.criterion_results_for_evaluation(evaluation.id)
        }
        metric_results = {r.eval_metric_id: r for r in store.metric_results_for_evaluation(evaluation.id)}

        for criterion in evaluation.criteria:
            for selected in criterion.metrics:
                metric_result = metric_results.get(selected.id)
                rows.append({
                    "project_id": project.id,
                    "project_name": project.name,
                    "evaluation_id": evaluation.id,
                    "standard": evaluation.standard,
                    "criterion_id": criterion.id,
                    "criterion_name": criterion.name,
                    "importance_percentage": criterion.importance_percentage,
                    "eval_metric_id": selected.id,
                    "metric_code": selected.metric.code,
                    "metric_name": selected.metric.name,
                    "case_type": metric_result.case_type if metric_result else None,
                    "calculated_value": metric_result.calculated_value if metric_result else None,
                    "weighted_value": metric_result.weighted_value if metric_result else None,
                    "criterion_score": criteria_scores.get(criterion.id),
                    "evaluation_score": evaluation_result.evaluation_score if evaluation_result else None,
                    "score_level": evaluation_result.score_level if evaluation_result else None,
                    "satisfaction_grade": evaluation_result.satisfaction_grade if evaluation_result else None,
                })

    return pd.DataFrame(rows, columns=COLUMNS)


def export_results(store: ResultStore, project_id: int, output_path: Path, fmt: Optional[str] = None) -> Path:
    """Write the results table; the format follows the suffix unless given."""
    output_path = Path(output_path)
    fmt = (fmt or output_path.suffix.lstrip(".") or "csv").lower()
    if fmt not in ("csv", "json"):
        raise ValueError(f"Unsupported export format: {fmt}")

    df = results_frame(store, project_id)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "csv":
        df.to_csv(output_path, index=False)
    else:
        df.to_json(output_path, orient="records", indent=2)

    logger.info(f"Exported {len(df)} result rows to {output_path}")
    return output_path
