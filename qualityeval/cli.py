"""CLI interface for qualityeval"""

import click
import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import logging

from tqdm import tqdm

from qualityeval import __version__
from qualityeval.config import load_config
from qualityeval.errors import QualityEvalError
from qualityeval.engine import (
    FormulaEvaluator,
    MetricScorer,
    ScoreClassifier,
    ThresholdClassifier,
)
from qualityeval.calculation import EvaluationCalculator
from qualityeval.export import export_results
from qualityeval.project_loader import load_project, load_values
from qualityeval.store import ResultStore


logger = logging.getLogger(__name__)


def _parse_assignments(ctx, param, values: Tuple[str, ...]) -> List[Tuple[str, float]]:
    """Turn repeated `-v A=12` options into (symbol, value) pairs"""
    pairs = []
    for item in values:
        symbol, sep, raw = item.partition("=")
        if not sep or not symbol.strip():
            raise click.BadParameter(f"expected SYMBOL=VALUE, got '{item}'")
        try:
            pairs.append((symbol.strip(), float(raw)))
        except ValueError:
            raise click.BadParameter(f"value of {symbol.strip()} is not a number: '{raw}'")
    return pairs


def _fail(ctx, error: QualityEvalError):
    click.echo(f"[ERROR] {error.code}: {error.message}")
    ctx.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="YAML file merged over the default configuration")
@click.option("--verbose", is_flag=True, default=False, help="Show debug logging")
@click.pass_context
def main(ctx, config_path: Optional[str], verbose: bool):
    """qualityeval - software quality evaluation against configurable standards

    Scores metrics from measured variables, rolls them up through weighted
    criteria and evaluations, and classifies the result against the
    project's minimum threshold.
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    try:
        ctx.obj = load_config(Path(config_path) if config_path else None)
    except QualityEvalError as e:
        _fail(ctx, e)


@main.command("evaluate-formula")
@click.argument("formula")
@click.option("-v", "--var", "variables", multiple=True, callback=_parse_assignments,
              help="Variable value as SYMBOL=VALUE (repeatable)")
@click.pass_context
def evaluate_formula_cmd(ctx, formula: str, variables: List[Tuple[str, float]]):
    """Evaluate a metric formula"""
    try:
        value = FormulaEvaluator(ctx.obj).evaluate(formula, variables)
    except QualityEvalError as e:
        _fail(ctx, e)
        return
    click.echo(f"{formula} = {value}")


@main.command("classify-thresholds")
@click.argument("desired", required=False)
@click.argument("worst", required=False)
@click.pass_context
def classify_thresholds_cmd(ctx, desired: Optional[str], worst: Optional[str]):
    """Show the scoring case picked for a threshold pair"""
    try:
        threshold_case = ThresholdClassifier(ctx.obj).classify(desired, worst)
    except QualityEvalError as e:
        _fail(ctx, e)
        return

    click.echo(f"Case: {threshold_case.case_type.value}")
    if threshold_case.fallback:
        click.echo("  [WARNING] No case matched, scored as SIMPLE_BINARY")
    click.echo(json.dumps(threshold_case.to_dict(), indent=2))


@main.command("score-metric")
@click.argument("formula")
@click.option("--desired", help="Desired threshold (e.g. '10/20', '>=4', '15min')")
@click.option("--worst", help="Worst-case threshold")
@click.option("-v", "--var", "variables", multiple=True, callback=_parse_assignments,
              help="Variable value as SYMBOL=VALUE (repeatable)")
@click.pass_context
def score_metric_cmd(ctx, formula: str, desired: Optional[str], worst: Optional[str],
                     variables: List[Tuple[str, float]]):
    """Score one metric on the 0-10 scale"""
    try:
        score = MetricScorer(config=ctx.obj).score(formula, variables, desired, worst)
    except QualityEvalError as e:
        _fail(ctx, e)
        return

    click.echo(f"Case:             {score.case_type.value}")
    click.echo(f"Calculated value: {score.calculated_value}")
    click.echo(f"Weighted value:   {score.weighted_value}")


@main.command("classify-score")
@click.argument("score", type=float)
@click.option("--threshold", type=float, default=None,
              help="Project minimum threshold as a percentage (default 80)")
@click.pass_context
def classify_score_cmd(ctx, score: float, threshold: Optional[float]):
    """Classify a 0-10 score"""
    classification = ScoreClassifier(ctx.obj).classify(score, threshold)
    click.echo(f"Score level:        {classification.score_level.value}")
    click.echo(f"Satisfaction grade: {classification.satisfaction_grade.value}")


@main.command()
@click.argument("project_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--values", "values_file", required=True, type=click.Path(exists=True, dir_okay=False),
              help="YAML/JSON file with entered variable values")
@click.option("--output", type=click.Path(), help="Path to output JSON file")
@click.option("--save", is_flag=True, default=False,
              help="Also save results under the configured results directory")
@click.option("--export-csv", type=click.Path(), help="Export metric-level results as CSV")
@click.option("--continue-on-error", is_flag=True, default=False,
              help="Skip metrics that cannot be scored instead of aborting")
@click.pass_context
def run(ctx, project_file: str, values_file: str, output: Optional[str], save: bool,
        export_csv: Optional[str], continue_on_error: bool):
    """Finalize every evaluation of a project and the project itself"""
    config = ctx.obj
    try:
        project = load_project(Path(project_file), config)
        entries = load_values(Path(values_file))
    except QualityEvalError as e:
        _fail(ctx, e)
        return

    store = ResultStore([project])
    calculator = EvaluationCalculator(store, config=config)
    summaries: Dict[int, Dict] = {}

    known_ids = {m.id for e in project.evaluations for m in e.metrics}
    unknown_ids = sorted({e.eval_metric_id for e in entries} - known_ids)
    if unknown_ids:
        logger.warning(f"Ignoring values for unknown evaluation metrics: {unknown_ids}")

    click.echo(f"Evaluating project {project.id}: {project.name}")

    try:
        for evaluation in tqdm(project.evaluations, desc="Evaluations", unit="eval"):
            selected_ids = {m.id for m in evaluation.metrics}
            store.save_variables(evaluation.id, [e for e in entries if e.eval_metric_id in selected_ids])
            summaries[evaluation.id] = calculator.finalize_evaluation(
                evaluation.id, continue_on_error=continue_on_error
            )
        project_summary = calculator.finalize_project(project.id)
    except QualityEvalError as e:
        _fail(ctx, e)
        return

    click.echo(f"\n{'='*60}")
    click.echo(f"PROJECT RESULTS: {project.name}")
    click.echo(f"{'='*60}")
    for evaluation in project.evaluations:
        summary = summaries[evaluation.id]
        click.echo(
            f"  Evaluation {evaluation.id} ({evaluation.standard}): {summary['final_score']} "
            f"- {summary['score_level']} / {summary['satisfaction_grade']}"
        )
        for error in summary["errors"]:
            click.echo(f"    [WARNING] metric {error['eval_metric_id']} skipped: {error['message']}")
    click.echo("")
    click.echo(f"  Project score: {project_summary['final_score']}")
    click.echo(f"  Score level:   {project_summary['score_level']}")
    click.echo(f"  Satisfaction:  {project_summary['satisfaction_grade']}")

    if output:
        store.dump(Path(output))
        click.echo(f"\n[OK] Results saved to: {output}")

    if save:
        saved_path = Path(config["results_dir"]) / f"project_{project.id}.json"
        store.dump(saved_path)
        click.echo(f"[OK] Results saved to: {saved_path}")

    if export_csv:
        export_results(store, project.id, Path(export_csv), fmt="csv")
        click.echo(f"[OK] Exported CSV to: {export_csv}")

    click.echo(f"{'='*60}")


if __name__ == "__main__":
    main()
