"""
Project document loading

A project document (YAML or JSON) describes one project, its evaluations,
their weighted criteria and the metrics selected for each criterion:

    id: 1
    name: Billing platform
    minimum_threshold: 80
    evaluations:
      - id: 10
        standard: ISO/IEC 25010
        criteria:
          - id: 100
            name: Functional suitability
            importance_level: A
            importance_percentage: 60
            metrics:
              - id: 1000
                metric:
                  code: FS-01
                  name: Functional completeness
                  formula: "A/B"
                  desired_threshold: "1"
                  variables:
                    - {symbol: A, description: Implemented functions}
                    - {symbol: B, description: Specified functions}

A values document lists entered measurements:

    values:
      - {eval_metric_id: 1000, symbol: A, value: 18}
"""

from pathlib import Path
from typing import Dict, List, Optional
import json
import logging

import jsonschema
import yaml

from qualityeval.config import get_config
from qualityeval.errors import ConfigurationError
from qualityeval.engine.formula import find_missing_variables
from qualityeval.engine.rounding import format_plain
from qualityeval.models import Project, VariableEntry


logger = logging.getLogger(__name__)


_VARIABLE_SCHEMA = {
    "type": "object",
    "required": ["symbol"],
    "properties": {
        "symbol": {"type": "string", "pattern": "^[A-Za-z_][A-Za-z0-9_]*$"},
        "description": {"type": "string"},
    },
    "additionalProperties": False,
}

_METRIC_SCHEMA = {
    "type": "object",
    "required": ["code", "name", "formula"],
    "properties": {
        "code": {"type": "string"},
        "name": {"type": "string"},
        "description": {"type": "string"},
        "formula": {"type": "string", "minLength": 1},
        "desired_threshold": {"type": ["string", "number", "null"]},
        "worst_case": {"type": ["string", "number", "null"]},
        "variables": {"type": "array", "items": _VARIABLE_SCHEMA},
    },
    "additionalProperties": False,
}

PROJECT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["id", "name", "evaluations"],
    "properties": {
        "id": {"type": "integer"},
        "name": {"type": "string"},
        "description": {"type": "string"},
        "minimum_threshold": {"type": ["number", "null"], "minimum": 0, "maximum": 100},
        "evaluations": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "standard", "criteria"],
                "properties": {
                    "id": {"type": "integer"},
                    "standard": {"type": "string"},
                    "criteria": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "required": ["id", "name", "metrics"],
                            "properties": {
                                "id": {"type": "integer"},
                                "name": {"type": "string"},
                                "importance_level": {"enum": ["A", "M", "B", None]},
                                "importance_percentage": {
                                    "type": ["number", "null"],
                                    "minimum": 0,
                                    "maximum": 100,
                                },
                                "metrics": {
                                    "type": "array",
                                    "items": {
                                        "type": "object",
                                        "required": ["id", "metric"],
                                        "properties": {
                                            "id": {"type": "integer"},
                                            "metric": _METRIC_SCHEMA,
                                        },
                                        "additionalProperties": False,
                                    },
                                },
                            },
                            "additionalProperties": False,
                        },
                    },
                },
                "additionalProperties": False,
            },
        },
    },
    "additionalProperties": False,
}

VALUES_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["values"],
    "properties": {
        "values": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["eval_metric_id", "symbol", "value"],
                "properties": {
                    "eval_metric_id": {"type": "integer"},
                    "symbol": {"type": "string"},
                    "value": {"type": "number"},
                },
                "additionalProperties": False,
            },
        },
    },
}


def read_document(path: Path) -> Dict:
    """Read a YAML or JSON document"""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Document not found: {path}", {"path": str(path)})

    with open(path, "r") as f:
        try:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot parse {path}: {e}", {"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Document {path} must contain a mapping", {"path": str(path)})
    return data


def _validate(data: Dict, schema: Dict, label: str):
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigurationError(
            f"Invalid {label} at {location}: {e.message}",
            {"location": location},
        ) from e


def _stringify_thresholds(data: Dict):
    """YAML turns `desired_threshold: 1` into an int; thresholds are text."""
    for evaluation in data.get("evaluations", []):
        for criterion in evaluation.get("criteria", []):
            for selected in criterion.get("metrics", []):
                metric = selected["metric"]
                for key in ("desired_threshold", "worst_case"):
                    value = metric.get(key)
                    if value is not None and not isinstance(value, str):
                        metric[key] = format_plain(value)


def check_project(project: Project, config: Optional[Dict] = None) -> List[str]:
    """
    Check structural invariants the schema cannot express.

    Returns:
        Warnings (non-fatal findings)

    Raises:
        ConfigurationError: duplicate ids, or importance percentages of an
            evaluation that do not sum to 100
    """
    config = config or get_config()
    tolerance = config["projects"]["importance_sum_tolerance"]
    warnings = []

    seen = {"evaluation": set(), "criterion": set(), "evaluation metric": set()}

    def _claim(kind: str, record_id: int):
        if record_id in seen[kind]:
            raise ConfigurationError(f"Duplicate {kind} id {record_id}", {"id": record_id})
        seen[kind].add(record_id)

    for evaluation in project.evaluations:
        _claim("evaluation", evaluation.id)

        percentages = [c.importance_percentage for c in evaluation.criteria]
        if all(p is not None for p in percentages):
            total = sum(percentages)
            if abs(total - 100) > tolerance:
                raise ConfigurationError(
                    f"Sum of importance percentages must be 100% for evaluation "
                    f"{evaluation.id}. Current sum: {total}%",
                    {"evaluation_id": evaluation.id, "sum": total},
                )
        elif any(p is not None for p in percentages):
            warnings.append(
                f"Evaluation {evaluation.id}: some criteria have no importance percentage "
                f"and count at full weight"
            )

        for criterion in evaluation.criteria:
            _claim("criterion", criterion.id)
            if not criterion.metrics:
                warnings.append(f"Criterion {criterion.id} has no metrics")
            for selected in criterion.metrics:
                _claim("evaluation metric", selected.id)
                metric = selected.metric
                if metric.variables:
                    missing = find_missing_variables(metric.formula, metric.symbols)
                    if missing:
                        warnings.append(
                            f"Metric {metric.code}: formula uses undeclared variables {missing}"
                        )

    for warning in warnings:
        logger.warning(warning)
    return warnings


def load_project(path: Path, config: Optional[Dict] = None) -> Project:
    """Load, validate and build a Project from a YAML/JSON document"""
    data = read_document(path)
    return project_from_dict(data, config)


def project_from_dict(data: Dict, config: Optional[Dict] = None) -> Project:
    _validate(data, PROJECT_SCHEMA, "project document")
    _stringify_thresholds(data)
    project = Project.from_dict(data)
    check_project(project, config)
    logger.info(
        f"Loaded project {project.id} ({project.name}) with {len(project.evaluations)} evaluations"
    )
    return project


def load_values(path: Path) -> List[VariableEntry]:
    """Load entered variable values from a YAML/JSON document"""
    data = read_document(path)
    _validate(data, VALUES_SCHEMA, "values document")
    return [VariableEntry.from_dict(v) for v in data["values"]]
