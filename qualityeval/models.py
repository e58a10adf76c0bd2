"""Domain records: project configuration and computed results"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class EvaluationStatus(Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProjectStatus(Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ImportanceLevel(Enum):
    HIGH = "A"
    MEDIUM = "M"
    LOW = "B"


# =========================================================================
# Configuration records (owned by the parameterization layer)
# =========================================================================

@dataclass
class FormulaVariable:
    """A symbol used by a metric formula"""
    symbol: str
    description: str = ""


@dataclass
class Metric:
    """A measurable quality characteristic"""
    code: str
    name: str
    formula: str
    desired_threshold: Optional[str] = None
    worst_case: Optional[str] = None
    variables: List[FormulaVariable] = field(default_factory=list)
    description: str = ""

    @property
    def symbols(self) -> List[str]:
        return [v.symbol for v in self.variables]

    @classmethod
    def from_dict(cls, data: Dict) -> "Metric":
        data = dict(data)
        data["variables"] = [FormulaVariable(**v) for v in data.get("variables", [])]
        return cls(**data)


@dataclass
class EvaluationMetric:
    """A metric selected for one criterion of an evaluation"""
    id: int
    metric: Metric

    @classmethod
    def from_dict(cls, data: Dict) -> "EvaluationMetric":
        return cls(id=data["id"], metric=Metric.from_dict(data["metric"]))


@dataclass
class EvaluationCriterion:
    """A weighted criterion of an evaluation"""
    id: int
    name: str
    importance_percentage: Optional[float] = None
    importance_level: Optional[ImportanceLevel] = None
    metrics: List[EvaluationMetric] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> "EvaluationCriterion":
        level = data.get("importance_level")
        return cls(
            id=data["id"],
            name=data["name"],
            importance_percentage=data.get("importance_percentage"),
            importance_level=ImportanceLevel(level) if level else None,
            metrics=[EvaluationMetric.from_dict(m) for m in data.get("metrics", [])],
        )


@dataclass
class Evaluation:
    """An evaluation of a project against one standard"""
    id: int
    standard: str
    criteria: List[EvaluationCriterion] = field(default_factory=list)

    @property
    def metrics(self) -> List[EvaluationMetric]:
        return [m for c in self.criteria for m in c.metrics]

    @classmethod
    def from_dict(cls, data: Dict) -> "Evaluation":
        return cls(
            id=data["id"],
            standard=data["standard"],
            criteria=[EvaluationCriterion.from_dict(c) for c in data.get("criteria", [])],
        )


@dataclass
class Project:
    """A software project under evaluation"""
    id: int
    name: str
    minimum_threshold: Optional[float] = None  # Percentage, e.g. 80
    description: str = ""
    evaluations: List[Evaluation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict) -> "Project":
        return cls(
            id=data["id"],
            name=data["name"],
            minimum_threshold=data.get("minimum_threshold"),
            description=data.get("description", ""),
            evaluations=[Evaluation.from_dict(e) for e in data.get("evaluations", [])],
        )


# =========================================================================
# Entered data and results (owned by the entry-data layer)
# =========================================================================

@dataclass(frozen=True)
class VariableEntry:
    """A measured value for one formula variable of one evaluation metric"""
    eval_metric_id: int
    symbol: str
    value: float

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "VariableEntry":
        return cls(int(data["eval_metric_id"]), str(data["symbol"]), float(data["value"]))


@dataclass(frozen=True)
class MetricResult:
    eval_metric_id: int
    calculated_value: float
    weighted_value: float
    case_type: str
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "MetricResult":
        return cls(**data)


@dataclass(frozen=True)
class CriterionResult:
    eval_criterion_id: int
    final_score: float
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "CriterionResult":
        return cls(**data)


@dataclass(frozen=True)
class EvaluationResult:
    evaluation_id: int
    evaluation_score: float
    score_level: str
    satisfaction_grade: str
    conclusion: str = "Evaluation calculated automatically"
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "EvaluationResult":
        return cls(**data)


@dataclass(frozen=True)
class ProjectResult:
    project_id: int
    final_project_score: float
    score_level: str
    satisfaction_grade: str
    created_at: str = field(default_factory=_now)

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "ProjectResult":
        return cls(**data)
