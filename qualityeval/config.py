"""Configuration for qualityeval"""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from qualityeval.errors import ConfigurationError

# Base paths
BASE_DIR = Path(__file__).parent.parent
RESULTS_DIR = BASE_DIR / "results"

# Environment variable naming a YAML file merged over the defaults
CONFIG_ENV_VAR = "QUALITYEVAL_CONFIG"

# ===========================================
# Metric Scoring
# ===========================================
# Every metric is normalized to a 0-10 scale before aggregation.

MAX_SCORE = 10.0

SCORING_CONFIG = {
    "max_score": MAX_SCORE,
    "clamp_weighted_value": True,    # Keep weighted values inside [0, max_score]
    "strict_thresholds": False,      # Raise instead of falling back to SIMPLE_BINARY
    "formula_decimals": 4,           # Formula results
    "metric_decimals": 4,            # Persisted calculated/weighted values
    "aggregate_decimals": 2,         # Criterion, evaluation and project scores
}

# ===========================================
# Formula Evaluation
# ===========================================
# Patterns rejected in raw formula text before any substitution happens.

FORMULA_BLACKLIST = [
    r"[;]",             # Statement separator
    r"\bDROP\b",        # SQL keywords
    r"\bTABLE\b",
    r"\bDELETE\b",
    r"\bINSERT\b",
    r"\bUPDATE\b",
    r"\bSELECT\b",
    r"['\"]",           # Quotes
    r"[{}]",            # Braces
    r"\$\{",            # Template placeholders
]

# Characters allowed once every variable has been substituted
FORMULA_ALLOWED_PATTERN = r"^[\d+\-*/().\s]+$"

# ===========================================
# Threshold Specs
# ===========================================

THRESHOLD_OPERATORS = [">=", "<=", ">", "<", "="]
THRESHOLD_UNITS = ["min", "seg", "%"]

# ===========================================
# Score Classification
# ===========================================
# Boundaries are multipliers of the project minimum threshold expressed on
# the 0-10 scale. With a threshold of 80% (8.0) they give 2.75 / 5.0 / 8.75.

DEFAULT_MINIMUM_THRESHOLD = 80.0

CLASSIFICATION_THRESHOLDS = {
    "default_minimum_threshold": DEFAULT_MINIMUM_THRESHOLD,
    "score_level": {
        "unacceptable": 0.34375,
        "minimally_acceptable": 0.625,
        "target_range": 1.09375,
    },
    "satisfaction_grade": {
        "unsatisfactory": 0.625,
        "satisfactory": 1.09375,
    },
}

# ===========================================
# Project Documents
# ===========================================

IMPORTANCE_SUM_TOLERANCE = 0.01


def _defaults() -> Dict[str, Any]:
    return {
        "scoring": copy.deepcopy(SCORING_CONFIG),
        "formula": {
            "blacklist": list(FORMULA_BLACKLIST),
            "allowed_pattern": FORMULA_ALLOWED_PATTERN,
        },
        "thresholds": {
            "operators": list(THRESHOLD_OPERATORS),
            "units": list(THRESHOLD_UNITS),
        },
        "classification": copy.deepcopy(CLASSIFICATION_THRESHOLDS),
        "projects": {
            "importance_sum_tolerance": IMPORTANCE_SUM_TOLERANCE,
        },
        "results_dir": str(RESULTS_DIR),
    }


def _deep_merge(base: Dict, override: Dict, path: str = "") -> Dict:
    """Merge override into base, rejecting keys the defaults don't know."""
    for key, value in override.items():
        dotted = f"{path}{key}"
        if key not in base:
            raise ConfigurationError(f"Unknown configuration key: {dotted}")
        if isinstance(base[key], dict):
            if not isinstance(value, dict):
                raise ConfigurationError(f"Configuration key {dotted} must be a mapping")
            _deep_merge(base[key], value, f"{dotted}.")
        else:
            base[key] = value
    return base


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration, merging a YAML file over the defaults

    Args:
        path: YAML file. Falls back to $QUALITYEVAL_CONFIG, then to the defaults.

    Returns:
        Full configuration dictionary
    """
    config = _defaults()

    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        path = Path(env_path) if env_path else None
    if path is None:
        return config

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}", {"path": str(path)})

    with open(path, "r") as f:
        try:
            overrides = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e

    if not isinstance(overrides, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    return _deep_merge(config, overrides)


def get_config() -> Dict[str, Any]:
    """Get full configuration dictionary"""
    return load_config()
