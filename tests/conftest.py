"""Shared fixtures: a two-evaluation project and its entered values."""
import copy

import pytest

from qualityeval.models import VariableEntry
from qualityeval.project_loader import project_from_dict
from qualityeval.store import ResultStore


PROJECT = {
    "id": 1,
    "name": "Billing platform",
    "minimum_threshold": 80,
    "evaluations": [
        {
            "id": 10,
            "standard": "ISO/IEC 25010",
            "criteria": [
                {
                    "id": 100,
                    "name": "Functional suitability",
                    "importance_level": "A",
                    "importance_percentage": 50,
                    "metrics": [
                        {
                            "id": 1000,
                            "metric": {
                                "code": "FS-01",
                                "name": "Functional completeness",
                                "formula": "A/B",
                                "desired_threshold": "1",
                                "variables": [
                                    {"symbol": "A", "description": "Implemented functions"},
                                    {"symbol": "B", "description": "Specified functions"},
                                ],
                            },
                        },
                        {
                            "id": 1001,
                            "metric": {
                                "code": "FS-02",
                                "name": "Test cases per module",
                                "formula": "A",
                                "desired_threshold": "4",
                                "worst_case": "0",
                                "variables": [{"symbol": "A"}],
                            },
                        },
                    ],
                },
                {
                    "id": 101,
                    "name": "Performance efficiency",
                    "importance_level": "M",
                    "importance_percentage": 50,
                    "metrics": [
                        {
                            "id": 1002,
                            "metric": {
                                "code": "PE-01",
                                "name": "Response time",
                                "formula": "A",
                                "desired_threshold": "0seg",
                                "worst_case": ">=15 seg",
                                "variables": [{"symbol": "A"}],
                            },
                        },
                    ],
                },
            ],
        },
        {
            "id": 20,
            "standard": "ISO/IEC 25010",
            "criteria": [
                {
                    "id": 200,
                    "name": "Reliability",
                    "importance_percentage": 100,
                    "metrics": [
                        {
                            "id": 2000,
                            "metric": {
                                "code": "RE-01",
                                "name": "Failures per release",
                                "formula": "A",
                                "desired_threshold": "1",
                                "worst_case": ">=4",
                                "variables": [{"symbol": "A"}],
                            },
                        },
                    ],
                },
            ],
        },
    ],
}

# Evaluation 10: FS-01 8.0, FS-02 10.0, PE-01 8.0 -> 4.5 + 4.0 = 8.5
# Evaluation 20: RE-01 5.0 -> 5.0
VALUES = [
    {"eval_metric_id": 1000, "symbol": "A", "value": 8},
    {"eval_metric_id": 1000, "symbol": "B", "value": 10},
    {"eval_metric_id": 1001, "symbol": "A", "value": 4},
    {"eval_metric_id": 1002, "symbol": "A", "value": 3},
    {"eval_metric_id": 2000, "symbol": "A", "value": 2},
]


@pytest.fixture
def project_data():
    return copy.deepcopy(PROJECT)


@pytest.fixture
def values_data():
    return {"values": copy.deepcopy(VALUES)}


@pytest.fixture
def project(project_data):
    return project_from_dict(project_data)


@pytest.fixture
def store(project):
    return ResultStore([project])


def entries_for(evaluation_metric_ids):
    return [VariableEntry.from_dict(v) for v in VALUES if v["eval_metric_id"] in evaluation_metric_ids]


@pytest.fixture
def make_entries():
    return entries_for


@pytest.fixture
def filled_store(store):
    """Store with every value of both evaluations entered."""
    store.save_variables(10, entries_for({1000, 1001, 1002}))
    store.save_variables(20, entries_for({2000}))
    return store
