"""Configuration loading tests"""
import pytest

from qualityeval.config import CONFIG_ENV_VAR, DEFAULT_MINIMUM_THRESHOLD, MAX_SCORE, get_config, load_config
from qualityeval.engine import ScoreClassifier
from qualityeval.errors import ConfigurationError


def test_defaults(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    config = get_config()
    assert config["scoring"]["max_score"] == MAX_SCORE
    assert config["scoring"]["formula_decimals"] == 4
    assert config["scoring"]["aggregate_decimals"] == 2
    assert config["classification"]["default_minimum_threshold"] == DEFAULT_MINIMUM_THRESHOLD
    assert config["projects"]["importance_sum_tolerance"] == 0.01


def test_defaults_are_not_shared(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    config = get_config()
    config["scoring"]["max_score"] = 100
    assert get_config()["scoring"]["max_score"] == MAX_SCORE


def test_yaml_override_is_merged(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "classification:\n"
        "  default_minimum_threshold: 70\n"
        "scoring:\n"
        "  aggregate_decimals: 3\n"
    )
    config = load_config(config_file)
    assert config["classification"]["default_minimum_threshold"] == 70
    assert config["scoring"]["aggregate_decimals"] == 3
    # Untouched siblings keep their defaults
    assert config["classification"]["score_level"]["target_range"] == 1.09375
    assert config["scoring"]["metric_decimals"] == 4


def test_override_changes_classification(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("classification:\n  default_minimum_threshold: 70\n")
    classifier = ScoreClassifier(load_config(config_file))
    # 7.7 exceeds 7.65625 (T = 7.0) but not 8.75 (T = 8.0)
    assert classifier.classify(7.7, None).score_level.value == "Exceeds Requirements"


def test_env_var(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("scoring:\n  strict_thresholds: true\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))
    assert get_config()["scoring"]["strict_thresholds"] is True


def test_unknown_key(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("scoring:\n  max_scor: 5\n")
    with pytest.raises(ConfigurationError, match="scoring.max_scor"):
        load_config(config_file)


def test_section_must_be_mapping(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("scoring: 5\n")
    with pytest.raises(ConfigurationError):
        load_config(config_file)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "missing.yaml")


def test_invalid_yaml(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("scoring: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_config(config_file)


def test_empty_file_gives_defaults(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")
    assert load_config(config_file)["scoring"]["max_score"] == MAX_SCORE
