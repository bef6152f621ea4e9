"""Tests for the configuration management system."""

import pytest
import yaml
from pydantic import ValidationError

from activity.config import Config, _apply_env_overrides, load_config


def test_load_dev_config():
    """Test loading development configuration."""
    config = load_config("dev")

    assert config.environment == "dev"
    assert config.app_name == "activity-feed"
    assert config.feed.default_limit == 50
    assert config.feed.max_limit == 500
    assert config.logging.level == "DEBUG"
    assert config.logging.structured is False


def test_load_prod_config():
    """Test loading production configuration."""
    config = load_config("prod")

    assert config.environment == "prod"
    assert config.logging.level == "INFO"
    assert config.logging.structured is True


def test_defaults_without_file():
    config = Config()

    assert config.feed.unknown_project_label == "Unknown project"
    assert config.feed.summary_max_length == 40


def test_environment_from_env_var(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "prod")
    assert load_config().environment == "prod"


def test_env_overrides(monkeypatch):
    """Test environment variable overrides."""
    monkeypatch.setenv("FEED_DEFAULT_LIMIT", "20")
    monkeypatch.setenv("FEED_MAX_LIMIT", "100")
    monkeypatch.setenv("UNKNOWN_PROJECT_LABEL", "Deleted project")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setenv("LOG_STRUCTURED", "false")

    result = _apply_env_overrides({"feed": {"default_limit": 50}})

    assert result["feed"] == {
        "default_limit": 20,
        "max_limit": 100,
        "unknown_project_label": "Deleted project",
    }
    assert result["logging"] == {"level": "WARNING", "structured": False}


def test_env_overrides_reach_loaded_config(monkeypatch):
    monkeypatch.setenv("SUMMARY_MAX_LENGTH", "80")

    config = load_config("dev")

    assert config.feed.summary_max_length == 80


def test_config_dir(tmp_path):
    """Test loading from an explicit configuration directory."""
    (tmp_path / "test.yml").write_text(yaml.safe_dump({"feed": {"default_limit": 10}}))

    config = load_config("test", config_dir=tmp_path)

    assert config.environment == "test"
    assert config.feed.default_limit == 10
    assert config.feed.max_limit == 500


def test_empty_config_file(tmp_path):
    (tmp_path / "empty.yml").write_text("")

    config = load_config("empty", config_dir=tmp_path)

    assert config == Config(environment="empty")


def test_config_file_not_found(tmp_path):
    """Test error handling when config file doesn't exist."""
    with pytest.raises(FileNotFoundError):
        load_config("nonexistent", config_dir=tmp_path)


def test_config_validation(tmp_path):
    """Test configuration validation with invalid data."""
    (tmp_path / "bad.yml").write_text(yaml.safe_dump({"feed": {"max_limit": 0}}))

    with pytest.raises(ValidationError):
        load_config("bad", config_dir=tmp_path)
