"""Configuration management for the activity feed.

This module provides a centralized configuration loader that:
1. Checks environment variables first
2. Falls back to YAML configuration files
3. Provides type-safe configuration objects
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class FeedConfig(BaseModel):
    """Feed assembly and presentation settings."""
    default_limit: int = Field(default=50, ge=1)
    max_limit: int = Field(default=500, ge=1)
    unknown_project_label: str = "Unknown project"
    summary_max_length: int = Field(default=40, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    structured: bool = True


class Config(BaseModel):
    """Main configuration object."""
    environment: str = "dev"
    app_name: str = "activity-feed"
    feed: FeedConfig = Field(default_factory=FeedConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(environment: Optional[str] = None, config_dir: Optional[Path] = None) -> Config:
    """Load configuration from environment variables and YAML files.

    Args:
        environment: Environment name (dev/prod). If None, uses ENVIRONMENT env var.
        config_dir: Directory holding ``{environment}.yml``. Defaults to the
            repository's ``config/`` directory.

    Returns:
        Loaded configuration object.

    Raises:
        FileNotFoundError: If configuration file doesn't exist.
        pydantic.ValidationError: If configuration is invalid.
    """
    env = environment or os.getenv("ENVIRONMENT", "dev")

    config_file = Path(config_dir or DEFAULT_CONFIG_DIR) / f"{env}.yml"
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    with open(config_file, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    config_data.setdefault("environment", env)
    config_data = _apply_env_overrides(config_data)

    return Config(**config_data)


def _apply_env_overrides(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration data."""
    # Feed overrides
    default_limit = os.getenv("FEED_DEFAULT_LIMIT")
    if default_limit:
        config_data.setdefault("feed", {})["default_limit"] = int(default_limit)
    max_limit = os.getenv("FEED_MAX_LIMIT")
    if max_limit:
        config_data.setdefault("feed", {})["max_limit"] = int(max_limit)
    if os.getenv("UNKNOWN_PROJECT_LABEL"):
        config_data.setdefault("feed", {})["unknown_project_label"] = os.getenv("UNKNOWN_PROJECT_LABEL")
    summary_max_length = os.getenv("SUMMARY_MAX_LENGTH")
    if summary_max_length:
        config_data.setdefault("feed", {})["summary_max_length"] = int(summary_max_length)

    # Logging overrides
    if os.getenv("LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = os.getenv("LOG_LEVEL", "").upper()
    structured = os.getenv("LOG_STRUCTURED")
    if structured:
        config_data.setdefault("logging", {})["structured"] = structured.lower() == "true"

    return config_data
