"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import DailyTemplate

DEFAULT_CONFIG_NAME = "config.yaml"


class StorageConfig(BaseModel):
    """Where slots are persisted."""
    backend: Literal["json", "mock", "http"] = "json"
    path: Path = Path("slots.json")
    base_url: Optional[str] = None
    timeout_seconds: float = 30.0
    latency_ms: int = 0  # mock backend only

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure the backing-call timeout is positive."""
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value

    @field_validator("latency_ms")
    @classmethod
    def validate_latency(cls, value: int) -> int:
        if value < 0:
            raise ValueError("latency_ms must not be negative")
        return value

    @model_validator(mode="after")
    def validate_http_url(self) -> "StorageConfig":
        """The http backend needs a base URL."""
        if self.backend == "http" and not self.base_url:
            raise ValueError("storage.base_url is required for the http backend")
        return self


class DefaultsConfig(BaseModel):
    """Default settings for bulk scheduling."""
    weekdays_only: bool = True
    templates: List[str] = Field(default_factory=lambda: ["09:00-09:30"])

    @field_validator("templates")
    @classmethod
    def validate_templates(cls, value: List[str]) -> List[str]:
        """Ensure every template reads HH:MM-HH:MM."""
        if not value:
            raise ValueError("At least one default time template is required")
        for template in value:
            DailyTemplate.parse(template)
        return value

    def get_templates(self) -> List[DailyTemplate]:
        """Get templates as DailyTemplate objects."""
        return [DailyTemplate.parse(template) for template in self.templates]


class AppConfig(BaseModel):
    """Application configuration."""
    storage: StorageConfig = Field(default_factory=StorageConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    strict_ranges: bool = False
    strict_deletes: bool = False
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative storage paths are resolved against the config file's
        directory.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        if not config.storage.path.is_absolute():
            config.storage.path = config_path.parent / config.storage.path

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / DEFAULT_CONFIG_NAME

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / DEFAULT_CONFIG_NAME

    return config_path


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load an explicit config file, or the default one if it exists.

    A missing default file yields built-in defaults; a missing explicit
    file is an error.
    """
    if config_path is not None:
        return AppConfig.load_from_yaml(config_path)

    default_path = get_default_config_path()
    if default_path.exists():
        return AppConfig.load_from_yaml(default_path)

    return AppConfig()
