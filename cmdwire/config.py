"""Configuration management for cmdwire.

Loads ``settings.yaml`` and ``.env`` from a config directory into a
Config object. Property getters provide defaults for every setting so
a missing file or section is never an error.

settings.yaml layout::

    commands:
      case_sensitive: true
      priority: [text, callback, reply]
      type_check: exact          # or "subclass"
    logging:
      level: INFO
      subsystem_levels: {dispatch: DEBUG}
      max_file_size_mb: 10
      backup_count: 5
    log_dir: ~/.cmdwire/logs

Environment variables CMDWIRE_CASE_SENSITIVE and CMDWIRE_TYPE_CHECK
override the ``commands:`` section.

Key classes:
    Config: Settings file + environment loader.
    RegistrySettings: Validated ``commands:`` section.

Key functions:
    get_config: Accessor for the lazily created global Config.
"""

import os
from pathlib import Path
from typing import List, Literal, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .models import DEFAULT_PRIORITY

logger = structlog.get_logger("cmdwire.registry")

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class RegistrySettings(BaseModel):
    """Validated registry options from the ``commands:`` section."""

    case_sensitive: bool = True
    priority: List[str] = Field(default_factory=lambda: list(DEFAULT_PRIORITY))
    type_check: Literal["exact", "subclass"] = "exact"

    @field_validator("priority")
    @classmethod
    def _priority_unique(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("priority must name at least one category")
        if len(set(value)) != len(value):
            raise ValueError("priority must not repeat a category")
        return value


class Config:
    """Central configuration manager for cmdwire.

    Args:
        config_dir: Directory holding settings.yaml and .env. Defaults
            to ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = config_dir

        env_file = config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Cannot parse {filepath}: {e}",
                        setting_name=filename,
                    ) from e
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"{filepath} must contain a mapping, got {type(data).__name__}",
                    setting_name=filename,
                )
            return data
        return {}

    @property
    def registry_settings(self) -> RegistrySettings:
        """Registry options, with environment overrides applied.

        Raises:
            ConfigurationError: If the section has invalid values.
        """
        section = self.settings.get("commands") or {}
        if not isinstance(section, dict):
            raise ConfigurationError(
                "commands section must be a mapping",
                setting_name="commands",
            )
        values = dict(section)

        env_case = os.environ.get("CMDWIRE_CASE_SENSITIVE")
        if env_case is not None:
            values["case_sensitive"] = _parse_bool(env_case, "CMDWIRE_CASE_SENSITIVE")
        env_type_check = os.environ.get("CMDWIRE_TYPE_CHECK")
        if env_type_check:
            values["type_check"] = env_type_check.strip().lower()

        try:
            return RegistrySettings.model_validate(values)
        except ValidationError as e:
            logger.error("config_invalid_value", section="commands", errors=e.errors())
            raise ConfigurationError(
                f"Invalid commands settings: {e}",
                setting_name="commands",
            ) from e

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"dispatch": "DEBUG"}."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("subsystem_levels") or {}

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging") or {}
        return log_config.get("backup_count", 5)


def _parse_bool(raw: str, name: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}", setting_name=name)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
