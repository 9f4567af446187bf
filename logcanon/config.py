"""Configuration management for logcanon."""

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml
from pydantic import Field, ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from logcanon.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class LogcanonConfig(BaseSettings):
    """Main configuration for logcanon."""

    model_config = SettingsConfigDict(
        env_prefix="LOGCANON_",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    log_json: bool = Field(
        default=True,
        description="Emit logs as JSON lines instead of console output",
    )

    max_workers: int = Field(
        default=4,
        ge=1,
        description="Parallel workers used to parse one input",
    )

    log_types: Optional[List[str]] = Field(
        default=None,
        description="Log types that may be parsed; all registered types when unset",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    def allows(self, log_type: str) -> bool:
        """Whether ``log_type`` is enabled."""
        return self.log_types is None or log_type in self.log_types


def expand_env_vars(value: Any) -> Any:
    """Recursively expand ``${VAR_NAME}`` references in configuration values."""
    if isinstance(value, str):
        for var_name in ENV_VAR_PATTERN.findall(value):
            env_value = os.environ.get(var_name, "")
            if not env_value:
                logger.warning("environment_variable_not_set", var_name=var_name)
            value = value.replace(f"${{{var_name}}}", env_value)
        return value

    elif isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [expand_env_vars(item) for item in value]

    return value


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must contain a mapping")
    return expand_env_vars(data)


def load_config(config_path: Optional[Path] = None) -> LogcanonConfig:
    """Load configuration from an optional YAML file and the environment.

    Environment variables (``LOGCANON_*``) take precedence over values from
    the file.

    Raises:
        ConfigurationError: If the file is missing or unreadable, or a value is invalid
    """
    file_values: Dict[str, Any] = {}
    if config_path is not None:
        file_values = _read_yaml(config_path)

    env_names = {
        name for name in LogcanonConfig.model_fields
        if f"LOGCANON_{name.upper()}" in {key.upper() for key in os.environ}
    }
    file_values = {key: value for key, value in file_values.items() if key not in env_names}

    try:
        config = LogcanonConfig(**file_values)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.debug(
        "configuration_loaded",
        config_path=str(config_path) if config_path else None,
        log_level=config.log_level,
        max_workers=config.max_workers,
    )
    return config
