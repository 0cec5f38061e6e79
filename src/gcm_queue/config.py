"""Configuration for the sender and demo application.

Settings are loaded from a YAML file, ``${VARIABLE}`` references are
resolved from the environment, and the result is validated with Pydantic
so mistakes fail fast with actionable messages.

Example file::

    sender:
      url: https://gcm-http.googleapis.com/gcm/send
      api_key: ${GCM_API_KEY}
      timeout: 10
    application:
      log_level: INFO
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from gcm_queue.sender import DEFAULT_GCM_URL, DEFAULT_TIMEOUT_SECONDS

# Matches ${VARIABLE_NAME} where VARIABLE_NAME contains letters, digits and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


class SenderConfig(BaseModel):
    """Connection settings for the GCM HTTP endpoint."""

    url: Annotated[
        str,
        Field(description="GCM HTTP endpoint URL"),
    ] = DEFAULT_GCM_URL
    api_key: Annotated[
        str,
        Field(
            min_length=1,
            description="Server API key from the developer console",
        ),
    ]
    timeout: Annotated[
        float,
        Field(
            gt=0,
            description="Request timeout in seconds",
        ),
    ] = DEFAULT_TIMEOUT_SECONDS

    @field_validator("url", mode="after")
    @classmethod
    def validate_url_scheme(cls, v: str) -> str:
        """Validate that the endpoint is an http or https URL.

        Raises:
            ValueError: If the URL has another scheme or no host
        """
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            msg = f"Endpoint URL must use HTTP or HTTPS: {v}"
            raise ValueError(msg)
        return v

    @field_validator("api_key", mode="after")
    @classmethod
    def validate_api_key_not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "Server API key must not be blank"
            raise ValueError(msg)
        return v


class ApplicationConfig(BaseModel):
    """Application-level settings."""

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "INFO"


class MainConfig(BaseModel):
    """Top-level configuration aggregating the sender and application sections."""

    sender: Annotated[
        SenderConfig,
        Field(description="GCM endpoint connection settings"),
    ]
    application: Annotated[
        ApplicationConfig,
        Field(description="Application-level configuration"),
    ] = ApplicationConfig()


class EnvironmentVariableError(Exception):
    """Raised when a referenced environment variable is not set."""


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be loaded or is invalid."""


def resolve_env_var(value: str) -> str:
    """Substitute every ``${VARIABLE_NAME}`` reference in a string.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["GCM_API_KEY"] = "secret"
        >>> resolve_env_var("${GCM_API_KEY}")
        'secret'
    """
    missing = sorted({name for name in ENV_VAR_PATTERN.findall(value) if name not in os.environ})
    if missing:
        msg = f"Environment variable(s) not set: {', '.join(missing)}"
        raise EnvironmentVariableError(msg)

    return ENV_VAR_PATTERN.sub(lambda match: os.environ[match.group(1)], value)


def _resolve_value(value: object) -> object:
    if isinstance(value, str):
        return resolve_env_var(value)
    if isinstance(value, Mapping):
        return resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]  # pyright: ignore[reportUnknownVariableType]  # YAML boundary
    return value


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Resolve environment references in every string of parsed YAML data.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set
    """
    return {key: _resolve_value(value) for key, value in data.items()}


def _format_validation_error(error: ValidationError, config_path: Path) -> str:
    lines = [f"Invalid configuration in {config_path}:"]
    for detail in error.errors():
        location = " → ".join(str(part) for part in detail["loc"])
        lines.append(f"  {location}: {detail['msg']} ({detail['type']})")
    return "\n".join(lines)


def load_config(config_path: Path) -> MainConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file is missing, unreadable, not a
            mapping, references an unset variable or fails validation
    """
    try:
        text = config_path.read_text()
    except FileNotFoundError as e:
        msg = f"Configuration file not found: {config_path}"
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Cannot read configuration file {config_path}: {e}"
        raise ConfigurationError(msg) from e

    try:
        raw_data: object = yaml.safe_load(text)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = f"YAML parsing error in {config_path}: {e}"
        raise ConfigurationError(msg) from e

    if not isinstance(raw_data, dict):
        msg = f"Expected YAML dictionary at the root of {config_path}, got: {type(raw_data).__name__}"
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]  # YAML boundary
    except EnvironmentVariableError as e:
        msg = f"Cannot resolve {config_path}: {e}"
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved_data)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e, config_path)) from e
