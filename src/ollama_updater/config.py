"""
Configuration management for the Ollama updater.

Every host path, URL and unit name the updater touches lives in AppConfig,
so each component receives its locations explicitly and tests can point
them at temporary directories.

Configuration is loaded from multiple sources with layered precedence:
1. Built-in defaults (Pydantic model defaults)
2. YAML config file (/etc/ollama-updater/config.yml or --config path)
3. Environment variables (OLLAMA_UPDATER_* prefix, __ for nesting)
4. Command-line overrides (highest precedence)
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = Path("/etc/ollama-updater/config.yml")
DEFAULT_ENV_PREFIX = "OLLAMA_UPDATER_"

# =============================================================================
# Paths Configuration
# =============================================================================


class PathsConfig(BaseModel):
    """Host filesystem locations.

    Attributes:
        service_file: The systemd unit file to preserve across the install.
        backup_file: Sidecar copy of the unit file.
        install_root: Root that pre-release archives are extracted into.
        binary: Name or path of the managed binary.
    """

    service_file: Path = Field(
        default=Path("/etc/systemd/system/ollama.service"),
        description="systemd unit file preserved across installs",
    )
    backup_file: Path = Field(
        default=Path("/var/lib/ollama-updater/ollama.service.bak"),
        description="Sidecar backup of the unit file, overwritten every run",
    )
    install_root: Path = Field(
        default=Path("/usr/local"),
        description="Extraction root for pre-release archives",
    )
    binary: str = Field(
        default="ollama",
        description="Managed binary, looked up on PATH",
    )


# =============================================================================
# Release Source Configuration
# =============================================================================


class ReleaseSourceConfig(BaseModel):
    """Remote locations of release metadata and artifacts.

    Attributes:
        api_url: Release list endpoint (first page only is read).
        asset_url_template: Pre-release archive URL, formatted with
            ``tag`` and ``arch``.
        install_script_url: Upstream install script for stable releases.
        timeout_seconds: HTTP timeout applied to every request.
    """

    api_url: str = Field(
        default="https://api.github.com/repos/ollama/ollama/releases",
        description="GitHub releases API endpoint",
    )
    asset_url_template: str = Field(
        default=(
            "https://github.com/ollama/ollama/releases/download/"
            "{tag}/ollama-linux-{arch}.tar.zst"
        ),
        description="Pre-release archive URL template ({tag}, {arch})",
    )
    install_script_url: str = Field(
        default="https://ollama.com/install.sh",
        description="Upstream install script used for stable installs",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout in seconds",
        gt=0,
    )

    @field_validator("asset_url_template")
    @classmethod
    def validate_asset_url_template(cls, v: str) -> str:
        """Ensure the template can be formatted with a tag and an arch."""
        for placeholder in ("{tag}", "{arch}"):
            if placeholder not in v:
                raise ValueError(
                    f"asset_url_template must contain {placeholder}: {v}"
                )
        return v


# =============================================================================
# Service Configuration
# =============================================================================


class ServiceConfig(BaseModel):
    """systemd settings.

    Attributes:
        unit: Unit restarted after the install.
        systemctl_timeout_seconds: Upper bound for a single systemctl call.
    """

    unit: str = Field(
        default="ollama",
        description="systemd unit name",
    )
    systemctl_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for a single systemctl invocation",
        gt=0,
    )


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Diagnostic logging configuration.

    Attributes:
        level: Log level.
        json_format: Emit JSON lines instead of plain text.
    """

    level: str = Field(
        default="warning",
        description="Log level: debug, info, warn, error",
    )
    json_format: bool = Field(
        default=False,
        description="Emit diagnostics as JSON lines",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"debug", "info", "warn", "warning", "error", "critical"}
        v_lower = v.lower()
        if v_lower not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        if v_lower == "warn":
            return "warning"
        return v_lower


# =============================================================================
# Main Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """
    Main application configuration model.

    Attributes:
        paths: Host filesystem locations.
        releases: Remote release metadata and artifact locations.
        service: systemd unit settings.
        logging: Diagnostic logging configuration.
    """

    paths: PathsConfig = Field(
        default_factory=PathsConfig,
        description="Host filesystem locations",
    )
    releases: ReleaseSourceConfig = Field(
        default_factory=ReleaseSourceConfig,
        description="Release metadata and artifact locations",
    )
    service: ServiceConfig = Field(
        default_factory=ServiceConfig,
        description="systemd settings",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: The base dictionary.
        override: The dictionary with values to override.

    Returns:
        A new dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        yaml.YAMLError: If the YAML is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _parse_env_value(value: str) -> Any:
    """
    Parse an environment variable value to a Python type.

    Booleans and numbers are converted; anything else stays a string.
    """
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def _load_env_config(prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """
    Load configuration from environment variables.

    Nested keys use a double underscore, for example
    ``OLLAMA_UPDATER_PATHS__SERVICE_FILE=/etc/systemd/system/ollama.service``.

    Args:
        prefix: Environment variable prefix.

    Returns:
        Dictionary with configuration values.
    """
    result: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix) :].lower().split("__")

        current = result
        for part in parts[:-1]:
            current = current.setdefault(part, {})

        current[parts[-1]] = _parse_env_value(value)

    return result


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration from all sources with layered precedence.

    Args:
        config_path: Path to a YAML configuration file. If None, the default
            path is used when it exists.
        env_prefix: Prefix for environment variables.
        overrides: Values from the command line, applied last.

    Returns:
        Fully configured AppConfig instance.

    Raises:
        FileNotFoundError: If an explicitly given config file doesn't exist.
        ValidationError: If configuration is invalid.

    Example:
        >>> config = load_config(overrides={"logging": {"level": "debug"}})
        >>> config.paths.service_file
        PosixPath('/etc/systemd/system/ollama.service')
    """
    config_dict: dict[str, Any] = {}

    if config_path is None:
        if DEFAULT_CONFIG_PATH.exists():
            config_path = DEFAULT_CONFIG_PATH
    elif isinstance(config_path, str):
        config_path = Path(config_path)

    if config_path is not None:
        config_dict = _deep_merge(config_dict, _load_yaml_config(config_path))

    config_dict = _deep_merge(config_dict, _load_env_config(env_prefix))

    if overrides:
        config_dict = _deep_merge(config_dict, overrides)

    return AppConfig(**config_dict)
