"""
Tests for the configuration module.

This test module validates:
- Default configuration values
- Configuration loading from YAML files
- Environment variable overrides
- Command-line overrides
- Configuration precedence (defaults < YAML < env vars < CLI)
- Pydantic model validation with invalid inputs
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest import mock

import pytest
import yaml
from pydantic import ValidationError

from ollama_updater.config import (
    AppConfig,
    LoggingConfig,
    ReleaseSourceConfig,
    _deep_merge,
    _load_env_config,
    _load_yaml_config,
    _parse_env_value,
    load_config,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sample_yaml_config() -> dict[str, Any]:
    """Sample YAML configuration for testing."""
    return {
        "paths": {
            "service_file": "/srv/units/ollama.service",
            "backup_file": "/srv/backup/ollama.service.bak",
        },
        "service": {"unit": "ollama-gpu"},
        "logging": {"level": "info"},
    }


@pytest.fixture
def yaml_file(tmp_path: Path, sample_yaml_config: dict[str, Any]) -> Path:
    """Write the sample configuration to disk."""
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump(sample_yaml_config))
    return path


@pytest.fixture(autouse=True)
def no_default_config(tmp_path: Path):
    """Keep the host's /etc/ollama-updater/config.yml out of the tests."""
    with mock.patch(
        "ollama_updater.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yml"
    ):
        yield


# =============================================================================
# Tests for Defaults
# =============================================================================


class TestDefaults:
    """Tests for built-in defaults."""

    def test_default_paths(self) -> None:
        """Test default host paths."""
        config = AppConfig()

        assert config.paths.service_file == Path("/etc/systemd/system/ollama.service")
        assert config.paths.install_root == Path("/usr/local")
        assert config.paths.binary == "ollama"

    def test_default_release_source(self) -> None:
        """Test default release URLs."""
        config = AppConfig()

        assert config.releases.api_url == (
            "https://api.github.com/repos/ollama/ollama/releases"
        )
        assert config.releases.install_script_url == "https://ollama.com/install.sh"
        assert config.releases.asset_url_template.endswith(
            "/releases/download/{tag}/ollama-linux-{arch}.tar.zst"
        )

    def test_default_service(self) -> None:
        """Test default unit name."""
        assert AppConfig().service.unit == "ollama"


# =============================================================================
# Tests for Validation
# =============================================================================


class TestValidation:
    """Tests for model validators."""

    def test_log_level_normalized(self) -> None:
        """Test that 'WARN' is normalized to 'warning'."""
        assert LoggingConfig(level="WARN").level == "warning"

    def test_invalid_log_level(self) -> None:
        """Test that an unknown log level is rejected."""
        with pytest.raises(ValidationError, match="Invalid log level"):
            LoggingConfig(level="verbose")

    def test_asset_template_requires_placeholders(self) -> None:
        """Test that the archive template must contain tag and arch."""
        with pytest.raises(ValidationError, match=r"\{arch\}"):
            ReleaseSourceConfig(asset_url_template="https://example.com/{tag}.tar.zst")

    def test_timeout_must_be_positive(self) -> None:
        """Test that a zero timeout is rejected."""
        with pytest.raises(ValidationError):
            ReleaseSourceConfig(timeout_seconds=0)


# =============================================================================
# Tests for Loading Helpers
# =============================================================================


class TestLoadingHelpers:
    """Tests for the private loading helpers."""

    def test_deep_merge(self) -> None:
        """Test nested dictionaries are merged, not replaced."""
        base = {"paths": {"service_file": "a", "binary": "ollama"}}
        override = {"paths": {"service_file": "b"}}

        assert _deep_merge(base, override) == {
            "paths": {"service_file": "b", "binary": "ollama"}
        }
        assert base["paths"]["service_file"] == "a"

    def test_load_yaml_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing YAML file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            _load_yaml_config(tmp_path / "missing.yml")

    def test_load_yaml_empty_file(self, tmp_path: Path) -> None:
        """Test that an empty YAML file yields an empty dict."""
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert _load_yaml_config(path) == {}

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("true", True),
            ("OFF", False),
            ("30", 30),
            ("2.5", 2.5),
            ("/usr/local", "/usr/local"),
        ],
    )
    def test_parse_env_value(self, raw: str, expected: Any) -> None:
        """Test environment value conversion."""
        assert _parse_env_value(raw) == expected

    def test_load_env_config_nesting(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that double underscores create nested keys."""
        monkeypatch.setenv("OLLAMA_UPDATER_PATHS__SERVICE_FILE", "/tmp/ollama.service")
        monkeypatch.setenv("OLLAMA_UPDATER_LOGGING__JSON_FORMAT", "true")
        monkeypatch.setenv("UNRELATED_VARIABLE", "x")

        assert _load_env_config() == {
            "paths": {"service_file": "/tmp/ollama.service"},
            "logging": {"json_format": True},
        }


# =============================================================================
# Tests for load_config
# =============================================================================


class TestLoadConfig:
    """Tests for layered configuration loading."""

    def test_defaults_without_sources(self) -> None:
        """Test that no sources yields defaults."""
        assert load_config() == AppConfig()

    def test_yaml_file(self, yaml_file: Path) -> None:
        """Test values from a YAML file."""
        config = load_config(yaml_file)

        assert config.paths.service_file == Path("/srv/units/ollama.service")
        assert config.service.unit == "ollama-gpu"
        assert config.paths.binary == "ollama"

    def test_yaml_path_as_string(self, yaml_file: Path) -> None:
        """Test that a string path is accepted."""
        assert load_config(str(yaml_file)).service.unit == "ollama-gpu"

    def test_explicit_missing_file(self, tmp_path: Path) -> None:
        """Test that an explicitly given missing file is an error."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yml")

    def test_default_path_used_when_present(
        self, tmp_path: Path, sample_yaml_config: dict[str, Any]
    ) -> None:
        """Test that the default config file is picked up."""
        default = tmp_path / "default.yml"
        default.write_text(yaml.safe_dump(sample_yaml_config))

        with mock.patch("ollama_updater.config.DEFAULT_CONFIG_PATH", default):
            assert load_config().service.unit == "ollama-gpu"

    def test_precedence(
        self, yaml_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test defaults < YAML < env vars < CLI overrides."""
        monkeypatch.setenv("OLLAMA_UPDATER_SERVICE__UNIT", "from-env")
        monkeypatch.setenv("OLLAMA_UPDATER_LOGGING__LEVEL", "error")

        config = load_config(yaml_file, overrides={"logging": {"level": "debug"}})

        assert config.service.unit == "from-env"
        assert config.logging.level == "debug"
        assert config.paths.backup_file == Path("/srv/backup/ollama.service.bak")

    def test_invalid_values_rejected(self, tmp_path: Path) -> None:
        """Test that invalid YAML values fail validation."""
        path = tmp_path / "bad.yml"
        path.write_text(yaml.safe_dump({"logging": {"level": "loud"}}))

        with pytest.raises(ValidationError):
            load_config(path)
