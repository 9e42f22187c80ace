"""
Pytest configuration for the Ollama updater tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ollama_updater.config import AppConfig, PathsConfig
from ollama_updater.updates.releases import Release

# Configure pytest-asyncio mode
pytest_plugins = ["pytest_asyncio"]

UNIT_FILE_CONTENT = (
    b"[Unit]\nDescription=Ollama Service\n\n"
    b"[Service]\nExecStart=/usr/local/bin/ollama serve\n"
    b'Environment="OLLAMA_HOST=0.0.0.0"\n'
)


@pytest.fixture
def service_file(tmp_path: Path) -> Path:
    """A customised unit file in a temporary /etc."""
    path = tmp_path / "etc" / "systemd" / "system" / "ollama.service"
    path.parent.mkdir(parents=True)
    path.write_bytes(UNIT_FILE_CONTENT)
    return path


@pytest.fixture
def app_config(tmp_path: Path, service_file: Path) -> AppConfig:
    """Configuration with every host path under tmp_path."""
    return AppConfig(
        paths=PathsConfig(
            service_file=service_file,
            backup_file=tmp_path / "state" / "ollama.service.bak",
            install_root=tmp_path / "usr" / "local",
        )
    )


@pytest.fixture
def sample_releases() -> list[Release]:
    """Releases in API order: newest first."""
    return [
        Release(tag="v0.6.1-rc0", notes="draft notes", is_prerelease=True, is_draft=True),
        Release(tag="v0.5.0", notes="notes-a"),
        Release(tag="v0.6.0-rc1", notes="notes-b", is_prerelease=True),
        Release(tag="v0.4.9", notes="older"),
    ]
