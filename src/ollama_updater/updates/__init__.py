"""
Update mechanics for the Ollama updater.

This package implements the pieces the CLI sequences:
- Installed-version detection and version comparison
- Release list fetching and channel selection
- Install strategies (upstream script, release archive)
- Unit file backup and restore
- systemd reload and restart
"""

from ollama_updater.updates.backends import (
    DelegatedScriptInstaller,
    DirectArchiveInstaller,
    Installer,
    build_asset_url,
    build_installer,
    normalize_arch,
)
from ollama_updater.updates.preserve import ConfigPreserver
from ollama_updater.updates.releases import (
    Release,
    ReleaseFetcher,
    latest_prerelease,
    latest_stable,
    select_latest,
)
from ollama_updater.updates.systemd_restart import ServiceController
from ollama_updater.updates.version import (
    VERSION_NOT_INSTALLED,
    VERSION_UNKNOWN,
    compare_versions,
    extract_version,
    is_update_available,
    read_installed_version,
)

__all__ = [
    # Version
    "VERSION_NOT_INSTALLED",
    "VERSION_UNKNOWN",
    "compare_versions",
    "extract_version",
    "is_update_available",
    "read_installed_version",
    # Releases
    "Release",
    "ReleaseFetcher",
    "latest_prerelease",
    "latest_stable",
    "select_latest",
    # Installers
    "Installer",
    "DelegatedScriptInstaller",
    "DirectArchiveInstaller",
    "build_asset_url",
    "build_installer",
    "normalize_arch",
    # Preservation and service
    "ConfigPreserver",
    "ServiceController",
]
