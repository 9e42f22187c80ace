"""
Command-line entry point for the Ollama updater.

Usage:
    ollama-updater               install the latest stable release
    ollama-updater --check       show the latest stable release and pre-release
    ollama-updater --pre-release install the latest pre-release after confirmation

Every install backs up the systemd unit file first and puts it back after
the installer ran, then reloads systemd and restarts the service.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable
from enum import Enum
from typing import Any

import yaml
from pydantic import ValidationError

from ollama_updater import __version__
from ollama_updater.config import AppConfig, load_config
from ollama_updater.errors import ReleaseNotFoundError, UpdaterError
from ollama_updater.logging import get_logger, setup_logging
from ollama_updater.updates.backends import Installer, build_installer
from ollama_updater.updates.operations import require_privileges
from ollama_updater.updates.preserve import ConfigPreserver
from ollama_updater.updates.releases import (
    Release,
    ReleaseFetcher,
    latest_prerelease,
    latest_stable,
)
from ollama_updater.updates.systemd_restart import ServiceController
from ollama_updater.updates.version import is_update_available, read_installed_version

logger = get_logger(__name__)

BANNER = "=" * 41

Prompt = Callable[[str], bool]
InstallerFactory = Callable[[bool, AppConfig], Installer]


class Mode(Enum):
    """Which path the updater takes."""

    STABLE = "stable"
    CHECK = "check"
    PRE_RELEASE = "pre-release"


def interactive_prompt(question: str) -> bool:
    """Ask on the terminal; only "y" or "Y" confirms. EOF declines."""
    try:
        answer = input(question)
    except EOFError:
        print()
        return False
    return answer.strip() in ("y", "Y")


def auto_confirm(question: str) -> bool:
    """Confirm without asking, for scripted runs."""
    print(f"{question}y (--yes)")
    return True


def _print_release(label: str, release: Release | None) -> None:
    print(BANNER)
    print(f"{label}: {release.tag if release else 'null'}")
    print(BANNER)
    if release and release.notes:
        print(release.notes)


class Updater:
    """
    Sequences a single updater run.

    All collaborators are injectable; by default they are built from the
    configuration.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        fetcher: ReleaseFetcher | None = None,
        preserver: ConfigPreserver | None = None,
        service: ServiceController | None = None,
        installer_factory: InstallerFactory = build_installer,
        prompt: Prompt = interactive_prompt,
        check_privileges: bool = True,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or ReleaseFetcher.from_config(config.releases)
        self.preserver = preserver or ConfigPreserver.from_config(config.paths)
        self.service = service or ServiceController.from_config(config.service)
        self.installer_factory = installer_factory
        self.prompt = prompt
        self.check_privileges = check_privileges
        self.installed_version: str | None = None

    async def run(self, mode: Mode) -> int:
        """
        Run the updater in ``mode``.

        Returns:
            Process exit status. Fatal conditions raise UpdaterError.
        """
        self.installed_version = await read_installed_version(self.config.paths.binary)
        print(f"Current installed version: {self.installed_version}")
        print()

        if mode is Mode.CHECK:
            return await self.check()

        tag: str | None = None
        if mode is Mode.PRE_RELEASE:
            release = await self.confirm_prerelease()
            if release is None:
                print("Aborted.")
                return 0
            tag = release.tag
            print()

        return await self.install(tag)

    async def check(self) -> int:
        """Print the latest stable release and pre-release. Changes nothing."""
        print("Fetching release info from GitHub...")
        releases = await self.fetcher.fetch_releases()

        stable = latest_stable(releases)
        prerelease = latest_prerelease(releases)

        _print_release("Latest stable release", stable)
        print()
        _print_release("Latest pre-release", prerelease)

        if stable and self.installed_version:
            if is_update_available(self.installed_version, stable.tag):
                print()
                print(f"Update available: {self.installed_version} -> {stable.tag}")
        return 0

    async def confirm_prerelease(self) -> Release | None:
        """
        Show the latest pre-release and ask whether to install it.

        Returns:
            The release if confirmed, None if declined.

        Raises:
            ReleaseNotFoundError: If there is no pre-release.
        """
        print("Fetching pre-release info from GitHub...")
        releases = await self.fetcher.fetch_releases()

        release = latest_prerelease(releases)
        if release is None:
            raise ReleaseNotFoundError("No pre-release found.")

        _print_release("Latest pre-release", release)
        print()

        if not self.prompt(f"Install pre-release {release.tag}? [y/N] "):
            return None
        return release

    async def install(self, tag: str | None = None) -> int:
        """
        Back up the unit file, install, restore it and restart the service.

        Once the backup exists the restore and the restart are attempted
        even if the install failed. The install error propagates when both
        succeed; otherwise the last failure propagates with the earlier one
        as its ``__context__``.

        Args:
            tag: Pre-release tag, or None for the latest stable release.
        """
        installer = self.installer_factory(tag is not None, self.config)

        if self.check_privileges:
            require_privileges("update ollama")
        installer.preflight()

        print(f"Backing up {self.preserver.service_file}...")
        self.preserver.backup()

        try:
            if tag is None:
                print("Updating ollama...")
            else:
                print(f"Updating ollama to pre-release {tag}...")
            await installer.install(tag)
            if tag is not None:
                print(f"Installed ollama {tag} to {self.config.paths.install_root}")
        finally:
            print("Restoring systemd service file...")
            try:
                self.preserver.restore()
            finally:
                print(f"Reloading systemd and restarting {self.service.unit}...")
                await self.service.reload_and_restart()

        print("Done. Ollama updated with original service config preserved.")
        return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ollama-updater",
        description=(
            "Update Ollama while preserving the custom systemd service file."
        ),
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check",
        "-c",
        action="store_const",
        dest="mode",
        const=Mode.CHECK,
        help="Show the latest stable release and pre-release, then exit",
    )
    mode.add_argument(
        "--pre-release",
        "-p",
        action="store_const",
        dest="mode",
        const=Mode.PRE_RELEASE,
        help="Install the latest pre-release from its release archive",
    )
    parser.set_defaults(mode=Mode.STABLE)

    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation before installing a pre-release",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        help="Override log level",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def _report_error(error: UpdaterError) -> None:
    print(f"Error: {error.message}", file=sys.stderr)
    if error.hint:
        print(error.hint, file=sys.stderr)

    # Errors raised while restoring after a failed install hide the original
    context = error.__context__
    while context is not None:
        if isinstance(context, UpdaterError):
            print(f"Earlier error: {context.message}", file=sys.stderr)
        context = context.__context__


def main(argv: list[str] | None = None) -> int:
    """
    Run the updater.

    Args:
        argv: Command-line arguments. If None, uses sys.argv.

    Returns:
        Process exit status.
    """
    args = build_parser().parse_args(argv)

    overrides: dict[str, Any] = {}
    if args.log_level:
        overrides["logging"] = {"level": args.log_level}

    try:
        config = load_config(args.config, overrides=overrides)
    except (FileNotFoundError, yaml.YAMLError, ValidationError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)
    logger.debug("Starting", extra={"mode": args.mode.value})

    updater = Updater(
        config,
        prompt=auto_confirm if args.yes else interactive_prompt,
    )

    try:
        return asyncio.run(updater.run(args.mode))
    except UpdaterError as e:
        logger.debug("Run failed", extra={"error": e.to_dict()})
        _report_error(e)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130
