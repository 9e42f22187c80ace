"""
Install backends for the Ollama updater.

Two strategies share the Installer interface:
- DelegatedScriptInstaller: stable installs through the upstream install
  script. The script is opaque; only its exit status matters.
- DirectArchiveInstaller: pre-release installs from the GitHub release
  archive, streamed through ``zstd -d`` into ``tar -x``.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import platform
import shutil
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import httpx

from ollama_updater.errors import InstallError, MissingToolError, UnavailableError
from ollama_updater.logging import get_logger
from ollama_updater.updates.operations import (
    ensure_directory,
    is_privileged,
    require_privileges,
    safe_remove_directory,
)

if TYPE_CHECKING:
    from pathlib import Path

    from ollama_updater.config import AppConfig

logger = get_logger(__name__)

# uname -m spellings that differ from the release asset names
ARCH_ALIASES = {
    "x86_64": "amd64",
    "aarch64": "arm64",
}

ZSTD_HINT = "Install it with: sudo dnf install zstd  (or apt-get install zstd)"


def normalize_arch(machine: str) -> str:
    """
    Map a ``uname -m`` machine name to the release asset architecture.

    ``x86_64`` becomes ``amd64`` and ``aarch64`` becomes ``arm64``; anything
    else is returned unchanged.
    """
    return ARCH_ALIASES.get(machine, machine)


def build_asset_url(template: str, tag: str, arch: str) -> str:
    """Format the pre-release archive URL for a tag and architecture."""
    return template.format(tag=tag, arch=arch)


class Installer(ABC):
    """
    Abstract base class for install strategies.

    The orchestrator calls preflight() before anything on the host is
    changed, then install() between the unit file backup and restore.
    """

    def preflight(self) -> None:
        """
        Check that the host can run this installer.

        Raises:
            FailedPreconditionError: If a required tool or privilege is missing.
        """

    @abstractmethod
    async def install(self, tag: str | None = None) -> None:
        """
        Install a release.

        Args:
            tag: Release tag to install. Strategies that always install the
                latest stable release ignore it.

        Raises:
            InstallError: If the install fails.
            UnavailableError: If a download fails.
        """


class DelegatedScriptInstaller(Installer):
    """
    Runs the upstream install script with ``sh``.

    The script is downloaded first and fed to ``sh`` on stdin with no
    arguments. Its output goes straight to the terminal.
    """

    def __init__(self, script_url: str, timeout: float = 30.0, shell: str = "sh") -> None:
        self.script_url = script_url
        self.timeout = timeout
        self.shell = shell

    def preflight(self) -> None:
        if shutil.which(self.shell) is None:
            raise MissingToolError(self.shell)

    async def _fetch_script(self) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            ) as client:
                response = await client.get(self.script_url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise UnavailableError(
                f"Failed to download install script: {e}",
                details={"url": self.script_url},
            ) from e

    async def install(self, tag: str | None = None) -> None:
        if tag is not None:
            logger.debug("Install script ignores the requested tag %s", tag)

        script = await self._fetch_script()
        logger.info("Running install script from %s", self.script_url)

        proc = await asyncio.create_subprocess_exec(
            self.shell,
            stdin=asyncio.subprocess.PIPE,
        )
        await proc.communicate(input=script)

        if proc.returncode != 0:
            raise InstallError(
                f"Install script exited with status {proc.returncode}",
                details={"url": self.script_url, "returncode": proc.returncode},
            )


class DirectArchiveInstaller(Installer):
    """
    Installs a release archive into a fixed root.

    The old library directory is removed and the bin and lib directories are
    recreated (mode 0755, owned by root when privileged) before the archive
    is streamed: download, ``zstd -d``, ``tar -x -C <install_root>``.
    """

    def __init__(
        self,
        install_root: Path,
        asset_url_template: str,
        timeout: float = 30.0,
        machine: str | None = None,
    ) -> None:
        self.install_root = install_root
        self.asset_url_template = asset_url_template
        self.timeout = timeout
        self.arch = normalize_arch(machine or platform.machine())

    @property
    def bin_dir(self) -> Path:
        return self.install_root / "bin"

    @property
    def lib_dir(self) -> Path:
        return self.install_root / "lib" / "ollama"

    def asset_url(self, tag: str) -> str:
        """Return the archive URL for ``tag`` on this host's architecture."""
        return build_asset_url(self.asset_url_template, tag, self.arch)

    def preflight(self) -> None:
        if shutil.which("zstd") is None:
            raise MissingToolError(
                "zstd",
                message="zstd is required to extract pre-release archives",
                hint=ZSTD_HINT,
            )
        if shutil.which("tar") is None:
            raise MissingToolError("tar")
        require_privileges("install into " + str(self.install_root))

    def prepare_directories(self) -> None:
        """Remove the old libraries and recreate the target directories."""
        owner = 0 if is_privileged() else None
        safe_remove_directory(self.lib_dir)
        ensure_directory(self.bin_dir, mode=0o755, uid=owner, gid=owner)
        ensure_directory(self.lib_dir, mode=0o755, uid=owner, gid=owner)

    async def install(self, tag: str | None = None) -> None:
        if not tag:
            raise InstallError("A release tag is required for an archive install")

        url = self.asset_url(tag)
        logger.info("Installing %s from %s", tag, url)

        self.prepare_directories()
        await self._stream_extract(url)

    async def _stream_extract(self, url: str) -> None:
        """Pipe the download through zstd into tar."""
        read_fd, write_fd = os.pipe()
        zstd = None
        try:
            zstd = await asyncio.create_subprocess_exec(
                "zstd",
                "-d",
                "-c",
                stdin=asyncio.subprocess.PIPE,
                stdout=write_fd,
            )
            tar = await asyncio.create_subprocess_exec(
                "tar",
                "-xf",
                "-",
                "-C",
                str(self.install_root),
                stdin=read_fd,
            )
        except OSError as e:
            if zstd is not None:
                with contextlib.suppress(ProcessLookupError):
                    zstd.kill()
                await zstd.wait()
            raise InstallError(
                f"Failed to start extraction: {e}",
                details={"url": url},
            ) from e
        finally:
            os.close(read_fd)
            os.close(write_fd)

        download_error: httpx.HTTPError | None = None
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes():
                        zstd.stdin.write(chunk)
                        await zstd.stdin.drain()
        except httpx.HTTPError as e:
            download_error = e
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("zstd closed its input before the download finished")
        finally:
            zstd.stdin.close()

        zstd_status = await zstd.wait()
        tar_status = await tar.wait()

        if download_error is not None:
            raise InstallError(
                f"Failed to download {url}: {download_error}",
                details={"url": url},
            ) from download_error
        if zstd_status != 0:
            raise InstallError(
                f"zstd exited with status {zstd_status}",
                details={"url": url, "returncode": zstd_status},
            )
        if tar_status != 0:
            raise InstallError(
                f"tar exited with status {tar_status}",
                details={"url": url, "returncode": tar_status},
            )


def build_installer(prerelease: bool, config: AppConfig) -> Installer:
    """
    Create the installer for the selected channel.

    Args:
        prerelease: True for the archive installer, False for the script.
        config: Application configuration.
    """
    if prerelease:
        return DirectArchiveInstaller(
            install_root=config.paths.install_root,
            asset_url_template=config.releases.asset_url_template,
            timeout=config.releases.timeout_seconds,
        )
    return DelegatedScriptInstaller(
        script_url=config.releases.install_script_url,
        timeout=config.releases.timeout_seconds,
    )
