"""
Installed-version detection and version comparison.

The installed version is whatever the binary reports about itself. Reading it
never fails: a missing binary reads as "not installed" and unparseable output
as "unknown".
"""

from __future__ import annotations

import asyncio
import contextlib
import re
import shutil
from typing import Any

from ollama_updater.errors import InvalidArgumentError
from ollama_updater.logging import get_logger

logger = get_logger(__name__)

VERSION_NOT_INSTALLED = "not installed"
VERSION_UNKNOWN = "unknown"

# First dotted version-looking token in free text, e.g. "0.6.0-rc1"
VERSION_TOKEN_PATTERN = re.compile(r"\d+\.\d+\.\S+")

# Release tags and binary versions: optional "v", three numeric parts and
# an optional pre-release suffix.
SEMVER_PATTERN = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<buildmetadata>[0-9A-Za-z.-]+))?$"
)


def extract_version(text: str) -> str | None:
    """
    Return the first version-looking token in ``text``.

    Args:
        text: Arbitrary command output.

    Returns:
        The first substring matching ``\\d+\\.\\d+\\.\\S+``, or None.
    """
    match = VERSION_TOKEN_PATTERN.search(text)
    return match.group(0) if match else None


async def _run_version_command(binary: str, timeout: float) -> str:
    proc = await asyncio.create_subprocess_exec(
        binary,
        "--version",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise
    return stdout.decode(errors="replace") if stdout else ""


async def read_installed_version(binary: str = "ollama", timeout: float = 10.0) -> str:
    """
    Read the version of the installed binary.

    Args:
        binary: Binary name (looked up on PATH) or path.
        timeout: Upper bound for ``<binary> --version``.

    Returns:
        The extracted version token, VERSION_NOT_INSTALLED when the binary
        cannot be found, or VERSION_UNKNOWN when its output has no version.
    """
    if shutil.which(binary) is None:
        logger.debug("Binary not found on PATH", extra={"binary": binary})
        return VERSION_NOT_INSTALLED

    try:
        output = await _run_version_command(binary, timeout)
    except TimeoutError:
        logger.warning(f"{binary} --version timed out after {timeout}s")
        return VERSION_UNKNOWN
    except OSError as e:
        logger.warning(f"Could not run {binary} --version: {e}")
        return VERSION_UNKNOWN

    version = extract_version(output)
    if version is None:
        logger.debug("No version token in output", extra={"output": output})
        return VERSION_UNKNOWN
    return version


def parse_semantic_version(version: str) -> dict[str, Any]:
    """
    Parse a version string such as "0.5.7", "v0.6.0" or "v0.6.0-rc1".

    Returns:
        Dictionary with major, minor, patch, prerelease and buildmetadata.

    Raises:
        InvalidArgumentError: If the string is not a version.
    """
    match = SEMVER_PATTERN.match(version.strip()) if version else None
    if match is None:
        raise InvalidArgumentError(
            f"Invalid semantic version: {version}",
            details={
                "version": version,
                "format": "[v]MAJOR.MINOR.PATCH[-PRERELEASE][+BUILDMETADATA]",
            },
        )

    return {
        "major": int(match.group("major")),
        "minor": int(match.group("minor")),
        "patch": int(match.group("patch")),
        "prerelease": match.group("prerelease"),
        "buildmetadata": match.group("buildmetadata"),
    }


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two versions.

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2

    Raises:
        InvalidArgumentError: If either version is invalid.
    """
    p1 = parse_semantic_version(v1)
    p2 = parse_semantic_version(v2)

    for key in ["major", "minor", "patch"]:
        if p1[key] < p2[key]:
            return -1
        elif p1[key] > p2[key]:
            return 1

    # A release ranks above any of its pre-releases
    pre1 = p1.get("prerelease")
    pre2 = p2.get("prerelease")

    if pre1 is None and pre2 is not None:
        return 1
    if pre1 is not None and pre2 is None:
        return -1
    if pre1 is not None and pre2 is not None:
        if pre1 < pre2:
            return -1
        elif pre1 > pre2:
            return 1

    return 0


def is_update_available(installed: str, tag: str) -> bool:
    """
    Tell whether ``tag`` is newer than the installed version.

    Sentinel or otherwise unparseable versions are never reported as
    updatable.
    """
    try:
        return compare_versions(tag, installed) > 0
    except InvalidArgumentError:
        return False
