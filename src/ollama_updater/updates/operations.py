"""
Filesystem operations used around an install.

Directory creation mirrors ``install -o0 -g0 -m755 -d``: the mode is set
explicitly (not left to the umask) and ownership is handed to root when the
process is privileged.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from ollama_updater.errors import FailedPreconditionError
from ollama_updater.logging import get_logger

logger = get_logger(__name__)


def is_privileged() -> bool:
    """Return True when running with an effective UID of 0."""
    return os.geteuid() == 0


def require_privileges(action: str) -> None:
    """
    Fail unless the process runs as root.

    Raises:
        FailedPreconditionError: If the effective UID is not 0.
    """
    if not is_privileged():
        raise FailedPreconditionError(
            f"Root privileges are required to {action}",
            details={"hint": "Re-run with sudo"},
        )


def ensure_directory(
    path: Path,
    *,
    mode: int = 0o755,
    uid: int | None = None,
    gid: int | None = None,
) -> Path:
    """
    Ensure a directory exists with the given mode and ownership.

    Args:
        path: Path to the directory. Missing parents are created.
        mode: Directory permissions, applied even if the directory exists.
        uid: Owner to set, or None to leave it.
        gid: Group to set, or None to leave it.

    Returns:
        The directory path.

    Raises:
        FailedPreconditionError: If the directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        path.chmod(mode)
        if uid is not None or gid is not None:
            os.chown(path, -1 if uid is None else uid, -1 if gid is None else gid)
        return path
    except OSError as e:
        raise FailedPreconditionError(
            f"Failed to create directory: {path}",
            details={"path": str(path), "error": str(e)},
        ) from e


def safe_remove_directory(path: Path) -> bool:
    """
    Remove a directory tree if it exists.

    Returns:
        True if the directory was removed, False if it didn't exist.

    Raises:
        FailedPreconditionError: If removal fails.
    """
    if not path.exists():
        return False

    try:
        shutil.rmtree(path)
        logger.debug("Removed directory", extra={"path": str(path)})
        return True
    except OSError as e:
        raise FailedPreconditionError(
            f"Failed to remove directory: {path}",
            details={"path": str(path), "error": str(e)},
        ) from e


def copy_file(source: Path, destination: Path) -> Path:
    """
    Copy a file byte for byte, keeping its mode and timestamps.

    The destination's parent directory is created if needed.

    Raises:
        FailedPreconditionError: If the copy fails.
    """
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
    except OSError as e:
        raise FailedPreconditionError(
            f"Failed to copy {source} to {destination}",
            details={
                "source": str(source),
                "destination": str(destination),
                "error": str(e),
            },
        ) from e
    logger.debug(
        "Copied file", extra={"source": str(source), "destination": str(destination)}
    )
    return destination
