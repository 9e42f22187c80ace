"""
systemd integration: reload unit files and restart the managed service.

There is no retry. A failing systemctl call is reported to the user as the
final error of the run.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from ollama_updater.errors import ServiceRestartError, UnavailableError
from ollama_updater.logging import get_logger

if TYPE_CHECKING:
    from ollama_updater.config import ServiceConfig

logger = get_logger(__name__)


async def _run_systemctl(
    *args: str,
    timeout: float = 60.0,
) -> tuple[int, str, str]:
    """
    Run a systemctl command.

    Args:
        *args: Arguments to pass to systemctl.
        timeout: Command timeout in seconds.

    Returns:
        Tuple of (return_code, stdout, stderr).

    Raises:
        UnavailableError: If systemctl is not available or times out.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            "systemctl",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise UnavailableError(
            "systemctl not available",
            details={"hint": "This system may not use systemd"},
        ) from exc

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(),
            timeout=timeout,
        )
    except TimeoutError as exc:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        raise UnavailableError(
            f"systemctl command timed out after {timeout}s",
            details={"args": args},
        ) from exc

    return (
        proc.returncode or 0,
        stdout.decode() if stdout else "",
        stderr.decode() if stderr else "",
    )


async def reload_systemd_daemon(timeout: float = 60.0) -> None:
    """
    Reload the systemd daemon (daemon-reload).

    Raises:
        ServiceRestartError: If systemctl reports a failure.
        UnavailableError: If systemctl is not available.
    """
    logger.info("Reloading systemd daemon")

    returncode, stdout, stderr = await _run_systemctl("daemon-reload", timeout=timeout)
    if returncode != 0:
        raise ServiceRestartError(
            f"Daemon reload failed: {(stderr or stdout).strip()}",
            details={"returncode": returncode},
        )


async def restart_service(service_name: str, timeout: float = 60.0) -> None:
    """
    Restart a systemd service.

    Raises:
        ServiceRestartError: If systemctl reports a failure.
        UnavailableError: If systemctl is not available.
    """
    logger.info(f"Restarting service: {service_name}")

    returncode, stdout, stderr = await _run_systemctl(
        "restart", service_name, timeout=timeout
    )
    if returncode != 0:
        logger.error(
            f"Service restart failed: {stderr or stdout}",
            extra={"service": service_name, "returncode": returncode},
        )
        raise ServiceRestartError(
            f"Failed to restart {service_name}: {(stderr or stdout).strip()}",
            details={"service": service_name, "returncode": returncode},
        )

    logger.info(f"Service {service_name} restarted")


class ServiceController:
    """
    Reloads systemd and restarts the managed unit.

    Attributes:
        unit: Name of the unit to restart.
        timeout: Timeout applied to each systemctl call.
    """

    DEFAULT_UNIT = "ollama"

    def __init__(self, unit: str | None = None, timeout: float = 60.0) -> None:
        self.unit = unit or self.DEFAULT_UNIT
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: ServiceConfig) -> ServiceController:
        """Create a ServiceController from configuration."""
        return cls(unit=config.unit, timeout=config.systemctl_timeout_seconds)

    async def reload_and_restart(self) -> None:
        """
        Run ``systemctl daemon-reload`` then ``systemctl restart <unit>``.

        The restart is not attempted if the reload fails.
        """
        await reload_systemd_daemon(timeout=self.timeout)
        await restart_service(self.unit, timeout=self.timeout)
