"""
Error types for the Ollama updater.

This module defines the UpdaterError base class and subclasses for the
failure categories the update run can hit. Every fatal condition is raised
as an UpdaterError (or subclass) and turned into a terminal message and a
non-zero exit status at the CLI layer.
"""

from __future__ import annotations

from typing import Any


class UpdaterError(Exception):
    """
    Base exception class for updater errors.

    Attributes:
        error_code: Internal error code string (e.g., "invalid_argument",
            "unavailable", "failed_precondition", "internal").
        message: Human-readable error message.
        details: Optional structured details. A "hint" key, when present,
            is shown to the user as a remediation hint.

    Example:
        >>> raise UpdaterError(
        ...     error_code="failed_precondition",
        ...     message="zstd is required to extract pre-release archives",
        ...     details={"hint": "sudo apt-get install zstd"},
        ... )
    """

    def __init__(
        self,
        error_code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize an UpdaterError.

        Args:
            error_code: Internal error code string identifying the error category.
            message: Human-readable error message.
            details: Optional dictionary with structured error details.
        """
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.details = details or {}

    def __repr__(self) -> str:
        """Return a detailed string representation."""
        return (
            f"{self.__class__.__name__}("
            f"error_code={self.error_code!r}, "
            f"message={self.message!r}, "
            f"details={self.details!r})"
        )

    @property
    def hint(self) -> str | None:
        """Return the remediation hint, if any."""
        hint = self.details.get("hint")
        return str(hint) if hint else None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to a dictionary for serialization.

        Returns:
            Dictionary with error_code, message, and details.
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class InvalidArgumentError(UpdaterError):
    """Error raised for invalid input values (bad version strings, options)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an InvalidArgumentError."""
        super().__init__(
            error_code="invalid_argument", message=message, details=details
        )


class UnavailableError(UpdaterError):
    """
    Error raised when a remote endpoint or host tool cannot be reached.

    Network failures keep the transport's own message so the user sees
    what actually went wrong.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an UnavailableError."""
        super().__init__(error_code="unavailable", message=message, details=details)


class FailedPreconditionError(UpdaterError):
    """
    Error raised when the host is not in a state that allows the operation.

    This error maps to the "failed_precondition" error code and covers
    missing files, missing privileges and missing tools.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize a FailedPreconditionError."""
        super().__init__(
            error_code="failed_precondition", message=message, details=details
        )


class InternalError(UpdaterError):
    """Error raised for unexpected internal errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize an InternalError."""
        super().__init__(error_code="internal", message=message, details=details)


class MissingToolError(FailedPreconditionError):
    """A required external command is not on PATH."""

    def __init__(
        self, tool: str, message: str | None = None, hint: str | None = None
    ) -> None:
        details: dict[str, Any] = {"tool": tool}
        if hint:
            details["hint"] = hint
        super().__init__(message or f"{tool} is required but was not found", details)
        self.tool = tool


class MissingConfigError(FailedPreconditionError):
    """The service unit file to preserve does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"{path} not found", details={"path": path})
        self.path = path


class ReleaseNotFoundError(UpdaterError):
    """No release matched the requested channel."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(error_code="not_found", message=message, details=details)


class InvalidResponseError(UnavailableError):
    """The release API answered with something that is not a release list."""


class InstallError(UpdaterError):
    """The install step (script or archive extraction) failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(error_code="install_failed", message=message, details=details)


class ServiceRestartError(UpdaterError):
    """systemctl reported a failure while reloading or restarting the unit."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            error_code="service_restart_failed", message=message, details=details
        )
