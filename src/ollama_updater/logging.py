"""
Logging setup for the Ollama updater.

User-facing progress is printed by the CLI on stdout. Diagnostics go through
the ``ollama_updater`` logger on stderr, either as plain text or as one JSON
object per line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ollama_updater.config import LoggingConfig

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attributes that are not user-supplied extras
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """
    A logging formatter that outputs log records as JSON objects.

    Each record carries timestamp, level, logger and message, plus any
    fields passed through the ``extra`` argument of the logging call.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as a JSON string.

        Args:
            record: The log record to format.

        Returns:
            JSON-formatted string representation of the log record.
        """
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key in set(record.__dict__.keys()) - _RESERVED_ATTRS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def setup_logging(
    config: LoggingConfig | None = None,
    *,
    level: str = "WARNING",
    json_format: bool = False,
) -> logging.Logger:
    """
    Configure the ``ollama_updater`` logger.

    Args:
        config: Optional LoggingConfig. If provided, overrides the keyword
            arguments.
        level: Log level if no config is provided.
        json_format: Whether to emit JSON lines instead of plain text.

    Returns:
        The package root logger.

    Example:
        >>> from ollama_updater.logging import setup_logging
        >>> logger = setup_logging(level="DEBUG")
        >>> logger.debug("Fetching releases", extra={"url": "https://..."})
    """
    if config is not None:
        level = config.level
        json_format = config.json_format

    log_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger("ollama_updater")
    logger.setLevel(log_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    logger.addHandler(handler)

    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger of the ``ollama_updater`` logger.

    Args:
        name: Usually ``__name__`` of the calling module. The
            "ollama_updater." prefix is added if missing.

    Returns:
        A logger instance.
    """
    if not name.startswith("ollama_updater"):
        name = f"ollama_updater.{name}"

    return logging.getLogger(name)
