"""
Logging utilities for the workspace API.

Provides structured logging that carries per-call context (call ID,
operation, target path, simulated delay) so interleaved mock calls can be
told apart in test output.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional


PACKAGE_LOGGER_NAME = "workspace_api"

CONTEXT_FIELDS = ["call_id", "operation", "path", "delay_ms"]


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON-structured log lines.

    Each log line includes:
    - Standard log fields (timestamp, level, message, logger)
    - Call context fields if present (call_id, operation, path, delay_ms)
    """

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Formatter that outputs human-readable log lines with call context.

    Format: TIMESTAMP - LOGGER - LEVEL - MESSAGE [call_id=X operation=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with call context."""
        base = super().format(record)

        context_parts = []
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                context_parts.append(f"{field}={value}")

        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)
        level: Optional logging level override

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)

    if level is not None:
        logger.setLevel(level)

    return logger


def configure_logging(
    level: int = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    Configure the ``workspace_api`` logger tree.

    Logs go to stderr by default because the capture tool writes its
    snapshot to stdout.

    Args:
        level: Logging level (default: INFO)
        structured: If True, output JSON-structured logs; if False, human-readable
        include_timestamp: Whether to include timestamp in log messages
        stream: Output stream (default: sys.stderr)

    Returns:
        The configured package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(level)

    # Only add handler if none exist (avoid duplicate handlers)
    if not package_logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setLevel(level)

        if structured:
            formatter = StructuredFormatter(include_timestamp=include_timestamp)
        else:
            formatter = HumanReadableFormatter(include_timestamp=include_timestamp)

        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    else:
        for handler in package_logger.handlers:
            handler.setLevel(level)

    return package_logger
