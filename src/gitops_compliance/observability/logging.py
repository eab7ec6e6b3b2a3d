"""
Structured logging configuration for the GitOps Compliance Engine.

Provides JSON and human-readable log output for the ``gitops_compliance``
logger hierarchy, plus a thin wrapper that attaches context fields and
emits validation lifecycle events.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

ROOT_LOGGER_NAME = "gitops_compliance"

# Attributes every LogRecord has; anything else arrived through ``extra=``
_STANDARD_RECORD_KEYS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs one JSON object per log line.

    Suited to CI systems that collect logs into an aggregation backend.
    Fields passed with ``extra=`` (event_type, rule_id, ...) become
    top-level keys.
    """

    def __init__(self, extra_fields: dict[str, Any] | None = None):
        """
        Initialize structured formatter.

        Args:
            extra_fields: Additional fields to include in every log
        """
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        created = datetime.fromtimestamp(record.created, timezone.utc)
        log_data: dict[str, Any] = {
            "timestamp": created.isoformat().replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            **self.extra_fields,
        }
        log_data.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS
        )

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Formatter for terminal output: level, logger name and message."""

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, use_colors: bool = True):
        super().__init__("%(levelname)8s %(name)s: %(message)s")
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, colored by level on a terminal."""
        output = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            output = f"\033[{color}m{output}\033[0m"
        return output


class EngineLogger:
    """
    Logger wrapper that carries context fields and emits lifecycle events.

    Events are logged with an ``event_type`` field so structured output can
    be filtered on it.
    """

    def __init__(self, name: str):
        """
        Initialize engine logger.

        Args:
            name: Logger name
        """
        self.logger = logging.getLogger(name)
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context fields for all logs."""
        self._context.update(kwargs)

    def clear_context(self) -> None:
        """Clear context fields."""
        self._context.clear()

    def _log(
        self,
        level: int,
        message: str,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = {**self._context, **kwargs}
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def validation_started(self, file_count: int, policy_count: int) -> None:
        """Log validation start event."""
        self.info(
            f"Validating {file_count} files against {policy_count} policies",
            event_type="validation.started",
            file_count=file_count,
            policy_count=policy_count,
        )

    def validation_completed(
        self,
        file_count: int,
        resource_count: int,
        violation_count: int,
        passed: bool,
        duration_seconds: float,
    ) -> None:
        """Log validation completion event."""
        self.info(
            f"Validation completed: {violation_count} violations in "
            f"{resource_count} resources across {file_count} files",
            event_type="validation.completed",
            file_count=file_count,
            resource_count=resource_count,
            violation_count=violation_count,
            passed=passed,
            duration_seconds=duration_seconds,
        )

    def file_parsed(self, file: str, resource_count: int, cached: bool) -> None:
        """Log file parse event."""
        self.debug(
            f"Parsed {file}: {resource_count} resources",
            event_type="file.parsed",
            file=file,
            resource_count=resource_count,
            cached=cached,
        )

    def rule_evaluation_failed(self, rule_id: str, resource_id: str, error: str) -> None:
        """Log rule evaluation failure event."""
        self.warning(
            f"Policy {rule_id} failed on {resource_id}: {error}",
            event_type="rule.failed",
            rule_id=rule_id,
            resource_id=resource_id,
            error=error,
        )


def configure_logging(
    level: str = "WARNING",
    format: str = "human",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Configure logging for the engine.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
        extra_fields: Extra fields to include in structured logs

    Raises:
        ValueError: If the level name is unknown
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.propagate = False

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def configure_logging_from_env(verbosity: int = 0) -> None:
    """
    Configure logging from environment variables and CLI verbosity.

    Environment variables:
        GCE_LOG_LEVEL: Log level, overridden by verbosity
        GCE_LOG_FORMAT: human or json

    Args:
        verbosity: Number of ``-v`` flags (1 = INFO, 2+ = DEBUG)
    """
    level = os.getenv("GCE_LOG_LEVEL", "WARNING")
    if verbosity >= 2:
        level = "DEBUG"
    elif verbosity == 1:
        level = "INFO"

    configure_logging(level=level, format=os.getenv("GCE_LOG_FORMAT", "human"))


def get_logger(name: str) -> EngineLogger:
    """
    Get an engine logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        EngineLogger instance
    """
    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return EngineLogger(name)
