"""Python logging handler adapter for healthrail.

This adapter bridges Python's standard library logging module to a
healthrail Logger, so records from existing code show up in the same
health-scored log as the component's own checks. Forwarded records never
change the health score.
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING

from healthrail.core.models import LogLevel

if TYPE_CHECKING:
    from healthrail.logger import Logger

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

# Default attributes to extract from LogRecord
_DEFAULT_INCLUDE_ATTRS = ["logger", "funcName", "lineno"]

# Records from the library itself are never forwarded back into it.
_OWN_NAMESPACE = "healthrail"


def level_for(levelno: int) -> LogLevel:
    """Map a stdlib logging level onto an annotation level."""
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARNING
    if levelno >= logging.INFO:
        return LogLevel.INFO
    return LogLevel.DEBUG


class HealthRailHandler(logging.Handler):
    """Logging handler that forwards log records to a healthrail Logger.

    Example:
        ```python
        from healthrail import HealthRailHandler, Logger

        logger = Logger("build")
        logging.getLogger().addHandler(HealthRailHandler(logger))
        ```
    """

    def __init__(
        self,
        logger: Logger,
        include_attrs: list[str] | None = None,
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with the logger that receives records.

        Args:
            logger: healthrail Logger receiving the forwarded records.
            include_attrs: List of LogRecord attributes to include. Defaults to
                ["logger", "funcName", "lineno"].
            level: Minimum stdlib level to forward.
        """
        super().__init__(level)
        self._logger = logger
        if include_attrs is None:
            include_attrs = _DEFAULT_INCLUDE_ATTRS
        self._include_attrs = include_attrs

    def emit(self, record: logging.LogRecord) -> None:
        """Forward a log record as an unscored annotation.

        Args:
            record: The log record to emit.
        """
        if record.name == _OWN_NAMESPACE or record.name.startswith(
            _OWN_NAMESPACE + "."
        ):
            return

        # Map of attribute names to their values from LogRecord
        attr_mapping: dict[str, str | int | float | bool] = {
            "logger": record.name,
            "module": record.module,
            "funcName": record.funcName or "",
            "lineno": record.lineno,
            "pathname": record.pathname,
        }

        # Build details based on include_attrs configuration
        details: dict[str, str | int | float | bool] = {
            key: attr_mapping[key] for key in self._include_attrs if key in attr_mapping
        }

        # Add any extra attributes passed via logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                value, (str, int, float, bool)
            ):
                details[key] = value

        # Extract exception info if present
        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                details["exception_type"] = exc_type.__name__
            if exc_value is not None:
                details["exception_message"] = str(exc_value)
            if exc_tb is not None:
                details["traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                ).rstrip("\n")

        try:
            self._logger.annotate(
                level_for(record.levelno), record.getMessage(), details
            )
        except Exception:
            self.handleError(record)
