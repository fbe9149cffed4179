"""
Structured Logging for AMDPack
==============================

Thin wrapper over the standard ``logging`` module that emits one JSON object
per record and accepts arbitrary keyword fields:

    logger = get_logger("build.engine")
    logger.debug("Inlining module", module_id="er/main", depth=2)

Loggers are cheap to create; ``with_context`` returns a child logger carrying
extra fields on every record without touching the parent.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .constants import LOG_LEVELS, default_log_level

_ROOT_LOGGER_NAME = "amdpack"


class JSONFormatter(logging.Formatter):
    """Render a log record and its structured fields as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", record.name),
            "message": record.getMessage(),
        }
        fields = getattr(record, "fields", None)
        if fields:
            payload.update(fields)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _ensure_handler(logger: logging.Logger) -> None:
    if any(getattr(h, "_amdpack", False) for h in logger.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler._amdpack = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False


class AmdPackLogger:
    """
    Structured logger bound to a service name and an optional context.

    Attributes:
        service_name: Name reported in every record
        context: Fields merged into every record
    """

    def __init__(self, service_name: str, context: Optional[Dict[str, Any]] = None):
        self.service_name = service_name
        self.context: Dict[str, Any] = dict(context or {})
        self._logger = logging.getLogger(f"{_ROOT_LOGGER_NAME}.{service_name}")

    def with_context(self, **fields: Any) -> "AmdPackLogger":
        """Return a child logger with ``fields`` added to its context."""
        return AmdPackLogger(self.service_name, {**self.context, **fields})

    def _log(self, level: int, message: str, exc_info: bool = False, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={"service": self.service_name, "fields": {**self.context, **fields}},
        )

    def debug(self, message: str, **fields: Any) -> None:
        self._log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    warn = warning

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, **fields)

    def critical(self, message: str, **fields: Any) -> None:
        self._log(logging.CRITICAL, message, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, exc_info=True, **fields)


def get_logger(service_name: str, log_level: Optional[str] = None) -> AmdPackLogger:
    """
    Get a structured logger for ``service_name``.

    Args:
        service_name: Dotted component name (e.g. "build.engine")
        log_level: Optional level override; must be one of LOG_LEVELS

    Returns:
        AmdPackLogger instance
    """
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    _ensure_handler(root)
    if root.level == logging.NOTSET:
        root.setLevel(default_log_level())

    logger = AmdPackLogger(service_name)
    if log_level:
        level = log_level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: '{log_level}'. Valid levels: {', '.join(LOG_LEVELS)}")
        logger._logger.setLevel(level)
    return logger


def configure_logging(service_name: str, log_level: Optional[str] = None) -> AmdPackLogger:
    """
    Configure the package-wide log level and return a logger for ``service_name``.

    When ``log_level`` is omitted the AMDPACK_LOG_LEVEL environment variable
    is used, falling back to INFO.
    """
    level = (log_level or default_log_level()).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Invalid log level: '{log_level}'. Valid levels: {', '.join(LOG_LEVELS)}")
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    _ensure_handler(root)
    root.setLevel(level)
    return AmdPackLogger(service_name)
