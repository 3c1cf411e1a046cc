"""
Redis Cache Manager — Structured Logging

JSON log formatting for the package logger. Modules log through
``logging.getLogger(__name__)`` and attach structured context via ``extra=``;
this module only decides how those records are rendered.
"""

import json
import logging
from datetime import UTC, datetime

PACKAGE_LOGGER = "redis_cache_manager"

# Standard LogRecord attributes that are never copied into the JSON payload
_RESERVED_ATTRS = frozenset(
    {
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "name",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add any extra fields from record.__dict__
        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """
    Install a single stream handler on the package logger.

    Calling this again replaces the previous handler, so it is safe to use
    after a configuration reload.

    Args:
        level: Log level name (DEBUG, INFO, ...)
        fmt: "json" for structured output, "text" for a plain human format

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger


def configure_logging_from_config() -> logging.Logger:
    """Configure package logging from the loaded runtime configuration."""
    from ..config import get_config

    config = get_config()
    return setup_logging(level=str(config.log_level), fmt=str(config.log_format))
