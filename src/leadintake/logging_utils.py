# logging_utils.py
"""Structured logging utilities for the lead intake service."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

SERVICE_NAME = "leadintake"

# Standard LogRecord attributes that are never copied into "extra"
_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
}


class StructuredFormatter(logging.Formatter):
    """Custom formatter that outputs JSON-structured log messages."""

    def __init__(
        self,
        service_name: str = SERVICE_NAME,
        include_timestamp: bool = True,
        include_extra: bool = True,
    ):
        """Initialize the structured formatter.

        Args:
            service_name: Name of the service to include in logs
            include_timestamp: Whether to include timestamp in output
            include_extra: Whether to include extra fields from log record
        """
        super().__init__()
        self.service_name = service_name
        self.include_timestamp = include_timestamp
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a JSON string."""
        log_data: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "service": self.service_name,
        }

        if self.include_timestamp:
            log_data["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra_fields = {}
            for key, value in record.__dict__.items():
                if key not in _STANDARD_ATTRS and not key.startswith("_"):
                    try:
                        json.dumps(value)
                        extra_fields[key] = value
                    except (TypeError, ValueError):
                        extra_fields[key] = str(value)

            if extra_fields:
                log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for development environments."""

    # ANSI color codes for different log levels
    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record in a human-readable format."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname
        message = record.getMessage()

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level_str = f"{color}{level:8}{self.RESET}"
        else:
            level_str = f"{level:8}"

        formatted = f"[{timestamp}] {level_str} [{record.name}] {message}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def setup_logging(
    level: Optional[str] = None,
    structured: Optional[bool] = None,
    service_name: str = SERVICE_NAME,
) -> logging.Logger:
    """Set up logging configuration for the intake service.

    Configures the root logger and returns the ``leadintake`` package
    logger. Structured (JSON) output is used outside development, a
    colored single-line format in development.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to LOG_LEVEL env var or INFO.
        structured: Whether to use structured JSON logging.
                   Defaults to True unless APP_ENV is 'dev'.
        service_name: Service name to include in structured logs.

    Returns:
        Logger instance for leadintake

    Example:
        >>> logger = setup_logging(level="DEBUG", structured=False)
        >>> logger.info("Queue worker starting", extra={"batch_size": 10})
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    level = level.upper()

    log_level = getattr(logging, level, logging.INFO)

    if structured is None:
        app_env = os.environ.get("APP_ENV", "dev")
        structured = app_env != "dev"

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)

    if structured:
        formatter = StructuredFormatter(service_name=service_name)
    else:
        formatter = HumanReadableFormatter(use_colors=True)

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    _configure_third_party_loggers(log_level)

    logger = logging.getLogger(SERVICE_NAME)
    logger.info(
        "Logging initialized",
        extra={
            "log_level": level,
            "structured": structured,
            "service": service_name,
        }
    )

    return logger


def _configure_third_party_loggers(log_level: int) -> None:
    """Quiet noisy third-party loggers unless running at DEBUG."""
    noisy_loggers = [
        "sqlalchemy.engine",
        "aiosqlite",
        "asyncpg",
        "urllib3",
        "python_http_client",
    ]

    third_party_level = logging.WARNING if log_level > logging.DEBUG else log_level

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the leadintake namespace.

    Args:
        name: The name of the logger (will be prefixed with 'leadintake.')

    Returns:
        A logger instance
    """
    if not name.startswith(SERVICE_NAME):
        name = f"{SERVICE_NAME}.{name}"
    return logging.getLogger(name)
