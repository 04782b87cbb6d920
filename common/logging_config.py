# -*- coding: utf-8 -*-
"""
Structured logging configuration for the module installer.

Features:
- JSON-structured log records for machine consumption
- Environment-aware presets (development, production, testing)
- A decorator timing whole installer operations
"""

import functools
import json
import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_RECORD_KEYS = frozenset(
    [
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
        "symbol",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Formats log records as JSON with consistent structure including:
    - timestamp (ISO format)
    - level
    - service name
    - message
    - additional metadata passed through ``extra``
    """

    def __init__(self, service_name: str = "module-installer"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.environ.get("HOSTNAME", "unknown")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "hostname": self.hostname,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_json_logging(
    service_name: str,
    log_level: Optional[str] = None,
    enable_console: bool = True,
    log_file_path: Optional[str] = None,
) -> logging.Logger:
    """
    Set up JSON logging on the root logger.

    Args:
        service_name: Name reported in every record.
        log_level: Logging level name. Defaults to $LOG_LEVEL or INFO.
        enable_console: Whether to log to stdout.
        log_file_path: Optional file to append JSON records to.

    Returns:
        The service logger.
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO")

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    json_formatter = JSONFormatter(service_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(json_formatter)
        root_logger.addHandler(console_handler)

    if log_file_path:
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    logger.debug(
        "Logging initialized",
        extra={
            "log_level": log_level.upper(),
            "console_enabled": enable_console,
            "file_enabled": bool(log_file_path),
        },
    )
    return logger


# Configuration for different environments
LOGGING_CONFIGS: Dict[str, Dict[str, Any]] = {
    "development": {"log_level": "DEBUG", "enable_console": True},
    "production": {"log_level": "INFO", "enable_console": True},
    "testing": {"log_level": "WARNING", "enable_console": False},
}


def setup_service_logging(
    service_name: str,
    environment: Optional[str] = None,
    log_file_path: Optional[str] = None,
) -> logging.Logger:
    """
    Set up JSON logging with environment-specific defaults.

    Args:
        service_name: Name of the service
        environment: Environment name (development, production, testing).
            Defaults to $ENVIRONMENT or "production".
        log_file_path: Optional file to append JSON records to.

    Returns:
        Configured logger instance
    """
    if environment is None:
        environment = os.environ.get("ENVIRONMENT", "production")

    config = LOGGING_CONFIGS.get(environment, LOGGING_CONFIGS["production"])

    return setup_json_logging(
        service_name=service_name,
        log_level=config["log_level"],
        enable_console=config["enable_console"],
        log_file_path=log_file_path,
    )


def log_performance(func):
    """
    Decorator to log how long an installer operation took.

    Usage:
        @log_performance
        def install_all(context):
            ...
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)
        start_time = time.monotonic()

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration = time.monotonic() - start_time
            logger.error(
                f"Function {func.__name__} failed",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(duration, 3),
                    "status": "error",
                    "error": str(e),
                },
                exc_info=True,
            )
            raise

        duration = time.monotonic() - start_time
        logger.debug(
            f"Function {func.__name__} completed in {duration:.3f}s",
            extra={
                "function": func.__name__,
                "duration_seconds": round(duration, 3),
                "status": "success",
            },
        )
        return result

    return wrapper
