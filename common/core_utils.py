# common/core_utils.py
# -*- coding: utf-8 -*-
"""
Console and file logging for the installer.

Provides the per-level symbol formatter, root logger configuration driven
by AppSettings, and `log_installer`, the severity dispatcher used by every
installer module.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from installer.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)

LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INSTALLER_LOG_FORMAT = "{prefix}%(asctime)s %(symbol)s %(levelname)s [%(name)s] %(message)s"

# Symbol keys by level; levels in between use the closest lower key.
_LEVEL_SYMBOL_KEYS = (
    (logging.CRITICAL, "critical"),
    (logging.ERROR, "error"),
    (logging.WARNING, "warning"),
    (logging.INFO, "info"),
    (logging.DEBUG, "debug"),
)

_DISPATCH_LEVELS = ("debug", "info", "warning", "error", "critical")


class SymbolFormatter(logging.Formatter):
    """
    Formatter exposing a `%(symbol)s` field picked from the record's level.
    """

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        symbols: Optional[Dict[str, str]] = None,
    ):
        super().__init__(fmt, datefmt)
        self.symbols = dict(SYMBOLS_DEFAULT)
        if symbols:
            self.symbols.update(symbols)

    def symbol_for(self, levelno: int) -> str:
        for threshold, key in _LEVEL_SYMBOL_KEYS:
            if levelno >= threshold:
                return self.symbols.get(key, "")
        return ""

    def format(self, record):
        record.symbol = self.symbol_for(record.levelno)
        return super().format(record)


def installer_log_format(log_prefix: Optional[str]) -> str:
    """Line format with the configured prefix, if any, in front."""
    prefix = f"{log_prefix.strip()} " if log_prefix and log_prefix.strip() else ""
    return INSTALLER_LOG_FORMAT.format(prefix=prefix)


def setup_logging(
    app_settings: Optional[AppSettings] = None,
    log_level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_to_console: bool = True,
) -> None:
    """
    Replaces the root logger's handlers with installer handlers.

    Prefix and level symbols come from `app_settings` when given. Messages go
    to stdout, to `log_file`, or to both. A log file that cannot be opened is
    reported on stderr and skipped; with no handler left, stdout is used.

    Args:
        app_settings: Settings supplying `log_prefix` and `symbols`.
        log_level: Root logger level.
        log_file: Optional path of a log file to append to.
        log_to_console: Whether to log to stdout.
    """
    handlers: List[logging.Handler] = []
    if log_file:
        log_file_path = Path(log_file)
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file_path, mode="a"))
        except OSError as e:
            print(
                f"Warning: Could not open log file {log_file_path}: {e}",
                file=sys.stderr,
            )

    if log_to_console or not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))

    log_format = installer_log_format(
        app_settings.log_prefix if app_settings else None
    )
    formatter = SymbolFormatter(
        fmt=log_format,
        datefmt=LOG_DATE_FORMAT,
        symbols=app_settings.symbols if app_settings else None,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    module_logger.debug(
        f"Logging configured at {logging.getLevelName(log_level)} with {len(handlers)} handler(s)"
    )


def log_installer(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs an installer message at the given severity.

    Args:
        message: The log message to be recorded.
        level: One of "debug", "info", "success", "warning", "error" or
            "critical". Unknown levels log at info. "success" logs at info.
        current_logger: Logger to use. Defaults to the module logger.
        app_settings: Optional settings that can influence logging behavior.
        exc_info: Whether to attach exception information.
    """
    effective_logger = current_logger if current_logger else module_logger

    method_name = level if level in _DISPATCH_LEVELS else "info"
    getattr(effective_logger, method_name)(message, exc_info=exc_info)
