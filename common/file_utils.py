# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: removing installed paths together with their
metadata markers, pruning emptied directories and cleaning scratch space.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

from installer import config as static_config
from installer.config_models import (
    SYMBOLS_DEFAULT,
    AppSettings,
)
from installer.exceptions import FilesystemDeleteError

from .core_utils import log_installer

module_logger = logging.getLogger(__name__)


def meta_path_for(path: Path, app_settings: Optional[AppSettings] = None) -> Path:
    """The sibling metadata marker of `path` ("<path>.meta")."""
    suffix = app_settings.meta_suffix if app_settings else static_config.META_SUFFIX
    return path.with_name(path.name + suffix)


def delete_meta_file(
    path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Deletes the metadata marker of `path` if there is one.

    Returns:
        True if a marker was deleted.

    Raises:
        FilesystemDeleteError: If the marker exists but could not be removed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    meta_path = meta_path_for(path, app_settings)
    if not meta_path.is_file():
        return False
    try:
        meta_path.unlink()
    except OSError as e:
        raise FilesystemDeleteError(
            f"Could not delete metadata marker {meta_path}: {e}", meta_path
        ) from e
    log_installer(
        f"Deleted metadata marker {meta_path}",
        "debug",
        logger_to_use,
        app_settings,
    )
    return True


def remove_path(
    path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Removes a file or a directory tree and its sibling metadata marker.

    Parameters:
        path (Path): The file or directory to remove.
        app_settings (Optional[AppSettings]): Settings providing the marker
            suffix and logging symbols. Can be None.
        current_logger (Optional[logging.Logger]): Logger instance to use. If
            not provided, the module-level logger is used.

    Returns:
        bool: True if something was removed, False if `path` did not exist.

    Raises:
        FilesystemDeleteError: If the path or its marker could not be removed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = (
        app_settings.symbols
        if app_settings and app_settings.symbols
        else SYMBOLS_DEFAULT
    )

    existed = path.exists() or path.is_symlink()
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif existed:
            path.unlink()
    except OSError as e:
        raise FilesystemDeleteError(f"Could not delete {path}: {e}", path) from e

    delete_meta_file(path, app_settings, logger_to_use)

    if existed:
        log_installer(
            f"{symbols.get('success', '✅')} Deleted {path}",
            "info",
            logger_to_use,
            app_settings,
        )
    else:
        log_installer(
            f"{symbols.get('info', 'ℹ️')} {path} does not exist. Nothing to delete.",
            "debug",
            logger_to_use,
            app_settings,
        )
    return existed


def prune_empty_parents(
    path: Path,
    stop_at: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> int:
    """
    Removes the now-empty ancestors of a deleted path.

    Walks upward from the parent of `path`, deleting each directory that has
    no entries left (together with its metadata marker), until a non-empty
    directory is found or `stop_at` is reached. `stop_at` itself is never
    removed, nor is anything outside it.

    Returns:
        The number of directories removed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    stop_at = stop_at.resolve()
    removed = 0

    current = path.parent
    while True:
        try:
            resolved = current.resolve()
        except OSError:
            break
        if resolved == stop_at or stop_at not in resolved.parents:
            break
        if not current.is_dir() or any(current.iterdir()):
            break
        try:
            current.rmdir()
            delete_meta_file(current, app_settings, logger_to_use)
        except (OSError, FilesystemDeleteError) as e:
            log_installer(
                f"Could not prune empty directory {current}: {e}",
                "warning",
                logger_to_use,
                app_settings,
            )
            break
        log_installer(
            f"Removed empty directory {current}",
            "debug",
            logger_to_use,
            app_settings,
        )
        removed += 1
        current = current.parent

    return removed


def cleanup_directory(
    directory_path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Removes a scratch directory and its contents. Failures are logged, never
    raised, so cleanup cannot mask the outcome of the operation it follows.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if not directory_path.exists():
        return
    try:
        shutil.rmtree(directory_path)
        log_installer(
            f"Removed scratch directory {directory_path}",
            "debug",
            logger_to_use,
            app_settings,
        )
    except OSError as e:
        log_installer(
            f"Error removing directory {directory_path}: {e}",
            "warning",
            logger_to_use,
            app_settings,
            exc_info=True,
        )
