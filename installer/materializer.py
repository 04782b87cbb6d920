# installer/materializer.py
# -*- coding: utf-8 -*-
"""
Archive materializer: writes a component blob (a zip archive) to disk and
extracts it into its target path.
"""

import logging
import shutil
import uuid
import zipfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from common.core_utils import log_installer
from common.file_utils import cleanup_directory
from installer import config as static_config
from installer.config_models import AppSettings
from installer.exceptions import MaterializeError

module_logger = logging.getLogger(__name__)

# zipfile reports encrypted entries as RuntimeError, unknown compression
# methods as NotImplementedError and truncated or corrupt streams as
# zlib.error, EOFError or ValueError.
_EXTRACTION_ERRORS = (
    OSError,
    zipfile.BadZipFile,
    zipfile.LargeZipFile,
    RuntimeError,
    NotImplementedError,
    ValueError,
    EOFError,
    zlib.error,
)


@dataclass
class MaterializeResult:
    """Outcome of extracting one blob."""

    target_path: Path
    success: bool = True
    placed: List[Path] = field(default_factory=list)
    flattened: bool = False
    error: Optional[MaterializeError] = None


def _scratch_name(suffix: str = "") -> str:
    return f"{static_config.TEMP_ARCHIVE_PREFIX}{uuid.uuid4().hex}{suffix}"


def _remove_existing(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def _flatten_single_file(target_path: Path) -> Optional[Path]:
    """
    Hoists the only file of `target_path` next to it and removes the folder.

    The file is staged under a scratch name first, since it may share its
    name with the directory it is leaving.
    """
    if not target_path.is_dir():
        return None
    entries = list(target_path.iterdir())
    if len(entries) != 1 or not entries[0].is_file():
        return None

    single_file = entries[0]
    parent_dir = target_path.parent
    staged = parent_dir / _scratch_name(f"_{single_file.name}")
    shutil.move(str(single_file), str(staged))
    shutil.rmtree(target_path)

    hoisted = parent_dir / single_file.name
    _remove_existing(hoisted)
    staged.rename(hoisted)
    return hoisted


def materialize(
    blob: bytes,
    target_path: Path,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> MaterializeResult:
    """
    Extracts an archive blob into `target_path`.

    Every top-level archive entry lands at `target_path/<entry>`, replacing
    whatever was there. If `target_path` then holds exactly one file, that
    file is hoisted to be a sibling of `target_path` under its own name and
    the directory is removed. The scratch archive, the extraction directory
    and the scratch root are removed on every exit path.

    Args:
        blob: The archive bytes.
        target_path: Absolute destination directory.
        app_settings: Settings providing the scratch directory.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        A MaterializeResult. Failures are logged and reported through
        `success`/`error`, never raised.
    """
    logger_to_use = current_logger if current_logger else module_logger
    result = MaterializeResult(target_path=target_path)

    scratch_root = app_settings.resolved_temp_dir
    temp_archive = scratch_root / _scratch_name(static_config.TEMP_ARCHIVE_SUFFIX)
    extract_dir = scratch_root / _scratch_name()
    created_target = False

    try:
        scratch_root.mkdir(parents=True, exist_ok=True)
        temp_archive.write_bytes(blob)

        extract_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(temp_archive) as archive:
            archive.extractall(extract_dir)

        # A file here is a previous flattened install of the same blob.
        if target_path.is_file():
            target_path.unlink()
        created_target = not target_path.exists()
        target_path.mkdir(parents=True, exist_ok=True)

        for extracted in sorted(extract_dir.iterdir()):
            destination = target_path / extracted.name
            _remove_existing(destination)
            shutil.move(str(extracted), str(destination))
            result.placed.append(destination)

        hoisted = _flatten_single_file(target_path)
        if hoisted is not None:
            result.flattened = True
            result.placed = [hoisted]
            log_installer(
                f"Flattened single-file archive to {hoisted}",
                "debug",
                logger_to_use,
                app_settings,
            )

        log_installer(
            f"Extracted {len(result.placed)} item(s) to {target_path}",
            "debug",
            logger_to_use,
            app_settings,
        )
    except _EXTRACTION_ERRORS as e:
        error = MaterializeError(
            f"Extraction to {target_path} failed: {e}", target_path
        )
        log_installer(str(error), "error", logger_to_use, app_settings)
        result.success = False
        result.error = error
        # An empty directory left behind would pass the installed check.
        if created_target and target_path.is_dir() and not any(target_path.iterdir()):
            try:
                target_path.rmdir()
            except OSError as rm_error:
                log_installer(
                    f"Could not remove empty target {target_path}: {rm_error}",
                    "warning",
                    logger_to_use,
                    app_settings,
                )
    finally:
        if temp_archive.exists():
            try:
                temp_archive.unlink()
            except OSError as e:
                log_installer(
                    f"Could not delete scratch archive {temp_archive}: {e}",
                    "warning",
                    logger_to_use,
                    app_settings,
                )
        cleanup_directory(extract_dir, app_settings, logger_to_use)
        cleanup_directory(scratch_root, app_settings, logger_to_use)

    return result
