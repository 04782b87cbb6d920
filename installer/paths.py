# installer/paths.py
# -*- coding: utf-8 -*-
"""
Resolution of catalog-relative paths to absolute filesystem locations.
"""

import os
from pathlib import Path

from installer import config as static_config
from installer.config_models import AppSettings


def resolve_path(path: str, app_settings: AppSettings) -> Path:
    """
    Resolves a path declared in the catalog or recovered from a blob name.

    Precedence:
    1. Absolute paths are used as-is.
    2. Paths starting with "../" resolve against the project root.
    3. Paths starting with the asset directory name ("Assets/", any case)
       resolve against the project root.
    4. Anything else resolves against the asset root.

    Args:
        path: The declared path, using "/" or the platform separator.
        app_settings: Settings providing the project and asset roots.

    Returns:
        The normalized absolute path.
    """
    declared = path.replace("\\", "/")
    if os.path.isabs(path) or Path(declared).is_absolute():
        return Path(os.path.normpath(path))

    project_root = app_settings.project_root.resolve()
    asset_prefix = f"{app_settings.asset_dir_name}/"
    if declared.startswith(static_config.PARENT_ESCAPE_PREFIX):
        base = project_root
    elif declared.lower().startswith(asset_prefix.lower()):
        base = project_root
    else:
        base = app_settings.asset_root

    return Path(os.path.normpath(base / declared))
