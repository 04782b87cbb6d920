# installer/config.py
# -*- coding: utf-8 -*-
"""
Centralized static constants for the module installer.

This module defines truly static values, such as catalog file naming,
path-resolution markers, scratch file prefixes and logging symbols.

Mutable runtime configuration (project root, catalog location, manifest
path) is handled by 'installer/config_models.py' and
'installer/config_loader.py'.
"""

SCRIPT_VERSION: str = "1.2"

CATALOG_FILE_NAME: str = "ModuleCatalog.json"
PARTITION_FILE_SUFFIX: str = ".bin"

# Relative path markers understood by installer.paths.resolve_path
PARENT_ESCAPE_PREFIX: str = "../"

# Blob names are "{module}_{kind}_{relative path}"
BLOB_NAME_SEPARATOR: str = "_"

TEMP_ARCHIVE_PREFIX: str = "temp_"
TEMP_ARCHIVE_SUFFIX: str = ".zip"

META_SUFFIX: str = ".meta"

BUILD_TARGET_GROUPS: list[str] = ["Standalone", "Android", "iOS"]

SYMBOLS: dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
}
