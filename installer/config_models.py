# installer/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for installer configuration.

This module defines the structured settings for the module installer,
including defaults, type annotations, and descriptions.
It utilizes Pydantic for data validation and settings management.
"""

from pathlib import Path
from typing import Dict, List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from installer import config as static_config

# --- Default Static Values (can be overridden by config file/env/cli) ---
PROJECT_ROOT_DEFAULT: str = "."
ASSET_DIR_NAME_DEFAULT: str = "Assets"
CATALOG_DIR_DEFAULT: str = "Assets/Setup/Resources"
TEMP_DIR_DEFAULT: str = "Assets/Setup/temp"
MANIFEST_PATH_DEFAULT: str = "Packages/manifest.json"
BUILD_SETTINGS_PATH_DEFAULT: str = "ProjectSettings/define_symbols.yaml"
REGISTRY_POLL_INTERVAL_DEFAULT: float = 0.05
LOG_PREFIX_DEFAULT: str = "[Installer]"

SYMBOLS_DEFAULT: Dict[str, str] = dict(static_config.SYMBOLS)


class AppSettings(BaseSettings):
    """Main installer settings."""

    model_config = SettingsConfigDict(
        env_prefix="MODULE_INSTALLER_", extra="ignore"
    )

    project_root: Path = Field(
        default=Path(PROJECT_ROOT_DEFAULT),
        description="Root of the project tree that modules are installed into.",
    )
    asset_dir_name: str = Field(
        default=ASSET_DIR_NAME_DEFAULT,
        description="Name of the asset root directory below the project root.",
    )
    catalog_dir: Path = Field(
        default=Path(CATALOG_DIR_DEFAULT),
        description="Directory holding the catalog document and partition files.",
    )
    catalog_file_name: str = Field(
        default=static_config.CATALOG_FILE_NAME,
        description="File name of the catalog document inside catalog_dir.",
    )
    temp_dir: Path = Field(
        default=Path(TEMP_DIR_DEFAULT),
        description="Scratch directory used while extracting archives.",
    )
    manifest_path: Path = Field(
        default=Path(MANIFEST_PATH_DEFAULT),
        description="Package manifest consulted and edited by the registry client.",
    )
    build_settings_path: Path = Field(
        default=Path(BUILD_SETTINGS_PATH_DEFAULT),
        description="YAML file storing build define symbols per target group.",
    )
    build_target_groups: List[str] = Field(
        default_factory=lambda: list(static_config.BUILD_TARGET_GROUPS),
        description="Target groups that symbols are retracted from on uninstall.",
    )
    meta_suffix: str = Field(
        default=static_config.META_SUFFIX,
        description="Suffix of the sibling metadata marker written next to assets.",
    )
    registry_poll_interval: float = Field(
        default=REGISTRY_POLL_INTERVAL_DEFAULT,
        description="Seconds between progress polls of a running registry operation.",
    )
    log_prefix: str = Field(
        default=LOG_PREFIX_DEFAULT,
        description="Prefix for log messages from the installer.",
    )

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )

    def _from_project_root(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return self.project_root.resolve() / path

    @property
    def asset_root(self) -> Path:
        return self.project_root.resolve() / self.asset_dir_name

    @property
    def resolved_catalog_dir(self) -> Path:
        return self._from_project_root(self.catalog_dir)

    @property
    def resolved_temp_dir(self) -> Path:
        return self._from_project_root(self.temp_dir)

    @property
    def resolved_manifest_path(self) -> Path:
        return self._from_project_root(self.manifest_path)

    @property
    def resolved_build_settings_path(self) -> Path:
        return self._from_project_root(self.build_settings_path)
