# installer/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the installer.

Handles loading settings from Pydantic model defaults, environment
variables, a YAML file and command-line arguments, applying a specific
order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (via Pydantic's BaseSettings)
3. YAML Configuration File
4. Command-Line Arguments
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

CONFIG_FILE_DEFAULT = "installer.yaml"

# CLI keys that map straight onto AppSettings fields
_CLI_FIELD_KEYS = ("project_root", "catalog_dir", "manifest_path", "temp_dir")


def _deep_update(
    source: Dict[str, Any], overrides: Mapping[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from `overrides`.

    Nested dictionaries are merged key by key. A `None` override never
    replaces an existing value.

    Args:
        source: The dictionary to be updated in place.
        overrides: The dictionary containing values to update or add.

    Returns:
        The updated `source` dictionary.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def read_yaml_config(
    config_path: Path, current_logger: Optional[logging.Logger] = None
) -> Dict[str, Any]:
    """
    Reads a YAML mapping from `config_path`.

    Missing files, unparsable YAML and non-mapping documents are logged and
    yield an empty dictionary, so the caller falls back to defaults.

    Args:
        config_path: Path to the YAML file.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        The parsed mapping, or an empty dictionary.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if not config_path.is_file():
        logger_to_use.info(
            f"Configuration file '{config_path}' not found. Using defaults and environment variables."
        )
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}

    logger_to_use.info(f"Loaded configuration from {config_path}")
    return yaml_data


def load_app_settings(
    cli_args: Optional[Mapping[str, Any]] = None,
    config_file_path: str = CONFIG_FILE_DEFAULT,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads installer settings with the following precedence:
    1. Pydantic Model Defaults.
    2. Environment Variables (MODULE_INSTALLER_*), loaded by BaseSettings.
    3. Values from the YAML configuration file.
    4. Command-line overrides (highest precedence).

    A relative `config_file_path` is looked up below the project root given
    on the command line, or the current working directory otherwise.

    Args:
        cli_args: Mapping of command-line option names to values. `None`
            values are ignored.
        config_file_path: Path to the YAML configuration file.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        SystemExit: If the merged configuration fails validation.
    """
    logger_to_use = current_logger if current_logger else module_logger
    cli_values = dict(cli_args or {})

    settings_after_env_and_defaults = AppSettings()
    current_values_dict = settings_after_env_and_defaults.model_dump(
        exclude_defaults=False
    )

    config_path = Path(config_file_path)
    if not config_path.is_absolute():
        base_dir = Path(cli_values.get("project_root") or Path.cwd())
        config_path = base_dir / config_path

    yaml_data = read_yaml_config(config_path, logger_to_use)
    current_values_dict = _deep_update(current_values_dict, yaml_data)

    mapped_cli_values: Dict[str, Any] = {}
    for cli_key in _CLI_FIELD_KEYS:
        cli_value = cli_values.get(cli_key)
        if cli_value is not None:
            mapped_cli_values[cli_key] = str(cli_value)
    current_values_dict = _deep_update(current_values_dict, mapped_cli_values)

    try:
        final_settings = AppSettings(**current_values_dict)
    except Exception as e:  # Catch Pydantic validation errors etc.
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    logger_to_use.info("Successfully loaded and validated installer settings")
    return final_settings
