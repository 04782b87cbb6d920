# installer/exceptions.py
# -*- coding: utf-8 -*-
"""
Error types raised and recorded by the installer.

None of these escape the installer operations in installer.installer; they
are logged and collected on the returned reports instead. RegistryOperationError
is the exception raised to the immediate caller of a registry operation.
"""

from pathlib import Path
from typing import Optional


class InstallerError(Exception):
    """Base class for all installer errors."""


class CatalogParseError(InstallerError):
    """A catalog document or partition resource could not be parsed."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class MissingDependencyError(InstallerError):
    """A component references a module id absent from the catalog."""

    def __init__(self, module_id: int, kind_name: str, required_by: str):
        super().__init__(
            f"Module id {module_id} ({kind_name}) required by {required_by} is not in the catalog"
        )
        self.module_id = module_id
        self.kind_name = kind_name
        self.required_by = required_by


class MaterializeError(InstallerError):
    """An archive could not be written, extracted or moved into place."""

    def __init__(self, message: str, target_path: Optional[Path] = None):
        super().__init__(message)
        self.target_path = target_path


class FilesystemDeleteError(InstallerError):
    """A path could not be removed during uninstall."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class RegistryOperationError(InstallerError):
    """An external registry add operation failed."""

    def __init__(self, identifier: str, remote_message: str):
        super().__init__(f"Failed to add {identifier}: {remote_message}")
        self.identifier = identifier
        self.remote_message = remote_message
