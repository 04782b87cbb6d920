# installer/registry_client.py
# -*- coding: utf-8 -*-
"""
External package registry collaborator.

PackageRegistryClient is the interface the installer consumes. Adds are
asynchronous: they return a RegistryOperation wrapping a future, which the
caller waits on while polling a progress fraction. ManifestRegistryClient is
the reference implementation, backed by a JSON package manifest.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from concurrent import futures
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from common.core_utils import log_installer
from installer.exceptions import RegistryOperationError

module_logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

PROGRESS_INCREMENT = 0.01
PROGRESS_CEILING = 0.99

VALID_URL_PREFIXES: Tuple[str, ...] = ("https://", "git@", "git+", "file:")


class RegistryStatus(str, Enum):
    """Status of a registry operation."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILURE = "failure"


class RegistryOperation:
    """
    Handle on a running registry add.

    Completion is detected through `done`, success or failure through
    `status`. While running, `progress` is a simulated fraction in [0, 1)
    that advances each time the operation is polled. The operation cannot be
    cancelled.
    """

    def __init__(self, identifier: str, future: "futures.Future[Any]"):
        self.identifier = identifier
        self._future = future
        self._progress = 0.0

    @classmethod
    def completed(
        cls, identifier: str, error: Optional[str] = None
    ) -> "RegistryOperation":
        """An operation that has already finished, successfully or not."""
        future: "futures.Future[Any]" = futures.Future()
        if error is None:
            future.set_result(identifier)
        else:
            future.set_exception(RuntimeError(error))
        return cls(identifier, future)

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def status(self) -> RegistryStatus:
        if not self._future.done():
            return RegistryStatus.IN_PROGRESS
        if self._future.exception() is not None:
            return RegistryStatus.FAILURE
        return RegistryStatus.SUCCESS

    @property
    def error_message(self) -> Optional[str]:
        if self.status is not RegistryStatus.FAILURE:
            return None
        return str(self._future.exception())

    @property
    def progress(self) -> float:
        return 1.0 if self.done else self._progress

    def poll(self) -> float:
        """Advances the simulated progress of a running operation."""
        if not self.done:
            self._progress = min(
                self._progress + PROGRESS_INCREMENT, PROGRESS_CEILING
            )
        return self.progress

    def wait(
        self,
        on_progress: Optional[ProgressCallback] = None,
        poll_interval: float = 0.05,
    ) -> Any:
        """
        Blocks until the operation completes, reporting progress each tick.

        Args:
            on_progress: Optional callback receiving (identifier, fraction).
            poll_interval: Seconds between progress ticks.

        Returns:
            The operation result.

        Raises:
            RegistryOperationError: If the operation failed; carries the
                remote error message.
        """
        while not self.done:
            fraction = self.poll()
            if on_progress:
                on_progress(self.identifier, fraction)
            futures.wait([self._future], timeout=poll_interval)

        if on_progress:
            on_progress(self.identifier, 1.0)

        if self.status is RegistryStatus.FAILURE:
            raise RegistryOperationError(self.identifier, self.error_message or "")
        return self._future.result()


class PackageRegistryClient(ABC):
    """Interface of the external package registry consumed by the installer."""

    @abstractmethod
    def check_package_added(self, identifier: str) -> bool:
        """Whether a package source (URL or name) is already present."""

    @abstractmethod
    def check_registry_added(self, name: str) -> bool:
        """Whether a registry package is already present."""

    @abstractmethod
    def check_scoped_registry_added(self, name: str, url: str) -> bool:
        """Whether a scoped registry with this name and url is configured."""

    @abstractmethod
    def add_package(self, identifier: str) -> RegistryOperation:
        """Starts adding a package by URL or name."""

    def add_registry(self, name: str) -> RegistryOperation:
        """Starts adding a registry package. Defaults to add_package."""
        return self.add_package(name)

    @abstractmethod
    def add_scoped_registry(
        self, name: str, url: str, scopes: List[str]
    ) -> RegistryOperation:
        """Starts adding a scoped registry and the packages of its scopes."""

    def close(self) -> None:
        """Releases any resources held by the client."""


def is_url_identifier(identifier: str) -> bool:
    return "://" in identifier or identifier.startswith(VALID_URL_PREFIXES)


def dependency_entry(identifier: str) -> Tuple[str, str]:
    """
    Maps a package identifier to a manifest (name, version-or-url) entry.

    URLs are keyed by their last path segment without ".git", "name@version"
    is split, and bare names map to "latest".
    """
    if is_url_identifier(identifier):
        path = urlsplit(identifier).path if "://" in identifier else identifier
        path = path.split("?", 1)[0].split("#", 1)[0].rstrip("/")
        name = path.replace(":", "/").rsplit("/", 1)[-1]
        if name.endswith(".git"):
            name = name[: -len(".git")]
        return name or identifier, identifier
    if "@" in identifier:
        name, version = identifier.split("@", 1)
        return name, version
    return identifier, "latest"


def validate_identifier(identifier: str) -> Optional[str]:
    """Returns an error message for an unusable identifier, else None."""
    if not identifier or not identifier.strip():
        return "Empty package identifier"
    if is_url_identifier(identifier) and not identifier.startswith(
        VALID_URL_PREFIXES
    ):
        return f"Invalid package URL format: {identifier}"
    return None


class ManifestRegistryClient(PackageRegistryClient):
    """
    Registry client backed by a JSON package manifest.

    The manifest holds a "dependencies" mapping of package name to version or
    source URL and an optional "scopedRegistries" list. Adds run on a single
    worker thread so manifest writes never interleave.
    """

    def __init__(
        self,
        manifest_path: Path,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.manifest_path = Path(manifest_path)
        self.logger = current_logger or module_logger
        self._lock = threading.Lock()
        self._executor = futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="registry"
        )

    def _load_manifest(self) -> Dict[str, Any]:
        if not self.manifest_path.is_file():
            return {"dependencies": {}}
        with open(self.manifest_path, "r", encoding="utf-8") as f:
            manifest = json.load(f)
        if not isinstance(manifest, dict):
            raise ValueError(f"Manifest {self.manifest_path} is not a JSON object")
        manifest.setdefault("dependencies", {})
        return manifest

    def _read_manifest_for_check(self) -> Dict[str, Any]:
        try:
            with self._lock:
                return self._load_manifest()
        except (OSError, ValueError) as e:
            log_installer(
                f"Could not read package manifest {self.manifest_path}: {e}",
                "warning",
                self.logger,
            )
            return {"dependencies": {}}

    def _save_manifest(self, manifest: Dict[str, Any]) -> None:
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.manifest_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f, indent=2)
            f.write("\n")

    def check_package_added(self, identifier: str) -> bool:
        dependencies = self._read_manifest_for_check()["dependencies"]
        if identifier in dependencies:
            return True
        if any(identifier in str(value) for value in dependencies.values()):
            return True
        name, version = dependency_entry(identifier)
        return dependencies.get(name) == version

    def check_registry_added(self, name: str) -> bool:
        dependencies = self._read_manifest_for_check()["dependencies"]
        return dependency_entry(name)[0] in dependencies

    def check_scoped_registry_added(self, name: str, url: str) -> bool:
        registries = self._read_manifest_for_check().get("scopedRegistries", [])
        return any(
            entry.get("name") == name and entry.get("url") == url
            for entry in registries
            if isinstance(entry, dict)
        )

    def _write_dependencies(self, identifiers: List[str]) -> str:
        with self._lock:
            manifest = self._load_manifest()
            for identifier in identifiers:
                name, version = dependency_entry(identifier)
                manifest["dependencies"][name] = version
            self._save_manifest(manifest)
        return ", ".join(identifiers)

    def add_package(self, identifier: str) -> RegistryOperation:
        error = validate_identifier(identifier)
        if error:
            log_installer(error, "error", self.logger)
            return RegistryOperation.completed(identifier, error)

        log_installer(f"Adding package {identifier}", "info", self.logger)
        future = self._executor.submit(self._write_dependencies, [identifier])
        return RegistryOperation(identifier, future)

    def _write_scoped_registry(
        self, name: str, url: str, scopes: List[str]
    ) -> str:
        with self._lock:
            manifest = self._load_manifest()
            registries = manifest.setdefault("scopedRegistries", [])
            if any(
                entry.get("name") == name and entry.get("url") == url
                for entry in registries
                if isinstance(entry, dict)
            ):
                log_installer(
                    f"Scoped registry already present: {name}",
                    "warning",
                    self.logger,
                )
            else:
                registries.append(
                    {"name": name, "url": url, "scopes": list(scopes)}
                )
            for scope in scopes:
                manifest["dependencies"][scope] = "latest"
            self._save_manifest(manifest)
        log_installer(f"Added scoped registry {name}", "info", self.logger)
        return name

    def add_scoped_registry(
        self, name: str, url: str, scopes: List[str]
    ) -> RegistryOperation:
        if not name or not url:
            error = "Scoped registry needs both a name and a url"
            log_installer(error, "error", self.logger)
            return RegistryOperation.completed(name, error)

        future = self._executor.submit(
            self._write_scoped_registry, name, url, list(scopes)
        )
        return RegistryOperation(name, future)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
