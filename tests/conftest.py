# tests/conftest.py
import io
import json
import struct
import zipfile
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from installer.catalog import serialize_partition
from installer.config_models import AppSettings
from installer.registry_client import PackageRegistryClient, RegistryOperation


class FakeRegistryClient(PackageRegistryClient):
    """In-memory registry client recording every call."""

    def __init__(self, failing: Iterable[str] = ()):
        self.packages: List[str] = []
        self.registries: List[str] = []
        self.scoped: Dict[str, str] = {}
        self.failing = set(failing)
        self.calls: List[Tuple[str, str]] = []

    def check_package_added(self, identifier):
        return identifier in self.packages

    def check_registry_added(self, name):
        return name in self.registries

    def check_scoped_registry_added(self, name, url):
        return self.scoped.get(name) == url

    def add_package(self, identifier):
        self.calls.append(("add_package", identifier))
        if identifier in self.failing:
            return RegistryOperation.completed(identifier, "remote refused")
        self.packages.append(identifier)
        return RegistryOperation.completed(identifier)

    def add_registry(self, name):
        self.calls.append(("add_registry", name))
        if name in self.failing:
            return RegistryOperation.completed(name, "remote refused")
        self.registries.append(name)
        return RegistryOperation.completed(name)

    def add_scoped_registry(self, name, url, scopes):
        self.calls.append(("add_scoped_registry", name))
        if name in self.failing:
            return RegistryOperation.completed(name, "remote refused")
        self.scoped[name] = url
        self.packages.extend(scopes)
        return RegistryOperation.completed(name)


def build_zip(entries: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, payload in entries.items():
            archive.writestr(name, payload)
    return buffer.getvalue()


def patch_zip_headers(
    blob: bytes, flag_bits: Optional[int] = None, method: Optional[int] = None
) -> bytes:
    """Rewrites the flag and method fields of every local and central header."""
    data = bytearray(blob)
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        start = data.find(signature)
        while start != -1:
            if flag_bits is not None:
                struct.pack_into("<H", data, start + flag_offset, flag_bits)
            if method is not None:
                struct.pack_into("<H", data, start + flag_offset + 2, method)
            start = data.find(signature, start + 4)
    return bytes(data)


@pytest.fixture
def zip_bytes():
    return build_zip


@pytest.fixture
def damaged_zip():
    """Archives zipfile can open but not extract: encrypted or unknown method."""

    def _build(entries: Dict[str, bytes], damage: str) -> bytes:
        blob = build_zip(entries)
        if damage == "encrypted":
            return patch_zip_headers(blob, flag_bits=0x1)
        return patch_zip_headers(blob, method=99)

    return _build


@pytest.fixture
def settings(tmp_path, monkeypatch):
    for key in ("PROJECT_ROOT", "CATALOG_DIR", "TEMP_DIR", "MANIFEST_PATH"):
        monkeypatch.delenv(f"MODULE_INSTALLER_{key}", raising=False)
    project_root = tmp_path / "project"
    (project_root / "Assets").mkdir(parents=True)
    return AppSettings(project_root=project_root, registry_poll_interval=0.001)


@pytest.fixture
def registry_client():
    return FakeRegistryClient()


@pytest.fixture
def write_catalog():
    """
    Writes a catalog document and its partitions.

    `modules` maps a module type name to its list of module dicts and `blobs`
    maps a module type name to (blob name, bytes) pairs.
    """

    def _write(
        app_settings: AppSettings,
        modules: Dict[str, List[dict]],
        blobs: Optional[Dict[str, List[Tuple[str, bytes]]]] = None,
        tools: Optional[List[dict]] = None,
        version: int = 1,
    ):
        catalog_dir = app_settings.resolved_catalog_dir
        catalog_dir.mkdir(parents=True, exist_ok=True)
        document = {"modules": modules, "tools": tools or []}
        (catalog_dir / app_settings.catalog_file_name).write_text(
            json.dumps(document), encoding="utf-8"
        )
        for module_type, type_blobs in (blobs or {}).items():
            (catalog_dir / f"{module_type}.bin").write_bytes(
                serialize_partition(version, type_blobs)
            )
        return catalog_dir

    return _write
