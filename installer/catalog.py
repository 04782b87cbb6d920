# installer/catalog.py
# -*- coding: utf-8 -*-
"""
Catalog index: module metadata plus the binary blob partitions.

The catalog document (JSON) lists modules per ModuleType. Each ModuleType has
one partition resource, ``{ModuleType}.bin``, laid out little-endian as::

    int64 version | int32 count | count x (int32 name_len | name | int64 offset | int32 size) | data

Offsets are absolute from the start of the partition buffer. Blob names
follow ``{module}_{kind}_{relative path}``.
"""

import json
import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from common.core_utils import log_installer
from installer import config as static_config
from installer.config_models import AppSettings
from installer.exceptions import CatalogParseError
from installer.models import (
    CatalogConfig,
    Component,
    ComponentKey,
    ComponentKind,
    Module,
    ModuleType,
)

module_logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<qi")
_NAME_LENGTH = struct.Struct("<i")
_EXTENT = struct.Struct("<qi")


@dataclass(frozen=True)
class BlobIndexEntry:
    """Location of one named blob inside a partition buffer."""

    name: str
    offset: int
    size: int


@dataclass
class ModuleTypePartition:
    """One parsed partition resource."""

    version: int
    module_count: int
    entries: List[BlobIndexEntry] = field(default_factory=list)
    data: Dict[str, bytes] = field(default_factory=dict)


def blob_prefix(module_name: str, kind: ComponentKind) -> str:
    """Prefix shared by every blob of one module component."""
    sep = static_config.BLOB_NAME_SEPARATOR
    return f"{module_name}{sep}{kind.name}{sep}"


def _read(buffer: bytes, fmt: struct.Struct, position: int, what: str):
    if position + fmt.size > len(buffer):
        raise CatalogParseError(
            f"Truncated partition while reading {what} at byte {position}"
        )
    return fmt.unpack_from(buffer, position)


def load_partition(raw: bytes) -> ModuleTypePartition:
    """
    Parses a partition resource.

    Args:
        raw: The complete partition buffer.

    Returns:
        The partition with its index and a name -> bytes map.

    Raises:
        CatalogParseError: On truncated input, negative counts or sizes,
            invalid UTF-8 names, duplicate names, or blob extents that fall
            outside the buffer or overlap.
    """
    version, module_count = _read(raw, _HEADER, 0, "header")
    if module_count < 0:
        raise CatalogParseError(f"Negative blob count {module_count}")

    position = _HEADER.size
    entries: List[BlobIndexEntry] = []
    for i in range(module_count):
        (name_length,) = _read(raw, _NAME_LENGTH, position, f"name length #{i}")
        position += _NAME_LENGTH.size
        if name_length < 0 or position + name_length > len(raw):
            raise CatalogParseError(f"Invalid name length {name_length} for entry #{i}")
        try:
            name = raw[position : position + name_length].decode("utf-8")
        except UnicodeDecodeError as e:
            raise CatalogParseError(f"Entry #{i} name is not UTF-8: {e}") from e
        position += name_length
        offset, size = _read(raw, _EXTENT, position, f"extent of '{name}'")
        position += _EXTENT.size
        entries.append(BlobIndexEntry(name=name, offset=offset, size=size))

    index_end = position
    data: Dict[str, bytes] = {}
    previous_end = index_end
    for entry in sorted(entries, key=lambda e: e.offset):
        if entry.size < 0:
            raise CatalogParseError(f"Negative size for blob '{entry.name}'")
        if entry.offset < previous_end or entry.offset + entry.size > len(raw):
            raise CatalogParseError(
                f"Blob '{entry.name}' extent {entry.offset}+{entry.size} is out of range or overlaps"
            )
        if entry.name in data:
            raise CatalogParseError(f"Duplicate blob name '{entry.name}'")
        data[entry.name] = bytes(raw[entry.offset : entry.offset + entry.size])
        previous_end = entry.offset + entry.size

    return ModuleTypePartition(
        version=version, module_count=module_count, entries=entries, data=data
    )


def serialize_partition(
    version: int, blobs: Iterable[Tuple[str, bytes]]
) -> bytes:
    """
    Builds a partition buffer from (name, bytes) pairs, in the given order.

    The index length is known before any data is written, so offsets are
    computed absolute from the buffer start.
    """
    items = [(name.encode("utf-8"), bytes(payload)) for name, payload in blobs]
    index_size = sum(
        _NAME_LENGTH.size + len(name) + _EXTENT.size for name, _ in items
    )
    offset = _HEADER.size + index_size

    index = bytearray(_HEADER.pack(version, len(items)))
    for name, payload in items:
        index += _NAME_LENGTH.pack(len(name))
        index += name
        index += _EXTENT.pack(offset, len(payload))
        offset += len(payload)

    return bytes(index) + b"".join(payload for _, payload in items)


def parse_catalog(raw: bytes) -> CatalogConfig:
    """
    Parses the catalog document.

    Raises:
        CatalogParseError: If the bytes are not a valid catalog document.
    """
    try:
        document = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CatalogParseError(f"Catalog document is not valid JSON: {e}") from e
    try:
        return CatalogConfig.model_validate(document)
    except ValidationError as e:
        raise CatalogParseError(f"Catalog document failed validation: {e}") from e


class Catalog:
    """Loaded catalog: module lookups plus the blob partitions per type."""

    def __init__(
        self,
        config: CatalogConfig,
        partitions: Optional[Dict[ModuleType, ModuleTypePartition]] = None,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.logger = current_logger or module_logger
        self.config = config
        self.partitions: Dict[ModuleType, ModuleTypePartition] = dict(
            partitions or {}
        )
        self.modules: Dict[int, Module] = {}
        self.module_types: Dict[int, ModuleType] = {}
        self.modules_by_name: Dict[str, Module] = {}
        self.components: Dict[ComponentKey, Component] = {}

        for module_type, module_list in config.modules.items():
            for module in module_list:
                if module.id in self.modules:
                    log_installer(
                        f"Duplicate module id {module.id} ('{module.name}'); keeping '{self.modules[module.id].name}'",
                        "warning",
                        self.logger,
                    )
                    continue
                self.modules[module.id] = module
                self.module_types[module.id] = module_type
                self.modules_by_name[module.name] = module
                for kind, component in module.components.items():
                    self.components[(module.name, kind)] = component

    def iter_modules(self) -> Iterable[Tuple[ModuleType, Module]]:
        """Modules in catalog order (ModuleType, then declaration order)."""
        for module_type, module_list in self.config.modules.items():
            for module in module_list:
                if self.modules.get(module.id) is module:
                    yield module_type, module

    def get_module(self, module_name: str) -> Module:
        """
        Raises:
            KeyError: If no module has that name.
        """
        if module_name not in self.modules_by_name:
            raise KeyError(f"No module named '{module_name}' in the catalog")
        return self.modules_by_name[module_name]

    def get_module_type(self, module_name: str) -> ModuleType:
        return self.module_types[self.get_module(module_name).id]

    def get_component(
        self, module_name: str, kind: ComponentKind
    ) -> Optional[Component]:
        return self.components.get((module_name, kind))

    def get_module_type_version(self, module_type: ModuleType) -> int:
        partition = self.partitions.get(module_type)
        return partition.version if partition else 0

    def has_partition(self, module_type: ModuleType) -> bool:
        return module_type in self.partitions

    def blobs_for(
        self, module_type: ModuleType, module_name: str, kind: ComponentKind
    ) -> List[Tuple[str, bytes]]:
        """(relative path, archive bytes) for every blob of one component."""
        partition = self.partitions.get(module_type)
        if partition is None:
            return []
        prefix = blob_prefix(module_name, kind)
        return [
            (name[len(prefix) :], payload)
            for name, payload in partition.data.items()
            if name.startswith(prefix)
        ]

    def total_components(self) -> int:
        return sum(len(module.components) for _, module in self.iter_modules())


def load_catalog(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Catalog:
    """
    Loads the catalog document and every partition from the catalog directory.

    A missing or malformed partition is logged and its ModuleType skipped:
    its modules stay registered as metadata but have no installable blobs.

    Raises:
        CatalogParseError: If the catalog document is missing or malformed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    catalog_dir = app_settings.resolved_catalog_dir
    catalog_path = catalog_dir / app_settings.catalog_file_name

    try:
        raw_catalog = catalog_path.read_bytes()
    except OSError as e:
        raise CatalogParseError(
            f"Could not read catalog document {catalog_path}: {e}",
            source=str(catalog_path),
        ) from e

    config = parse_catalog(raw_catalog)
    partitions: Dict[ModuleType, ModuleTypePartition] = {}

    for module_type in config.modules:
        partition_path = _partition_path(catalog_dir, module_type)
        if not partition_path.is_file():
            log_installer(
                f"No partition resource for module type {module_type} at {partition_path}",
                "warning",
                logger_to_use,
                app_settings,
            )
            continue
        try:
            partition = load_partition(partition_path.read_bytes())
        except (CatalogParseError, OSError) as e:
            log_installer(
                f"Error reading partition for module type {module_type}: {e}",
                "error",
                logger_to_use,
                app_settings,
            )
            continue

        for entry in partition.entries:
            log_installer(
                f"Indexed blob {entry.name} ({entry.size} bytes)",
                "debug",
                logger_to_use,
                app_settings,
            )
        partitions[module_type] = partition

    return Catalog(config, partitions, current_logger=logger_to_use)


def _partition_path(catalog_dir: Path, module_type: ModuleType) -> Path:
    return catalog_dir / f"{module_type.value}{static_config.PARTITION_FILE_SUFFIX}"
