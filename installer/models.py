# installer/models.py
# -*- coding: utf-8 -*-
"""
Pydantic models describing the module catalog.

A catalog groups modules by ModuleType. Each module is split into components
keyed by ComponentKind, an ordered tier enumeration that fixes the install
order (lower kinds first) and the uninstall order (higher kinds first).
"""

from enum import Enum, IntEnum
from typing import Any, Dict, List, Tuple, Union

from pydantic import BaseModel, Field, field_validator


class ModuleType(str, Enum):
    """Catalog partition a module belongs to. Declaration order is catalog order."""

    CORE = "Core"
    EXTENSION = "Extension"
    PRIMARY = "Primary"
    SECONDARY = "Secondary"
    TERTIARY = "Tertiary"
    THIRD_PARTY = "ThirdParty"

    def __str__(self) -> str:
        return self.value


class ComponentKind(IntEnum):
    """Component tier. The integer value is the install order."""

    Core = 0
    Editor = 1
    Optional = 2
    ThirdParty = 3

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, value: Union["ComponentKind", int, str]) -> "ComponentKind":
        """
        Converts a member, its integer value, or its name into a member.

        Raises:
            ValueError: If the value names no member.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = str(value).strip()
        if text.isdigit():
            return cls(int(text))
        for member in cls:
            if member.name.lower() == text.lower():
                return member
        raise ValueError(f"Unknown component kind: {value!r}")

    @classmethod
    def below(cls, kind: "ComponentKind") -> List["ComponentKind"]:
        """Kinds strictly lower than `kind`, ascending."""
        return [member for member in cls if member < kind]

    @classmethod
    def above(cls, kind: "ComponentKind") -> List["ComponentKind"]:
        """Kinds strictly higher than `kind`, ascending."""
        return [member for member in cls if member > kind]


ComponentKey = Tuple[str, ComponentKind]


class ScopedRegistry(BaseModel):
    """An external package source restricted to a set of name scopes."""

    name: str
    url: str
    scopes: List[str] = Field(default_factory=list)


class DependencyModule(BaseModel):
    """A cross-module prerequisite: a component of another module."""

    module_id: int
    component_kind: ComponentKind

    @field_validator("component_kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> ComponentKind:
        return ComponentKind.parse(value)


class Component(BaseModel):
    """The smallest installable slice of a module."""

    dependency_modules: List[DependencyModule] = Field(default_factory=list)
    dependency_urls: List[str] = Field(default_factory=list)
    dependency_registries: List[str] = Field(default_factory=list)
    scoped_registries: List[ScopedRegistry] = Field(default_factory=list)
    paths: List[str] = Field(default_factory=list)
    delete_symbols_on_uninstall: List[str] = Field(default_factory=list)


class Module(BaseModel):
    """A named, versioned installable unit composed of ordered components."""

    id: int
    name: str
    version: str = ""
    description: str = ""
    footnote: str = ""
    components: Dict[ComponentKind, Component] = Field(default_factory=dict)

    @field_validator("components", mode="before")
    @classmethod
    def _order_components(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        parsed = {ComponentKind.parse(key): item for key, item in value.items()}
        return dict(sorted(parsed.items()))


class BuilderTool(BaseModel):
    """A named link to an auxiliary tool, listed alongside the modules."""

    name: str
    url: str


class CatalogConfig(BaseModel):
    """The catalog document: modules per type plus auxiliary tools."""

    modules: Dict[ModuleType, List[Module]] = Field(default_factory=dict)
    tools: List[BuilderTool] = Field(default_factory=list)

    @field_validator("modules", mode="before")
    @classmethod
    def _order_module_types(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        parsed = {ModuleType(key): item for key, item in value.items()}
        order = list(ModuleType)
        return dict(sorted(parsed.items(), key=lambda kv: order.index(kv[0])))
