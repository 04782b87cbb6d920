# installer/resolver.py
# -*- coding: utf-8 -*-
"""
Dependency graph resolution for component installs.

Given a (module, component kind) target, the resolver walks the declared
prerequisites depth-first and returns a flat, deduplicated install plan in
which every item appears after everything it needs:

1. declared module dependencies that are not installed (recursively),
2. external package URLs, registries and scoped registries not yet added,
3. not-installed components of the same module with a lower kind, ascending,
4. the target component itself, last.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from common.core_utils import log_installer
from installer.catalog import Catalog
from installer.exceptions import InstallerError, MissingDependencyError
from installer.models import (
    ComponentKey,
    ComponentKind,
    ModuleType,
    ScopedRegistry,
)
from installer.state import InstalledState

module_logger = logging.getLogger(__name__)

ActionKey = Tuple[str, ...]


class ActionKind(str, Enum):
    """What an install action does."""

    COMPONENT = "component"
    PACKAGE = "package"
    REGISTRY = "registry"
    SCOPED_REGISTRY = "scoped_registry"


@dataclass
class InstallAction:
    """One step of an install plan."""

    kind: ActionKind
    module_type: Optional[ModuleType] = None
    module_name: Optional[str] = None
    component_kind: Optional[ComponentKind] = None
    identifier: Optional[str] = None
    scoped_registry: Optional[ScopedRegistry] = None
    prerequisites: List[ActionKey] = field(default_factory=list)

    @property
    def key(self) -> ActionKey:
        if self.kind is ActionKind.COMPONENT:
            return (self.kind.value, self.module_name, self.component_kind.name)
        return (self.kind.value, self.identifier)

    def describe(self) -> str:
        if self.kind is ActionKind.COMPONENT:
            return f"{self.module_name}/{self.component_kind.name}"
        return f"{self.kind.value} {self.identifier}"


def component_action_key(module_name: str, kind: ComponentKind) -> ActionKey:
    return (ActionKind.COMPONENT.value, module_name, kind.name)


@dataclass
class InstallPlan:
    """Ordered install actions for one target, plus recoverable issues."""

    target: ComponentKey
    actions: List[InstallAction] = field(default_factory=list)
    issues: List[InstallerError] = field(default_factory=list)

    def component_actions(self) -> List[InstallAction]:
        return [a for a in self.actions if a.kind is ActionKind.COMPONENT]

    def external_actions(self) -> List[InstallAction]:
        return [a for a in self.actions if a.kind is not ActionKind.COMPONENT]

    def __len__(self) -> int:
        return len(self.actions)


class _Walk:
    """Bookkeeping for a single resolve call."""

    def __init__(self, plan: InstallPlan):
        self.plan = plan
        self.planned: Dict[ActionKey, InstallAction] = {}
        self.visiting: Set[ActionKey] = set()
        self.reported_edges: Set[Tuple[ActionKey, ActionKey]] = set()

    def add(self, action: InstallAction) -> ActionKey:
        key = action.key
        if key not in self.planned:
            self.planned[key] = action
            self.plan.actions.append(action)
        return key


class DependencyResolver:
    """Computes install plans against a catalog and its installed state."""

    def __init__(
        self,
        catalog: Catalog,
        state: InstalledState,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.catalog = catalog
        self.state = state
        self.logger = current_logger or module_logger

    def resolve_install_order(
        self,
        module_type: ModuleType,
        module_name: str,
        kind: ComponentKind,
    ) -> InstallPlan:
        """
        Resolves the install plan for one component.

        Cycles in the declared module dependencies terminate the walk at the
        back edge, which is reported once. Dependencies on module ids absent
        from the catalog are reported and dropped.

        Returns:
            The plan. Its last action is the target component, unless the
            target does not exist in the catalog, in which case it is empty.
        """
        plan = InstallPlan(target=(module_name, kind))
        self._visit(module_type, module_name, kind, _Walk(plan), parent=None)
        return plan

    def _visit(
        self,
        module_type: ModuleType,
        module_name: str,
        kind: ComponentKind,
        walk: _Walk,
        parent: Optional[ActionKey],
    ) -> Optional[ActionKey]:
        key = component_action_key(module_name, kind)
        if key in walk.planned:
            return key
        if key in walk.visiting:
            edge = (parent, key)
            if edge not in walk.reported_edges:
                walk.reported_edges.add(edge)
                log_installer(
                    f"Dependency cycle: {'/'.join(parent[1:]) if parent else '?'} -> {module_name}/{kind.name}; edge ignored",
                    "warning",
                    self.logger,
                )
            return None

        component = self.catalog.get_component(module_name, kind)
        if component is None:
            return None

        walk.visiting.add(key)
        prerequisites: List[ActionKey] = []

        for dependency in component.dependency_modules:
            dep_module = self.catalog.modules.get(dependency.module_id)
            if dep_module is None:
                issue = MissingDependencyError(
                    dependency.module_id,
                    dependency.component_kind.name,
                    f"{module_name}/{kind.name}",
                )
                walk.plan.issues.append(issue)
                log_installer(str(issue), "warning", self.logger)
                continue
            if self.state.is_component_installed(
                dep_module.name, dependency.component_kind
            ):
                continue
            if dependency.component_kind not in dep_module.components:
                log_installer(
                    f"Module {dep_module.name} has no {dependency.component_kind.name} component; dependency skipped",
                    "warning",
                    self.logger,
                )
                continue
            log_installer(
                f"Missing dependency {dep_module.name}/{dependency.component_kind.name} for {module_name}/{kind.name}",
                "info",
                self.logger,
            )
            dep_key = self._visit(
                self.catalog.module_types[dep_module.id],
                dep_module.name,
                dependency.component_kind,
                walk,
                parent=key,
            )
            if dep_key:
                prerequisites.append(dep_key)

        for url in component.dependency_urls:
            if not self.state.urls.get(url, False):
                prerequisites.append(
                    walk.add(InstallAction(ActionKind.PACKAGE, identifier=url))
                )

        for registry in component.dependency_registries:
            if not self.state.registries.get(registry, False):
                prerequisites.append(
                    walk.add(
                        InstallAction(ActionKind.REGISTRY, identifier=registry)
                    )
                )

        for scoped in component.scoped_registries:
            if not self.state.scoped_registries.get(scoped.name, False):
                prerequisites.append(
                    walk.add(
                        InstallAction(
                            ActionKind.SCOPED_REGISTRY,
                            identifier=scoped.name,
                            scoped_registry=scoped,
                        )
                    )
                )

        for lower_kind in ComponentKind.below(kind):
            if self.state.is_component_installed(module_name, lower_kind):
                continue
            if self.catalog.get_component(module_name, lower_kind) is None:
                continue
            pre_key = self._visit(
                module_type, module_name, lower_kind, walk, parent=key
            )
            if pre_key:
                prerequisites.append(pre_key)

        walk.visiting.discard(key)
        walk.add(
            InstallAction(
                ActionKind.COMPONENT,
                module_type=module_type,
                module_name=module_name,
                component_kind=kind,
                prerequisites=prerequisites,
            )
        )
        return key
