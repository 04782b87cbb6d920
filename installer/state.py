# installer/state.py
# -*- coding: utf-8 -*-
"""
Installed-state tracking.

The state is never updated incrementally: it is recomputed from the
filesystem and the registry collaborator after every mutating operation.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from common.core_utils import log_installer
from installer.catalog import Catalog
from installer.config_models import AppSettings
from installer.models import Component, ComponentKey, ComponentKind
from installer.paths import resolve_path
from installer.registry_client import PackageRegistryClient

module_logger = logging.getLogger(__name__)


@dataclass
class InstalledState:
    """Presence flags for modules, components and external dependencies."""

    modules: Dict[int, bool] = field(default_factory=dict)
    urls: Dict[str, bool] = field(default_factory=dict)
    registries: Dict[str, bool] = field(default_factory=dict)
    scoped_registries: Dict[str, bool] = field(default_factory=dict)
    components: Dict[ComponentKey, bool] = field(default_factory=dict)

    def is_component_installed(
        self, module_name: str, kind: ComponentKind
    ) -> bool:
        return self.components.get((module_name, kind), False)

    def is_module_installed(self, module_id: int) -> bool:
        return self.modules.get(module_id, False)

    def snapshot(self) -> "InstalledState":
        """An independent copy, safe to hand to presentation code."""
        return copy.deepcopy(self)


def component_paths_exist(
    component: Component, app_settings: AppSettings
) -> bool:
    """True iff every declared path exists as a file or directory."""
    return all(
        resolve_path(path, app_settings).exists() for path in component.paths
    )


def rescan(
    catalog: Catalog,
    app_settings: AppSettings,
    registry_client: PackageRegistryClient,
    current_logger: Optional[logging.Logger] = None,
) -> InstalledState:
    """
    Recomputes the installed state of the whole catalog.

    A component is installed iff all of its declared paths exist. Components
    without paths are not recorded. A module takes the flag of the first of
    its components that is recorded. URL and registry flags come from the
    registry client.

    Args:
        catalog: The loaded catalog.
        app_settings: Settings used to resolve declared paths.
        registry_client: Collaborator answering external presence checks.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        A freshly computed InstalledState.
    """
    logger_to_use = current_logger if current_logger else module_logger
    state = InstalledState()

    for _, module in catalog.iter_modules():
        for kind, component in module.components.items():
            for url in component.dependency_urls:
                if url not in state.urls:
                    state.urls[url] = registry_client.check_package_added(url)

            for registry in component.dependency_registries:
                if registry not in state.registries:
                    state.registries[registry] = (
                        registry_client.check_registry_added(registry)
                    )

            for scoped in component.scoped_registries:
                if scoped.name not in state.scoped_registries:
                    state.scoped_registries[scoped.name] = (
                        registry_client.check_scoped_registry_added(
                            scoped.name, scoped.url
                        )
                    )

            if not component.paths:
                continue

            present = component_paths_exist(component, app_settings)
            state.components[(module.name, kind)] = present
            state.modules.setdefault(module.id, present)

    installed = sum(1 for flag in state.components.values() if flag)
    log_installer(
        f"Rescanned catalog: {installed}/{len(state.components)} components present",
        "debug",
        logger_to_use,
        app_settings,
    )
    return state
