# installer/installer.py
# -*- coding: utf-8 -*-
"""
Installer façade.

Orchestrates the catalog, the resolver, the materializer and the installed
state. All session state lives in an InstallerContext owned by the caller,
which is passed to every operation:

    context = create_context(load_app_settings())
    initialize(context)
    report = install(context, "core", ComponentKind.Core)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Union

from common.core_utils import log_installer
from common.file_utils import prune_empty_parents, remove_path
from common.logging_config import log_performance
from installer.build_symbols import DefineSymbolStore
from installer.catalog import Catalog, load_catalog
from installer.config_models import AppSettings
from installer.exceptions import (
    CatalogParseError,
    FilesystemDeleteError,
    InstallerError,
    MaterializeError,
    RegistryOperationError,
)
from installer.materializer import materialize
from installer.models import (
    CatalogConfig,
    ComponentKey,
    ComponentKind,
    Module,
    ModuleType,
)
from installer.paths import resolve_path
from installer.registry_client import (
    ManifestRegistryClient,
    PackageRegistryClient,
    ProgressCallback,
)
from installer.resolver import (
    ActionKey,
    ActionKind,
    DependencyResolver,
    InstallAction,
)
from installer.state import InstalledState, rescan

module_logger = logging.getLogger(__name__)

KindLike = Union[ComponentKind, int, str]


class ComponentState(str, Enum):
    """Lifecycle of one (module, component) pair within a session."""

    NOT_INSTALLED = "not_installed"
    DEPENDENCIES_PENDING = "dependencies_pending"
    INSTALLING = "installing"
    INSTALLED = "installed"


@dataclass
class ItemFailure:
    """A planned item that was attempted and failed."""

    item: str
    error: InstallerError


@dataclass
class InstallReport:
    """What an install or install-all call did."""

    target: Optional[ComponentKey] = None
    installed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)
    issues: List[InstallerError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and not self.blocked

    def merge(self, other: "InstallReport") -> None:
        self.installed.extend(other.installed)
        self.skipped.extend(other.skipped)
        self.blocked.extend(other.blocked)
        self.failures.extend(other.failures)
        self.issues.extend(other.issues)


@dataclass
class UninstallReport:
    """What an uninstall call removed."""

    target: ComponentKey
    removed: List[ComponentKey] = field(default_factory=list)
    deleted_paths: List[Path] = field(default_factory=list)
    retracted_symbols: List[str] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


InstallCompleteCallback = Callable[[InstallReport], None]
InstallProgressCallback = Callable[[int, int], None]


@dataclass
class InstallerContext:
    """Everything one installer session reads and mutates."""

    settings: AppSettings
    registry_client: PackageRegistryClient
    symbol_store: DefineSymbolStore
    logger: logging.Logger = module_logger
    catalog: Optional[Catalog] = None
    state: InstalledState = field(default_factory=InstalledState)
    component_states: Dict[ComponentKey, ComponentState] = field(
        default_factory=dict
    )
    last_failures: List[ItemFailure] = field(default_factory=list)

    @property
    def initialized(self) -> bool:
        return self.catalog is not None


def create_context(
    settings: AppSettings,
    registry_client: Optional[PackageRegistryClient] = None,
    symbol_store: Optional[DefineSymbolStore] = None,
    current_logger: Optional[logging.Logger] = None,
) -> InstallerContext:
    """
    Builds a session context. Collaborators default to the manifest-backed
    registry client and the YAML symbol store configured in `settings`.
    """
    logger_to_use = current_logger if current_logger else module_logger
    if registry_client is None:
        registry_client = ManifestRegistryClient(
            settings.resolved_manifest_path, current_logger=logger_to_use
        )
    if symbol_store is None:
        symbol_store = DefineSymbolStore(
            settings.resolved_build_settings_path,
            settings.build_target_groups,
            current_logger=logger_to_use,
        )
    return InstallerContext(
        settings=settings,
        registry_client=registry_client,
        symbol_store=symbol_store,
        logger=logger_to_use,
    )


def initialize(context: InstallerContext) -> bool:
    """
    Loads the catalog and computes the installed state.

    Returns:
        True on success. If the catalog document cannot be loaded the error
        is logged, the session is left empty and False is returned.
    """
    clear(context)
    try:
        context.catalog = load_catalog(context.settings, context.logger)
    except CatalogParseError as e:
        log_installer(
            f"Could not load module catalog: {e}",
            "error",
            context.logger,
            context.settings,
        )
        return False

    refresh_state(context)
    log_installer(
        f"Catalog loaded: {len(context.catalog.modules)} modules, {context.catalog.total_components()} components",
        "info",
        context.logger,
        context.settings,
    )
    return True


def clear(context: InstallerContext) -> None:
    """Drops the loaded catalog and all derived state."""
    context.catalog = None
    context.state = InstalledState()
    context.component_states.clear()
    context.last_failures = []


def refresh_state(context: InstallerContext) -> InstalledState:
    """Rescans the installed state and resets every component state from it."""
    if context.catalog is None:
        context.state = InstalledState()
        context.component_states.clear()
        return context.state

    context.state = rescan(
        context.catalog,
        context.settings,
        context.registry_client,
        context.logger,
    )
    context.component_states = {
        key: (
            ComponentState.INSTALLED
            if context.state.components.get(key, False)
            else ComponentState.NOT_INSTALLED
        )
        for key in context.catalog.components
    }
    return context.state


def get_config(context: InstallerContext) -> Optional[CatalogConfig]:
    if context.catalog is None:
        return None
    return context.catalog.config.model_copy(deep=True)


def get_modules(context: InstallerContext) -> Dict[int, Module]:
    if context.catalog is None:
        return {}
    return {
        module_id: module.model_copy(deep=True)
        for module_id, module in context.catalog.modules.items()
    }


def get_installed_state(context: InstallerContext) -> InstalledState:
    return context.state.snapshot()


def get_component_state(
    context: InstallerContext, module_name: str, kind: KindLike
) -> ComponentState:
    return context.component_states.get(
        (module_name, ComponentKind.parse(kind)), ComponentState.NOT_INSTALLED
    )


def _require_catalog(context: InstallerContext) -> Catalog:
    if context.catalog is None:
        raise InstallerError("Installer is not initialized; call initialize() first")
    return context.catalog


def _lookup(
    catalog: Catalog,
    module_name: str,
    kind: ComponentKind,
    module_type: Optional[ModuleType],
) -> ModuleType:
    module = catalog.get_module(module_name)
    if kind not in module.components:
        raise KeyError(f"Module '{module_name}' has no {kind.name} component")
    return module_type if module_type else catalog.module_types[module.id]


def _run_external(
    context: InstallerContext,
    action: InstallAction,
    on_registry_progress: Optional[ProgressCallback],
) -> None:
    client = context.registry_client
    if action.kind is ActionKind.PACKAGE:
        operation = client.add_package(action.identifier)
    elif action.kind is ActionKind.REGISTRY:
        operation = client.add_registry(action.identifier)
    else:
        scoped = action.scoped_registry
        operation = client.add_scoped_registry(
            scoped.name, scoped.url, list(scoped.scopes)
        )
    operation.wait(on_registry_progress, context.settings.registry_poll_interval)
    log_installer(
        f"Added {action.describe()}", "info", context.logger, context.settings
    )


def _install_component_blobs(
    context: InstallerContext, action: InstallAction
) -> List[InstallerError]:
    catalog = _require_catalog(context)
    key = (action.module_name, action.component_kind)
    context.component_states[key] = ComponentState.INSTALLING

    blobs = catalog.blobs_for(
        action.module_type, action.module_name, action.component_kind
    )
    errors: List[InstallerError] = []
    component = catalog.get_component(action.module_name, action.component_kind)
    if not blobs and component is not None and component.paths:
        # The partition is missing or holds no blob for this component.
        error = MaterializeError(
            f"No archives for {action.describe()} in the {action.module_type} partition"
        )
        log_installer(str(error), "error", context.logger, context.settings)
        errors.append(error)

    for relative_path, payload in blobs:
        target_path = resolve_path(relative_path, context.settings)
        result = materialize(payload, target_path, context.settings, context.logger)
        if not result.success and result.error is not None:
            errors.append(result.error)
    return errors


@log_performance
def install(
    context: InstallerContext,
    module_name: str,
    kind: KindLike,
    module_type: Optional[ModuleType] = None,
    on_registry_progress: Optional[ProgressCallback] = None,
    on_complete: Optional[InstallCompleteCallback] = None,
) -> InstallReport:
    """
    Installs one component together with everything it needs.

    Already-installed components are a no-op. Otherwise the resolver plan is
    executed in order: module dependencies, external packages and registries,
    lower-kind components of the same module, then the component's own
    archives. A failing item blocks every planned component that requires it,
    directly or transitively; unrelated items still run. The installed state
    is rescanned at the end and `on_complete` receives the report.

    Args:
        context: The installer session.
        module_name: Name of the module.
        kind: Component kind (member, value or name).
        module_type: Partition of the module. Looked up when omitted.
        on_registry_progress: Optional (identifier, fraction) callback for
            running registry operations.
        on_complete: Optional callback receiving the report.

    Returns:
        The InstallReport.

    Raises:
        KeyError: If the module or component is not in the catalog.
        InstallerError: If the context has not been initialized.
    """
    catalog = _require_catalog(context)
    kind = ComponentKind.parse(kind)
    module_type = _lookup(catalog, module_name, kind, module_type)
    report = InstallReport(target=(module_name, kind))

    if context.state.is_component_installed(module_name, kind):
        log_installer(
            f"{module_name}/{kind.name} is already installed",
            "info",
            context.logger,
            context.settings,
        )
        report.skipped.append(f"{module_name}/{kind.name}")
        if on_complete:
            on_complete(report)
        return report

    plan = DependencyResolver(
        catalog, context.state, context.logger
    ).resolve_install_order(module_type, module_name, kind)
    report.issues.extend(plan.issues)

    for action in plan.component_actions():
        context.component_states[
            (action.module_name, action.component_kind)
        ] = ComponentState.DEPENDENCIES_PENDING

    failed: Set[ActionKey] = set()
    for action in plan.actions:
        blocked_by = [key for key in action.prerequisites if key in failed]
        if blocked_by:
            failed.add(action.key)
            report.blocked.append(action.describe())
            log_installer(
                f"Skipping {action.describe()}: a prerequisite failed",
                "warning",
                context.logger,
                context.settings,
            )
            continue

        if action.kind is ActionKind.COMPONENT:
            errors = _install_component_blobs(context, action)
            if errors:
                failed.add(action.key)
                report.failures.extend(
                    ItemFailure(action.describe(), error) for error in errors
                )
            else:
                report.installed.append(action.describe())
            continue

        try:
            _run_external(context, action, on_registry_progress)
        except RegistryOperationError as e:
            failed.add(action.key)
            report.failures.append(ItemFailure(action.describe(), e))
            log_installer(str(e), "error", context.logger, context.settings)
        else:
            report.installed.append(action.describe())

    refresh_state(context)
    context.last_failures = list(report.failures)

    level = "info" if report.ok else "warning"
    log_installer(
        f"Install of {module_name}/{kind.name} finished: {len(report.installed)} installed, {len(report.failures)} failed, {len(report.blocked)} blocked",
        level,
        context.logger,
        context.settings,
    )
    if on_complete:
        on_complete(report)
    return report


@log_performance
def install_all(
    context: InstallerContext,
    on_progress: Optional[InstallProgressCallback] = None,
    on_complete: Optional[InstallCompleteCallback] = None,
    on_registry_progress: Optional[ProgressCallback] = None,
) -> InstallReport:
    """
    Installs every component of the catalog in catalog order.

    Pairs are visited by ModuleType, then module, then ascending kind.
    `on_progress(done, total)` fires after each pair, including pairs that
    were already installed, and `on_complete` fires exactly once at the end,
    also for an empty or unloaded catalog.
    """
    report = InstallReport()
    catalog = context.catalog
    total = catalog.total_components() if catalog else 0
    done = 0

    if catalog is not None:
        for module_type, module in catalog.iter_modules():
            for kind in module.components:
                if context.state.is_component_installed(module.name, kind):
                    report.skipped.append(f"{module.name}/{kind.name}")
                else:
                    report.merge(
                        install(
                            context,
                            module.name,
                            kind,
                            module_type=module_type,
                            on_registry_progress=on_registry_progress,
                        )
                    )
                done += 1
                if on_progress:
                    on_progress(done, total)

    context.last_failures = list(report.failures)
    log_installer(
        f"Install all finished: {done}/{total} components processed, {len(report.failures)} failures",
        "info" if report.ok else "warning",
        context.logger,
        context.settings,
    )
    if on_complete:
        on_complete(report)
    return report


def _prune_boundary(path: Path, settings: AppSettings) -> Path:
    asset_root = settings.asset_root
    if asset_root in path.parents:
        return asset_root
    return settings.project_root.resolve()


def _remove_component(
    context: InstallerContext,
    module_type: ModuleType,
    module_name: str,
    kind: ComponentKind,
    report: UninstallReport,
) -> None:
    catalog = _require_catalog(context)
    settings = context.settings

    for relative_path, _ in catalog.blobs_for(module_type, module_name, kind):
        full_path = resolve_path(relative_path, settings)
        try:
            if remove_path(full_path, settings, context.logger):
                report.deleted_paths.append(full_path)
            prune_empty_parents(
                full_path,
                _prune_boundary(full_path, settings),
                settings,
                context.logger,
            )
        except FilesystemDeleteError as e:
            report.failures.append(ItemFailure(str(full_path), e))
            log_installer(
                f"Failed to delete {full_path} during uninstall: {e}",
                "error",
                context.logger,
                settings,
            )

    component = catalog.get_component(module_name, kind)
    if component is not None:
        for symbol in component.delete_symbols_on_uninstall:
            if context.symbol_store.remove_symbol(symbol):
                report.retracted_symbols.append(symbol)

    context.component_states[(module_name, kind)] = ComponentState.NOT_INSTALLED
    report.removed.append((module_name, kind))


@log_performance
def uninstall(
    context: InstallerContext,
    module_name: str,
    kind: KindLike,
    module_type: Optional[ModuleType] = None,
) -> UninstallReport:
    """
    Removes one component and every installed higher-kind component of the
    same module, highest kind first.

    For each removed component, the target path of every archive is deleted
    along with its metadata marker, emptied parent directories are pruned,
    and the component's build symbols are retracted from every target group.
    Deletion failures are recorded and the remaining deletions still run.
    The installed state is rescanned at the end.

    Raises:
        KeyError: If the module or component is not in the catalog.
        InstallerError: If the context has not been initialized.
    """
    catalog = _require_catalog(context)
    kind = ComponentKind.parse(kind)
    module_type = _lookup(catalog, module_name, kind, module_type)
    report = UninstallReport(target=(module_name, kind))

    for higher_kind in reversed(ComponentKind.above(kind)):
        if context.state.is_component_installed(module_name, higher_kind):
            log_installer(
                f"Uninstalling dependent component {module_name}/{higher_kind.name} first",
                "info",
                context.logger,
                context.settings,
            )
            _remove_component(context, module_type, module_name, higher_kind, report)

    _remove_component(context, module_type, module_name, kind, report)

    refresh_state(context)
    context.last_failures = list(report.failures)
    removed = ", ".join(f"{name}/{k.name}" for name, k in report.removed)
    log_installer(
        f"Uninstalled {removed}",
        "info" if report.ok else "warning",
        context.logger,
        context.settings,
    )
    return report
