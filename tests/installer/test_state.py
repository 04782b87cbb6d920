# -*- coding: utf-8 -*-
from unittest.mock import MagicMock

from installer.catalog import Catalog
from installer.models import CatalogConfig, ComponentKind
from installer.registry_client import PackageRegistryClient
from installer.state import InstalledState, rescan


def _catalog():
    return Catalog(
        CatalogConfig.model_validate(
            {
                "modules": {
                    "Core": [
                        {
                            "id": 1,
                            "name": "core",
                            "components": {
                                "Core": {
                                    "paths": ["lib/core", "../Packages/core.json"],
                                    "dependency_urls": ["pkg://x"],
                                },
                                "Editor": {"paths": ["Editor/Core"]},
                            },
                        },
                        {
                            "id": 2,
                            "name": "pathless",
                            "components": {
                                "Core": {
                                    "dependency_registries": ["com.vendor"],
                                    "scoped_registries": [
                                        {"name": "vendor", "url": "https://r", "scopes": []}
                                    ],
                                }
                            },
                        },
                    ]
                }
            }
        )
    )


def _client(packages=(), registries=()):
    client = MagicMock(spec=PackageRegistryClient)
    client.check_package_added.side_effect = lambda ident: ident in packages
    client.check_registry_added.side_effect = lambda name: name in registries
    client.check_scoped_registry_added.return_value = True
    return client


def test_component_installed_only_when_all_paths_exist(settings):
    root = settings.project_root.resolve()
    (root / "Assets" / "lib" / "core").mkdir(parents=True)

    state = rescan(_catalog(), settings, _client())
    assert state.is_component_installed("core", ComponentKind.Core) is False
    assert state.is_module_installed(1) is False

    (root / "Packages").mkdir()
    (root / "Packages" / "core.json").write_text("{}")
    state = rescan(_catalog(), settings, _client())
    assert state.is_component_installed("core", ComponentKind.Core) is True
    assert state.is_component_installed("core", ComponentKind.Editor) is False
    # The module flag follows its first recorded component.
    assert state.is_module_installed(1) is True


def test_pathless_components_are_not_recorded(settings):
    state = rescan(_catalog(), settings, _client())
    assert ("pathless", ComponentKind.Core) not in state.components
    assert 2 not in state.modules


def test_external_flags_come_from_registry_client(settings):
    client = _client(packages=("pkg://x",), registries=())
    state = rescan(_catalog(), settings, client)

    assert state.urls == {"pkg://x": True}
    assert state.registries == {"com.vendor": False}
    assert state.scoped_registries == {"vendor": True}
    client.check_scoped_registry_added.assert_called_once_with("vendor", "https://r")


def test_snapshot_is_independent():
    state = InstalledState(components={("a", ComponentKind.Core): True})
    copy = state.snapshot()
    copy.components[("a", ComponentKind.Core)] = False
    assert state.is_component_installed("a", ComponentKind.Core) is True
