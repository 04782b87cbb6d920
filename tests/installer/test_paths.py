# -*- coding: utf-8 -*-
from pathlib import Path

import pytest

from installer.paths import resolve_path


@pytest.mark.parametrize(
    "declared, expected_parts",
    [
        ("lib/core", ("Assets", "lib", "core")),
        ("Assets/Scripts/Core", ("Assets", "Scripts", "Core")),
        ("assets/Scripts/Core", ("assets", "Scripts", "Core")),
        ("../Packages/com.vendor", ("Packages", "com.vendor")),
        ("Plugins\\Android\\lib.aar", ("Assets", "Plugins", "Android", "lib.aar")),
    ],
)
def test_resolve_relative_paths(settings, declared, expected_parts):
    root = settings.project_root.resolve()
    assert resolve_path(declared, settings) == root.joinpath(*expected_parts)


def test_assets_prefix_needs_separator(settings):
    # "AssetsExtra" is not the asset root, so it lands inside it.
    root = settings.project_root.resolve()
    assert resolve_path("AssetsExtra/x", settings) == root / "Assets" / "AssetsExtra" / "x"


def test_absolute_path_is_kept(settings, tmp_path):
    target = tmp_path / "elsewhere" / "file.txt"
    assert resolve_path(str(target), settings) == Path(str(target))


def test_custom_asset_dir_name(settings):
    settings.asset_dir_name = "Content"
    root = settings.project_root.resolve()
    assert resolve_path("Content/a", settings) == root / "Content" / "a"
    assert resolve_path("a", settings) == root / "Content" / "a"
