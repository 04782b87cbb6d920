# -*- coding: utf-8 -*-
import json
import logging

import pytest
from click.testing import CliRunner

from installer.cli import cli


@pytest.fixture(autouse=True)
def quiet_logging(mocker):
    return {
        "console": mocker.patch("installer.cli.setup_logging"),
        "json": mocker.patch("installer.cli.setup_service_logging"),
    }


@pytest.fixture
def project(settings, write_catalog, zip_bytes):
    write_catalog(
        settings,
        {
            "Core": [
                {
                    "id": 1,
                    "name": "core",
                    "version": "2.0",
                    "components": {
                        "Core": {"paths": ["lib/core"]},
                        "Editor": {"paths": ["Editor/Core"]},
                    },
                }
            ],
            "Extension": [
                {
                    "id": 2,
                    "name": "ext",
                    "components": {
                        "Core": {
                            "paths": ["Ext"],
                            "dependency_urls": ["https://github.com/vendor/tool.git"],
                        }
                    },
                },
                {"id": 3, "name": "broken", "components": {"Core": {"paths": ["Broken"]}}},
            ],
        },
        blobs={
            "Core": [
                ("core_Core_lib/core", zip_bytes({"a.txt": b"a", "b.txt": b"b"})),
                ("core_Editor_Editor/Core", zip_bytes({"E.cs": b"e", "F.cs": b"f"})),
            ],
            "Extension": [
                ("ext_Core_Ext", zip_bytes({"x.cs": b"x", "y.cs": b"y"})),
                ("broken_Core_Broken", b"garbage"),
            ],
        },
        tools=[{"name": "Packer", "url": "https://example.com/packer"}],
        version=3,
    )
    return settings.project_root


def _invoke(project_root, *args):
    return CliRunner().invoke(cli, ["--project-root", str(project_root), *args])


def test_cli_no_args():
    result = CliRunner().invoke(cli, [])
    assert "Usage" in result.output


def test_list(project):
    result = _invoke(project, "list")

    assert result.exit_code == 0, result.output
    assert "[Core] partition version 3" in result.output
    assert "core 2.0  [ ] Core  [ ] Editor" in result.output
    assert "[Extension] partition version 3" in result.output


def test_install_status_uninstall(project):
    result = _invoke(project, "install", "core", "editor")
    assert result.exit_code == 0, result.output
    assert "installed  core/Core" in result.output
    assert "installed  core/Editor" in result.output
    assert (project / "Assets" / "Editor" / "Core" / "E.cs").is_file()

    result = _invoke(project, "status", "core")
    assert "core/Core: installed" in result.output
    assert "core/Editor: installed" in result.output

    result = _invoke(project, "uninstall", "core", "Core")
    assert result.exit_code == 0, result.output
    assert "removed    core/Editor" in result.output
    assert "removed    core/Core" in result.output
    assert not (project / "Assets" / "lib").exists()

    result = _invoke(project, "status", "core", "Core")
    assert "core/Core: not_installed" in result.output


def test_install_adds_package_to_manifest(project):
    result = _invoke(project, "install", "ext", "Core")

    assert result.exit_code == 0, result.output
    manifest = json.loads((project / "Packages" / "manifest.json").read_text())
    assert manifest["dependencies"]["tool"] == "https://github.com/vendor/tool.git"


def test_install_failure_exit_code(project):
    result = _invoke(project, "install", "broken", "Core")

    assert result.exit_code == 1
    assert "failed     broken/Core" in result.output


def test_install_all(project):
    result = _invoke(project, "install-all")

    assert result.exit_code == 1
    assert "progress   4/4" in result.output
    assert (project / "Assets" / "Ext" / "x.cs").is_file()


def test_unknown_module(project):
    result = _invoke(project, "install", "absent", "Core")

    assert result.exit_code == 1
    assert "No module named 'absent'" in result.output


def test_invalid_kind(project):
    result = _invoke(project, "install", "core", "Runtime")
    assert result.exit_code == 2


def test_tools(project):
    result = _invoke(project, "tools")
    assert result.output.strip() == "Packer: https://example.com/packer"


def test_missing_catalog(tmp_path):
    result = _invoke(tmp_path, "list")

    assert result.exit_code == 1
    assert "Could not load the module catalog" in result.output


def test_json_logs_use_service_presets(project, quiet_logging):
    result = _invoke(project, "--json-logs", "-v", "--log-file", "run.log", "tools")

    assert result.exit_code == 0, result.output
    quiet_logging["json"].assert_called_once_with(
        "module-installer", environment="development", log_file_path="run.log"
    )
    quiet_logging["console"].assert_not_called()


def test_console_logging_receives_settings(project, quiet_logging):
    result = _invoke(project, "tools")

    assert result.exit_code == 0, result.output
    quiet_logging["json"].assert_not_called()
    args, kwargs = quiet_logging["console"].call_args
    assert args[0].project_root == project
    assert kwargs == {"log_level": logging.INFO, "log_file": None}
