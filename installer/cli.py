# installer/cli.py
# -*- coding: utf-8 -*-
"""
Command-line interface for the module installer.
"""

import logging
import sys

import click

from common.core_utils import setup_logging
from common.logging_config import setup_service_logging
from installer import config as static_config
from installer.config_loader import CONFIG_FILE_DEFAULT, load_app_settings
from installer.installer import (
    InstallReport,
    create_context,
    get_component_state,
    initialize,
    install,
    install_all,
    uninstall,
)
from installer.models import ComponentKind

module_logger = logging.getLogger(__name__)

KIND_CHOICE = click.Choice([kind.name for kind in ComponentKind], case_sensitive=False)


def _open_session(ctx: click.Context):
    """Creates and initializes the installer context for one command."""
    settings = ctx.obj["settings"]
    context = create_context(settings, current_logger=module_logger)
    ctx.call_on_close(context.registry_client.close)
    if not initialize(context):
        raise click.ClickException(
            f"Could not load the module catalog from {settings.resolved_catalog_dir}"
        )
    return context


def _print_install_report(report: InstallReport) -> None:
    for item in report.installed:
        click.echo(f"installed  {item}")
    for item in report.skipped:
        click.echo(f"skipped    {item}")
    for item in report.blocked:
        click.echo(f"blocked    {item}")
    for failure in report.failures:
        click.echo(f"failed     {failure.item}: {failure.error}", err=True)
    for issue in report.issues:
        click.echo(f"warning    {issue}", err=True)


@click.group()
@click.option(
    "--config-file",
    default=CONFIG_FILE_DEFAULT,
    show_default=True,
    help="YAML configuration file, relative to the project root.",
)
@click.option(
    "--project-root",
    type=click.Path(file_okay=False),
    default=None,
    help="Root of the project tree to install into.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--json-logs", is_flag=True, help="Emit structured JSON logs.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also append log records to this file.",
)
@click.version_option(static_config.SCRIPT_VERSION)
@click.pass_context
def cli(ctx, config_file, project_root, verbose, json_logs, log_file):
    """
    Installs, inspects and removes catalog modules in a project tree.
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    settings = load_app_settings(
        {"project_root": project_root},
        config_file_path=config_file,
        current_logger=module_logger,
    )
    if json_logs:
        # --verbose selects the development preset (DEBUG).
        setup_service_logging(
            "module-installer",
            environment="development" if verbose else None,
            log_file_path=log_file,
        )
    else:
        setup_logging(settings, log_level=log_level, log_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command(name="list")
@click.pass_context
def list_command(ctx):
    """Lists modules by type with their installed components."""
    context = _open_session(ctx)
    catalog = context.catalog

    current_type = None
    for module_type, module in catalog.iter_modules():
        if module_type != current_type:
            current_type = module_type
            click.echo(
                f"[{module_type}] partition version {catalog.get_module_type_version(module_type)}"
            )
        kinds = []
        for kind in module.components:
            mark = "x" if context.state.is_component_installed(module.name, kind) else " "
            kinds.append(f"[{mark}] {kind.name}")
        version = f" {module.version}" if module.version else ""
        click.echo(f"  {module.id:>4} {module.name}{version}  {'  '.join(kinds)}")


@cli.command()
@click.argument("module")
@click.argument("kind", type=KIND_CHOICE, required=False)
@click.pass_context
def status(ctx, module, kind):
    """Shows the state of a module's components."""
    context = _open_session(ctx)
    try:
        catalog_module = context.catalog.get_module(module)
    except KeyError as e:
        raise click.ClickException(str(e.args[0])) from e

    kinds = [ComponentKind.parse(kind)] if kind else list(catalog_module.components)
    for component_kind in kinds:
        if component_kind not in catalog_module.components:
            raise click.ClickException(
                f"Module '{module}' has no {component_kind.name} component"
            )
        state = get_component_state(context, module, component_kind)
        click.echo(f"{module}/{component_kind.name}: {state.value}")


@cli.command(name="install")
@click.argument("module")
@click.argument("kind", type=KIND_CHOICE)
@click.pass_context
def install_command(ctx, module, kind):
    """Installs a module component and its prerequisites."""
    context = _open_session(ctx)
    try:
        report = install(context, module, ComponentKind.parse(kind))
    except KeyError as e:
        raise click.ClickException(str(e.args[0])) from e
    _print_install_report(report)
    if not report.ok:
        sys.exit(1)


@cli.command(name="install-all")
@click.pass_context
def install_all_command(ctx):
    """Installs every component of the catalog."""
    context = _open_session(ctx)

    def on_progress(done, total):
        click.echo(f"progress   {done}/{total}")

    report = install_all(context, on_progress=on_progress)
    _print_install_report(report)
    if not report.ok:
        sys.exit(1)


@cli.command(name="uninstall")
@click.argument("module")
@click.argument("kind", type=KIND_CHOICE)
@click.pass_context
def uninstall_command(ctx, module, kind):
    """Removes a module component and its higher-kind components."""
    context = _open_session(ctx)
    try:
        report = uninstall(context, module, ComponentKind.parse(kind))
    except KeyError as e:
        raise click.ClickException(str(e.args[0])) from e

    for name, removed_kind in report.removed:
        click.echo(f"removed    {name}/{removed_kind.name}")
    for symbol in report.retracted_symbols:
        click.echo(f"symbol     {symbol}")
    for failure in report.failures:
        click.echo(f"failed     {failure.item}: {failure.error}", err=True)
    if not report.ok:
        sys.exit(1)


@cli.command()
@click.pass_context
def tools(ctx):
    """Lists the auxiliary builder tools of the catalog."""
    context = _open_session(ctx)
    for tool in context.catalog.config.tools:
        click.echo(f"{tool.name}: {tool.url}")


if __name__ == "__main__":
    cli()
