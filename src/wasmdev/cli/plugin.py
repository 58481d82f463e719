"""Plugin commands for the wasmdev CLI."""

from pathlib import Path
from typing import Annotated

from rich.markup import escape
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from wasmdev.constants import PLUGIN_REGISTRY, PLUGIN_REGISTRY_ENV
from wasmdev.errors import PluginError
from wasmdev.plugins import PluginManager
from wasmdev.utils import console, progress_spinner

plugin_app = Typer(name="plugin", help="Manage compiler plugins")

RegistryOption = Annotated[
    Path,
    Option("--registry", envvar=PLUGIN_REGISTRY_ENV, help="Plugin registry file"),
]


def _fail(e: PluginError) -> Exit:
    console.print(f"[red]❌ {escape(str(e))}[/red]")
    return Exit(code=1)


@plugin_app.command(name="list", help="List installed plugins")
def plugin_list(registry: RegistryOption = PLUGIN_REGISTRY) -> None:
    plugins = PluginManager(registry).list_installed()
    if not plugins:
        console.print("No plugins installed")
        return

    table = Table(title="🔌 Installed Plugins")
    table.add_column("", width=2)
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Description", style="dim")
    for plugin in plugins:
        status = "✅" if plugin.enabled else "❌"
        table.add_row(status, plugin.name, plugin.version or "-", plugin.description)
    console.print(table)


@plugin_app.command(name="enable", help="Enable (or with --disable, disable) a plugin")
def plugin_enable(
    name: Annotated[str, Argument(help="Plugin name")],
    disable: Annotated[bool, Option("--disable", help="Disable the plugin instead")] = False,
    registry: RegistryOption = PLUGIN_REGISTRY,
) -> None:
    manager = PluginManager(registry)
    try:
        if disable:
            console.print(f"❌ Disabling plugin: {name}")
            manager.disable(name)
        else:
            console.print(f"✅ Enabling plugin: {name}")
            manager.enable(name)
    except PluginError as e:
        raise _fail(e)

    console.print(f"✅ Plugin '{name}' {'disabled' if disable else 'enabled'} successfully")


@plugin_app.command(name="install", help="Install a plugin")
def plugin_install(
    name: Annotated[str, Argument(help="Plugin name")],
    version: Annotated[str | None, Option(help="Version to install")] = None,
    registry: RegistryOption = PLUGIN_REGISTRY,
) -> None:
    try:
        with progress_spinner(f"🔄 Installing plugin: {name}", f"✅ Plugin '{name}' installed"):
            PluginManager(registry).install(name, version)
    except PluginError as e:
        raise _fail(e)


@plugin_app.command(name="uninstall", help="Uninstall a plugin")
def plugin_uninstall(
    name: Annotated[str, Argument(help="Plugin name")],
    registry: RegistryOption = PLUGIN_REGISTRY,
) -> None:
    try:
        with progress_spinner(f"🗑️  Uninstalling plugin: {name}", f"✅ Plugin '{name}' uninstalled"):
            PluginManager(registry).uninstall(name)
    except PluginError as e:
        raise _fail(e)


@plugin_app.command(name="update", help="Update a plugin to its latest version")
def plugin_update(
    name: Annotated[str, Argument(help="Plugin name")],
    registry: RegistryOption = PLUGIN_REGISTRY,
) -> None:
    try:
        with progress_spinner(f"🔄 Updating plugin: {name}", f"✅ Plugin '{name}' updated"):
            PluginManager(registry).update(name)
    except PluginError as e:
        raise _fail(e)


@plugin_app.command(name="info", help="Show details about an installed plugin")
def plugin_info(
    name: Annotated[str, Argument(help="Plugin name")],
    registry: RegistryOption = PLUGIN_REGISTRY,
) -> None:
    try:
        plugin = PluginManager(registry).info(name)
    except PluginError as e:
        raise _fail(e)

    console.print("\n🔌 Plugin Information:")
    console.print(f"Name: {plugin.name}")
    console.print(f"Version: {plugin.version or 'unknown'}")
    console.print(f"Description: {plugin.description or '-'}")
    console.print(f"Enabled: {'yes' if plugin.enabled else 'no'}")
