"""Compiler plugin management.

Plugins are compiler backends published as cargo crates. wasmdev drives
`cargo install` / `cargo uninstall` and keeps a small JSON registry of the
plugins it installed.
"""

from __future__ import annotations

import re
import subprocess
from pathlib import Path

from wasmdev.cli.dev.logging import DevLogComponent, get_logger
from wasmdev.constants import PLUGIN_REGISTRY
from wasmdev.errors import InstallError, PluginNotFoundError, UninstallError
from wasmdev.models import CommandResult, PluginDescriptor, PluginRegistry
from wasmdev.utils import is_cargo_installed

logger = get_logger(DevLogComponent.PLUGIN)

KNOWN_PLUGINS: dict[str, str] = {
    "wasmrust": "Rust compiler backend (cargo + wasm-bindgen)",
    "wasmgo": "Go compiler backend (TinyGo)",
}

# `cargo install --list` prints "name v1.2.3:" followed by indented binaries
_CARGO_LIST_LINE = re.compile(r"^(?P<name>[A-Za-z0-9_-]+) v(?P<version>[^\s:]+)(?: \(.*\))?:$")


def parse_cargo_install_list(output: str) -> dict[str, str]:
    """Map crate name to version from `cargo install --list` output."""
    crates: dict[str, str] = {}
    for line in output.splitlines():
        match = _CARGO_LIST_LINE.match(line.strip())
        if match:
            crates[match.group("name")] = match.group("version")
    return crates


class PluginManager:
    """Install, update, remove and list compiler plugins."""

    def __init__(self, registry_path: Path = PLUGIN_REGISTRY, cargo: str = "cargo"):
        self.registry_path: Path = registry_path
        self.cargo: str = cargo

    def _run(self, args: list[str]) -> CommandResult:
        cmd = [self.cargo, *args]
        logger.debug(f"Running {' '.join(cmd)}")
        result = subprocess.run(cmd, capture_output=True, text=True)
        return CommandResult(
            command=cmd,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    def _registry(self) -> PluginRegistry:
        return PluginRegistry.read(self.registry_path)

    def _installed_versions(self) -> dict[str, str]:
        result = self._run(["install", "--list"])
        if result.returncode != 0:
            return {}
        return parse_cargo_install_list(result.stdout)

    def install(self, name: str, version: str | None = None) -> PluginDescriptor:
        """Install a plugin crate and record it.

        Raises:
            InstallError: If cargo is missing or the install fails
        """
        if not is_cargo_installed(self.cargo):
            raise InstallError("cargo is not installed. Please install Rust to continue.")

        args = ["install", name]
        if version:
            args += ["--version", version]
        result = self._run(args)
        if result.returncode != 0:
            raise InstallError(f"Failed to install plugin '{name}': {result.stderr.strip()}")

        descriptor = PluginDescriptor(
            name=name,
            version=self._installed_versions().get(name, version),
            description=KNOWN_PLUGINS.get(name, ""),
        )
        registry = self._registry()
        registry.plugins[name] = descriptor
        registry.write(self.registry_path)
        logger.info(f"Installed plugin {name} {descriptor.version or ''}".rstrip())
        return descriptor

    def update(self, name: str) -> PluginDescriptor:
        """Reinstall the latest version of an installed plugin."""
        if name not in self._registry().plugins:
            raise PluginNotFoundError(name)
        if not is_cargo_installed(self.cargo):
            raise InstallError("cargo is not installed. Please install Rust to continue.")

        result = self._run(["install", "--force", name])
        if result.returncode != 0:
            raise InstallError(f"Failed to update plugin '{name}': {result.stderr.strip()}")

        registry = self._registry()
        registry.plugins[name].version = self._installed_versions().get(name)
        registry.write(self.registry_path)
        return registry.plugins[name]

    def uninstall(self, name: str) -> None:
        """Remove a plugin crate and forget it.

        Raises:
            PluginNotFoundError: If wasmdev did not install the plugin
            UninstallError: If cargo fails to remove it
        """
        registry = self._registry()
        if name not in registry.plugins:
            raise PluginNotFoundError(name)

        result = self._run(["uninstall", name])
        # cargo reports an already-removed crate as an error; forget it anyway
        if result.returncode != 0 and "did not match any packages" not in result.stderr:
            raise UninstallError(f"Failed to uninstall plugin '{name}': {result.stderr.strip()}")

        del registry.plugins[name]
        registry.write(self.registry_path)
        logger.info(f"Uninstalled plugin {name}")

    def list_installed(self) -> list[PluginDescriptor]:
        """Plugins in the registry, with versions refreshed from cargo when available."""
        plugins = self._registry().plugins
        if not plugins:
            return []
        versions = self._installed_versions() if is_cargo_installed(self.cargo) else {}
        return [
            p.model_copy(update={"version": versions.get(name, p.version)})
            for name, p in sorted(plugins.items())
        ]

    def enable(self, name: str) -> PluginDescriptor:
        return self._set_enabled(name, True)

    def disable(self, name: str) -> PluginDescriptor:
        """Keep a plugin installed but stop offering it to builds."""
        return self._set_enabled(name, False)

    def _set_enabled(self, name: str, enabled: bool) -> PluginDescriptor:
        registry = self._registry()
        if name not in registry.plugins:
            raise PluginNotFoundError(name)
        registry.plugins[name].enabled = enabled
        registry.write(self.registry_path)
        logger.info(f"{'Enabled' if enabled else 'Disabled'} plugin {name}")
        return registry.plugins[name]

    def info(self, name: str) -> PluginDescriptor:
        for plugin in self.list_installed():
            if plugin.name == name:
                return plugin
        raise PluginNotFoundError(name)
