"""Tests for compiler plugin management."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from wasmdev.errors import InstallError, PluginNotFoundError, UninstallError
from wasmdev.models import PluginDescriptor, PluginRegistry
from wasmdev.plugins import PluginManager, parse_cargo_install_list

CARGO_LIST = """\
wasm-bindgen-cli v0.2.92:
    wasm-bindgen
    wasm-bindgen-test-runner
wasmrust v0.3.1:
    wasmrust
wasmgo v1.0.0 (/home/dev/wasmgo):
    wasmgo
"""


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    return tmp_path / "plugins.json"


@pytest.fixture
def manager(registry_path: Path) -> PluginManager:
    return PluginManager(registry_path)


@pytest.fixture
def cargo_installed():
    with patch("wasmdev.plugins.is_cargo_installed", return_value=True):
        yield


def test_parse_cargo_install_list() -> None:
    assert parse_cargo_install_list(CARGO_LIST) == {
        "wasm-bindgen-cli": "0.2.92",
        "wasmrust": "0.3.1",
        "wasmgo": "1.0.0",
    }
    assert parse_cargo_install_list("") == {}


class TestInstall:
    """Tests for PluginManager.install."""

    def test_install_records_plugin(
        self, manager: PluginManager, registry_path: Path, cargo_installed
    ) -> None:
        with patch(
            "wasmdev.plugins.subprocess.run",
            side_effect=[completed(), completed(stdout=CARGO_LIST)],
        ) as mock_run:
            plugin = manager.install("wasmrust")

        assert plugin.version == "0.3.1"
        assert "Rust" in plugin.description
        assert mock_run.call_args_list[0][0][0] == ["cargo", "install", "wasmrust"]
        assert PluginRegistry.read(registry_path).plugins["wasmrust"].version == "0.3.1"

    def test_install_pinned_version(self, manager: PluginManager, cargo_installed) -> None:
        with patch(
            "wasmdev.plugins.subprocess.run",
            side_effect=[completed(), completed(returncode=1)],
        ) as mock_run:
            plugin = manager.install("wasmrust", "0.2.0")

        assert mock_run.call_args_list[0][0][0] == [
            "cargo", "install", "wasmrust", "--version", "0.2.0",
        ]
        assert plugin.version == "0.2.0"

    def test_install_failure(
        self, manager: PluginManager, registry_path: Path, cargo_installed
    ) -> None:
        with patch(
            "wasmdev.plugins.subprocess.run",
            return_value=completed(returncode=101, stderr="error: could not find `nope`"),
        ):
            with pytest.raises(InstallError, match="could not find"):
                manager.install("nope")
        assert not registry_path.exists()

    def test_install_without_cargo(self, manager: PluginManager) -> None:
        with (
            patch("wasmdev.plugins.is_cargo_installed", return_value=False),
            patch("wasmdev.plugins.subprocess.run") as mock_run,
        ):
            with pytest.raises(InstallError, match="cargo is not installed"):
                manager.install("wasmrust")
        mock_run.assert_not_called()


class TestUninstall:
    """Tests for PluginManager.uninstall."""

    @pytest.fixture(autouse=True)
    def seeded(self, registry_path: Path) -> None:
        PluginRegistry(
            plugins={"wasmrust": PluginDescriptor(name="wasmrust", version="0.3.1")}
        ).write(registry_path)

    def test_uninstall(self, manager: PluginManager, registry_path: Path) -> None:
        with patch("wasmdev.plugins.subprocess.run", return_value=completed()) as mock_run:
            manager.uninstall("wasmrust")
        assert mock_run.call_args[0][0] == ["cargo", "uninstall", "wasmrust"]
        assert PluginRegistry.read(registry_path).plugins == {}

    def test_uninstall_unknown(self, manager: PluginManager) -> None:
        with pytest.raises(PluginNotFoundError):
            manager.uninstall("wasmgo")

    def test_already_removed_crate_is_forgotten(
        self, manager: PluginManager, registry_path: Path
    ) -> None:
        stderr = "error: package ID specification `wasmrust` did not match any packages"
        with patch(
            "wasmdev.plugins.subprocess.run", return_value=completed(returncode=101, stderr=stderr)
        ):
            manager.uninstall("wasmrust")
        assert "wasmrust" not in PluginRegistry.read(registry_path).plugins

    def test_uninstall_failure(self, manager: PluginManager, registry_path: Path) -> None:
        with patch(
            "wasmdev.plugins.subprocess.run",
            return_value=completed(returncode=1, stderr="permission denied"),
        ):
            with pytest.raises(UninstallError):
                manager.uninstall("wasmrust")
        assert "wasmrust" in PluginRegistry.read(registry_path).plugins


class TestListAndInfo:
    """Tests for listing, updating and describing plugins."""

    def test_empty_registry(self, manager: PluginManager) -> None:
        with patch("wasmdev.plugins.subprocess.run") as mock_run:
            assert manager.list_installed() == []
        mock_run.assert_not_called()

    def test_versions_refreshed_from_cargo(
        self, manager: PluginManager, registry_path: Path, cargo_installed
    ) -> None:
        PluginRegistry(
            plugins={
                "wasmrust": PluginDescriptor(name="wasmrust", version="0.1.0"),
                "wasmgo": PluginDescriptor(name="wasmgo", version="0.9.0"),
            }
        ).write(registry_path)

        with patch("wasmdev.plugins.subprocess.run", return_value=completed(stdout=CARGO_LIST)):
            plugins = manager.list_installed()

        assert [(p.name, p.version) for p in plugins] == [
            ("wasmgo", "1.0.0"),
            ("wasmrust", "0.3.1"),
        ]

    def test_info_unknown(self, manager: PluginManager) -> None:
        with pytest.raises(PluginNotFoundError):
            manager.info("wasmrust")

    def test_update(self, manager: PluginManager, registry_path: Path, cargo_installed) -> None:
        PluginRegistry(
            plugins={"wasmrust": PluginDescriptor(name="wasmrust", version="0.1.0")}
        ).write(registry_path)

        with patch(
            "wasmdev.plugins.subprocess.run",
            side_effect=[completed(), completed(stdout=CARGO_LIST)],
        ) as mock_run:
            plugin = manager.update("wasmrust")

        assert mock_run.call_args_list[0][0][0] == ["cargo", "install", "--force", "wasmrust"]
        assert plugin.version == "0.3.1"

    def test_update_unknown(self, manager: PluginManager) -> None:
        with pytest.raises(PluginNotFoundError):
            manager.update("wasmrust")


class TestEnableDisable:
    """Tests for enabling and disabling plugins."""

    @pytest.fixture(autouse=True)
    def seeded(self, registry_path: Path) -> None:
        PluginRegistry(
            plugins={"wasmrust": PluginDescriptor(name="wasmrust", version="0.3.1")}
        ).write(registry_path)

    def test_plugins_start_enabled(self, registry_path: Path) -> None:
        assert PluginRegistry.read(registry_path).plugins["wasmrust"].enabled is True

    def test_disable_then_enable(self, manager: PluginManager, registry_path: Path) -> None:
        assert manager.disable("wasmrust").enabled is False
        assert PluginRegistry.read(registry_path).plugins["wasmrust"].enabled is False

        assert manager.enable("wasmrust").enabled is True
        assert PluginRegistry.read(registry_path).plugins["wasmrust"].enabled is True

    def test_disabled_state_survives_listing(self, manager: PluginManager) -> None:
        manager.disable("wasmrust")
        with patch("wasmdev.plugins.is_cargo_installed", return_value=False):
            assert [p.enabled for p in manager.list_installed()] == [False]

    def test_unknown_plugin(self, manager: PluginManager) -> None:
        with pytest.raises(PluginNotFoundError):
            manager.enable("wasmgo")
        with pytest.raises(PluginNotFoundError):
            manager.disable("wasmgo")


class TestCargoLocation:
    """Tests for a configured cargo executable."""

    def test_missing_custom_cargo(self, registry_path: Path, tmp_path: Path) -> None:
        manager = PluginManager(registry_path, cargo=str(tmp_path / "bin" / "cargo"))
        with patch("wasmdev.plugins.subprocess.run") as mock_run:
            with pytest.raises(InstallError, match="cargo is not installed"):
                manager.install("wasmrust")
        mock_run.assert_not_called()

    def test_custom_cargo_is_used(self, registry_path: Path, tmp_path: Path) -> None:
        cargo = tmp_path / "bin" / "cargo"
        cargo.parent.mkdir()
        cargo.write_text("#!/bin/sh\nexit 0\n")
        cargo.chmod(0o755)
        manager = PluginManager(registry_path, cargo=str(cargo))

        with patch(
            "wasmdev.plugins.subprocess.run",
            side_effect=[completed(), completed(stdout=CARGO_LIST)],
        ) as mock_run:
            manager.install("wasmrust")

        assert mock_run.call_args_list[0][0][0][0] == str(cargo)
