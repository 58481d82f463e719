"""Exception hierarchy for wasmdev.

Start-up errors stop the process before it listens. Request and asset errors
are contained in the request that raised them.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class WasmdevError(Exception):
    """Base class for all wasmdev errors."""


# === Start-up (fatal) ===


class StartupError(WasmdevError):
    """Raised when the dev server cannot start. Always fatal."""


class PortUnavailableError(StartupError):
    def __init__(self, port: int, listener_pids: list[int] | None = None):
        self.port: int = port
        self.listener_pids: list[int] = listener_pids or []
        message = f"Port {port} is already in use, please choose a different port."
        if self.listener_pids:
            message += f" (listening PIDs: {self.listener_pids})"
        super().__init__(message)


class ArtifactMissingError(StartupError):
    def __init__(self, path: Path):
        self.path: Path = path
        super().__init__(f"WASM file not found at path: {path}")


class ListenerBindError(StartupError):
    def __init__(self, host: str, port: int, cause: OSError):
        self.host: str = host
        self.port: int = port
        self.cause: OSError = cause
        super().__init__(f"Failed to bind {host}:{port}: {cause}")


class GuardError(StartupError):
    """Raised by the single-instance guard."""


class TerminationFailedError(GuardError):
    def __init__(self, pid: int, cause: str):
        self.pid: int = pid
        self.cause: str = cause
        super().__init__(f"Failed to stop existing server (pid {pid}): {cause}")


# === Per-request (local) ===


class RequestError(WasmdevError):
    """Raised while serving a single request. Never stops the server."""


class AssetError(RequestError):
    """Raised while resolving a static asset. Always surfaces as a 404."""


class AssetMissingReason(str, Enum):
    """Why an asset could not be served (logged, never sent to the client)."""

    ROOT_MISSING = "root_missing"
    ROOT_NOT_A_DIRECTORY = "root_not_a_directory"
    FILE_MISSING = "file_missing"
    INVALID_NAME = "invalid_name"


class AssetNotFoundError(AssetError):
    def __init__(self, name: str, reason: AssetMissingReason, root: Path):
        self.name: str = name
        self.reason: AssetMissingReason = reason
        self.root: Path = root
        super().__init__(f"Asset not found: {name} ({reason.value})")


# === Plugins ===


class PluginError(WasmdevError):
    """Raised by plugin management commands."""


class InstallError(PluginError):
    pass


class UninstallError(PluginError):
    pass


class PluginNotFoundError(PluginError):
    def __init__(self, name: str):
        self.name: str = name
        super().__init__(f"Plugin '{name}' is not installed")
