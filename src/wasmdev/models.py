"""Centralized Pydantic models and enums for wasmdev."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from wasmdev.constants import DEFAULT_ASSETS_DIR, DEFAULT_HOST, DEFAULT_PORT, PID_FILE


# === Enums ===


class ServeMode(str, Enum):
    """What kind of build output is being served."""

    wasm = "wasm"
    webapp = "webapp"


class ServerPhase(str, Enum):
    """Lifecycle of a DevServer. There is no in-process stopping phase."""

    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    TERMINATED = "terminated"


class RouteKind(str, Enum):
    """Content category a request path resolved to."""

    ENTRY_PAGE = "entry_page"
    PRIMARY_ARTIFACT = "primary_artifact"
    GLUE_SCRIPT = "glue_script"
    RELOAD_POLL = "reload_poll"
    ASSET_FILE = "asset_file"
    OUTPUT_FILE = "output_file"
    NOT_FOUND = "not_found"


# === Server Configuration ===


class DevServerConfig(BaseModel):
    """Complete configuration for the development server.

    All default values are defined here and should not be repeated elsewhere.
    """

    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    watch: bool = False
    open_browser: bool = True
    pid_file: Path = PID_FILE
    assets_dir: Path = DEFAULT_ASSETS_DIR


class ServerSession(BaseModel):
    """State of one running server, created once per start."""

    process_id: int
    listen_port: int
    primary_artifact_path: Path
    glue_script_path: Path | None = None
    watch_mode_enabled: bool = False
    output_directory: Path
    mode: ServeMode = ServeMode.wasm

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @property
    def primary_artifact_name(self) -> str:
        return self.primary_artifact_path.name

    @property
    def glue_script_name(self) -> str | None:
        if self.glue_script_path is None:
            return None
        return self.glue_script_path.name

    @property
    def url(self) -> str:
        return f"http://localhost:{self.listen_port}"


class RouteResult(BaseModel):
    """Outcome of routing one request path."""

    kind: RouteKind
    status_code: int = 200
    body: bytes = b""
    media_type: str = "text/plain"
    headers: dict[str, str] = Field(default_factory=dict)

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


# === Plugin Models ===


class CommandResult(BaseModel):
    """Result of running a shell command."""

    command: list[str]
    returncode: int
    stdout: str
    stderr: str


class PluginDescriptor(BaseModel):
    """An installed compiler plugin."""

    name: str
    version: str | None = None
    description: str = ""
    enabled: bool = True


class PluginRegistry(BaseModel):
    """Plugins installed through wasmdev, persisted as JSON."""

    plugins: dict[str, PluginDescriptor] = Field(default_factory=dict)

    @classmethod
    def read(cls, path: Path) -> PluginRegistry:
        if not path.exists():
            return cls()
        return cls.model_validate(json.loads(path.read_text()))

    def write(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))
