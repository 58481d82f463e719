"""Centralized logging for `wasmdev` (routing and CLI formatting)."""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel
from typing_extensions import override

from wasmdev.constants import RELOAD_PATHS
from wasmdev.utils import PrefixedLogHandler


class DevLogComponent(str, Enum):
    """Where a log originated (used for fine-grained filtering)."""

    SERVER = "server"
    ROUTER = "router"
    ASSETS = "assets"
    RELOAD = "reload"
    PROCESS_CONTROL = "process_control"
    PLUGIN = "plugin"
    BROWSER = "browser"


_COMPONENT_COLOR: dict[DevLogComponent, str] = {
    DevLogComponent.SERVER: "bright_blue",
    DevLogComponent.ROUTER: "cyan",
    DevLogComponent.ASSETS: "magenta",
    DevLogComponent.RELOAD: "green",
    DevLogComponent.PROCESS_CONTROL: "bright_blue",
    DevLogComponent.PLUGIN: "yellow",
    DevLogComponent.BROWSER: "cyan",
}


class _DevLogState(BaseModel):
    configured: bool = False
    level: int = logging.INFO


_STATE = _DevLogState()


class _ReloadPollAccessFilter(logging.Filter):
    """Hide access log lines for the browser's reload polling."""

    _poll_paths: tuple[str, ...] = RELOAD_PATHS

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(f"{p} " in msg or f"{p}?" in msg for p in self._poll_paths)


def configure_dev_logging(level: int = logging.INFO) -> None:
    """Route all wasmdev and uvicorn loggers to the prefixed console handler."""
    for component in DevLogComponent:
        logger = logging.getLogger(f"wasmdev.dev.{component.value}")
        logger.setLevel(level)
        logger.handlers.clear()
        handler = PrefixedLogHandler(
            f"[{component.value}]", _COMPONENT_COLOR[component], width=17
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv = logging.getLogger(name)
        uv.setLevel(level)
        uv.handlers.clear()
        if name == "uvicorn.access" and not any(
            isinstance(f, _ReloadPollAccessFilter) for f in uv.filters
        ):
            uv.addFilter(_ReloadPollAccessFilter())
        h = PrefixedLogHandler("[http]", "dim", width=17)
        h.setFormatter(logging.Formatter("%(message)s"))
        uv.addHandler(h)
        uv.propagate = False

    _STATE.configured = True
    _STATE.level = level


def get_logger(component: DevLogComponent) -> logging.Logger:
    """Get a dev logger for a component (do not call stdlib logging directly)."""
    logger = logging.getLogger(f"wasmdev.dev.{component.value}")
    if not _STATE.configured:
        # Avoid "No handlers could be found" warnings when logging isn't configured.
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
    return logger
