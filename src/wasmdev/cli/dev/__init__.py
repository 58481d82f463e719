"""Dev server internals for wasmdev."""

from wasmdev.cli.dev.process_control import ProcessGuard, is_port_available
from wasmdev.cli.dev.reload import ReloadSignal
from wasmdev.cli.dev.router import RequestRouter
from wasmdev.cli.dev.server import DevServer, create_app

__all__ = [
    "DevServer",
    "ProcessGuard",
    "ReloadSignal",
    "RequestRouter",
    "create_app",
    "is_port_available",
]
