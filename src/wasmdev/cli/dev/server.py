"""The wasmdev HTTP server: start-up sequence and accept/handle loop.

Architecture:
- One uvicorn server, one worker, one event loop. The request handler is a
  coroutine that reads files inline, so requests are handled one at a time.
- Start-up: stop any live prior instance, check the port, verify the artifact,
  bind the listener, publish our pid. Any failure raises StartupError.
- There is no in-process stop. The server ends when the process is killed and
  the next start-up clears the pid record.
"""

from __future__ import annotations

import asyncio
import os
import socket
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response

from wasmdev import __version__
from wasmdev.cli.dev.assets import AssetResolver
from wasmdev.cli.dev.logging import DevLogComponent, get_logger
from wasmdev.cli.dev.process_control import (
    ProcessGuard,
    bind_listener,
    find_listeners_for_port,
    is_port_available,
)
from wasmdev.cli.dev.reload import RebuildWatcher, ReloadSignal
from wasmdev.cli.dev.router import RequestRouter
from wasmdev.constants import RELOAD_PATHS
from wasmdev.errors import ArtifactMissingError, PortUnavailableError, StartupError
from wasmdev.models import (
    DevServerConfig,
    RouteResult,
    ServeMode,
    ServerPhase,
    ServerSession,
)
from wasmdev.utils import console, format_file_size, open_browser

logger = get_logger(DevLogComponent.SERVER)
browser_logger = get_logger(DevLogComponent.BROWSER)


def to_response(result: RouteResult) -> Response:
    """Convert a RouteResult into an HTTP response (no persistent connections)."""
    headers = dict(result.headers)
    headers["Connection"] = "close"
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type=result.media_type,
        headers=headers,
    )


def create_app(router: RequestRouter, watcher: RebuildWatcher | None = None) -> FastAPI:
    """Create the FastAPI app that serves one session through router.

    Args:
        router: Router for the running session
        watcher: Optional rebuild watcher, run for the app's lifetime

    Returns:
        FastAPI app instance
    """

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncGenerator[None, None]:
        if watcher is not None:
            watcher.start()
        try:
            yield
        finally:
            if watcher is not None:
                await watcher.stop()

    # Docs routes would shadow files in the output directory
    app = FastAPI(
        title="wasmdev",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.router = router

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    async def dispatch(request: Request) -> Response:
        path = request.url.path
        client_address = request.client.host if request.client else "unknown"

        if path not in RELOAD_PATHS:
            logger.info(f"📝 Received request for: {path}")

        try:
            result = router.resolve(path, client_address)
        except Exception as e:
            logger.exception(f"❗ Error handling request for {path}: {e}")
            return Response(
                content=f"Error: {e}",
                status_code=500,
                media_type="text/plain",
                headers={"Connection": "close"},
            )
        return to_response(result)

    return app


class DevServer:
    """Owns the listening socket and the session for one server process."""

    def __init__(
        self,
        config: DevServerConfig,
        artifact_path: Path,
        *,
        glue_script_path: Path | None = None,
        output_directory: Path | None = None,
        mode: ServeMode = ServeMode.wasm,
        guard: ProcessGuard | None = None,
    ) -> None:
        self.config: DevServerConfig = config
        self.artifact_path: Path = artifact_path
        self.glue_script_path: Path | None = glue_script_path
        self.output_directory: Path = output_directory or artifact_path.parent
        self.mode: ServeMode = mode
        self.guard: ProcessGuard = guard or ProcessGuard(config.pid_file)
        self.reload_signal: ReloadSignal = ReloadSignal()
        self.phase: ServerPhase = ServerPhase.IDLE
        self.session: ServerSession | None = None
        self.listener: socket.socket | None = None

    def start(self) -> ServerSession:
        """Run the start-up sequence and leave the server ready to accept.

        Raises:
            StartupError: If any start-up step fails; nothing is left listening
        """
        if self.phase is not ServerPhase.IDLE:
            raise RuntimeError(f"Server already {self.phase.value}")
        self.phase = ServerPhase.STARTING

        host, port = self.config.host, self.config.port
        try:
            terminated = self.guard.ensure_single_instance()
            if terminated is not None:
                console.print(f"💀 Existing server (pid {terminated}) stopped.")

            if not is_port_available(port, host, allow_reuse=True):
                raise PortUnavailableError(port, find_listeners_for_port(port))

            if not self.artifact_path.is_file():
                raise ArtifactMissingError(self.artifact_path)

            self.listener = bind_listener(host, port)
            self.guard.publish()
        except StartupError:
            if self.listener is not None:
                self.listener.close()
                self.listener = None
            self.phase = ServerPhase.TERMINATED
            raise

        self.session = ServerSession(
            process_id=os.getpid(),
            listen_port=self.listener.getsockname()[1],
            primary_artifact_path=self.artifact_path,
            glue_script_path=self.glue_script_path,
            watch_mode_enabled=self.config.watch,
            output_directory=self.output_directory,
            mode=self.mode,
        )
        self.phase = ServerPhase.LISTENING
        return self.session

    def create_app(self) -> FastAPI:
        if self.session is None:
            raise RuntimeError("Server has not been started")
        router = RequestRouter(
            self.session, self.reload_signal, AssetResolver(self.config.assets_dir)
        )
        watcher = None
        if self.session.watch_mode_enabled:
            watcher = RebuildWatcher(self.session.output_directory, self.reload_signal)
        return create_app(router, watcher)

    def serve_forever(self) -> None:
        """Accept and handle requests until the process is terminated."""
        if self.listener is None or self.phase is not ServerPhase.LISTENING:
            raise RuntimeError("Server has not been started")

        config = uvicorn.Config(
            app=self.create_app(),
            log_level="info",
            log_config=None,
            workers=1,
        )
        server = uvicorn.Server(config)
        try:
            asyncio.run(server.serve(sockets=[self.listener]))
        finally:
            self.listener.close()
            self.phase = ServerPhase.TERMINATED


def print_banner(session: ServerSession) -> None:
    """Print the start-up summary."""
    artifact = session.primary_artifact_path
    try:
        size = format_file_size(artifact.stat().st_size)
    except OSError:
        size = "unknown size"

    console.print()
    console.print("  🌀 [bold cyan]wasmdev server[/bold cyan]\n")
    console.print(f"  🚀 [bold blue]Server URL:[/bold blue] [underline cyan]{session.url}[/underline cyan]")
    console.print(f"  🔌 [bold blue]Listening on port:[/bold blue] [bold yellow]{session.listen_port}[/bold yellow]")
    console.print(f"  📦 [bold blue]Serving file:[/bold blue] [bold green]{session.primary_artifact_name}[/bold green]")
    if session.glue_script_name is not None:
        console.print(f"  📜 [bold blue]Glue script:[/bold blue] [bold green]{session.glue_script_name}[/bold green]")
    console.print(f"  💾 [bold blue]File size:[/bold blue] {size}")
    console.print(f"  🔍 [bold blue]Full path:[/bold blue] {artifact.resolve()}")
    console.print(f"  🆔 [bold blue]Server PID:[/bold blue] {session.process_id}")
    if session.watch_mode_enabled:
        console.print(f"  👀 [bold blue]Watching:[/bold blue] {session.output_directory.resolve()}")
    console.print("\n  [dim]Press Ctrl+C to stop the server[/dim]\n")


def run_dev_server(
    config: DevServerConfig,
    artifact_path: Path,
    *,
    glue_script_path: Path | None = None,
    output_directory: Path | None = None,
    mode: ServeMode = ServeMode.wasm,
) -> None:
    """Start the server, open the browser and serve until killed.

    Raises:
        StartupError: If start-up fails
    """
    server = DevServer(
        config,
        artifact_path,
        glue_script_path=glue_script_path,
        output_directory=output_directory,
        mode=mode,
    )
    session = server.start()
    print_banner(session)

    if config.open_browser:
        console.print("🌐 Opening browser...")
        if not open_browser(session.url):
            browser_logger.warning(f"❗ Failed to open browser automatically, visit {session.url}")

    server.serve_forever()
