"""Commands that start and stop the wasmdev server."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

from rich.markup import escape
from typer import Argument, Exit, Option

from wasmdev.cli.dev.logging import configure_dev_logging
from wasmdev.cli.dev.process_control import ProcessGuard
from wasmdev.cli.dev.server import run_dev_server
from wasmdev.constants import (
    DEFAULT_ASSETS_DIR,
    DEFAULT_HOST,
    DEFAULT_PORT,
    GENERATED_WASM_SUFFIX,
    PID_FILE,
    PID_FILE_ENV,
)
from wasmdev.errors import ArtifactMissingError, StartupError
from wasmdev.models import DevServerConfig, ServeMode
from wasmdev.utils import console


def discover_artifacts(
    path: Path, glue: Path | None = None, *, recursive: bool = False
) -> tuple[Path, Path | None]:
    """Find the wasm module (and wasm-bindgen glue script) to serve.

    A directory is searched for `.wasm` files, preferring `*_bg.wasm`. A glue
    script is picked up from `<crate>.js` next to `<crate>_bg.wasm` unless one
    is given explicitly.

    Raises:
        ArtifactMissingError: If a directory holds no `.wasm` file
    """
    wasm_path = path
    if path.is_dir():
        candidates = sorted(path.rglob("*.wasm") if recursive else path.glob("*.wasm"))
        if not candidates:
            raise ArtifactMissingError(path / "*.wasm")
        generated = [c for c in candidates if c.name.endswith(GENERATED_WASM_SUFFIX)]
        wasm_path = (generated or candidates)[0]

    if glue is None and wasm_path.name.endswith(GENERATED_WASM_SUFFIX):
        stem = wasm_path.name.removesuffix(GENERATED_WASM_SUFFIX)
        candidate = wasm_path.parent / f"{stem}.js"
        if candidate.is_file():
            glue = candidate

    return wasm_path, glue


def _run(
    config: DevServerConfig,
    artifact: Path,
    glue: Path | None,
    output_directory: Path | None,
    mode: ServeMode,
) -> None:
    try:
        run_dev_server(
            config,
            artifact,
            glue_script_path=glue,
            output_directory=output_directory,
            mode=mode,
        )
    except StartupError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise Exit(code=1)


def serve(
    path: Annotated[
        Path,
        Argument(help="Path to a .wasm file, or a directory containing one"),
    ],
    js: Annotated[
        Path | None,
        Option("--js", help="Glue script generated alongside the module (wasm-bindgen)"),
    ] = None,
    port: Annotated[int, Option("--port", "-p", help="Port to listen on")] = DEFAULT_PORT,
    host: Annotated[str, Option(help="Host to bind")] = DEFAULT_HOST,
    watch: Annotated[
        bool,
        Option("--watch", "-w", help="Reload the browser when the build output changes"),
    ] = False,
    browser: Annotated[
        bool, Option("--browser/--no-browser", help="Open the default browser")
    ] = True,
    pid_file: Annotated[
        Path, Option(envvar=PID_FILE_ENV, help="Where the running server's pid is kept")
    ] = PID_FILE,
    assets_dir: Annotated[
        Path, Option(help="Directory served under /assets/")
    ] = DEFAULT_ASSETS_DIR,
) -> None:
    """Serve a WebAssembly module in the browser."""
    configure_dev_logging()
    config = DevServerConfig(
        host=host,
        port=port,
        watch=watch,
        open_browser=browser,
        pid_file=pid_file,
        assets_dir=assets_dir,
    )
    try:
        artifact, glue = discover_artifacts(path, js)
    except ArtifactMissingError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise Exit(code=1)

    _run(config, artifact, glue, artifact.parent, ServeMode.wasm)


def webapp(
    output_dir: Annotated[
        Path,
        Argument(help="Build output directory of the web application"),
    ],
    port: Annotated[int, Option("--port", "-p", help="Port to listen on")] = DEFAULT_PORT,
    host: Annotated[str, Option(help="Host to bind")] = DEFAULT_HOST,
    watch: Annotated[
        bool,
        Option("--watch", "-w", help="Reload the browser when the build output changes"),
    ] = False,
    browser: Annotated[
        bool, Option("--browser/--no-browser", help="Open the default browser")
    ] = True,
    pid_file: Annotated[
        Path, Option(envvar=PID_FILE_ENV, help="Where the running server's pid is kept")
    ] = PID_FILE,
    assets_dir: Annotated[
        Path, Option(help="Directory served under /assets/")
    ] = DEFAULT_ASSETS_DIR,
) -> None:
    """Serve a single-page web application built to WebAssembly."""
    if not output_dir.is_dir():
        console.print(f"[red]❌ Output directory not found: {escape(str(output_dir))}[/red]")
        raise Exit(code=1)

    configure_dev_logging()
    config = DevServerConfig(
        host=host,
        port=port,
        watch=watch,
        open_browser=browser,
        pid_file=pid_file,
        assets_dir=assets_dir,
    )
    try:
        artifact, glue = discover_artifacts(output_dir, recursive=True)
    except ArtifactMissingError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise Exit(code=1)

    _run(config, artifact, glue, output_dir, ServeMode.webapp)


def stop(
    pid_file: Annotated[
        Path, Option(envvar=PID_FILE_ENV, help="Where the running server's pid is kept")
    ] = PID_FILE,
) -> None:
    """Stop the running wasmdev server."""
    try:
        pid = ProcessGuard(pid_file).stop_existing()
    except StartupError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise Exit(code=1)

    if pid is None:
        console.print("[yellow]⚠️  No wasmdev server is running[/yellow]")
    else:
        console.print(f"[green]💀 Stopped wasmdev server (pid {pid})[/green]")
