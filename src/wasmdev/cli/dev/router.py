"""Request-to-content routing for the wasmdev server.

Rules are checked in a fixed priority order:
1. `/`                      -> entry page (client remembered in watch mode)
2. `/<artifact>`            -> the primary wasm module
3. `/<glue script>`         -> the wasm-bindgen glue script, when configured
4. `/reload`, `/reload-check` -> reload poll
5. `/assets/<name>`         -> static asset from the assets root
6. `/<anything>`            -> file under the output directory
7. generated-name fallbacks (`*_bg.wasm`, bare file name for js/css/json/wasm)
8. SPA fallback to the entry page in webapp mode, else 404
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

from wasmdev.cli.dev.assets import AssetResolver, mime_for, mime_for_path
from wasmdev.cli.dev.logging import DevLogComponent, get_logger
from wasmdev.cli.dev.pages import render_entry_page
from wasmdev.cli.dev.reload import ReloadSignal
from wasmdev.constants import (
    ASSETS_PREFIX,
    GENERATED_WASM_SUFFIX,
    NAME_FALLBACK_EXTENSIONS,
    NO_CACHE,
    NO_RELOAD,
    NOT_WATCHING,
    RELOAD,
    RELOAD_NEEDED_HEADER,
    RELOAD_PATHS,
)
from wasmdev.errors import AssetNotFoundError
from wasmdev.models import RouteKind, RouteResult, ServeMode, ServerSession

logger = get_logger(DevLogComponent.ROUTER)

HTML = "text/html"
WASM = "application/wasm"
JAVASCRIPT = "application/javascript"


class RequestRouter:
    """Turns a request path into a RouteResult for one server session."""

    def __init__(
        self,
        session: ServerSession,
        reload_signal: ReloadSignal,
        assets: AssetResolver | None = None,
    ) -> None:
        self.session: ServerSession = session
        self.reload_signal: ReloadSignal = reload_signal
        self.assets: AssetResolver = assets or AssetResolver()

    def resolve(self, path: str, client_address: str) -> RouteResult:
        if path == "/":
            return self._entry_page(client_address)

        if path == f"/{self.session.primary_artifact_name}":
            return self._serve_file(
                self.session.primary_artifact_path, WASM, RouteKind.PRIMARY_ARTIFACT
            )

        glue_name = self.session.glue_script_name
        if glue_name is not None and path == f"/{glue_name}":
            assert self.session.glue_script_path is not None
            return self._serve_file(
                self.session.glue_script_path, JAVASCRIPT, RouteKind.GLUE_SCRIPT
            )

        if path in RELOAD_PATHS:
            return self._reload_poll()

        if path.startswith(ASSETS_PREFIX):
            return self._asset(path.removeprefix(ASSETS_PREFIX))

        output_dir = self.session.output_directory
        found = self.assets.resolve_output_file(output_dir, path)
        if found is not None:
            return self._serve_file(found, mime_for_path(found), RouteKind.OUTPUT_FILE)

        fallback = self._generated_fallback(path)
        if fallback is not None:
            return fallback

        if self.session.mode is ServeMode.webapp:
            return self._entry_page(client_address, record_client=False)

        return RouteResult(
            kind=RouteKind.NOT_FOUND, status_code=404, body=b"404 Not Found"
        )

    def _entry_page(self, client_address: str, *, record_client: bool = True) -> RouteResult:
        html = render_entry_page(self.session)
        if record_client and self.session.watch_mode_enabled:
            if self.reload_signal.observe_client(client_address):
                logger.debug(f"Tracking {client_address} for reloads")
        return RouteResult(kind=RouteKind.ENTRY_PAGE, body=html.encode(), media_type=HTML)

    def _reload_poll(self) -> RouteResult:
        headers = {"Cache-Control": NO_CACHE}
        if not self.session.watch_mode_enabled:
            body = NOT_WATCHING
        elif self.reload_signal.consume():
            body = RELOAD
            headers[RELOAD_NEEDED_HEADER] = "true"
            logger.info("🔄 Sent reload signal to browser")
        else:
            body = NO_RELOAD
        return RouteResult(kind=RouteKind.RELOAD_POLL, body=body.encode(), headers=headers)

    def _asset(self, name: str) -> RouteResult:
        try:
            data = self.assets.resolve_asset(name)
        except AssetNotFoundError as e:
            return RouteResult(
                kind=RouteKind.NOT_FOUND, status_code=404, body=str(e).encode()
            )
        return RouteResult(kind=RouteKind.ASSET_FILE, body=data, media_type=mime_for_path(name))

    def _generated_fallback(self, path: str) -> RouteResult | None:
        """Find build outputs whose exact name can't be predicted from config."""
        output_dir = self.session.output_directory

        if path.endswith(GENERATED_WASM_SUFFIX):
            match = self.assets.find_by_suffix(output_dir, GENERATED_WASM_SUFFIX)
            if match is not None:
                return self._serve_file(match, WASM, RouteKind.PRIMARY_ARTIFACT)

        name = PurePosixPath(path).name
        extension = PurePosixPath(name).suffix.lstrip(".")
        if extension in NAME_FALLBACK_EXTENSIONS and ".." not in path.split("/"):
            match = self.assets.find_by_name(output_dir, name)
            if match is not None:
                return self._serve_file(match, mime_for(extension), RouteKind.OUTPUT_FILE)

        return None

    def _serve_file(self, file_path: Path, media_type: str, kind: RouteKind) -> RouteResult:
        try:
            data = file_path.read_bytes()
        except OSError as e:
            logger.error(f"❗ Error reading file {file_path}: {e}")
            return RouteResult(
                kind=kind, status_code=500, body=f"Error: {e}".encode()
            )
        logger.info(f"🔄 Serving file: {file_path.name} ({len(data)} bytes, {media_type})")
        return RouteResult(kind=kind, body=data, media_type=media_type)
