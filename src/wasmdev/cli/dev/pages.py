"""Entry page rendering (jinja2 templates shipped in `wasmdev/templates`)."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

import jinja2

from wasmdev.constants import RELOAD_CHECK_PATH, RELOAD_NEEDED_HEADER
from wasmdev.models import ServeMode, ServerSession

RELOAD_POLL_INTERVAL_MS = 1000

_env: jinja2.Environment | None = None


def get_jinja2_env() -> jinja2.Environment:
    global _env
    if _env is None:
        templates_dir: Path = Path(str(resources.files("wasmdev"))).joinpath("templates")
        _env = jinja2.Environment(loader=jinja2.FileSystemLoader(templates_dir))
    return _env


def render_reload_script() -> str:
    template = get_jinja2_env().get_template("reload.html.jinja2")
    return template.render(
        reload_url=RELOAD_CHECK_PATH,
        reload_header=RELOAD_NEEDED_HEADER,
        interval_ms=RELOAD_POLL_INTERVAL_MS,
    )


def inject_reload_script(html: str) -> str:
    """Insert the poll script before </body>, or append it if there is none."""
    script = render_reload_script()
    marker = html.lower().rfind("</body>")
    if marker == -1:
        return html + script
    return html[:marker] + script + html[marker:]


def render_entry_page(session: ServerSession) -> str:
    """Build the HTML served at `/` for a session."""
    html: str | None = None

    if session.mode is ServeMode.webapp:
        index = session.output_directory / "index.html"
        if index.is_file():
            # Build tools don't always emit UTF-8; a bad byte must not fail `/`
            html = index.read_bytes().decode("utf-8", errors="replace")

    if html is None:
        env = get_jinja2_env()
        wasm_filename = session.primary_artifact_name
        if session.glue_script_name is not None:
            html = env.get_template("bindgen.html.jinja2").render(
                wasm_filename=wasm_filename,
                wasm_url=f"./{wasm_filename}",
                js_filename=session.glue_script_name,
                js_url=f"./{session.glue_script_name}",
            )
        else:
            html = env.get_template("index.html.jinja2").render(
                wasm_filename=wasm_filename,
                wasm_url=f"./{wasm_filename}",
            )

    if session.watch_mode_enabled:
        html = inject_reload_script(html)
    return html
