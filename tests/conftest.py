from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from wasmdev.cli.dev.assets import AssetResolver
from wasmdev.cli.dev.reload import ReloadSignal
from wasmdev.cli.dev.router import RequestRouter
from wasmdev.models import ServeMode, ServerSession

WASM_BYTES = b"\x00asm\x01\x00\x00\x00\x01\x02"


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    (out / "app.wasm").write_bytes(WASM_BYTES)
    return out


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    assets = tmp_path / "assets"
    assets.mkdir()
    (assets / "logo.png").write_bytes(b"\x89PNG fake")
    (assets / "style.css").write_text("body { color: red; }")
    return assets


@pytest.fixture
def make_session(output_dir: Path) -> Callable[..., ServerSession]:
    def factory(
        *,
        artifact: str = "app.wasm",
        glue: str | None = None,
        watch: bool = False,
        mode: ServeMode = ServeMode.wasm,
    ) -> ServerSession:
        return ServerSession(
            process_id=1234,
            listen_port=8420,
            primary_artifact_path=output_dir / artifact,
            glue_script_path=output_dir / glue if glue else None,
            watch_mode_enabled=watch,
            output_directory=output_dir,
            mode=mode,
        )

    return factory


@pytest.fixture
def make_router(
    make_session: Callable[..., ServerSession], assets_dir: Path
) -> Callable[..., RequestRouter]:
    def factory(**kwargs: object) -> RequestRouter:
        return RequestRouter(make_session(**kwargs), ReloadSignal(), AssetResolver(assets_dir))

    return factory
