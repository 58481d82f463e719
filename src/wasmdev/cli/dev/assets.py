"""Content types and file lookup for the dev server."""

from __future__ import annotations

import os
from pathlib import Path

from wasmdev.cli.dev.logging import DevLogComponent, get_logger
from wasmdev.constants import DEFAULT_ASSETS_DIR
from wasmdev.errors import AssetMissingReason, AssetNotFoundError

logger = get_logger(DevLogComponent.ASSETS)

OCTET_STREAM = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    "html": "text/html",
    "htm": "text/html",
    "js": "application/javascript",
    "mjs": "application/javascript",
    "css": "text/css",
    "json": "application/json",
    "map": "application/json",
    "wasm": "application/wasm",
    "txt": "text/plain",
    "md": "text/markdown",
    "xml": "application/xml",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "pdf": "application/pdf",
}


def mime_for(extension: str) -> str:
    """Map a file extension (with or without the dot) to a MIME type."""
    return MIME_TYPES.get(extension.lower().lstrip("."), OCTET_STREAM)


def mime_for_path(path: Path | str) -> str:
    return mime_for(Path(path).suffix)


def safe_join(root: Path, relative: str) -> Path | None:
    """Join a URL path onto root, or return None if it would escape root."""
    relative = relative.lstrip("/")
    parts = relative.replace("\\", "/").split("/")
    if ".." in parts:
        return None
    candidate = Path(os.path.normpath(root / relative))
    if not candidate.is_relative_to(Path(os.path.normpath(root))):
        return None
    return candidate


class AssetResolver:
    """Resolves static assets and build outputs on disk."""

    def __init__(self, assets_root: Path = DEFAULT_ASSETS_DIR):
        self.assets_root: Path = assets_root

    def resolve_asset(self, name: str) -> bytes:
        """Read an asset from the assets root.

        Raises:
            AssetNotFoundError: With a reason telling a missing root apart from
                a missing file. Callers answer 404 either way.
        """
        path = safe_join(self.assets_root, name) if name else None
        if path is None:
            raise AssetNotFoundError(name, AssetMissingReason.INVALID_NAME, self.assets_root)

        try:
            data = path.read_bytes()
        except OSError as e:
            reason = self._diagnose()
            logger.error(f"‼️ Error reading asset file {path}: {e} (does the file exist?)")
            if reason is AssetMissingReason.ROOT_MISSING:
                logger.error(f"❌ The assets directory {self.assets_root} doesn't exist")
            elif reason is AssetMissingReason.ROOT_NOT_A_DIRECTORY:
                logger.error(f"❌ Found '{self.assets_root}' but it's not a directory")
            else:
                logger.info("📁 The assets directory exists, but the file wasn't found")
            raise AssetNotFoundError(name, reason, self.assets_root) from e

        logger.info(f"🖼️ Serving asset: {path} ({len(data)} bytes)")
        return data

    def _diagnose(self) -> AssetMissingReason:
        if not self.assets_root.exists():
            return AssetMissingReason.ROOT_MISSING
        if not self.assets_root.is_dir():
            return AssetMissingReason.ROOT_NOT_A_DIRECTORY
        return AssetMissingReason.FILE_MISSING

    def resolve_output_file(self, output_dir: Path, relative: str) -> Path | None:
        """Return the regular file at relative under output_dir, if any."""
        path = safe_join(output_dir, relative)
        if path is None:
            logger.warning(f"Rejected path outside output directory: {relative}")
            return None
        if path.is_file():
            return path
        return None

    def find_by_suffix(self, directory: Path, suffix: str) -> Path | None:
        """First regular file in directory (sorted by name) ending with suffix."""
        for entry in self._entries(directory):
            if entry.name.endswith(suffix) and entry.is_file():
                return entry
        return None

    def find_by_name(self, directory: Path, name: str) -> Path | None:
        """Regular file in directory named exactly name."""
        if not name:
            return None
        for entry in self._entries(directory):
            if entry.name == name and entry.is_file():
                return entry
        return None

    def _entries(self, directory: Path) -> list[Path]:
        try:
            return sorted(directory.iterdir())
        except OSError:
            return []
