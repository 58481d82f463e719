"""Live-reload signalling for browsers that poll `/reload-check`.

The rebuild side sets a level-triggered flag; the first poll that sees it
consumes it. Browsers that never poll between two rebuilds see one reload.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import watchfiles

from wasmdev.cli.dev.logging import DevLogComponent, get_logger

logger = get_logger(DevLogComponent.RELOAD)

# Build outputs whose change means "the page is stale"
WATCHED_EXTENSIONS: tuple[str, ...] = (".wasm", ".js", ".mjs", ".html", ".css", ".json")


class ReloadSignal:
    """Shared "rebuild occurred" flag plus the clients that loaded the entry page."""

    def __init__(self) -> None:
        self._lock: threading.Lock = threading.Lock()
        self._pending: bool = False
        # dict keeps insertion order and drops duplicates
        self._clients: dict[str, None] = {}

    @property
    def pending(self) -> bool:
        """Peek at the flag without consuming it."""
        with self._lock:
            return self._pending

    def notify(self) -> None:
        """Mark that a rebuild happened. Safe to call from any thread."""
        with self._lock:
            self._pending = True

    def consume(self) -> bool:
        """Return the flag and reset it to False in one atomic step."""
        with self._lock:
            was_pending = self._pending
            self._pending = False
        return was_pending

    def observe_client(self, address: str) -> bool:
        """Remember a client address. Returns True the first time it is seen."""
        with self._lock:
            if address in self._clients:
                return False
            self._clients[address] = None
            return True

    @property
    def observed_clients(self) -> list[str]:
        with self._lock:
            return list(self._clients)


class _BuildOutputFilter(watchfiles.DefaultFilter):
    """Only react to files a browser would load."""

    def __call__(self, change: watchfiles.Change, path: str) -> bool:
        return super().__call__(change, path) and path.endswith(WATCHED_EXTENSIONS)


class RebuildWatcher:
    """Watches a build output directory and raises the reload flag on change."""

    def __init__(self, directory: Path, signal: ReloadSignal):
        self.directory: Path = directory
        self.signal: ReloadSignal = signal
        self._task: asyncio.Task[None] | None = None

    def on_changes(self, changes: set[tuple[watchfiles.Change, str]]) -> None:
        """Handle one batch of filesystem changes."""
        if not changes:
            return
        names = sorted({Path(path).name for _, path in changes})
        logger.info(f"🔄 Detected changes in {len(changes)} file(s): {', '.join(names)}")
        self.signal.notify()

    async def watch(self) -> None:
        """Watch until cancelled."""
        logger.info(f"👀 Watching {self.directory} for rebuilds")
        async for changes in watchfiles.awatch(
            self.directory, watch_filter=_BuildOutputFilter()
        ):
            self.on_changes(changes)

    def start(self) -> asyncio.Task[None]:
        """Start watching as a background task on the running loop."""
        self._task = asyncio.create_task(self.watch())
        self._task.add_done_callback(self._on_task_done)
        return self._task

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"❗ Stopped watching {self.directory}, browsers will not reload: {exc!r}"
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        if self._task.done():
            self._task = None
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
