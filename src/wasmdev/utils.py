import logging
import shutil
import time
import webbrowser
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.status import Status
from typing_extensions import override

# legacy_windows=False keeps emoji output working on Windows terminals
console = Console(legacy_windows=False)


def format_elapsed_ms(started: float) -> str:
    """Elapsed time since a perf_counter() reading, e.g. `840ms` or `2s 15ms`."""
    elapsed_ms = int((time.perf_counter() - started) * 1000)
    seconds, ms = divmod(elapsed_ms, 1000)
    return f"{seconds}s {ms}ms" if seconds else f"{ms}ms"


@contextmanager
def progress_spinner(description: str, success_message: str) -> Iterator[None]:
    """Show a spinner while the block runs, then print success_message with timing.

    Nothing is printed when the block raises.
    """
    started = time.perf_counter()
    with Status(description, console=console):
        yield
    console.print(f"{success_message} ({format_elapsed_ms(started)})")


def format_file_size(num_bytes: int) -> str:
    """Format a byte count the way the start-up banner shows it."""
    if num_bytes < 1024:
        return f"{num_bytes} bytes"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"


class PrefixedLogHandler(logging.Handler):
    """Writes records to the console as `time | [component] | message` lines.

    Warnings and errors override the component colour.
    """

    def __init__(self, prefix: str, color: str, width: int = 10):
        super().__init__()
        self.prefix: str = escape(prefix).ljust(width)
        self.color: str = color

    def _color_for(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR:
            return "red"
        if record.levelno >= logging.WARNING:
            return "yellow"
        return self.color

    @override
    def emit(self, record: logging.LogRecord) -> None:
        try:
            stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
            color = self._color_for(record)
            for line in self.format(record).splitlines() or [""]:
                console.print(f"[dim]{stamp}[/dim] | [{color}]{self.prefix}[/] | {escape(line)}")
        except Exception:
            self.handleError(record)


def is_cargo_installed(cargo: str = "cargo") -> bool:
    """Check if cargo (a command name or a path) can be executed."""
    return shutil.which(cargo) is not None


def open_browser(url: str) -> bool:
    """Open the default browser. Returns False instead of raising on failure."""
    try:
        return webbrowser.open(url)
    except webbrowser.Error:
        return False
