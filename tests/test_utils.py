"""Tests for console helpers."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from wasmdev.utils import (
    PrefixedLogHandler,
    format_elapsed_ms,
    format_file_size,
    is_cargo_installed,
    progress_spinner,
)


def _record(msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("wasmdev.dev.server", level, __file__, 1, msg, None, None)


class TestFormatting:
    """Tests for elapsed-time and size formatting."""

    @pytest.mark.parametrize(
        ("elapsed", "expected"), [(0.25, "250ms"), (2.5, "2s 500ms"), (0.0, "0ms")]
    )
    def test_format_elapsed_ms(self, elapsed: float, expected: str) -> None:
        with patch("wasmdev.utils.time.perf_counter", return_value=100.0 + elapsed):
            assert format_elapsed_ms(100.0) == expected

    def test_format_file_size(self) -> None:
        assert format_file_size(10) == "10 bytes"
        assert format_file_size(2048) == "2.00 KB"
        assert format_file_size(3 * 1024 * 1024) == "3.00 MB"


class TestPrefixedLogHandler:
    """Tests for PrefixedLogHandler."""

    def test_one_line_per_message_line(self) -> None:
        handler = PrefixedLogHandler("[router]", "cyan", width=12)
        with patch("wasmdev.utils.console") as mock_console:
            handler.emit(_record("first\nsecond"))

        lines = [c[0][0] for c in mock_console.print.call_args_list]
        assert len(lines) == 2
        assert all("[cyan]" in line and "router" in line for line in lines)
        assert lines[0].endswith("first")
        assert lines[1].endswith("second")

    @pytest.mark.parametrize(
        ("level", "color"), [(logging.WARNING, "yellow"), (logging.ERROR, "red")]
    )
    def test_level_overrides_color(self, level: int, color: str) -> None:
        handler = PrefixedLogHandler("[server]", "cyan")
        with patch("wasmdev.utils.console") as mock_console:
            handler.emit(_record("careful", level))
        assert f"[{color}]" in mock_console.print.call_args[0][0]

    def test_markup_in_message_is_escaped(self) -> None:
        handler = PrefixedLogHandler("[server]", "cyan")
        with patch("wasmdev.utils.console") as mock_console:
            handler.emit(_record("path [bold]x[/bold]"))
        assert "\\[bold]" in mock_console.print.call_args[0][0]


class TestProgressSpinner:
    """Tests for progress_spinner."""

    def test_success_message_after_block(self) -> None:
        with patch("wasmdev.utils.console") as mock_console, patch("wasmdev.utils.Status"):
            with progress_spinner("working", "✅ done"):
                pass
        assert mock_console.print.call_args[0][0].startswith("✅ done (")

    def test_nothing_printed_on_error(self) -> None:
        with patch("wasmdev.utils.console") as mock_console, patch("wasmdev.utils.Status"):
            with pytest.raises(RuntimeError):
                with progress_spinner("working", "✅ done"):
                    raise RuntimeError("boom")
        mock_console.print.assert_not_called()


def test_is_cargo_installed_checks_given_path(tmp_path) -> None:
    assert is_cargo_installed(str(tmp_path / "missing-cargo")) is False
