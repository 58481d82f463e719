"""Single-instance guard and port helpers for the wasmdev server.

Design goals:
- At most one live server per machine, tracked by a pid record file.
- A new start-up displaces a live instance with a forced kill.
- A dead instance's record never blocks start-up; it is removed on sight.
- The exiting process never cleans up its own record.
"""

from __future__ import annotations

import os
import socket
from pathlib import Path

import psutil

from wasmdev.cli.dev.logging import DevLogComponent, get_logger
from wasmdev.constants import DEFAULT_HOST, KILL_TIMEOUT, PID_FILE
from wasmdev.errors import GuardError, ListenerBindError, TerminationFailedError

logger = get_logger(DevLogComponent.PROCESS_CONTROL)


# =============================================================================
# Port Utilities
# =============================================================================


def is_port_available(
    port: int, host: str = DEFAULT_HOST, *, allow_reuse: bool = False
) -> bool:
    """Check if a port is available by claiming it for listening and releasing it.

    Purely advisory: the port can still be taken before the real bind.

    Args:
        port: Port number to check
        host: Host to bind on
        allow_reuse: If True, use SO_REUSEADDR when checking so that ports with
                    connections in TIME_WAIT (e.g. right after a killed instance)
                    count as available. A live listener still makes the check fail.

    Returns:
        True if port is available, False otherwise
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            if allow_reuse and os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(1)
    except OSError:
        return False
    return True


def find_listeners_for_port(port: int) -> list[int]:
    """Return PIDs that have a LISTEN socket bound to the port (best-effort)."""
    pids: set[int] = set()
    try:
        for conn in psutil.net_connections(kind="inet"):
            if not conn.laddr:
                continue
            if getattr(conn.laddr, "port", None) != port:
                continue
            if conn.status != psutil.CONN_LISTEN:
                continue
            if conn.pid:
                pids.add(int(conn.pid))
    except (psutil.AccessDenied, PermissionError):
        return []
    return sorted(pids)


def bind_listener(host: str, port: int) -> socket.socket:
    """Bind and listen on host:port, returning the socket for uvicorn to serve on.

    Raises:
        ListenerBindError: If the address cannot be bound
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        if os.name != "nt":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError as e:
        sock.close()
        raise ListenerBindError(host, port, e) from e
    sock.set_inheritable(True)
    return sock


# =============================================================================
# Single-Instance Guard
# =============================================================================


def is_process_alive(pid: int) -> bool:
    """Return True if pid names a running process (zombies count as dead)."""
    if pid <= 0 or not psutil.pid_exists(pid):
        return False
    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        # Exists but belongs to someone else
        return True


class ProcessGuard:
    """Keeps one server alive per machine through a persisted pid record."""

    def __init__(self, pid_file: Path = PID_FILE, *, kill_timeout: float = KILL_TIMEOUT):
        self.pid_file: Path = pid_file
        self.kill_timeout: float = kill_timeout

    def read_record(self) -> int | None:
        """Return the recorded pid, or None when there is no usable record."""
        try:
            raw = self.pid_file.read_text().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise GuardError(f"Failed to read pid record {self.pid_file}: {e}") from e
        try:
            return int(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable pid record {self.pid_file}: {raw!r}")
            return None

    def remove_record(self) -> None:
        try:
            self.pid_file.unlink(missing_ok=True)
        except OSError as e:
            raise GuardError(f"Failed to remove pid record {self.pid_file}: {e}") from e

    def publish(self, pid: int | None = None) -> None:
        """Record pid (default: this process) as the running instance."""
        pid = os.getpid() if pid is None else pid
        try:
            self.pid_file.parent.mkdir(parents=True, exist_ok=True)
            self.pid_file.write_text(str(pid))
        except OSError as e:
            raise GuardError(f"Failed to write pid record {self.pid_file}: {e}") from e
        logger.debug(f"Published pid {pid} to {self.pid_file}")

    def ensure_single_instance(self) -> int | None:
        """Stop a live prior instance and clear its record.

        Returns:
            The pid that was terminated, or None if no live instance was found

        Raises:
            TerminationFailedError: If the recorded process could not be killed
            GuardError: If the record cannot be read or removed
        """
        if not self.pid_file.exists():
            return None

        pid = self.read_record()
        if pid is None or pid == os.getpid() or not is_process_alive(pid):
            logger.debug(f"Removing stale pid record {self.pid_file} (pid={pid})")
            self.remove_record()
            return None

        self._kill(pid)
        self.remove_record()
        logger.info(f"💀 Existing server (pid {pid}) terminated")
        return pid

    def stop_existing(self) -> int | None:
        """Stop whatever instance the record names. Used by `wasmdev stop`."""
        return self.ensure_single_instance()

    def _kill(self, pid: int) -> None:
        try:
            proc = psutil.Process(pid)
            proc.kill()
        except psutil.NoSuchProcess:
            return
        except psutil.AccessDenied as e:
            raise TerminationFailedError(pid, f"access denied ({e})") from e

        _, alive = psutil.wait_procs([proc], timeout=self.kill_timeout)
        if alive and is_process_alive(pid):
            raise TerminationFailedError(
                pid, f"process still alive {self.kill_timeout:.1f}s after SIGKILL"
            )
