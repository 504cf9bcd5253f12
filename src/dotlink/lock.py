"""Session lock preventing concurrent runs."""

import os
import shutil
import time
from pathlib import Path
from types import TracebackType
from typing import Callable

from .output import Output, get_output

# Seconds a lock directory may exist without a pid file before it is
# considered abandoned
ORPHAN_TIMEOUT = 60.0


class LockError(Exception):
    """Raised when the session lock cannot be acquired."""

    def __init__(self, message: str, pid: int | None, path: Path):
        super().__init__(message)
        self.pid = pid
        self.path = path


def is_process_alive(pid: int) -> bool:
    """Check if a process with the given pid exists.

    A reused pid reports as alive; that false negative is accepted.
    """
    try:
        os.kill(pid, 0)  # Signal 0 = check existence only
    except ProcessLookupError:
        return False
    except PermissionError:
        # Process exists but belongs to another user
        return True
    return True


class Lock:
    """Exclusive lock materialized as a directory.

    ``mkdir`` either creates the directory or fails, so exactly one caller
    wins. The holder's pid is stored inside so later callers can detect
    locks left behind by dead processes.
    """

    def __init__(
        self,
        path: Path,
        *,
        output: Output | None = None,
        is_process_alive: Callable[[int], bool] = is_process_alive,
        orphan_timeout: float = ORPHAN_TIMEOUT,
    ):
        self.path = path
        self.pid_file = path / "pid"
        self.output = output or get_output()
        self.is_process_alive = is_process_alive
        self.orphan_timeout = orphan_timeout
        self.held = False

    def acquire(self) -> None:
        """Acquire the lock.

        Raises:
            LockError: If a live process holds the lock, or a stale lock
                could not be reclaimed.
        """
        if self._try_create():
            return

        pid = self._read_owner()

        if pid is not None and not self.is_process_alive(pid):
            self._reclaim(f"Removing stale lock from PID {pid}", pid)
            return

        if pid is None and self._age() > self.orphan_timeout:
            # Holder died between mkdir and writing its pid
            self._reclaim(f"Removing lock without owner older than {self.orphan_timeout:g}s", None)
            return

        raise LockError(
            f"Bootstrap already running (PID: {pid if pid is not None else 'unknown'}, lockdir: {self.path})",
            pid,
            self.path,
        )

    def release(self) -> None:
        """Release the lock. Does nothing if this handle does not hold it."""
        if not self.held:
            return
        shutil.rmtree(self.path, ignore_errors=True)
        self.held = False

    def _reclaim(self, message: str, pid: int | None) -> None:
        self.output.warning(message)
        shutil.rmtree(self.path, ignore_errors=True)
        if self._try_create():
            return
        raise LockError(
            f"Lock reclaimed from PID {pid if pid is not None else 'unknown'} was taken by another process "
            f"(lockdir: {self.path})",
            pid,
            self.path,
        )

    def _age(self) -> float:
        try:
            return time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            return 0.0

    def _try_create(self) -> bool:
        try:
            self.path.mkdir()  # atomic
        except FileExistsError:
            return False
        self.pid_file.write_text(f"{os.getpid()}\n", encoding="utf-8")
        self.held = True
        return True

    def _read_owner(self) -> int | None:
        try:
            return int(self.pid_file.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def __enter__(self) -> "Lock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"Lock(path={self.path!r}, held={self.held})"
