"""OS-level file locks serializing commits per artifact and per run.

Lock files sit next to the state they protect (``<id>.lock`` beside
``<id>.json``). Locks are advisory and held only for the read-check-write
step of a commit, so waits are short; a wait that exceeds the timeout
raises LockTimeout instead of blocking.
"""

import contextlib
import os
import sys
import time
from collections.abc import Generator
from pathlib import Path
from typing import Literal

try:
    import fcntl  # Unix file locking
except ImportError:
    fcntl = None  # type: ignore[assignment]

try:
    import msvcrt  # Windows file locking
except ImportError:
    msvcrt = None  # type: ignore[assignment]


LockMode = Literal["shared", "exclusive"]


class LockTimeout(Exception):  # noqa: N818
    """Raised when file lock acquisition times out."""

    pass


@contextlib.contextmanager
def file_lock(
    path: Path, mode: LockMode = "exclusive", timeout: float = 5.0
) -> Generator[None, None, None]:
    """
    Hold an OS-level lock on path for the duration of the context.

    Uses flock on Unix and msvcrt.locking on Windows (where shared locks
    degrade to exclusive ones). The lock file and its parent directories
    are created if missing.

    Args:
        path: Lock file path
        mode: "shared" or "exclusive"
        timeout: Maximum seconds to wait for the lock

    Raises:
        LockTimeout: If the lock cannot be acquired within timeout
        OSError: If the lock file cannot be opened

    Example:
        >>> with file_lock(state_dir / f"{artifact_id}.lock", timeout=2.0):
        ...     commit()
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "a+", encoding="utf-8") as lock_file:
        fd = lock_file.fileno()
        _acquire_lock(fd, mode, timeout)
        try:
            yield
        finally:
            _release_lock(fd)


def _backoff(start_time: float, mode: LockMode, timeout: float) -> None:
    """Sleep before the next attempt, or raise once timeout has elapsed."""
    elapsed = time.monotonic() - start_time
    if elapsed >= timeout:
        raise LockTimeout(f"Failed to acquire {mode} lock after {timeout:.1f} seconds")

    # Exponential backoff capped at 100ms, never sleeping past the deadline
    sleep_time = min(0.01 * (2 ** min(int(elapsed * 10), 10)), 0.1, timeout - elapsed)
    time.sleep(sleep_time)


def _acquire_lock(fd: int, mode: LockMode, timeout: float) -> None:
    start_time = time.monotonic()

    if sys.platform == "win32":
        _acquire_lock_windows(fd, mode, timeout, start_time)
    else:
        _acquire_lock_unix(fd, mode, timeout, start_time)


def _acquire_lock_unix(fd: int, mode: LockMode, timeout: float, start_time: float) -> None:
    """Unix/Linux/macOS locking using fcntl.flock."""
    operation = fcntl.LOCK_SH if mode == "shared" else fcntl.LOCK_EX

    while True:
        try:
            fcntl.flock(fd, operation | fcntl.LOCK_NB)
            return
        except BlockingIOError:
            _backoff(start_time, mode, timeout)


def _acquire_lock_windows(fd: int, mode: LockMode, timeout: float, start_time: float) -> None:
    """Windows locking using msvcrt.locking on the first byte."""
    while True:
        try:
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
            return
        except OSError:
            _backoff(start_time, mode, timeout)


def _release_lock(fd: int) -> None:
    # Closing the descriptor releases the lock anyway; an unlock error here
    # only means it is already gone.
    if sys.platform == "win32":
        try:
            os.lseek(fd, 0, os.SEEK_SET)
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            pass
    else:
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        except OSError:
            pass
