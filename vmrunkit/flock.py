"""Exclusive advisory file locking built on flock(2)."""

from __future__ import annotations

import fcntl
import os
import time

_RETRY_INTERVAL = 1.0


class AcquireLockError(TimeoutError):
    """Raised when a lock cannot be obtained within the given timeout."""

    def __init__(self, message: str = "could not acquire lock") -> None:
        super().__init__(message)


class FileLocker:
    """Holds an exclusive lock on a file; the file is created (truncated) on open."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = os.fspath(path)
        self._fd: int | None = os.open(self.path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, 0o666)

    def acquire(self, timeout: float) -> None:
        """Take the exclusive lock, retrying once per second until *timeout* seconds pass."""
        if self._fd is None:
            raise ValueError("locker is already released")
        deadline = time.monotonic() + timeout
        while True:
            try:
                fcntl.flock(self._fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except OSError:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise AcquireLockError() from None
                time.sleep(min(_RETRY_INTERVAL, remaining))

    def release(self) -> None:
        """Release the lock by closing the underlying file."""
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "FileLocker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()