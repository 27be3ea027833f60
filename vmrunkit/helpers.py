"""Small helpers for running commands and generating identifiers."""

from __future__ import annotations

import os
import random
import stat
import subprocess

_LETTERS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def command_exit_code(error: BaseException | None) -> tuple[int, bool]:
    """Map a command error to (exit code, whether it came from a finished process).

    A process killed by a signal yields 128 plus the signal number.
    """
    if error is None:
        return 0, True
    if isinstance(error, subprocess.CalledProcessError):
        code = error.returncode
        if code < 0:
            return 128 - code, True
        return code, True
    return 1, False


def resolve_executable(path: str | os.PathLike) -> str:
    """Return the absolute path of *path* if it is a regular file executable by its owner."""
    path = os.fspath(path)
    st = os.stat(path)
    if not stat.S_ISREG(st.st_mode):
        raise ValueError(f"not a file: {path}")
    if not st.st_mode & stat.S_IXUSR:
        raise PermissionError(f"not executable by root: {path}")
    return os.path.abspath(path)


def rand_string(length: int) -> str:
    """Return a random string of digits and upper-case letters."""
    return "".join(random.choices(_LETTERS, k=length))