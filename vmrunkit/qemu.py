"""Queries against the QEMU binary."""

from __future__ import annotations

import os
import subprocess

BINARY = "/usr/bin/qemu-system-x86_64"


def default_machine_type(binary: str = BINARY) -> str:
    """Return the machine type QEMU marks as the default."""
    if not os.path.exists(binary):
        raise FileNotFoundError(f"qemu binary not found: {binary}")

    result = subprocess.run([binary, "-M", "help"], stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    output = result.stdout.decode("utf-8", errors="replace")
    if result.returncode != 0:
        raise RuntimeError(output)

    for line in output.split("\n"):
        if line.endswith("(default)"):
            return line.split()[0]

    raise RuntimeError("cannot determine default qemu machine type")