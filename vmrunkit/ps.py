"""Process information read from /proc."""

from __future__ import annotations

import os
from datetime import datetime, timedelta

SC_CLK_TCK = 100


def _proc_file(pid: int, name: str) -> str:
    return os.path.join("/proc", str(pid), name)


def get_cmdline(pid: int) -> list[str]:
    """Return the command line arguments of process *pid*."""
    with open(_proc_file(pid, "cmdline"), "rb") as fh:
        raw = fh.read()
    return [arg for arg in raw.decode("utf-8", errors="replace").split("\0") if arg]


def get_life_time(pid: int) -> timedelta:
    """Return how long process *pid* has been running, in whole seconds."""
    with open("/proc/uptime", encoding="ascii") as fh:
        uptime = int(float(fh.read().split()[0]))

    with open(_proc_file(pid, "stat"), encoding="utf-8", errors="replace") as fh:
        data = fh.read()
    # The command name may hold spaces, so count fields after its closing parenthesis
    fields = data[data.rindex(")") + 1 :].split()
    start_ticks = int(fields[19])

    return timedelta(seconds=uptime - start_ticks // SC_CLK_TCK)


def get_create_time(pid: int) -> datetime:
    """Return when process *pid* was started."""
    return datetime.now() - get_life_time(pid)