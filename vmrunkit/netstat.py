"""TCP socket table from /proc/net, with owning processes."""

from __future__ import annotations

import ipaddress
import os
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

_HEX_RE = re.compile(r"[0-9a-fA-F]+")
_DEC_RE = re.compile(r"[0-9]+")


class SockState(IntEnum):
    """Linux TCP socket states."""

    ESTABLISHED = 1
    SYN_SENT = 2
    SYN_RECV = 3
    FIN_WAIT1 = 4
    FIN_WAIT2 = 5
    TIME_WAIT = 6
    CLOSE = 7
    CLOSE_WAIT = 8
    LAST_ACK = 9
    LISTEN = 10
    CLOSING = 11


@dataclass
class SockAddr:
    """An IP address and port."""

    ip: ipaddress.IPv4Address | ipaddress.IPv6Address
    port: int

    def __str__(self) -> str:
        ip = self.ip
        if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
            ip = ip.ipv4_mapped
        return f"{ip}:{self.port}"


@dataclass
class Process:
    """A process owning a socket."""

    pid: int
    name: str

    def __str__(self) -> str:
        return f"{self.pid}/{self.name}"


@dataclass
class SockTableEntry:
    """One row of the socket table."""

    inode: str
    local_addr: SockAddr
    remote_addr: SockAddr
    state: SockState | int = 0
    uid: int = 0
    process: Process | None = None


FilterFn = Callable[[SockTableEntry], bool]


def noop_filter(entry: SockTableEntry) -> bool:
    """Accept every table entry."""
    return isinstance(entry, SockTableEntry)


def _parse_uint(text: str, base: int, bits: int) -> int:
    pattern = _HEX_RE if base == 16 else _DEC_RE
    if not pattern.fullmatch(text):
        raise ValueError(f"invalid number: {text!r}")
    value = int(text, base)
    if value >= 1 << bits:
        raise ValueError(f"value out of range: {text!r}")
    return value


def _parse_ip(text: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    # /proc stores addresses as 32-bit words in host (little-endian) order
    words = [text[i : i + 8] for i in range(0, len(text), 8)]
    raw = b"".join(_parse_uint(word, 16, 32).to_bytes(4, "little") for word in words)
    return ipaddress.ip_address(raw)


def parse_addr(text: str) -> SockAddr:
    """Parse an ``ADDR:PORT`` field of /proc/net/tcp{,6}."""
    fields = text.split(":")
    if len(fields) < 2:
        raise ValueError(f"netstat: not enough fields: {text}")
    if len(fields[0]) not in (8, 32):
        raise ValueError(f"invalid ip:port string: {fields[0]}")
    ip = _parse_ip(fields[0])
    port = _parse_uint(fields[1], 16, 16)
    return SockAddr(ip=ip, port=port)


def _sock_state(value: int) -> SockState | int:
    try:
        return SockState(value)
    except ValueError:
        return value


def parse_sock_table(path: str, filter_fn: FilterFn = noop_filter) -> list[SockTableEntry]:
    """Parse a /proc/net/tcp-style file, keeping entries accepted by *filter_fn*."""
    entries: list[SockTableEntry] = []
    with open(path, encoding="ascii", errors="replace") as fh:
        next(fh, None)  # title line
        for line in fh:
            if line.startswith("#"):
                continue
            fields = line.split()
            if len(fields) < 12:
                raise ValueError(f"not enough fields: {len(fields)}, {fields}")

            entry = SockTableEntry(
                inode=fields[9],
                local_addr=parse_addr(fields[1]),
                remote_addr=parse_addr(fields[2]),
                state=_sock_state(_parse_uint(fields[3], 16, 8)),
                uid=_parse_uint(fields[7], 10, 32),
            )
            if filter_fn(entry):
                entries.append(entry)
    return entries


def _set_process_info(entries: list[SockTableEntry], proc_root: str = "/proc") -> None:
    by_link: dict[str, list[SockTableEntry]] = {}
    for entry in entries:
        by_link.setdefault(f"socket:[{entry.inode}]", []).append(entry)

    for name in os.listdir(proc_root):
        if not name.isdigit():
            continue
        basedir = os.path.join(proc_root, name)
        if not os.path.isdir(basedir):
            continue
        pid = int(name)
        try:
            _scan_process(pid, basedir, by_link)
        except FileNotFoundError:
            continue


def _scan_process(pid: int, basedir: str, by_link: dict[str, list[SockTableEntry]]) -> None:
    fddir = os.path.join(basedir, "fd")
    for fdname in os.listdir(fddir):
        try:
            link = os.readlink(os.path.join(fddir, fdname))
        except OSError:
            continue
        if not link.startswith("socket:["):
            continue
        for entry in by_link.get(link, ()):
            if entry.process is None:
                with open(os.path.join(basedir, "comm"), encoding="utf-8", errors="replace") as fh:
                    entry.process = Process(pid, fh.read().strip())


def _get_stat(path: str, filter_fn: FilterFn) -> list[SockTableEntry]:
    entries = parse_sock_table(path, filter_fn)
    _set_process_info(entries)
    return entries


def tcp_socks4(filter_fn: FilterFn = noop_filter) -> list[SockTableEntry]:
    """Return IPv4 TCP sockets."""
    return _get_stat("/proc/net/tcp", filter_fn)


def tcp_socks6(filter_fn: FilterFn = noop_filter) -> list[SockTableEntry]:
    """Return IPv6 TCP sockets."""
    return _get_stat("/proc/net/tcp6", filter_fn)


def tcp_socks(filter_fn: FilterFn = noop_filter) -> list[SockTableEntry]:
    """Return IPv4 and then IPv6 TCP sockets."""
    return tcp_socks4(filter_fn) + tcp_socks6(filter_fn)