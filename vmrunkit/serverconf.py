"""Listening addresses of the RPC server."""

from __future__ import annotations

import ipaddress
import socket
import ssl
from dataclasses import dataclass, field

import psutil

PLAIN_PORT = 8383
TLS_PORT = 9393

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def get_iface_addrs(ifname: str) -> list[IPAddress]:
    """Return the non-link-local IP addresses of interface *ifname*."""
    all_addrs = psutil.net_if_addrs()
    if ifname not in all_addrs:
        raise LookupError(f"no such network interface: {ifname}")

    ips: list[IPAddress] = []
    for addr in all_addrs[ifname]:
        if addr.family not in (socket.AF_INET, socket.AF_INET6):
            continue
        ip = ipaddress.ip_address(addr.address.split("%", 1)[0])
        if ip.is_link_local:
            continue
        ips.append(ip)
    return ips


@dataclass
class ServerConf:
    """Where the server listens: IP addresses or interface names, plus a unix socket."""

    bindings: list[str] = field(default_factory=list)
    bind_socket: str = ""
    tls_context: ssl.SSLContext | None = None
    plain_port: int = PLAIN_PORT
    tls_port: int = TLS_PORT

    def _resolve(self) -> list[IPAddress]:
        found: dict[str, IPAddress] = {}
        for item in self.bindings:
            try:
                ip = ipaddress.ip_address(item)
            except ValueError:
                for iface_ip in get_iface_addrs(item):
                    found.setdefault(str(iface_ip), iface_ip)
            else:
                found.setdefault(item, ip)
        return list(found.values())

    def bind_addrs(self) -> list[IPAddress]:
        """Return the distinct IP addresses that the bindings resolve to."""
        return self._resolve()

    def listeners(self) -> list[socket.socket]:
        """Open a TCP listener on every bind address; TLS-wrapped if TLS is configured."""
        port = self.plain_port if self.tls_context is None else self.tls_port
        ips = self._resolve()

        opened: list[socket.socket] = []
        try:
            for ip in ips:
                family = socket.AF_INET if ip.version == 4 else socket.AF_INET6
                sock = socket.create_server((str(ip), port), family=family)
                if self.tls_context is not None:
                    try:
                        sock = self.tls_context.wrap_socket(sock, server_side=True)
                    except BaseException:
                        sock.close()
                        raise
                opened.append(sock)
        except BaseException:
            for sock in opened:
                sock.close()
            raise
        return opened