"""Address arithmetic on IP networks."""

from __future__ import annotations

import ipaddress
from typing import Union

NetworkLike = Union[
    str,
    ipaddress.IPv4Interface,
    ipaddress.IPv6Interface,
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
]


def _split(network: NetworkLike):
    if isinstance(network, str):
        network = ipaddress.ip_interface(network)
    if isinstance(network, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        return network.ip, network.network.prefixlen
    if isinstance(network, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return network.network_address, network.prefixlen
    raise TypeError(f"unsupported network value: {network!r}")


def get_last_ipv4(network: NetworkLike) -> ipaddress.IPv4Address:
    """Return the last address of an IPv4 network (host bits all set)."""
    ip, prefix = _split(network)
    if ip.version != 4:
        raise ValueError("not an IPv4 address")
    return ipaddress.IPv4Address(int(ip) | ((1 << (32 - prefix)) - 1))


def get_last_ipv6(network: NetworkLike) -> ipaddress.IPv6Address:
    """Return the last address of an IPv6 network (host bits all set)."""
    ip, prefix = _split(network)
    if ip.version != 6 or ip.ipv4_mapped is not None:
        raise ValueError("not an IPv6 address")
    return ipaddress.IPv6Address(int(ip) | ((1 << (128 - prefix)) - 1))