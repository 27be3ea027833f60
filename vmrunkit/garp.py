"""Gratuitous ARP announcements over a raw packet socket."""

from __future__ import annotations

import ipaddress
import socket
import struct
import threading
from dataclasses import dataclass

import psutil

ARPOP_REQUEST = 1
ARPOP_REPLY = 2
ETH_TYPE_IPV4 = 0x0800
ETH_P_ARP = 0x0806
ARPHRD_ETHER = 1

ETHERNET_BROADCAST = b"\xff" * 6
IPV4_BROADCAST = ipaddress.IPv4Address("255.255.255.255")

_SO_BINDTODEVICE = getattr(socket, "SO_BINDTODEVICE", 25)
_HEADER = struct.Struct("!HHBBH")


def _hwaddr_bytes(hwaddr: bytes | str) -> bytes:
    if isinstance(hwaddr, (bytes, bytearray)):
        return bytes(hwaddr)
    try:
        return bytes.fromhex(hwaddr.replace(":", "").replace("-", ""))
    except ValueError:
        raise ValueError(f"not an Ethernet MAC-address: {hwaddr!r}") from None


@dataclass(frozen=True)
class ArpMessage:
    """An ARP message for Ethernet hardware and IPv4 protocol addresses."""

    hardware_type: int
    protocol_type: int
    hardware_addr_length: int
    protocol_addr_length: int
    operation: int
    sender_hardware_addr: bytes
    sender_protocol_addr: ipaddress.IPv4Address
    target_hardware_addr: bytes
    target_protocol_addr: ipaddress.IPv4Address

    @classmethod
    def gratuitous(
        cls, ip: str | ipaddress.IPv4Address | ipaddress.IPv6Address, hwaddr: bytes | str
    ) -> "ArpMessage":
        """Build a gratuitous ARP reply announcing *ip* at *hwaddr*."""
        addr = ipaddress.ip_address(ip) if isinstance(ip, str) else ip
        if isinstance(addr, ipaddress.IPv6Address):
            mapped = addr.ipv4_mapped
            if mapped is None:
                raise ValueError(f"not an IPv4 address: {str(addr)!r}")
            addr = mapped
        hw = _hwaddr_bytes(hwaddr)
        if len(hw) != 6:
            raise ValueError(f"not an Ethernet MAC-address: {hwaddr!r}")
        return cls(
            hardware_type=ARPHRD_ETHER,
            protocol_type=ETH_TYPE_IPV4,
            hardware_addr_length=len(hw),
            protocol_addr_length=4,
            operation=ARPOP_REPLY,
            sender_hardware_addr=hw,
            sender_protocol_addr=addr,
            target_hardware_addr=ETHERNET_BROADCAST,
            target_protocol_addr=IPV4_BROADCAST,
        )

    def to_bytes(self) -> bytes:
        """Return the wire representation of the message."""
        header = _HEADER.pack(
            self.hardware_type,
            self.protocol_type,
            self.hardware_addr_length,
            self.protocol_addr_length,
            self.operation,
        )
        return b"".join(
            (
                header,
                self.sender_hardware_addr,
                self.sender_protocol_addr.packed,
                self.target_hardware_addr,
                self.target_protocol_addr.packed,
            )
        )


def _iface_hwaddr(ifname: str) -> str:
    for addr in psutil.net_if_addrs().get(ifname, ()):
        if addr.family == psutil.AF_LINK:
            return addr.address
    return ""


def send(
    ifname: str,
    ipstr: str,
    count: int = 10,
    interval: float = 1.0,
    stop_event: threading.Event | None = None,
) -> None:
    """Send a gratuitous ARP through *ifname* *count* times, *interval* seconds apart.

    Sending stops early once *stop_event* is set.
    """
    socket.if_nametoindex(ifname)  # raises OSError for an unknown interface
    hwaddr = _iface_hwaddr(ifname)

    try:
        ip = ipaddress.ip_address(ipstr)
    except ValueError:
        raise ValueError(f"invalid IP address: {ipstr}") from None

    msg = ArpMessage.gratuitous(ip, hwaddr)
    payload = msg.to_bytes()
    stop = stop_event if stop_event is not None else threading.Event()

    try:
        sock = socket.socket(socket.AF_PACKET, socket.SOCK_DGRAM, socket.htons(ETH_P_ARP))
    except OSError as err:
        raise OSError(err.errno, f"failed to create raw socket: {err.strerror}") from err

    with sock:
        try:
            sock.setsockopt(socket.SOL_SOCKET, _SO_BINDTODEVICE, ifname.encode())
        except OSError as err:
            raise OSError(err.errno, f"failed to bind to device: {err.strerror}") from err

        link_addr = (ifname, ETH_P_ARP, socket.PACKET_HOST, msg.hardware_type, msg.target_hardware_addr)
        try:
            sock.bind(link_addr)
        except OSError as err:
            raise OSError(err.errno, f"failed to bind: {err.strerror}") from err

        for _ in range(count):
            if stop.wait(interval):
                return
            try:
                sock.sendto(payload, link_addr)
            except OSError as err:
                raise OSError(err.errno, f"failed to send: {err.strerror}") from err