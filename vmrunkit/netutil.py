"""Network helpers: link IDs, address parsing and routing tables."""

from __future__ import annotations

import hashlib
import ipaddress

RT_TABLES = "/etc/iproute2/rt_tables"


def get_link_id(linkname: str, linkindex: int) -> int:
    """Return a stable ID between 200 and 64999 derived from the link name and index."""
    digest = hashlib.md5(f"{linkname}:{linkindex}".encode()).digest()
    return int.from_bytes(digest, "big") % 64800 + 200


def parse_ip_net(text: str) -> ipaddress.IPv4Interface | ipaddress.IPv6Interface:
    """Parse an address with optional prefix; a bare address gets a host prefix."""
    if "/" not in text:
        try:
            is_v4 = ipaddress.ip_address(text).version == 4
        except ValueError:
            is_v4 = False
        text += "/32" if is_v4 else "/128"
    return ipaddress.ip_interface(text)


def get_route_table_index(table: str, path: str = RT_TABLES) -> int:
    """Return the number of routing table *table* from an rt_tables file."""
    with open(path, encoding="utf-8") as fh:
        for raw in fh:
            line = raw.strip()
            if line.startswith("#"):
                continue
            fields = line.split()
            if len(fields) == 2 and fields[1].lower() == table:
                return int(fields[0])
    raise LookupError(f"table not found: {table}")