"""PCI addresses in the [domain:]bus:device.function form."""

from __future__ import annotations

import re
from dataclasses import dataclass

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def _parse_hex(text: str, bits: int) -> int:
    if not _HEX_RE.fullmatch(text):
        raise ValueError(f"invalid hexadecimal number: {text!r}")
    value = int(text, 16)
    if value >= 1 << bits:
        raise ValueError(f"value out of range: {text!r}")
    return value


@dataclass(frozen=True)
class PciAddress:
    """A PCI device address."""

    domain: int = 0
    bus: int = 0
    device: int = 0
    function: int = 0

    @classmethod
    def from_hex(cls, text: str) -> "PciAddress":
        """Parse an address such as ``0000:03:00.1`` or ``03:00.1``."""
        parts = text.split(":")
        if len(parts) == 3:
            domain_text = parts[0].strip()
            domain = _parse_hex(domain_text, 16) if domain_text else 0
            parts = parts[1:]
        elif len(parts) == 2:
            domain = 0
        else:
            raise ValueError(
                f"bad pci address format: want '[domain:]bus:device.function', given '{text}'"
            )

        bus = _parse_hex(parts[0], 8)

        function = 0
        slot = parts[1].split(".")
        if len(slot) == 2:
            function = _parse_hex(slot[1], 8)
            if function > 7:
                raise ValueError("a function cannot be a number larger than 0x7")
        elif len(slot) != 1:
            raise ValueError(
                f"bad pci address format: want '[domain:]bus:device.function', given '{text}'"
            )
        device = _parse_hex(slot[0], 8)
        if device > 31:
            raise ValueError("a slot cannot be a number larger than 0x1f")

        return cls(domain=domain, bus=bus, device=device, function=function)

    def __str__(self) -> str:
        return f"{self.domain:04x}:{self.bus:02x}:{self.device:02x}.{self.function:x}"

    def prefix(self) -> str:
        """Return the address without the function part."""
        return f"{self.domain:04x}:{self.bus:02x}:{self.device:02x}"