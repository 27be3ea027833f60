"""PCI devices as seen through sysfs."""

from __future__ import annotations

import os
import re
import threading
from dataclasses import dataclass, field
from typing import Iterable

from .pciaddr import PciAddress
from .pciids import PciIdsDB, default_db

DEFAULT_SYSFS_ROOT = "/sys/bus/pci"

_SUPPLIER_PREFIX = "supplier:pci:"
_CONSUMER_PREFIX = "consumer:pci:"
_HEADER_TYPE_OFFSET = 0x0E
_MULTIFUNCTION_BIT = 0x80
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


class PciDeviceNotFoundError(LookupError):
    """Raised when a PCI device does not exist."""

    def __init__(self, hexaddr: str) -> None:
        super().__init__(f"PCI device not found: {hexaddr}")
        self.hexaddr = hexaddr


@dataclass(eq=False)
class PciDevice:
    """A PCI device with its IDs, names, driver and function relations."""

    addr: PciAddress
    sysfs_root: str = DEFAULT_SYSFS_ROOT
    parent: "PciDevice | None" = field(default=None, repr=False)
    subdevices: list["PciDevice"] = field(default_factory=list, repr=False)
    driver: str = ""
    enabled: bool = False
    class_id: int = 0
    vendor_id: int = 0
    device_id: int = 0
    class_name: str = ""
    subclass_name: str = ""
    vendor_name: str = ""
    device_name: str = ""
    multifunction: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __str__(self) -> str:
        return str(self.addr)

    def full_path(self) -> str:
        """Return the device's sysfs directory."""
        return os.path.join(self.sysfs_root, "devices", str(self.addr))

    def vendor_hex(self) -> str:
        return f"0x{self.vendor_id:04x}"

    def device_hex(self) -> str:
        return f"0x{self.device_id:04x}"

    def class_hex(self) -> str:
        return f"0x{self.class_id:06x}"

    def _unbind(self) -> None:
        try:
            with open(os.path.join(self.full_path(), "driver", "unbind"), "w") as fh:
                fh.write(str(self))
        except OSError as err:
            raise OSError(f"failed to unbind: {err}") from err

    def assign_driver(self, name: str) -> None:
        """Rebind the device to the driver *name*."""
        with self._lock:
            name = name.strip()
            if not name:
                raise ValueError("empty driver name")
            if self.driver == name:
                return

            if self.driver:
                self._unbind()

            new_id = os.path.join(self.sysfs_root, "drivers", name, "new_id")
            try:
                with open(new_id, "w") as fh:
                    fh.write(f"{self.vendor_hex()} {self.device_hex()}\n")
            except FileNotFoundError as err:
                raise RuntimeError(f"failed to assign driver: is {name} loaded?") from err
            except OSError as err:
                raise RuntimeError(f"failed to assign driver: {err}") from err

            try:
                self.driver = _current_driver(self.full_path())
            except OSError as err:
                raise RuntimeError(f"cannot check the new driver: {err}") from err

            if self.driver != name:
                raise RuntimeError("failed to assign driver: run 'dmesg' for more details")

    def unbind_driver(self) -> None:
        """Detach the device from its current driver, if any."""
        with self._lock:
            if self.driver:
                self._unbind()


def _current_driver(path: str) -> str:
    try:
        return os.path.basename(os.path.realpath(os.path.join(path, "driver"), strict=True))
    except FileNotFoundError:
        return ""


def _read_string(dirname: str, fname: str) -> str:
    with open(os.path.join(dirname, fname), encoding="ascii", errors="replace") as fh:
        return fh.read().strip()


def _read_hex(dirname: str, fname: str, bits: int) -> int:
    text = _read_string(dirname, fname)
    if text.startswith("0x"):
        text = text[2:]
    if not _HEX_RE.fullmatch(text):
        raise ValueError(f"invalid hexadecimal number in {fname}: {text!r}")
    value = int(text, 16)
    if value >= 1 << bits:
        raise ValueError(f"value out of range in {fname}: {text!r}")
    return value


def _lookup(
    hexaddr: str, sysfs_root: str, db: PciIdsDB, nested: Iterable[PciDevice] = ()
) -> PciDevice:
    nested = list(nested)
    dev = PciDevice(addr=PciAddress.from_hex(hexaddr), sysfs_root=sysfs_root)
    path = dev.full_path()

    with open(os.path.join(path, "config"), "rb") as fh:
        config = fh.read(64)
    if len(config) <= _HEADER_TYPE_OFFSET:
        raise ValueError(f"config space is too short: {path}")
    # Function 0 of a multifunction device has bit 7 of the Header Type register set
    dev.multifunction = (config[_HEADER_TYPE_OFFSET] & _MULTIFUNCTION_BIT) == _MULTIFUNCTION_BIT

    dev.enabled = _read_string(path, "enable") == "1"

    dev.class_id = _read_hex(path, "class", 32)
    found_class = db.find_class(dev.class_hex())
    if found_class is not None:
        dev.class_name = found_class.name
        for sub in found_class.subclasses:
            dev.subclass_name = sub.name

    dev.vendor_id = _read_hex(path, "vendor", 16)
    vendor = db.find_vendor(dev.vendor_hex())
    if vendor is not None:
        dev.vendor_name = vendor.name

    dev.device_id = _read_hex(path, "device", 16)
    product = db.find_product(dev.vendor_hex(), dev.device_hex())
    if product is not None:
        dev.device_name = product.name

    dev.driver = _current_driver(path)

    if dev.addr.function == 0 and dev.multifunction:
        for name in sorted(os.listdir(path)):
            if not name.startswith(_CONSUMER_PREFIX):
                continue
            sub_addr = name[len(_CONSUMER_PREFIX):]
            known = [v for v in nested if str(v) == sub_addr]
            if known:
                dev.subdevices.extend(known)
            else:
                sub = _lookup(sub_addr, sysfs_root, db)
                sub.parent = dev
                dev.subdevices.append(sub)

    return dev


def lookup_device(
    hexaddr: str, sysfs_root: str = DEFAULT_SYSFS_ROOT, db: PciIdsDB | None = None
) -> PciDevice:
    """Read the device at *hexaddr*, with its parent or its other functions."""
    if db is None:
        db = default_db()
    try:
        dev = _lookup(hexaddr, sysfs_root, db)
        if dev.addr.function > 0:
            for name in sorted(os.listdir(dev.full_path())):
                if name.startswith(_SUPPLIER_PREFIX):
                    dev.parent = _lookup(name[len(_SUPPLIER_PREFIX):], sysfs_root, db, (dev,))
    except FileNotFoundError as err:
        raise PciDeviceNotFoundError(hexaddr) from err
    except OSError as err:
        raise OSError(f"read error (device: {hexaddr}): {err}") from err
    except ValueError as err:
        raise ValueError(f"read error (device: {hexaddr}): {err}") from err
    return dev


def device_list(sysfs_root: str = DEFAULT_SYSFS_ROOT, db: PciIdsDB | None = None) -> list[PciDevice]:
    """Return every PCI device, sorted by address."""
    if db is None:
        db = default_db()

    devices: dict[str, PciDevice] = {}
    with os.scandir(os.path.join(sysfs_root, "devices")) as it:
        entries = sorted((e for e in it if e.is_symlink()), key=lambda e: e.name)

    for entry in entries:
        if entry.name in devices:
            continue
        try:
            dev = _lookup(entry.name, sysfs_root, db)
        except FileNotFoundError:
            # The device was probably removed while reading
            continue
        devices[str(dev)] = dev
        for sub in dev.subdevices:
            devices.setdefault(str(sub), sub)

    return sorted(devices.values(), key=str)