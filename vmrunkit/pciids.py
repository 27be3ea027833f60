"""The PCI ID database (pci.ids) of classes, vendors and products."""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass, field
from typing import Iterable, Sequence

DEFAULT_DIRS = (".", "/usr/share/hwdata", "/usr/share/misc")
IDS_FILE = "pci.ids"


@dataclass
class ProgrammingInterface:
    """A programming interface of a device subclass."""

    id: str
    name: str


@dataclass
class Subclass:
    """A subdivision of a PCI class."""

    id: str
    name: str
    programming_interfaces: list[ProgrammingInterface] = field(default_factory=list)


@dataclass
class PciClass:
    """A top-level PCI device class."""

    id: str
    name: str
    subclasses: list[Subclass] = field(default_factory=list)


@dataclass
class Product:
    """A device model, or a subsystem of one."""

    vendor_id: str
    id: str
    name: str
    subsystems: list["Product"] = field(default_factory=list)


@dataclass
class Vendor:
    """A device vendor."""

    id: str
    name: str
    products: list[Product] = field(default_factory=list)


def _strip_prefix(text: str) -> str:
    return text[2:] if text.startswith("0x") else text


@dataclass
class PciIdsDB:
    """Classes by class ID, vendors by vendor ID, products by vendor+device ID."""

    classes: dict[str, PciClass] = field(default_factory=dict)
    vendors: dict[str, Vendor] = field(default_factory=dict)
    products: dict[str, Product] = field(default_factory=dict)

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "PciIdsDB":
        """Build a database from the lines of a pci.ids file."""
        db = cls()
        cur_class: PciClass | None = None
        cur_subclass: Subclass | None = None
        cur_vendor: Vendor | None = None
        cur_product: Product | None = None
        in_class_block = False

        for lineno, raw in enumerate(lines, 1):
            line = raw.rstrip("\r\n")
            if not line or line.startswith("#"):
                continue

            # "C 02  Network controller"
            if line[0] == "C":
                in_class_block = True
                cur_class = PciClass(id=line[2:4], name=line[6:])
                cur_subclass = None
                db.classes[cur_class.id] = cur_class
                continue

            # "0a89  BREA Technologies Inc"
            if line[0] != "\t":
                in_class_block = False
                cur_vendor = Vendor(id=line[0:4], name=line[6:])
                cur_product = None
                db.vendors[cur_vendor.id] = cur_vendor
                continue

            single_tab = len(line) > 1 and line[1] != "\t"

            if in_class_block:
                if cur_class is None:
                    raise ValueError(f"line {lineno}: entry outside of a class block")
                if single_tab:
                    # "\t00  Non-VGA unclassified device"
                    cur_subclass = Subclass(id=line[1:3], name=line[5:])
                    cur_class.subclasses.append(cur_subclass)
                else:
                    # "\t\t00  UHCI"
                    if cur_subclass is None:
                        raise ValueError(f"line {lineno}: programming interface without subclass")
                    cur_subclass.programming_interfaces.append(
                        ProgrammingInterface(id=line[2:4], name=line[6:])
                    )
                continue

            if cur_vendor is None:
                raise ValueError(f"line {lineno}: entry outside of a vendor block")
            if single_tab:
                # "\t0002  PCI to MCA Bridge"
                cur_product = Product(vendor_id=cur_vendor.id, id=line[1:5], name=line[7:])
                cur_vendor.products.append(cur_product)
                db.products[cur_vendor.id + cur_product.id] = cur_product
            else:
                # "\t\t0e11 4091  Smart Array 6i"
                if cur_product is None:
                    raise ValueError(f"line {lineno}: subsystem without product")
                cur_product.subsystems.append(
                    Product(vendor_id=line[2:6], id=line[7:11], name=line[13:])
                )

        return db

    def find_class(self, hexnum: str) -> PciClass | None:
        """Look up a 24-bit class code, keeping only the matching subclass and interface."""
        hexnum = _strip_prefix(hexnum)
        if len(hexnum) != 6:
            return None
        found = self.classes.get(hexnum[0:2])
        if found is None:
            return None
        return PciClass(
            id=found.id,
            name=found.name,
            subclasses=[
                Subclass(
                    id=sub.id,
                    name=sub.name,
                    programming_interfaces=[
                        ProgrammingInterface(id=iface.id, name=iface.name)
                        for iface in sub.programming_interfaces
                        if iface.id == hexnum[4:6]
                    ],
                )
                for sub in found.subclasses
                if sub.id == hexnum[2:4]
            ],
        )

    def find_vendor(self, hexvendor: str) -> Vendor | None:
        """Look up a vendor by its 16-bit ID."""
        hexvendor = _strip_prefix(hexvendor)
        if len(hexvendor) != 4:
            return None
        found = self.vendors.get(hexvendor)
        if found is None:
            return None
        return Vendor(id=found.id, name=found.name)

    def find_product(self, hexvendor: str, hexdevice: str) -> Product | None:
        """Look up a product by vendor and device IDs."""
        hexvendor = _strip_prefix(hexvendor)
        hexdevice = _strip_prefix(hexdevice)
        if len(hexvendor) != 4 or len(hexdevice) != 4:
            return None
        found = self.products.get(hexvendor + hexdevice)
        if found is None:
            return None
        return Product(vendor_id=found.vendor_id, id=found.id, name=found.name)


def look_for(fname: str, dirs: Sequence[str] = DEFAULT_DIRS) -> str:
    """Return the first directory of *dirs* that holds *fname*."""
    for directory in dirs:
        try:
            os.stat(os.path.join(directory, fname))
        except FileNotFoundError:
            continue
        return directory
    raise FileNotFoundError(f"{fname} not found in: {', '.join(dirs)}")


def load(dirs: Sequence[str] = DEFAULT_DIRS) -> PciIdsDB:
    """Find pci.ids in *dirs* and parse it."""
    path = os.path.join(look_for(IDS_FILE, dirs), IDS_FILE)
    with open(path, encoding="utf-8", errors="replace") as fh:
        try:
            return PciIdsDB.parse(fh)
        except ValueError as err:
            raise ValueError(f"failed to parse: {err}") from err


@functools.lru_cache(maxsize=None)
def default_db() -> PciIdsDB:
    """Return the system database, or an empty one if it cannot be loaded."""
    try:
        return load()
    except (OSError, ValueError):
        return PciIdsDB()