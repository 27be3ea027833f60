"""Detection of the operating system installed under a root directory."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Iterator

DEBIAN_CODES: dict[str, str] = dict(
    zip(
        (str(release) for release in range(4, 11)),
        "Etch Lenny Squeeze Wheezy Jessie Stretch Buster".split(),
    )
)

_UBUNTU_NAMES = (
    "Warty Warthog, Hoary Hedgehog, Breezy Badger, Dapper Drake, Edgy Eft, "
    "Feisty Fawn, Gutsy Gibbon, Hardy Heron, Intrepid Ibex, Jaunty Jackalope, "
    "Karmic Koala, Lucid Lynx, Maverick Meerkat, Natty Narwhal, Oneiric Ocelot, "
    "Precise Pangolin, Quantal Quetzal, Raring Ringtail, Saucy Salamander, Trusty Tahr, "
    "Utopic Unicorn, Vivid Vervet, Wily Werewolf, Xenial Xerus, Yakkety Yak, "
    "Zesty Zapus, Artful Aardvark, Bionic Beaver, Cosmic Cuttlefish, Disco Dingo, "
    "Eoan Ermine, Focal Fossa, Groovy Gorilla"
).split(", ")


def _ubuntu_versions() -> Iterator[str]:
    yield "4.10"
    for year in range(5, 21):
        # the 6.x spring release came out in June instead of April
        yield f"{year}.{'06' if year == 6 else '04'}"
        yield f"{year}.10"


UBUNTU_CODES: dict[str, str] = dict(zip(_ubuntu_versions(), _UBUNTU_NAMES))

_KEY_VALUE_RE = re.compile(r"^(NAME|ID|VERSION_ID|VERSION_CODENAME|PRETTY_NAME)=(\S+.*)")
_INTEGER_RE = re.compile(r"[+-]?\d+")
_FAMILY_ALIASES = {"opensuse-leap": "opensuse", "sangoma": "centos"}


def ver_by_code(mapping: dict[str, str], code: str) -> str:
    """Return the version whose codename is *code*, or an empty string."""
    return next((version for version, name in mapping.items() if name == code), "")


def _read_text(rootdir: str, relpath: str) -> str:
    with open(os.path.join(rootdir, relpath), encoding="utf-8", errors="replace") as fh:
        return fh.read()


@dataclass
class OSReleaseInfo:
    """What is known about an installed operating system."""

    source: str = ""
    family: str = ""
    distrib: str = ""
    version: str = ""
    codename: str = ""
    name: str = ""
    pretty_name: str = ""


class OsReleaseProber:
    """Reads ``etc/os-release``."""

    def probe(self, rootdir: str) -> OSReleaseInfo:
        fields: dict[str, str] = {}
        for line in _read_text(rootdir, "etc/os-release").splitlines():
            found = _KEY_VALUE_RE.match(line)
            if found:
                fields[found.group(1)] = found.group(2).strip('"')

        distrib = fields.get("ID", "").lower()
        info = OSReleaseInfo(
            source="os-release",
            name=fields.get("NAME", ""),
            pretty_name=fields.get("PRETTY_NAME", ""),
            distrib=distrib,
            version=fields.get("VERSION_ID", "").lower(),
            codename=fields.get("VERSION_CODENAME", "").lower(),
            family=_FAMILY_ALIASES.get(distrib, distrib),
        )

        if not info.codename:
            info.codename = self._guess_codename(info.family, info.version)
        return info

    @staticmethod
    def _guess_codename(family: str, version: str) -> str:
        pieces = version.split(".")
        if family == "debian":
            return DEBIAN_CODES.get(version, "")
        if family == "ubuntu" and len(pieces) >= 2:
            return UBUNTU_CODES.get(".".join(pieces[:2]), "")
        if family == "opensuse" and len(pieces) > 1:
            return pieces[0]
        return ""


class DebianVersionProber:
    """Reads ``etc/debian_version``."""

    def probe(self, rootdir: str) -> OSReleaseInfo:
        text = _read_text(rootdir, "etc/debian_version").strip().lower()

        if "/" in text:
            version = text.partition("/")[0]
        else:
            version = text.partition(".")[0]
            if not _INTEGER_RE.fullmatch(version):
                version = ver_by_code(DEBIAN_CODES, version)

        codename = DEBIAN_CODES.get(version, "")
        return OSReleaseInfo(
            source="debian_version",
            family="debian",
            distrib="debian",
            name="Debian GNU/Linux",
            version=version,
            codename=codename,
            pretty_name=f"Debian GNU/Linux {version} ({codename})",
        )


class CentosReleaseProber:
    """Reads ``etc/centos-release``."""

    def probe(self, rootdir: str) -> OSReleaseInfo:
        text = _read_text(rootdir, "etc/centos-release").strip().lower()

        # "distro release x.x (codename)" or "distro x.x (codename)"
        words = text.split()
        version = words[-2].partition(".")[0] if len(words) >= 3 else ""

        return OSReleaseInfo(
            source="centos-release",
            family="centos",
            distrib="centos",
            name="CentOS Linux",
            version=version,
            pretty_name=text,
        )


PROBERS = (OsReleaseProber(), DebianVersionProber(), CentosReleaseProber())


def probe(rootdir: str) -> OSReleaseInfo | None:
    """Return information from the first prober whose file exists, or None."""
    for prober in PROBERS:
        try:
            return prober.probe(rootdir)
        except FileNotFoundError:
            continue
    return None