"""Building cloud-init NoCloud seed images."""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from typing import Any

import yaml

_CLOUD_CONFIG_HEADER = "#cloud-config\n"


def _dump(obj: Any, sort_keys: bool) -> str:
    return yaml.safe_dump(
        obj, default_flow_style=False, sort_keys=sort_keys, allow_unicode=True, indent=4
    )


@dataclass
class MetadataConfig:
    """The meta-data document."""

    dsmode: str = ""
    instance_id: str = ""
    local_hostname: str = ""
    platform: str = ""
    subplatform: str = ""
    cloud_name: str = ""
    region: str = ""
    availability_zone: str = ""

    def to_dict(self) -> dict[str, str]:
        result = {"dsmode": self.dsmode, "instance-id": self.instance_id}
        optional = (
            ("local-hostname", self.local_hostname),
            ("platform", self.platform),
            ("subplatform", self.subplatform),
            ("cloud-name", self.cloud_name),
            ("region", self.region),
            ("availability-zone", self.availability_zone),
        )
        result.update((key, value) for key, value in optional if value)
        return result


@dataclass
class EthernetConfig:
    """One ethernet entry of a network-config document."""

    mac_address: str = ""
    addresses: list[str] = field(default_factory=list)
    gateway4: str = ""
    gateway6: str = ""

    def to_dict(self) -> dict[str, Any]:
        # "mac_address" duplicates "macaddress" for older guest agents
        result: dict[str, Any] = {
            "match": {"macaddress": self.mac_address, "mac_address": self.mac_address},
            "addresses": list(self.addresses),
        }
        if self.gateway4:
            result["gateway4"] = self.gateway4
        if self.gateway6:
            result["gateway6"] = self.gateway6
        return result


@dataclass
class NetworkConfig:
    """The network-config document."""

    version: int = 0
    ethernets: dict[str, EthernetConfig] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "ethernets": {name: self.ethernets[name].to_dict() for name in sorted(self.ethernets)},
        }


@dataclass
class CloudInitData:
    """Everything written to a seed image.

    ``hostname``, ``domain`` and ``timezone`` fill the same-named vendor-data keys
    unless those are set already.
    """

    meta: MetadataConfig = field(default_factory=MetadataConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    hostname: str = ""
    domain: str = ""
    timezone: str = ""
    vendor: dict[str, Any] | None = None
    user: dict[str, Any] | None = None

    def normalize(self) -> None:
        """Check required fields and fill in defaults in place."""
        if not self.meta.instance_id:
            raise ValueError("instance-id key must be defined")
        if not self.meta.dsmode.strip():
            self.meta.dsmode = "local"
        if not self.meta.platform.strip():
            self.meta.platform = "nocloud"

        self.hostname = self.hostname.strip()
        self.domain = self.domain.strip() or "localdomain"
        self.timezone = self.timezone.strip()

        if self.vendor is None:
            self.vendor = {}
        if self.user is None:
            self.user = {}

        if "hostname" not in self.vendor and self.hostname:
            self.vendor["hostname"] = self.hostname
            self.vendor["create_hostname_file"] = True
            self.vendor["fqdn"] = f"{self.hostname}.{self.domain}"
            self.vendor["manage_etc_hosts"] = "localhost"

        if "timezone" not in self.vendor and self.timezone:
            self.vendor["timezone"] = self.timezone

    def render(self) -> dict[str, str]:
        """Return the seed files' contents keyed by file name."""

        def cloud_config(data: dict[str, Any] | None) -> str:
            if data:
                return _CLOUD_CONFIG_HEADER + _dump(data, sort_keys=True)
            return _CLOUD_CONFIG_HEADER

        return {
            "user-data": cloud_config(self.user),
            "meta-data": _dump(self.meta.to_dict(), sort_keys=False),
            "vendor-data": cloud_config(self.vendor),
            "network-config": _dump(self.network.to_dict(), sort_keys=False),
        }


def gen_image(data: CloudInitData, outfile: str | os.PathLike) -> None:
    """Write a "cidata" ISO image with the seed files of *data* to *outfile*."""
    outfile = os.fspath(outfile)
    if not os.path.basename(outfile):
        raise ValueError("output file must be set")

    binary = shutil.which("genisoimage")
    if binary is None:
        raise FileNotFoundError("executable file not found in $PATH: genisoimage")

    data.normalize()
    contents = data.render()

    with tempfile.TemporaryDirectory(dir=os.path.dirname(outfile) or ".", prefix=".cidata-") as tmpdir:
        image_file = os.path.join(tmpdir, "image")
        seed_files = []
        for name, text in contents.items():
            path = os.path.join(tmpdir, name)
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.chmod(path, 0o644)
            seed_files.append(path)

        args = [binary, "-output", image_file, "-volid", "cidata", "-joliet", "-rock", *seed_files]
        result = subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        if result.returncode != 0:
            output = result.stdout.decode("utf-8", errors="replace").strip()
            raise RuntimeError(f"genisoimage failed (exit status {result.returncode}): {output}")

        os.rename(image_file, outfile)