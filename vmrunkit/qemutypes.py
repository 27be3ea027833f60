"""Argument and result structures of QEMU monitor (QMP) commands."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Mapping, TypeVar

_T = TypeVar("_T", bound="QmpStruct")


def _f(key: str, default: Any, *, omitempty: bool = False) -> Any:
    """A field stored under *key*; dots in *key* mark nested objects."""
    return dataclasses.field(default=default, metadata={"json": key, "omitempty": omitempty})


class QmpStruct:
    """Base of the QMP structures: conversion to and from JSON-ready dicts."""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form; empty ``omitempty`` fields are left out."""
        result: dict[str, Any] = {}
        for fld in dataclasses.fields(self):  # type: ignore[arg-type]
            value = getattr(self, fld.name)
            if fld.metadata.get("omitempty") and not value:
                continue
            *parents, last = fld.metadata["json"].split(".")
            target = result
            for part in parents:
                target = target.setdefault(part, {})
            target[last] = value
        return result

    @classmethod
    def from_dict(cls: type[_T], data: Mapping[str, Any]) -> _T:
        """Build from a JSON object; missing keys keep their defaults, unknown keys are ignored."""
        kwargs: dict[str, Any] = {}
        for fld in dataclasses.fields(cls):  # type: ignore[arg-type]
            node: Any = data
            found = True
            for part in fld.metadata["json"].split("."):
                if isinstance(node, Mapping) and part in node:
                    node = node[part]
                else:
                    found = False
                    break
            if found:
                kwargs[fld.name] = node
        return cls(**kwargs)


@dataclass
class StatusInfo(QmpStruct):
    """Guest running status."""

    running: bool = _f("running", False)
    singlestep: bool = _f("singlestep", False)
    status: str = _f("status", "")


@dataclass
class QomQuery(QmpStruct):
    """A QOM property addressed by object path."""

    path: str = _f("path", "")
    property: str = _f("property", "")


@dataclass
class NetdevTapOptions(QmpStruct):
    """A TAP based guest network backend."""

    type: str = _f("type", "")
    id: str = _f("id", "")
    ifname: str = _f("ifname", "")
    vhost: bool = _f("vhost", False)
    queues: int = _f("queues", 0, omitempty=True)
    script: str = _f("script", "")
    downscript: str = _f("downscript", "")


@dataclass
class BlockIOThrottle(QmpStruct):
    """Block device I/O limits."""

    device: str = _f("device", "")
    iops: int = _f("iops", 0)
    iops_rd: int = _f("iops_rd", 0)
    iops_wr: int = _f("iops_wr", 0)
    bps: int = _f("bps", 0)
    bps_wr: int = _f("bps_wr", 0)
    bps_rd: int = _f("bps_rd", 0)


@dataclass
class BlockResizeQuery(QmpStruct):
    """Arguments of block_resize; the size is in bytes."""

    device: str = _f("device", "")
    size: int = _f("size", 0)


@dataclass
class CPUInfoFast(QmpStruct):
    """A virtual CPU and its host thread."""

    cpu_index: int = _f("cpu-index", 0)
    thread_id: int = _f("thread-id", 0)


@dataclass
class ChardevOptions(QmpStruct):
    """A new socket character device listening on a unix socket."""

    id: str = _f("id", "")
    backend_type: str = _f("backend.type", "socket")
    addr_type: str = _f("backend.data.addr.type", "unix")
    path: str = _f("backend.data.addr.data.path", "")
    server: bool = _f("backend.data.server", False)
    wait: bool = _f("backend.data.wait", False)


@dataclass
class DeviceOptions(QmpStruct):
    """Common options of device_add."""

    driver: str = _f("driver", "")
    id: str = _f("id", "")
    bus: str = _f("bus", "", omitempty=True)
    addr: str = _f("addr", "", omitempty=True)
    drive: str = _f("drive", "", omitempty=True)
    netdev: str = _f("netdev", "", omitempty=True)
    mac: str = _f("mac", "", omitempty=True)
    mq: bool = _f("mq", False, omitempty=True)
    vectors: int = _f("vectors", 0, omitempty=True)
    bootindex: int = _f("bootindex", 0, omitempty=True)
    chardev: str = _f("chardev", "", omitempty=True)
    name: str = _f("name", "", omitempty=True)
    guest_id: int = _f("guest-cid", 0, omitempty=True)
    scsi_channel: int = _f("channel", 0, omitempty=True)
    scsi_id: int = _f("scsi-id", 0, omitempty=True)
    scsi_lun: int = _f("lun", 0, omitempty=True)


@dataclass
class CPUDeviceOptions(QmpStruct):
    """Options of a hot-plugged CPU."""

    driver: str = _f("driver", "")
    socket_id: int = _f("socket-id", 0)
    core_id: int = _f("core-id", 0)
    thread_id: int = _f("thread-id", 0)


@dataclass
class MigrationCapabilityStatus(QmpStruct):
    """Whether a migration capability is enabled."""

    capability: str = _f("capability", "")
    state: bool = _f("state", False)


@dataclass
class MigrateSetParameters(QmpStruct):
    """Migration parameters."""

    max_bandwidth: int = _f("max-bandwidth", 0)
    xbzrle_cache_size: int = _f("xbzrle-cache-size", 0)


@dataclass
class MigrationInfo(QmpStruct):
    """State of a running migration."""

    status: str = _f("status", "")
    ram_total: int = _f("ram.total", 0)
    ram_remaining: int = _f("ram.remaining", 0)
    ram_speed: float = _f("ram.mbps", 0.0)
    error_desc: str = _f("error-desc", "")


@dataclass
class DriveMirrorOptions(QmpStruct):
    """Arguments of drive-mirror."""

    job_id: str = _f("job-id", "")
    device: str = _f("device", "")
    target: str = _f("target", "")
    format: str = _f("format", "")
    sync: str = _f("sync", "")
    mode: str = _f("mode", "")
    copy_mode: str = _f("copy-mode", "", omitempty=True)
    speed: int = _f("speed", 0, omitempty=True)


@dataclass
class DriveBackupOptions(QmpStruct):
    """Arguments of drive-backup."""

    job_id: str = _f("job-id", "", omitempty=True)
    device: str = _f("device", "")
    target: str = _f("target", "")
    format: str = _f("format", "", omitempty=True)
    sync: str = _f("sync", "")
    bitmap: str = _f("bitmap", "", omitempty=True)
    mode: str = _f("mode", "", omitempty=True)
    speed: int = _f("speed", 0, omitempty=True)


@dataclass
class BlockJobInfo(QmpStruct):
    """A long-running block device operation."""

    type: str = _f("type", "")
    device: str = _f("device", "")
    len: int = _f("len", 0)
    offset: int = _f("offset", 0)
    busy: bool = _f("busy", False)
    paused: bool = _f("paused", False)
    speed: int = _f("speed", 0)
    ready: bool = _f("ready", False)


@dataclass
class BlockDirtyBitmapOptions(QmpStruct):
    """A dirty bitmap of a block node."""

    node: str = _f("node", "")
    name: str = _f("name", "")