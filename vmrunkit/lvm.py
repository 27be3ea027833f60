"""LVM logical volume management through the lvm tool."""

from __future__ import annotations

import errno
import os
import stat
import subprocess

LVM_BINARY = "/sbin/lvm"


def _run(args: list[str], what: str) -> None:
    result = subprocess.run(args, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
    if result.returncode != 0:
        output = (result.stdout or b"").decode("utf-8", errors="replace").strip()
        raise RuntimeError(f"{what} failed (exit status {result.returncode}): {output}")


def is_logical_volume(path: str | os.PathLike) -> bool:
    """Return True if *path* resolves to a device-mapper block device."""
    dm_name = os.path.realpath(os.fspath(path), strict=True)
    dm_dir = os.path.join("/sys/block", os.path.basename(dm_name), "dm")
    try:
        os.stat(dm_dir)
    except FileNotFoundError:
        return False
    return True


def create_volume(vgname: str, lvname: str, size: int) -> None:
    """Create logical volume *lvname* of *size* bytes in volume group *vgname*."""
    devpath = f"/dev/{vgname}/{lvname}"
    try:
        st = os.stat(devpath)
    except FileNotFoundError:
        pass
    else:
        if not stat.S_ISBLK(st.st_mode):
            raise ValueError(f"path exists but is not a block device: {devpath}")
        raise FileExistsError(errno.EEXIST, "lvcreate: file exists", devpath)

    _run([LVM_BINARY, "lvcreate", "--name", lvname, "--size", f"{size}B", vgname], "lvcreate")


def remove_volume(devpath: str) -> None:
    """Remove the logical volume at *devpath* (relative paths are taken under /dev)."""
    if not devpath.startswith("/dev/"):
        devpath = os.path.join("/dev/", devpath)
    try:
        st = os.stat(devpath)
    except FileNotFoundError:
        raise FileNotFoundError(errno.ENOENT, "lvremove: no such file or directory", devpath) from None
    if not stat.S_ISBLK(st.st_mode):
        raise ValueError(f"path exists but is not a block device: {devpath}")

    _run([LVM_BINARY, "lvremove", "-f", devpath], "lvremove")