# vmrunkit

vmrunkit is a library of building blocks for Linux hosts that run QEMU/KVM
virtual machines. It covers the chores around a hypervisor daemon:

- **Background tasks** (`vmrunkit.task`, `vmrunkit.taskpool`): tasks with a
  cancellation `Context`, progress and state (`TaskStat`, `TaskState`), and a
  `TaskPool` that refuses to start a task whose key conflicts with a running
  one. Keys are colon-separated; an empty field acts as a wildcard.
- **Small persistent allocator** (`vmrunkit.mapdb`): `MapDB` maps names to
  unique integers in a JSON file guarded by an exclusive file lock
  (`vmrunkit.flock.FileLocker`).
- **Host inspection**: OS detection (`vmrunkit.osprober`), TCP socket tables
  from `/proc/net` with owning processes (`vmrunkit.netstat`), process
  command lines and lifetimes (`vmrunkit.ps`), PCI addresses, the `pci.ids`
  database and sysfs devices (`vmrunkit.pciaddr`, `vmrunkit.pciids`,
  `vmrunkit.pcidevice`), LVM volumes (`vmrunkit.lvm`) and the default QEMU
  machine type (`vmrunkit.qemu`).
- **Guest provisioning**: cloud-init NoCloud seed images
  (`vmrunkit.cloudinit`) and QMP argument and result structures with
  `to_dict`/`from_dict` (`vmrunkit.qemutypes`).
- **Networking helpers**: gratuitous ARP (`vmrunkit.garp`), last address of a
  subnet (`vmrunkit.ipmath`), link IDs, address parsing and routing-table
  lookup (`vmrunkit.netutil`).
- **Service plumbing**: configuration loading with mutual TLS
  (`vmrunkit.appconf`), TCP listener setup (`vmrunkit.serverconf`), a gRPC
  server with request logging and a client channel with metadata and retry
  interceptors (`vmrunkit.grpcserver`, `vmrunkit.grpcclient`), and decoding of
  systemd unit properties (`vmrunkit.systemdprops`).
- **Misc** (`vmrunkit.helpers`): exit codes from failed commands, executable
  checks and random identifiers.

Some functions call system tools: `genisoimage` for cloud-init images,
`/sbin/lvm` for logical volumes, and the QEMU binary to read machine types.
Sending ARP packets and changing PCI drivers need root.

## Examples

Parse and print PCI addresses:

```python
from vmrunkit.pciaddr import PciAddress

addr = PciAddress.from_hex("1:03:00.0")
print(addr)           # 0001:03:00.0
print(addr.prefix())  # 0001:03:00
```

Find a free value in a range:

```python
from vmrunkit.mapdb import get_vacant_value, NoAvailableValuesError

get_vacant_value([200, 201, 203], 200, 65000)  # -> 202

try:
    get_vacant_value([5, 6], 5, 6)
except NoAvailableValuesError:
    print("range is full")
```

Keep stable numbers per name across processes:

```python
from vmrunkit.mapdb import MapDB

db = MapDB("/var/run/vmrunkit/linkdb", 200, 65000)
link_id = db.get("tap0")   # allocates on first use, returns the same value afterwards
db.delete("tap0")          # returns the freed value, or None if none was stored
```

Run a function as a keyed task and wait for it:

```python
from vmrunkit.task import Context
from vmrunkit.taskpool import TaskPool

pool = TaskPool(depth=4)
key = pool.run_func(Context(), "user1:vm1::", lambda log: log.info("working"))
print(key)  # default:user1:vm1::
```

Detect the operating system installed under a directory:

```python
from vmrunkit.osprober import probe

info = probe("/")
if info is not None:
    print(info.family, info.version, info.codename)
```

Compute the last address of a subnet:

```python
import ipaddress
from vmrunkit.ipmath import get_last_ipv4

get_last_ipv4(ipaddress.ip_network("10.0.0.0/24"))  # 10.0.0.255
```

## What it does not do

vmrunkit is a library only. It has no command-line tools and no daemon of
its own: `vmrunkit.grpcserver.Server` serves whatever services are
registered with it, and the package ships none. It does not start or
monitor virtual machines, does not talk to a QEMU monitor socket (only the
QMP data structures are provided), does not create or attach bridge, VLAN or
VXLAN devices, and does not control systemd units; it only decodes their
properties.

## Tests

The test suite uses pytest and is installed with the `test` extra.