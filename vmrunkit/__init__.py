"""Building blocks for QEMU/KVM hosts: tasks, host probing, cloud-init, networking and gRPC."""

__version__ = "0.1.0"