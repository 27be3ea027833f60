[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vmrunkit"
version = "0.1.0"
description = "Building blocks for a QEMU/KVM virtual machine host: task pools, PCI and OS probing, cloud-init images, networking helpers and gRPC plumbing"
requires-python = ">=3.10"
keywords = [
    "kvm",
    "qemu",
    "virtualization",
    "cloud-init",
    "pci",
    "lvm",
    "systemd",
    "grpc",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Topic :: System :: Emulators",
]
dependencies = [
    "pyyaml",
    "psutil",
    "grpcio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["vmrunkit"]

[tool.hatch.build.targets.sdist]
include = [
    "vmrunkit",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
