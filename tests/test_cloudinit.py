import subprocess
from unittest import mock

import pytest
import yaml

from vmrunkit.cloudinit import (
    CloudInitData,
    EthernetConfig,
    MetadataConfig,
    NetworkConfig,
    gen_image,
)

MAC = "02:00:00:00:00:01"


def make_data(**kwargs):
    return CloudInitData(meta=MetadataConfig(instance_id="vm-1"), **kwargs)


def test_metadata_omits_empty_optional_keys():
    meta = MetadataConfig(dsmode="local", instance_id="vm-1")
    assert meta.to_dict() == {"dsmode": "local", "instance-id": "vm-1"}


def test_metadata_includes_set_optional_keys():
    meta = MetadataConfig(instance_id="vm-1", local_hostname="host", region="r1")
    result = meta.to_dict()
    assert result["local-hostname"] == "host"
    assert result["region"] == "r1"
    assert "platform" not in result


def test_ethernet_duplicates_mac_address():
    eth = EthernetConfig(mac_address=MAC, addresses=["10.0.0.2/24"], gateway4="10.0.0.1")
    result = eth.to_dict()
    assert result["match"] == {"macaddress": MAC, "mac_address": MAC}
    assert result["addresses"] == ["10.0.0.2/24"]
    assert result["gateway4"] == "10.0.0.1"
    assert "gateway6" not in result


def test_network_to_dict():
    net = NetworkConfig(version=2, ethernets={"eth0": EthernetConfig(mac_address=MAC)})
    result = net.to_dict()
    assert result["version"] == 2
    assert list(result["ethernets"]) == ["eth0"]
    assert result["ethernets"]["eth0"]["match"]["macaddress"] == MAC


def test_normalize_requires_instance_id():
    with pytest.raises(ValueError):
        CloudInitData().normalize()


def test_normalize_defaults():
    data = make_data()
    data.normalize()
    assert data.meta.dsmode == "local"
    assert data.meta.platform == "nocloud"
    assert data.domain == "localdomain"
    assert data.vendor == {}
    assert data.user == {}


def test_normalize_hostname_fills_vendor():
    data = make_data(hostname="  vm1 ", timezone=" UTC ")
    data.normalize()
    assert data.vendor["hostname"] == "vm1"
    assert data.vendor["fqdn"] == "vm1.localdomain"
    assert data.vendor["create_hostname_file"] is True
    assert data.vendor["manage_etc_hosts"] == "localhost"
    assert data.vendor["timezone"] == "UTC"


def test_normalize_keeps_vendor_values():
    data = make_data(hostname="vm1", timezone="UTC", vendor={"hostname": "other", "timezone": "X"})
    data.normalize()
    assert data.vendor == {"hostname": "other", "timezone": "X"}


def test_render_empty_configs():
    data = make_data()
    data.normalize()
    files = data.render()
    assert files["user-data"] == "#cloud-config\n"
    assert files["vendor-data"] == "#cloud-config\n"


def test_render_round_trip():
    data = make_data(
        hostname="vm1",
        user={"packages": ["vim"]},
        network=NetworkConfig(version=2, ethernets={"eth0": EthernetConfig(mac_address=MAC)}),
    )
    data.normalize()
    files = data.render()
    assert list(files) == ["user-data", "meta-data", "vendor-data", "network-config"]
    assert files["user-data"].startswith("#cloud-config\n")
    assert yaml.safe_load(files["user-data"]) == {"packages": ["vim"]}
    assert yaml.safe_load(files["vendor-data"]) == data.vendor
    assert yaml.safe_load(files["meta-data"]) == data.meta.to_dict()
    assert yaml.safe_load(files["network-config"]) == data.network.to_dict()


def test_gen_image_requires_output_name(tmp_path):
    with pytest.raises(ValueError):
        gen_image(make_data(), str(tmp_path) + "/")


def test_gen_image_requires_genisoimage(tmp_path):
    with mock.patch("shutil.which", return_value=None):
        with pytest.raises(FileNotFoundError):
            gen_image(make_data(), tmp_path / "seed.iso")


def test_gen_image_success(tmp_path):
    seen = {}

    def fake_run(args, **kwargs):
        out = args[args.index("-output") + 1]
        for path in args[7:]:
            with open(path, encoding="utf-8") as fh:
                seen[path.rsplit("/", 1)[-1]] = fh.read()
        with open(out, "wb") as fh:
            fh.write(b"ISO")
        return subprocess.CompletedProcess(args, 0, stdout=b"")

    outfile = tmp_path / "seed.iso"
    with mock.patch("shutil.which", return_value="/usr/bin/genisoimage"), mock.patch(
        "subprocess.run", side_effect=fake_run
    ):
        gen_image(make_data(hostname="vm1"), outfile)

    assert outfile.read_bytes() == b"ISO"
    assert sorted(seen) == ["meta-data", "network-config", "user-data", "vendor-data"]
    assert yaml.safe_load(seen["meta-data"])["instance-id"] == "vm-1"
    assert [p.name for p in tmp_path.iterdir()] == ["seed.iso"]


def test_gen_image_failure(tmp_path):
    def fake_run(args, **kwargs):
        return subprocess.CompletedProcess(args, 1, stdout=b"boom\n")

    outfile = tmp_path / "seed.iso"
    with mock.patch("shutil.which", return_value="/usr/bin/genisoimage"), mock.patch(
        "subprocess.run", side_effect=fake_run
    ):
        with pytest.raises(RuntimeError, match="boom"):
            gen_image(make_data(), outfile)
    assert not outfile.exists()