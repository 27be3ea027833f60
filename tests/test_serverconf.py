import ipaddress
import socket
from types import SimpleNamespace
from unittest import mock

import pytest

from vmrunkit.serverconf import ServerConf, get_iface_addrs

FAKE_ADDRS = {
    "eth9": [
        SimpleNamespace(family=socket.AF_INET, address="192.0.2.10"),
        SimpleNamespace(family=socket.AF_INET6, address="fe80::1%eth9"),
        SimpleNamespace(family=socket.AF_INET6, address="2001:db8::1"),
    ]
}


@mock.patch("psutil.net_if_addrs", return_value=FAKE_ADDRS)
def test_iface_addrs_skip_link_local(_patched):
    assert get_iface_addrs("eth9") == [
        ipaddress.ip_address("192.0.2.10"),
        ipaddress.ip_address("2001:db8::1"),
    ]


@mock.patch("psutil.net_if_addrs", return_value=FAKE_ADDRS)
def test_unknown_interface(_patched):
    with pytest.raises(LookupError, match="no such network interface: nope0"):
        get_iface_addrs("nope0")


@mock.patch("psutil.net_if_addrs", return_value=FAKE_ADDRS)
def test_bind_addrs_deduplicated(_patched):
    conf = ServerConf(bindings=["192.0.2.10", "eth9", "127.0.0.1", "127.0.0.1"])
    addrs = conf.bind_addrs()
    assert sorted(map(str, addrs)) == sorted(["192.0.2.10", "2001:db8::1", "127.0.0.1"])
    assert len(addrs) == len(set(addrs))


@mock.patch("psutil.net_if_addrs", return_value=FAKE_ADDRS)
def test_listeners_fail_on_bad_binding(_patched):
    conf = ServerConf(bindings=["127.0.0.1", "nope0"], plain_port=0)
    with pytest.raises(LookupError):
        conf.listeners()


def test_listeners_open_sockets():
    conf = ServerConf(bindings=["127.0.0.1"], plain_port=0)
    socks = conf.listeners()
    try:
        assert len(socks) == 1
        assert socks[0].getsockname()[0] == "127.0.0.1"
    finally:
        for s in socks:
            s.close()