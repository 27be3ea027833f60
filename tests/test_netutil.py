import ipaddress

import pytest

from vmrunkit.netutil import get_link_id, get_route_table_index, parse_ip_net


def test_link_id_stable_and_in_range():
    values = {get_link_id(f"tap{i}", i) for i in range(200)}
    assert all(200 <= v < 65000 for v in values)
    assert get_link_id("tap1", 3) == get_link_id("tap1", 3)


def test_link_id_depends_on_index():
    assert len({get_link_id("tap1", i) for i in range(50)}) > 1


def test_parse_bare_ipv4():
    assert parse_ip_net("10.0.0.1") == ipaddress.ip_interface("10.0.0.1/32")


def test_parse_bare_ipv6():
    assert parse_ip_net("2001:db8::5") == ipaddress.ip_interface("2001:db8::5/128")


def test_parse_keeps_host_bits():
    net = parse_ip_net("10.0.0.5/24")
    assert net.ip == ipaddress.ip_address("10.0.0.5")
    assert net.network.prefixlen == 24


def test_parse_invalid():
    with pytest.raises(ValueError):
        parse_ip_net("not-an-ip")


def test_route_table_index(tmp_path):
    path = tmp_path / "rt_tables"
    path.write_text("# reserved\n255\tlocal\n254\tmain\n  #254 fake\n100 Custom\n")
    assert get_route_table_index("main", str(path)) == 254
    assert get_route_table_index("custom", str(path)) == 100


def test_route_table_missing(tmp_path):
    path = tmp_path / "rt_tables"
    path.write_text("254 main\n")
    with pytest.raises(LookupError, match="table not found: other"):
        get_route_table_index("other", str(path))


def test_route_table_bad_number(tmp_path):
    path = tmp_path / "rt_tables"
    path.write_text("xx main\n")
    with pytest.raises(ValueError):
        get_route_table_index("main", str(path))