from ipaddress import IPv4Address

import pytest

from embsvc.ipv4 import (
    ClientConfiguration,
    ClientSettings,
    Configuration,
    DHCPClientSettings,
    Interface,
    IpInfo,
    Mask,
    RouterConfiguration,
    Subnet,
)


def test_mask_parse_and_display():
    mask = Mask.parse("24")
    assert mask == Mask(24)
    assert str(mask) == "24"


@pytest.mark.parametrize("text", ["0", "33", "255"])
def test_mask_parse_out_of_range(text):
    with pytest.raises(ValueError, match="Mask should be a number between 1 and 32"):
        Mask.parse(text)


@pytest.mark.parametrize("text", ["", "abc", "-1", "256", "2 4"])
def test_mask_parse_invalid(text):
    with pytest.raises(ValueError, match="Invalid subnet mask"):
        Mask.parse(text)


def test_mask_rejects_impossible_prefix():
    with pytest.raises(ValueError):
        Mask(33)


def test_mask_to_ipv4():
    assert Mask(24).to_ipv4() == IPv4Address("255.255.255.0")


@pytest.mark.parametrize("bits", range(0, 33))
def test_mask_round_trip(bits):
    assert Mask.from_ipv4(Mask(bits).to_ipv4()) == Mask(bits)


@pytest.mark.parametrize("ip", ["255.0.255.0", "0.0.0.1", "254.255.255.255"])
def test_mask_from_non_contiguous(ip):
    with pytest.raises(ValueError):
        Mask.from_ipv4(IPv4Address(ip))


def test_subnet_parse_round_trip():
    text = "192.168.71.1/24"
    subnet = Subnet.parse(text)
    assert subnet.gateway == IPv4Address("192.168.71.1")
    assert subnet.mask == Mask(24)
    assert str(subnet) == text


@pytest.mark.parametrize("text", ["192.168.71.1", "1.2.3.4/24/8", ""])
def test_subnet_parse_bad_shape(text):
    with pytest.raises(ValueError, match="Expected <gateway-ip-address>/<mask>"):
        Subnet.parse(text)


def test_subnet_parse_bad_address():
    with pytest.raises(ValueError, match="Invalid IP address format"):
        Subnet.parse("300.1.1.1/24")


def test_subnet_parse_bad_mask():
    with pytest.raises(ValueError, match="between 1 and 32"):
        Subnet.parse("10.0.0.1/40")


def test_client_settings_defaults():
    s = ClientSettings()
    assert s.ip == IPv4Address("192.168.71.200")
    assert s.subnet == Subnet(IPv4Address("192.168.71.1"), Mask(24))
    assert s.dns == IPv4Address("8.8.8.8")
    assert s.secondary_dns == IPv4Address("8.8.4.4")


def test_client_settings_accepts_strings():
    s = ClientSettings(ip="10.0.0.5", dns=None)
    assert s.ip == IPv4Address("10.0.0.5")
    assert s.dns is None


def test_client_configuration_defaults_to_dhcp():
    conf = ClientConfiguration()
    assert conf.settings == DHCPClientSettings()
    assert conf.as_fixed_settings_ref() is None


def test_as_fixed_settings_mut_switches_to_fixed():
    conf = ClientConfiguration()
    fixed = conf.as_fixed_settings_mut()
    assert fixed == ClientSettings()
    fixed.ip = IPv4Address("10.1.1.1")
    assert conf.as_fixed_settings_ref() is fixed
    assert conf.as_fixed_settings_mut().ip == IPv4Address("10.1.1.1")


def test_dhcp_hostname_limit():
    assert DHCPClientSettings("a" * 30).hostname == "a" * 30
    with pytest.raises(ValueError):
        DHCPClientSettings("a" * 31)


def test_router_configuration_defaults():
    r = RouterConfiguration()
    assert r.dhcp_enabled is True
    assert r.subnet == Subnet.parse("192.168.71.1/24")
    assert r.dns == IPv4Address("8.8.8.8")


def test_configuration_defaults_to_dhcp_client():
    assert Configuration() == Configuration(ClientConfiguration(DHCPClientSettings()))


def test_ip_info_normalises_addresses():
    info = IpInfo("10.0.0.2", Subnet.parse("10.0.0.1/8"), dns="10.0.0.1")
    assert info.ip == IPv4Address("10.0.0.2")
    assert info.dns == IPv4Address("10.0.0.1")
    assert info.secondary_dns is None


def test_interface_is_abstract():
    with pytest.raises(TypeError):
        Interface()