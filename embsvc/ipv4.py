"""IPv4 addressing and interface configuration."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from ipaddress import IPv4Address

_U8 = re.compile(r"\+?[0-9]+")
_U32_MAX = 0xFFFFFFFF


def _leading_ones(value: int) -> int:
    return 32 - (~value & _U32_MAX).bit_length()


def _trailing_zeros(value: int) -> int:
    if value == 0:
        return 32
    return (value & -value).bit_length() - 1


def _optional_ip(value: IPv4Address | str | None) -> IPv4Address | None:
    return None if value is None else IPv4Address(value)


@dataclass(frozen=True)
class Mask:
    """A subnet mask given as its prefix length."""

    bits: int

    def __post_init__(self) -> None:
        if not 0 <= self.bits <= 32:
            raise ValueError("Mask bits must be between 0 and 32")

    @classmethod
    def parse(cls, s: str) -> Mask:
        """Parse a prefix length between 1 and 32."""
        if not _U8.fullmatch(s) or int(s) > 255:
            raise ValueError("Invalid subnet mask")
        value = int(s)
        if not 1 <= value <= 32:
            raise ValueError("Mask should be a number between 1 and 32")
        return cls(value)

    @classmethod
    def from_ipv4(cls, ip: IPv4Address | str) -> Mask:
        """Convert a dotted netmask such as 255.255.0.0 to a prefix length."""
        addr = int(IPv4Address(ip))
        ones = _leading_ones(addr)
        if ones + _trailing_zeros(addr) != 32:
            raise ValueError(f"{ip} is not a contiguous subnet mask")
        return cls(ones)

    def to_ipv4(self) -> IPv4Address:
        """The mask in dotted form."""
        return IPv4Address(((1 << (32 - self.bits)) - 1) ^ _U32_MAX)

    def __str__(self) -> str:
        return str(self.bits)


def _default_subnet() -> Subnet:
    return Subnet(IPv4Address("192.168.71.1"), Mask(24))


@dataclass(frozen=True)
class Subnet:
    """A gateway address together with its subnet mask."""

    gateway: IPv4Address
    mask: Mask

    def __post_init__(self) -> None:
        object.__setattr__(self, "gateway", IPv4Address(self.gateway))

    @classmethod
    def parse(cls, s: str) -> Subnet:
        """Parse ``<gateway-ip-address>/<mask>``."""
        parts = s.split("/")
        if len(parts) != 2:
            raise ValueError("Expected <gateway-ip-address>/<mask>")
        gateway_str, mask_str = parts
        try:
            gateway = IPv4Address(gateway_str)
        except ValueError:
            raise ValueError(
                "Invalid IP address format, expected XXX.XXX.XXX.XXX"
            ) from None
        return cls(gateway, Mask.parse(mask_str))

    def __str__(self) -> str:
        return f"{self.gateway}/{self.mask}"


@dataclass
class ClientSettings:
    """Static addressing for a client interface."""

    ip: IPv4Address = IPv4Address("192.168.71.200")
    subnet: Subnet = field(default_factory=_default_subnet)
    dns: IPv4Address | None = IPv4Address("8.8.8.8")
    secondary_dns: IPv4Address | None = IPv4Address("8.8.4.4")

    def __post_init__(self) -> None:
        self.ip = IPv4Address(self.ip)
        self.dns = _optional_ip(self.dns)
        self.secondary_dns = _optional_ip(self.secondary_dns)


@dataclass
class DHCPClientSettings:
    """Settings for a client that obtains its address over DHCP."""

    hostname: str | None = None

    def __post_init__(self) -> None:
        if self.hostname is not None and len(self.hostname.encode()) > 30:
            raise ValueError("hostname must be at most 30 bytes")


@dataclass
class ClientConfiguration:
    """Client addressing: DHCP or fixed settings."""

    settings: DHCPClientSettings | ClientSettings = field(
        default_factory=DHCPClientSettings
    )

    def as_fixed_settings_ref(self) -> ClientSettings | None:
        """The fixed settings, or None when DHCP is used."""
        if isinstance(self.settings, ClientSettings):
            return self.settings
        return None

    def as_fixed_settings_mut(self) -> ClientSettings:
        """The fixed settings, switching to default fixed settings if needed."""
        if not isinstance(self.settings, ClientSettings):
            self.settings = ClientSettings()
        return self.settings


@dataclass
class RouterConfiguration:
    """Settings for an interface acting as a router."""

    subnet: Subnet = field(default_factory=_default_subnet)
    dhcp_enabled: bool = True
    dns: IPv4Address | None = IPv4Address("8.8.8.8")
    secondary_dns: IPv4Address | None = IPv4Address("8.8.4.4")

    def __post_init__(self) -> None:
        self.dns = _optional_ip(self.dns)
        self.secondary_dns = _optional_ip(self.secondary_dns)


@dataclass
class Configuration:
    """Interface configuration: a client or a router."""

    settings: ClientConfiguration | RouterConfiguration = field(
        default_factory=ClientConfiguration
    )


@dataclass(frozen=True)
class IpInfo:
    """Addressing currently in effect on an interface."""

    ip: IPv4Address
    subnet: Subnet
    dns: IPv4Address | None = None
    secondary_dns: IPv4Address | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ip", IPv4Address(self.ip))
        object.__setattr__(self, "dns", _optional_ip(self.dns))
        object.__setattr__(self, "secondary_dns", _optional_ip(self.secondary_dns))


class Interface(ABC):
    """A network interface whose IPv4 configuration can be managed."""

    @abstractmethod
    def get_iface_configuration(self) -> Configuration:
        """The current configuration."""

    @abstractmethod
    def set_iface_configuration(self, conf: Configuration) -> None:
        """Apply a new configuration."""

    @abstractmethod
    def is_iface_up(self) -> bool:
        """Whether the interface is up."""

    @abstractmethod
    def get_ip_info(self) -> IpInfo:
        """The addressing currently in effect."""