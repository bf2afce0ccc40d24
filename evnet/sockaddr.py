"""Network address values and conversion from raw socket addresses."""

from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Tuple, Union

from evnet.toolkit import bytes_to_string

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass(frozen=True)
class _InetAddr:
    """An IP address with a port and an optional IPv6 zone."""

    ip: Optional[IPAddress] = None
    port: int = 0
    zone: str = ""

    network: ClassVar[str] = ""

    def __str__(self) -> str:
        if self.ip is None:
            host = ""
        else:
            ip = self.ip
            if ip.version == 6 and ip.ipv4_mapped is not None:
                ip = ip.ipv4_mapped
            host = str(ip)
        if self.zone:
            host = f"{host}%{self.zone}"
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{self.port}"


@dataclass(frozen=True)
class TCPAddr(_InetAddr):
    """Address of a TCP endpoint."""

    network: ClassVar[str] = "tcp"


@dataclass(frozen=True)
class UDPAddr(_InetAddr):
    """Address of a UDP endpoint."""

    network: ClassVar[str] = "udp"


@dataclass(frozen=True)
class UnixAddr:
    """Address of a Unix domain socket endpoint."""

    name: str
    net: str = "unix"

    @property
    def network(self) -> str:
        return self.net

    def __str__(self) -> str:
        return self.name


def ip6_zone_to_string(zone: int) -> str:
    """Return the interface name for an IPv6 zone index, or "" for zone 0.

    Falls back to the decimal index when no interface has that index.
    """
    if zone == 0:
        return ""
    try:
        return socket.if_indextoname(zone)
    except (OSError, OverflowError):
        return str(zone)


def _inet4(sa: Tuple[Any, ...]) -> IPAddress:
    return ipaddress.ip_address(sa[0])


def _inet6(sa: Tuple[Any, ...]) -> Tuple[IPAddress, str]:
    host, _, _ = str(sa[0]).partition("%")
    scope_id = sa[3] if len(sa) > 3 else 0
    return ipaddress.ip_address(host), ip6_zone_to_string(scope_id)


def _unix_family() -> Optional[int]:
    return getattr(socket, "AF_UNIX", None)


def sockaddr_to_tcp_or_unix_addr(family: int, sa: Any) -> Optional[Union[TCPAddr, UnixAddr]]:
    """Convert a raw socket address of ``family`` to a TCP or Unix address.

    Returns ``None`` for families that have no such address.
    """
    if family == socket.AF_INET:
        return TCPAddr(_inet4(sa), sa[1])
    if family == socket.AF_INET6:
        ip, zone = _inet6(sa)
        return TCPAddr(ip, sa[1], zone)
    if family == _unix_family():
        name = bytes_to_string(sa) if isinstance(sa, (bytes, bytearray)) else str(sa)
        return UnixAddr(name)
    return None


def sockaddr_to_udp_addr(family: int, sa: Any) -> Optional[UDPAddr]:
    """Convert a raw IPv4 or IPv6 socket address to a UDP address, else ``None``."""
    if family == socket.AF_INET:
        return UDPAddr(_inet4(sa), sa[1])
    if family == socket.AF_INET6:
        ip, zone = _inet6(sa)
        return UDPAddr(ip, sa[1], zone)
    return None