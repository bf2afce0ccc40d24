"""Create non-blocking TCP, UDP and Unix sockets bound to a textual address."""

from __future__ import annotations

import ipaddress
import socket
import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type

from evnet.sockaddr import IPAddress, TCPAddr, UDPAddr, UnixAddr, _InetAddr
from evnet.sockopts import set_ipv6_only

_MAX_BACKLOG = (1 << 16) - 1
_SOMAXCONN_PATH = "/proc/sys/net/core/somaxconn"


class UnsupportedProtocolError(ValueError):
    """The network name is not one of the supported protocols."""

    def __init__(self, message: str = "only unix, tcp/tcp4/tcp6, udp/udp4/udp6 are supported") -> None:
        super().__init__(message)


class UnsupportedTCPProtocolError(UnsupportedProtocolError):
    """The network name is not a TCP protocol."""

    def __init__(self, message: str = "only tcp/tcp4/tcp6 are supported") -> None:
        super().__init__(message)


class UnsupportedUDPProtocolError(UnsupportedProtocolError):
    """The network name is not a UDP protocol."""

    def __init__(self, message: str = "only udp/udp4/udp6 are supported") -> None:
        super().__init__(message)


class UnsupportedUDSProtocolError(UnsupportedProtocolError):
    """The network name is not a stream Unix domain socket."""

    def __init__(self, message: str = "only unix is supported") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class SocketOption:
    """A socket option setter and the value it is called with."""

    set_sock_opt: Callable[[socket.socket, int], None]
    opt: int


def _read_somaxconn(path: str) -> int:
    try:
        with open(path, encoding="ascii") as fh:
            line = fh.readline()
    except OSError:
        return 0
    fields = line.split()
    if not fields:
        return 0
    try:
        return int(fields[0])
    except ValueError:
        return 0


def max_listener_backlog() -> int:
    """Return the largest listen backlog the system allows, capped to 65535."""
    n = _read_somaxconn(_SOMAXCONN_PATH) if sys.platform.startswith("linux") else 0
    if n <= 0:
        return socket.SOMAXCONN
    return min(n, _MAX_BACKLOG)


_LISTENER_BACKLOG = max_listener_backlog()


def _split_host_port(addr: str) -> Tuple[str, str]:
    if addr.startswith("["):
        end = addr.find("]")
        if end < 0:
            raise ValueError(f"address {addr}: missing ']' in address")
        rest = addr[end + 1:]
        if not rest.startswith(":"):
            raise ValueError(f"address {addr}: missing port in address")
        return addr[1:end], rest[1:]
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"address {addr}: missing port in address")
    if ":" in host:
        raise ValueError(f"address {addr}: too many colons in address")
    return host, port


def _parse_port(port: str, kind: str) -> int:
    if not port:
        return 0
    if port.isascii() and port.isdigit():
        number = int(port)
        if number > 65535:
            raise ValueError(f"invalid port {port!r}")
        return number
    try:
        return socket.getservbyname(port, kind)
    except OSError as exc:
        raise ValueError(f"unknown port {kind}/{port}") from exc


def _is_v4(ip: IPAddress) -> bool:
    return ip.version == 4 or ip.ipv4_mapped is not None


def _as_v4(ip: IPAddress) -> ipaddress.IPv4Address:
    return ip if ip.version == 4 else ip.ipv4_mapped


def _lookup(host: str, want: str, socktype: int) -> Tuple[IPAddress, str]:
    family = {"4": socket.AF_INET, "6": socket.AF_INET6}.get(want, socket.AF_UNSPEC)
    candidates = []
    for _, _, _, _, sa in socket.getaddrinfo(host, None, family, socktype):
        name, _, zone = str(sa[0]).partition("%")
        candidates.append((ipaddress.ip_address(name), zone))
    if want == "4":
        candidates = [c for c in candidates if _is_v4(c[0])]
    elif want == "6":
        candidates = [c for c in candidates if not _is_v4(c[0])]
    else:
        # Prefer an IPv4 address when the family is left open.
        candidates.sort(key=lambda c: not _is_v4(c[0]))
    if not candidates:
        raise ValueError(f"no suitable address found for {host!r}")
    return candidates[0]


def _resolve_ip(host: str, want: str, socktype: int) -> Tuple[Optional[IPAddress], str]:
    if not host:
        return None, ""
    name, _, zone = host.partition("%")
    try:
        ip = ipaddress.ip_address(name)
    except ValueError:
        return _lookup(host, want, socktype)
    if zone and ip.version == 4:
        raise ValueError(f"address {host}: zone is not allowed on an IPv4 address")
    if (want == "4" and not _is_v4(ip)) or (want == "6" and _is_v4(ip)):
        raise ValueError(f"no suitable address found for {host!r}")
    return ip, zone


def _determine_proto(kind: str, proto: str, ip: Optional[IPAddress],
                     error_cls: Type[UnsupportedProtocolError]) -> str:
    if ip is not None:
        return kind + ("4" if _is_v4(ip) else "6")
    if proto in (kind, kind + "4", kind + "6"):
        return proto
    raise error_cls()


def _get_inet_sock_addr(kind: str, proto: str, addr: str, socktype: int,
                        addr_cls: Type[_InetAddr],
                        error_cls: Type[UnsupportedProtocolError]) -> Tuple[Any, int, _InetAddr, bool]:
    if proto not in (kind, kind + "4", kind + "6"):
        raise UnsupportedProtocolError(f"unknown network {proto!r}")
    host, port_text = _split_host_port(addr)
    port = _parse_port(port_text, kind)
    want = proto[len(kind):]
    ip, zone = _resolve_ip(host, want, socktype)
    net_addr = addr_cls(ip, port, zone)

    version = _determine_proto(kind, proto, ip, error_cls)
    if version == kind + "4":
        host_text = "0.0.0.0" if ip is None else str(_as_v4(ip))
        return (host_text, port), socket.AF_INET, net_addr, False

    ipv6only = version == kind + "6"
    scope_id = socket.if_nametoindex(zone) if zone else 0
    host_text = "::" if ip is None else str(ip)
    return (host_text, port, 0, scope_id), socket.AF_INET6, net_addr, ipv6only


def get_tcp_sock_addr(proto: str, addr: str) -> Tuple[Any, int, TCPAddr, bool]:
    """Resolve ``addr`` for a TCP ``proto``.

    Returns the raw socket address, the address family, the resolved
    address and whether the socket must be restricted to IPv6.
    """
    return _get_inet_sock_addr("tcp", proto, addr, socket.SOCK_STREAM, TCPAddr,
                               UnsupportedTCPProtocolError)


def get_udp_sock_addr(proto: str, addr: str) -> Tuple[Any, int, UDPAddr, bool]:
    """Resolve ``addr`` for a UDP ``proto``; see :func:`get_tcp_sock_addr`."""
    return _get_inet_sock_addr("udp", proto, addr, socket.SOCK_DGRAM, UDPAddr,
                               UnsupportedUDPProtocolError)


def get_unix_sock_addr(proto: str, addr: str) -> Tuple[str, int, UnixAddr]:
    """Resolve a Unix socket path; only the stream "unix" network is accepted."""
    if proto not in ("unix", "unixgram", "unixpacket"):
        raise UnsupportedProtocolError(f"unknown network {proto!r}")
    if proto != "unix":
        raise UnsupportedUDSProtocolError()
    return addr, socket.AF_UNIX, UnixAddr(addr, proto)


def _sys_socket(family: int, socktype: int, proto: int) -> socket.socket:
    # Sockets are created non-inheritable, so they are closed on exec.
    sock = socket.socket(family, socktype, proto)
    try:
        sock.setblocking(False)
    except BaseException:
        sock.close()
        raise
    return sock


def _apply_options(sock: socket.socket, sock_opts: Tuple[SocketOption, ...]) -> None:
    for option in sock_opts:
        option.set_sock_opt(sock, option.opt)


def tcp_socket(proto: str, addr: str, passive: bool,
               *sock_opts: SocketOption) -> Tuple[socket.socket, TCPAddr]:
    """Create a non-blocking TCP socket bound to ``addr``.

    A passive socket listens with the largest backlog allowed; otherwise it
    connects to the address. Returns the socket and the resolved address.
    """
    sa, family, net_addr, ipv6only = get_tcp_sock_addr(proto, addr)
    sock = _sys_socket(family, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    try:
        if family == socket.AF_INET6 and ipv6only:
            set_ipv6_only(sock, 1)
        _apply_options(sock, sock_opts)
        sock.bind(sa)
        if passive:
            sock.listen(_LISTENER_BACKLOG)
        else:
            sock.connect(sa)
    except BaseException:
        sock.close()
        raise
    return sock, net_addr


def udp_socket(proto: str, addr: str, connect: bool,
               *sock_opts: SocketOption) -> Tuple[socket.socket, UDPAddr]:
    """Create a non-blocking, broadcast-capable UDP socket bound to ``addr``."""
    sa, family, net_addr, ipv6only = get_udp_sock_addr(proto, addr)
    sock = _sys_socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        if family == socket.AF_INET6 and ipv6only:
            set_ipv6_only(sock, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        _apply_options(sock, sock_opts)
        sock.bind(sa)
        if connect:
            sock.connect(sa)
    except BaseException:
        sock.close()
        raise
    return sock, net_addr


def unix_socket(proto: str, addr: str, passive: bool,
                *sock_opts: SocketOption) -> Tuple[socket.socket, UnixAddr]:
    """Create a non-blocking Unix stream socket bound to the path ``addr``."""
    sa, family, net_addr = get_unix_sock_addr(proto, addr)
    sock = _sys_socket(family, socket.SOCK_STREAM, 0)
    try:
        _apply_options(sock, sock_opts)
        sock.bind(sa)
        if passive:
            sock.listen(_LISTENER_BACKLOG)
        else:
            sock.connect(sa)
    except BaseException:
        sock.close()
        raise
    return sock, net_addr