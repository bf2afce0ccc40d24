"""Helpers that set options on sockets, given a socket object or a raw descriptor."""

from __future__ import annotations

import errno
import socket
import struct
import sys
from typing import Union

SocketLike = Union[socket.socket, int]


def _setsockopt(sock: SocketLike, level: int, option: int, value: Union[int, bytes]) -> None:
    if isinstance(sock, socket.socket):
        sock.setsockopt(level, option, value)
        return
    borrowed = socket.socket(fileno=sock)
    try:
        borrowed.setsockopt(level, option, value)
    finally:
        borrowed.detach()


def _require(name: str) -> int:
    value = getattr(socket, name, None)
    if value is None:
        raise OSError(errno.ENOPROTOOPT, f"{name} is not supported on this platform")
    return value


def set_no_delay(sock: SocketLike, no_delay: int) -> None:
    """Turn Nagle's algorithm off (non-zero) or on (zero)."""
    _setsockopt(sock, socket.IPPROTO_TCP, socket.TCP_NODELAY, int(no_delay))


def set_recv_buffer(sock: SocketLike, size: int) -> None:
    """Set the size of the operating system's receive buffer."""
    _setsockopt(sock, socket.SOL_SOCKET, socket.SO_RCVBUF, size)


def set_send_buffer(sock: SocketLike, size: int) -> None:
    """Set the size of the operating system's transmit buffer."""
    _setsockopt(sock, socket.SOL_SOCKET, socket.SO_SNDBUF, size)


def set_reuseport(sock: SocketLike, reuse_port: int) -> None:
    """Enable or disable SO_REUSEPORT."""
    _setsockopt(sock, socket.SOL_SOCKET, _require("SO_REUSEPORT"), int(reuse_port))


def set_reuse_addr(sock: SocketLike, reuse_addr: int) -> None:
    """Enable or disable SO_REUSEADDR."""
    _setsockopt(sock, socket.SOL_SOCKET, socket.SO_REUSEADDR, int(reuse_addr))


def set_ipv6_only(sock: SocketLike, ipv6only: int) -> None:
    """Restrict an IPv6 socket to IPv6 traffic (non-zero) or allow both families."""
    _setsockopt(sock, socket.IPPROTO_IPV6, _require("IPV6_V6ONLY"), int(ipv6only))


def set_linger(sock: SocketLike, sec: int) -> None:
    """Set how closing behaves while unsent data remains.

    A negative ``sec`` lets the system finish sending in the background;
    zero discards unsent data; a positive value lingers up to ``sec`` seconds.
    """
    onoff, linger = (1, sec) if sec >= 0 else (0, 0)
    _setsockopt(sock, socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", onoff, linger))


def set_keep_alive_period(sock: SocketLike, secs: int) -> None:
    """Enable TCP keep-alive and set the probe interval and idle time to ``secs``."""
    if secs <= 0:
        raise ValueError("invalid time duration")
    _setsockopt(sock, socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    if sys.platform == "darwin":
        try:
            _setsockopt(sock, socket.IPPROTO_TCP, _require("TCP_KEEPINTVL"), secs)
        except OSError as exc:
            # Older macOS releases do not know this option.
            if exc.errno != errno.ENOPROTOOPT:
                raise
        _setsockopt(sock, socket.IPPROTO_TCP, _require("TCP_KEEPALIVE"), secs)
        return
    _setsockopt(sock, socket.IPPROTO_TCP, _require("TCP_KEEPINTVL"), secs)
    _setsockopt(sock, socket.IPPROTO_TCP, _require("TCP_KEEPIDLE"), secs)