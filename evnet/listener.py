"""A listening socket built from a network name, an address and options."""

from __future__ import annotations

import logging
import os
import shutil
import socket
import threading
from typing import Any, List, Optional, Union

from evnet.netpoll.attachment import PollAttachment, PollEventHandler, dup as _dup_fd
from evnet.options import Options, TCPSocketOpt
from evnet.sockaddr import TCPAddr, UDPAddr, UnixAddr
from evnet.sockets import (
    SocketOption,
    UnsupportedProtocolError,
    tcp_socket,
    udp_socket,
    unix_socket,
)
from evnet.sockopts import (
    set_no_delay,
    set_recv_buffer,
    set_reuse_addr,
    set_reuseport,
    set_send_buffer,
)

logger = logging.getLogger(__name__)

NetAddr = Union[TCPAddr, UDPAddr, UnixAddr]


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


class Listener:
    """A bound socket listening (TCP, Unix) or receiving (UDP) on an address."""

    def __init__(self, network: str, address: str,
                 sock_opts: Optional[List[SocketOption]] = None) -> None:
        self.network = network
        self.address = address
        self.sock_opts: List[SocketOption] = list(sock_opts or [])
        self.sock: Optional[socket.socket] = None
        self.addr: Optional[NetAddr] = None
        self.poll_attachment: Optional[PollAttachment] = None
        self._close_lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> "Listener":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def fd(self) -> int:
        """The descriptor of the socket, or -1 when there is none."""
        return self.sock.fileno() if self.sock is not None else -1

    def pack_poll_attachment(self, handler: PollEventHandler) -> PollAttachment:
        """Create, keep and return the attachment that registers this listener."""
        self.poll_attachment = PollAttachment(self.fd, handler)
        return self.poll_attachment

    def dup(self) -> int:
        """Return a close-on-exec duplicate of the listener's descriptor."""
        return _dup_fd(self.fd)

    def _normalize(self) -> None:
        if self.network in ("tcp", "tcp4", "tcp6"):
            self.sock, self.addr = tcp_socket(self.network, self.address, True, *self.sock_opts)
            self.network = "tcp"
        elif self.network in ("udp", "udp4", "udp6"):
            self.sock, self.addr = udp_socket(self.network, self.address, False, *self.sock_opts)
            self.network = "udp"
        elif self.network == "unix":
            _remove_all(self.address)
            self.sock, self.addr = unix_socket(self.network, self.address, True, *self.sock_opts)
        else:
            raise UnsupportedProtocolError()

    def close(self) -> None:
        """Close the socket and remove a Unix socket's path; later calls do nothing."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        if self.sock is not None and self.sock.fileno() > 0:
            try:
                self.sock.close()
            except OSError as exc:
                logger.error("close: %s", exc)
        if self.network == "unix":
            try:
                _remove_all(self.address)
            except OSError as exc:
                logger.error("%s", exc)


def init_listener(network: str, addr: str, options: Options) -> Listener:
    """Create a listener on ``addr`` with the socket options ``options`` call for.

    Raises :class:`UnsupportedProtocolError` for an unknown network and
    ``OSError`` or ``ValueError`` when the socket cannot be set up.
    """
    sock_opts: List[SocketOption] = []
    if options.reuse_port or network.startswith("udp"):
        sock_opts.append(SocketOption(set_reuseport, 1))
    if options.reuse_addr:
        sock_opts.append(SocketOption(set_reuse_addr, 1))
    if options.tcp_no_delay == TCPSocketOpt.TCP_NO_DELAY and network.startswith("tcp"):
        sock_opts.append(SocketOption(set_no_delay, 1))
    if options.socket_recv_buffer > 0:
        sock_opts.append(SocketOption(set_recv_buffer, options.socket_recv_buffer))
    if options.socket_send_buffer > 0:
        sock_opts.append(SocketOption(set_send_buffer, options.socket_send_buffer))
    listener = Listener(network, addr, sock_opts)
    listener._normalize()
    return listener