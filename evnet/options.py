"""Configuration of an engine, built from option functions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from datetime import timedelta
from enum import IntEnum
from typing import Callable, Optional


class LoadBalancing(IntEnum):
    """The algorithm that picks an event-loop for a new connection."""

    # Hand connections to the event-loops in turn.
    ROUND_ROBIN = 0
    # Hand a connection to the event-loop serving the fewest connections.
    LEAST_CONNECTIONS = 1
    # Pick the event-loop by hashing the remote address.
    SOURCE_ADDR_HASH = 2


class TCPSocketOpt(IntEnum):
    """Whether TCP packets are sent at once or delayed (Nagle's algorithm)."""

    TCP_NO_DELAY = 0
    TCP_DELAY = 1


@dataclass
class Options:
    """Settings for an engine; the zero values are the defaults."""

    # Server side only.
    multicore: bool = False
    num_event_loop: int = 0
    lb: LoadBalancing = LoadBalancing.ROUND_ROBIN
    reuse_addr: bool = False
    reuse_port: bool = False

    # Server and client side.
    read_buffer_cap: int = 0
    write_buffer_cap: int = 0
    lock_os_thread: bool = False
    ticker: bool = False
    tcp_keep_alive: timedelta = field(default_factory=timedelta)
    tcp_no_delay: TCPSocketOpt = TCPSocketOpt.TCP_NO_DELAY
    socket_recv_buffer: int = 0
    socket_send_buffer: int = 0
    log_path: str = ""
    log_level: int = logging.INFO
    logger: Optional[logging.Logger] = None


Option = Callable[[Options], None]


def load_options(*options: Option) -> Options:
    """Apply each option, in order, to fresh default settings."""
    opts = Options()
    for option in options:
        option(opts)
    return opts


def with_options(options: Options) -> Option:
    """Replace every setting with those of ``options``."""

    def apply(opts: Options) -> None:
        for f in fields(Options):
            setattr(opts, f.name, getattr(options, f.name))

    return apply


def _setter(name: str, value: object) -> Option:
    def apply(opts: Options) -> None:
        setattr(opts, name, value)

    return apply


def with_multicore(multicore: bool) -> Option:
    """Run one event-loop per logical CPU when true."""
    return _setter("multicore", multicore)


def with_lock_os_thread(lock_os_thread: bool) -> Option:
    """Bind each event-loop to its own OS thread when true."""
    return _setter("lock_os_thread", lock_os_thread)


def with_read_buffer_cap(read_buffer_cap: int) -> Option:
    """Set how many bytes are read from a peer per readable event."""
    return _setter("read_buffer_cap", read_buffer_cap)


def with_write_buffer_cap(write_buffer_cap: int) -> Option:
    """Set how many bytes the static outbound buffer holds."""
    return _setter("write_buffer_cap", write_buffer_cap)


def with_load_balancing(lb: LoadBalancing) -> Option:
    """Set the load-balancing algorithm."""
    return _setter("lb", lb)


def with_num_event_loop(num_event_loop: int) -> Option:
    """Set the number of event-loops; this overrides multicore."""
    return _setter("num_event_loop", num_event_loop)


def with_reuse_port(reuse_port: bool) -> Option:
    """Set SO_REUSEPORT on listening sockets when true."""
    return _setter("reuse_port", reuse_port)


def with_reuse_addr(reuse_addr: bool) -> Option:
    """Set SO_REUSEADDR on listening sockets when true."""
    return _setter("reuse_addr", reuse_addr)


def with_tcp_keep_alive(tcp_keep_alive: timedelta) -> Option:
    """Set the TCP keep-alive period."""
    return _setter("tcp_keep_alive", tcp_keep_alive)


def with_tcp_no_delay(tcp_no_delay: TCPSocketOpt) -> Option:
    """Enable or disable TCP_NODELAY."""
    return _setter("tcp_no_delay", tcp_no_delay)


def with_socket_recv_buffer(recv_buf: int) -> Option:
    """Set the socket receive buffer size in bytes."""
    return _setter("socket_recv_buffer", recv_buf)


def with_socket_send_buffer(send_buf: int) -> Option:
    """Set the socket send buffer size in bytes."""
    return _setter("socket_send_buffer", send_buf)


def with_ticker(ticker: bool) -> Option:
    """Mark that a ticker is used."""
    return _setter("ticker", ticker)


def with_log_path(file_name: str) -> Option:
    """Set the path of the log file."""
    return _setter("log_path", file_name)


def with_log_level(lvl: int) -> Option:
    """Set the logging level."""
    return _setter("log_level", lvl)


def with_logger(logger: logging.Logger) -> Option:
    """Use ``logger`` instead of the default one."""
    return _setter("logger", logger)