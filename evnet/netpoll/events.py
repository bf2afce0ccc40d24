"""Event masks, capacity limits and the resizable event list used by pollers."""

from __future__ import annotations

import select
import sys
from dataclasses import dataclass


class PollerError(Exception):
    """Base class of the errors that make a poller stop polling."""


class AcceptSocketError(PollerError):
    """Accepting a new connection failed; the poller must stop."""

    def __init__(self, message: str = "failed to accept a new connection") -> None:
        super().__init__(message)


class EngineShutdownError(PollerError):
    """The engine is shutting down; the poller must stop."""

    def __init__(self, message: str = "engine is shutting down") -> None:
        super().__init__(message)


# epoll event bits, with the Linux values where the running system lacks them.
EPOLLIN = getattr(select, "EPOLLIN", 0x001)
EPOLLPRI = getattr(select, "EPOLLPRI", 0x002)
EPOLLOUT = getattr(select, "EPOLLOUT", 0x004)
EPOLLERR = getattr(select, "EPOLLERR", 0x008)
EPOLLHUP = getattr(select, "EPOLLHUP", 0x010)
EPOLLRDHUP = getattr(select, "EPOLLRDHUP", 0x2000)

# Exceptional events that are neither read nor write, such as a closed peer.
ERR_EVENTS = EPOLLERR | EPOLLHUP | EPOLLRDHUP
# EPOLLOUT together with the exceptional events.
OUT_EVENTS = ERR_EVENTS | EPOLLOUT
# EPOLLIN/EPOLLPRI together with the exceptional events.
IN_EVENTS = ERR_EVENTS | EPOLLIN | EPOLLPRI

# kqueue filters.
EV_FILTER_READ = getattr(select, "KQ_FILTER_READ", -1)
EV_FILTER_WRITE = getattr(select, "KQ_FILTER_WRITE", -2)
# Exceptional events reported by kqueue (EOF or error on the socket).
EV_FILTER_SOCK = -0xD

_USES_KQUEUE = sys.platform.startswith(("darwin", "freebsd", "dragonfly"))

if _USES_KQUEUE:
    INIT_POLL_EVENTS_CAP = 64
    MAX_POLL_EVENTS_CAP = 512
    MIN_POLL_EVENTS_CAP = 16
    MAX_ASYNC_TASKS_AT_ONE_TIME = 128
else:
    INIT_POLL_EVENTS_CAP = 128
    MAX_POLL_EVENTS_CAP = 1024
    MIN_POLL_EVENTS_CAP = 32
    MAX_ASYNC_TASKS_AT_ONE_TIME = 256


@dataclass
class EventList:
    """How many events a poller collects per wait, grown and shrunk by powers of two."""

    size: int = INIT_POLL_EVENTS_CAP
    min_cap: int = MIN_POLL_EVENTS_CAP
    max_cap: int = MAX_POLL_EVENTS_CAP

    def expand(self) -> None:
        """Double the size unless that would pass the maximum."""
        new_size = self.size << 1
        if new_size <= self.max_cap:
            self.size = new_size

    def shrink(self) -> None:
        """Halve the size unless that would fall below the minimum."""
        new_size = self.size >> 1
        if new_size >= self.min_cap:
            self.size = new_size