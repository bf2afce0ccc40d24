"""Strategies that pick the event-loop a new connection is handed to."""

from __future__ import annotations

import zlib
from typing import Any, Callable, Generic, List, Protocol, TypeVar

from evnet.toolkit import string_to_bytes


class EventLoop(Protocol):
    """What a load balancer needs from an event-loop."""

    idx: int

    def load_conn(self) -> int: ...


E = TypeVar("E", bound=EventLoop)


class _LoadBalancer(Generic[E]):
    def __init__(self) -> None:
        self._event_loops: List[E] = []

    def register(self, el: E) -> None:
        """Add ``el``, giving it the next index."""
        el.idx = len(self._event_loops)
        self._event_loops.append(el)

    def iterate(self, f: Callable[[int, E], Any]) -> None:
        """Call ``f(index, el)`` for each event-loop until it returns false."""
        for i, el in enumerate(self._event_loops):
            if not f(i, el):
                break

    def __len__(self) -> int:
        return len(self._event_loops)

    def _require_loops(self) -> None:
        if not self._event_loops:
            raise IndexError("no event-loop has been registered")


class RoundRobinLoadBalancer(_LoadBalancer[E]):
    """Hands out the event-loops in turn."""

    def __init__(self) -> None:
        super().__init__()
        self._next_index = 0

    def register(self, el: E) -> None:
        """Add ``el``, giving it the next index."""
        super().register(el)

    def next(self, addr: Any = None) -> E:
        """Return the next event-loop in turn; ``addr`` is ignored."""
        self._require_loops()
        el = self._event_loops[self._next_index]
        self._next_index += 1
        if self._next_index >= len(self._event_loops):
            self._next_index = 0
        return el

    def iterate(self, f: Callable[[int, E], Any]) -> None:
        """Call ``f(index, el)`` for each event-loop until it returns false."""
        super().iterate(f)

    def __len__(self) -> int:
        return super().__len__()


class LeastConnectionsLoadBalancer(_LoadBalancer[E]):
    """Hands out the event-loop serving the fewest connections."""

    def register(self, el: E) -> None:
        """Add ``el``, giving it the next index."""
        super().register(el)

    def next(self, addr: Any = None) -> E:
        """Return the least loaded event-loop, the earliest one on a tie."""
        self._require_loops()
        return min(self._event_loops, key=lambda el: el.load_conn())

    def iterate(self, f: Callable[[int, E], Any]) -> None:
        """Call ``f(index, el)`` for each event-loop until it returns false."""
        super().iterate(f)

    def __len__(self) -> int:
        return super().__len__()


class SourceAddrHashLoadBalancer(_LoadBalancer[E]):
    """Hands out the event-loop chosen by hashing the remote address."""

    def register(self, el: E) -> None:
        """Add ``el``, giving it the next index."""
        super().register(el)

    def hash(self, s: str) -> int:
        """Return the non-negative CRC-32 (IEEE) of ``s``."""
        return zlib.crc32(string_to_bytes(s))

    def next(self, addr: Any) -> E:
        """Return the event-loop at the hash of ``str(addr)`` modulo their count."""
        self._require_loops()
        return self._event_loops[self.hash(str(addr)) % len(self._event_loops)]

    def iterate(self, f: Callable[[int, E], Any]) -> None:
        """Call ``f(index, el)`` for each event-loop until it returns false."""
        super().iterate(f)

    def __len__(self) -> int:
        return super().__len__()