"""Choose the poller that suits the running operating system."""

from __future__ import annotations

import errno
import sys
from typing import Union

from evnet.netpoll.epoll_poller import EpollPoller
from evnet.netpoll.kqueue_poller import KqueuePoller

Poller = Union[EpollPoller, KqueuePoller]

_KQUEUE_PLATFORMS = ("darwin", "freebsd", "dragonfly")


def open_poller() -> Poller:
    """Open an epoll poller on Linux or a kqueue poller on the BSDs and macOS.

    Raises ``OSError`` on any other system or when the poller cannot be created.
    """
    if sys.platform.startswith("linux"):
        return EpollPoller()
    if sys.platform.startswith(_KQUEUE_PLATFORMS):
        return KqueuePoller()
    raise OSError(errno.ENOSYS, f"no poller is available on {sys.platform}")