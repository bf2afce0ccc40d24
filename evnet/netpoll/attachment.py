"""Data attached to a watched descriptor, and close-on-exec descriptor duplication."""

from __future__ import annotations

import errno
import fcntl
import os
from dataclasses import dataclass
from typing import Callable, Optional

# Called with the descriptor and the event mask (epoll) or filter (kqueue).
PollEventHandler = Callable[[int, int], None]

_F_DUPFD_CLOEXEC: Optional[int] = getattr(fcntl, "F_DUPFD_CLOEXEC", None)
_try_dup_cloexec = _F_DUPFD_CLOEXEC is not None


@dataclass
class PollAttachment:
    """A watched descriptor and the handler its events are delivered to."""

    fd: int = 0
    callback: Optional[PollEventHandler] = None


def dup(fd: int) -> int:
    """Duplicate ``fd`` and return the new descriptor, marked close-on-exec.

    Raises ``OSError`` when the descriptor cannot be duplicated.
    """
    global _try_dup_cloexec
    if _try_dup_cloexec:
        try:
            return fcntl.fcntl(fd, _F_DUPFD_CLOEXEC, 0)
        except OSError as exc:
            if exc.errno not in (errno.EINVAL, errno.ENOSYS):
                raise
            # The kernel lacks F_DUPFD_CLOEXEC; use the portable way from now on.
            _try_dup_cloexec = False
    new_fd = os.dup(fd)
    os.set_inheritable(new_fd, False)
    return new_fd