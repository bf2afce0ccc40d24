"""A kqueue-based poller that watches descriptors and runs queued tasks."""

from __future__ import annotations

import errno
import logging
import select
import sys
import threading
from typing import Any, Callable, Dict, List, Optional

from evnet.netpoll.attachment import PollAttachment, PollEventHandler
from evnet.netpoll.events import (
    EV_FILTER_READ,
    EV_FILTER_SOCK,
    EV_FILTER_WRITE,
    MAX_ASYNC_TASKS_AT_ONE_TIME,
    AcceptSocketError,
    EngineShutdownError,
    EventList,
)
from evnet.taskqueue import LockFreeQueue, Task, TaskFunc

logger = logging.getLogger(__name__)

_USER_FILTERS = (("darwin", -10), ("freebsd", -11), ("dragonfly", -9))


def _user_filter() -> int:
    for prefix, value in _USER_FILTERS:
        if sys.platform.startswith(prefix):
            return value
    return -10


# The user-triggered filter is not exposed by the select module.
EVFILT_USER = _user_filter()
NOTE_TRIGGER = 0x01000000

EV_ADD = getattr(select, "KQ_EV_ADD", 0x0001)
EV_DELETE = getattr(select, "KQ_EV_DELETE", 0x0002)
EV_CLEAR = getattr(select, "KQ_EV_CLEAR", 0x0020)
EV_ERROR = getattr(select, "KQ_EV_ERROR", 0x4000)
EV_EOF = getattr(select, "KQ_EV_EOF", 0x8000)

# Builds a kernel event: (ident, filter, flags, fflags, data, udata).
KeventFactory = Callable[..., Any]


def _unsupported() -> OSError:
    return OSError(errno.ENOSYS, "kqueue is not supported on this platform")


class KqueuePoller:
    """Monitors descriptors with kqueue and runs tasks handed over from other threads.

    Tasks are queued with :meth:`trigger` (low priority) or
    :meth:`urgent_trigger` (high priority); either wakes a poller that is
    blocked in :meth:`polling` through a user-triggered event.

    ``kq`` and ``kevent`` default to ``select.kqueue()`` and ``select.kevent``;
    any objects with the same interface may be supplied instead.
    """

    def __init__(self, kq: Any = None, kevent: Optional[KeventFactory] = None) -> None:
        if kevent is None:
            kevent = getattr(select, "kevent", None)
            if kevent is None:
                raise _unsupported()
        if kq is None:
            factory = getattr(select, "kqueue", None)
            if factory is None:
                raise _unsupported()
            kq = factory()
        self._kq = kq
        self._kevent = kevent
        try:
            self._kq.control([kevent(0, EVFILT_USER, EV_ADD | EV_CLEAR)], 0, 0)
        except BaseException:
            self._kq.close()
            raise
        self._wake_changes = [kevent(0, EVFILT_USER, 0, NOTE_TRIGGER)]
        self._attachments: Dict[int, PollAttachment] = {}
        self._wake_lock = threading.Lock()
        self._wake_sig = False
        self._async_tasks = LockFreeQueue()
        self._prior_async_tasks = LockFreeQueue()

    def __enter__(self) -> "KqueuePoller":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the kqueue instance."""
        self._kq.close()

    # -- waking -----------------------------------------------------------

    def _claim_wake(self) -> bool:
        with self._wake_lock:
            if self._wake_sig:
                return False
            self._wake_sig = True
            return True

    def _release_wake(self) -> None:
        with self._wake_lock:
            self._wake_sig = False

    def _wake(self) -> None:
        while True:
            try:
                self._kq.control(self._wake_changes, 0, 0)
                return
            except (BlockingIOError, InterruptedError):
                continue

    def urgent_trigger(self, fn: TaskFunc, arg: Any) -> None:
        """Queue ``fn(arg)`` with high priority and wake the poller.

        The high-priority queue is drained completely on every wake-up, so
        only urgent, few tasks belong here.
        """
        self._prior_async_tasks.enqueue(Task(fn, arg))
        if self._claim_wake():
            self._wake()

    def trigger(self, fn: TaskFunc, arg: Any) -> None:
        """Queue ``fn(arg)`` with low priority and wake the poller."""
        self._async_tasks.enqueue(Task(fn, arg))
        if self._claim_wake():
            self._wake()

    # -- polling ----------------------------------------------------------

    def _dispatch(self, callback: Optional[PollEventHandler], fd: int, event_filter: int) -> None:
        handler = callback
        if handler is None:
            attachment = self._attachments.get(fd)
            handler = attachment.callback if attachment is not None else None
        if handler is None:
            logger.warning("no handler for filter %d on descriptor %d", event_filter, fd)
            return
        try:
            handler(fd, event_filter)
        except (AcceptSocketError, EngineShutdownError):
            raise
        except Exception as exc:
            logger.warning("error occurs in event-loop: %s", exc)

    @staticmethod
    def _run_task(task: Task) -> None:
        try:
            if task.run is not None:
                task.run(task.arg)
        except EngineShutdownError:
            raise
        except Exception as exc:
            logger.warning("error occurs in user-defined function, %s", exc)

    def _run_tasks(self) -> None:
        task = self._prior_async_tasks.dequeue()
        while task is not None:
            self._run_task(task)
            task = self._prior_async_tasks.dequeue()
        for _ in range(MAX_ASYNC_TASKS_AT_ONE_TIME):
            task = self._async_tasks.dequeue()
            if task is None:
                break
            self._run_task(task)
        self._release_wake()
        pending = not self._async_tasks.is_empty() or not self._prior_async_tasks.is_empty()
        if pending and self._claim_wake():
            self._wake()

    def polling(self, callback: Optional[PollEventHandler] = None) -> None:
        """Block waiting for events and dispatch them until told to stop.

        Each ready descriptor is passed with its filter to ``callback``, or,
        when ``callback`` is ``None``, to the callback of the attachment it
        was registered with. A descriptor at end-of-file or in error is
        reported with ``EV_FILTER_SOCK``. Raises :class:`AcceptSocketError`
        or :class:`EngineShutdownError` when a handler or task raises one;
        other handler and task errors are logged and polling goes on.
        """
        events = EventList()
        timeout: Optional[float] = None
        while True:
            try:
                ready = self._kq.control(None, events.size, timeout)
            except InterruptedError:
                timeout = None
                continue
            except OSError as exc:
                logger.error("error occurs in kqueue: %s", exc)
                raise
            if not ready:
                timeout = None
                continue
            timeout = 0

            woken = False
            for ev in ready:
                if ev.ident == 0 and ev.filter == EVFILT_USER:
                    woken = True
                    continue
                event_filter = ev.filter
                if ev.flags & (EV_EOF | EV_ERROR):
                    event_filter = EV_FILTER_SOCK
                self._dispatch(callback, int(ev.ident), event_filter)

            if woken:
                self._run_tasks()

            n = len(ready)
            if n == events.size:
                events.expand()
            elif n < events.size >> 1:
                events.shrink()

    # -- registration -----------------------------------------------------

    def _apply(self, changes: List[Any]) -> None:
        self._kq.control(changes, 0, 0)

    def add_read_write(self, pa: PollAttachment) -> None:
        """Watch ``pa.fd`` for readable and writable events."""
        self._apply([
            self._kevent(pa.fd, EV_FILTER_READ, EV_ADD),
            self._kevent(pa.fd, EV_FILTER_WRITE, EV_ADD),
        ])
        self._attachments[pa.fd] = pa

    def add_read(self, pa: PollAttachment) -> None:
        """Watch ``pa.fd`` for readable events."""
        self._apply([self._kevent(pa.fd, EV_FILTER_READ, EV_ADD)])
        self._attachments[pa.fd] = pa

    def add_write(self, pa: PollAttachment) -> None:
        """Watch ``pa.fd`` for writable events."""
        self._apply([self._kevent(pa.fd, EV_FILTER_WRITE, EV_ADD)])
        self._attachments[pa.fd] = pa

    def mod_read(self, pa: PollAttachment) -> None:
        """Stop watching ``pa.fd`` for writable events, keeping readable ones."""
        self._apply([self._kevent(pa.fd, EV_FILTER_WRITE, EV_DELETE)])
        self._attachments[pa.fd] = pa

    def mod_read_write(self, pa: PollAttachment) -> None:
        """Watch ``pa.fd`` for writable events in addition to readable ones."""
        self._apply([self._kevent(pa.fd, EV_FILTER_WRITE, EV_ADD)])
        self._attachments[pa.fd] = pa

    def delete(self, fd: int) -> None:
        """Forget ``fd``; the kernel drops its filters when the descriptor closes."""
        self._attachments.pop(fd, None)