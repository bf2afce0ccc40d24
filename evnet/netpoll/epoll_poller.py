"""An epoll-based poller that watches descriptors and runs queued tasks."""

from __future__ import annotations

import logging
import os
import select
import threading
from typing import Any, Callable, Dict, Optional

from evnet.netpoll.attachment import PollAttachment, PollEventHandler
from evnet.netpoll.events import (
    EPOLLIN,
    EPOLLOUT,
    EPOLLPRI,
    MAX_ASYNC_TASKS_AT_ONE_TIME,
    AcceptSocketError,
    EngineShutdownError,
    EventList,
)
from evnet.taskqueue import LockFreeQueue, Task, TaskFunc

logger = logging.getLogger(__name__)

READ_EVENTS = EPOLLPRI | EPOLLIN
WRITE_EVENTS = EPOLLOUT
READ_WRITE_EVENTS = READ_EVENTS | WRITE_EVENTS


class EpollPoller:
    """Monitors descriptors with epoll and runs tasks handed over from other threads.

    Tasks are queued with :meth:`trigger` (low priority) or
    :meth:`urgent_trigger` (high priority); either wakes a poller that is
    blocked in :meth:`polling` through an eventfd.
    """

    def __init__(self) -> None:
        self._epoll = select.epoll()
        try:
            self._wfd = os.eventfd(0, os.EFD_NONBLOCK | os.EFD_CLOEXEC)
        except BaseException:
            self._epoll.close()
            raise
        try:
            self._epoll.register(self._wfd, READ_EVENTS)
        except BaseException:
            self._epoll.close()
            os.close(self._wfd)
            raise
        self._attachments: Dict[int, PollAttachment] = {}
        self._wake_lock = threading.Lock()
        self._wake_sig = False
        self._async_tasks = LockFreeQueue()
        self._prior_async_tasks = LockFreeQueue()

    def __enter__(self) -> "EpollPoller":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the epoll instance and the wake descriptor."""
        self._epoll.close()
        os.close(self._wfd)

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
                os.eventfd_write(self._wfd, 1)
                return
            except (BlockingIOError, InterruptedError):
                continue

    def _drain_wake(self) -> None:
        try:
            os.eventfd_read(self._wfd)
        except BlockingIOError:
            pass

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

    def _dispatch(self, callback: Optional[PollEventHandler], fd: int, mask: int) -> None:
        handler = callback
        if handler is None:
            attachment = self._attachments.get(fd)
            handler = attachment.callback if attachment is not None else None
        if handler is None:
            logger.warning("no handler for events %#x on descriptor %d", mask, fd)
            return
        try:
            handler(fd, mask)
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

        Each ready descriptor is passed with its event mask to ``callback``,
        or, when ``callback`` is ``None``, to the callback of the attachment
        it was registered with. Raises :class:`AcceptSocketError` or
        :class:`EngineShutdownError` when a handler or task raises one; other
        handler and task errors are logged and polling goes on.
        """
        events = EventList()
        timeout = -1
        while True:
            try:
                ready = self._epoll.poll(timeout, events.size)
            except OSError as exc:
                logger.error("error occurs in epoll: %s", exc)
                raise
            if not ready:
                timeout = -1
                continue
            timeout = 0

            woken = False
            for fd, mask in ready:
                if fd == self._wfd:
                    woken = True
                    self._drain_wake()
                else:
                    self._dispatch(callback, fd, mask)

            if woken:
                self._run_tasks()

            n = len(ready)
            if n == events.size:
                events.expand()
            elif n < events.size >> 1:
                events.shrink()

    # -- registration -----------------------------------------------------

    def _add(self, pa: PollAttachment, mask: int) -> None:
        self._epoll.register(pa.fd, mask)
        self._attachments[pa.fd] = pa

    def _modify(self, pa: PollAttachment, mask: int) -> None:
        self._epoll.modify(pa.fd, mask)
        self._attachments[pa.fd] = pa

    def add_read_write(self, pa: PollAttachment) -> None:
        """Watch ``pa.fd`` for readable and writable events."""
        self._add(pa, READ_WRITE_EVENTS)

    def add_read(self, pa: PollAttachment) -> None:
        """Watch ``pa.fd`` for readable events."""
        self._add(pa, READ_EVENTS)

    def add_write(self, pa: PollAttachment) -> None:
        """Watch ``pa.fd`` for writable events."""
        self._add(pa, WRITE_EVENTS)

    def mod_read(self, pa: PollAttachment) -> None:
        """Change a watched descriptor to readable events only."""
        self._modify(pa, READ_EVENTS)

    def mod_read_write(self, pa: PollAttachment) -> None:
        """Change a watched descriptor to readable and writable events."""
        self._modify(pa, READ_WRITE_EVENTS)

    def delete(self, fd: int) -> None:
        """Stop watching ``fd``."""
        self._epoll.unregister(fd)
        self._attachments.pop(fd, None)