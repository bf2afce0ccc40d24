"""Thread-safe FIFO queue of asynchronous tasks run by a poller."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Optional

TaskFunc = Callable[[Any], None]


@dataclass
class Task:
    """A callable together with the argument it will be run with."""

    run: Optional[TaskFunc] = None
    arg: Any = None


class LockFreeQueue:
    """A non-blocking, thread-safe FIFO of tasks.

    Appending to and popping from opposite ends of a deque are atomic
    operations, so producers and consumers never need a lock.
    """

    def __init__(self) -> None:
        self._items: deque[Task] = deque()

    def enqueue(self, task: Task) -> None:
        """Put ``task`` at the tail of the queue."""
        self._items.append(task)

    def dequeue(self) -> Optional[Task]:
        """Remove and return the task at the head, or ``None`` when empty."""
        try:
            return self._items.popleft()
        except IndexError:
            return None

    def is_empty(self) -> bool:
        """Report whether the queue holds no tasks."""
        return not self._items

    def __len__(self) -> int:
        return len(self._items)