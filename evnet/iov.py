"""Scatter/gather I/O on a file descriptor."""

from __future__ import annotations

import os
from typing import Protocol, Sequence, Union


class _HasFileno(Protocol):
    def fileno(self) -> int: ...


FileLike = Union[int, _HasFileno]


def _fileno(fd: FileLike) -> int:
    return fd if isinstance(fd, int) else fd.fileno()


def writev(fd: FileLike, bufs: Sequence[bytes]) -> int:
    """Write all buffers in one call and return the number of bytes written."""
    if not bufs:
        return 0
    return os.writev(_fileno(fd), bufs)


def readv(fd: FileLike, bufs: Sequence[bytearray]) -> int:
    """Fill the writable buffers in order in one call; return the bytes read."""
    if not bufs:
        return 0
    return os.readv(_fileno(fd), bufs)