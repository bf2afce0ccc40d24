"""Small numeric and byte/string helpers shared by the networking code."""

from __future__ import annotations

_BITSIZE = 64
_MAXINT_HEAD_BIT = 1 << (_BITSIZE - 2)

_TEXT_ENCODING = "utf-8"
_TEXT_ERRORS = "surrogateescape"


def is_power_of_two(n: int) -> bool:
    """Report whether ``n`` is a power of two (zero counts, as with the bit test)."""
    return n & (n - 1) == 0


def ceil_to_power_of_two(n: int) -> int:
    """Return the least power of two that is >= ``n`` (never less than 2)."""
    if n > _MAXINT_HEAD_BIT:
        raise ValueError("argument is too large")
    if n <= 2:
        return 2
    return 1 << (n - 1).bit_length()


def floor_to_power_of_two(n: int) -> int:
    """Return the greatest power of two that is <= ``n`` (never less than 2)."""
    if n <= 2:
        return 2
    return 1 << (n.bit_length() - 1)


def bytes_to_string(b: bytes | bytearray | memoryview) -> str:
    """Convert raw bytes to text losslessly; undecodable bytes survive a round trip."""
    return bytes(b).decode(_TEXT_ENCODING, errors=_TEXT_ERRORS)


def string_to_bytes(s: str) -> bytes:
    """Convert text back to the bytes it was made from."""
    return s.encode(_TEXT_ENCODING, errors=_TEXT_ERRORS)