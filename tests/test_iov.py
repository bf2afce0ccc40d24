import os
import socket

import pytest

from evnet.iov import readv, writev


@pytest.fixture
def pipe():
    r, w = os.pipe()
    yield r, w
    os.close(r)
    os.close(w)


def test_writev_gathers_buffers(pipe):
    r, w = pipe
    assert writev(w, [b"ab", b"cd"]) == 4
    assert os.read(r, 16) == b"abcd"


def test_writev_with_empty_chunk(pipe):
    r, w = pipe
    assert writev(w, [b"", b"x"]) == 1
    assert os.read(r, 16) == b"x"


def test_empty_lists_do_nothing(pipe):
    r, w = pipe
    assert writev(w, []) == 0
    assert readv(r, []) == 0


def test_readv_scatters_into_buffers(pipe):
    r, w = pipe
    os.write(w, b"hello")
    first, second = bytearray(2), bytearray(3)
    assert readv(r, [first, second]) == 5
    assert bytes(first) == b"he"
    assert bytes(second) == b"llo"


def test_round_trip(pipe):
    r, w = pipe
    chunks = [b"one", b"two", b"three"]
    written = writev(w, chunks)
    bufs = [bytearray(len(c)) for c in chunks]
    assert readv(r, bufs) == written
    assert [bytes(b) for b in bufs] == chunks


def test_accepts_objects_with_fileno():
    a, b = socket.socketpair()
    with a, b:
        assert writev(a, [b"xy", b"z"]) == 3
        buf = bytearray(3)
        assert readv(b, [buf]) == 3
        assert bytes(buf) == b"xyz"


def test_invalid_descriptor_raises():
    r, w = os.pipe()
    os.close(r)
    os.close(w)
    with pytest.raises(OSError):
        writev(w, [b"data"])