import os

import pytest

from evnet.netpoll.attachment import PollAttachment, dup


@pytest.fixture
def pipe():
    r, w = os.pipe()
    yield r, w
    for fd in (r, w):
        try:
            os.close(fd)
        except OSError:
            pass


def test_attachment_defaults():
    pa = PollAttachment()
    assert pa.fd == 0
    assert pa.callback is None


def test_attachment_callback_receives_fd_and_events():
    seen = []
    pa = PollAttachment(fd=7, callback=lambda fd, ev: seen.append((fd, ev)))
    pa.callback(pa.fd, 1)
    assert seen == [(7, 1)]


def test_dup_returns_working_descriptor(pipe):
    r, w = pipe
    copy = dup(r)
    try:
        assert copy != r
        os.write(w, b"ping")
        assert os.read(copy, 4) == b"ping"
    finally:
        os.close(copy)


def test_dup_is_close_on_exec(pipe):
    r, _ = pipe
    copy = dup(r)
    try:
        assert os.get_inheritable(copy) is False
    finally:
        os.close(copy)


def test_dup_survives_closing_original(pipe):
    r, w = pipe
    copy = dup(w)
    try:
        os.close(w)
        os.write(copy, b"x")
        assert os.read(r, 1) == b"x"
    finally:
        os.close(copy)


def test_dup_of_closed_descriptor_raises(pipe):
    r, _ = pipe
    os.close(r)
    with pytest.raises(OSError):
        dup(r)