import os
import socket

import pytest

from evnet.listener import Listener, init_listener
from evnet.options import Options, TCPSocketOpt
from evnet.sockaddr import TCPAddr, UDPAddr, UnixAddr
from evnet.sockets import UnsupportedProtocolError
from evnet.sockopts import set_no_delay, set_recv_buffer, set_reuse_addr, set_reuseport


@pytest.fixture
def tcp_listener():
    ln = init_listener("tcp4", "127.0.0.1:0", Options())
    yield ln
    ln.close()


def test_tcp_listener_accepts_connections(tcp_listener):
    assert tcp_listener.network == "tcp"
    assert isinstance(tcp_listener.addr, TCPAddr)
    port = tcp_listener.sock.getsockname()[1]
    assert port > 0
    with socket.create_connection(("127.0.0.1", port), timeout=5) as client:
        assert client.getpeername()[1] == port


def test_tcp_no_delay_is_set_by_default(tcp_listener):
    value = tcp_listener.sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY)
    assert value != 0
    assert [o.set_sock_opt for o in tcp_listener.sock_opts] == [set_no_delay]


def test_tcp_delay_leaves_nagle_on():
    with init_listener("tcp", "127.0.0.1:0", Options(tcp_no_delay=TCPSocketOpt.TCP_DELAY)) as ln:
        assert ln.sock.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) == 0
        assert ln.sock_opts == []


def test_option_order_and_values():
    opts = Options(reuse_port=True, reuse_addr=True, socket_recv_buffer=65536)
    with init_listener("tcp", "127.0.0.1:0", opts) as ln:
        assert [o.set_sock_opt for o in ln.sock_opts] == [
            set_reuseport, set_reuse_addr, set_no_delay, set_recv_buffer,
        ]
        assert ln.sock_opts[-1].opt == 65536
        assert ln.sock.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0
        assert ln.sock.getsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF) >= 65536


def test_udp_listener_gets_reuseport_and_normalized_network():
    with init_listener("udp4", "127.0.0.1:0", Options()) as ln:
        assert ln.network == "udp"
        assert isinstance(ln.addr, UDPAddr)
        assert [o.set_sock_opt for o in ln.sock_opts] == [set_reuseport]
        assert ln.sock.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT) != 0
        assert ln.sock.type == socket.SOCK_DGRAM


def test_unix_listener_replaces_and_removes_path(tmp_path):
    path = str(tmp_path / "s.sock")
    with open(path, "w") as fh:
        fh.write("stale")
    ln = init_listener("unix", path, Options())
    try:
        assert ln.network == "unix"
        assert ln.addr == UnixAddr(path)
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as client:
            client.connect(path)
            assert client.getpeername() == path
    finally:
        ln.close()
    assert not os.path.exists(path)


def test_unsupported_network_raises():
    with pytest.raises(UnsupportedProtocolError):
        init_listener("ip", "127.0.0.1:0", Options())


def test_close_is_idempotent(tcp_listener):
    tcp_listener.close()
    tcp_listener.close()
    assert tcp_listener.fd == -1


def test_pack_poll_attachment(tcp_listener):
    def handler(fd, ev):
        return None

    pa = tcp_listener.pack_poll_attachment(handler)
    assert pa.fd == tcp_listener.fd
    assert pa.callback is handler
    assert tcp_listener.poll_attachment is pa


def test_dup_refers_to_same_socket(tcp_listener):
    new_fd = tcp_listener.dup()
    try:
        assert new_fd != tcp_listener.fd
        assert os.fstat(new_fd).st_ino == os.fstat(tcp_listener.fd).st_ino
        assert os.get_inheritable(new_fd) is False
    finally:
        os.close(new_fd)


def test_unbuilt_listener_has_no_descriptor():
    ln = Listener("tcp", "127.0.0.1:0")
    assert ln.fd == -1
    ln.close()
    assert ln.sock is None