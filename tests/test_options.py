import logging
from datetime import timedelta

from evnet.options import (
    LoadBalancing,
    Options,
    TCPSocketOpt,
    load_options,
    with_load_balancing,
    with_lock_os_thread,
    with_log_level,
    with_log_path,
    with_logger,
    with_multicore,
    with_num_event_loop,
    with_options,
    with_read_buffer_cap,
    with_reuse_addr,
    with_reuse_port,
    with_socket_recv_buffer,
    with_socket_send_buffer,
    with_tcp_keep_alive,
    with_tcp_no_delay,
    with_ticker,
    with_write_buffer_cap,
)


def test_enum_values_follow_declaration_order():
    opts = load_options(
        with_load_balancing(LoadBalancing(1)),
        with_tcp_no_delay(TCPSocketOpt(1)),
    )
    assert opts.lb is LoadBalancing.LEAST_CONNECTIONS
    assert opts.tcp_no_delay is TCPSocketOpt.TCP_DELAY
    assert load_options(with_load_balancing(LoadBalancing(2))).lb is LoadBalancing.SOURCE_ADDR_HASH


def test_defaults():
    opts = load_options()
    assert opts == Options()
    assert opts.multicore is False
    assert opts.lb is LoadBalancing.ROUND_ROBIN
    assert opts.tcp_no_delay is TCPSocketOpt.TCP_NO_DELAY
    assert opts.tcp_keep_alive == timedelta(0)
    assert opts.logger is None


def test_each_option_sets_its_field():
    logger = logging.getLogger("evnet-test")
    opts = load_options(
        with_multicore(True),
        with_lock_os_thread(True),
        with_read_buffer_cap(1024),
        with_write_buffer_cap(2048),
        with_load_balancing(LoadBalancing.SOURCE_ADDR_HASH),
        with_num_event_loop(4),
        with_reuse_port(True),
        with_reuse_addr(True),
        with_tcp_keep_alive(timedelta(minutes=1)),
        with_tcp_no_delay(TCPSocketOpt.TCP_DELAY),
        with_socket_recv_buffer(4096),
        with_socket_send_buffer(8192),
        with_ticker(True),
        with_log_path("app.log"),
        with_log_level(logging.ERROR),
        with_logger(logger),
    )
    assert opts.multicore and opts.lock_os_thread and opts.ticker
    assert opts.read_buffer_cap == 1024
    assert opts.write_buffer_cap == 2048
    assert opts.lb is LoadBalancing.SOURCE_ADDR_HASH
    assert opts.num_event_loop == 4
    assert opts.reuse_port and opts.reuse_addr
    assert opts.tcp_keep_alive == timedelta(minutes=1)
    assert opts.tcp_no_delay is TCPSocketOpt.TCP_DELAY
    assert opts.socket_recv_buffer == 4096
    assert opts.socket_send_buffer == 8192
    assert opts.log_path == "app.log"
    assert opts.log_level == logging.ERROR
    assert opts.logger is logger


def test_later_options_override_earlier():
    opts = load_options(with_num_event_loop(2), with_num_event_loop(8))
    assert opts.num_event_loop == 8


def test_with_options_replaces_everything():
    base = Options(multicore=True, num_event_loop=3, log_path="x.log")
    opts = load_options(with_reuse_addr(True), with_options(base))
    assert opts == base
    assert opts is not base
    assert opts.reuse_addr is False


def test_options_after_with_options_still_apply():
    base = Options(num_event_loop=3)
    opts = load_options(with_options(base), with_ticker(True))
    assert opts.num_event_loop == 3
    assert opts.ticker is True
    assert base.ticker is False