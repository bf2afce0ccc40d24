# evnet

Low-level building blocks for an event-driven networking engine on Linux and
the BSDs (including macOS). The package has no dependencies outside the
standard library.

## Modules

- `evnet.netpoll.poller` — `open_poller()` returns an `EpollPoller` on Linux
  or a `KqueuePoller` on macOS, FreeBSD and DragonFly, and raises `OSError`
  elsewhere.
- `evnet.netpoll.epoll_poller` / `evnet.netpoll.kqueue_poller` — pollers that
  watch descriptors (`add_read`, `add_write`, `add_read_write`, `mod_read`,
  `mod_read_write`, `delete`) and run tasks queued from other threads with
  `trigger` (ordinary) or `urgent_trigger` (urgent). `polling(callback)`
  blocks and hands each ready descriptor to `callback`, or to the callback of
  the `PollAttachment` it was registered with when `callback` is `None`.
  Polling stops by raising `AcceptSocketError` or `EngineShutdownError` when a
  handler or task raises one; other errors are logged and polling goes on.
  Both pollers are context managers and have `close()`.
- `evnet.netpoll.events` — event masks (`IN_EVENTS`, `OUT_EVENTS`,
  `ERR_EVENTS`, `EV_FILTER_READ`, `EV_FILTER_WRITE`, `EV_FILTER_SOCK`),
  capacity limits, the stop errors and `EventList`, which doubles or halves
  the number of events collected per wait within its bounds.
- `evnet.netpoll.attachment` — `PollAttachment` (a descriptor and its
  handler) and `dup(fd)`, which duplicates a descriptor close-on-exec.
- `evnet.sockets` — `tcp_socket`, `udp_socket` and `unix_socket` create
  non-blocking sockets, apply `SocketOption`s, bind, and then listen or
  connect; `get_tcp_sock_addr`, `get_udp_sock_addr` and `get_unix_sock_addr`
  resolve textual addresses; `max_listener_backlog()` reports the backlog
  used for listening. Unknown networks raise `UnsupportedProtocolError` or
  one of its subclasses.
- `evnet.sockopts` — `set_no_delay`, `set_reuseport`, `set_reuse_addr`,
  `set_recv_buffer`, `set_send_buffer`, `set_ipv6_only`, `set_linger` and
  `set_keep_alive_period`, taking a socket object or a raw descriptor.
- `evnet.sockaddr` — `TCPAddr`, `UDPAddr`, `UnixAddr`, and conversion from
  raw socket addresses with `sockaddr_to_tcp_or_unix_addr` and
  `sockaddr_to_udp_addr`.
- `evnet.taskqueue` — `Task` and `LockFreeQueue`, a thread-safe FIFO whose
  `dequeue()` returns `None` when empty.
- `evnet.load_balancer` — `RoundRobinLoadBalancer`,
  `LeastConnectionsLoadBalancer` and `SourceAddrHashLoadBalancer` (CRC-32 of
  the remote address) for spreading connections over event loops.
- `evnet.options` — the `Options` dataclass, `load_options(*options)` and
  the `with_*` option functions, plus the `LoadBalancing` and `TCPSocketOpt`
  enums.
- `evnet.listener` — `init_listener(network, addr, options)` builds a
  `Listener` for `tcp`, `tcp4`, `tcp6`, `udp`, `udp4`, `udp6` or `unix`,
  turning the options into socket options.
- `evnet.iov` — `writev` and `readv` for scatter/gather I/O.
- `evnet.toolkit` — power-of-two rounding and lossless bytes/text conversion.

## Examples

Open a poller and stop it from a task:

```python
from evnet.netpoll.poller import open_poller
from evnet.netpoll.events import EngineShutdownError

def stop(_arg):
    raise EngineShutdownError()

with open_poller() as poller:
    poller.urgent_trigger(stop, None)
    try:
        poller.polling(lambda fd, event: None)
    except EngineShutdownError:
        pass
```

Create a listener:

```python
from evnet.options import load_options, with_reuse_addr
from evnet.listener import init_listener

options = load_options(with_reuse_addr(True))
with init_listener("tcp", "127.0.0.1:0", options) as ln:
    print(ln.network, ln.sock.getsockname())
```

`Listener.addr` holds the address as it was resolved from the text given,
so with port 0 it shows port 0; ask the socket for the port actually bound.

Pick an event loop for a connection:

```python
from evnet.load_balancer import RoundRobinLoadBalancer

class Loop:
    def __init__(self):
        self.idx = -1
        self.connections = 0

    def load_conn(self):
        return self.connections

lb = RoundRobinLoadBalancer()
for loop in (Loop(), Loop(), Loop()):
    lb.register(loop)
print(lb.next(None).idx, lb.next(None).idx)  # 0 1
```

## What the package does not do

There is no engine, event loop, connection type or server here, and no
command to run: the package provides the pieces such an engine is built
from. `Options` only stores settings; nothing in the package reads
`multicore`, `num_event_loop`, `lb`, buffer caps, `ticker`, `log_path`,
`log_level` or `logger`, and the only settings acted on are the socket
options that `init_listener` applies. No logging to files is set up; the
modules log through the standard `logging` module.

## Running the tests

```
pip install .[test]
pytest
```