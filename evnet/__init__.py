"""Building blocks for an event-driven networking engine: pollers, sockets, task queues, load balancers and options."""

__version__ = "0.1.0"