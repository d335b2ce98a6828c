"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

    SocketServer          accepts TCP connections (one sequential loop)
          │
          │ hands off each connection, never waits
          ▼
    ThreadPerConnection   one thread per connection (default)
    ThreadPool            or a bounded set of workers
          │
          ▼
    Connection            buffered reads, single write, closed exactly once

=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPerConnection, ThreadPool, create_worker_policy


__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ThreadPerConnection",
    "ThreadPool",
    "create_worker_policy",
]
