"""
=============================================================================
CORE TRANSPORT COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  • Creates, binds and listens on the TCP socket                     │
    │  • Runs the accept() loop on the calling thread                     │
    │  • Handles SIGINT/SIGTERM when that thread is the main thread       │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ raw TCP connections
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                 │
    │  • Bounded queue of connection tasks                                │
    │  • min..max worker threads                                          │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one worker per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  • TLS handshake + policy floor check                               │
    │  • Buffered request reads over the encrypted stream                 │
    │  • Keep-alive and close                                             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState, RequestTooLargeError
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Task, Worker, WorkerState

__all__ = [
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "SocketServer",
    "ThreadPool",
    "Task",
    "Worker",
    "WorkerState",
]
