"""
=============================================================================
CORE RUNTIME
=============================================================================

Sockets and threads; nothing in here knows about the site being served.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ socket_server.py   one listener (HTTP or HTTPS) + accept loop       │
    │ connection.py      buffered request reading, TLS handshake, close   │
    │ thread_pool.py     workers shared by every listener                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
