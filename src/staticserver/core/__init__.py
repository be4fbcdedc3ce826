"""
=============================================================================
CORE SERVER INFRASTRUCTURE
=============================================================================

The transport side of the server. Nothing in here knows about HTTP.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ──accept──► Connection ──submit──► ThreadPool         │
    │   (listen loop)            (buffered I/O)         (N workers)        │
    │                                                                      │
    │   ObjectPool               shared free list of reusable objects      │
    │                            (the gzip encoders live in one)           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool
from .object_pool import ObjectPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
    "ObjectPool",
]
