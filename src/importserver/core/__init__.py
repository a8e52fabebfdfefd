"""
=============================================================================
CORE TRANSPORT COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer        listening socket, accept loop, signals         │
    │  Connection          one client socket: read requests, write        │
    │                      responses, count body bytes                    │
    │  ConnectionWorkers   thread per connection, in-flight registry,     │
    │                      bounded drain on shutdown                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, IncompleteWriteError
from .workers import ConnectionWorkers

__all__ = [
    "SocketServer",          # Accepts connections
    "Connection",            # Client socket wrapper
    "ConnectionState",       # Connection lifecycle states
    "IncompleteWriteError",  # Body write invariant violation
    "ConnectionWorkers",     # Thread per connection + drain
]
