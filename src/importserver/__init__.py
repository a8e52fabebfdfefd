"""
=============================================================================
IMPORTSERVER - Fixture HTTP Server for Import Clients
=============================================================================

A small HTTP/1.1 server, built on raw sockets, that answers every POST
with a fixed import payload: either a CSV sample or a SQL script. Along
with the body it sends the metadata an import client needs (file name,
target table, operation, primary keys) and an MD5 checksum, so clients
can be exercised end to end without a real data source.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    importserver/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m importserver)
    ├── server.py            # ImportServer lifecycle
    ├── config.py            # ServerConfig dataclass
    ├── content.py           # CSV/SQL payloads and checksum
    ├── headers.py           # Import metadata headers per mode
    ├── handler.py           # POST handler
    ├── core/                # Transport
    │   ├── socket_server.py # Listening socket, accept loop, signals
    │   ├── connection.py    # Client socket, counted body writes
    │   └── workers.py       # Thread per connection, drain
    ├── http/                # HTTP message layer
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   └── status_codes.py  # Status enum
    └── middleware/          # Middleware pipeline
        ├── base.py          # Base classes
        └── logging.py       # Access log

=============================================================================
QUICK START
=============================================================================

    from importserver import ImportServer, ServerConfig
    from importserver.middleware import LoggingMiddleware

    server = ImportServer(ServerConfig(port=1709, sql=False))
    server.use(LoggingMiddleware())
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .content import ContentMode, ContentHolder, new_contents
from .handler import ImportHandler
from .server import ImportServer, create_server

__all__ = [
    "ImportServer",
    "create_server",
    "ServerConfig",
    "ContentMode",
    "ContentHolder",
    "new_contents",
    "ImportHandler",
    "__version__",
]
