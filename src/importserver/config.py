"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know is decided once, at startup, and
held in a frozen ServerConfig that is passed explicitly to the server
and the request handler. Nothing reads configuration from module-level
state.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m importserver --port 1709 --sql                  │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── IMPORT_SERVER_PORT=1709 python -m importserver            │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .content import ContentMode


DEFAULT_PORT = 1709
SHUTDOWN_GRACE_SECONDS = 20.0

_TRUE_VALUES = {"1", "t", "true", "y", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "n", "no", "off", ""}


def parse_bool(value: str) -> bool:
    """
    Parse a boolean flag value.

    Accepts the spellings Go's flag package and most shells use
    (``true``/``false``, ``1``/``0``, ``t``/``f``) plus ``yes``/``no``.

    Raises:
        ValueError: If ``value`` is not a recognised boolean.
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the import server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    CONTENT
    - sql (selects the SQL payload instead of CSV)

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    LIFECYCLE
    - shutdown_timeout

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    port: int = DEFAULT_PORT
    """Port to listen on. Zero means "not supplied" and is rejected."""

    sql: bool = False
    """Serve the SQL script instead of the CSV sample."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Interface to bind. All interfaces by default."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket read timeout in seconds for the first request on a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow several requests on one TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle time before a keep-alive connection is closed."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest request (headers plus body) the server will buffer."""

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE
    # ─────────────────────────────────────────────────────────────────────

    shutdown_timeout: float = SHUTDOWN_GRACE_SECONDS
    """How long in-flight requests may run after a shutdown signal."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    server_name: str = "ImportServer/1.0"
    """Value of the Server response header."""

    @property
    def mode(self) -> ContentMode:
        """The content mode selected by ``sql``."""
        return ContentMode.SQL if self.sql else ContentMode.CSV

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        IMPORT_SERVER_HOST              Bind host (default: 0.0.0.0)
        IMPORT_SERVER_PORT              Port (default: 1709)
        IMPORT_SERVER_SQL               Serve SQL instead of CSV (default: false)
        IMPORT_SERVER_LOG_LEVEL         Logging level (default: INFO)
        IMPORT_SERVER_SHUTDOWN_TIMEOUT  Grace period in seconds (default: 20)

        =====================================================================
        """
        return cls(
            host=os.getenv("IMPORT_SERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("IMPORT_SERVER_PORT", str(DEFAULT_PORT))),
            sql=parse_bool(os.getenv("IMPORT_SERVER_SQL", "false")),
            log_level=os.getenv("IMPORT_SERVER_LOG_LEVEL", "INFO"),
            shutdown_timeout=float(
                os.getenv("IMPORT_SERVER_SHUTDOWN_TIMEOUT", str(SHUTDOWN_GRACE_SECONDS))
            ),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by the server at construction so a bad value fails at
        startup rather than on the first request.

        Raises:
            ValueError: On the first invalid setting found.
        """
        if self.port == 0:
            raise ValueError("must supply --port")

        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 1-65535.")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.shutdown_timeout < 0:
            raise ValueError("shutdown_timeout must be >= 0")
