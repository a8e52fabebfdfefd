"""
=============================================================================
IMPORT SERVER
=============================================================================

Ties the transport, the HTTP layer and the import handler together and
owns the server lifecycle.

=============================================================================
LIFECYCLE
=============================================================================

    Stopped ──run()──► Listening ──SIGINT/SIGTERM/shutdown()──► ShuttingDown
                                                                    │
                          Stopped ◄──── drained or deadline ────────┘

    Listening      every accepted connection gets its own worker thread;
                   every path is served by ImportHandler
    ShuttingDown   listening socket shut (new connections refused),
                   idle keep-alive connections closed, in-flight requests
                   get shutdown_timeout seconds (20 by default), then any
                   connection left is forced closed

A bind failure (port already in use) raises OSError out of run().

=============================================================================
REQUEST LIFECYCLE
=============================================================================

    1. SocketServer accepts the TCP connection
    2. ConnectionWorkers starts a thread for it
    3. Connection reads one request; RequestParser parses it
    4. Middleware (access log) → ImportHandler
    5. Connection writes head, then body, counting body bytes
    6. Keep-alive: back to 3. Otherwise (or when shutting down): close

=============================================================================
"""

import logging
import threading
from typing import Optional, Callable

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ConnectionWorkers, IncompleteWriteError
from .handler import ImportHandler
from .http import (
    HTTPRequest, RequestParser, HTTPParseError,
    HTTPResponse, HTTPStatus, error_json,
)
from .middleware import MiddlewarePipeline, Middleware


logger = logging.getLogger(__name__)


class ImportServer:
    """
    HTTP server that answers every POST with the configured import payload.

    Usage:
        server = ImportServer(ServerConfig(port=1709, sql=True))
        server.use(LoggingMiddleware())
        server.run()   # blocks until SIGINT/SIGTERM or shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration. Validated here, so a bad value
                    fails before anything binds.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config
        self.config.validate()

        # ─────────────────────────────────────────────────────────────────
        # CORE COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._socket_server = SocketServer(self.config)
        self._workers = ConnectionWorkers()
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        # ─────────────────────────────────────────────────────────────────
        # APPLICATION COMPONENTS
        # ─────────────────────────────────────────────────────────────────
        self._import_handler = ImportHandler(self.config)
        self._middleware = MiddlewarePipeline()

        # Built in run(): middleware wrapped around the import handler
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None

        self._draining = threading.Event()

    # =========================================================================
    # CONFIGURATION
    # =========================================================================

    def use(self, middleware: Middleware) -> "ImportServer":
        """
        Add middleware. First added runs outermost.

        Returns:
            Self for method chaining.
        """
        self._middleware.add(middleware)
        return self

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket accepts connections."""
        return self._socket_server.wait_until_listening(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Serve until SIGINT/SIGTERM or shutdown(), then drain (blocking).

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        self._setup_logging()
        self._handler = self._middleware.wrap(self._import_handler)
        self._draining.clear()

        logger.info(
            f"Serving http on :{self.config.port} "
            f"({self.config.mode.value} payload, {len(self._middleware)} middleware)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

        self._shutdown()

    def shutdown(self):
        """
        Begin a graceful shutdown.

        Returns immediately; run() performs the drain and returns when it
        is done. Safe to call from any thread.
        """
        self._socket_server.shutdown()

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("importserver").setLevel(level)

    def _shutdown(self):
        """
        Graceful shutdown.

        1. Refuse new work (the accept loop has already stopped)
        2. Close idle keep-alive connections
        3. Wait up to shutdown_timeout for in-flight requests
        4. Force-close whatever is still open
        """
        logger.info("http server is shutting down")
        self._draining.set()

        closed = self._workers.close_idle()
        if closed:
            logger.debug(f"Closed {closed} idle connection(s)")

        if not self._workers.drain(self.config.shutdown_timeout):
            logger.warning(
                f"failed to shutdown http server: {self._workers.active_count} connection(s) "
                f"still active after {self.config.shutdown_timeout:g}s"
            )
            self._workers.force_close()

        logger.info(f"Server stopped after {self._workers.stats['total']} connection(s)")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Start a worker for a newly accepted connection."""
        if self._draining.is_set():
            conn.close()
            return
        self._workers.spawn(conn, self._process_connection)

    def _process_connection(self, conn: Connection):
        """
        Serve requests on one connection (runs in its worker thread).

        A request that has been read is always answered, even if shutdown
        started meanwhile; the answer then carries "Connection: close".

        Raises:
            IncompleteWriteError: Re-raised after logging; it ends this
                worker and closes the connection.
        """
        with conn:
            while True:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        self._send_error(conn, HTTPStatus(e.status_code), str(e))
                        break

                    conn.state = ConnectionState.PROCESSING

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = error_json(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

                    keep_alive = self._should_keep_alive(request, response)
                    if keep_alive:
                        response.setdefault_header("Connection", "keep-alive")
                        response.setdefault_header(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.set_header("Connection", "close")

                    sent = conn.send_response(
                        response.head_bytes(self.config.server_name),
                        response.body,
                        response.declared_length,
                    )
                    if not sent or not keep_alive:
                        break

                    conn.set_keep_alive()
                    if self._draining.is_set():
                        break

                except IncompleteWriteError as e:
                    logger.critical(f"[{conn.id}] {e}")
                    raise

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except ValueError as e:
                    # Raised by read_request when the header block is too large
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _should_keep_alive(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        if not (self.config.keep_alive and request.is_keep_alive):
            return False
        if request.get_header("transfer-encoding"):
            # The encoded body was left unread on the socket
            return False
        if self._draining.is_set():
            return False
        return (response.get_header("Connection") or "").lower() != "close"

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Answer a request that never reached the handler."""
        logger.warning(f"[{conn.id}] {int(status)} {status.phrase}: {message}")
        response = error_json(status, message)
        conn.send_response(
            response.head_bytes(self.config.server_name),
            response.body,
            response.declared_length,
        )


def create_server(config: ServerConfig, access_log: bool = True) -> ImportServer:
    """
    Build an ImportServer with the standard middleware.

    Args:
        config: Server configuration.
        access_log: Add LoggingMiddleware.

    Returns:
        A server ready for run().
    """
    from .middleware import LoggingMiddleware

    server = ImportServer(config)
    if access_log:
        server.use(LoggingMiddleware())
    return server
