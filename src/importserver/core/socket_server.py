"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: bind, listen, accept, and the signal handlers
that end the accept loop.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create the listening socket
    2. bind()      Reserve host:port (fails fast if the port is taken)
    3. listen()    Let the kernel queue incoming connections
    4. accept()    Hand each new client socket to the HTTP layer
    5. close()     Release the port

=============================================================================
STOPPING THE ACCEPT LOOP
=============================================================================

shutdown() clears the running flag and shuts the listening socket down.
On Linux that wakes a thread blocked in accept() immediately and makes
the kernel refuse new connections from that moment on. The 1 second
accept timeout is the fallback for platforms where it does not.

SIGTERM and SIGINT call shutdown(). Python only lets the main thread
install signal handlers, so a server started on another thread (tests)
skips that step and is stopped by calling shutdown() directly. The
original handlers are restored as soon as the accept loop exits: a second
Ctrl+C while in-flight requests drain gets the default behavior.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class SocketServer:
    """
    Listening socket plus accept loop.

    Usage:
        def on_connection(conn: Connection):
            ...

        listener = SocketServer(config)
        listener.start(on_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Server configuration (host, port, backlog, timeouts).

        Nothing is bound until start().
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._listening = threading.Event()
        self._previous_handlers: dict = {}

    # =========================================================================
    # SETUP
    # =========================================================================

    def _bind(self) -> socket.socket:
        """
        Create, configure and bind the listening socket.

        Raises:
            OSError: If host:port cannot be bound.
        """
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restart without waiting out TIME_WAIT from the previous run
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        listener.settimeout(1.0)

        try:
            listener.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Cannot bind {self.config.host}:{self.config.port}: {e}")
            listener.close()
            raise
        return listener

    def _install_signal_handlers(self):
        """Route SIGTERM/SIGINT to shutdown(). Main thread only."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        for signum in SHUTDOWN_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._on_signal)

    def _on_signal(self, signum, frame):
        logger.info(f"{signal.Signals(signum).name} received, shutting down")
        self.shutdown()

    def _restore_signal_handlers(self):
        while self._previous_handlers:
            signum, handler = self._previous_handlers.popitem()
            signal.signal(signum, handler)

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections until shutdown().

        Args:
            connection_handler: Called with every accepted Connection.

        Raises:
            OSError: If the address cannot be bound (e.g. port in use).
        """
        self._socket = self._bind()
        self._running = True
        self._install_signal_handlers()

        self._socket.listen(self.config.backlog)
        self._listening.set()
        logger.info(f"Listening on {self.config.host}:{self.config.port}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """Accept connections and hand them off until the running flag drops."""
        while self._running:
            try:
                client_socket, peer = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # shutdown() makes a blocked accept() fail; only log real errors
                if self._running:
                    logger.error(f"accept() failed: {e}")
                break

            if not self._running:
                # Raced with shutdown(); the client gets a reset
                client_socket.close()
                break

            logger.debug(f"Accepted {peer[0]}:{peer[1]}")
            connection_handler(Connection(
                socket=client_socket,
                address=peer,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            ))

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from a signal handler or another thread, and more
        than once.
        """
        if not self._running:
            return
        self._running = False
        logger.info("No longer accepting connections")

        listener = self._socket
        if listener is not None:
            try:
                listener.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # never connected, nothing to wake

    def _cleanup(self):
        """Restore signal handlers and release the port."""
        self._restore_signal_handlers()
        self._listening.clear()
        self._running = False

        listener, self._socket = self._socket, None
        if listener is not None:
            try:
                listener.close()
            except OSError:
                pass

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """Block until start() is accepting connections."""
        return self._listening.wait(timeout)
