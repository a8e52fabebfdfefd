"""
=============================================================================
CONNECTION WORKERS
=============================================================================

One thread per accepted connection, plus the bookkeeping graceful
shutdown needs.

=============================================================================
WHY NOT A POOL?
=============================================================================

Requests here are tiny and independent: no queue to size, no worker
count to tune. Every connection gets its own thread and the operating
system schedules them. What shutdown does need is a registry of what is
still running:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    drain(timeout) Flow                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. close_idle()       keep-alive connections with no request      │
    │          │              are shut down at once                       │
    │          ▼                                                           │
    │   2. wait               until the registry is empty or the          │
    │          │              deadline passes                             │
    │          ▼                                                           │
    │   3. force_close()      whatever is left gets its socket shut       │
    │                         down under it                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The wait is bounded, not a cancellation: a handler that is mid-request
when the deadline passes keeps running until its socket operation fails.

=============================================================================
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional

from .connection import Connection


logger = logging.getLogger(__name__)


class ConnectionWorkers:
    """
    Runs each connection on its own daemon thread and tracks it until it
    finishes.

    Usage:
        workers = ConnectionWorkers()
        workers.spawn(conn, process_connection)
        ...
        if not workers.drain(timeout=20.0):
            workers.force_close()
    """

    def __init__(self):
        self._active: Dict[str, Connection] = {}
        self._changed = threading.Condition()
        self._total = 0

    @property
    def active_count(self) -> int:
        """Connections whose worker has not returned yet."""
        with self._changed:
            return len(self._active)

    @property
    def stats(self) -> dict:
        """Counters for logging and tests."""
        with self._changed:
            return {"active": len(self._active), "total": self._total}

    def spawn(self, conn: Connection, target: Callable[[Connection], None]) -> threading.Thread:
        """
        Start ``target(conn)`` on a new thread.

        The connection is registered before the thread starts and removed
        when ``target`` returns or raises.

        Returns:
            The started thread.
        """
        with self._changed:
            self._active[conn.id] = conn
            self._total += 1

        thread = threading.Thread(
            target=self._run,
            args=(conn, target),
            name=f"conn-{conn.id}",
            daemon=True,
        )
        thread.start()
        return thread

    def _run(self, conn: Connection, target: Callable[[Connection], None]):
        try:
            target(conn)
        finally:
            with self._changed:
                self._active.pop(conn.id, None)
                self._changed.notify_all()

    def close_idle(self) -> int:
        """
        Shut down connections sitting between keep-alive requests.

        Returns:
            How many connections were closed.
        """
        with self._changed:
            idle = [conn for conn in self._active.values() if conn.is_idle]
        for conn in idle:
            logger.debug(f"[{conn.id}] Closing idle connection")
            conn.abort()
        return len(idle)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for every registered connection to finish.

        Args:
            timeout: Maximum seconds to wait. None waits forever.

        Returns:
            True if all connections finished, False if the deadline passed.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._changed:
            while self._active:
                if deadline is None:
                    self._changed.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._changed.wait(remaining)
            return True

    def force_close(self) -> int:
        """
        Shut down every connection still registered.

        Returns:
            How many connections were shut down.
        """
        with self._changed:
            remaining = list(self._active.values())
        for conn in remaining:
            logger.warning(f"[{conn.id}] Forcing connection closed ({conn.state.value})")
            conn.abort()
        return len(remaining)
