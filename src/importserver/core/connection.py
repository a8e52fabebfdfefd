"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered request reading,
keep-alive timeouts and counted response writes.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() hands back arbitrary chunks, so the header block is assembled in
``_buffer`` until its blank line arrives. Only the header block counts
against ``max_request_size``: the importer never looks at a body, so
Content-Length body bytes are read in ``buffer_size`` chunks and thrown
away. Anything after the body stays buffered for the next keep-alive
request.

A chunked body (Transfer-Encoding) is not decoded. Its bytes are left
unread and the server closes the connection after answering, so they are
never mistaken for the next request.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │
                    ▼
                  CLOSED

KEEP_ALIVE is the only state in which a connection holds no request. The
server closes connections in that state straight away on shutdown.

=============================================================================
WRITE INVARIANT
=============================================================================

The response head is written with sendall(). The body is written with a
send() loop so the number of bytes that actually reached the socket is
known. If that number differs from the length the response declared,
IncompleteWriteError is raised. It is never turned into an HTTP error:
the transport broke its contract and the connection cannot be trusted.

=============================================================================
"""

import socket
import time
import logging
import re
from enum import Enum
from dataclasses import dataclass, field
from contextlib import suppress
from typing import Optional
import uuid


logger = logging.getLogger(__name__)


class IncompleteWriteError(RuntimeError):
    """
    The body bytes written differ from the declared Content-Length.

    Attributes:
        written: Bytes that reached the socket.
        expected: Bytes the response declared.
    """

    def __init__(self, written: int, expected: int):
        super().__init__(f"failed to write all contents: wrote {written} of {expected} bytes")
        self.written = written
        self.expected = expected


class ConnectionState(Enum):
    """Connection lifecycle states."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One accepted client socket and its read buffer.

    Attributes:
        socket: The accepted socket.
        address: Peer (ip, port).
        id: Short random tag that prefixes this connection's log lines.
        state: Where the connection is in its lifecycle.
        last_activity: Last successful read or write.
        requests_handled: Complete requests read so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0           # first request
    keep_alive_timeout: float = 5.0           # later requests
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_idle(self) -> bool:
        """True between keep-alive requests, when nothing is in flight."""
        return self.state == ConnectionState.KEEP_ALIVE

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one HTTP request and return its header block.

        The header block is read up to its blank line. Its Content-Length
        body is then read and discarded, and whatever arrives after the
        body stays buffered for the next keep-alive request.

        Returns:
            The header block (request line, headers, blank line), or None
            if the client closed the connection (or stayed idle past
            ``keep_alive_timeout``).

        Raises:
            TimeoutError: If the first request on the connection times out.
            ValueError: If the header block exceeds ``max_request_size``.
        """
        self.last_activity = time.time()

        if self.requests_handled:
            self.socket.settimeout(self.keep_alive_timeout)

        # An idle keep-alive connection stays KEEP_ALIVE until bytes arrive
        if self._buffer:
            self.state = ConnectionState.READING

        try:
            if not self._fill_head():
                return None

            head_size = self._buffer.index(_HEAD_END) + len(_HEAD_END)
            if head_size > self.max_request_size:
                raise ValueError(f"Request headers exceed {self.max_request_size} bytes")

            head, self._buffer = self._buffer[:head_size], self._buffer[head_size:]
            self._discard_body(_declared_body_length(head))

            self.requests_handled += 1
            return head

        except socket.timeout:
            if self.requests_handled:
                logger.debug(f"[{self.id}] No request within keep-alive timeout")
                return None
            raise TimeoutError(f"no complete request within {self.timeout}s")

        finally:
            if self.state != ConnectionState.CLOSED:
                try:
                    self.socket.settimeout(self.timeout)
                except OSError:
                    pass  # aborted from another thread

    def _fill_head(self) -> bool:
        """
        recv() into the buffer until it holds a complete header block.

        Returns:
            False if the peer closed the stream first.

        Raises:
            ValueError: If the buffer grows past ``max_request_size``
                without a header terminator.
        """
        while _HEAD_END not in self._buffer:
            if len(self._buffer) > self.max_request_size:
                raise ValueError(f"Request headers exceed {self.max_request_size} bytes")

            chunk = self._recv()
            if not chunk:
                return False

            self.state = ConnectionState.READING
            self._buffer += chunk
        return True

    def _discard_body(self, length: int):
        """
        Consume ``length`` body bytes without keeping them.

        Buffered bytes go first, then the socket is read in
        ``buffer_size`` chunks. Bytes past the body are kept in the buffer.
        A peer that hangs up mid-body just ends the discard; its request
        is still answered.
        """
        buffered = min(length, len(self._buffer))
        self._buffer = self._buffer[buffered:]
        remaining = length - buffered

        while remaining:
            chunk = self._recv()
            if not chunk:
                logger.debug(f"[{self.id}] Peer closed with {remaining} body bytes unread")
                return
            if len(chunk) > remaining:
                self._buffer = chunk[remaining:]
                return
            remaining -= len(chunk)

    def _recv(self) -> bytes:
        """recv() that reports a reset or aborted peer as end of stream."""
        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            raise
        except OSError as e:
            logger.debug(f"[{self.id}] recv failed: {e}")
            return b""
        self.last_activity = time.time()
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, head: bytes, body: bytes, declared_length: int) -> bool:
        """
        Write a response head and body.

        Args:
            head: Serialized status line and headers.
            body: Body bytes.
            declared_length: The Content-Length the head announced.

        Returns:
            True once everything is written; False if the client went away
            before any body byte could be sent.

        Raises:
            IncompleteWriteError: If the body bytes written differ from
                ``declared_length``.
        """
        self.state = ConnectionState.WRITING

        try:
            self.socket.sendall(head)
        except OSError as e:
            logger.warning(f"[{self.id}] Could not write response head: {e}")
            return False

        written = self._write(body)
        self.last_activity = time.time()

        if written != declared_length:
            raise IncompleteWriteError(written, declared_length)
        return True

    def _write(self, data: bytes) -> int:
        """
        send() until ``data`` is written or the socket stops accepting.

        Returns:
            Number of bytes written.
        """
        view = memoryview(data)
        written = 0
        while written < len(view):
            try:
                sent = self.socket.send(view[written:])
            except OSError as e:
                logger.warning(f"[{self.id}] Body write failed after {written} bytes: {e}")
                break
            if sent == 0:
                break
            written += sent
        return written

    # =========================================================================
    # CLOSING
    # =========================================================================

    def abort(self):
        """
        Shut the socket down in both directions without closing it.

        Safe to call from another thread: a worker blocked in recv()
        wakes up with end-of-stream and closes the connection itself.
        """
        try:
            self.socket.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # already disconnected

    def close(self):
        """
        Send FIN, discard what the client still has in flight, release the
        descriptor. Idempotent.
        """
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        with suppress(OSError):
            self.socket.shutdown(socket.SHUT_WR)

        # Drain to EOF so late client bytes do not trigger a RST
        with suppress(OSError):
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass

        with suppress(OSError):
            self.socket.close()

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Closed after {self.requests_handled} request(s)")

    def set_keep_alive(self):
        """Mark the connection idle, waiting for the next request."""
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


_HEAD_END = b"\r\n\r\n"
_CONTENT_LENGTH = re.compile(rb"^content-length:[ \t]*(\d+)[ \t]*\r?$", re.IGNORECASE | re.MULTILINE)
_TRANSFER_ENCODING = re.compile(rb"^transfer-encoding:", re.IGNORECASE | re.MULTILINE)


def _declared_body_length(head: bytes) -> int:
    """
    Body bytes to discard after a raw header block.

    0 when Content-Length is absent or malformed, and for a
    Transfer-Encoding body, which is left unread.
    """
    if _TRANSFER_ENCODING.search(head):
        return 0

    match = _CONTENT_LENGTH.search(head)
    return int(match.group(1)) if match else 0
