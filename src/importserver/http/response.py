"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

HTTPResponse holds what the handler decided to send; ResponseBuilder is
the fluent way to put one together.

=============================================================================
ORDERED, REPEATABLE HEADERS
=============================================================================

Import metadata uses a multi-value header:

    X-Import-Primary-Keys: pk
    X-Import-Primary-Keys: col1

A dict cannot carry that, so headers are kept as an ordered list of
(name, value) pairs. ``set_header`` replaces every existing value for a
name; ``add_header`` appends another one.

=============================================================================
HEAD AND BODY
=============================================================================

Serialization is split in two so the connection can write the body on
its own and count exactly how many body bytes reached the socket:

    head_bytes()                          body
    ─────────────────────────────         ──────────────
    HTTP/1.1 200 OK\\r\\n                   pk,col1,col2,col3\\n
    Content-Length: 42\\r\\n                1,a,b,c\\n
    ...\\r\\n                               ...
    \\r\\n

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Tuple, Iterable, Any, Union
import json

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """
    An HTTP response to be sent to the client.

    Attributes:
        status:  Status code.
        headers: Ordered (name, value) pairs; names may repeat.
        body:    Body bytes.
        version: Protocol version for the status line.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Set a header, replacing any existing values for ``name``.

        Returns:
            Self for method chaining.
        """
        lowered = name.lower()
        self.headers = [(n, v) for n, v in self.headers if n.lower() != lowered]
        self.headers.append((name, value))
        return self

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Append a header value, keeping any existing ones.

        Returns:
            Self for method chaining.
        """
        self.headers.append((name, value))
        return self

    def setdefault_header(self, name: str, value: str) -> "HTTPResponse":
        """Set ``name`` only if it is not present yet."""
        if not self.has_header(name):
            self.headers.append((name, value))
        return self

    def has_header(self, name: str) -> bool:
        """Whether at least one value for ``name`` is present."""
        lowered = name.lower()
        return any(n.lower() == lowered for n, _ in self.headers)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value for ``name`` (case-insensitive), or ``default``."""
        values = self.get_all(name)
        return values[0] if values else default

    def get_all(self, name: str) -> List[str]:
        """Every value for ``name``, in the order they were added."""
        lowered = name.lower()
        return [v for n, v in self.headers if n.lower() == lowered]

    @property
    def declared_length(self) -> int:
        """
        The length the response promises the client.

        The explicit Content-Length header if one was set, otherwise the
        body length that ``head_bytes`` will advertise.
        """
        value = self.get_header("Content-Length")
        if value is None:
            return len(self.body)
        return int(value)

    def head_bytes(self, server_name: str = "ImportServer/1.0") -> bytes:
        """
        Serialize the status line and headers.

        Content-Length, Date and Server are added when the handler did
        not set them.

        Args:
            server_name: Value for the Server header.

        Returns:
            Status line, header lines and the blank separator line.
        """
        response_headers = list(self.headers)
        names = {n.lower() for n, _ in response_headers}

        if "content-length" not in names:
            response_headers.append(("Content-Length", str(len(self.body))))
        if "date" not in names:
            response_headers.append(("Date", format_http_date(datetime.now(timezone.utc))))
        if "server" not in names:
            response_headers.append(("Server", server_name))

        lines = [self.status_line]
        for name, value in response_headers:
            lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("iso-8859-1") + b"\r\n"


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Content-Length", "42")
            .headers(import_headers(mode))
            .body(payload)
            .build())

    Every method except ``build`` returns ``self``.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: List[Tuple[str, str]] = []
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        """Set the status code."""
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """Set a header, replacing earlier values for the same name."""
        lowered = name.lower()
        self._headers = [(n, v) for n, v in self._headers if n.lower() != lowered]
        self._headers.append((name, value))
        return self

    def add_header(self, name: str, value: str) -> "ResponseBuilder":
        """Append a header value; earlier values are kept."""
        self._headers.append((name, value))
        return self

    def headers(self, headers: Iterable[Tuple[str, str]]) -> "ResponseBuilder":
        """Append every (name, value) pair, preserving order and repeats."""
        for name, value in headers:
            self.add_header(name, value)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        """Set the Content-Type header."""
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the body. Strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        """Plain text body with a text/plain Content-Type."""
        self._body = text.encode("utf-8")
        return self.content_type(content_type)

    def json(self, data: Any) -> "ResponseBuilder":
        """JSON body with an application/json Content-Type."""
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        return self.content_type("application/json; charset=utf-8")

    def close_connection(self) -> "ResponseBuilder":
        """Tell the client the connection closes after this response."""
        return self.header("Connection", "close")

    def build(self) -> HTTPResponse:
        """Construct the HTTPResponse."""
        return HTTPResponse(
            status=self._status,
            headers=list(self._headers),
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    HTTP dates are always GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def bad_request(message: str = "") -> HTTPResponse:
    """
    400 Bad Request.

    With a message the body is that text (text/plain); without one the
    body is empty and no Content-Type is sent.
    """
    builder = ResponseBuilder().status(HTTPStatus.BAD_REQUEST)
    if message:
        builder.text(message)
    return builder.build()


def internal_error() -> HTTPResponse:
    """500 Internal Server Error with an empty body."""
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).build()


def error_json(status: HTTPStatus, message: str) -> HTTPResponse:
    """
    Error response with a JSON body, closing the connection.

    Used by the transport layer for failures that happen before a request
    reaches the handler (parse errors, timeouts).
    """
    return (ResponseBuilder()
        .status(status)
        .json({"error": message})
        .close_connection()
        .build())
