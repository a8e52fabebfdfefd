"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes read by a Connection into an HTTPRequest.

    Raw bytes                  HTTPRequest                 ImportHandler
    from socket    ──parse──►   dataclass    ──────────►   (POST only)

The importer only cares about three things in a request: the method, the
presence of a Content-Type header, and (for keep-alive) the Connection
header. Connection discards request bodies before they get here, so the
parser normally sees the header block alone and a short or missing body
is not an error.

=============================================================================
LENIENCY
=============================================================================

Any method token is accepted here. Rejecting non-POST methods is the
handler's job and it answers 400 with a fixed message, so the parser must
not turn an unknown method into a different status first.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import parse_qs, urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the status code that should be returned to the client:

        400 Bad Request                - Malformed request syntax
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         Request method as sent ("POST", "GET", ...).
        path:           Request path without the query string.
        version:        "HTTP/1.1" or "HTTP/1.0".
        headers:        Header values keyed by LOWERCASE name. Repeated
                        headers are joined with ", ".
        query_params:   Parsed query string, name -> list of values.
        body:           Whatever body bytes came with the header block,
                        usually none. The importer ignores the body.
        client_address: (ip, port) of the peer.
    """

    method: str
    path: str = "/"
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def content_type(self) -> Optional[str]:
        """
        The Content-Type header exactly as sent, or None when it is
        absent or empty.

        The value is not normalised or validated; only its presence
        matters to the importer.
        """
        return self.headers.get("content-type") or None

    @property
    def content_length(self) -> int:
        """Content-Length as an integer, 0 when missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        """The User-Agent header value."""
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

        HTTP/1.1 defaults to keep-alive unless "Connection: close".
        HTTP/1.0 defaults to close unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        1. Size check              too large → HTTPParseError(413)
        2. Find \\r\\n\\r\\n          missing   → HTTPParseError(400)
        3. Request line            METHOD SP TARGET SP VERSION
        4. Headers                 "Name: Value", names lower-cased
        5. Body                    up to Content-Length bytes, if present

    ==========================================================================
    """

    # RFC 7230 token characters for the method.
    REQUEST_LINE_PATTERN = re.compile(r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        """
        Args:
            max_request_size: Largest request accepted, in bytes.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("iso-8859-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # ─────────────────────────────────────────────────────────────────
        # BODY
        # ─────────────────────────────────────────────────────────────────
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, Dict[str, list[str]], str]:
        """
        Split "METHOD TARGET VERSION" into its parts.

        Returns:
            Tuple of (method, path, query_params, version).

        Raises:
            HTTPParseError: On a malformed line or unsupported version.
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dict keyed by lowercase name.

        Continuation lines (leading space or tab) are folded into the
        previous header. Repeated headers are joined with ", " as
        RFC 7230 allows. Lines without a colon are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] = f"{headers[current_name]} {line.strip()}".strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers and headers[name]:
                headers[name] = f"{headers[name]}, {value}" if value else headers[name]
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """
    Parse one request with a throwaway RequestParser.

    Args:
        data: Raw HTTP request bytes.
        client_address: Client's (ip, port) tuple.
        max_size: Maximum allowed request size.

    Returns:
        Parsed HTTPRequest.
    """
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
