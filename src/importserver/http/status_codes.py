"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server can emit, with their reason phrases.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ Payload served                                            │
    │  400   │ Wrong method, missing Content-Type, or malformed request  │
    │  408   │ Client too slow sending the request                       │
    │  413   │ Request larger than max_request_size                      │
    │  500   │ Checksum or handler failure                               │
    │  505   │ HTTP version other than 1.0 / 1.1                         │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    OK = 200
    BAD_REQUEST = 400
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 400 Bad Request
                     ─── ───────────
                      │       └── phrase
                      └────────── status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        """True for 2xx codes."""
        return 200 <= self < 300

    @property
    def is_client_error(self) -> bool:
        """True for 4xx codes."""
        return 400 <= self < 500

    @property
    def is_server_error(self) -> bool:
        """True for 5xx codes."""
        return 500 <= self < 600

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes. Used to pick the access-log level."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
