"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything between raw TCP bytes and the import handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │   b"POST / HTTP/1.1\\r\\nContent-Type: ...\\r\\n\\r\\n"                │
    │       → HTTPRequest(method="POST", path="/", headers={...})         │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE BUILDER (response.py)                                      │
    │   ResponseBuilder().header(...).headers([...]).body(...).build()    │
    │       → HTTPResponse → head_bytes() + body                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ STATUS CODES (status_codes.py)                                      │
    │   HTTPStatus.BAD_REQUEST → 400, phrase="Bad Request"                │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,    # 400 Bad Request
    internal_error, # 500 Internal Server Error
    error_json,     # transport-level JSON errors
)
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "bad_request",
    "internal_error",
    "error_json",

    # Status codes
    "HTTPStatus",
]
