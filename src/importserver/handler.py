"""
=============================================================================
IMPORT REQUEST HANDLER
=============================================================================

Answers every request that reaches the server, whatever its path.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌──────────────────────┐
    │ method == POST ?     │── no ──► 400 "only POST requests supported."
    └──────────┬───────────┘
               │ yes
    ┌──────────▼───────────┐
    │ Content-Type set ?   │── no ──► 400, empty body
    └──────────┬───────────┘
               │ yes
    ┌──────────▼───────────┐
    │ fresh ContentHolder  │   CSV or SQL, per config.mode
    └──────────┬───────────┘
    ┌──────────▼───────────┐
    │ checksum()           │── ChecksumError ──► 500, empty body
    └──────────┬───────────┘
    ┌──────────▼───────────┐
    │ Content-Length       │
    │ import headers       │
    │ X-Import-Md5         │
    └──────────┬───────────┘
               ▼
         200 + payload

Only the presence of Content-Type is checked. Its value is logged and
otherwise ignored; importers send a variety of types and all of them
get the same payload.

=============================================================================
"""

import logging

from .config import ServerConfig
from .content import ChecksumError, new_contents
from .headers import import_headers
from .http import HTTPRequest, HTTPResponse, HTTPStatus, ResponseBuilder, bad_request, internal_error


logger = logging.getLogger(__name__)

UNSUPPORTED_METHOD_MESSAGE = "only POST requests supported."


class ImportHandler:
    """
    Serves the configured import payload.

    Stateless across requests: every call builds its own ContentHolder,
    so concurrent calls from different connection threads share nothing
    but the frozen config.

    Usage:
        handler = ImportHandler(ServerConfig(port=1709, sql=True))
        response = handler(request)
    """

    def __init__(self, config: ServerConfig):
        self.config = config

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        """
        Handle one request.

        Args:
            request: The parsed request.

        Returns:
            The response to send.
        """
        # ─────────────────────────────────────────────────────────────────
        # VALIDATE
        # ─────────────────────────────────────────────────────────────────
        if request.method != "POST":
            logger.info(f"received unsupported request method {request.method}")
            return bad_request(UNSUPPORTED_METHOD_MESSAGE)

        logger.info(f"received request {request.method} {request.path}")

        content_type = request.content_type
        if not content_type:
            logger.warning("no request content-type header set")
            return bad_request()

        for name, value in request.headers.items():
            logger.debug(f"request headers: {name}: {value}")

        # ─────────────────────────────────────────────────────────────────
        # PREPARE CONTENT
        # ─────────────────────────────────────────────────────────────────
        mode = self.config.mode
        contents = new_contents(mode)

        logger.info(f"content-length: {contents.length()}")

        try:
            content_md5 = contents.checksum()
        except ChecksumError as e:
            logger.error(f"failed to compute payload checksum: {e}")
            return internal_error()

        # ─────────────────────────────────────────────────────────────────
        # BUILD RESPONSE
        # ─────────────────────────────────────────────────────────────────
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Content-Length", str(contents.length()))
            .headers(import_headers(mode))
            .header("X-Import-Md5", content_md5)
            .body(contents.read_all())
            .build())
