"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request with the status code and the number of body
bytes the response declares:

    127.0.0.1 - - [19/Oct/2026:10:15:02 +0000] "POST /" 200 41 0.21ms

Error statuses (4xx/5xx) are logged at WARNING so a default INFO setup
shows them next to the handler's own diagnostics.

=============================================================================
"""

import time
import logging
from dataclasses import dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Namespaced so operators can route access lines separately:
#   logging.getLogger("importserver.access").addHandler(file_handler)
logger = logging.getLogger("importserver.access")


@dataclass
class RequestLog:
    """
    Structured access log entry.

    Fields:
        method:         HTTP method
        path:           Request path
        client_ip:      Peer address
        user_agent:     Client identifier
        content_type:   Request Content-Type ("-" when absent)
        status_code:    Response status
        content_length: Declared response body length
        duration_ms:    Handler time
        timestamp:      When the request finished
    """
    method: str
    path: str
    client_ip: str
    user_agent: str
    content_type: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_text(self) -> str:
        """Apache-style access line."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be added first so it sees every request, including ones other
    middleware short-circuits.

    Usage:
        pipeline.add(LoggingMiddleware())
        pipeline.add(LoggingMiddleware(log_level=logging.DEBUG))
    """

    def __init__(self, log_level: int = logging.INFO):
        """
        Args:
            log_level: Level for successful requests. Errors always log
                       at WARNING or above.
        """
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        log_entry = RequestLog(
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent or "-",
            content_type=request.content_type or "-",
            status_code=int(response.status),
            content_length=response.declared_length,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.WARNING if response.status.is_error else self.log_level
        logger.log(level, log_entry.to_text())

        return response
