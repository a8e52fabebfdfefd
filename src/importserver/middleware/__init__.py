"""
=============================================================================
MIDDLEWARE
=============================================================================

Chain of Responsibility around the import handler:

    LoggingMiddleware → ... → ImportHandler

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, FunctionMiddleware, function_middleware, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "function_middleware",
    "NextHandler",

    # Built-in middleware
    "LoggingMiddleware",
    "RequestLog",
]
