"""
=============================================================================
MIDDLEWARE BASE CLASSES
=============================================================================

Middleware wraps the import handler to add cross-cutting behavior (access
logging, test hooks) without touching it.

    pipeline.add(LoggingMiddleware())    # first added = outermost

        LoggingMiddleware
          └── ...
                └── ImportHandler

Request flows inward in the order middleware was added; the response
flows back outward in reverse.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Implement ``__call__(request, next)``. Call ``next(request)`` to
    continue the chain, or return a response directly to short-circuit.
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """
        Process the request.

        Args:
            request: The incoming HTTP request.
            next: The next handler in the chain.

        Returns:
            HTTP response (from next() or short-circuited).
        """

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    Usage:
        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware())
        handler = pipeline.wrap(ImportHandler(config))
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """
        Append middleware. Earlier additions wrap later ones.

        Returns:
            Self for method chaining.
        """
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Wrap ``handler`` with every middleware in the pipeline.

        Given [MW1, MW2, MW3] the result calls MW1 → MW2 → MW3 → handler,
        so wrapping happens in reverse order.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: NextHandler
    ) -> NextHandler:
        def wrapped(request: HTTPRequest) -> HTTPResponse:
            return middleware(request, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)


class FunctionMiddleware(Middleware):
    """
    Wraps a plain ``(request, next) -> response`` function as middleware.

    Usage:
        @function_middleware
        def add_header(request, next):
            response = next(request)
            response.set_header("X-Custom", "value")
            return response

        pipeline.add(add_header)
    """

    def __init__(
        self,
        func: Callable[[HTTPRequest, NextHandler], HTTPResponse],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[HTTPRequest, NextHandler], HTTPResponse]
) -> FunctionMiddleware:
    """Decorator form of FunctionMiddleware."""
    return FunctionMiddleware(func)
