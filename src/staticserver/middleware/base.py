"""
=============================================================================
MIDDLEWARE BASE CLASSES
=============================================================================

A HANDLER in this server is any callable that writes a response:

    def handler(writer: ResponseWriter, request: HTTPRequest) -> None

A MIDDLEWARE receives the same two arguments plus ``next``, the handler it
wraps. It may swap the writer for a decorated one before calling next:

    class MyMiddleware(Middleware):
        def __call__(self, writer, request, next):
            watched = WatchingWriter(writer)     # decorate
            next(watched, request)                # inner layers write into it
            watched.finish()                      # post-process

The inner handler cannot tell whether it was given the real writer or a
decorated one. That is the whole trick behind both the compression and the
logging layers.

=============================================================================
PIPELINE
=============================================================================

    pipeline.add(LoggingMiddleware())   # first added = outermost
    pipeline.add(GzipMiddleware())
    handler = pipeline.wrap(static_handler)

    ┌─────────────────────────────────────────────────────────┐
    │  LoggingMiddleware                                      │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │  GzipMiddleware                                   │  │
    │  │  ┌─────────────────────────────────────────────┐  │  │
    │  │  │          StaticFileHandler                   │  │  │
    │  │  └─────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────┘

Calls flow inward synchronously; each layer's post-processing runs after
the layers inside it have returned.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.writer import ResponseWriter


logger = logging.getLogger(__name__)


Handler = Callable[[ResponseWriter, HTTPRequest], None]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Every middleware implements:

        def __call__(self, writer, request, next: Handler) -> None

    and must call ``next(writer_or_wrapper, request)`` unless it answers
    the request itself.
    """

    @abstractmethod
    def __call__(
        self,
        writer: ResponseWriter,
        request: HTTPRequest,
        next: Handler,
    ) -> None:
        """Handle the request, delegating to ``next``."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    Usage:
        pipeline = MiddlewarePipeline()
        pipeline.use(LoggingMiddleware(), GzipMiddleware())
        handler = pipeline.wrap(StaticFileHandler(store))
        handler(writer, request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """Append a layer (first added = outermost)."""
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: Handler) -> Handler:
        """
        Build the chain.

        Wrapping runs in REVERSE so the first-added middleware ends up
        outermost:

            [MW1, MW2] + handler  →  MW1 → MW2 → handler
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(
        self,
        middleware: Middleware,
        next_handler: Handler,
    ) -> Handler:
        def wrapped(writer: ResponseWriter, request: HTTPRequest) -> None:
            middleware(writer, request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
