"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting layers around the static file handler:

    LoggingMiddleware   one access-log line per request (status, timing)
    GzipMiddleware      on-the-fly gzip for compressible Content-Types

Both are writer decorators; see base.py for the contract.

=============================================================================
"""

from .base import Handler, Middleware, MiddlewarePipeline
from .compression import (
    COMPRESSIBLE_TYPES,
    GzipMiddleware,
    GzipResponseWriter,
    GzipWriter,
    GzipWriterPool,
    WriterState,
    get_writer_pool,
    is_compressible,
)
from .logging import LoggingMiddleware, RequestLog, StatusRecorder, format_duration

__all__ = [
    "Handler",
    "Middleware",
    "MiddlewarePipeline",
    "COMPRESSIBLE_TYPES",
    "GzipMiddleware",
    "GzipResponseWriter",
    "GzipWriter",
    "GzipWriterPool",
    "WriterState",
    "get_writer_pool",
    "is_compressible",
    "LoggingMiddleware",
    "RequestLog",
    "StatusRecorder",
    "format_duration",
]
