"""
=============================================================================
GZIP COMPRESSION MIDDLEWARE
=============================================================================

Compresses response bodies on the fly, deciding per response and BEFORE
the first byte goes out whether compression applies.

The difficulty: a handler writes its response incrementally. By the time
the middleware could inspect "the response", headers may already be on
the wire, and headers are exactly what must change (Content-Encoding on,
Content-Length off). So the decision is taken at the one moment where
everything needed is known and nothing is sent yet: the STATUS COMMIT.

=============================================================================
THE DECISION POINT
=============================================================================

    handler                     GzipResponseWriter            real writer
    ───────                     ──────────────────            ───────────
    headers["Content-Type"]  ─► (shared header map)
      = "text/html"
    write_header(200)        ─► classify Content-Type
                                 │
                 ┌───────────────┴────────────────┐
                 │ compressible                   │ not compressible
                 ▼                                ▼
            BUFFERING                        PASSTHROUGH
            remember 200                     write_header(200)  ─────► sent
            write(b) → bytearray             write(b)           ─────► sent
                 │
    handler returns
                 ▼
            flush():
              Content-Encoding: gzip
              del Content-Length
              Vary: Accept-Encoding
              ETag "x" → W/"x"
              write_header(200)  ──────────────────────────────────► sent
              gzip(buffer)       ──────────────────────────────────► sent

A body write before any write_header counts as write_header(200), just
like on the real writer.

=============================================================================
WRITER STATE MACHINE
=============================================================================

                     first write_header / write
    UNCOMMITTED ───────────────────────────────┬──► PASSTHROUGH
                                               └──► BUFFERING

Exactly one transition ever happens. Every later write_header is ignored.

=============================================================================
WHAT GETS COMPRESSED
=============================================================================

Content-Type prefixes (case-insensitive):

    text/                   html, css, plain, javascript, csv, ...
    application/json
    application/javascript
    application/xml
    application/xhtml+xml
    image/svg+xml

Images, fonts, video and archives are already compressed internally.

=============================================================================
ENCODER REUSE
=============================================================================

Building a deflate encoder allocates its window and hash chains. Encoders
live in a process-wide ObjectPool instead: acquired once per compressed
response, reset, used, and released in a ``finally``.

The full body is buffered in memory before compressing; this is meant
for static assets, not for streaming large downloads.

=============================================================================
"""

import logging
import threading
import zlib
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from .base import Handler, Middleware
from ..core.object_pool import ObjectPool
from ..http.request import HTTPRequest
from ..http.writer import Headers, ResponseWriter


logger = logging.getLogger(__name__)


COMPRESSIBLE_TYPES: Tuple[str, ...] = (
    "text/",
    "application/json",
    "application/javascript",
    "application/xml",
    "application/xhtml+xml",
    "image/svg+xml",
)

# zlib wbits for a gzip container: 16 (gzip header/trailer) + 15 (32K window)
GZIP_WBITS = 16 + zlib.MAX_WBITS


def is_compressible(content_type: str, prefixes: Iterable[str] = COMPRESSIBLE_TYPES) -> bool:
    """
    Classify a Content-Type value.

        >>> is_compressible("text/html; charset=utf-8")
        True
        >>> is_compressible("Application/JSON")
        True
        >>> is_compressible("image/png")
        False
        >>> is_compressible("")
        False
    """
    ct = content_type.lower()
    return any(ct.startswith(prefix) for prefix in prefixes)


def accepts_gzip(request: HTTPRequest) -> bool:
    """Whether the client listed gzip in Accept-Encoding (substring match)."""
    return "gzip" in request.accept_encoding


def _append_vary(headers: Headers, value: str) -> None:
    vary = headers.get("Vary", "")
    if value.lower() not in vary.lower():
        headers["Vary"] = f"{vary}, {value}" if vary else value


# =============================================================================
# ENCODER
# =============================================================================

class GzipWriter:
    """
    A reusable gzip encoder that writes into a ResponseWriter.

    Lifecycle per use:

        gz.reset(sink)      bind to a destination, fresh gzip stream
        gz.write(data)      compress, push output to sink
        gz.close()          emit remaining deflate data + gzip trailer

    zlib compress objects cannot be rewound, so the writer keeps one
    pristine, never-used encoder and reset() takes a copy of it.
    """

    def __init__(self, level: int = zlib.Z_DEFAULT_COMPRESSION):
        self.level = level
        self._template = zlib.compressobj(level, zlib.DEFLATED, GZIP_WBITS)
        self._compressor = None
        self._sink: Optional[ResponseWriter] = None

    def reset(self, sink: ResponseWriter) -> None:
        self._compressor = self._template.copy()
        self._sink = sink

    def write(self, data: bytes) -> int:
        if self._compressor is None:
            raise RuntimeError("GzipWriter.write() before reset()")

        chunk = self._compressor.compress(data)
        if chunk:
            self._sink.write(chunk)
        return len(data)

    def close(self) -> None:
        if self._compressor is None:
            raise RuntimeError("GzipWriter.close() before reset()")

        compressor, sink = self._compressor, self._sink
        self._compressor = None
        self._sink = None

        tail = compressor.flush()
        if tail:
            sink.write(tail)


class GzipWriterPool(ObjectPool[GzipWriter]):
    """ObjectPool of GzipWriters sharing one compression level."""

    def __init__(self, level: int = zlib.Z_DEFAULT_COMPRESSION, max_idle: int = 32):
        super().__init__(lambda: GzipWriter(level), max_idle=max_idle)
        self.level = level


_pools: Dict[int, GzipWriterPool] = {}
_pools_lock = threading.Lock()


def get_writer_pool(level: int = zlib.Z_DEFAULT_COMPRESSION) -> GzipWriterPool:
    """The process-wide encoder pool for a compression level."""
    with _pools_lock:
        pool = _pools.get(level)
        if pool is None:
            pool = _pools[level] = GzipWriterPool(level)
        return pool


# =============================================================================
# RESPONSE WRITER DECORATOR
# =============================================================================

class WriterState(Enum):
    UNCOMMITTED = "uncommitted"
    PASSTHROUGH = "passthrough"
    BUFFERING = "buffering"


class GzipResponseWriter(ResponseWriter):
    """
    Decorates a ResponseWriter, buffering compressible responses.

    Headers are SHARED with the wrapped writer: what the handler sets is
    what the real writer eventually sends. Call flush() once the inner
    handler has returned.
    """

    def __init__(
        self,
        writer: ResponseWriter,
        compressible_types: Iterable[str] = COMPRESSIBLE_TYPES,
    ):
        self._writer = writer
        self._compressible_types = tuple(compressible_types)
        self._body = bytearray()
        self._flushed = False

        self.state = WriterState.UNCOMMITTED
        self.status: Optional[int] = None

    @property
    def headers(self) -> Headers:
        return self._writer.headers

    @property
    def committed(self) -> bool:
        return self.state is not WriterState.UNCOMMITTED

    @property
    def buffered(self) -> int:
        """Bytes held back for compression."""
        return len(self._body)

    def _transition(self, new_state: WriterState) -> bool:
        if self.state is not WriterState.UNCOMMITTED:
            return False
        self.state = new_state
        return True

    def write_header(self, status: int) -> None:
        if self.committed:
            return

        content_type = self.headers.get("Content-Type", "")
        if is_compressible(content_type, self._compressible_types):
            self._transition(WriterState.BUFFERING)
            self.status = int(status)
            return

        self._transition(WriterState.PASSTHROUGH)
        self.status = int(status)
        self._writer.write_header(status)

    def write(self, data: bytes) -> int:
        if not self.committed:
            self.write_header(200)

        if self.state is WriterState.PASSTHROUGH:
            return self._writer.write(data)

        self._body.extend(data)
        return len(data)

    def flush(self, pool: ObjectPool[GzipWriter]) -> None:
        """
        Emit a buffered response, compressed.

        Nothing happens for PASSTHROUGH (already sent) or UNCOMMITTED (the
        transport default applies). A BUFFERING response that never got a
        body byte is forwarded uncompressed with ``Vary: Accept-Encoding``
        added, so HEAD and GET share a cache key.

        A strong ETag describes the identity bytes; the compressed body
        gets it weakened to ``W/"..."``.
        """
        if self._flushed or self.state is not WriterState.BUFFERING:
            return
        self._flushed = True

        headers = self._writer.headers
        _append_vary(headers, "Accept-Encoding")

        if not self._body:
            self._writer.write_header(self.status)
            return

        headers["Content-Encoding"] = "gzip"
        headers.pop("Content-Length", None)
        etag = headers.get("ETag")
        if etag and not etag.startswith("W/"):
            headers["ETag"] = "W/" + etag
        self._writer.write_header(self.status)

        gz = pool.acquire()
        try:
            gz.reset(self._writer)
            gz.write(self._body)
            gz.close()
        finally:
            pool.release(gz)


# =============================================================================
# MIDDLEWARE
# =============================================================================

class GzipMiddleware(Middleware):
    """
    Response compression middleware.

    Usage:
        pipeline.add(LoggingMiddleware())
        pipeline.add(GzipMiddleware())                  # defaults
        pipeline.add(GzipMiddleware(level=9))           # smallest output
        pipeline.add(GzipMiddleware(
            compressible_types=("text/", "application/json"),
        ))

    Requests whose Accept-Encoding does not mention gzip reach the inner
    handler with the original writer, untouched.
    """

    def __init__(
        self,
        level: Optional[int] = None,
        compressible_types: Optional[Iterable[str]] = None,
        pool: Optional[ObjectPool[GzipWriter]] = None,
    ):
        # A GzipWriterPool fixes the level; an explicit level must agree
        pool_level = getattr(pool, "level", None)
        if level is None:
            level = pool_level if pool_level is not None else zlib.Z_DEFAULT_COMPRESSION
        elif pool_level is not None and pool_level != level:
            raise ValueError(f"gzip level {level} does not match pool level {pool_level}")

        if not (level == zlib.Z_DEFAULT_COMPRESSION or 0 <= level <= 9):
            raise ValueError(f"gzip level must be -1 or 0-9, got {level}")

        self.level = level
        self.compressible_types = tuple(
            compressible_types if compressible_types is not None else COMPRESSIBLE_TYPES
        )
        self.pool = pool if pool is not None else get_writer_pool(level)

    def __call__(
        self,
        writer: ResponseWriter,
        request: HTTPRequest,
        next: Handler,
    ) -> None:
        if not accepts_gzip(request):
            next(writer, request)
            return

        gzip_writer = GzipResponseWriter(writer, self.compressible_types)
        next(gzip_writer, request)

        try:
            gzip_writer.flush(self.pool)
        except (zlib.error, OSError) as e:
            logger.error(
                f"Compressed write failed for {request.method} {request.path}: "
                f"{type(e).__name__}: {e}"
            )
            raise
