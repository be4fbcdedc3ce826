"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request, emitted after the inner handler returns:

    GET /index.html 200 412.6µs
    GET /missing 404 98.1µs
    GET /css/site.css 304 77µs

The status in that line is the status that ACTUALLY went out. The
middleware cannot read it off a return value (handlers write, they do not
return), so it wraps the writer in a StatusRecorder that watches the
commit on its way through:

    LoggingMiddleware
        │  StatusRecorder(writer)
        ▼
    GzipMiddleware ──► handler ──► write_header(404) ──► StatusRecorder
                                                          records 404,
                                                          forwards it

Because logging is OUTSIDE compression, the recorder sees the status
exactly when the compression layer forwards it, which for a buffered
response is during its flush.

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass

from .base import Handler, Middleware
from ..http.request import HTTPRequest
from ..http.writer import Headers, ResponseWriter


logger = logging.getLogger("staticserver.access")


class StatusRecorder(ResponseWriter):
    """
    Pass-through writer that remembers the first committed status.

    Default is 200: a handler that never commits gets the transport
    default, and that is what gets logged.
    """

    def __init__(self, writer: ResponseWriter):
        self._writer = writer
        self.status = 200
        self.wrote_header = False

    @property
    def headers(self) -> Headers:
        return self._writer.headers

    @property
    def committed(self) -> bool:
        return self._writer.committed

    def write_header(self, status: int) -> None:
        if not self.wrote_header:
            self.status = int(status)
            self.wrote_header = True
        self._writer.write_header(status)

    def write(self, data: bytes) -> int:
        if not self.wrote_header:
            self.wrote_header = True
        return self._writer.write(data)


def format_duration(seconds: float) -> str:
    """
    Render an elapsed time with a unit matched to its size.

        >>> format_duration(0.0001523)
        '152.3µs'
        >>> format_duration(0.001204)
        '1.204ms'
        >>> format_duration(2.5)
        '2.5s'
    """
    if seconds < 1e-6:
        return f"{seconds * 1e9:.0f}ns"
    if seconds < 1e-3:
        return f"{seconds * 1e6:.4g}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.4g}ms"
    return f"{seconds:.4g}s"


@dataclass
class RequestLog:
    """One access-log record."""

    method: str
    path: str
    status_code: int
    duration: float
    client_ip: str = ""

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "path": self.path,
            "status": self.status_code,
            "duration_ms": round(self.duration * 1000, 3),
            "client_ip": self.client_ip,
        }

    def to_text(self) -> str:
        return f"{self.method} {self.path} {self.status_code} {format_duration(self.duration)}"


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Should be FIRST in the pipeline so the timing covers every layer and
    every request gets a line:

        pipeline.add(LoggingMiddleware())              # text
        pipeline.add(LoggingMiddleware(log_format="json"))

    The middleware never touches headers or body.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")

        self.log_format = log_format
        self.log_level = log_level

    def __call__(
        self,
        writer: ResponseWriter,
        request: HTTPRequest,
        next: Handler,
    ) -> None:
        recorder = StatusRecorder(writer)
        start = time.perf_counter()

        try:
            next(recorder, request)
        except Exception as e:
            duration = time.perf_counter() - start
            logger.error(
                f"{request.method} {request.path} failed after "
                f"{format_duration(duration)}: {type(e).__name__}: {e}"
            )
            raise

        entry = RequestLog(
            method=request.method,
            path=request.path,
            status_code=recorder.status,
            duration=time.perf_counter() - start,
            client_ip=request.client_address[0],
        )
        self._emit(entry)

    def _emit(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
