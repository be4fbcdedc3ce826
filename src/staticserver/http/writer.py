"""
=============================================================================
RESPONSE WRITERS
=============================================================================

Handlers in this server do not return a finished response object. They
WRITE a response, piece by piece, into a ResponseWriter:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WRITING A RESPONSE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   writer.headers["Content-Type"] = "text/html"   ◄── mutable        │
    │                                                                      │
    │   writer.write_header(200)      ◄── COMMIT: status line + headers   │
    │                                     go out. Only the first call     │
    │                                     counts. Headers are frozen.     │
    │                                                                      │
    │   writer.write(b"<html>")       ◄── body bytes. Implicitly commits  │
    │   writer.write(b"</html>")          200 if nothing was committed.   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Why a writer and not a returned object? Because middleware can then
DECORATE the writer: the compression layer intercepts the commit to decide
whether to buffer, the logging layer intercepts it to observe the status.
The handler never knows it is being watched.

=============================================================================
BODY FRAMING
=============================================================================

Once headers are on the wire, the client must still learn where the body
ends. ConnectionWriter picks one of three framings at commit time:

    Content-Length present  →  raw bytes, exactly that many
    HTTP/1.1, no length     →  Transfer-Encoding: chunked
    HTTP/1.0, no length     →  body ends when the connection closes

Compressed responses always take the chunked (or close) route because the
compression layer removes Content-Length before committing.

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterator, List, MutableMapping, Optional, Protocol, Tuple

from .status_codes import body_allowed, reason_phrase


logger = logging.getLogger(__name__)


class Headers(MutableMapping[str, str]):
    """
    Case-insensitive response header map.

    Lookups ignore case ("content-type" finds "Content-Type"), while the
    casing of the first assignment is kept for serialization. Insertion
    order is preserved so responses serialize deterministically.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, Tuple[str, str]] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        key = name.lower()
        existing = self._items.get(key)
        self._items[key] = (existing[0] if existing else name, str(value))

    def __delitem__(self, name: str) -> None:
        del self._items[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def copy(self) -> "Headers":
        return Headers(dict(self.items()))

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"


class ResponseWriter(ABC):
    """
    The capability every layer of the pipeline writes a response into.

    =========================================================================
    CONTRACT
    =========================================================================

    headers         Mutable until the status is committed.
    write_header()  Commits status + headers. First call wins; later calls
                    are no-ops.
    write()         Writes body bytes, committing 200 first if needed.
                    Returns the number of bytes accepted.
    committed       True once a status has been committed.

    =========================================================================
    """

    @property
    @abstractmethod
    def headers(self) -> Headers:
        """Response headers (mutable until committed)."""

    @abstractmethod
    def write_header(self, status: int) -> None:
        """Commit the status code and headers."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write body bytes; returns the number of bytes accepted."""

    @property
    @abstractmethod
    def committed(self) -> bool:
        """Whether the status has been committed."""


class Sink(Protocol):
    """Anything bytes can be pushed into: a socket or a Connection."""

    def sendall(self, data: bytes) -> None: ...


class ConnectionWriter(ResponseWriter):
    """
    Writes an HTTP/1.x response straight onto a client connection.

    This is the innermost, "real" writer: the one whose write_header puts
    bytes on the wire. Every other writer in the project decorates it.

    Usage:
        writer = ConnectionWriter(conn, method=request.method,
                                  version=request.version)
        handler(writer, request)
        writer.finish()
    """

    def __init__(
        self,
        sink: Sink,
        method: str = "GET",
        version: str = "HTTP/1.1",
        keep_alive: bool = True,
        server_name: str = "staticserver/1.0",
    ):
        self._sink = sink
        self._method = method
        self._version = version
        self._server_name = server_name
        self._headers = Headers()

        self.keep_alive = keep_alive
        self.status: Optional[int] = None
        self.bytes_written = 0

        self._chunked = False
        self._discard_body = False
        self._finished = False

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def committed(self) -> bool:
        return self.status is not None

    def write_header(self, status: int) -> None:
        if self.status is not None:
            logger.warning(
                f"Superfluous write_header({status}) call, "
                f"status {self.status} already sent"
            )
            return
        self.status = int(status)

        # ─────────────────────────────────────────────────────────────────
        # CHOOSE BODY FRAMING
        # ─────────────────────────────────────────────────────────────────
        self._discard_body = self._method == "HEAD" or not body_allowed(self.status)

        if not self._discard_body and "Content-Length" not in self._headers:
            if self._version == "HTTP/1.1":
                self._headers["Transfer-Encoding"] = "chunked"
                self._chunked = True
            else:
                # HTTP/1.0 has no chunking: closing the socket ends the body
                self.keep_alive = False

        if not self.keep_alive:
            self._headers["Connection"] = "close"
        elif self._version == "HTTP/1.0":
            self._headers["Connection"] = "keep-alive"

        self._headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        self._headers.setdefault("Server", self._server_name)

        lines = [f"{self._version} {self.status} {reason_phrase(self.status)}"]
        for name, value in self._headers.items():
            lines.append(f"{name}: {value}")
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")

        self._sink.sendall(head)

    def write(self, data: bytes) -> int:
        if self.status is None:
            self.write_header(200)

        if not data:
            return 0

        if self._discard_body:
            # HEAD / 204 / 304: the caller sees success, nothing is sent
            return len(data)

        if self._chunked:
            self._sink.sendall(b"%x\r\n" % len(data) + bytes(data) + b"\r\n")
        else:
            self._sink.sendall(bytes(data))

        self.bytes_written += len(data)
        return len(data)

    def finish(self) -> None:
        """
        Terminate the response after the handler chain returned.

        If nothing was ever committed, the transport default applies:
        ``200 OK`` with an empty body. A chunked body gets its final
        zero-length chunk.
        """
        if self._finished:
            return
        self._finished = True

        if self.status is None:
            self._headers.setdefault("Content-Length", "0")
            self.write_header(200)

        if self._chunked:
            self._sink.sendall(b"0\r\n\r\n")


class ResponseRecorder(ResponseWriter):
    """
    In-memory ResponseWriter that records everything written to it.

    Handy for tests and for embedding the pipeline without a socket:

        recorder = ResponseRecorder()
        handler(recorder, request)
        assert recorder.status_code == 200
        assert recorder.sent_headers["Content-Type"] == "text/html"

    ``sent_headers`` is a snapshot taken at commit time, so changes made to
    ``headers`` afterwards (which would never reach a real client) do not
    show up in it.
    """

    def __init__(self):
        self._headers = Headers()
        self._body = bytearray()
        self.status: Optional[int] = None
        self.sent_headers: Optional[Headers] = None
        self.write_header_calls: List[int] = []

    @property
    def headers(self) -> Headers:
        return self._headers

    @property
    def committed(self) -> bool:
        return self.status is not None

    @property
    def status_code(self) -> int:
        """Committed status, or the transport default of 200."""
        return self.status if self.status is not None else 200

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def write_header(self, status: int) -> None:
        self.write_header_calls.append(int(status))
        if self.status is not None:
            return
        self.status = int(status)
        self.sent_headers = self._headers.copy()

    def write(self, data: bytes) -> int:
        if self.status is None:
            self.write_header(200)
        self._body.extend(data)
        return len(data)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Example: Thu, 01 Jan 2026 12:00:00 GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
