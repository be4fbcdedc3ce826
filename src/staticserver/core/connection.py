"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the two things the HTTP layer needs:
"give me the next complete request" and "push these bytes out".

TCP is a byte stream. A request can arrive split over several recv()
calls, and with keep-alive the tail of one recv() may already hold the
start of the next request. So reads are buffered:

    ┌─────────────────────────────────────────────────────────────────┐
    │                    read_request() Flow                           │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   while "\\r\\n\\r\\n" not in buffer:   recv() → buffer              │
    │   content_length = from the head                                 │
    │   while body incomplete:            recv() → buffer              │
    │   request = buffer[:end]                                         │
    │   buffer  = buffer[end:]            ◄── kept for next request    │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
     │         │                          │                      │
     │         ▼                          ▼                      │
     └──────► CLOSING ◄───────────────────┴──────────────────────┘
                │
                ▼
              CLOSED

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The client sent more than max_request_size bytes for one request."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client (ip, port).
        id: Short identifier used in log lines.
        requests_handled: Requests read so far on this connection.
        timeout: Read timeout while waiting for the first request.
        keep_alive_timeout: Read timeout between keep-alive requests.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: float = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request (head plus Content-Length body).

        Returns:
            The request bytes, or None when the client closed the
            connection (or went quiet between keep-alive requests).

        Raises:
            TimeoutError: The first request did not arrive in time.
            RequestTooLarge: The request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.state = ConnectionState.PROCESSING
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 or not self._buffer:
                logger.debug(f"[{self.id}] Idle timeout")
                return None
            raise TimeoutError("Request read timeout")
        finally:
            if not self.is_closed:
                self.socket.settimeout(self.timeout)

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    def _parse_content_length(self, head: bytes) -> int:
        """
        Content-Length from the raw head, before full parsing.

        Malformed values read as 0 here; the parser rejects them properly.
        """
        for line in head.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    def sendall(self, data: bytes) -> None:
        """
        Send bytes to the client.

        Raises:
            OSError: The peer went away. Callers treat the connection as
                dead and close it.
        """
        self.state = ConnectionState.WRITING
        self.socket.sendall(data)

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def close(self):
        """
        Close gracefully: shutdown(SHUT_WR) sends FIN, drain what the
        client still had in flight, then release the descriptor.
        """
        if self.is_closed:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
