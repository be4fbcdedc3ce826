"""
=============================================================================
HTTP RESPONSE VALUES
=============================================================================

Most responses a static server produces are small and fully known up
front: a 404 page, a redirect, a 304, a file read into memory. For those
it is easier to build a value first and write it out in one go:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ResponseBuilder()                                                  │
    │       .status(HTTPStatus.OK)          HTTPResponse                   │
    │       .file(data, "app.js")    ──►    (status, headers, body)        │
    │       .cache(3600)                          │                        │
    │       .build()                              │ write_to(writer)       │
    │                                             ▼                        │
    │                                   writer.headers[...] = ...          │
    │                                   writer.write_header(status)        │
    │                                   writer.write(body)                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

write_to() goes through the ordinary ResponseWriter calls, in the order
the writer contract requires (headers, then status, then body), so any
middleware decorating the writer sees exactly what it would see from a
hand-written handler.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Union

from .mime_types import get_content_type
from .status_codes import HTTPStatus
from .writer import ResponseWriter


@dataclass
class HTTPResponse:
    """
    A complete response: status, headers and body.

    Content-Length is not stored here; it is derived from the body when
    the response is written, unless a header sets it explicitly.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def write_to(self, writer: ResponseWriter, include_body: bool = True) -> None:
        """
        Emit this response through a ResponseWriter.

        Args:
            writer: Destination writer (possibly decorated by middleware).
            include_body: False for HEAD: headers (including the
                Content-Length of the full body) are sent, body bytes are not.
        """
        for name, value in self.headers.items():
            writer.headers[name] = value
        if "Content-Length" not in writer.headers and self.body:
            writer.headers["Content-Length"] = str(len(self.body))

        writer.write_header(self.status)

        if include_body and self.body:
            writer.write(self.body)


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .file(content, "index.html")
            .header("ETag", etag)
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the body; strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        return self.content_type(content_type).body(text)

    def html(self, html: str) -> "ResponseBuilder":
        return self.text(html, "text/html; charset=utf-8")

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """
        Body from file content, Content-Type from the file name.

            .file(b"body{}", "css/site.css")  →  text/css; charset=utf-8
        """
        return self.content_type(get_content_type(filename)).body(content)

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """
        Redirect to ``location``.

            permanent=True   → 301 Moved Permanently
            permanent=False  → 302 Found
        """
        status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        link = f'<a href="{location}">{status.phrase}</a>.\n'
        return (self.status(status)
                .header("Location", location)
                .html(link))

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        return self.header("Cache-Control", f"public, max-age={max_age}")

    def no_cache(self) -> "ResponseBuilder":
        return self.header("Cache-Control", "no-cache")

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def not_found() -> HTTPResponse:
    """The plain-text 404 served for any missing asset."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .text("404 page not found\n")
        .build())


def not_modified(etag: str) -> HTTPResponse:
    """304 for a matching If-None-Match. Never carries a body."""
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_MODIFIED)
        .header("ETag", etag)
        .build())


def redirect(location: str, permanent: bool = False) -> HTTPResponse:
    return ResponseBuilder().redirect(location, permanent).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """
    405 with the Allow header RFC 7231 requires.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .text("405 method not allowed\n")
        .build())


def error_response(status: HTTPStatus, message: str = "") -> HTTPResponse:
    """
    Plain-text error page for the given status.

    Used by the server for parse errors and unhandled exceptions; the
    message defaults to the reason phrase.
    """
    text = message or status.phrase
    return (ResponseBuilder()
        .status(status)
        .text(f"{int(status)} {text}\n")
        .build())
