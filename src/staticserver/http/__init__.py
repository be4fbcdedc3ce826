"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Everything that knows what HTTP/1.x looks like on the wire:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ request.py       raw bytes → HTTPRequest                            │
    │ writer.py        ResponseWriter capability + ConnectionWriter       │
    │                  (HTTPResponse-free streaming writes to a socket)   │
    │ response.py      HTTPResponse / ResponseBuilder for small, fully    │
    │                  known responses, written via write_to(writer)      │
    │ status_codes.py  HTTPStatus enum                                    │
    │ mime_types.py    extension → Content-Type                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    not_found,
    not_modified,
    redirect,
    method_not_allowed,
    error_response,
)
from .writer import (
    Headers,
    ResponseWriter,
    ConnectionWriter,
    ResponseRecorder,
    format_http_date,
)
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    # Requests
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Writers
    "Headers",
    "ResponseWriter",
    "ConnectionWriter",
    "ResponseRecorder",
    "format_http_date",

    # Response values
    "HTTPResponse",
    "ResponseBuilder",
    "not_found",
    "not_modified",
    "redirect",
    "method_not_allowed",
    "error_response",

    # Status codes
    "HTTPStatus",

    # MIME types
    "get_mime_type",
    "get_content_type",
]
