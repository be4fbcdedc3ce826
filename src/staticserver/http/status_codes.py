"""
=============================================================================
HTTP STATUS CODES
=============================================================================

Status codes the static server can emit, with their reason phrases.

A static server only ever produces a small slice of the RFC 7231 table:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK              - asset found and served              │
    │        │ 204 No Content      - (never a body, never compressed)    │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  3xx   │ 301 Moved           - directory requested without "/"     │
    │        │ 304 Not Modified    - If-None-Match hit on the ETag        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  4xx   │ 400 / 405 / 408 / 413 - request could not be parsed        │
    │        │ 404 Not Found       - asset missing                        │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  5xx   │ 500 / 503 / 505     - server side failures                 │
    └────────┴───────────────────────────────────────────────────────────┘

Status codes are IntEnum members so they compare equal to plain ints,
which is what handlers usually pass to ``ResponseWriter.write_header``.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    NO_CONTENT = 204
    PARTIAL_CONTENT = 206

    # 3xx REDIRECTION
    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304
    TEMPORARY_REDIRECT = 307
    PERMANENT_REDIRECT = 308

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414
    RANGE_NOT_SATISFIABLE = 416

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase used in the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │       └── phrase
                      └────────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


def reason_phrase(status: int) -> str:
    """
    Reason phrase for any integer status.

    Handlers may commit codes outside the enum (e.g. 418); those still
    need a status line, so unknown codes fall back to "Unknown".
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


def body_allowed(status: int) -> bool:
    """
    Whether a response with this status may carry a body.

    RFC 7230 §3.3: 1xx, 204 and 304 responses never have a message body.
    """
    return not (100 <= status < 200 or status in (204, 304))


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.PARTIAL_CONTENT: "Partial Content",

    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.TEMPORARY_REDIRECT: "Temporary Redirect",
    HTTPStatus.PERMANENT_REDIRECT: "Permanent Redirect",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.URI_TOO_LONG: "URI Too Long",
    HTTPStatus.RANGE_NOT_SATISFIABLE: "Range Not Satisfiable",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
