"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Maps request paths onto an AssetStore and writes the result.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   method not GET/HEAD ──────────────────────────► 405 + Allow        │
    │                                                                      │
    │   clean path (normpath)                                              │
    │     escapes root? ──────────────────────────────► 404                │
    │                                                                      │
    │   directory?                                                         │
    │     no trailing "/" ────────────────────────────► 301 → path + "/"   │
    │     has index.html ─────────────────────────────► serve it           │
    │     listing enabled ────────────────────────────► HTML listing       │
    │     otherwise ──────────────────────────────────► 404                │
    │                                                                      │
    │   file?                                                              │
    │     If-None-Match matches ETag ─────────────────► 304                │
    │     otherwise ──────────────────────────────────► 200 + body         │
    │                                                                      │
    │   nothing there ────────────────────────────────► 404                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Content-Type comes from the file extension and is set BEFORE the status
is committed. The compression layer reads it at that moment to decide
whether to gzip, so the order matters.

=============================================================================
ETAGS
=============================================================================

The ETag is derived from the content itself:

    "<size>-<crc32 of the bytes, hex>"      e.g. "1832-9a0c44e1"

Content-derived tags stay stable across restarts and machines, which an
mtime-based tag would not for a bundled asset tree.

=============================================================================
"""

import html
import logging
import posixpath
import zlib
from typing import Optional
from urllib.parse import quote

from .assets import Asset, AssetStore
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    method_not_allowed,
    not_found,
    not_modified,
    redirect,
)
from ..http.status_codes import HTTPStatus
from ..http.writer import ResponseWriter


logger = logging.getLogger(__name__)


ALLOWED_METHODS = ["GET", "HEAD"]


def compute_etag(data: bytes) -> str:
    """Strong ETag from size and CRC-32 of the content."""
    return f'"{len(data)}-{zlib.crc32(data) & 0xFFFFFFFF:08x}"'


def etag_matches(if_none_match: str, etag: str) -> bool:
    """
    Evaluate an If-None-Match header against an ETag.

    Handles lists ("a", "b"), the "*" wildcard and weak validators
    (W/"..."), which compare equal to their strong form for GET/HEAD.
    """
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True

    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate == etag:
            return True
    return False


def clean_path(url_path: str) -> Optional[str]:
    """
    Turn a URL path into a store path.

        "/"                  →  ""
        "/css/./site.css"    →  "css/site.css"
        "/a/b/../c"          →  "a/c"
        "/../etc/passwd"     →  None   (escapes the root)

    Returns None for paths that must never reach the store.
    """
    if "\x00" in url_path:
        return None

    relative = posixpath.normpath(url_path.lstrip("/"))
    if relative == ".":
        return ""
    if relative == ".." or relative.startswith("../"):
        return None
    return relative


class StaticFileHandler:
    """
    Serves an AssetStore over HTTP.

    Usage:
        handler = StaticFileHandler(bundled_assets(), cache_max_age=3600)
        handler(writer, request)

    Args:
        store: Where the files come from.
        index_file: File served for a directory request.
        cache_max_age: Cache-Control max-age in seconds; None sends no
            Cache-Control header.
        enable_directory_listing: Render an HTML listing for directories
            without an index file instead of a 404.
    """

    def __init__(
        self,
        store: AssetStore,
        index_file: str = "index.html",
        cache_max_age: Optional[int] = None,
        enable_directory_listing: bool = False,
    ):
        self.store = store
        self.index_file = index_file
        self.cache_max_age = cache_max_age
        self.enable_directory_listing = enable_directory_listing

    def __call__(self, writer: ResponseWriter, request: HTTPRequest) -> None:
        response = self.resolve(request)
        response.write_to(writer, include_body=request.method != "HEAD")

    def resolve(self, request: HTTPRequest) -> HTTPResponse:
        """Work out the full response for a request, without writing it."""
        if request.method not in ALLOWED_METHODS:
            return method_not_allowed(ALLOWED_METHODS)

        relative = clean_path(request.path)
        if relative is None:
            logger.warning(f"Rejected path outside asset root: {request.path!r}")
            return not_found()

        if self.store.is_dir(relative):
            return self._serve_directory(relative, request)

        asset = self.store.open(relative)
        if asset is None:
            return not_found()

        if request.path.endswith("/"):
            # A file addressed like a directory: point at the real name
            return redirect("/" + quote(relative), permanent=True)

        return self._serve_file(asset, request)

    def _serve_directory(self, relative: str, request: HTTPRequest) -> HTTPResponse:
        if not request.path.endswith("/"):
            location = "/" + quote(relative) + "/" if relative else "/"
            return redirect(location, permanent=True)

        index_path = posixpath.join(relative, self.index_file) if relative else self.index_file
        index = self.store.open(index_path)
        if index is not None:
            return self._serve_file(index, request)

        if self.enable_directory_listing:
            return self._directory_listing(relative, request.path)

        return not_found()

    def _serve_file(self, asset: Asset, request: HTTPRequest) -> HTTPResponse:
        etag = compute_etag(asset.data)

        if etag_matches(request.get_header("If-None-Match"), etag):
            return not_modified(etag)

        builder = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .file(asset.data, asset.path)
            .header("Content-Length", str(asset.size))
            .header("ETag", etag))

        if self.cache_max_age is not None:
            builder.cache(self.cache_max_age)

        return builder.build()

    def _directory_listing(self, relative: str, url_path: str) -> HTTPResponse:
        entries = []
        if relative:
            entries.append('<li><a href="../">../</a></li>')

        for name in self.store.list_dir(relative) or []:
            entries.append(f'<li><a href="{quote(name)}">{html.escape(name)}</a></li>')

        title = html.escape(url_path)
        page = (
            "<!DOCTYPE html>\n"
            "<html>\n"
            f"<head><title>Index of {title}</title></head>\n"
            "<body>\n"
            f"<h1>Index of {title}</h1>\n"
            "<ul>\n" + "\n".join(entries) + "\n</ul>\n"
            "</body>\n"
            "</html>\n"
        )
        return ResponseBuilder().html(page).build()
