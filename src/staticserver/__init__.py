"""
=============================================================================
STATICSERVER - Static File Server with On-the-fly Gzip
=============================================================================

Serves a directory (or the site bundled with this package) over HTTP/1.1,
with two layers wrapped around the file handler:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──► LoggingMiddleware ──► GzipMiddleware ──► files         │
    │                 one line per           compresses                    │
    │                 request                text-like types               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Quick start:

    from staticserver import StaticServer, ServerConfig

    StaticServer(ServerConfig(root="./public")).run()

Or embed the pipeline without the socket layer:

    from staticserver import build_handler
    from staticserver.handlers import MemoryAssetStore
    from staticserver.http import ResponseRecorder, HTTPRequest

    handler = build_handler(MemoryAssetStore({"index.html": b"<html></html>"}))
    recorder = ResponseRecorder()
    handler(recorder, HTTPRequest(method="GET", path="/index.html"))

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import StaticServer, build_handler

__all__ = ["StaticServer", "ServerConfig", "build_handler", "__version__"]
