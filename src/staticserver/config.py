"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass, with three sources layered on top of each
other:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   dataclass defaults   ◄── lowest priority                           │
    │          ▲                                                           │
    │   environment (STATIC_*)   ServerConfig.from_env()                   │
    │          ▲                                                           │
    │   command line flags   ◄── highest priority (__main__.py)            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

validate() runs once at startup and raises ValueError on anything
nonsensical, so a bad deployment fails immediately instead of on the
first request.

=============================================================================
"""

import logging
import os
import zlib
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .middleware.compression import COMPRESSIBLE_TYPES


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false, yes/no, on/off), got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class ServerConfig:
    """
    Configuration for the static server.

    Development:
        ServerConfig(log_level="DEBUG")

    Container:
        ServerConfig(host="0.0.0.0", root="/srv/www", cache_max_age=3600)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Pending-connection queue length passed to listen()."""

    buffer_size: int = 8192
    """recv() chunk size in bytes."""

    timeout: float = 30.0
    """Seconds to wait for the first request on a new connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────
    keep_alive: bool = True
    """Serve several requests per connection when the client allows it."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a kept-alive connection is closed."""

    max_request_size: int = 1024 * 1024
    """
    Largest accepted request in bytes. A static server expects no bodies,
    so 1 MB is generous.
    """

    server_name: str = "staticserver/1.0"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────
    workers: int = 8
    """
    Worker threads. Each handles one connection at a time, so this is
    also the number of connections served concurrently.
    """

    # ─────────────────────────────────────────────────────────────────────
    # ASSETS
    # ─────────────────────────────────────────────────────────────────────
    root: Optional[str] = None
    """Directory to serve. None serves the site bundled with the package."""

    index_file: str = "index.html"

    cache_max_age: Optional[int] = None
    """Cache-Control max-age for served files. None sends no Cache-Control."""

    directory_listing: bool = False
    """List directories that have no index file (instead of a 404)."""

    # ─────────────────────────────────────────────────────────────────────
    # COMPRESSION
    # ─────────────────────────────────────────────────────────────────────
    gzip: bool = True
    """Compress eligible responses for clients that accept gzip."""

    gzip_level: int = zlib.Z_DEFAULT_COMPRESSION
    """1 (fastest) to 9 (smallest); -1 is zlib's default (6)."""

    compressible_types: Tuple[str, ...] = COMPRESSIBLE_TYPES
    """Content-Type prefixes that get compressed."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" (one line) or "json"."""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Build a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

            STATIC_HOST        bind address          (127.0.0.1)
            STATIC_PORT        listen port           (8080)
            STATIC_ROOT        directory to serve    (bundled site)
            STATIC_WORKERS     worker threads        (8)
            STATIC_LOG_LEVEL   logging level         (INFO)
            STATIC_LOG_FORMAT  text | json           (text)
            STATIC_GZIP        enable gzip           (1)
            STATIC_GZIP_LEVEL  -1, 1-9               (-1)

        Unset variables keep the dataclass default.

        =====================================================================

            STATIC_PORT=3000 STATIC_ROOT=./public python -m staticserver

        Raises:
            ValueError: A variable holds an unparsable value.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if "STATIC_HOST" in env:
            config.host = env["STATIC_HOST"]
        if "STATIC_PORT" in env:
            config.port = _parse_int("STATIC_PORT", env["STATIC_PORT"])
        if "STATIC_ROOT" in env:
            config.root = env["STATIC_ROOT"] or None
        if "STATIC_WORKERS" in env:
            config.workers = _parse_int("STATIC_WORKERS", env["STATIC_WORKERS"])
        if "STATIC_LOG_LEVEL" in env:
            config.log_level = env["STATIC_LOG_LEVEL"].upper()
        if "STATIC_LOG_FORMAT" in env:
            config.log_format = env["STATIC_LOG_FORMAT"].lower()
        if "STATIC_GZIP" in env:
            config.gzip = _parse_bool("STATIC_GZIP", env["STATIC_GZIP"])
        if "STATIC_GZIP_LEVEL" in env:
            config.gzip_level = _parse_int("STATIC_GZIP_LEVEL", env["STATIC_GZIP_LEVEL"])

        return config

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.workers < 1:
            raise ValueError("workers must be >= 1")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout <= 0 or self.keep_alive_timeout <= 0:
            raise ValueError("timeouts must be > 0")

        if self.max_request_size < 1024:
            raise ValueError("max_request_size must be >= 1024")

        if self.cache_max_age is not None and self.cache_max_age < 0:
            raise ValueError("cache_max_age must be >= 0")

        if not (self.gzip_level == zlib.Z_DEFAULT_COMPRESSION or 1 <= self.gzip_level <= 9):
            raise ValueError(f"gzip_level must be -1 or 1-9, got {self.gzip_level}")

        if not self.compressible_types:
            raise ValueError("compressible_types must not be empty")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Unknown log level: {self.log_level!r}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")

        if self.root is not None and not os.path.isdir(self.root):
            raise ValueError(f"root is not a directory: {self.root}")
