"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m staticserver                         # bundled site on :8080
    python -m staticserver --root ./public         # your own files
    python -m staticserver --host 0.0.0.0 -p 80    # every interface
    python -m staticserver --no-gzip               # never compress
    python -m staticserver --log-format json       # machine-readable access log

Flags override STATIC_* environment variables, which override defaults.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import ServerConfig
from .server import StaticServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Static file server with access logging and on-the-fly gzip",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m staticserver                        # Bundled site on 127.0.0.1:8080
  python -m staticserver --root ./public        # Serve a directory
  python -m staticserver --host 0.0.0.0         # Listen on all interfaces
  python -m staticserver --no-gzip              # Disable compression
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────
    # Defaults are None so that unset flags leave env/config values alone
    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 8080)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: 8)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--root", "-r",
        default=None,
        help="Directory to serve (default: the bundled site)",
    )
    parser.add_argument(
        "--cache-max-age",
        type=int,
        default=None,
        help="Send Cache-Control: public, max-age=N with every file",
    )
    parser.add_argument(
        "--directory-listing",
        action="store_true",
        help="List directories that have no index.html",
    )
    parser.add_argument(
        "--no-gzip",
        action="store_true",
        help="Never compress responses",
    )
    parser.add_argument(
        "--gzip-level",
        type=int,
        default=None,
        help="gzip level 1-9 (default: zlib default, 6)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Access log format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Apply parsed flags on top of ``base`` (environment config by default)."""
    config = base if base is not None else ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.workers = args.workers
    if args.root is not None:
        config.root = args.root
    if args.cache_max_age is not None:
        config.cache_max_age = args.cache_max_age
    if args.directory_listing:
        config.directory_listing = True
    if args.no_gzip:
        config.gzip = False
    if args.gzip_level is not None:
        config.gzip_level = args.gzip_level
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_format is not None:
        config.log_format = args.log_format

    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        server = StaticServer(config)
    except ValueError as e:
        parser.error(str(e))

    try:
        server.run()
    except OSError as e:
        print(f"staticserver: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
