"""
=============================================================================
STATIC SERVER
=============================================================================

Puts the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │  SocketServer ──► ThreadPool worker ──► _process_connection(conn)    │
    │                                              │                       │
    │                          ┌───────────────────┘                       │
    │                          ▼                                           │
    │            read_request → parse → ConnectionWriter                   │
    │                                          │                           │
    │                                          ▼                           │
    │            LoggingMiddleware → GzipMiddleware → StaticFileHandler    │
    │                                          │                           │
    │                                          ▼                           │
    │                               writer.finish()                        │
    │                               keep-alive? loop : close               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHEN THINGS GO WRONG
=============================================================================

    parse error            → 400/405/413/505, close
    read timeout           → 408, close
    handler raised,
      nothing sent yet     → 500, close
      response under way   → close (status line already sent)
    socket error           → close

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, RequestTooLarge, SocketServer, ThreadPool
from .handlers import AssetStore, DirectoryAssetStore, StaticFileHandler, bundled_assets
from .http import (
    ConnectionWriter,
    HTTPParseError,
    HTTPStatus,
    RequestParser,
    error_response,
)
from .middleware import GzipMiddleware, Handler, LoggingMiddleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


def build_handler(store: AssetStore, config: Optional[ServerConfig] = None) -> Handler:
    """
    Compose the request pipeline:

        LoggingMiddleware → GzipMiddleware → StaticFileHandler(store)

    The gzip layer is left out when ``config.gzip`` is False.
    """
    config = config or ServerConfig()

    pipeline = MiddlewarePipeline()
    pipeline.add(LoggingMiddleware(log_format=config.log_format))
    if config.gzip:
        pipeline.add(GzipMiddleware(
            level=config.gzip_level,
            compressible_types=config.compressible_types,
        ))

    return pipeline.wrap(StaticFileHandler(
        store,
        index_file=config.index_file,
        cache_max_age=config.cache_max_age,
        enable_directory_listing=config.directory_listing,
    ))


class StaticServer:
    """
    Multi-threaded HTTP/1.1 static file server.

    Usage:
        server = StaticServer(ServerConfig(root="./public"))
        server.run()        # blocks until SIGINT/SIGTERM or shutdown()

    Args:
        config: Server configuration (validated here, fail-fast).
        handler: Request handler to run instead of the default pipeline
            built from ``config``.
    """

    def __init__(self, config: Optional[ServerConfig] = None, handler: Optional[Handler] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        if handler is None:
            store = DirectoryAssetStore(self.config.root) if self.config.root else bundled_assets()
            handler = build_handler(store, self.config)

        self.handler = handler

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(num_workers=self.config.workers)
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._running = False

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    def run(self, setup_logging: bool = True):
        """Serve until shutdown (blocking)."""
        if setup_logging:
            self._setup_logging()

        self._running = True
        self._thread_pool.start()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask a running server to stop. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True)
        logger.info("Server stopped")

    def _handle_connection(self, conn: Connection):
        submitted = self._thread_pool.submit(self._process_connection, conn, block=False)
        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE)
            conn.close()

    def _process_connection(self, conn: Connection):
        """
        Keep-alive loop for one connection (runs in a worker thread).

            read → parse → handle → finish → (keep-alive ? repeat : close)
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT)
                    break
                except RequestTooLarge as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE)
                    break
                except OSError as e:
                    logger.debug(f"[{conn.id}] Read failed: {e}")
                    break

                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Parse error: {e}")
                    self._send_error(conn, HTTPStatus(e.status_code), str(e))
                    break

                keep_alive = self.config.keep_alive and request.is_keep_alive and self._running
                writer = ConnectionWriter(
                    conn,
                    method=request.method,
                    version=request.version,
                    keep_alive=keep_alive,
                    server_name=self.config.server_name,
                )

                try:
                    self.handler(writer, request)
                    writer.finish()
                except OSError as e:
                    logger.debug(f"[{conn.id}] Write failed: {e}")
                    break
                except Exception as e:
                    logger.exception(f"[{conn.id}] Handler error: {e}")
                    if not writer.committed:
                        self._send_error(conn, HTTPStatus.INTERNAL_SERVER_ERROR, version=request.version)
                    break

                if not writer.keep_alive:
                    break

                conn.set_keep_alive()

    def _send_error(
        self,
        conn: Connection,
        status: HTTPStatus,
        message: str = "",
        version: str = "HTTP/1.1",
    ):
        """
        Answer with a plain-text error and mark the connection for close.

        Used where no handler is involved (parse errors, timeouts) or
        where the handler failed before sending anything.
        """
        writer = ConnectionWriter(
            conn,
            version=version,
            keep_alive=False,
            server_name=self.config.server_name,
        )
        try:
            error_response(status, message).write_to(writer)
            writer.finish()
        except OSError as e:
            logger.debug(f"[{conn.id}] Could not send {int(status)}: {e}")
