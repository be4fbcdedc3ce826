"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import ServerConfig, StaticServer, build_handler
from staticserver.handlers import MemoryAssetStore
from staticserver.http import HTTPRequest


INDEX_HTML = b"<!DOCTYPE html>\n<html><head><title>t</title></head><body>" + b"hello " * 200 + b"</body></html>\n"
SITE_CSS = b"body { margin: 0; padding: 0; }\n" * 50
DATA_JSON = b'{"items": [' + b", ".join(b'{"id": %d}' % i for i in range(100)) + b"]}\n"
LOGO_PNG = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /css/site.css?v=3&v=4 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, deflate\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def make_request() -> Callable[..., HTTPRequest]:
    """Factory for parsed requests, optionally advertising gzip."""

    def factory(
        path: str = "/index.html",
        method: str = "GET",
        gzip: bool = True,
        **headers: str,
    ) -> HTTPRequest:
        request_headers = {name.replace("_", "-").lower(): value for name, value in headers.items()}
        if gzip:
            request_headers.setdefault("accept-encoding", "gzip, deflate, br")
        return HTTPRequest(
            method=method,
            path=path,
            headers=request_headers,
            client_address=("127.0.0.1", 50000),
        )

    return factory


@pytest.fixture
def memory_store() -> MemoryAssetStore:
    """A small site: html, css, json, a png and a directory without an index."""
    return MemoryAssetStore({
        "index.html": INDEX_HTML,
        "css/site.css": SITE_CSS,
        "data.json": DATA_JSON,
        "logo.png": LOGO_PNG,
        "docs/guide/intro.txt": b"intro\n",
    })


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class RunningServer:
    """A StaticServer serving from a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False},
            daemon=True,
        )

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        self._thread.join(timeout=10.0)


@pytest.fixture
def server_config() -> ServerConfig:
    """Test server configuration: OS-assigned port, short timeouts."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def running_server(
    server_config: ServerConfig,
    memory_store: MemoryAssetStore,
) -> Generator[RunningServer, None, None]:
    """A live server over the memory store."""
    server = StaticServer(server_config, handler=build_handler(memory_store, server_config))
    running = RunningServer(server)
    running.start()

    yield running

    running.stop()
