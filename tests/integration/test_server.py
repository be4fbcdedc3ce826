"""
End-to-end tests against a live server on a real socket.
"""

import gzip
import http.client
import socket

from conftest import DATA_JSON, INDEX_HTML, LOGO_PNG


def connect(running_server) -> http.client.HTTPConnection:
    return http.client.HTTPConnection("127.0.0.1", running_server.port, timeout=5)


def raw_exchange(running_server, payload: bytes) -> bytes:
    """Send raw bytes, read until the server closes the connection."""
    with socket.create_connection(("127.0.0.1", running_server.port), timeout=5) as sock:
        sock.sendall(payload)
        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


class TestServing:
    """Requests through the full stack."""

    def test_gzip_html(self, running_server):
        conn = connect(running_server)
        conn.request("GET", "/index.html", headers={"Accept-Encoding": "gzip"})
        response = conn.getresponse()

        assert response.status == 200
        assert response.getheader("Content-Encoding") == "gzip"
        assert response.getheader("Content-Length") is None
        assert response.getheader("Transfer-Encoding") == "chunked"
        assert response.getheader("Vary") == "Accept-Encoding"
        assert gzip.decompress(response.read()) == INDEX_HTML
        conn.close()

    def test_png_not_compressed(self, running_server):
        conn = connect(running_server)
        conn.request("GET", "/logo.png", headers={"Accept-Encoding": "gzip"})
        response = conn.getresponse()

        assert response.status == 200
        assert response.getheader("Content-Encoding") is None
        assert response.getheader("Content-Type") == "image/png"
        assert response.read() == LOGO_PNG
        conn.close()

    def test_identity_without_accept_encoding(self, running_server):
        conn = connect(running_server)
        conn.request("GET", "/data.json", headers={"Accept-Encoding": "identity"})
        response = conn.getresponse()

        assert response.getheader("Content-Encoding") is None
        assert response.getheader("Content-Length") == str(len(DATA_JSON))
        assert response.read() == DATA_JSON
        conn.close()

    def test_missing(self, running_server):
        conn = connect(running_server)
        conn.request("GET", "/missing", headers={"Accept-Encoding": "gzip"})
        response = conn.getresponse()

        assert response.status == 404
        assert response.getheader("Content-Encoding") == "gzip"
        assert gzip.decompress(response.read()) == b"404 page not found\n"
        conn.close()

    def test_head(self, running_server):
        conn = connect(running_server)
        conn.request("HEAD", "/index.html", headers={"Accept-Encoding": "gzip"})
        response = conn.getresponse()

        assert response.status == 200
        assert response.getheader("Content-Length") == str(len(INDEX_HTML))
        assert response.read() == b""
        conn.close()

    def test_method_not_allowed(self, running_server):
        conn = connect(running_server)
        conn.request("DELETE", "/index.html")
        response = conn.getresponse()

        assert response.status == 405
        assert response.getheader("Allow") == "GET, HEAD"
        response.read()
        conn.close()

    def test_conditional_get(self, running_server):
        conn = connect(running_server)
        conn.request("GET", "/logo.png")
        first = conn.getresponse()
        first.read()

        conn.request("GET", "/logo.png", headers={"If-None-Match": first.getheader("ETag")})
        second = conn.getresponse()

        assert second.status == 304
        assert second.read() == b""
        conn.close()

    def test_keep_alive_reuses_connection(self, running_server):
        conn = connect(running_server)

        for path, expected in (("/index.html", INDEX_HTML), ("/data.json", DATA_JSON)):
            conn.request("GET", path, headers={"Accept-Encoding": "gzip"})
            response = conn.getresponse()
            assert response.status == 200
            assert gzip.decompress(response.read()) == expected

        conn.close()


class TestRawProtocol:
    """Wire-level behavior that http.client hides."""

    def test_http10_gzip_closes_connection(self, running_server):
        data = raw_exchange(
            running_server,
            b"GET /data.json HTTP/1.0\r\nAccept-Encoding: gzip\r\n\r\n",
        )

        head, body = data.split(b"\r\n\r\n", 1)
        assert head.startswith(b"HTTP/1.0 200 OK")
        assert b"Content-Encoding: gzip" in head
        assert b"Connection: close" in head
        assert b"Transfer-Encoding" not in head
        assert gzip.decompress(body) == DATA_JSON

    def test_malformed_request(self, running_server):
        data = raw_exchange(running_server, b"NONSENSE\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 400 Bad Request")
        assert b"Connection: close" in data

    def test_unsupported_version(self, running_server):
        data = raw_exchange(running_server, b"GET / HTTP/3.0\r\n\r\n")

        assert data.startswith(b"HTTP/1.1 505 ")

    def test_traversal_not_found(self, running_server):
        data = raw_exchange(
            running_server,
            b"GET /../../etc/passwd HTTP/1.1\r\nConnection: close\r\n\r\n",
        )

        assert data.startswith(b"HTTP/1.1 404 Not Found")


class TestLifecycle:
    def test_port_assigned(self, running_server):
        assert running_server.port != 0
        assert running_server.server.is_running is True
