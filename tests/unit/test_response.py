"""
Unit tests for HTTP response values.
"""

from staticserver.http import ResponseRecorder
from staticserver.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    method_not_allowed,
    not_found,
    not_modified,
    redirect,
)
from staticserver.http.status_codes import HTTPStatus, body_allowed, reason_phrase


class TestHTTPResponse:
    """Tests for HTTPResponse.write_to."""

    def test_write_to_sets_content_length(self):
        recorder = ResponseRecorder()

        HTTPResponse(body=b"hello world").write_to(recorder)

        assert recorder.status == 200
        assert recorder.sent_headers["Content-Length"] == "11"
        assert recorder.body == b"hello world"

    def test_explicit_content_length_kept(self):
        recorder = ResponseRecorder()

        HTTPResponse(headers={"Content-Length": "99"}, body=b"x").write_to(recorder)

        assert recorder.sent_headers["Content-Length"] == "99"

    def test_headers_committed_before_body(self):
        recorder = ResponseRecorder()

        HTTPResponse(headers={"X-Custom": "value"}, body=b"test").write_to(recorder)

        assert recorder.sent_headers["X-Custom"] == "value"

    def test_head_omits_body(self):
        recorder = ResponseRecorder()

        HTTPResponse(body=b"hello").write_to(recorder, include_body=False)

        assert recorder.sent_headers["Content-Length"] == "5"
        assert recorder.body == b""

    def test_empty_body_commits_status(self):
        recorder = ResponseRecorder()

        HTTPResponse(status=HTTPStatus.NO_CONTENT).write_to(recorder)

        assert recorder.status == 204
        assert "Content-Length" not in recorder.sent_headers

    def test_set_header_chaining(self):
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers == {"X-One": "1", "X-Two": "2"}


class TestResponseBuilder:
    """Tests for ResponseBuilder."""

    def test_text(self):
        response = ResponseBuilder().text("hi").build()

        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == b"hi"

    def test_html(self):
        response = ResponseBuilder().html("<p>é</p>").build()

        assert response.headers["Content-Type"] == "text/html; charset=utf-8"
        assert response.body == "<p>é</p>".encode("utf-8")

    def test_file(self):
        response = ResponseBuilder().file(b"\x89PNG", "img/logo.png").build()

        assert response.headers["Content-Type"] == "image/png"
        assert response.body == b"\x89PNG"

    def test_redirect(self):
        assert ResponseBuilder().redirect("/a/").build().status == HTTPStatus.FOUND

        response = ResponseBuilder().redirect("/a/", permanent=True).build()
        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/a/"

    def test_cache(self):
        assert ResponseBuilder().cache(60).build().headers["Cache-Control"] == "public, max-age=60"
        assert ResponseBuilder().no_cache().build().headers["Cache-Control"] == "no-cache"

    def test_build_copies_headers(self):
        builder = ResponseBuilder().header("A", "1")
        first = builder.build()
        builder.header("B", "2")

        assert "B" not in first.headers


class TestConvenienceFunctions:
    """Tests for the prebuilt responses."""

    def test_not_found(self):
        response = not_found()

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"
        assert response.body == b"404 page not found\n"

    def test_not_modified(self):
        response = not_modified('"1-abc"')

        assert response.status == HTTPStatus.NOT_MODIFIED
        assert response.headers["ETag"] == '"1-abc"'
        assert response.body == b""

    def test_redirect(self):
        assert redirect("/x").status == HTTPStatus.FOUND
        assert redirect("/x", permanent=True).status == HTTPStatus.MOVED_PERMANENTLY

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET", "HEAD"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, HEAD"

    def test_error_response_default_message(self):
        assert error_response(HTTPStatus.BAD_REQUEST).body == b"400 Bad Request\n"

    def test_error_response_custom_message(self):
        response = error_response(HTTPStatus.BAD_REQUEST, "Invalid request line")
        assert response.body == b"400 Invalid request line\n"


class TestStatusCodes:
    """Tests for status code helpers."""

    def test_phrases(self):
        assert HTTPStatus.OK.phrase == "OK"
        assert reason_phrase(404) == "Not Found"

    def test_body_allowed(self):
        assert body_allowed(200) is True
        assert body_allowed(404) is True
        assert body_allowed(204) is False
        assert body_allowed(304) is False
        assert body_allowed(101) is False
