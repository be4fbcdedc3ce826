"""
Unit tests for the access logging middleware.
"""

import json
import logging

import pytest

from staticserver.http import ResponseRecorder
from staticserver.middleware import GzipMiddleware, MiddlewarePipeline
from staticserver.middleware.logging import (
    LoggingMiddleware,
    RequestLog,
    StatusRecorder,
    format_duration,
)


ACCESS_LOGGER = "staticserver.access"


def access_records(caplog):
    return [r for r in caplog.records if r.name == ACCESS_LOGGER]


class TestFormatDuration:
    """Tests for duration rendering."""

    @pytest.mark.parametrize("seconds, expected", [
        (0.0000005, "500ns"),
        (0.0001523, "152.3µs"),
        (0.001204, "1.204ms"),
        (0.25, "250ms"),
        (2.5, "2.5s"),
    ])
    def test_units(self, seconds: float, expected: str):
        assert format_duration(seconds) == expected


class TestStatusRecorder:
    """Tests for status observation."""

    def test_default_is_200(self):
        recorder = StatusRecorder(ResponseRecorder())

        assert recorder.status == 200
        assert recorder.wrote_header is False

    def test_first_write_header_wins(self):
        inner = ResponseRecorder()
        recorder = StatusRecorder(inner)

        recorder.write_header(404)
        recorder.write_header(500)

        assert recorder.status == 404
        assert inner.status == 404

    def test_write_before_header_records_200(self):
        inner = ResponseRecorder()
        recorder = StatusRecorder(inner)

        recorder.write(b"hello")
        recorder.write_header(500)

        assert recorder.status == 200
        assert inner.body == b"hello"

    def test_headers_and_commit_delegate(self):
        inner = ResponseRecorder()
        recorder = StatusRecorder(inner)

        recorder.headers["Content-Type"] = "text/plain"
        assert inner.headers["Content-Type"] == "text/plain"
        assert recorder.committed is False

        recorder.write_header(204)
        assert recorder.committed is True


class TestRequestLog:
    """Tests for the log record."""

    def test_to_text(self):
        entry = RequestLog("GET", "/index.html", 200, 0.001204)
        assert entry.to_text() == "GET /index.html 200 1.204ms"

    def test_to_dict(self):
        entry = RequestLog("HEAD", "/a", 304, 0.0025, client_ip="10.0.0.1")
        assert entry.to_dict() == {
            "method": "HEAD",
            "path": "/a",
            "status": 304,
            "duration_ms": 2.5,
            "client_ip": "10.0.0.1",
        }


class TestLoggingMiddleware:
    """Tests for LoggingMiddleware."""

    def test_logs_one_line_per_request(self, make_request, caplog):
        def handler(writer, request):
            writer.headers["Content-Type"] = "text/plain"
            writer.write_header(404)
            writer.write(b"not found")

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            LoggingMiddleware()(ResponseRecorder(), make_request("/missing"), handler)

        records = access_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        assert records[0].getMessage().startswith("GET /missing 404 ")

    def test_untouched_response_logs_200(self, make_request, caplog):
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            LoggingMiddleware()(ResponseRecorder(), make_request("/"), lambda w, r: None)

        assert access_records(caplog)[0].getMessage().startswith("GET / 200 ")

    def test_does_not_alter_response(self, make_request):
        direct = ResponseRecorder()
        logged = ResponseRecorder()

        def handler(writer, request):
            writer.headers["Content-Type"] = "text/css"
            writer.headers["Content-Length"] = "4"
            writer.write_header(200)
            writer.write(b"a {}")

        handler(direct, make_request())
        LoggingMiddleware()(logged, make_request(), handler)

        assert logged.status == direct.status
        assert dict(logged.sent_headers.items()) == dict(direct.sent_headers.items())
        assert logged.body == direct.body

    def test_json_format(self, make_request, caplog):
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            LoggingMiddleware(log_format="json")(
                ResponseRecorder(),
                make_request("/data.json"),
                lambda w, r: w.write_header(304),
            )

        record = json.loads(access_records(caplog)[0].getMessage())
        assert record["method"] == "GET"
        assert record["path"] == "/data.json"
        assert record["status"] == 304
        assert record["client_ip"] == "127.0.0.1"
        assert record["duration_ms"] >= 0

    def test_custom_level(self, make_request, caplog):
        with caplog.at_level(logging.DEBUG, logger=ACCESS_LOGGER):
            LoggingMiddleware(log_level=logging.DEBUG)(
                ResponseRecorder(), make_request(), lambda w, r: None
            )

        assert access_records(caplog)[0].levelno == logging.DEBUG

    def test_handler_exception_logged_and_reraised(self, make_request, caplog):
        def handler(writer, request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            with pytest.raises(RuntimeError, match="boom"):
                LoggingMiddleware()(ResponseRecorder(), make_request("/x"), handler)

        records = access_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert "GET /x failed after" in records[0].getMessage()
        assert "RuntimeError: boom" in records[0].getMessage()

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            LoggingMiddleware(log_format="xml")

    def test_sees_status_forwarded_by_compression(self, make_request, caplog):
        """Outside the gzip layer, the buffered status is logged once flushed."""
        def not_found(writer, request):
            writer.headers["Content-Type"] = "text/plain"
            writer.write_header(404)
            writer.write(b"not found")

        handler = (MiddlewarePipeline()
            .use(LoggingMiddleware(), GzipMiddleware())
            .wrap(not_found))

        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER):
            handler(ResponseRecorder(), make_request("/missing"))

        assert access_records(caplog)[0].getMessage().startswith("GET /missing 404 ")
