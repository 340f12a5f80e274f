"""
Unit tests for per-request protocol logging and the middleware pipeline.
"""

import logging

from tlsbootstrap.http.request import HTTPRequest
from tlsbootstrap.http.response import HTTPResponse, ok
from tlsbootstrap.middleware import (
    Middleware,
    MiddlewarePipeline,
    ProtocolLogEntry,
    ProtocolLoggingMiddleware,
    log_connection,
)
from tlsbootstrap.tls.versions import TLSVersion


class RecordingSink:
    def __init__(self):
        self.lines = []

    def info(self, message):
        self.lines.append(message)


class BrokenSink:
    def info(self, message):
        raise IOError("disk full")


def make_request(version: str = "HTTP/1.1", tls_version=None) -> HTTPRequest:
    return HTTPRequest(method="GET", path="/orders", version=version, tls_version=tls_version)


class TestProtocolLogEntry:
    """Tests for the log line text."""

    def test_tls13(self):
        entry = ProtocolLogEntry.from_request(make_request(tls_version="TLSv1.3"))

        assert entry.tls_version is TLSVersion.TLS1_3
        assert entry.to_text() == "Received request with HTTP/1.1 over TLS 1.3"

    def test_http10_over_tls12(self):
        entry = ProtocolLogEntry.from_request(make_request("HTTP/1.0", "TLSv1.2"))
        assert entry.to_text() == "Received request with HTTP/1.0 over TLS 1.2"

    def test_plaintext(self):
        entry = ProtocolLogEntry.from_request(make_request())

        assert entry.tls_version is None
        assert entry.to_text() == "Received request with HTTP/1.1 (no TLS)"

    def test_unrecognized_version(self):
        entry = ProtocolLogEntry.from_request(make_request(tls_version="SSLv3"))
        assert entry.to_text() == "Received request with HTTP/1.1 over unrecognized TLS version (SSLv3)"


class TestLogConnection:
    """Tests for log_connection()."""

    def test_writes_one_line_to_sink(self):
        sink = RecordingSink()
        log_connection(make_request(tls_version="TLSv1.2"), sink)

        assert sink.lines == ["Received request with HTTP/1.1 over TLS 1.2"]

    def test_default_logger(self, caplog):
        with caplog.at_level(logging.INFO, logger="tlsbootstrap.protocol"):
            log_connection(make_request(tls_version="TLSv1.3"))

        messages = [r.getMessage() for r in caplog.records if r.name == "tlsbootstrap.protocol"]
        assert messages == ["Received request with HTTP/1.1 over TLS 1.3"]

    def test_sink_failure_is_swallowed(self):
        assert log_connection(make_request(tls_version="TLSv1.3"), BrokenSink()) is None


class TestProtocolLoggingMiddleware:
    """Tests for ProtocolLoggingMiddleware."""

    def test_logs_before_handler(self):
        sink = RecordingSink()
        calls = []

        def handler(request):
            calls.append(list(sink.lines))
            return ok("done")

        response = ProtocolLoggingMiddleware(sink)(make_request(tls_version="TLSv1.3"), handler)

        assert response.body == b"done"
        assert calls == [["Received request with HTTP/1.1 over TLS 1.3"]]

    def test_broken_sink_does_not_affect_response(self):
        middleware = ProtocolLoggingMiddleware(BrokenSink())
        response = middleware(make_request(tls_version="TLSv1.2"), lambda request: ok("still fine"))

        assert response.body == b"still fine"


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    def test_order(self):
        order = []

        class Tag(Middleware):
            def __init__(self, tag):
                self.tag = tag

            def __call__(self, request: HTTPRequest, next) -> HTTPResponse:
                order.append(f"{self.tag}:before")
                response = next(request)
                order.append(f"{self.tag}:after")
                return response

        def handler(request):
            order.append("handler")
            return ok()

        pipeline = MiddlewarePipeline().add(Tag("A")).add(Tag("B"))
        pipeline.wrap(handler)(make_request())

        assert len(pipeline) == 2
        assert order == ["A:before", "B:before", "handler", "B:after", "A:after"]

    def test_empty_pipeline_is_handler(self):
        def handler(request):
            return ok("direct")

        assert MiddlewarePipeline().wrap(handler)(make_request()).body == b"direct"

    def test_middleware_name(self):
        assert ProtocolLoggingMiddleware().name == "ProtocolLoggingMiddleware"
