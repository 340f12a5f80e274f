"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

    Handler returns          to_bytes()              Connection sends
    HTTPResponse    ─────►   serializes    ─────►    over TLS
        │                       │                        │
    HTTPResponse(            b"HTTP/1.1 200 OK\r\n   ssl_socket.sendall(
      status=200,              Content-Length: ..\r\n    response_bytes
      body=b"..."              \r\n                    )
    )                          Handling users..✅"

Content-Length, Date and Server are filled in at serialization time if
the handler did not set them.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Union

from .status_codes import HTTPStatus


TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass
class HTTPResponse:
    """An HTTP response waiting to be serialized."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "tlsbootstrap/1.0") -> bytes:
        """
        Serialize status line, headers and body.

        The header dict is copied so serializing never mutates the
        response a handler returned.
        """
        response_headers = dict(self.headers)
        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text("Handling users..✅")
            .build())
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_PLAIN) -> "ResponseBuilder":
        self._headers["Content-Type"] = content_type
        return self.body(text)

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=dict(self._headers),
            body=self._body,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date, always in GMT.

    Example: "Sat, 17 Oct 2026 12:00:00 GMT"
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(text: str = "") -> HTTPResponse:
    """200 OK with a plain-text body."""
    return ResponseBuilder().text(text).build()


def not_found() -> HTTPResponse:
    """
    404 Not Found with a short plain-text body.
    """
    return (ResponseBuilder()
        .status(HTTPStatus.NOT_FOUND)
        .header("X-Content-Type-Options", "nosniff")
        .text("404 page not found\n")
        .build())


def error_response(status: HTTPStatus, message: str) -> HTTPResponse:
    """Plain-text error response that closes the connection."""
    return (ResponseBuilder()
        .status(status)
        .text(f"{int(status)} {status.phrase}: {message}\n")
        .close_connection()
        .build())


def internal_error() -> HTTPResponse:
    """500 Internal Server Error. Never exposes exception details."""
    return (ResponseBuilder()
        .status(HTTPStatus.INTERNAL_SERVER_ERROR)
        .text("500 Internal Server Error\n")
        .build())
