"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Turns the raw bytes a Connection read off the (already decrypted) TLS
stream into an HTTPRequest, and carries the connection's negotiated
protocol metadata alongside it.

    ┌─────────────────────────────────────────────────────────────────┐
    │  GET /orders?page=1 HTTP/1.1\r\n      ◄── request line          │
    │  Host: localhost:3000\r\n             ◄── headers               │
    │  \r\n                                 ◄── end of headers        │
    │  [body, Content-Length bytes]                                   │
    └─────────────────────────────────────────────────────────────────┘
                               │
                               ▼
    HTTPRequest(method="GET", path="/orders", version="HTTP/1.1",
                tls_version="TLSv1.3", ...)

Only HTTP/1.0 and HTTP/1.1 are understood. Anything else gets a 505.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import urlparse, unquote

from .status_codes import HTTPStatus


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the status the client should receive:
        400 Bad Request, 413 Payload Too Large, 431 headers too large,
        501 Not Implemented (unknown method), 505 HTTP Version Not Supported
    """

    def __init__(self, message: str, status_code: HTTPStatus = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request plus the metadata of the connection it came on.

    Attributes:
        method:         GET, POST, ...
        path:           URL-decoded path without the query string.
        version:        Request-line protocol, "HTTP/1.1" or "HTTP/1.0".
        headers:        Header names lowercased.
        body:           Exactly Content-Length bytes.
        client_address: (ip, port) of the peer.
        tls_version:    Negotiated TLS version as reported by the transport
                        ("TLSv1.3"), or None on a plaintext connection.
        alpn_protocol:  Protocol agreed via ALPN, if any.
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple = ("", 0)
    tls_version: Optional[str] = None
    alpn_protocol: Optional[str] = None

    @property
    def is_encrypted(self) -> bool:
        return self.tls_version is not None

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def content_length(self) -> int:
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client wants the connection kept open.

        HTTP/1.1 keeps alive unless "Connection: close".
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.1":
            return connection != "close"
        return connection == "keep-alive"

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes into HTTPRequest objects.

    The parser is stateless and shared by every worker thread.

    Usage:
        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw_bytes, client_address=("10.0.0.5", 51234))
    """

    VALID_METHODS = frozenset({
        "GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "CONNECT", "TRACE",
    })
    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+):\s*(.*?)\s*$")

    MAX_HEADERS = 100

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple = ("", 0),
        tls_version: Optional[str] = None,
        alpn_protocol: Optional[str] = None,
    ) -> HTTPRequest:
        """
        Parse one complete request.

        Args:
            data: Request bytes, headers and body.
            client_address: Peer (ip, port).
            tls_version: Negotiated TLS version of the connection.
            alpn_protocol: ALPN-selected protocol of the connection.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers['content-length']!r}")
        if content_length < 0:
            raise HTTPParseError("Negative Content-Length")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body[:content_length],
            client_address=client_address,
            tls_version=tls_version,
            alpn_protocol=alpn_protocol,
        )

    def _parse_request_line(self, line: str) -> tuple:
        """
        Parse "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            (method, path, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line[:100]!r}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Unknown method: {method}", status_code=HTTPStatus.NOT_IMPLEMENTED)

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        return method, path, version

    def _parse_headers(self, lines: list) -> Dict[str, str]:
        """
        Parse header lines into a dict with lowercase names.

        Repeated headers are joined with ", " (RFC 7230 §3.2.2).
        """
        if len(lines) > self.MAX_HEADERS:
            raise HTTPParseError(
                f"Too many headers: {len(lines)}",
                status_code=HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE,
            )

        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Invalid header line: {line[:100]!r}")

            name, value = match.group(1).lower(), match.group(2)
            if name in headers:
                headers[name] = f"{headers[name]}, {value}"
            else:
                headers[name] = value

        return headers
