"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

    request.py        HTTPRequest + RequestParser (bytes → request)
    response.py       HTTPResponse + ResponseBuilder (response → bytes)
    router.py         exact-path Router (request → handler)
    status_codes.py   HTTPStatus enum

Key points of HTTP/1.x framing:
- Lines end with CRLF (\r\n)
- Headers and body are separated by an empty line (\r\n\r\n)
- Header names are case-insensitive
- Body length comes from Content-Length

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    not_found,
    error_response,
    internal_error,
)
from .router import Router, Route, Handler
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "not_found",
    "error_response",
    "internal_error",
    "Router",
    "Route",
    "Handler",
    "HTTPStatus",
]
