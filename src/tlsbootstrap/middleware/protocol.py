"""
=============================================================================
PROTOCOL LOGGING
=============================================================================

Writes one line per request describing what the connection negotiated,
before the handler runs:

    Received request with HTTP/1.1 over TLS 1.3
    Received request with HTTP/1.0 over TLS 1.2
    Received request with HTTP/1.1 (no TLS)
    Received request with HTTP/1.1 over unrecognized TLS version (SSLv3)

The entry is built from two fields the connection attached to the
request (request.version and request.tls_version), written to the sink,
and dropped. Nothing is stored.

A broken sink must never break a request: any exception raised while
formatting or emitting the line is swallowed here.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..tls.versions import NegotiatedVersion, from_negotiated


# Dedicated logger so operators can route protocol diagnostics separately:
#   logging.getLogger("tlsbootstrap.protocol").setLevel(logging.WARNING)
logger = logging.getLogger("tlsbootstrap.protocol")

NO_TLS = "no TLS"


@dataclass(frozen=True)
class ProtocolLogEntry:
    """Negotiated protocol parameters of one request."""

    http_version: str
    tls_version: Optional[NegotiatedVersion]

    @classmethod
    def from_request(cls, request: HTTPRequest) -> "ProtocolLogEntry":
        if not request.is_encrypted:
            return cls(http_version=request.version, tls_version=None)
        return cls(
            http_version=request.version,
            tls_version=from_negotiated(request.tls_version),
        )

    def to_text(self) -> str:
        if self.tls_version is None:
            return f"Received request with {self.http_version} ({NO_TLS})"
        return f"Received request with {self.http_version} over {self.tls_version.label}"


def log_connection(request: HTTPRequest, sink=None) -> None:
    """
    Log the negotiated HTTP and TLS versions of a request.

    Args:
        request: The parsed request, carrying its connection's metadata.
        sink: Anything with an ``info(str)`` method. Defaults to the
              ``tlsbootstrap.protocol`` logger.
    """
    try:
        (sink or logger).info(ProtocolLogEntry.from_request(request).to_text())
    except Exception:  # noqa: BLE001 - logging must not affect the request
        pass


class ProtocolLoggingMiddleware(Middleware):
    """
    Calls log_connection() for every request, then continues the chain.

    Add it first so it also sees requests that later middleware rejects:

        server.use(ProtocolLoggingMiddleware())
    """

    def __init__(self, sink=None):
        self.sink = sink

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        log_connection(request, self.sink)
        return next(request)
