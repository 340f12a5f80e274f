"""
=============================================================================
TLSBOOTSTRAP - Minimal HTTPS Server With TLS Version Diagnostics
=============================================================================

A small HTTPS server built on raw sockets and the standard library ssl
module. It refuses clients below a configured minimum TLS version and
logs, for every request, which HTTP and TLS versions were negotiated.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      TLSBOOTSTRAP ARCHITECTURE                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. TLS POLICY                                                     │
    │      - Closed set of versions: TLS 1.0, 1.1, 1.2, 1.3               │
    │      - Minimum version applied to the SSLContext                    │
    │      - Negotiated version re-checked after every handshake          │
    │                                                                      │
    │   2. CERTIFICATE IDENTITY                                           │
    │      - PEM certificate + key loaded before any socket exists        │
    │                                                                      │
    │   3. TRANSPORT                                                      │
    │      - Accept loop + bounded thread pool                            │
    │      - Handshake and request loop on the worker thread              │
    │                                                                      │
    │   4. HTTP                                                           │
    │      - HTTP/1.x parsing, exact-path routing, keep-alive             │
    │      - Protocol log line before every handler                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tlsbootstrap/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tlsbootstrap)
    ├── server.py            # TLSServer + serve()
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # ConfigurationError, CertificateLoadError, BindError
    ├── tls/                 # versions, policy, certificate identity
    ├── core/                # socket server, connection, thread pool
    ├── http/                # request, response, router, status codes
    ├── middleware/          # pipeline + protocol logging
    └── handlers/            # /orders and /users

=============================================================================
QUICK START
=============================================================================

    from tlsbootstrap import Router, configure, register_default_routes, serve

    router = register_default_routes(Router())
    serve(("127.0.0.1", 3000), "cert.pem", "key.pem", configure("TLS1.3"), router)

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .errors import BindError, CertificateLoadError, ConfigurationError, ServerError
from .handlers import register_default_routes
from .http import Router
from .middleware import log_connection
from .server import TLSServer, serve
from .tls import TLSPolicy, TLSVersion, UnrecognizedTLSVersion, configure

__all__ = [
    "ServerConfig",
    "ServerError",
    "ConfigurationError",
    "CertificateLoadError",
    "BindError",
    "Router",
    "TLSServer",
    "TLSPolicy",
    "TLSVersion",
    "UnrecognizedTLSVersion",
    "configure",
    "log_connection",
    "register_default_routes",
    "serve",
    "__version__",
]
