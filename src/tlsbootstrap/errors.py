"""
=============================================================================
STARTUP ERRORS
=============================================================================

Every way the server can fail to come up is one of three exceptions, each
naming the startup stage that failed:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      STARTUP SEQUENCE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   configure()  ──────►  load identity  ──────►  bind / listen       │
    │       │                      │                       │              │
    │       ▼                      ▼                       ▼              │
    │  ConfigurationError   CertificateLoadError        BindError         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

None of them are retried. The core raises them and the entry point
(__main__.py) logs a single line and exits non-zero, so everything below
the entry point can be exercised in-process by tests.

Per-connection TLS handshake failures are NOT errors at this level. They
are rejected connections, handled inside core/connection.py.

=============================================================================
"""


class ServerError(Exception):
    """Base class for fatal startup errors."""

    stage = "startup"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.stage} failed: {self.message}"


class ConfigurationError(ServerError, ValueError):
    """
    Invalid configuration input.

    Raised for an unrecognized minimum TLS version or any ServerConfig
    value that fails validation. Surfaces before a socket is opened.

    Also a ValueError, so ``except ValueError`` catches it.
    """

    stage = "configuration"


class CertificateLoadError(ServerError):
    """
    The certificate or private key could not be loaded.

    Attributes:
        cert_path: Path of the certificate file.
        key_path: Path of the private key file.
    """

    stage = "certificate"

    def __init__(self, message: str, cert_path: str = "", key_path: str = ""):
        super().__init__(message)
        self.cert_path = cert_path
        self.key_path = key_path


class BindError(ServerError):
    """
    The listening socket could not be bound.

    Usually "address already in use", or a port below 1024 without
    privileges.
    """

    stage = "bind"

    def __init__(self, message: str, address: tuple = ("", 0)):
        super().__init__(message)
        self.address = address
