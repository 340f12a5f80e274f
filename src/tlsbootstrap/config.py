"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables for the TLS bootstrap server in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m tlsbootstrap --port 8443 --min-tls TLS1.3       │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── TLS_PORT=8443 python -m tlsbootstrap                      │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation is eager: validate() runs when the server is constructed and
raises ConfigurationError before any file is read or socket opened.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError
from .tls.versions import TLSVersion


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the TLS bootstrap server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    TLS         cert_file, key_file, min_tls_version
    HTTP        keep_alive, keep_alive_timeout, max_request_size
    THREADING   min_workers, max_workers, queue_size
    LOGGING     log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 3000
    """TCP port. 0 lets the OS pick a free port (used by tests)."""

    backlog: int = 128
    """Accept queue length before the OS refuses new connections."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = None
    """
    Socket timeout for the handshake and the first request, in seconds.
    None (the default) enforces no deadline: a connection runs until it
    completes or the client disconnects.
    """

    # ─────────────────────────────────────────────────────────────────────
    # TLS SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    cert_file: str = "cert.pem"
    """PEM certificate (chain) presented to clients."""

    key_file: str = "key.pem"
    """PEM private key for cert_file. Must not be encrypted."""

    min_tls_version: str = TLSVersion.TLS1_2.value
    """Oldest TLS version accepted: TLS1.0, TLS1.1, TLS1.2 or TLS1.3."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Serve more than one request per connection (HTTP/1.1 default)."""

    keep_alive_timeout: float = 5.0
    """Idle seconds allowed between requests on a kept-alive connection."""

    max_request_size: int = 1024 * 1024  # 1 MB
    """Largest request (headers + body) accepted, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16
    queue_size: int = 100
    """Pending connections waiting for a worker before new ones are dropped."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "tlsbootstrap/1.0"

    @property
    def address(self) -> tuple:
        return (self.host, self.port)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TLS_HOST         Bind address          (default: 127.0.0.1)
        TLS_PORT         Listening port        (default: 3000)
        TLS_CERT_FILE    Certificate path      (default: cert.pem)
        TLS_KEY_FILE     Private key path      (default: key.pem)
        TLS_MIN_VERSION  Minimum TLS version   (default: TLS1.2)
        TLS_WORKERS      Max worker threads    (default: 16)
        TLS_TIMEOUT      Socket timeout secs   (default: none)
        TLS_LOG_LEVEL    Logging level         (default: INFO)

        =====================================================================

        Raises:
            ConfigurationError: If a numeric variable does not parse.
        """
        try:
            timeout = os.getenv("TLS_TIMEOUT")
            workers = int(os.getenv("TLS_WORKERS", "16"))
            return cls(
                host=os.getenv("TLS_HOST", "127.0.0.1"),
                port=int(os.getenv("TLS_PORT", "3000")),
                cert_file=os.getenv("TLS_CERT_FILE", "cert.pem"),
                key_file=os.getenv("TLS_KEY_FILE", "key.pem"),
                min_tls_version=os.getenv("TLS_MIN_VERSION", TLSVersion.TLS1_2.value),
                min_workers=min(4, workers),
                max_workers=workers,
                timeout=float(timeout) if timeout else None,
                log_level=os.getenv("TLS_LOG_LEVEL", "INFO"),
            )
        except ValueError as e:
            raise ConfigurationError(f"invalid environment setting: {e}") from e

    def validate(self) -> None:
        """
        Validate configuration values (fail fast at startup).

        Raises:
            ConfigurationError: On the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not self.cert_file or not self.key_file:
            raise ConfigurationError("cert_file and key_file must both be set")

        # Raises ConfigurationError for anything outside the four versions
        TLSVersion.parse(self.min_tls_version)

        if self.min_workers < 1:
            raise ConfigurationError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ConfigurationError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ConfigurationError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ConfigurationError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError("timeout must be > 0 or None")

        if self.keep_alive_timeout <= 0:
            raise ConfigurationError("keep_alive_timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}."
            )
