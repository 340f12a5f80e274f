"""
=============================================================================
TLSBOOTSTRAP CLI ENTRY POINT
=============================================================================

    # Defaults: 127.0.0.1:3000, cert.pem / key.pem, TLS 1.2 or newer
    python -m tlsbootstrap

    # Only TLS 1.3 clients
    python -m tlsbootstrap --min-tls TLS1.3

    # Explicit certificate and port
    python -m tlsbootstrap --cert server.crt --key server.key --port 8443

Every option also has an environment variable (TLS_PORT, TLS_CERT_FILE,
TLS_MIN_VERSION, ...). Command-line values win over the environment.

=============================================================================
STARTUP AND EXIT
=============================================================================

1. Build ServerConfig from the environment, then apply CLI overrides
2. configure() the TLS policy from the minimum version
3. Register /orders and /users on a fresh Router
4. serve() (blocks)

A configuration, certificate or bind failure is logged as one error line
naming the stage that failed, and the process exits with status 1.

=============================================================================
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .errors import ServerError
from .handlers import register_default_routes
from .http import Router
from .server import TLSServer
from .tls import TLSVersion, configure


logger = logging.getLogger("tlsbootstrap")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tlsbootstrap",
        description="Minimal HTTPS server with TLS version diagnostics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tlsbootstrap                          # 127.0.0.1:3000, TLS >= 1.2
  python -m tlsbootstrap --min-tls TLS1.3         # TLS 1.3 only
  python -m tlsbootstrap --cert c.pem --key k.pem # custom certificate
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="Port to listen on (default: 3000)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # TLS ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--cert",
        default=None,
        help="PEM certificate file (default: cert.pem)",
    )
    parser.add_argument(
        "--key",
        default=None,
        help="PEM private key file (default: key.pem)",
    )
    parser.add_argument(
        "--min-tls",
        choices=[v.value for v in TLSVersion],
        default=None,
        help="Oldest TLS version to accept (default: TLS1.2)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (max will be 2x this)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tlsbootstrap {__version__}",
    )
    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then any CLI argument that was given."""
    config = ServerConfig.from_env()

    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.cert is not None:
        config.cert_file = args.cert
    if args.key is not None:
        config.key_file = args.key
    if args.min_tls is not None:
        config.min_tls_version = args.min_tls
    if args.workers is not None:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.log_level is not None:
        config.log_level = args.log_level

    return config


def setup_logging(level_name: str):
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
        setup_logging(config.log_level)

        policy = configure(config.min_tls_version)

        router = Router()
        register_default_routes(router)

        server = TLSServer(config, router, policy)
        server.serve()
    except ServerError as e:
        # Logging may not be configured yet if the environment was invalid.
        if not logging.getLogger().handlers:
            setup_logging("INFO")
        logger.error(str(e))
        sys.exit(1)

    return 0


if __name__ == "__main__":
    sys.exit(main())
