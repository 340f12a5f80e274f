"""
pytest configuration and fixtures.
"""

import datetime
import http.client
import ipaddress
import socket
import ssl
import threading
from typing import Generator, List, Optional, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tlsbootstrap import ServerConfig, TLSServer, configure
from tlsbootstrap.handlers import register_default_routes
from tlsbootstrap.http import Router


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /orders?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/plain\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a body."""
    body = b'{"item": "widget", "qty": 2}'
    return (
        b"POST /orders HTTP/1.1\r\n"
        b"Host: localhost:3000\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


# =============================================================================
# CERTIFICATES
# =============================================================================

@pytest.fixture(scope="session")
def tls_files(tmp_path_factory) -> Tuple[str, str]:
    """Self-signed certificate for localhost / 127.0.0.1, as (cert, key) paths."""
    directory = tmp_path_factory.mktemp("tls")
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.datetime.now(datetime.timezone.utc)

    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(
            x509.SubjectAlternativeName([
                x509.DNSName("localhost"),
                x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
            ]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )

    cert_path = directory / "cert.pem"
    key_path = directory / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    return str(cert_path), str(key_path)


@pytest.fixture
def cert_file(tls_files) -> str:
    return tls_files[0]


@pytest.fixture
def key_file(tls_files) -> str:
    return tls_files[1]


def client_context(
    cert_file: str,
    minimum: Optional[ssl.TLSVersion] = None,
    maximum: Optional[ssl.TLSVersion] = None,
) -> ssl.SSLContext:
    """Client context trusting the test certificate, optionally version-pinned."""
    context = ssl.create_default_context(cafile=cert_file)
    if minimum is not None:
        context.minimum_version = minimum
    if maximum is not None:
        context.maximum_version = maximum
    return context


# =============================================================================
# SERVERS
# =============================================================================

@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class ListSink:
    """Protocol log sink that keeps every line."""

    def __init__(self):
        self.lines: List[str] = []

    def info(self, message: str):
        self.lines.append(message)


class RunningServer:
    """TLSServer running in a background thread."""

    def __init__(self, server: TLSServer, cert_file: str, key_file: str):
        self.server = server
        self.cert_file = cert_file
        self.key_file = key_file
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None

    def _run(self):
        try:
            self.server.serve(cert_path=self.cert_file, key_path=self.key_file)
        except Exception as e:
            self.error = e

    def start(self) -> "RunningServer":
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError(f"Server failed to start: {self.error!r}")
        return self

    @property
    def port(self) -> int:
        return self.server.address[1]

    def request(
        self,
        path: str,
        method: str = "GET",
        context: Optional[ssl.SSLContext] = None,
    ) -> Tuple[int, bytes, http.client.HTTPResponse]:
        """Send one request over a fresh TLS connection."""
        conn = http.client.HTTPSConnection(
            "127.0.0.1", self.port, context=context or client_context(self.cert_file), timeout=5.0
        )
        try:
            conn.request(method, path)
            response = conn.getresponse()
            body = response.read()
            return response.status, body, response
        finally:
            conn.close()

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def protocol_sink() -> ListSink:
    return ListSink()


@pytest.fixture
def make_server(config, tls_files, protocol_sink) -> Generator:
    """
    Factory for running servers; every server started is stopped at teardown.

        running = make_server(min_tls="TLS1.3")
    """
    started: List[RunningServer] = []

    def factory(min_tls: str = "TLS1.2", router: Optional[Router] = None) -> RunningServer:
        if router is None:
            router = register_default_routes(Router())
        server = TLSServer(config, router, configure(min_tls), protocol_log_sink=protocol_sink)
        running = RunningServer(server, *tls_files).start()
        started.append(running)
        return running

    yield factory

    for running in started:
        running.stop()
