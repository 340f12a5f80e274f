"""
=============================================================================
TLS SERVER
=============================================================================

Ties the pieces together: certificate identity, TLS policy, router,
middleware, thread pool and listening socket.

=============================================================================
STARTUP ORDER
=============================================================================

Every step must succeed before the next one runs. The first failure
aborts startup with a ServerError and nothing later is attempted.

    1. load_identity()           cert + key files    ── CertificateLoadError
    2. create_server_context()   policy applied,
                                 chain loaded        ── CertificateLoadError
    3. middleware.wrap(router)   routes frozen
    4. socket.listen()           bind + listen       ── BindError
    5. thread_pool.start()
    6. accept loop               (blocks)

A bad certificate therefore never opens a socket, and a busy port never
starts a worker. Once step 4 succeeds the listening socket is closed on
every way out of serve(), a failure in step 5 included.

=============================================================================
CONNECTION LIFECYCLE (worker thread)
=============================================================================

    accept ──► queue ──► handshake ──rejected──► close (no handler runs)
                             │
                             ▼
                   ┌──► read request ──► parse ──► protocol log line
                   │                                    │
                   │                                    ▼
                   │                         middleware ──► router ──► handler
                   │                                    │
                   └──── keep-alive ◄─── send response ◄┘

A request the parser rejects gets its 4xx/5xx response and the
connection is closed. It never reaches the middleware, so it gets no
protocol log line.

=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple, Union

from .config import ServerConfig
from .core import Connection, ConnectionState, RequestTooLargeError, SocketServer, ThreadPool
from .errors import ConfigurationError
from .http import (
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    Router,
    error_response,
    internal_error,
)
from .middleware import Middleware, MiddlewarePipeline, ProtocolLoggingMiddleware
from .tls import TLSPolicy, configure, create_server_context, load_identity


logger = logging.getLogger(__name__)

Address = Union[Tuple[str, int], str]

ALL_INTERFACES = "0.0.0.0"


def parse_address(address: Address) -> Tuple[str, int]:
    """
    Normalize an address to (host, port).

    Accepts a (host, port) tuple, "host:port", "[::1]:port" or ":port".
    An empty host means every interface, so ":3000" becomes
    ("0.0.0.0", 3000).

    Raises:
        ConfigurationError: If the port is missing or not a number.
    """
    if isinstance(address, tuple):
        host, port = address
        return (host or ALL_INTERFACES, int(port))

    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ConfigurationError(f"address must be host:port, got {address!r}")
    host = host.strip("[]") or ALL_INTERFACES
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigurationError(f"invalid port in address {address!r}") from None
    return (host, port)


class TLSServer:
    """
    HTTPS server with a configurable minimum TLS version.

    Usage:
        router = Router()
        register_default_routes(router)

        server = TLSServer(ServerConfig(port=3000), router, configure("TLS1.3"))
        server.serve(cert_path="cert.pem", key_path="key.pem")  # blocks

    Every request is logged with its HTTP and TLS versions by a
    ProtocolLoggingMiddleware that always runs first. Further middleware
    added with use() runs after it, in the order added.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        router: Optional[Router] = None,
        policy: Optional[TLSPolicy] = None,
        protocol_log_sink=None,
    ):
        """
        Args:
            config: Server configuration. Validated immediately.
            router: Route table to dispatch to. A new empty one if omitted.
            policy: TLS policy. Built from config.min_tls_version if omitted.
            protocol_log_sink: Where protocol lines go instead of the
                               ``tlsbootstrap.protocol`` logger.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.policy = policy or configure(self.config.min_tls_version)
        self._router = router if router is not None else Router()

        self._middleware = MiddlewarePipeline()
        self._middleware.add(ProtocolLoggingMiddleware(sink=protocol_log_sink))

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._context = None
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    def use(self, middleware: Middleware) -> "TLSServer":
        """Add middleware, run after protocol logging in the order added."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    def route(self, path: str):
        """Decorator form of router.register()."""
        return self._router.route(path)

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port) once listening, the configured one before."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server accepts connections. False on timeout."""
        return self._socket_server.wait_until_ready(timeout)

    # =========================================================================
    # STARTUP
    # =========================================================================

    def serve(
        self,
        address: Optional[Address] = None,
        cert_path: Optional[str] = None,
        key_path: Optional[str] = None,
    ):
        """
        Start the server and block until shutdown.

        Args:
            address: (host, port) or "host:port". Overrides the config.
            cert_path: PEM certificate chain. Overrides config.cert_file.
            key_path: PEM private key. Overrides config.key_file.

        Raises:
            CertificateLoadError: If the certificate or key cannot be used.
                                  No socket has been opened.
            BindError: If the address cannot be listened on.
            ConfigurationError: If the address is malformed.
        """
        if address is not None:
            self.config.host, self.config.port = parse_address(address)
        if cert_path is not None:
            self.config.cert_file = cert_path
        if key_path is not None:
            self.config.key_file = key_path

        identity = load_identity(self.config.cert_file, self.config.key_file)
        self._context = create_server_context(identity, self.policy)
        logger.info(f"Loaded certificate {identity.cert_path}, accepting TLS {self.policy}")

        self._handler = self._middleware.wrap(self._router.handle)
        for route in self._router.routes():
            logger.debug(f"Route {route.path} -> {route.handler_name}")

        try:
            self._socket_server.listen()

            self._running = True
            self._thread_pool.start()

            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """
        Ask serve() to return. Callable from any thread.

        A call made while serve() is still starting up is remembered, and
        serve() returns as soon as the socket is listening.
        """
        self._socket_server.shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._socket_server.close()
        self._thread_pool.shutdown(wait=True, timeout=self.config.keep_alive_timeout)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Queue a freshly accepted connection. Runs on the accept thread."""
        try:
            submitted = self._thread_pool.submit(self._process_connection, args=(conn,), block=False)
        except RuntimeError:
            submitted = False

        if not submitted:
            # No handshake has happened, so there is no way to send an
            # HTTP error; drop the TCP connection instead.
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection from {conn.client_ip}")
            conn.abort()

    def _process_connection(self, conn: Connection):
        """Handshake, then serve requests until close. Runs on a worker."""
        with conn:
            if not conn.handshake(self._context, self.policy):
                return

            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(
                            raw_request,
                            conn.address,
                            tls_version=conn.tls_version,
                            alpn_protocol=conn.alpn_protocol,
                        )
                    except HTTPParseError as e:
                        self._send_error(conn, e.status_code, str(e))
                        break

                    conn.state = ConnectionState.PROCESSING

                    try:
                        response = self._handler(request)
                    except Exception as e:
                        logger.exception(f"[{conn.id}] Handler error: {e}")
                        response = internal_error()

                    keep_alive = request.is_keep_alive and self.config.keep_alive
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
                        )
                    else:
                        response.headers["Connection"] = "close"

                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break
                    if not keep_alive or response.headers.get("Connection") == "close":
                        break

                    conn.set_keep_alive()

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                except RequestTooLargeError as e:
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                    break
                except Exception as e:
                    logger.exception(f"[{conn.id}] Connection error: {e}")
                    break

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        logger.debug(f"[{conn.id}] {int(status)} {message}")
        response = error_response(status, message)
        conn.send_response(response.to_bytes(self.config.server_name))


def serve(
    address: Address,
    cert_path: str,
    key_path: str,
    policy: TLSPolicy,
    router: Router,
    config: Optional[ServerConfig] = None,
):
    """
    Serve HTTPS on address until shutdown.

        policy = configure("TLS1.3")
        router = register_default_routes(Router())
        serve(":3000", "cert.pem", "key.pem", policy, router)

    Raises the same startup errors as TLSServer.serve().
    """
    server = TLSServer(config=config, router=router, policy=policy)
    server.serve(address, cert_path, key_path)
