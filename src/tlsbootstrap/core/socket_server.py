"""
=============================================================================
LISTENING SOCKET
=============================================================================

Owns the listening TCP socket: create, bind, listen, accept, close. Every
accepted client socket is wrapped in a Connection and handed to a
callback. TLS is not touched here; the handshake runs later, on the
worker thread that serves the connection, so one slow client cannot
stall the accept loop.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create the listening socket
    2. bind()      Reserve host:port          ── fails ──► BindError
    3. listen()    Start queueing connections (backlog)
    4. accept()    One new socket per client   (1s timeout poll)
    5. close()     Release the port

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    └───────────┬───────────┘     Never sends/receives data
                                │
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │Connection │         │Connection │         │Connection │
    │ (raw TCP) │         │ (raw TCP) │         │ (raw TCP) │
    └───────────┘         └───────────┘         └───────────┘

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:  rebind immediately after a restart (TIME_WAIT sockets).
TCP_NODELAY:   disable Nagle's algorithm so small responses go out at once.

SO_REUSEPORT is not set, so binding a port another socket listens on
fails with BindError.

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger shutdown().
Python only allows signal handlers on the main thread, so when the server
runs in a background thread (embedded, or under test) none are installed
and the owner calls shutdown() itself.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from ..errors import BindError
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None

        # Set once the socket is listening; lets other threads wait for it.
        self._ready_event = threading.Event()
        # Set by shutdown(); a request made before the accept loop starts stays pending.
        self._shutdown_event = threading.Event()
        self._lock = threading.Lock()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound, once listening.

        Differs from the configured one when port 0 asked the OS to pick.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Poll interval for the running flag.
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def listen(self):
        """
        Create the socket, bind it and start listening.

        Raises:
            BindError: If the address cannot be bound or listened on
                       (port in use, permission denied, bad host).
        """
        host, port = self.config.host, self.config.port
        sock = self._create_socket()

        try:
            sock.bind((host, port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            raise BindError(f"cannot listen on {host}:{port}: {e.strerror or e}", address=(host, port)) from e

        self._socket = sock
        self._bound_address = sock.getsockname()[:2]
        logger.info(f"Server listening on {self._bound_address[0]}:{self._bound_address[1]}")

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Listen (if not already) and run the accept loop.

        Blocks until shutdown() is called. Returns at once if shutdown()
        was already called. The listening socket is closed on the way out,
        whatever the reason.

        Args:
            connection_handler: Receives each accepted Connection. Must
                                return quickly; real work belongs on a
                                worker thread.
        """
        try:
            if self._socket is None:
                self.listen()

            with self._lock:
                self._running = not self._shutdown_event.is_set()
            self._setup_signals()
            self._ready_event.set()

            self._accept_loop(connection_handler)
        finally:
            self.close()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop the accept loop. Safe to call more than once, from any thread."""
        with self._lock:
            if self._running:
                logger.info("Shutting down socket server...")
            self._running = False
            self._shutdown_event.set()

    def close(self):
        """Release the listening socket. Safe to call more than once."""
        self._restore_signals()
        self._running = False

        if self._socket is None:
            return
        try:
            self._socket.close()
        except OSError:
            pass
        self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
