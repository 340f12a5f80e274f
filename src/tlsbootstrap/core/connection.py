"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

A Connection wraps one accepted client socket for its whole life: the TLS
handshake, buffered request reading, response writing and the close
sequence.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► HANDSHAKING ──► READING ──► PROCESSING ──► WRITING ──┐
                │              │                          │       │
                │ rejected     │                          │       ▼
                │              │                          │   KEEP_ALIVE
                ▼              ▼                          │       │
             CLOSING ◄─────────┴──────────────────────────┴───────┘
                │
                ▼
             CLOSED

A handshake that fails, or that negotiates a version below the policy
floor, goes straight to CLOSING. No request is ever read from it, so no
handler can run.

=============================================================================
TLS IS STILL A BYTE STREAM
=============================================================================

After the handshake, SSLSocket.recv() returns decrypted application bytes
in arbitrary chunks, exactly like plain TCP. Requests are buffered until
the \\r\\n\\r\\n header terminator is seen, then Content-Length more bytes
are read for the body.

=============================================================================
"""

import logging
import socket
import ssl
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..tls.policy import TLSPolicy
from ..tls.versions import from_negotiated


logger = logging.getLogger(__name__)


class RequestTooLargeError(ValueError):
    """A request grew past max_request_size while being read."""


class ConnectionState(Enum):
    NEW = "new"
    HANDSHAKING = "handshaking"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: The accepted socket. Replaced by the SSLSocket once the
                handshake succeeds.
        address: Client (ip, port).
        id: Short random id used in log lines.
        tls_version: Negotiated version string ("TLSv1.3"), None until a
                     handshake succeeded.
        alpn_protocol: Protocol selected via ALPN, if the client offered one.
        requests_handled: Requests read from this connection so far.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    requests_handled: int = 0

    tls_version: Optional[str] = None
    alpn_protocol: Optional[str] = None

    buffer_size: int = 8192
    timeout: Optional[float] = None
    keep_alive_timeout: float = 5.0
    max_request_size: int = 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    # =========================================================================
    # HANDSHAKE
    # =========================================================================

    def handshake(self, context: ssl.SSLContext, policy: TLSPolicy) -> bool:
        """
        Run the server side of the TLS handshake.

        The SSLContext already carries the policy's minimum version, so
        OpenSSL refuses older clients during the handshake itself. The
        negotiated version is then checked against the policy once more;
        a connection that somehow got below the floor is dropped too.

        Args:
            context: Server SSLContext built by create_server_context().
            policy: The TLS policy the context was built with.

        Returns:
            True if the connection may carry requests, False if it was
            rejected. A rejected connection must be closed by the caller.
        """
        self.state = ConnectionState.HANDSHAKING

        try:
            self.socket = context.wrap_socket(self.socket, server_side=True)
        except ssl.SSLError as e:
            logger.debug(f"[{self.id}] TLS handshake rejected from {self.client_ip}: {e.reason or e}")
            return False
        except OSError as e:
            # Includes timeouts and resets mid-handshake.
            logger.debug(f"[{self.id}] TLS handshake aborted from {self.client_ip}: {e}")
            return False

        self.tls_version = self.socket.version()
        self.alpn_protocol = self.socket.selected_alpn_protocol()

        negotiated = from_negotiated(self.tls_version)
        if not policy.accepts(negotiated):
            label = negotiated.label if negotiated is not None else "no TLS"
            logger.warning(
                f"[{self.id}] Rejecting {self.client_ip}: negotiated {label}, policy requires {policy}"
            )
            return False

        logger.debug(f"[{self.id}] TLS established with {self.client_ip} ({self.tls_version})")
        return True

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            The request bytes, or None if the client closed the connection
            (or went idle past keep_alive_timeout between requests).

        Raises:
            TimeoutError: If the first request does not arrive in time
                          (only when a socket timeout is configured).
            RequestTooLargeError: If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                self._check_size()

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break  # closed mid-body; the parser reports it
                self._buffer += chunk
                self._check_size()

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            # Anything left over is the start of a pipelined request.
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            return request_data

        except socket.timeout:
            if self.requests_handled > 0:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _check_size(self):
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLargeError(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            return data
        except socket.timeout:
            raise
        except (ConnectionResetError, BrokenPipeError, ssl.SSLError):
            # Abrupt disconnect, or a TLS-level EOF without close_notify.
            return b""

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """
        Find Content-Length in raw header bytes.

        Only used to know how much body to read; the request parser
        validates the value properly afterwards.
        """
        for line in headers.split(b"\r\n")[1:]:
            name, sep, value = line.partition(b":")
            if sep and name.strip().lower() == b"content-length":
                try:
                    return max(int(value.strip()), 0)
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True on success, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.debug(f"[{self.id}] Send failed: {e}")
            return False

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection: stop sending, drain briefly, release the fd.

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except (socket.timeout, OSError, ValueError):
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def abort(self):
        """Release the fd at once, without shutdown or drain."""
        if self.state == ConnectionState.CLOSED:
            return
        try:
            self.socket.close()
        except OSError:
            pass
        self.state = ConnectionState.CLOSED

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
