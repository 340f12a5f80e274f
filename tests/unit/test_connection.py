"""
Unit tests for Connection teardown and the listening socket lifecycle.
"""

import socket
import threading
import time

import pytest

from tlsbootstrap import ServerConfig, TLSServer
from tlsbootstrap.core import Connection, ConnectionState, SocketServer


@pytest.fixture
def socket_pair():
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for sock in (server_side, client_side):
        sock.close()


class TestConnectionAbort:
    """Tests for Connection.abort()."""

    def test_abort_releases_fd_without_drain(self, socket_pair):
        server_side, client_side = socket_pair
        conn = Connection(socket=server_side, address=("127.0.0.1", 50000))

        started = time.monotonic()
        conn.abort()
        elapsed = time.monotonic() - started

        assert conn.state == ConnectionState.CLOSED
        assert server_side.fileno() == -1
        assert elapsed < 0.25
        client_side.settimeout(1.0)
        assert client_side.recv(16) == b""

    def test_abort_is_idempotent(self, socket_pair):
        conn = Connection(socket=socket_pair[0], address=("127.0.0.1", 50000))
        conn.abort()
        conn.abort()

        assert conn.state == ConnectionState.CLOSED


class TestOverload:
    """A connection the worker pool cannot take is dropped at once."""

    def test_rejected_connection_is_not_drained(self, socket_pair):
        server = TLSServer(ServerConfig(host="127.0.0.1", port=0, min_workers=1, max_workers=1))
        conn = Connection(socket=socket_pair[0], address=("127.0.0.1", 50000))

        # The pool was never started, so submit() refuses the connection.
        started = time.monotonic()
        server._handle_connection(conn)
        elapsed = time.monotonic() - started

        assert conn.state == ConnectionState.CLOSED
        assert elapsed < 0.25


class TestSocketServerShutdown:
    """Tests for SocketServer shutdown ordering."""

    def test_shutdown_before_accept_loop_is_kept(self):
        server = SocketServer(ServerConfig(host="127.0.0.1", port=0))
        server.listen()
        port = server.address[1]

        server.shutdown()
        thread = threading.Thread(target=server.start, args=(lambda conn: conn.abort(),), daemon=True)
        thread.start()
        thread.join(timeout=5.0)

        assert not thread.is_alive()
        assert not server.is_running
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as client:
            assert client.connect_ex(("127.0.0.1", port)) != 0

    def test_close_is_idempotent(self):
        server = SocketServer(ServerConfig(host="127.0.0.1", port=0))
        server.listen()
        port = server.address[1]

        server.close()
        server.close()

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as client:
            assert client.connect_ex(("127.0.0.1", port)) != 0
