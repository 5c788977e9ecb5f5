"""Tests for TcpLineTransport against a scripted localhost peer."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Iterator

import pytest

from rpscope_core.errors import DeviceConnectionError, TransportError

from rpscope_scpi.tcp import TcpLineTransport

# ---------------------------------------------------------------------------
# Scripted peer
# ---------------------------------------------------------------------------


class ScriptedPeer:
    """Single-connection TCP peer running a script in a background thread.

    The script receives the accepted socket; everything the peer receives is
    collected in ``received``.
    """

    def __init__(self, script: Callable[[socket.socket], None]) -> None:
        self._listener = socket.create_server(("127.0.0.1", 0))
        self._listener.settimeout(5)
        self._script = script
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self.received = b""
        self._thread.start()

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._listener.getsockname()[:2]
        return str(host), int(port)

    def _serve(self) -> None:
        conn, _ = self._listener.accept()
        with conn:
            self._script(conn)

    def read_all(self, conn: socket.socket) -> None:
        """Collect bytes until the client closes."""
        conn.settimeout(5)
        while True:
            chunk = conn.recv(4096)
            if not chunk:
                return
            self.received += chunk

    def join(self) -> None:
        self._thread.join(timeout=5)
        self._listener.close()


@pytest.fixture
def make_peer() -> Iterator[Callable[[Callable[[socket.socket], None]], ScriptedPeer]]:
    peers: list[ScriptedPeer] = []

    def factory(script: Callable[[socket.socket], None]) -> ScriptedPeer:
        peer = ScriptedPeer(script)
        peers.append(peer)
        return peer

    yield factory
    for peer in peers:
        peer.join()


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    """Tests for open/close."""

    def test_open_and_close(self, make_peer) -> None:
        peer = make_peer(lambda conn: None)
        transport = TcpLineTransport(*peer.address)
        transport.open()
        assert transport.is_open
        transport.close()
        assert not transport.is_open

    def test_open_is_idempotent(self, make_peer) -> None:
        peer = make_peer(lambda conn: None)
        with TcpLineTransport(*peer.address) as transport:
            transport.open()
            assert transport.is_open

    def test_close_twice_is_safe(self, make_peer) -> None:
        peer = make_peer(lambda conn: None)
        transport = TcpLineTransport(*peer.address)
        transport.open()
        transport.close()
        transport.close()

    def test_connection_refused_raises(self) -> None:
        transport = TcpLineTransport("127.0.0.1", _unused_port(), connect_timeout=2)
        with pytest.raises(DeviceConnectionError, match="Unable to connect"):
            transport.open()
        assert not transport.is_open

    def test_properties(self) -> None:
        transport = TcpLineTransport("10.0.0.7", 5000)
        assert transport.host == "10.0.0.7"
        assert transport.port == 5000
        assert not transport.is_open


# ---------------------------------------------------------------------------
# send
# ---------------------------------------------------------------------------


class TestSend:
    """Tests for TcpLineTransport.send."""

    def test_appends_crlf(self, make_peer) -> None:
        peer: ScriptedPeer = make_peer(lambda conn: peer.read_all(conn))
        with TcpLineTransport(*peer.address) as transport:
            transport.send("ACQ:START")
            transport.send("OUTPUT1:FUNC sine")
        peer.join()
        assert peer.received == b"ACQ:START\r\nOUTPUT1:FUNC sine\r\n"

    def test_send_when_not_open_raises(self) -> None:
        transport = TcpLineTransport("127.0.0.1", 5000)
        with pytest.raises(TransportError, match="not open"):
            transport.send("ACQ:START")

    def test_send_after_close_raises(self, make_peer) -> None:
        peer = make_peer(lambda conn: None)
        transport = TcpLineTransport(*peer.address)
        transport.open()
        transport.close()
        with pytest.raises(TransportError):
            transport.send("ACQ:STOP")

    def test_non_ascii_command_raises(self, make_peer) -> None:
        peer = make_peer(lambda conn: None)
        with TcpLineTransport(*peer.address) as transport:
            with pytest.raises(TransportError, match="ascii"):
                transport.send("OUTPUT1:FUNC sinusé")

    def test_send_logged_at_info(self, make_peer, caplog: pytest.LogCaptureFixture) -> None:
        peer = make_peer(lambda conn: None)
        with caplog.at_level(logging.INFO, logger="rpscope_scpi.tcp"):
            with TcpLineTransport(*peer.address) as transport:
                transport.send("ACQ:RST")
        assert "> ACQ:RST" in caplog.messages


# ---------------------------------------------------------------------------
# receive
# ---------------------------------------------------------------------------


class TestReceive:
    """Tests for TcpLineTransport.receive."""

    def test_strips_terminator(self, make_peer) -> None:
        peer = make_peer(lambda conn: conn.sendall(b"{1.0,2.0,3.0}\r\n"))
        with TcpLineTransport(*peer.address) as transport:
            assert transport.receive() == "{1.0,2.0,3.0}"

    def test_reads_one_line_at_a_time(self, make_peer) -> None:
        peer = make_peer(lambda conn: conn.sendall(b"first\r\nsecond\r\n"))
        with TcpLineTransport(*peer.address) as transport:
            assert transport.receive() == "first"
            assert transport.receive() == "second"

    def test_accepts_bare_newline(self, make_peer) -> None:
        peer = make_peer(lambda conn: conn.sendall(b"{0.5}\n"))
        with TcpLineTransport(*peer.address) as transport:
            assert transport.receive() == "{0.5}"

    def test_preserves_inner_whitespace(self, make_peer) -> None:
        peer = make_peer(lambda conn: conn.sendall(b"  {1.0}  \r\n"))
        with TcpLineTransport(*peer.address) as transport:
            assert transport.receive() == "  {1.0}  "

    def test_peer_close_raises(self, make_peer) -> None:
        peer = make_peer(lambda conn: None)
        with TcpLineTransport(*peer.address) as transport:
            with pytest.raises(TransportError, match="closed by peer"):
                transport.receive()

    def test_truncated_line_raises(self, make_peer) -> None:
        peer = make_peer(lambda conn: conn.sendall(b"{1.0,2."))
        with TcpLineTransport(*peer.address) as transport:
            with pytest.raises(TransportError, match="mid-line"):
                transport.receive()

    def test_non_ascii_reply_raises(self, make_peer) -> None:
        peer = make_peer(lambda conn: conn.sendall(b"\xff\xfe\r\n"))
        with TcpLineTransport(*peer.address) as transport:
            with pytest.raises(TransportError, match="ascii"):
                transport.receive()

    def test_read_timeout_raises(self, make_peer) -> None:
        done = threading.Event()
        peer = make_peer(lambda conn: done.wait(5))
        transport = TcpLineTransport(*peer.address, read_timeout=0.1)
        transport.open()
        try:
            with pytest.raises(TransportError, match="Timed out"):
                transport.receive()
        finally:
            done.set()
            transport.close()

    def test_read_recovers_after_timeout(self, make_peer) -> None:
        go = threading.Event()
        done = threading.Event()

        def script(conn: socket.socket) -> None:
            go.wait(5)
            conn.sendall(b"{1.0}\r\n{2.0}\r\n")
            done.wait(5)

        peer = make_peer(script)
        transport = TcpLineTransport(*peer.address, read_timeout=0.2)
        transport.open()
        try:
            with pytest.raises(TransportError, match="Timed out"):
                transport.receive()
            assert transport.late_replies == 1
            go.set()
            assert transport.receive() == "{2.0}"
            assert transport.late_replies == 0
        finally:
            done.set()
            transport.close()

    def test_each_timeout_owes_one_reply(self, make_peer) -> None:
        go = threading.Event()
        done = threading.Event()

        def script(conn: socket.socket) -> None:
            go.wait(5)
            conn.sendall(b"{1.0}\r\n{2.0}\r\n{3.0}\r\n")
            done.wait(5)

        peer = make_peer(script)
        transport = TcpLineTransport(*peer.address, read_timeout=0.1)
        transport.open()
        try:
            for _ in range(2):
                with pytest.raises(TransportError, match="Timed out"):
                    transport.receive()
            assert transport.late_replies == 2
            go.set()
            assert transport.receive() == "{3.0}"
        finally:
            done.set()
            transport.close()

    def test_partial_line_at_timeout_is_discarded(self, make_peer) -> None:
        go = threading.Event()
        done = threading.Event()

        def script(conn: socket.socket) -> None:
            conn.sendall(b"{1.0,")
            go.wait(5)
            conn.sendall(b"2.0}\r\n{3.0}\r\n")
            done.wait(5)

        peer = make_peer(script)
        transport = TcpLineTransport(*peer.address, read_timeout=0.2)
        transport.open()
        try:
            with pytest.raises(TransportError, match="Timed out"):
                transport.receive()
            go.set()
            assert transport.receive() == "{3.0}"
        finally:
            done.set()
            transport.close()

    def test_receive_when_not_open_raises(self) -> None:
        transport = TcpLineTransport("127.0.0.1", 5000)
        with pytest.raises(TransportError, match="not open"):
            transport.receive()

    def test_receive_logged_at_debug(self, make_peer, caplog: pytest.LogCaptureFixture) -> None:
        peer = make_peer(lambda conn: conn.sendall(b"{1.0}\r\n"))
        with caplog.at_level(logging.DEBUG, logger="rpscope_scpi.tcp"):
            with TcpLineTransport(*peer.address) as transport:
                transport.receive()
        assert any(
            r.levelno == logging.DEBUG and r.getMessage() == "< {1.0}" for r in caplog.records
        )
