"""TCP server exposing an emulator over the instrument's line protocol.

Wraps any ``LineTransport`` implementation and serves it over TCP, so the
``TcpLineTransport`` (or telnet/netcat) can talk to an emulated Red Pitaya
exactly as it would to the real SCPI server.

Example:
    Start an emulator server on an ephemeral port::

        from rpscope_redpitaya import make_emulator, EmulatorServer

        emulator = make_emulator()
        server = EmulatorServer(emulator, port=0)
        server.start()

        host, port = server.address
        print(f"Connect to {host}:{port}")

        # netcat -C localhost {port}
        # > ACQ:START
        # > ACQ:SOUR1:DATA?
        # < {0.0,0.0,...}

        server.stop()
"""

from __future__ import annotations

import logging
import socketserver
import threading
from typing import Any

from rpscope_core.errors import TransportError
from rpscope_scpi import LINE_TERMINATOR, LineTransport

logger = logging.getLogger(__name__)


class _LineRequestHandler(socketserver.StreamRequestHandler):
    """Handle one TCP connection, forwarding lines to the transport.

    Each line is treated as a single command or query. Lines containing a
    ``?`` are queries and get exactly one reply line back.
    """

    server: _LineTcpServer

    def handle(self) -> None:
        """Process incoming lines until the client disconnects."""
        peer = self.client_address
        logger.info("Client connected: %s", peer)
        for raw_line in self.rfile:
            line = raw_line.decode("ascii", errors="replace").strip()
            if not line:
                continue
            transport = self.server.transport
            with self.server.lock:
                try:
                    transport.send(line)
                    if "?" not in line:
                        continue
                    response = transport.receive()
                except TransportError as exc:
                    logger.warning("Dropping %r: %s", line, exc)
                    continue
            self.wfile.write((response + LINE_TERMINATOR).encode("ascii"))
            self.wfile.flush()
        logger.info("Client disconnected: %s", peer)


class _LineTcpServer(socketserver.TCPServer):
    """TCPServer subclass that holds a reference to the transport.

    Attributes:
        allow_reuse_address: Set to True to allow quick server restart.
        transport: The line transport (emulator) to serve.
        lock: Serializes access to the transport.
    """

    allow_reuse_address = True

    def __init__(
        self,
        server_address: tuple[str, int],
        transport: LineTransport,
        **kwargs: Any,
    ) -> None:
        self.transport = transport
        self.lock = threading.Lock()
        super().__init__(server_address, _LineRequestHandler, **kwargs)


class EmulatorServer:
    """TCP server wrapping any ``LineTransport`` for external access.

    Runs a TCP server in a background daemon thread. The server handles one
    client connection at a time, like the instrument itself.

    Args:
        transport: The transport (typically an emulator) to serve.
        host: Bind address (default ``"127.0.0.1"``).
        port: Bind port (default ``5000``, the Red Pitaya SCPI port). Use
            ``0`` for an OS-assigned ephemeral port.
    """

    def __init__(
        self,
        transport: LineTransport,
        host: str = "127.0.0.1",
        port: int = 5000,
    ) -> None:
        self._server = _LineTcpServer((host, port), transport)
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start serving in a daemon thread."""
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info("Emulator listening on %s:%d", *self.address)

    def serve_forever(self) -> None:
        """Serve in the calling thread until :meth:`stop` or an interrupt."""
        logger.info("Emulator listening on %s:%d", *self.address)
        try:
            self._server.serve_forever()
        finally:
            self._server.server_close()

    def stop(self) -> None:
        """Shut down the server and wait for the thread to exit."""
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        self._server.server_close()

    @property
    def address(self) -> tuple[str, int]:
        """Return the actual bound ``(host, port)`` address.

        Useful when binding to port 0 to get an ephemeral port assigned
        by the operating system.
        """
        addr = self._server.server_address
        return (str(addr[0]), int(addr[1]))
