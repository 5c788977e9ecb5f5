"""TCP socket transport for line-oriented instruments.

This module provides the socket implementation of :class:`LineTransport`.
Commands are written with a ``\\r\\n`` terminator and replies are read one
terminated line at a time from a receive buffer owned by the transport.

Every sent command is logged at INFO and every received line at DEBUG, which
is the quickest way to diagnose protocol drift::

    rpscope_scpi.tcp - INFO - > ACQ:START
    rpscope_scpi.tcp - DEBUG - < {0.12,0.08,-0.01}
"""

from __future__ import annotations

import logging
import socket

from rpscope_core.errors import DeviceConnectionError, TransportError

from rpscope_scpi.transport import LINE_TERMINATOR

logger = logging.getLogger(__name__)

_ENCODING = "ascii"
_RECV_SIZE = 65536


class TcpLineTransport:
    """Line transport over a single TCP connection.

    The socket is the only connection to the device and is owned by this
    object. Received bytes are kept in a buffer for the lifetime of the
    connection, so bytes that arrive after a line terminator are never lost
    between reads.

    Replies carry no correlation id. When a read times out, the reply it was
    waiting for is still owed by the device; the transport counts it and
    discards the next complete line, so a late reply is never handed to a
    later caller.

    Attributes:
        host: Instrument host name or IP address.
        port: Instrument TCP port.
        is_open: Whether the connection is currently open.

    Args:
        host: Instrument host name or IP address.
        port: Instrument TCP port.
        connect_timeout: Timeout in seconds for establishing the connection.
        read_timeout: Longest wait in seconds for more reply bytes during
            :meth:`receive`. None blocks until a line arrives or the
            connection fails.

    Example:
        >>> transport = TcpLineTransport("192.168.1.5", 5000)
        >>> transport.open()
        >>> transport.send("ACQ:START")
        >>> transport.close()
    """

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_timeout: float | None = 5.0,
        read_timeout: float | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._sock: socket.socket | None = None
        self._buffer = bytearray()
        self._late_replies = 0

    # -- Properties ----------------------------------------------------------

    @property
    def host(self) -> str:
        """The instrument host."""
        return self._host

    @property
    def port(self) -> int:
        """The instrument port."""
        return self._port

    @property
    def is_open(self) -> bool:
        """Return True if the connection is currently open."""
        return self._sock is not None

    @property
    def late_replies(self) -> int:
        """Replies owed by timed-out reads that will be discarded on arrival."""
        return self._late_replies

    # -- Lifecycle -----------------------------------------------------------

    def open(self) -> None:
        """Connect to the instrument.

        Raises:
            DeviceConnectionError: If the socket cannot be established.
        """
        if self._sock is not None:
            return

        try:
            sock = socket.create_connection(
                (self._host, self._port), timeout=self._connect_timeout
            )
        except OSError as exc:
            raise DeviceConnectionError(
                f"Unable to connect to {self._host}:{self._port}: {exc}"
            ) from exc

        sock.settimeout(self._read_timeout)
        self._sock = sock
        self._buffer.clear()
        self._late_replies = 0
        logger.info("Connected to %s:%d", self._host, self._port)

    def close(self) -> None:
        """Close the connection.

        Safe to call multiple times.
        """
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
            self._buffer.clear()
            self._late_replies = 0
            logger.info("Disconnected from %s:%d", self._host, self._port)

    def __enter__(self) -> TcpLineTransport:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    # -- Transport interface -------------------------------------------------

    def send(self, command: str) -> None:
        """Send one command line.

        Args:
            command: Command text; the line terminator is appended here.

        Raises:
            TransportError: If the connection is not open, the command is not
                ASCII, or the write is refused.
        """
        if self._sock is None:
            raise TransportError("Transport is not open")

        logger.info("> %s", command)

        try:
            payload = f"{command}{LINE_TERMINATOR}".encode(_ENCODING)
        except UnicodeEncodeError as exc:
            raise TransportError(f"Command is not {_ENCODING}: {command!r}") from exc

        try:
            self._sock.sendall(payload)
        except OSError as exc:
            raise TransportError(f"Write to {self._host}:{self._port} failed: {exc}") from exc

    def receive(self) -> str:
        """Block until one terminated line arrives and return it.

        Lines owed to earlier timed-out reads are discarded first.

        Returns:
            The line with its terminator stripped.

        Raises:
            TransportError: If the connection is not open, closes before a
                full line arrives, times out, or delivers undecodable bytes.
        """
        if self._sock is None:
            raise TransportError("Transport is not open")

        while True:
            raw = self._read_line(self._sock)
            if not self._late_replies:
                break
            self._late_replies -= 1
            logger.warning("Discarding late reply (%d bytes)", len(raw))

        try:
            line = raw.decode(_ENCODING)
        except UnicodeDecodeError as exc:
            raise TransportError(f"Reply is not {_ENCODING}: {raw!r}") from exc

        line = line.removesuffix("\n").removesuffix("\r")

        logger.debug("< %s", line)

        return line

    def _read_line(self, sock: socket.socket) -> bytes:
        while True:
            end = self._buffer.find(b"\n")
            if end >= 0:
                raw = bytes(self._buffer[: end + 1])
                del self._buffer[: end + 1]
                return raw

            try:
                chunk = sock.recv(_RECV_SIZE)
            except socket.timeout as exc:
                self._late_replies += 1
                raise TransportError(
                    f"Timed out after {self._read_timeout}s waiting for a reply"
                ) from exc
            except OSError as exc:
                raise TransportError(
                    f"Read from {self._host}:{self._port} failed: {exc}"
                ) from exc

            if not chunk:
                if self._buffer:
                    raise TransportError(
                        f"Connection closed mid-line after {len(self._buffer)} bytes"
                    )
                raise TransportError(f"Connection to {self._host}:{self._port} closed by peer")
            self._buffer += chunk
