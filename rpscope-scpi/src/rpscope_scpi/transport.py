"""Line transport protocol definition.

This module defines the :class:`LineTransport` protocol, which specifies the
interface that all line-oriented transports must provide. A transport owns
the physical connection to the instrument and moves exactly one terminated
line per call.

Implementations include:
- :class:`rpscope_scpi.TcpLineTransport`: socket transport for real hardware
- :class:`rpscope_redpitaya.RedPitayaEmulator`: in-process device emulator
"""

from __future__ import annotations

from typing import Protocol

LINE_TERMINATOR = "\r\n"
"""Canonical terminator appended to commands and stripped from replies."""


class LineTransport(Protocol):
    """Protocol for terminated-line message transport.

    This is a structural subtyping protocol (duck typing). Any class that
    implements ``send()``, ``receive()``, and ``close()`` with the correct
    signatures is considered a valid transport.

    The protocol is strictly request/reply: a caller never has more than one
    command in flight, and never calls ``receive()`` concurrently with
    ``send()``.

    Example:
        >>> class MyTransport:
        ...     def send(self, command: str) -> None:
        ...         pass
        ...     def receive(self) -> str:
        ...         return "{0.0}"
        ...     def close(self) -> None:
        ...         pass
        ...
        >>> transport: LineTransport = MyTransport()  # Type checks OK
    """

    def send(self, command: str) -> None:
        """Send one command line to the instrument.

        Args:
            command: Command text without the line terminator.

        Raises:
            TransportError: If the write fails.
        """
        ...

    def receive(self) -> str:
        """Read one reply line from the instrument.

        Returns:
            The reply with its terminator stripped, otherwise verbatim.

        Raises:
            TransportError: If the read fails or the stream ends early.
        """
        ...

    def close(self) -> None:
        """Close the transport and release resources."""
        ...
