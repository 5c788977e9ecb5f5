"""Red Pitaya device session.

Wraps a :class:`LineTransport` with the instrument's command vocabulary for
the oscilloscope (acquisition) and the signal generator (output 1).

The session also tracks whether acquisition has been started. That flag is
client-side intent: it records the last start/stop command that was written,
not a state confirmed by the device, which offers no query for it.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from rpscope_scpi import TcpLineTransport

if TYPE_CHECKING:
    from rpscope_scpi import LineTransport

    from rpscope_redpitaya.config import DeviceConfig

logger = logging.getLogger(__name__)


class RedPitayaSession:
    """High-level driver for a Red Pitaya.

    Each operation is one exchange on the transport, guarded by a single
    lock that covers the whole send-then-receive sequence.

    Args:
        transport: An open transport to the instrument.
    """

    def __init__(self, transport: LineTransport) -> None:
        self._transport = transport
        self._lock = threading.Lock()
        self._acquiring = False

    @property
    def is_acquiring(self) -> bool:
        """Whether acquisition was last started rather than stopped."""
        return self._acquiring

    # -- Acquisition --------------------------------------------------------

    def acquire_start(self) -> None:
        """Start acquisition (``ACQ:START``)."""
        self._command("ACQ:START")
        self._acquiring = True

    def acquire_stop(self) -> None:
        """Stop acquisition (``ACQ:STOP``)."""
        self._command("ACQ:STOP")
        self._acquiring = False

    def acquire_reset(self) -> None:
        """Reset acquisition parameters (``ACQ:RST``)."""
        self._command("ACQ:RST")

    def get_data(self) -> str | None:
        """Read the source 1 acquisition buffer (``ACQ:SOUR1:DATA?``).

        Returns:
            The raw reply line, or None without touching the wire when
            acquisition has not been started.
        """
        if not self._acquiring:
            logger.debug("Acquisition not started, skipping data query")
            return None
        return self._query("ACQ:SOUR1:DATA?")

    # -- Generator ----------------------------------------------------------

    def generator_start(self) -> None:
        """Enable output 1 (``OUTPUT1:STATE ON``)."""
        self._command("OUTPUT1:STATE ON")

    def generator_stop(self) -> None:
        """Disable output 1 (``OUTPUT1:STATE OFF``)."""
        self._command("OUTPUT1:STATE OFF")

    def generator_set_form(self, form: str) -> None:
        """Select the output 1 waveform (``OUTPUT1:FUNC <form>``).

        Args:
            form: Waveform name understood by the device, e.g. ``"sine"``.
                It is sent verbatim.
        """
        self._command(f"OUTPUT1:FUNC {form}")

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Close the underlying transport."""
        self._transport.close()

    # -- Private helpers -----------------------------------------------------

    def _command(self, command: str) -> None:
        with self._lock:
            self._transport.send(command)

    def _query(self, command: str) -> str:
        with self._lock:
            self._transport.send(command)
            return self._transport.receive()


def create_session(config: DeviceConfig) -> RedPitayaSession:
    """Create a session connected to the instrument described by *config*.

    Args:
        config: Device address and timeouts.

    Returns:
        Connected session instance.

    Raises:
        DeviceConnectionError: If the instrument cannot be reached.
    """
    transport = TcpLineTransport(
        config.host,
        config.port,
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
    )
    transport.open()
    return RedPitayaSession(transport)
