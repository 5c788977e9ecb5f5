"""Red Pitaya emulator.

Provides an in-process emulator implementing the ``LineTransport`` protocol.
It understands the acquisition and generator commands used by
:class:`~rpscope_redpitaya.session.RedPitayaSession` and answers data queries
with a synthesized waveform, so the worker and bridge can be exercised without
hardware. Wrap it in :class:`~rpscope_redpitaya.server.EmulatorServer` to
reach it over TCP.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

from rpscope_core.errors import TransportError
from rpscope_scpi import format_samples

logger = logging.getLogger(__name__)

BUFFER_SIZE = 16384
"""Samples per acquisition buffer on the real instrument."""

# ---------------------------------------------------------------------------
# Waveforms
# ---------------------------------------------------------------------------


def _sine(phase: float) -> float:
    return math.sin(2.0 * math.pi * phase)


def _square(phase: float) -> float:
    return 1.0 if phase < 0.5 else -1.0


def _triangle(phase: float) -> float:
    return 4.0 * phase - 1.0 if phase < 0.5 else 3.0 - 4.0 * phase


def _saw_up(phase: float) -> float:
    return 2.0 * phase - 1.0


def _saw_down(phase: float) -> float:
    return 1.0 - 2.0 * phase


def _dc(phase: float) -> float:
    return 1.0


def _pwm(phase: float) -> float:
    return 1.0 if phase < 0.25 else -1.0


WAVEFORMS: dict[str, Callable[[float], float]] = {
    "sine": _sine,
    "square": _square,
    "triangle": _triangle,
    "sawu": _saw_up,
    "sawd": _saw_down,
    "dc": _dc,
    "pwm": _pwm,
}
"""Waveform names accepted by ``OUTPUT1:FUNC``, mapped to f(phase in [0, 1))."""

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RedPitayaEmulatorConfig:
    """Configuration for a Red Pitaya emulator instance.

    Args:
        samples: Samples returned per data query (>= 1).
        amplitude: Peak generator amplitude in volts (> 0).
        cycles: Waveform periods per acquisition buffer (> 0).
        decimals: Decimal places in data replies (>= 0).
    """

    samples: int = BUFFER_SIZE
    amplitude: float = 1.0
    cycles: float = 2.0
    decimals: int = 6

    def __post_init__(self) -> None:
        if self.samples < 1:
            raise ValueError("samples must be >= 1")
        if self.amplitude <= 0:
            raise ValueError("amplitude must be > 0")
        if self.cycles <= 0:
            raise ValueError("cycles must be > 0")
        if self.decimals < 0:
            raise ValueError("decimals must be >= 0")


# ---------------------------------------------------------------------------
# Emulator
# ---------------------------------------------------------------------------


class RedPitayaEmulator:
    """In-process Red Pitaya emulator implementing ``LineTransport``.

    The acquisition buffer is empty until the first ``ACQ:START`` and again
    after ``ACQ:RST``; a data query on an empty buffer answers ``{}``. While
    acquisition is stopped the buffer keeps the last capture.

    Attributes:
        commands: Every command line received, in order.

    Args:
        config: Emulator configuration. Defaults to a full-size buffer.
    """

    def __init__(self, config: RedPitayaEmulatorConfig | None = None) -> None:
        self._config = config or RedPitayaEmulatorConfig()
        self.commands: list[str] = []
        self._acquiring = False
        self._captured: tuple[float, ...] = ()
        self._output_enabled = False
        self._waveform = "sine"
        self._response: str | None = None
        self._closed = False

        self._set_handlers: dict[str, Callable[[str], None]] = {
            "ACQ:START": self._acq_start,
            "ACQ:STOP": self._acq_stop,
            "ACQ:RST": self._acq_reset,
            "OUTPUT1:STATE": self._set_output,
            "OUTPUT1:FUNC": self._set_function,
        }

        self._query_handlers: dict[str, Callable[[], str]] = {
            "ACQ:SOUR1:DATA?": self._get_data,
            "OUTPUT1:STATE?": self._get_output,
            "OUTPUT1:FUNC?": self._get_function,
        }

    # -- Properties ----------------------------------------------------------

    @property
    def is_acquiring(self) -> bool:
        """Whether the emulated acquisition is running."""
        return self._acquiring

    @property
    def output_enabled(self) -> bool:
        """Whether generator output 1 is enabled."""
        return self._output_enabled

    @property
    def waveform(self) -> str:
        """Currently selected generator waveform."""
        return self._waveform

    # -- Transport interface ------------------------------------------------

    def send(self, command: str) -> None:
        """Process one command or query line."""
        if self._closed:
            raise TransportError("Emulator is closed")

        line = command.strip()
        if not line:
            return
        self.commands.append(line)

        if "?" in line:
            header = line[: line.index("?") + 1].upper()
            query = self._query_handlers.get(header)
            if query is None:
                logger.warning("Emulator: unknown query %r", line)
                return
            self._response = query()
        else:
            parts = line.split(None, 1)
            header = parts[0].upper()
            args = parts[1] if len(parts) > 1 else ""
            handler = self._set_handlers.get(header)
            if handler is None:
                logger.warning("Emulator: unknown command %r", line)
                return
            handler(args)

    def receive(self) -> str:
        """Return and clear the buffered reply.

        Raises:
            TransportError: If no reply is pending; a real socket would block
                forever here.
        """
        if self._closed:
            raise TransportError("Emulator is closed")
        if self._response is None:
            raise TransportError("No reply pending")
        response, self._response = self._response, None
        return response

    def close(self) -> None:
        """Close the emulator; further sends and receives fail."""
        self._closed = True

    # -- Test helpers -------------------------------------------------------

    def sample_waveform(self) -> tuple[float, ...]:
        """Return one buffer of the current generator signal.

        Zeros when output 1 is disabled.
        """
        cfg = self._config
        if not self._output_enabled:
            return (0.0,) * cfg.samples
        wave = WAVEFORMS[self._waveform]
        return tuple(
            round(cfg.amplitude * wave((i * cfg.cycles / cfg.samples) % 1.0), cfg.decimals)
            for i in range(cfg.samples)
        )

    # -- Set handlers -------------------------------------------------------

    def _acq_start(self, args: str) -> None:
        self._acquiring = True

    def _acq_stop(self, args: str) -> None:
        if self._acquiring:
            self._captured = self.sample_waveform()
        self._acquiring = False

    def _acq_reset(self, args: str) -> None:
        self._acquiring = False
        self._captured = ()

    def _set_output(self, args: str) -> None:
        token = args.strip().upper()
        if token in ("ON", "1"):
            self._output_enabled = True
        elif token in ("OFF", "0"):
            self._output_enabled = False
        else:
            logger.warning("Emulator: invalid output state %r", args)

    def _set_function(self, args: str) -> None:
        name = args.strip().lower()
        if name not in WAVEFORMS:
            logger.warning("Emulator: unknown waveform %r", args)
            return
        self._waveform = name

    # -- Query handlers -----------------------------------------------------

    def _get_data(self) -> str:
        if self._acquiring:
            self._captured = self.sample_waveform()
        return format_samples(self._captured)

    def _get_output(self) -> str:
        return "ON" if self._output_enabled else "OFF"

    def _get_function(self) -> str:
        return self._waveform.upper()


# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------


def make_emulator(samples: int = BUFFER_SIZE) -> RedPitayaEmulator:
    """Create a Red Pitaya emulator.

    Args:
        samples: Samples per data reply.

    Returns:
        Configured emulator instance (1 V amplitude, 2 periods per buffer).
    """
    return RedPitayaEmulator(RedPitayaEmulatorConfig(samples=samples))
