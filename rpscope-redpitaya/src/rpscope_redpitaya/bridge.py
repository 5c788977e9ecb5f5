"""Presentation-side message bridge.

The presentation layer and the control worker share exactly two unbounded
queues, bundled as :class:`BridgeQueues`:

- ``inbound`` carries command tokens from the presentation side to the worker.
- ``outbound`` carries raw data replies from the worker back.

:class:`PresentationBridge` is the presentation-side half. It sends tokens,
waits for the single reply a data query produces, and turns that reply into a
:class:`Waveform` with the bounds a plot needs.

Example:
    queues = BridgeQueues()
    worker = ControlWorker(session, queues)
    worker.start()

    bridge = PresentationBridge(queues, reply_timeout=1.0)
    bridge.set_acquisition(True)
    waveform = bridge.frame()
    if waveform is not None:
        print(waveform.y_min, waveform.y_max)
    bridge.shutdown()
    worker.stop()
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from typing import Any

from rpscope_core import CommandToken, ProtocolParseError
from rpscope_scpi import parse_samples

logger = logging.getLogger(__name__)

SINE_FORM = "sine"


@dataclass
class BridgeQueues:
    """The inbound and outbound queues shared by presentation and worker.

    Attributes:
        inbound: Command tokens, presentation to worker.
        outbound: Reply payloads, worker to presentation.
    """

    inbound: queue.Queue[Any] = field(default_factory=queue.Queue)
    outbound: queue.Queue[str] = field(default_factory=queue.Queue)


@dataclass(frozen=True)
class Waveform:
    """One acquisition buffer parsed from a data reply.

    Attributes:
        samples: Sample values in acquisition order (never empty).
    """

    samples: tuple[float, ...]

    def __post_init__(self) -> None:
        if not self.samples:
            raise ValueError("Waveform requires at least one sample")

    @classmethod
    def from_reply(cls, reply: str) -> Waveform:
        """Parse a raw ``{v1,v2,...}`` reply.

        Raises:
            ProtocolParseError: If the reply is not a valid sample list.
        """
        return cls(parse_samples(reply))

    @property
    def x_min(self) -> int:
        """First sample index."""
        return 0

    @property
    def x_max(self) -> int:
        """Number of samples."""
        return len(self.samples)

    @property
    def y_min(self) -> float:
        """Smallest sample value."""
        return min(self.samples)

    @property
    def y_max(self) -> float:
        """Largest sample value."""
        return max(self.samples)

    def __len__(self) -> int:
        return len(self.samples)


class PresentationBridge:
    """Presentation-side access to the control worker.

    Tracks the toggle state the user sees (acquisition running, generator on)
    and only sends start/stop tokens when a toggle actually changes.

    The wire protocol has no request identifiers, so at most one data query
    may be outstanding. :meth:`query_data` enforces this from the caller side
    by waiting for its reply before returning and by discarding any reply that
    arrived after an earlier wait had timed out.

    Args:
        queues: Queues shared with the worker.
        reply_timeout: Default wait for a data reply in seconds. None waits
            indefinitely.
    """

    def __init__(self, queues: BridgeQueues, *, reply_timeout: float | None = None) -> None:
        self._queues = queues
        self._reply_timeout = reply_timeout
        self._acquiring = False
        self._generating = False

    @property
    def acquisition_enabled(self) -> bool:
        """Whether the acquisition toggle is on."""
        return self._acquiring

    @property
    def generator_enabled(self) -> bool:
        """Whether the generator toggle is on."""
        return self._generating

    # -- Commands -------------------------------------------------------------

    def send(self, token: CommandToken | str) -> None:
        """Enqueue a command token for the worker.

        Args:
            token: A :class:`CommandToken` or its string value. Strings
                outside the vocabulary are accepted here and rejected by the
                worker.
        """
        self._queues.inbound.put(str(token))

    def set_acquisition(self, enabled: bool) -> None:
        """Turn the acquisition toggle on or off."""
        if enabled == self._acquiring:
            return
        self.send(CommandToken.OSCILLO_START if enabled else CommandToken.OSCILLO_STOP)
        self._acquiring = enabled

    def set_generator(self, enabled: bool) -> None:
        """Turn the sine generator toggle on or off."""
        if enabled == self._generating:
            return
        if enabled:
            self.send(CommandToken.GENERATOR_SINC)
            self.send(CommandToken.GENERATOR_START)
        else:
            self.send(CommandToken.GENERATOR_STOP)
        self._generating = enabled

    def shutdown(self) -> None:
        """Stop acquisition and generator, as on window close."""
        self.send(CommandToken.OSCILLO_STOP)
        self.send(CommandToken.GENERATOR_STOP)
        self._acquiring = False
        self._generating = False

    # -- Queries --------------------------------------------------------------

    def query_data(self, timeout: float | None = None) -> str | None:
        """Request the acquisition buffer and wait for the raw reply.

        Replies already waiting on the outbound queue are discarded before
        the query is sent. Replies carry no correlation id, so a reply to an
        earlier timed-out query that arrives after that drain is returned as
        the answer to this query. Choose a reply timeout longer than the
        transport read timeout to narrow that window.

        Args:
            timeout: Wait in seconds; defaults to the bridge reply timeout.

        Returns:
            The raw reply line, or None if no reply arrived in time (for
            example because the device was unreachable or acquisition was
            not started on the device side).
        """
        self._discard_stale_replies()
        self.send(CommandToken.OSCILLO_DATA)
        wait = self._reply_timeout if timeout is None else timeout
        try:
            return self._queues.outbound.get(timeout=wait)
        except queue.Empty:
            logger.debug("No data reply within %ss", wait)
            return None

    def fetch_waveform(self, timeout: float | None = None) -> Waveform | None:
        """Request the acquisition buffer and parse it.

        Returns:
            The parsed waveform, or None if no reply arrived in time.

        Raises:
            ProtocolParseError: If the reply is not a valid sample list.
        """
        reply = self.query_data(timeout)
        if reply is None:
            return None
        return Waveform.from_reply(reply)

    def frame(self) -> Waveform | None:
        """Produce the waveform for one render frame.

        Returns:
            The current waveform, or None when acquisition is off, no reply
            arrived, or the reply was malformed.
        """
        if not self._acquiring:
            return None
        try:
            return self.fetch_waveform()
        except ProtocolParseError as exc:
            logger.warning("Discarding malformed data reply: %s", exc)
            return None

    def _discard_stale_replies(self) -> None:
        while True:
            try:
                stale = self._queues.outbound.get_nowait()
            except queue.Empty:
                return
            logger.debug("Discarding stale data reply (%d chars)", len(stale))
