"""Control worker: the single owner of the device session.

The worker drains the inbound queue of command tokens one at a time, in
arrival order, and runs the matching session operation. The wire protocol
has no request identifiers, so strict sequencing is what makes replies
attributable. Only ``oscillo/data`` produces a payload, which is forwarded
to the outbound queue.

Failures never stop the worker:

- Unknown tokens are logged as a warning and dropped.
- A ``TransportError`` is logged, the in-flight token is dropped and the
  worker returns to idle. The next token gets its own attempt.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from rpscope_core import CommandToken, TransportError

from rpscope_redpitaya.session import create_session

if TYPE_CHECKING:
    from rpscope_redpitaya.bridge import BridgeQueues
    from rpscope_redpitaya.config import DeviceConfig
    from rpscope_redpitaya.session import RedPitayaSession

logger = logging.getLogger(__name__)

_STOP = object()


class WorkerState(Enum):
    """Worker states."""

    IDLE = "idle"
    DISPATCHING = "dispatching"


class ControlWorker:
    """Sequential dispatcher from command tokens to session operations.

    Example:
        queues = BridgeQueues()
        with ControlWorker(session, queues) as worker:
            queues.inbound.put("oscillo/start")
            queues.inbound.put("oscillo/data")
            print(queues.outbound.get())

    Args:
        session: The device session; used by this worker only.
        queues: Queues shared with the presentation side.
        owns_session: Close the session when the worker stops.
    """

    def __init__(
        self,
        session: RedPitayaSession,
        queues: BridgeQueues,
        *,
        owns_session: bool = False,
    ) -> None:
        self._session = session
        self._queues = queues
        self._owns_session = owns_session
        self._state = WorkerState.IDLE
        self._thread: threading.Thread | None = None
        self._dispatched = 0

        self._handlers: dict[CommandToken, Callable[[], str | None]] = {
            CommandToken.OSCILLO_START: session.acquire_start,
            CommandToken.OSCILLO_STOP: session.acquire_stop,
            CommandToken.OSCILLO_DATA: session.get_data,
            CommandToken.GENERATOR_START: session.generator_start,
            CommandToken.GENERATOR_STOP: session.generator_stop,
            CommandToken.GENERATOR_SINC: lambda: session.generator_set_form("sine"),
        }

    @property
    def state(self) -> WorkerState:
        """Current worker state."""
        return self._state

    @property
    def session(self) -> RedPitayaSession:
        """The device session driven by this worker."""
        return self._session

    @property
    def dispatched(self) -> int:
        """Number of queue items processed, including dropped ones."""
        return self._dispatched

    @property
    def is_running(self) -> bool:
        """Return True while the worker thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    # -- Dispatch -------------------------------------------------------------

    def process(self, item: Any) -> str | None:
        """Dispatch one inbound item synchronously.

        Args:
            item: Raw item from the inbound queue.

        Returns:
            The payload forwarded to the outbound queue, if any.
        """
        self._dispatched += 1
        token = CommandToken.parse(item)
        if token is None:
            logger.warning("Invalid action: '%s'", item)
            return None

        self._state = WorkerState.DISPATCHING
        try:
            payload = self._handlers[token]()
        except TransportError as exc:
            logger.error("Dropping '%s': %s", token, exc)
            return None
        finally:
            self._state = WorkerState.IDLE

        if payload is not None:
            self._queues.outbound.put(payload)
        return payload

    # -- Lifecycle -----------------------------------------------------------

    def start(self) -> None:
        """Start the worker thread.

        Raises:
            RuntimeError: If the worker is already running.
        """
        if self.is_running:
            raise RuntimeError("Worker already running")
        self._thread = threading.Thread(target=self._run, name="rpscope-worker", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker after every token already enqueued.

        Args:
            timeout: Maximum time to wait for the thread in seconds.
        """
        if self._thread is not None:
            self._queues.inbound.put(_STOP)
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Control worker did not stop within %ss", timeout)
            else:
                self._thread = None
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> ControlWorker:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.stop()

    def _run(self) -> None:
        logger.info("Control worker started")
        while True:
            item = self._queues.inbound.get()
            if item is _STOP:
                break
            try:
                self.process(item)
            except Exception:  # pylint: disable=broad-except
                logger.exception("Unexpected error dispatching %r", item)
        logger.info("Control worker stopped")


def create_worker(config: DeviceConfig, queues: BridgeQueues) -> ControlWorker:
    """Connect to the instrument and build a worker that owns the session.

    Args:
        config: Device address and timeouts.
        queues: Queues shared with the presentation side.

    Returns:
        A worker, not yet started.

    Raises:
        DeviceConnectionError: If the instrument cannot be reached.
    """
    return ControlWorker(create_session(config), queues, owns_session=True)
