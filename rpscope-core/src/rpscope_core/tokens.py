"""Command token vocabulary.

Command tokens are the opaque request identifiers the presentation side puts
on the inbound queue. The queue itself is untyped (it carries plain strings),
so :meth:`CommandToken.parse` is the single place where a raw string is
accepted or rejected.
"""

from __future__ import annotations

from enum import Enum


class CommandToken(str, Enum):
    """Closed set of instrument operations the control worker understands.

    Members compare equal to their string value, so ``"oscillo/start"`` and
    ``CommandToken.OSCILLO_START`` are interchangeable on the queue.
    """

    OSCILLO_START = "oscillo/start"
    OSCILLO_STOP = "oscillo/stop"
    OSCILLO_DATA = "oscillo/data"
    GENERATOR_START = "generator/start"
    GENERATOR_STOP = "generator/stop"
    GENERATOR_SINC = "generator/sinc"

    def __str__(self) -> str:
        return self.value

    @property
    def expects_reply(self) -> bool:
        """Return True if this token produces a reply payload."""
        return self is CommandToken.OSCILLO_DATA

    @classmethod
    def parse(cls, raw: object) -> CommandToken | None:
        """Convert a raw queue item into a token.

        Args:
            raw: Item taken from the inbound queue.

        Returns:
            The matching token, or None if *raw* is not in the vocabulary.
        """
        if isinstance(raw, cls):
            return raw
        try:
            return cls(raw)
        except ValueError:
            return None
