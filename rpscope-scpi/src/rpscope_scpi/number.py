"""SCPI number and sample-list parsing and formatting utilities.

Handles NR1 (integer), NR2 (fixed-point), and NR3 (scientific notation)
numeric formats, the special values NAN, INF and NINF, and the brace-delimited
sample lists returned by acquisition data queries::

    {0.12,0.08,-0.01}
"""

from __future__ import annotations

import math
import re
from typing import Iterable

from rpscope_core.errors import ProtocolParseError

_SPECIAL_FLOAT_MAP: dict[str, float] = {
    "NAN": float("nan"),
    "INF": float("inf"),
    "NINF": float("-inf"),
    "-INF": float("-inf"),
}

# NR1, NR2 and NR3 decimals; no digit separators or spelled-out specials.
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

_LIST_OPEN = "{"
_LIST_CLOSE = "}"
_LIST_SEPARATOR = ","


def parse_number(text: str) -> float:
    """Parse a SCPI numeric response into a float.

    Accepts NR1 (``"42"``), NR2 (``"1.23"``), NR3 (``"1.23E+4"``),
    and the special tokens ``NAN``, ``INF``, ``NINF``, and ``-INF``.

    Args:
        text: The raw response string (leading/trailing whitespace is stripped).

    Returns:
        The parsed float value.

    Raises:
        ProtocolParseError: If *text* cannot be parsed as a SCPI number.
    """
    token = text.strip().upper()
    special = _SPECIAL_FLOAT_MAP.get(token)
    if special is not None:
        return special
    if _DECIMAL_RE.fullmatch(token) is None:
        raise ProtocolParseError(f"Invalid SCPI number: {text!r}")
    return float(token)


def parse_samples(text: str) -> tuple[float, ...]:
    """Parse a brace-delimited list of acquisition samples.

    Every sample must be a finite decimal. An empty list is an error rather
    than an empty result, because an acquisition always returns at least one
    sample.

    Args:
        text: Raw reply line (e.g. ``"{1.0,2.0,3.0}"``).

    Returns:
        The samples in their original order.

    Raises:
        ProtocolParseError: If the braces are missing, the list is empty, or
            any element is not a finite decimal.
    """
    body = text.strip()
    if not (body.startswith(_LIST_OPEN) and body.endswith(_LIST_CLOSE)) or len(body) < 2:
        raise ProtocolParseError(f"Expected a brace-delimited sample list, got {text!r}")

    body = body[1:-1].strip()
    if not body:
        raise ProtocolParseError("Sample list is empty")

    samples: list[float] = []
    for index, part in enumerate(body.split(_LIST_SEPARATOR)):
        value = parse_number(part)
        if not math.isfinite(value):
            raise ProtocolParseError(f"Sample {index} is not a finite decimal: {part.strip()!r}")
        samples.append(value)
    return tuple(samples)


def format_number(value: float) -> str:
    """Format a float for use in a SCPI command or reply.

    ``nan``, ``inf``, and ``-inf`` are rendered as ``NAN``, ``INF``, and
    ``NINF`` respectively.  Finite values use Python's default ``str()``
    representation, which round-trips exactly through :func:`parse_number`.

    Args:
        value: The numeric value to format.

    Returns:
        A SCPI-compatible string representation.
    """
    if math.isnan(value):
        return "NAN"
    if math.isinf(value):
        return "NINF" if value < 0 else "INF"
    return str(value)


def format_samples(samples: Iterable[float]) -> str:
    """Format samples in the brace-delimited reply format.

    Args:
        samples: Sample values, in order.

    Returns:
        A string such as ``"{1.0,2.0,3.0}"``.
    """
    return _LIST_OPEN + _LIST_SEPARATOR.join(format_number(s) for s in samples) + _LIST_CLOSE
