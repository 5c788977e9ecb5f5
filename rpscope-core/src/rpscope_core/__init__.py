"""Core library for rpscope instrument control.

This package provides the error hierarchy and the command-token vocabulary
shared by the rpscope packages. It has no external dependencies so it can
serve as the base layer for the transport and instrument packages.

Key components:
    - Errors: RpscopeError and its connection, transport and parse subclasses.
    - Tokens: CommandToken, the closed set of presentation-side requests.

Example:
    >>> from rpscope_core import CommandToken
    >>> CommandToken.parse("oscillo/data").expects_reply
    True
"""

from rpscope_core.errors import (
    DeviceConnectionError,
    ProtocolParseError,
    RpscopeError,
    TransportError,
)
from rpscope_core.tokens import CommandToken

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Tokens
    "CommandToken",
    # Errors
    "DeviceConnectionError",
    "ProtocolParseError",
    "RpscopeError",
    "TransportError",
]
