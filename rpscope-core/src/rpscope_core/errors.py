"""Exception types for rpscope-core.

This module defines the exception hierarchy used throughout the rpscope
packages. All rpscope exceptions inherit from RpscopeError, allowing consumers
to catch all framework-specific errors with a single except clause.

Exception hierarchy:
    RpscopeError (base)
    +-- DeviceConnectionError: Initial connection to the instrument failed
    +-- TransportError: A write or read failed mid-session
    +-- ProtocolParseError: A reply could not be decoded (also a ValueError)
"""


class RpscopeError(Exception):
    """Base exception for all rpscope errors.

    This is the root of the rpscope exception hierarchy. Catch this to handle
    any framework-specific error.
    """


class DeviceConnectionError(RpscopeError):
    """Raised when the connection to the instrument cannot be established.

    This only happens at startup. There is no reconnect policy, so callers
    treat it as fatal.
    """


class TransportError(RpscopeError):
    """Raised when sending or receiving a line fails on an open session.

    Causes include a closed or refused socket, an end-of-stream before the
    line terminator, undecodable bytes, and an expired read timeout. The
    in-flight command is lost; no partial-write retry is attempted.
    """


class ProtocolParseError(RpscopeError, ValueError):
    """Raised when a reply payload is not decodable as the expected format.

    Inherits from ValueError so callers treating any malformed value
    uniformly keep working.
    """
