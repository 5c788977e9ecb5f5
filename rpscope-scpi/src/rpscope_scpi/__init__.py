"""Line protocol library for rpscope instrument control.

This package provides the communication layer between the control worker and
the instrument. It includes:

- Line transport abstraction for terminated command/reply lines
- TCP socket transport for real instruments
- Number and sample-list parsing and formatting for query replies

Typical usage::

    from rpscope_scpi import TcpLineTransport, parse_samples

    transport = TcpLineTransport("192.168.1.5", 5000)
    transport.open()
    transport.send("ACQ:START")
    transport.send("ACQ:SOUR1:DATA?")
    samples = parse_samples(transport.receive())
    transport.close()
"""

from rpscope_scpi.number import format_number, format_samples, parse_number, parse_samples
from rpscope_scpi.tcp import TcpLineTransport
from rpscope_scpi.transport import LINE_TERMINATOR, LineTransport

__all__ = [
    # Number parsing/formatting
    "format_number",
    "format_samples",
    "parse_number",
    "parse_samples",
    # Transport
    "LINE_TERMINATOR",
    "LineTransport",
    "TcpLineTransport",
]
