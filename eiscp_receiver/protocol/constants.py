# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Wire-level constants for the eISCP protocol.

An eISCP packet is a fixed 16-byte header followed by an ISCP message:

    "ISCP" <header_length:u32be=16> <message_length:u32be> <version:u8=1> 00 00 00
    "!" <destination> <message> "\\r\\n"

The message length counts the whole ISCP message including the start
characters and the terminator.
"""

from __future__ import annotations

PACKET_MAGIC = b"ISCP"
"""The first 4 bytes of every eISCP packet."""

HEADER_LENGTH = 16
"""The only header length supported. Packets declaring another header length are rejected."""

PROTOCOL_VERSION = 1
"""The version byte following the length fields."""

RESERVED_BYTES = b"\x00\x00\x00"
"""Three reserved bytes that end the header."""

START_CHAR = "!"
"""First character of every ISCP message."""

DEST_UNICAST = "1"
"""Destination character for commands sent to a receiver."""

DEST_BROADCAST = "x"
"""Destination character for the discovery query broadcast."""

END_OF_MESSAGE = "\r\n"
"""Terminator appended to ISCP messages sent by this package."""

RECEIVER_END_OF_MESSAGE = "\x1a\r\n"
"""Terminator appended by receivers to the ISCP messages they send (EOF, CR, LF)."""

END_OF_MESSAGE_CHARS = b"\x1a\r\n"
"""Bytes that may end an ISCP message received from a receiver. Receivers append
   EOF (0x1A) followed by CR LF; some send only CR or only EOF."""

MESSAGE_PREFIX_LENGTH = 2
"""Length of the start character plus destination character."""

COMMAND_CODE_LENGTH = 3
"""Length of the command code at the start of every ISCP message body."""

DISCOVERY_QUERY = "ECNQSTN"
"""The message broadcast to find receivers."""

DISCOVERY_RESPONSE_CODE = "ECN"
"""The command code of a receiver's answer to the discovery query."""

QUERY_ARGUMENT = "QSTN"
"""The raw value that asks a receiver for the current value of a command."""
