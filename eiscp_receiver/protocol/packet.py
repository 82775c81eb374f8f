# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP packet framing.

Wraps an ISCP message in the eISCP envelope used over TCP/IP and UDP, and
extracts the message from a received envelope.
"""

from __future__ import annotations

import struct

from ..internal_types import *
from ..exceptions import EiscpProtocolError
from .constants import (
    PACKET_MAGIC,
    HEADER_LENGTH,
    PROTOCOL_VERSION,
    RESERVED_BYTES,
    START_CHAR,
    DEST_UNICAST,
    END_OF_MESSAGE,
    END_OF_MESSAGE_CHARS,
    MESSAGE_PREFIX_LENGTH,
  )

_HEADER_STRUCT = struct.Struct(">4sIIB3s")

class PacketHeader:
    """The fixed 16-byte header at the front of an eISCP packet"""
    header_length: int
    payload_length: int
    version: int

    def __init__(self, header_length: int, payload_length: int, version: int):
        self.header_length = header_length
        self.payload_length = payload_length
        self.version = version

    def __str__(self) -> str:
        return f"PacketHeader(header_length={self.header_length}, payload_length={self.payload_length}, version={self.version})"

    def __repr__(self) -> str:
        return str(self)

def parse_header(header: bytes) -> PacketHeader:
    """Parses and validates the first HEADER_LENGTH bytes of an eISCP packet.

    Raises EiscpProtocolError if the header is short, does not start with
    the magic bytes, or declares a header length other than 16.
    """
    if len(header) < HEADER_LENGTH:
        raise EiscpProtocolError(f"Short eISCP header ({len(header)} bytes): {header.hex(' ')}")
    magic, header_length, payload_length, version, _ = _HEADER_STRUCT.unpack_from(header)
    if magic != PACKET_MAGIC:
        raise EiscpProtocolError(f"Bad eISCP magic {magic!r}: {header[:HEADER_LENGTH].hex(' ')}")
    if header_length != HEADER_LENGTH:
        raise EiscpProtocolError(f"Unsupported eISCP header length {header_length} (expected {HEADER_LENGTH})")
    return PacketHeader(header_length, payload_length, version)

def iscp_message(
        message: Union[str, bytes],
        destination: str=DEST_UNICAST,
        end_of_message: str=END_OF_MESSAGE,
      ) -> bytes:
    """Wraps a raw message (command code + value) in the ISCP start and end characters"""
    if isinstance(message, bytes):
        message = message.decode('ascii')
    return f"{START_CHAR}{destination}{message}{end_of_message}".encode('ascii')

def encode_packet(
        message: Union[str, bytes],
        destination: str=DEST_UNICAST,
        end_of_message: str=END_OF_MESSAGE,
      ) -> bytes:
    """Builds a complete eISCP packet for a raw message such as "PWR01".

    destination is '1' for commands sent to a receiver and 'x' for the
    discovery broadcast.
    """
    body = iscp_message(message, destination=destination, end_of_message=end_of_message)
    header = _HEADER_STRUCT.pack(PACKET_MAGIC, HEADER_LENGTH, len(body), PROTOCOL_VERSION, RESERVED_BYTES)
    return header + body

def decode_body(body: bytes) -> str:
    """Extracts the raw message from an ISCP message body ("!1PWR01\\x1a\\r\\n" -> "PWR01")"""
    if len(body) < MESSAGE_PREFIX_LENGTH or body[:1] != START_CHAR.encode('ascii'):
        raise EiscpProtocolError(f"Malformed ISCP message: {body.hex(' ')}")
    return body[MESSAGE_PREFIX_LENGTH:].rstrip(END_OF_MESSAGE_CHARS).decode('ascii', errors='replace')

def decode_packet(frame: bytes) -> str:
    """Extracts the raw message (command code + value) from a complete eISCP packet.

    Only the fixed 16-byte header layout is supported. Raises EiscpProtocolError on
    short or malformed input.
    """
    header = parse_header(frame)
    end = HEADER_LENGTH + header.payload_length
    if len(frame) < end:
        raise EiscpProtocolError(
            f"Short eISCP packet: header declares {header.payload_length} message bytes, got {len(frame) - HEADER_LENGTH}")
    return decode_body(frame[HEADER_LENGTH:end])

class Packet:
    """An eISCP packet, as raw bytes"""
    raw_data: bytes

    def __init__(self, raw_data: bytes):
        self.raw_data = raw_data

    @classmethod
    def create(cls, message: Union[str, bytes], destination: str=DEST_UNICAST) -> Self:
        """Creates a packet carrying a raw message"""
        return cls(encode_packet(message, destination=destination))

    @property
    def header(self) -> PacketHeader:
        return parse_header(self.raw_data)

    @property
    def payload_length(self) -> int:
        """Length of the ISCP message, as declared in the header"""
        return self.header.payload_length

    @property
    def destination(self) -> str:
        """The destination character of the ISCP message"""
        return chr(self.raw_data[HEADER_LENGTH + 1])

    @property
    def message(self) -> str:
        """The raw message (command code + value)"""
        return decode_packet(self.raw_data)

    def validate(self) -> None:
        """Raises EiscpProtocolError if the packet is not well-formed"""
        decode_packet(self.raw_data)

    def __str__(self) -> str:
        return f"Packet({self.raw_data.hex(' ')})"

    def __repr__(self) -> str:
        return str(self)
