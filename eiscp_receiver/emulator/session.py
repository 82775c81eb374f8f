# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver emulator session.

A single TCP/IP client connection to the emulator.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..exceptions import EiscpProtocolError
from ..protocol import HEADER_LENGTH, parse_header, decode_body

if TYPE_CHECKING:
    from .emulator_impl import EiscpReceiverEmulator

class EiscpReceiverEmulatorSession(asyncio.Protocol):
    """Reassembles eISCP packets from a TCP stream and hands the messages to the emulator."""
    emulator: EiscpReceiverEmulator
    session_id: int
    transport: Optional[asyncio.Transport] = None
    peername: Optional[Tuple[str, int]] = None
    buffer: bytes

    def __init__(self, emulator: EiscpReceiverEmulator):
        self.emulator = emulator
        self.session_id = emulator.alloc_session_id(self)
        self.buffer = b''

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        assert isinstance(transport, asyncio.Transport)
        self.transport = transport
        self.peername = transport.get_extra_info('peername')
        logger.debug(f"{self}: Connection made")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        logger.debug(f"{self}: Connection lost, exc={exc}")
        self.transport = None
        self.emulator.free_session_id(self.session_id)

    def data_received(self, data: bytes) -> None:
        self.buffer += data
        while len(self.buffer) >= HEADER_LENGTH:
            try:
                header = parse_header(self.buffer)
            except EiscpProtocolError as e:
                logger.warning(f"{self}: Closing session: {e}")
                self.close()
                return
            end = HEADER_LENGTH + header.payload_length
            if len(self.buffer) < end:
                break
            body = self.buffer[HEADER_LENGTH:end]
            self.buffer = self.buffer[end:]
            try:
                message = decode_body(body)
            except EiscpProtocolError as e:
                logger.warning(f"{self}: Ignoring message: {e}")
                continue
            self.emulator.on_message_received(self, message)

    def write(self, data: bytes) -> None:
        if self.transport is None:
            logger.debug(f"{self}: Dropping write to closed session: {data.hex(' ')}")
            return
        self.transport.write(data)

    def close(self) -> None:
        if self.transport is not None:
            self.transport.close()

    @property
    def is_open(self) -> bool:
        return self.transport is not None

    def __str__(self) -> str:
        return f"EiscpReceiverEmulatorSession(id={self.session_id}, peer={self.peername})"

    def __repr__(self) -> str:
        return str(self)
