# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver emulator discovery responder.

Answers "ECNQSTN" discovery queries on UDP the way a receiver does.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..exceptions import EiscpProtocolError
from ..protocol import (
    DISCOVERY_QUERY,
    DISCOVERY_RESPONSE_CODE,
    RECEIVER_END_OF_MESSAGE,
    encode_packet,
    decode_packet,
  )

class DiscoveryResponder(asyncio.DatagramProtocol):
    get_response: Callable[[], str]
    """Returns the discovery answer message; called per query so the TCP port is current."""

    transport: Optional[asyncio.DatagramTransport] = None

    def __init__(self, get_response: Callable[[], str]):
        super().__init__()
        self.get_response = get_response

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self.transport = cast(asyncio.DatagramTransport, transport)

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        try:
            message = decode_packet(data)
        except EiscpProtocolError as e:
            logger.debug(f"Emulator discovery: ignoring datagram from {addr[0]}:{addr[1]}: {e}")
            return
        if message != DISCOVERY_QUERY:
            logger.debug(f"Emulator discovery: ignoring message from {addr[0]}:{addr[1]}: {message!r}")
            return
        response = self.get_response()
        assert response.startswith(DISCOVERY_RESPONSE_CODE)
        logger.debug(f"Emulator discovery: answering {addr[0]}:{addr[1]} with {response!r}")
        if self.transport is not None:
            self.transport.sendto(encode_packet(response, end_of_message=RECEIVER_END_OF_MESSAGE), addr)

    def error_received(self, exc: Exception) -> None:
        logger.warning(f"Emulator discovery: socket error: {exc}")
