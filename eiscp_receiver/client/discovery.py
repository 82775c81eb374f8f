# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver discovery.

Broadcasts the "ECNQSTN" query over UDP and collects the "ECN" answers of
receivers on the local network.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..exceptions import EiscpError, EiscpProtocolError, NetworkError
from ..constants import DEFAULT_PORT, DEFAULT_DISCOVERY_TIMEOUT, BROADCAST_ADDRESS
from ..pkg_logging import logger
from ..protocol import (
    encode_packet,
    decode_packet,
    DEST_BROADCAST,
    DISCOVERY_QUERY,
    DISCOVERY_RESPONSE_CODE,
  )

MAC_ADDRESS_LENGTH = 12
"""Receivers may follow the MAC address with control bytes; only the first 12 characters are kept."""

ErrorCallback = Callable[[EiscpError], None]

class DiscoveryResult:
    """A receiver that answered a discovery query"""
    host: str
    port: int
    model: str
    mac: str
    area_code: str
    message: str

    def __init__(self, host: str, port: int, model: str, mac: str, area_code: str, message: str):
        self.host = host
        self.port = port
        self.model = model
        self.mac = mac
        self.area_code = area_code
        self.message = message

    @classmethod
    def from_message(cls, host: str, message: str) -> Self:
        """Parses an "ECN<model>/<port>/<area-code>/<mac>" discovery answer"""
        if not message.startswith(DISCOVERY_RESPONSE_CODE):
            raise EiscpProtocolError(f"Not a discovery response: {message!r}")
        fields = message[len(DISCOVERY_RESPONSE_CODE):].split('/')
        if len(fields) < 4:
            raise EiscpProtocolError(f"Malformed discovery response: {message!r}")
        model, port_str, area_code, mac = fields[:4]
        try:
            port = int(port_str)
        except ValueError as e:
            raise EiscpProtocolError(f"Malformed port in discovery response: {message!r}") from e
        return cls(
            host=host,
            port=port,
            model=model,
            mac=mac[:MAC_ADDRESS_LENGTH],
            area_code=area_code,
            message=message,
          )

    def to_jsonable(self) -> JsonableDict:
        return dict(
            host=self.host,
            port=self.port,
            model=self.model,
            mac=self.mac,
            area_code=self.area_code,
            message=self.message,
          )

    def __str__(self) -> str:
        return f"DiscoveryResult({self.model} at {self.host}:{self.port}, mac={self.mac}, area_code={self.area_code})"

    def __repr__(self) -> str:
        return str(self)

class DiscoveryProtocol(asyncio.DatagramProtocol):
    """Collects discovery answers until enough devices have answered"""
    devices: int
    results: List[DiscoveryResult]
    done: asyncio.Future[None]
    on_error: Optional[ErrorCallback]

    def __init__(self, devices: int, on_error: Optional[ErrorCallback]=None):
        super().__init__()
        self.devices = devices
        self.results = []
        self.done = asyncio.get_event_loop().create_future()
        self.on_error = on_error

    def finish(self) -> None:
        if not self.done.done():
            self.done.set_result(None)

    def on_timeout(self) -> None:
        if not self.done.done():
            logger.debug(f"Discovery timed out with {len(self.results)} receiver(s) found")
        self.finish()

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        if self.done.done():
            return
        try:
            message = decode_packet(data)
        except EiscpProtocolError:
            logger.debug(f"Ignoring malformed discovery datagram from {addr[0]}:{addr[1]}: {data.hex(' ')}")
            return
        if not message.startswith(DISCOVERY_RESPONSE_CODE):
            logger.debug(f"Ignoring non-discovery message from {addr[0]}:{addr[1]}: {message!r}")
            return
        try:
            result = DiscoveryResult.from_message(addr[0], message)
        except EiscpProtocolError as e:
            logger.debug(f"Ignoring discovery response from {addr[0]}:{addr[1]}: {e}")
            return
        logger.debug(f"Received discovery response from {addr[0]}:{addr[1]}: {result}")
        self.results.append(result)
        if len(self.results) >= self.devices:
            self.finish()

    def error_received(self, exc: Exception) -> None:
        logger.warning(f"Discovery socket error: {exc}")
        if self.on_error is not None:
            error = NetworkError(f"Discovery socket error: {exc}")
            error.__cause__ = exc
            self.on_error(error)
        self.finish()

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.finish()

async def discover(
        devices: int=1,
        timeout_secs: float=DEFAULT_DISCOVERY_TIMEOUT,
        address: str=BROADCAST_ADDRESS,
        port: int=DEFAULT_PORT,
        on_error: Optional[ErrorCallback]=None,
      ) -> List[DiscoveryResult]:
    """Finds eISCP receivers on the local network.

    Sends the discovery query to address:port and waits until `devices`
    receivers have answered or `timeout_secs` elapses, whichever comes first.
    Never raises for network errors: they are logged, passed to on_error, and
    the receivers found so far are returned. The result may be empty.

        Args:
            devices: Stop as soon as this many receivers have answered.
            timeout_secs: The maximum time to wait for answers.
            address: Where to send the query. The broadcast address finds all
                     receivers; a unicast address asks a single receiver.
            port: The UDP port receivers listen on.
            on_error: Called with a NetworkError on socket failures.
    """
    loop = asyncio.get_running_loop()
    try:
        transport, protocol = await loop.create_datagram_endpoint(
            lambda: DiscoveryProtocol(devices, on_error=on_error),
            local_addr=('0.0.0.0', 0),
            allow_broadcast=True,
          )
    except OSError as e:
        logger.warning(f"Unable to open discovery socket: {e}")
        if on_error is not None:
            error = NetworkError(f"Unable to open discovery socket: {e}")
            error.__cause__ = e
            on_error(error)
        return []

    assert isinstance(protocol, DiscoveryProtocol)
    timer: Optional[asyncio.TimerHandle] = None
    try:
        packet = encode_packet(DISCOVERY_QUERY, destination=DEST_BROADCAST)
        logger.debug(f"Sending discovery query to {address}:{port}: {packet.hex(' ')}")
        transport.sendto(packet, (address, port))
        timer = loop.call_later(timeout_secs, protocol.on_timeout)
        await protocol.done
    finally:
        if timer is not None:
            timer.cancel()
        transport.close()

    return list(protocol.results)
