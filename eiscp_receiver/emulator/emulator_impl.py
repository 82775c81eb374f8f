# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver emulator.

Provides a simple emulation of an eISCP receiver on TCP/IP, including the
UDP discovery responder. State changes are reported to every connected
session, as a real receiver does.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..pkg_logging import logger
from ..protocol import (
    COMMAND_CODE_LENGTH,
    DISCOVERY_RESPONSE_CODE,
    QUERY_ARGUMENT,
    RECEIVER_END_OF_MESSAGE,
    encode_packet,
  )
from ..constants import DEFAULT_PORT

from .session import EiscpReceiverEmulatorSession
from .discovery_responder import DiscoveryResponder

DEFAULT_MODEL = "TX-NR609"
DEFAULT_AREA_CODE = "DX"
DEFAULT_MAC = "0009B0123456"
NOT_AVAILABLE = "N/A"

DEFAULT_STATE: Dict[str, str] = {
    "PWR": "00",
    "AMT": "00",
    "MVL": "20",
    "SLI": "01",
    "LMD": "00",
    "SLP": "OFF",
    "DIM": "00",
    "ZPW": "00",
    "ZMT": "00",
    "ZVL": "10",
    "SLZ": "01",
    "PW3": "00",
    "MT3": "00",
    "VL3": "10",
  }

class EiscpReceiverEmulator(AsyncContextManager['EiscpReceiverEmulator']):
    model: str
    bind_addr: str
    port: int
    """The TCP port. If 0 on construction, the port actually bound after start()."""

    discovery_port: Optional[int]
    """The UDP discovery port, or None to not answer discovery. 0 binds any free port."""

    area_code: str
    mac: str
    state: Dict[str, str]
    sessions: Dict[int, EiscpReceiverEmulatorSession]
    next_session_id: int = 0
    received: List[str]
    """Every message received from any session, in arrival order."""

    requests: asyncio.Queue[Optional[Tuple[EiscpReceiverEmulatorSession, str]]]
    server: Optional[asyncio.Server] = None
    discovery_transport: Optional[asyncio.DatagramTransport] = None
    handler_task: Optional[asyncio.Task[None]] = None
    final_result: asyncio.Future[None]

    def __init__(
            self,
            model: Optional[str] = None,
            bind_addr: Optional[str] = None,
            port: int = DEFAULT_PORT,
            discovery_port: Optional[int] = None,
            area_code: str = DEFAULT_AREA_CODE,
            mac: str = DEFAULT_MAC,
            state: Optional[Mapping[str, str]] = None,
          ):
        self.model = DEFAULT_MODEL if model is None else model
        self.bind_addr = '0.0.0.0' if bind_addr is None else bind_addr
        self.port = port
        self.discovery_port = discovery_port
        self.area_code = area_code
        self.mac = mac
        self.state = dict(DEFAULT_STATE if state is None else state)
        self.sessions = {}
        self.received = []
        self.requests = asyncio.Queue()
        self.final_result = asyncio.get_event_loop().create_future()

    def alloc_session_id(self, session: EiscpReceiverEmulatorSession) -> int:
        result = self.next_session_id
        self.next_session_id += 1
        self.sessions[result] = session
        return result

    def free_session_id(self, session_id: int) -> None:
        self.sessions.pop(session_id, None)

    def on_message_received(self, session: EiscpReceiverEmulatorSession, message: str) -> None:
        """Called when a message is received from a session."""
        self.received.append(message)
        self.requests.put_nowait((session, message))

    @property
    def discovery_response(self) -> str:
        return f"{DISCOVERY_RESPONSE_CODE}{self.model}/{self.port}/{self.area_code}/{self.mac}"

    def _step(self, current: str, delta: int) -> str:
        try:
            level = int(current, 16)
        except ValueError:
            level = 0
        return f"{max(0, min(0xff, level + delta)):02X}"

    async def handle_message(self, session: EiscpReceiverEmulatorSession, message: str) -> Optional[Tuple[str, bool]]:
        """Handles a single message and returns (reply, broadcast).

        If broadcast is True, the reply is a state change and is sent to every
        session; otherwise it goes only to the requesting session. None sends nothing.
        """
        code = message[:COMMAND_CODE_LENGTH]
        argument = message[COMMAND_CODE_LENGTH:]
        if len(code) < COMMAND_CODE_LENGTH or argument == '':
            logger.debug(f"{session}: Ignoring malformed message {message!r}")
            return None

        current = self.state.get(code)
        if argument == QUERY_ARGUMENT:
            return (code + (NOT_AVAILABLE if current is None else current), False)

        if argument in ('UP', 'UP1'):
            new_value = self._step("00" if current is None else current, 1)
        elif argument in ('DOWN', 'DOWN1'):
            new_value = self._step("00" if current is None else current, -1)
        elif argument == 'TG':
            new_value = "00" if current == "01" else "01"
        else:
            new_value = argument
        self.state[code] = new_value
        logger.debug(f"{session}: {code} {current} -> {new_value}")
        return (code + new_value, True)

    def send_to_all(self, message: str) -> None:
        """Sends an unsolicited message to every connected session."""
        data = encode_packet(message, end_of_message=RECEIVER_END_OF_MESSAGE)
        for session in list(self.sessions.values()):
            session.write(data)

    def drop_sessions(self) -> None:
        """Closes every connected session, as if the receiver dropped off the network."""
        for session in list(self.sessions.values()):
            session.close()

    async def handle_requests(self) -> None:
        """Handle requests from sessions."""
        while True:
            session_and_message = await self.requests.get()
            try:
                if session_and_message is None:
                    logger.debug("Emulator handler: Received EOF; exiting")
                    break
                session, message = session_and_message
                try:
                    logger.debug(f"{session}: Emulator handler: received message: {message!r}")
                    reply = await self.handle_message(session, message)
                    if reply is not None:
                        reply_message, broadcast = reply
                        logger.debug(f"{session}: Emulator handler: replying {reply_message!r}, broadcast={broadcast}")
                        if broadcast:
                            self.send_to_all(reply_message)
                        else:
                            session.write(encode_packet(reply_message, end_of_message=RECEIVER_END_OF_MESSAGE))
                except asyncio.CancelledError:
                    logger.debug(f"{session}: Handler task cancelled; exiting")
                    break
                except Exception as e:
                    logger.exception(f"{session}: Handler task: Exception while handling request; killing session: {e}")
                    session.close()
            finally:
                self.requests.task_done()

    async def run(self) -> None:
        """Runs the Emulator until it is closed."""
        async with self:
            await self.wait_closed()

    async def start(self) -> None:
        try:
            loop = asyncio.get_running_loop()
            self.handler_task = asyncio.create_task(self.handle_requests())
            self.server = await loop.create_server(
                lambda: EiscpReceiverEmulatorSession(self),
                host=self.bind_addr,
                port=self.port)
            self.port = self.server.sockets[0].getsockname()[1]
            logger.debug(f"Emulator: Listening on {self.bind_addr}:{self.port}")
            if self.discovery_port is not None:
                transport, _ = await loop.create_datagram_endpoint(
                    lambda: DiscoveryResponder(lambda: self.discovery_response),
                    local_addr=(self.bind_addr, self.discovery_port),
                  )
                self.discovery_transport = cast(asyncio.DatagramTransport, transport)
                self.discovery_port = transport.get_extra_info('sockname')[1]
                logger.debug(f"Emulator: Answering discovery on {self.bind_addr}:{self.discovery_port}")
            await self.server.start_serving()
        except BaseException as e:
            self.set_final_result(e)
            try:
                await self.wait_closed()
            except BaseException:
                pass
            raise

    def close(self, exc: Optional[BaseException]=None) -> None:
        """Stops the Emulator."""
        self.set_final_result(exc)

    async def wait_closed(self) -> None:
        """Waits for the emulator to be fully closed. Does not initiate shutdown."""
        try:
            await self.final_result
        finally:
            try:
                if self.discovery_transport is not None:
                    self.discovery_transport.close()
                    self.discovery_transport = None
                if self.server is not None:
                    try:
                        self.server.close()
                        self.drop_sessions()
                    finally:
                        await self.server.wait_closed()
            finally:
                self.server = None
                if self.handler_task is not None:
                    try:
                        await self.handler_task
                    finally:
                        self.handler_task = None

    async def close_and_wait(self, exc: Optional[BaseException]=None) -> None:
        self.close(exc)
        await self.wait_closed()

    def set_final_result(self, exc: Optional[BaseException]=None) -> None:
        if not self.final_result.done():
            if exc is None:
                logger.debug("Emulator: Setting final result to success")
                self.final_result.set_result(None)
            else:
                logger.debug(f"Emulator: Setting final exception: {exc}")
                self.final_result.set_exception(exc)
            self.requests.put_nowait(None)
            if self.server is not None:
                self.server.close()

    async def __aenter__(self) -> EiscpReceiverEmulator:
        await self.start()
        return self

    async def __aexit__(self,
            exc_type: Optional[Type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> None:
        self.set_final_result(exc)
        try:
            # ensure that final_result has been awaited
            await self.wait_closed()
        except Exception:
            pass

    def __str__(self) -> str:
        return f"EiscpReceiverEmulator({self.model} on {self.bind_addr}:{self.port})"

    def __repr__(self) -> str:
        return str(self)
