# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Serialized outbound message queue.

Only one raw message is written to the receiver at a time; later sends wait
for the earlier ones to complete, in the order they were issued.
"""

from __future__ import annotations

import asyncio

from ..internal_types import *
from ..exceptions import NotConnectedError
from ..constants import DEFAULT_TIMEOUT
from ..pkg_logging import logger
from ..protocol import encode_packet

from .events import EventEmitter

class SendResult:
    """Completion of a single send. result is False if the message was not sent."""
    result: bool
    msg: str
    iscp_command: str

    def __init__(self, result: bool, msg: str="", iscp_command: str=""):
        self.result = result
        self.msg = msg
        self.iscp_command = iscp_command

    def __bool__(self) -> bool:
        return self.result

    def to_jsonable(self) -> JsonableDict:
        return dict(result=self.result, msg=self.msg, iscp_command=self.iscp_command)

    def __str__(self) -> str:
        return f"SendResult({self.result}, {self.iscp_command!r}, msg={self.msg!r})"

    def __repr__(self) -> str:
        return str(self)

class SendQueue:
    """Writes raw messages to the receiver connection one at a time."""

    get_writer: Callable[[], Optional[asyncio.StreamWriter]]
    """Returns the writer of the current connection, or None if not connected."""

    on_write_error: Callable[[BaseException], Awaitable[None]]
    """Called when writing fails; the owner tears the connection down."""

    events: EventEmitter
    timeout_secs: float

    _send_lock: asyncio.Lock
    """A mutex to ensure that only one send is in progress at a time."""

    def __init__(
            self,
            get_writer: Callable[[], Optional[asyncio.StreamWriter]],
            on_write_error: Callable[[BaseException], Awaitable[None]],
            events: EventEmitter,
            timeout_secs: float=DEFAULT_TIMEOUT,
          ) -> None:
        self.get_writer = get_writer
        self.on_write_error = on_write_error
        self.events = events
        self.timeout_secs = timeout_secs
        self._send_lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        """True while a send is in progress"""
        return self._send_lock.locked()

    async def send(self, message: str) -> SendResult:
        """Encodes and writes a raw message such as "PWR01", after any earlier sends complete.

        If not connected, emits an "error" event with NotConnectedError and returns a
        failed result without queueing anything.
        """
        async with self._send_lock:
            writer = self.get_writer()
            if writer is None:
                error = NotConnectedError(f"Not connected; unable to send {message!r}")
                logger.debug(str(error))
                self.events.emit("error", error)
                return SendResult(False, str(error), iscp_command=message)
            packet = encode_packet(message)
            debug_msg = f"Sending {message!r}: {packet.hex(' ')}"
            logger.debug(debug_msg)
            self.events.emit("debug", debug_msg)
            try:
                writer.write(packet)
                await asyncio.wait_for(writer.drain(), self.timeout_secs)
            except (OSError, asyncio.TimeoutError) as e:
                await self.on_write_error(e)
                return SendResult(False, f"Write failed: {e}", iscp_command=message)
            return SendResult(True, iscp_command=message)
