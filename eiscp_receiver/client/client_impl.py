# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver TCP/IP client.

Owns the connection to a single receiver: discovery, connect, automatic
reconnect, serialized sends, and decoding/dispatch of messages received
from the receiver.

Events (see on()):
    "connect"                  ()
    "close"                    (user_initiated: bool)
    "data"                     (DecodedCommand)
    "<command name or alias>"  (argument)  for each recognized received message
    "error"                    (EiscpError)
    "debug"                    (message: str)
"""

from __future__ import annotations

import asyncio
from enum import Enum

from ..internal_types import *
from ..exceptions import (
    EiscpError,
    EiscpProtocolError,
    CommandResolutionError,
    NetworkError,
  )
from ..constants import BROADCAST_ADDRESS
from ..pkg_logging import logger
from ..protocol import (
    HEADER_LENGTH,
    CommandDictionary,
    CommandResolver,
    DeviceContext,
    parse_header,
    decode_body,
  )

from .client_config import EiscpClientConfig
from .discovery import discover, DiscoveryResult
from .events import EventEmitter, Listener
from .resolve_host import resolve_receiver_tcp_host, is_discovery_host
from .send_queue import SendQueue, SendResult

class ConnectionState(Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"

class EiscpReceiverClient:
    """eISCP receiver TCP/IP client."""

    config: EiscpClientConfig
    resolver: CommandResolver
    events: EventEmitter
    state: ConnectionState = ConnectionState.IDLE

    host: Optional[str] = None
    """The resolved receiver address, once known. Reconnects go to the same address."""

    port: Optional[int] = None
    model: Optional[str] = None

    reader: Optional[asyncio.StreamReader] = None
    writer: Optional[asyncio.StreamWriter] = None

    _send_queue: SendQueue
    _reader_task: Optional[asyncio.Task[None]] = None
    _reconnect_timer: Optional[asyncio.TimerHandle] = None
    _reconnect_task: Optional[asyncio.Task[bool]] = None

    def __init__(
            self,
            host: Optional[str]=None,
            port: Optional[int]=None,
            model: Optional[str]=None,
            *,
            reconnect: Optional[bool]=None,
            reconnect_sleep_secs: Optional[float]=None,
            config: Optional[EiscpClientConfig]=None,
            dictionary: Optional[CommandDictionary]=None,
          ) -> None:
        """Creates a client. Does not connect; call connect().

              Args:
                host: The hostname or IPV4 address of the receiver.
                      may optionally be prefixed with "tcp://".
                      May be suffixed with ":<port>" to specify a
                      non-default port, which will override the port argument.
                      May be "eiscp://" or "eiscp://<address>" to use
                      eISCP discovery to find the receiver.
                      If None, the host will be taken from the config or
                      the EISCP_RECEIVER_HOST environment variable, and if
                      neither is set the first receiver to answer discovery is used.
                port: The default TCP/IP port number to use.
                model: The receiver model, if known. Used to filter commands.
                reconnect: If True, reconnect automatically when the connection is lost.
                reconnect_sleep_secs: The delay before reconnecting, in seconds.
                config: An EiscpClientConfig object that specifies
                        defaults for the above and for timeouts.
                dictionary: The command dictionary. If None, the bundled
                        dictionary is used.
        """
        self.config = EiscpClientConfig(
            default_host=host,
            default_port=port,
            model=model,
            reconnect=reconnect,
            reconnect_sleep_secs=reconnect_sleep_secs,
            base_config=config,
          )
        self.model = self.config.model
        self.resolver = CommandResolver(dictionary)
        self.events = EventEmitter()
        self._send_queue = SendQueue(
            get_writer=lambda: self.writer if self.state == ConnectionState.CONNECTED else None,
            on_write_error=self._on_write_error,
            events=self.events,
            timeout_secs=self.config.timeout_secs,
          )

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def device_context(self) -> Optional[DeviceContext]:
        """Model information of the connected receiver. None when not connected,
           or when the model is unknown (no filtering)."""
        return self.resolver.device_context

    def on(self, event: str, handler: Listener) -> Listener:
        """Adds a listener for an event. See the module docstring for event names."""
        return self.events.on(event, handler)

    def remove_listener(self, event: str, handler: Listener) -> None:
        self.events.remove_listener(event, handler)

    def _debug(self, msg: str) -> None:
        logger.debug(f"{self}: {msg}")
        self.events.emit("debug", msg)

    def _error(self, error: EiscpError) -> None:
        logger.debug(f"{self}: error: {error}")
        self.events.emit("error", error)

    def _set_state(self, state: ConnectionState) -> None:
        if state != self.state:
            logger.debug(f"{self}: {self.state.value} -> {state.value}")
            self.state = state

    def _set_device_context(self) -> None:
        if self.model is None:
            self.resolver.device_context = None
        else:
            context = self.resolver.device_context
            if context is None or context.model != self.model:
                context = DeviceContext.for_model(self.model, self.resolver.dictionary)
            self.resolver.device_context = context
            self._debug(f"Receiver model {self.model} belongs to model sets {sorted(context.model_sets)}")

    async def discover(
            self,
            devices: int=1,
            timeout_secs: Optional[float]=None,
            address: str=BROADCAST_ADDRESS,
            port: Optional[int]=None,
          ) -> List[DiscoveryResult]:
        """Finds receivers on the local network. Socket errors are emitted as "error"
           events; the (possibly empty) list of receivers found is always returned."""
        results = await discover(
            devices=devices,
            timeout_secs=self.config.discovery_timeout_secs if timeout_secs is None else timeout_secs,
            address=address,
            port=self.config.discovery_port if port is None else port,
            on_error=self._error,
          )
        self._debug(f"Discovery found {len(results)} receiver(s): {results}")
        return results

    async def connect(
            self,
            host: Optional[str]=None,
            port: Optional[int]=None,
            model: Optional[str]=None,
            reconnect: Optional[bool]=None,
            reconnect_sleep_secs: Optional[float]=None,
          ) -> bool:
        """Connects to the receiver. Returns True if connected.

        Arguments override the configuration for this and later connects. If no
        host is configured, the first receiver to answer discovery is used; if
        none answers, the client stays idle and False is returned. A failed
        connect attempt emits an "error" event and, if reconnect is enabled,
        schedules another attempt.
        """
        self._cancel_reconnect_timer()
        if self.state in (ConnectionState.DISCOVERING, ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            self._debug(f"connect() ignored; already {self.state.value}")
            return self.is_connected

        if host is not None and host != '':
            self.config.default_host = host
            self.host = None
        if port is not None and port > 0:
            self.config.default_port = port
            self.port = None
        if model is not None and model != '':
            self.config.model = model
            self.model = model
        if reconnect is not None:
            self.config.reconnect = reconnect
        if reconnect_sleep_secs is not None:
            self.config.reconnect_sleep_secs = reconnect_sleep_secs

        return await self._connect()

    async def _connect(self) -> bool:
        if self.host is None:
            if is_discovery_host(self.config.default_host):
                self._set_state(ConnectionState.DISCOVERING)
            else:
                self._set_state(ConnectionState.CONNECTING)
            try:
                host, port, model, discovery_result = await resolve_receiver_tcp_host(
                    self.config.default_host,
                    self.config.default_port,
                    self.model,
                    resolve_model=self.config.resolve_model,
                    discovery_timeout_secs=self.config.discovery_timeout_secs,
                    discovery_port=self.config.discovery_port,
                    on_error=self._error,
                  )
            except EiscpError as e:
                self._error(e)
                self._set_state(ConnectionState.IDLE)
                return False
            if host is None:
                self._debug("No receiver found")
                self._set_state(ConnectionState.IDLE)
                return False
            if discovery_result is not None:
                self._debug(f"Discovered {discovery_result}")
            self.host = host
            self.port = port
            self.model = model

        assert self.host is not None and self.port is not None
        self._set_state(ConnectionState.CONNECTING)
        self._set_device_context()
        self._debug(f"Connecting to {self.host}:{self.port}")
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                self.config.timeout_secs
              )
        except (OSError, asyncio.TimeoutError) as e:
            error = NetworkError(f"Unable to connect to {self.host}:{self.port}: {e!r}")
            error.__cause__ = e
            self._error(error)
            self.resolver.device_context = None
            self._set_state(ConnectionState.DISCONNECTED)
            self._schedule_reconnect()
            return False

        self.reader = reader
        self.writer = writer
        self._set_state(ConnectionState.CONNECTED)
        self._debug(f"Connected to {self.host}:{self.port}")
        self._reader_task = asyncio.create_task(self._read_messages(reader))
        self.events.emit("connect")
        return True

    async def _read_messages(self, reader: asyncio.StreamReader) -> None:
        """Reads frames until the connection closes, dispatching each message in arrival order"""
        error: Optional[EiscpError] = None
        try:
            while True:
                header = parse_header(await reader.readexactly(HEADER_LENGTH))
                body = await reader.readexactly(header.payload_length)
                self._dispatch_message(decode_body(body))
        except asyncio.IncompleteReadError as e:
            if len(e.partial) > 0:
                error = NetworkError(f"Connection closed by receiver with partial packet: {e.partial.hex(' ')}")
        except EiscpProtocolError as e:
            error = e
        except OSError as e:
            error = NetworkError(f"Error reading from {self.host}:{self.port}: {e!r}")
            error.__cause__ = e
        await self._on_connection_lost(error)

    def _dispatch_message(self, message: str) -> None:
        result = self.resolver.decode_message(message)
        self._debug(f"Received {result}")
        self.events.emit("data", result)
        for name in result.names:
            self.events.emit(name, result.argument)

    async def _on_write_error(self, exc: BaseException) -> None:
        error = NetworkError(f"Error writing to {self.host}:{self.port}: {exc!r}")
        error.__cause__ = exc
        self._error(error)
        # The read loop sees the close and runs the normal connection-lost path
        await self._close_writer()

    async def _on_connection_lost(self, error: Optional[EiscpError]) -> None:
        self._reader_task = None
        if error is not None:
            logger.warning(f"{self}: {error}")
            self._error(error)
        await self._close_writer()
        if self.state != ConnectionState.CONNECTED:
            # disconnect() ran while the writer was closing; it owns the teardown
            return
        self.resolver.device_context = None
        self._set_state(ConnectionState.DISCONNECTED)
        self._debug(f"Disconnected from {self.host}:{self.port}")
        self.events.emit("close", False)
        self._schedule_reconnect()

    async def _close_writer(self) -> None:
        writer = self.writer
        self.writer = None
        self.reader = None
        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except Exception:
            logger.debug("Exception while closing writer", exc_info=True)

    def _schedule_reconnect(self) -> None:
        if not self.config.reconnect:
            return
        self._cancel_reconnect_timer()
        self._debug(f"Reconnecting in {self.config.reconnect_sleep_secs} seconds")
        self._reconnect_timer = asyncio.get_running_loop().call_later(
            self.config.reconnect_sleep_secs,
            self._on_reconnect_timer,
          )

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _on_reconnect_timer(self) -> None:
        self._reconnect_timer = None
        if self.state in (ConnectionState.DISCONNECTED, ConnectionState.IDLE):
            self._reconnect_task = asyncio.ensure_future(self._connect())

    async def disconnect(self) -> None:
        """Closes the connection. No automatic reconnect follows. Emits "close" with
           user_initiated=True if a connection was open."""
        self._cancel_reconnect_timer()
        reconnect_task = self._reconnect_task
        self._reconnect_task = None
        if reconnect_task is not None and not reconnect_task.done():
            reconnect_task.cancel()
            try:
                await reconnect_task
            except asyncio.CancelledError:
                pass

        was_connected = self.state == ConnectionState.CONNECTED
        reader_task = self._reader_task
        self._reader_task = None
        if reader_task is not None and not reader_task.done():
            reader_task.cancel()
            try:
                await reader_task
            except asyncio.CancelledError:
                pass
        await self._close_writer()
        self.resolver.device_context = None
        self._set_state(ConnectionState.IDLE)
        if was_connected:
            self._debug(f"Disconnected from {self.host}:{self.port}")
            self.events.emit("close", True)

    async def raw(self, message: str) -> SendResult:
        """Sends a raw ISCP message such as "PWR01".

        The result only says whether the message was written, not whether the
        receiver acted on it. Not connected: emits "error" and returns a failed
        result; nothing is queued.
        """
        return await self._send_queue.send(message)

    async def command(self, command: str) -> SendResult:
        """Sends a high-level command such as "system-power=on" or "zone2.volume=22".

        Raises (after emitting an "error" event) a CommandResolutionError subclass if
        the command cannot be resolved; nothing is sent in that case.
        """
        try:
            message = self.resolver.encode_command(command)
        except CommandResolutionError as e:
            self._error(e)
            raise
        return await self.raw(message)

    def get_commands(self, zone: str) -> List[str]:
        """Returns all command names and aliases in a zone"""
        return self.resolver.command_names(zone)

    def get_command(self, command: str) -> List[str]:
        """Returns the value names accepted by "zone.command" (or "command" in the main
           zone) for the connected model, followed by "lo,hi" integer ranges."""
        return self.resolver.value_names(command)

    async def __aenter__(self) -> EiscpReceiverClient:
        logger.debug(f"{self}: Entering async context manager")
        return self

    async def __aexit__(
            self,
            exc_type: Optional[Type[BaseException]],
            exc_val: Optional[BaseException],
            exc_tb: Optional[TracebackType]
          ) -> None:
        logger.debug(f"{self}: Exiting async context manager, exc={exc_val}")
        await self.disconnect()

    @classmethod
    async def create(
            cls,
            host: Optional[str]=None,
            port: Optional[int]=None,
            model: Optional[str]=None,
            *,
            config: Optional[EiscpClientConfig]=None,
            dictionary: Optional[CommandDictionary]=None,
          ) -> Self:
        """Creates a client and connects it. Raises NetworkError if the connection fails."""
        self = cls(host, port, model, config=config, dictionary=dictionary)
        if not await self.connect():
            await self.disconnect()
            raise NetworkError(f"Unable to connect to receiver ({self.config.default_host or 'discovery'})")
        return self

    def __str__(self) -> str:
        target = self.config.default_host if self.host is None else f"{self.host}:{self.port}"
        return f"EiscpReceiverClient({target})"

    def __repr__(self) -> str:
        return str(self)

