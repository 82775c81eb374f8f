# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver client configuration.

Provides a general config object for EiscpReceiverClient.
"""

from __future__ import annotations

import os

from ..internal_types import *
from ..exceptions import EiscpError
from ..constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_PORT,
    DEFAULT_RECONNECT_SLEEP,
    DEFAULT_DISCOVERY_TIMEOUT,
  )

class EiscpClientConfig:
    """eISCP receiver client configuration."""
    default_host: Optional[str]
    default_port: int
    model: Optional[str]
    timeout_secs: float
    reconnect: bool
    reconnect_sleep_secs: float
    discovery_timeout_secs: float
    discovery_port: int
    resolve_model: bool

    def __init__(
            self,
            default_host: Optional[str]=None,
            *,
            default_port: Optional[int]=None,
            model: Optional[str]=None,
            timeout_secs: Optional[float]=None,
            reconnect: Optional[bool]=None,
            reconnect_sleep_secs: Optional[float]=None,
            discovery_timeout_secs: Optional[float]=None,
            discovery_port: Optional[int]=None,
            resolve_model: Optional[bool]=None,
            base_config: Optional[EiscpClientConfig]=None
          ) -> None:
        """Creates a configuration for an eISCP receiver client.

           Args:
             default_host: The default hostname or IPV4 address of the receiver.
                   may optionally be prefixed with "tcp://".
                   May be suffixed with ":<port>" to specify a
                   non-default port, which will override the default_port argument.
                   May be "eiscp://" or "eiscp://<address>" to use
                   eISCP UDP discovery to find the receiver.
                   If None, the default host will be taken from the
                     EISCP_RECEIVER_HOST environment variable.
             default_port: The default TCP/IP port number to use.
                    If None, the default port will be taken from EISCP_RECEIVER_PORT.
                    If that environment variable is not found, the default eISCP
                    port (60128) will be used.
             model:
                   The receiver model (e.g., "TX-NR609"). Used to filter commands
                   to the ones the model supports. If None, the model will be taken
                   from the EISCP_RECEIVER_MODEL environment variable, or learned
                   through discovery.
             timeout_secs:
                   The timeout for connecting and for writing, in seconds.
             reconnect:
                   If True, the client reconnects automatically after the
                   connection is lost. Default is False.
             reconnect_sleep_secs:
                   The delay before an automatic reconnect attempt, in seconds.
             discovery_timeout_secs:
                   How long discovery waits for receivers to answer, in seconds.
             discovery_port:
                   The UDP port discovery queries are sent to.
             resolve_model:
                   If True and the model is not known when connecting to an
                   explicit host, a discovery query is sent to that host to learn
                   its model. Default is True.
             base_config:
                     An optional base configuration to use.
        """
        if base_config is None:
            self.init_from_defaults()
        else:
            self.init_from_base_config(base_config)

        if default_host is not None and default_host != '':
            self.default_host = default_host

        if default_port is not None and default_port > 0:
            self.default_port = default_port

        if model is not None and model != '':
            self.model = model

        if timeout_secs is not None:
            self.timeout_secs = timeout_secs

        if reconnect is not None:
            self.reconnect = reconnect

        if reconnect_sleep_secs is not None:
            if reconnect_sleep_secs < 0:
                raise EiscpError(f"Invalid reconnect sleep: {reconnect_sleep_secs}")
            self.reconnect_sleep_secs = reconnect_sleep_secs

        if discovery_timeout_secs is not None:
            self.discovery_timeout_secs = discovery_timeout_secs

        if discovery_port is not None and discovery_port > 0:
            self.discovery_port = discovery_port

        if resolve_model is not None:
            self.resolve_model = resolve_model

    def init_from_defaults(self) -> None:
        """Initializes the configuration from defaults."""
        default_host: Optional[str] = os.environ.get('EISCP_RECEIVER_HOST')
        if default_host == '':
            default_host = None
        self.default_host = default_host
        default_port_str = os.environ.get('EISCP_RECEIVER_PORT')
        if default_port_str is None or default_port_str == '':
            self.default_port = DEFAULT_PORT
        else:
            self.default_port = int(default_port_str)
        model = os.environ.get('EISCP_RECEIVER_MODEL')
        self.model = None if model == '' else model
        self.timeout_secs = DEFAULT_TIMEOUT
        self.reconnect = False
        self.reconnect_sleep_secs = DEFAULT_RECONNECT_SLEEP
        self.discovery_timeout_secs = DEFAULT_DISCOVERY_TIMEOUT
        self.discovery_port = DEFAULT_PORT
        self.resolve_model = True

    def init_from_base_config(self, base_config: EiscpClientConfig) -> None:
        """Initializes the configuration from a base configuration."""
        self.default_host = base_config.default_host
        self.default_port = base_config.default_port
        self.model = base_config.model
        self.timeout_secs = base_config.timeout_secs
        self.reconnect = base_config.reconnect
        self.reconnect_sleep_secs = base_config.reconnect_sleep_secs
        self.discovery_timeout_secs = base_config.discovery_timeout_secs
        self.discovery_port = base_config.discovery_port
        self.resolve_model = base_config.resolve_model

    @classmethod
    def from_jsonable(cls, data: JsonableDict, base_config: Optional[EiscpClientConfig]=None) -> Self:
        """Creates a configuration from a JSON-compatible dict. Missing keys
           fall back to base_config, or to the defaults."""
        def _get(key: str) -> Any:
            return data.get(key)
        return cls(
            default_host=_get('default_host'),
            default_port=_get('default_port'),
            model=_get('model'),
            timeout_secs=_get('timeout_secs'),
            reconnect=_get('reconnect'),
            reconnect_sleep_secs=_get('reconnect_sleep_secs'),
            discovery_timeout_secs=_get('discovery_timeout_secs'),
            discovery_port=_get('discovery_port'),
            resolve_model=_get('resolve_model'),
            base_config=base_config,
          )

    def to_jsonable(self) -> JsonableDict:
        return dict(
            default_host=self.default_host,
            default_port=self.default_port,
            model=self.model,
            timeout_secs=self.timeout_secs,
            reconnect=self.reconnect,
            reconnect_sleep_secs=self.reconnect_sleep_secs,
            discovery_timeout_secs=self.discovery_timeout_secs,
            discovery_port=self.discovery_port,
            resolve_model=self.resolve_model,
          )

    def __str__(self) -> str:
        return (
            f"EiscpClientConfig("
            f"default_host={self.default_host}, "
            f"default_port={self.default_port}, "
            f"model={self.model!r}, "
            f"reconnect={self.reconnect})"
          )

    def __repr__(self) -> str:
        return str(self)
