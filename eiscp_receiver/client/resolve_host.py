# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver host IP/Port resolver.

Provides a method that can resolve various host strings, environment variables,
eISCP discovery, etc. into a receiver IP address, port and model.
"""

from __future__ import annotations

import os

from ..internal_types import *
from ..exceptions import EiscpError
from ..constants import (
    DEFAULT_PORT,
    DEFAULT_DISCOVERY_TIMEOUT,
    TARGETED_DISCOVERY_TIMEOUT,
    BROADCAST_ADDRESS,
  )
from ..pkg_logging import logger

from .discovery import discover, DiscoveryResult, ErrorCallback

DISCOVERY_HOST_PREFIX = "eiscp://"
TCP_HOST_PREFIX = "tcp://"

def default_host_from_env(host: Optional[str]=None) -> str:
    """Returns host, or EISCP_RECEIVER_HOST, or "eiscp://" (discover any receiver)"""
    if host is None or host == '':
        host = os.environ.get('EISCP_RECEIVER_HOST')
        if host is None or host == '':
            host = DISCOVERY_HOST_PREFIX
    return host

def is_discovery_host(host: Optional[str]) -> bool:
    """True if resolving the host string requires a discovery broadcast"""
    return default_host_from_env(host).startswith(DISCOVERY_HOST_PREFIX)

def split_host_port(host: str, default_port: int) -> Tuple[str, int]:
    """Splits "[tcp://]host[:port]" into a host and port"""
    if host.startswith(TCP_HOST_PREFIX):
        host = host[len(TCP_HOST_PREFIX):]
    if '://' in host:
        raise EiscpError(f"Unsupported protocol in host specifier: {host}")
    port = default_port
    if ':' in host:
        host, port_str = host.rsplit(':', 1)
        try:
            port = int(port_str)
        except ValueError as e:
            raise EiscpError(f"Invalid port in host specifier: {host}:{port_str}") from e
    if host == '':
        raise EiscpError("Empty host specifier")
    return host, port

async def resolve_receiver_tcp_host(
        host: Optional[str]=None,
        default_port: Optional[int]=None,
        model: Optional[str]=None,
        *,
        resolve_model: bool=True,
        discovery_timeout_secs: float=DEFAULT_DISCOVERY_TIMEOUT,
        discovery_port: int=DEFAULT_PORT,
        on_error: Optional[ErrorCallback]=None,
      ) -> Tuple[Optional[str], int, Optional[str], Optional[DiscoveryResult]]:
    """Resolves a receiver host string into a hostname, port and model.

        Args:
            host: The hostname or IPV4 address of the receiver.
                    may optionally be prefixed with "tcp://".
                    May be suffixed with ":<port>" to specify a
                    non-default port, which will override the default_port argument.
                    May be "eiscp://" or "eiscp://<address>" to use
                    eISCP discovery to find the receiver.
                    If None, the host will be taken from the
                    EISCP_RECEIVER_HOST environment variable.
            default_port: The default TCP/IP port number to use. If None, the port
                    will be taken from EISCP_RECEIVER_PORT. If that
                    environment variable is not found, the default eISCP
                    port (60128) will be used.
            model:  The receiver model, if already known.
            resolve_model:
                    If True, model is None and the host is explicit, a discovery
                    query is sent to the host to learn its model.
            discovery_timeout_secs:
                    How long a discovery broadcast waits for an answer.
            discovery_port:
                    The UDP port discovery queries are sent to.
            on_error:
                    Called with discovery socket errors.

        Returns:
            A tuple of (hostname: Optional[str], port: int, model: Optional[str],
                        discovery_result: Optional[DiscoveryResult]) where:
                hostname: The resolved host, or None if discovery found no receiver.
                port:     The resolved port number.
                model:    The receiver model, or None if unknown.
                discovery_result:
                          The discovery answer, if discovery was used. None otherwise.
    """
    host = default_host_from_env(host)

    if default_port is None or default_port <= 0:
        default_port_str = os.environ.get('EISCP_RECEIVER_PORT')
        if default_port_str is None or default_port_str == '':
            default_port = DEFAULT_PORT
        else:
            default_port = int(default_port_str)

    discovery_result: Optional[DiscoveryResult] = None

    if host.startswith(DISCOVERY_HOST_PREFIX):
        address = host[len(DISCOVERY_HOST_PREFIX):]
        if address == '':
            address = BROADCAST_ADDRESS
        results = await discover(
            devices=1,
            timeout_secs=discovery_timeout_secs,
            address=address,
            port=discovery_port,
            on_error=on_error,
          )
        if len(results) == 0:
            logger.debug(f"Discovery at {address}:{discovery_port} found no receivers")
            return (None, default_port, model, None)
        discovery_result = results[0]
        return (
            discovery_result.host,
            discovery_result.port,
            discovery_result.model if model is None else model,
            discovery_result,
          )

    result_host, port = split_host_port(host, default_port)

    if model is None and resolve_model:
        results = await discover(
            devices=1,
            timeout_secs=min(TARGETED_DISCOVERY_TIMEOUT, discovery_timeout_secs),
            address=result_host,
            port=discovery_port,
            on_error=on_error,
          )
        if len(results) > 0:
            discovery_result = results[0]
            model = discovery_result.model
            logger.debug(f"Resolved model of receiver at {result_host}: {model}")
        else:
            logger.debug(f"Unable to learn model of receiver at {result_host}; commands will not be filtered by model")

    return (result_host, port, model, discovery_result)
