# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver simple client connection API.

Provides a simple API for connecting to a receiver given a host string or config.
"""

from __future__ import annotations

from ..internal_types import *
from ..exceptions import NetworkError
from ..pkg_logging import logger

from .client_config import EiscpClientConfig
from .client_impl import EiscpReceiverClient

async def eiscp_receiver_connect(
        host: Optional[str]=None,
        model: Optional[str]=None,
        config: Optional[EiscpClientConfig]=None
      ) -> EiscpReceiverClient:
    """Create and connect an eISCP receiver client from a configuration.

    Args:
        host: The hostname or IPV4 address of the receiver.
                may optionally be prefixed with "tcp://".
                May be suffixed with ":<port>" to specify a
                non-default port.
                May be "eiscp://" or "eiscp://<address>" to use
                eISCP discovery to find the receiver.
                If None, the host will be taken from the
                EISCP_RECEIVER_HOST environment variable, or discovered.
        model:
                The receiver model, if known.
        config: An EiscpClientConfig object that specifies
                the default host, port, model, etc. to use.
                If None, a default config will be created.

    Raises:
        NetworkError: No receiver was found, or the connection failed.
    """
    config = EiscpClientConfig(
        default_host=host,
        model=model,
        base_config=config
      )
    client = EiscpReceiverClient(config=config)
    try:
        if not await client.connect():
            raise NetworkError(f"Unable to connect to eISCP receiver ({config.default_host or 'discovery'})")
    except BaseException:
        await client.disconnect()
        raise
    logger.debug(f"Connected: {client}")
    return client
