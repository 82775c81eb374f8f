# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP receiver client.

Discovery, connection management, and command send/receive for
Onkyo/Integra/Pioneer receivers on TCP/IP.
"""

from .resolve_host import resolve_receiver_tcp_host
from .discovery import discover, DiscoveryResult
from .events import EventEmitter
from .send_queue import SendQueue, SendResult
from .simple import eiscp_receiver_connect
from .client_config import EiscpClientConfig
from .client_impl import (
    EiscpReceiverClient,
    ConnectionState,
  )
