# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by eiscp_receiver"""

DEFAULT_PORT = 60128
"""The listen port number used by the receiver for eISCP over TCP/IP, and for UDP discovery."""

DEFAULT_TIMEOUT = 5.0
"""The default timeout for TCP/IP connect and write operations, in seconds."""

DEFAULT_RECONNECT_SLEEP = 5.0
"""The delay between losing a connection and the next automatic connect attempt, in seconds."""

DEFAULT_DISCOVERY_TIMEOUT = 10.0
"""How long a discovery broadcast waits for receivers to answer, in seconds."""

TARGETED_DISCOVERY_TIMEOUT = 2.0
"""How long a discovery query sent to a single known host waits for its answer, in seconds.
   Used to learn the model of a receiver whose address is already known."""

BROADCAST_ADDRESS = "255.255.255.255"
"""The default destination address for discovery queries."""

DEFAULT_ZONE = "main"
"""The zone used when a high-level command string does not name one."""
