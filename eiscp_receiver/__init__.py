# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Package eiscp_receiver provides an API and REST server for controlling
Onkyo/Integra/Pioneer AV receivers via the eISCP TCP/IP protocol.
"""

from .version import __version__

from .pkg_logging import logger

from .internal_types import Jsonable, JsonableDict

from .exceptions import (
    EiscpError,
    EiscpProtocolError,
    NetworkError,
    NotConnectedError,
    CommandResolutionError,
    ParseError,
    UnknownZoneError,
    UnknownCommandError,
    UnknownValueError,
    ValueOutOfRangeError,
    UnsupportedForModelError,
  )

from .constants import DEFAULT_PORT, DEFAULT_TIMEOUT, DEFAULT_ZONE

from .client import (
    EiscpReceiverClient,
    ConnectionState,
    resolve_receiver_tcp_host,
    discover,
    DiscoveryResult,
    SendResult,
    eiscp_receiver_connect,
    EiscpClientConfig,
  )

from .protocol import (
    Packet,
    encode_packet,
    decode_packet,
    CommandDictionary,
    CommandMeta,
    CommandResolver,
    DecodedCommand,
    DeviceContext,
    get_default_dictionary,
  )
