# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Low-level protocol definitions for eISCP (Onkyo/Integra/Pioneer) receivers.

Packet framing, the command dictionary, and translation between high-level
commands and raw ISCP messages.
"""

from .constants import (
    PACKET_MAGIC,
    HEADER_LENGTH,
    PROTOCOL_VERSION,
    DEST_UNICAST,
    DEST_BROADCAST,
    END_OF_MESSAGE,
    RECEIVER_END_OF_MESSAGE,
    DISCOVERY_QUERY,
    DISCOVERY_RESPONSE_CODE,
    QUERY_ARGUMENT,
    COMMAND_CODE_LENGTH,
  )

from .packet import (
    Packet,
    PacketHeader,
    parse_header,
    encode_packet,
    decode_packet,
    decode_body,
  )

from .command_dictionary import (
    CommandDictionary,
    ZoneMeta,
    CommandMeta,
    ValueMeta,
    IntRange,
    get_default_dictionary,
  )

from .device_context import (
    DeviceContext,
    model_sets_for_model,
  )

from .resolver import (
    CommandResolver,
    ParsedCommand,
    DecodedCommand,
    parse_command_string,
  )
