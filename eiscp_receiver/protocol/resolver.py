# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Translation between high-level commands and raw ISCP messages.

High-level commands are strings in one of these forms (case-insensitive):

    "[zone.]command=arg[,arg...]"      e.g. "main.system-power=on", "volume:22"
    "[zone ]command[ ]arg"             e.g. "zone2 power on", "system-power.query"

The default zone is "main". A raw ISCP message is the 3-character command
code followed by the raw value, e.g. "PWR01".
"""

from __future__ import annotations

import re

from ..internal_types import *
from ..constants import DEFAULT_ZONE
from ..exceptions import (
    ParseError,
    UnknownZoneError,
    UnknownCommandError,
    UnknownValueError,
    ValueOutOfRangeError,
    UnsupportedForModelError,
  )
from .constants import COMMAND_CODE_LENGTH
from .command_dictionary import CommandDictionary, CommandMeta, ZoneMeta, get_default_dictionary
from .device_context import DeviceContext

_ARGUMENT_SEPARATOR_RE = re.compile(r'[:=]')
_PART_SPLIT_RE = re.compile(r'[. ]')
_ARGUMENT_SPLIT_RE = re.compile(r'[, ]')
_DECIMAL_RE = re.compile(r'[0-9]+')
_HEX_RE = re.compile(r'[0-9a-fA-F]+')

def _normalize(tokens: Iterable[str]) -> List[str]:
    return [t.strip().lower() for t in tokens if t.strip() != '']

class ParsedCommand:
    """A high-level command string split into its parts"""
    zone: str
    command: str
    arguments: Tuple[str, ...]

    def __init__(self, zone: str, command: str, arguments: Iterable[str]):
        self.zone = zone
        self.command = command
        self.arguments = tuple(arguments)

    @property
    def argument(self) -> str:
        """The argument lookup key; multiple arguments are joined with ','"""
        return ",".join(self.arguments)

    def __str__(self) -> str:
        return f"ParsedCommand({self.zone}.{self.command}={self.argument})"

    def __repr__(self) -> str:
        return str(self)

def parse_command_string(text: str, default_zone: str=DEFAULT_ZONE) -> ParsedCommand:
    """Splits a high-level command string into zone, command and argument(s).

    Raises ParseError if the string cannot be decomposed.
    """
    match = _ARGUMENT_SEPARATOR_RE.search(text)
    if match is not None:
        parts = _normalize(_PART_SPLIT_RE.split(text[:match.start()]))
        arguments = _normalize(_ARGUMENT_SPLIT_RE.split(text[match.end():]))
        if len(parts) == 1:
            zone, command = default_zone, parts[0]
        elif len(parts) == 2:
            zone, command = parts
        else:
            raise ParseError(f"Cannot parse zone and command from {text!r}")
        if len(arguments) == 0:
            raise ParseError(f"Missing argument in {text!r}")
        return ParsedCommand(zone, command, arguments)

    parts = _normalize(_PART_SPLIT_RE.split(text))
    if len(parts) >= 3:
        return ParsedCommand(parts[0], parts[1], parts[2:])
    if len(parts) == 2:
        return ParsedCommand(default_zone, parts[0], parts[1:])
    raise ParseError(f"Need at least a command and an argument: {text!r}")

class DecodedCommand:
    """A raw ISCP message received from a receiver, and its high-level meaning.

    If the command code or value is not in the dictionary, names is empty
    and argument is None; only the raw message is available.
    """
    iscp_command: str
    """The raw message, e.g. "PWR01"."""

    code: str
    zone: Optional[str]

    names: Tuple[str, ...]
    """The command name and its aliases; empty if not recognized."""

    argument: Union[str, int, None]
    """The primary value name, or the integer for range values."""

    argument_aliases: Tuple[str, ...]

    def __init__(
            self,
            iscp_command: str,
            command_meta: Optional[CommandMeta]=None,
            argument: Union[str, int, None]=None,
            argument_aliases: Tuple[str, ...]=(),
          ):
        self.iscp_command = iscp_command
        self.code = iscp_command[:COMMAND_CODE_LENGTH]
        self.zone = None if command_meta is None else command_meta.zone
        self.names = () if command_meta is None else command_meta.names
        self.argument = argument
        self.argument_aliases = argument_aliases

    @property
    def command(self) -> Optional[str]:
        """The primary command name, or None if not recognized"""
        return self.names[0] if len(self.names) > 0 else None

    @property
    def is_recognized(self) -> bool:
        return len(self.names) > 0

    @property
    def raw_value(self) -> str:
        return self.iscp_command[COMMAND_CODE_LENGTH:]

    def __str__(self) -> str:
        if not self.is_recognized:
            return f"DecodedCommand({self.iscp_command!r})"
        return f"DecodedCommand({self.iscp_command!r}: {self.zone}.{self.command}={self.argument!r})"

    def __repr__(self) -> str:
        return str(self)

class CommandResolver:
    """Translates between high-level command strings and raw ISCP messages.

    When device_context is None, every value and range is accepted (no model
    filtering).
    """
    dictionary: CommandDictionary
    device_context: Optional[DeviceContext]
    default_zone: str

    def __init__(
            self,
            dictionary: Optional[CommandDictionary]=None,
            device_context: Optional[DeviceContext]=None,
            default_zone: str=DEFAULT_ZONE,
          ):
        self.dictionary = get_default_dictionary() if dictionary is None else dictionary
        self.device_context = device_context
        self.default_zone = default_zone

    def allows(self, models: Optional[str]) -> bool:
        return self.device_context is None or self.device_context.allows(models)

    def get_zone(self, zone: str) -> ZoneMeta:
        result = self.dictionary.zone(zone.lower())
        if result is None:
            raise UnknownZoneError(f"Zone {zone!r} does not exist")
        return result

    def get_command_meta(self, zone: str, command: str) -> CommandMeta:
        result = self.get_zone(zone).command_by_name(command)
        if result is None:
            raise UnknownCommandError(f"Command {command!r} does not exist in zone {zone!r}")
        return result

    def resolve_value(self, command_meta: CommandMeta, argument: str) -> str:
        """Returns the raw value string for an argument of a command"""
        value_meta = command_meta.value_by_name(argument)
        if value_meta is not None:
            if not self.allows(value_meta.models):
                raise UnsupportedForModelError(
                    f"Argument {argument!r} of command {command_meta.name!r} is not supported by {self.device_context}")
            return value_meta.raw_value

        if len(command_meta.ranges) > 0 and _DECIMAL_RE.fullmatch(argument):
            number = int(argument)
            for int_range in command_meta.ranges:
                if self.allows(int_range.models) and number in int_range:
                    # Receivers only understand hexadecimal
                    return f"{number:02X}"
            if any(number in int_range for int_range in command_meta.ranges):
                raise UnsupportedForModelError(
                    f"Argument {number} of command {command_meta.name!r} is not supported by {self.device_context}")
            raise ValueOutOfRangeError(
                f"Argument {number} is out of range for command {command_meta.name!r}")

        raise UnknownValueError(f"Argument {argument!r} does not exist for command {command_meta.name!r}")

    def encode_parts(self, zone: str, command: str, argument: str) -> str:
        """Resolves already-parsed parts to a raw ISCP message"""
        command_meta = self.get_command_meta(zone, command)
        return command_meta.code + self.resolve_value(command_meta, argument.strip().lower())

    def encode_command(self, text: str) -> str:
        """Translates a high-level command string such as "system-power=on" into a
           raw ISCP message such as "PWR01".

        Raises a CommandResolutionError subclass if the command cannot be resolved.
        """
        parsed = parse_command_string(text, default_zone=self.default_zone)
        return self.encode_parts(parsed.zone, parsed.command, parsed.argument)

    def decode_message(self, message: str) -> DecodedCommand:
        """Translates a raw ISCP message received from a receiver into a DecodedCommand.

        Never raises for unknown codes or values; the result is simply not recognized.
        """
        code = message[:COMMAND_CODE_LENGTH]
        raw_value = message[COMMAND_CODE_LENGTH:]
        command_meta = self.dictionary.command_by_code(code)
        if command_meta is None:
            return DecodedCommand(message)
        value_meta = command_meta.value_by_raw(raw_value)
        if value_meta is not None:
            return DecodedCommand(
                message,
                command_meta,
                argument=value_meta.name,
                argument_aliases=value_meta.names,
              )
        if len(command_meta.ranges) > 0 and _HEX_RE.fullmatch(raw_value):
            return DecodedCommand(message, command_meta, argument=int(raw_value, 16))
        return DecodedCommand(message)

    def command_names(self, zone: str) -> List[str]:
        """Returns all command names and aliases in a zone"""
        return self.get_zone(zone).command_names

    def value_names(self, command: str) -> List[str]:
        """Returns the value names (and "lo,hi" range descriptors) accepted by a command
           for the current device. command is "zone.command" or just "command" in the
           default zone."""
        parts = _normalize(command.split('.'))
        if len(parts) == 2:
            zone, name = parts
        elif len(parts) == 1:
            zone, name = self.default_zone, parts[0]
        else:
            raise ParseError(f"Expected [zone.]command: {command!r}")
        command_meta = self.get_command_meta(zone, name)
        result: List[str] = []
        for value_meta in command_meta.values:
            if self.allows(value_meta.models):
                result.extend(value_meta.names)
        for int_range in command_meta.ranges:
            if self.allows(int_range.models):
                result.append(str(int_range))
        return result

    def __str__(self) -> str:
        return f"CommandResolver({self.device_context})"

    def __repr__(self) -> str:
        return str(self)
