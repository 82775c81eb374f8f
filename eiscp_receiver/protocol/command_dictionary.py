# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
eISCP command dictionary.

Structured, read-only metadata about the commands a receiver understands:
zone -> 3-character command code -> names, named values and integer ranges,
plus the named model sets that say which receivers support which values.

There is no protocol implementation here; only metadata about the protocol.
The bundled dictionary lives in data/eiscp_commands.json and has the shape:

    {
      "modelsets": { "<set-name>": [ "<model-substring>", ... ], ... },
      "zones": {
        "<zone>": {
          "<CODE>": {
            "name": "<name>" | [ "<name>", "<alias>", ... ],
            "description": "...",
            "values": {
              "<RAW>": { "name": "<name>" | [ ... ], "description": "...", "models": "<set-name>" },
              ...
            },
            "ranges": [ { "lo": 0, "hi": 100, "models": "<set-name>", "description": "..." }, ... ]
          },
          ...
        },
        ...
      }
    }
"""

from __future__ import annotations

import json
from importlib import resources

from ..internal_types import *
from ..exceptions import EiscpError

def _names(value: Union[str, List[str], None], what: str) -> Tuple[str, ...]:
    if value is None:
        raise EiscpError(f"Missing name for {what}")
    if isinstance(value, str):
        value = [value]
    result = tuple(str(x).strip().lower() for x in value)
    if len(result) == 0 or '' in result:
        raise EiscpError(f"Empty name for {what}")
    return result

class ValueMeta:
    """Metadata for a single named value of a command"""
    raw_value: str
    """The value string sent on the wire after the command code, e.g., "01" or "QSTN"."""

    names: Tuple[str, ...]
    """Lower-case names of the value; the first is the primary name."""

    description: Optional[str]

    models: Optional[str]
    """Name of the model set that supports this value. None if all models support it."""

    def __init__(
            self,
            raw_value: str,
            names: Tuple[str, ...],
            description: Optional[str]=None,
            models: Optional[str]=None,
          ):
        self.raw_value = raw_value
        self.names = names
        self.description = description
        self.models = models

    @property
    def name(self) -> str:
        return self.names[0]

    def __str__(self) -> str:
        return f"ValueMeta({self.raw_value!r}: {'|'.join(self.names)})"

    def __repr__(self) -> str:
        return str(self)

class IntRange:
    """A closed integer interval of values accepted by a command, sent as uppercase hex"""
    lo: int
    hi: int
    models: Optional[str]
    description: Optional[str]

    def __init__(self, lo: int, hi: int, models: Optional[str]=None, description: Optional[str]=None):
        if lo > hi:
            raise EiscpError(f"Invalid integer range [{lo}, {hi}]")
        self.lo = lo
        self.hi = hi
        self.models = models
        self.description = description

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.lo <= value <= self.hi

    def __str__(self) -> str:
        return f"{self.lo},{self.hi}"

    def __repr__(self) -> str:
        return f"IntRange([{self.lo}, {self.hi}], models={self.models!r})"

class CommandMeta:
    """Metadata for a single command in a zone"""
    zone: str
    code: str
    names: Tuple[str, ...]
    description: Optional[str]
    values: Tuple[ValueMeta, ...]
    ranges: Tuple[IntRange, ...]

    _values_by_name: Dict[str, ValueMeta]
    _values_by_raw: Dict[str, ValueMeta]

    def __init__(
            self,
            zone: str,
            code: str,
            names: Tuple[str, ...],
            description: Optional[str]=None,
            values: Optional[Iterable[ValueMeta]]=None,
            ranges: Optional[Iterable[IntRange]]=None,
          ):
        self.zone = zone
        self.code = code
        self.names = names
        self.description = description
        self.values = tuple(values or ())
        self.ranges = tuple(ranges or ())
        self._values_by_name = {}
        self._values_by_raw = {}
        for value in self.values:
            if value.raw_value in self._values_by_raw:
                raise EiscpError(f"Duplicate value {value.raw_value!r} for command {zone}.{code}")
            self._values_by_raw[value.raw_value] = value
            for name in value.names:
                if name in self._values_by_name:
                    raise EiscpError(f"Duplicate value name {name!r} for command {zone}.{code}")
                self._values_by_name[name] = value

    @property
    def name(self) -> str:
        return self.names[0]

    def value_by_name(self, name: str) -> Optional[ValueMeta]:
        """Returns the value with the given (lower-case) name or alias, or None"""
        return self._values_by_name.get(name)

    def value_by_raw(self, raw_value: str) -> Optional[ValueMeta]:
        """Returns the value with the given raw wire string, or None"""
        return self._values_by_raw.get(raw_value)

    @classmethod
    def from_jsonable(cls, zone: str, code: str, data: JsonableDict) -> Self:
        if len(code) != 3:
            raise EiscpError(f"Command code must be 3 characters: {zone}.{code}")
        names = _names(data.get('name'), f"command {zone}.{code}")  # type: ignore[arg-type]
        values: List[ValueMeta] = []
        raw_values = data.get('values') or {}
        assert isinstance(raw_values, dict)
        for raw_value, value_data in raw_values.items():
            assert isinstance(value_data, dict)
            values.append(ValueMeta(
                raw_value,
                _names(value_data.get('name'), f"value {zone}.{code}{raw_value}"),  # type: ignore[arg-type]
                description=value_data.get('description'),  # type: ignore[arg-type]
                models=value_data.get('models'),  # type: ignore[arg-type]
              ))
        ranges: List[IntRange] = []
        raw_ranges = data.get('ranges') or []
        assert isinstance(raw_ranges, list)
        for range_data in raw_ranges:
            assert isinstance(range_data, dict)
            ranges.append(IntRange(
                int(range_data['lo']),  # type: ignore[arg-type]
                int(range_data['hi']),  # type: ignore[arg-type]
                models=range_data.get('models'),  # type: ignore[arg-type]
                description=range_data.get('description'),  # type: ignore[arg-type]
              ))
        return cls(
            zone,
            code,
            names,
            description=data.get('description'),  # type: ignore[arg-type]
            values=values,
            ranges=ranges,
          )

    def __str__(self) -> str:
        return f"CommandMeta({self.zone}.{self.code}: {'|'.join(self.names)})"

    def __repr__(self) -> str:
        return str(self)

class ZoneMeta:
    """The commands of a single zone, indexed by code and by (lower-case) name or alias"""
    name: str
    commands: Dict[str, CommandMeta]
    _commands_by_name: Dict[str, CommandMeta]

    def __init__(self, name: str, commands: Iterable[CommandMeta]):
        self.name = name
        self.commands = {}
        self._commands_by_name = {}
        for command in commands:
            if command.code in self.commands:
                raise EiscpError(f"Duplicate command code {command.code} in zone {name}")
            self.commands[command.code] = command
            for alias in command.names:
                if alias in self._commands_by_name:
                    raise EiscpError(f"Duplicate command name {alias!r} in zone {name}")
                self._commands_by_name[alias] = command

    def command_by_name(self, name: str) -> Optional[CommandMeta]:
        return self._commands_by_name.get(name.lower())

    def command_by_code(self, code: str) -> Optional[CommandMeta]:
        return self.commands.get(code)

    @property
    def command_names(self) -> List[str]:
        """All command names and aliases in the zone, in dictionary order"""
        return list(self._commands_by_name.keys())

class CommandDictionary:
    """The complete, immutable command dictionary"""
    model_sets: Dict[str, Tuple[str, ...]]
    """Model set name -> model substrings belonging to the set."""

    zones: Dict[str, ZoneMeta]
    """Zones, in dictionary order. Order matters for decoding; see command_by_code()."""

    _zone_by_code: Dict[str, ZoneMeta]

    def __init__(self, zones: Iterable[ZoneMeta], model_sets: Optional[Mapping[str, Iterable[str]]]=None):
        self.model_sets = dict((k, tuple(v)) for k, v in (model_sets or {}).items())
        self.zones = {}
        self._zone_by_code = {}
        for zone in zones:
            if zone.name in self.zones:
                raise EiscpError(f"Duplicate zone {zone.name}")
            self.zones[zone.name] = zone
            for code in zone.commands:
                # The same code in more than one zone decodes as the first zone's command
                self._zone_by_code.setdefault(code, zone)

    def zone(self, name: str) -> Optional[ZoneMeta]:
        return self.zones.get(name)

    def command_by_code(self, code: str) -> Optional[CommandMeta]:
        """Finds the command for a 3-character code received from a receiver.

        Zones are searched in dictionary order and the first zone that defines
        the code wins.
        """
        zone = self._zone_by_code.get(code)
        return None if zone is None else zone.commands[code]

    @classmethod
    def from_jsonable(cls, data: JsonableDict) -> Self:
        """Builds a dictionary from its JSON form (see module docstring)"""
        raw_model_sets = data.get('modelsets') or {}
        assert isinstance(raw_model_sets, dict)
        model_sets: Dict[str, List[str]] = {}
        for set_name, members in raw_model_sets.items():
            assert isinstance(members, list)
            model_sets[set_name] = [str(m) for m in members]
        raw_zones = data.get('zones')
        if not isinstance(raw_zones, dict):
            raise EiscpError("Command dictionary has no zones")
        zones: List[ZoneMeta] = []
        for zone_name, raw_commands in raw_zones.items():
            assert isinstance(raw_commands, dict)
            zone_name = zone_name.strip().lower()
            commands = [
                CommandMeta.from_jsonable(zone_name, code, command_data)  # type: ignore[arg-type]
                for code, command_data in raw_commands.items()
              ]
            zones.append(ZoneMeta(zone_name, commands))
        return cls(zones, model_sets=model_sets)

    @classmethod
    def from_json_file(cls, pathname: str) -> Self:
        with open(pathname, "r") as f:
            data: JsonableDict = json.load(f)
        return cls.from_jsonable(data)

    def __str__(self) -> str:
        return f"CommandDictionary(zones={list(self.zones.keys())})"

    def __repr__(self) -> str:
        return str(self)

_default_dictionary: Optional[CommandDictionary] = None

def get_default_dictionary() -> CommandDictionary:
    """Returns the bundled command dictionary, loading it on first use"""
    global _default_dictionary
    if _default_dictionary is None:
        text = resources.files(__package__).joinpath('data').joinpath('eiscp_commands.json').read_text(encoding='utf-8')
        _default_dictionary = CommandDictionary.from_jsonable(json.loads(text))
    return _default_dictionary
