from __future__ import annotations

import pytest

from eiscp_receiver.exceptions import (
    ParseError,
    UnknownCommandError,
    UnknownValueError,
    UnknownZoneError,
    UnsupportedForModelError,
    ValueOutOfRangeError,
)
from eiscp_receiver.protocol import (
    CommandResolver,
    DeviceContext,
    get_default_dictionary,
    parse_command_string,
)


def _resolver(model: str | None = None) -> CommandResolver:
    dictionary = get_default_dictionary()
    context = None if model is None else DeviceContext.for_model(model, dictionary)
    return CommandResolver(dictionary, device_context=context)


@pytest.mark.parametrize("text, zone, command, arguments", [
    ("system-power=on", "main", "system-power", ("on",)),
    ("zone2.volume:22", "zone2", "volume", ("22",)),
    ("Main.System-Power = ON", "main", "system-power", ("on",)),
    ("zone2 power on", "zone2", "power", ("on",)),
    ("system-power query", "main", "system-power", ("query",)),
    ("system-power.query", "main", "system-power", ("query",)),
    ("  volume   level-up ", "main", "volume", ("level-up",)),
    ("preset=1,2", "main", "preset", ("1", "2")),
])
def test_parse_command_string(text: str, zone: str, command: str, arguments: tuple) -> None:
    parsed = parse_command_string(text)
    assert parsed.zone == zone
    assert parsed.command == command
    assert parsed.arguments == arguments


def test_parse_joins_multiple_arguments() -> None:
    assert parse_command_string("preset=1 2").argument == "1,2"


@pytest.mark.parametrize("text", ["power", "", "a.b.c=1", "volume=", "=on"])
def test_parse_errors(text: str) -> None:
    with pytest.raises(ParseError):
        parse_command_string(text)


@pytest.mark.parametrize("text, message", [
    ("system-power=on", "PWR01"),
    ("system-power query", "PWRQSTN"),
    ("mute=toggle", "AMTTG"),
    ("volume=5", "MVL05"),
    ("volume=100", "MVL64"),
    ("volume=0", "MVL00"),
    ("input-selector=net", "SLI2B"),
    ("input-selector bd/dvd", "SLI10"),
    ("zone2.volume=80", "ZVL50"),
    ("zone3 power on", "PW3" + "01"),
    ("sleep-set=90", "SLP5A"),
    ("receiver-information=query", "NRIQSTN"),
])
def test_encode_without_model(text: str, message: str) -> None:
    assert _resolver().encode_command(text) == message


def test_encode_uses_first_active_range() -> None:
    # TX-NR509 is in set3, whose volume range stops at 80
    resolver = _resolver("TX-NR509")
    assert resolver.encode_command("volume=80") == "MVL50"
    with pytest.raises(UnsupportedForModelError):
        resolver.encode_command("volume=90")


def test_encode_range_boundaries() -> None:
    resolver = _resolver("TX-NR609")
    assert resolver.encode_command("volume=0") == "MVL00"
    assert resolver.encode_command("volume=100") == "MVL64"
    with pytest.raises(ValueOutOfRangeError):
        resolver.encode_command("volume=101")
    with pytest.raises(ValueOutOfRangeError):
        resolver.encode_command("sleep-set=0")


def test_out_of_range_is_an_unknown_value() -> None:
    with pytest.raises(UnknownValueError):
        _resolver().encode_command("volume=500")


def test_encode_filters_values_by_model() -> None:
    resolver = _resolver("TX-NR609")
    assert resolver.encode_command("input-selector=network") == "SLI2B"
    with pytest.raises(UnsupportedForModelError):
        resolver.encode_command("input-selector=bluetooth")
    with pytest.raises(UnsupportedForModelError):
        _resolver("TX-NR509").encode_command("zone2.power=on")


def test_untagged_values_apply_to_every_model() -> None:
    assert _resolver("TX-NR509").encode_command("receiver-information=query") == "NRIQSTN"


@pytest.mark.parametrize("text, error", [
    ("zone9.power=on", UnknownZoneError),
    ("bogus=on", UnknownCommandError),
    ("zone2.system-power=on", UnknownCommandError),
    ("system-power=sideways", UnknownValueError),
    ("input-selector=42", UnknownValueError),
    ("volume=loud", UnknownValueError),
])
def test_encode_errors(text: str, error: type) -> None:
    with pytest.raises(error):
        _resolver().encode_command(text)


def test_encode_parts() -> None:
    assert _resolver().encode_parts("zone2", "muting", "ON") == "ZMT01"


def test_decode_named_value() -> None:
    decoded = _resolver().decode_message("SLI2B")
    assert decoded.is_recognized
    assert decoded.zone == "main"
    assert decoded.code == "SLI"
    assert decoded.command == "input-selector"
    assert decoded.argument == "network"
    assert decoded.argument_aliases == ("network", "net")
    assert decoded.raw_value == "2B"


def test_decode_reports_all_command_aliases() -> None:
    decoded = _resolver().decode_message("AMT01")
    assert decoded.names == ("audio-muting", "mute")
    assert decoded.argument == "on"


def test_decode_range_value() -> None:
    decoded = _resolver().decode_message("MVL28")
    assert decoded.command == "master-volume"
    assert decoded.argument == 40


def test_decode_is_not_filtered_by_model() -> None:
    decoded = _resolver("TX-NR509").decode_message("SLI2E")
    assert decoded.argument == "bluetooth"


@pytest.mark.parametrize("message", ["XYZ01", "PWRZZ", "NRI<xml/>", ""])
def test_decode_unrecognized(message: str) -> None:
    decoded = _resolver().decode_message(message)
    assert not decoded.is_recognized
    assert decoded.names == ()
    assert decoded.argument is None
    assert decoded.iscp_command == message


@pytest.mark.parametrize("text, name, argument", [
    ("system-power=standby", "system-power", "standby"),
    ("zone2.volume=22", "volume", 22),
    ("input-selector=cbl/sat", "input-selector", "video2"),
])
def test_encode_then_decode(text: str, name: str, argument: object) -> None:
    resolver = _resolver("TX-NR1009")
    decoded = resolver.decode_message(resolver.encode_command(text))
    assert decoded.command == name
    assert decoded.argument == argument


def _all_commands():
    for zone in get_default_dictionary().zones.values():
        yield from zone.commands.values()


def test_every_named_value_round_trips() -> None:
    resolver = _resolver()
    for command in _all_commands():
        for value in command.values:
            for name in value.names:
                message = resolver.encode_parts(command.zone, command.name, name)
                assert message == command.code + value.raw_value
                decoded = resolver.decode_message(message)
                assert decoded.zone == command.zone
                assert decoded.names == command.names
                assert decoded.argument == value.name
                assert decoded.argument_aliases == value.names


def test_every_range_bound_round_trips() -> None:
    for command in _all_commands():
        for int_range in command.ranges:
            sets = () if int_range.models is None else (int_range.models,)
            resolver = CommandResolver(device_context=DeviceContext("test-model", sets))
            for number in (int_range.lo, int_range.hi):
                message = resolver.encode_parts(command.zone, command.name, str(number))
                assert message == f"{command.code}{number:02X}"
                assert resolver.decode_message(message).argument == number
            if not any(int_range.hi + 1 in r for r in command.ranges):
                with pytest.raises(ValueOutOfRangeError):
                    resolver.encode_parts(command.zone, command.name, str(int_range.hi + 1))
            if int_range.lo > 0 and not any(int_range.lo - 1 in r for r in command.ranges):
                with pytest.raises(ValueOutOfRangeError):
                    resolver.encode_parts(command.zone, command.name, str(int_range.lo - 1))


def test_command_names() -> None:
    names = _resolver().command_names("main")
    assert names[:3] == ["system-power", "audio-muting", "mute"]
    assert "volume" in names
    with pytest.raises(UnknownZoneError):
        _resolver().command_names("garage")


def test_value_names_follow_device_model() -> None:
    names = _resolver("TX-NR509").value_names("volume")
    assert "level-up" in names
    assert "level-up-1db-step" not in names
    assert names[-1] == "0,80"
    assert "0,100" not in names

    unfiltered = _resolver().value_names("main.volume")
    assert unfiltered[-2:] == ["0,100", "0,80"]


def test_value_names_of_other_zone() -> None:
    assert _resolver().value_names("zone2.power") == ["standby", "on", "query"]
    with pytest.raises(UnknownCommandError):
        _resolver().value_names("zone2.bogus")
