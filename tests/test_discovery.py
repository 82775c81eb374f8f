from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

import pytest

from eiscp_receiver.client import discover
from eiscp_receiver.client.discovery import DiscoveryResult
from eiscp_receiver.exceptions import EiscpProtocolError, NetworkError
from eiscp_receiver.protocol import decode_packet, encode_packet


def _answer(message: str) -> bytes:
    return encode_packet(message, end_of_message="\x1a\r\n")


class FakeDatagramTransport:
    """Answers the discovery query with canned datagrams."""

    def __init__(self, protocol: asyncio.DatagramProtocol, answers: List[Tuple[bytes, Tuple[str, int]]]) -> None:
        self.protocol = protocol
        self.answers = answers
        self.sent: List[Tuple[bytes, Tuple[str, int]]] = []
        self.close_count = 0

    def sendto(self, data: bytes, addr: Tuple[str, int]) -> None:
        self.sent.append((data, addr))
        loop = asyncio.get_running_loop()
        for answer, source in self.answers:
            loop.call_soon(self.protocol.datagram_received, answer, source)

    def close(self) -> None:
        self.close_count += 1


def _install_fake_endpoint(
        monkeypatch: pytest.MonkeyPatch,
        answers: List[Tuple[bytes, Tuple[str, int]]],
        error: Optional[OSError] = None,
) -> List[FakeDatagramTransport]:
    transports: List[FakeDatagramTransport] = []
    loop = asyncio.get_running_loop()

    async def fake_create_datagram_endpoint(protocol_factory, local_addr=None, allow_broadcast=None):
        if error is not None:
            raise error
        assert allow_broadcast
        protocol = protocol_factory()
        transport = FakeDatagramTransport(protocol, answers)
        transports.append(transport)
        protocol.connection_made(transport)
        return transport, protocol

    monkeypatch.setattr(loop, "create_datagram_endpoint", fake_create_datagram_endpoint)
    return transports


def test_discovery_result_from_message() -> None:
    result = DiscoveryResult.from_message("10.0.0.5", "ECNTX-NR609/60128/DX/0009B0123456\x19")
    assert result.host == "10.0.0.5"
    assert result.model == "TX-NR609"
    assert result.port == 60128
    assert result.area_code == "DX"
    assert result.mac == "0009B0123456"

    with pytest.raises(EiscpProtocolError):
        DiscoveryResult.from_message("10.0.0.5", "ECNTX-NR609/60128")


@pytest.mark.asyncio
async def test_discover_stops_when_enough_devices_answer(monkeypatch: pytest.MonkeyPatch) -> None:
    transports = _install_fake_endpoint(monkeypatch, [
        (_answer("ECNTX-NR609/60128/DX/0009B0123456"), ("192.168.1.10", 60128)),
        (_answer("ECNTX-NR1009/60129/XX/0009B0ABCDEF\x19"), ("192.168.1.11", 60128)),
    ])

    results = await asyncio.wait_for(discover(devices=2, timeout_secs=30), 5)

    assert [r.host for r in results] == ["192.168.1.10", "192.168.1.11"]
    assert results[1].model == "TX-NR1009"
    assert results[1].port == 60129
    assert results[1].mac == "0009B0ABCDEF"
    transport = transports[0]
    assert transport.close_count == 1
    data, addr = transport.sent[0]
    assert addr == ("255.255.255.255", 60128)
    assert data[16:] == b"!xECNQSTN\r\n"


@pytest.mark.asyncio
async def test_discover_times_out_with_partial_results(monkeypatch: pytest.MonkeyPatch) -> None:
    transports = _install_fake_endpoint(monkeypatch, [
        (_answer("ECNTX-NR609/60128/DX/0009B0123456"), ("192.168.1.10", 60128)),
    ])

    results = await discover(devices=3, timeout_secs=0.05)

    assert len(results) == 1
    assert transports[0].close_count == 1


@pytest.mark.asyncio
async def test_discover_ignores_malformed_and_foreign_datagrams(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_endpoint(monkeypatch, [
        (b"garbage", ("192.168.1.2", 60128)),
        (_answer("PWR01"), ("192.168.1.3", 60128)),
        (_answer("ECNbroken"), ("192.168.1.4", 60128)),
        (_answer("ECNTX-NR509/60128/DX/0009B0000001"), ("192.168.1.5", 60128)),
    ])

    results = await asyncio.wait_for(discover(devices=1, timeout_secs=30, address="192.168.1.5"), 5)

    assert len(results) == 1
    assert results[0].model == "TX-NR509"


@pytest.mark.asyncio
async def test_discover_reports_socket_open_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    _install_fake_endpoint(monkeypatch, [], error=OSError("no network"))
    errors = []

    results = await discover(timeout_secs=0.05, on_error=errors.append)

    assert results == []
    assert len(errors) == 1
    assert isinstance(errors[0], NetworkError)


@pytest.mark.asyncio
async def test_discover_ends_on_socket_error(monkeypatch: pytest.MonkeyPatch) -> None:
    transports = _install_fake_endpoint(monkeypatch, [])
    errors = []

    async def fail_soon() -> None:
        while len(transports) == 0:
            await asyncio.sleep(0)
        transports[0].protocol.error_received(OSError("network unreachable"))

    task = asyncio.create_task(fail_soon())
    results = await asyncio.wait_for(discover(timeout_secs=30, on_error=errors.append), 5)
    await task

    assert results == []
    assert isinstance(errors[0], NetworkError)
    assert transports[0].close_count == 1


@pytest.mark.asyncio
async def test_discover_emulator(emulator) -> None:
    results = await discover(address="127.0.0.1", port=emulator.discovery_port, timeout_secs=2)

    assert len(results) == 1
    assert results[0].host == "127.0.0.1"
    assert results[0].model == "TX-NR609"
    assert results[0].port == emulator.port


def test_decode_of_discovery_answer() -> None:
    assert decode_packet(_answer("ECNTX-NR609/60128/DX/0009B0123456")) == "ECNTX-NR609/60128/DX/0009B0123456"
