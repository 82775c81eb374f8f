from __future__ import annotations

import pytest

from eiscp_receiver.client import resolve_host
from eiscp_receiver.client.discovery import DiscoveryResult
from eiscp_receiver.client.resolve_host import (
    is_discovery_host,
    resolve_receiver_tcp_host,
    split_host_port,
)
from eiscp_receiver.exceptions import EiscpError


def _result(host: str = "192.168.1.20", port: int = 60128, model: str = "TX-NR609") -> DiscoveryResult:
    return DiscoveryResult(host, port, model, "0009B0123456", "DX", f"ECN{model}/{port}/DX/0009B0123456")


def test_split_host_port() -> None:
    assert split_host_port("10.0.0.2", 60128) == ("10.0.0.2", 60128)
    assert split_host_port("tcp://10.0.0.2:1234", 60128) == ("10.0.0.2", 1234)
    with pytest.raises(EiscpError):
        split_host_port("http://10.0.0.2", 60128)
    with pytest.raises(EiscpError):
        split_host_port("10.0.0.2:port", 60128)


def test_is_discovery_host(monkeypatch: pytest.MonkeyPatch) -> None:
    assert is_discovery_host(None)
    assert is_discovery_host("eiscp://192.168.1.255")
    assert not is_discovery_host("192.168.1.20")
    monkeypatch.setenv("EISCP_RECEIVER_HOST", "192.168.1.20")
    assert not is_discovery_host(None)


@pytest.mark.asyncio
async def test_known_model_skips_discovery(monkeypatch: pytest.MonkeyPatch) -> None:
    async def no_discovery(**kwargs):
        raise AssertionError("discovery should not run")

    monkeypatch.setattr(resolve_host, "discover", no_discovery)

    assert await resolve_receiver_tcp_host("10.0.0.2:60200", model="TX-NR509") == ("10.0.0.2", 60200, "TX-NR509", None)
    assert await resolve_receiver_tcp_host("10.0.0.2", resolve_model=False) == ("10.0.0.2", 60128, None, None)


@pytest.mark.asyncio
async def test_targeted_discovery_learns_model(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    async def fake_discover(**kwargs):
        calls.append(kwargs)
        return [_result(host="10.0.0.2")]

    monkeypatch.setattr(resolve_host, "discover", fake_discover)

    host, port, model, result = await resolve_receiver_tcp_host("10.0.0.2", discovery_timeout_secs=10.0)

    assert (host, port, model) == ("10.0.0.2", 60128, "TX-NR609")
    assert result is not None
    assert calls[0]["address"] == "10.0.0.2"
    assert calls[0]["timeout_secs"] == 2.0


@pytest.mark.asyncio
async def test_discovery_host(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    async def fake_discover(**kwargs):
        calls.append(kwargs)
        return [_result(host="192.168.1.30", port=60129, model="TX-NR1009")]

    monkeypatch.setattr(resolve_host, "discover", fake_discover)

    host, port, model, result = await resolve_receiver_tcp_host(None)

    assert (host, port, model) == ("192.168.1.30", 60129, "TX-NR1009")
    assert result is not None and result.mac == "0009B0123456"
    assert calls[0]["address"] == "255.255.255.255"
    assert calls[0]["devices"] == 1


@pytest.mark.asyncio
async def test_discovery_host_finds_nothing(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_discover(**kwargs):
        return []

    monkeypatch.setattr(resolve_host, "discover", fake_discover)

    assert await resolve_receiver_tcp_host("eiscp://192.168.1.255") == (None, 60128, None, None)
