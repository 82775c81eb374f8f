from __future__ import annotations

import pytest

from eiscp_receiver import EiscpClientConfig
from eiscp_receiver.constants import DEFAULT_PORT
from eiscp_receiver.exceptions import EiscpError


def test_defaults() -> None:
    config = EiscpClientConfig()
    assert config.default_host is None
    assert config.default_port == DEFAULT_PORT
    assert config.model is None
    assert config.reconnect is False
    assert config.resolve_model is True


def test_environment_seeds_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EISCP_RECEIVER_HOST", "10.1.2.3")
    monkeypatch.setenv("EISCP_RECEIVER_PORT", "60200")
    monkeypatch.setenv("EISCP_RECEIVER_MODEL", "TX-NR709")

    config = EiscpClientConfig()
    assert config.default_host == "10.1.2.3"
    assert config.default_port == 60200
    assert config.model == "TX-NR709"

    overridden = EiscpClientConfig("receiver.local", default_port=1234, model="TX-NR509")
    assert overridden.default_host == "receiver.local"
    assert overridden.default_port == 1234
    assert overridden.model == "TX-NR509"


def test_base_config_is_inherited() -> None:
    base = EiscpClientConfig("10.0.0.9", reconnect=True, reconnect_sleep_secs=1.5, timeout_secs=2.0)
    config = EiscpClientConfig(model="TX-NR609", base_config=base)
    assert config.default_host == "10.0.0.9"
    assert config.reconnect is True
    assert config.reconnect_sleep_secs == 1.5
    assert config.timeout_secs == 2.0
    assert config.model == "TX-NR609"
    assert base.model is None


def test_jsonable() -> None:
    config = EiscpClientConfig.from_jsonable({
        "default_host": "eiscp://",
        "model": "TX-NR1009",
        "reconnect": True,
        "discovery_timeout_secs": 3.0,
    })
    assert config.default_host == "eiscp://"
    assert config.reconnect is True
    assert config.discovery_timeout_secs == 3.0

    data = config.to_jsonable()
    assert data["model"] == "TX-NR1009"
    assert data["default_port"] == DEFAULT_PORT
    assert EiscpClientConfig.from_jsonable(data).to_jsonable() == data


def test_negative_reconnect_sleep_rejected() -> None:
    with pytest.raises(EiscpError):
        EiscpClientConfig(reconnect_sleep_secs=-1)
