from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from eiscp_receiver import ConnectionState, EiscpReceiverClient, SendResult
from eiscp_receiver.exceptions import NotConnectedError, UnknownValueError
from eiscp_receiver.rest_server import get_receiver_client, receiver_api


@pytest.fixture
def receiver_client() -> EiscpReceiverClient:
    client = EiscpReceiverClient("127.0.0.1", model="TX-NR609")
    receiver_api.state.receiver_client = client
    return client


@pytest.fixture
def http(receiver_client: EiscpReceiverClient) -> TestClient:
    # Not entered as a context manager: the lifespan would try to reach a real receiver
    return TestClient(receiver_api)


@pytest.fixture
def errors(receiver_client: EiscpReceiverClient) -> list:
    received = []
    receiver_client.on("error", received.append)
    return received


@pytest.fixture
def connected(receiver_client: EiscpReceiverClient, monkeypatch: pytest.MonkeyPatch) -> list:
    sent = []

    async def fake_raw(message: str) -> SendResult:
        sent.append(message)
        return SendResult(True, iscp_command=message)

    receiver_client.state = ConnectionState.CONNECTED
    monkeypatch.setattr(receiver_client, "raw", fake_raw)
    return sent


def test_status(http: TestClient) -> None:
    response = http.get("/api/v1/status")
    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "idle"
    assert body["connected"] is False
    assert body["model"] == "TX-NR609"


def test_zone_commands(http: TestClient) -> None:
    response = http.get("/api/v1/zones/main/commands")
    assert response.status_code == 200
    assert "system-power" in response.json()["commands"]


def test_unknown_zone_is_bad_request(http: TestClient) -> None:
    response = http.get("/api/v1/zones/garage/commands")
    assert response.status_code == 400
    assert response.json()["error"] == "UnknownZoneError"


def test_command_values(http: TestClient) -> None:
    response = http.get("/api/v1/zones/main/commands/volume")
    assert response.status_code == 200
    values = response.json()["values"]
    assert "level-up" in values
    assert "0,100" in values


def test_command_not_connected(http: TestClient, errors: list) -> None:
    response = http.post("/api/v1/command", json={"command": "system-power=on"})
    assert response.status_code == 503
    assert [type(e) for e in errors] == [NotConnectedError]


def test_unresolvable_command_is_bad_request(http: TestClient, errors: list) -> None:
    response = http.post("/api/v1/command", json={"command": "system-power=sideways"})
    assert response.status_code == 400
    assert response.json()["error"] == "UnknownValueError"
    assert [type(e) for e in errors] == [UnknownValueError]


def test_command_sent(http: TestClient, connected: list) -> None:
    response = http.post("/api/v1/command", json={"command": "zone2.volume=22"})
    assert response.status_code == 200
    assert response.json()["result"] is True
    assert response.json()["iscp_command"] == "ZVL16"
    assert connected == ["ZVL16"]


def test_raw_sent(http: TestClient, connected: list) -> None:
    response = http.post("/api/v1/raw", json={"message": "PWRQSTN"})
    assert response.status_code == 200
    assert connected == ["PWRQSTN"]


def test_raw_not_connected(http: TestClient, errors: list) -> None:
    response = http.post("/api/v1/raw", json={"message": "PWR01"})
    assert response.status_code == 503
    assert [type(e) for e in errors] == [NotConnectedError]


def test_raw_requires_message(http: TestClient) -> None:
    response = http.post("/api/v1/raw", json={"message": ""})
    assert response.status_code == 422


def test_receiver_client_dependency_can_be_overridden(http: TestClient) -> None:
    other = EiscpReceiverClient("127.0.0.1", model="TX-NR509")
    receiver_api.dependency_overrides[get_receiver_client] = lambda: other
    try:
        response = http.get("/api/v1/status")
    finally:
        receiver_api.dependency_overrides.clear()
    assert response.json()["model"] == "TX-NR509"
