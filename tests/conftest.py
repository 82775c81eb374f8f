"""Shared fixtures for eiscp_receiver tests."""
from __future__ import annotations

import pytest
import pytest_asyncio

from eiscp_receiver.emulator import EiscpReceiverEmulator


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's receiver settings out of the tests."""
    for name in ("EISCP_RECEIVER_HOST", "EISCP_RECEIVER_PORT", "EISCP_RECEIVER_MODEL", "EISCP_RECEIVER_CONFIG"):
        monkeypatch.delenv(name, raising=False)


@pytest_asyncio.fixture
async def emulator():
    """A receiver emulator on 127.0.0.1 with ephemeral TCP and discovery ports."""
    async with EiscpReceiverEmulator(bind_addr="127.0.0.1", port=0, discovery_port=0) as emu:
        yield emu
