"""Pytest configuration and fixtures for zway_bridge tests."""

from __future__ import annotations

import asyncio
import json
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from zway_bridge.registry import MemoryDeviceRegistry
from zway_bridge.transport.ws_client import BridgeWsMessage, BridgeWsMessageType

SERVER = "ws://127.0.0.1:8765/zway"


class FakeWsClient:
    """Stand-in for BridgeWsClient driven by the test."""

    def __init__(self, *, connect_error: Exception | None = None) -> None:
        self.connect_error = connect_error
        self.connect_calls: list[tuple[str, dict[str, Any]]] = []
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue[BridgeWsMessage] = asyncio.Queue()

    async def connect(self, address: str, **kwargs: Any) -> None:
        self.connect_calls.append((address, kwargs))
        if self.connect_error is not None:
            raise self.connect_error

    async def send_text(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        self.closed = True

    def feed_text(self, text: str) -> None:
        self._inbox.put_nowait(BridgeWsMessage(BridgeWsMessageType.TEXT, text))

    def feed_close(self) -> None:
        self._inbox.put_nowait(BridgeWsMessage(BridgeWsMessageType.CLOSED))

    def feed_error(self) -> None:
        self._inbox.put_nowait(BridgeWsMessage(BridgeWsMessageType.ERROR))

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(frame) for frame in self.sent]

    def __aiter__(self):
        return self._iter_messages()

    async def _iter_messages(self):
        while True:
            msg = await self._inbox.get()
            yield msg
            if msg.type is not BridgeWsMessageType.TEXT:
                return


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_clients():
    """Patch the transport so each connection attempt creates a FakeWsClient.

    Yields the list of created clients; set ``factory.connect_error`` to make
    the next attempts fail.
    """
    clients: list[FakeWsClient] = []
    factory = MagicMock()

    def _create() -> FakeWsClient:
        client = FakeWsClient(connect_error=factory.connect_error)
        clients.append(client)
        return client

    factory.connect_error = None
    factory.side_effect = _create

    with patch("zway_bridge.connection.BridgeWsClient", factory):
        yield clients, factory


@pytest.fixture
def registry() -> MemoryDeviceRegistry:
    """Registry with a representative set of devices."""
    registry = MemoryDeviceRegistry()
    registry.add(
        "ZWayVDev_zway_30-0-38",
        {
            "deviceType": "switchMultilevel",
            "name": "Dimmer",
            "metrics:level": 55,
            "metrics:lastLevel": 40,
            "metrics:title": "Living room dimmer",
            "metrics:modificationTime": 1600000000,
        },
    )
    registry.add(
        "ZWayVDev_zway_12-0-37",
        {
            "deviceType": "switchBinary",
            "name": "Plug",
            "metrics:level": "off",
            "metrics:title": "Coffee machine",
            "metrics:modificationTime": 1600000100,
        },
    )
    registry.add(
        "ZWayVDev_zway_7-0-48-1",
        {
            "deviceType": "sensorBinary",
            "name": "Door",
            "metrics:level": "on",
            "metrics:title": "Front door",
            "metrics:modificationTime": 1600000200,
        },
    )
    registry.add(
        "DummyDevice_bn_5",
        {
            "deviceType": "switchBinary",
            "name": "Virtual",
            "metrics:level": "on",
            "metrics:title": "Virtual switch",
        },
    )
    return registry
