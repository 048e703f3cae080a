"""WebSocket client wrapper for the bridge transport."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed

from ..errors import BridgeConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class BridgeWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class BridgeWsMessage:
    """Normalized WebSocket message payload."""

    type: BridgeWsMessageType
    data: str | None = None


class BridgeWsClient:
    """Wrapper around the websockets library for one outbound connection."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(
        self,
        address: str,
        *,
        ping_interval: int | None = 20,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the WebSocket server."""
        self._ws = await connect_websocket(
            address,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close()

    async def send_text(self, text: str) -> None:
        """Send a text frame.

        Raises:
            BridgeConnectionError: If not connected or the peer went away
        """
        if self._ws is None:
            raise BridgeConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(text)
        except ConnectionClosed as err:
            raise BridgeConnectionError("WebSocket closed while sending") from err

    def __aiter__(self) -> AsyncIterator[BridgeWsMessage]:
        if self._ws is None:
            raise BridgeConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[BridgeWsMessage]:
        if self._ws is None:
            raise BridgeConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed:
            yield BridgeWsMessage(type=BridgeWsMessageType.CLOSED)
        except Exception:
            yield BridgeWsMessage(type=BridgeWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield BridgeWsMessage(type=BridgeWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> BridgeWsMessage | None:
        """Normalize raw frames; binary frames are not part of the protocol."""
        if isinstance(msg, (bytes, bytearray, memoryview)):
            return None
        if isinstance(msg, str):
            return BridgeWsMessage(BridgeWsMessageType.TEXT, msg)
        return BridgeWsMessage(BridgeWsMessageType.TEXT, str(msg))

