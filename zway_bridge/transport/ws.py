"""Opening handshake for the bridge's outbound WebSocket.

The bridge is always the client: it dials the configured ws:// or wss://
address and the peer never connects back. Failures are reported as
`BridgeClientError` subclasses so the connection manager can release its
connect guard on any of them.
"""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    BridgeConnectionError,
    BridgeHandshakeError,
    BridgeTimeout,
)


async def connect_websocket(
    address: str,
    *,
    ping_interval: int | None = 20,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open the connection to the peer that receives device snapshots.

    Frames carry JSON envelopes of arbitrary size, so the websockets frame
    size limit is lifted.

    Args:
        address: Full server address, e.g. ws://192.168.1.20:8080/zway
        ping_interval: Interval for ping frames (None disables keepalive)
        timeout: Seconds allowed for the TCP connect and opening handshake

    Raises:
        BridgeTimeout: If the handshake does not finish in time
        BridgeHandshakeError: If the address is invalid or the server refuses
            the upgrade
        BridgeConnectionError: If the server cannot be reached
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                address,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise BridgeTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise BridgeHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise BridgeConnectionError("WebSocket connection failed") from err
