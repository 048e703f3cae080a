"""Transport layer for the bridge.

Components:
- ws: WebSocket connection setup
- ws_client: WebSocket message iteration and sending
"""

from .ws_client import BridgeWsClient, BridgeWsMessage, BridgeWsMessageType

__all__ = [
    "BridgeWsClient",
    "BridgeWsMessage",
    "BridgeWsMessageType",
]
