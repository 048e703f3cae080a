"""Bridge between a Z-Way device registry and a WebSocket peer."""

__version__ = "0.1.0"

from .bridge import WebSocketBridge
from .commands import CommandExtra, DeviceAction, apply_command, translate
from .config import BridgeConfig, load_config
from .connection import ConnectionManager, ConnectionState
from .errors import (
    BridgeClientError,
    BridgeCommandError,
    BridgeConfigError,
    BridgeConnectionError,
    BridgeError,
    BridgeHandshakeError,
    BridgeProtocolError,
    BridgeTimeout,
    ReadOnlyDeviceError,
    UnknownDeviceError,
)
from .protocol import (
    InboundCommand,
    MessageRouter,
    MessageType,
    SocketCommand,
    build_envelope,
    encode_envelope,
    parse_message,
)
from .registry import (
    CHANGE_LEVEL_EVENT,
    MODIFY_LEVEL_EVENT,
    DeviceHandle,
    DeviceRegistry,
    MemoryDevice,
    MemoryDeviceRegistry,
)
from .snapshot import DeviceSnapshot, build_snapshot, convert_level
from .transport import BridgeWsClient, BridgeWsMessage, BridgeWsMessageType

__all__ = [
    "CHANGE_LEVEL_EVENT",
    "MODIFY_LEVEL_EVENT",
    "BridgeClientError",
    "BridgeCommandError",
    "BridgeConfig",
    "BridgeConfigError",
    "BridgeConnectionError",
    "BridgeError",
    "BridgeHandshakeError",
    "BridgeProtocolError",
    "BridgeTimeout",
    "BridgeWsClient",
    "BridgeWsMessage",
    "BridgeWsMessageType",
    "CommandExtra",
    "ConnectionManager",
    "ConnectionState",
    "DeviceAction",
    "DeviceHandle",
    "DeviceRegistry",
    "DeviceSnapshot",
    "InboundCommand",
    "MemoryDevice",
    "MemoryDeviceRegistry",
    "MessageRouter",
    "MessageType",
    "ReadOnlyDeviceError",
    "SocketCommand",
    "UnknownDeviceError",
    "WebSocketBridge",
    "__version__",
    "apply_command",
    "build_envelope",
    "build_snapshot",
    "convert_level",
    "encode_envelope",
    "load_config",
    "parse_message",
    "translate",
]
