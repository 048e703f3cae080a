"""Error types for the Z-Way WebSocket bridge."""

from __future__ import annotations


class BridgeError(Exception):
    """Base error for all bridge failures."""


class BridgeClientError(BridgeError):
    """Base error for WebSocket transport failures."""


class BridgeTimeout(BridgeClientError):
    """Timeout while communicating with the WebSocket server."""


class BridgeConnectionError(BridgeClientError):
    """Network connection to the WebSocket server failed."""


class BridgeHandshakeError(BridgeClientError):
    """WebSocket handshake failed."""


class BridgeProtocolError(BridgeError, ValueError):
    """Inbound frame could not be parsed into a command."""


class BridgeCommandError(BridgeError):
    """Inbound command could not be applied to a device."""


class UnknownDeviceError(BridgeCommandError):
    """Target device does not exist in the registry."""

    def __init__(self, vdev_id: str) -> None:
        super().__init__(f"Device {vdev_id} does not exist")
        self.vdev_id = vdev_id


class ReadOnlyDeviceError(BridgeCommandError):
    """Target device is a sensor and accepts no commands."""

    def __init__(self, device_type: str | None) -> None:
        super().__init__(f"Can't perform action on read-only device type {device_type}")
        self.device_type = device_type


class BridgeConfigError(BridgeError, ValueError):
    """Bridge configuration is missing or invalid."""
