"""Event bridge between a device registry and the WebSocket peer.

Device level changes go out as ``deviceChange`` envelopes, a full
``allDevices`` snapshot is sent on every (re)connect and on request, and
inbound ``setDevice`` commands are translated into device commands.
"""

from __future__ import annotations

import logging
from typing import Any

from .commands import CommandExtra, apply_command
from .config import BridgeConfig
from .connection import ConnectionManager
from .errors import BridgeCommandError
from .protocol import MessageRouter, MessageType
from .registry import (
    CHANGE_LEVEL_EVENT,
    MODIFY_LEVEL_EVENT,
    DeviceHandle,
    DeviceRegistry,
)
from .snapshot import build_snapshot

_LOGGER = logging.getLogger(__name__)


class WebSocketBridge:
    """Forward registry changes to one WebSocket peer and apply its commands.

    Usage:
        bridge = WebSocketBridge(registry, BridgeConfig(ws_server="ws://hub:8080"))
        await bridge.start()
        ...
        await bridge.stop()
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        config: BridgeConfig,
        *,
        connection: ConnectionManager | None = None,
    ) -> None:
        self.registry = registry
        self.config = config

        self._connection = connection or ConnectionManager(
            config.ws_server,
            reconnect_debounce=config.reconnect_debounce,
            ping_interval=config.ping_interval,
            connect_timeout=config.connect_timeout,
            verbose=config.verbose,
        )
        self._router = MessageRouter(
            on_set_device=self.set_device,
            on_get_all=self.send_all_devices,
        )
        self._connection.on_message(self._router.route)
        if config.send_all_on_connect:
            self._connection.on_open(self.send_all_devices)

        self._subscribed = False

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    @property
    def is_running(self) -> bool:
        return self._subscribed

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> bool:
        """Subscribe to level changes and wait for the initial connection attempt.

        An unreachable server is not an error: the bridge keeps running and
        the next device change triggers another attempt.

        Returns:
            True if the connection is open
        """
        if self._subscribed:
            return self._connection.is_connected

        _LOGGER.info("Starting bridge to %s", self.config.ws_server)
        self._connection.start()
        self._connection.ensure_connected()

        self.registry.on(MODIFY_LEVEL_EVENT, self._handle_modify)
        self.registry.on(CHANGE_LEVEL_EVENT, self._handle_change)
        self._subscribed = True

        return await self._connection.wait_connected()

    async def stop(self) -> None:
        """Unsubscribe from the registry, flush queued messages and close.

        Idempotent, and safe to call before `start()`.
        """
        if self._subscribed:
            self.registry.off(MODIFY_LEVEL_EVENT, self._handle_modify)
            self.registry.off(CHANGE_LEVEL_EVENT, self._handle_change)
            self._subscribed = False
            _LOGGER.info("Stopping bridge to %s", self.config.ws_server)

        await self._connection.stop()

    # -------------------------------------------------------------------------
    # Registry Events
    # -------------------------------------------------------------------------

    def _handle_modify(self, device: DeviceHandle) -> None:
        """The level value changed: push the new snapshot."""
        snapshot = build_snapshot(device).as_dict()
        self._connection.send(MessageType.DEVICE_CHANGE, snapshot)

    def _handle_change(self, device: DeviceHandle) -> None:
        """Any level write: use it as a cue to reconnect."""
        if not self._connection.is_connected:
            self._connection.ensure_connected()

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def get_all_devices(self) -> dict[str, dict[str, Any]]:
        """Snapshot every device whose id carries the configured prefix."""
        prefix = self.config.device_id_prefix
        snapshots: dict[str, dict[str, Any]] = {}
        for device in self.registry.devices():
            vdev_id = device.get("id")
            if isinstance(vdev_id, str) and vdev_id.startswith(prefix):
                snapshots[vdev_id] = build_snapshot(device).as_dict()
        return snapshots

    def send_all_devices(self) -> bool:
        """Send the full allDevices snapshot to the peer."""
        return self._connection.send(MessageType.ALL_DEVICES, self.get_all_devices())

    def set_device(
        self,
        vdev_id: str,
        command: str | None,
        extra: CommandExtra | dict[str, Any] | None = None,
    ) -> bool:
        """Apply an inbound command; failures are logged and dropped.

        Returns:
            True if a command was issued to the device
        """
        try:
            action = apply_command(self.registry, vdev_id, command, extra)
        except BridgeCommandError as err:
            _LOGGER.error("Rejected command %r for %s: %s", command, vdev_id, err)
            return False

        _LOGGER.debug("Issued %s %s to %s", action.command, action.args, vdev_id)
        return True
