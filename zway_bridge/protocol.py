"""Wire protocol for the bridge.

Outbound frames are ``{"type": ..., "data": ...}`` envelopes. Inbound frames
are commands keyed by ``socketCommand``:

    {"socketCommand": "setDevice", "vDevId": "ZWayVDev_zway_30-0-38",
     "command": "on", "extra": {"level": 55}}
    {"socketCommand": "getAll"}
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .commands import CommandExtra
from .errors import BridgeProtocolError

_LOGGER = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Outbound envelope types."""

    DEVICE_CHANGE = "deviceChange"
    ALL_DEVICES = "allDevices"


class SocketCommand(str, Enum):
    """Inbound command names."""

    SET_DEVICE = "setDevice"
    GET_ALL = "getAll"


@dataclass(frozen=True)
class InboundCommand:
    """A parsed inbound frame.

    ``socket_command`` is the raw value; unknown commands are kept so the
    router can ignore them.
    """

    socket_command: Any
    vdev_id: str | None = None
    command: str | None = None
    extra: CommandExtra = field(default_factory=CommandExtra)


def build_envelope(msg_type: MessageType | str, data: Any) -> dict[str, Any]:
    """Wrap a payload in an outbound envelope."""
    return {"type": MessageType(msg_type).value, "data": data}


def encode_envelope(msg_type: MessageType | str, data: Any) -> str:
    """Serialize an outbound envelope to a JSON text frame."""
    return json.dumps(build_envelope(msg_type, data))


def parse_message(raw: str | bytes) -> InboundCommand:
    """Parse an inbound text frame.

    Raises:
        BridgeProtocolError: If the frame is not a JSON object or a setDevice
            command lacks its required fields
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as err:
        raise BridgeProtocolError(f"Unable to parse message: {err}") from err

    if not isinstance(payload, dict):
        raise BridgeProtocolError(
            f"Message must be a JSON object, got {type(payload).__name__}"
        )

    socket_command = payload.get("socketCommand")
    if socket_command != SocketCommand.SET_DEVICE.value:
        return InboundCommand(socket_command=socket_command)

    vdev_id = payload.get("vDevId")
    command = payload.get("command")
    if not isinstance(vdev_id, str) or not vdev_id:
        raise BridgeProtocolError("setDevice requires a vDevId")
    if not isinstance(command, str):
        raise BridgeProtocolError("setDevice requires a command")

    return InboundCommand(
        socket_command=socket_command,
        vdev_id=vdev_id,
        command=command,
        extra=CommandExtra.from_mapping(payload.get("extra")),
    )


class MessageRouter:
    """Dispatch inbound frames to the bridge.

    Malformed frames are logged and dropped; unknown commands are ignored so
    newer peers can talk to older bridges.
    """

    def __init__(
        self,
        *,
        on_set_device: Callable[[str, str, CommandExtra], None],
        on_get_all: Callable[[], None],
    ) -> None:
        self._on_set_device = on_set_device
        self._on_get_all = on_get_all

    def route(self, raw: str | bytes) -> None:
        """Parse and dispatch one inbound frame."""
        try:
            message = parse_message(raw)
        except BridgeProtocolError as err:
            _LOGGER.warning("Discarding inbound message: %s", err)
            return

        if message.socket_command == SocketCommand.SET_DEVICE.value:
            self._on_set_device(message.vdev_id, message.command, message.extra)
        elif message.socket_command == SocketCommand.GET_ALL.value:
            self._on_get_all()
        else:
            _LOGGER.debug("Ignoring socketCommand %r", message.socket_command)
