"""Bridge configuration loading.

Configuration is plain data: a YAML file or a mapping such as the Z-Way
module config. Only the server address is required.

    ws_server: ws://192.168.1.20:8080/zway
    reconnect_debounce: 0.1
    send_all_on_connect: true
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import BridgeConfigError

DEFAULT_DEVICE_ID_PREFIX = "ZWayVDev"

_SERVER_KEYS = ("ws_server", "wsServer")


@dataclass(frozen=True)
class BridgeConfig:
    """Runtime options for one bridge.

    Attributes:
        ws_server: WebSocket server address to dial.
        reconnect_debounce: Seconds the connect guard stays set after a
            successful open, absorbing back-to-back triggers.
        send_all_on_connect: Send an allDevices snapshot on every open.
        device_id_prefix: Only devices whose id starts with this are
            included in allDevices.
        ping_interval: WebSocket keepalive ping interval, None to disable.
        connect_timeout: Seconds to wait for the opening handshake.
        verbose: Log every frame at debug level.
    """

    ws_server: str
    reconnect_debounce: float = 0.1
    send_all_on_connect: bool = True
    device_id_prefix: str = DEFAULT_DEVICE_ID_PREFIX
    ping_interval: int | None = 20
    connect_timeout: float = 15.0
    verbose: bool = False

    def __post_init__(self) -> None:
        """Validate config invariants."""
        if not isinstance(self.ws_server, str) or not self.ws_server:
            raise BridgeConfigError("ws_server is required")
        if not self.ws_server.startswith(("ws://", "wss://")):
            raise BridgeConfigError(
                f"ws_server must be a ws:// or wss:// address, got {self.ws_server!r}"
            )
        if self.reconnect_debounce < 0:
            raise BridgeConfigError(
                f"reconnect_debounce must be >= 0, got {self.reconnect_debounce}"
            )
        if self.connect_timeout <= 0:
            raise BridgeConfigError(
                f"connect_timeout must be > 0, got {self.connect_timeout}"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> BridgeConfig:
        """Build a config from a mapping; unknown keys are ignored."""
        server = next((data[key] for key in _SERVER_KEYS if data.get(key)), None)
        if server is None:
            raise BridgeConfigError("ws_server is required")

        try:
            ping_interval = data.get("ping_interval", 20)
            return cls(
                ws_server=server,
                reconnect_debounce=float(data.get("reconnect_debounce", 0.1)),
                send_all_on_connect=bool(data.get("send_all_on_connect", True)),
                device_id_prefix=str(
                    data.get("device_id_prefix", DEFAULT_DEVICE_ID_PREFIX)
                ),
                ping_interval=int(ping_interval) if ping_interval is not None else None,
                connect_timeout=float(data.get("connect_timeout", 15.0)),
                verbose=bool(data.get("verbose", False)),
            )
        except BridgeConfigError:
            raise
        except (TypeError, ValueError) as err:
            raise BridgeConfigError(f"Invalid bridge config: {err}") from err


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise BridgeConfigError(f"Config file not found: {path}")
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise BridgeConfigError(f"Invalid YAML in {path}: {err}") from err
    if not isinstance(data, dict):
        raise BridgeConfigError(f"Config file must contain a mapping: {path}")
    return data


def load_config(path: Path | str) -> BridgeConfig:
    """Load bridge configuration from a YAML file.

    Raises:
        BridgeConfigError: If the file is missing or the config is invalid
    """
    return BridgeConfig.from_mapping(_load_yaml(Path(path)))
