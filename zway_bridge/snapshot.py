"""Device snapshot encoding.

A snapshot is the wire representation of one device's live state. It is
never stored; every send recomputes it from the registry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .registry import DeviceHandle

_NUMERIC_METRIC = re.compile(r"-?\d+(\.\d+)?", re.ASCII)
_CLOSED_METRIC = re.compile(r"off|close", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class DeviceSnapshot:
    """Snapshot of one device as sent to the WebSocket peer."""

    vdev_id: str | None
    onoff: Any
    level: int | float
    last_level: Any = None
    name: str | None = None
    title: str | None = None
    device_type: str | None = None
    modification_time: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the camelCase wire mapping."""
        return {
            "vDevId": self.vdev_id,
            "onoff": self.onoff,
            "level": self.level,
            "lastLevel": self.last_level,
            "name": self.name,
            "title": self.title,
            "type": self.device_type,
            "modificationTime": self.modification_time,
        }


def _metric_text(metric: Any) -> str:
    if metric is None or isinstance(metric, bool):
        return ""
    if isinstance(metric, float) and metric.is_integer():
        return str(int(metric))
    return str(metric)


def convert_level(metric: Any) -> tuple[Any, int | float]:
    """Derive (onoff, level) from a raw level metric.

    Numeric metrics ("55", "-3.5", 0) become their value, with onoff "off"
    only for zero. Symbolic metrics ("on", "open", "Closed") keep the raw
    value as onoff and map to level 0 when they mention off/close, else 100.
    """
    text = _metric_text(metric)
    match = _NUMERIC_METRIC.fullmatch(text)
    if match:
        level: int | float = float(text) if match.group(1) else int(text)
        return ("off" if level == 0 else "on"), level

    return metric, (0 if _CLOSED_METRIC.search(text) else 100)


def build_snapshot(device: DeviceHandle) -> DeviceSnapshot:
    """Build a snapshot from the device's current metrics."""
    onoff, level = convert_level(device.get("metrics:level"))
    return DeviceSnapshot(
        vdev_id=device.get("id"),
        onoff=onoff,
        level=level,
        last_level=device.get("metrics:lastLevel"),
        name=device.get("name"),
        title=device.get("metrics:title"),
        device_type=device.get("deviceType"),
        modification_time=device.get("metrics:modificationTime"),
    )
