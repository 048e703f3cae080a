"""Device registry boundary.

The bridge never stores devices itself. It talks to a registry through the
protocols below; `MemoryDeviceRegistry` is a small synchronous
implementation for embedding the bridge outside Z-Way and for tests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

_LOGGER = logging.getLogger(__name__)

MODIFY_LEVEL_EVENT = "modify:metrics:level"
CHANGE_LEVEL_EVENT = "change:metrics:level"

LEVEL_METRIC = "metrics:level"


class DeviceHandle(Protocol):
    """A single device as exposed by the registry."""

    def get(self, attr: str) -> Any:
        """Read a device attribute such as "id" or "metrics:level"."""
        ...

    def perform_command(
        self, command: str, args: Mapping[str, Any] | None = None
    ) -> None:
        """Issue a command to the device."""
        ...


DeviceHandler = Callable[[DeviceHandle], None]


class DeviceRegistry(Protocol):
    """Registry of controllable devices and their change notifications."""

    def devices(self) -> Iterable[DeviceHandle]:
        """Enumerate all devices."""
        ...

    def get(self, vdev_id: str) -> DeviceHandle | None:
        """Look up a device by id, None when unknown."""
        ...

    def on(self, event: str, handler: DeviceHandler) -> None:
        """Subscribe a handler to a registry event."""
        ...

    def off(self, event: str, handler: DeviceHandler) -> None:
        """Unsubscribe a handler; unknown handlers are ignored."""
        ...


class MemoryDevice:
    """In-memory device with a flat attribute map."""

    def __init__(
        self,
        registry: MemoryDeviceRegistry,
        vdev_id: str,
        attributes: Mapping[str, Any] | None = None,
    ) -> None:
        self._registry = registry
        self._attributes: dict[str, Any] = dict(attributes or {})
        self._attributes["id"] = vdev_id
        self.commands: list[tuple[str, dict[str, Any] | None]] = []

    @property
    def id(self) -> str:
        return self._attributes["id"]

    def get(self, attr: str) -> Any:
        return self._attributes.get(attr)

    def set(self, attr: str, value: Any) -> None:
        """Write an attribute, notifying the registry for level writes."""
        previous = self._attributes.get(attr)
        self._attributes[attr] = value
        if attr != LEVEL_METRIC:
            return
        if value != previous:
            self._registry.emit(MODIFY_LEVEL_EVENT, self)
        self._registry.emit(CHANGE_LEVEL_EVENT, self)

    def perform_command(
        self, command: str, args: Mapping[str, Any] | None = None
    ) -> None:
        """Record the command and apply the level-affecting ones."""
        self.commands.append((command, dict(args) if args is not None else None))
        _LOGGER.debug("%s: command %s %s", self.id, command, args)

        if command == "exact" and args and "level" in args:
            self.set(LEVEL_METRIC, args["level"])
        elif command in ("on", "off"):
            current = self.get(LEVEL_METRIC)
            if isinstance(current, (int, float)) and not isinstance(current, bool):
                self.set(LEVEL_METRIC, 0 if command == "off" else 99)
            else:
                self.set(LEVEL_METRIC, command)


class MemoryDeviceRegistry:
    """Synchronous registry; handlers run inline and are isolated from each other."""

    def __init__(self) -> None:
        self._devices: dict[str, MemoryDevice] = {}
        self._handlers: dict[str, list[DeviceHandler]] = {}

    def add(
        self, vdev_id: str, attributes: Mapping[str, Any] | None = None
    ) -> MemoryDevice:
        device = MemoryDevice(self, vdev_id, attributes)
        self._devices[vdev_id] = device
        return device

    def remove(self, vdev_id: str) -> None:
        self._devices.pop(vdev_id, None)

    def devices(self) -> list[MemoryDevice]:
        return list(self._devices.values())

    def get(self, vdev_id: str) -> MemoryDevice | None:
        return self._devices.get(vdev_id)

    def on(self, event: str, handler: DeviceHandler) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: DeviceHandler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, device: DeviceHandle) -> None:
        """Deliver an event to every subscribed handler."""
        for handler in list(self._handlers.get(event, ())):
            try:
                handler(device)
            except Exception:
                _LOGGER.exception("Error in %s handler %r", event, handler)
