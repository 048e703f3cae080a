"""Inbound command translation.

Device types speak different command vocabularies. An inbound command is an
abstract (command, extra) pair; the table below maps it onto the concrete
action a device of a given type understands.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .errors import BridgeProtocolError, ReadOnlyDeviceError, UnknownDeviceError

if TYPE_CHECKING:
    from .registry import DeviceRegistry

EXACT_COMMAND = "exact"

_SENSOR_TYPE = re.compile(r"sensor", re.IGNORECASE)
_CHANGE_TOKEN = re.compile(r"upstart|upstop|downstart|downstop")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(frozen=True, slots=True)
class CommandExtra:
    """Optional parameters of a setDevice command.

    A field is present when its key was sent, even with a null value.
    """

    level: Any = MISSING
    r: Any = MISSING
    g: Any = MISSING
    b: Any = MISSING

    @classmethod
    def from_mapping(cls, extra: Mapping[str, Any] | None) -> CommandExtra:
        """Validate an inbound extra object; unknown keys are ignored."""
        if extra is None:
            return cls()
        if not isinstance(extra, Mapping):
            raise BridgeProtocolError(
                f"extra must be an object, got {type(extra).__name__}"
            )
        return cls(
            level=extra.get("level", MISSING),
            r=extra.get("r", MISSING),
            g=extra.get("g", MISSING),
            b=extra.get("b", MISSING),
        )

    @property
    def has_level(self) -> bool:
        return self.level is not MISSING

    @property
    def has_color(self) -> bool:
        return MISSING not in (self.r, self.g, self.b)


@dataclass(frozen=True, slots=True)
class DeviceAction:
    """A concrete command for the registry, with optional arguments."""

    command: str | None
    args: Mapping[str, Any] | None = None


def _level_action(command: str | None, extra: CommandExtra) -> DeviceAction:
    if extra.has_level:
        return DeviceAction(EXACT_COMMAND, {"level": extra.level})
    return DeviceAction(command)


def _color_action(command: str | None, extra: CommandExtra) -> DeviceAction:
    if extra.has_color:
        return DeviceAction(
            EXACT_COMMAND, {"red": extra.r, "green": extra.g, "blue": extra.b}
        )
    return DeviceAction(command)


def _control_action(command: str | None, extra: CommandExtra) -> DeviceAction:
    if not extra.has_level:
        return DeviceAction(command)
    if _CHANGE_TOKEN.search(str(extra.level)):
        return DeviceAction(EXACT_COMMAND, {"change": extra.level})
    return DeviceAction(EXACT_COMMAND, {"level": extra.level})


def _toggle_action(command: str | None, extra: CommandExtra) -> DeviceAction:
    return DeviceAction("on")


def _plain_action(command: str | None, extra: CommandExtra) -> DeviceAction:
    return DeviceAction(command)


_ACTION_RULES: Mapping[str, Callable[[str | None, CommandExtra], DeviceAction]] = {
    "switchMultilevel": _level_action,
    "thermostat": _level_action,
    "switchRGBW": _color_action,
    "switchControl": _control_action,
    "toggleButton": _toggle_action,
}


def _type_name(device_type: Any) -> str:
    return "" if device_type is None else str(device_type)


def is_read_only(device_type: Any) -> bool:
    """Sensors report state only and never accept commands."""
    return _SENSOR_TYPE.search(_type_name(device_type)) is not None


def translate(
    device_type: Any,
    command: str | None,
    extra: CommandExtra | Mapping[str, Any] | None = None,
) -> DeviceAction:
    """Map an abstract command onto the action for a device type.

    Registry values that are not strings are matched by their text.

    Raises:
        ReadOnlyDeviceError: If the device type is a sensor
    """
    type_name = _type_name(device_type)
    if is_read_only(type_name):
        raise ReadOnlyDeviceError(type_name)

    if not isinstance(extra, CommandExtra):
        extra = CommandExtra.from_mapping(extra)

    # switchBinary, doorlock and unknown types take the command as-is
    rule = _ACTION_RULES.get(type_name, _plain_action)
    return rule(command, extra)


def apply_command(
    registry: DeviceRegistry,
    vdev_id: str,
    command: str | None,
    extra: CommandExtra | Mapping[str, Any] | None = None,
) -> DeviceAction:
    """Translate a command for a registered device and issue it.

    Nothing is issued when the device is unknown or read-only.

    Raises:
        UnknownDeviceError: If no device has this id
        ReadOnlyDeviceError: If the device is a sensor
    """
    device = registry.get(vdev_id)
    if device is None:
        raise UnknownDeviceError(vdev_id)

    action = translate(device.get("deviceType"), command, extra)
    if action.args is None:
        device.perform_command(action.command)
    else:
        device.perform_command(action.command, action.args)
    return action
