"""Tests for the in-memory device registry."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

from zway_bridge.registry import (
    CHANGE_LEVEL_EVENT,
    MODIFY_LEVEL_EVENT,
    MemoryDeviceRegistry,
)


class TestMemoryDeviceRegistry:
    """Tests for lookup and subscription."""

    def test_lookup(self):
        """Devices are found by id; unknown ids return None."""
        registry = MemoryDeviceRegistry()
        device = registry.add("ZWayVDev_zway_2-0-37", {"name": "Plug"})

        assert registry.get("ZWayVDev_zway_2-0-37") is device
        assert registry.get("missing") is None
        assert registry.devices() == [device]
        assert device.get("id") == "ZWayVDev_zway_2-0-37"
        assert device.get("name") == "Plug"
        assert device.get("metrics:title") is None

    def test_remove(self):
        """Removed devices are no longer listed."""
        registry = MemoryDeviceRegistry()
        registry.add("a")
        registry.remove("a")
        registry.remove("a")
        assert registry.devices() == []

    def test_off_unknown_handler(self):
        """Unsubscribing an unknown handler is a no-op."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": 0})
        handler = MagicMock()
        registry.on(MODIFY_LEVEL_EVENT, handler)

        registry.off(MODIFY_LEVEL_EVENT, MagicMock())
        device.set("metrics:level", 10)

        handler.assert_called_once_with(device)


class TestLevelEvents:
    """Tests for modify vs change notifications."""

    def test_new_value_fires_both(self):
        """A new value fires modify and change."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": 0})
        on_modify, on_change = MagicMock(), MagicMock()
        registry.on(MODIFY_LEVEL_EVENT, on_modify)
        registry.on(CHANGE_LEVEL_EVENT, on_change)

        device.set("metrics:level", 10)

        on_modify.assert_called_once_with(device)
        on_change.assert_called_once_with(device)

    def test_same_value_fires_change_only(self):
        """Re-writing the same value fires change only."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": 10})
        on_modify, on_change = MagicMock(), MagicMock()
        registry.on(MODIFY_LEVEL_EVENT, on_modify)
        registry.on(CHANGE_LEVEL_EVENT, on_change)

        device.set("metrics:level", 10)

        on_modify.assert_not_called()
        on_change.assert_called_once_with(device)

    def test_other_metrics_silent(self):
        """Writes to other attributes fire nothing."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a")
        handler = MagicMock()
        registry.on(CHANGE_LEVEL_EVENT, handler)

        device.set("metrics:title", "Lamp")

        handler.assert_not_called()

    def test_handler_error_isolated(self, caplog):
        """A failing handler is logged and others still run."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": 0})
        good = MagicMock()
        registry.on(MODIFY_LEVEL_EVENT, MagicMock(side_effect=RuntimeError("boom")))
        registry.on(MODIFY_LEVEL_EVENT, good)

        with caplog.at_level(logging.ERROR, logger="zway_bridge.registry"):
            device.set("metrics:level", 1)

        good.assert_called_once_with(device)
        assert len(caplog.records) == 1


class TestMemoryDeviceCommands:
    """Tests for perform_command()."""

    def test_exact_level(self):
        """exact with a level sets the metric."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": 0})
        device.perform_command("exact", {"level": 42})
        assert device.get("metrics:level") == 42
        assert device.commands == [("exact", {"level": 42})]

    def test_on_off_numeric(self):
        """on/off on a numeric device sets 99/0."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": 0})
        device.perform_command("on")
        assert device.get("metrics:level") == 99
        device.perform_command("off")
        assert device.get("metrics:level") == 0

    def test_on_off_symbolic(self):
        """on/off on a binary device sets the symbol."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": "off"})
        device.perform_command("on")
        assert device.get("metrics:level") == "on"

    def test_other_commands_recorded(self):
        """Unknown commands are recorded without changing state."""
        registry = MemoryDeviceRegistry()
        device = registry.add("a", {"metrics:level": "closed"})
        device.perform_command("exact", {"red": 1, "green": 2, "blue": 3})
        device.perform_command("open")
        assert device.get("metrics:level") == "closed"
        assert [c for c, _ in device.commands] == ["exact", "open"]
