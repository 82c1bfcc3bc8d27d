"""
Unit tests for __init__.py entry setup and unload.

Coverage:
- cannot_connect → raises ConfigEntryNotReady before coordinator is created
- reachable backend + coordinator success → returns True, runtime_data set
- options are layered over entry data before the coordinator sees them
- coordinator first-refresh fails → coordinator shut down, ConfigEntryNotReady propagates
- unload → platforms unloaded, coordinator shut down and forgotten
"""

from __future__ import annotations

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from homeassistant.exceptions import ConfigEntryNotReady

from custom_components.walkroute import (
    PLATFORMS,
    _merged_entry_data,
    async_setup,
    async_setup_entry,
    async_unload_entry,
)
from custom_components.walkroute.const import DOMAIN

from .test_common import make_entry_data

VALIDATE_BACKEND = "custom_components.walkroute._validate_backend"
COORDINATOR = "custom_components.walkroute.WalkRouteCoordinator"


def _make_mock_entry(options: dict | None = None) -> MagicMock:
    """Return a minimal mock ConfigEntry."""
    entry = MagicMock()
    entry.entry_id = "entry-1"
    entry.data = make_entry_data()
    entry.options = options or {}
    entry.async_on_unload = MagicMock()
    entry.add_update_listener = MagicMock(return_value=MagicMock())
    return entry


def _make_hass() -> MagicMock:
    hass = MagicMock()
    hass.data = {}
    hass.config_entries.async_forward_entry_setups = AsyncMock()
    hass.config_entries.async_unload_platforms = AsyncMock(return_value=True)
    return hass


def _make_mock_coordinator(first_refresh_error: Exception | None = None) -> MagicMock:
    coordinator = MagicMock()
    coordinator.async_config_entry_first_refresh = AsyncMock(side_effect=first_refresh_error)
    coordinator.async_shutdown = AsyncMock()
    return coordinator


class TestAsyncSetup(unittest.IsolatedAsyncioTestCase):

    async def test_registers_services(self):
        hass = _make_hass()
        with patch("custom_components.walkroute.async_register_services") as register:
            self.assertTrue(await async_setup(hass, {}))
        register.assert_called_once_with(hass)
        self.assertEqual(hass.data[DOMAIN], {})


class TestAsyncSetupEntry(unittest.IsolatedAsyncioTestCase):
    """Tests for async_setup_entry in __init__.py."""

    async def test_cannot_connect_raises_config_entry_not_ready(self):
        hass = _make_hass()

        with patch(VALIDATE_BACKEND, new=AsyncMock(return_value="cannot_connect")), \
             patch(COORDINATOR) as MockCoord:
            with self.assertRaises(ConfigEntryNotReady) as ctx:
                await async_setup_entry(hass, _make_mock_entry())

        self.assertIn("not reachable", str(ctx.exception))
        MockCoord.assert_not_called()

    async def test_reachable_backend_completes_setup(self):
        hass = _make_hass()
        entry = _make_mock_entry()
        coordinator = _make_mock_coordinator()

        with patch(VALIDATE_BACKEND, new=AsyncMock(return_value=None)), \
             patch(COORDINATOR, return_value=coordinator):
            result = await async_setup_entry(hass, entry)

        self.assertTrue(result)
        self.assertIs(entry.runtime_data, coordinator)
        self.assertIs(hass.data[DOMAIN]["entry-1"], coordinator)
        coordinator.async_config_entry_first_refresh.assert_awaited_once()
        hass.config_entries.async_forward_entry_setups.assert_awaited_once_with(entry, PLATFORMS)
        entry.async_on_unload.assert_called_once()

    async def test_options_override_entry_data(self):
        hass = _make_hass()
        entry = _make_mock_entry(options={"refresh_interval": 90, "units": "metric"})

        with patch(VALIDATE_BACKEND, new=AsyncMock(return_value=None)), \
             patch(COORDINATOR, return_value=_make_mock_coordinator()) as MockCoord:
            await async_setup_entry(hass, entry)

        entry_data = MockCoord.call_args[0][1]
        self.assertEqual(entry_data["refresh_interval"], 90)
        self.assertEqual(entry_data["units"], "metric")
        self.assertEqual(entry_data["guid"], "test-guid")

    async def test_first_refresh_failure_shuts_coordinator_down(self):
        hass = _make_hass()
        coordinator = _make_mock_coordinator(ConfigEntryNotReady("refresh failed"))

        with patch(VALIDATE_BACKEND, new=AsyncMock(return_value=None)), \
             patch(COORDINATOR, return_value=coordinator):
            with self.assertRaises(ConfigEntryNotReady):
                await async_setup_entry(hass, _make_mock_entry())

        coordinator.async_shutdown.assert_awaited_once()
        hass.config_entries.async_forward_entry_setups.assert_not_awaited()


class TestMergedEntryData(unittest.TestCase):

    def test_options_win(self):
        entry = _make_mock_entry(options={"entry_name": "Renamed"})
        self.assertEqual(_merged_entry_data(entry)["entry_name"], "Renamed")

    def test_no_options(self):
        entry = _make_mock_entry()
        entry.options = None
        self.assertEqual(_merged_entry_data(entry), make_entry_data())


class TestAsyncUnloadEntry(unittest.IsolatedAsyncioTestCase):

    async def test_unload_shuts_coordinator_down(self):
        hass = _make_hass()
        coordinator = _make_mock_coordinator()
        hass.data[DOMAIN] = {"entry-1": coordinator}

        result = await async_unload_entry(hass, _make_mock_entry())

        self.assertTrue(result)
        coordinator.async_shutdown.assert_awaited_once()
        self.assertNotIn("entry-1", hass.data[DOMAIN])

    async def test_failed_platform_unload_keeps_coordinator(self):
        hass = _make_hass()
        hass.config_entries.async_unload_platforms = AsyncMock(return_value=False)
        coordinator = _make_mock_coordinator()
        hass.data[DOMAIN] = {"entry-1": coordinator}

        result = await async_unload_entry(hass, _make_mock_entry())

        self.assertFalse(result)
        coordinator.async_shutdown.assert_not_awaited()
        self.assertIn("entry-1", hass.data[DOMAIN])

    async def test_unload_without_coordinator(self):
        hass = _make_hass()
        self.assertTrue(await async_unload_entry(hass, _make_mock_entry()))
