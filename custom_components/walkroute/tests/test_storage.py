"""
Tests for PersistenceAdapter: tolerant loading, typed accessors and
delayed saves.
"""

from __future__ import annotations

import unittest
from unittest.mock import AsyncMock, patch

from homeassistant.exceptions import HomeAssistantError

from custom_components.walkroute.const import DEFAULT_ORIGIN, STORAGE_SAVE_DELAY
from custom_components.walkroute.models import Coordinate, Destination, DestinationSource
from custom_components.walkroute.storage import PersistenceAdapter

from .test_common import DESTINATION, ORIGIN, make_hass


def make_adapter(stored=None, load_error: Exception | None = None) -> PersistenceAdapter:
    with patch("custom_components.walkroute.storage.Store") as store_cls:
        adapter = PersistenceAdapter(make_hass(), "test-guid")
    store = store_cls.return_value
    store.async_save = AsyncMock()
    if load_error is not None:
        store.async_load = AsyncMock(side_effect=load_error)
    else:
        store.async_load = AsyncMock(return_value=stored)
    return adapter


class TestStoreKey(unittest.TestCase):

    def test_one_store_per_entry(self):
        with patch("custom_components.walkroute.storage.Store") as store_cls:
            PersistenceAdapter(make_hass(), "abc")
        self.assertEqual(store_cls.call_args[0][2], "walkroute.abc")


class TestLoad(unittest.IsolatedAsyncioTestCase):

    async def test_empty_store_gives_defaults(self):
        adapter = make_adapter(None)
        await adapter.async_load()

        self.assertEqual(adapter.get_origin(), Coordinate(*DEFAULT_ORIGIN))
        self.assertIsNone(adapter.get_destination())

    async def test_stored_values_are_restored(self):
        adapter = make_adapter(
            {
                "location": {"lat": ORIGIN.latitude, "lng": ORIGIN.longitude},
                "destination": Destination(DESTINATION, DestinationSource.ADDRESS, query="x").as_dict(),
            }
        )
        await adapter.async_load()

        self.assertEqual(adapter.get_origin(), ORIGIN)
        destination = adapter.get_destination()
        self.assertEqual(destination.coordinate, DESTINATION)
        self.assertEqual(destination.query, "x")

    async def test_corrupt_values_fall_back(self):
        adapter = make_adapter(
            {"location": {"lat": 999, "lng": 0}, "destination": ["not", "a", "mapping"]}
        )
        await adapter.async_load()

        self.assertEqual(adapter.get_origin(), Coordinate(*DEFAULT_ORIGIN))
        self.assertIsNone(adapter.get_destination())

    async def test_non_dict_store_is_ignored(self):
        adapter = make_adapter(["garbage"])
        await adapter.async_load()
        self.assertIsNone(adapter.get("location"))

    async def test_unreadable_store_starts_fresh(self):
        adapter = make_adapter(load_error=HomeAssistantError("bad json"))
        await adapter.async_load()
        self.assertEqual(adapter.get_origin(), Coordinate(*DEFAULT_ORIGIN))


class TestSave(unittest.TestCase):

    def test_set_schedules_delayed_save(self):
        adapter = make_adapter()

        adapter.save_origin(ORIGIN)

        store = adapter._store
        store.async_delay_save.assert_called_once()
        data_func, delay = store.async_delay_save.call_args[0]
        self.assertEqual(delay, STORAGE_SAVE_DELAY)
        self.assertEqual(data_func(), {"location": ORIGIN.as_dict()})

    def test_saved_destination_reads_back(self):
        adapter = make_adapter()

        adapter.save_destination(Destination(DESTINATION))
        self.assertEqual(adapter.get_destination(), Destination(DESTINATION))

        adapter.save_destination(None)
        self.assertIsNone(adapter.get_destination())

    def test_save_failure_is_swallowed(self):
        adapter = make_adapter()
        adapter._store.async_delay_save.side_effect = RuntimeError("no loop")

        adapter.save_origin(ORIGIN)

        self.assertEqual(adapter.get("location"), ORIGIN.as_dict())


class TestFlush(unittest.IsolatedAsyncioTestCase):

    async def test_flush_writes_pending_changes(self):
        adapter = make_adapter()
        adapter.save_destination(None)

        await adapter.async_flush()

        adapter._store.async_save.assert_awaited_once_with({"destination": None})

    async def test_flush_without_changes_leaves_disk_alone(self):
        adapter = make_adapter(stored={"destination": Destination(DESTINATION).as_dict()})
        await adapter.async_load()

        await adapter.async_flush()

        adapter._store.async_save.assert_not_awaited()

    async def test_second_flush_is_a_no_op(self):
        adapter = make_adapter()
        adapter.save_origin(ORIGIN)

        await adapter.async_flush()
        await adapter.async_flush()

        adapter._store.async_save.assert_awaited_once()

    async def test_write_failure_is_logged(self):
        adapter = make_adapter()
        adapter._store.async_save.side_effect = OSError("disk full")
        adapter.save_origin(ORIGIN)

        await adapter.async_flush()

        self.assertEqual(adapter.get("location"), ORIGIN.as_dict())
