"""
PersistenceAdapter — key/value persistence of the last origin and destination.

Backed by a Home Assistant Store. Writes are coalesced with
Store.async_delay_save and never awaited by the caller.
"""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .const import (
    DEFAULT_ORIGIN,
    KEY_DESTINATION,
    KEY_LOCATION,
    STORAGE_KEY_PREFIX,
    STORAGE_SAVE_DELAY,
    STORAGE_VERSION,
)
from .models import Coordinate, Destination

_LOGGER = logging.getLogger(__name__)


class PersistenceAdapter:
    """Durable get/set for the "location" and "destination" keys."""

    def __init__(self, hass: HomeAssistant, guid: str) -> None:
        self._store: Store = Store(hass, STORAGE_VERSION, f"{STORAGE_KEY_PREFIX}{guid}")
        self._data: dict[str, Any] = {}
        self._dirty: bool = False

    async def async_load(self) -> None:
        """Read the store once; unreadable contents start from empty."""
        try:
            raw = await self._store.async_load()
        except (HomeAssistantError, ValueError, OSError) as exc:
            _LOGGER.error("Failed to load stored route state, starting fresh: %s", exc)
            raw = None
        self._data = dict(raw) if isinstance(raw, dict) else {}

    def get(self, key: str) -> Any:
        return self._data.get(key)

    @callback
    def set(self, key: str, value: Any) -> None:
        """Record value and schedule a delayed write; failures are only logged."""
        self._data[key] = value
        self._dirty = True
        try:
            self._store.async_delay_save(self._data_to_save, STORAGE_SAVE_DELAY)
        except (HomeAssistantError, RuntimeError) as exc:
            _LOGGER.error("Failed to schedule save of '%s': %s", key, exc)

    def _data_to_save(self) -> dict[str, Any]:
        return dict(self._data)

    async def async_flush(self) -> None:
        """Write pending changes now instead of waiting for the delayed save."""
        if not self._dirty:
            return
        try:
            await self._store.async_save(self._data_to_save())
        except (HomeAssistantError, OSError) as exc:
            _LOGGER.error("Failed to write route state: %s", exc)
            return
        self._dirty = False

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def get_origin(self) -> Coordinate:
        """Stored location, or the default origin when absent or corrupt."""
        raw = self.get(KEY_LOCATION)
        if raw is not None:
            try:
                return Coordinate.from_dict(raw)
            except ValueError as exc:
                _LOGGER.warning("Ignoring corrupt stored location %r: %s", raw, exc)
        return Coordinate(*DEFAULT_ORIGIN)

    def get_destination(self) -> Destination | None:
        """Stored destination, or None when absent or corrupt."""
        raw = self.get(KEY_DESTINATION)
        if raw is None:
            return None
        try:
            return Destination.from_dict(raw)
        except ValueError as exc:
            _LOGGER.warning("Ignoring corrupt stored destination %r: %s", raw, exc)
            return None

    @callback
    def save_origin(self, origin: Coordinate) -> None:
        self.set(KEY_LOCATION, origin.as_dict())

    @callback
    def save_destination(self, destination: Destination | None) -> None:
        self.set(KEY_DESTINATION, destination.as_dict() if destination is not None else None)
