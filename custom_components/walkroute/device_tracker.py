"""
Platform for Walk Route position trackers.
This module is responsible for setting up the origin and destination
tracker entities so both points show up on the map.
"""
from __future__ import annotations

import logging
from typing import Callable

from homeassistant.components.device_tracker import SourceType
from homeassistant.components.device_tracker.config_entry import TrackerEntity
from homeassistant.core import HomeAssistant
from homeassistant import config_entries
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from custom_components.walkroute.const import CONF_ENTRY_NAME, CONF_GUID
from custom_components.walkroute.coordinator import WalkRouteCoordinator
from custom_components.walkroute.coordinator_data import CoordinatorData
from custom_components.walkroute.models import Coordinate

_LOGGER = logging.getLogger(__name__)


def _origin(data: CoordinatorData) -> Coordinate | None:
    return data.origin


def _destination(data: CoordinatorData) -> Coordinate | None:
    return data.destination.coordinate if data.destination is not None else None


class WalkRouteTracker(CoordinatorEntity[WalkRouteCoordinator], TrackerEntity):
    """Base tracker reading one coordinate from the coordinator snapshot."""

    def __init__(
        self,
        coordinator: WalkRouteCoordinator,
        key: str,
        name: str,
        icon: str,
        select: Callable[[CoordinatorData], Coordinate | None],
    ) -> None:
        """Initialize the tracker."""
        super().__init__(coordinator)
        entry_name = coordinator.entry_data.get(CONF_ENTRY_NAME) or "Walk Route"
        self._attr_unique_id = f"walkroute_{coordinator.entry_data[CONF_GUID]}_{key}"
        self._attr_name = f"{entry_name} {name}"
        self._attr_icon = icon
        self._select = select

    def _coordinate(self) -> Coordinate | None:
        return self._select(self.coordinator.data)

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return DeviceInfo(**self.coordinator.get_device_info())

    @property
    def latitude(self) -> float | None:
        coordinate = self._coordinate()
        return coordinate.latitude if coordinate is not None else None

    @property
    def longitude(self) -> float | None:
        coordinate = self._coordinate()
        return coordinate.longitude if coordinate is not None else None

    @property
    def source_type(self) -> SourceType:
        """Return the source type, eg gps or router, of the device."""
        return SourceType.GPS


class WalkRouteOriginTracker(WalkRouteTracker):
    """Live origin as reported by the position feed."""

    def __init__(self, coordinator: WalkRouteCoordinator) -> None:
        super().__init__(coordinator, "origin", "Origin", "mdi:walk", _origin)


class WalkRouteDestinationTracker(WalkRouteTracker):
    """Current destination; has no location while idle."""

    def __init__(self, coordinator: WalkRouteCoordinator) -> None:
        super().__init__(
            coordinator, "destination", "Destination", "mdi:flag-checkered", _destination
        )


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add trackers for passed config_entry in HA."""
    coordinator: WalkRouteCoordinator = config_entry.runtime_data
    _LOGGER.debug("Adding Walk Route trackers for %s", config_entry.entry_id)
    async_add_entities(
        [
            WalkRouteOriginTracker(coordinator),
            WalkRouteDestinationTracker(coordinator),
        ]
    )
