"""
Platform for Walk Route sensors.
This module is responsible for setting up the route state, ETA, distance,
steps and overlay sensor entities and exposing the coordinator's snapshot.
"""
from __future__ import annotations

import logging
from typing import Any

from homeassistant import config_entries
from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from custom_components.walkroute.const import CONF_ENTRY_NAME, CONF_GUID
from custom_components.walkroute.coordinator import WalkRouteCoordinator
from custom_components.walkroute.models import RouteState

_LOGGER = logging.getLogger(__name__)


class WalkRouteSensor(CoordinatorEntity[WalkRouteCoordinator], SensorEntity):
    """Common naming and device info for every Walk Route sensor."""

    def __init__(self, coordinator: WalkRouteCoordinator, key: str, name: str, icon: str) -> None:
        """Initialize the sensor."""
        super().__init__(coordinator)
        entry_name = coordinator.entry_data.get(CONF_ENTRY_NAME) or "Walk Route"
        self._attr_unique_id = f"walkroute_{coordinator.entry_data[CONF_GUID]}_{key}"
        self._attr_name = f"{entry_name} {name}"
        self._attr_icon = icon

    @property
    def device_info(self) -> DeviceInfo | None:
        """Return the device info."""
        return DeviceInfo(**self.coordinator.get_device_info())


class WalkRouteStateSensor(WalkRouteSensor):
    """State of the route-maintenance state machine."""

    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = [state.value for state in RouteState]

    def __init__(self, coordinator: WalkRouteCoordinator) -> None:
        super().__init__(coordinator, "state", "Route State", "mdi:map-marker-path")

    @property
    def native_value(self) -> str:
        return self.coordinator.data.state.value

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        data = self.coordinator.data
        attributes: dict[str, Any] = {
            "request_id": data.request_id,
            "last_error": data.last_error,
        }
        destination = data.destination
        if destination is not None:
            attributes["destination_source"] = destination.source.value
            if destination.display_name:
                attributes["destination_name"] = destination.display_name
        clicked = data.clicked_coordinates
        if clicked is not None:
            attributes["clicked_latitude"] = clicked.latitude
            attributes["clicked_longitude"] = clicked.longitude
        return attributes


class WalkRouteEtaSensor(WalkRouteSensor):
    """Estimated walking time, as reported by the routing backend."""

    def __init__(self, coordinator: WalkRouteCoordinator) -> None:
        super().__init__(coordinator, "eta", "ETA", "mdi:clock-outline")

    @property
    def native_value(self) -> str | None:
        return self.coordinator.data.duration_text or None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        route = self.coordinator.data.route
        if route is None or not route.legs:
            return {}
        return {"duration_seconds": round(route.legs[0].duration_s)}


class WalkRouteDistanceSensor(WalkRouteSensor):
    """Remaining walking distance."""

    def __init__(self, coordinator: WalkRouteCoordinator) -> None:
        super().__init__(coordinator, "distance", "Distance", "mdi:map-marker-distance")

    @property
    def native_value(self) -> str | None:
        return self.coordinator.data.distance_text or None

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        route = self.coordinator.data.route
        if route is None or not route.legs:
            return {}
        return {"distance_meters": round(route.legs[0].distance_m)}


class WalkRouteStepsSensor(WalkRouteSensor):
    """Number of turn-by-turn steps; the instructions are attributes."""

    def __init__(self, coordinator: WalkRouteCoordinator) -> None:
        super().__init__(coordinator, "steps", "Steps", "mdi:format-list-numbered")

    @property
    def native_value(self) -> int | None:
        if self.coordinator.data.route is None:
            return None
        return len(self.coordinator.data.steps)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {"steps": [step.instruction_html for step in self.coordinator.data.steps]}


class WalkRouteOverlaySensor(WalkRouteSensor):
    """Directional overlay: polyline points and arrow markers."""

    def __init__(self, coordinator: WalkRouteCoordinator) -> None:
        super().__init__(coordinator, "overlay", "Overlay", "mdi:arrow-decision")

    @property
    def native_value(self) -> int | None:
        overlay = self.coordinator.data.overlay
        if overlay is None:
            return None
        return len(overlay.arrow_markers)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        overlay = self.coordinator.data.overlay
        if overlay is None:
            return {"polyline": [], "arrows": []}
        return {
            "polyline": [[p.latitude, p.longitude] for p in overlay.polyline_points],
            "arrows": [
                {
                    "latitude": arrow.position.latitude,
                    "longitude": arrow.position.longitude,
                    "offset": arrow.offset,
                }
                for arrow in overlay.arrow_markers
            ],
        }


async def async_setup_entry(
    hass: HomeAssistant,
    config_entry: config_entries.ConfigEntry,
    async_add_entities,
):
    """Add sensors for passed config_entry in HA."""
    coordinator: WalkRouteCoordinator = config_entry.runtime_data
    _LOGGER.debug("Adding Walk Route sensors for %s", config_entry.entry_id)
    async_add_entities(
        [
            WalkRouteStateSensor(coordinator),
            WalkRouteEtaSensor(coordinator),
            WalkRouteDistanceSensor(coordinator),
            WalkRouteStepsSensor(coordinator),
            WalkRouteOverlaySensor(coordinator),
        ]
    )
