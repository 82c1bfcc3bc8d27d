"""
Service handlers for the Walk Route integration.

walkroute.set_destination          — destination from a map point
walkroute.set_destination_address  — destination from an address lookup
walkroute.clear_destination        — back to idle
walkroute.refresh_route            — recompute now

Each service targets the entry given by entry_id, or every loaded entry.
"""
from __future__ import annotations

import logging

import homeassistant.helpers.config_validation as cv
import voluptuous as vol
from homeassistant.const import ATTR_LATITUDE, ATTR_LONGITUDE
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError

from .const import (
    ATTR_ADDRESS,
    ATTR_ENTRY_ID,
    DOMAIN,
    SERVICE_CLEAR_DESTINATION,
    SERVICE_REFRESH_ROUTE,
    SERVICE_SET_DESTINATION,
    SERVICE_SET_DESTINATION_ADDRESS,
)
from .coordinator import WalkRouteCoordinator
from .errors import ResolutionError
from .models import Coordinate

_LOGGER = logging.getLogger(__name__)

BASE_SCHEMA = vol.Schema({vol.Optional(ATTR_ENTRY_ID): cv.string})

SET_DESTINATION_SCHEMA = BASE_SCHEMA.extend(
    {
        vol.Required(ATTR_LATITUDE): cv.latitude,
        vol.Required(ATTR_LONGITUDE): cv.longitude,
    }
)

SET_DESTINATION_ADDRESS_SCHEMA = BASE_SCHEMA.extend(
    {vol.Required(ATTR_ADDRESS): vol.All(cv.string, vol.Length(min=1))}
)


def _target_coordinators(hass: HomeAssistant, call: ServiceCall) -> list[WalkRouteCoordinator]:
    """Coordinators addressed by a service call."""
    coordinators: dict[str, WalkRouteCoordinator] = hass.data.get(DOMAIN, {})
    entry_id = call.data.get(ATTR_ENTRY_ID)
    if entry_id:
        if entry_id not in coordinators:
            raise ServiceValidationError(f"Walk Route entry {entry_id} is not loaded")
        return [coordinators[entry_id]]
    if not coordinators:
        raise ServiceValidationError("No Walk Route entries are loaded")
    return list(coordinators.values())


def async_register_services(hass: HomeAssistant) -> None:
    """Register the integration services once per HA instance."""

    async def _set_destination(call: ServiceCall) -> None:
        coordinate = Coordinate(call.data[ATTR_LATITUDE], call.data[ATTR_LONGITUDE])
        for coordinator in _target_coordinators(hass, call):
            coordinator.set_destination_point(coordinate)

    async def _set_destination_address(call: ServiceCall) -> None:
        address = call.data[ATTR_ADDRESS]
        failed = 0
        for coordinator in _target_coordinators(hass, call):
            try:
                await coordinator.async_set_destination_address(address, raise_on_failure=True)
            except ResolutionError:
                failed += 1
        if failed:
            raise HomeAssistantError(f"Could not resolve address '{address}'")

    async def _clear_destination(call: ServiceCall) -> None:
        for coordinator in _target_coordinators(hass, call):
            coordinator.clear_destination()

    async def _refresh_route(call: ServiceCall) -> None:
        for coordinator in _target_coordinators(hass, call):
            coordinator.refresh_route()

    if hass.services.has_service(DOMAIN, SERVICE_SET_DESTINATION):
        return

    hass.services.async_register(
        DOMAIN, SERVICE_SET_DESTINATION, _set_destination, schema=SET_DESTINATION_SCHEMA
    )
    hass.services.async_register(
        DOMAIN,
        SERVICE_SET_DESTINATION_ADDRESS,
        _set_destination_address,
        schema=SET_DESTINATION_ADDRESS_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_CLEAR_DESTINATION, _clear_destination, schema=BASE_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_REFRESH_ROUTE, _refresh_route, schema=BASE_SCHEMA
    )
    _LOGGER.debug("Registered %s services", DOMAIN)
