import logging

import homeassistant.helpers.config_validation as cv
from homeassistant import config_entries, core
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from .const import CONF_ROUTING_URL, DEFAULT_ROUTING_URL, DOMAIN
from .coordinator import WalkRouteCoordinator
from .requests import check_availability
from .services import async_register_services

PLATFORMS: list[Platform] = [Platform.DEVICE_TRACKER, Platform.SENSOR]
CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)
_LOGGER = logging.getLogger(__name__)


async def async_setup(hass: core.HomeAssistant, config: dict) -> bool:
    """Set up the integration."""
    hass.data.setdefault(DOMAIN, {})
    async_register_services(hass)
    return True


def _merged_entry_data(entry: config_entries.ConfigEntry) -> dict:
    """Config-entry data with options layered on top."""
    return {**entry.data, **(entry.options or {})}


async def _validate_backend(entry_data: dict) -> str | None:
    """Return an error key when the routing backend cannot be reached."""
    url = entry_data.get(CONF_ROUTING_URL) or DEFAULT_ROUTING_URL
    if not await check_availability(url):
        return "cannot_connect"
    return None


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up platform from a ConfigEntry."""
    entry_data = _merged_entry_data(entry)

    error = await _validate_backend(entry_data)
    if error == "cannot_connect":
        raise ConfigEntryNotReady(
            f"Routing backend {entry_data.get(CONF_ROUTING_URL) or DEFAULT_ROUTING_URL} is not reachable"
        )

    coordinator = WalkRouteCoordinator(hass, entry_data)
    try:
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady:
        await coordinator.async_shutdown()
        raise

    entry.runtime_data = coordinator
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator

    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update."""
    # Reload the integration when the options change.
    await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry and release the coordinator's timer and feed."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unloaded:
        coordinator = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
        if coordinator is not None:
            await coordinator.async_shutdown()
    return unloaded
