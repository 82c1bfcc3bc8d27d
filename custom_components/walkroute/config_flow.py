"""Config flow for Walk Route integration."""
from __future__ import annotations
import logging
import uuid
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    CONF_ENTRY_NAME,
    CONF_GEOCODING_URL,
    CONF_GUID,
    CONF_ORIGIN_EPSILON,
    CONF_REFRESH_INTERVAL,
    CONF_ROUTING_URL,
    CONF_TRACKED_ENTITY,
    CONF_UNITS,
    DEFAULT_GEOCODING_URL,
    DEFAULT_ORIGIN_EPSILON,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_ROUTING_URL,
    DOMAIN,
    MIN_REFRESH_INTERVAL,
    UNITS_IMPERIAL,
    UNITS_METRIC,
)
from .requests import check_availability

refresh_interval = vol.All(vol.Coerce(int), vol.Range(min=MIN_REFRESH_INTERVAL))
origin_epsilon = vol.All(vol.Coerce(float), vol.Range(min=0))
# Only entities that carry latitude/longitude attributes can feed positions
tracked_entity = vol.All(cv.entity_id, cv.entity_domain(["device_tracker", "person", "zone"]))
units = vol.In([UNITS_METRIC, UNITS_IMPERIAL])

_LOGGER = logging.getLogger(__name__)
CONFIG_SCHEMA = vol.Schema(
            {
                vol.Required(CONF_ENTRY_NAME, default='Walk Route'): cv.string,
                vol.Required(CONF_TRACKED_ENTITY, default=''): cv.string,
                vol.Required(CONF_ROUTING_URL, default=DEFAULT_ROUTING_URL): cv.string,
                vol.Required(CONF_GEOCODING_URL, default=DEFAULT_GEOCODING_URL): cv.string,
                vol.Required(CONF_UNITS, default=UNITS_METRIC): units,
            }
        )


def _validate_common(user_input: Dict[str, Any]) -> Dict[str, str]:
    """Field checks shared by the user step and the options step."""
    errors: Dict[str, str] = {}
    try:
        tracked_entity(user_input.get(CONF_TRACKED_ENTITY))
    except vol.Invalid:
        errors['base'] = 'invalid_entity'
    if not user_input.get(CONF_ROUTING_URL):
        errors['base'] = 'routing_url_required'
    return errors


async def _validate_backend(routing_url: str) -> str | None:
    """Return an error key when the routing backend cannot be reached."""
    if not await check_availability(routing_url):
        return 'cannot_connect'
    return None


class CustomFlow(config_entries.ConfigFlow, domain=DOMAIN):
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            self.data = dict(user_input)
            # Create new guid for the entry
            self.data[CONF_GUID] = str(uuid.uuid4())
            # If entry_name is null or empty string, add error
            if not self.data.get(CONF_ENTRY_NAME):
                errors['base'] = 'entry_name_required'
            errors.update(_validate_common(self.data))
            if not errors:
                # One entry per tracked entity
                self._async_abort_entries_match({CONF_TRACKED_ENTITY: self.data[CONF_TRACKED_ENTITY]})
                backend_error = await _validate_backend(self.data[CONF_ROUTING_URL])
                if backend_error:
                    errors['base'] = backend_error
            if not errors:
                return self.async_create_entry(title=f"{self.data[CONF_ENTRY_NAME]}", data=self.data)

        return self.async_show_form(step_id="user", data_schema=CONFIG_SCHEMA, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handles options flow for the component."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    def _default(self, key: str, fallback: Any) -> Any:
        """Options override data; data overrides the fallback."""
        if key in self._entry.options:
            return self._entry.options[key]
        if key in self._entry.data:
            return self._entry.data[key]
        return fallback

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}

        if user_input is not None:
            if not user_input.get(CONF_ENTRY_NAME):
                errors['base'] = 'entry_name_required'
            errors.update(_validate_common(user_input))
            if not errors:
                # Changing options reloads the entry through the update listener
                return self.async_create_entry(title="", data=dict(user_input))

        OPTIONS_SCHEMA = vol.Schema(
            {
                vol.Required(CONF_ENTRY_NAME, default=self._default(CONF_ENTRY_NAME, 'Walk Route')): cv.string,
                vol.Required(CONF_TRACKED_ENTITY, default=self._default(CONF_TRACKED_ENTITY, '')): cv.string,
                vol.Required(CONF_ROUTING_URL, default=self._default(CONF_ROUTING_URL, DEFAULT_ROUTING_URL)): cv.string,
                vol.Required(CONF_GEOCODING_URL, default=self._default(CONF_GEOCODING_URL, DEFAULT_GEOCODING_URL)): cv.string,
                vol.Required(CONF_UNITS, default=self._default(CONF_UNITS, UNITS_METRIC)): units,
                vol.Required(CONF_REFRESH_INTERVAL, default=self._default(CONF_REFRESH_INTERVAL, DEFAULT_REFRESH_INTERVAL)): refresh_interval,
                vol.Required(CONF_ORIGIN_EPSILON, default=self._default(CONF_ORIGIN_EPSILON, DEFAULT_ORIGIN_EPSILON)): origin_epsilon,
            }
        )
        return self.async_show_form(step_id="init", data_schema=OPTIONS_SCHEMA, errors=errors)
