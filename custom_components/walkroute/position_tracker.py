"""
PositionTracker — live origin feed backed by a Home Assistant entity.

The feed is the state of a device_tracker / person / zone entity carrying
latitude and longitude attributes. Every good reading is forwarded and
persisted; every bad one is reported as a FeedError and tracking goes on.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Callable

from homeassistant.const import ATTR_LATITUDE, ATTR_LONGITUDE, STATE_UNAVAILABLE, STATE_UNKNOWN
from homeassistant.core import CALLBACK_TYPE, Event, HomeAssistant, State, callback
from homeassistant.helpers.event import async_track_state_change_event

from .errors import FeedError
from .models import Coordinate
from .storage import PersistenceAdapter

_LOGGER = logging.getLogger(__name__)

UpdateCallback = Callable[[Coordinate], None]
ErrorCallback = Callable[[FeedError], None]


@dataclasses.dataclass
class TrackerHandle:
    """Subscription handle returned by PositionTracker.start."""

    entity_id: str
    unsubscribe: CALLBACK_TYPE | None = None

    @property
    def active(self) -> bool:
        return self.unsubscribe is not None


def coordinate_from_state(entity_id: str, state: State | None) -> Coordinate:
    """Extract a Coordinate from an entity state or raise FeedError."""
    if state is None:
        raise FeedError(f"Position source {entity_id} does not exist")
    if state.state in (STATE_UNAVAILABLE, STATE_UNKNOWN):
        raise FeedError(f"Position source {entity_id} is {state.state}")

    lat = state.attributes.get(ATTR_LATITUDE)
    lng = state.attributes.get(ATTR_LONGITUDE)
    if lat is None or lng is None:
        raise FeedError(f"Position source {entity_id} has no coordinates")
    try:
        return Coordinate.checked(lat, lng)
    except ValueError as exc:
        raise FeedError(f"Position source {entity_id} reported {exc}") from exc


class PositionTracker:
    """Watches one entity and reports its position."""

    def __init__(
        self,
        hass: HomeAssistant,
        entity_id: str,
        persistence: PersistenceAdapter | None = None,
    ) -> None:
        self.hass = hass
        self.entity_id = entity_id
        self._persistence = persistence

    @callback
    def start(self, on_update: UpdateCallback, on_error: ErrorCallback) -> TrackerHandle:
        """
        Report the current position once, then subscribe to changes.

        Both callbacks run on the event loop.
        """

        @callback
        def _handle_state(state: State | None) -> None:
            try:
                coordinate = coordinate_from_state(self.entity_id, state)
            except FeedError as err:
                _LOGGER.warning("%s", err)
                on_error(err)
                return
            self._persist(coordinate)
            on_update(coordinate)

        @callback
        def _state_changed(event: Event) -> None:
            new_state = event.data.get("new_state")
            old_state = event.data.get("old_state")
            if (
                new_state is not None
                and old_state is not None
                and new_state.attributes.get(ATTR_LATITUDE) == old_state.attributes.get(ATTR_LATITUDE)
                and new_state.attributes.get(ATTR_LONGITUDE) == old_state.attributes.get(ATTR_LONGITUDE)
                and new_state.state == old_state.state
            ):
                # Attribute-only change unrelated to position
                return
            _handle_state(new_state)

        handle = TrackerHandle(self.entity_id)
        _handle_state(self.hass.states.get(self.entity_id))
        handle.unsubscribe = async_track_state_change_event(
            self.hass, [self.entity_id], _state_changed
        )
        _LOGGER.debug("Tracking position of %s", self.entity_id)
        return handle

    @callback
    def stop(self, handle: TrackerHandle | None) -> None:
        """Release the subscription; safe to call more than once."""
        if handle is None or handle.unsubscribe is None:
            return
        handle.unsubscribe()
        handle.unsubscribe = None
        _LOGGER.debug("Stopped tracking %s", handle.entity_id)

    def _persist(self, coordinate: Coordinate) -> None:
        if self._persistence is None:
            return
        try:
            self._persistence.save_origin(coordinate)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Failed to persist location %s: %s", coordinate, exc)
