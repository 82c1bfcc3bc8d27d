"""
DataUpdateCoordinator for the Walk Route integration.

Responsibilities:
- Own the current (origin, destination) pair and the route-maintenance
  state machine: Idle → Routing → Routed / Failed.
- Process every input as a discrete event through one dispatch entry point:
    origin update       from PositionTracker
    destination change  from DestinationResolver (point or address)
    destination clear   from the user
    refresh             from the periodic timer or a manual request
    route response      from RoutingService
- Fence route responses with a strictly increasing request id so a slow,
  superseded answer never replaces a newer route.
- Run the periodic refresh timer only while a destination is set.
- Push CoordinatorData snapshots to entities as soon as anything changes.
- Funnel every reported error to a single observer interface.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_time_interval
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .api.geocoding import GeocodingService
from .api.routing import RoutingService
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
    EVENT_ROUTE_ERROR,
    UNITS_IMPERIAL,
    VERSION,
)
from .coordinator_data import CoordinatorData
from .coordinator_utils import moved_beyond
from .destination_resolver import DestinationResolver
from .errors import FeedError, ResolutionError, RoutingError, WalkRouteError
from .geometry import derive_overlay
from .models import Coordinate, Destination, RouteRequest, RouteResponse, RouteState
from .position_tracker import PositionTracker, TrackerHandle
from .storage import PersistenceAdapter

__all__ = ["CoordinatorData", "WalkRouteCoordinator"]

_LOGGER = logging.getLogger(__name__)

ErrorListener = Callable[[WalkRouteError], None]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class OriginUpdated:
    origin: Coordinate


@dataclasses.dataclass(frozen=True)
class DestinationChanged:
    destination: Destination


@dataclasses.dataclass(frozen=True)
class DestinationCleared:
    pass


@dataclasses.dataclass(frozen=True)
class RefreshRequested:
    reason: str = "manual"


@dataclasses.dataclass(frozen=True)
class RouteResponseReceived:
    response: RouteResponse


# ---------------------------------------------------------------------------
# WalkRouteCoordinator — main coordinator
# ---------------------------------------------------------------------------

class WalkRouteCoordinator(DataUpdateCoordinator[CoordinatorData]):
    """
    Coordinator for the Walk Route integration.

    HA's own polling is disabled (update_interval=None); the coordinator
    runs its own refresh timer whose lifetime follows the destination.
    """

    def __init__(self, hass: HomeAssistant, entry_data: dict) -> None:
        """Initialize the coordinator from merged config-entry data and options."""
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=None,
        )
        self._entry_data = entry_data

        self.refresh_interval = timedelta(
            seconds=entry_data.get(CONF_REFRESH_INTERVAL, DEFAULT_REFRESH_INTERVAL)
        )
        self.origin_epsilon: float = float(
            entry_data.get(CONF_ORIGIN_EPSILON, DEFAULT_ORIGIN_EPSILON)
        )

        self.persistence = PersistenceAdapter(hass, entry_data[CONF_GUID])
        self.routing = RoutingService(
            entry_data.get(CONF_ROUTING_URL) or DEFAULT_ROUTING_URL,
            imperial=entry_data.get(CONF_UNITS) == UNITS_IMPERIAL,
        )
        self.resolver = DestinationResolver(
            GeocodingService(entry_data.get(CONF_GEOCODING_URL) or DEFAULT_GEOCODING_URL)
        )
        entity_id = entry_data.get(CONF_TRACKED_ENTITY)
        self.tracker = PositionTracker(hass, entity_id, self.persistence) if entity_id else None

        # Subscriptions owned by the coordinator
        self._tracker_handle: TrackerHandle | None = None
        self._unsub_timer: CALLBACK_TYPE | None = None
        self._route_tasks: set[asyncio.Task] = set()
        self._error_listeners: list[ErrorListener] = []

        # Request fence: only a response carrying this id may update the route
        self._latest_request_id: int = 0
        # Origin used by the most recent request; jitter is measured against it
        self._routed_origin: Coordinate | None = None
        # Bumped on every destination change or clear; address lookups that
        # finish after a bump are stale
        self._destination_generation: int = 0

        self._started: bool = False

        self._handlers: dict[type, Callable[[Any], asyncio.Task | None]] = {
            OriginUpdated: self._on_origin_updated,
            DestinationChanged: self._on_destination_changed,
            DestinationCleared: self._on_destination_cleared,
            RefreshRequested: self._on_refresh_requested,
            RouteResponseReceived: self._on_route_response,
        }

        self.data = CoordinatorData()

    # ------------------------------------------------------------------
    # HA entry point
    # ------------------------------------------------------------------

    async def _async_update_data(self) -> CoordinatorData:
        """
        Called by async_config_entry_first_refresh() and manual entity updates.

        First call: restores persisted state, starts tracking and, when a
        destination was restored, waits for its first route so the initial
        snapshot is complete.

        Subsequent calls: request a recompute in the background and return
        the current snapshot immediately.
        """
        if not self._started:
            task = await self.async_start()
            if task is not None:
                await task
            return self.data

        self.dispatch(RefreshRequested("update"))
        return self.data

    async def async_start(self) -> asyncio.Task | None:
        """Restore origin/destination, subscribe to the feed and route if needed."""
        if self._started:
            return None
        self._started = True

        await self.persistence.async_load()
        origin = self.persistence.get_origin()
        destination = self.persistence.get_destination()
        self._push(origin=origin)

        if self.tracker is not None:
            self._tracker_handle = self.tracker.start(self._on_position, self._on_feed_error)

        if destination is not None:
            _LOGGER.debug("Restored destination %s", destination.coordinate)
            return self.dispatch(DestinationChanged(destination))
        return None

    # ------------------------------------------------------------------
    # Public commands
    # ------------------------------------------------------------------

    @callback
    def set_destination_point(self, coordinate: Coordinate) -> None:
        """Destination from map interaction."""
        self.dispatch(DestinationChanged(self.resolver.from_point(coordinate)))

    async def async_set_destination_address(
        self, address: str, raise_on_failure: bool = False
    ) -> Destination | None:
        """
        Geocode address and make it the destination.

        On failure the ResolutionError goes to the error observer, nothing
        else changes, and None is returned. With raise_on_failure the error
        is raised afterwards instead. A lookup overtaken by a newer
        destination or a clear is dropped silently and returns None.
        """
        generation = self._destination_generation
        try:
            destination = await self.resolver.async_from_address(address)
        except ResolutionError as err:
            if generation != self._destination_generation:
                _LOGGER.debug("Dropping failed lookup of %r, destination changed meanwhile", address)
                return None
            _LOGGER.warning("%s", err)
            self._report_error(err)
            if raise_on_failure:
                raise
            return None
        if generation != self._destination_generation:
            _LOGGER.debug("Dropping lookup of %r, destination changed meanwhile", address)
            return None
        self.dispatch(DestinationChanged(destination))
        return destination

    @callback
    def clear_destination(self) -> None:
        self.dispatch(DestinationCleared())

    @callback
    def refresh_route(self) -> None:
        self.dispatch(RefreshRequested("manual"))

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    @callback
    def dispatch(self, event: Any) -> asyncio.Task | None:
        """
        Single entry point for every state transition.

        Returns the background route task when the event issued a request.
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event {event!r}")
        return handler(event)

    @callback
    def _on_origin_updated(self, event: OriginUpdated) -> asyncio.Task | None:
        if self.data.destination is None:
            self._push(origin=event.origin)
            return None

        if not moved_beyond(self._routed_origin, event.origin, self.origin_epsilon):
            _LOGGER.debug(
                "Origin moved less than %.1f m, keeping current route", self.origin_epsilon
            )
            self._push(origin=event.origin)
            return None

        return self._issue_request(origin=event.origin)

    @callback
    def _on_destination_changed(self, event: DestinationChanged) -> asyncio.Task | None:
        self._destination_generation += 1
        self.persistence.save_destination(event.destination)
        self._ensure_timer()
        # The previous route leads somewhere else; drop it
        return self._issue_request(
            destination=event.destination,
            route=None,
            overlay=None,
            last_error=None,
        )

    @callback
    def _on_destination_cleared(self, event: DestinationCleared) -> None:
        # Bumping the fence discards any response still in flight
        self._latest_request_id += 1
        self._destination_generation += 1
        self._routed_origin = None
        self._cancel_timer()
        self.persistence.save_destination(None)
        self._push(
            state=RouteState.IDLE,
            destination=None,
            route=None,
            overlay=None,
            last_error=None,
            request_id=self._latest_request_id,
        )
        return None

    @callback
    def _on_refresh_requested(self, event: RefreshRequested) -> asyncio.Task | None:
        if self.data.destination is None:
            return None
        _LOGGER.debug("Route refresh requested (%s)", event.reason)
        return self._issue_request()

    @callback
    def _on_route_response(self, event: RouteResponseReceived) -> None:
        response = event.response
        if response.request_id != self._latest_request_id or self.data.destination is None:
            _LOGGER.debug(
                "Discarding stale route response %s (latest is %s)",
                response.request_id, self._latest_request_id,
            )
            return None

        if response.ok:
            self._push(
                state=RouteState.ROUTED,
                route=response.route,
                overlay=derive_overlay(response.route),
                last_error=None,
            )
            return None

        error = response.error
        if not isinstance(error, WalkRouteError):
            error = RoutingError(str(error) if error is not None else "Empty routing response")
        # Keep the last good route on screen
        self._push(state=RouteState.FAILED, last_error=str(error))
        self._report_error(error)
        return None

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    @callback
    def _issue_request(self, **changes: Any) -> asyncio.Task | None:
        """Apply changes, enter Routing and launch a fenced route request."""
        data = dataclasses.replace(self.data, **changes)
        if data.destination is None:
            self.async_set_updated_data(data)
            return None
        if data.origin is None:
            # Origin not known yet; routing starts with the first position
            self.async_set_updated_data(dataclasses.replace(data, state=RouteState.ROUTING))
            return None

        self._latest_request_id += 1
        request = RouteRequest(
            origin=data.origin,
            destination=data.destination.coordinate,
            request_id=self._latest_request_id,
        )
        self._routed_origin = data.origin
        self.async_set_updated_data(
            dataclasses.replace(data, state=RouteState.ROUTING, request_id=request.request_id)
        )
        _LOGGER.debug(
            "Issuing route request %s: %s -> %s",
            request.request_id, request.origin, request.destination,
        )

        task = self.hass.async_create_task(self._async_execute(request))
        self._route_tasks.add(task)
        task.add_done_callback(self._route_tasks.discard)
        return task

    async def _async_execute(self, request: RouteRequest) -> None:
        """Await the routing backend and feed its answer back as an event."""
        try:
            response = await self.routing.async_route(request)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Unexpected error in route request %s: %s", request.request_id, exc)
            response = RouteResponse(request.request_id, error=RoutingError(str(exc)))
        self.dispatch(RouteResponseReceived(response))

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    @callback
    def _ensure_timer(self) -> None:
        if self._unsub_timer is None:
            self._unsub_timer = async_track_time_interval(
                self.hass, self._handle_timer, self.refresh_interval
            )

    @callback
    def _cancel_timer(self) -> None:
        if self._unsub_timer is not None:
            self._unsub_timer()
            self._unsub_timer = None

    @callback
    def _handle_timer(self, now: datetime) -> None:
        self.dispatch(RefreshRequested("timer"))

    # ------------------------------------------------------------------
    # Feed callbacks
    # ------------------------------------------------------------------

    @callback
    def _on_position(self, coordinate: Coordinate) -> None:
        self.dispatch(OriginUpdated(coordinate))

    @callback
    def _on_feed_error(self, error: FeedError) -> None:
        self._report_error(error)

    # ------------------------------------------------------------------
    # Error observer
    # ------------------------------------------------------------------

    @callback
    def async_add_error_listener(self, listener: ErrorListener) -> CALLBACK_TYPE:
        """Register an error observer; returns a callable that removes it."""
        self._error_listeners.append(listener)

        @callback
        def remove_listener() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return remove_listener

    @callback
    def _report_error(self, error: WalkRouteError) -> None:
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Error listener raised")
        self.hass.bus.async_fire(
            EVENT_ROUTE_ERROR,
            {
                "guid": self._entry_data.get(CONF_GUID),
                "error_type": error.error_type,
                "message": str(error),
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @callback
    def _push(self, **changes: Any) -> None:
        self.async_set_updated_data(dataclasses.replace(self.data, **changes))

    def get_device_info(self) -> dict:
        """Return the HA DeviceInfo dict shared by all entities of this entry."""
        return {
            "identifiers": {(DOMAIN, self._entry_data[CONF_GUID])},
            "name": self._entry_data.get(CONF_ENTRY_NAME) or "Walk Route",
            "manufacturer": "Walk Route",
            "model": "Walking route",
            "sw_version": VERSION,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Clean up all resources owned by this coordinator."""
        await super().async_shutdown()
        if self.tracker is not None:
            self.tracker.stop(self._tracker_handle)
        self._tracker_handle = None
        self._cancel_timer()
        for task in list(self._route_tasks):
            task.cancel()
        if self._route_tasks:
            await asyncio.gather(*self._route_tasks, return_exceptions=True)
        self._route_tasks.clear()
        self._error_listeners.clear()
        # A reload builds a new Store that reads from disk
        await self.persistence.async_flush()

    @property
    def entry_data(self):
        return self._entry_data
