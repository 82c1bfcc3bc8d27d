"""
CoordinatorData — immutable snapshot of the route state shared with entities.

This is a pure data module with no HA or network dependencies.
"""
from __future__ import annotations

import dataclasses

from .models import Coordinate, Destination, Overlay, Route, RouteState, Step


@dataclasses.dataclass(frozen=True)
class CoordinatorData:
    """
    Typed, copy-on-write snapshot of the route-maintenance state.

    Always replace via dataclasses.replace() — never mutate in place.
    Invariant: destination is None implies route and overlay are None.
    """

    state: RouteState = RouteState.IDLE

    # Live origin reported by the position feed (or restored / default)
    origin: Coordinate | None = None

    destination: Destination | None = None

    # Last successful route and its overlay; kept while a refresh fails
    route: Route | None = None
    overlay: Overlay | None = None

    # Id of the most recently issued route request
    request_id: int = 0

    # Message of the last routing failure; cleared on success
    last_error: str | None = None

    @property
    def clicked_coordinates(self) -> Coordinate | None:
        """The destination point while it came from a map click, else None."""
        if self.destination is not None and self.destination.is_clicked_point:
            return self.destination.coordinate
        return None

    @property
    def duration_text(self) -> str:
        if self.route is None or not self.route.legs:
            return ""
        return self.route.legs[0].duration_text

    @property
    def distance_text(self) -> str:
        if self.route is None or not self.route.legs:
            return ""
        return self.route.legs[0].distance_text

    @property
    def steps(self) -> tuple[Step, ...]:
        if self.route is None or not self.route.legs:
            return ()
        return self.route.legs[0].steps
