"""
Error taxonomy for the Walk Route integration.

Every error the integration reports derives from WalkRouteError so the
coordinator's error observer and HA service handlers can treat them alike.
"""
from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class WalkRouteError(HomeAssistantError):
    """Base class for all Walk Route errors."""

    error_type = "unknown"


class FeedError(WalkRouteError):
    """The position source is unavailable, unknown or returned a bad reading."""

    error_type = "feed"


class ResolutionError(WalkRouteError):
    """An address could not be resolved to a coordinate."""

    error_type = "resolution"

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Could not resolve address '{address}': {reason}")


class RoutingError(WalkRouteError):
    """The routing backend failed to compute a route."""

    error_type = "routing"
