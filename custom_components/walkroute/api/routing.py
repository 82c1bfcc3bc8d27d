"""
Walking route fetching from an OSRM-compatible routing backend.

Responsible for:
- Building the route URL for an origin/destination pair
- Mapping the JSON response onto Route / Leg / Step model instances
- Rendering turn-by-turn maneuvers as short HTML instructions
- Reporting every failure as a RouteResponse carrying a RoutingError,
  echoing the id of the request it answers

Example request:
https://routing.openstreetmap.de/routed-foot/route/v1/foot/-118.2437,34.0522;-118.2468,34.0407?overview=full&geometries=geojson&steps=true
"""
from __future__ import annotations

import asyncio
import html
import logging

import aiohttp

from custom_components.walkroute.const import DEFAULT_ROUTING_URL, WALKING_PROFILE
from custom_components.walkroute.coordinator_utils import format_distance, format_duration
from custom_components.walkroute.errors import RoutingError
from custom_components.walkroute.models import (
    Coordinate,
    Leg,
    Route,
    RouteRequest,
    RouteResponse,
    Step,
)
from custom_components.walkroute.requests import ApiResponseError, make_request

_LOGGER = logging.getLogger(__name__)

_CARDINALS = ("north", "northeast", "east", "southeast", "south", "southwest", "west", "northwest")
_ORDINALS = {1: "1st", 2: "2nd", 3: "3rd"}


def _cardinal(bearing) -> str:
    if bearing is None:
        return "forward"
    return _CARDINALS[int(((float(bearing) % 360) + 22.5) // 45) % 8]


def _ordinal(n: int) -> str:
    return _ORDINALS.get(n, f"{n}th")


def build_instruction(step: dict) -> str:
    """Render an OSRM step maneuver as an HTML instruction."""
    maneuver = step.get("maneuver") or {}
    kind = maneuver.get("type", "")
    modifier = maneuver.get("modifier")
    name = html.escape(step.get("name") or "")
    onto = f" onto <b>{name}</b>" if name else ""

    if kind == "depart":
        text = f"Head <b>{_cardinal(maneuver.get('bearing_after'))}</b>"
        return f"{text} on <b>{name}</b>" if name else text

    if kind == "arrive":
        if modifier in ("left", "right"):
            return f"Your destination is on the <b>{modifier}</b>"
        return "Arrive at your destination"

    if kind in ("roundabout", "rotary", "roundabout turn"):
        exit_number = maneuver.get("exit")
        if exit_number:
            return f"At the roundabout, take the <b>{_ordinal(int(exit_number))}</b> exit{onto}"
        return f"Enter the roundabout{onto}"

    if modifier == "uturn":
        return f"Make a <b>U-turn</b>{onto}"

    if kind in ("continue", "new name") or modifier in (None, "straight"):
        return f"Continue{onto}" if name else "Continue straight"

    return f"Turn <b>{modifier}</b>{onto}"


def _parse_leg(leg: dict, imperial: bool) -> Leg:
    steps = tuple(
        Step(
            instruction_html=build_instruction(step),
            distance_m=float(step.get("distance", 0.0)),
            duration_s=float(step.get("duration", 0.0)),
        )
        for step in leg.get("steps", [])
    )
    duration_s = float(leg["duration"])
    distance_m = float(leg["distance"])
    return Leg(
        duration_text=format_duration(duration_s),
        distance_text=format_distance(distance_m, imperial),
        steps=steps,
        duration_s=duration_s,
        distance_m=distance_m,
    )


def parse_route(raw_json: dict, imperial: bool = False) -> Route:
    """
    Map an OSRM /route response onto a Route.

    Raises RoutingError when the backend reports a failure code, returns no
    routes, or the payload is malformed.
    """
    if not isinstance(raw_json, dict):
        raise RoutingError(f"Unexpected routing response: {raw_json!r}")

    code = raw_json.get("code")
    if code != "Ok":
        message = raw_json.get("message") or code or "unknown error"
        raise RoutingError(f"Routing backend returned {code}: {message}")

    routes = raw_json.get("routes") or []
    if not routes:
        raise RoutingError("Routing backend returned no routes")

    first = routes[0]
    try:
        path = tuple(
            Coordinate(float(lat), float(lon))
            for lon, lat, *_ in first["geometry"]["coordinates"]
        )
        legs = tuple(_parse_leg(leg, imperial) for leg in first.get("legs", []))
    except (KeyError, TypeError, ValueError) as exc:
        raise RoutingError(f"Malformed routing response: {exc}") from exc

    return Route(legs=legs, overview_path=path)


class RoutingService:
    """Asynchronous walking-route client; never raises, always answers."""

    def __init__(
        self,
        base_url: str = DEFAULT_ROUTING_URL,
        profile: str = WALKING_PROFILE,
        imperial: bool = False,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.imperial = imperial

    def route_url(self, origin: Coordinate, destination: Coordinate) -> str:
        coords = (
            f"{origin.longitude},{origin.latitude};"
            f"{destination.longitude},{destination.latitude}"
        )
        return f"{self.base_url}/route/v1/{self.profile}/{coords}"

    async def async_route(self, request: RouteRequest) -> RouteResponse:
        """Fetch a route for request; failures come back as response.error."""
        url = self.route_url(request.origin, request.destination)
        params = {"overview": "full", "geometries": "geojson", "steps": "true"}

        try:
            raw_json = await make_request(url, params=params)
            route = parse_route(raw_json, self.imperial)
        except RoutingError as e:
            _LOGGER.warning("Route request %s failed: %s", request.request_id, e)
            return RouteResponse(request.request_id, error=e)
        except ApiResponseError as e:
            # OSRM answers 400 with {"code": "NoRoute", "message": ...}
            body = e.body if isinstance(e.body, dict) else {}
            message = body.get("message") or body.get("code") or str(e)
            _LOGGER.warning("Route request %s rejected: %s", request.request_id, message)
            return RouteResponse(request.request_id, error=RoutingError(message))
        except (asyncio.TimeoutError, TimeoutError):
            _LOGGER.warning("Timeout on route request %s", request.request_id)
            return RouteResponse(
                request.request_id, error=RoutingError("Routing backend timed out")
            )
        except (aiohttp.ClientError, ValueError) as e:
            _LOGGER.warning(
                "Error on route request %s: %s: %s",
                request.request_id, type(e).__name__, e,
            )
            return RouteResponse(request.request_id, error=RoutingError(str(e)))

        _LOGGER.debug(
            "Route request %s returned %s legs, %s path points",
            request.request_id, len(route.legs), len(route.overview_path),
        )
        return RouteResponse(request.request_id, route=route)
