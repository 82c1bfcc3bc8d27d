"""
Domain models for the Walk Route integration.

This module contains pure, immutable data classes.
These classes have no dependencies on HTTP, API logic, or Home Assistant internals.
"""
from __future__ import annotations

import dataclasses
import enum
import math
from typing import Any


class RouteState(str, enum.Enum):
    """States of the route-maintenance state machine."""

    IDLE = "idle"
    ROUTING = "routing"
    ROUTED = "routed"
    FAILED = "failed"


class DestinationSource(str, enum.Enum):
    """Where the current destination came from."""

    POINT = "point"
    ADDRESS = "address"


@dataclasses.dataclass(frozen=True)
class Coordinate:
    """A WGS84 latitude/longitude pair."""

    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, raw: Any) -> Coordinate:
        """
        Build a Coordinate from a stored dict.

        Accepts both {"latitude", "longitude"} and the short {"lat", "lng"}
        spelling. Raises ValueError for anything that is not a finite,
        in-range coordinate.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"Expected a mapping, got {type(raw).__name__}")
        lat = raw.get("latitude", raw.get("lat"))
        lng = raw.get("longitude", raw.get("lng"))
        if lat is None or lng is None:
            raise ValueError(f"Missing latitude/longitude in {raw!r}")
        return cls.checked(lat, lng)

    @classmethod
    def checked(cls, latitude: Any, longitude: Any) -> Coordinate:
        """Coerce to float and validate ranges."""
        try:
            lat = float(latitude)
            lng = float(longitude)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid coordinate ({latitude!r}, {longitude!r})") from exc
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise ValueError(f"Non-finite coordinate ({lat}, {lng})")
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
            raise ValueError(f"Coordinate out of range ({lat}, {lng})")
        return cls(lat, lng)

    def as_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclasses.dataclass(frozen=True)
class Destination:
    """A routing target plus its provenance."""

    coordinate: Coordinate
    source: DestinationSource = DestinationSource.POINT
    # Only set for address resolutions
    query: str | None = None
    display_name: str | None = None

    @property
    def is_clicked_point(self) -> bool:
        return self.source is DestinationSource.POINT

    @classmethod
    def from_dict(cls, raw: Any) -> Destination:
        """Restore a stored destination; raises ValueError when corrupt."""
        if not isinstance(raw, dict):
            raise ValueError(f"Expected a mapping, got {type(raw).__name__}")
        coordinate = Coordinate.from_dict(raw.get("coordinate", raw))
        try:
            source = DestinationSource(raw.get("source", DestinationSource.POINT.value))
        except ValueError as exc:
            raise ValueError(f"Unknown destination source in {raw!r}") from exc
        return cls(
            coordinate=coordinate,
            source=source,
            query=raw.get("query"),
            display_name=raw.get("display_name"),
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "coordinate": self.coordinate.as_dict(),
            "source": self.source.value,
            "query": self.query,
            "display_name": self.display_name,
        }


@dataclasses.dataclass(frozen=True)
class Step:
    """One turn-by-turn instruction."""

    instruction_html: str
    distance_m: float = 0.0
    duration_s: float = 0.0


@dataclasses.dataclass(frozen=True)
class Leg:
    """Origin-to-destination segment of a route."""

    duration_text: str
    distance_text: str
    steps: tuple[Step, ...] = ()
    duration_s: float = 0.0
    distance_m: float = 0.0


@dataclasses.dataclass(frozen=True)
class Route:
    """A computed route. Replaced wholesale, never patched."""

    legs: tuple[Leg, ...] = ()
    overview_path: tuple[Coordinate, ...] = ()


@dataclasses.dataclass(frozen=True)
class RouteRequest:
    """A single routing request; request_id is the staleness fence."""

    origin: Coordinate
    destination: Coordinate
    request_id: int


@dataclasses.dataclass(frozen=True)
class RouteResponse:
    """Routing outcome echoing the id of the request that produced it."""

    request_id: int
    route: Route | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.route is not None


@dataclasses.dataclass(frozen=True)
class ArrowMarker:
    """Direction arrow drawn along the polyline."""

    position: Coordinate
    offset_fraction: float

    @property
    def offset(self) -> str:
        """Offset as a CSS-style percentage string, e.g. '25%'."""
        return f"{self.offset_fraction * 100:g}%"


@dataclasses.dataclass(frozen=True)
class Overlay:
    """Renderable polyline with evenly spaced direction arrows."""

    polyline_points: tuple[Coordinate, ...] = ()
    arrow_markers: tuple[ArrowMarker, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.polyline_points


@dataclasses.dataclass(frozen=True)
class GeocodeResult:
    """Outcome of a geocoder lookup."""

    status: str
    coordinate: Coordinate | None = None
    display_name: str | None = None
    error: str | None = None
