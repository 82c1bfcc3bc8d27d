"""
Low-level utility functions for the Walk Route coordinator.

Responsibilities:
- Great-circle distance between coordinates and the origin jitter guard.
- Human-readable duration / distance text in directions-service style.

No HA imports — these functions are pure data primitives.
"""
from __future__ import annotations

import math

from .models import Coordinate

EARTH_RADIUS_M = 6371000.0
METERS_PER_MILE = 1609.344
FEET_PER_METER = 3.28084


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Distance in metres between two coordinates."""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    x = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(x)))


def moved_beyond(previous: Coordinate | None, current: Coordinate, epsilon_m: float) -> bool:
    """
    True when current is more than epsilon_m metres away from previous.

    A missing previous position always counts as moved.
    """
    if previous is None:
        return True
    if previous == current:
        return False
    return haversine_m(previous, current) > epsilon_m


def _plural(value: int, unit: str, short: str | None = None) -> str:
    label = short or unit
    return f"{value} {label}" if value == 1 else f"{value} {label}s"


def format_duration(seconds: float) -> str:
    """
    Format a duration the way directions services do.

    Examples: "1 min", "12 mins", "1 hour 5 mins", "2 hours".
    Anything under a minute rounds up to "1 min".
    """
    minutes = max(1, int(round(seconds / 60.0)))
    hours, minutes = divmod(minutes, 60)
    if hours == 0:
        return _plural(minutes, "min")
    if minutes == 0:
        return _plural(hours, "hour")
    return f"{_plural(hours, 'hour')} {_plural(minutes, 'min')}"


def format_distance(meters: float, imperial: bool = False) -> str:
    """
    Format a distance in metric ("850 m", "1.2 km") or imperial ("300 ft", "0.6 mi").
    """
    meters = max(0.0, float(meters))
    if imperial:
        miles = meters / METERS_PER_MILE
        if miles < 0.1:
            return f"{int(round(meters * FEET_PER_METER))} ft"
        if miles < 10:
            return f"{miles:.1f} mi"
        return f"{int(round(miles))} mi"

    if meters < 1000:
        return f"{int(round(meters))} m"
    km = meters / 1000.0
    if km < 10:
        return f"{km:.1f} km"
    return f"{int(round(km))} km"
