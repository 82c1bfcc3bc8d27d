"""
Route geometry — turns a route's overview path into a directional overlay.

Pure functions only; safe to call from any context.
"""
from __future__ import annotations

from .models import ArrowMarker, Overlay, Route


def derive_overlay(route: Route | None) -> Overlay:
    """
    Build the polyline and direction arrows for a route.

    The polyline is the overview path without its final point, since arrows
    are drawn along segments rather than at the terminal point. One arrow is
    placed per retained point at offset index / count, i.e. evenly spaced
    over the point sequence and not weighted by segment length.
    """
    if route is None or len(route.overview_path) <= 1:
        return Overlay()

    points = tuple(route.overview_path[:-1])
    count = len(points)
    arrows = tuple(
        ArrowMarker(position=point, offset_fraction=index / count)
        for index, point in enumerate(points)
    )
    return Overlay(polyline_points=points, arrow_markers=arrows)
