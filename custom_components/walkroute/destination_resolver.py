"""
DestinationResolver — turns a user request (map point or address) into a Destination.
"""
from __future__ import annotations

import logging

from .api.geocoding import GeocodingService
from .const import GEOCODE_OK, GEOCODE_ZERO_RESULTS
from .errors import ResolutionError
from .models import Coordinate, Destination, DestinationSource

_LOGGER = logging.getLogger(__name__)


class DestinationResolver:
    """
    Resolves destinations from two mutually exclusive sources.

    A point destination keeps its clicked-point provenance; an address
    destination never carries one, so a successful address lookup replaces
    any previously clicked coordinates.
    """

    def __init__(self, geocoder: GeocodingService) -> None:
        self._geocoder = geocoder

    @staticmethod
    def from_point(coordinate: Coordinate) -> Destination:
        """Destination from direct map interaction; always succeeds."""
        return Destination(coordinate=coordinate, source=DestinationSource.POINT)

    async def async_from_address(self, address: str) -> Destination:
        """
        Geocode address into a Destination.

        Raises ResolutionError for blank input, no match, or a geocoder failure.
        """
        query = (address or "").strip()
        if not query:
            raise ResolutionError(address or "", "address is empty")

        result = await self._geocoder.async_geocode(query)
        if result.status == GEOCODE_ZERO_RESULTS:
            raise ResolutionError(query, GEOCODE_ZERO_RESULTS)
        if result.status != GEOCODE_OK or result.coordinate is None:
            raise ResolutionError(query, result.error or result.status)

        _LOGGER.debug("Resolved '%s' to %s", query, result.coordinate)
        return Destination(
            coordinate=result.coordinate,
            source=DestinationSource.ADDRESS,
            query=query,
            display_name=result.display_name,
        )
