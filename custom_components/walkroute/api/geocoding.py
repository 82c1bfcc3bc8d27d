"""
Address lookup against a Nominatim-compatible geocoding backend.

Responsible for:
- Querying the search endpoint for the single best match of an address
- Mapping the answer onto a GeocodeResult with an OK / ZERO_RESULTS / ERROR status

Example request:
https://nominatim.openstreetmap.org/search?q=123+Main+St&format=jsonv2&limit=1
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from custom_components.walkroute.const import (
    DEFAULT_GEOCODING_URL,
    GEOCODE_ERROR,
    GEOCODE_OK,
    GEOCODE_ZERO_RESULTS,
)
from custom_components.walkroute.models import Coordinate, GeocodeResult
from custom_components.walkroute.requests import ApiResponseError, make_request

_LOGGER = logging.getLogger(__name__)


def parse_search(raw_json) -> GeocodeResult:
    """Map a Nominatim /search response onto a GeocodeResult."""
    if not isinstance(raw_json, list):
        return GeocodeResult(GEOCODE_ERROR, error=f"Unexpected geocoder response: {raw_json!r}")
    if not raw_json:
        return GeocodeResult(GEOCODE_ZERO_RESULTS)

    best = raw_json[0]
    try:
        coordinate = Coordinate.checked(best["lat"], best["lon"])
    except (KeyError, TypeError, ValueError) as exc:
        return GeocodeResult(GEOCODE_ERROR, error=f"Malformed geocoder result: {exc}")
    return GeocodeResult(GEOCODE_OK, coordinate=coordinate, display_name=best.get("display_name"))


class GeocodingService:
    """Asynchronous address geocoder; never raises, reports a status instead."""

    def __init__(self, base_url: str = DEFAULT_GEOCODING_URL) -> None:
        self.base_url = base_url.rstrip("/")

    async def async_geocode(self, address: str) -> GeocodeResult:
        url = f"{self.base_url}/search"
        params = {"q": address, "format": "jsonv2", "limit": 1}

        try:
            raw_json = await make_request(url, params=params)
        except ApiResponseError as e:
            _LOGGER.warning("Geocoder rejected '%s': %s", address, e)
            return GeocodeResult(GEOCODE_ERROR, error=str(e))
        except (asyncio.TimeoutError, TimeoutError):
            _LOGGER.warning("Timeout while geocoding '%s'", address)
            return GeocodeResult(GEOCODE_ERROR, error="Geocoder timed out")
        except (aiohttp.ClientError, ValueError) as e:
            _LOGGER.warning("Error while geocoding '%s': %s: %s", address, type(e).__name__, e)
            return GeocodeResult(GEOCODE_ERROR, error=str(e))

        return parse_search(raw_json)
