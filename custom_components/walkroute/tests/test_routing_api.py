"""
Tests for the routing client: OSRM response parsing, maneuver rendering
and the never-raising async_route contract.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, patch

import aiohttp

from custom_components.walkroute.api.routing import (
    RoutingService,
    build_instruction,
    parse_route,
)
from custom_components.walkroute.errors import RoutingError
from custom_components.walkroute.models import Coordinate, RouteRequest
from custom_components.walkroute.requests import ApiResponseError

from .test_common import DESTINATION, ORIGIN

MAKE_REQUEST = "custom_components.walkroute.api.routing.make_request"


def osrm_response(points: int = 5, duration: float = 720.0, distance: float = 965.0) -> dict:
    coordinates = [[-118.2437 + i * 0.001, 34.0522 - i * 0.003] for i in range(points)]
    return {
        "code": "Ok",
        "routes": [
            {
                "geometry": {"type": "LineString", "coordinates": coordinates},
                "duration": duration,
                "distance": distance,
                "legs": [
                    {
                        "duration": duration,
                        "distance": distance,
                        "steps": [
                            {
                                "name": "Main Street",
                                "distance": 500.0,
                                "duration": 360.0,
                                "maneuver": {"type": "depart", "bearing_after": 180},
                            },
                            {
                                "name": "1st Street",
                                "distance": 465.0,
                                "duration": 360.0,
                                "maneuver": {"type": "turn", "modifier": "left"},
                            },
                            {
                                "name": "",
                                "distance": 0.0,
                                "duration": 0.0,
                                "maneuver": {"type": "arrive"},
                            },
                        ],
                    }
                ],
            }
        ],
    }


class TestBuildInstruction(unittest.TestCase):

    def test_depart_with_heading_and_name(self):
        step = {"name": "Main Street", "maneuver": {"type": "depart", "bearing_after": 180}}
        self.assertEqual(build_instruction(step), "Head <b>south</b> on <b>Main Street</b>")

    def test_depart_without_name(self):
        step = {"name": "", "maneuver": {"type": "depart", "bearing_after": 44}}
        self.assertEqual(build_instruction(step), "Head <b>northeast</b>")

    def test_turn(self):
        step = {"name": "1st Street", "maneuver": {"type": "turn", "modifier": "sharp right"}}
        self.assertEqual(build_instruction(step), "Turn <b>sharp right</b> onto <b>1st Street</b>")

    def test_continue(self):
        self.assertEqual(
            build_instruction({"name": "Hill St", "maneuver": {"type": "new name", "modifier": "straight"}}),
            "Continue onto <b>Hill St</b>",
        )
        self.assertEqual(
            build_instruction({"maneuver": {"type": "continue"}}), "Continue straight"
        )

    def test_roundabout_exit(self):
        step = {"name": "Grand Ave", "maneuver": {"type": "roundabout", "exit": 2}}
        self.assertEqual(
            build_instruction(step),
            "At the roundabout, take the <b>2nd</b> exit onto <b>Grand Ave</b>",
        )

    def test_uturn(self):
        step = {"name": "", "maneuver": {"type": "turn", "modifier": "uturn"}}
        self.assertEqual(build_instruction(step), "Make a <b>U-turn</b>")

    def test_arrive(self):
        self.assertEqual(build_instruction({"maneuver": {"type": "arrive"}}), "Arrive at your destination")
        self.assertEqual(
            build_instruction({"maneuver": {"type": "arrive", "modifier": "left"}}),
            "Your destination is on the <b>left</b>",
        )

    def test_street_names_are_escaped(self):
        step = {"name": "<Rock & Roll>", "maneuver": {"type": "turn", "modifier": "left"}}
        self.assertEqual(
            build_instruction(step), "Turn <b>left</b> onto <b>&lt;Rock &amp; Roll&gt;</b>"
        )


class TestParseRoute(unittest.TestCase):

    def test_happy_path(self):
        route = parse_route(osrm_response(points=5), imperial=True)

        self.assertEqual(len(route.legs), 1)
        leg = route.legs[0]
        self.assertEqual(leg.duration_text, "12 mins")
        self.assertEqual(leg.distance_text, "0.6 mi")
        self.assertEqual(len(leg.steps), 3)
        self.assertEqual(leg.steps[1].instruction_html, "Turn <b>left</b> onto <b>1st Street</b>")
        self.assertEqual(len(route.overview_path), 5)

    def test_geojson_order_is_lon_lat(self):
        route = parse_route(osrm_response(points=2))
        self.assertEqual(route.overview_path[0], Coordinate(34.0522, -118.2437))

    def test_metric_distance(self):
        route = parse_route(osrm_response(distance=1234.0))
        self.assertEqual(route.legs[0].distance_text, "1.2 km")

    def test_error_code_raises(self):
        with self.assertRaises(RoutingError) as ctx:
            parse_route({"code": "NoRoute", "message": "Impossible route between points"})
        self.assertIn("Impossible route", str(ctx.exception))

    def test_no_routes_raises(self):
        with self.assertRaises(RoutingError):
            parse_route({"code": "Ok", "routes": []})

    def test_malformed_raises(self):
        broken = osrm_response()
        del broken["routes"][0]["geometry"]
        with self.assertRaises(RoutingError):
            parse_route(broken)
        with self.assertRaises(RoutingError):
            parse_route(["not", "a", "dict"])


class TestRoutingService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.service = RoutingService("https://routing.example.com/routed-foot/", imperial=True)
        self.request = RouteRequest(origin=ORIGIN, destination=DESTINATION, request_id=7)

    def test_route_url(self):
        self.assertEqual(
            self.service.route_url(ORIGIN, DESTINATION),
            "https://routing.example.com/routed-foot/route/v1/foot/-118.2437,34.0522;-118.2468,34.0407",
        )

    async def test_success_echoes_request_id(self):
        with patch(MAKE_REQUEST, new=AsyncMock(return_value=osrm_response())) as mock_request:
            response = await self.service.async_route(self.request)

        self.assertTrue(response.ok)
        self.assertEqual(response.request_id, 7)
        self.assertEqual(response.route.legs[0].duration_text, "12 mins")
        params = mock_request.call_args.kwargs["params"]
        self.assertEqual(params["geometries"], "geojson")
        self.assertEqual(params["steps"], "true")

    async def test_backend_rejection_uses_message(self):
        error = ApiResponseError(400, {"code": "NoRoute", "message": "No route found"})
        with patch(MAKE_REQUEST, new=AsyncMock(side_effect=error)):
            response = await self.service.async_route(self.request)

        self.assertFalse(response.ok)
        self.assertEqual(response.request_id, 7)
        self.assertIsInstance(response.error, RoutingError)
        self.assertEqual(str(response.error), "No route found")

    async def test_failures_never_raise(self):
        failures = (
            asyncio.TimeoutError(),
            aiohttp.ClientConnectionError("refused"),
            ValueError("Expected JSON"),
            ApiResponseError(502, "Bad Gateway"),
        )
        for failure in failures:
            with self.subTest(failure=type(failure).__name__):
                with patch(MAKE_REQUEST, new=AsyncMock(side_effect=failure)):
                    response = await self.service.async_route(self.request)
                self.assertEqual(response.request_id, 7)
                self.assertIsInstance(response.error, RoutingError)
                self.assertIsNone(response.route)

    async def test_error_code_in_ok_response(self):
        with patch(MAKE_REQUEST, new=AsyncMock(return_value={"code": "NoSegment"})):
            response = await self.service.async_route(self.request)
        self.assertIsInstance(response.error, RoutingError)
