#!/usr/bin/env python3
"""
Unit tests for the flight progress model.

Tests route planning, range checks, interpolation and the cosmetic
position refresh.
"""

import pytest
import sys
import numpy as np
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from simulation.aircraft import Aircraft, Idle, InFlight
from simulation.flight_progress import (
    FlightRoute,
    can_reach,
    cosmetic_progress,
    haversine_km,
    interpolate_position,
    plan_route,
    refresh_positions,
    route_duration,
)
from simulation.geography import find_airport, random_airport
from utils.config import RoutePlanningConfig

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def started_route(duration=60, progress=0.0):
    return FlightRoute(
        origin="A",
        destination="B",
        origin_coordinates=(0.0, 0.0),
        destination_coordinates=(10.0, 20.0),
        distance_km=2486.0,
        duration_minutes=duration,
        price=1000.0,
        progress=progress,
        start_time=NOW,
        arrival_time=NOW + timedelta(minutes=duration),
    )


def flying(route, aircraft_id="ac-1"):
    return Aircraft(id=aircraft_id, registration="D-FLY1", model="Boeing 737",
                    purchase_price=96_000_000, max_passengers=189, state=InFlight(route))


class TestRoutePlanning:
    """Test distance, duration and fare."""

    def test_haversine_known_distance(self):
        """Test Frankfurt - London is roughly 650 km."""
        fra = find_airport("FRA")
        lhr = find_airport("LHR")

        distance = haversine_km(fra.coordinates, lhr.coordinates)

        assert 630 <= distance <= 680
        assert distance == float(int(distance))

    def test_haversine_symmetric_and_zero(self):
        a, b = (48.35, 11.78), (-33.94, 151.18)

        assert haversine_km(a, b) == haversine_km(b, a)
        assert haversine_km(a, a) == 0.0

    def test_duration_floor(self):
        """Test 30 minute minimum for short hops."""
        assert route_duration(100) == 30
        assert route_duration(800) == 100
        assert route_duration(10_000) == 1250

    def test_plan_route(self):
        """Test fare = distance * 0.5 plus noise in [0, 50]."""
        fra = find_airport("FRA")
        jfk = find_airport("JFK")

        route = plan_route(fra, jfk, rng=np.random.default_rng(5))

        assert route.origin == fra.name
        assert route.destination == jfk.name
        assert route.origin_coordinates == fra.coordinates
        assert route.progress == 0.0
        assert route.duration_minutes == max(30, round(route.distance_km / 8))
        assert route.distance_km * 0.5 <= route.price <= route.distance_km * 0.5 + 50 + 1
        assert route.route_id.startswith("route-")

    def test_plan_route_without_noise(self):
        config = RoutePlanningConfig(fare_noise_max=0)

        route = plan_route(find_airport("FRA"), find_airport("LHR"), config=config)

        assert route.price == round(route.distance_km * 0.5)

    def test_same_airport_rejected(self):
        fra = find_airport("FRA")

        with pytest.raises(ValueError, match="both"):
            plan_route(fra, fra)

    def test_can_reach(self):
        route = started_route()

        assert can_reach(3000, route)
        assert can_reach(2486, route)
        assert not can_reach(2000, route)
        assert can_reach(None, route)

    def test_random_airport_deterministic(self):
        assert random_airport(np.random.default_rng(3)) == random_airport(np.random.default_rng(3))


class TestPositions:
    """Test interpolation and cosmetic progress."""

    def test_interpolate_endpoints(self):
        assert interpolate_position((0.0, 0.0), (10.0, 20.0), 0) == (0.0, 0.0)
        assert interpolate_position((0.0, 0.0), (10.0, 20.0), 100) == (10.0, 20.0)
        assert interpolate_position((0.0, 0.0), (10.0, 20.0), 25) == (2.5, 5.0)

    def test_cosmetic_progress_from_wall_clock(self):
        route = started_route(duration=60)

        assert cosmetic_progress(route, NOW + timedelta(minutes=30)) == pytest.approx(50.0)
        assert cosmetic_progress(route, NOW - timedelta(minutes=5)) == 0.0
        assert cosmetic_progress(route, NOW + timedelta(hours=5)) == 100.0

    def test_cosmetic_progress_without_start(self):
        route = started_route(progress=42.0)
        route.start_time = None

        assert cosmetic_progress(route, NOW) == 42.0

    def test_refresh_moves_display_only(self):
        """Test that refresh sets position but leaves tick progress alone."""
        aircraft = flying(started_route(duration=60))

        refreshed = refresh_positions([aircraft], NOW + timedelta(minutes=30))[0]

        assert refreshed is not aircraft
        assert refreshed.position == pytest.approx((5.0, 10.0))
        assert refreshed.display_progress == pytest.approx(50.0)
        assert refreshed.current_route.progress == 0.0
        assert refreshed.fuel_level == aircraft.fuel_level
        assert aircraft.display_progress is None

    def test_refresh_leaves_arrived_aircraft(self):
        """Test that wall-clock arrival never settles or moves an aircraft."""
        aircraft = flying(started_route(duration=60, progress=80.0))

        refreshed = refresh_positions([aircraft], NOW + timedelta(hours=2))[0]

        assert refreshed is aircraft
        assert refreshed.status == "in-flight"

    def test_refresh_skips_idle(self):
        idle = Aircraft(id="ac-2", registration="D-IDLE", model="Boeing 737",
                        purchase_price=1.0, max_passengers=10, state=Idle())

        assert refresh_positions([idle], NOW)[0] is idle
