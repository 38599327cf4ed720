#!/usr/bin/env python3
"""
Unit tests for FleetMetrics.
"""

import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from simulation.aircraft import Aircraft, Crashed, Delayed, Idle, InFlight, Maintenance
from simulation.fleet_metrics import FleetMetrics
from simulation.flight_progress import FlightRoute
from simulation.game_state import FleetSnapshot, GameState

NOW = datetime(2024, 6, 11, 12, 0, tzinfo=timezone.utc)


def make_route():
    return FlightRoute("A", "B", (0.0, 0.0), (1.0, 1.0), 157.0, 30, 78.0)


def make_aircraft(aircraft_id, state, condition=100.0, fuel=100.0, price=10_000_000):
    return Aircraft(id=aircraft_id, registration=f"D-{aircraft_id}", model="Test Jet", purchase_price=price,
                    max_passengers=100, passengers=60, daily_revenue=20_000, fuel_level=fuel,
                    condition=condition, total_flight_hours=10.0, state=state)


@pytest.fixture
def snapshot():
    fleet = [
        make_aircraft("A1", Idle(), condition=40.0),
        make_aircraft("A2", InFlight(make_route()), fuel=25.0),
        make_aircraft("A3", Delayed(make_route(), "Crew issues")),
        make_aircraft("A4", Maintenance(due_at=NOW)),
        make_aircraft("A5", Crashed("Pilot error"), condition=10.0, fuel=5.0),
    ]
    state = GameState(budget=250_000.0, total_revenue=2_000_000.0, reputation=64.0,
                      game_start_date=(NOW - timedelta(days=10)).isoformat())
    return FleetSnapshot(aircraft=fleet, game_state=state)


class TestFleetMetrics:
    """Test fleet analytics."""

    def test_status_counts(self, snapshot):
        counts = FleetMetrics().count_by_status(snapshot.aircraft)

        assert counts["idle"] == 1
        assert counts["in-flight"] == 1
        assert counts["delayed"] == 1
        assert counts["maintenance"] == 1
        assert counts["crashed"] == 1
        assert counts["grounded"] == 0

    def test_valuation_excludes_crashed(self, snapshot):
        valuation = FleetMetrics().calculate_valuation(snapshot.aircraft)

        assert valuation["fleet_value"] == 40_000_000.0
        # A1 at condition 40 -> 68%, the rest at 80%
        assert valuation["salvage_value"] == 6_800_000.0 + 3 * 8_000_000.0
        assert valuation["depreciation"] == pytest.approx(40_000_000.0 - 30_800_000.0)

    def test_alerts(self, snapshot):
        alerts = FleetMetrics().calculate_alerts(snapshot.aircraft)

        assert alerts["needs_maintenance"] == ["A1"]
        assert alerts["needs_fuel"] == ["A2"]
        assert alerts["delayed"] == ["A3"]

    def test_seat_inventory(self, snapshot):
        inventory = FleetMetrics().calculate_seat_inventory(snapshot.aircraft)

        # Default split on 100 seats: 0 / 5 / 9 / 42, four non-crashed aircraft
        assert inventory == {"first_class": 0, "business": 20, "premium_economy": 36, "economy": 168}

    def test_all_metrics(self, snapshot):
        metrics = FleetMetrics().calculate_all_metrics(snapshot, NOW)

        assert metrics["total_aircraft"] == 5
        assert metrics["flights_in_progress"] == 1
        assert metrics["utilization"] == pytest.approx(40.0)
        assert metrics["average_condition"] == pytest.approx(70.0)
        assert metrics["total_flight_hours"] == 50.0
        assert metrics["days_since_start"] == 10
        assert metrics["profit_margin"] == pytest.approx(5.0)
        assert metrics["reputation"] == 64.0

    def test_empty_fleet(self):
        snapshot = FleetSnapshot(aircraft=[], game_state=GameState(budget=1.0))

        metrics = FleetMetrics().calculate_all_metrics(snapshot, NOW)

        assert metrics["total_aircraft"] == 0
        assert metrics["utilization"] == 0.0
        assert metrics["average_condition"] == 0.0
        assert metrics["profit_margin"] == 0.0

    def test_custom_thresholds(self, snapshot):
        alerts = FleetMetrics(maintenance_alert_condition=101, fuel_alert_level=0).calculate_alerts(snapshot.aircraft)

        assert alerts["needs_maintenance"] == ["A1", "A2", "A3", "A4"]
        assert alerts["needs_fuel"] == []
