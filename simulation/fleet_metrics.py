"""Fleet-level analytics.

Feeds the analytics and fleet-management views:
- Status counts and utilization (idle + in-flight share of the fleet)
- Fleet value (purchase prices) and salvage value (what selling everything would pay)
- Seat inventory per cabin class from the cabin allocation model
- Alert lists for aircraft needing maintenance or fuel
"""

from datetime import datetime
from typing import Dict, List, Optional

import numpy as np

from simulation.aircraft import STATUSES
from simulation.cabin import CABIN_CLASSES, allocate_seats
from simulation.engine import parse_watermark
from simulation.game_state import FleetSnapshot, utc_now


class FleetMetrics:
    """Calculator for fleet-level analytics."""

    def __init__(self, maintenance_alert_condition: float = 50.0, fuel_alert_level: float = 30.0,
                 salvage_base_fraction: float = 0.6, salvage_condition_fraction: float = 0.2):
        """Initialize fleet metrics calculator.

        Args:
            maintenance_alert_condition: Condition below which an aircraft needs maintenance
            fuel_alert_level: Fuel level below which an aircraft needs fuel
            salvage_base_fraction: Salvage floor as a share of purchase price
            salvage_condition_fraction: Extra salvage share at full condition
        """
        self.maintenance_alert_condition = maintenance_alert_condition
        self.fuel_alert_level = fuel_alert_level
        self.salvage_base_fraction = salvage_base_fraction
        self.salvage_condition_fraction = salvage_condition_fraction

    def count_by_status(self, aircraft_list: List) -> Dict[str, int]:
        counts = {status: 0 for status in STATUSES}
        for aircraft in aircraft_list:
            counts[aircraft.status] += 1
        return counts

    def calculate_valuation(self, aircraft_list: List) -> Dict[str, float]:
        """Fleet value at purchase price and at current salvage value.

        Crashed aircraft are written off: they count toward neither figure.
        """
        active = [a for a in aircraft_list if a.status != "crashed"]
        fleet_value = float(sum(a.purchase_price for a in active))
        salvage_value = float(sum(
            a.salvage_value(self.salvage_base_fraction, self.salvage_condition_fraction) for a in active
        ))
        return {
            "fleet_value": fleet_value,
            "salvage_value": salvage_value,
            "depreciation": fleet_value - salvage_value,
        }

    def calculate_seat_inventory(self, aircraft_list: List) -> Dict[str, int]:
        """Total physical seats per cabin class across non-crashed aircraft."""
        inventory = {c: 0 for c in CABIN_CLASSES}
        for aircraft in aircraft_list:
            if aircraft.status == "crashed":
                continue
            seats = allocate_seats(aircraft.cabin_config, aircraft.max_passengers)
            for cabin_class, count in seats.items():
                inventory[cabin_class] += count
        return inventory

    def calculate_alerts(self, aircraft_list: List) -> Dict[str, List[str]]:
        """Aircraft ids that need attention."""
        operable = [a for a in aircraft_list if a.status != "crashed"]
        return {
            "needs_maintenance": [a.id for a in operable if a.condition < self.maintenance_alert_condition],
            "needs_fuel": [a.id for a in operable if a.fuel_level < self.fuel_alert_level],
            "delayed": [a.id for a in aircraft_list if a.status == "delayed"],
        }

    def calculate_all_metrics(self, snapshot: FleetSnapshot, now: Optional[datetime] = None) -> Dict:
        """Calculate all fleet analytics at once.

        Args:
            snapshot: Fleet and game state
            now: Reference time for days-since-start (defaults to current UTC time)

        Returns:
            Dict of analytics values
        """
        aircraft_list = snapshot.aircraft
        state = snapshot.game_state
        now = now or utc_now()

        counts = self.count_by_status(aircraft_list)
        valuation = self.calculate_valuation(aircraft_list)
        total = len(aircraft_list)

        if total > 0:
            average_condition = float(np.mean([a.condition for a in aircraft_list]))
            utilization = (counts["idle"] + counts["in-flight"]) / total * 100.0
        else:
            average_condition = 0.0
            utilization = 0.0

        start = parse_watermark(state.game_start_date)
        days_since_start = int((now - start).total_seconds() // 86400) if start is not None else 0

        fleet_value = valuation["fleet_value"]
        profit_margin = state.total_revenue / fleet_value * 100.0 if fleet_value > 0 else 0.0

        return {
            "total_aircraft": total,
            "status_counts": counts,
            "flights_in_progress": counts["in-flight"],
            "utilization": utilization,
            "average_condition": average_condition,
            "total_flight_hours": float(sum(a.total_flight_hours for a in aircraft_list)),
            "total_daily_revenue": float(sum(a.daily_revenue for a in aircraft_list)),
            "fleet_value": fleet_value,
            "salvage_value": valuation["salvage_value"],
            "depreciation": valuation["depreciation"],
            "seat_inventory": self.calculate_seat_inventory(aircraft_list),
            "alerts": self.calculate_alerts(aircraft_list),
            "budget": state.budget,
            "total_revenue": state.total_revenue,
            "reputation": state.reputation,
            "total_routes": state.total_routes,
            "flights_started": state.flights_started,
            "aircraft_purchased": state.aircraft_purchased,
            "days_since_start": days_since_start,
            "profit_margin": profit_margin,
        }

    def __repr__(self) -> str:
        return (
            f"FleetMetrics(maintenance_alert<{self.maintenance_alert_condition}, "
            f"fuel_alert<{self.fuel_alert_level})"
        )
