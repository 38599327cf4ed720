"""Flight progress model.

Route planning (haversine distance, duration, fare) and position along a
route. Positions are linear interpolations between the two airports, not
geodesics, which is close enough at map scale.

Two progress computations exist:
- Tick progress: accumulated by the engine, authoritative for fuel, wear and
  revenue (stored on the route).
- Cosmetic progress: recomputed from wall-clock time for smooth map
  animation between ticks (``refresh_positions``). It only moves the display
  position and never settles a flight.
"""

import math
import uuid
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import numpy as np

from simulation.geography import Airport, Coordinates
from utils.config import RoutePlanningConfig

EARTH_RADIUS_KM = 6371.0


@dataclass
class FlightRoute:
    """A planned or active flight between two airports."""

    origin: str
    destination: str
    origin_coordinates: Coordinates
    destination_coordinates: Coordinates
    distance_km: float
    duration_minutes: float
    price: float  # fare per passenger
    progress: float = 0.0  # 0-100
    start_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    route_id: str = ""

    def to_dict(self) -> Dict:
        return {
            "route_id": self.route_id,
            "origin": self.origin,
            "destination": self.destination,
            "origin_coordinates": list(self.origin_coordinates),
            "destination_coordinates": list(self.destination_coordinates),
            "distance_km": self.distance_km,
            "duration_minutes": self.duration_minutes,
            "price": self.price,
            "progress": self.progress,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "arrival_time": self.arrival_time.isoformat() if self.arrival_time else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "FlightRoute":
        return cls(
            route_id=data.get("route_id", ""),
            origin=data["origin"],
            destination=data["destination"],
            origin_coordinates=tuple(data["origin_coordinates"]),
            destination_coordinates=tuple(data["destination_coordinates"]),
            distance_km=float(data["distance_km"]),
            duration_minutes=float(data["duration_minutes"]),
            price=float(data["price"]),
            progress=float(data.get("progress") or 0.0),
            start_time=_parse_time(data.get("start_time")),
            arrival_time=_parse_time(data.get("arrival_time")),
        )


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two (lat, lon) points, rounded to whole km."""
    lat1, lon1 = math.radians(a[0]), math.radians(a[1])
    lat2, lon2 = math.radians(b[0]), math.radians(b[1])
    d_lat = lat2 - lat1
    d_lon = lon2 - lon1

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return float(round(EARTH_RADIUS_KM * c))


def interpolate_position(origin: Coordinates, destination: Coordinates, progress: float) -> Tuple[float, float]:
    """Position at ``progress`` percent of the way from origin to destination."""
    ratio = progress / 100.0
    return (
        origin[0] + (destination[0] - origin[0]) * ratio,
        origin[1] + (destination[1] - origin[1]) * ratio,
    )


def route_duration(distance_km: float, config: Optional[RoutePlanningConfig] = None) -> int:
    """Scheduled duration in minutes, never below the configured floor."""
    config = config or RoutePlanningConfig()
    return max(config.min_duration_minutes, int(round(distance_km / config.cruise_speed_factor)))


def plan_route(origin: Airport, destination: Airport,
               rng: Optional[np.random.Generator] = None,
               config: Optional[RoutePlanningConfig] = None) -> FlightRoute:
    """Build a route between two airports.

    distance = haversine(origin, destination)
    duration = max(30, round(distance / 8))
    price    = round(distance * 0.5 + U[0, 50))

    Raises:
        ValueError: origin and destination are the same airport
    """
    if origin.name == destination.name:
        raise ValueError(f"Origin and destination are both {origin.name}")

    config = config or RoutePlanningConfig()
    rng = rng if rng is not None else np.random.default_rng()

    distance = haversine_km(origin.coordinates, destination.coordinates)
    noise = rng.uniform(0.0, config.fare_noise_max) if config.fare_noise_max > 0 else 0.0
    price = float(round(distance * config.fare_per_km + noise))

    return FlightRoute(
        route_id=f"route-{uuid.uuid4().hex[:12]}",
        origin=origin.name,
        destination=destination.name,
        origin_coordinates=origin.coordinates,
        destination_coordinates=destination.coordinates,
        distance_km=distance,
        duration_minutes=route_duration(distance, config),
        price=price,
    )


def can_reach(range_km: Optional[float], route: FlightRoute) -> bool:
    """Whether an aircraft with the given range can fly the route."""
    if not range_km:
        return True
    return route.distance_km <= range_km


def cosmetic_progress(route: FlightRoute, now: datetime) -> float:
    """Wall-clock progress in percent, derived purely from the start time."""
    if route.start_time is None or route.duration_minutes <= 0:
        return route.progress
    elapsed_minutes = (now - route.start_time).total_seconds() / 60.0
    return min(max(elapsed_minutes, 0.0) / route.duration_minutes, 1.0) * 100.0


def refresh_positions(aircraft_list: List, now: datetime) -> List:
    """Display-only position refresh for in-flight aircraft.

    Returns copies whose ``position`` and ``display_progress`` follow
    wall-clock time. Route progress, fuel, condition and money are left
    alone, and an aircraft whose wall-clock progress has reached 100 keeps
    its last position until the tick engine lands it.
    """
    refreshed = []
    for aircraft in aircraft_list:
        route = aircraft.current_route
        if aircraft.status != "in-flight" or route is None:
            refreshed.append(aircraft)
            continue

        progress = cosmetic_progress(route, now)
        if progress >= 100.0:
            refreshed.append(aircraft)
            continue

        moved = deepcopy(aircraft)
        moved.position = interpolate_position(route.origin_coordinates, route.destination_coordinates, progress)
        moved.display_progress = progress
        refreshed.append(moved)

    return refreshed
