"""Owned aircraft and its lifecycle states.

The lifecycle status is a tagged union: each state class carries exactly the
fields that are meaningful in that state, so an idle aircraft cannot hold a
route and a crashed one cannot hold a delay reason.

    idle -> in-flight -> idle            (flight settled)
    in-flight <-> delayed                (delay starts / resumes)
    in-flight -> crashed                 (terminal)
    idle -> maintenance -> idle          (scheduled completion)
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import ClassVar, Dict, Optional, Tuple, Union

from simulation.flight_progress import FlightRoute, interpolate_position
from utils.config import CabinConfiguration


@dataclass
class Idle:
    status: ClassVar[str] = "idle"


@dataclass
class InFlight:
    route: FlightRoute
    status: ClassVar[str] = "in-flight"


@dataclass
class Delayed:
    route: FlightRoute
    reason: str
    status: ClassVar[str] = "delayed"


@dataclass
class Maintenance:
    due_at: Optional[datetime] = None
    status: ClassVar[str] = "maintenance"


@dataclass
class Grounded:
    status: ClassVar[str] = "grounded"


@dataclass
class Crashed:
    reason: str
    status: ClassVar[str] = "crashed"


AircraftState = Union[Idle, InFlight, Delayed, Maintenance, Grounded, Crashed]

STATUSES = ("idle", "in-flight", "maintenance", "grounded", "delayed", "crashed")


@dataclass
class Aircraft:
    """Single owned aircraft.

    Attributes:
        id: Unique, immutable identifier
        registration: Display code (e.g. 'D-AB12')
        model: Display model name (e.g. 'Airbus A320')
        airline: Owning airline label
        archetype_id: Catalog entry it was bought from

        purchase_price: Price paid (immutable, drives upkeep/maintenance/salvage)
        max_passengers: Seat capacity
        range_km: Maximum route distance (None = unlimited)
        passengers: Passengers carried per flight (0..max_passengers)
        daily_revenue: Legacy per-day revenue rate (analytics only)
        cabin_config: Percentage split across service classes

        fuel_level: 0-100, only raised by refuel
        condition: 0-100, only raised by maintenance
        total_flight_hours: Cumulative hours flown
        position: (lat, lon), authoritative from ticks, display-smoothed between them
        location: Airport name, None while airborne

        state: Lifecycle state (see module docstring)
        last_service: Last maintenance start
        next_maintenance: Recommended next service date
        display_progress: Wall-clock progress from the cosmetic refresh (not authoritative)
    """

    id: str
    registration: str
    model: str
    purchase_price: float
    max_passengers: int
    airline: str = "My Airline"
    archetype_id: Optional[str] = None
    range_km: Optional[float] = None

    passengers: int = 0
    daily_revenue: float = 0.0
    cabin_config: CabinConfiguration = field(default_factory=CabinConfiguration)

    fuel_level: float = 100.0
    condition: float = 100.0
    total_flight_hours: float = 0.0
    position: Tuple[float, float] = (0.0, 0.0)
    location: Optional[str] = None

    state: AircraftState = field(default_factory=Idle)
    last_service: Optional[datetime] = None
    next_maintenance: Optional[datetime] = None
    display_progress: Optional[float] = None

    # ------------------------------------------------------------------
    # Read-only views of the state union
    # ------------------------------------------------------------------

    @property
    def status(self) -> str:
        return self.state.status

    @property
    def current_route(self) -> Optional[FlightRoute]:
        if isinstance(self.state, (InFlight, Delayed)):
            return self.state.route
        return None

    @property
    def delay_reason(self) -> Optional[str]:
        return self.state.reason if isinstance(self.state, Delayed) else None

    @property
    def crash_reason(self) -> Optional[str]:
        return self.state.reason if isinstance(self.state, Crashed) else None

    @property
    def maintenance_due_at(self) -> Optional[datetime]:
        return self.state.due_at if isinstance(self.state, Maintenance) else None

    @property
    def is_airborne(self) -> bool:
        return isinstance(self.state, (InFlight, Delayed))

    # ------------------------------------------------------------------
    # Physical state
    # ------------------------------------------------------------------

    def fuel_consumption_rate(self) -> float:
        """Fuel points burned per flight minute: max(1, load factor * 2)."""
        load_factor = self.passengers / self.max_passengers if self.max_passengers > 0 else 0.0
        return max(1.0, load_factor * 2.0)

    def fly(self, minutes: float, wear_per_minute: float = 0.1) -> None:
        """Apply fuel burn, wear and flight hours for ``minutes`` in the air."""
        self.fuel_level = max(0.0, self.fuel_level - self.fuel_consumption_rate() * minutes)
        self.condition = max(0.0, self.condition - wear_per_minute * minutes)
        self.total_flight_hours += minutes / 60.0

    def refuel(self) -> None:
        self.fuel_level = 100.0

    def fuel_needed(self) -> float:
        return 100.0 - self.fuel_level

    def salvage_value(self, base_fraction: float = 0.6, condition_fraction: float = 0.2) -> float:
        """Sale payout: between 60% and 80% of purchase price, weighted by condition."""
        value = self.purchase_price * (base_fraction + self.condition / 100.0 * condition_fraction)
        # Round away float noise before flooring to whole currency units
        return float(math.floor(round(value, 6)))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def depart(self, route: FlightRoute) -> None:
        """Begin a flight from the current airport."""
        self.state = InFlight(route=route)
        self.location = None
        self.position = tuple(route.origin_coordinates)
        self.display_progress = None

    def move_to(self, progress: float) -> float:
        """Set route progress (never backwards, capped at 100) and the matching position."""
        route = self.current_route
        route.progress = min(100.0, max(route.progress, progress))
        self.position = interpolate_position(route.origin_coordinates, route.destination_coordinates, route.progress)
        self.display_progress = None
        return route.progress

    def land(self) -> FlightRoute:
        """Settle at the destination; returns the finished route."""
        route = self.current_route
        self.state = Idle()
        self.position = tuple(route.destination_coordinates)
        self.location = route.destination
        self.display_progress = None
        return route

    def delay(self, reason: str) -> None:
        self.state = Delayed(route=self.current_route, reason=reason)

    def resume(self) -> None:
        self.state = InFlight(route=self.current_route)

    def crash(self, reason: str) -> None:
        """Terminal: the route is dropped and the aircraft is never simulated again."""
        self.state = Crashed(reason=reason)
        self.display_progress = None

    def start_maintenance(self, now: datetime, due_at: datetime, service_interval_days: int = 90) -> None:
        """Enter maintenance; condition is restored immediately."""
        self.state = Maintenance(due_at=due_at)
        self.condition = 100.0
        self.last_service = now
        self.next_maintenance = now + timedelta(days=service_interval_days)

    def finish_maintenance(self) -> bool:
        """Return to service.

        Returns:
            True if the aircraft was in maintenance, False otherwise
        """
        if not isinstance(self.state, Maintenance):
            return False
        self.state = Idle()
        return True

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict:
        route = self.current_route
        return {
            "id": self.id,
            "registration": self.registration,
            "model": self.model,
            "airline": self.airline,
            "archetype_id": self.archetype_id,
            "purchase_price": self.purchase_price,
            "max_passengers": self.max_passengers,
            "range_km": self.range_km,
            "passengers": self.passengers,
            "daily_revenue": self.daily_revenue,
            "cabin_config": self.cabin_config.model_dump(),
            "fuel_level": self.fuel_level,
            "condition": self.condition,
            "total_flight_hours": self.total_flight_hours,
            "position": list(self.position),
            "location": self.location,
            "status": self.status,
            "current_route": route.to_dict() if route else None,
            "delay_reason": self.delay_reason,
            "crash_reason": self.crash_reason,
            "maintenance_due_at": self.maintenance_due_at.isoformat() if self.maintenance_due_at else None,
            "last_service": self.last_service.isoformat() if self.last_service else None,
            "next_maintenance": self.next_maintenance.isoformat() if self.next_maintenance else None,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Aircraft":
        """Rebuild an aircraft from ``to_dict`` output.

        Raises:
            ValueError: Unknown status, or a flying status without a route
        """
        status = data.get("status", "idle")
        route_data = data.get("current_route")
        route = FlightRoute.from_dict(route_data) if route_data else None

        if status == "idle":
            state = Idle()
        elif status == "grounded":
            state = Grounded()
        elif status == "maintenance":
            due = data.get("maintenance_due_at")
            state = Maintenance(due_at=datetime.fromisoformat(due) if due else None)
        elif status == "crashed":
            state = Crashed(reason=data.get("crash_reason") or "Unknown")
        elif status in ("in-flight", "delayed"):
            if route is None:
                raise ValueError(f"Aircraft {data.get('id')} is {status} without a route")
            if status == "in-flight":
                state = InFlight(route=route)
            else:
                state = Delayed(route=route, reason=data.get("delay_reason") or "Unknown")
        else:
            raise ValueError(f"Invalid status '{status}'. Must be one of: {list(STATUSES)}")

        last_service = data.get("last_service")
        next_maintenance = data.get("next_maintenance")
        return cls(
            id=data["id"],
            registration=data["registration"],
            model=data["model"],
            airline=data.get("airline", "My Airline"),
            archetype_id=data.get("archetype_id"),
            purchase_price=float(data["purchase_price"]),
            max_passengers=int(data["max_passengers"]),
            range_km=data.get("range_km"),
            passengers=int(data.get("passengers", 0)),
            daily_revenue=float(data.get("daily_revenue", 0.0)),
            cabin_config=CabinConfiguration(**(data.get("cabin_config") or {})),
            fuel_level=float(data.get("fuel_level", 100.0)),
            condition=float(data.get("condition", 100.0)),
            total_flight_hours=float(data.get("total_flight_hours", 0.0)),
            position=tuple(data.get("position") or (0.0, 0.0)),
            location=data.get("location"),
            state=state,
            last_service=datetime.fromisoformat(last_service) if last_service else None,
            next_maintenance=datetime.fromisoformat(next_maintenance) if next_maintenance else None,
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Aircraft(id={self.id}, reg={self.registration}, status={self.status}, "
            f"fuel={self.fuel_level:.1f}, condition={self.condition:.1f})"
        )
