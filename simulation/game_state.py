"""Per-player economy state and the fleet snapshot it travels with."""

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from simulation.aircraft import Aircraft
from simulation.errors import AircraftUnavailable


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clamp_reputation(value: float) -> float:
    return max(0.0, min(100.0, value))


@dataclass
class ScheduledMaintenance:
    """Deferred maintenance completion, persisted with the fleet."""

    aircraft_id: str
    due_at: datetime

    def is_due(self, now: datetime) -> bool:
        return self.due_at <= now

    def to_dict(self) -> Dict:
        return {"aircraft_id": self.aircraft_id, "due_at": self.due_at.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict) -> "ScheduledMaintenance":
        return cls(aircraft_id=data["aircraft_id"], due_at=datetime.fromisoformat(data["due_at"]))


@dataclass
class GameState:
    """Single-player economy state.

    Attributes:
        budget: Cash; may go negative from upkeep
        total_revenue: Realized flight revenue (and positive budget adjustments)
        total_routes: Legacy counter, +1 on purchase, -1 on sell (floored at 0)
        aircraft_purchased: Aircraft ever bought
        flights_started: Flights ever started
        game_start_date: ISO timestamp, immutable
        last_update_date: ISO timestamp watermark of the last applied tick.
            Kept as text so a corrupt stored value can be detected and reset.
        reputation: 0-100
        maintenance_schedule: Pending maintenance completions
    """

    budget: float
    total_revenue: float = 0.0
    total_routes: int = 0
    aircraft_purchased: int = 0
    flights_started: int = 0
    game_start_date: str = field(default_factory=lambda: utc_now().isoformat())
    last_update_date: str = field(default_factory=lambda: utc_now().isoformat())
    reputation: float = 50.0
    maintenance_schedule: List[ScheduledMaintenance] = field(default_factory=list)

    def adjust_reputation(self, delta: float) -> None:
        self.reputation = clamp_reputation(self.reputation + delta)

    def to_dict(self) -> Dict:
        return {
            "budget": self.budget,
            "total_revenue": self.total_revenue,
            "total_routes": self.total_routes,
            "aircraft_purchased": self.aircraft_purchased,
            "flights_started": self.flights_started,
            "game_start_date": self.game_start_date,
            "last_update_date": self.last_update_date,
            "reputation": self.reputation,
            "maintenance_schedule": [m.to_dict() for m in self.maintenance_schedule],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GameState":
        now = utc_now().isoformat()
        return cls(
            budget=float(data["budget"]),
            total_revenue=float(data.get("total_revenue", 0.0)),
            total_routes=int(data.get("total_routes", 0)),
            aircraft_purchased=int(data.get("aircraft_purchased", 0)),
            flights_started=int(data.get("flights_started", 0)),
            game_start_date=data.get("game_start_date") or now,
            last_update_date=data.get("last_update_date") or now,
            reputation=clamp_reputation(float(data.get("reputation", 50.0))),
            maintenance_schedule=[
                ScheduledMaintenance.from_dict(m) for m in data.get("maintenance_schedule", [])
            ],
        )


@dataclass
class FleetSnapshot:
    """Fleet plus game state: the unit every transition consumes and produces."""

    aircraft: List[Aircraft]
    game_state: GameState

    def find(self, aircraft_id: str) -> Optional[Aircraft]:
        for aircraft in self.aircraft:
            if aircraft.id == aircraft_id:
                return aircraft
        return None

    def require(self, aircraft_id: str, action: str = "action") -> Aircraft:
        """Find an aircraft or raise AircraftUnavailable."""
        aircraft = self.find(aircraft_id)
        if aircraft is None:
            raise AircraftUnavailable(aircraft_id, action=action)
        return aircraft

    def copy(self) -> "FleetSnapshot":
        return deepcopy(self)

    def to_dict(self) -> Dict:
        return {
            "aircraft": [a.to_dict() for a in self.aircraft],
            "game_state": self.game_state.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "FleetSnapshot":
        return cls(
            aircraft=[Aircraft.from_dict(a) for a in data.get("aircraft", [])],
            game_state=GameState.from_dict(data["game_state"]),
        )
