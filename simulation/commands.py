"""Player command handlers.

Each handler validates first and raises a ``CommandError`` subclass when the
command is rejected, leaving the input snapshot untouched. On success it
returns a ``CommandResult`` holding a new snapshot.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import List, Optional

import numpy as np

from simulation.aircraft import Aircraft, Crashed, Delayed, Idle, InFlight, Maintenance
from simulation.cabin import validate_cabin_config
from simulation.catalog import AircraftArchetype
from simulation.errors import (
    AircraftUnavailable,
    InsufficientFuel,
    InsufficientFunds,
    RouteOutOfRange,
)
from simulation.flight_progress import FlightRoute, can_reach
from simulation.game_state import FleetSnapshot, GameState, ScheduledMaintenance, utc_now
from simulation.geography import random_airport
from simulation.notifications import Notification
from utils.config import CabinConfiguration, SimulationConfig

REGISTRATION_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


@dataclass
class CommandResult:
    """Outcome of a successful command.

    Attributes:
        snapshot: Next fleet/game state
        aircraft: Aircraft affected (None after a sale)
        amount: Money moved (cost charged, or payout credited)
        notifications: Events produced by the command
    """

    snapshot: FleetSnapshot
    aircraft: Optional[Aircraft] = None
    amount: float = 0.0
    notifications: List[Notification] = field(default_factory=list)


def _registration(prefix: str, rng: np.random.Generator) -> str:
    chars = rng.choice(list(REGISTRATION_ALPHABET), size=4)
    return prefix + "".join(chars)


def purchase(snapshot: FleetSnapshot, archetype: AircraftArchetype,
             rng: Optional[np.random.Generator] = None,
             now: Optional[datetime] = None,
             config: Optional[SimulationConfig] = None,
             default_cabin: Optional[CabinConfiguration] = None) -> CommandResult:
    """Buy a new aircraft and park it at a random airport.

    Raises:
        InsufficientFunds: budget < archetype price
    """
    config = config or SimulationConfig()
    rng = rng if rng is not None else np.random.default_rng()
    now = now or utc_now()

    budget = snapshot.game_state.budget
    if budget < archetype.price:
        raise InsufficientFunds(archetype.price, budget, action=f"purchase of {archetype.display_name}")

    economy = config.economy
    airport = random_airport(rng)
    cabin = default_cabin.model_copy() if default_cabin is not None else config.fallback_cabin()
    validate_cabin_config(cabin)

    aircraft = Aircraft(
        id=f"aircraft-{uuid.uuid4().hex[:12]}",
        registration=_registration(config.registration_prefix, rng),
        model=archetype.display_name,
        airline=config.airline_name,
        archetype_id=archetype.id,
        purchase_price=archetype.price,
        max_passengers=archetype.max_passengers,
        range_km=archetype.range_km,
        passengers=int(np.floor(rng.random() * archetype.max_passengers * economy.max_initial_load_factor)),
        daily_revenue=archetype.max_passengers * economy.revenue_per_seat,
        cabin_config=cabin,
        position=tuple(airport.coordinates),
        location=airport.name,
        state=Idle(),
        last_service=now,
        next_maintenance=now + timedelta(days=economy.service_interval_days),
    )

    next_snapshot = snapshot.copy()
    state = next_snapshot.game_state
    state.budget -= archetype.price
    state.total_routes += 1
    state.aircraft_purchased += 1
    next_snapshot.aircraft.append(aircraft)

    return CommandResult(snapshot=next_snapshot, aircraft=aircraft, amount=archetype.price)


def start_flight(snapshot: FleetSnapshot, aircraft_id: str, route: FlightRoute,
                 now: Optional[datetime] = None,
                 config: Optional[SimulationConfig] = None) -> CommandResult:
    """Depart an idle aircraft on ``route``.

    Raises:
        AircraftUnavailable: missing or not idle
        InsufficientFuel: fuel below the departure floor
        RouteOutOfRange: route longer than the aircraft's range
    """
    config = config or SimulationConfig()
    now = now or utc_now()

    aircraft = snapshot.require(aircraft_id, action="start a flight")
    if not isinstance(aircraft.state, Idle):
        raise AircraftUnavailable(aircraft_id, aircraft.status, action="start a flight")

    minimum = config.economy.min_departure_fuel
    if aircraft.fuel_level < minimum:
        raise InsufficientFuel(aircraft_id, aircraft.fuel_level, minimum)

    if not can_reach(aircraft.range_km, route):
        raise RouteOutOfRange(aircraft_id, route.distance_km, aircraft.range_km)

    active_route = replace(
        route,
        route_id=route.route_id or f"route-{uuid.uuid4().hex[:12]}",
        progress=0.0,
        start_time=now,
        arrival_time=now + timedelta(minutes=route.duration_minutes),
    )

    next_snapshot = snapshot.copy()
    flying = next_snapshot.find(aircraft_id)
    flying.depart(active_route)
    next_snapshot.game_state.flights_started += 1
    next_snapshot.game_state.total_routes += 1

    return CommandResult(snapshot=next_snapshot, aircraft=flying)


def refuel(snapshot: FleetSnapshot, aircraft_id: str,
           config: Optional[SimulationConfig] = None) -> CommandResult:
    """Fill the tank: cost = (100 - fuel) * unit cost.

    Raises:
        AircraftUnavailable: missing or crashed
        InsufficientFunds: budget < cost
    """
    config = config or SimulationConfig()

    aircraft = snapshot.require(aircraft_id, action="refuel")
    if isinstance(aircraft.state, Crashed):
        raise AircraftUnavailable(aircraft_id, aircraft.status, action="refuel")

    cost = aircraft.fuel_needed() * config.economy.fuel_unit_cost
    budget = snapshot.game_state.budget
    if budget < cost:
        raise InsufficientFunds(cost, budget, action="refuel")

    next_snapshot = snapshot.copy()
    fuelled = next_snapshot.find(aircraft_id)
    fuelled.refuel()
    next_snapshot.game_state.budget -= cost

    return CommandResult(snapshot=next_snapshot, aircraft=fuelled, amount=cost)


def perform_maintenance(snapshot: FleetSnapshot, aircraft_id: str,
                        now: Optional[datetime] = None,
                        config: Optional[SimulationConfig] = None) -> CommandResult:
    """Send an aircraft to maintenance; cost = 2% of purchase price.

    Condition is restored at once, the aircraft returns to idle when the
    scheduled completion is resolved.

    Raises:
        AircraftUnavailable: missing, airborne, crashed or already in maintenance
        InsufficientFunds: budget < cost
    """
    config = config or SimulationConfig()
    now = now or utc_now()
    economy = config.economy

    aircraft = snapshot.require(aircraft_id, action="start maintenance")
    if isinstance(aircraft.state, (InFlight, Delayed, Crashed, Maintenance)):
        raise AircraftUnavailable(aircraft_id, aircraft.status, action="start maintenance")

    cost = aircraft.purchase_price * economy.maintenance_cost_fraction
    budget = snapshot.game_state.budget
    if budget < cost:
        raise InsufficientFunds(cost, budget, action="maintenance")

    due_at = now + timedelta(seconds=economy.maintenance_duration_seconds)

    next_snapshot = snapshot.copy()
    serviced = next_snapshot.find(aircraft_id)
    serviced.start_maintenance(now, due_at, economy.service_interval_days)
    state = next_snapshot.game_state
    state.budget -= cost
    state.maintenance_schedule = [m for m in state.maintenance_schedule if m.aircraft_id != aircraft_id]
    state.maintenance_schedule.append(ScheduledMaintenance(aircraft_id=aircraft_id, due_at=due_at))

    return CommandResult(snapshot=next_snapshot, aircraft=serviced, amount=cost)


def complete_maintenance(snapshot: FleetSnapshot, aircraft_id: str) -> CommandResult:
    """Finish maintenance immediately.

    Idempotent: a missing aircraft or one not in maintenance is a no-op.
    """
    next_snapshot = snapshot.copy()
    state = next_snapshot.game_state
    state.maintenance_schedule = [m for m in state.maintenance_schedule if m.aircraft_id != aircraft_id]

    aircraft = next_snapshot.find(aircraft_id)
    if aircraft is not None:
        aircraft.finish_maintenance()

    return CommandResult(snapshot=next_snapshot, aircraft=aircraft)


def sell(snapshot: FleetSnapshot, aircraft_id: str,
         config: Optional[SimulationConfig] = None) -> CommandResult:
    """Sell an aircraft for its condition-weighted salvage value.

    Raises:
        AircraftUnavailable: aircraft does not exist
    """
    config = config or SimulationConfig()
    economy = config.economy

    aircraft = snapshot.require(aircraft_id, action="sell")
    payout = aircraft.salvage_value(economy.salvage_base_fraction, economy.salvage_condition_fraction)

    next_snapshot = snapshot.copy()
    next_snapshot.aircraft = [a for a in next_snapshot.aircraft if a.id != aircraft_id]
    state = next_snapshot.game_state
    state.budget += payout
    state.total_routes = max(0, state.total_routes - 1)
    state.maintenance_schedule = [m for m in state.maintenance_schedule if m.aircraft_id != aircraft_id]

    return CommandResult(snapshot=next_snapshot, amount=payout)


def update_cabin_config(snapshot: FleetSnapshot, aircraft_id: str,
                        cabin: CabinConfiguration) -> CommandResult:
    """Store a new cabin split on an aircraft.

    Raises:
        AircraftUnavailable: aircraft does not exist
        InvalidCabinSplit: split is negative or does not sum to 100
    """
    snapshot.require(aircraft_id, action="reconfigure the cabin")
    validate_cabin_config(cabin)

    next_snapshot = snapshot.copy()
    aircraft = next_snapshot.find(aircraft_id)
    aircraft.cabin_config = cabin.model_copy()

    return CommandResult(snapshot=next_snapshot, aircraft=aircraft)


def adjust_budget(snapshot: FleetSnapshot, amount: float) -> CommandResult:
    """Apply an external budget change (e.g. a world event reward or penalty).

    Only the budget moves; total revenue counts settled fares alone.
    """
    next_snapshot = snapshot.copy()
    next_snapshot.game_state.budget += amount

    return CommandResult(snapshot=next_snapshot, amount=amount)


def new_game(now: Optional[datetime] = None, config: Optional[SimulationConfig] = None) -> FleetSnapshot:
    """Fresh snapshot: empty fleet, starting budget and reputation."""
    config = config or SimulationConfig()
    stamp = (now or utc_now()).isoformat()
    return FleetSnapshot(
        aircraft=[],
        game_state=GameState(
            budget=config.economy.starting_budget,
            reputation=config.economy.starting_reputation,
            game_start_date=stamp,
            last_update_date=stamp,
        ),
    )


def reset_game(now: Optional[datetime] = None, config: Optional[SimulationConfig] = None) -> CommandResult:
    """Discard the fleet and start over."""
    return CommandResult(snapshot=new_game(now, config))
