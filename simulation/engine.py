"""Flight/economy simulation tick engine.

Advances every in-flight and delayed aircraft by an arbitrary span of elapsed
minutes in one call, settles completed flights and produces the next fleet
snapshot plus a list of notifications. The input snapshot is never mutated
and the engine never raises: every branch is a total function of the
snapshot, the elapsed time, the speed multiplier and the random generator.

Per-aircraft update:
1. maintenance / grounded / crashed / idle: unchanged
2. delayed: resumes with probability 0.3, otherwise unchanged this tick.
   A resumed aircraft progresses normally in the same tick.
3. in-flight: one uniform draw u against {crash, delay, none}
     p_crash = 0.1%/h * hours  (only when condition < 30)
     p_delay = 2%/h * hours
     u < p_crash               -> crash (terminal, -20 reputation, 80% insurance)
     u < p_crash + p_delay     -> delay (no progress this tick)
     otherwise                 -> progress, fuel burn, wear, hours, settlement
4. every aircraft that is in flight during the tick pays prorated upkeep
   (0.1% of purchase price per day), including one that resumes from a
   delay; an aircraft that stays delayed pays nothing
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import numpy as np

from simulation.aircraft import Aircraft, Delayed, InFlight, Maintenance
from simulation.game_state import FleetSnapshot
from simulation import notifications as notify
from simulation.notifications import Notification
from utils.config import SimulationConfig

MINUTES_PER_DAY = 24 * 60

# Progress within this distance of 100 counts as arrived (float accumulation)
PROGRESS_EPSILON = 1e-9


@dataclass
class TickResult:
    """Output of one tick or maintenance pass."""

    snapshot: FleetSnapshot
    notifications: List[Notification] = field(default_factory=list)


@dataclass
class _Ledger:
    """Economy deltas accumulated across the fleet, applied once per tick."""

    budget: float = 0.0
    revenue: float = 0.0
    reputation: float = 0.0


class TickEngine:
    """Simulation tick engine.

    Holds only configuration and the random source; all game state is
    passed in and returned.
    """

    def __init__(self, config: Optional[SimulationConfig] = None,
                 rng: Optional[np.random.Generator] = None, verbose: Optional[bool] = None):
        """Initialize engine.

        Args:
            config: Simulation configuration
            rng: NumPy random generator
            verbose: Enable detailed logging (defaults to config.verbose)
        """
        self.config = config or SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.verbose = self.config.verbose if verbose is None else verbose

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self, snapshot: FleetSnapshot, minutes_passed: float,
             speed_multiplier: Optional[float] = None) -> TickResult:
        """Advance the fleet by ``minutes_passed`` minutes.

        Args:
            snapshot: Current fleet and game state (not modified)
            minutes_passed: Elapsed minutes, applied in one step
            speed_multiplier: Divides effective route duration (defaults to config)

        Returns:
            TickResult with the next snapshot and notifications
        """
        next_snapshot = snapshot.copy()

        if minutes_passed is None or minutes_passed <= 0:
            return TickResult(snapshot=next_snapshot)

        if speed_multiplier is None:
            speed_multiplier = self.config.speed_multiplier
        if not speed_multiplier or speed_multiplier <= 0:
            speed_multiplier = 1.0

        ledger = _Ledger()
        events: List[Notification] = []

        for aircraft in next_snapshot.aircraft:
            self._update_aircraft(aircraft, minutes_passed, speed_multiplier, ledger, events)

        state = next_snapshot.game_state
        state.budget += ledger.budget
        state.total_revenue += ledger.revenue
        state.adjust_reputation(ledger.reputation)

        if self.verbose and events:
            print(f"🕐 Tick +{minutes_passed:g} min: {len(events)} event(s), budget {state.budget:,.0f}")

        return TickResult(snapshot=next_snapshot, notifications=events)

    def _update_aircraft(self, aircraft: Aircraft, minutes: float, speed_multiplier: float,
                         ledger: _Ledger, events: List[Notification]) -> None:
        """Apply one tick to a single aircraft (mutates the copy in place)."""
        if isinstance(aircraft.state, InFlight):
            ledger.budget -= self._upkeep(aircraft, minutes)

            outcome = self._draw_event(aircraft, minutes)
            if outcome == "crash":
                self._crash(aircraft, ledger, events)
                return
            if outcome == "delay":
                self._delay(aircraft, events)
                return

        elif isinstance(aircraft.state, Delayed):
            if self.rng.random() >= self.config.events.delay_resume_probability:
                return
            aircraft.resume()
            ledger.budget -= self._upkeep(aircraft, minutes)
            if self.verbose:
                print(f"▶️  {aircraft.registration} resumed flight")

        else:
            return

        self._progress(aircraft, minutes, speed_multiplier, ledger, events)

    def _upkeep(self, aircraft: Aircraft, minutes: float) -> float:
        """Prorated daily operating cost."""
        daily_cost = aircraft.purchase_price * self.config.economy.daily_upkeep_fraction
        return daily_cost * minutes / MINUTES_PER_DAY

    def _draw_event(self, aircraft: Aircraft, minutes: float) -> Optional[str]:
        """Single draw from the combined {crash, delay, none} distribution."""
        events = self.config.events
        if not events.random_events:
            return None

        hours = minutes / 60.0
        p_crash = 0.0
        if aircraft.condition < events.crash_condition_threshold:
            p_crash = events.crash_rate_per_hour * hours
        p_delay = events.delay_rate_per_hour * hours if aircraft.delay_reason is None else 0.0

        u = self.rng.random()
        if u < p_crash:
            return "crash"
        if u < p_crash + p_delay:
            return "delay"
        return None

    def _pick(self, reasons) -> str:
        return reasons[int(self.rng.integers(0, len(reasons)))]

    def _crash(self, aircraft: Aircraft, ledger: _Ledger, events: List[Notification]) -> None:
        reason = self._pick(self.config.events.CRASH_REASONS)
        payout = aircraft.purchase_price * self.config.events.insurance_payout_fraction

        aircraft.crash(reason)
        ledger.reputation -= self.config.events.crash_reputation_penalty
        ledger.budget += payout
        events.append(notify.aircraft_crashed(aircraft, reason, payout))

        if self.verbose:
            print(f"💥 {aircraft.registration} crashed: {reason} (insurance {payout:,.0f})")

    def _delay(self, aircraft: Aircraft, events: List[Notification]) -> None:
        reason = self._pick(self.config.events.DELAY_REASONS)
        aircraft.delay(reason)
        events.append(notify.delay_started(aircraft, reason))

        if self.verbose:
            print(f"⏳ {aircraft.registration} delayed: {reason}")

    def _progress(self, aircraft: Aircraft, minutes: float, speed_multiplier: float,
                  ledger: _Ledger, events: List[Notification]) -> None:
        """Normal progression plus settlement when the route is finished."""
        route = aircraft.current_route
        effective_duration = route.duration_minutes / speed_multiplier
        if effective_duration > 0:
            increment = minutes / effective_duration * 100.0
        else:
            increment = 100.0

        new_progress = route.progress + increment
        if new_progress >= 100.0 - PROGRESS_EPSILON:
            new_progress = 100.0
        aircraft.move_to(new_progress)
        aircraft.fly(minutes, self.config.economy.wear_per_minute)

        if route.progress >= 100.0:
            self._settle(aircraft, ledger, events)

    def _settle(self, aircraft: Aircraft, ledger: _Ledger, events: List[Notification]) -> None:
        route = aircraft.land()
        revenue = route.price * aircraft.passengers
        ledger.budget += revenue
        ledger.revenue += revenue
        events.append(notify.flight_completed(aircraft, route.destination, revenue))

        if self.verbose:
            print(f"🛬 {aircraft.registration} arrived in {route.destination}: +{revenue:,.0f}")

    # ------------------------------------------------------------------
    # Deferred maintenance
    # ------------------------------------------------------------------

    def complete_due_maintenance(self, snapshot: FleetSnapshot, now: datetime) -> TickResult:
        """Resolve scheduled maintenance completions that are due at ``now``.

        Records for aircraft that were sold (or are no longer in maintenance)
        are dropped without error.
        """
        next_snapshot = snapshot.copy()
        state = next_snapshot.game_state
        events: List[Notification] = []

        due_ids = []
        pending = []
        for record in state.maintenance_schedule:
            if record.is_due(now):
                due_ids.append(record.aircraft_id)
            else:
                pending.append(record)
        state.maintenance_schedule = pending

        # Aircraft whose own due time passed but lost their record
        scheduled = {r.aircraft_id for r in pending}
        for aircraft in next_snapshot.aircraft:
            due_at = aircraft.maintenance_due_at
            if (isinstance(aircraft.state, Maintenance) and due_at is not None
                    and due_at <= now and aircraft.id not in scheduled and aircraft.id not in due_ids):
                due_ids.append(aircraft.id)

        for aircraft_id in due_ids:
            aircraft = next_snapshot.find(aircraft_id)
            if aircraft is None:
                continue
            if aircraft.finish_maintenance():
                events.append(notify.maintenance_completed(aircraft))
                if self.verbose:
                    print(f"🔧 {aircraft.registration} maintenance complete")

        return TickResult(snapshot=next_snapshot, notifications=events)


def tick(snapshot: FleetSnapshot, minutes_passed: float, speed_multiplier: float = 1.0,
         rng: Optional[np.random.Generator] = None,
         config: Optional[SimulationConfig] = None) -> TickResult:
    """Functional entry point: one tick with an explicit random source."""
    engine = TickEngine(config=config, rng=rng, verbose=False)
    return engine.tick(snapshot, minutes_passed, speed_multiplier)


def parse_watermark(watermark: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO timestamp; None when missing or corrupt.

    Naive timestamps are taken as UTC.
    """
    if not watermark or not isinstance(watermark, str):
        return None
    try:
        parsed = datetime.fromisoformat(watermark)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def minutes_since(watermark: Optional[str], now: datetime) -> Optional[int]:
    """Whole minutes elapsed since the watermark, or None if it is corrupt."""
    last_update = parse_watermark(watermark)
    if last_update is None:
        return None
    elapsed = (now - last_update).total_seconds() / 60.0
    return max(0, int(elapsed // 1))
