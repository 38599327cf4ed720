#!/usr/bin/env python3
"""Run a headless airline game on a simulated clock.

A simple autopilot buys the cheapest affordable aircraft, keeps the fleet
fuelled and maintained and sends idle aircraft to random reachable airports.
Useful for balancing the economy constants in the config file.

Usage:
    python scripts/run_simulation.py --config config/default.yaml --hours 48 --seed 42
    python scripts/run_simulation.py --hours 48 --budget 500000000 --seed 42
    python scripts/run_simulation.py --hours 24 --db results/game.db --player demo
"""

import argparse
import json
import sys
from pathlib import Path
from datetime import datetime, timedelta, timezone

from tqdm import tqdm

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from simulation.catalog import list_archetypes
from simulation.errors import CommandError
from simulation.fleet_metrics import FleetMetrics
from simulation.flight_progress import can_reach, plan_route
from simulation.geography import WORLD_AIRPORTS, find_airport
from simulation.session import PlayerSession
from simulation import commands
from utils.config import load_config_from_yaml, config_summary
from utils.database import SnapshotStore


def autopilot(session: PlayerSession, now: datetime, max_fleet: int = 10) -> int:
    """Issue one round of commands. Returns the number accepted."""
    accepted = 0
    snapshot = session.snapshot
    budget = snapshot.game_state.budget

    affordable = [a for a in list_archetypes(max_price=budget) if a.max_passengers > 0]
    if affordable and len(snapshot.aircraft) < max_fleet:
        cheapest = min(affordable, key=lambda a: a.price)
        try:
            session.purchase(cheapest, now=now)
            accepted += 1
        except CommandError:
            pass

    for aircraft in session.snapshot.aircraft:
        if aircraft.status != "idle":
            continue
        try:
            if aircraft.condition < 50:
                session.perform_maintenance(aircraft.id, now=now)
            elif aircraft.fuel_level < 50:
                session.refuel(aircraft.id)
            else:
                origin = find_airport(aircraft.location)
                candidates = []
                for destination in WORLD_AIRPORTS:
                    if origin is None or destination.name == origin.name:
                        continue
                    route = plan_route(origin, destination, session.rng, session.config.routes)
                    if can_reach(aircraft.range_km, route):
                        candidates.append(route)
                if not candidates:
                    continue
                route = candidates[int(session.rng.integers(0, len(candidates)))]
                session.start_flight(aircraft.id, route, now=now)
            accepted += 1
        except CommandError:
            continue

    return accepted


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Run a headless airline simulation")
    parser.add_argument("--config", type=str, default="config/default.yaml", help="Path to configuration YAML file")
    parser.add_argument("--hours", type=float, default=24.0, help="Simulated hours to run")
    parser.add_argument("--tick-minutes", type=int, default=1, help="Simulated minutes between ticks")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--budget", type=float, default=None, help="Override the starting budget")
    parser.add_argument("--max-fleet", type=int, default=10, help="Stop buying aircraft at this fleet size")
    parser.add_argument("--player", type=str, default="autopilot", help="Player id")
    parser.add_argument("--db", type=str, default=None, help="Persist snapshots to this SQLite file")
    parser.add_argument("--output", type=str, default=None, help="Write JSON summary to this path")
    parser.add_argument("--verbose", action="store_true", help="Enable detailed progress logging")
    args = parser.parse_args()

    print(f"📋 Loading configuration from {args.config}")
    config = load_config_from_yaml(args.config)
    if args.seed is not None:
        config.seed = args.seed
    config.verbose = args.verbose
    if args.budget is not None:
        config.economy.starting_budget = args.budget

    start = datetime.now(timezone.utc).replace(microsecond=0)
    store = SnapshotStore(args.db, verbose=args.verbose) if args.db else None

    if store is not None:
        session = PlayerSession.open(args.player, store, config=config, now=start, username=args.player)
    else:
        session = PlayerSession(args.player, commands.new_game(start, config), config=config)

    steps = int(args.hours * 60 // args.tick_minutes)
    now = start
    counts = {"commands": 0, "flights_completed": 0, "delays": 0, "crashes": 0}

    print(f"🏗️  Simulating {args.hours:g} h in {steps} ticks of {args.tick_minutes} min")
    pbar = tqdm(range(steps), desc="Simulating", unit="tick")
    for _ in pbar:
        now = now + timedelta(minutes=args.tick_minutes)
        for notification in session.run_tick(now):
            if notification.kind == "flight_completed":
                counts["flights_completed"] += 1
            elif notification.kind == "delay_started":
                counts["delays"] += 1
            elif notification.kind == "aircraft_crashed":
                counts["crashes"] += 1
        counts["commands"] += autopilot(session, now, args.max_fleet)
        session.refresh_positions(now)

        state = session.snapshot.game_state
        pbar.set_postfix(budget=f"{state.budget:,.0f}", rep=f"{state.reputation:.0f}")

    metrics = FleetMetrics().calculate_all_metrics(session.snapshot, now)
    summary = {
        "player": args.player,
        "simulated_hours": args.hours,
        "config": config_summary(config),
        "events": counts,
        "metrics": metrics,
    }

    print(f"\n✅ Simulation complete!")
    print(f"   Budget: {metrics['budget']:,.0f}")
    print(f"   Total revenue: {metrics['total_revenue']:,.0f}")
    print(f"   Reputation: {metrics['reputation']:.0f}")
    print(f"   Fleet: {metrics['total_aircraft']} aircraft, {metrics['flights_in_progress']} airborne")
    print(f"   Flights completed: {counts['flights_completed']}, delays: {counts['delays']}, crashes: {counts['crashes']}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(summary, f, indent=2)
        print(f"💾 Saved summary to {output_path}")

    session.close()
    if store is not None:
        store.close()


if __name__ == "__main__":
    main()
