"""SQLite persistence for player fleet snapshots.

Tables:
- game_states: One row per player (economy fields + fleet JSON)
- active_flights: Write-only projection of in-flight aircraft across all
  players, refreshed on every save. It is an eventually-consistent view
  for leaderboards/live maps, never read back into a simulation.
"""

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from simulation.game_state import FleetSnapshot, GameState
from simulation.aircraft import Aircraft


class SnapshotStore:
    """SQLite store implementing load/save of a player's snapshot.

    Safe to share between a session's scheduler threads; access is
    serialized with an internal lock.
    """

    def __init__(self, db_path: str, verbose: bool = False):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file (':memory:' for tests)
            verbose: Enable detailed logging
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.verbose = verbose
        self._lock = threading.Lock()

        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        if db_path != ":memory:":
            # WAL mode prevents reader/writer locking
            self.conn.execute("PRAGMA journal_mode=WAL")

        self._create_schema()

        if self.verbose:
            print(f"📊 Database initialized: {self.db_path}")

    def _create_schema(self) -> None:
        """Create database schema."""
        cursor = self.conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS game_states (
                player_id TEXT PRIMARY KEY,
                username TEXT,
                budget REAL NOT NULL,
                total_revenue REAL NOT NULL DEFAULT 0,
                total_routes INTEGER NOT NULL DEFAULT 0,
                aircraft_purchased INTEGER NOT NULL DEFAULT 0,
                flights_started INTEGER NOT NULL DEFAULT 0,
                reputation REAL NOT NULL DEFAULT 50,
                game_start_date TEXT,
                last_update_date TEXT,
                fleet TEXT NOT NULL DEFAULT '[]',
                maintenance_schedule TEXT NOT NULL DEFAULT '[]',
                updated_at DATETIME
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS active_flights (
                player_id TEXT NOT NULL,
                aircraft_id TEXT NOT NULL,
                username TEXT,
                aircraft_model TEXT,
                from_airport TEXT,
                to_airport TEXT,
                progress REAL,
                status TEXT,
                estimated_arrival TEXT,
                updated_at DATETIME,
                PRIMARY KEY (player_id, aircraft_id)
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_active_flights_player ON active_flights(player_id)")

        self.conn.commit()

    def save(self, player_id: str, snapshot: FleetSnapshot, username: Optional[str] = None) -> None:
        """Upsert the player's snapshot and refresh their active flights.

        Raises:
            sqlite3.Error: Write failed (the transaction is rolled back)
        """
        state = snapshot.game_state
        fleet_json = json.dumps([a.to_dict() for a in snapshot.aircraft])
        schedule_json = json.dumps([m.to_dict() for m in state.maintenance_schedule])
        stamp = datetime.now(timezone.utc).isoformat()

        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO game_states (
                        player_id, username, budget, total_revenue, total_routes,
                        aircraft_purchased, flights_started, reputation,
                        game_start_date, last_update_date, fleet, maintenance_schedule, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(player_id) DO UPDATE SET
                        username = COALESCE(excluded.username, game_states.username),
                        budget = excluded.budget,
                        total_revenue = excluded.total_revenue,
                        total_routes = excluded.total_routes,
                        aircraft_purchased = excluded.aircraft_purchased,
                        flights_started = excluded.flights_started,
                        reputation = excluded.reputation,
                        game_start_date = excluded.game_start_date,
                        last_update_date = excluded.last_update_date,
                        fleet = excluded.fleet,
                        maintenance_schedule = excluded.maintenance_schedule,
                        updated_at = excluded.updated_at
                """,
                    (
                        player_id,
                        username,
                        state.budget,
                        state.total_revenue,
                        state.total_routes,
                        state.aircraft_purchased,
                        state.flights_started,
                        state.reputation,
                        state.game_start_date,
                        state.last_update_date,
                        fleet_json,
                        schedule_json,
                        stamp,
                    ),
                )

                self._sync_active_flights(cursor, player_id, snapshot, username, stamp)
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise

        if self.verbose:
            print(f"💾 Saved {player_id}: {len(snapshot.aircraft)} aircraft, budget {state.budget:,.0f}")

    def _sync_active_flights(self, cursor, player_id: str, snapshot: FleetSnapshot,
                             username: Optional[str], stamp: str) -> None:
        """Replace the player's rows with their currently airborne aircraft."""
        cursor.execute("DELETE FROM active_flights WHERE player_id = ?", (player_id,))

        rows = []
        for aircraft in snapshot.aircraft:
            route = aircraft.current_route
            if route is None:
                continue
            rows.append(
                (
                    player_id,
                    aircraft.id,
                    username,
                    aircraft.model,
                    route.origin,
                    route.destination,
                    route.progress,
                    aircraft.status,
                    route.arrival_time.isoformat() if route.arrival_time else None,
                    stamp,
                )
            )

        cursor.executemany(
            """
            INSERT INTO active_flights (
                player_id, aircraft_id, username, aircraft_model, from_airport,
                to_airport, progress, status, estimated_arrival, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            rows,
        )

    def load(self, player_id: str) -> Optional[FleetSnapshot]:
        """Load a player's snapshot.

        Returns:
            FleetSnapshot or None if the player has no saved game
        """
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT budget, total_revenue, total_routes, aircraft_purchased,
                       flights_started, reputation, game_start_date, last_update_date,
                       fleet, maintenance_schedule
                FROM game_states
                WHERE player_id = ?
            """,
                (player_id,),
            )
            row = cursor.fetchone()

        if row is None:
            return None

        game_state = GameState.from_dict({
            "budget": row[0],
            "total_revenue": row[1],
            "total_routes": row[2],
            "aircraft_purchased": row[3],
            "flights_started": row[4],
            "reputation": row[5],
            "game_start_date": row[6],
            "last_update_date": row[7],
            "maintenance_schedule": json.loads(row[9] or "[]"),
        })
        fleet_data = json.loads(row[8] or "[]")
        aircraft = [Aircraft.from_dict(a) for a in fleet_data] if isinstance(fleet_data, list) else []

        return FleetSnapshot(aircraft=aircraft, game_state=game_state)

    def delete(self, player_id: str) -> None:
        """Remove a player's game and their active flights."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM active_flights WHERE player_id = ?", (player_id,))
            cursor.execute("DELETE FROM game_states WHERE player_id = ?", (player_id,))
            self.conn.commit()

    def list_active_flights(self) -> List[Dict]:
        """All players' airborne aircraft, most advanced first."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("""
                SELECT player_id, aircraft_id, username, aircraft_model, from_airport,
                       to_airport, progress, status, estimated_arrival
                FROM active_flights
                ORDER BY progress DESC
            """)
            rows = cursor.fetchall()

        return [
            {
                "player_id": r[0],
                "aircraft_id": r[1],
                "username": r[2],
                "aircraft_model": r[3],
                "from_airport": r[4],
                "to_airport": r[5],
                "progress": r[6],
                "status": r[7],
                "estimated_arrival": r[8],
            }
            for r in rows
        ]

    def leaderboard(self, limit: int = 10) -> List[Dict]:
        """Players ranked by budget."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                SELECT player_id, username, budget, reputation, total_revenue, flights_started
                FROM game_states
                ORDER BY budget DESC
                LIMIT ?
            """,
                (limit,),
            )
            rows = cursor.fetchall()

        return [
            {
                "player_id": r[0],
                "username": r[1],
                "budget": r[2],
                "reputation": r[3],
                "total_revenue": r[4],
                "flights_started": r[5],
            }
            for r in rows
        ]

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

        if self.verbose:
            print(f"📊 Database closed: {self.db_path}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
