"""Per-player session: the single writer for one player's snapshot.

The session serializes every tick and command against one in-memory
snapshot with a re-entrant lock, then persists the result best-effort.
By default saves are handed to a per-player writer thread, so a slow store
never holds the session lock. Persistence failures are logged and never
undo the in-memory transition; the next successful save catches the store up.

Two periodic triggers drive it (see ``SessionScheduler``):
- economic tick, every 60 s: applies the whole elapsed gap since the watermark
- cosmetic refresh, every 5 s: moves display positions only
"""

import logging
import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import numpy as np

from simulation import commands
from simulation.catalog import AircraftArchetype
from simulation.commands import CommandResult
from simulation.engine import TickEngine, minutes_since, parse_watermark
from simulation.flight_progress import FlightRoute, refresh_positions
from simulation.game_state import FleetSnapshot, utc_now
from simulation.notifications import Notification
from utils.config import CabinConfiguration, SimulationConfig

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """Saves snapshots for one player on a background thread.

    Only the newest pending snapshot is kept: a save that has not started
    yet is replaced by a later one, so the store always converges on the
    latest state without queueing every intermediate version.
    """

    def __init__(self, store, player_id: str, username: Optional[str] = None):
        self.store = store
        self.player_id = player_id
        self.username = username
        self.failures = 0

        self._pending: Optional[FleetSnapshot] = None
        self._busy = False
        self._closed = False
        self._cond = threading.Condition()
        self._thread = threading.Thread(target=self._run, name=f"writer-{player_id}", daemon=True)
        self._thread.start()

    def submit(self, snapshot: FleetSnapshot) -> bool:
        """Queue a snapshot for saving. The caller must not mutate it afterwards.

        Returns:
            False once the writer is closed (nothing queued)
        """
        with self._cond:
            if self._closed:
                return False
            self._pending = snapshot
            self._cond.notify_all()
        return True

    def _run(self) -> None:
        while True:
            with self._cond:
                while self._pending is None and not self._closed:
                    self._cond.wait()
                if self._pending is None:
                    return
                snapshot, self._pending = self._pending, None
                self._busy = True

            try:
                self.store.save(self.player_id, snapshot, self.username)
            except Exception:
                self.failures += 1
                logger.exception("Player %s: failed to save snapshot (failure #%d)", self.player_id, self.failures)
            finally:
                with self._cond:
                    self._busy = False
                    self._cond.notify_all()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every submitted snapshot has been written (or failed).

        Returns:
            False if the timeout expired first
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._pending is None and not self._busy, timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Write what is pending, then stop the thread."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()


class PlayerSession:
    """Owns one player's authoritative snapshot.

    Every public method takes the session lock, so ticks and commands issued
    from different threads never interleave.
    """

    def __init__(self, player_id: str, snapshot: FleetSnapshot,
                 config: Optional[SimulationConfig] = None,
                 store=None,
                 rng: Optional[np.random.Generator] = None,
                 username: Optional[str] = None,
                 on_notification: Optional[Callable[[Notification], None]] = None,
                 verbose: Optional[bool] = None):
        """Initialize session.

        Args:
            player_id: Persistence key
            snapshot: Starting fleet and game state
            config: Simulation configuration
            store: Object with ``save(player_id, snapshot, username)`` (None = in-memory only)
            rng: NumPy random generator shared by ticks and commands
            username: Display name written to the active-flights projection
            on_notification: Callback invoked for every notification, after the lock is released.
                Without one, notifications are buffered (bounded) for drain_notifications()
            verbose: Enable detailed logging (defaults to config.verbose)
        """
        self.player_id = player_id
        self.config = config or SimulationConfig()
        self.store = store
        self.username = username
        self.on_notification = on_notification
        self.verbose = self.config.verbose if verbose is None else verbose
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)

        self.engine = TickEngine(config=self.config, rng=self.rng, verbose=self.verbose)
        self._snapshot = snapshot
        self._lock = threading.RLock()
        self._buffer = deque(maxlen=self.config.scheduler.max_buffered_notifications)
        self._sync_failures = 0
        self._writer: Optional[SnapshotWriter] = None
        if store is not None and self.config.scheduler.background_saves:
            self._writer = SnapshotWriter(store, player_id, username)

    @classmethod
    def open(cls, player_id: str, store, config: Optional[SimulationConfig] = None,
             now: Optional[datetime] = None, **kwargs) -> "PlayerSession":
        """Load a player's saved game, creating a new one if none exists."""
        config = config or SimulationConfig()
        snapshot = store.load(player_id)
        session = cls(player_id, snapshot or commands.new_game(now, config), config=config, store=store, **kwargs)
        if snapshot is None:
            session._persist()
        return session

    @property
    def snapshot(self) -> FleetSnapshot:
        """Deep copy of the current snapshot (safe to read outside the lock)."""
        with self._lock:
            return self._snapshot.copy()

    # ------------------------------------------------------------------
    # Periodic triggers
    # ------------------------------------------------------------------

    def run_tick(self, now: Optional[datetime] = None) -> List[Notification]:
        """Apply all time elapsed since the watermark.

        A corrupt watermark is reset to ``now`` and nothing else happens this
        cycle. Due maintenance completions are resolved before flights move.

        Returns:
            Notifications produced by this cycle
        """
        now = now or utc_now()

        with self._lock:
            state = self._snapshot.game_state
            minutes = minutes_since(state.last_update_date, now)

            if minutes is None:
                logger.warning(
                    "Player %s: invalid watermark %r, resetting to %s",
                    self.player_id, state.last_update_date, now.isoformat(),
                )
                next_snapshot = self._snapshot.copy()
                next_snapshot.game_state.last_update_date = now.isoformat()
                self._snapshot = next_snapshot
                self._persist()
                return []

            maintenance = self.engine.complete_due_maintenance(self._snapshot, now)
            snapshot = maintenance.snapshot
            produced = list(maintenance.notifications)

            if minutes >= 1:
                result = self.engine.tick(snapshot, minutes, self.config.speed_multiplier)
                snapshot = result.snapshot
                produced.extend(result.notifications)
                watermark = parse_watermark(state.last_update_date) + timedelta(minutes=minutes)
                snapshot.game_state.last_update_date = watermark.isoformat()

            changed = minutes >= 1 or bool(produced)
            self._snapshot = snapshot
            self._buffer_notifications(produced)
            if changed:
                self._persist()

        self._dispatch(produced)
        return produced

    def refresh_positions(self, now: Optional[datetime] = None) -> FleetSnapshot:
        """Cosmetic position update for smooth map animation.

        Returns:
            Copy of the refreshed snapshot
        """
        now = now or utc_now()
        with self._lock:
            next_snapshot = self._snapshot.copy()
            next_snapshot.aircraft = refresh_positions(next_snapshot.aircraft, now)
            self._snapshot = next_snapshot
            return next_snapshot.copy()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _apply(self, command: Callable[[FleetSnapshot], CommandResult]) -> CommandResult:
        """Run a command against the current snapshot and commit it.

        CommandError subclasses propagate to the caller with state unchanged.
        """
        with self._lock:
            result = command(self._snapshot)
            self._snapshot = result.snapshot
            self._buffer_notifications(result.notifications)
            self._persist()
        self._dispatch(result.notifications)
        return result

    def purchase(self, archetype: AircraftArchetype, now: Optional[datetime] = None) -> CommandResult:
        result = self._apply(lambda s: commands.purchase(
            s, archetype, rng=self.rng, now=now, config=self.config, default_cabin=self.config.default_cabin,
        ))
        if self.verbose:
            print(f"🛒 {self.player_id} bought {result.aircraft.model} ({result.aircraft.registration})")
        return result

    def start_flight(self, aircraft_id: str, route: FlightRoute, now: Optional[datetime] = None) -> CommandResult:
        result = self._apply(lambda s: commands.start_flight(s, aircraft_id, route, now=now, config=self.config))
        if self.verbose:
            print(f"🛫 {result.aircraft.registration}: {route.origin} -> {route.destination}")
        return result

    def refuel(self, aircraft_id: str) -> CommandResult:
        return self._apply(lambda s: commands.refuel(s, aircraft_id, config=self.config))

    def perform_maintenance(self, aircraft_id: str, now: Optional[datetime] = None) -> CommandResult:
        return self._apply(lambda s: commands.perform_maintenance(s, aircraft_id, now=now, config=self.config))

    def complete_maintenance(self, aircraft_id: str) -> CommandResult:
        return self._apply(lambda s: commands.complete_maintenance(s, aircraft_id))

    def sell(self, aircraft_id: str) -> CommandResult:
        return self._apply(lambda s: commands.sell(s, aircraft_id, config=self.config))

    def update_cabin_config(self, aircraft_id: str, cabin: CabinConfiguration) -> CommandResult:
        return self._apply(lambda s: commands.update_cabin_config(s, aircraft_id, cabin))

    def adjust_budget(self, amount: float) -> CommandResult:
        return self._apply(lambda s: commands.adjust_budget(s, amount))

    def reset(self, now: Optional[datetime] = None) -> CommandResult:
        return self._apply(lambda s: commands.reset_game(now, self.config))

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _persist(self) -> bool:
        """Best-effort save of the current snapshot. Caller holds the lock.

        With a writer thread the save only gets queued here; failures are
        counted and logged by the writer. After close() saves run inline.
        """
        if self.store is None:
            return True
        if self._writer is not None and self._writer.submit(self._snapshot.copy()):
            return True
        try:
            self.store.save(self.player_id, self._snapshot, self.username)
        except Exception:
            self._sync_failures += 1
            logger.exception("Player %s: failed to save snapshot (failure #%d)", self.player_id, self._sync_failures)
            return False
        return True

    @property
    def save_failures(self) -> int:
        """Number of saves that raised so far."""
        writer_failures = self._writer.failures if self._writer is not None else 0
        return self._sync_failures + writer_failures

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued saves to reach the store (True when nothing is pending)."""
        if self._writer is None:
            return True
        return self._writer.flush(timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Finish queued saves and stop the writer thread."""
        if self._writer is not None:
            self._writer.close(timeout)

    def _buffer_notifications(self, produced: List[Notification]) -> None:
        # A callback already delivers them; the buffer is only for polling callers
        if self.on_notification is None:
            self._buffer.extend(produced)

    def _dispatch(self, produced: List[Notification]) -> None:
        if self.on_notification is None:
            return
        for notification in produced:
            self.on_notification(notification)

    @property
    def notifications(self) -> List[Notification]:
        """Buffered notifications not yet drained (oldest first)."""
        with self._lock:
            return list(self._buffer)

    def drain_notifications(self) -> List[Notification]:
        """Return and clear notifications collected so far.

        Only the newest ``max_buffered_notifications`` are kept between drains.
        """
        with self._lock:
            drained = list(self._buffer)
            self._buffer.clear()
        return drained

    def __repr__(self) -> str:
        """String representation."""
        with self._lock:
            state = self._snapshot.game_state
            return (
                f"PlayerSession(player={self.player_id}, aircraft={len(self._snapshot.aircraft)}, "
                f"budget={state.budget:,.0f}, reputation={state.reputation:.0f})"
            )


class SessionScheduler:
    """Runs a session's two periodic triggers on background threads.

    The economic tick and the cosmetic refresh are independent loops; both
    go through the session lock, so they may overlap with each other and
    with player commands.
    """

    def __init__(self, session: PlayerSession, tick_interval: Optional[float] = None,
                 refresh_interval: Optional[float] = None, clock: Callable[[], datetime] = utc_now):
        """Initialize scheduler.

        Args:
            session: Session to drive
            tick_interval: Seconds between economic ticks (defaults to config)
            refresh_interval: Seconds between cosmetic refreshes (defaults to config)
            clock: Time source, injectable for tests
        """
        scheduler_config = session.config.scheduler
        self.session = session
        self.tick_interval = tick_interval or scheduler_config.tick_interval_seconds
        self.refresh_interval = refresh_interval or scheduler_config.position_refresh_seconds
        self.clock = clock
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []

    def _loop(self, interval: float, action: Callable[[datetime], object], name: str) -> None:
        while not self._stop.wait(interval):
            try:
                action(self.clock())
            except Exception:
                logger.exception("%s failed for player %s", name, self.session.player_id)

    def start(self) -> None:
        """Start both loops (no-op if already running)."""
        if self.is_running:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._loop, args=(self.tick_interval, self.session.run_tick, "Tick"),
                             name=f"tick-{self.session.player_id}", daemon=True),
            threading.Thread(target=self._loop, args=(self.refresh_interval, self.session.refresh_positions,
                                                      "Position refresh"),
                             name=f"refresh-{self.session.player_id}", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal both loops to exit and wait for them."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []

    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
