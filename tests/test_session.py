#!/usr/bin/env python3
"""
Unit tests for PlayerSession and SessionScheduler.

Tests watermark handling, best-effort persistence, command serialization
and the background tick/refresh loops.
"""

import logging
import pytest
import sqlite3
import sys
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from simulation import commands
from simulation.aircraft import Aircraft, Idle, InFlight
from simulation.errors import InsufficientFunds
from simulation.flight_progress import FlightRoute
from simulation.catalog import AircraftArchetype
from simulation.notifications import FLIGHT_COMPLETED, MAINTENANCE_COMPLETED
from simulation.session import PlayerSession, SessionScheduler
from utils.config import EconomyConfig, EventConfig, SchedulerConfig, SimulationConfig
from utils.database import SnapshotStore

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def quiet_config(**scheduler):
    """No events or upkeep; saves run inline unless background_saves=True is passed."""
    scheduler.setdefault("background_saves", False)
    return SimulationConfig(
        seed=1,
        events=EventConfig(random_events=False),
        economy=EconomyConfig(daily_upkeep_fraction=0.0),
        scheduler=SchedulerConfig(**scheduler),
    )


def land_repeatedly(session, flights):
    """Settle one flight per tick, re-departing the same aircraft each time."""
    for i in range(flights):
        session._snapshot.aircraft[0].depart(make_route(progress=95.0))
        session.run_tick(NOW + timedelta(minutes=5 * (i + 1)))


def make_route(progress=0.0):
    return FlightRoute(
        origin="Frankfurt am Main (FRA)",
        destination="London Heathrow (LHR)",
        origin_coordinates=(50.0379, 8.5622),
        destination_coordinates=(51.4700, -0.4543),
        distance_km=655.0,
        duration_minutes=60,
        price=100.0,
        progress=progress,
        start_time=NOW - timedelta(minutes=54),
    )


def make_aircraft(state=None):
    return Aircraft(
        id="ac-1",
        registration="D-SESS",
        model="Airbus A320",
        purchase_price=100_000_000,
        max_passengers=180,
        range_km=3500,
        passengers=50,
        location="Frankfurt am Main (FRA)" if state is None else None,
        state=state if state is not None else Idle(),
    )


def make_session(aircraft=None, store=None, **kwargs):
    config = kwargs.pop("config", quiet_config())
    snapshot = commands.new_game(NOW, config)
    if aircraft is not None:
        snapshot.aircraft.append(aircraft)
    return PlayerSession("player-1", snapshot, config=config, store=store, **kwargs)


class TestRunTick:
    """Test the economic tick trigger."""

    def test_settlement_through_session(self):
        """Test that a due flight lands and the callback sees it."""
        received = []
        session = make_session(make_aircraft(InFlight(make_route(progress=90.0))), on_notification=received.append)

        produced = session.run_tick(NOW + timedelta(minutes=10))

        assert [n.kind for n in produced] == [FLIGHT_COMPLETED]
        assert received == produced
        assert session.snapshot.game_state.budget == 1_000_000.0 + 5000.0
        assert session.snapshot.aircraft[0].status == "idle"

    def test_watermark_advances_by_whole_minutes(self):
        """Test that leftover seconds are carried into the next tick."""
        session = make_session(make_aircraft(InFlight(make_route())))

        session.run_tick(NOW + timedelta(seconds=150))

        assert session.snapshot.game_state.last_update_date == (NOW + timedelta(minutes=2)).isoformat()
        assert session.snapshot.aircraft[0].current_route.progress == pytest.approx(200.0 / 60.0)

    def test_sub_minute_gap_does_nothing(self):
        store = MagicMock()
        session = make_session(make_aircraft(InFlight(make_route())), store=store)

        produced = session.run_tick(NOW + timedelta(seconds=30))

        assert produced == []
        assert session.snapshot.game_state.last_update_date == NOW.isoformat()
        store.save.assert_not_called()

    def test_corrupt_watermark_reset(self, caplog):
        """Test that an unparseable watermark is reset without simulating."""
        store = MagicMock()
        session = make_session(make_aircraft(InFlight(make_route())), store=store)
        session._snapshot.game_state.last_update_date = "not-a-timestamp"
        later = NOW + timedelta(hours=3)

        with caplog.at_level(logging.WARNING):
            produced = session.run_tick(later)

        assert produced == []
        assert session.snapshot.game_state.last_update_date == later.isoformat()
        assert session.snapshot.aircraft[0].current_route.progress == 0.0
        assert "invalid watermark" in caplog.text
        store.save.assert_called_once()

    def test_maintenance_completes_on_tick(self):
        session = make_session(make_aircraft())
        session._snapshot.game_state.budget = 5_000_000.0
        session.perform_maintenance("ac-1", now=NOW)

        early = session.run_tick(NOW + timedelta(seconds=10))
        late = session.run_tick(NOW + timedelta(seconds=45))

        assert early == []
        assert [n.kind for n in late] == [MAINTENANCE_COMPLETED]
        assert session.snapshot.aircraft[0].status == "idle"

    def test_refresh_positions_cosmetic(self):
        session = make_session(make_aircraft(InFlight(make_route())))

        refreshed = session.refresh_positions(NOW)

        assert refreshed.aircraft[0].display_progress == pytest.approx(90.0)
        assert refreshed.aircraft[0].current_route.progress == 0.0
        assert session.snapshot.game_state.budget == 1_000_000.0


class TestPersistence:
    """Test best-effort saving."""

    def test_save_failure_keeps_state(self, caplog):
        """Test that a failing store never rolls back the in-memory transition."""
        store = MagicMock()
        store.save.side_effect = sqlite3.OperationalError("disk I/O error")
        session = make_session(store=store)

        with caplog.at_level(logging.ERROR):
            session.adjust_budget(250.0)

        assert session.snapshot.game_state.budget == 1_000_250.0
        assert session.snapshot.game_state.total_revenue == 0.0
        assert session.save_failures == 1
        assert "failed to save" in caplog.text

    def test_rejected_command_not_saved(self):
        store = MagicMock()
        session = make_session(store=store)
        archetype = AircraftArchetype("big", "Test", "Big", "B-1", 2_000_000, 100, 3000,
                                      5000, 800, "wide-body", 2020, 80, 80)

        with pytest.raises(InsufficientFunds):
            session.purchase(archetype)

        assert session.snapshot.aircraft == []
        store.save.assert_not_called()

    def test_open_creates_and_reloads(self):
        """Test that opening twice yields the saved game."""
        with SnapshotStore(":memory:") as store:
            first = PlayerSession.open("player-9", store, config=quiet_config(), now=NOW)
            first.adjust_budget(-1000.0)

            second = PlayerSession.open("player-9", store, config=quiet_config(), now=NOW + timedelta(days=1))

            assert second.snapshot.game_state.budget == 999_000.0
            assert second.snapshot.game_state.game_start_date == NOW.isoformat()

    def test_reset(self):
        session = make_session(make_aircraft())

        session.reset(now=NOW)

        assert session.snapshot.aircraft == []


class TestConcurrency:
    """Test that concurrent callers are serialized."""

    def test_parallel_commands_all_applied(self):
        session = make_session()

        def worker():
            for _ in range(100):
                session.adjust_budget(1.0)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert session.snapshot.game_state.budget == 1_000_000.0 + 800.0

    def test_drain_notifications(self):
        session = make_session(make_aircraft(InFlight(make_route(progress=95.0))))
        session.run_tick(NOW + timedelta(minutes=5))

        drained = session.drain_notifications()

        assert len(drained) == 1
        assert session.drain_notifications() == []


class TestNotificationBuffer:
    """Test that undelivered notifications cannot pile up."""

    def test_callback_sessions_do_not_buffer(self):
        received = []
        session = make_session(make_aircraft(), on_notification=received.append)

        land_repeatedly(session, 50)

        assert len(received) == 50
        assert all(n.kind == FLIGHT_COMPLETED for n in received)
        assert session.notifications == []
        assert session.drain_notifications() == []

    def test_buffer_keeps_newest(self):
        """Test that only the newest notifications survive between drains."""
        session = make_session(make_aircraft(), config=quiet_config(max_buffered_notifications=10))

        land_repeatedly(session, 15)
        drained = session.drain_notifications()

        assert len(drained) == 10
        assert session.snapshot.game_state.total_revenue == 15 * 5000.0
        assert session.drain_notifications() == []


class TestBackgroundSaves:
    """Test saving through the per-player writer thread."""

    def test_slow_store_does_not_block_commands(self):
        started = threading.Event()
        release = threading.Event()

        def slow_save(*args):
            started.set()
            release.wait(5)

        store = MagicMock()
        store.save.side_effect = slow_save
        session = make_session(store=store, config=quiet_config(background_saves=True))

        session.adjust_budget(1.0)
        assert started.wait(2)

        done = threading.Event()
        worker = threading.Thread(target=lambda: (session.adjust_budget(2.0), done.set()))
        worker.start()
        finished_while_saving = done.wait(2)
        release.set()
        worker.join(5)

        assert finished_while_saving
        assert session.flush(timeout=5)
        assert store.save.call_count == 2
        assert store.save.call_args[0][1].game_state.budget == 1_000_003.0
        session.close(timeout=5)

    def test_failure_counted_by_writer(self, caplog):
        store = MagicMock()
        store.save.side_effect = sqlite3.OperationalError("database is locked")
        session = make_session(store=store, config=quiet_config(background_saves=True))

        with caplog.at_level(logging.ERROR):
            session.adjust_budget(250.0)
            assert session.flush(timeout=5)

        assert session.snapshot.game_state.budget == 1_000_250.0
        assert session.save_failures == 1
        assert "failed to save" in caplog.text
        session.close(timeout=5)

    def test_close_writes_pending(self):
        """Test that closing the session leaves the store at the latest state."""
        with SnapshotStore(":memory:") as store:
            session = PlayerSession.open("player-7", store, config=quiet_config(background_saves=True), now=NOW)
            for _ in range(20):
                session.adjust_budget(-10.0)

            session.close(timeout=5)

            assert store.load("player-7").game_state.budget == 1_000_000.0 - 200.0
            assert not session._writer.is_running

            session.adjust_budget(-5.0)

            assert store.load("player-7").game_state.budget == 1_000_000.0 - 205.0


class TestSessionScheduler:
    """Test the background trigger loops."""

    def test_loops_call_session(self):
        session = MagicMock()
        scheduler = SessionScheduler(session, tick_interval=0.01, refresh_interval=0.01, clock=lambda: NOW)

        scheduler.start()
        time.sleep(0.2)
        scheduler.stop(timeout=2)

        assert not scheduler.is_running
        session.run_tick.assert_called_with(NOW)
        session.refresh_positions.assert_called_with(NOW)

    def test_loop_survives_errors(self):
        session = MagicMock()
        session.run_tick.side_effect = RuntimeError("boom")

        with SessionScheduler(session, tick_interval=0.01, refresh_interval=10, clock=lambda: NOW):
            time.sleep(0.2)

        assert session.run_tick.call_count >= 2

    def test_default_intervals_from_config(self):
        session = make_session()

        scheduler = SessionScheduler(session)

        assert scheduler.tick_interval == 60.0
        assert scheduler.refresh_interval == 5.0
        assert not scheduler.is_running
