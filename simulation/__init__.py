"""Airline fleet/economy simulation engine."""

from .aircraft import Aircraft
from .engine import TickEngine, TickResult, tick
from .game_state import FleetSnapshot, GameState
from .session import PlayerSession, SessionScheduler, SnapshotWriter

__all__ = [
    "Aircraft",
    "FleetSnapshot",
    "GameState",
    "PlayerSession",
    "SessionScheduler",
    "SnapshotWriter",
    "TickEngine",
    "TickResult",
    "tick",
]
