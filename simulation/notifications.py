"""Discrete events produced by ticks and commands for the presentation layer."""

from dataclasses import dataclass
from typing import Dict, Optional

FLIGHT_COMPLETED = "flight_completed"
DELAY_STARTED = "delay_started"
AIRCRAFT_CRASHED = "aircraft_crashed"
MAINTENANCE_COMPLETED = "maintenance_completed"

NOTIFICATION_KINDS = (FLIGHT_COMPLETED, DELAY_STARTED, AIRCRAFT_CRASHED, MAINTENANCE_COMPLETED)


@dataclass(frozen=True)
class Notification:
    """Single user-facing event.

    Attributes:
        kind: One of NOTIFICATION_KINDS
        aircraft_id: Aircraft concerned
        message: Human-readable text for toasts
        amount: Revenue (flight completed) or insurance payout (crash)
        reason: Delay or crash reason
    """

    kind: str
    aircraft_id: str
    message: str
    amount: Optional[float] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "aircraft_id": self.aircraft_id,
            "message": self.message,
            "amount": self.amount,
            "reason": self.reason,
        }


def flight_completed(aircraft, destination: str, revenue: float) -> Notification:
    return Notification(
        kind=FLIGHT_COMPLETED,
        aircraft_id=aircraft.id,
        message=f"{aircraft.registration} arrived in {destination}. Revenue: {revenue:,.0f}",
        amount=revenue,
    )


def delay_started(aircraft, reason: str) -> Notification:
    return Notification(
        kind=DELAY_STARTED,
        aircraft_id=aircraft.id,
        message=f"{aircraft.registration} is delayed: {reason}",
        reason=reason,
    )


def aircraft_crashed(aircraft, reason: str, payout: float) -> Notification:
    return Notification(
        kind=AIRCRAFT_CRASHED,
        aircraft_id=aircraft.id,
        message=f"Emergency! {aircraft.registration} crashed: {reason}",
        amount=payout,
        reason=reason,
    )


def maintenance_completed(aircraft) -> Notification:
    return Notification(
        kind=MAINTENANCE_COMPLETED,
        aircraft_id=aircraft.id,
        message=f"{aircraft.registration} is back in service.",
    )
