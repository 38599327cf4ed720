"""Command validation failures.

Raised by the command handlers before any state is touched. The tick engine
never raises any of these.
"""

from typing import Optional


class CommandError(Exception):
    """Base class for rejected player commands."""


class InsufficientFunds(CommandError):
    """Budget is below the cost of the requested action."""

    def __init__(self, required: float, available: float, action: str = "action"):
        self.required = required
        self.available = available
        self.action = action
        super().__init__(
            f"Insufficient funds for {action}: need {required:,.2f}, have {available:,.2f}"
        )


class AircraftUnavailable(CommandError):
    """Target aircraft does not exist or is not in the required status."""

    def __init__(self, aircraft_id: str, status: Optional[str] = None, action: str = "action"):
        self.aircraft_id = aircraft_id
        self.status = status
        self.action = action
        if status is None:
            message = f"Aircraft {aircraft_id} not found"
        else:
            message = f"Aircraft {aircraft_id} is {status}, cannot {action}"
        super().__init__(message)


class InsufficientFuel(CommandError):
    """Departure attempted below the fuel floor."""

    def __init__(self, aircraft_id: str, fuel_level: float, minimum: float):
        self.aircraft_id = aircraft_id
        self.fuel_level = fuel_level
        self.minimum = minimum
        super().__init__(
            f"Aircraft {aircraft_id} has {fuel_level:.1f}% fuel, needs at least {minimum:.0f}%"
        )


class InvalidCabinSplit(CommandError):
    """Cabin class percentages are negative or do not sum to 100."""

    def __init__(self, total: float, message: Optional[str] = None):
        self.total = total
        super().__init__(message or f"Cabin split must sum to 100%, got {total:g}%")


class RouteOutOfRange(CommandError):
    """Route distance exceeds the aircraft's range."""

    def __init__(self, aircraft_id: str, distance_km: float, range_km: float):
        self.aircraft_id = aircraft_id
        self.distance_km = distance_km
        self.range_km = range_km
        super().__init__(
            f"Aircraft {aircraft_id} range is {range_km:,.0f} km, route is {distance_km:,.0f} km"
        )
