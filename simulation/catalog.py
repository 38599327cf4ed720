"""Purchasable aircraft archetypes."""

from dataclasses import dataclass
from typing import List, Optional

CATEGORIES = ("narrow-body", "wide-body", "regional", "cargo")


@dataclass(frozen=True)
class AircraftArchetype:
    """Immutable description of a purchasable aircraft type.

    Attributes:
        id: Catalog key (e.g. 'a320')
        price: Purchase price in currency units
        max_passengers: Seat capacity (0 for freighters)
        range_km: Maximum route distance
        fuel_capacity: Fuel capacity in litres (informational)
        cruise_speed: km/h (informational, routes use a fixed planning speed)
        efficiency: 0-100 rating
        maintenance: 0-100 reliability rating
    """

    id: str
    manufacturer: str
    model: str
    variant: str
    price: float
    max_passengers: int
    range_km: float
    fuel_capacity: float
    cruise_speed: float
    category: str
    year_introduced: int
    efficiency: int
    maintenance: int

    @property
    def display_name(self) -> str:
        """Name shown on owned aircraft, e.g. 'Airbus A320'."""
        return f"{self.manufacturer} {self.model}"


AIRCRAFT_CATALOG: List[AircraftArchetype] = [
    # Narrow-body
    AircraftArchetype("a320", "Airbus", "A320", "A320-200", 98_000_000, 180, 3500, 6400, 840, "narrow-body", 1988, 85, 75),
    AircraftArchetype("b737", "Boeing", "737", "737-800", 96_000_000, 189, 3200, 6875, 842, "narrow-body", 1998, 82, 78),
    AircraftArchetype("a321", "Airbus", "A321", "A321neo", 129_500_000, 244, 4000, 7980, 840, "narrow-body", 2016, 92, 85),
    AircraftArchetype("b737max", "Boeing", "737 MAX", "737 MAX 8", 121_600_000, 210, 3550, 6820, 839, "narrow-body", 2017, 90, 82),
    # Wide-body
    AircraftArchetype("a330", "Airbus", "A330", "A330-300", 264_200_000, 440, 6500, 17400, 871, "wide-body", 1993, 78, 70),
    AircraftArchetype("b777", "Boeing", "777", "777-300ER", 375_500_000, 396, 7500, 20570, 892, "wide-body", 2004, 88, 80),
    AircraftArchetype("a350", "Airbus", "A350", "A350-900", 317_400_000, 440, 8000, 19300, 903, "wide-body", 2015, 95, 90),
    AircraftArchetype("b787", "Boeing", "787", "787-9 Dreamliner", 292_500_000, 420, 7800, 18600, 903, "wide-body", 2014, 93, 88),
    AircraftArchetype("a380", "Airbus", "A380", "A380-800", 445_600_000, 853, 8500, 32000, 903, "wide-body", 2007, 75, 65),
    # Regional
    AircraftArchetype("crj900", "Bombardier", "CRJ-900", "CRJ-900NextGen", 46_700_000, 90, 1800, 2840, 834, "regional", 2003, 80, 75),
    AircraftArchetype("e190", "Embraer", "E-Jet", "E190", 53_700_000, 114, 2200, 3700, 870, "regional", 2005, 83, 78),
    AircraftArchetype("atr72", "ATR", "ATR 72", "ATR 72-600", 26_800_000, 78, 900, 1500, 511, "regional", 2010, 85, 80),
    # Cargo
    AircraftArchetype("b747f", "Boeing", "747", "747-8F Freighter", 418_400_000, 0, 4500, 23800, 908, "cargo", 2011, 70, 60),
    AircraftArchetype("a330f", "Airbus", "A330", "A330-200F", 241_700_000, 0, 4000, 17120, 871, "cargo", 2010, 75, 65),
    AircraftArchetype("md11f", "McDonnell Douglas", "MD-11", "MD-11F", 157_000_000, 0, 3800, 15600, 876, "cargo", 1991, 65, 55),
]


def get_archetype(archetype_id: str) -> AircraftArchetype:
    """Look up an archetype by catalog id.

    Raises:
        KeyError: Unknown archetype id
    """
    for archetype in AIRCRAFT_CATALOG:
        if archetype.id == archetype_id:
            return archetype
    raise KeyError(f"Unknown aircraft archetype: {archetype_id}")


def list_archetypes(category: Optional[str] = None, max_price: Optional[float] = None) -> List[AircraftArchetype]:
    """Catalog entries, optionally filtered by category and affordability."""
    if category is not None and category not in CATEGORIES:
        raise ValueError(f"Invalid category '{category}'. Must be one of: {list(CATEGORIES)}")
    result = []
    for archetype in AIRCRAFT_CATALOG:
        if category is not None and archetype.category != category:
            continue
        if max_price is not None and archetype.price > max_price:
            continue
        result.append(archetype)
    return result
