"""Cabin allocation model.

Maps a percentage split across the four service classes to actual seat
counts. Premium classes take more floor space per seat, so a premium-heavy
split yields fewer physical seats than the economy-equivalent capacity.
"""

import math
from typing import Dict

from simulation.errors import InvalidCabinSplit
from utils.config import CabinConfiguration

# Floor space per seat relative to economy
SPACE_WEIGHTS: Dict[str, float] = {
    "first_class": 4.0,
    "business": 2.0,
    "premium_economy": 1.5,
    "economy": 1.0,
}

CABIN_CLASSES = tuple(SPACE_WEIGHTS.keys())


def validate_cabin_config(config: CabinConfiguration, tolerance: float = 1e-6) -> CabinConfiguration:
    """Reject incomplete or negative splits.

    Raises:
        InvalidCabinSplit: A share is negative or the shares do not sum to 100
    """
    for cabin_class in CABIN_CLASSES:
        if getattr(config, cabin_class) < 0:
            raise InvalidCabinSplit(config.total(), f"{cabin_class} share must be non-negative")

    total = config.total()
    if abs(total - 100.0) > tolerance:
        raise InvalidCabinSplit(total)
    return config


def allocate_seats(config: CabinConfiguration, max_passengers: int) -> Dict[str, int]:
    """Per-class seat counts for an aircraft of the given capacity.

    seats[c] = floor(share[c] / total_weight * max_passengers / weight[c])
    where total_weight = sum(share[c] * weight[c]).

    Args:
        config: Class percentage split
        max_passengers: Economy-equivalent seat capacity

    Returns:
        Dict mapping class name to seat count
    """
    total_weight = sum(getattr(config, c) * w for c, w in SPACE_WEIGHTS.items())

    if total_weight <= 0 or max_passengers <= 0:
        return {c: 0 for c in CABIN_CLASSES}

    return {
        c: math.floor(getattr(config, c) / total_weight * max_passengers / w)
        for c, w in SPACE_WEIGHTS.items()
    }


def total_seats(config: CabinConfiguration, max_passengers: int) -> int:
    """Number of physical seats once the split is applied."""
    return sum(allocate_seats(config, max_passengers).values())
