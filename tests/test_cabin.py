#!/usr/bin/env python3
"""
Unit tests for the cabin allocation model.
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from simulation.cabin import CABIN_CLASSES, allocate_seats, total_seats, validate_cabin_config
from simulation.errors import InvalidCabinSplit
from utils.config import CabinConfiguration


class TestAllocateSeats:
    """Test percentage split -> seat counts."""

    def test_default_split(self):
        """Test the 5/15/20/60 split on a 180-seat aircraft."""
        # total weight = 5*4 + 15*2 + 20*1.5 + 60*1 = 140
        seats = allocate_seats(CabinConfiguration(), 180)

        assert seats == {"first_class": 1, "business": 9, "premium_economy": 17, "economy": 77}

    def test_all_economy(self):
        cabin = CabinConfiguration(first_class=0, business=0, premium_economy=0, economy=100)

        assert allocate_seats(cabin, 180) == {"first_class": 0, "business": 0, "premium_economy": 0, "economy": 180}

    def test_premium_cabin_has_fewer_seats(self):
        """Test that premium-heavy splits yield fewer physical seats."""
        premium = CabinConfiguration(first_class=40, business=40, premium_economy=10, economy=10)

        assert total_seats(premium, 300) < total_seats(CabinConfiguration(), 300)

    def test_never_exceeds_capacity(self):
        for capacity in (1, 50, 78, 180, 853):
            assert total_seats(CabinConfiguration(), capacity) <= capacity

    def test_zero_capacity(self):
        """Test that freighters get no seats."""
        assert allocate_seats(CabinConfiguration(), 0) == {c: 0 for c in CABIN_CLASSES}

    def test_empty_split(self):
        """Test that an all-zero split does not divide by zero."""
        cabin = CabinConfiguration(first_class=0, business=0, premium_economy=0, economy=0)

        assert allocate_seats(cabin, 180) == {c: 0 for c in CABIN_CLASSES}


class TestValidateCabinConfig:
    """Test split validation at the command boundary."""

    def test_valid_split(self):
        cabin = CabinConfiguration(first_class=10, business=20, premium_economy=30, economy=40)

        assert validate_cabin_config(cabin) is cabin

    def test_fractional_split(self):
        cabin = CabinConfiguration(first_class=33.3, business=33.3, premium_economy=33.4, economy=0)

        validate_cabin_config(cabin)

    def test_incomplete_split(self):
        cabin = CabinConfiguration(first_class=5, business=15, premium_economy=20, economy=50)

        with pytest.raises(InvalidCabinSplit, match="sum to 100"):
            validate_cabin_config(cabin)

    def test_oversized_split(self):
        cabin = CabinConfiguration(first_class=50, business=50, premium_economy=50, economy=50)

        with pytest.raises(InvalidCabinSplit) as exc_info:
            validate_cabin_config(cabin)

        assert exc_info.value.total == 200

    def test_negative_share_rejected_by_model(self):
        """Test that the config model refuses negative shares outright."""
        with pytest.raises(ValueError):
            CabinConfiguration(first_class=-10, business=20, premium_economy=30, economy=60)
