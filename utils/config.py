"""Simulation configuration with Pydantic validation.

Every tunable constant of the flight/economy simulation lives here so that a
player's settings (or a test) can override it without touching engine code.
"""

from typing import Dict, Optional, ClassVar
from pydantic import BaseModel, Field, field_validator, model_validator


class CabinConfiguration(BaseModel):
    """Percentage split of the cabin across the four service classes.

    The model itself does not enforce the 100% total, because a half-edited
    split is a legitimate intermediate value in a settings form. Use
    ``simulation.cabin.validate_cabin_config`` at the command boundary.
    """

    first_class: float = Field(default=5.0, ge=0.0, le=100.0)
    business: float = Field(default=15.0, ge=0.0, le=100.0)
    premium_economy: float = Field(default=20.0, ge=0.0, le=100.0)
    economy: float = Field(default=60.0, ge=0.0, le=100.0)

    def total(self) -> float:
        """Sum of the four class percentages."""
        return self.first_class + self.business + self.premium_economy + self.economy


class EventConfig(BaseModel):
    """Stochastic in-flight event rates.

    Delay: 2% per flight hour, only while no delay reason is set
    Crash: 0.1% per flight hour, only below the condition threshold
    Resume: 30% per tick for delayed aircraft
    """

    random_events: bool = Field(default=True, description="Disable to fly without delays or crashes")
    delay_rate_per_hour: float = Field(default=0.02, ge=0.0, le=1.0)
    crash_rate_per_hour: float = Field(default=0.001, ge=0.0, le=1.0)
    crash_condition_threshold: float = Field(default=30.0, ge=0.0, le=100.0)
    delay_resume_probability: float = Field(default=0.3, ge=0.0, le=1.0)

    crash_reputation_penalty: float = Field(default=20.0, ge=0.0, le=100.0)
    insurance_payout_fraction: float = Field(default=0.8, ge=0.0, le=1.0)

    DELAY_REASONS: ClassVar[tuple] = (
        "Bad weather",
        "Technical problems",
        "Air traffic control",
        "Late connecting flight",
        "Crew issues",
    )
    CRASH_REASONS: ClassVar[tuple] = (
        "Severe storm",
        "Technical failure",
        "Pilot error",
        "Poor maintenance",
    )


class EconomyConfig(BaseModel):
    """Costs, wear and revenue parameters."""

    starting_budget: float = Field(default=1_000_000.0, ge=0.0)
    starting_reputation: float = Field(default=50.0, ge=0.0, le=100.0)

    fuel_unit_cost: float = Field(default=100.0, ge=0.0, description="Currency per fuel percentage point")
    min_departure_fuel: float = Field(default=20.0, ge=0.0, le=100.0)
    wear_per_minute: float = Field(default=0.1, ge=0.0, description="Condition points lost per flight minute")

    maintenance_cost_fraction: float = Field(default=0.02, ge=0.0, le=1.0)
    maintenance_duration_seconds: float = Field(default=30.0, gt=0.0)
    service_interval_days: int = Field(default=90, ge=1)

    daily_upkeep_fraction: float = Field(default=0.001, ge=0.0, le=1.0, description="Share of purchase price per in-flight day")

    salvage_base_fraction: float = Field(default=0.6, ge=0.0, le=1.0)
    salvage_condition_fraction: float = Field(default=0.2, ge=0.0, le=1.0)

    revenue_per_seat: float = Field(default=200.0, ge=0.0, description="Legacy daily revenue rate per seat")
    max_initial_load_factor: float = Field(default=0.8, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_salvage_range(self):
        """Salvage payout may never exceed the purchase price."""
        if self.salvage_base_fraction + self.salvage_condition_fraction > 1.0:
            raise ValueError(
                f"Salvage fractions must not exceed 1.0, got "
                f"{self.salvage_base_fraction} + {self.salvage_condition_fraction}"
            )
        return self


class RoutePlanningConfig(BaseModel):
    """Route generation parameters (distance -> duration and fare)."""

    cruise_speed_factor: float = Field(default=8.0, gt=0.0, description="km per scheduled minute (~480 km/h)")
    min_duration_minutes: int = Field(default=30, ge=1)
    fare_per_km: float = Field(default=0.5, ge=0.0)
    fare_noise_max: float = Field(default=50.0, ge=0.0)


class SchedulerConfig(BaseModel):
    """Cadence of the two periodic session triggers and session side effects."""

    tick_interval_seconds: float = Field(default=60.0, gt=0.0)
    position_refresh_seconds: float = Field(default=5.0, gt=0.0)

    # Hand saves to a writer thread instead of saving under the session lock
    background_saves: bool = True

    # Notifications kept for drain_notifications() when no callback is set
    max_buffered_notifications: int = Field(default=100, ge=1)


class SimulationConfig(BaseModel):
    """Main simulation configuration."""

    airline_name: str = Field(default="My Airline", min_length=1, max_length=50)
    registration_prefix: str = Field(default="D-", min_length=1, max_length=3)

    # Random seed (None = random)
    seed: Optional[int] = Field(default=None, description="Random seed for reproducibility")

    # Player setting that scales effective flight duration
    speed_multiplier: float = Field(default=1.0, ge=0.1, le=100.0)

    events: EventConfig = Field(default_factory=EventConfig)
    economy: EconomyConfig = Field(default_factory=EconomyConfig)
    routes: RoutePlanningConfig = Field(default_factory=RoutePlanningConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    # Player's saved default cabin split (None = fallback 5/15/20/60)
    default_cabin: Optional[CabinConfiguration] = None

    verbose: bool = Field(default=False, description="Print detailed logging")

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        """Ensure seed is non-negative if provided."""
        if v is not None and v < 0:
            raise ValueError("Seed must be non-negative")
        return v

    @field_validator("default_cabin")
    @classmethod
    def validate_default_cabin(cls, v):
        """A saved default split must be complete."""
        if v is not None and abs(v.total() - 100.0) > 1e-6:
            raise ValueError(f"Default cabin split must sum to 100, got {v.total()}")
        return v

    def fallback_cabin(self) -> CabinConfiguration:
        """Cabin split used for newly purchased aircraft."""
        if self.default_cabin is not None:
            return self.default_cabin.model_copy()
        return CabinConfiguration()


def load_config_from_yaml(path: str) -> SimulationConfig:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated SimulationConfig object
    """
    import yaml

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    return SimulationConfig(**(data or {}))


def save_config_to_yaml(config: SimulationConfig, path: str) -> None:
    """Save configuration to YAML file.

    Args:
        config: SimulationConfig object
        path: Output YAML path
    """
    import yaml

    with open(path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)


def config_summary(config: SimulationConfig) -> Dict[str, float]:
    """Flat view of the headline economy numbers, for run summaries."""
    return {
        "speed_multiplier": config.speed_multiplier,
        "starting_budget": config.economy.starting_budget,
        "delay_rate_per_hour": config.events.delay_rate_per_hour,
        "crash_rate_per_hour": config.events.crash_rate_per_hour,
        "fuel_unit_cost": config.economy.fuel_unit_cost,
        "maintenance_cost_fraction": config.economy.maintenance_cost_fraction,
    }
