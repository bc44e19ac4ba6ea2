"""
Tunable thresholds for the inventory intelligence engine.

Every literal the calculations depend on lives here so a caller can change
lead times, classification boundaries or detection sensitivity per request
without touching the algorithms.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import AllocationMethod


class EngineConfig(BaseModel):
    """Immutable set of parameters shared by all components."""

    model_config = ConfigDict(frozen=True)

    # Replenishment
    lead_time_days: float = Field(
        default=7, gt=0, description="Days between placing and receiving an order"
    )
    service_level_z: float = Field(
        default=1.65,
        ge=0,
        description="Standard-normal multiplier (1.65 = 95%, 2.33 = 99%)",
    )
    target_days: int = Field(
        default=30, gt=0, description="Days of demand a restock should cover"
    )
    usage_window_days: int = Field(
        default=30, gt=0, description="Length of the zero-filled daily usage series"
    )
    trend_slope_threshold: float = Field(
        default=0.1, ge=0, description="Slope beyond which a trend counts as UP/DOWN"
    )
    confidence_threshold: float = Field(
        default=50, ge=0, le=100, description="Suggestions at or below this are dropped"
    )
    default_min_stock: int = Field(
        default=10, ge=0, description="Manual minimum used when a product has none"
    )

    # ABC classification
    class_a_boundary_percent: float = Field(default=20, gt=0, lt=100)
    class_b_boundary_percent: float = Field(default=50, gt=0, le=100)
    velocity_window_days: int | None = Field(
        default=None,
        gt=0,
        description="Outbound lookback for velocity; None uses the full history",
    )

    # Batches
    allocation_method: AllocationMethod = AllocationMethod.FIFO
    unknown_age_days: int = Field(
        default=999, description="days_old reported for stock no batch explains"
    )
    movement_thresholds: tuple[int, int, int, int] = Field(
        default=(15, 60, 90, 180),
        description="Days since last sale for Fast/Normal/Slow/Very Slow moving",
    )

    # Anomaly detection
    variance_threshold_percent: float = Field(default=50, ge=0)
    variance_min_system_qty: float = Field(default=5, ge=0)
    future_date_buffer_days: int = Field(default=2, ge=0)
    reconciliation_tolerance: float = Field(
        default=0,
        ge=0,
        description="Absolute stock difference tolerated before flagging a mismatch",
    )

    @field_validator("movement_thresholds")
    @classmethod
    def _thresholds_ascending(cls, value: tuple[int, int, int, int]):
        if list(value) != sorted(value):
            raise ValueError("movement_thresholds must be ascending")
        return value

    @model_validator(mode="after")
    def _boundaries_monotonic(self) -> "EngineConfig":
        if self.class_a_boundary_percent >= self.class_b_boundary_percent:
            raise ValueError(
                "class_a_boundary_percent must be lower than class_b_boundary_percent"
            )
        return self

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        """Return a validated copy with the given fields replaced."""
        if not overrides:
            return self
        return EngineConfig.model_validate({**self.model_dump(), **overrides})


DEFAULT_CONFIG = EngineConfig()


def resolve_config(config: EngineConfig | None = None, **overrides: Any) -> EngineConfig:
    """Fall back to the defaults and apply any non-None per-call overrides."""
    base = config or DEFAULT_CONFIG
    return base.with_overrides(**{k: v for k, v in overrides.items() if v is not None})
