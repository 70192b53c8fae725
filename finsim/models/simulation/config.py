"""
Simulation options.

Holds the engine-level constants (step interval, withdrawal rate, thresholds
used by the evaluators) so they are configured in one place rather than
embedded in the engine.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SimulationOptions(BaseModel):
    """Engine options shared by every run of a SimulationEngine."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    interval: Literal["week", "fortnight", "month", "year"] = Field(
        default="month", description="Length of one simulation period"
    )
    safe_withdrawal_rate: float = Field(
        default=0.04, gt=0, le=1, description="Sustainable annual withdrawal rate"
    )
    preservation_age: float = Field(
        default=60,
        ge=0,
        le=120,
        description="Age from which retirement savings become accessible",
    )
    negative_cash_flow_periods: int = Field(
        default=3,
        ge=1,
        description="Consecutive negative cash flow periods that make a plan unsustainable",
    )
    delayed_retirement_tolerance_years: float = Field(
        default=1.0,
        ge=0,
        description="Years past the target age before retirement counts as delayed",
    )
    severe_cash_threshold: float = Field(
        default=-1000.0, description="Cash level below which reserves are depleted"
    )
