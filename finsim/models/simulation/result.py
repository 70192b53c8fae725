"""
Simulation result models.

This module provides the per-period state snapshot and the result containers
returned by the simulation engine:

1. FinancialState: one immutable snapshot per period boundary
2. SimulationResult: the state series plus retirement and sustainability verdicts
3. EnhancedSimulationResult: adds the transition points and parameter periods
4. ComparisonResult: a transition-aware run paired with a base-only run

The result containers expose numpy/pandas views of the series for analysis
and export.
"""

import datetime
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field

from finsim.models.parameters import ParameterTransition, UserParameters

STATE_SERIES_FIELDS = (
    "cash",
    "investments",
    "retirement_savings",
    "loan_balance",
    "offset_balance",
    "net_worth",
    "cash_flow",
    "tax_paid",
    "expenses",
    "interest_saved",
    "deductible_interest",
)


class FinancialState(BaseModel):
    """Snapshot of the household's finances at the end of one period."""

    model_config = ConfigDict(frozen=True)

    date: datetime.date = Field(..., description="Period end date")
    cash: float = Field(..., description="Cash on hand (may be negative)")
    investments: float = Field(..., description="Investment balance")
    retirement_savings: float = Field(..., description="Total retirement savings")
    loan_balance: float = Field(..., description="Total outstanding loan balance")
    offset_balance: float = Field(..., description="Total offset account balance")
    net_worth: float = Field(..., description="Assets minus liabilities")
    cash_flow: float = Field(default=0, description="Net cash flow for the period")
    tax_paid: float = Field(default=0, description="Tax paid in the period")
    expenses: float = Field(default=0, description="Expenses paid in the period")
    interest_saved: float = Field(
        default=0, description="Interest avoided through offset accounts"
    )
    deductible_interest: float = Field(
        default=0, description="Tax deductible loan interest"
    )
    loan_balances: Optional[Dict[str, float]] = Field(
        None, description="Balance per loan id (multiple loans only)"
    )
    offset_balances: Optional[Dict[str, float]] = Field(
        None, description="Offset balance per loan id (multiple loans only)"
    )
    retirement_balances: Optional[Dict[str, float]] = Field(
        None, description="Balance per retirement account id (multiple accounts only)"
    )

    @staticmethod
    def compute_net_worth(
        cash: float,
        investments: float,
        retirement_savings: float,
        offset_balance: float,
        loan_balance: float,
    ) -> float:
        return cash + investments + retirement_savings + offset_balance - loan_balance


class SimulationResult(BaseModel):
    """
    Output of a simulation run.

    Example:
        ```python
        result = engine.run_simulation(params)
        result.final_state.net_worth
        result.series("net_worth")      # numpy array, one value per state
        result.to_dataframe()           # pandas DataFrame indexed by date
        ```
    """

    states: List[FinancialState] = Field(..., description="State per period boundary")
    retirement_date: Optional[datetime.date] = Field(
        None, description="Earliest date the retirement income is sustainable"
    )
    retirement_age: Optional[float] = Field(None, description="Age at retirement_date")
    is_sustainable: bool = Field(..., description="Sustainability verdict")
    warnings: List[str] = Field(default_factory=list, description="Warning messages")

    @property
    def final_state(self) -> Optional[FinancialState]:
        return self.states[-1] if self.states else None

    @property
    def final_net_worth(self) -> float:
        final = self.final_state
        return final.net_worth if final is not None else 0.0

    def series(self, field: str) -> NDArray[np.float64]:
        """
        Extract one numeric field across all states.

        Args:
            field: Name of a numeric FinancialState field

        Returns:
            Array with one value per state
        """
        if field not in STATE_SERIES_FIELDS:
            raise ValueError(f"Unknown state field: {field}")
        return np.array([getattr(state, field) for state in self.states], dtype=np.float64)

    def dates(self) -> List[datetime.date]:
        return [state.date for state in self.states]

    def to_dataframe(self) -> pd.DataFrame:
        """Numeric state fields as a DataFrame indexed by date."""
        frame = pd.DataFrame(
            {name: self.series(name) for name in STATE_SERIES_FIELDS},
            index=pd.DatetimeIndex(self.dates(), name="date"),
        )
        return frame


class TransitionPoint(BaseModel):
    """Where a parameter transition took effect in a realised series."""

    date: datetime.date = Field(..., description="Transition date")
    state_index: int = Field(..., ge=0, description="Index of the first state using it")
    transition: ParameterTransition = Field(..., description="The transition applied")
    changes_summary: str = Field(..., description="Human readable summary")


class ParameterPeriod(BaseModel):
    """A window of the horizon with a single effective parameter set."""

    start_date: datetime.date = Field(..., description="First date of the window")
    end_date: Optional[datetime.date] = Field(
        None, description="Date the next window starts (None for the last window)"
    )
    parameters: UserParameters = Field(..., description="Parameters in effect")
    transition_id: Optional[str] = Field(
        None, description="Transition that opened the window (None for the base)"
    )


class EnhancedSimulationResult(SimulationResult):
    """Simulation result with transition reporting."""

    transition_points: List[TransitionPoint] = Field(default_factory=list)
    periods: List[ParameterPeriod] = Field(default_factory=list)


class ComparisonMetrics(BaseModel):
    """Differences between a transition-aware run and a base-only run."""

    retirement_date_difference: Optional[float] = Field(
        None, description="Years later (positive) or earlier with transitions"
    )
    final_net_worth_difference: float = Field(
        ..., description="Final net worth with transitions minus without"
    )
    sustainability_changed: bool = Field(
        ..., description="Whether the sustainability verdict differs"
    )


class ComparisonResult(BaseModel):
    """Transition-aware and base-only results with their comparison."""

    with_transitions: EnhancedSimulationResult
    without_transitions: SimulationResult
    comparison: ComparisonMetrics
