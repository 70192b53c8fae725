"""
Analysis and formatting helpers for simulation state series.

Provides the warning scanner used by the simulation engine, trend detectors
(debt growth, negative cash flow runs, net worth growth), loan payoff lookup,
interval down-sampling for reporting, and currency formatting for warning
messages.
"""

from datetime import date
from typing import List, Literal, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field

from .simulation.result import FinancialState

PAYOFF_TOLERANCE = 0.01

_INTERVAL_DAYS = {"week": 7, "fortnight": 14, "month": 30, "year": 365.25}


class CurrencyFormatter(BaseModel):
    """Formats currency values for warning messages."""

    currency_symbol: str = Field(default="$", description="Currency symbol")
    decimal_places: int = Field(
        default=2, ge=0, le=10, description="Number of decimal places"
    )

    def format_currency(self, amount: float) -> str:
        """
        Format an amount with thousands separators.

        Negative amounts put the sign before the symbol ("-$1,500.00").
        """
        rounded = round(abs(amount), self.decimal_places)
        if self.decimal_places > 0:
            formatted = f"{rounded:,.{self.decimal_places}f}"
        else:
            formatted = f"{int(rounded):,}"
        sign = "-" if amount < 0 and rounded != 0 else ""
        return f"{sign}{self.currency_symbol}{formatted}"


_default_formatter = CurrencyFormatter()


def format_currency(amount: float) -> str:
    return _default_formatter.format_currency(amount)


class FinancialWarning(BaseModel):
    """A warning about a concerning pattern in a state series."""

    message: str = Field(..., description="Warning text")
    severity: Literal["warning", "alert"] = Field(
        ..., description="'warning' for trends, 'alert' for critical issues"
    )
    type: Literal["debt", "cashflow", "sustainability"] = Field(
        ..., description="Warning category"
    )


class SustainabilityAnalysis(BaseModel):
    """Trend flags for a state series."""

    is_sustainable: bool
    has_increasing_debt: bool
    has_negative_cash_flow: bool
    consecutive_negative_periods: int = Field(..., ge=0)
    has_net_worth_growth: bool


def _field(states: Sequence[FinancialState], name: str) -> np.ndarray:
    return np.array([getattr(state, name) for state in states], dtype=np.float64)


def longest_negative_run(cash_flows: np.ndarray) -> int:
    """Length of the longest run of consecutive negative values."""
    longest = 0
    current = 0
    for negative in cash_flows < 0:
        current = current + 1 if negative else 0
        longest = max(longest, current)
    return longest


def detect_increasing_debt(states: Sequence[FinancialState]) -> bool:
    """True when the final loan balance exceeds the initial one."""
    if len(states) < 2:
        return False
    return states[-1].loan_balance > states[0].loan_balance


def detect_negative_cash_flow(
    states: Sequence[FinancialState], threshold: int = 3
) -> Tuple[bool, int]:
    """
    Detect runs of consecutive negative cash flow.

    Args:
        states: State series
        threshold: Run length that counts as sustained

    Returns:
        (detected, longest run length)
    """
    if not states:
        return False, 0
    run = longest_negative_run(_field(states, "cash_flow"))
    return run >= threshold, run


def detect_net_worth_growth(states: Sequence[FinancialState]) -> bool:
    if len(states) < 2:
        return False
    return states[-1].net_worth > states[0].net_worth


def analyze_sustainability(
    states: Sequence[FinancialState], threshold: int = 3
) -> SustainabilityAnalysis:
    """Combined trend analysis of a series."""
    if len(states) < 2:
        return SustainabilityAnalysis(
            is_sustainable=True,
            has_increasing_debt=False,
            has_negative_cash_flow=False,
            consecutive_negative_periods=0,
            has_net_worth_growth=False,
        )
    increasing_debt = detect_increasing_debt(states)
    negative_cash_flow, run = detect_negative_cash_flow(states, threshold)
    return SustainabilityAnalysis(
        is_sustainable=not increasing_debt and not negative_cash_flow,
        has_increasing_debt=increasing_debt,
        has_negative_cash_flow=negative_cash_flow,
        consecutive_negative_periods=run,
        has_net_worth_growth=detect_net_worth_growth(states),
    )


def find_loan_payoff_date(states: Sequence[FinancialState]) -> Optional[date]:
    """First date the total loan balance reaches zero, or None."""
    if not states or states[0].loan_balance <= 0:
        return None
    for state in states:
        if state.loan_balance <= PAYOFF_TOLERANCE:
            return state.date
    return None


def group_by_time_interval(
    states: Sequence[FinancialState], interval: str
) -> List[FinancialState]:
    """
    Down-sample a series to roughly one state per interval.

    The first and last states are always kept. A state is kept once at least
    90% of the interval has passed since the previously kept state.
    """
    if not states:
        return []
    days = _INTERVAL_DAYS.get(interval, 30)
    grouped = [states[0]]
    last_date = states[0].date
    for state in states[1:]:
        if (state.date - last_date).days >= days * 0.9:
            grouped.append(state)
            last_date = state.date
    if grouped[-1] is not states[-1]:
        grouped.append(states[-1])
    return grouped


def is_financial_state_complete(state: FinancialState) -> bool:
    """True when every aggregate figure is a finite number."""
    values = [
        state.cash,
        state.investments,
        state.retirement_savings,
        state.loan_balance,
        state.offset_balance,
        state.net_worth,
        state.cash_flow,
    ]
    return bool(np.all(np.isfinite(np.array(values, dtype=np.float64))))


def generate_warnings(
    states: Sequence[FinancialState],
    negative_cash_flow_periods: int = 3,
    severe_cash_threshold: float = -1000.0,
) -> List[FinancialWarning]:
    """
    Scan a series for concerning patterns.

    Args:
        states: State series
        negative_cash_flow_periods: Run length that counts as sustained
        severe_cash_threshold: Cash level below which reserves are depleted

    Returns:
        Warnings in a fixed order: debt, cash flow, net worth, cash reserves
    """
    warnings: List[FinancialWarning] = []
    if len(states) < 2:
        return warnings

    first, last = states[0], states[-1]

    if detect_increasing_debt(states):
        increase = last.loan_balance - first.loan_balance
        warnings.append(
            FinancialWarning(
                message=(
                    f"Loan balance is increasing over time ({format_currency(increase)} "
                    "increase). This indicates unsustainable debt growth."
                ),
                severity="warning",
                type="debt",
            )
        )

    detected, run = detect_negative_cash_flow(states, negative_cash_flow_periods)
    if detected:
        warnings.append(
            FinancialWarning(
                message=(
                    f"Sustained negative cash flow detected ({run} consecutive periods). "
                    "Your expenses exceed your income."
                ),
                severity="alert",
                type="cashflow",
            )
        )

    if not detect_net_worth_growth(states):
        decline = first.net_worth - last.net_worth
        warnings.append(
            FinancialWarning(
                message=(
                    f"Net worth is declining over time ({format_currency(decline)} "
                    "decrease). Consider reducing expenses or increasing income."
                ),
                severity="warning",
                type="sustainability",
            )
        )

    min_cash = float(_field(states, "cash").min())
    if min_cash < severe_cash_threshold:
        warnings.append(
            FinancialWarning(
                message=(
                    f"Cash reserves are severely depleted (minimum: {format_currency(min_cash)}). "
                    "Loan payments may be exceeding available funds."
                ),
                severity="alert",
                type="sustainability",
            )
        )

    return warnings


class SeriesWarningScanner:
    """Warning scanner returning the messages of generate_warnings."""

    def __init__(self, negative_cash_flow_periods: int = 3, severe_cash_threshold: float = -1000.0):
        self.negative_cash_flow_periods = negative_cash_flow_periods
        self.severe_cash_threshold = severe_cash_threshold

    def scan(self, states: Sequence[FinancialState]) -> List[str]:
        return [
            warning.message
            for warning in generate_warnings(
                states, self.negative_cash_flow_periods, self.severe_cash_threshold
            )
        ]
