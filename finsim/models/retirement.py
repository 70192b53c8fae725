"""
Retirement readiness evaluation.

Finds the earliest point in a projected series at which the household's
assets can sustain the desired retirement income, using a pluggable
withdrawal policy.
"""

from datetime import date
from typing import Optional, Sequence, Tuple

from .periods import years_between
from .simulation.protocols import WithdrawalPolicy
from .simulation.result import FinancialState

DEFAULT_SAFE_WITHDRAWAL_RATE = 0.04
DEFAULT_PRESERVATION_AGE = 60


class AccessibleAssetsWithdrawalPolicy:
    """
    Fixed-rate withdrawal from accessible assets.

    Investments are always accessible; retirement savings become accessible
    from the preservation age.
    """

    def __init__(
        self,
        rate: float = DEFAULT_SAFE_WITHDRAWAL_RATE,
        preservation_age: float = DEFAULT_PRESERVATION_AGE,
    ):
        self.rate = rate
        self.preservation_age = preservation_age

    def accessible_assets(self, state: FinancialState, age: float) -> float:
        assets = state.investments
        if age >= self.preservation_age:
            assets += state.retirement_savings
        return assets

    def sustainable_income(self, state: FinancialState, age: float) -> float:
        return self.accessible_assets(state, age) * self.rate


class NetWorthWithdrawalPolicy:
    """Fixed-rate withdrawal from total net worth (never negative)."""

    def __init__(self, rate: float = DEFAULT_SAFE_WITHDRAWAL_RATE):
        self.rate = rate

    def sustainable_income(self, state: FinancialState, age: float) -> float:
        return max(state.net_worth, 0.0) * self.rate


def age_at(state_date: date, start_date: date, current_age: float) -> float:
    """Age on a date given the age at the start of the projection."""
    return current_age + years_between(start_date, state_date)


def find_retirement_date(
    states: Sequence[FinancialState],
    desired_income: float,
    current_age: float,
    retirement_age: float,
    policy: Optional[WithdrawalPolicy] = None,
) -> Tuple[Optional[date], Optional[float]]:
    """
    Find the earliest sustainable retirement date at or after the target age.

    Args:
        states: Projected state series (first state is the start)
        desired_income: Desired annual retirement income
        current_age: Age at the first state
        retirement_age: Target retirement age
        policy: Withdrawal policy (defaults to a 4% draw on accessible assets)

    Returns:
        (date, age) of the first qualifying state, or (None, None)
    """
    if not states:
        return None, None

    policy = policy or AccessibleAssetsWithdrawalPolicy()
    start_date = states[0].date
    for state in states:
        age = age_at(state.date, start_date, current_age)
        if age < retirement_age:
            continue
        if policy.sustainable_income(state, age) >= desired_income:
            return state.date, age
    return None, None
