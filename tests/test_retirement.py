"""Tests for retirement readiness evaluation."""

from datetime import date

import pytest

from finsim.models.periods import advance_date
from finsim.models.retirement import (
    AccessibleAssetsWithdrawalPolicy,
    NetWorthWithdrawalPolicy,
    age_at,
    find_retirement_date,
)
from finsim.models.simulation.result import FinancialState


def make_state(when, investments=0.0, retirement_savings=0.0, loan_balance=0.0):
    return FinancialState(
        date=when,
        cash=0,
        investments=investments,
        retirement_savings=retirement_savings,
        loan_balance=loan_balance,
        offset_balance=0,
        net_worth=investments + retirement_savings - loan_balance,
    )


def yearly_states(start, balances, **kwargs):
    return [
        make_state(advance_date(start, "year", index), investments=balance, **kwargs)
        for index, balance in enumerate(balances)
    ]


class TestWithdrawalPolicies:
    """Test cases for the withdrawal policies."""

    def test_accessible_assets_before_preservation_age(self):
        """Test that retirement savings are locked before the preservation age."""
        policy = AccessibleAssetsWithdrawalPolicy(rate=0.04, preservation_age=60)
        state = make_state(date(2024, 1, 1), investments=100000, retirement_savings=400000)

        assert policy.accessible_assets(state, 55) == 100000
        assert policy.sustainable_income(state, 55) == pytest.approx(4000)

    def test_accessible_assets_after_preservation_age(self):
        """Test that retirement savings unlock at the preservation age."""
        policy = AccessibleAssetsWithdrawalPolicy(rate=0.04, preservation_age=60)
        state = make_state(date(2024, 1, 1), investments=100000, retirement_savings=400000)

        assert policy.sustainable_income(state, 60) == pytest.approx(20000)

    def test_net_worth_policy(self):
        """Test the net worth policy and its floor at zero."""
        policy = NetWorthWithdrawalPolicy(rate=0.05)

        assert policy.sustainable_income(
            make_state(date(2024, 1, 1), investments=200000), 50
        ) == pytest.approx(10000)
        assert policy.sustainable_income(
            make_state(date(2024, 1, 1), loan_balance=100000), 50
        ) == 0


class TestFindRetirementDate:
    """Test cases for find_retirement_date."""

    def test_age_at(self):
        """Test age progression using a 365.25-day year."""
        assert age_at(date(2024, 1, 1), date(2024, 1, 1), 40) == 40
        assert age_at(date(2028, 1, 1), date(2024, 1, 1), 40) == pytest.approx(44, abs=0.01)

    def test_empty_series(self):
        """Test that an empty series has no retirement date."""
        assert find_retirement_date([], 40000, 40, 60) == (None, None)

    def test_first_affordable_state(self):
        """Test that the earliest affordable state at or after the target age wins."""
        states = yearly_states(date(2024, 1, 1), [500000, 800000, 1000000, 1200000])

        retirement_date, age = find_retirement_date(states, 40000, 58, 58)

        assert retirement_date == date(2026, 1, 1)
        assert age == pytest.approx(60, abs=0.01)

    def test_waits_for_target_age(self):
        """Test that affordable states before the target age are skipped."""
        states = yearly_states(date(2024, 1, 1), [2000000, 2000000, 2000000, 2000000])

        retirement_date, age = find_retirement_date(states, 40000, 58, 60)

        assert retirement_date == date(2026, 1, 1)

    def test_never_affordable(self):
        """Test that an unaffordable target returns no date."""
        states = yearly_states(date(2024, 1, 1), [100000, 110000, 120000])

        assert find_retirement_date(states, 40000, 58, 58) == (None, None)

    def test_target_age_beyond_horizon(self):
        """Test that a target age after the horizon returns no date."""
        states = yearly_states(date(2024, 1, 1), [5000000, 5000000])

        assert find_retirement_date(states, 1000, 30, 65) == (None, None)

    def test_default_policy_respects_preservation_age(self):
        """Test that locked retirement savings do not count before age 60."""
        states = yearly_states(
            date(2024, 1, 1), [0, 0, 0, 0], retirement_savings=1000000
        )

        retirement_date, age = find_retirement_date(states, 40000, 57, 55)

        assert retirement_date == date(2027, 1, 1)
        assert age == pytest.approx(60, abs=0.01)

    def test_custom_policy(self):
        """Test that a custom withdrawal policy is used."""
        states = yearly_states(date(2024, 1, 1), [0, 0, 0])

        class Generous:
            def sustainable_income(self, state, age):
                return 1e9

        assert find_retirement_date(states, 40000, 58, 58, Generous()) == (
            date(2024, 1, 1),
            58,
        )
