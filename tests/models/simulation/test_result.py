"""
Tests for simulation result models.

This module tests the FinancialState snapshot and the result containers,
including their numpy/pandas views and JSON serialization.
"""

from datetime import date

import numpy as np
import pandas as pd
import pytest
from pydantic import ValidationError

from finsim.models.simulation.result import (
    STATE_SERIES_FIELDS,
    ComparisonMetrics,
    ComparisonResult,
    EnhancedSimulationResult,
    FinancialState,
    SimulationResult,
)


def make_state(month, cash, loan_balance=1000.0, **kwargs):
    return FinancialState(
        date=date(2024, month, 1),
        cash=cash,
        investments=0,
        retirement_savings=0,
        loan_balance=loan_balance,
        offset_balance=0,
        net_worth=cash - loan_balance,
        **kwargs,
    )


@pytest.fixture
def sample_result():
    """Three-state result."""
    return SimulationResult(
        states=[make_state(1, 0), make_state(2, 500), make_state(3, 1200)],
        is_sustainable=True,
    )


class TestFinancialState:
    """Test cases for FinancialState."""

    def test_compute_net_worth(self):
        """Test the net worth identity."""
        assert FinancialState.compute_net_worth(
            cash=100, investments=200, retirement_savings=300, offset_balance=50, loan_balance=400
        ) == 250

    def test_period_figures_default_to_zero(self):
        """Test that period figures default to zero."""
        state = make_state(1, 0)

        assert state.cash_flow == 0
        assert state.tax_paid == 0
        assert state.loan_balances is None

    def test_frozen(self):
        """Test that states are immutable."""
        state = make_state(1, 0)
        with pytest.raises(ValidationError):
            state.cash = 10

    def test_empty_map_survives_json(self):
        """Test that an empty per-loan map is not collapsed to None."""
        state = make_state(1, 0, loan_balances={}, offset_balances={})

        restored = FinancialState.model_validate_json(state.model_dump_json())

        assert restored.loan_balances == {}
        assert restored.retirement_balances is None


class TestSimulationResult:
    """Test cases for SimulationResult."""

    def test_final_state(self, sample_result):
        """Test the final state and net worth."""
        assert sample_result.final_state.date == date(2024, 3, 1)
        assert sample_result.final_net_worth == pytest.approx(200)

    def test_empty_result(self):
        """Test the properties of a result without states."""
        result = SimulationResult(states=[], is_sustainable=True)

        assert result.final_state is None
        assert result.final_net_worth == 0

    def test_series(self, sample_result):
        """Test extracting one field across states."""
        series = sample_result.series("cash")

        assert isinstance(series, np.ndarray)
        np.testing.assert_array_equal(series, np.array([0.0, 500.0, 1200.0]))

    def test_unknown_series(self, sample_result):
        """Test that an unknown field raises ValueError."""
        with pytest.raises(ValueError, match="Unknown state field: salary"):
            sample_result.series("salary")

    def test_dates(self, sample_result):
        """Test the state dates."""
        assert sample_result.dates() == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]

    def test_to_dataframe(self, sample_result):
        """Test the DataFrame view."""
        frame = sample_result.to_dataframe()

        assert list(frame.columns) == list(STATE_SERIES_FIELDS)
        assert isinstance(frame.index, pd.DatetimeIndex)
        assert frame.loc[pd.Timestamp("2024-02-01"), "cash"] == 500

    def test_json_dates(self, sample_result):
        """Test that dates serialise as ISO strings."""
        dumped = sample_result.model_dump(mode="json")

        assert dumped["states"][0]["date"] == "2024-01-01"
        assert dumped["retirement_date"] is None
        assert dumped["warnings"] == []


class TestComparisonResult:
    """Test cases for the comparison containers."""

    def test_comparison_result(self, sample_result):
        """Test assembling a comparison result."""
        enhanced = EnhancedSimulationResult(**sample_result.model_dump())

        result = ComparisonResult(
            with_transitions=enhanced,
            without_transitions=sample_result,
            comparison=ComparisonMetrics(
                final_net_worth_difference=0, sustainability_changed=False
            ),
        )

        assert result.with_transitions.transition_points == []
        assert result.comparison.retirement_date_difference is None
