"""
Tests for simulation options.

This module tests the SimulationOptions Pydantic model including defaults,
bounds and immutability.
"""

import pytest
from pydantic import ValidationError

from finsim.models.simulation.config import SimulationOptions


class TestSimulationOptions:
    """Test cases for SimulationOptions."""

    def test_defaults(self):
        """Test the default engine options."""
        options = SimulationOptions()

        assert options.interval == "month"
        assert options.safe_withdrawal_rate == 0.04
        assert options.preservation_age == 60
        assert options.negative_cash_flow_periods == 3
        assert options.delayed_retirement_tolerance_years == 1.0
        assert options.severe_cash_threshold == -1000.0

    def test_custom_values(self):
        """Test overriding the options."""
        options = SimulationOptions(interval="fortnight", negative_cash_flow_periods=6)

        assert options.interval == "fortnight"
        assert options.negative_cash_flow_periods == 6

    def test_invalid_interval(self):
        """Test that only supported intervals are accepted."""
        with pytest.raises(ValidationError):
            SimulationOptions(interval="day")

    def test_withdrawal_rate_must_be_positive(self):
        """Test the withdrawal rate lower bound."""
        with pytest.raises(ValidationError):
            SimulationOptions(safe_withdrawal_rate=0)

    def test_negative_cash_flow_periods_at_least_one(self):
        """Test the consecutive period threshold lower bound."""
        with pytest.raises(ValidationError):
            SimulationOptions(negative_cash_flow_periods=0)

    def test_unknown_option_rejected(self):
        """Test that misspelt options are rejected."""
        with pytest.raises(ValidationError):
            SimulationOptions(intervals="month")

    def test_frozen(self):
        """Test that options cannot be changed after creation."""
        options = SimulationOptions()
        with pytest.raises(ValidationError):
            options.interval = "week"
