"""
Tests for simulation protocol interfaces.

This module tests protocol conformance of the built-in policies and of mock
implementations plugged into the engine.
"""

from datetime import date
from typing import List, Sequence

import pytest

from finsim.models.parameters import UserParameters
from finsim.models.result_utils import SeriesWarningScanner
from finsim.models.retirement import AccessibleAssetsWithdrawalPolicy, NetWorthWithdrawalPolicy
from finsim.models.simulation.engine import SimulationEngine
from finsim.models.simulation.protocols import TaxPolicy, WarningScanner, WithdrawalPolicy
from finsim.models.simulation.result import FinancialState
from finsim.models.tax import BracketTaxPolicy, FlatRateTaxPolicy, ParameterTaxPolicy


class MockTaxPolicy:
    """Mock implementation of TaxPolicy recording the income it was asked about."""

    def __init__(self, rate: float = 0.1):
        self.rate = rate
        self.calls: List[float] = []

    def calculate_annual_tax(self, taxable_income: float, params: UserParameters) -> float:
        self.calls.append(taxable_income)
        return taxable_income * self.rate


class MockWithdrawalPolicy:
    """Mock implementation of WithdrawalPolicy based on cash only."""

    def sustainable_income(self, state: FinancialState, age: float) -> float:
        return max(state.cash, 0.0)


class MockWarningScanner:
    """Mock implementation of WarningScanner counting states."""

    def scan(self, states: Sequence[FinancialState]) -> List[str]:
        return [f"{len(states)} states scanned"]


@pytest.fixture
def params():
    return UserParameters(
        annual_salary=60000,
        monthly_living_expenses=1000,
        desired_annual_retirement_income=10000,
        retirement_age=40,
        current_age=40,
        simulation_years=1,
        start_date=date(2024, 1, 1),
    )


class TestProtocolConformance:
    """Test that the built-in policies satisfy the protocols."""

    def test_tax_policies(self, params):
        """Test the built-in tax policies."""
        policies: List[TaxPolicy] = [
            FlatRateTaxPolicy(0.2),
            BracketTaxPolicy([]),
            ParameterTaxPolicy(),
        ]
        for policy in policies:
            assert policy.calculate_annual_tax(50000, params) >= 0

    def test_withdrawal_policies(self):
        """Test the built-in withdrawal policies."""
        state = FinancialState(
            date=date(2024, 1, 1),
            cash=0,
            investments=100000,
            retirement_savings=0,
            loan_balance=0,
            offset_balance=0,
            net_worth=100000,
        )
        policies: List[WithdrawalPolicy] = [
            AccessibleAssetsWithdrawalPolicy(),
            NetWorthWithdrawalPolicy(),
        ]
        for policy in policies:
            assert policy.sustainable_income(state, 65) == pytest.approx(4000)

    def test_warning_scanner(self):
        """Test the built-in warning scanner on an empty series."""
        scanner: WarningScanner = SeriesWarningScanner()
        assert scanner.scan([]) == []


class TestEngineWithMockPolicies:
    """Test that the engine uses whichever policies it is given."""

    def test_mock_tax_policy(self, params):
        """Test that the engine asks the tax policy for annual tax."""
        tax_policy = MockTaxPolicy(rate=0.1)
        engine = SimulationEngine(tax_policy=tax_policy)

        result = engine.run_simulation(params)

        assert tax_policy.calls[0] == pytest.approx(60000)
        assert result.states[1].tax_paid == pytest.approx(500)

    def test_mock_withdrawal_policy(self, params):
        """Test that retirement is judged by the withdrawal policy."""
        engine = SimulationEngine(withdrawal_policy=MockWithdrawalPolicy())

        result = engine.run_simulation(params)

        # Cash grows by $4,000 net a month with no tax
        assert result.retirement_date == date(2024, 4, 1)

    def test_mock_warning_scanner(self, params):
        """Test that scanner messages are appended verbatim."""
        engine = SimulationEngine(warning_scanner=MockWarningScanner())

        result = engine.run_simulation(params)

        assert "13 states scanned" in result.warnings
