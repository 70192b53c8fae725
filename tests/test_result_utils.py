"""
Tests for state series analysis helpers.

This module tests currency formatting, trend detection, loan payoff lookup,
interval down-sampling and the warning scanner.
"""

from datetime import date, timedelta

import numpy as np
import pytest

from finsim.models.result_utils import (
    CurrencyFormatter,
    SeriesWarningScanner,
    analyze_sustainability,
    detect_increasing_debt,
    detect_negative_cash_flow,
    detect_net_worth_growth,
    find_loan_payoff_date,
    format_currency,
    generate_warnings,
    group_by_time_interval,
    is_financial_state_complete,
    longest_negative_run,
)
from finsim.models.simulation.result import FinancialState


def make_state(day, cash=0.0, loan_balance=0.0, cash_flow=0.0, investments=0.0):
    return FinancialState(
        date=date(2024, 1, 1) + timedelta(days=day),
        cash=cash,
        investments=investments,
        retirement_savings=0,
        loan_balance=loan_balance,
        offset_balance=0,
        net_worth=cash + investments - loan_balance,
        cash_flow=cash_flow,
    )


class TestCurrencyFormatter:
    """Test cases for currency formatting."""

    def test_default_format(self):
        """Test thousands separators and two decimal places."""
        assert format_currency(1234567.891) == "$1,234,567.89"

    def test_negative_amount(self):
        """Test that the sign goes before the symbol."""
        assert format_currency(-1500) == "-$1,500.00"

    def test_zero(self):
        """Test formatting zero."""
        assert format_currency(0) == "$0.00"

    def test_tiny_negative_rounds_to_zero(self):
        """Test that amounts rounding to zero have no sign."""
        assert format_currency(-0.001) == "$0.00"

    def test_custom_formatter(self):
        """Test a formatter without decimals and a different symbol."""
        formatter = CurrencyFormatter(currency_symbol="€", decimal_places=0)
        assert formatter.format_currency(2500.4) == "€2,500"


class TestTrendDetection:
    """Test cases for the trend detectors."""

    def test_longest_negative_run(self):
        """Test the longest run of consecutive negatives."""
        assert longest_negative_run(np.array([-1, -2, 3, -1, -1, -1, 0, -5])) == 3
        assert longest_negative_run(np.array([])) == 0

    def test_increasing_debt(self):
        """Test debt growth between the first and last states."""
        low, high = make_state(0, loan_balance=100), make_state(30, loan_balance=200)

        assert detect_increasing_debt([low, high])
        assert not detect_increasing_debt([high, low])
        assert not detect_increasing_debt([low])

    def test_negative_cash_flow(self):
        """Test detection of sustained negative cash flow."""
        states = [make_state(i, cash_flow=flow) for i, flow in enumerate([1, -1, -1, -1, 1])]

        assert detect_negative_cash_flow(states) == (True, 3)
        assert detect_negative_cash_flow(states, threshold=4) == (False, 3)
        assert detect_negative_cash_flow([]) == (False, 0)

    def test_net_worth_growth(self):
        """Test net worth growth between the first and last states."""
        assert detect_net_worth_growth([make_state(0, cash=100), make_state(30, cash=200)])
        assert not detect_net_worth_growth([make_state(0, cash=200), make_state(30, cash=200)])

    def test_analyze_sustainability(self):
        """Test the combined analysis."""
        states = [
            make_state(0, cash=100, loan_balance=1000),
            make_state(30, cash=50, loan_balance=1200, cash_flow=-10),
        ]

        analysis = analyze_sustainability(states)

        assert not analysis.is_sustainable
        assert analysis.has_increasing_debt
        assert not analysis.has_negative_cash_flow
        assert analysis.consecutive_negative_periods == 1
        assert not analysis.has_net_worth_growth

    def test_analyze_short_series(self):
        """Test that a single state is treated as sustainable."""
        assert analyze_sustainability([make_state(0)]).is_sustainable


class TestLoanPayoff:
    """Test cases for find_loan_payoff_date."""

    def test_payoff_date(self):
        """Test the first state with a (near) zero balance."""
        states = [
            make_state(0, loan_balance=1000),
            make_state(30, loan_balance=400),
            make_state(60, loan_balance=0.005),
            make_state(90, loan_balance=0),
        ]
        assert find_loan_payoff_date(states) == date(2024, 3, 1)

    def test_never_paid_off(self):
        """Test a loan that is still owing at the end."""
        states = [make_state(0, loan_balance=1000), make_state(30, loan_balance=900)]
        assert find_loan_payoff_date(states) is None

    def test_no_loan(self):
        """Test that a series without debt has no payoff date."""
        assert find_loan_payoff_date([make_state(0), make_state(30)]) is None


class TestGroupByTimeInterval:
    """Test cases for interval down-sampling."""

    def test_monthly_to_yearly(self):
        """Test keeping roughly one state per year."""
        states = [make_state(30 * i) for i in range(25)]

        grouped = group_by_time_interval(states, "year")

        assert grouped[0] is states[0]
        assert grouped[-1] is states[-1]
        assert [s.date for s in grouped] == [
            states[0].date,
            states[11].date,
            states[22].date,
            states[24].date,
        ]

    def test_empty(self):
        """Test an empty series."""
        assert group_by_time_interval([], "month") == []


class TestStateCompleteness:
    """Test cases for is_financial_state_complete."""

    def test_complete(self):
        """Test a state with finite figures."""
        assert is_financial_state_complete(make_state(0, cash=10))

    def test_not_finite(self):
        """Test a state containing NaN."""
        assert not is_financial_state_complete(make_state(0, cash=float("nan")))


class TestGenerateWarnings:
    """Test cases for the warning scanner."""

    def test_healthy_series(self):
        """Test that a growing, debt-free series has no warnings."""
        states = [make_state(i * 30, cash=100 * i, cash_flow=100) for i in range(6)]
        assert generate_warnings(states) == []

    def test_short_series(self):
        """Test that fewer than two states produce no warnings."""
        assert generate_warnings([make_state(0, cash=-5000)]) == []

    def test_all_warnings_in_order(self):
        """Test the message, severity and type of each warning."""
        states = [
            make_state(0, cash=0, loan_balance=10000),
            make_state(30, cash=-2000, loan_balance=10500, cash_flow=-100),
            make_state(60, cash=-3000, loan_balance=11000, cash_flow=-100),
            make_state(90, cash=-1500, loan_balance=11500, cash_flow=-100),
        ]

        warnings = generate_warnings(states)

        assert [(w.type, w.severity) for w in warnings] == [
            ("debt", "warning"),
            ("cashflow", "alert"),
            ("sustainability", "warning"),
            ("sustainability", "alert"),
        ]
        assert warnings[0].message == (
            "Loan balance is increasing over time ($1,500.00 increase). "
            "This indicates unsustainable debt growth."
        )
        assert warnings[1].message == (
            "Sustained negative cash flow detected (3 consecutive periods). "
            "Your expenses exceed your income."
        )
        assert warnings[2].message == (
            "Net worth is declining over time ($3,000.00 decrease). "
            "Consider reducing expenses or increasing income."
        )
        assert warnings[3].message == (
            "Cash reserves are severely depleted (minimum: -$3,000.00). "
            "Loan payments may be exceeding available funds."
        )

    def test_thresholds(self):
        """Test the configurable cash flow and cash thresholds."""
        states = [
            make_state(0, cash=100),
            make_state(30, cash=-500, cash_flow=-1),
            make_state(60, cash=200, cash_flow=-1),
        ]

        assert [w.type for w in generate_warnings(states)] == []
        assert [
            w.type
            for w in generate_warnings(
                states, negative_cash_flow_periods=2, severe_cash_threshold=-100
            )
        ] == ["cashflow", "sustainability"]

    def test_scanner_returns_messages(self):
        """Test that the scanner exposes the warning messages."""
        states = [make_state(0, cash=100), make_state(30, cash=50)]

        messages = SeriesWarningScanner().scan(states)

        assert messages == [
            "Net worth is declining over time ($50.00 decrease). "
            "Consider reducing expenses or increasing income."
        ]
