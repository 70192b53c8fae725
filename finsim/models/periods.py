"""
Period arithmetic for the projection engine.

This module converts annual rates and payment frequencies into the amounts that
apply to a single simulation period, and advances calendar dates by whole
periods. Month and year arithmetic clamps to the last valid day of the target
month, so 31 January advanced by one month lands on the last day of February.
"""

from datetime import date, timedelta
from typing import Literal

from dateutil.relativedelta import relativedelta

TimeInterval = Literal["week", "fortnight", "month", "year"]
PaymentFrequency = Literal["weekly", "fortnightly", "monthly", "yearly"]

DAYS_PER_YEAR = 365.25

_PERIODS_PER_YEAR = {"week": 52, "fortnight": 26, "month": 12, "year": 1}
_PAYMENTS_PER_YEAR = {"weekly": 52, "fortnightly": 26, "monthly": 12, "yearly": 1}


def periods_per_year(interval: str) -> int:
    """
    Number of simulation periods in a year.

    Unrecognised intervals fall back to monthly (12) rather than raising.
    """
    return _PERIODS_PER_YEAR.get(interval, 12)


def annual_rate_to_period_rate(annual_rate: float, interval: str) -> float:
    """
    Convert an annual rate into the compounding-equivalent rate for one period.

    Uses (1 + annual_rate) ** (1 / periods_per_year) - 1, so compounding the
    period rate over a full year reproduces the annual rate.

    Args:
        annual_rate: Annual rate as a decimal (0.06 for 6%)
        interval: Simulation interval

    Returns:
        Period rate as a decimal
    """
    return (1 + annual_rate) ** (1 / periods_per_year(interval)) - 1


def to_annual(amount: float, frequency: str) -> float:
    """Annualise an amount paid at the given frequency (unknown -> monthly)."""
    return amount * _PAYMENTS_PER_YEAR.get(frequency, 12)


def payment_to_period(amount: float, frequency: str, interval: str) -> float:
    """
    Convert a payment made at one frequency into the amount for one period.

    Args:
        amount: Amount per payment
        frequency: How often the payment is made (unknown -> monthly)
        interval: Target simulation interval

    Returns:
        Equivalent amount for one simulation period
    """
    return to_annual(amount, frequency) / periods_per_year(interval)


def advance_date(start: date, interval: str, periods: int = 1) -> date:
    """
    Advance a date by a number of simulation periods.

    Args:
        start: Date to advance from
        interval: Simulation interval (unknown -> monthly)
        periods: Number of periods to advance

    Returns:
        The advanced date
    """
    if interval == "week":
        return start + timedelta(days=7 * periods)
    if interval == "fortnight":
        return start + timedelta(days=14 * periods)
    if interval == "year":
        return start + relativedelta(years=periods)
    return start + relativedelta(months=periods)


def years_between(start: date, end: date) -> float:
    """Fractional years between two dates using a 365.25-day year."""
    return (end - start).days / DAYS_PER_YEAR
