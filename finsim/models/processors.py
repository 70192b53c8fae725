"""
Per-period financial processors.

Each processor is a set of pure calculations over the active parameters for a
single simulation period: income and tax, expenses, loan amortisation with
offset accounts, and investment growth. None of them keep state between calls;
the simulation engine carries balances forward.

Recurring income and expenses are active on ``as_of`` when
``start_date <= as_of < end_date``. One-off amounts are paid in full in the
period ``(period_start, as_of]`` that contains their date.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from .parameters import ExpenseItem, IncomeSource, UserParameters, resolve_loans
from .periods import annual_rate_to_period_rate, payment_to_period, periods_per_year, to_annual
from .tax import ParameterTaxPolicy

HOUSEHOLD = "household"


def _is_active(
    start_date: Optional[date], end_date: Optional[date], as_of: Optional[date]
) -> bool:
    if as_of is None:
        return True
    if start_date is not None and as_of < start_date:
        return False
    if end_date is not None and as_of >= end_date:
        return False
    return True


def _falls_in_period(
    when: Optional[date], period_start: Optional[date], as_of: Optional[date]
) -> bool:
    if when is None or as_of is None:
        return False
    if period_start is None:
        return when == as_of
    return period_start < when <= as_of


class IncomeProcessor:
    """Income and tax calculations for a simulation period."""

    @staticmethod
    def income_sources(params: UserParameters) -> Optional[List[Tuple[str, IncomeSource]]]:
        """
        Income sources in effect, tagged with the person they belong to.

        Couple households use each person's sources. Otherwise a non-empty
        ``income_sources`` list is used. ``None`` means the flat annual salary
        applies instead.
        """
        if params.is_couple:
            return [
                (person.id, source)
                for person in params.people
                for source in person.income_sources
            ]
        if params.income_sources:
            return [(source.person_id or HOUSEHOLD, source) for source in params.income_sources]
        return None

    @staticmethod
    def annual_income_from_source(source: IncomeSource, as_of: Optional[date] = None) -> float:
        """Annualised recurring income from a source (0 for one-off sources)."""
        if source.is_one_off:
            return 0.0
        if not _is_active(source.start_date, source.end_date, as_of):
            return 0.0
        return to_annual(source.amount, source.frequency)

    @staticmethod
    def annual_income_by_person(
        params: UserParameters,
        as_of: Optional[date] = None,
        before_tax: Optional[bool] = True,
    ) -> Dict[str, float]:
        """
        Annual recurring income per person.

        Args:
            params: Active parameters
            as_of: Date used for start/end windows (None ignores windows)
            before_tax: True for before-tax sources, False for after-tax
                sources, None for both

        Returns:
            Mapping of person id (or "household") to annual income
        """
        sources = IncomeProcessor.income_sources(params)
        if sources is None:
            return {HOUSEHOLD: params.annual_salary if before_tax is not False else 0.0}

        totals: Dict[str, float] = {}
        if params.is_couple:
            totals = {person.id: 0.0 for person in params.people}
        for person_id, source in sources:
            if before_tax is not None and source.is_before_tax != before_tax:
                continue
            totals[person_id] = totals.get(person_id, 0.0) + (
                IncomeProcessor.annual_income_from_source(source, as_of)
            )
        return totals

    @staticmethod
    def calculate_total_annual_income(
        params: UserParameters, as_of: Optional[date] = None
    ) -> float:
        """Total annual recurring before-tax income."""
        return sum(IncomeProcessor.annual_income_by_person(params, as_of).values())

    @staticmethod
    def calculate_total_annual_after_tax_income(
        params: UserParameters, as_of: Optional[date] = None
    ) -> float:
        """Total annual recurring income that is already after tax."""
        return sum(
            IncomeProcessor.annual_income_by_person(params, as_of, before_tax=False).values()
        )

    @staticmethod
    def one_off_income_by_person(
        params: UserParameters,
        period_start: Optional[date],
        as_of: Optional[date],
        before_tax: Optional[bool] = None,
    ) -> Dict[str, float]:
        """One-off income paid in the period, per person."""
        totals: Dict[str, float] = {}
        for person_id, source in IncomeProcessor.income_sources(params) or []:
            if not source.is_one_off:
                continue
            if before_tax is not None and source.is_before_tax != before_tax:
                continue
            if _falls_in_period(source.one_off_date, period_start, as_of):
                totals[person_id] = totals.get(person_id, 0.0) + source.amount
        return totals

    @staticmethod
    def calculate_one_off_income(
        params: UserParameters,
        period_start: Optional[date],
        as_of: Optional[date],
    ) -> float:
        """Total one-off income paid in the period."""
        return sum(
            IncomeProcessor.one_off_income_by_person(params, period_start, as_of).values()
        )

    @staticmethod
    def income_by_person(
        params: UserParameters,
        interval: str,
        as_of: Optional[date] = None,
        period_start: Optional[date] = None,
    ) -> Dict[str, float]:
        """Gross income for the period per person, including one-off amounts."""
        ppy = periods_per_year(interval)
        totals: Dict[str, float] = {}
        for person_id, annual in IncomeProcessor.annual_income_by_person(
            params, as_of, before_tax=None
        ).items():
            totals[person_id] = annual / ppy
        for person_id, amount in IncomeProcessor.one_off_income_by_person(
            params, period_start, as_of
        ).items():
            totals[person_id] = totals.get(person_id, 0.0) + amount
        return totals

    @staticmethod
    def calculate_income(
        params: UserParameters,
        interval: str,
        as_of: Optional[date] = None,
        period_start: Optional[date] = None,
    ) -> float:
        """
        Gross income for one period.

        Before-tax and after-tax recurring income are annualised and spread
        evenly over the periods of a year; one-off amounts are added whole.
        """
        return sum(
            IncomeProcessor.income_by_person(params, interval, as_of, period_start).values()
        )

    @staticmethod
    def calculate_tax(
        params: UserParameters,
        interval: str,
        as_of: Optional[date] = None,
        period_start: Optional[date] = None,
        annual_deductions: float = 0.0,
        tax_policy=None,
    ) -> float:
        """
        Tax payable for one period.

        Annual tax on each taxpayer's recurring before-tax income (less their
        share of deductions) is spread over the year. One-off before-tax income
        is taxed at the taxpayer's marginal rate in the period it is paid.
        Couple households are taxed per person.

        Args:
            params: Active parameters
            interval: Simulation interval
            as_of: End of the period
            period_start: Start of the period (exclusive)
            annual_deductions: Annualised deductions such as recycled-debt interest
            tax_policy: Policy used for annual tax (defaults to the parameters)

        Returns:
            Tax for the period
        """
        policy = tax_policy or ParameterTaxPolicy()
        ppy = periods_per_year(interval)
        annual_by_person = IncomeProcessor.annual_income_by_person(params, as_of)
        one_off_by_person = IncomeProcessor.one_off_income_by_person(
            params, period_start, as_of, before_tax=True
        )
        deductions = _allocate_deductions(annual_by_person, annual_deductions)

        total_tax = 0.0
        taxpayers = list(annual_by_person)
        taxpayers += [p for p in one_off_by_person if p not in annual_by_person]
        for person_id in taxpayers:
            taxable = max(
                0.0, annual_by_person.get(person_id, 0.0) - deductions.get(person_id, 0.0)
            )
            annual_tax = policy.calculate_annual_tax(taxable, params)
            total_tax += annual_tax / ppy

            one_off = one_off_by_person.get(person_id, 0.0)
            if one_off > 0:
                total_tax += policy.calculate_annual_tax(taxable + one_off, params) - annual_tax
        return total_tax


def _allocate_deductions(income_by_person: Dict[str, float], deductions: float) -> Dict[str, float]:
    # Split in proportion to income; a household with no income deducts nothing
    if deductions <= 0:
        return {}
    total_income = sum(income_by_person.values())
    if total_income <= 0:
        return {}
    return {
        person_id: deductions * income / total_income
        for person_id, income in income_by_person.items()
    }


class ExpenseProcessor:
    """Expense calculations for a simulation period."""

    @staticmethod
    def calculate_expenses(
        params: UserParameters,
        interval: str,
        as_of: Optional[date] = None,
        period_start: Optional[date] = None,
    ) -> float:
        """
        Total expenses for one period.

        Itemised expenses are used when present, otherwise the monthly living
        and housing figures.
        """
        if params.expense_items:
            return ExpenseProcessor.calculate_expenses_from_items(
                params.expense_items, interval, as_of, period_start
            )
        monthly = params.monthly_living_expenses + params.monthly_rent_or_mortgage
        return monthly * 12 / periods_per_year(interval)

    @staticmethod
    def calculate_expenses_from_items(
        items: Iterable[ExpenseItem],
        interval: str,
        as_of: Optional[date] = None,
        period_start: Optional[date] = None,
    ) -> float:
        total = 0.0
        for item in items:
            if not item.enabled:
                continue
            if item.is_one_off:
                if _falls_in_period(item.one_off_date, period_start, as_of):
                    total += item.amount
                continue
            if _is_active(item.start_date, item.end_date, as_of):
                total += payment_to_period(item.amount, item.frequency, interval)
        return total

    @staticmethod
    def calculate_monthly_total(items: Iterable[ExpenseItem]) -> float:
        """Monthly equivalent of the recurring enabled items, ignoring windows."""
        return ExpenseProcessor.calculate_expenses_from_items(items, "month")

    @staticmethod
    def expenses_by_category(
        items: Iterable[ExpenseItem], interval: str, as_of: Optional[date] = None
    ) -> Dict[str, float]:
        totals: Dict[str, float] = {}
        for item in items:
            amount = ExpenseProcessor.calculate_expenses_from_items([item], interval, as_of)
            if amount:
                totals[item.category] = totals.get(item.category, 0.0) + amount
        return totals


class LoanPaymentResult(BaseModel):
    """Outcome of one period of a loan."""

    new_balance: float = Field(..., ge=0, description="Balance after the payment")
    interest_charged: float = Field(..., ge=0, description="Interest for the period")
    principal_paid: float = Field(..., ge=0, description="Principal repaid")
    amount_paid: float = Field(
        ..., ge=0, description="Cash actually applied to interest and principal"
    )
    interest_saved: float = Field(
        ..., ge=0, description="Interest avoided because of the offset account"
    )
    deductible_interest: float = Field(
        ..., ge=0, description="Interest that is tax deductible"
    )


class LoanProcessor:
    """Loan amortisation with offset account support."""

    @staticmethod
    def calculate_loan_payment(
        balance: float,
        offset_balance: float,
        period_rate: float,
        payment: float,
        has_offset: bool = False,
        is_debt_recycling: bool = False,
    ) -> LoanPaymentResult:
        """
        Apply one period's payment to a loan.

        Interest is charged on the balance less the offset (never below zero)
        when an offset is attached. The payment covers interest first and the
        remainder reduces principal. A payment that does not cover the interest
        repays no principal; the shortfall is not carried as arrears.

        Args:
            balance: Loan balance at the start of the period
            offset_balance: Offset account balance
            period_rate: Interest rate for one period (decimal)
            payment: Amount available for this period's payment
            has_offset: Whether the offset reduces interest
            is_debt_recycling: Whether interest is tax deductible

        Returns:
            LoanPaymentResult for the period
        """
        if balance <= 0:
            return LoanPaymentResult(
                new_balance=0,
                interest_charged=0,
                principal_paid=0,
                amount_paid=0,
                interest_saved=0,
                deductible_interest=0,
            )

        effective_balance = max(balance - offset_balance, 0.0) if has_offset else balance
        interest = effective_balance * period_rate
        interest_saved = (balance * period_rate - interest) if has_offset else 0.0

        payment = max(payment, 0.0)
        principal_paid = max(0.0, min(payment - interest, balance))

        return LoanPaymentResult(
            new_balance=max(0.0, balance - principal_paid),
            interest_charged=interest,
            principal_paid=principal_paid,
            amount_paid=min(payment, interest + principal_paid),
            interest_saved=max(interest_saved, 0.0),
            deductible_interest=interest if is_debt_recycling else 0.0,
        )

    @staticmethod
    def calculate_total_loan_payment(params: UserParameters, interval: str) -> float:
        """Scheduled payments across all loans for one period."""
        return sum(
            payment_to_period(loan.payment_amount, loan.payment_frequency, interval)
            for loan in resolve_loans(params).loans
        )


class InvestmentProcessor:
    """Investment growth with contributions."""

    @staticmethod
    def calculate_investment_growth(
        balance: float, contribution: float, annual_return: float, interval: str
    ) -> float:
        """
        Grow a balance and this period's contribution by one period of return.

        The contribution earns the full period's return.
        """
        rate = annual_rate_to_period_rate(annual_return, interval)
        return balance * (1 + rate) + contribution * (1 + rate)

    @staticmethod
    def period_contribution(monthly_contribution: float, interval: str) -> float:
        return monthly_contribution * 12 / periods_per_year(interval)
