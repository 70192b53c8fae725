"""
Household projection engine.

The engine folds a per-period state transition over the projection horizon.
Each period runs the processors in a fixed order:

1. Expenses are deducted from cash
2. Loans are paid (in full when cash covers the payment, otherwise partially)
3. Tax is computed after recycled-debt interest is deducted; net income
   is added to cash
4. The investment contribution is made only if cash covers it in full
5. Retirement accounts receive contributions and growth
6. Surplus cash is swept into the largest offset-linked loan, and loans
   flagged for auto-payout are cleared once their offset covers them
7. Net worth and cash flow are totalled

Cash may go negative; shortfalls reduce or skip payments and never raise.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

import numpy as np

from finsim.models.parameters import (
    LEGACY_ACCOUNT_ID,
    LEGACY_LOAN_ID,
    SimulationConfiguration,
    UserParameters,
    resolve_loans,
    resolve_retirement_accounts,
)
from finsim.models.periods import (
    DAYS_PER_YEAR,
    advance_date,
    annual_rate_to_period_rate,
    payment_to_period,
    periods_per_year,
)
from finsim.models.processors import (
    ExpenseProcessor,
    IncomeProcessor,
    InvestmentProcessor,
    LoanProcessor,
)
from finsim.models.result_utils import SeriesWarningScanner, format_currency, longest_negative_run
from finsim.models.retirement import AccessibleAssetsWithdrawalPolicy, find_retirement_date
from finsim.models.tax import ParameterTaxPolicy
from finsim.models.transitions import (
    apply_parameter_changes,
    build_parameter_periods,
    sort_transitions,
    summarize_transition,
)

from .config import SimulationOptions
from .protocols import TaxPolicy, WarningScanner, WithdrawalPolicy
from .result import (
    ComparisonMetrics,
    ComparisonResult,
    EnhancedSimulationResult,
    FinancialState,
    SimulationResult,
    TransitionPoint,
)

logger = logging.getLogger(__name__)

INCREASING_DEBT_WARNING = "Loan balance is increasing over time"
NEGATIVE_CASH_FLOW_WARNING = "Sustained negative cash flow detected"
NEGATIVE_NET_WORTH_WARNING = "Net worth is negative"


class SimulationEngine:
    """
    Runs household projections.

    The engine holds only its options and policies; every run is a pure
    function of its input, so one engine can be shared between threads.

    Example:
        ```python
        engine = SimulationEngine()
        result = engine.run_simulation(params)
        comparison = engine.run_comparison_simulation(config)
        ```
    """

    def __init__(
        self,
        options: Optional[SimulationOptions] = None,
        tax_policy: Optional[TaxPolicy] = None,
        withdrawal_policy: Optional[WithdrawalPolicy] = None,
        warning_scanner: Optional[WarningScanner] = None,
    ):
        self.options = options or SimulationOptions()
        self.tax_policy = tax_policy or ParameterTaxPolicy()
        self.withdrawal_policy = withdrawal_policy or AccessibleAssetsWithdrawalPolicy(
            rate=self.options.safe_withdrawal_rate,
            preservation_age=self.options.preservation_age,
        )
        self.warning_scanner = warning_scanner or SeriesWarningScanner(
            negative_cash_flow_periods=self.options.negative_cash_flow_periods,
            severe_cash_threshold=self.options.severe_cash_threshold,
        )

    def initial_state(self, params: UserParameters) -> FinancialState:
        """
        Starting snapshot at the projection start date.

        Cash starts at zero. An offset balance larger than its loan is capped
        at the loan balance and the excess is held as cash.
        """
        loan_book = resolve_loans(params)
        account_book = resolve_retirement_accounts(params)

        cash = 0.0
        loan_balances: Dict[str, float] = {}
        offset_balances: Dict[str, float] = {}
        for loan in loan_book.loans:
            offset = min(loan.offset_balance, loan.principal)
            cash += loan.offset_balance - offset
            loan_balances[loan.id] = loan.principal
            offset_balances[loan.id] = offset
        retirement_balances = {account.id: account.balance for account in account_book.accounts}

        return self._build_state(
            as_of=params.start_date,
            cash=cash,
            investments=params.current_investment_balance,
            loan_balances=loan_balances,
            offset_balances=offset_balances,
            retirement_balances=retirement_balances,
            multi_loan=loan_book.mode == "multi",
            multi_account=account_book.mode == "multi",
        )

    def calculate_time_step(
        self,
        state: FinancialState,
        params: UserParameters,
        interval: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> FinancialState:
        """
        Compute the state at the end of the period following ``state``.

        Args:
            state: State at the start of the period
            params: Parameters in effect for the period
            interval: Period length (defaults to the engine interval)
            as_of: Period end date (defaults to one interval after state.date)

        Returns:
            New FinancialState dated ``as_of``
        """
        interval = interval or self.options.interval
        as_of = as_of or advance_date(state.date, interval)
        period_start = state.date
        ppy = periods_per_year(interval)

        # 1. Expenses
        expenses = ExpenseProcessor.calculate_expenses(params, interval, as_of, period_start)
        cash = state.cash - expenses

        # 2. Loans
        loan_book = resolve_loans(params)
        previous_balances, previous_offsets = self._carried_loan_balances(state)
        loan_balances: Dict[str, float] = {}
        offset_balances: Dict[str, float] = {}
        payments_made = 0.0
        interest_saved = 0.0
        deductible_interest = 0.0
        for loan in loan_book.loans:
            balance = previous_balances.get(loan.id, loan.principal)
            offset = previous_offsets.get(loan.id, loan.offset_balance)
            payment = payment_to_period(loan.payment_amount, loan.payment_frequency, interval)
            available = payment if cash >= payment else max(cash, 0.0)

            result = LoanProcessor.calculate_loan_payment(
                balance=balance,
                offset_balance=offset,
                period_rate=annual_rate_to_period_rate(loan.interest_rate, interval),
                payment=available,
                has_offset=loan.has_offset,
                is_debt_recycling=loan.is_debt_recycling,
            )
            cash -= result.amount_paid
            payments_made += result.amount_paid
            interest_saved += result.interest_saved
            deductible_interest += result.deductible_interest

            # Offset beyond the remaining balance is released back to cash
            if offset > result.new_balance:
                cash += offset - result.new_balance
                offset = result.new_balance
            loan_balances[loan.id] = result.new_balance
            offset_balances[loan.id] = offset

        # 3. Income and tax
        income_by_person = IncomeProcessor.income_by_person(params, interval, as_of, period_start)
        gross_income = sum(income_by_person.values())
        tax_paid = IncomeProcessor.calculate_tax(
            params,
            interval,
            as_of,
            period_start,
            annual_deductions=deductible_interest * ppy,
            tax_policy=self.tax_policy,
        )
        net_income = gross_income - tax_paid
        cash += net_income

        # 4. Investments
        contribution = InvestmentProcessor.period_contribution(
            params.monthly_investment_contribution, interval
        )
        actual_contribution = 0.0
        if cash > 0 and cash >= contribution:
            actual_contribution = contribution
            cash -= actual_contribution
        investments = InvestmentProcessor.calculate_investment_growth(
            state.investments, actual_contribution, params.investment_return_rate, interval
        )

        # 5. Retirement accounts
        account_book = resolve_retirement_accounts(params)
        previous_accounts = self._carried_account_balances(state)
        retirement_balances: Dict[str, float] = {}
        for account in account_book.accounts:
            balance = previous_accounts.get(account.id, account.balance)
            income = income_by_person.get(account.person_id, gross_income)
            retirement_balances[account.id] = InvestmentProcessor.calculate_investment_growth(
                balance, income * account.contribution_rate, account.return_rate, interval
            )

        # 6. Offset sweep into the offset-linked loan with the largest balance
        if cash > 0:
            target = None
            for loan in loan_book.loans:
                if loan.has_offset and loan_balances[loan.id] > 0:
                    if target is None or loan_balances[loan.id] > loan_balances[target]:
                        target = loan.id
            if target is not None:
                moved = min(cash, max(loan_balances[target] - offset_balances[target], 0.0))
                offset_balances[target] += moved
                cash -= moved

        # 6b. Auto-payout once the offset covers the loan
        for loan in loan_book.loans:
            balance = loan_balances[loan.id]
            if (
                loan.auto_payout_when_offset_full
                and balance > 0
                and offset_balances[loan.id] >= balance
            ):
                logger.debug("Paying out loan %s from its offset on %s", loan.id, as_of)
                cash += offset_balances[loan.id] - balance
                loan_balances[loan.id] = 0.0
                offset_balances[loan.id] = 0.0

        # 7. Totals
        return self._build_state(
            as_of=as_of,
            cash=cash,
            investments=investments,
            loan_balances=loan_balances,
            offset_balances=offset_balances,
            retirement_balances=retirement_balances,
            multi_loan=loan_book.mode == "multi",
            multi_account=account_book.mode == "multi",
            cash_flow=net_income - expenses - payments_made - actual_contribution,
            tax_paid=tax_paid,
            expenses=expenses,
            interest_saved=interest_saved,
            deductible_interest=deductible_interest,
        )

    def run_simulation(self, params: UserParameters) -> SimulationResult:
        """Run a projection with fixed parameters."""
        result = self.run_simulation_with_transitions(
            SimulationConfiguration(base_parameters=params)
        )
        return SimulationResult(
            states=result.states,
            retirement_date=result.retirement_date,
            retirement_age=result.retirement_age,
            is_sustainable=result.is_sustainable,
            warnings=result.warnings,
        )

    def run_simulation_with_transitions(
        self, config: SimulationConfiguration
    ) -> EnhancedSimulationResult:
        """
        Run a projection applying each transition from its date onwards.

        The horizon is fixed by the base parameters and runs exactly
        ``simulation_years * periods_per_year`` periods.
        """
        interval = self.options.interval
        base = config.base_parameters
        ordered = sort_transitions(config.transitions)
        steps = base.simulation_years * periods_per_year(interval)
        logger.info(
            "Running simulation: %d periods of %s from %s with %d transitions",
            steps,
            interval,
            base.start_date,
            len(ordered),
        )

        params = base
        states: List[FinancialState] = []
        transition_points: List[TransitionPoint] = []
        next_transition = 0

        def apply_due(as_of: date) -> None:
            nonlocal params, next_transition
            while (
                next_transition < len(ordered)
                and ordered[next_transition].transition_date <= as_of
            ):
                transition = ordered[next_transition]
                updated = apply_parameter_changes(params, transition.parameter_changes)
                transition_points.append(
                    TransitionPoint(
                        date=transition.transition_date,
                        state_index=len(states),
                        transition=transition,
                        changes_summary=summarize_transition(transition, params, updated),
                    )
                )
                params = updated
                next_transition += 1

        apply_due(base.start_date)
        state = self.initial_state(params)
        states.append(state)

        for step in range(1, steps + 1):
            as_of = advance_date(base.start_date, interval, step)
            apply_due(as_of)
            state = self.calculate_time_step(state, params, interval, as_of)
            states.append(state)

        retirement_date, retirement_age = find_retirement_date(
            states,
            params.desired_annual_retirement_income,
            base.current_age,
            params.retirement_age,
            self.withdrawal_policy,
        )
        is_sustainable, warnings = self.check_sustainability(states)
        warnings += self.warning_scanner.scan(states)
        warnings += self._retirement_advisories(params, base, retirement_age)

        logger.info(
            "Simulation complete: final net worth %.2f, sustainable=%s, retirement age %s",
            states[-1].net_worth,
            is_sustainable,
            f"{retirement_age:.1f}" if retirement_age is not None else "not reached",
        )
        return EnhancedSimulationResult(
            states=states,
            retirement_date=retirement_date,
            retirement_age=retirement_age,
            is_sustainable=is_sustainable,
            warnings=warnings,
            transition_points=transition_points,
            periods=build_parameter_periods(config),
        )

    def run_comparison_simulation(self, config: SimulationConfiguration) -> ComparisonResult:
        """Compare a transition-aware run against the base parameters alone."""
        with_transitions = self.run_simulation_with_transitions(config)
        without_transitions = self.run_simulation(config.base_parameters)

        difference = None
        if with_transitions.retirement_date and without_transitions.retirement_date:
            days = (with_transitions.retirement_date - without_transitions.retirement_date).days
            difference = days / DAYS_PER_YEAR

        return ComparisonResult(
            with_transitions=with_transitions,
            without_transitions=without_transitions,
            comparison=ComparisonMetrics(
                retirement_date_difference=difference,
                final_net_worth_difference=(
                    with_transitions.final_net_worth - without_transitions.final_net_worth
                ),
                sustainability_changed=(
                    with_transitions.is_sustainable != without_transitions.is_sustainable
                ),
            ),
        )

    def check_sustainability(self, states: List[FinancialState]) -> Tuple[bool, List[str]]:
        """
        Judge whether a trajectory is sustainable.

        A series is unsustainable when debt ends higher than it started, when
        cash flow is negative for several consecutive periods, or when final
        net worth is negative. Each condition adds its own warning.
        """
        warnings: List[str] = []
        if len(states) < 2:
            return True, warnings

        first, last = states[0], states[-1]
        if last.loan_balance > first.loan_balance:
            warnings.append(INCREASING_DEBT_WARNING)

        cash_flows = np.array([s.cash_flow for s in states], dtype=np.float64)
        if longest_negative_run(cash_flows) >= self.options.negative_cash_flow_periods:
            warnings.append(NEGATIVE_CASH_FLOW_WARNING)

        if last.net_worth < 0:
            warnings.append(NEGATIVE_NET_WORTH_WARNING)

        return not warnings, warnings

    def _retirement_advisories(
        self,
        params: UserParameters,
        base: UserParameters,
        retirement_age: Optional[float],
    ) -> List[str]:
        target = params.retirement_age
        if retirement_age is None:
            return [
                f"Retirement at age {target:g} is not achievable within the "
                f"{base.simulation_years}-year projection with a desired income of "
                f"{format_currency(params.desired_annual_retirement_income)} per year. "
                "Consider increasing savings or reducing the desired retirement income."
            ]
        tolerance = self.options.delayed_retirement_tolerance_years
        if retirement_age > target + tolerance:
            return [
                f"Retirement is delayed to age {retirement_age:.1f}, more than "
                f"{tolerance:g} year(s) after the target age of {target:g}."
            ]
        return []

    @staticmethod
    def _carried_loan_balances(
        state: FinancialState,
    ) -> Tuple[Dict[str, float], Dict[str, float]]:
        if state.loan_balances is not None:
            return dict(state.loan_balances), dict(state.offset_balances or {})
        return {LEGACY_LOAN_ID: state.loan_balance}, {LEGACY_LOAN_ID: state.offset_balance}

    @staticmethod
    def _carried_account_balances(state: FinancialState) -> Dict[str, float]:
        if state.retirement_balances is not None:
            return dict(state.retirement_balances)
        return {LEGACY_ACCOUNT_ID: state.retirement_savings}

    @staticmethod
    def _build_state(
        as_of: date,
        cash: float,
        investments: float,
        loan_balances: Dict[str, float],
        offset_balances: Dict[str, float],
        retirement_balances: Dict[str, float],
        multi_loan: bool,
        multi_account: bool,
        **period_figures: float,
    ) -> FinancialState:
        loan_balance = sum(loan_balances.values())
        offset_balance = sum(offset_balances.values())
        retirement_savings = sum(retirement_balances.values())
        return FinancialState(
            date=as_of,
            cash=cash,
            investments=investments,
            retirement_savings=retirement_savings,
            loan_balance=loan_balance,
            offset_balance=offset_balance,
            net_worth=FinancialState.compute_net_worth(
                cash, investments, retirement_savings, offset_balance, loan_balance
            ),
            loan_balances=dict(loan_balances) if multi_loan else None,
            offset_balances=dict(offset_balances) if multi_loan else None,
            retirement_balances=dict(retirement_balances) if multi_account else None,
            **period_figures,
        )
