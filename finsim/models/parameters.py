"""
Pydantic models for household projection parameters.

This module defines the user-supplied inputs for a projection: household,
income, expenses, loans, investments, retirement accounts and the retirement
target, plus dated parameter transitions. It also resolves the legacy flat loan
and retirement fields against their multi-entity replacements into a single
canonical representation.
"""

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    create_model,
    field_serializer,
    model_validator,
)

from .periods import PaymentFrequency

LEGACY_LOAN_ID = "legacy-loan"
LEGACY_ACCOUNT_ID = "legacy-retirement"


class TaxBracket(BaseModel):
    """A single progressive tax bracket."""

    model_config = ConfigDict(frozen=True)

    min: float = Field(..., ge=0, description="Minimum income for this bracket (inclusive)")
    max: Optional[float] = Field(
        None, ge=0, description="Maximum income (exclusive, None for the top bracket)"
    )
    rate: float = Field(..., ge=0, le=1, description="Marginal tax rate (0-1)")


class IncomeSource(BaseModel):
    """An income stream, recurring within an optional window or paid once."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier")
    label: str = Field(default="", description="Income source label")
    amount: float = Field(..., ge=0, description="Amount per payment")
    frequency: PaymentFrequency = Field(
        default="monthly", description="Payment frequency"
    )
    is_before_tax: bool = Field(
        default=True, description="Whether the amount is before tax"
    )
    person_id: Optional[str] = Field(None, description="Household member")
    start_date: Optional[date] = Field(None, description="First date income is paid")
    end_date: Optional[date] = Field(None, description="Date income stops (exclusive)")
    is_one_off: bool = Field(default=False, description="Paid once only")
    one_off_date: Optional[date] = Field(None, description="Date of a one-off payment")

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be >= start date")
        if self.is_one_off and self.one_off_date is None:
            raise ValueError("One-off income requires a one_off_date")
        return self


class ExpenseItem(BaseModel):
    """An itemised expense, recurring within an optional window or paid once."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier")
    name: str = Field(default="", description="Expense name")
    amount: float = Field(..., ge=0, description="Amount per payment")
    frequency: PaymentFrequency = Field(default="monthly", description="Frequency")
    category: Literal[
        "housing",
        "utilities",
        "food",
        "transportation",
        "insurance",
        "entertainment",
        "healthcare",
        "personal",
        "education",
        "other",
    ] = Field(default="other", description="Expense category")
    enabled: bool = Field(default=True, description="Whether the expense is active")
    start_date: Optional[date] = Field(None, description="First date of the expense")
    end_date: Optional[date] = Field(None, description="Date expense stops (exclusive)")
    is_one_off: bool = Field(default=False, description="Occurs once only")
    one_off_date: Optional[date] = Field(None, description="Date of a one-off expense")

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be >= start date")
        if self.is_one_off and self.one_off_date is None:
            raise ValueError("One-off expense requires a one_off_date")
        return self


class Loan(BaseModel):
    """A loan, optionally with an attached offset account."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier")
    label: str = Field(default="", description="Loan label")
    principal: float = Field(..., ge=0, description="Outstanding principal")
    interest_rate: float = Field(..., ge=0, le=1, description="Annual rate (0-1)")
    payment_amount: float = Field(..., ge=0, description="Regular payment amount")
    payment_frequency: PaymentFrequency = Field(
        default="monthly", description="Payment frequency"
    )
    has_offset: bool = Field(default=False, description="Offset account attached")
    offset_balance: float = Field(default=0, ge=0, description="Offset balance")
    auto_payout_when_offset_full: bool = Field(
        default=False, description="Pay the loan out once the offset covers it"
    )
    is_debt_recycling: bool = Field(
        default=False, description="Interest is tax deductible"
    )


class RetirementAccount(BaseModel):
    """A retirement savings account funded as a share of gross income."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier")
    label: str = Field(default="", description="Account label")
    balance: float = Field(default=0, ge=0, description="Current balance")
    contribution_rate: float = Field(
        default=0, ge=0, le=1, description="Contribution as a share of gross income"
    )
    return_rate: float = Field(
        default=0, ge=-1, le=1, description="Expected annual return (0-1)"
    )
    person_id: Optional[str] = Field(None, description="Household member")


class Person(BaseModel):
    """A member of a couple household."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier")
    name: str = Field(default="", description="Display name")
    current_age: float = Field(..., ge=0, le=120, description="Current age")
    retirement_age: float = Field(..., ge=0, le=120, description="Target retirement age")
    income_sources: List[IncomeSource] = Field(
        default_factory=list, description="This person's income sources"
    )
    retirement_accounts: List[RetirementAccount] = Field(
        default_factory=list, description="This person's retirement accounts"
    )


class UserParameters(BaseModel):
    """
    Complete input for a household projection.

    The flat ``loan_*`` and ``*_retirement_*`` fields are the legacy single-entity
    form. When ``loans`` or ``retirement_accounts`` is present (even as an empty
    list) it replaces the legacy fields; ``None`` means the legacy fields apply.
    """

    model_config = ConfigDict(frozen=True)

    # Household
    household_mode: Literal["single", "couple"] = Field(
        default="single", description="Household composition"
    )
    people: Optional[List[Person]] = Field(None, description="People (couple mode)")

    # Income
    annual_salary: float = Field(default=0, ge=0, description="Annual salary")
    salary_frequency: PaymentFrequency = Field(
        default="monthly",
        description="How often salary is paid (informational; annual_salary is always annual)",
    )
    income_sources: Optional[List[IncomeSource]] = Field(
        None, description="Named income sources (replace annual_salary when non-empty)"
    )

    # Tax
    income_tax_rate: float = Field(default=0, ge=0, le=1, description="Flat tax rate")
    tax_brackets: Optional[List[TaxBracket]] = Field(
        None, description="Progressive brackets (replace income_tax_rate when non-empty)"
    )

    # Expenses
    monthly_living_expenses: float = Field(default=0, ge=0, description="Living costs")
    monthly_rent_or_mortgage: float = Field(default=0, ge=0, description="Housing cost")
    expense_items: Optional[List[ExpenseItem]] = Field(
        None, description="Itemised expenses (replace flat expenses when non-empty)"
    )

    # Legacy single loan
    loan_principal: float = Field(default=0, ge=0, description="Loan principal")
    loan_interest_rate: float = Field(
        default=0, ge=0, le=1, description="Annual loan rate (0-1)"
    )
    loan_payment_amount: float = Field(default=0, ge=0, description="Loan payment")
    loan_payment_frequency: PaymentFrequency = Field(
        default="monthly", description="Loan payment frequency"
    )
    use_offset_account: bool = Field(default=False, description="Loan has an offset")
    current_offset_balance: float = Field(default=0, ge=0, description="Offset balance")
    loans: Optional[List[Loan]] = Field(None, description="Multiple loans")

    # Investments
    monthly_investment_contribution: float = Field(
        default=0, ge=0, description="Monthly investment contribution"
    )
    investment_return_rate: float = Field(
        default=0, ge=-1, le=1, description="Expected annual return (0-1)"
    )
    current_investment_balance: float = Field(
        default=0, ge=0, description="Current investment balance"
    )

    # Legacy single retirement account
    retirement_contribution_rate: float = Field(
        default=0, ge=0, le=1, description="Contribution as a share of gross income"
    )
    retirement_return_rate: float = Field(
        default=0, ge=-1, le=1, description="Expected annual return (0-1)"
    )
    current_retirement_balance: float = Field(
        default=0, ge=0, description="Current retirement balance"
    )
    retirement_accounts: Optional[List[RetirementAccount]] = Field(
        None, description="Multiple retirement accounts"
    )

    # Retirement target
    desired_annual_retirement_income: float = Field(
        default=0, ge=0, description="Desired annual income in retirement"
    )
    retirement_age: float = Field(..., ge=0, le=120, description="Target retirement age")
    current_age: float = Field(..., ge=0, le=120, description="Current age")

    # Simulation
    simulation_years: int = Field(..., ge=1, le=100, description="Years to simulate")
    start_date: date = Field(..., description="First date of the projection")

    @property
    def is_couple(self) -> bool:
        return self.household_mode == "couple" and bool(self.people)


def _optional_fields() -> Dict[str, Any]:
    return {
        name: (Optional[field.annotation], None)
        for name, field in UserParameters.model_fields.items()
    }


# Sparse patch over UserParameters: only explicitly set fields are applied
ParameterChanges = create_model(
    "ParameterChanges",
    __config__=ConfigDict(extra="forbid", frozen=True),
    **_optional_fields(),
)


class ParameterTransition(BaseModel):
    """A dated change to one or more parameters."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier")
    transition_date: date = Field(..., description="Date the change takes effect")
    label: Optional[str] = Field(None, description="Human readable description")
    parameter_changes: ParameterChanges = Field(  # type: ignore[valid-type]
        default_factory=ParameterChanges, description="Changed parameters only"
    )

    @field_serializer("parameter_changes")
    def serialize_parameter_changes(self, changes: BaseModel, info):
        # Unset fields must stay absent, otherwise a reload would apply them as None
        return changes.model_dump(mode=info.mode, exclude_unset=True)

    @property
    def changed_fields(self) -> List[str]:
        return sorted(self.parameter_changes.model_fields_set)


class SimulationConfiguration(BaseModel):
    """Base parameters plus the scheduled transitions applied on top of them."""

    model_config = ConfigDict(frozen=True)

    base_parameters: UserParameters = Field(..., description="Parameters at start")
    transitions: List[ParameterTransition] = Field(
        default_factory=list, description="Scheduled parameter transitions"
    )


class LoanBook(BaseModel):
    """Canonical loan list resolved from either the legacy or multi-loan form."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["legacy", "multi"]
    loans: List[Loan]


class AccountBook(BaseModel):
    """Canonical retirement account list resolved from legacy or multi form."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["legacy", "multi"]
    accounts: List[RetirementAccount]


def resolve_loans(params: UserParameters) -> LoanBook:
    """
    Resolve the loans in effect for a parameter set.

    A ``loans`` list, even an empty one, takes precedence over the legacy
    single-loan fields.
    """
    if params.loans is not None:
        return LoanBook(mode="multi", loans=list(params.loans))

    legacy = Loan(
        id=LEGACY_LOAN_ID,
        label="Loan",
        principal=params.loan_principal,
        interest_rate=params.loan_interest_rate,
        payment_amount=params.loan_payment_amount,
        payment_frequency=params.loan_payment_frequency,
        has_offset=params.use_offset_account,
        offset_balance=params.current_offset_balance,
    )
    return LoanBook(mode="legacy", loans=[legacy])


def resolve_retirement_accounts(params: UserParameters) -> AccountBook:
    """
    Resolve the retirement accounts in effect for a parameter set.

    An explicit ``retirement_accounts`` list wins, then the accounts of the
    people in a couple household, then the legacy single-account fields.
    """
    if params.retirement_accounts is not None:
        return AccountBook(mode="multi", accounts=list(params.retirement_accounts))

    if params.is_couple:
        accounts = []
        for person in params.people:
            for account in person.retirement_accounts:
                if account.person_id is None:
                    account = account.model_copy(update={"person_id": person.id})
                accounts.append(account)
        return AccountBook(mode="multi", accounts=accounts)

    legacy = RetirementAccount(
        id=LEGACY_ACCOUNT_ID,
        label="Retirement savings",
        balance=params.current_retirement_balance,
        contribution_rate=params.retirement_contribution_rate,
        return_rate=params.retirement_return_rate,
    )
    return AccountBook(mode="legacy", accounts=[legacy])
