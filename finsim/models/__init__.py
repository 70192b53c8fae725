"""Data models and calculations for household financial projections."""

from .parameters import (
    AccountBook,
    ExpenseItem,
    IncomeSource,
    Loan,
    LoanBook,
    ParameterChanges,
    ParameterTransition,
    Person,
    RetirementAccount,
    SimulationConfiguration,
    TaxBracket,
    UserParameters,
    resolve_loans,
    resolve_retirement_accounts,
)
from .tax import (
    DEFAULT_AU_TAX_BRACKETS,
    BracketTaxPolicy,
    FlatRateTaxPolicy,
    ParameterTaxPolicy,
    calculate_tax_with_brackets,
)
from .processors import (
    ExpenseProcessor,
    IncomeProcessor,
    InvestmentProcessor,
    LoanPaymentResult,
    LoanProcessor,
)
from .simulation.result import (
    ComparisonResult,
    EnhancedSimulationResult,
    FinancialState,
    SimulationResult,
)
from .result_utils import FinancialWarning, generate_warnings
from .retirement import (
    AccessibleAssetsWithdrawalPolicy,
    NetWorthWithdrawalPolicy,
    find_retirement_date,
)
from .validation import ValidationResult, validate_user_parameters
from .transitions import (
    TRANSITION_TEMPLATES,
    TransitionError,
    TransitionNotFoundError,
    TransitionValidationError,
    add_transition,
    build_parameter_periods,
    remove_transition,
    resolve_parameters_for_date,
    update_transition,
    validate_transition,
)
from .simulation.engine import SimulationEngine

__all__ = [
    "UserParameters",
    "IncomeSource",
    "ExpenseItem",
    "Loan",
    "RetirementAccount",
    "Person",
    "TaxBracket",
    "ParameterChanges",
    "ParameterTransition",
    "SimulationConfiguration",
    "LoanBook",
    "AccountBook",
    "resolve_loans",
    "resolve_retirement_accounts",
    "DEFAULT_AU_TAX_BRACKETS",
    "BracketTaxPolicy",
    "FlatRateTaxPolicy",
    "ParameterTaxPolicy",
    "calculate_tax_with_brackets",
    "IncomeProcessor",
    "ExpenseProcessor",
    "LoanProcessor",
    "LoanPaymentResult",
    "InvestmentProcessor",
    "FinancialState",
    "SimulationResult",
    "EnhancedSimulationResult",
    "ComparisonResult",
    "FinancialWarning",
    "generate_warnings",
    "AccessibleAssetsWithdrawalPolicy",
    "NetWorthWithdrawalPolicy",
    "find_retirement_date",
    "ValidationResult",
    "validate_user_parameters",
    "TRANSITION_TEMPLATES",
    "TransitionError",
    "TransitionNotFoundError",
    "TransitionValidationError",
    "add_transition",
    "update_transition",
    "remove_transition",
    "validate_transition",
    "resolve_parameters_for_date",
    "build_parameter_periods",
    "SimulationEngine",
]
