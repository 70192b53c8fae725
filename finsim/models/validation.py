"""
Business-rule validation for projection parameters.

Field types and ranges are enforced by the pydantic models themselves. These
helpers report user-facing errors for raw input (as submitted by a form or an
API client) and for rules that span several fields, such as a retirement age
that must be after the current age.
"""

import math
from typing import Any, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, Field

from .parameters import UserParameters


class ValidationResult(BaseModel):
    """Outcome of a single validation check."""

    is_valid: bool = Field(..., description="Whether the check passed")
    error: Optional[str] = Field(None, description="Error message when invalid")
    field: Optional[str] = Field(None, description="Field the error relates to")

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failure(cls, error: str, field: Optional[str] = None) -> "ValidationResult":
        return cls(is_valid=False, error=error, field=field)


def validate_positive_number(value: Any, field_name: str) -> ValidationResult:
    """Check that a value is a finite, non-negative number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return ValidationResult.failure(f"{field_name} must be a valid number", field_name)
    if math.isnan(value) or math.isinf(value):
        return ValidationResult.failure(f"{field_name} must be a valid number", field_name)
    if value < 0:
        return ValidationResult.failure(f"{field_name} must be positive", field_name)
    return ValidationResult.success()


def validate_bounds(
    value: Any, minimum: float, maximum: float, field_name: str
) -> ValidationResult:
    result = validate_positive_number(value, field_name)
    if not result.is_valid:
        return result
    if value < minimum:
        return ValidationResult.failure(f"{field_name} must be at least {minimum}", field_name)
    if value > maximum:
        return ValidationResult.failure(f"{field_name} must not exceed {maximum}", field_name)
    return ValidationResult.success()


def validate_rate(value: Any, field_name: str) -> ValidationResult:
    """Rates are decimals between 0 and 1."""
    return validate_bounds(value, 0, 1, field_name)


def validate_age(value: Any, field_name: str) -> ValidationResult:
    return validate_bounds(value, 0, 120, field_name)


def validate_retirement_age(current_age: Any, retirement_age: Any) -> ValidationResult:
    """Both ages must be valid and retirement must come after the current age."""
    for value, name in ((current_age, "current_age"), (retirement_age, "retirement_age")):
        result = validate_age(value, name)
        if not result.is_valid:
            return result
    if retirement_age <= current_age:
        return ValidationResult.failure(
            "Retirement age must be greater than current age", "retirement_age"
        )
    return ValidationResult.success()


def validate_simulation_years(years: Any) -> ValidationResult:
    return validate_bounds(years, 1, 100, "simulation_years")


_NON_NEGATIVE_FIELDS = (
    "annual_salary",
    "monthly_living_expenses",
    "monthly_rent_or_mortgage",
    "loan_principal",
    "loan_payment_amount",
    "current_offset_balance",
    "monthly_investment_contribution",
    "current_investment_balance",
    "current_retirement_balance",
    "desired_annual_retirement_income",
)

_RATE_FIELDS = (
    "income_tax_rate",
    "loan_interest_rate",
    "investment_return_rate",
    "retirement_contribution_rate",
    "retirement_return_rate",
)


def _entries(
    data: Mapping[str, Any], name: str, results: List[ValidationResult]
) -> List[Tuple[str, Mapping[str, Any]]]:
    """List items of a nested collection as mappings; shape errors go to ``results``."""
    items = data.get(name) or []
    if not isinstance(items, list):
        results.append(ValidationResult.failure(f"{name} must be a list", name))
        return []
    entries = []
    for index, item in enumerate(items):
        prefix = f"{name}[{index}]"
        if isinstance(item, BaseModel):
            entries.append((prefix, item.model_dump()))
        elif isinstance(item, Mapping):
            entries.append((prefix, item))
        else:
            results.append(ValidationResult.failure(f"{prefix} must be an object", prefix))
    return entries


def validate_user_parameters(
    params: Union[UserParameters, Mapping[str, Any]]
) -> List[ValidationResult]:
    """
    Validate a parameter set.

    Args:
        params: A UserParameters instance or a raw mapping of its fields.
            Fields missing from a mapping take the model defaults.

    Returns:
        Failed checks only (empty when everything is valid)
    """
    data = params.model_dump() if isinstance(params, UserParameters) else dict(params)
    defaults = {
        name: field.default
        for name, field in UserParameters.model_fields.items()
        if not field.is_required()
    }

    def value(name: str) -> Any:
        return data.get(name, defaults.get(name))

    results = [validate_positive_number(value(name), name) for name in _NON_NEGATIVE_FIELDS]
    results += [validate_rate(value(name), name) for name in _RATE_FIELDS]
    results.append(validate_retirement_age(value("current_age"), value("retirement_age")))
    results.append(validate_simulation_years(value("simulation_years")))

    for prefix, loan in _entries(data, "loans", results):
        results.append(validate_positive_number(loan.get("principal"), f"{prefix}.principal"))
        results.append(validate_rate(loan.get("interest_rate"), f"{prefix}.interest_rate"))
        results.append(
            validate_positive_number(loan.get("payment_amount"), f"{prefix}.payment_amount")
        )

    for prefix, account in _entries(data, "retirement_accounts", results):
        results.append(
            validate_positive_number(account.get("balance", 0), f"{prefix}.balance")
        )
        results.append(
            validate_rate(account.get("contribution_rate", 0), f"{prefix}.contribution_rate")
        )

    return [result for result in results if not result.is_valid]


def is_valid(results: List[ValidationResult]) -> bool:
    return all(result.is_valid for result in results)


def get_error_messages(results: List[ValidationResult]) -> List[str]:
    return [result.error for result in results if not result.is_valid and result.error]
