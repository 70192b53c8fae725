"""
Simplified income tax model.

Tax is either a flat rate or a progressive bracket table taken from the
parameters. Both are exposed as tax policies so the engine can be given a
different one.
"""

from typing import Any, Dict, List, Optional, Sequence

from .parameters import TaxBracket, UserParameters

TAX_COUNTRY = "AU"
DEFAULT_TAX_YEAR = "2024-25"
MEDICARE_LEVY_RATE = 0.02

# Australian resident rates for 2024-25
DEFAULT_AU_TAX_BRACKETS: List[TaxBracket] = [
    TaxBracket(min=0, max=18200, rate=0.0),
    TaxBracket(min=18200, max=45000, rate=0.16),
    TaxBracket(min=45000, max=135000, rate=0.30),
    TaxBracket(min=135000, max=190000, rate=0.37),
    TaxBracket(min=190000, max=None, rate=0.45),
]

TAX_BRACKETS_BY_YEAR: Dict[str, List[TaxBracket]] = {
    "2023-24": [
        TaxBracket(min=0, max=18200, rate=0.0),
        TaxBracket(min=18200, max=45000, rate=0.19),
        TaxBracket(min=45000, max=120000, rate=0.325),
        TaxBracket(min=120000, max=180000, rate=0.37),
        TaxBracket(min=180000, max=None, rate=0.45),
    ],
    DEFAULT_TAX_YEAR: DEFAULT_AU_TAX_BRACKETS,
}


def get_tax_config(tax_year: Optional[str] = None) -> Dict[str, Any]:
    """
    Bracket table for a tax year.

    Raises:
        KeyError: If the tax year is not available
    """
    tax_year = tax_year or DEFAULT_TAX_YEAR
    if tax_year not in TAX_BRACKETS_BY_YEAR:
        raise KeyError(tax_year)
    return {
        "country": TAX_COUNTRY,
        "tax_year": tax_year,
        "description": "Australian resident individual income tax rates",
        "brackets": [b.model_dump() for b in TAX_BRACKETS_BY_YEAR[tax_year]],
        "medicare_levy": MEDICARE_LEVY_RATE,
        "available_years": sorted(TAX_BRACKETS_BY_YEAR),
    }


def calculate_tax_with_brackets(income: float, brackets: Sequence[TaxBracket]) -> float:
    """
    Calculate annual tax on an income using progressive brackets.

    Args:
        income: Annual taxable income
        brackets: Brackets ordered by their lower bound

    Returns:
        Total annual tax
    """
    total_tax = 0.0
    for bracket in sorted(brackets, key=lambda b: b.min):
        if income <= bracket.min:
            break
        upper = bracket.max if bracket.max is not None else float("inf")
        taxable_in_bracket = min(income, upper) - bracket.min
        if taxable_in_bracket > 0:
            total_tax += taxable_in_bracket * bracket.rate
    return total_tax


class FlatRateTaxPolicy:
    """Taxes all income at a single rate."""

    def __init__(self, rate: float):
        self.rate = rate

    def calculate_annual_tax(self, taxable_income: float, params: UserParameters) -> float:
        return max(0.0, taxable_income) * self.rate


class BracketTaxPolicy:
    """Taxes income against a fixed bracket table."""

    def __init__(self, brackets: Sequence[TaxBracket]):
        self.brackets = list(brackets)

    def calculate_annual_tax(self, taxable_income: float, params: UserParameters) -> float:
        return calculate_tax_with_brackets(taxable_income, self.brackets)


class ParameterTaxPolicy:
    """
    Default tax policy driven by the active parameters.

    Uses ``tax_brackets`` when non-empty, otherwise ``income_tax_rate``. Since
    the parameters are passed per call, transitions that change the tax setup
    take effect immediately.
    """

    def calculate_annual_tax(self, taxable_income: float, params: UserParameters) -> float:
        if params.tax_brackets:
            return calculate_tax_with_brackets(taxable_income, params.tax_brackets)
        return max(0.0, taxable_income) * params.income_tax_rate
