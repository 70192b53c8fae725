"""
Protocol interfaces for pluggable simulation policies.

The projection engine depends on three collaborators that can be swapped
without touching the engine itself:

1. TaxPolicy: annual taxable income -> annual tax
2. WithdrawalPolicy: financial state -> sustainable annual retirement income
3. WarningScanner: state series -> additional warning messages
"""

from typing import TYPE_CHECKING, List, Protocol, Sequence

if TYPE_CHECKING:
    from finsim.models.parameters import UserParameters
    from finsim.models.simulation.result import FinancialState


class TaxPolicy(Protocol):
    """Calculates annual income tax."""

    def calculate_annual_tax(
        self, taxable_income: float, params: "UserParameters"
    ) -> float:
        """
        Compute annual tax.

        Args:
            taxable_income: Annual taxable income after deductions
            params: Parameters active for the period being taxed

        Returns:
            Annual tax (>= 0)
        """
        ...


class WithdrawalPolicy(Protocol):
    """Determines how much annual income a set of assets can sustain."""

    def sustainable_income(self, state: "FinancialState", age: float) -> float:
        """
        Compute the sustainable annual income at a point in the projection.

        Args:
            state: Financial state being assessed
            age: Household member's age at that state

        Returns:
            Sustainable annual income
        """
        ...


class WarningScanner(Protocol):
    """Scans a completed series for concerning patterns."""

    def scan(self, states: Sequence["FinancialState"]) -> List[str]:
        """Return warning messages for the series (empty when nothing found)."""
        ...
