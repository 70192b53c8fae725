"""
Simulation module.

This module provides the household projection engine and the models it
exchanges with callers.

Key Components:
- config: Engine options (interval, withdrawal rate, warning thresholds)
- protocols: Protocol interfaces for pluggable tax, withdrawal and warning policies
- result: Financial state snapshots and simulation/comparison results
- engine: The per-period state transition and the run/compare entry points
"""

from .config import SimulationOptions
from .protocols import TaxPolicy, WarningScanner, WithdrawalPolicy
from .result import (
    ComparisonMetrics,
    ComparisonResult,
    EnhancedSimulationResult,
    FinancialState,
    ParameterPeriod,
    SimulationResult,
    TransitionPoint,
)

__all__ = [
    "SimulationOptions",
    "TaxPolicy",
    "WithdrawalPolicy",
    "WarningScanner",
    "FinancialState",
    "SimulationResult",
    "EnhancedSimulationResult",
    "TransitionPoint",
    "ParameterPeriod",
    "ComparisonMetrics",
    "ComparisonResult",
]
