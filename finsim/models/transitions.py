"""
Parameter transitions.

A transition is a dated, sparse change to the projection parameters (a raise,
moving house, retiring). This module resolves which parameters are in effect
on a given date, partitions the projection horizon into windows of constant
parameters for reporting, summarises what a transition changed, and manages
the transition list of a configuration.

Configurations are immutable: every management operation returns a new
SimulationConfiguration.
"""

import logging
import math
import re
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from deepdiff import DeepDiff
from pydantic import BaseModel, ConfigDict, Field

from .parameters import (
    ParameterChanges,
    ParameterTransition,
    SimulationConfiguration,
    UserParameters,
)
from .periods import advance_date
from .simulation.result import ParameterPeriod
from .validation import ValidationResult

logger = logging.getLogger(__name__)

_ROOT_KEY = re.compile(r"^root\['([^']+)'\]")


class TransitionError(Exception):
    """Base exception for transition management."""


class TransitionValidationError(TransitionError, ValueError):
    """Raised when a transition fails validation."""


class TransitionNotFoundError(TransitionError, KeyError):
    """Raised when no transition has the requested id."""


def simulation_end_date(params: UserParameters) -> date:
    """First date after the projection horizon."""
    return advance_date(params.start_date, "year", params.simulation_years)


def sort_transitions(transitions: Sequence[ParameterTransition]) -> List[ParameterTransition]:
    """Chronological order; transitions on the same date keep their list order."""
    return sorted(transitions, key=lambda t: t.transition_date)


def apply_parameter_changes(params: UserParameters, changes: Any) -> UserParameters:
    """
    Apply a sparse patch to a parameter set.

    Only fields explicitly set on the patch are applied. An explicit ``None``
    is applied to fields that accept it (switching ``loans`` back to the
    legacy fields, for example) and ignored for required fields.
    """
    update: Dict[str, Any] = {}
    for name in changes.model_fields_set:
        value = getattr(changes, name)
        if value is None and UserParameters.model_fields[name].default is not None:
            continue
        update[name] = value
    if not update:
        return params
    return UserParameters.model_validate({**params.model_dump(), **update})


def resolve_parameters_for_date(
    as_of: date, config: SimulationConfiguration
) -> UserParameters:
    """Base parameters with every transition dated on or before ``as_of`` applied."""
    params = config.base_parameters
    for transition in sort_transitions(config.transitions):
        if transition.transition_date > as_of:
            break
        params = apply_parameter_changes(params, transition.parameter_changes)
    return params


def build_parameter_periods(config: SimulationConfiguration) -> List[ParameterPeriod]:
    """
    Partition the horizon into windows of constant effective parameters.

    The first window starts at the projection start. Each later window starts
    on a transition date; transitions sharing a date open a single window.
    Transitions on or after the end of the horizon open no window. The last
    window has no end date.
    """
    start = config.base_parameters.start_date
    horizon_end = simulation_end_date(config.base_parameters)
    ordered = sort_transitions(config.transitions)

    opening_id: Optional[str] = None
    boundaries: List[date] = []
    opened_by: Dict[date, str] = {}
    for transition in ordered:
        if transition.transition_date <= start:
            opening_id = transition.id
            continue
        if transition.transition_date >= horizon_end:
            break
        if transition.transition_date not in opened_by:
            boundaries.append(transition.transition_date)
        opened_by[transition.transition_date] = transition.id

    starts = [start] + boundaries
    periods = []
    for index, window_start in enumerate(starts):
        periods.append(
            ParameterPeriod(
                start_date=window_start,
                end_date=starts[index + 1] if index + 1 < len(starts) else None,
                parameters=resolve_parameters_for_date(window_start, config),
                transition_id=opened_by.get(window_start, opening_id if index == 0 else None),
            )
        )
    return periods


def _format_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def describe_parameter_changes(before: UserParameters, after: UserParameters) -> str:
    """
    Human readable summary of the differences between two parameter sets.

    Scalar fields show their old and new values; nested fields (loans,
    income sources) are listed by name.
    """
    diff = DeepDiff(before.model_dump(mode="json"), after.model_dump(mode="json"))
    if not diff:
        return "No parameter changes"

    changes: Dict[str, str] = {}
    for category in ("values_changed", "type_changes"):
        for path, detail in diff.get(category, {}).items():
            match = _ROOT_KEY.match(path)
            if not match:
                continue
            field = match.group(1)
            scalar = not any(
                isinstance(detail[key], (list, dict)) for key in ("old_value", "new_value")
            )
            if path == f"root['{field}']" and scalar:
                changes[field] = (
                    f"{field} ({_format_value(detail['old_value'])} → "
                    f"{_format_value(detail['new_value'])})"
                )
            else:
                changes.setdefault(field, field)
    for category, paths in diff.items():
        if category in ("values_changed", "type_changes"):
            continue
        for path in paths:
            match = _ROOT_KEY.match(str(path))
            if match:
                changes.setdefault(match.group(1), match.group(1))

    ordered = [changes[name] for name in UserParameters.model_fields if name in changes]
    return "Changed: " + ", ".join(ordered)


def summarize_transition(
    transition: ParameterTransition, before: UserParameters, after: UserParameters
) -> str:
    """Transition label if it has one, otherwise a description of the changes."""
    if transition.label:
        return transition.label
    return describe_parameter_changes(before, after)


def validate_transition(
    transition: ParameterTransition, config: SimulationConfiguration
) -> ValidationResult:
    """
    Check a transition against a configuration.

    Rules: at least one change; dated strictly after the start and strictly
    before the end of the horizon; no other transition on the same date;
    numeric changes finite and non-negative; required fields not cleared.
    """
    changes = transition.parameter_changes
    if not changes.model_fields_set:
        return ValidationResult.failure(
            "At least one parameter must be specified in the transition"
        )

    base = config.base_parameters
    if transition.transition_date <= base.start_date:
        return ValidationResult.failure(
            "Transition date must be after the simulation start date", "transition_date"
        )
    if transition.transition_date >= simulation_end_date(base):
        return ValidationResult.failure(
            "Transition date must be before the simulation end date", "transition_date"
        )

    for other in config.transitions:
        if other.id != transition.id and other.transition_date == transition.transition_date:
            return ValidationResult.failure(
                "A transition already exists at this date", "transition_date"
            )

    for name in sorted(changes.model_fields_set):
        value = getattr(changes, name)
        if value is None:
            if UserParameters.model_fields[name].is_required():
                return ValidationResult.failure(f'Parameter "{name}" cannot be cleared', name)
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if math.isnan(value) or math.isinf(value):
            return ValidationResult.failure(f'Parameter "{name}" must be a valid number', name)
        if value < 0:
            return ValidationResult.failure(f'Parameter "{name}" must be a positive value', name)

    return ValidationResult.success()


def _check(transition: ParameterTransition, config: SimulationConfiguration) -> None:
    result = validate_transition(transition, config)
    if not result.is_valid:
        raise TransitionValidationError(result.error)


def add_transition(
    config: SimulationConfiguration, transition: ParameterTransition
) -> SimulationConfiguration:
    """
    Return a configuration with the transition added in chronological order.

    Raises:
        TransitionValidationError: If the transition is invalid
    """
    if any(existing.id == transition.id for existing in config.transitions):
        raise TransitionValidationError(f'Transition with id "{transition.id}" already exists')
    _check(transition, config)
    logger.debug("Adding transition %s on %s", transition.id, transition.transition_date)
    return config.model_copy(
        update={"transitions": sort_transitions([*config.transitions, transition])}
    )


def update_transition(
    config: SimulationConfiguration, transition_id: str, **updates: Any
) -> SimulationConfiguration:
    """
    Return a configuration with one transition replaced by an updated copy.

    Args:
        config: Current configuration
        transition_id: Id of the transition to update
        **updates: Fields to change (transition_date, label, parameter_changes)

    Raises:
        TransitionNotFoundError: If no transition has the id
        TransitionValidationError: If the updated transition is invalid
    """
    current = next((t for t in config.transitions if t.id == transition_id), None)
    if current is None:
        raise TransitionNotFoundError(f'Transition with id "{transition_id}" not found')

    updated = ParameterTransition.model_validate(
        {**current.model_dump(), **updates, "id": current.id}
    )

    others = [t for t in config.transitions if t.id != transition_id]
    _check(updated, config.model_copy(update={"transitions": others}))
    return config.model_copy(update={"transitions": sort_transitions([*others, updated])})


def remove_transition(
    config: SimulationConfiguration, transition_id: str
) -> SimulationConfiguration:
    """Return a configuration without the transition (no-op for unknown ids)."""
    return config.model_copy(
        update={"transitions": [t for t in config.transitions if t.id != transition_id]}
    )


def get_transitions(config: SimulationConfiguration) -> List[ParameterTransition]:
    return sort_transitions(config.transitions)


class TransitionTemplate(BaseModel):
    """A predefined life event that generates parameter changes."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Template identifier")
    name: str = Field(..., description="Display name")
    description: str = Field(..., description="Description of the life event")
    category: str = Field(..., description="career, lifestyle, retirement or financial")
    generate: Callable[[UserParameters], Dict[str, Any]] = Field(
        ..., exclude=True, description="Builds the changed fields from current parameters"
    )

    def generate_changes(self, current: UserParameters) -> Any:
        return ParameterChanges(**self.generate(current))

    def create_transition(
        self, current: UserParameters, transition_date: date, transition_id: str
    ) -> ParameterTransition:
        return ParameterTransition(
            id=transition_id,
            transition_date=transition_date,
            label=self.name,
            parameter_changes=self.generate_changes(current),
        )


TRANSITION_TEMPLATES: List[TransitionTemplate] = [
    TransitionTemplate(
        id="semi-retirement",
        name="Semi-Retirement",
        description="Reduce work hours and income, lower expenses",
        category="retirement",
        generate=lambda p: {
            "annual_salary": p.annual_salary * 0.5,
            "monthly_living_expenses": p.monthly_living_expenses * 0.8,
        },
    ),
    TransitionTemplate(
        id="full-retirement",
        name="Full Retirement",
        description="Stop working, rely on investments and retirement savings",
        category="retirement",
        generate=lambda p: {
            "annual_salary": 0,
            "monthly_investment_contribution": 0,
            "monthly_living_expenses": p.monthly_living_expenses * 0.7,
        },
    ),
    TransitionTemplate(
        id="relocation-cheaper",
        name="Relocate to Cheaper Area",
        description="Move to an area with a lower cost of living",
        category="lifestyle",
        generate=lambda p: {
            "monthly_rent_or_mortgage": p.monthly_rent_or_mortgage * 0.7,
            "monthly_living_expenses": p.monthly_living_expenses * 0.85,
        },
    ),
    TransitionTemplate(
        id="career-change-higher",
        name="Career Change (Higher Income)",
        description="Switch to a higher-paying career",
        category="career",
        generate=lambda p: {"annual_salary": p.annual_salary * 1.3},
    ),
    TransitionTemplate(
        id="career-change-lower",
        name="Career Change (Lower Income)",
        description="Switch to a lower-paying but more fulfilling career",
        category="career",
        generate=lambda p: {"annual_salary": p.annual_salary * 0.7},
    ),
    TransitionTemplate(
        id="increase-savings",
        name="Increase Savings Rate",
        description="Boost investment contributions",
        category="financial",
        generate=lambda p: {
            "monthly_investment_contribution": p.monthly_investment_contribution * 1.5
        },
    ),
]


def get_template(template_id: str) -> TransitionTemplate:
    for template in TRANSITION_TEMPLATES:
        if template.id == template_id:
            return template
    raise KeyError(f"Unknown transition template: {template_id}")
