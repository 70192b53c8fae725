"""
Pytest configuration and shared fixtures for the household finance simulator tests.
"""

import os
from datetime import date
from unittest.mock import patch

import pytest

from finsim import create_app
from finsim.config import Settings
from finsim.models.parameters import SimulationConfiguration, UserParameters
from finsim.models.simulation.engine import SimulationEngine


@pytest.fixture
def base_params():
    """Single household with a $400k loan at 6% and $3,000 monthly payments.

    Net income is $7,000 a month against $2,000 of living expenses, so every
    scheduled payment after the first period is covered.
    """
    return UserParameters(
        annual_salary=120000,
        income_tax_rate=0.30,
        monthly_living_expenses=2000,
        loan_principal=400000,
        loan_interest_rate=0.06,
        loan_payment_amount=3000,
        retirement_age=65,
        current_age=35,
        simulation_years=5,
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def base_config(base_params):
    """Configuration with no transitions."""
    return SimulationConfiguration(base_parameters=base_params)


@pytest.fixture
def engine():
    """Engine with default (monthly) options."""
    return SimulationEngine()


@pytest.fixture
def app():
    """Flask application configured for testing."""
    with patch.dict(
        os.environ, {"APP_ENV": "testing", "SECRET_KEY": "test-secret"}, clear=True
    ):
        settings = Settings(_env_file=None)
    return create_app(settings)


@pytest.fixture
def client(app):
    """Test client for the Flask application."""
    return app.test_client()
