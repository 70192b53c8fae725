"""
Simulation service.

Turns request payloads into parameter models, runs the projection engine and
returns JSON-ready dictionaries for the HTTP layer.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from finsim.models.parameters import SimulationConfiguration, UserParameters
from finsim.models.simulation.config import SimulationOptions
from finsim.models.simulation.engine import SimulationEngine
from finsim.models.tax import get_tax_config
from finsim.models.transitions import TRANSITION_TEMPLATES
from finsim.models.validation import get_error_messages, validate_user_parameters

logger = logging.getLogger(__name__)


class SimulationService:
    """Service for running household projections from request payloads."""

    def __init__(self, options: Optional[SimulationOptions] = None) -> None:
        """Initialize the service with the engine options to use."""
        self.logger = logging.getLogger(__name__)
        self.engine = SimulationEngine(options=options)

    @staticmethod
    def parse_configuration(payload: Dict[str, Any]) -> SimulationConfiguration:
        """
        Build a configuration from a payload.

        A payload with ``base_parameters`` is a full configuration; anything
        else is treated as bare parameters with no transitions.

        Raises:
            ValidationError: If the payload does not describe valid parameters
        """
        if "base_parameters" in payload:
            return SimulationConfiguration.model_validate(payload)
        return SimulationConfiguration(base_parameters=UserParameters.model_validate(payload))

    def run_simulation(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run a projection.

        Args:
            payload: Configuration or bare parameters

        Returns:
            Simulation result as a JSON-ready dictionary

        Raises:
            ValidationError: If the payload is malformed
            Exception: If the simulation fails
        """
        try:
            config = self.parse_configuration(payload)
            self.logger.info(
                f"Starting simulation from {config.base_parameters.start_date} "
                f"with {len(config.transitions)} transitions"
            )
            if config.transitions:
                result = self.engine.run_simulation_with_transitions(config)
            else:
                result = self.engine.run_simulation(config.base_parameters)
            self.logger.info(f"Completed simulation with {len(result.states)} states")
            return result.model_dump(mode="json")

        except ValidationError as e:
            self.logger.warning(f"Rejected simulation payload: {e.error_count()} errors")
            raise
        except Exception as e:
            self.logger.error(f"Simulation failed: {str(e)}")
            raise

    def run_comparison(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Run a comparison of the configuration with and without its transitions."""
        try:
            config = self.parse_configuration(payload)
            self.logger.info(
                f"Starting comparison with {len(config.transitions)} transitions"
            )
            result = self.engine.run_comparison_simulation(config)
            return result.model_dump(mode="json")

        except ValidationError as e:
            self.logger.warning(f"Rejected comparison payload: {e.error_count()} errors")
            raise
        except Exception as e:
            self.logger.error(f"Comparison failed: {str(e)}")
            raise

    @staticmethod
    def validate_parameters(payload: Union[UserParameters, Dict[str, Any]]) -> Dict[str, Any]:
        """Business-rule validation of raw parameters."""
        results = validate_user_parameters(payload)
        return {
            "is_valid": not results,
            "errors": [result.model_dump() for result in results],
            "messages": get_error_messages(results),
        }

    @staticmethod
    def tax_config(tax_year: Optional[str] = None) -> Dict[str, Any]:
        return get_tax_config(tax_year)

    @staticmethod
    def transition_templates() -> List[Dict[str, Any]]:
        return [template.model_dump() for template in TRANSITION_TEMPLATES]
