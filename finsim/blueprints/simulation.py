"""
Simulation blueprint.

API endpoints for running household projections, comparing a configuration
with and without its transitions, validating parameters, and serving the
tax configuration and transition templates used by clients.
"""

from typing import Any

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from finsim.services.simulation_service import SimulationService

simulation_bp = Blueprint("simulation", __name__, url_prefix="/api")


def _service() -> SimulationService:
    return SimulationService(options=current_app.config.get("SIMULATION_OPTIONS"))


def _json_body() -> Any:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


def _validation_error(e: ValidationError) -> Any:
    return (
        jsonify(
            {
                "error": "Invalid parameters",
                "details": e.errors(include_url=False, include_context=False),
            }
        ),
        400,
    )


@simulation_bp.route("/simulations", methods=["POST"])
def run_simulation() -> Any:
    """Run a projection.

    The body is either a configuration (``base_parameters`` plus
    ``transitions``) or bare parameters.

    Returns:
        JSON simulation result
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400

    try:
        return jsonify(_service().run_simulation(data)), 200
    except ValidationError as e:
        return _validation_error(e)
    except Exception as e:
        current_app.logger.error(f"Error running simulation: {str(e)}")
        return jsonify({"error": "Internal server error"}), 500


@simulation_bp.route("/simulations/compare", methods=["POST"])
def compare_simulations() -> Any:
    """Compare a configuration with and without its transitions.

    Returns:
        JSON comparison result
    """
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400

    try:
        return jsonify(_service().run_comparison(data)), 200
    except ValidationError as e:
        return _validation_error(e)
    except Exception as e:
        current_app.logger.error(f"Error running comparison: {str(e)}")
        return jsonify({"error": "Internal server error"}), 500


@simulation_bp.route("/parameters/validate", methods=["POST"])
def validate_parameters() -> Any:
    """Report business-rule errors for raw parameters."""
    data = _json_body()
    if data is None:
        return jsonify({"error": "Request body must be a JSON object"}), 400
    return jsonify(SimulationService.validate_parameters(data)), 200


@simulation_bp.route("/tax-config", methods=["GET"])
def tax_config() -> Any:
    """Serve the bracket table for a tax year (``?year=2024-25``)."""
    year = request.args.get("year")
    try:
        response = jsonify(SimulationService.tax_config(year))
    except KeyError:
        return jsonify({"error": f"Tax year {year} not found"}), 404
    response.headers["Cache-Control"] = "public, max-age=3600"
    return response


@simulation_bp.route("/transition-templates", methods=["GET"])
def transition_templates() -> Any:
    """List the predefined transition templates."""
    return jsonify({"templates": SimulationService.transition_templates()})
