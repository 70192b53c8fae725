"""Household finance simulator Flask application factory."""

import logging
from typing import Optional

from flask import Flask

from finsim.config import Settings, get_global_settings


def create_app(settings: Optional[Settings] = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        settings: Settings to use instead of the global environment-derived ones

    Returns:
        Flask: Configured Flask application instance
    """
    app = Flask(__name__)

    # Configuration from Pydantic Settings
    settings = settings or get_global_settings()
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["ENV"] = settings.app_env
    app.config["DEBUG"] = settings.app_env == "development"
    app.config["TESTING"] = settings.app_env == "testing"
    app.config["SIMULATION_OPTIONS"] = settings.simulation_options()

    logging.basicConfig(level=settings.log_level)
    app.logger.setLevel(settings.log_level)

    # Register blueprints
    from finsim.blueprints.health import health_bp
    from finsim.blueprints.simulation import simulation_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(simulation_bp)

    return app
