"""
NuclearFlow - Nuclear Medicine Logistics Core
Flask application factory.

Serves the REST API for isotope decay calculations and custody
traceability via registered NuclearFlowService instances.

Usage:
    python app.py              # Development server on http://localhost:5000
    flask run                  # Same, via Flask CLI
"""

__version__ = "0.1.0"

import logging

from flask import Flask, jsonify

from nuclearflow.services import ServiceRegistry
from nuclearflow.services.decay import DecayService
from nuclearflow.services.traceability import TraceabilityService


def create_registry():
    """Build and populate the service registry."""
    registry = ServiceRegistry()
    registry.register(DecayService())
    registry.register(TraceabilityService())
    return registry


def create_app(config=None):
    """
    Application factory for the NuclearFlow Flask app.

    Parameters
    ----------
    config : dict, optional
        Overrides applied to app.config (e.g. {"TESTING": True}).
    """
    app = Flask(__name__)
    if config:
        app.config.update(config)

    # Build service registry
    registry = create_registry()
    app.extensions["nuclearflow.registry"] = registry

    # Create and register API blueprint (shared + service-owned routes)
    from api.routes import create_api_blueprint
    api = create_api_blueprint(registry)
    app.register_blueprint(api)

    @app.route("/")
    def root():
        return jsonify({
            "name": "NuclearFlow",
            "version": __version__,
            "services": registry.list_all(),
        })

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    app.run(debug=True, host="127.0.0.1", port=5000)
