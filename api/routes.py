"""
Flask API routes for NuclearFlow.

Shared endpoints:
  GET  /api/services             - registered services
  GET  /api/services/<id>        - metadata of one service
  GET  /api/health               - liveness probe
  GET  /api/constants            - isotope table and fixed defaults

Service-owned endpoints (/api/decay/*, /api/traceability/*) are mounted
by each registered service via ServiceRegistry.mount().
"""

from flask import Blueprint, jsonify

from nuclearflow import constants


def create_api_blueprint(registry):
    """
    Build the /api blueprint for a populated service registry.

    Parameters
    ----------
    registry : ServiceRegistry
        Registry whose services contribute their own routes.

    Returns
    -------
    flask.Blueprint
    """
    api = Blueprint("api", __name__, url_prefix="/api")

    @api.route("/services", methods=["GET"])
    def list_services():
        """Return metadata for every registered service."""
        return jsonify({"services": registry.list_all()})

    @api.route("/services/<service_id>", methods=["GET"])
    def get_service(service_id):
        """Return a single service's metadata by id."""
        service = registry.get(service_id)
        if service is None:
            return jsonify({"error": "Service not found"}), 404
        return jsonify(service.metadata())

    @api.route("/health", methods=["GET"])
    def health():
        return jsonify({
            "status": "ok",
            "services": [s.id for s in registry],
        })

    @api.route("/constants", methods=["GET"])
    def get_constants():
        """Return the isotope table and the fallback defaults in use."""
        return jsonify({
            "isotope_half_lives_hours": dict(constants.ISOTOPE_HALF_LIVES),
            "default_delivery_hours": constants.DEFAULT_DELIVERY_HOURS,
            "curve_points": {
                "min": constants.MIN_CURVE_POINTS,
                "max": constants.MAX_CURVE_POINTS,
            },
            "genesis_prefix": constants.GENESIS_PREFIX,
            "digest_length": constants.DIGEST_LENGTH,
        })

    registry.mount(api)

    return api
