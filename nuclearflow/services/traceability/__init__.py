"""
Custody Traceability Service for NuclearFlow.

Implements the NuclearFlowService interface for the tamper-evident
custody chain. The service owns one CustodyLedger; recorded events are
hash-linked per shipment and can be verified, queried and exported.
All endpoints live under /api/traceability/*.

Stateless endpoints (work on caller-supplied data):
    POST /api/traceability/hash           - digest of any JSON value
    POST /api/traceability/verify         - check data against a claimed digest
    POST /api/traceability/verify-chain   - verify an arbitrary event list
    POST /api/traceability/merkle-root    - Merkle root of a digest list
    GET  /api/traceability/event-types    - event types, labels and colours

Ledger endpoints:
    POST /api/traceability/events                     - record an event
    GET  /api/traceability/shipments/<id>/events      - shipment chain
    POST /api/traceability/shipments/<id>/verify      - verify a shipment
    GET  /api/traceability/shipments/<id>/export      - json | csv | txt
    GET  /api/traceability/events/<id>                - one event
    POST /api/traceability/events/<id>/verify         - verify one event
    GET  /api/traceability/stats                      - ledger statistics

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging

from flask import Response, jsonify, request

from nuclearflow.chain import verify_chain_integrity
from nuclearflow.events import ACTOR_TYPES, EVENT_TYPES, LOCATION_TYPES
from nuclearflow.export import audit_report, export_csv, export_json
from nuclearflow.formatting import (
    format_event_type,
    get_event_color,
    truncate_hash,
)
from nuclearflow.hashing import hash_data, merkle_root, verify_hash
from nuclearflow.ledger import CustodyLedger
from nuclearflow.services import NuclearFlowService

log = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv", "txt")


def _field(config, *keys):
    """First present key among camelCase / snake_case aliases."""
    for key in keys:
        if key in config:
            return config[key]
    return None


class TraceabilityService(NuclearFlowService):
    """
    Custody chain service backed by an in-memory CustodyLedger.

    Parameters
    ----------
    ledger : CustodyLedger, optional
        Ledger to record into. A fresh ledger is created by default, so
        every app instance has its own store.
    """

    id = "traceability"
    name = "Custody Traceability"
    description = "Hash-linked custody events with integrity verification"
    category = "compliance"
    route = "/traceability"

    def __init__(self, ledger=None):
        self.ledger = ledger if ledger is not None else CustodyLedger()

    def validate(self, config):
        """
        Validate a record-event payload.

        Accepts camelCase (shipmentId, eventType) or snake_case keys.

        Raises
        ------
        ValueError
            Missing shipment id, unknown event, actor or location type,
            or actor/location that are not objects.
        """
        if not config or not isinstance(config, dict):
            raise ValueError("Request body must be JSON")

        shipment_id = _field(config, "shipmentId", "shipment_id")
        if not isinstance(shipment_id, str) or not shipment_id.strip():
            raise ValueError("shipmentId is required")

        event_type = _field(config, "eventType", "event_type")
        if event_type not in EVENT_TYPES:
            raise ValueError("eventType must be one of: {}".format(
                ", ".join(EVENT_TYPES)))

        actor = config.get("actor")
        if not isinstance(actor, dict) or not actor.get("id"):
            raise ValueError("actor must be an object with an id")
        if actor.get("type") is not None and actor["type"] not in ACTOR_TYPES:
            raise ValueError("actor.type must be one of: {}".format(
                ", ".join(ACTOR_TYPES)))

        location = config.get("location") or {"name": "Unknown"}
        if not isinstance(location, dict):
            raise ValueError("location must be an object")
        if (location.get("type") is not None
                and location["type"] not in LOCATION_TYPES):
            raise ValueError("location.type must be one of: {}".format(
                ", ".join(LOCATION_TYPES)))

        metadata = config.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValueError("metadata must be an object")

        return {
            "shipment_id": shipment_id.strip(),
            "event_type": event_type,
            "actor": actor,
            "location": location,
            "metadata": metadata,
            "timestamp": config.get("timestamp"),
        }

    def compute(self, config):
        """Record the validated event and return its wire form."""
        event = self.ledger.record_event(
            config["shipment_id"],
            config["event_type"],
            config["actor"],
            config["location"],
            metadata=config["metadata"],
            timestamp=config["timestamp"],
        )
        return event.to_dict()

    def register_routes(self, bp):
        """Mount all traceability-specific API endpoints."""
        service = self
        ledger = self.ledger

        # --------------------------------------------------------------
        # Stateless hashing
        # --------------------------------------------------------------

        @bp.route("/traceability/hash", methods=["POST"])
        def traceability_hash():
            data = request.get_json(silent=True)
            if not isinstance(data, dict) or "data" not in data:
                return jsonify({"error": "data is required"}), 400
            digest = hash_data(data["data"])
            return jsonify({"hash": digest, "short": truncate_hash(digest)})

        @bp.route("/traceability/verify", methods=["POST"])
        def traceability_verify():
            data = request.get_json(silent=True)
            if not isinstance(data, dict) or "data" not in data:
                return jsonify({"error": "data is required"}), 400
            claimed = _field(data, "expectedHash", "hash")
            if claimed is None:
                return jsonify({"error": "expectedHash is required"}), 400
            return jsonify({
                "isValid": verify_hash(data["data"], claimed),
                "actualHash": hash_data(data["data"]),
            })

        @bp.route("/traceability/verify-chain", methods=["POST"])
        def traceability_verify_chain():
            data = request.get_json(silent=True)
            events = data.get("events") if isinstance(data, dict) else None
            if not isinstance(events, list):
                return jsonify({"error": "events must be a list"}), 400
            return jsonify(verify_chain_integrity(events).to_dict())

        @bp.route("/traceability/merkle-root", methods=["POST"])
        def traceability_merkle_root():
            data = request.get_json(silent=True)
            hashes = data.get("hashes") if isinstance(data, dict) else None
            if not isinstance(hashes, list):
                return jsonify({"error": "hashes must be a list"}), 400
            return jsonify({"merkleRoot": merkle_root(hashes),
                            "count": len(hashes)})

        @bp.route("/traceability/event-types", methods=["GET"])
        def traceability_event_types():
            return jsonify({
                "eventTypes": [
                    {"id": t, "label": format_event_type(t),
                     "color": get_event_color(t)}
                    for t in EVENT_TYPES
                ]
            })

        # --------------------------------------------------------------
        # Ledger
        # --------------------------------------------------------------

        @bp.route("/traceability/events", methods=["POST"])
        def traceability_record():
            data = request.get_json(silent=True)
            try:
                config = service.validate(data)
                result = service.compute(config)
            except ValueError as e:
                return jsonify({"error": str(e)}), 400
            return jsonify(result), 201

        @bp.route("/traceability/events/<event_id>", methods=["GET"])
        def traceability_event(event_id):
            event = ledger.get_event(event_id)
            if event is None:
                return jsonify({"error": "Event not found"}), 404
            return jsonify(event.to_dict())

        @bp.route("/traceability/events/<event_id>/verify", methods=["POST"])
        def traceability_verify_event(event_id):
            result = ledger.verify_event(event_id)
            if result is None:
                return jsonify({"error": "Event not found"}), 404
            return jsonify(result.to_dict())

        @bp.route("/traceability/shipments/<shipment_id>/events",
                  methods=["GET"])
        def traceability_shipment_events(shipment_id):
            events = ledger.shipment_events(shipment_id)
            if not events:
                return jsonify({"error": "Shipment not found"}), 404
            return jsonify({
                "shipmentId": shipment_id,
                "eventCount": len(events),
                "events": [e.to_dict() for e in events],
            })

        @bp.route("/traceability/shipments/<shipment_id>/verify",
                  methods=["POST"])
        def traceability_verify_shipment(shipment_id):
            if not ledger.shipment_events(shipment_id):
                return jsonify({"error": "Shipment not found"}), 404
            return jsonify(ledger.verify_shipment(shipment_id).to_dict())

        @bp.route("/traceability/shipments/<shipment_id>/export",
                  methods=["GET"])
        def traceability_export(shipment_id):
            fmt = request.args.get("format", "json").lower()
            if fmt not in EXPORT_FORMATS:
                return jsonify({"error": "format must be one of: {}".format(
                    ", ".join(EXPORT_FORMATS))}), 400
            events = ledger.shipment_events(shipment_id)
            if not events:
                return jsonify({"error": "Shipment not found"}), 404

            log.info("Exporting %d events for shipment %s as %s",
                     len(events), shipment_id, fmt)
            if fmt == "json":
                return jsonify(export_json(shipment_id, events,
                                           clock=ledger.clock))
            if fmt == "csv":
                return Response(export_csv(shipment_id, events),
                                mimetype="text/csv")
            return Response(audit_report(shipment_id, events,
                                         clock=ledger.clock),
                            mimetype="text/plain")

        @bp.route("/traceability/stats", methods=["GET"])
        def traceability_stats():
            return jsonify(ledger.stats())
