"""
Isotope Decay Service for NuclearFlow.

Implements the NuclearFlowService interface for radioactive decay
calculations used by shipment views and procurement quote comparisons.
All endpoints live under /api/decay/*.

Endpoints:
    GET  /api/decay/isotopes   - half-life table with formatted half-lives
    POST /api/decay/activity   - current activity (elapsed hours or timestamps)
    POST /api/decay/curve      - sampled decay curve
    POST /api/decay/threshold  - hours until activity reaches a threshold
    POST /api/decay/arrival    - expected activity at arrival for quotes
    POST /api/decay/elapsed    - elapsed hours between two timestamps

Calculation fallbacks (unknown isotope, unparseable delivery time) are not
errors; validate() only rejects payloads that are structurally unusable.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import math

from flask import jsonify, request

from nuclearflow.constants import ISOTOPE_HALF_LIVES, canonical_isotope
from nuclearflow.decay import (
    activity_at_arrival,
    current_activity,
    decay_curve,
    decay_percentage,
    elapsed_hours,
    estimate_time_to_threshold,
    formatted_half_life,
    parse_delivery_time,
    remaining_percentage,
)
from nuclearflow.services import NuclearFlowService


def _number(config, key, default=None, required=False):
    """Read a numeric field; raise ValueError with a user-facing message."""
    value = config.get(key, default)
    if value is None:
        if required:
            raise ValueError("{} is required".format(key))
        return None
    if isinstance(value, bool):
        raise ValueError("{} must be a number".format(key))
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("{} must be a number".format(key))
    if not math.isfinite(number):
        raise ValueError("{} must be finite".format(key))
    return number


def _isotope(config):
    isotope = config.get("isotope")
    if not isinstance(isotope, str) or not isotope.strip():
        raise ValueError("isotope is required")
    return isotope.strip()


class DecayService(NuclearFlowService):
    """
    Radioactive decay service.

    Computes remaining activity for tabulated medical isotopes, decay
    curves, threshold times and expected activity at arrival.
    """

    id = "decay"
    name = "Isotope Decay"
    description = "Remaining activity, decay curves and arrival estimates"
    category = "logistics"
    route = "/decay"

    def __init__(self, clock=None):
        """Optional clock (zero-arg callable -> datetime) for 'now' defaults."""
        self.clock = clock

    def validate(self, config):
        """
        Validate an activity request payload.

        Either `elapsed_hours` or `start` (with optional `end`) gives the
        decay time. Missing both means zero elapsed time.
        """
        if not config or not isinstance(config, dict):
            raise ValueError("Request body must be JSON")

        initial = _number(config, "initial_activity", required=True)
        if initial < 0:
            raise ValueError("initial_activity must be non-negative")

        hours = _number(config, "elapsed_hours")
        if hours is None and config.get("start") is not None:
            hours = elapsed_hours(config["start"], config.get("end"),
                                  clock=self.clock)

        return {
            "initial_activity": initial,
            "isotope": _isotope(config),
            "elapsed_hours": max(0.0, hours) if hours is not None else 0.0,
        }

    def compute(self, config):
        """Current activity plus derived percentages."""
        initial = config["initial_activity"]
        isotope = config["isotope"]
        activity = current_activity(initial, isotope, config["elapsed_hours"])
        return {
            "isotope": canonical_isotope(isotope) or isotope,
            "known_isotope": canonical_isotope(isotope) is not None,
            "half_life": formatted_half_life(isotope),
            "initial_activity": initial,
            "elapsed_hours": round(config["elapsed_hours"], 6),
            "current_activity": round(activity, 4),
            "decay_pct": round(decay_percentage(initial, activity), 2),
            "remaining_pct": round(remaining_percentage(initial, activity), 2),
        }

    def compute_curve(self, config):
        """Decay curve for an isotope (or explicit half-life) over max_hours."""
        if not config or not isinstance(config, dict):
            raise ValueError("Request body must be JSON")
        initial = _number(config, "initial_activity", required=True)
        max_hours = _number(config, "max_hours", default=48.0)
        num_points = _number(config, "num_points", default=100)
        half_life = _number(config, "half_life_hours")
        source = half_life if half_life is not None else _isotope(config)

        curve = decay_curve(initial, source, max_hours, int(num_points))
        return {
            "half_life_hours": curve["half_life_hours"],
            "hours": [round(t, 6) for t in curve["hours"]],
            "activity": [round(a, 4) for a in curve["activity"]],
            "remaining_pct": [round(p, 4) for p in curve["remaining_pct"]],
        }

    def compute_threshold(self, config):
        """Hours until the activity decays to threshold_activity."""
        if not config or not isinstance(config, dict):
            raise ValueError("Request body must be JSON")
        initial = _number(config, "initial_activity", required=True)
        threshold = _number(config, "threshold_activity", required=True)
        isotope = _isotope(config)
        hours = estimate_time_to_threshold(initial, isotope, threshold)
        return {
            "isotope": isotope,
            "known_isotope": canonical_isotope(isotope) is not None,
            "hours_to_threshold": round(hours, 4),
        }

    def compute_arrival(self, config):
        """
        Expected activity at arrival for one or more supplier quotes.

        Quotes are ranked by arrival activity, highest first.
        """
        if not config or not isinstance(config, dict):
            raise ValueError("Request body must be JSON")
        initial = _number(config, "initial_activity", required=True)
        isotope = _isotope(config)

        quotes = config.get("quotes")
        if quotes is None:
            quotes = [{"delivery_time": config.get("delivery_time")}]
        if not isinstance(quotes, list) or not quotes:
            raise ValueError("quotes must be a non-empty list")

        results = []
        for i, quote in enumerate(quotes):
            if not isinstance(quote, dict):
                raise ValueError("quotes[{}] must be an object".format(i))
            text = quote.get("delivery_time")
            activity = activity_at_arrival(initial, isotope, text)
            entry = dict(quote)
            entry["delivery_hours"] = parse_delivery_time(text)
            entry["activity_at_arrival"] = round(activity, 4)
            entry["remaining_pct"] = round(
                remaining_percentage(initial, activity), 2)
            results.append(entry)

        results.sort(key=lambda q: q["activity_at_arrival"], reverse=True)
        return {"isotope": isotope, "initial_activity": initial,
                "quotes": results}

    def register_routes(self, bp):
        """Mount all decay-specific API endpoints."""
        service = self

        def _run(method):
            data = request.get_json(silent=True)
            try:
                return jsonify(method(data))
            except ValueError as e:
                return jsonify({"error": str(e)}), 400

        @bp.route("/decay/isotopes", methods=["GET"])
        def decay_isotopes():
            return jsonify({
                "isotopes": [
                    {
                        "id": name,
                        "half_life_hours": hours,
                        "half_life": formatted_half_life(name),
                    }
                    for name, hours in ISOTOPE_HALF_LIVES.items()
                ]
            })

        @bp.route("/decay/activity", methods=["POST"])
        def decay_activity():
            data = request.get_json(silent=True)
            try:
                config = service.validate(data)
            except ValueError as e:
                return jsonify({"error": str(e)}), 400
            return jsonify(service.compute(config))

        @bp.route("/decay/curve", methods=["POST"])
        def decay_curve_endpoint():
            return _run(service.compute_curve)

        @bp.route("/decay/threshold", methods=["POST"])
        def decay_threshold():
            return _run(service.compute_threshold)

        @bp.route("/decay/arrival", methods=["POST"])
        def decay_arrival():
            return _run(service.compute_arrival)

        @bp.route("/decay/elapsed", methods=["POST"])
        def decay_elapsed():
            data = request.get_json(silent=True)
            if not isinstance(data, dict) or "start" not in data:
                return jsonify({"error": "start is required"}), 400
            hours = elapsed_hours(data["start"], data.get("end"),
                                  clock=service.clock)
            return jsonify({"elapsed_hours": round(hours, 6)})
