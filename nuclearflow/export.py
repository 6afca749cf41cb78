"""
Audit trail exports for a shipment's custody events.

Three renderings of the same event list:
  export_json  - structured document (dict) with every chain field
  export_csv   - one quoted row per event under a fixed header
  audit_report - plain-text report ending with the chain verdict

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import csv
import io
import json

from nuclearflow import clock as _clock
from nuclearflow.chain import verify_chain_integrity
from nuclearflow.events import CustodyEvent
from nuclearflow.formatting import format_event_type, format_timestamp

CSV_HEADERS = (
    "Event ID",
    "Shipment ID",
    "Event Type",
    "Timestamp",
    "Actor ID",
    "Actor Name",
    "Location Name",
    "Transaction Hash",
    "Data Hash",
    "Verified",
)


def _field(obj, name):
    """Attribute of an actor/location object or key of a dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def export_json(shipment_id, events, clock=None):
    """
    Audit trail as a JSON-serializable dict.

    Returns
    -------
    dict
        {"shipmentId", "exportDate", "eventCount", "chainValid", "events"}.
    """
    coerced = [CustodyEvent.coerce(e) for e in events or []]
    return {
        "shipmentId": shipment_id,
        "exportDate": _clock.isoformat(_clock.now(clock)),
        "eventCount": len(coerced),
        "chainValid": verify_chain_integrity(coerced).is_valid,
        "events": [e.to_dict() for e in coerced],
    }


def export_json_text(shipment_id, events, clock=None):
    """export_json() rendered as indented JSON text."""
    return json.dumps(export_json(shipment_id, events, clock=clock), indent=2)


def export_csv(shipment_id, events):
    """Audit trail as CSV text: header row plus one fully quoted row per event."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for event in (CustodyEvent.coerce(e) for e in events or []):
        writer.writerow([
            event.id,
            event.shipment_id or shipment_id,
            event.event_type,
            event.timestamp_iso(),
            _field(event.actor, "id"),
            _field(event.actor, "name"),
            _field(event.location, "name"),
            event.transaction_hash,
            event.data_hash,
            "Yes" if event.verified else "No",
        ])
    return buf.getvalue()


def audit_report(shipment_id, events, include_hashes=True,
                 include_metadata=True, clock=None):
    """
    Plain-text audit trail report.

    Parameters
    ----------
    shipment_id : str
    events : list of CustodyEvent or dict
    include_hashes : bool
        Print data and transaction hashes per event.
    include_metadata : bool
        Print non-empty metadata per event.
    clock : callable, optional
        Source of the report generation time.

    Returns
    -------
    str
    """
    coerced = [CustodyEvent.coerce(e) for e in events or []]
    integrity = verify_chain_integrity(coerced)

    lines = [
        "CUSTODY AUDIT TRAIL REPORT",
        "==========================",
        "",
        "Shipment ID: {}".format(shipment_id),
        "Report Generated: {}".format(format_timestamp(_clock.now(clock))),
        "Total Events: {}".format(len(coerced)),
        "",
    ]

    for i, event in enumerate(coerced, start=1):
        lines.append("{}. {}".format(i, format_event_type(event.event_type).upper()))
        lines.append("   Time: {}".format(format_timestamp(event.timestamp)))
        lines.append("   Actor: {} ({})".format(
            _field(event.actor, "name"), _field(event.actor, "kind")
            or _field(event.actor, "type")))
        lines.append("   Location: {}".format(_field(event.location, "name")))
        if include_hashes:
            lines.append("   Hash: {}".format(event.data_hash))
            lines.append("   Transaction: {}".format(event.transaction_hash))
        if include_metadata and event.metadata:
            lines.append("   Metadata: {}".format(
                json.dumps(event.metadata, sort_keys=True, default=str)))
        lines.append("   Verified: {}".format("Yes" if event.verified else "No"))
        lines.append("")

    lines.append("Chain Integrity: {}".format(
        "VALID" if integrity.is_valid else "COMPROMISED"))
    if not integrity.is_valid:
        lines.append(integrity.message)
    return "\n".join(lines) + "\n"
