"""
Display helpers for custody events: labels, colours, short hashes.

Pure presentation functions; unknown inputs get a generic label or the
default colour rather than an error.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

from types import MappingProxyType

from nuclearflow import clock as _clock
from nuclearflow.constants import DEFAULT_TRUNCATE_LENGTH

ELLIPSIS = "..."

DEFAULT_EVENT_COLOR = "gray"

EVENT_LABELS = MappingProxyType({
    "shipment_created": "Shipment Created",
    "dispatch": "Dispatched",
    "pickup": "Picked Up",
    "in_transit": "In Transit",
    "checkpoint": "Checkpoint",
    "customs_check": "Customs Check",
    "customs_cleared": "Customs Cleared",
    "customs_hold": "Customs Hold",
    "temperature_reading": "Temperature Reading",
    "temperature_alert": "Temperature Alert",
    "humidity_reading": "Humidity Reading",
    "radiation_check": "Radiation Check",
    "location_update": "Location Update",
    "handover": "Handover",
    "delivery": "Delivered",
    "receipt_confirmation": "Receipt Confirmed",
    "document_generated": "Document Generated",
    "document_signed": "Document Signed",
    "compliance_verified": "Compliance Verified",
    "alert_triggered": "Alert Triggered",
    "status_change": "Status Changed",
})

EVENT_COLORS = MappingProxyType({
    "shipment_created": "purple",
    "dispatch": "blue",
    "pickup": "blue",
    "in_transit": "blue",
    "checkpoint": "green",
    "customs_check": "amber",
    "customs_cleared": "green",
    "customs_hold": "red",
    "temperature_reading": "cyan",
    "temperature_alert": "red",
    "humidity_reading": "cyan",
    "radiation_check": "purple",
    "location_update": "green",
    "handover": "blue",
    "delivery": "green",
    "receipt_confirmation": "green",
    "document_generated": "purple",
    "document_signed": "green",
    "compliance_verified": "green",
    "alert_triggered": "red",
    "status_change": "amber",
})


def format_event_type(event_type):
    """
    Human title for an event type.

    Known types use the fixed label table ("dispatch" -> "Dispatched");
    unknown snake_case types are title-cased ("late_pickup" -> "Late Pickup").
    """
    if not isinstance(event_type, str):
        return "" if event_type is None else str(event_type)
    if event_type in EVENT_LABELS:
        return EVENT_LABELS[event_type]
    return " ".join(word.capitalize() for word in event_type.split("_") if word)


def get_event_color(event_type):
    """Semantic colour name for an event type ("gray" when unknown)."""
    if not isinstance(event_type, str):
        return DEFAULT_EVENT_COLOR
    return EVENT_COLORS.get(event_type, DEFAULT_EVENT_COLOR)


def truncate_hash(value, length=DEFAULT_TRUNCATE_LENGTH):
    """
    Shorten a digest to roughly `length` characters for display.

    The result keeps a prefix and a suffix around "..."; values no longer
    than `length` come back unchanged.
    """
    if not isinstance(value, str):
        value = "" if value is None else str(value)
    if len(value) <= length:
        return value

    room = max(length - len(ELLIPSIS), 2)
    head = room // 2
    tail = room - head
    return "{}{}{}".format(value[:head], ELLIPSIS, value[-tail:])


def format_timestamp(value):
    """
    Readable UTC timestamp, e.g. "Jan 15, 2024, 10:30:00 UTC".

    Unparseable values are returned as str(value).
    """
    parsed = _clock.to_datetime(value)
    if parsed is None:
        return "" if value is None else str(value)
    return "{} {}, {}, {} UTC".format(
        parsed.strftime("%b"), parsed.day, parsed.year,
        parsed.strftime("%H:%M:%S"))
