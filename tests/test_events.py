"""
Tests for custody event records and their dict round trip.
"""

from datetime import datetime, timezone

from nuclearflow.events import (
    EVENT_TYPES,
    CustodyEvent,
    EventActor,
    EventLocation,
)


WIRE_EVENT = {
    "id": "evt-1",
    "shipmentId": "SHP-1",
    "eventType": "dispatch",
    "timestamp": "2024-01-15T10:30:00Z",
    "actor": {"id": "u1", "type": "user", "name": "Alice", "role": "handler"},
    "location": {"name": "Hot Lab", "type": "facility", "countryCode": "NL"},
    "metadata": {"condition": "sealed"},
    "dataHash": "a" * 64,
    "previousHash": "b" * 64,
    "chainHash": "c" * 64,
    "transactionHash": "0x" + "d" * 64,
    "blockNumber": 7,
    "verified": True,
}


class TestEventActor:

    def test_to_dict_omits_unset(self):
        actor = EventActor(id="s1", kind="iot_sensor", name="Sensor")
        assert actor.to_dict() == {"id": "s1", "type": "iot_sensor",
                                   "name": "Sensor"}

    def test_from_value(self):
        actor = EventActor.from_value({"id": "s1", "type": "iot_sensor",
                                       "name": "Sensor", "deviceId": "D9"})
        assert actor.kind == "iot_sensor"
        assert actor.device_id == "D9"
        assert actor.to_dict()["deviceId"] == "D9"

    def test_equality(self):
        a = EventActor(id="u1", kind="user", name="Alice")
        b = EventActor.from_value({"id": "u1", "type": "user", "name": "Alice"})
        assert a == b


class TestEventLocation:

    def test_default_kind(self):
        assert EventLocation.from_value({"name": "Dock 4"}).kind == "unknown"

    def test_country_code_alias(self):
        loc = EventLocation.from_value({"name": "Port", "country_code": "BE"})
        assert loc.to_dict()["countryCode"] == "BE"


class TestCustodyEvent:

    def test_from_wire_dict(self):
        event = CustodyEvent.from_dict(WIRE_EVENT)
        assert event.shipment_id == "SHP-1"
        assert event.event_type == "dispatch"
        assert event.timestamp == datetime(2024, 1, 15, 10, 30,
                                           tzinfo=timezone.utc)
        assert event.actor.role == "handler"
        assert event.block_number == 7

    def test_snake_case_keys(self):
        event = CustodyEvent.from_dict({
            "id": "e", "shipment_id": "S", "event_type": "pickup",
            "timestamp": "2024-01-15T10:30:00Z", "previous_hash": "p",
        })
        assert event.shipment_id == "S"
        assert event.previous_hash == "p"

    def test_wire_round_trip(self):
        data = CustodyEvent.from_dict(WIRE_EVENT).to_dict()
        assert data["timestamp"] == "2024-01-15T10:30:00+00:00"
        data["timestamp"] = WIRE_EVENT["timestamp"]
        assert data == WIRE_EVENT

    def test_unparseable_timestamp_kept(self):
        event = CustodyEvent.from_dict({"id": "e", "timestamp": "soon"})
        assert event.timestamp == "soon"
        assert event.timestamp_iso() == "soon"

    def test_coerce_opaque_value(self):
        event = CustodyEvent.coerce("not an event")
        assert event.id is None
        assert event.metadata == {"raw": "not an event"}

    def test_copy(self):
        event = CustodyEvent.from_dict(WIRE_EVENT)
        changed = event.copy(metadata={"condition": "damaged"})
        assert changed.metadata == {"condition": "damaged"}
        assert event.metadata == {"condition": "sealed"}
        assert changed.data_hash == event.data_hash


class TestEventTypes:

    def test_count(self):
        assert len(EVENT_TYPES) == 21
        assert len(set(EVENT_TYPES)) == 21

    def test_lifecycle_types_present(self):
        for t in ("shipment_created", "dispatch", "customs_cleared",
                  "temperature_alert", "delivery"):
            assert t in EVENT_TYPES
