"""
In-memory custody ledger: an append-only event store with hash linking.

The ledger simulates the on-chain recorder behind the traceability pages.
Recording an event links it to the shipment's last link hash (or to the
shipment's genesis hash), assigns the next block number and a simulated
transaction hash, and stores it. Nothing is persisted; a ledger lives as
long as the service instance that owns it.

Typed recorders (record_dispatch, record_customs_check, ...) build the
actor/location/metadata for the common custody steps the same way every
time, so events of one kind always hash the same shape.

Clock, entropy and id generation are injectable for deterministic tests.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
import threading
import uuid
from collections import Counter, OrderedDict
from datetime import datetime

from nuclearflow import clock as _clock
from nuclearflow.chain import (
    event_data_hash,
    link_hash,
    verify_chain_integrity,
    verify_shipment_chain,
)
from nuclearflow.events import (
    EVENT_TYPES,
    CustodyEvent,
    EventActor,
)
from nuclearflow.hashing import chain_hash, genesis_hash, merkle_root, transaction_hash

log = logging.getLogger(__name__)

PLATFORM_LOCATION = {"name": "NuclearFlow Platform", "type": "facility"}
IN_TRANSIT_LOCATION = {"name": "In Transit", "type": "vehicle"}


class EventVerificationResult:
    """Verification of one recorded event: content hash and chain link."""

    def __init__(self, event_id, hash_valid, chain_valid, verified_at):
        self.event_id = event_id
        self.hash_valid = hash_valid
        self.chain_valid = chain_valid
        self.verified_at = verified_at

    @property
    def is_valid(self):
        return self.hash_valid and self.chain_valid

    @property
    def message(self):
        if self.is_valid:
            return "Event verified successfully"
        problems = []
        if not self.hash_valid:
            problems.append("data hash mismatch")
        if not self.chain_valid:
            problems.append("broken chain link")
        return "Event verification failed: " + ", ".join(problems)

    def to_dict(self):
        return {
            "eventId": self.event_id,
            "isValid": self.is_valid,
            "hashValid": self.hash_valid,
            "chainValid": self.chain_valid,
            "verifiedAt": _clock.isoformat(self.verified_at),
            "message": self.message,
        }


class CustodyLedger:
    """
    Append-only store of custody events, chained per shipment.

    Parameters
    ----------
    clock : callable, optional
        Returns the current datetime; used for default event timestamps
        and verification times.
    random_bytes : callable, optional
        Entropy source for transaction hashes (see transaction_hash()).
    id_factory : callable, optional
        Returns a fresh event id. Defaults to uuid4 strings.
    """

    def __init__(self, clock=None, random_bytes=None, id_factory=None):
        self._clock = clock
        self._random_bytes = random_bytes
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._lock = threading.Lock()
        self._events = OrderedDict()        # event id -> CustodyEvent
        self._by_shipment = {}              # shipment id -> [event id, ...]
        self._block_number = 0

    def __len__(self):
        with self._lock:
            return len(self._events)

    @property
    def clock(self):
        """The injected clock, or None for the system clock."""
        return self._clock

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_event(self, shipment_id, event_type, actor, location,
                     metadata=None, timestamp=None):
        """
        Link and store a new custody event.

        Parameters
        ----------
        shipment_id : str
            Shipment the event belongs to. Must be non-empty.
        event_type : str
            One of EVENT_TYPES.
        actor : EventActor or dict
        location : EventLocation or dict
        metadata : dict, optional
        timestamp : datetime or str, optional
            Defaults to the ledger clock.

        Returns
        -------
        CustodyEvent
            The stored event, with hashes, block number and transaction
            hash filled in.

        Raises
        ------
        ValueError
            If shipment_id is empty, event_type is unknown or timestamp
            cannot be parsed.
        """
        if not shipment_id or not isinstance(shipment_id, str):
            raise ValueError("shipment_id is required")
        if event_type not in EVENT_TYPES:
            raise ValueError("Unknown event type '{}'".format(event_type))
        if timestamp is None:
            timestamp = _clock.now(self._clock)
        elif _clock.to_datetime(timestamp) is None:
            raise ValueError("Invalid timestamp '{}'".format(timestamp))

        with self._lock:
            chain_ids = self._by_shipment.get(shipment_id, [])
            if chain_ids:
                previous = link_hash(self._events[chain_ids[-1]])
            else:
                previous = genesis_hash(shipment_id)

            event = CustodyEvent(
                id=self._id_factory(),
                shipment_id=shipment_id,
                event_type=event_type,
                timestamp=timestamp,
                actor=actor,
                location=location,
                metadata=dict(metadata or {}),
            )
            if event.id in self._events:
                raise ValueError("Duplicate event id '{}'".format(event.id))

            data_hash = event_data_hash(event)
            self._block_number += 1
            event.data_hash = data_hash
            event.previous_hash = previous
            event.chain_hash = chain_hash(previous, data_hash)
            event.transaction_hash = transaction_hash(self._random_bytes)
            event.block_number = self._block_number
            event.verified = True

            self._events[event.id] = event
            self._by_shipment.setdefault(shipment_id, []).append(event.id)

        log.info("Recorded %s for shipment %s (block %d)",
                 event_type, shipment_id, event.block_number)
        return event

    def record_shipment_created(self, shipment_id, shipment, actor):
        """Record creation with the shipment's manifest as metadata."""
        keys = ("shipment_number", "batch_number", "isotope", "origin",
                "destination", "carrier", "initial_activity")
        return self.record_event(
            shipment_id, "shipment_created", actor, PLATFORM_LOCATION,
            metadata={k: shipment.get(k) for k in keys},
        )

    def record_dispatch(self, shipment_id, facility_id, handler, condition):
        """Record dispatch from a facility with the package condition."""
        return self.record_event(
            shipment_id, "dispatch", handler,
            {"name": facility_id, "type": "facility"},
            metadata={"condition": dict(condition), "facility_id": facility_id},
        )

    def record_customs_check(self, shipment_id, checkpoint_id, officer, result):
        """Record a customs decision: cleared when approved, else on hold."""
        event_type = "customs_cleared" if result.get("approved") \
            else "customs_hold"
        return self.record_event(
            shipment_id, event_type, officer,
            {"name": checkpoint_id, "type": "customs"},
            metadata={"result": dict(result), "checkpoint_id": checkpoint_id},
        )

    def record_temperature_reading(self, shipment_id, sensor_id, temperature,
                                   threshold, location=None):
        """
        Record a sensor reading; out-of-range readings become alerts.

        threshold is {"min": float, "max": float, "unit": str}.
        """
        compliant = threshold["min"] <= temperature <= threshold["max"]
        actor = EventActor(
            id=sensor_id,
            kind="iot_sensor",
            name="Temperature Sensor {}".format(sensor_id),
            device_id=sensor_id,
        )
        return self.record_event(
            shipment_id,
            "temperature_reading" if compliant else "temperature_alert",
            actor,
            location or IN_TRANSIT_LOCATION,
            metadata={
                "sensor_id": sensor_id,
                "temperature": temperature,
                "threshold": dict(threshold),
                "unit": threshold.get("unit", "celsius"),
                "is_compliant": compliant,
            },
        )

    def record_location_update(self, shipment_id, location, vehicle_id=None):
        """Record a GPS/location update from the carrier system."""
        actor = EventActor(id=vehicle_id or "system", kind="system",
                           name="Location Tracker")
        return self.record_event(
            shipment_id, "location_update", actor, location,
            metadata={"vehicle_id": vehicle_id},
        )

    def record_delivery(self, shipment_id, recipient, details, location=None):
        """Record handover to the receiving organisation."""
        return self.record_event(
            shipment_id, "delivery", recipient,
            location or {"name": details.get("recipient_organization"),
                         "type": "destination"},
            metadata={k: v.isoformat() if isinstance(v, datetime) else v
                      for k, v in details.items()},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def shipment_events(self, shipment_id):
        """Events of one shipment in chain order (empty if unknown)."""
        with self._lock:
            ids = self._by_shipment.get(shipment_id, [])
            return [self._events[i] for i in ids]

    def shipment_ids(self):
        with self._lock:
            return list(self._by_shipment)

    def get_event(self, event_id):
        """Event by id, or None."""
        with self._lock:
            return self._events.get(event_id)

    def events(self):
        """Snapshot of every stored event in recording order."""
        with self._lock:
            return list(self._events.values())

    def find_by_transaction(self, tx_hash):
        """Event carrying `tx_hash` as its transaction reference, or None."""
        for event in self.events():
            if event.transaction_hash == tx_hash:
                return event
        return None

    def query(self, shipment_id=None, event_type=None, actor_id=None,
              start=None, end=None):
        """Filter events; every criterion is optional and they combine."""
        types = {event_type} if isinstance(event_type, str) else \
            set(event_type or ())
        t0 = _clock.to_datetime(start) if start is not None else None
        t1 = _clock.to_datetime(end) if end is not None else None

        results = []
        for event in self.events():
            if shipment_id is not None and event.shipment_id != shipment_id:
                continue
            if types and event.event_type not in types:
                continue
            if actor_id is not None and getattr(event.actor, "id", None) != actor_id:
                continue
            if t0 is not None and event.timestamp < t0:
                continue
            if t1 is not None and event.timestamp > t1:
                continue
            results.append(event)
        return results

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_shipment(self, shipment_id):
        """Verify a shipment's whole chain including its genesis link."""
        return verify_shipment_chain(
            shipment_id, self.shipment_events(shipment_id), clock=self._clock)

    def verify_event(self, event_id):
        """
        Verify one event's content hash and its link to its predecessor.

        Returns
        -------
        EventVerificationResult or None
            None when the event id is unknown.
        """
        event = self.get_event(event_id)
        if event is None:
            return None

        hash_valid = event.data_hash == event_data_hash(event)
        chain = self.shipment_events(event.shipment_id)
        index = chain.index(event)
        if index == 0:
            chain_valid = event.previous_hash == genesis_hash(event.shipment_id)
        else:
            chain_valid = event.previous_hash == link_hash(chain[index - 1])

        return EventVerificationResult(
            event_id, hash_valid, chain_valid, _clock.now(self._clock))

    def stats(self):
        """
        Aggregate ledger statistics.

        Returns
        -------
        dict
            totalEvents, totalShipments, eventsByType,
            averageEventsPerShipment, chainIntegrityPercentage,
            lastBlockNumber, merkleRoot.
        """
        with self._lock:
            events = list(self._events.values())
            chains = [[self._events[i] for i in ids]
                      for ids in self._by_shipment.values()]
            last_block = self._block_number

        shipments = len(chains)
        valid = sum(1 for chain in chains
                    if verify_chain_integrity(chain).is_valid)
        by_type = Counter(e.event_type for e in events)
        return {
            "totalEvents": len(events),
            "totalShipments": shipments,
            "eventsByType": dict(by_type),
            "averageEventsPerShipment":
                len(events) / shipments if shipments else 0.0,
            "chainIntegrityPercentage":
                valid / shipments * 100.0 if shipments else 100.0,
            "lastBlockNumber": last_block,
            "merkleRoot": merkle_root([e.data_hash for e in events]),
        }


def system_actor(name="NuclearFlow"):
    """Actor used for events recorded by the platform itself."""
    return EventActor(id="system", kind="system", name=name)
