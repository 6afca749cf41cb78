"""
Custody event records for the traceability chain.

A custody event says who (actor) did what (event_type) to which shipment,
where (location) and when (timestamp), plus free-form metadata. Once
linked into a chain it also carries its content digest (data_hash), the
link hash of its predecessor (previous_hash) and its own link hash
(chain_hash).

Events round-trip through plain dicts. from_dict() accepts both the
snake_case keys used here and the camelCase keys of the JSON API
(shipmentId, eventType, previousHash, ...); to_dict() emits camelCase so
exported audit trails match the wire format.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

from nuclearflow import clock as _clock

EVENT_TYPES = (
    "shipment_created",
    "dispatch",
    "pickup",
    "in_transit",
    "checkpoint",
    "customs_check",
    "customs_cleared",
    "customs_hold",
    "temperature_reading",
    "temperature_alert",
    "humidity_reading",
    "radiation_check",
    "location_update",
    "handover",
    "delivery",
    "receipt_confirmation",
    "document_generated",
    "document_signed",
    "compliance_verified",
    "alert_triggered",
    "status_change",
)

ACTOR_TYPES = ("user", "system", "iot_sensor", "api")

LOCATION_TYPES = (
    "facility", "checkpoint", "vehicle", "port", "customs",
    "destination", "unknown",
)


def _pick(data, *keys, default=None):
    """First present key among `keys` (snake_case / camelCase aliases)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _plain(value):
    """Serialize nested actor/location objects, leave raw values alone."""
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


class EventActor:
    """
    Who performed a custody event.

    Parameters
    ----------
    id : str
        Actor identifier (user id, sensor id, service name).
    kind : str
        One of ACTOR_TYPES. Serialized under the "type" key.
    name : str
        Display name.
    role, organization, device_id : str, optional
        Extra descriptive fields, omitted from to_dict() when unset.
    """

    def __init__(self, id, kind, name, role=None, organization=None,
                 device_id=None):
        self.id = id
        self.kind = kind
        self.name = name
        self.role = role
        self.organization = organization
        self.device_id = device_id

    @classmethod
    def from_value(cls, value):
        """Build from a dict; pass through actors, None and raw values."""
        if not isinstance(value, dict):
            return value
        return cls(
            id=value.get("id"),
            kind=_pick(value, "type", "kind"),
            name=value.get("name"),
            role=value.get("role"),
            organization=value.get("organization"),
            device_id=_pick(value, "deviceId", "device_id"),
        )

    def to_dict(self):
        result = {"id": self.id, "type": self.kind, "name": self.name}
        if self.role is not None:
            result["role"] = self.role
        if self.organization is not None:
            result["organization"] = self.organization
        if self.device_id is not None:
            result["deviceId"] = self.device_id
        return result

    def __eq__(self, other):
        return isinstance(other, EventActor) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return "EventActor(id={!r}, kind={!r}, name={!r})".format(
            self.id, self.kind, self.name)


class EventLocation:
    """
    Where a custody event happened.

    Parameters
    ----------
    name : str
        Facility, checkpoint or vehicle name.
    kind : str
        One of LOCATION_TYPES. Serialized under the "type" key.
    address, country, country_code : str, optional
    coordinates : dict, optional
        {"latitude": float, "longitude": float}.
    """

    def __init__(self, name, kind="unknown", address=None, country=None,
                 country_code=None, coordinates=None):
        self.name = name
        self.kind = kind
        self.address = address
        self.country = country
        self.country_code = country_code
        self.coordinates = coordinates

    @classmethod
    def from_value(cls, value):
        """Build from a dict; pass through locations, None and raw values."""
        if not isinstance(value, dict):
            return value
        return cls(
            name=value.get("name"),
            kind=_pick(value, "type", "kind", default="unknown"),
            address=value.get("address"),
            country=value.get("country"),
            country_code=_pick(value, "countryCode", "country_code"),
            coordinates=value.get("coordinates"),
        )

    def to_dict(self):
        result = {"name": self.name, "type": self.kind}
        if self.address is not None:
            result["address"] = self.address
        if self.country is not None:
            result["country"] = self.country
        if self.country_code is not None:
            result["countryCode"] = self.country_code
        if self.coordinates is not None:
            result["coordinates"] = self.coordinates
        return result

    def __eq__(self, other):
        return (isinstance(other, EventLocation)
                and self.to_dict() == other.to_dict())

    def __repr__(self):
        return "EventLocation(name={!r}, kind={!r})".format(self.name, self.kind)


class CustodyEvent:
    """
    One custody event in a shipment's chain.

    Parameters
    ----------
    id : str
        Event identifier, reported in broken-link lists.
    shipment_id : str
        Shipment this event belongs to.
    event_type : str
        One of EVENT_TYPES.
    timestamp : datetime or str
        When the event happened. Parseable values are stored as aware
        UTC datetimes; anything else is kept as given.
    actor : EventActor or dict
    location : EventLocation or dict
    metadata : dict, optional
    data_hash, previous_hash, chain_hash : str, optional
        Filled in when the event is linked into a chain.
    transaction_hash : str, optional
    block_number : int, optional
    verified : bool
    """

    def __init__(self, id, shipment_id, event_type, timestamp, actor,
                 location, metadata=None, data_hash=None, previous_hash=None,
                 chain_hash=None, transaction_hash=None, block_number=None,
                 verified=False):
        self.id = id
        self.shipment_id = shipment_id
        self.event_type = event_type
        parsed = _clock.to_datetime(timestamp)
        self.timestamp = parsed if parsed is not None else timestamp
        self.actor = EventActor.from_value(actor)
        self.location = EventLocation.from_value(location)
        self.metadata = metadata if metadata is not None else {}
        self.data_hash = data_hash
        self.previous_hash = previous_hash
        self.chain_hash = chain_hash
        self.transaction_hash = transaction_hash
        self.block_number = block_number
        self.verified = verified

    @classmethod
    def from_dict(cls, data):
        """Build an event from an API/export dict (camelCase or snake_case)."""
        return cls(
            id=data.get("id"),
            shipment_id=_pick(data, "shipmentId", "shipment_id"),
            event_type=_pick(data, "eventType", "event_type"),
            timestamp=data.get("timestamp"),
            actor=data.get("actor"),
            location=data.get("location"),
            metadata=data.get("metadata"),
            data_hash=_pick(data, "dataHash", "data_hash"),
            previous_hash=_pick(data, "previousHash", "previous_hash"),
            chain_hash=_pick(data, "chainHash", "chain_hash"),
            transaction_hash=_pick(data, "transactionHash", "transaction_hash"),
            block_number=_pick(data, "blockNumber", "block_number"),
            verified=bool(data.get("verified", False)),
        )

    @classmethod
    def coerce(cls, value):
        """Accept a CustodyEvent or a dict; wrap anything else as opaque data."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        return cls(id=None, shipment_id=None, event_type=None, timestamp=None,
                   actor=None, location=None, metadata={"raw": value})

    def timestamp_iso(self):
        """ISO-8601 timestamp, or the raw value if it never parsed."""
        return _clock.isoformat(self.timestamp) or self.timestamp

    def copy(self, **changes):
        """Return a new event with selected fields replaced."""
        fields = {
            "id": self.id,
            "shipment_id": self.shipment_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "location": self.location,
            "metadata": dict(self.metadata) if isinstance(self.metadata, dict)
            else self.metadata,
            "data_hash": self.data_hash,
            "previous_hash": self.previous_hash,
            "chain_hash": self.chain_hash,
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "verified": self.verified,
        }
        fields.update(changes)
        return CustodyEvent(**fields)

    def to_dict(self):
        """Serialize with camelCase keys (wire and export format)."""
        return {
            "id": self.id,
            "shipmentId": self.shipment_id,
            "eventType": self.event_type,
            "timestamp": self.timestamp_iso(),
            "actor": _plain(self.actor),
            "location": _plain(self.location),
            "metadata": self.metadata,
            "dataHash": self.data_hash,
            "previousHash": self.previous_hash,
            "chainHash": self.chain_hash,
            "transactionHash": self.transaction_hash,
            "blockNumber": self.block_number,
            "verified": self.verified,
        }

    def __repr__(self):
        return "CustodyEvent(id={!r}, shipment_id={!r}, event_type={!r})".format(
            self.id, self.shipment_id, self.event_type)
