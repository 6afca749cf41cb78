"""
Hash-chain linking and integrity verification for custody events.

Each event's content (shipment, type, time, actor, location, metadata) is
hashed with hash_data(). The event's link hash combines that digest with
the link hash of its predecessor:

    data_hash[i]  = hash_data(content[i])
    link_hash[i]  = chain_hash(previous_hash[i], data_hash[i])
    previous_hash[i] = link_hash[i-1]          (i > 0)
    previous_hash[0] = genesis_hash(shipment_id)

Link hashes are always recomputed from the event's actual content, never
read back from stored fields, so editing any earlier event breaks the link
of the event that follows it.

Verification never raises; every outcome is a result object.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging

from nuclearflow import clock as _clock
from nuclearflow.events import CustodyEvent
from nuclearflow.hashing import chain_hash, genesis_hash, hash_data

log = logging.getLogger(__name__)

MSG_NO_EVENTS = "No events to verify"
MSG_VERIFIED = "Chain integrity verified"


def event_content(event):
    """
    The hashed portion of an event, as a plain dict.

    Chain bookkeeping fields (hashes, block number, transaction hash,
    verified flag) are excluded so linking does not change the content
    digest.
    """
    event = CustodyEvent.coerce(event)
    actor = event.actor.to_dict() if hasattr(event.actor, "to_dict") \
        else event.actor
    location = event.location.to_dict() if hasattr(event.location, "to_dict") \
        else event.location
    return {
        "shipment_id": event.shipment_id,
        "event_type": event.event_type,
        "timestamp": event.timestamp_iso(),
        "actor": actor,
        "location": location,
        "metadata": event.metadata,
    }


def event_data_hash(event):
    """Content digest of an event, recomputed from its fields."""
    return hash_data(event_content(event))


def link_hash(event):
    """Link hash of an event: chain_hash(previous_hash, content digest)."""
    event = CustodyEvent.coerce(event)
    return chain_hash(event.previous_hash, event_data_hash(event))


def link_events(events, shipment_id=None):
    """
    Return copies of `events` linked into a valid chain.

    Parameters
    ----------
    events : list of CustodyEvent or dict
        Events in chain order.
    shipment_id : str, optional
        Seed for the genesis hash. Defaults to the first event's
        shipment id.

    Returns
    -------
    list of CustodyEvent
        New events with data_hash, previous_hash and chain_hash set.
    """
    coerced = [CustodyEvent.coerce(e) for e in events or []]
    if not coerced:
        return []

    seed = shipment_id if shipment_id is not None else coerced[0].shipment_id
    previous = genesis_hash(seed)
    linked = []
    for event in coerced:
        data_hash = event_data_hash(event)
        link = chain_hash(previous, data_hash)
        linked.append(event.copy(
            data_hash=data_hash,
            previous_hash=previous,
            chain_hash=link,
        ))
        previous = link
    return linked


class ChainIntegrityResult:
    """
    Outcome of verify_chain_integrity().

    Parameters
    ----------
    is_valid : bool
        True only when there are no broken links and no invalid hashes.
    broken_links : list of str
        Ids of events whose previous_hash does not match the recomputed
        link hash of their predecessor.
    invalid_hashes : list of str
        Ids of events whose stored data_hash or chain_hash disagrees with
        the value recomputed from their content.
    message : str
        Human-readable summary.
    """

    def __init__(self, is_valid, broken_links, invalid_hashes, message):
        self.is_valid = is_valid
        self.broken_links = broken_links
        self.invalid_hashes = invalid_hashes
        self.message = message

    def to_dict(self):
        return {
            "isValid": self.is_valid,
            "brokenLinks": list(self.broken_links),
            "invalidHashes": list(self.invalid_hashes),
            "message": self.message,
        }

    def __repr__(self):
        return "ChainIntegrityResult(is_valid={!r}, broken_links={!r})".format(
            self.is_valid, self.broken_links)


def _stored_hashes_valid(event):
    """Check stored data_hash / chain_hash against recomputation, if present."""
    if event.data_hash is not None and event.data_hash != event_data_hash(event):
        return False
    if event.chain_hash is not None and event.chain_hash != link_hash(event):
        return False
    return True


def verify_chain_integrity(events):
    """
    Verify that an ordered list of events forms an unbroken hash chain.

    Parameters
    ----------
    events : list of CustodyEvent or dict
        Events in chain order.

    Returns
    -------
    ChainIntegrityResult
        is_valid is False for an empty list.
    """
    coerced = [CustodyEvent.coerce(e) for e in events or []]
    if not coerced:
        return ChainIntegrityResult(False, [], [], MSG_NO_EVENTS)

    broken_links = []
    invalid_hashes = []

    for event in coerced:
        if not _stored_hashes_valid(event):
            invalid_hashes.append(event.id)

    for prev, event in zip(coerced, coerced[1:]):
        if event.previous_hash != link_hash(prev):
            broken_links.append(event.id)

    is_valid = not broken_links and not invalid_hashes
    if is_valid:
        message = MSG_VERIFIED
    else:
        message = ("Chain integrity compromised: {} broken links, "
                   "{} invalid hashes").format(len(broken_links),
                                               len(invalid_hashes))
        log.warning("%s (broken=%s, invalid=%s)", message,
                    broken_links, invalid_hashes)

    return ChainIntegrityResult(is_valid, broken_links, invalid_hashes, message)


class ChainVerificationResult:
    """
    Whole-shipment verification: chain integrity plus the genesis check.

    genesis_valid is True when the first event links against
    genesis_hash(shipment_id).
    """

    def __init__(self, shipment_id, integrity, genesis_valid, event_count,
                 first_event, last_event, verified_at):
        self.shipment_id = shipment_id
        self.integrity = integrity
        self.genesis_valid = genesis_valid
        self.event_count = event_count
        self.first_event = first_event
        self.last_event = last_event
        self.verified_at = verified_at

    @property
    def is_valid(self):
        return self.integrity.is_valid and self.genesis_valid

    def to_dict(self):
        result = {
            "shipmentId": self.shipment_id,
            "isValid": self.is_valid,
            "genesisValid": self.genesis_valid,
            "eventCount": self.event_count,
            "firstEvent": _clock.isoformat(self.first_event),
            "lastEvent": _clock.isoformat(self.last_event),
            "verifiedAt": _clock.isoformat(self.verified_at),
        }
        result.update(self.integrity.to_dict())
        result["isValid"] = self.is_valid
        return result


def verify_shipment_chain(shipment_id, events, clock=None):
    """
    Verify a shipment's full chain, including its genesis link.

    Parameters
    ----------
    shipment_id : str
        Shipment whose genesis hash seeds the chain.
    events : list of CustodyEvent or dict
        The shipment's events in chain order.
    clock : callable, optional
        Source of the verification timestamp.

    Returns
    -------
    ChainVerificationResult
    """
    coerced = [CustodyEvent.coerce(e) for e in events or []]
    integrity = verify_chain_integrity(coerced)
    genesis_valid = bool(coerced) and \
        coerced[0].previous_hash == genesis_hash(shipment_id)
    if coerced and not genesis_valid:
        log.warning("Shipment %s: first event does not link to genesis",
                    shipment_id)
    return ChainVerificationResult(
        shipment_id=shipment_id,
        integrity=integrity,
        genesis_valid=genesis_valid,
        event_count=len(coerced),
        first_event=coerced[0].timestamp if coerced else None,
        last_event=coerced[-1].timestamp if coerced else None,
        verified_at=_clock.now(clock),
    )
