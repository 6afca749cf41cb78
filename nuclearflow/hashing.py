"""
Content hashing primitives for the custody traceability chain.

    hash_data(v)          = SHA256(canonical_json(v))
    chain_hash(prev, h)   = SHA256(prev + h)
    genesis_hash(id)      = SHA256("genesis_" + id)
    merkle_root([h...])   = pairwise chain_hash reduction
    transaction_hash()    = "0x" + SHA256(32 random bytes)

Canonical JSON: mapping keys are stringified and sorted, tuples become
lists, sets become sorted lists, datetimes become ISO-8601 strings, objects
exposing to_dict() are hashed as that dict, bytes become {"__bytes__": hex}
and anything else is hashed as str(value). A datetime hashes the same as
its ISO string; both name the same instant. Two values that differ only in
key insertion order hash identically.

Canonicalisation never raises: a reference cycle is replaced by
CYCLE_MARKER and containers nested deeper than MAX_DEPTH by DEPTH_MARKER,
which keeps both this module and json.dumps clear of the recursion limit.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import hashlib
import json
import logging
import math
import secrets
from datetime import date, datetime

from nuclearflow.constants import (
    DIGEST_LENGTH,
    GENESIS_PREFIX,
    TX_ENTROPY_BYTES,
    TX_PREFIX,
)

log = logging.getLogger(__name__)

CYCLE_MARKER = "<cycle>"
DEPTH_MARKER = "<depth-limit>"
BYTES_TAG = "__bytes__"

# containers below this depth are replaced by DEPTH_MARKER
MAX_DEPTH = 200

_HEX_DIGITS = frozenset("0123456789abcdef")


def _sha256_hex(text):
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


def canonicalize(value, _path=None):
    """
    Convert `value` into a JSON-compatible structure with a stable shape.

    Parameters
    ----------
    value : object
        Arbitrary nested structure.

    Returns
    -------
    object
        None, bool, int, float, str, list or dict (with str keys).
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value

    if isinstance(value, float):
        # JSON has no NaN/Infinity; keep them distinct from real numbers
        if math.isfinite(value):
            return value
        return repr(value)

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, (bytes, bytearray)):
        return {BYTES_TAG: bytes(value).hex()}

    path = _path or frozenset()
    if len(path) >= MAX_DEPTH:
        log.debug("Nesting deeper than %d levels; hashing marker", MAX_DEPTH)
        return DEPTH_MARKER
    marker = id(value)
    if marker in path:
        return CYCLE_MARKER
    path = path | {marker}

    if hasattr(value, "to_dict") and callable(value.to_dict):
        try:
            as_dict = value.to_dict()
        except Exception:
            log.debug("to_dict() failed for %r; hashing str()", type(value))
            return str(value)
        return canonicalize(as_dict, path)

    if isinstance(value, dict):
        return {str(k): canonicalize(v, path) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [canonicalize(v, path) for v in value]

    if isinstance(value, (set, frozenset)):
        items = [canonicalize(v, path) for v in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True))

    return str(value)


def canonical_json(value):
    """Deterministic compact JSON encoding of `value` (sorted keys)."""
    return json.dumps(
        canonicalize(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    )


def hash_data(value):
    """
    SHA-256 digest of the canonical JSON encoding of `value`.

    Returns
    -------
    str
        64 lowercase hex characters.
    """
    return _sha256_hex(canonical_json(value))


def chain_hash(previous_hash, event_hash):
    """Link hash combining the previous link with the current event digest."""
    return _sha256_hex("{}{}".format(previous_hash or "", event_hash or ""))


def genesis_hash(shipment_id):
    """Deterministic seed digest used as the first event's previous hash."""
    return _sha256_hex("{}{}".format(GENESIS_PREFIX, shipment_id))


def is_digest(value):
    """True if `value` looks like a 64-character lowercase hex digest."""
    return (isinstance(value, str)
            and len(value) == DIGEST_LENGTH
            and set(value) <= _HEX_DIGITS)


def verify_hash(data, claimed_hash):
    """
    Re-hash `data` and compare with `claimed_hash`.

    Any mismatch, including a claim that is not a string, gives False.
    Comparison is constant-time.
    """
    if not isinstance(claimed_hash, str):
        log.debug("Hash claim is not a string: %r", type(claimed_hash))
        return False
    actual = hash_data(data)
    return secrets.compare_digest(actual.encode("ascii"),
                                  claimed_hash.encode("utf-8", "surrogatepass"))


def merkle_root(hashes):
    """
    Merkle root of an ordered list of digests.

    Adjacent digests are paired and combined with chain_hash(); an odd
    digest at the end of a level is promoted unchanged to the next level.

    Returns
    -------
    str
        "" for an empty list, the digest itself for a single element,
        otherwise the 64-character root.
    """
    level = [str(h) for h in hashes or []]
    if not level:
        return ""

    while len(level) > 1:
        paired = [chain_hash(level[i], level[i + 1])
                  for i in range(0, len(level) - 1, 2)]
        if len(level) % 2 == 1:
            paired.append(level[-1])
        level = paired

    return level[0]


def transaction_hash(random_bytes=None):
    """
    Simulated on-chain transaction reference: "0x" + 64 hex characters.

    Parameters
    ----------
    random_bytes : callable, optional
        Entropy source taking a byte count, e.g. os.urandom. Defaults to
        secrets.token_bytes.
    """
    source = random_bytes or secrets.token_bytes
    entropy = source(TX_ENTROPY_BYTES)
    return TX_PREFIX + hashlib.sha256(bytes(entropy)).hexdigest()
