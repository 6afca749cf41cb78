"""
Reference tables and fixed defaults for NuclearFlow calculations.

Half-lives are in hours and follow standard nuclear medicine references
(NNDC / IAEA Live Chart). The first five entries are load-bearing: shipment
records and quote comparisons were produced with exactly these values.

All tables are read-only mappings built once at import time.

IMPORTANT: No unicode characters allowed in this file (Windows charmap constraint).
"""

import math
from types import MappingProxyType

# ----------------------------------------------------------------------
# Isotope half-lives (hours)
# ----------------------------------------------------------------------

ISOTOPE_HALF_LIVES = MappingProxyType({
    "Tc-99m": 6.0,          # Technetium-99m: 6.01 h
    "F-18": 1.83,           # Fluorine-18: 109.8 min
    "I-131": 192.0,         # Iodine-131: 8.02 d
    "Lu-177": 159.4,        # Lutetium-177: 6.64 d
    "Ga-68": 1.13,          # Gallium-68: 67.7 min
    "I-123": 13.2,          # Iodine-123: 13.2 h
    "Y-90": 64.0,           # Yttrium-90: 64.0 h
    "Sm-153": 46.5,         # Samarium-153: 46.5 h
    "Ra-223": 11.43 * 24,   # Radium-223: 11.43 d
    "In-111": 2.8 * 24,     # Indium-111: 2.8 d
})

# Case-insensitive index onto the canonical identifiers above
_ISOTOPE_KEYS = MappingProxyType(
    {name.lower(): name for name in ISOTOPE_HALF_LIVES}
)

# ln(2), used for decay constants and the inverse decay solution
LN2 = math.log(2.0)

HOURS_PER_DAY = 24.0
MINUTES_PER_HOUR = 60.0
SECONDS_PER_HOUR = 3600.0

# Fallback when a delivery time string cannot be parsed
DEFAULT_DELIVERY_HOURS = 24.0

# Returned by formatted_half_life() for isotopes missing from the table
UNKNOWN_HALF_LIFE = "Unknown"

# Curve sampling bounds (same clamp as the curve endpoints)
MIN_CURVE_POINTS = 10
MAX_CURVE_POINTS = 500

# ----------------------------------------------------------------------
# Traceability
# ----------------------------------------------------------------------

# Prefix mixed into a shipment id to derive its genesis hash
GENESIS_PREFIX = "genesis_"

# Length of a SHA-256 hex digest
DIGEST_LENGTH = 64

# Prefix of simulated on-chain transaction references
TX_PREFIX = "0x"

# Bytes of entropy behind each simulated transaction hash
TX_ENTROPY_BYTES = 32

# Default display length for truncate_hash()
DEFAULT_TRUNCATE_LENGTH = 16


def canonical_isotope(isotope_id):
    """
    Resolve an isotope identifier to its canonical table key.

    Matching ignores surrounding whitespace and letter case, so
    " tc-99M " resolves to "Tc-99m".

    Returns
    -------
    str or None
        Canonical identifier, or None if the isotope is not tabulated.
    """
    if not isinstance(isotope_id, str):
        return None
    return _ISOTOPE_KEYS.get(isotope_id.strip().lower())


def half_life(isotope_id):
    """Return the half-life in hours for a known isotope, else None."""
    key = canonical_isotope(isotope_id)
    if key is None:
        return None
    return ISOTOPE_HALF_LIVES[key]


def known_isotopes():
    """Return the tabulated isotope identifiers in table order."""
    return list(ISOTOPE_HALF_LIVES)
