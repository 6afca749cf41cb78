"""
Time helpers shared by the decay calculator, the ledger and the exporters.

Every function that needs "now" takes an optional clock: a zero-argument
callable returning a timezone-aware datetime. Production code uses
utcnow(); tests pass a fixed clock.

Timestamps are accepted as datetime objects, ISO-8601 strings (a trailing
"Z" is allowed on every supported Python version) or POSIX seconds. Naive
datetimes are interpreted as UTC.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
import math
from datetime import datetime, timezone

log = logging.getLogger(__name__)


def utcnow():
    """System clock: current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def fixed_clock(moment):
    """Return a clock that always reports `moment` (any accepted timestamp)."""
    value = to_datetime(moment)
    if value is None:
        raise ValueError("fixed_clock needs a valid timestamp")
    return lambda: value


def now(clock=None):
    """Current time from `clock`, falling back to the system clock."""
    return to_datetime((clock or utcnow)())


def to_datetime(value):
    """
    Convert a timestamp to an aware UTC datetime.

    Parameters
    ----------
    value : datetime, str, int or float
        Datetime object, ISO-8601 string or POSIX seconds.

    Returns
    -------
    datetime or None
        Aware datetime in UTC, or None if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except (OverflowError, ValueError):
            # offset pushes the instant outside datetime.min..max
            log.debug("Timestamp out of range in UTC: %r", value)
            return None

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            log.debug("POSIX timestamp out of range: %r", value)
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            log.debug("Unparseable timestamp: %r", value)
            return None
        return to_datetime(parsed)

    return None


def isoformat(value):
    """ISO-8601 string for a timestamp, or None when it cannot be parsed."""
    parsed = to_datetime(value)
    if parsed is None:
        return None
    return parsed.isoformat()
