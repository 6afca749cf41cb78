"""
Delivery time parsing for supplier quotes.

Quotes carry free-text delivery estimates such as "24 hours", "48 hrs",
"12h", "2 days", "3d" or "1 day 6 hours". Every number/unit pair found in
the text is converted to hours and summed. Text with no recognisable pair
falls back to DEFAULT_DELIVERY_HOURS instead of failing, because a quote
with a sloppy estimate is still a valid quote.

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
import re

from nuclearflow.constants import (
    DEFAULT_DELIVERY_HOURS,
    HOURS_PER_DAY,
    MINUTES_PER_HOUR,
)

log = logging.getLogger(__name__)

# Longer unit spellings first so "days" is not read as "d" + "ays"
DURATION_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*"
    r"(days?|d|hours?|hrs?|h|minutes?|mins?)\b"
)

UNIT_HOURS = {
    "day": HOURS_PER_DAY,
    "days": HOURS_PER_DAY,
    "d": HOURS_PER_DAY,
    "hour": 1.0,
    "hours": 1.0,
    "hr": 1.0,
    "hrs": 1.0,
    "h": 1.0,
    "minute": 1.0 / MINUTES_PER_HOUR,
    "minutes": 1.0 / MINUTES_PER_HOUR,
    "min": 1.0 / MINUTES_PER_HOUR,
    "mins": 1.0 / MINUTES_PER_HOUR,
}


def parse_delivery_time(text):
    """
    Convert a delivery time string to hours.

    Parameters
    ----------
    text : str
        Free-text delivery estimate.

    Returns
    -------
    float
        Total hours, or DEFAULT_DELIVERY_HOURS (24) when nothing in the
        text can be parsed.
    """
    if not isinstance(text, str):
        log.warning("Delivery time is not text: %r. Using %s hours.",
                    text, DEFAULT_DELIVERY_HOURS)
        return DEFAULT_DELIVERY_HOURS

    matches = DURATION_PATTERN.findall(text.lower())
    if not matches:
        log.warning("Could not parse delivery time: %r. Using %s hours.",
                    text, DEFAULT_DELIVERY_HOURS)
        return DEFAULT_DELIVERY_HOURS

    return sum(float(amount) * UNIT_HOURS[unit] for amount, unit in matches)
