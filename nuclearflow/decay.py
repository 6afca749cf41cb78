"""
Radioactive decay calculator for medical isotopes.

Exponential decay:
    A(t) = A0 * (1/2)^(t / t_half)
    lambda = ln(2) / t_half
Inverse (time until activity reaches a threshold A_th):
    t = t_half * log2(A0 / A_th)

All times are in hours. Activities are in whatever unit the caller uses
(mCi, GBq); the formulas are unit-agnostic.

These functions feed shipment views and quote comparisons that render
directly, so none of them raise. Degenerate numbers (zero or negative
activity or half-life, inverted time ranges) map to a documented sentinel
and unknown isotopes fall back to "no decay applied".

IMPORTANT: No unicode characters allowed (Windows charmap constraint).
"""

import logging
import math

import numpy as np

from nuclearflow import clock as _clock
from nuclearflow.constants import (
    HOURS_PER_DAY,
    LN2,
    MAX_CURVE_POINTS,
    MINUTES_PER_HOUR,
    MIN_CURVE_POINTS,
    SECONDS_PER_HOUR,
    UNKNOWN_HALF_LIFE,
    half_life as lookup_half_life,
)
from nuclearflow.delivery import parse_delivery_time

log = logging.getLogger(__name__)


def _as_float(value, default=0.0):
    """Coerce to a finite float; anything else becomes `default`."""
    if isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result):
        return default
    return result


# ----------------------------------------------------------------------
# Core decay law
# ----------------------------------------------------------------------

def decay(initial_activity, half_life_hours, elapsed_hours):
    """
    Remaining activity after `elapsed_hours` of exponential decay.

    Parameters
    ----------
    initial_activity : float
        Activity at time zero.
    half_life_hours : float
        Half-life of the isotope in hours.
    elapsed_hours : float
        Time elapsed in hours. Negative values are treated as zero.

    Returns
    -------
    float
        Remaining activity in [0, initial_activity]. 0.0 when the initial
        activity or the half-life is not a positive finite number.
    """
    a0 = _as_float(initial_activity)
    t_half = _as_float(half_life_hours)
    if a0 <= 0 or t_half <= 0 or math.isinf(a0) or math.isinf(t_half):
        return 0.0

    t = _as_float(elapsed_hours)
    if t <= 0:
        return a0

    # 0.5 ** inf == 0.0, so an infinite elapsed time is fine here
    return a0 * math.pow(0.5, t / t_half)


def decay_constant(half_life_hours):
    """Decay constant lambda = ln(2) / t_half in 1/h (0.0 if degenerate)."""
    t_half = _as_float(half_life_hours)
    if t_half <= 0 or math.isinf(t_half):
        return 0.0
    return LN2 / t_half


def current_activity(initial_activity, isotope_id, elapsed_hours):
    """
    Activity of a tabulated isotope after `elapsed_hours`.

    An isotope missing from the table is not an error: the initial
    activity is returned unchanged, meaning "decay unknown".
    """
    t_half = lookup_half_life(isotope_id)
    if t_half is None:
        log.warning("Unknown isotope %r; using initial activity", isotope_id)
        return initial_activity
    return decay(initial_activity, t_half, elapsed_hours)


def activity_at_arrival(initial_activity, isotope_id, delivery_time):
    """Expected activity at arrival for a quoted delivery time string."""
    hours = parse_delivery_time(delivery_time)
    return current_activity(initial_activity, isotope_id, hours)


# ----------------------------------------------------------------------
# Time
# ----------------------------------------------------------------------

def elapsed_hours(start, end=None, clock=None):
    """
    Hours elapsed from `start` to `end`, never negative.

    Parameters
    ----------
    start : datetime, str or float
        Start timestamp (datetime, ISO-8601 string or POSIX seconds).
    end : datetime, str or float, optional
        End timestamp. Defaults to the current time from `clock`.
    clock : callable, optional
        Zero-argument callable returning the current datetime. Defaults
        to the system UTC clock.

    Returns
    -------
    float
        Elapsed hours. 0.0 when start is after end or either timestamp
        cannot be parsed.
    """
    t0 = _clock.to_datetime(start)
    t1 = _clock.now(clock) if end is None else _clock.to_datetime(end)
    if t0 is None or t1 is None:
        log.warning("Cannot compute elapsed time from %r to %r", start, end)
        return 0.0
    seconds = (t1 - t0).total_seconds()
    return max(0.0, seconds / SECONDS_PER_HOUR)


def shipment_activity(initial_activity, isotope_id, dispatched_at,
                      now=None, clock=None):
    """Current activity of a shipment in transit since `dispatched_at`."""
    hours = elapsed_hours(dispatched_at, now, clock=clock)
    return current_activity(initial_activity, isotope_id, hours)


# ----------------------------------------------------------------------
# Derived ratios
# ----------------------------------------------------------------------

def decay_percentage(initial_activity, current):
    """Percentage of the initial activity that has decayed away."""
    a0 = _as_float(initial_activity)
    if a0 <= 0 or math.isinf(a0):
        return 0.0
    return (a0 - _as_float(current)) / a0 * 100.0


def remaining_percentage(initial_activity, current):
    """Percentage of the initial activity still remaining."""
    a0 = _as_float(initial_activity)
    if a0 <= 0 or math.isinf(a0):
        return 0.0
    return _as_float(current) / a0 * 100.0


# ----------------------------------------------------------------------
# Presentation and inverse queries
# ----------------------------------------------------------------------

def formatted_half_life(isotope_id):
    """
    Half-life in its most natural unit.

    Under one hour -> minutes ("45 minutes"), under one day -> hours
    ("6.0 hours"), otherwise days ("8.0 days"). Unknown isotopes give
    the "Unknown" sentinel.
    """
    t_half = lookup_half_life(isotope_id)
    if t_half is None:
        return UNKNOWN_HALF_LIFE

    if t_half < 1.0:
        return "{} minutes".format(int(round(t_half * MINUTES_PER_HOUR)))
    if t_half < HOURS_PER_DAY:
        return "{:.1f} hours".format(t_half)
    return "{:.1f} days".format(t_half / HOURS_PER_DAY)


def estimate_time_to_threshold(initial_activity, isotope_id, threshold_activity):
    """
    Hours until activity decays down to `threshold_activity`.

    Solves threshold = initial * (1/2)^(t / t_half) for t:
        t = t_half * log2(initial / threshold)

    Returns
    -------
    float
        Hours to reach the threshold. 0.0 when the activity is already at
        or below it, the isotope is unknown, the threshold is not a
        positive number (a zero threshold is never reached) or the
        activity ratio is too large to represent.
    """
    t_half = lookup_half_life(isotope_id)
    a0 = _as_float(initial_activity)
    threshold = _as_float(threshold_activity)

    if t_half is None:
        log.warning("Unknown isotope %r; no threshold estimate", isotope_id)
        return 0.0
    if a0 <= threshold:
        return 0.0
    if threshold <= 0 or math.isinf(a0):
        log.debug("Threshold %r not reachable from %r", threshold, a0)
        return 0.0

    ratio = a0 / threshold
    if math.isinf(ratio):
        log.debug("Activity ratio %r / %r overflows", a0, threshold)
        return 0.0

    return t_half * math.log2(ratio)


def decay_curve(initial_activity, isotope_or_half_life, max_hours,
                num_points=100):
    """
    Sample the decay curve on an even time grid from 0 to `max_hours`.

    Parameters
    ----------
    initial_activity : float
        Activity at time zero.
    isotope_or_half_life : str or float
        Isotope identifier from the table, or a half-life in hours.
    max_hours : float
        End of the time grid. Non-positive values give a flat grid at 0.
    num_points : int
        Number of samples, clamped to [10, 500]. Infinite counts clamp
        to the nearest bound.

    Returns
    -------
    dict
        {"half_life_hours", "hours", "activity", "remaining_pct"}.
        half_life_hours is None for unknown isotopes, in which case the
        activity stays constant (no decay applied).
    """
    if isinstance(isotope_or_half_life, str):
        t_half = lookup_half_life(isotope_or_half_life)
    else:
        t_half = _as_float(isotope_or_half_life, default=None)

    points = _as_float(num_points, 100)
    if math.isinf(points):
        points = MAX_CURVE_POINTS if points > 0 else MIN_CURVE_POINTS
    n = max(MIN_CURVE_POINTS, min(int(points), MAX_CURVE_POINTS))
    t_max = max(0.0, _as_float(max_hours))
    if math.isinf(t_max):
        t_max = 0.0
    a0 = max(0.0, _as_float(initial_activity))
    if math.isinf(a0):
        a0 = 0.0

    hours = np.linspace(0.0, t_max, n)
    if t_half is None:
        activity = np.full(n, a0)
    elif t_half <= 0:
        activity = np.zeros(n)
    else:
        activity = a0 * np.power(0.5, hours / t_half)

    if a0 > 0:
        remaining = activity / a0 * 100.0
    else:
        remaining = np.zeros(n)

    return {
        "half_life_hours": t_half,
        "hours": hours.tolist(),
        "activity": activity.tolist(),
        "remaining_pct": remaining.tolist(),
    }
