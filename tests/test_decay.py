"""
Tests for the radioactive decay calculator.

Verifies:
  1. The decay law A(t) = A0 * (1/2)^(t / t_half) at whole and fractional
     half-lives.
  2. Degenerate inputs map to documented sentinels instead of raising.
  3. Unknown isotopes fall back to "no decay applied".
  4. Elapsed-time computation from timestamps with an injected clock.
  5. Threshold inversion and sampled decay curves.
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

import nuclearflow.decay as decay_module
from nuclearflow.clock import fixed_clock
from nuclearflow.decay import (
    activity_at_arrival,
    current_activity,
    decay,
    decay_constant,
    decay_curve,
    decay_percentage,
    elapsed_hours,
    estimate_time_to_threshold,
    formatted_half_life,
    remaining_percentage,
    shipment_activity,
)


# -----------------------------------------------------------------------
# Core decay law
# -----------------------------------------------------------------------
class TestDecayLaw:
    """A(t) = A0 * (1/2)^(t / t_half)"""

    def test_one_half_life(self):
        assert decay(100, 6, 6) == pytest.approx(50.0)

    def test_two_half_lives(self):
        assert decay(100, 6, 12) == pytest.approx(25.0)

    def test_half_a_half_life(self):
        assert decay(100, 6, 3) == pytest.approx(100 / math.sqrt(2), abs=1e-9)

    def test_zero_elapsed(self):
        assert decay(100, 6, 0) == 100

    def test_monotonic_decrease(self):
        values = [decay(100, 6, t) for t in range(0, 48, 3)]
        assert all(a > b for a, b in zip(values, values[1:]))

    def test_bounded_by_initial(self):
        for t in (0.1, 1, 10, 100, 1000):
            assert 0 <= decay(100, 6, t) <= 100

    def test_infinite_elapsed_is_zero(self):
        assert decay(100, 6, float("inf")) == 0.0


class TestDecayDegenerateInputs:
    """Degenerate numbers return sentinels, never exceptions."""

    def test_zero_initial(self):
        assert decay(0, 6, 6) == 0.0

    def test_negative_initial(self):
        assert decay(-5, 6, 6) == 0.0

    def test_zero_half_life(self):
        assert decay(100, 0, 6) == 0.0

    def test_negative_half_life(self):
        assert decay(100, -6, 1) == 0.0

    def test_negative_elapsed_clamped(self):
        """Negative elapsed time is treated as zero, not as growth."""
        assert decay(100, 6, -3) == 100

    def test_non_numeric(self):
        assert decay("abc", 6, 1) == 0.0
        assert decay(100, None, 1) == 0.0

    def test_nan_elapsed(self):
        assert decay(100, 6, float("nan")) == 100


class TestDecayConstant:

    def test_tc99m(self):
        assert decay_constant(6.0) == pytest.approx(math.log(2) / 6.0)

    def test_degenerate(self):
        assert decay_constant(0) == 0.0
        assert decay_constant(-1) == 0.0


# -----------------------------------------------------------------------
# Tabulated isotopes
# -----------------------------------------------------------------------
class TestCurrentActivity:

    def test_tc99m_after_half_life(self):
        assert current_activity(100, "Tc-99m", 6) == pytest.approx(50.0)

    def test_f18_after_half_life(self):
        assert current_activity(100, "F-18", 1.83) == pytest.approx(50.0)

    def test_lookup_is_case_insensitive(self):
        assert current_activity(100, "tc-99m", 12) == pytest.approx(25.0)

    def test_unknown_isotope_returns_initial(self):
        assert current_activity(100, "Unknown-99", 6) == 100

    def test_shipment_activity_from_timestamps(self):
        activity = shipment_activity(
            100, "Tc-99m",
            "2024-01-15T10:00:00Z", now="2024-01-15T16:00:00Z",
        )
        assert activity == pytest.approx(50.0)

    def test_shipment_activity_uses_clock(self):
        clock = fixed_clock("2024-01-15T22:00:00Z")
        activity = shipment_activity(100, "Tc-99m", "2024-01-15T10:00:00Z",
                                     clock=clock)
        assert activity == pytest.approx(25.0)


class TestActivityAtArrival:

    def test_parsed_delivery_time(self):
        assert activity_at_arrival(100, "Tc-99m", "12 hours") == \
            pytest.approx(25.0)

    def test_unparseable_delivery_defaults_to_24h(self):
        assert activity_at_arrival(100, "Tc-99m", "ASAP") == \
            pytest.approx(6.25)

    def test_long_lived_isotope(self):
        # I-131: 2 days is a quarter of a half-life
        expected = 100 * 0.5 ** (48 / 192)
        assert activity_at_arrival(100, "I-131", "2 days") == \
            pytest.approx(expected)


# -----------------------------------------------------------------------
# Elapsed time
# -----------------------------------------------------------------------
class TestElapsedHours:

    def test_iso_strings(self):
        assert elapsed_hours("2024-01-15T10:00:00Z",
                             "2024-01-15T16:00:00Z") == pytest.approx(6.0)

    def test_datetimes(self):
        start = datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
        assert elapsed_hours(start, start + timedelta(minutes=90)) == \
            pytest.approx(1.5)

    def test_naive_datetime_is_utc(self):
        start = datetime(2024, 1, 15, 10)
        end = datetime(2024, 1, 15, 12, tzinfo=timezone.utc)
        assert elapsed_hours(start, end) == pytest.approx(2.0)

    def test_offset_timestamps(self):
        assert elapsed_hours("2024-01-15T10:00:00+02:00",
                             "2024-01-15T10:00:00Z") == pytest.approx(2.0)

    def test_posix_seconds(self):
        assert elapsed_hours(0, 3600) == pytest.approx(1.0)

    def test_end_before_start(self):
        assert elapsed_hours("2024-01-15T16:00:00Z",
                             "2024-01-15T10:00:00Z") == 0.0

    def test_unparseable(self):
        assert elapsed_hours("yesterday", "2024-01-15T10:00:00Z") == 0.0

    @pytest.mark.parametrize("start", [
        "0001-01-01T00:00:00+05:00",
        "9999-12-31T23:00:00-05:00",
    ])
    def test_offset_outside_datetime_range(self, start):
        assert elapsed_hours(start, "2024-01-01T00:00:00Z") == 0.0

    def test_default_end_from_clock(self):
        clock = fixed_clock("2024-01-15T13:00:00Z")
        assert elapsed_hours("2024-01-15T10:00:00Z", clock=clock) == \
            pytest.approx(3.0)


# -----------------------------------------------------------------------
# Percentages
# -----------------------------------------------------------------------
class TestPercentages:

    def test_decay_percentage(self):
        assert decay_percentage(100, 25) == pytest.approx(75.0)

    def test_remaining_percentage(self):
        assert remaining_percentage(100, 25) == pytest.approx(25.0)

    def test_sum_to_hundred(self):
        assert decay_percentage(80, 30) + remaining_percentage(80, 30) == \
            pytest.approx(100.0)

    def test_zero_initial(self):
        assert decay_percentage(0, 0) == 0.0
        assert remaining_percentage(0, 0) == 0.0


# -----------------------------------------------------------------------
# Presentation
# -----------------------------------------------------------------------
class TestFormattedHalfLife:

    def test_hours(self):
        assert formatted_half_life("Tc-99m") == "6.0 hours"
        assert formatted_half_life("F-18") == "1.8 hours"
        assert formatted_half_life("Ga-68") == "1.1 hours"

    def test_days(self):
        assert formatted_half_life("I-131") == "8.0 days"
        assert formatted_half_life("Lu-177") == "6.6 days"

    def test_minutes(self, monkeypatch):
        monkeypatch.setattr(decay_module, "lookup_half_life", lambda _: 0.75)
        assert formatted_half_life("X-1") == "45 minutes"

    def test_unknown(self):
        assert formatted_half_life("Unknown-99") == "Unknown"


class TestTimeToThreshold:
    """t = t_half * log2(A0 / A_th)"""

    def test_two_half_lives(self):
        assert estimate_time_to_threshold(100, "Tc-99m", 25) == \
            pytest.approx(12.0)

    def test_inverse_of_decay(self):
        hours = estimate_time_to_threshold(500, "F-18", 37)
        assert current_activity(500, "F-18", hours) == pytest.approx(37.0)

    def test_already_below_threshold(self):
        assert estimate_time_to_threshold(50, "Tc-99m", 100) == 0.0

    def test_equal_to_threshold(self):
        assert estimate_time_to_threshold(100, "Tc-99m", 100) == 0.0

    def test_zero_threshold(self):
        assert estimate_time_to_threshold(100, "Tc-99m", 0) == 0.0

    def test_unknown_isotope(self):
        assert estimate_time_to_threshold(100, "Unknown-99", 25) == 0.0

    def test_ratio_overflow(self):
        hours = estimate_time_to_threshold(1e308, "Tc-99m", 1e-308)
        assert math.isfinite(hours)
        assert hours == 0.0


# -----------------------------------------------------------------------
# Sampled curve
# -----------------------------------------------------------------------
class TestDecayCurve:

    def test_grid_and_values(self):
        curve = decay_curve(100, "Tc-99m", 12, num_points=13)
        assert curve["half_life_hours"] == 6.0
        assert len(curve["hours"]) == 13
        assert curve["hours"][0] == 0.0
        assert curve["hours"][-1] == pytest.approx(12.0)
        assert curve["activity"][0] == pytest.approx(100.0)
        assert curve["activity"][6] == pytest.approx(50.0)
        assert curve["remaining_pct"][-1] == pytest.approx(25.0)

    def test_explicit_half_life(self):
        by_name = decay_curve(100, "Tc-99m", 24, num_points=20)
        by_value = decay_curve(100, 6.0, 24, num_points=20)
        assert by_value["activity"] == pytest.approx(by_name["activity"])

    def test_matches_scalar_law(self):
        curve = decay_curve(250, "I-131", 400, num_points=50)
        for t, a in zip(curve["hours"], curve["activity"]):
            assert a == pytest.approx(decay(250, 192.0, t))

    def test_point_count_clamped(self):
        assert len(decay_curve(100, "Tc-99m", 12, num_points=3)["hours"]) == 10
        assert len(decay_curve(100, "Tc-99m", 12, num_points=10000)["hours"]) == 500
        assert len(decay_curve(100, "Tc-99m", 12,
                               num_points=float("inf"))["hours"]) == 500
        assert len(decay_curve(100, "Tc-99m", 12,
                               num_points=float("-inf"))["hours"]) == 10

    def test_unknown_isotope_is_flat(self):
        curve = decay_curve(100, "Unknown-99", 12, num_points=10)
        assert curve["half_life_hours"] is None
        assert curve["activity"] == [100.0] * 10

    def test_non_positive_half_life(self):
        curve = decay_curve(100, 0.0, 12, num_points=10)
        assert curve["activity"] == [0.0] * 10

    def test_negative_max_hours(self):
        curve = decay_curve(100, "Tc-99m", -5, num_points=10)
        assert curve["hours"] == [0.0] * 10

    def test_no_nan_or_inf(self):
        curve = decay_curve(1e300, "Ga-68", 1e4, num_points=500)
        for key in ("hours", "activity", "remaining_pct"):
            for val in curve[key]:
                assert math.isfinite(val), key
