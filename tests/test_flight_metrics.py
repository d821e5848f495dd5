"""Tests for flight metric aggregation."""

from datetime import datetime, timedelta

import pytest

from logbook.analytics.flight_metrics import (
    duration_minutes,
    live_flight_stats,
    round_half_up,
    summarize_telemetry,
    total_distance_nm,
)
from logbook.analytics.scoring import score_flight
from tests.helpers import make_sample


class TestRoundHalfUp:
    """Tests for round_half_up."""

    def test_halves_round_up(self):
        """Positive halves round away from zero."""
        assert round_half_up(2.5) == 3
        assert round_half_up(0.5) == 1

    def test_negative_halves_round_toward_positive(self):
        """Negative halves round toward +infinity."""
        assert round_half_up(-2.5) == -2
        assert round_half_up(-2.6) == -3


class TestDistance:
    """Tests for total_distance_nm."""

    def test_two_legs_of_one_nm(self):
        """Two legs of 1852 units each give 2.00 nm."""
        samples = [
            make_sample(0, x=0.0, y=0.0),
            make_sample(10, x=1852.0, y=0.0),
            make_sample(20, x=1852.0, y=1852.0),
        ]
        assert total_distance_nm(samples) == pytest.approx(2.00)

    def test_unsorted_input_is_ordered_by_time(self):
        """Samples are re-sorted by timestamp before summing legs."""
        samples = [
            make_sample(20, x=1852.0, y=1852.0),
            make_sample(0, x=0.0, y=0.0),
            make_sample(10, x=1852.0, y=0.0),
        ]
        assert total_distance_nm(samples) == pytest.approx(2.00)

    def test_leg_with_missing_position_is_skipped(self):
        """A pair with a missing coordinate contributes nothing."""
        samples = [
            make_sample(0, x=0.0, y=0.0),
            make_sample(10, x=None, y=0.0),
            make_sample(20, x=1852.0, y=0.0),
        ]
        assert total_distance_nm(samples) == 0.0

    def test_single_sample_has_no_distance(self):
        """Fewer than two samples gives zero."""
        assert total_distance_nm([make_sample(0, x=5.0, y=5.0)]) == 0.0


class TestSummary:
    """Tests for summarize_telemetry."""

    def test_average_ignores_ground_idle(self):
        """Speeds at or below the threshold are excluded from the average."""
        samples = [
            make_sample(0, speed_kts=0.0, altitude_ft=0.0),
            make_sample(1, speed_kts=10.0, altitude_ft=0.0),
            make_sample(2, speed_kts=200.0, altitude_ft=5000.0),
            make_sample(3, speed_kts=300.0, altitude_ft=9000.0),
        ]
        summary = summarize_telemetry(samples)

        assert summary.sample_count == 4
        assert summary.max_altitude_ft == 9000.0
        assert summary.max_speed_kts == 300.0
        assert summary.average_speed_kts == pytest.approx(250.0)

    def test_empty_telemetry(self):
        """No samples yields no aggregates."""
        summary = summarize_telemetry([])
        assert summary.sample_count == 0
        assert summary.max_altitude_ft is None
        assert summary.average_speed_kts is None


class TestDuration:
    """Tests for duration_minutes."""

    def test_rounds_to_whole_minutes(self):
        start = datetime(2026, 1, 1, 10, 0, 0)
        assert duration_minutes(start, start + timedelta(minutes=90, seconds=30)) == 91

    def test_unknown_start(self):
        """Duration is 0 without a start time."""
        assert duration_minutes(None, datetime(2026, 1, 1)) == 0


class TestLiveStats:
    """Tests for live_flight_stats."""

    def test_average_counts_only_airborne_samples(self):
        """Live average speed only uses samples above 100ft."""
        samples = [
            make_sample(0, altitude_ft=0.0, speed_kts=20.0, x=0.0, y=0.0),
            make_sample(10, altitude_ft=1500.0, speed_kts=180.0, x=1852.0, y=0.0),
            make_sample(20, altitude_ft=3000.0, speed_kts=220.0, x=3704.0, y=0.0),
        ]
        stats = live_flight_stats(samples)

        assert stats.telemetry_count == 3
        assert stats.average_speed_kts == 200
        assert stats.total_distance_nm == 2
        assert stats.max_altitude_ft == 3000.0

    def test_zero_distance_is_reported_as_none(self):
        """A flight that has not moved has no live distance."""
        samples = [make_sample(0, x=1.0, y=1.0), make_sample(1, x=1.0, y=1.0)]
        assert live_flight_stats(samples).total_distance_nm is None

    def test_no_samples(self):
        stats = live_flight_stats([])
        assert stats.telemetry_count == 0
        assert stats.smoothness_score is None


class TestScoreFlight:
    """Tests for score_flight."""

    def test_defaults_when_no_telemetry(self):
        """Aggregates fall back to 0; landing and smoothness stay None."""
        start = datetime(2026, 1, 1, 10, 0, 0)
        metrics = score_flight([], start=start, end=start + timedelta(minutes=30))

        assert metrics.duration_minutes == 30
        assert metrics.total_distance_nm == 0.0
        assert metrics.max_altitude_ft == 0
        assert metrics.average_speed_kts == 0
        assert metrics.landing_rate_fpm is None
        assert metrics.landing_score is None
        assert metrics.smoothness_score is None

    def test_waypoint_rate_wins(self):
        """The waypoint landing rate overrides the approach profile."""
        start = datetime(2026, 1, 1, 10, 0, 0)
        metrics = score_flight(
            [],
            start=start,
            end=start + timedelta(minutes=5),
            waypoint_landing_rate=-140,
            approach_altitudes=[1000.0, 0.0],
            approach_timestamps=[0.0, 60.0],
        )
        assert metrics.landing_rate_fpm == -140
        assert metrics.landing_score == 90
