"""Tests for smoothness estimators."""

import math

from logbook.analytics.smoothness import live_smoothness, post_flight_smoothness
from tests.helpers import make_sample


def cruise(n, **overrides):
    """n identical cruise samples one second apart."""
    fields = dict(speed_kts=250.0, vertical_speed_fpm=0.0, heading=90.0, altitude_ft=30000.0)
    fields.update(overrides)
    return [make_sample(t, **fields) for t in range(n)]


class TestPostFlightSmoothness:
    """Tests for the post-flight estimator."""

    def test_constant_sequence_is_perfect(self):
        assert post_flight_smoothness.score(cruise(10)) == 100

    def test_needs_three_samples(self):
        assert post_flight_smoothness.score(cruise(2)) is None
        assert post_flight_smoothness.score([]) is None

    def test_speed_penalty_is_weighted_and_averaged(self):
        """Two 25kt changes: 2 points each, weight 0.4, over 2 comparisons."""
        samples = [
            make_sample(0, speed_kts=100.0, vertical_speed_fpm=0.0, heading=0.0),
            make_sample(1, speed_kts=125.0, vertical_speed_fpm=0.0, heading=0.0),
            make_sample(2, speed_kts=100.0, vertical_speed_fpm=0.0, heading=0.0),
        ]
        assert post_flight_smoothness.score(samples) == 92

    def test_heading_wraps_through_north(self):
        """350 -> 10 is a 20 degree turn, below the first heading band."""
        samples = [
            make_sample(0, speed_kts=100.0, vertical_speed_fpm=0.0, heading=350.0),
            make_sample(1, speed_kts=100.0, vertical_speed_fpm=0.0, heading=10.0),
            make_sample(2, speed_kts=100.0, vertical_speed_fpm=0.0, heading=10.0),
        ]
        assert post_flight_smoothness.score(samples) == 100

    def test_missing_fields_are_skipped(self):
        """Pairs with a missing value add no penalty."""
        samples = cruise(5)
        samples[2].speed_kts = None
        samples[3].vertical_speed_fpm = None
        assert post_flight_smoothness.score(samples) == 100

    def test_worst_case_every_comparison(self):
        """Every pair in every band: 2.8 weighted points per comparison."""
        samples = [
            make_sample(
                t,
                speed_kts=100.0 if t % 2 else 200.0,
                vertical_speed_fpm=-2000.0 if t % 2 else 2000.0,
                heading=0.0 if t % 2 else 180.0,
            )
            for t in range(20)
        ]
        score = post_flight_smoothness.score(samples)
        assert 0 <= score <= 100
        assert score == 72

    def test_order_independent(self):
        """Samples are re-sorted by timestamp."""
        samples = [
            make_sample(0, speed_kts=100.0, vertical_speed_fpm=0.0, heading=0.0),
            make_sample(1, speed_kts=125.0, vertical_speed_fpm=0.0, heading=0.0),
            make_sample(2, speed_kts=100.0, vertical_speed_fpm=0.0, heading=0.0),
        ]
        assert post_flight_smoothness.score(list(reversed(samples))) == 92


class TestLiveSmoothness:
    """Tests for the live estimator."""

    def test_constant_sequence_is_perfect(self):
        assert live_smoothness.score(cruise(2)) == 100

    def test_needs_two_samples(self):
        assert live_smoothness.score(cruise(1)) is None

    def test_fixed_deductions(self):
        """A speed jump costs 2 and an altitude jump costs 3."""
        samples = [
            make_sample(0, speed_kts=100.0, altitude_ft=1000.0),
            make_sample(1, speed_kts=130.0, altitude_ft=2000.0),
        ]
        assert live_smoothness.score(samples) == 95

    def test_malformed_values_are_skipped(self):
        samples = [
            make_sample(0, speed_kts=100.0, altitude_ft=math.nan),
            make_sample(1, speed_kts=None, altitude_ft=5000.0),
        ]
        assert live_smoothness.score(samples) == 100
