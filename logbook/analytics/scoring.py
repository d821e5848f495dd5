"""
Completed-flight scoring.

Combines telemetry aggregates, distance, duration, landing estimate and
post-flight smoothness into the FlightMetrics written on finalize.
"""

from datetime import datetime
from typing import Optional, Sequence, Any

from logbook.analytics.flight_metrics import (
    FlightMetrics,
    duration_minutes,
    round_half_up,
    summarize_telemetry,
    total_distance_nm,
)
from logbook.analytics.landing import estimate_landing_rate
from logbook.analytics.smoothness import post_flight_smoothness


def score_flight(
    samples: Sequence[Any],
    start: Optional[datetime],
    end: datetime,
    waypoint_landing_rate: Optional[int] = None,
    approach_altitudes: Optional[Sequence[float]] = None,
    approach_timestamps: Optional[Sequence[float]] = None,
) -> FlightMetrics:
    """
    Score a flight from its full telemetry and live approach data.

    Aggregates with no data fall back to 0; landing and smoothness stay
    None when their inputs are insufficient.
    """
    summary = summarize_telemetry(samples)
    landing = estimate_landing_rate(
        waypoint_landing_rate,
        approach_altitudes,
        approach_timestamps,
        samples,
    )

    return FlightMetrics(
        duration_minutes=duration_minutes(start, end),
        total_distance_nm=total_distance_nm(samples),
        max_altitude_ft=summary.max_altitude_ft or 0,
        max_speed_kts=summary.max_speed_kts or 0,
        average_speed_kts=round_half_up(summary.average_speed_kts) if summary.average_speed_kts else 0,
        landing_rate_fpm=landing.rate_fpm,
        landing_score=landing.score,
        smoothness_score=post_flight_smoothness.score(samples),
        sample_count=summary.sample_count,
    )
