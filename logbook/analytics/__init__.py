"""
Analytics module for the logbook.

Pure scoring functions over telemetry using NumPy:
- Flight metrics (distance, duration, speed and altitude aggregates)
- Landing rate estimation from waypoints, approach profile or telemetry
- Smoothness scoring (post-flight and live variants)
"""

from logbook.analytics.flight_metrics import (
    FlightMetrics,
    LiveFlightStats,
    TelemetrySummary,
    duration_minutes,
    live_flight_stats,
    round_half_up,
    summarize_telemetry,
    total_distance_nm,
)
from logbook.analytics.landing import (
    LandingEstimate,
    LandingRateSource,
    estimate_landing_rate,
    landing_rate_from_approach,
    landing_rate_from_telemetry,
    landing_score,
)
from logbook.analytics.scoring import score_flight
from logbook.analytics.smoothness import (
    SmoothnessEstimator,
    PostFlightSmoothness,
    LiveSmoothness,
    post_flight_smoothness,
    live_smoothness,
)

__all__ = [
    'FlightMetrics',
    'LiveFlightStats',
    'TelemetrySummary',
    'duration_minutes',
    'live_flight_stats',
    'round_half_up',
    'summarize_telemetry',
    'total_distance_nm',
    'LandingEstimate',
    'LandingRateSource',
    'estimate_landing_rate',
    'landing_rate_from_approach',
    'landing_rate_from_telemetry',
    'landing_score',
    'score_flight',
    'SmoothnessEstimator',
    'PostFlightSmoothness',
    'LiveSmoothness',
    'post_flight_smoothness',
    'live_smoothness',
]
