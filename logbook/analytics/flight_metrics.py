"""
Flight metrics from telemetry time series using NumPy.

Every function here is pure: it takes a sequence of telemetry samples
(TelemetryPoint rows or TelemetrySample objects, anything exposing the
same attributes) and returns plain values. Database access lives in the
services layer.

Key design principles:
- Samples are re-sorted by timestamp before any order-dependent metric;
  callers are expected to submit in order but nothing enforces it
- Missing numeric fields become NaN, so a pair with a gap contributes
  nothing to distance or smoothness instead of failing the computation
- Rounding follows half-up semantics so scores do not flip on .5 values
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, List, Any

import numpy as np

from logbook.config import config


def round_half_up(value: float) -> int:
    """Round to nearest integer, halves toward +infinity."""
    return int(math.floor(value + 0.5))


def order_by_time(samples: Sequence[Any]) -> List[Any]:
    """Return samples sorted by timestamp (stable for equal timestamps)."""
    return sorted(samples, key=lambda s: s.timestamp)


def column(samples: Sequence[Any], attr: str) -> np.ndarray:
    """Extract one numeric attribute as a float array, NaN where absent."""
    return np.array(
        [np.nan if getattr(s, attr) is None else getattr(s, attr) for s in samples],
        dtype=np.float64,
    )


def _nanmax(values: np.ndarray) -> Optional[float]:
    valid = values[~np.isnan(values)]
    if len(valid) == 0:
        return None
    return float(np.max(valid))


@dataclass
class TelemetrySummary:
    """Aggregates over all samples of one flight."""
    sample_count: int
    max_altitude_ft: Optional[float]
    max_speed_kts: Optional[float]
    average_speed_kts: Optional[float]
    first_timestamp: Optional[float]
    last_timestamp: Optional[float]


def summarize_telemetry(
    samples: Sequence[Any],
    min_speed_kts: Optional[float] = None,
) -> TelemetrySummary:
    """
    Compute max altitude, max speed and average airborne speed.

    The average only counts samples faster than min_speed_kts so ground
    idle time does not drag it down.
    """
    if min_speed_kts is None:
        min_speed_kts = config.tracking.min_average_speed_kts

    if not samples:
        return TelemetrySummary(0, None, None, None, None, None)

    timestamps = column(samples, 'timestamp')
    altitudes = column(samples, 'altitude_ft')
    speeds = column(samples, 'speed_kts')

    moving = speeds[speeds > min_speed_kts]

    return TelemetrySummary(
        sample_count=len(samples),
        max_altitude_ft=_nanmax(altitudes),
        max_speed_kts=_nanmax(speeds),
        average_speed_kts=float(np.mean(moving)) if len(moving) else None,
        first_timestamp=float(np.min(timestamps)),
        last_timestamp=float(np.max(timestamps)),
    )


def path_distance_nm(samples: Sequence[Any], units_per_nm: Optional[float] = None) -> float:
    """
    Unrounded length of the flown path in nautical miles.

    Sums straight-line legs between consecutive samples; a leg is skipped
    when either end is missing x or y.
    """
    units_per_nm = units_per_nm or config.tracking.units_per_nm
    if len(samples) < 2:
        return 0.0

    ordered = order_by_time(samples)
    xs = column(ordered, 'x')
    ys = column(ordered, 'y')

    legs = np.hypot(np.diff(xs), np.diff(ys))
    return float(np.nansum(legs)) / units_per_nm


def total_distance_nm(samples: Sequence[Any], units_per_nm: Optional[float] = None) -> float:
    """Flown distance in nautical miles, rounded to 2 decimals."""
    return round_half_up(path_distance_nm(samples, units_per_nm) * 100) / 100


def duration_minutes(start: Optional[datetime], end: datetime) -> int:
    """Whole minutes between start and end, 0 when start is unknown."""
    if start is None:
        return 0
    return round_half_up((end - start).total_seconds() / 60)


@dataclass
class FlightMetrics:
    """Everything written onto a Flight row when it is completed."""
    duration_minutes: int
    total_distance_nm: float
    max_altitude_ft: float
    max_speed_kts: float
    average_speed_kts: int
    landing_rate_fpm: Optional[int]
    landing_score: Optional[int]
    smoothness_score: Optional[int]
    sample_count: int = 0

    def to_dict(self) -> dict:
        return {
            'duration_minutes': self.duration_minutes,
            'total_distance_nm': self.total_distance_nm,
            'max_altitude_ft': self.max_altitude_ft,
            'max_speed_kts': self.max_speed_kts,
            'average_speed_kts': self.average_speed_kts,
            'landing_rate_fpm': self.landing_rate_fpm,
            'landing_score': self.landing_score,
            'smoothness_score': self.smoothness_score,
            'sample_count': self.sample_count,
        }


@dataclass
class LiveFlightStats:
    """Approximate stats for a flight that is still in progress."""
    telemetry_count: int
    max_altitude_ft: Optional[float]
    max_speed_kts: Optional[float]
    average_speed_kts: Optional[int]
    total_distance_nm: Optional[int]
    smoothness_score: Optional[int]

    def to_dict(self) -> dict:
        return {
            'telemetry_count': self.telemetry_count,
            'max_altitude_ft': self.max_altitude_ft,
            'max_speed_kts': self.max_speed_kts,
            'average_speed_kts': self.average_speed_kts,
            'total_distance_nm': self.total_distance_nm,
            'smoothness_score': self.smoothness_score,
        }


def live_flight_stats(samples: Sequence[Any]) -> LiveFlightStats:
    """
    Cheap running stats for the live view.

    Averages speed only above the live altitude floor, reports distance in
    whole nautical miles and uses the live smoothness approximation.
    """
    from logbook.analytics.smoothness import live_smoothness

    if not samples:
        return LiveFlightStats(0, None, None, None, None, None)

    altitudes = column(samples, 'altitude_ft')
    speeds = column(samples, 'speed_kts')
    airborne = speeds[(altitudes > config.tracking.live_min_altitude_ft) & ~np.isnan(speeds)]

    distance = path_distance_nm(samples)

    return LiveFlightStats(
        telemetry_count=len(samples),
        max_altitude_ft=_nanmax(altitudes),
        max_speed_kts=_nanmax(speeds),
        average_speed_kts=round_half_up(float(np.mean(airborne))) if len(airborne) else None,
        total_distance_nm=round_half_up(distance) if distance > 0 else None,
        smoothness_score=live_smoothness.score(samples),
    )
