"""
Flight phase detection from telemetry.

Used when the simulator client does not report a phase itself. The
phase matters beyond display: approach and landing samples feed the
approach-altitude buffer and the telemetry landing-rate fallback.
"""

from enum import Enum
from typing import Optional

from logbook.analytics.flight_metrics import round_half_up


class FlightPhase(str, Enum):
    """
    Detected flight phase.

    Determined by height above the field, ground speed and vertical speed:
    - GROUND: At field elevation, stationary or slow
    - TAXI: At field elevation, moving faster than taxi threshold
    - CLIMB: Climbing, or accelerating past rotation speed
    - CRUISE: Stable altitude above 1,000ft
    - DESCENT: Descending above the approach gate
    - APPROACH: Descending below the approach gate
    - LANDING: Descending in the last 100ft
    - UNKNOWN: Insufficient data
    """
    GROUND = 'ground'
    TAXI = 'taxi'
    CLIMB = 'climb'
    CRUISE = 'cruise'
    DESCENT = 'descent'
    APPROACH = 'approach'
    LANDING = 'landing'
    UNKNOWN = 'unknown'


PHASE_THRESHOLDS = {
    'ground_alt_buffer_ft': 50,   # +/- 50ft from field elevation = on ground
    'taxi_speed_kts': 12,
    'takeoff_speed_kts': 80,
    'climb_rate_fpm': 300,
    'cruise_min_alt_ft': 1000,
    'approach_alt_ft': 3000,
    'landing_alt_ft': 100,
}


def detect_flight_phase(
    altitude_ft: Optional[float],
    speed_kts: Optional[float],
    vertical_speed_fpm: Optional[float],
    field_elevation_ft: float = 0.0,
) -> FlightPhase:
    """
    Determine flight phase from one telemetry sample.

    Heights are measured above field_elevation_ft, the arrival airport
    elevation when known.
    """
    if altitude_ft is None:
        return FlightPhase.UNKNOWN

    height = altitude_ft - field_elevation_ft
    speed = speed_kts or 0
    vs = vertical_speed_fpm or 0

    if abs(height) <= PHASE_THRESHOLDS['ground_alt_buffer_ft']:
        if speed > PHASE_THRESHOLDS['taxi_speed_kts']:
            return FlightPhase.TAXI
        return FlightPhase.GROUND

    if speed > PHASE_THRESHOLDS['takeoff_speed_kts'] and vs > 0:
        return FlightPhase.CLIMB

    if vs > PHASE_THRESHOLDS['climb_rate_fpm']:
        return FlightPhase.CLIMB

    if abs(vs) < PHASE_THRESHOLDS['climb_rate_fpm'] and height > PHASE_THRESHOLDS['cruise_min_alt_ft']:
        return FlightPhase.CRUISE

    if vs < -PHASE_THRESHOLDS['climb_rate_fpm'] and height > PHASE_THRESHOLDS['approach_alt_ft']:
        return FlightPhase.DESCENT

    if vs < 0 and height < PHASE_THRESHOLDS['landing_alt_ft']:
        return FlightPhase.LANDING

    if vs < 0 and height <= PHASE_THRESHOLDS['approach_alt_ft']:
        return FlightPhase.APPROACH

    return FlightPhase.UNKNOWN


def vertical_speed_between(
    altitude_ft: Optional[float],
    timestamp: float,
    previous_altitude_ft: Optional[float],
    previous_timestamp: Optional[float],
) -> Optional[float]:
    """Vertical speed in fpm derived from two consecutive samples."""
    if altitude_ft is None or previous_altitude_ft is None or previous_timestamp is None:
        return None
    elapsed = timestamp - previous_timestamp
    if elapsed <= 0:
        return None
    return round_half_up((altitude_ft - previous_altitude_ft) / elapsed * 60)
