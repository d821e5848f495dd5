"""
Landing rate and landing score estimation.

Three independent sources can describe the touchdown, consulted in this
order:

1. Waypoint rate: the hardest landing-event report in the final cluster,
   already written onto the flight by waypoint finalization
2. Approach profile: slope of the approach-altitude ring buffer
3. Telemetry: vertical speed of the lowest approach/landing sample below
   the landing ceiling

The first source that yields a value wins. Rates are in feet per minute,
negative when descending.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Any, Tuple

from logbook.analytics.flight_metrics import round_half_up
from logbook.config import config

logger = logging.getLogger(__name__)

# (max abs rate, score); anything harder than the last row scores FLOOR_SCORE
LANDING_SCORE_BANDS: Tuple[Tuple[int, int], ...] = (
    (100, 100),
    (200, 90),
    (300, 80),
    (400, 70),
    (500, 60),
    (600, 50),
    (700, 40),
    (800, 30),
)
FLOOR_SCORE = 20

LANDING_PHASES = frozenset({'approach', 'landing'})


class LandingRateSource(str, Enum):
    """Where a landing rate came from."""
    WAYPOINT = 'waypoint'
    APPROACH_PROFILE = 'approach_profile'
    TELEMETRY = 'telemetry'


@dataclass(frozen=True)
class LandingEstimate:
    """A landing rate together with the source that produced it."""
    rate_fpm: Optional[int]
    source: Optional[LandingRateSource]

    @property
    def score(self) -> Optional[int]:
        return landing_score(self.rate_fpm)


def landing_score(rate_fpm: Optional[float]) -> Optional[int]:
    """Map a landing rate to a 20-100 score; softer is better."""
    if rate_fpm is None:
        return None
    hardness = abs(rate_fpm)
    for limit, score in LANDING_SCORE_BANDS:
        if hardness <= limit:
            return score
    return FLOOR_SCORE


def landing_rate_from_approach(
    altitudes: Optional[Sequence[float]],
    timestamps: Optional[Sequence[float]],
) -> Optional[int]:
    """
    Average sink rate across the approach buffer.

    Uses the first and last entries only. Returns None with fewer than two
    samples or when no time elapsed between them.
    """
    if not altitudes or not timestamps or len(altitudes) < 2 or len(timestamps) < 2:
        return None

    alt_change = altitudes[0] - altitudes[-1]
    time_change = timestamps[-1] - timestamps[0]
    if time_change <= 0:
        return None

    feet_per_second = alt_change / time_change
    return -round_half_up(feet_per_second * 60)


def landing_rate_from_telemetry(
    samples: Sequence[Any],
    ceiling_ft: Optional[float] = None,
) -> Optional[int]:
    """
    Vertical speed of the lowest sample flown on approach or landing.

    Only samples below ceiling_ft are considered. A zero or missing
    vertical speed counts as no reading.
    """
    if ceiling_ft is None:
        ceiling_ft = config.tracking.telemetry_landing_ceiling_ft

    candidates = [
        s for s in samples
        if s.flight_phase in LANDING_PHASES
        and s.altitude_ft is not None
        and s.altitude_ft < ceiling_ft
    ]
    if not candidates:
        return None

    lowest = min(candidates, key=lambda s: s.altitude_ft)
    if not lowest.vertical_speed_fpm:
        return None
    return round_half_up(lowest.vertical_speed_fpm)


def estimate_landing_rate(
    waypoint_rate: Optional[int] = None,
    approach_altitudes: Optional[Sequence[float]] = None,
    approach_timestamps: Optional[Sequence[float]] = None,
    samples: Sequence[Any] = (),
) -> LandingEstimate:
    """Resolve the landing rate from the highest-precedence source available."""
    if waypoint_rate is not None:
        logger.info(f'Landing rate from waypoint data: {waypoint_rate} fpm')
        return LandingEstimate(int(waypoint_rate), LandingRateSource.WAYPOINT)

    rate = landing_rate_from_approach(approach_altitudes, approach_timestamps)
    if rate is not None:
        logger.info(f'Landing rate from approach profile: {rate} fpm')
        return LandingEstimate(rate, LandingRateSource.APPROACH_PROFILE)

    rate = landing_rate_from_telemetry(samples)
    if rate is not None:
        logger.info(f'Landing rate from telemetry: {rate} fpm')
        return LandingEstimate(rate, LandingRateSource.TELEMETRY)

    logger.debug('No landing rate source available')
    return LandingEstimate(None, None)
