"""
Smoothness scoring from frame-to-frame telemetry deltas.

Two estimators share one interface:

1. PostFlightSmoothness: weighted banded penalties on speed, vertical
   speed and heading changes, averaged per comparison. Used when a flight
   is finalized.
2. LiveSmoothness: fixed deductions from a 100 baseline for large speed
   or altitude jumps. A cheaper approximation shown while the flight is
   still in progress.

Both return an integer in [0, 100], or None when there are too few samples.
"""

import logging
from typing import Optional, Sequence, Tuple, Any

import numpy as np

from logbook.analytics.flight_metrics import column, order_by_time, round_half_up

logger = logging.getLogger(__name__)

# (threshold, penalty) pairs, highest threshold first
SPEED_BANDS: Tuple[Tuple[float, int], ...] = ((30, 3), (20, 2), (10, 1))
VERTICAL_SPEED_BANDS: Tuple[Tuple[float, int], ...] = ((500, 3), (300, 2), (150, 1))
HEADING_BANDS: Tuple[Tuple[float, int], ...] = ((30, 2), (20, 1))

SPEED_WEIGHT = 0.4
VERTICAL_SPEED_WEIGHT = 0.4
HEADING_WEIGHT = 0.2


def banded_penalties(deltas: np.ndarray, bands: Sequence[Tuple[float, int]]) -> np.ndarray:
    """
    Map absolute deltas to penalty points.

    NaN deltas (either side missing) fail every comparison and score 0.
    """
    conditions = [deltas > threshold for threshold, _ in bands]
    choices = [penalty for _, penalty in bands]
    return np.select(conditions, choices, default=0)


def heading_deltas(headings: np.ndarray) -> np.ndarray:
    """Absolute heading change between consecutive samples, wrapped to <= 180."""
    deltas = np.abs(np.diff(headings))
    return np.where(deltas > 180, 360 - deltas, deltas)


def clamp_score(score: float) -> int:
    return max(0, min(100, round_half_up(score)))


class SmoothnessEstimator:
    """
    Base class for smoothness estimators.

    Sorts samples by timestamp and enforces the minimum sample count;
    subclasses implement _score on the ordered samples.
    """

    name = 'base'
    min_samples = 2

    def score(self, samples: Sequence[Any]) -> Optional[int]:
        if len(samples) < self.min_samples:
            return None
        return self._score(order_by_time(samples))

    def _score(self, ordered: Sequence[Any]) -> int:
        raise NotImplementedError


class PostFlightSmoothness(SmoothnessEstimator):
    """Weighted penalty average used for completed flights."""

    name = 'post_flight'
    min_samples = 3

    def _score(self, ordered: Sequence[Any]) -> int:
        speed_deltas = np.abs(np.diff(column(ordered, 'speed_kts')))
        vs_deltas = np.abs(np.diff(column(ordered, 'vertical_speed_fpm')))
        hdg_deltas = heading_deltas(column(ordered, 'heading'))

        speed_penalty = int(banded_penalties(speed_deltas, SPEED_BANDS).sum())
        vs_penalty = int(banded_penalties(vs_deltas, VERTICAL_SPEED_BANDS).sum())
        heading_penalty = int(banded_penalties(hdg_deltas, HEADING_BANDS).sum())

        comparisons = len(ordered) - 1
        total = (
            speed_penalty * SPEED_WEIGHT +
            vs_penalty * VERTICAL_SPEED_WEIGHT +
            heading_penalty * HEADING_WEIGHT
        )
        avg_penalty = total / comparisons

        logger.debug(
            f'Smoothness penalties: speed={speed_penalty} vs={vs_penalty} '
            f'heading={heading_penalty} over {comparisons} comparisons'
        )
        return clamp_score(100 - min(avg_penalty * 10, 100))


class LiveSmoothness(SmoothnessEstimator):
    """Fixed deductions per large jump, used for in-progress flights."""

    name = 'live'
    min_samples = 2

    speed_jump_kts = 20
    speed_deduction = 2
    altitude_jump_ft = 500
    altitude_deduction = 3

    def _score(self, ordered: Sequence[Any]) -> int:
        speed_deltas = np.abs(np.diff(column(ordered, 'speed_kts')))
        alt_deltas = np.abs(np.diff(column(ordered, 'altitude_ft')))

        deductions = (
            int((speed_deltas > self.speed_jump_kts).sum()) * self.speed_deduction +
            int((alt_deltas > self.altitude_jump_ft).sum()) * self.altitude_deduction
        )
        return clamp_score(100 - deductions)


post_flight_smoothness = PostFlightSmoothness()
live_smoothness = LiveSmoothness()
