"""
Landing-event waypoints and waypoint-based landing detection.

The simulator reports a waypoint for every touchdown it observes
(including bounces and touch-and-goes). On landing, the reports within
the final cluster decide the flight's landing rate: the hardest touchdown
of the cluster wins.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Sequence

from sqlalchemy import select, update

from logbook.analytics.flight_metrics import round_half_up
from logbook.config import config
from logbook.models import ActiveFlightState, Flight
from logbook.models.base import get_session
from logbook.tracking.samples import coerce_number, to_epoch

logger = logging.getLogger(__name__)

CORE_FIELDS = ('timestamp', 'landing_speed', 'runway', 'airport')


@dataclass(frozen=True)
class Waypoint:
    """
    One landing-event report.

    timestamp is Unix seconds; landing_speed is the signed vertical rate
    at touchdown in fpm. Any fields the simulator adds later travel in
    extra untouched.
    """
    timestamp: float
    landing_speed: float
    runway: Optional[str] = None
    airport: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> 'Waypoint':
        """Parse a report. Raises ValueError without timestamp or landing_speed."""
        if data.get('timestamp') is None:
            raise ValueError('Waypoint has no timestamp')
        landing_speed = coerce_number(data.get('landing_speed'))
        if landing_speed is None:
            raise ValueError('Waypoint has no usable landing_speed')

        return cls(
            timestamp=to_epoch(data['timestamp']),
            landing_speed=landing_speed,
            runway=data.get('runway'),
            airport=data.get('airport'),
            extra={k: v for k, v in data.items() if k not in CORE_FIELDS},
        )

    def to_dict(self) -> dict:
        """Flat dict as stored in collected_waypoints."""
        data = dict(self.extra)
        data.update({
            'timestamp': self.timestamp,
            'landing_speed': self.landing_speed,
            'runway': self.runway,
            'airport': self.airport,
        })
        return data


def parse_waypoints(raw: Optional[Sequence[dict]]) -> List[Waypoint]:
    """Parse stored waypoint dicts, dropping entries that cannot be used."""
    waypoints = []
    for entry in raw or []:
        try:
            waypoints.append(Waypoint.from_dict(entry))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f'Skipping malformed waypoint {entry!r}: {e}')
    return waypoints


def select_landing_waypoint(
    waypoints: Sequence[Waypoint],
    window_seconds: Optional[float] = None,
) -> Optional[Waypoint]:
    """
    Pick the waypoint that represents the landing.

    Keeps the cluster of reports within window_seconds of the latest one
    and returns the member with the largest absolute landing speed. Ties
    keep the first one in report order.
    """
    if window_seconds is None:
        window_seconds = config.tracking.waypoint_cluster_seconds
    if not waypoints:
        return None

    max_timestamp = max(w.timestamp for w in waypoints)
    cluster = [w for w in waypoints if max_timestamp - w.timestamp <= window_seconds]
    if not cluster:
        return None

    hardest = cluster[0]
    for candidate in cluster[1:]:
        if abs(candidate.landing_speed) > abs(hardest.landing_speed):
            hardest = candidate
    return hardest


def finalize_landing_from_waypoints(pilot_identity: str) -> Optional[Waypoint]:
    """
    Write the landing waypoint onto the pilot's current flight.

    Sets waypoint_landing_rate, landed_runway and landed_airport. The
    waypoint rate then takes precedence over every other landing-rate
    source when the flight is completed. Returns the selected waypoint,
    or None when nothing was collected.
    """
    with get_session() as session:
        state = session.execute(
            select(ActiveFlightState).where(ActiveFlightState.pilot_identity == pilot_identity)
        ).scalar_one_or_none()

        if state is None or not state.collected_waypoints:
            logger.info(f'No waypoints collected for {pilot_identity}')
            return None

        selected = select_landing_waypoint(parse_waypoints(state.collected_waypoints))
        if selected is None or state.flight_id is None:
            return None

        session.execute(
            update(Flight)
            .where(Flight.id == state.flight_id)
            .values(
                waypoint_landing_rate=round_half_up(selected.landing_speed),
                landed_runway=selected.runway,
                landed_airport=selected.airport,
            )
        )

    logger.info(
        f'Landing for {pilot_identity} from waypoints: {selected.landing_speed:.0f} fpm '
        f'on {selected.airport or "?"} {selected.runway or ""}'.rstrip()
    )
    return selected
