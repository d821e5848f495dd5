"""
Read-only views for flights and pilots.

Composes persisted flights, live state, telemetry and the stats cache
into display payloads:
- Live view: in-progress flight with running stats
- Completed view: the persisted flight row
- Share-token lookup: live or completed view depending on status
- Pilot profile: stats, recent flights and monthly activity
"""

import logging
import math
from collections import OrderedDict
from datetime import timedelta
from typing import Optional, List

from sqlalchemy import select, func

from logbook.analytics.flight_metrics import duration_minutes, live_flight_stats
from logbook.analytics.landing import estimate_landing_rate
from logbook.cache import live_view_cache
from logbook.config import config
from logbook.models import ActiveFlightState, Flight, FlightStatus, TelemetryPoint
from logbook.models.base import SessionLocal, utcnow
from logbook.services.stats import stats_aggregator

logger = logging.getLogger(__name__)


def get_flight(flight_id: int) -> Optional[Flight]:
    with SessionLocal() as session:
        return session.get(Flight, flight_id)


def get_flight_telemetry(flight_id: int) -> List[TelemetryPoint]:
    """All samples of a flight, oldest first."""
    with SessionLocal() as session:
        return list(session.execute(
            select(TelemetryPoint)
            .where(TelemetryPoint.flight_id == flight_id)
            .order_by(TelemetryPoint.timestamp.asc())
        ).scalars().all())


def get_user_flights(
    user_id: str,
    page: int = 1,
    limit: int = 20,
    status: str = FlightStatus.COMPLETED.value,
) -> dict:
    """
    One page of a user's flights in a given status, newest first.

    Pending/active flights sort by creation time, completed ones by when
    they actually started.
    """
    page = max(page, 1)
    offset = (page - 1) * limit

    if status == FlightStatus.COMPLETED.value:
        order_column = func.coalesce(Flight.flight_start, Flight.created_at)
    else:
        order_column = Flight.created_at

    with SessionLocal() as session:
        rows = session.execute(
            select(Flight, ActiveFlightState.current_phase)
            .outerjoin(ActiveFlightState, ActiveFlightState.flight_id == Flight.id)
            .where(Flight.user_id == user_id, Flight.status == status)
            .order_by(order_column.desc())
            .limit(limit)
            .offset(offset)
        ).all()

        total = session.execute(
            select(func.count(Flight.id))
            .where(Flight.user_id == user_id, Flight.status == status)
        ).scalar() or 0

    flights = []
    for flight, current_phase in rows:
        data = flight.to_dict()
        data['current_phase'] = current_phase
        flights.append(data)

    pages = math.ceil(total / limit) if limit else 0
    return {
        'flights': flights,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': pages,
            'has_more': page < pages,
        },
    }


def completed_flight_view(flight: Flight) -> dict:
    """The persisted flight row as shown once the flight is finished."""
    data = flight.to_dict()
    data['is_active'] = False
    return data


def live_flight_view(flight_id: int, use_cache: bool = True) -> Optional[dict]:
    """
    Flight view that includes running stats while the flight is live.

    Falls back to the completed view once the flight is completed.
    Returns None for an unknown flight.
    """
    if use_cache:
        cached = live_view_cache.get(flight_id)
        if cached is not None:
            return dict(cached)

    with SessionLocal() as session:
        flight = session.get(Flight, flight_id)
        if flight is None:
            return None
        if not flight.is_live:
            return completed_flight_view(flight)

        state = session.execute(
            select(ActiveFlightState).where(ActiveFlightState.flight_id == flight_id)
        ).scalars().first()

        samples = session.execute(
            select(TelemetryPoint)
            .where(TelemetryPoint.flight_id == flight_id)
            .order_by(TelemetryPoint.timestamp.asc())
        ).scalars().all()

    stats = live_flight_stats(samples)

    landing_rate = None
    if state is not None and state.landing_detected:
        landing_rate = estimate_landing_rate(
            flight.waypoint_landing_rate,
            state.approach_altitudes,
            state.approach_timestamps,
            samples,
        ).rate_fpm

    view = flight.to_dict()
    view.update({
        'current_altitude': None,
        'current_speed': None,
        'current_heading': None,
        'current_phase': None,
        'last_update': None,
        'landing_detected': False,
        'stationary_notification_sent': False,
    })
    if state is not None:
        view.update(state.snapshot())
    view.update(stats.to_dict())
    view.update({
        'duration_minutes': duration_minutes(flight.created_at, utcnow()),
        'landing_rate_fpm': landing_rate,
        'is_active': True,
    })

    if use_cache:
        live_view_cache.put(flight_id, dict(view))
    return view


def get_flight_by_share_token(share_token: str) -> Optional[dict]:
    """Resolve a share link to the live or completed view of its flight."""
    with SessionLocal() as session:
        flight = session.execute(
            select(Flight).where(Flight.share_token == share_token)
        ).scalars().first()

    if flight is None:
        return None
    if flight.is_live:
        return live_flight_view(flight.id)
    return completed_flight_view(flight)


def get_pilot_profile(user_id: str) -> dict:
    """
    Public profile data for a pilot.

    Identity fields (display name, avatar, roles) belong to the identity
    service and are merged in by the caller.
    """
    stats = stats_aggregator.get_user_stats(user_id)
    since = utcnow() - timedelta(days=config.stats.activity_window_days)

    with SessionLocal() as session:
        recent = session.execute(
            select(Flight)
            .where(Flight.user_id == user_id, Flight.status == FlightStatus.COMPLETED.value)
            .order_by(Flight.flight_end.desc())
            .limit(config.stats.recent_flights_limit)
        ).scalars().all()

        activity_rows = session.execute(
            select(Flight.flight_end, Flight.duration_minutes)
            .where(
                Flight.user_id == user_id,
                Flight.status == FlightStatus.COMPLETED.value,
                Flight.flight_end >= since,
            )
            .order_by(Flight.flight_end.desc())
        ).all()

    return {
        'stats': stats.to_dict(),
        'recent_flights': [
            {
                'id': f.id,
                'callsign': f.callsign,
                'aircraft': f.aircraft,
                'departure_icao': f.departure_icao,
                'arrival_icao': f.arrival_icao,
                'duration_minutes': f.duration_minutes,
                'total_distance_nm': f.total_distance_nm,
                'landing_rate_fpm': f.landing_rate_fpm,
                'created_at': f.created_at.isoformat() if f.created_at else None,
                'flight_end': f.flight_end.isoformat() if f.flight_end else None,
            }
            for f in recent
        ],
        'activity': monthly_activity(activity_rows),
    }


def monthly_activity(rows) -> List[dict]:
    """
    Roll (flight_end, duration_minutes) rows up by calendar month.

    Rows must already be ordered newest first; months come out in the
    same order.
    """
    months: 'OrderedDict[str, dict]' = OrderedDict()
    for flight_end, minutes in rows:
        key = flight_end.strftime('%Y-%m')
        bucket = months.setdefault(key, {'month': key, 'flight_count': 0, 'total_minutes': 0})
        bucket['flight_count'] += 1
        bucket['total_minutes'] += minutes or 0
    return list(months.values())
