"""
Database models for the logbook.

Schema designed around the flight lifecycle:
1. flights - one row per flight, scored on completion
2. active_flights - one hot row per live pilot (upsert pattern)
3. telemetry - append-only samples indexed by flight and time
4. stats_cache - one summary row per user
"""

from logbook.models.base import Base, engine, SessionLocal, init_db, drop_db, get_session, utcnow
from logbook.models.flight import Flight, FlightStatus, LIVE_STATUSES
from logbook.models.active_flight import ActiveFlightState
from logbook.models.telemetry import TelemetryPoint
from logbook.models.stats_cache import StatsCache

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'drop_db',
    'get_session',
    'utcnow',
    'Flight',
    'FlightStatus',
    'LIVE_STATUSES',
    'ActiveFlightState',
    'TelemetryPoint',
    'StatsCache',
]
