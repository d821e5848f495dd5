"""
StatsCache model - per-user logbook summary.

Recomputed in full from the user's completed flights by the stats
aggregator; never incrementally updated.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Float, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from logbook.models.base import Base


class StatsCache(Base):
    """Cached logbook statistics for one platform user."""

    __tablename__ = 'stats_cache'

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Totals
    total_flights: Mapped[int] = mapped_column(Integer, default=0)
    total_hours: Mapped[float] = mapped_column(Float, default=0.0)
    total_flight_time_minutes: Mapped[int] = mapped_column(Integer, default=0)
    total_distance_nm: Mapped[float] = mapped_column(Float, default=0.0)

    # Favorites
    favorite_aircraft: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    favorite_aircraft_count: Mapped[int] = mapped_column(Integer, default=0)
    favorite_departure: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    favorite_departure_count: Mapped[int] = mapped_column(Integer, default=0)

    # Records
    smoothest_landing_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    smoothest_landing_flight_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    average_landing_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    highest_altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longest_flight_distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longest_flight_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f'<StatsCache {self.user_id} flights={self.total_flights}>'

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'total_flights': self.total_flights,
            'total_hours': round(self.total_hours or 0, 2),
            'total_flight_time_minutes': self.total_flight_time_minutes,
            'total_distance_nm': round(self.total_distance_nm or 0, 2),
            'favorite_aircraft': self.favorite_aircraft,
            'favorite_aircraft_count': self.favorite_aircraft_count,
            'favorite_departure': self.favorite_departure,
            'favorite_departure_count': self.favorite_departure_count,
            'smoothest_landing_rate': self.smoothest_landing_rate,
            'smoothest_landing_flight_id': self.smoothest_landing_flight_id,
            'average_landing_score': self.average_landing_score,
            'highest_altitude': self.highest_altitude,
            'longest_flight_distance': self.longest_flight_distance,
            'longest_flight_id': self.longest_flight_id,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
        }
