"""
ActiveFlightState model - live state of a pilot's current flight.

This is the "hot" table of the system: it is upserted when tracking
starts, updated on every telemetry sample and deleted when the flight is
finalized.

Design notes:
- One row per pilot identity (upsert pattern, primary key)
- approach_altitudes/approach_timestamps are parallel JSON arrays kept
  to the most recent N entries
- collected_waypoints is an unbounded JSON list of waypoint dicts
- stationary_since holds the sample timestamp of the post-landing stop
"""

from datetime import datetime
from typing import Optional, List

from sqlalchemy import String, Float, Integer, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from logbook.models.base import Base, utcnow


class ActiveFlightState(Base):
    """
    Live tracking state for one pilot identity.

    Points at the Flight currently being flown. Starting a new flight for
    the same pilot overwrites this row, so a pilot can never have two
    tracked flights at once.
    """

    __tablename__ = 'active_flights'

    pilot_identity: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment='External simulator username'
    )

    callsign: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
        index=True,
    )

    flight_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey('flights.id', ondelete='CASCADE'),
        nullable=True,
        index=True,
    )

    # Last-known kinematics
    last_update: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_altitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_heading: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_x: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_y: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_sample_time: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Unix timestamp of the last telemetry sample'
    )

    current_phase: Mapped[Optional[str]] = mapped_column(String(24), nullable=True)

    # Status flags
    landing_detected: Mapped[bool] = mapped_column(Boolean, default=False)
    stationary_notification_sent: Mapped[bool] = mapped_column(Boolean, default=False)
    stationary_since: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Sample timestamp when the aircraft stopped after landing'
    )

    # Landing rate ring buffer (unix timestamps)
    approach_altitudes: Mapped[List[float]] = mapped_column(JSON, default=list)
    approach_timestamps: Mapped[List[float]] = mapped_column(JSON, default=list)

    # Raw landing-event reports
    collected_waypoints: Mapped[List[dict]] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f'<ActiveFlightState {self.pilot_identity} {self.callsign or "?"} flight={self.flight_id}>'

    def snapshot(self) -> dict:
        """Live kinematics for display."""
        return {
            'current_altitude': self.last_altitude,
            'current_speed': self.last_speed,
            'current_heading': self.last_heading,
            'current_phase': self.current_phase,
            'last_update': self.last_update.isoformat() if self.last_update else None,
            'landing_detected': bool(self.landing_detected),
            'stationary_notification_sent': bool(self.stationary_notification_sent),
        }
