"""
Flight model - one row per simulated flight.

A flight is created as a pending flight plan, optionally activated by the
controller-facing system, and finalized into a permanent scored record.

Design notes:
- Status transitions go through FlightStatus.ensure_transition so an
  illegal move (e.g. completed -> active) raises instead of being written
- Scored columns stay NULL until the flight is completed
- share_token is generated lazily and never changes once set
"""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, Float, Integer, DateTime, Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from logbook.exceptions import InvalidFlightTransition
from logbook.models.base import Base, utcnow

if TYPE_CHECKING:
    from logbook.analytics.flight_metrics import FlightMetrics


class FlightStatus(str, Enum):
    """
    Flight lifecycle states.

    - PENDING: Flight plan submitted, not yet activated
    - ACTIVE: Activated by callsign from the controller side
    - COMPLETED: Finalized and scored (terminal)
    """
    PENDING = 'pending'
    ACTIVE = 'active'
    COMPLETED = 'completed'

    @property
    def is_terminal(self) -> bool:
        return self is FlightStatus.COMPLETED

    def can_transition_to(self, target: 'FlightStatus') -> bool:
        return target in _TRANSITIONS[self]

    def ensure_transition(self, target: 'FlightStatus') -> None:
        """Raise InvalidFlightTransition unless self -> target is allowed."""
        if not self.can_transition_to(target):
            raise InvalidFlightTransition(
                f'Cannot move flight from {self.value} to {target.value}'
            )


# A flight may complete without ever being explicitly activated
_TRANSITIONS = {
    FlightStatus.PENDING: frozenset({FlightStatus.ACTIVE, FlightStatus.COMPLETED}),
    FlightStatus.ACTIVE: frozenset({FlightStatus.COMPLETED}),
    FlightStatus.COMPLETED: frozenset(),
}

LIVE_STATUSES = (FlightStatus.PENDING.value, FlightStatus.ACTIVE.value)


class Flight(Base):
    """
    A single simulated flight, from flight plan to scored record.

    Owned by a platform user (user_id) and flown by a pilot identity,
    the external simulator's username that live tracking is keyed on.
    """

    __tablename__ = 'flights'

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Ownership
    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment='Owning platform user id'
    )

    pilot_identity: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment='External simulator username'
    )

    pilot_user_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment='External simulator user id'
    )

    # Flight plan
    callsign: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        index=True,
    )

    departure_icao: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    arrival_icao: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    route: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    aircraft: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        comment='Aircraft type flown (e.g., A320)'
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
        default=FlightStatus.PENDING.value,
        index=True,
    )

    controller_managed: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    activated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    flight_start: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    flight_end: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        nullable=True,
        index=True,
    )

    share_token: Mapped[Optional[str]] = mapped_column(
        String(16),
        nullable=True,
        unique=True,
    )

    # Scored metrics (populated on completion)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_distance_nm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_altitude_ft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_speed_kts: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    average_speed_kts: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    landing_rate_fpm: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment='Vertical speed at touchdown, negative = descending'
    )
    smoothness_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    landing_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Landing data from waypoint reports
    waypoint_landing_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    landed_runway: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    landed_airport: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    __table_args__ = (
        # Profile and stats queries: a user's flights by status
        Index('ix_flights_user_status', 'user_id', 'status'),
    )

    def __repr__(self) -> str:
        return f'<Flight {self.id} {self.callsign} [{self.status}]>'

    @property
    def flight_status(self) -> FlightStatus:
        return FlightStatus(self.status)

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def activate(self, now: Optional[datetime] = None) -> None:
        """Move a pending flight to active."""
        self.flight_status.ensure_transition(FlightStatus.ACTIVE)
        now = now or utcnow()
        self.status = FlightStatus.ACTIVE.value
        self.flight_start = now
        self.activated_at = now
        self.controller_managed = True

    def complete(self, metrics: 'FlightMetrics', now: Optional[datetime] = None) -> None:
        """Write the scored metrics and move the flight to completed."""
        self.flight_status.ensure_transition(FlightStatus.COMPLETED)
        self.flight_end = now or utcnow()
        self.duration_minutes = metrics.duration_minutes
        self.total_distance_nm = metrics.total_distance_nm
        self.max_altitude_ft = metrics.max_altitude_ft
        self.max_speed_kts = metrics.max_speed_kts
        self.average_speed_kts = metrics.average_speed_kts
        self.landing_rate_fpm = metrics.landing_rate_fpm
        self.landing_score = metrics.landing_score
        self.smoothness_score = metrics.smoothness_score
        self.status = FlightStatus.COMPLETED.value
        self.controller_managed = True

    def to_dict(self) -> dict:
        """JSON-serializable view of the persisted row."""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'pilot_identity': self.pilot_identity,
            'callsign': self.callsign,
            'departure_icao': self.departure_icao,
            'arrival_icao': self.arrival_icao,
            'route': self.route,
            'aircraft': self.aircraft,
            'status': self.status,
            'controller_managed': self.controller_managed,
            'created_at': _isoformat(self.created_at),
            'activated_at': _isoformat(self.activated_at),
            'flight_start': _isoformat(self.flight_start),
            'flight_end': _isoformat(self.flight_end),
            'duration_minutes': self.duration_minutes,
            'total_distance_nm': self.total_distance_nm,
            'max_altitude_ft': self.max_altitude_ft,
            'max_speed_kts': self.max_speed_kts,
            'average_speed_kts': self.average_speed_kts,
            'landing_rate_fpm': self.landing_rate_fpm,
            'landing_score': self.landing_score,
            'smoothness_score': self.smoothness_score,
            'landed_runway': self.landed_runway,
            'landed_airport': self.landed_airport,
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
