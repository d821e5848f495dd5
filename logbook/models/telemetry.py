"""
TelemetryPoint model - time-series telemetry storage.

Every sample reported for a flight is recorded here, enabling:
- Distance reconstruction from consecutive positions
- Max/average speed and altitude aggregates
- Smoothness scoring from frame-to-frame deltas
- Telemetry fallback for landing rate

Schema optimized for:
- Fast appends (highest-frequency write path in the system)
- Efficient per-flight, timestamp-ordered reads
"""

from typing import Optional

from sqlalchemy import String, Float, Integer, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from logbook.models.base import Base


class TelemetryPoint(Base):
    """
    One immutable telemetry sample for a flight.

    Rows are never updated. They disappear only when their flight is
    deleted. Any numeric field may be NULL when the transport could not
    provide a sane value; aggregations skip those.
    """

    __tablename__ = 'telemetry'

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    flight_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('flights.id', ondelete='CASCADE'),
        nullable=False,
    )

    # Unix timestamp (seconds, fractional allowed)
    timestamp: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Unix timestamp of sample'
    )

    # Simulator map position, in metres (1852 per nautical mile)
    x: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    y: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    altitude_ft: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    speed_kts: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    heading: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment='Heading in degrees (0-360)'
    )
    vertical_speed_fpm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    flight_phase: Mapped[Optional[str]] = mapped_column(String(24), nullable=True)

    __table_args__ = (
        # Every read is "this flight, in time order"
        Index('ix_telemetry_flight_time', 'flight_id', 'timestamp'),
    )

    def __repr__(self) -> str:
        return f'<TelemetryPoint flight={self.flight_id} @ {self.timestamp}>'

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'x': self.x,
            'y': self.y,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude_ft': self.altitude_ft,
            'speed_kts': self.speed_kts,
            'heading': self.heading,
            'vertical_speed_fpm': self.vertical_speed_fpm,
            'flight_phase': self.flight_phase,
        }
