"""
Telemetry sample parsing.

Samples arrive from the transport layer as loosely-typed dicts. Parsing
never rejects a sample for a bad numeric field: out-of-range, NaN,
infinite or non-numeric values become None and are skipped by the
aggregations downstream.
"""

import math
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Any, Union

Timestamp = Union[datetime, float, int, str]


def coerce_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_heading(value: Any) -> Optional[float]:
    """Heading in degrees normalized to [0, 360)."""
    number = coerce_number(value)
    if number is None:
        return None
    return number % 360


def to_epoch(value: Timestamp) -> float:
    """
    Convert a timestamp to Unix seconds.

    Accepts datetimes (naive values are taken as UTC), ISO-8601 strings
    and numbers. Raises ValueError when nothing usable was given.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, str):
        return to_epoch(datetime.fromisoformat(value.replace('Z', '+00:00')))
    number = coerce_number(value)
    if number is None:
        raise ValueError(f'Invalid timestamp: {value!r}')
    return number


@dataclass
class TelemetrySample:
    """
    One telemetry report from the simulator.

    Attribute names match TelemetryPoint columns so the analytics
    functions accept either.
    """
    timestamp: float
    x: Optional[float] = None
    y: Optional[float] = None
    altitude_ft: Optional[float] = None
    speed_kts: Optional[float] = None
    heading: Optional[float] = None
    vertical_speed_fpm: Optional[float] = None
    flight_phase: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'TelemetrySample':
        """
        Parse a transport payload.

        Accepts both column names (altitude_ft) and the short names the
        simulator client sends (altitude, speed, verticalSpeed, phase).
        Raises ValueError only when the timestamp is missing or unusable.
        """
        if data.get('timestamp') is None:
            raise ValueError('Telemetry sample has no timestamp')

        phase = data.get('flight_phase', data.get('phase'))

        return cls(
            timestamp=to_epoch(data['timestamp']),
            x=coerce_number(data.get('x')),
            y=coerce_number(data.get('y')),
            altitude_ft=coerce_number(data.get('altitude_ft', data.get('altitude'))),
            speed_kts=coerce_number(data.get('speed_kts', data.get('speed'))),
            heading=coerce_heading(data.get('heading')),
            vertical_speed_fpm=coerce_number(
                data.get('vertical_speed_fpm', data.get('verticalSpeed'))
            ),
            flight_phase=str(phase).lower() if phase else None,
            latitude=coerce_number(data.get('latitude')),
            longitude=coerce_number(data.get('longitude')),
        )

    def to_dict(self) -> dict:
        return asdict(self)
