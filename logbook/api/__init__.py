"""
API module for the logbook.

Provides REST endpoints for:
- Flights (flight plans, views, sharing, lifecycle transitions)
- Live tracking (telemetry, approach altitudes, waypoints)
- Pilots (profiles and stats)
"""

from logbook.api.flights import flights_bp
from logbook.api.pilots import pilots_bp
from logbook.api.tracking import tracking_bp

__all__ = ['flights_bp', 'pilots_bp', 'tracking_bp']
