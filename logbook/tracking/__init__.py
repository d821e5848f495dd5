"""
Live tracking module for the logbook.

Handles live flight state per pilot, telemetry ingestion and
landing-event waypoint collection.
"""

from logbook.tracking.phase import FlightPhase, detect_flight_phase
from logbook.tracking.samples import TelemetrySample
from logbook.tracking.tracker import ActiveFlightTracker, tracker
from logbook.tracking.waypoints import (
    Waypoint,
    finalize_landing_from_waypoints,
    select_landing_waypoint,
)

__all__ = [
    'FlightPhase',
    'detect_flight_phase',
    'TelemetrySample',
    'ActiveFlightTracker',
    'tracker',
    'Waypoint',
    'finalize_landing_from_waypoints',
    'select_landing_waypoint',
]
