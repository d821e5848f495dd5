"""
Live tracking API endpoints.

Transport-facing: the simulator bridge posts samples and landing
events here for the pilot identity in the X-Pilot-Identity header.

Provides endpoints for:
- POST /api/tracking/telemetry - Ingest one or more telemetry samples
- POST /api/tracking/approach - Record an approach altitude
- POST /api/tracking/waypoint - Record a landing-event waypoint
- POST /api/tracking/landing - Finalize landing from collected waypoints
- POST /api/tracking/stationary - Record the at-gate notification
- DELETE /api/tracking - Stop tracking the pilot
- GET /api/tracking - Live state of the pilot
- GET /api/tracking/status - Ingestion, cache and worker statistics

Ingestion endpoints acknowledge with {'accepted': n} and never fail the
sender for unknown pilots or malformed samples.
"""

import logging

from flask import Blueprint, jsonify, request

from logbook.api.identity import current_pilot_identity
from logbook.cache import live_view_cache
from logbook.services.tasks import task_queue
from logbook.tracking.samples import TelemetrySample, coerce_number
from logbook.tracking.tracker import tracker
from logbook.tracking.waypoints import finalize_landing_from_waypoints

logger = logging.getLogger(__name__)

tracking_bp = Blueprint('tracking', __name__, url_prefix='/api/tracking')


def _pilot_or_400():
    pilot_identity = current_pilot_identity()
    if not pilot_identity:
        return None, (jsonify({'error': 'X-Pilot-Identity header is required'}), 400)
    return pilot_identity, None


@tracking_bp.route('/telemetry', methods=['POST'])
def ingest_telemetry():
    """
    Ingest telemetry for the caller's live flight.

    JSON body is a single sample, a list of samples or {'samples': [...]}.
    An optional field_elevation_ft applies to phase and touchdown
    detection for every sample.
    """
    pilot_identity, error = _pilot_or_400()
    if error:
        return error

    data = request.get_json(silent=True)
    if isinstance(data, list):
        raw_samples, field_elevation = data, 0.0
    elif isinstance(data, dict):
        raw_samples = data.get('samples') if isinstance(data.get('samples'), list) else [data]
        field_elevation = coerce_number(data.get('field_elevation_ft')) or 0.0
    else:
        raw_samples, field_elevation = [], 0.0

    accepted = 0
    for raw in raw_samples:
        if not isinstance(raw, dict):
            logger.debug(f'Dropping telemetry from {pilot_identity}: {type(raw).__name__} sample')
            continue
        try:
            sample = TelemetrySample.from_dict(raw)
        except (ValueError, TypeError, AttributeError) as e:
            logger.debug(f'Dropping telemetry from {pilot_identity}: {e}')
            continue
        if tracker.ingest_sample(pilot_identity, sample, field_elevation):
            accepted += 1

    return jsonify({'accepted': accepted, 'received': len(raw_samples)})


@tracking_bp.route('/approach', methods=['POST'])
def record_approach():
    """Record one approach altitude: {'altitude': ft, 'timestamp': optional}."""
    pilot_identity, error = _pilot_or_400()
    if error:
        return error

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'accepted': 0})

    altitude = coerce_number(data.get('altitude'))
    if altitude is None:
        return jsonify({'accepted': 0})

    try:
        accepted = tracker.record_approach_altitude(pilot_identity, altitude, data.get('timestamp'))
    except ValueError as e:
        logger.debug(f'Dropping approach altitude from {pilot_identity}: {e}')
        accepted = False
    return jsonify({'accepted': int(accepted)})


@tracking_bp.route('/waypoint', methods=['POST'])
def record_waypoint():
    """Record a landing-event report as sent by the simulator."""
    pilot_identity, error = _pilot_or_400()
    if error:
        return error

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'accepted': 0})

    accepted = tracker.record_waypoint(pilot_identity, data)
    return jsonify({'accepted': int(accepted)})


@tracking_bp.route('/landing', methods=['POST'])
def finalize_landing():
    """
    Touchdown reported: select the landing waypoint and flag the landing.

    Returns the selected waypoint, or null when none was collected.
    """
    pilot_identity, error = _pilot_or_400()
    if error:
        return error

    waypoint = finalize_landing_from_waypoints(pilot_identity)
    tracker.mark_landing_detected(pilot_identity)

    state = tracker.get_active_flight(pilot_identity)
    if state is not None and state.flight_id is not None:
        live_view_cache.invalidate(state.flight_id)

    return jsonify({'waypoint': waypoint.to_dict() if waypoint else None})


@tracking_bp.route('/stationary', methods=['POST'])
def mark_stationary():
    """Record that the at-gate notification was sent. Idempotent."""
    pilot_identity, error = _pilot_or_400()
    if error:
        return error
    return jsonify({'updated': tracker.mark_stationary_notified(pilot_identity)})


@tracking_bp.route('', methods=['DELETE'])
def stop_tracking():
    """Drop the caller's live state without finalizing the flight."""
    pilot_identity, error = _pilot_or_400()
    if error:
        return error
    return jsonify({'stopped': tracker.stop_tracking(pilot_identity)})


@tracking_bp.route('', methods=['GET'])
def get_live_state():
    """The caller's live state, or 404 when nothing is tracked."""
    pilot_identity, error = _pilot_or_400()
    if error:
        return error

    state = tracker.get_active_flight(pilot_identity)
    if state is None:
        return jsonify({'error': 'No active flight'}), 404

    result = state.snapshot()
    result.update({
        'pilot_identity': state.pilot_identity,
        'callsign': state.callsign,
        'flight_id': state.flight_id,
        'approach_samples': len(state.approach_altitudes or []),
        'waypoints': len(state.collected_waypoints or []),
    })
    return jsonify(result)


@tracking_bp.route('/status', methods=['GET'])
def get_status():
    """Ingestion, live view cache and background worker statistics."""
    return jsonify({
        'ingestion': tracker.stats,
        'cache': live_view_cache.stats,
        'tasks': task_queue.stats,
    })
