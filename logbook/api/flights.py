"""
Flight API endpoints.

Provides endpoints for:
- POST /api/flights - File a flight plan and start live tracking
- GET /api/flights - List the caller's flights (paginated)
- GET /api/flights/<id> - Live or completed view of a flight
- GET /api/flights/<id>/telemetry - Raw telemetry for a flight
- DELETE /api/flights/<id> - Delete a flight
- POST /api/flights/<id>/share - Get or create the share token
- GET /api/flights/shared/<token> - Resolve a share link
- POST /api/flights/activate - Activate a tracked flight by callsign
- POST /api/flights/complete - Finalize a tracked flight by callsign
"""

import logging
import time

from flask import Blueprint, jsonify, request

from logbook.api.identity import current_pilot_identity, is_admin, require_user_id
from logbook.exceptions import FlightNotFound, NotAuthorized
from logbook.models import FlightStatus
from logbook.services.lifecycle import lifecycle
from logbook.services import views
from logbook.tracking.tracker import tracker

logger = logging.getLogger(__name__)

flights_bp = Blueprint('flights', __name__, url_prefix='/api/flights')


@flights_bp.route('', methods=['POST'])
def create_flight():
    """
    File a flight plan for the caller.

    JSON body:
    - callsign: string (required)
    - departure_icao, arrival_icao, route, aircraft: strings (optional)
    - pilot_user_id: simulator user id (optional)

    Starts live tracking for the caller's pilot identity; any previous
    live flight of the same pilot stops being tracked.
    """
    user_id = require_user_id()
    pilot_identity = current_pilot_identity()
    if not pilot_identity:
        return jsonify({'error': 'No pilot identity linked to this account'}), 400

    data = _json_object()
    callsign = _normalize_callsign(data.get('callsign'))
    if not callsign:
        return jsonify({'error': 'callsign is required'}), 400

    flight_id = lifecycle.create_flight(
        user_id=user_id,
        pilot_identity=pilot_identity,
        callsign=callsign,
        departure_icao=data.get('departure_icao'),
        arrival_icao=data.get('arrival_icao'),
        route=data.get('route'),
        aircraft=data.get('aircraft'),
        pilot_user_id=data.get('pilot_user_id'),
    )
    tracker.start_tracking(pilot_identity, callsign, flight_id)

    return jsonify({'id': flight_id, 'callsign': callsign, 'status': FlightStatus.PENDING.value}), 201


@flights_bp.route('', methods=['GET'])
def list_flights():
    """
    List the caller's flights.

    Query parameters:
    - status: pending|active|completed (default completed)
    - page: int (default 1)
    - limit: int, max 100 (default 20)
    """
    user_id = require_user_id()

    status = request.args.get('status', FlightStatus.COMPLETED.value)
    if status not in {s.value for s in FlightStatus}:
        return jsonify({'error': f'Unknown status: {status}'}), 400

    page = request.args.get('page', 1, type=int)
    limit = min(request.args.get('limit', 20, type=int), 100)

    return jsonify(views.get_user_flights(user_id, page=page, limit=limit, status=status))


@flights_bp.route('/<int:flight_id>', methods=['GET'])
def get_flight(flight_id: int):
    """
    Get one flight.

    Live flights include running stats; completed flights return the
    scored record. Response includes query timing.
    """
    start_time = time.perf_counter()

    view = views.live_flight_view(flight_id)
    if view is None:
        raise FlightNotFound()

    view['query_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
    return jsonify(view)


@flights_bp.route('/<int:flight_id>/telemetry', methods=['GET'])
def get_flight_telemetry(flight_id: int):
    """Telemetry samples for a flight the caller owns, oldest first."""
    user_id = require_user_id()

    flight = views.get_flight(flight_id)
    if flight is None:
        raise FlightNotFound()
    if flight.user_id != user_id and not is_admin():
        raise NotAuthorized()

    points = views.get_flight_telemetry(flight_id)
    return jsonify({
        'flight_id': flight_id,
        'telemetry': [p.to_dict() for p in points],
        'count': len(points),
    })


@flights_bp.route('/<int:flight_id>', methods=['DELETE'])
def delete_flight(flight_id: int):
    """Delete a flight. Owners may delete pending flights, admins any flight."""
    user_id = require_user_id()
    lifecycle.delete_flight(flight_id, user_id, is_admin=is_admin())
    return jsonify({'deleted': flight_id})


@flights_bp.route('/<int:flight_id>/share', methods=['POST'])
def share_flight(flight_id: int):
    """Return the flight's share token, creating it on first call."""
    user_id = require_user_id()
    token = lifecycle.generate_share_token(flight_id, user_id)
    return jsonify({'flight_id': flight_id, 'share_token': token})


@flights_bp.route('/shared/<share_token>', methods=['GET'])
def get_shared_flight(share_token: str):
    """Public view of a shared flight. No identity required."""
    view = views.get_flight_by_share_token(share_token)
    if view is None:
        raise FlightNotFound()
    return jsonify(view)


# -------------------------------------------------------------------------
# Controller-side transitions
# -------------------------------------------------------------------------

@flights_bp.route('/activate', methods=['POST'])
def activate_flight():
    """
    Activate the tracked pending flight with the given callsign.

    Returns {'flight_id': null} when there was nothing to activate.
    """
    callsign = _callsign_from_body()
    if callsign is None:
        return jsonify({'error': 'callsign is required'}), 400
    return jsonify({'flight_id': lifecycle.activate(callsign)})


@flights_bp.route('/complete', methods=['POST'])
def complete_flight():
    """
    Finalize the tracked flight with the given callsign.

    Returns {'flight_id': null} when there was nothing to complete.
    """
    callsign = _callsign_from_body()
    if callsign is None:
        return jsonify({'error': 'callsign is required'}), 400
    return jsonify({'flight_id': lifecycle.complete(callsign)})


def _json_object() -> dict:
    """Request body as a dict; anything else counts as an empty body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _normalize_callsign(value) -> str:
    return value.strip().upper() if isinstance(value, str) else ''


def _callsign_from_body():
    return _normalize_callsign(_json_object().get('callsign')) or None
