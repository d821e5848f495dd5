"""Tests for the HTTP API."""

import importlib
import pytest
from sqlalchemy.exc import OperationalError

from logbook.app import create_app
from logbook.services.tasks import task_queue

tracker_module = importlib.import_module('logbook.tracking.tracker')


@pytest.fixture
def client():
    app = create_app(start_worker=False)
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
    task_queue.run_pending()


def pilot_headers(user_id='user-1', pilot='pilot_one', admin=False):
    headers = {'X-User-Id': user_id, 'X-Pilot-Identity': pilot}
    if admin:
        headers['X-Admin'] = '1'
    return headers


def file_flight(client, callsign='ABC123', **headers):
    response = client.post(
        '/api/flights',
        json={'callsign': callsign, 'departure_icao': 'EGLL', 'arrival_icao': 'LFPG', 'aircraft': 'A320'},
        headers=pilot_headers(**headers),
    )
    assert response.status_code == 201
    return response.get_json()['id']


class TestHealth:

    def test_health(self, client):
        assert client.get('/health').get_json() == {'status': 'ok'}

    def test_unknown_route(self, client):
        response = client.get('/api/nothing-here')
        assert response.status_code == 404


class TestFlightEndpoints:
    """Tests for /api/flights."""

    def test_create_requires_identity(self, client):
        response = client.post('/api/flights', json={'callsign': 'ABC123'})

        assert response.status_code == 403
        assert response.get_json()['code'] == 'NOT_AUTHORIZED'

    def test_create_requires_callsign(self, client):
        response = client.post('/api/flights', json={}, headers=pilot_headers())
        assert response.status_code == 400

    def test_create_starts_tracking(self, client):
        flight_id = file_flight(client)

        live = client.get('/api/tracking', headers=pilot_headers()).get_json()
        assert live['flight_id'] == flight_id
        assert live['callsign'] == 'ABC123'

    def test_unknown_flight(self, client):
        response = client.get('/api/flights/9999')

        assert response.status_code == 404
        assert response.get_json()['code'] == 'FLIGHT_NOT_FOUND'

    def test_create_with_array_body(self, client):
        response = client.post('/api/flights', json=['ABC123'], headers=pilot_headers())
        assert response.status_code == 400

    def test_list_rejects_unknown_status(self, client):
        response = client.get('/api/flights?status=boarding', headers=pilot_headers())
        assert response.status_code == 400

    def test_delete_permissions(self, client):
        flight_id = file_flight(client)

        other = client.delete(f'/api/flights/{flight_id}', headers=pilot_headers(user_id='user-2'))
        assert other.status_code == 403

        own = client.delete(f'/api/flights/{flight_id}', headers=pilot_headers())
        assert own.status_code == 200
        assert client.get(f'/api/flights/{flight_id}').status_code == 404

    def test_owner_cannot_delete_completed(self, client):
        flight_id = file_flight(client)
        client.post('/api/flights/complete', json={'callsign': 'ABC123'})

        response = client.delete(f'/api/flights/{flight_id}', headers=pilot_headers())

        assert response.status_code == 409
        assert response.get_json()['code'] == 'INVALID_TRANSITION'

    def test_telemetry_is_owner_only(self, client):
        flight_id = file_flight(client)
        response = client.get(f'/api/flights/{flight_id}/telemetry', headers=pilot_headers(user_id='user-2'))
        assert response.status_code == 403


class TestFullFlight:
    """A flight from flight plan to public profile."""

    def test_flight_round_trip(self, client):
        headers = pilot_headers()
        flight_id = file_flight(client)

        activated = client.post('/api/flights/activate', json={'callsign': 'abc123'})
        assert activated.get_json() == {'flight_id': flight_id}

        samples = [
            {'timestamp': 0, 'x': 0, 'y': 0, 'altitude': 3000, 'speed': 200, 'verticalSpeed': 0, 'heading': 90},
            {'timestamp': 60, 'x': 1852, 'y': 0, 'altitude': 1500, 'speed': 180, 'verticalSpeed': -1500, 'heading': 90},
            {'timestamp': 120, 'x': 3704, 'y': 0, 'altitude': 60, 'speed': 140, 'verticalSpeed': -700, 'heading': 90},
            {'x': 'no timestamp'},
        ]
        ingested = client.post('/api/tracking/telemetry', json={'samples': samples}, headers=headers)
        assert ingested.get_json() == {'accepted': 3, 'received': 4}

        client.post('/api/tracking/waypoint', json={'timestamp': 120, 'landing_speed': -180,
                                                    'runway': '27L', 'airport': 'LFPG'}, headers=headers)
        landing = client.post('/api/tracking/landing', headers=headers).get_json()
        assert landing['waypoint']['runway'] == '27L'

        live = client.get(f'/api/flights/{flight_id}').get_json()
        assert live['is_active'] is True
        assert live['landing_detected'] is True
        assert live['landing_rate_fpm'] == -180
        assert live['telemetry_count'] == 3

        completed = client.post('/api/flights/complete', json={'callsign': 'ABC123'})
        assert completed.get_json() == {'flight_id': flight_id}
        assert client.post('/api/flights/complete', json={'callsign': 'ABC123'}).get_json() == {'flight_id': None}

        record = client.get(f'/api/flights/{flight_id}').get_json()
        assert record['status'] == 'completed'
        assert record['landing_rate_fpm'] == -180
        assert record['landing_score'] == 90
        assert record['total_distance_nm'] == pytest.approx(2.0)
        assert record['landed_airport'] == 'LFPG'

        task_queue.run_pending()
        profile = client.get('/api/pilots/user-1/profile').get_json()
        assert profile['stats']['total_flights'] == 1
        assert profile['recent_flights'][0]['id'] == flight_id

        listing = client.get('/api/flights', headers=headers).get_json()
        assert listing['pagination']['total'] == 1

    def test_share_link(self, client):
        flight_id = file_flight(client)

        token = client.post(f'/api/flights/{flight_id}/share', headers=pilot_headers()).get_json()['share_token']
        shared = client.get(f'/api/flights/shared/{token}')

        assert shared.status_code == 200
        assert shared.get_json()['id'] == flight_id
        assert client.get('/api/flights/shared/00000000').status_code == 404


class TestTrackingEndpoints:
    """Tests for /api/tracking."""

    def test_requires_pilot_identity(self, client):
        response = client.post('/api/tracking/telemetry', json={'timestamp': 1})
        assert response.status_code == 400

    def test_untracked_pilot_is_acknowledged(self, client):
        headers = pilot_headers(pilot='ghost')

        telemetry = client.post('/api/tracking/telemetry', json={'timestamp': 1, 'altitude': 100}, headers=headers)
        waypoint = client.post('/api/tracking/waypoint', json={'timestamp': 1, 'landing_speed': -100},
                               headers=headers)

        assert telemetry.status_code == 200
        assert telemetry.get_json()['accepted'] == 0
        assert waypoint.get_json() == {'accepted': 0}

    def test_approach_and_stop(self, client):
        headers = pilot_headers()
        file_flight(client)

        assert client.post('/api/tracking/approach', json={'altitude': 900, 'timestamp': 0},
                           headers=headers).get_json() == {'accepted': 1}
        assert client.get('/api/tracking', headers=headers).get_json()['approach_samples'] == 1

        assert client.post('/api/tracking/stationary', headers=headers).get_json() == {'updated': True}
        assert client.delete('/api/tracking', headers=headers).get_json() == {'stopped': True}
        assert client.get('/api/tracking', headers=headers).status_code == 404

    def test_array_bodies_are_not_rejected(self, client):
        """A top-level JSON array is a list of samples for telemetry and an empty report elsewhere."""
        headers = pilot_headers()
        file_flight(client)

        telemetry = client.post('/api/tracking/telemetry', json=[{'timestamp': 1, 'altitude': 100}, 'junk'],
                                headers=headers)
        waypoint = client.post('/api/tracking/waypoint', json=[{'timestamp': 1, 'landing_speed': -100}],
                               headers=headers)
        approach = client.post('/api/tracking/approach', json=[900], headers=headers)

        assert telemetry.status_code == 200
        assert telemetry.get_json() == {'accepted': 1, 'received': 2}
        assert waypoint.status_code == 200
        assert waypoint.get_json() == {'accepted': 0}
        assert approach.get_json() == {'accepted': 0}

    def test_waypoint_acknowledged_when_database_locked(self, client, monkeypatch):
        headers = pilot_headers()
        file_flight(client)

        def locked(*args, **kwargs):
            raise OperationalError('SELECT active_flights', {}, Exception('database is locked'))

        monkeypatch.setattr(tracker_module.ActiveFlightTracker, '_lock_state', locked)
        response = client.post('/api/tracking/waypoint', json={'timestamp': 1, 'landing_speed': -100},
                               headers=headers)

        assert response.status_code == 200
        assert response.get_json() == {'accepted': 0}

    def test_touchdown_from_telemetry_alone(self, client):
        """No landing report from the simulator: the live view still gets a landing rate."""
        headers = pilot_headers()
        flight_id = file_flight(client)

        samples = [
            {'timestamp': 0, 'altitude': 1000, 'speed': 140, 'verticalSpeed': -600},
            {'timestamp': 30, 'altitude': 500, 'speed': 130, 'verticalSpeed': -900},
            {'timestamp': 60, 'altitude': 5, 'speed': 95, 'verticalSpeed': -120},
        ]
        client.post('/api/tracking/telemetry', json=samples, headers=headers)

        live = client.get(f'/api/flights/{flight_id}').get_json()
        assert live['landing_detected'] is True
        assert live['landing_rate_fpm'] == -1000

    def test_status(self, client):
        status = client.get('/api/tracking/status').get_json()
        assert set(status) == {'ingestion', 'cache', 'tasks'}


class TestPilotEndpoints:
    """Tests for /api/pilots."""

    def test_stats_for_new_user(self, client):
        stats = client.get('/api/pilots/newbie/stats').get_json()
        assert stats['total_flights'] == 0

    def test_recompute_is_self_or_admin(self, client):
        denied = client.post('/api/pilots/user-1/stats/recompute', headers=pilot_headers(user_id='user-2'))
        assert denied.status_code == 403

        own = client.post('/api/pilots/user-1/stats/recompute', headers=pilot_headers())
        assert own.status_code == 200

        admin = client.post('/api/pilots/user-1/stats/recompute', headers=pilot_headers(user_id='ops', admin=True))
        assert admin.status_code == 200
