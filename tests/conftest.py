"""Shared fixtures: throwaway SQLite database and isolated services."""

import os
import tempfile

# Must be set before logbook.config is imported
_db_dir = tempfile.mkdtemp(prefix='logbook-tests-')
os.environ['DATABASE_URL'] = f'sqlite:///{os.path.join(_db_dir, "test.db")}'
os.environ['STATS_WORKER_ENABLED'] = '0'

import pytest  # noqa: E402

from logbook.cache import live_view_cache  # noqa: E402
from logbook.models import drop_db, init_db  # noqa: E402
from logbook.services.lifecycle import FlightLifecycleManager  # noqa: E402
from logbook.services.tasks import TaskQueue  # noqa: E402
from logbook.tracking.tracker import ActiveFlightTracker  # noqa: E402


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    drop_db()
    init_db()
    live_view_cache.clear()
    yield
    live_view_cache.clear()


@pytest.fixture
def tasks():
    """Task queue without a worker thread; drive it with run_pending()."""
    return TaskQueue(name='test-tasks')


@pytest.fixture
def manager(tasks):
    return FlightLifecycleManager(tasks=tasks)


@pytest.fixture
def flight_tracker():
    return ActiveFlightTracker()


@pytest.fixture
def tracked_flight(manager, flight_tracker):
    """Factory: file a flight plan and start tracking it."""
    def _create(user_id='user-1', pilot='pilot_one', callsign='ABC123', **plan):
        flight_id = manager.create_flight(
            user_id=user_id,
            pilot_identity=pilot,
            callsign=callsign,
            **plan,
        )
        flight_tracker.start_tracking(pilot, callsign, flight_id)
        return flight_id
    return _create
