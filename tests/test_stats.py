"""Tests for the stats aggregator."""

from datetime import datetime

import pytest

from logbook.models import Flight, FlightStatus, get_session
from logbook.services.stats import StatsAggregator


def add_flight(user_id='user-1', status=FlightStatus.COMPLETED.value, **fields):
    with get_session() as session:
        flight = Flight(
            user_id=user_id,
            pilot_identity='pilot_one',
            callsign=fields.pop('callsign', 'ABC123'),
            status=status,
            created_at=datetime(2026, 3, 1, 12, 0, 0),
            **fields,
        )
        session.add(flight)
        session.flush()
        return flight.id


@pytest.fixture
def aggregator():
    return StatsAggregator()


class TestGetUserStats:
    """Tests for get_user_stats."""

    def test_new_user_gets_zeroed_row(self, aggregator):
        stats = aggregator.get_user_stats('nobody')

        assert stats.user_id == 'nobody'
        assert stats.total_flights == 0
        assert stats.total_distance_nm == 0.0
        assert stats.favorite_aircraft is None

    def test_repeated_reads_do_not_duplicate(self, aggregator):
        aggregator.get_user_stats('user-1')
        assert aggregator.get_user_stats('user-1').total_flights == 0


class TestRecompute:
    """Tests for recompute."""

    def test_totals_and_records(self, aggregator):
        add_flight(aircraft='A320', departure_icao='EGLL', duration_minutes=90,
                   total_distance_nm=300.5, landing_rate_fpm=-250, landing_score=80, max_altitude_ft=35000.0)
        smooth = add_flight(aircraft='A320', departure_icao='EDDF', duration_minutes=60,
                            total_distance_nm=200.0, landing_rate_fpm=-80, landing_score=100, max_altitude_ft=28000.0)
        longest = add_flight(aircraft='B738', departure_icao='EGLL', duration_minutes=150,
                             total_distance_nm=900.25, landing_rate_fpm=-600, landing_score=50, max_altitude_ft=39000.0)

        stats = aggregator.recompute('user-1')

        assert stats.total_flights == 3
        assert stats.total_flight_time_minutes == 300
        assert stats.total_hours == pytest.approx(5.0)
        assert stats.total_distance_nm == pytest.approx(1400.75)
        assert stats.favorite_aircraft == 'A320'
        assert stats.favorite_aircraft_count == 2
        assert stats.favorite_departure == 'EGLL'
        assert stats.favorite_departure_count == 2
        assert stats.smoothest_landing_rate == -80
        assert stats.smoothest_landing_flight_id == smooth
        assert stats.average_landing_score == pytest.approx(230 / 3)
        assert stats.highest_altitude == 39000.0
        assert stats.longest_flight_distance == pytest.approx(900.25)
        assert stats.longest_flight_id == longest
        assert stats.last_updated is not None

    def test_only_completed_flights_count(self, aggregator):
        add_flight(duration_minutes=30, total_distance_nm=50.0)
        add_flight(status=FlightStatus.PENDING.value, callsign='PEND01')
        add_flight(user_id='user-2', duration_minutes=45, total_distance_nm=80.0)

        stats = aggregator.recompute('user-1')

        assert stats.total_flights == 1
        assert stats.total_distance_nm == pytest.approx(50.0)

    def test_negative_durations_are_ignored(self, aggregator):
        add_flight(duration_minutes=-5)
        add_flight(duration_minutes=20)

        assert aggregator.recompute('user-1').total_flight_time_minutes == 20

    def test_longest_flight_ignores_unknown_distance(self, aggregator):
        known = add_flight(total_distance_nm=12.5)
        add_flight(total_distance_nm=None)

        stats = aggregator.recompute('user-1')

        assert stats.longest_flight_id == known

    def test_recompute_with_no_flights_resets(self, aggregator):
        flight_id = add_flight(duration_minutes=30)
        aggregator.recompute('user-1')

        with get_session() as session:
            session.delete(session.get(Flight, flight_id))

        stats = aggregator.recompute('user-1')
        assert stats.total_flights == 0
        assert stats.total_flight_time_minutes == 0
        assert stats.favorite_aircraft is None
        assert stats.longest_flight_id is None
