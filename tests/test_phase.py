"""Tests for flight phase detection."""

from logbook.tracking.phase import FlightPhase, detect_flight_phase, vertical_speed_between


class TestVerticalSpeedBetween:
    """Tests for vertical_speed_between."""

    def test_rounds_half_up(self):
        """+1 ft over 24 s is 2.5 fpm."""
        assert vertical_speed_between(1.0, 24.0, 0.0, 0.0) == 3

    def test_negative_half_rounds_toward_zero(self):
        assert vertical_speed_between(0.0, 24.0, 1.0, 0.0) == -2

    def test_descent(self):
        assert vertical_speed_between(1500.0, 60.0, 2000.0, 0.0) == -500

    def test_missing_previous_sample(self):
        assert vertical_speed_between(1000.0, 10.0, None, None) is None

    def test_no_elapsed_time(self):
        assert vertical_speed_between(1000.0, 10.0, 900.0, 10.0) is None


class TestDetectFlightPhase:
    """Tests for detect_flight_phase."""

    def test_ground_and_taxi(self):
        assert detect_flight_phase(20.0, 5.0, 0.0) == FlightPhase.GROUND
        assert detect_flight_phase(20.0, 25.0, 0.0) == FlightPhase.TAXI

    def test_heights_are_above_field(self):
        assert detect_flight_phase(5020.0, 5.0, 0.0, field_elevation_ft=5000.0) == FlightPhase.GROUND

    def test_descent_approach_landing(self):
        assert detect_flight_phase(8000.0, 280.0, -1500.0) == FlightPhase.DESCENT
        assert detect_flight_phase(2000.0, 160.0, -700.0) == FlightPhase.APPROACH
        assert detect_flight_phase(80.0, 140.0, -600.0) == FlightPhase.LANDING

    def test_missing_altitude(self):
        assert detect_flight_phase(None, 200.0, 0.0) == FlightPhase.UNKNOWN
