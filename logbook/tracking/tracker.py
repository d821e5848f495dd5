"""
Active flight tracker - live state and telemetry ingestion.

This module treats each pilot's stream like high-frequency tick data:
- Telemetry is append-only and never joins the finalize transaction
- Live state is one row per pilot identity, upserted on start
- The approach-altitude buffer is appended then trimmed to a fixed size
- Waypoints are appended to the live row until the flight is finalized

Ingestion pipeline stages (ingest_sample):
1. Parse: coerce numeric fields, treat garbage as absent
2. Enrich: derive vertical speed and flight phase when not reported
3. Append: store the telemetry point
4. Update: refresh the live kinematic snapshot
5. Approach: record altitude into the ring buffer during approach/landing
6. Detect: flag touchdown, then the stop at the gate

Ingestion methods return a best-effort acknowledgement (True/False) and
never raise for storage errors or unknown pilots.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import select, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from logbook.cache import live_view_cache
from logbook.config import config
from logbook.models import ActiveFlightState, TelemetryPoint
from logbook.models.base import get_session, upsert, utcnow
from logbook.tracking.phase import (
    PHASE_THRESHOLDS,
    FlightPhase,
    detect_flight_phase,
    vertical_speed_between,
)
from logbook.tracking.samples import TelemetrySample, Timestamp, to_epoch
from logbook.tracking.waypoints import Waypoint

logger = logging.getLogger(__name__)

APPROACH_PHASES = (FlightPhase.APPROACH.value, FlightPhase.LANDING.value)


class ActiveFlightTracker:
    """
    Maintains live flight state per pilot identity.

    All consistency comes from database transactions and the upsert on
    pilot identity; no in-process locks are held.
    """

    def __init__(self, approach_buffer_size: Optional[int] = None):
        self.approach_buffer_size = approach_buffer_size or config.tracking.approach_buffer_size

        # Statistics
        self._samples_stored = 0
        self._samples_dropped = 0

    # -------------------------------------------------------------------------
    # Live state lifecycle
    # -------------------------------------------------------------------------

    def start_tracking(self, pilot_identity: str, callsign: str, flight_id: int) -> None:
        """
        Start (or restart) live tracking for a pilot.

        Overwrites any previous live state for the same pilot identity:
        buffers, waypoints and flags all reset to the new flight.
        """
        values = {
            'pilot_identity': pilot_identity,
            'callsign': callsign,
            'flight_id': flight_id,
            'last_update': None,
            'last_altitude': None,
            'last_speed': None,
            'last_heading': None,
            'last_x': None,
            'last_y': None,
            'last_sample_time': None,
            'current_phase': None,
            'landing_detected': False,
            'stationary_notification_sent': False,
            'stationary_since': None,
            'approach_altitudes': [],
            'approach_timestamps': [],
            'collected_waypoints': [],
            'created_at': utcnow(),
        }

        stmt = upsert(ActiveFlightState).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=['pilot_identity'],
            set_={
                name: getattr(stmt.excluded, name)
                for name in values if name != 'pilot_identity'
            },
        )

        with get_session() as session:
            session.execute(stmt)

        logger.info(f'Tracking {pilot_identity} as {callsign} (flight {flight_id})')

    def stop_tracking(self, pilot_identity: str) -> bool:
        """Delete the pilot's live state. Returns whether a row existed."""
        with get_session() as session:
            result = session.execute(
                delete(ActiveFlightState).where(ActiveFlightState.pilot_identity == pilot_identity)
            )
            removed = result.rowcount > 0

        if removed:
            logger.info(f'Stopped tracking {pilot_identity}')
        return removed

    def get_active_flight(self, pilot_identity: str) -> Optional[ActiveFlightState]:
        with get_session() as session:
            return session.get(ActiveFlightState, pilot_identity)

    def get_active_flight_by_callsign(self, callsign: str) -> Optional[ActiveFlightState]:
        with get_session() as session:
            return session.execute(
                select(ActiveFlightState).where(ActiveFlightState.callsign == callsign)
            ).scalars().first()

    # -------------------------------------------------------------------------
    # Telemetry ingestion
    # -------------------------------------------------------------------------

    def record_telemetry(self, flight_id: int, sample: TelemetrySample) -> bool:
        """
        Append a telemetry point and refresh the live snapshot.

        The snapshot update is a no-op when no live state points at the
        flight. Returns False if the sample could not be stored.
        """
        try:
            with get_session() as session:
                self._store_point(session, flight_id, sample)
                session.execute(
                    update(ActiveFlightState)
                    .where(ActiveFlightState.flight_id == flight_id)
                    .values(**self._snapshot_values(sample))
                )
        except SQLAlchemyError as e:
            self._samples_dropped += 1
            logger.error(f'Failed to store telemetry for flight {flight_id}: {e}')
            return False

        self._samples_stored += 1
        return True

    def ingest_sample(
        self,
        pilot_identity: str,
        sample: TelemetrySample,
        field_elevation_ft: float = 0.0,
    ) -> bool:
        """
        Full ingestion path for one sample from a tracked pilot.

        Fills in vertical speed and flight phase when the client did not
        report them, then stores the point, updates the snapshot and feeds
        the approach buffer, all in one short transaction. Touchdown and
        the post-landing stop at the gate are detected from the same
        sample.
        """
        touched_down_flight = None
        try:
            with get_session() as session:
                state = session.get(ActiveFlightState, pilot_identity)
                if state is None or state.flight_id is None:
                    logger.warning(f'Telemetry for untracked pilot {pilot_identity} ignored')
                    self._samples_dropped += 1
                    return False

                if sample.vertical_speed_fpm is None:
                    sample.vertical_speed_fpm = vertical_speed_between(
                        sample.altitude_ft, sample.timestamp,
                        state.last_altitude, state.last_sample_time,
                    )
                if sample.flight_phase is None:
                    sample.flight_phase = detect_flight_phase(
                        sample.altitude_ft,
                        sample.speed_kts,
                        sample.vertical_speed_fpm,
                        field_elevation_ft,
                    ).value

                previous_altitude = state.last_altitude
                self._store_point(session, state.flight_id, sample)
                for name, value in self._snapshot_values(sample).items():
                    setattr(state, name, value)

                if sample.flight_phase in APPROACH_PHASES and sample.altitude_ft is not None:
                    self._append_approach(session, state, sample.altitude_ft, sample.timestamp)

                if self._detect_touchdown(state, sample, previous_altitude, field_elevation_ft):
                    touched_down_flight = state.flight_id
                self._track_stationary(state, sample, field_elevation_ft)
        except SQLAlchemyError as e:
            self._samples_dropped += 1
            logger.error(f'Failed to ingest telemetry for {pilot_identity}: {e}')
            return False

        if touched_down_flight is not None:
            live_view_cache.invalidate(touched_down_flight)
        self._samples_stored += 1
        return True

    def record_approach_altitude(
        self,
        pilot_identity: str,
        altitude: float,
        timestamp: Union[Timestamp, None] = None,
    ) -> bool:
        """
        Append one (altitude, timestamp) pair to the approach buffer.

        Only the most recent approach_buffer_size pairs survive. Returns
        False when the pilot has no live state or the pair could not be
        stored.
        """
        epoch = to_epoch(timestamp) if timestamp is not None else datetime.now(timezone.utc).timestamp()

        try:
            with get_session() as session:
                state = self._lock_state(session, pilot_identity)
                if state is None:
                    logger.debug(f'Approach altitude for untracked pilot {pilot_identity} ignored')
                    return False
                self._append_approach(session, state, altitude, epoch)
        except SQLAlchemyError as e:
            self._samples_dropped += 1
            logger.error(f'Failed to store approach altitude for {pilot_identity}: {e}')
            return False
        return True

    def record_waypoint(self, pilot_identity: str, waypoint: Union[Waypoint, dict]) -> bool:
        """
        Append a landing-event report to the pilot's live state.

        Unknown pilots, malformed reports and storage errors are logged
        and ignored so the sender is never failed.
        """
        if isinstance(waypoint, dict):
            try:
                waypoint = Waypoint.from_dict(waypoint)
            except (ValueError, TypeError) as e:
                logger.warning(f'Malformed waypoint from {pilot_identity}: {e}')
                return False
        elif not isinstance(waypoint, Waypoint):
            logger.warning(f'Malformed waypoint from {pilot_identity}: {type(waypoint).__name__} payload')
            return False

        try:
            with get_session() as session:
                state = self._lock_state(session, pilot_identity)
                if state is None:
                    logger.warning(f'No active flight found for {pilot_identity}, waypoint dropped')
                    return False
                state.collected_waypoints = list(state.collected_waypoints or []) + [waypoint.to_dict()]
        except SQLAlchemyError as e:
            self._samples_dropped += 1
            logger.error(f'Failed to store waypoint for {pilot_identity}: {e}')
            return False

        logger.debug(f'Waypoint for {pilot_identity}: {waypoint.landing_speed:.0f} fpm')
        return True

    # -------------------------------------------------------------------------
    # Status flags
    # -------------------------------------------------------------------------

    def mark_landing_detected(self, pilot_identity: str) -> bool:
        """Flag touchdown on the live state. Returns False if already set or untracked."""
        return self._set_flag(pilot_identity, 'landing_detected')

    def mark_stationary_notified(self, pilot_identity: str) -> bool:
        """Record that the at-gate notification went out."""
        return self._set_flag(pilot_identity, 'stationary_notification_sent')

    def _set_flag(self, pilot_identity: str, flag: str) -> bool:
        column = getattr(ActiveFlightState, flag)
        try:
            with get_session() as session:
                result = session.execute(
                    update(ActiveFlightState)
                    .where(ActiveFlightState.pilot_identity == pilot_identity)
                    .where(column.is_not(True))
                    .values({flag: True})
                )
                return result.rowcount > 0
        except SQLAlchemyError as e:
            self._samples_dropped += 1
            logger.error(f'Failed to set {flag} for {pilot_identity}: {e}')
            return False

    # -------------------------------------------------------------------------
    # Automatic detection
    # -------------------------------------------------------------------------

    @staticmethod
    def _on_ground(altitude_ft: Optional[float], field_elevation_ft: float) -> bool:
        if altitude_ft is None:
            return False
        return abs(altitude_ft - field_elevation_ft) <= PHASE_THRESHOLDS['ground_alt_buffer_ft']

    def _detect_touchdown(
        self,
        state: ActiveFlightState,
        sample: TelemetrySample,
        previous_altitude: Optional[float],
        field_elevation_ft: float,
    ) -> bool:
        """
        Set landing_detected when the aircraft arrives on the ground.

        Needs the previous sample above the landing gate and this one at
        field level below touchdown speed. Returns True on the transition.
        """
        if state.landing_detected or previous_altitude is None or sample.speed_kts is None:
            return False

        was_airborne = previous_altitude - field_elevation_ft > PHASE_THRESHOLDS['landing_alt_ft']
        if not was_airborne:
            return False
        if not self._on_ground(sample.altitude_ft, field_elevation_ft):
            return False
        if sample.speed_kts >= config.tracking.touchdown_speed_kts:
            return False

        state.landing_detected = True
        logger.info(f'Touchdown detected for {state.pilot_identity} ({state.callsign}) at {sample.speed_kts:.0f} kts')
        return True

    def _track_stationary(
        self,
        state: ActiveFlightState,
        sample: TelemetrySample,
        field_elevation_ft: float,
    ) -> None:
        """
        After touchdown, flag the aircraft as at the gate once it has been
        stopped on the ground for stationary_seconds. Moving again clears
        the stop and re-arms the notification.
        """
        if not state.landing_detected or sample.speed_kts is None:
            return

        threshold = config.tracking.stationary_speed_kts
        if sample.speed_kts < threshold and self._on_ground(sample.altitude_ft, field_elevation_ft):
            if state.stationary_since is None:
                state.stationary_since = sample.timestamp
            elif (sample.timestamp - state.stationary_since >= config.tracking.stationary_seconds
                  and not state.stationary_notification_sent):
                state.stationary_notification_sent = True
                logger.info(f'{state.callsign} has arrived at the gate ({state.pilot_identity})')
        elif sample.speed_kts > threshold and state.stationary_since is not None:
            state.stationary_since = None
            state.stationary_notification_sent = False

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lock_state(self, session: Session, pilot_identity: str) -> Optional[ActiveFlightState]:
        """Load the live row for read-modify-write (row lock on PostgreSQL)."""
        return session.execute(
            select(ActiveFlightState)
            .where(ActiveFlightState.pilot_identity == pilot_identity)
            .with_for_update()
        ).scalar_one_or_none()

    def _append_approach(
        self,
        session: Session,
        state: ActiveFlightState,
        altitude: float,
        epoch: float,
    ) -> None:
        # Append first, then trim: at worst size+1 entries exist between flushes
        state.approach_altitudes = list(state.approach_altitudes or []) + [altitude]
        state.approach_timestamps = list(state.approach_timestamps or []) + [epoch]
        session.flush()

        size = self.approach_buffer_size
        state.approach_altitudes = state.approach_altitudes[-size:]
        state.approach_timestamps = state.approach_timestamps[-size:]

    @staticmethod
    def _store_point(session: Session, flight_id: int, sample: TelemetrySample) -> None:
        session.execute(
            TelemetryPoint.__table__.insert(),
            [{
                'flight_id': flight_id,
                'timestamp': sample.timestamp,
                'x': sample.x,
                'y': sample.y,
                'latitude': sample.latitude,
                'longitude': sample.longitude,
                'altitude_ft': sample.altitude_ft,
                'speed_kts': sample.speed_kts,
                'heading': sample.heading,
                'vertical_speed_fpm': sample.vertical_speed_fpm,
                'flight_phase': sample.flight_phase,
            }],
        )

    @staticmethod
    def _snapshot_values(sample: TelemetrySample) -> dict:
        return {
            'last_update': utcnow(),
            'last_altitude': sample.altitude_ft,
            'last_speed': sample.speed_kts,
            'last_heading': sample.heading,
            'last_x': sample.x,
            'last_y': sample.y,
            'last_sample_time': sample.timestamp,
            'current_phase': sample.flight_phase,
        }

    @property
    def stats(self) -> dict:
        """Get ingestion statistics."""
        return {
            'samples_stored': self._samples_stored,
            'samples_dropped': self._samples_dropped,
        }


# Singleton instance
tracker = ActiveFlightTracker()
