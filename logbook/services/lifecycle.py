"""
Flight lifecycle - flight plans, activation, finalization and deletion.

States move pending -> active -> completed and never back. The status
guard on every transition query is what makes concurrent calls safe: a
second complete() for the same callsign finds no pending/active flight
once the first has committed, and becomes a logged no-op.

Finalize stages (complete):
1. Load: join live state and flight by callsign, status-guarded
2. Score: telemetry aggregates, distance, duration, landing, smoothness
3. Write: metrics + completed status onto the flight
4. Release: delete the live state
5. Publish: queue a stats recompute for the owner (after commit)

Stages 1-4 share one transaction; a storage error rolls all of them back.
"""

import logging
import secrets
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from logbook.analytics.scoring import score_flight
from logbook.cache import LiveViewCache, live_view_cache
from logbook.exceptions import (
    FlightCompletionError,
    FlightNotFound,
    InvalidFlightTransition,
    NotAuthorized,
    ShareTokenError,
)
from logbook.models import ActiveFlightState, Flight, FlightStatus, TelemetryPoint, LIVE_STATUSES
from logbook.models.base import get_session, utcnow
from logbook.services.stats import StatsAggregator, stats_aggregator
from logbook.services.tasks import TaskQueue, task_queue

logger = logging.getLogger(__name__)

SHARE_TOKEN_ATTEMPTS = 5


class FlightLifecycleManager:
    """
    Owns every status transition of a flight.

    Side effects that must not affect a committed transition (stats
    refresh) are published to the task queue after commit.
    """

    def __init__(
        self,
        tasks: Optional[TaskQueue] = None,
        stats: Optional[StatsAggregator] = None,
        views: Optional[LiveViewCache] = None,
    ):
        self.tasks = tasks or task_queue
        self.stats = stats or stats_aggregator
        self.views = views or live_view_cache

    # -------------------------------------------------------------------------
    # Flight plans
    # -------------------------------------------------------------------------

    def create_flight(
        self,
        user_id: str,
        pilot_identity: str,
        callsign: str,
        departure_icao: Optional[str] = None,
        arrival_icao: Optional[str] = None,
        route: Optional[str] = None,
        aircraft: Optional[str] = None,
        pilot_user_id: Optional[str] = None,
    ) -> int:
        """Record a submitted flight plan as a pending flight."""
        flight = Flight(
            user_id=user_id,
            pilot_identity=pilot_identity,
            pilot_user_id=pilot_user_id,
            callsign=callsign,
            departure_icao=departure_icao.upper() if departure_icao else None,
            arrival_icao=arrival_icao.upper() if arrival_icao else None,
            route=route,
            aircraft=aircraft,
            status=FlightStatus.PENDING.value,
            created_at=utcnow(),
        )
        with get_session() as session:
            session.add(flight)
            session.flush()
            flight_id = flight.id

        logger.info(f'Flight plan {flight_id} filed: {callsign} {departure_icao or "?"}-{arrival_icao or "?"}')
        return flight_id

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def activate(self, callsign: str) -> Optional[int]:
        """
        Activate the tracked pending flight with this callsign.

        Returns the flight id, or None when no tracked pending flight
        matches (the reason is logged).
        """
        with get_session() as session:
            flight = session.execute(
                select(Flight)
                .join(ActiveFlightState, ActiveFlightState.flight_id == Flight.id)
                .where(ActiveFlightState.callsign == callsign)
                .where(Flight.status == FlightStatus.PENDING.value)
                .with_for_update()
            ).scalars().first()

            if flight is None:
                self._log_rejected(session, callsign, 'activate')
                return None

            flight.activate(utcnow())
            flight_id = flight.id

        self.views.invalidate(flight_id)
        logger.info(f'Flight {flight_id} ({callsign}) activated')
        return flight_id

    def complete(self, callsign: str) -> Optional[int]:
        """
        Finalize the tracked flight with this callsign.

        Scores the flight, marks it completed and releases the live state
        in one transaction. Returns the flight id, or None when there is
        nothing to complete (already completed or never tracked).

        Raises FlightCompletionError if the transaction fails.
        """
        try:
            with get_session() as session:
                row = session.execute(
                    select(Flight, ActiveFlightState)
                    .join(ActiveFlightState, ActiveFlightState.flight_id == Flight.id)
                    .where(ActiveFlightState.callsign == callsign)
                    .where(Flight.status.in_(LIVE_STATUSES))
                    .with_for_update()
                ).first()

                if row is None:
                    self._log_rejected(session, callsign, 'complete')
                    return None

                flight, state = row

                samples = session.execute(
                    select(TelemetryPoint)
                    .where(TelemetryPoint.flight_id == flight.id)
                    .order_by(TelemetryPoint.timestamp.asc())
                ).scalars().all()

                now = utcnow()
                metrics = score_flight(
                    samples,
                    start=flight.flight_start or flight.created_at,
                    end=now,
                    waypoint_landing_rate=flight.waypoint_landing_rate,
                    approach_altitudes=state.approach_altitudes,
                    approach_timestamps=state.approach_timestamps,
                )
                flight.complete(metrics, now)

                session.execute(
                    delete(ActiveFlightState).where(ActiveFlightState.callsign == callsign)
                )

                flight_id, user_id = flight.id, flight.user_id
        except SQLAlchemyError as e:
            logger.error(f'Could not complete flight {callsign}: {e}')
            raise FlightCompletionError() from e

        logger.info(
            f'Flight {flight_id} ({callsign}) completed: {metrics.total_distance_nm}nm, '
            f'{metrics.duration_minutes}min, landing {metrics.landing_rate_fpm} fpm, '
            f'smoothness {metrics.smoothness_score}'
        )

        self.views.invalidate(flight_id)
        self._schedule_stats_refresh(user_id)
        return flight_id

    def delete_flight(self, flight_id: int, requester_id: str, is_admin: bool = False) -> None:
        """
        Delete a flight with its telemetry and live state.

        Owners may delete only pending flights; administrators may delete
        any flight. Raises FlightNotFound, NotAuthorized or
        InvalidFlightTransition.
        """
        with get_session() as session:
            flight = session.get(Flight, flight_id, with_for_update=True)
            if flight is None:
                raise FlightNotFound()
            if flight.user_id != requester_id and not is_admin:
                raise NotAuthorized()
            if not is_admin and flight.status != FlightStatus.PENDING.value:
                raise InvalidFlightTransition('Can only delete pending flights')

            was_completed = flight.flight_status is FlightStatus.COMPLETED
            owner_id = flight.user_id

            session.execute(delete(ActiveFlightState).where(ActiveFlightState.flight_id == flight_id))
            session.execute(delete(TelemetryPoint).where(TelemetryPoint.flight_id == flight_id))
            session.execute(delete(Flight).where(Flight.id == flight_id))

        logger.info(f'Flight {flight_id} deleted by {requester_id}{" (admin)" if is_admin else ""}')

        self.views.invalidate(flight_id)
        if was_completed:
            self._schedule_stats_refresh(owner_id)

    # -------------------------------------------------------------------------
    # Sharing
    # -------------------------------------------------------------------------

    def generate_share_token(self, flight_id: int, user_id: str) -> str:
        """
        Return the flight's share token, creating it on first use.

        A freshly drawn token that collides with another flight's is
        discarded and redrawn. Raises FlightNotFound, NotAuthorized or
        ShareTokenError.
        """
        for attempt in range(1, SHARE_TOKEN_ATTEMPTS + 1):
            try:
                with get_session() as session:
                    flight = session.get(Flight, flight_id)
                    if flight is None:
                        raise FlightNotFound()
                    if flight.user_id != user_id:
                        raise NotAuthorized()

                    if not flight.share_token:
                        flight.share_token = secrets.token_hex(4)
                        session.flush()
                    return flight.share_token
            except IntegrityError:
                logger.warning(f'Share token collision for flight {flight_id} (attempt {attempt})')

        logger.error(f'Gave up creating a share token for flight {flight_id}')
        raise ShareTokenError()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _schedule_stats_refresh(self, user_id: str) -> None:
        self.tasks.submit(self.stats.recompute, user_id)

    @staticmethod
    def _log_rejected(session, callsign: str, action: str) -> None:
        """Explain why a transition found nothing to act on."""
        row = session.execute(
            select(Flight.status, ActiveFlightState.callsign)
            .outerjoin(ActiveFlightState, ActiveFlightState.flight_id == Flight.id)
            .where(Flight.callsign == callsign)
            .order_by(Flight.created_at.desc())
        ).first()

        if row is None:
            logger.warning(f'Cannot {action} {callsign}: flight not found in logbook')
        else:
            status, active_callsign = row
            logger.warning(
                f'Cannot {action} {callsign}: status="{status}", '
                f'in_active_table={active_callsign is not None}'
            )


# Singleton instance
lifecycle = FlightLifecycleManager()
