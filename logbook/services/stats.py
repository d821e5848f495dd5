"""
Per-user stats aggregation.

Every run recomputes the whole StatsCache row from the user's completed
flights; nothing is updated incrementally, so a manual correction to any
flight is picked up by simply calling recompute() again.
"""

import logging

from sqlalchemy import select, update, func, case, desc

from logbook.models import Flight, FlightStatus, StatsCache
from logbook.models.base import get_session, upsert, utcnow

logger = logging.getLogger(__name__)


class StatsAggregator:
    """Builds and serves the per-user stats cache."""

    def get_user_stats(self, user_id: str) -> StatsCache:
        """Read a user's cached stats, creating a zeroed row on first read."""
        with get_session() as session:
            self._ensure_row(session, user_id)
            return session.get(StatsCache, user_id)

    def recompute(self, user_id: str) -> StatsCache:
        """
        Recompute every cached stat for a user.

        Favorites on equal counts resolve to whichever group the database
        returns first.
        """
        completed = (
            Flight.user_id == user_id,
            Flight.status == FlightStatus.COMPLETED.value,
        )

        with get_session() as session:
            total_flights, total_minutes, total_distance = session.execute(
                select(
                    func.count(Flight.id),
                    func.coalesce(
                        func.sum(case((Flight.duration_minutes > 0, Flight.duration_minutes), else_=0)),
                        0,
                    ),
                    func.coalesce(func.sum(Flight.total_distance_nm), 0),
                ).where(*completed)
            ).one()

            fav_aircraft = session.execute(
                select(Flight.aircraft, func.count(Flight.id).label('count'))
                .where(*completed, Flight.aircraft.is_not(None))
                .group_by(Flight.aircraft)
                .order_by(desc('count'))
                .limit(1)
            ).first()

            fav_departure = session.execute(
                select(Flight.departure_icao, func.count(Flight.id).label('count'))
                .where(*completed, Flight.departure_icao.is_not(None))
                .group_by(Flight.departure_icao)
                .order_by(desc('count'))
                .limit(1)
            ).first()

            smoothest = session.execute(
                select(Flight.id, Flight.landing_rate_fpm)
                .where(*completed, Flight.landing_rate_fpm.is_not(None))
                .order_by(func.abs(Flight.landing_rate_fpm).asc())
                .limit(1)
            ).first()

            avg_landing_score = session.execute(
                select(func.avg(Flight.landing_score))
                .where(*completed, Flight.landing_score.is_not(None))
            ).scalar()

            highest_altitude = session.execute(
                select(func.max(Flight.max_altitude_ft)).where(*completed)
            ).scalar()

            longest = session.execute(
                select(Flight.id, Flight.total_distance_nm)
                .where(*completed, Flight.total_distance_nm.is_not(None))
                .order_by(Flight.total_distance_nm.desc())
                .limit(1)
            ).first()

            total_minutes = int(total_minutes or 0)

            self._ensure_row(session, user_id)
            session.execute(
                update(StatsCache)
                .where(StatsCache.user_id == user_id)
                .values(
                    total_flights=int(total_flights or 0),
                    total_hours=total_minutes / 60.0,
                    total_flight_time_minutes=total_minutes,
                    total_distance_nm=float(total_distance or 0),
                    favorite_aircraft=fav_aircraft[0] if fav_aircraft else None,
                    favorite_aircraft_count=int(fav_aircraft[1]) if fav_aircraft else 0,
                    favorite_departure=fav_departure[0] if fav_departure else None,
                    favorite_departure_count=int(fav_departure[1]) if fav_departure else 0,
                    smoothest_landing_rate=smoothest[1] if smoothest else None,
                    smoothest_landing_flight_id=smoothest[0] if smoothest else None,
                    average_landing_score=float(avg_landing_score) if avg_landing_score is not None else None,
                    highest_altitude=highest_altitude,
                    longest_flight_distance=float(longest[1]) if longest else None,
                    longest_flight_id=longest[0] if longest else None,
                    last_updated=utcnow(),
                )
            )
            stats = session.get(StatsCache, user_id, populate_existing=True)

        logger.info(f'Stats recomputed for {user_id}: {stats.total_flights} flights')
        return stats

    @staticmethod
    def _ensure_row(session, user_id: str) -> None:
        session.execute(
            upsert(StatsCache)
            .values(user_id=user_id)
            .on_conflict_do_nothing(index_elements=['user_id'])
        )


# Singleton instance
stats_aggregator = StatsAggregator()
