"""
Pilot API endpoints.

Provides endpoints for:
- GET /api/pilots/<user_id>/profile - Public profile (stats, recent flights, activity)
- GET /api/pilots/<user_id>/stats - Cached stats
- POST /api/pilots/<user_id>/stats/recompute - Recompute stats now
"""

import logging
import time

from flask import Blueprint, jsonify

from logbook.api.identity import is_admin, require_user_id
from logbook.exceptions import NotAuthorized
from logbook.services import views
from logbook.services.stats import stats_aggregator

logger = logging.getLogger(__name__)

pilots_bp = Blueprint('pilots', __name__, url_prefix='/api/pilots')


@pilots_bp.route('/<user_id>/profile', methods=['GET'])
def get_profile(user_id: str):
    """Public pilot profile. Response includes query timing."""
    start_time = time.perf_counter()

    profile = views.get_pilot_profile(user_id)
    profile['user_id'] = user_id
    profile['query_time_ms'] = round((time.perf_counter() - start_time) * 1000, 2)
    return jsonify(profile)


@pilots_bp.route('/<user_id>/stats', methods=['GET'])
def get_stats(user_id: str):
    """Cached stats; a user with no flights gets a zeroed row."""
    return jsonify(stats_aggregator.get_user_stats(user_id).to_dict())


@pilots_bp.route('/<user_id>/stats/recompute', methods=['POST'])
def recompute_stats(user_id: str):
    """Recompute a user's stats synchronously. Self or admin only."""
    requester_id = require_user_id()
    if requester_id != user_id and not is_admin():
        raise NotAuthorized()

    stats = stats_aggregator.recompute(user_id)
    return jsonify(stats.to_dict())
