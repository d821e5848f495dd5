"""
Request identity.

Authentication happens upstream; the gateway forwards the resolved
identity in headers:
- X-User-Id: platform user id
- X-Pilot-Identity: simulator username linked to the user
- X-Admin: '1' when the user holds an administrator role
"""

from typing import Optional

from flask import request

from logbook.exceptions import NotAuthorized


def current_user_id() -> Optional[str]:
    return request.headers.get('X-User-Id') or None


def current_pilot_identity() -> Optional[str]:
    return request.headers.get('X-Pilot-Identity') or None


def is_admin() -> bool:
    return request.headers.get('X-Admin', '0').strip().lower() in ('1', 'true', 'yes')


def require_user_id() -> str:
    """Return the caller's user id or raise NotAuthorized."""
    user_id = current_user_id()
    if not user_id:
        raise NotAuthorized('Authentication required')
    return user_id
